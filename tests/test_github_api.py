"""Tests for the GitHub API client."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import requests

from actlock.cache import ResponseCache
from actlock.github_api import GitHubAPI
from actlock.models import GitRef, LookupStatus, Release, Repository, Tag, TagObject

SHA = "11bd71901bbe5b1630ceea73d27597364c9af683"
TAG_SHA = "9d1e3b7f5c2a4e6b8d0f1a3c5e7b9d2f4a6c8e01"
COMMIT_URL = f"https://api.github.com/repos/actions/checkout/git/commits/{SHA}"
ANON_KEY = f"anonymous {COMMIT_URL}"


def make_response(status_code=200, json_data=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = json_data
    return response


@pytest.fixture(autouse=True)
def no_env_token(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


@pytest.fixture
def session():
    session = requests.Session()
    session.get = MagicMock()
    return session


@pytest.fixture
def api(session):
    return GitHubAPI(session=session)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

class TestSetup:
    def test_token_sets_bearer_header(self, session):
        api = GitHubAPI(token="secret", session=session)
        assert session.headers["Authorization"] == "Bearer secret"
        assert api.authenticated is True

    def test_token_from_environment(self, session, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        GitHubAPI(session=session)
        assert session.headers["Authorization"] == "Bearer from-env"

    def test_missing_token_logs_warning(self, session, caplog):
        api = GitHubAPI(session=session)
        assert "Authorization" not in session.headers
        assert api.authenticated is False
        assert "No GitHub token" in caplog.text

    def test_accept_header(self, api, session):
        assert session.headers["Accept"] == "application/vnd.github+json"


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------

class TestStatusMapping:
    def test_commit_found(self, api, session):
        session.get.return_value = make_response(json_data={"sha": SHA})
        result = api.get_commit("actions", "checkout", SHA)
        assert result.is_found
        assert result.value == SHA
        assert session.get.call_args[0][0] == COMMIT_URL

    def test_404_is_not_found(self, api, session):
        session.get.return_value = make_response(404)
        assert api.get_commit("actions", "checkout", SHA).is_not_found

    def test_422_is_not_found_for_commits(self, api, session):
        session.get.return_value = make_response(422)
        assert api.get_commit("actions", "checkout", SHA).is_not_found

    def test_422_is_error_for_refs(self, api, session):
        session.get.return_value = make_response(422)
        assert api.get_ref("actions", "checkout", "tags/v4").status is LookupStatus.ERROR

    def test_server_error(self, api, session):
        session.get.return_value = make_response(502)
        result = api.get_commit("actions", "checkout", SHA)
        assert result.status is LookupStatus.ERROR
        assert "502" in result.reason

    def test_unauthorized_is_error(self, api, session):
        session.get.return_value = make_response(401)
        assert api.get_repository("actions", "checkout").status is LookupStatus.ERROR

    def test_rate_limited(self, api, session):
        session.get.return_value = make_response(403, headers={"X-RateLimit-Remaining": "0"})
        result = api.get_ref("actions", "checkout", "tags/v4")
        assert result.status is LookupStatus.ERROR
        assert result.reason == "rate limit exceeded"
        assert api.rate_limit_hits == 1
        assert api.rate_limit_remaining == 0

    def test_forbidden_without_rate_limit_is_plain_error(self, api, session):
        session.get.return_value = make_response(403, headers={"X-RateLimit-Remaining": "42"})
        assert api.get_ref("actions", "checkout", "tags/v4").status is LookupStatus.ERROR
        assert api.rate_limit_hits == 0

    def test_timeout(self, api, session):
        session.get.side_effect = requests.exceptions.ReadTimeout("read timed out")
        assert api.get_commit("actions", "checkout", SHA).status is LookupStatus.TIMEOUT

    def test_connection_error(self, api, session):
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        result = api.get_commit("actions", "checkout", SHA)
        assert result.status is LookupStatus.ERROR
        assert "refused" in result.reason

    def test_invalid_json(self, api, session):
        response = make_response()
        response.json.side_effect = ValueError("bad json")
        session.get.return_value = response
        assert api.get_repository("actions", "checkout").status is LookupStatus.ERROR

    def test_deadline_exceeded_skips_request(self, session):
        api = GitHubAPI(session=session, deadline=0)
        result = api.get_commit("actions", "checkout", SHA)
        assert result.status is LookupStatus.TIMEOUT
        session.get.assert_not_called()

    def test_request_timeout_is_passed(self, session):
        api = GitHubAPI(session=session, timeout=3)
        session.get.return_value = make_response(404)
        api.get_commit("actions", "checkout", SHA)
        assert session.get.call_args[1]["timeout"] == 3

    def test_records_rate_limit_headers(self, api, session):
        session.get.return_value = make_response(
            404, headers={"X-RateLimit-Remaining": "55", "X-RateLimit-Limit": "60", "X-RateLimit-Reset": "1700000000"}
        )
        api.get_commit("actions", "checkout", SHA)
        assert api.rate_limit_remaining == 55
        assert api.rate_limit_limit == 60
        assert api.rate_limit_reset == 1700000000


# ---------------------------------------------------------------------------
# Response conversion
# ---------------------------------------------------------------------------

class TestConversion:
    def test_get_ref_lightweight(self, api, session):
        session.get.return_value = make_response(json_data={
            "ref": "refs/tags/v4",
            "object": {"type": "commit", "sha": SHA},
        })
        result = api.get_ref("actions", "checkout", "tags/v4")
        assert result.value == GitRef("refs/tags/v4", "commit", SHA)
        assert session.get.call_args[0][0].endswith("/repos/actions/checkout/git/ref/tags/v4")

    def test_get_ref_quotes_special_characters(self, api, session):
        session.get.return_value = make_response(404)
        api.get_ref("owner", "repo", "tags/v1 beta")
        assert session.get.call_args[0][0].endswith("/git/ref/tags/v1%20beta")

    def test_get_ref_list_response_is_not_found(self, api, session):
        session.get.return_value = make_response(json_data=[
            {"ref": "refs/tags/v4.1.0", "object": {"type": "commit", "sha": SHA}},
        ])
        assert api.get_ref("actions", "checkout", "tags/v4").is_not_found

    def test_get_ref_missing_object_is_error(self, api, session):
        session.get.return_value = make_response(json_data={"ref": "refs/tags/v4"})
        assert api.get_ref("actions", "checkout", "tags/v4").status is LookupStatus.ERROR

    def test_get_tag(self, api, session):
        session.get.return_value = make_response(json_data={
            "sha": TAG_SHA,
            "object": {"type": "commit", "sha": SHA},
        })
        assert api.get_tag("actions", "setup-python", TAG_SHA).value == TagObject(TAG_SHA, "commit", SHA)

    def test_get_latest_release(self, api, session):
        session.get.return_value = make_response(json_data={"tag_name": "v5.1.0"})
        assert api.get_latest_release("actions", "setup-python").value == Release("v5.1.0")

    def test_get_latest_release_without_tag(self, api, session):
        session.get.return_value = make_response(json_data={"name": "draft"})
        assert api.get_latest_release("actions", "setup-python").value == Release(None)

    def test_list_tags(self, api, session):
        session.get.return_value = make_response(json_data=[
            {"name": "v2", "commit": {"sha": SHA}},
            {"name": "", "commit": {"sha": SHA}},
            {"name": "v1", "commit": {}},
        ])
        result = api.list_tags("owner", "repo", per_page=10)
        assert result.value == [Tag("v2", SHA)]
        assert session.get.call_args[0][0].endswith("/repos/owner/repo/tags?per_page=10")

    def test_get_repository(self, api, session):
        session.get.return_value = make_response(json_data={"full_name": "octo-org/shared", "default_branch": "main"})
        assert api.get_repository("octo-org", "shared").value == Repository("octo-org/shared", "main")


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------

class TestCaching:
    def test_fresh_entry_skips_request(self, session, tmp_path):
        cache = ResponseCache(tmp_path)
        cache.set(ANON_KEY, 200, {"sha": SHA})
        api = GitHubAPI(session=session, cache=cache)
        assert api.get_commit("actions", "checkout", SHA).value == SHA
        session.get.assert_not_called()

    def test_cached_not_found(self, session, tmp_path):
        cache = ResponseCache(tmp_path)
        cache.set(ANON_KEY, 404, None)
        api = GitHubAPI(session=session, cache=cache)
        assert api.get_commit("actions", "checkout", SHA).is_not_found
        session.get.assert_not_called()

    def test_response_is_stored(self, session, tmp_path):
        cache = ResponseCache(tmp_path)
        session.get.return_value = make_response(json_data={"sha": SHA}, headers={"ETag": '"abc"'})
        GitHubAPI(session=session, cache=cache).get_commit("actions", "checkout", SHA)
        entry = ResponseCache(tmp_path).get(ANON_KEY)
        assert entry["status"] == 200
        assert entry["etag"] == '"abc"'

    def test_errors_are_not_stored(self, session, tmp_path):
        cache = ResponseCache(tmp_path)
        session.get.return_value = make_response(500)
        GitHubAPI(session=session, cache=cache).get_commit("actions", "checkout", SHA)
        assert cache.get(ANON_KEY) is None

    def test_stale_entry_is_revalidated_with_etag(self, session, tmp_path):
        cache = ResponseCache(tmp_path, expiry=timedelta(0))
        cache.set(ANON_KEY, 200, {"sha": SHA}, etag='"abc"')
        session.get.return_value = make_response(304)
        api = GitHubAPI(session=session, cache=cache)
        assert api.get_commit("actions", "checkout", SHA).value == SHA
        assert session.get.call_args[1]["headers"] == {"If-None-Match": '"abc"'}

    def test_anonymous_not_found_is_not_reused_with_token(self, tmp_path):
        cache = ResponseCache(tmp_path)
        anonymous = requests.Session()
        anonymous.get = MagicMock(return_value=make_response(404))
        assert GitHubAPI(session=anonymous, cache=cache).get_commit("octo-org", "private", SHA).is_not_found

        authenticated = requests.Session()
        authenticated.get = MagicMock(return_value=make_response(json_data={"sha": SHA}))
        api = GitHubAPI(token="secret", session=authenticated, cache=cache)

        assert api.get_commit("octo-org", "private", SHA).value == SHA
        authenticated.get.assert_called_once()


# ---------------------------------------------------------------------------
# Rate limit status
# ---------------------------------------------------------------------------

class TestRateLimitStatus:
    def test_log_rate_limit(self, api, session, caplog):
        caplog.set_level("INFO")
        session.get.return_value = make_response(json_data={
            "resources": {"core": {"limit": 60, "remaining": 59, "reset": 0}},
        })
        api.log_rate_limit()
        assert "59/60" in caplog.text
        assert "unauthenticated" in caplog.text

    def test_status_failure_returns_empty(self, api, session):
        session.get.side_effect = requests.exceptions.ConnectionError("down")
        assert api.get_rate_limit_status() == {}
