"""Shared fixtures for all tests."""

import os
import pytest

from actlock.models import GitRef, LookupResult, Release, Repository, Tag, TagObject


FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures/.github/workflows")

CHECKOUT_V4_SHA = "11bd71901bbe5b1630ceea73d27597364c9af683"
SETUP_PYTHON_V5_SHA = "0b93645e9fea7318ecaed2b359559ac225c90a2b"
DEPLOY_MAIN_SHA = "3f1c2b9d8e7a6c5b4a3928170f6e5d4c3b2a1908"


class FakeGitHub:
    """In-memory stand-in for GitHubAPI.

    Repositories are keyed by 'owner/repo'. Lookups that were not set up
    return NOT_FOUND; entries in ``failures`` override any lookup.
    """

    def __init__(self):
        self.commits = set()
        self.refs = {}
        self.tag_objects = {}
        self.releases = {}
        self.tags = {}
        self.repositories = {}
        self.failures = {}
        self.calls = []
        self.rate_limit_hits = 0

    # -- setup helpers ------------------------------------------------------

    def add_commit(self, repo, sha):
        self.commits.add((repo, sha))

    def add_lightweight_tag(self, repo, name, sha):
        self.refs[(repo, f"tags/{name}")] = GitRef(f"refs/tags/{name}", "commit", sha)
        self.add_commit(repo, sha)

    def add_annotated_tag(self, repo, name, tag_sha, commit_sha, target_type="commit"):
        self.refs[(repo, f"tags/{name}")] = GitRef(f"refs/tags/{name}", "tag", tag_sha)
        self.tag_objects[(repo, tag_sha)] = TagObject(tag_sha, target_type, commit_sha)
        self.add_commit(repo, commit_sha)

    def add_branch(self, repo, name, sha, object_type="commit"):
        self.refs[(repo, f"heads/{name}")] = GitRef(f"refs/heads/{name}", object_type, sha)
        self.add_commit(repo, sha)

    def fail(self, method, key, result):
        self.failures[(method, key)] = result

    # -- GitHubAPI interface ------------------------------------------------

    def _lookup(self, method, key, found):
        self.calls.append((method, key))
        if (method, key) in self.failures:
            return self.failures[(method, key)]
        if found is None:
            return LookupResult.not_found(f"{method} {key}")
        return LookupResult.found(found)

    def get_commit(self, owner, repo, sha):
        full = f"{owner}/{repo}"
        return self._lookup("get_commit", f"{full}@{sha}", sha if (full, sha) in self.commits else None)

    def get_ref(self, owner, repo, ref_path):
        full = f"{owner}/{repo}"
        return self._lookup("get_ref", f"{full}:{ref_path}", self.refs.get((full, ref_path)))

    def get_tag(self, owner, repo, sha):
        full = f"{owner}/{repo}"
        return self._lookup("get_tag", f"{full}@{sha}", self.tag_objects.get((full, sha)))

    def get_latest_release(self, owner, repo):
        full = f"{owner}/{repo}"
        tag_name = self.releases.get(full)
        return self._lookup("get_latest_release", full, Release(tag_name) if tag_name else None)

    def list_tags(self, owner, repo, per_page=10):
        full = f"{owner}/{repo}"
        tags = self.tags.get(full)
        found = [Tag(name, sha) for name, sha in tags][:per_page] if tags is not None else None
        return self._lookup("list_tags", full, found)

    def get_repository(self, owner, repo):
        full = f"{owner}/{repo}"
        branch = self.repositories.get(full)
        found = Repository(full, branch) if full in self.repositories else None
        return self._lookup("get_repository", full, found)


@pytest.fixture
def fake_github():
    """A fake client knowing the actions used by the fixture workflows."""
    gh = FakeGitHub()
    gh.add_lightweight_tag("actions/checkout", "v4", CHECKOUT_V4_SHA)
    gh.add_annotated_tag(
        "actions/setup-python", "v5",
        "9d1e3b7f5c2a4e6b8d0f1a3c5e7b9d2f4a6c8e01", SETUP_PYTHON_V5_SHA,
    )
    gh.add_branch("octo-org/shared", "main", DEPLOY_MAIN_SHA)
    gh.repositories["octo-org/shared"] = "main"
    return gh


@pytest.fixture
def fixtures_dir():
    """Path to the fixtures workflow directory."""
    return FIXTURES_DIR


@pytest.fixture
def ci_workflow_path():
    return os.path.join(FIXTURES_DIR, "ci.yml")
