"""
GitHub API integration module
"""

import requests
import time
import logging
import os
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote, urlencode

from .cache import ResponseCache
from .models import GitRef, LookupResult, Release, Repository, Tag, TagObject

AUTHENTICATED_LIMIT = 5000
UNAUTHENTICATED_LIMIT = 60


class GitHubAPI:
    """GitHub API client for resolving action versions.

    Every lookup returns a LookupResult so callers can tell a missing ref
    (NOT_FOUND) apart from transport, auth and rate limit problems (ERROR)
    and from an exceeded timeout or deadline (TIMEOUT).
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        cache: Optional[ResponseCache] = None,
        timeout: float = 10,
        deadline: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.token = token or os.getenv("GITHUB_TOKEN")
        self.base_url = base_url.rstrip('/')
        self.cache = cache
        self.timeout = timeout
        self.deadline_at = time.monotonic() + deadline if deadline is not None else None
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "User-Agent": "actlock",
        })

        # Set up authentication
        if self.token:
            self.session.headers["Authorization"] = f"Bearer {self.token}"
            self.logger.info("Using GITHUB_TOKEN for authentication.")
        else:
            self.logger.warning("No GitHub token provided. API rate limits will be lower.")

        # Rate limiting
        self.rate_limit_remaining = None
        self.rate_limit_reset = None
        self.rate_limit_limit = None
        self.rate_limit_hits = 0

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def _url(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        if params:
            url = f"{url}?{urlencode(params)}"
        return url

    def _cache_key(self, url: str) -> str:
        """Cache key for a URL, kept apart per authentication state."""
        # Private repositories 404 without a token
        scope = "token" if self.authenticated else "anonymous"
        return f"{scope} {url}"

    def _remaining_time(self) -> Optional[float]:
        if self.deadline_at is None:
            return None
        return self.deadline_at - time.monotonic()

    def _record_rate_limit(self, response: requests.Response) -> None:
        """Update rate limit info from the response headers."""
        headers = response.headers
        if 'X-RateLimit-Remaining' in headers:
            self.rate_limit_remaining = int(headers['X-RateLimit-Remaining'])
        if 'X-RateLimit-Reset' in headers:
            self.rate_limit_reset = int(headers['X-RateLimit-Reset'])
        if 'X-RateLimit-Limit' in headers:
            self.rate_limit_limit = int(headers['X-RateLimit-Limit'])

    def _check_rate_limit(self) -> None:
        """Check and handle rate limiting."""
        if self.rate_limit_remaining is not None and self.rate_limit_remaining < 10:
            if self.rate_limit_reset:
                wait_time = max(0, self.rate_limit_reset - int(time.time()) + 1)
                remaining = self._remaining_time()
                if remaining is not None:
                    wait_time = min(wait_time, max(0, int(remaining)))
                if wait_time > 0:
                    self.logger.warning(f"Rate limit approaching. Waiting {wait_time} seconds...")
                    time.sleep(wait_time)

    def _is_rate_limited(self, response: requests.Response) -> bool:
        return (
            response.status_code in (403, 429)
            and response.headers.get('X-RateLimit-Remaining') == '0'
        )

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, not_found=(404,)) -> LookupResult:
        """GET an endpoint, returning the decoded JSON body as the found value."""
        url = self._url(endpoint, params)
        key = self._cache_key(url)

        cached = self.cache.get(key) if self.cache else None
        if cached is not None and self.cache.is_fresh(cached):
            self.logger.debug(f"Cache hit: {url}")
            return self._cached_result(url, cached)

        remaining = self._remaining_time()
        if remaining is not None and remaining <= 0:
            return LookupResult.timeout(f"deadline exceeded before GET {url}")

        self._check_rate_limit()

        headers = {}
        if cached is not None and cached.get('etag'):
            headers['If-None-Match'] = cached['etag']

        timeout = self.timeout if remaining is None else min(self.timeout, remaining)
        try:
            response = self.session.get(url, headers=headers, timeout=timeout)
        except requests.exceptions.Timeout as e:
            self.logger.warning(f"GitHub API request timed out: {url}")
            return LookupResult.timeout(str(e))
        except requests.exceptions.RequestException as e:
            self.logger.warning(f"GitHub API request failed: {e}")
            return LookupResult.error(str(e))

        self._record_rate_limit(response)

        if response.status_code == 304 and cached is not None:
            self.logger.debug(f"Cache revalidated: {url}")
            self.cache.touch(key)
            return self._cached_result(url, cached)

        if response.status_code in not_found:
            if self.cache:
                self.cache.set(key, 404, None)
            return LookupResult.not_found(f"GET {url} returned {response.status_code}")

        if self._is_rate_limited(response):
            self.rate_limit_hits += 1
            self.logger.warning(f"GitHub API rate limit exceeded: {url}")
            return LookupResult.error("rate limit exceeded")

        if response.status_code != 200:
            self.logger.warning(f"GitHub API request failed: GET {url} returned {response.status_code}")
            return LookupResult.error(f"GET {url} returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            return LookupResult.error(f"invalid JSON from {url}: {e}")

        if self.cache:
            self.cache.set(key, 200, body, response.headers.get('ETag'))
        return LookupResult.found(body)

    def _cached_result(self, url: str, entry: Dict[str, Any]) -> LookupResult:
        if entry.get('status') == 200:
            return LookupResult.found(entry.get('body'))
        return LookupResult.not_found(f"GET {url} returned {entry.get('status')} (cached)")

    def _convert(self, result: LookupResult, convert: Callable[[Any], Any]) -> LookupResult:
        """Turn a found JSON body into a typed value, or an ERROR if fields are missing."""
        if not result.is_found:
            return result
        try:
            return LookupResult.found(convert(result.value))
        except (KeyError, TypeError, AttributeError) as e:
            return LookupResult.error(f"unexpected response shape: {e!r}")

    def get_commit(self, owner: str, repo: str, sha: str) -> LookupResult:
        """Look up a commit object by SHA. The found value is the SHA."""
        result = self._get(f"/repos/{owner}/{repo}/git/commits/{sha}", not_found=(404, 422))
        return self._convert(result, lambda data: data['sha'])

    def get_ref(self, owner: str, repo: str, ref_path: str) -> LookupResult:
        """Look up a single ref, e.g. 'tags/v4' or 'heads/main'."""
        result = self._get(f"/repos/{owner}/{repo}/git/ref/{quote(ref_path)}")
        if result.is_found and isinstance(result.value, list):
            # Prefix matches come back as a list, never an exact ref
            return LookupResult.not_found(f"no exact match for {ref_path}")

        def to_ref(data: Dict[str, Any]) -> GitRef:
            obj = data['object']
            return GitRef(ref=data['ref'], object_type=obj['type'], sha=obj['sha'])

        return self._convert(result, to_ref)

    def get_tag(self, owner: str, repo: str, sha: str) -> LookupResult:
        """Fetch an annotated tag object."""
        result = self._get(f"/repos/{owner}/{repo}/git/tags/{sha}", not_found=(404, 422))

        def to_tag(data: Dict[str, Any]) -> TagObject:
            obj = data['object']
            return TagObject(sha=data['sha'], object_type=obj['type'], object_sha=obj['sha'])

        return self._convert(result, to_tag)

    def get_latest_release(self, owner: str, repo: str) -> LookupResult:
        result = self._get(f"/repos/{owner}/{repo}/releases/latest")
        return self._convert(result, lambda data: Release(tag_name=data.get('tag_name') or None))

    def list_tags(self, owner: str, repo: str, per_page: int = 10) -> LookupResult:
        """List tags, newest first as returned by GitHub."""
        result = self._get(f"/repos/{owner}/{repo}/tags", params={'per_page': per_page})

        def to_tags(data: Any):
            return [
                Tag(name=item['name'], commit_sha=item['commit']['sha'])
                for item in data
                if item.get('name') and (item.get('commit') or {}).get('sha')
            ]

        return self._convert(result, to_tags)

    def get_repository(self, owner: str, repo: str) -> LookupResult:
        """Get repository information."""
        result = self._get(f"/repos/{owner}/{repo}")
        return self._convert(
            result,
            lambda data: Repository(
                full_name=data.get('full_name') or f"{owner}/{repo}",
                default_branch=data.get('default_branch') or None,
            ),
        )

    def get_rate_limit_status(self) -> dict:
        """Get current rate limit status."""
        url = self._url("/rate_limit")
        try:
            response = self.session.get(url, timeout=self.timeout)
            self._record_rate_limit(response)
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            self.logger.warning(f"Could not retrieve rate limits: {e}")
            return {}

    def log_rate_limit(self) -> None:
        """Log the core rate limit and whether authenticated limits apply."""
        status = self.get_rate_limit_status()
        core = status.get('resources', {}).get('core') or status.get('rate')
        if not core:
            self.logger.info("Rate limit info unavailable.")
            return

        limit = core.get('limit', 0)
        reset = time.strftime("%H:%M:%S %Z", time.localtime(core.get('reset', 0)))
        self.logger.info(f"Rate Limit: {core.get('remaining', 0)}/{limit} remaining | Resets @ {reset}")
        if limit >= AUTHENTICATED_LIMIT:
            self.logger.info("  Using authenticated rate limits.")
        elif limit <= UNAUTHENTICATED_LIMIT:
            self.logger.info("  Using unauthenticated rate limits.")
