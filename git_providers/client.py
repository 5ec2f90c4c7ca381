"""GitLab API client with pagination, typed errors and transient retry."""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

import requests

from git_providers.cache import ConditionalCacheAdapter
from git_providers.errors import InvalidRefError, NotFoundError, classify_response
from git_providers.models import (
    API_V4,
    DEFAULT_GITLAB_DOMAIN,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_TIMEOUT,
    LOGGER_NAME,
    PER_PAGE,
    RETRY_BACKOFF,
    base_url_for_domain,
)
from git_providers.transport import CacheHitCounter, RetryTransport


def encode_path(path: str) -> str:
    """URL-encode a namespaced path (``org/sub/repo``) for use as a GitLab ID."""
    return urllib.parse.quote(path.strip("/"), safe="")


class GitLabClient:
    """Thin wrapper around GitLab REST API v4.

    Requests go through an optional conditional cache and a retrying
    transport; error responses are raised as typed ``GitProviderError``s.
    """

    def __init__(
        self,
        domain: str = DEFAULT_GITLAB_DOMAIN,
        token: str = "",
        conditional_requests: bool = False,
        destructive_actions: bool = False,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff: float = RETRY_BACKOFF,
        timeout: float | None = DEFAULT_TIMEOUT,
    ):
        self.domain = domain
        self.base_url = base_url_for_domain(domain)
        self.api_url = f"{self.base_url}{API_V4}"
        self.destructive_actions = destructive_actions
        self.timeout = timeout
        self.logger = logging.getLogger(LOGGER_NAME)

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            }
        )

        self.transport = RetryTransport(max_attempts=max_attempts, backoff=retry_backoff)
        self.cache: ConditionalCacheAdapter | None = None
        adapter: requests.adapters.HTTPAdapter = self.transport
        if conditional_requests:
            self.cache = ConditionalCacheAdapter(self.transport)
            adapter = self.cache
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

        self.cache_hits = CacheHitCounter()
        self.session.hooks["response"].append(self.cache_hits)

    def close(self) -> None:
        self.session.close()
        if self.cache is not None:
            self.cache.store.clear()

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make an HTTP request, raising a typed error for any error response."""
        url = f"{self.api_url}{endpoint}"
        kwargs.setdefault("timeout", self.timeout)
        self.logger.debug(f"{method.upper()} {url} {kwargs.get('params') or ''} {kwargs.get('json') or ''}")

        resp = self.session.request(method, url, **kwargs)
        if resp.status_code >= 400:
            error = classify_response(resp)
            if isinstance(error, NotFoundError):
                self.logger.debug(f"Not found: {method.upper()} {url}")
            else:
                self.logger.error(f"API error {resp.status_code}: {resp.text[:500]}")
            raise error
        return resp

    def get(self, endpoint: str, params: dict | None = None) -> Any:
        return self._request("GET", endpoint, params=params).json()

    def post(self, endpoint: str, data: dict | None = None) -> Any:
        return self._request("POST", endpoint, json=data).json()

    def put(self, endpoint: str, data: dict | None = None) -> Any:
        return self._request("PUT", endpoint, json=data).json()

    def delete(self, endpoint: str, params: dict | None = None) -> requests.Response:
        return self._request("DELETE", endpoint, params=params)

    def head(self, endpoint: str, params: dict | None = None) -> requests.Response:
        return self._request("HEAD", endpoint, params=params)

    def paginate(self, endpoint: str, params: dict | None = None) -> list[dict]:
        """Fetch all pages of a paginated endpoint."""
        params = dict(params or {})
        params.setdefault("per_page", PER_PAGE)
        page = 1
        results = []
        while True:
            params["page"] = page
            resp = self._request("GET", endpoint, params=params)
            data = resp.json()
            if not data:
                break
            results.extend(data)
            # GitLab omits x-total-pages for very large collections; x-next-page is always sent
            next_page = resp.headers.get("x-next-page")
            if next_page:
                page = int(next_page)
                continue
            total_pages = int(resp.headers.get("x-total-pages") or page)
            if page >= total_pages:
                break
            page += 1
        return results

    # -- Resolution helpers --

    def check_domain(self, domain: str) -> None:
        """Reject references that point at a different GitLab instance."""
        if base_url_for_domain(domain) != self.base_url:
            raise InvalidRefError(f"Domain {domain!r} is not served by this client ({self.base_url})")

    def get_group(self, full_path: str) -> dict:
        return self.get(f"/groups/{encode_path(full_path)}")

    def get_subgroups(self, full_path: str) -> list[dict]:
        return self.paginate(f"/groups/{encode_path(full_path)}/subgroups")

    def get_group_projects(self, full_path: str) -> list[dict]:
        return self.paginate(f"/groups/{encode_path(full_path)}/projects", params={"include_subgroups": False})

    def get_user_projects(self, login: str) -> list[dict]:
        return self.paginate(f"/users/{encode_path(login)}/projects")

    def get_project(self, full_path: str) -> dict:
        """Get project details by path."""
        return self.get(f"/projects/{encode_path(full_path)}")

    def current_user(self) -> dict:
        return self.get("/user")
