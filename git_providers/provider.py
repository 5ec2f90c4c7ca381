"""Root client bound to one GitLab domain and credential."""

from __future__ import annotations

import os
from dataclasses import dataclass

from git_providers.client import GitLabClient
from git_providers.errors import ConfigurationError
from git_providers.models import DEFAULT_GITLAB_DOMAIN, DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, RETRY_BACKOFF
from git_providers.resources.organizations import OrganizationsClient
from git_providers.resources.repositories import OrgRepositoriesClient, UserRepositoriesClient
from git_providers.transport import CacheHitCounter

PROVIDER_ID = "gitlab"


@dataclass
class ClientOptions:
    domain: str = DEFAULT_GITLAB_DOMAIN
    conditional_requests: bool = False
    destructive_actions: bool = False
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_backoff: float = RETRY_BACKOFF
    timeout: float | None = DEFAULT_TIMEOUT


class Client:
    """Entry point: organizations, org repositories and user repositories of one GitLab instance.

    The client owns its HTTP session, conditional cache and cache-hit counter;
    ``close()`` (or leaving a ``with`` block) releases them.
    """

    def __init__(self, token: str, options: ClientOptions | None = None):
        if not token:
            raise ConfigurationError("A GitLab token is required")
        self.options = options or ClientOptions()
        self._client = GitLabClient(
            domain=self.options.domain,
            token=token,
            conditional_requests=self.options.conditional_requests,
            destructive_actions=self.options.destructive_actions,
            max_attempts=self.options.max_attempts,
            retry_backoff=self.options.retry_backoff,
            timeout=self.options.timeout,
        )

    @classmethod
    def from_env(cls, **overrides) -> Client:
        """Build a client from ``GITLAB_TOKEN`` and ``GITLAB_URL``.

        Keyword arguments override the corresponding ``ClientOptions`` fields.
        """
        token = os.environ.get("GITLAB_TOKEN")
        if not token:
            raise ConfigurationError("GITLAB_TOKEN environment variable is not set.")
        overrides.setdefault("domain", os.environ.get("GITLAB_URL") or DEFAULT_GITLAB_DOMAIN)
        return cls(token, ClientOptions(**overrides))

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def domain(self) -> str:
        return self.options.domain

    def provider_id(self) -> str:
        return PROVIDER_ID

    def raw(self) -> GitLabClient:
        """The underlying GitLab API client, for calls this package does not cover."""
        return self._client

    @property
    def cache_hits(self) -> CacheHitCounter:
        return self._client.cache_hits

    def organizations(self) -> OrganizationsClient:
        return OrganizationsClient(self._client)

    def org_repositories(self) -> OrgRepositoriesClient:
        return OrgRepositoriesClient(self._client)

    def user_repositories(self) -> UserRepositoriesClient:
        return UserRepositoriesClient(self._client)
