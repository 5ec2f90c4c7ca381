"""
git-providers: reconcile GitLab groups, repositories, team access and deploy keys.

Callers describe the desired state of an entity; ``reconcile`` creates it if
absent, updates it if it drifted and reports whether anything was done. All
requests retry transient failures and can revalidate cached responses.

Environment (``Client.from_env``):
    GITLAB_TOKEN - GitLab Personal Access Token (required)
    GITLAB_URL   - GitLab instance domain (default: gitlab.com)
"""

from git_providers.client import GitLabClient
from git_providers.errors import (
    AlreadyExistsError,
    ConfigurationError,
    DestructiveCallDisallowedError,
    GitProviderError,
    InvalidRefError,
    NotFoundError,
    PermissionDeniedError,
    ProviderHTTPError,
    TransientNetworkError,
    UnclassifiedError,
    ValidationError,
)
from git_providers.logging_utils import setup_logging
from git_providers.mapper import APIObject, GitLabObject, GitLabObjectKind
from git_providers.models import (
    DEFAULT_MAX_ATTEMPTS,
    FROM_CACHE_HEADER,
    RETRY_BACKOFF,
    BranchInfo,
    CommitInfo,
    DeployKeyInfo,
    File,
    LicenseTemplate,
    MergeMethod,
    OrganizationInfo,
    OrganizationRef,
    PullRequestInfo,
    RepositoryCreateOptions,
    RepositoryInfo,
    RepositoryPermission,
    RepositoryRef,
    RepositoryVisibility,
    Team,
    TeamAccessInfo,
    TransportType,
    UserRef,
)
from git_providers.provider import Client, ClientOptions

__version__ = "0.1.0"
__all__ = [
    "Client",
    "ClientOptions",
    "GitLabClient",
    "setup_logging",
    "APIObject",
    "GitLabObject",
    "GitLabObjectKind",
    "GitProviderError",
    "ProviderHTTPError",
    "NotFoundError",
    "AlreadyExistsError",
    "ValidationError",
    "InvalidRefError",
    "PermissionDeniedError",
    "UnclassifiedError",
    "TransientNetworkError",
    "ConfigurationError",
    "DestructiveCallDisallowedError",
    "DEFAULT_MAX_ATTEMPTS",
    "RETRY_BACKOFF",
    "FROM_CACHE_HEADER",
    "OrganizationRef",
    "UserRef",
    "RepositoryRef",
    "OrganizationInfo",
    "Team",
    "RepositoryInfo",
    "RepositoryCreateOptions",
    "RepositoryVisibility",
    "RepositoryPermission",
    "TeamAccessInfo",
    "DeployKeyInfo",
    "BranchInfo",
    "CommitInfo",
    "PullRequestInfo",
    "File",
    "LicenseTemplate",
    "MergeMethod",
    "TransportType",
    "__version__",
]
