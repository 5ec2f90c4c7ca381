"""Data models and constants for git-providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_GITLAB_DOMAIN = "gitlab.com"
API_V4 = "/api/v4"
PER_PAGE = 100
DEFAULT_TIMEOUT = 30.0  # seconds
LOGGER_NAME = "git-providers"

# Transient retry configuration
DEFAULT_MAX_ATTEMPTS = 3
RETRY_BACKOFF = 2.0  # seconds, fixed between attempts

# Header set on responses served by the conditional cache
FROM_CACHE_HEADER = "X-From-Cache"

# GitLab access level constants
ACCESS_LEVELS = {
    "no_access": 0,
    "minimal": 5,
    "guest": 10,
    "reporter": 20,
    "developer": 30,
    "maintainer": 40,
    "owner": 50,
}


def base_url_for_domain(domain: str) -> str:
    """Turn a domain (``gitlab.com`` or ``https://gitlab.acme.org/``) into a base URL."""
    domain = domain.strip().rstrip("/")
    if "://" in domain:
        return domain
    return f"https://{domain}"


def host_for_domain(domain: str) -> str:
    return base_url_for_domain(domain).split("://", 1)[1]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RepositoryVisibility(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"
    PRIVATE = "private"


class RepositoryPermission(str, Enum):
    PULL = "pull"
    TRIAGE = "triage"
    PUSH = "push"
    MAINTAIN = "maintain"
    ADMIN = "admin"


# Permission -> GitLab access level
PERMISSION_ACCESS_LEVELS = {
    RepositoryPermission.PULL: ACCESS_LEVELS["guest"],
    RepositoryPermission.TRIAGE: ACCESS_LEVELS["reporter"],
    RepositoryPermission.PUSH: ACCESS_LEVELS["developer"],
    RepositoryPermission.MAINTAIN: ACCESS_LEVELS["maintainer"],
    RepositoryPermission.ADMIN: ACCESS_LEVELS["owner"],
}


class TransportType(Enum):
    HTTPS = "https"
    GIT = "git"
    SSH = "ssh"


class LicenseTemplate(str, Enum):
    APACHE2 = "apache-2.0"
    MIT = "mit"
    GPL3 = "gpl-3.0"


class MergeMethod(str, Enum):
    MERGE = "merge"
    SQUASH = "squash"


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrganizationRef:
    """A GitLab group, optionally nested (``org/sub/subsub``)."""

    domain: str
    organization: str
    sub_organizations: tuple[str, ...] = ()

    @property
    def full_path(self) -> str:
        return "/".join((self.organization, *self.sub_organizations))

    @property
    def identity(self) -> str:
        return self.full_path

    @classmethod
    def from_path(cls, domain: str, path: str) -> OrganizationRef:
        first, *rest = path.strip("/").split("/")
        return cls(domain=domain, organization=first, sub_organizations=tuple(rest))


@dataclass(frozen=True)
class UserRef:
    """A GitLab user namespace."""

    domain: str
    user_login: str

    @property
    def full_path(self) -> str:
        return self.user_login

    @property
    def identity(self) -> str:
        return self.user_login


@dataclass(frozen=True)
class RepositoryRef:
    """A repository addressed by its owner (group or user) and name."""

    owner: OrganizationRef | UserRef
    name: str

    @property
    def domain(self) -> str:
        return self.owner.domain

    @property
    def identity(self) -> str:
        return self.owner.identity

    @property
    def full_path(self) -> str:
        return f"{self.owner.full_path}/{self.name}"

    def get_clone_url(self, transport: TransportType = TransportType.HTTPS) -> str:
        host = host_for_domain(self.domain)
        if transport == TransportType.HTTPS:
            return f"{base_url_for_domain(self.domain)}/{self.full_path}.git"
        if transport == TransportType.GIT:
            return f"git@{host}:{self.full_path}.git"
        return f"ssh://git@{host}/{self.full_path}"


# ---------------------------------------------------------------------------
# Desired-state / info objects
# ---------------------------------------------------------------------------


@dataclass
class OrganizationInfo:
    name: str | None = None
    description: str | None = None


@dataclass
class Team:
    """A sub-group of an organization together with its member logins."""

    name: str
    members: list[str] = field(default_factory=list)


@dataclass
class RepositoryInfo:
    """Caller-controlled repository fields. ``None`` means "leave unchanged"."""

    description: str | None = None
    default_branch: str | None = None
    visibility: RepositoryVisibility | None = None


@dataclass
class RepositoryCreateOptions:
    auto_init: bool | None = None
    license_template: LicenseTemplate | None = None


@dataclass
class TeamAccessInfo:
    """A group sharing a repository. ``name`` is the group's full path, e.g. ``org/subgroup``."""

    name: str
    permission: RepositoryPermission | None = None


@dataclass
class DeployKeyInfo:
    name: str
    key: bytes
    read_only: bool | None = None


@dataclass
class BranchInfo:
    name: str
    sha: str
    protected: bool = False


@dataclass
class CommitInfo:
    sha: str
    tree_sha: str = ""
    author: str = ""
    message: str = ""
    created_at: str = ""
    url: str = ""
    parent_shas: list[str] = field(default_factory=list)


@dataclass
class PullRequestInfo:
    title: str
    description: str = ""
    web_url: str = ""
    number: int = 0
    merged: bool = False
    source_branch: str = ""
    target_branch: str = ""


@dataclass
class File:
    """A repository file. A commit with ``content=None`` deletes ``path``."""

    path: str | None = None
    name: str | None = None
    content: str | None = None


@dataclass
class ActionResult:
    """Result of a single mutating (or verified no-op) call."""

    target_type: str
    target_path: str
    operation: str
    action: str  # "created", "updated", "already_set", "deleted"
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "target_type": self.target_type,
            "target_path": self.target_path,
            "operation": self.operation,
            "action": self.action,
            "detail": self.detail,
        }
