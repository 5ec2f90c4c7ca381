"""Conversions between GitLab wire objects and the provider-neutral models.

Each comparable resource has a *spec*: the subset of its fields a caller can
set. Server-managed fields (ids, timestamps, URLs) never take part in spec
equality, so a project returned by ``POST /projects`` and the same project
fetched with ``GET`` produce equal specs.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from git_providers.models import (
    PERMISSION_ACCESS_LEVELS,
    BranchInfo,
    CommitInfo,
    DeployKeyInfo,
    OrganizationInfo,
    PullRequestInfo,
    RepositoryInfo,
    RepositoryPermission,
    RepositoryVisibility,
    TeamAccessInfo,
)


class GitLabObjectKind(Enum):
    GROUP = "group"
    PROJECT = "project"
    SHARED_GROUP = "shared_group"
    DEPLOY_KEY = "deploy_key"
    BRANCH = "branch"
    COMMIT = "commit"
    MERGE_REQUEST = "merge_request"


@dataclass(frozen=True, eq=False)
class GitLabObject:
    """A GitLab wire object, tagged with its kind."""

    provider: ClassVar[str] = "gitlab"

    kind: GitLabObjectKind
    data: dict[str, Any]

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


# One variant per supported provider
APIObject = Union[GitLabObject]


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


def access_level_for(permission: RepositoryPermission) -> int:
    return PERMISSION_ACCESS_LEVELS[RepositoryPermission(permission)]


def permission_for(access_level: int) -> RepositoryPermission:
    """The highest permission not above ``access_level``; levels below guest read as pull.

    GitLab has levels between the mapped ones (e.g. planner, 15).
    """
    best = RepositoryPermission.PULL
    for permission, level in PERMISSION_ACCESS_LEVELS.items():
        if level <= access_level and level >= PERMISSION_ACCESS_LEVELS[best]:
            best = permission
    return best


def canonical_key(key: bytes | str) -> str:
    """Deploy keys compare without trailing newlines."""
    if isinstance(key, bytes):
        key = key.decode("utf-8")
    return key.rstrip("\r\n")


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------


def group_to_info(group: GitLabObject) -> OrganizationInfo:
    return OrganizationInfo(name=group.get("name"), description=group.get("description") or "")


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectSpec:
    name: str | None
    path: str | None
    description: str
    default_branch: str | None
    visibility: str | None

    @classmethod
    def from_api(cls, project: GitLabObject) -> ProjectSpec:
        return cls(
            name=project.get("name"),
            path=project.get("path"),
            description=project.get("description") or "",
            default_branch=project.get("default_branch"),
            visibility=project.get("visibility"),
        )

    def with_info(self, info: RepositoryInfo) -> ProjectSpec:
        """The spec after applying ``info``; unset fields keep their current value."""
        changes: dict[str, Any] = {}
        if info.description is not None:
            changes["description"] = info.description
        if info.default_branch is not None:
            changes["default_branch"] = info.default_branch
        if info.visibility is not None:
            changes["visibility"] = RepositoryVisibility(info.visibility).value
        return dataclasses.replace(self, **changes)

    def equals(self, other: ProjectSpec) -> bool:
        return self == other


def project_to_info(project: GitLabObject) -> RepositoryInfo:
    visibility = project.get("visibility")
    return RepositoryInfo(
        description=project.get("description") or "",
        default_branch=project.get("default_branch"),
        visibility=RepositoryVisibility(visibility) if visibility else None,
    )


def project_changes(project: GitLabObject, info: RepositoryInfo) -> dict[str, Any]:
    """Fields of ``info`` whose values differ from ``project``, as a PUT body."""
    current = ProjectSpec.from_api(project)
    desired = current.with_info(info)
    return {
        f.name: getattr(desired, f.name)
        for f in dataclasses.fields(ProjectSpec)
        if getattr(desired, f.name) != getattr(current, f.name)
    }


def project_create_body(name: str, info: RepositoryInfo) -> dict[str, Any]:
    body: dict[str, Any] = {"name": name, "path": name}
    body["visibility"] = RepositoryVisibility(info.visibility or RepositoryVisibility.PRIVATE).value
    if info.description is not None:
        body["description"] = info.description
    if info.default_branch is not None:
        body["default_branch"] = info.default_branch
    return body


# ---------------------------------------------------------------------------
# Team access
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TeamAccessSpec:
    name: str
    access_level: int

    @classmethod
    def from_api(cls, shared_group: GitLabObject) -> TeamAccessSpec:
        return cls(name=shared_group["group_full_path"], access_level=shared_group["group_access_level"])

    def with_info(self, info: TeamAccessInfo) -> TeamAccessSpec:
        if info.permission is None:
            return dataclasses.replace(self, name=normalize_team_name(info.name))
        return TeamAccessSpec(name=normalize_team_name(info.name), access_level=access_level_for(info.permission))

    def equals(self, other: TeamAccessSpec) -> bool:
        return self == other


def normalize_team_name(name: str) -> str:
    return name.strip("/")


def shared_group_to_info(shared_group: GitLabObject) -> TeamAccessInfo:
    return TeamAccessInfo(
        name=shared_group["group_full_path"],
        permission=permission_for(shared_group["group_access_level"]),
    )


def shared_group_from_group(group: dict[str, Any], access_level: int) -> GitLabObject:
    """Build the ``shared_with_groups`` entry for ``group`` without another round trip."""
    return GitLabObject(
        GitLabObjectKind.SHARED_GROUP,
        {
            "group_id": group["id"],
            "group_name": group.get("name"),
            "group_full_path": group["full_path"],
            "group_access_level": access_level,
            "expires_at": None,
        },
    )


# ---------------------------------------------------------------------------
# Deploy keys
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeployKeySpec:
    title: str
    key: str
    can_push: bool

    @classmethod
    def from_api(cls, deploy_key: GitLabObject) -> DeployKeySpec:
        return cls(
            title=deploy_key["title"],
            key=canonical_key(deploy_key["key"]),
            can_push=bool(deploy_key.get("can_push", False)),
        )

    def with_info(self, info: DeployKeyInfo) -> DeployKeySpec:
        can_push = self.can_push if info.read_only is None else not info.read_only
        return DeployKeySpec(title=info.name, key=canonical_key(info.key), can_push=can_push)

    def equals(self, other: DeployKeySpec) -> bool:
        return self == other


def deploy_key_to_info(deploy_key: GitLabObject) -> DeployKeyInfo:
    return DeployKeyInfo(
        name=deploy_key["title"],
        key=canonical_key(deploy_key["key"]).encode("utf-8"),
        read_only=not deploy_key.get("can_push", False),
    )


def deploy_key_create_body(info: DeployKeyInfo) -> dict[str, Any]:
    read_only = True if info.read_only is None else info.read_only
    return {"title": info.name, "key": canonical_key(info.key), "can_push": not read_only}


# ---------------------------------------------------------------------------
# Branches, commits, merge requests
# ---------------------------------------------------------------------------


def branch_to_info(branch: GitLabObject) -> BranchInfo:
    commit = branch.get("commit") or {}
    return BranchInfo(name=branch["name"], sha=commit.get("id", ""), protected=bool(branch.get("protected")))


def commit_to_info(commit: GitLabObject) -> CommitInfo:
    return CommitInfo(
        sha=commit["id"],
        tree_sha=commit.get("tree_id") or "",
        author=commit.get("author_name") or "",
        message=commit.get("message") or "",
        created_at=commit.get("created_at") or "",
        url=commit.get("web_url") or "",
        parent_shas=list(commit.get("parent_ids") or []),
    )


def merge_request_to_info(merge_request: GitLabObject) -> PullRequestInfo:
    return PullRequestInfo(
        title=merge_request.get("title") or "",
        description=merge_request.get("description") or "",
        web_url=merge_request.get("web_url") or "",
        number=merge_request["iid"],
        merged=merge_request.get("state") == "merged",
        source_branch=merge_request.get("source_branch") or "",
        target_branch=merge_request.get("target_branch") or "",
    )
