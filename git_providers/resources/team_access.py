"""Groups sharing a repository (team access)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_providers.client import encode_path
from git_providers.errors import NotFoundError, ValidationError
from git_providers.mapper import (
    GitLabObject,
    GitLabObjectKind,
    TeamAccessSpec,
    access_level_for,
    normalize_team_name,
    shared_group_from_group,
    shared_group_to_info,
)
from git_providers.models import RepositoryPermission, RepositoryRef, TeamAccessInfo
from git_providers.resources.base import Resource

if TYPE_CHECKING:
    from git_providers.client import GitLabClient


def _find_shared_group(client: GitLabClient, ref: RepositoryRef, name: str) -> GitLabObject:
    project = client.get_project(ref.full_path)
    name = normalize_team_name(name)
    for shared in project.get("shared_with_groups") or []:
        if shared.get("group_full_path") == name:
            return GitLabObject(GitLabObjectKind.SHARED_GROUP, shared)
    raise NotFoundError(f"Team {name!r} has no access to {ref.full_path}")


class TeamAccess(Resource[TeamAccessInfo]):
    """A group's access to one repository.

    The team name is the group's full path; plain (``team``) and
    subgroup-qualified (``org/team``) names are handled alike.
    """

    target_type = "team-access"

    def __init__(
        self,
        client: GitLabClient,
        ref: RepositoryRef,
        info: TeamAccessInfo,
        api_object: GitLabObject | None = None,
    ):
        super().__init__(client, info, api_object)
        self._ref = ref

    def repository(self) -> RepositoryRef:
        return self._ref

    @property
    def path(self) -> str:
        return f"{self._ref.full_path}:{normalize_team_name(self._info.name)}"

    @property
    def _project_endpoint(self) -> str:
        return f"/projects/{encode_path(self._ref.full_path)}"

    def _validate(self, info: TeamAccessInfo) -> None:
        if not normalize_team_name(info.name or ""):
            raise ValidationError("Team access requires a team name")
        if info.permission is not None:
            try:
                RepositoryPermission(info.permission)
            except ValueError:
                raise ValidationError(f"Invalid repository permission: {info.permission!r}") from None

    def set(self, info: TeamAccessInfo) -> None:
        if self._api_object is not None and normalize_team_name(info.name) != self._api_object["group_full_path"]:
            raise ValidationError("The team of an existing team access cannot be changed")
        super().set(info)

    def _fetch(self) -> GitLabObject:
        return _find_shared_group(self.client, self._ref, self._info.name)

    def _share(self, group_id: int, access_level: int) -> None:
        self.client.post(
            f"{self._project_endpoint}/share",
            data={"group_id": group_id, "group_access": access_level},
        )

    def _create(self) -> GitLabObject:
        permission = self._info.permission or RepositoryPermission.PULL
        access_level = access_level_for(permission)
        group = self.client.get_group(normalize_team_name(self._info.name))
        self._share(group["id"], access_level)
        return shared_group_from_group(group, access_level)

    def _update(self, actual: GitLabObject) -> GitLabObject:
        # GitLab has no in-place update for a share - unshare + reshare by id, no lookup in between
        desired = TeamAccessSpec.from_api(actual).with_info(self._info)
        self.client.delete(f"{self._project_endpoint}/share/{actual['group_id']}")
        self._share(actual["group_id"], desired.access_level)
        return GitLabObject(GitLabObjectKind.SHARED_GROUP, {**actual.data, "group_access_level": desired.access_level})

    def _delete(self) -> None:
        actual = self._api_object or self._fetch()
        self.client.delete(f"{self._project_endpoint}/share/{actual['group_id']}")

    def _matches(self, actual: GitLabObject) -> bool:
        current = TeamAccessSpec.from_api(actual)
        return current.equals(current.with_info(self._info))

    def _to_info(self, api_object: GitLabObject) -> TeamAccessInfo:
        return shared_group_to_info(api_object)

    def _describe_changes(self, actual: GitLabObject) -> str:
        current = TeamAccessSpec.from_api(actual)
        desired = current.with_info(self._info)
        return f"access_level: {current.access_level} -> {desired.access_level}"


class TeamAccessClient:
    """Team access for one repository."""

    def __init__(self, client: GitLabClient, ref: RepositoryRef):
        self.client = client
        self.ref = ref

    def get(self, name: str) -> TeamAccess:
        shared = _find_shared_group(self.client, self.ref, name)
        return TeamAccess(self.client, self.ref, shared_group_to_info(shared), api_object=shared)

    def list(self) -> list[TeamAccess]:
        project = self.client.get_project(self.ref.full_path)
        result = []
        for shared in project.get("shared_with_groups") or []:
            obj = GitLabObject(GitLabObjectKind.SHARED_GROUP, shared)
            result.append(TeamAccess(self.client, self.ref, shared_group_to_info(obj), api_object=obj))
        return result

    def create(self, info: TeamAccessInfo) -> TeamAccess:
        """Share the repository with a group; raises AlreadyExistsError if it is already shared."""
        team_access = TeamAccess(self.client, self.ref, info)
        team_access._create_staged()
        return team_access

    def reconcile(self, info: TeamAccessInfo) -> tuple[TeamAccess, bool]:
        team_access = TeamAccess(self.client, self.ref, info)
        action_taken = team_access.reconcile()
        return team_access, action_taken
