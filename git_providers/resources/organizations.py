"""Organizations (GitLab groups) and their teams (sub-groups)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_providers.client import encode_path
from git_providers.errors import InvalidRefError
from git_providers.mapper import GitLabObject, GitLabObjectKind, group_to_info
from git_providers.models import OrganizationInfo, OrganizationRef, Team

if TYPE_CHECKING:
    from git_providers.client import GitLabClient


class Organization:
    def __init__(self, client: GitLabClient, ref: OrganizationRef, api_object: GitLabObject):
        self.client = client
        self._ref = ref
        self._api_object = api_object

    def organization(self) -> OrganizationRef:
        return self._ref

    def get(self) -> OrganizationInfo:
        return group_to_info(self._api_object)

    def api_object(self) -> GitLabObject:
        return self._api_object

    def teams(self) -> TeamsClient:
        return TeamsClient(self.client, self._ref)


class TeamsClient:
    """Teams of an organization. A team is a direct sub-group and its members."""

    def __init__(self, client: GitLabClient, ref: OrganizationRef):
        self.client = client
        self.ref = ref

    def _members(self, group_path: str) -> list[str]:
        members = self.client.paginate(f"/groups/{encode_path(group_path)}/members")
        return [m["username"] for m in members]

    def get(self, name: str) -> Team:
        """A team by plain (``platform``) or org-qualified (``acme/platform``) name."""
        name = name.strip("/")
        prefix = f"{self.ref.full_path}/"
        if name.startswith(prefix):
            name = name[len(prefix) :]
        group = self.client.get_group(f"{prefix}{name}")
        return Team(name=group["path"], members=self._members(group["full_path"]))

    def list(self) -> list[Team]:
        return [
            Team(name=subgroup["path"], members=self._members(subgroup["full_path"]))
            for subgroup in self.client.get_subgroups(self.ref.full_path)
        ]


class OrganizationsClient:
    """Groups visible to the authenticated user."""

    def __init__(self, client: GitLabClient):
        self.client = client

    def _validate_ref(self, ref: OrganizationRef) -> None:
        if not ref.organization:
            raise InvalidRefError(f"Incomplete organization reference: {ref!r}")
        self.client.check_domain(ref.domain)

    def _to_ref(self, group: dict) -> OrganizationRef:
        return OrganizationRef.from_path(self.client.domain, group["full_path"])

    def get(self, ref: OrganizationRef) -> Organization:
        self._validate_ref(ref)
        group = GitLabObject(GitLabObjectKind.GROUP, self.client.get_group(ref.full_path))
        return Organization(self.client, ref, group)

    def list(self) -> list[Organization]:
        """Top-level and nested groups the user is a member of."""
        return [
            Organization(self.client, self._to_ref(group), GitLabObject(GitLabObjectKind.GROUP, group))
            for group in self.client.paginate("/groups")
        ]

    def children(self, ref: OrganizationRef) -> list[Organization]:
        """Direct sub-groups of ``ref``."""
        self._validate_ref(ref)
        return [
            Organization(self.client, self._to_ref(group), GitLabObject(GitLabObjectKind.GROUP, group))
            for group in self.client.get_subgroups(ref.full_path)
        ]
