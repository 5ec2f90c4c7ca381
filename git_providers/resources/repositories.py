"""Repositories (GitLab projects) owned by a group or a user."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_providers.client import encode_path
from git_providers.errors import InvalidRefError, ValidationError
from git_providers.mapper import (
    GitLabObject,
    GitLabObjectKind,
    ProjectSpec,
    project_changes,
    project_create_body,
    project_to_info,
)
from git_providers.models import (
    OrganizationRef,
    RepositoryCreateOptions,
    RepositoryInfo,
    RepositoryRef,
    RepositoryVisibility,
    UserRef,
)
from git_providers.resources.base import Resource
from git_providers.resources.branches import BranchClient
from git_providers.resources.commits import CommitClient
from git_providers.resources.deploy_keys import DeployKeyClient
from git_providers.resources.files import FileClient
from git_providers.resources.pull_requests import PullRequestClient
from git_providers.resources.team_access import TeamAccessClient

if TYPE_CHECKING:
    from git_providers.client import GitLabClient


class Repository(Resource[RepositoryInfo]):
    """A GitLab project, reconciled on description, default branch and visibility."""

    target_type = "repository"

    def __init__(
        self,
        client: GitLabClient,
        ref: RepositoryRef,
        info: RepositoryInfo | None = None,
        api_object: GitLabObject | None = None,
        create_options: RepositoryCreateOptions | None = None,
    ):
        if info is None:
            info = project_to_info(api_object) if api_object is not None else RepositoryInfo()
        super().__init__(client, info, api_object)
        self._ref = ref
        self._create_options = create_options

    def repository(self) -> RepositoryRef:
        return self._ref

    @property
    def path(self) -> str:
        return self._ref.full_path

    @property
    def endpoint(self) -> str:
        return f"/projects/{encode_path(self._ref.full_path)}"

    # -- Per-repository sub-clients --

    def team_access(self) -> TeamAccessClient:
        return TeamAccessClient(self.client, self._ref)

    def deploy_keys(self) -> DeployKeyClient:
        return DeployKeyClient(self.client, self._ref)

    def branches(self) -> BranchClient:
        return BranchClient(self.client, self._ref)

    def commits(self) -> CommitClient:
        return CommitClient(self.client, self._ref)

    def pull_requests(self) -> PullRequestClient:
        return PullRequestClient(self.client, self._ref)

    def files(self) -> FileClient:
        return FileClient(self.client, self._ref)

    # -- Resource hooks --

    def _validate(self, info: RepositoryInfo) -> None:
        if info.visibility is not None:
            try:
                RepositoryVisibility(info.visibility)
            except ValueError:
                raise ValidationError(f"Invalid repository visibility: {info.visibility!r}") from None

    def _fetch(self) -> GitLabObject:
        return GitLabObject(GitLabObjectKind.PROJECT, self.client.get_project(self._ref.full_path))

    def _create(self) -> GitLabObject:
        body = project_create_body(self._ref.name, self._info)
        owner = self._ref.owner
        if isinstance(owner, OrganizationRef):
            body["namespace_id"] = self.client.get_group(owner.full_path)["id"]
        else:
            # Without namespace_id GitLab creates the project for the token's user
            login = self.client.current_user().get("username")
            if login != owner.user_login:
                raise ValidationError(
                    f"Cannot create {self.path}: the token belongs to {login!r}, not {owner.user_login!r}"
                )

        options = self._create_options
        if options is not None:
            if options.auto_init:
                body["initialize_with_readme"] = True
            if options.license_template is not None:
                self.logger.info(f"GitLab has no license templates; ignoring {options.license_template} for {self.path}")

        return GitLabObject(GitLabObjectKind.PROJECT, self.client.post("/projects", data=body))

    def _update(self, actual: GitLabObject) -> GitLabObject:
        changes = project_changes(actual, self._info)
        data = self.client.put(f"/projects/{actual['id']}", data=changes)
        return GitLabObject(GitLabObjectKind.PROJECT, data)

    def _delete(self) -> None:
        self.client.delete(self.endpoint)

    def _matches(self, actual: GitLabObject) -> bool:
        current = ProjectSpec.from_api(actual)
        return current.equals(current.with_info(self._info))

    def _to_info(self, api_object: GitLabObject) -> RepositoryInfo:
        return project_to_info(api_object)

    def _describe_changes(self, actual: GitLabObject) -> str:
        changes = project_changes(actual, self._info)
        return ", ".join(f"{key}: {actual.get(key)!r} -> {value!r}" for key, value in changes.items())


class RepositoriesClient:
    """Get, list, create and reconcile repositories under one kind of owner."""

    owner_type: type = OrganizationRef

    def __init__(self, client: GitLabClient):
        self.client = client

    def _validate_ref(self, ref: RepositoryRef) -> None:
        if not isinstance(ref.owner, self.owner_type):
            raise InvalidRefError(f"Expected a repository owned by a {self.owner_type.__name__}, got {ref.owner!r}")
        if not ref.name or not ref.owner.identity:
            raise InvalidRefError(f"Incomplete repository reference: {ref!r}")
        self.client.check_domain(ref.domain)

    def _list_projects(self, owner: OrganizationRef | UserRef) -> list[dict]:
        return self.client.get_group_projects(owner.full_path)

    def get(self, ref: RepositoryRef) -> Repository:
        self._validate_ref(ref)
        project = GitLabObject(GitLabObjectKind.PROJECT, self.client.get_project(ref.full_path))
        return Repository(self.client, ref, api_object=project)

    def list(self, owner: OrganizationRef | UserRef) -> list[Repository]:
        self.client.check_domain(owner.domain)
        repositories = []
        for project in self._list_projects(owner):
            ref = RepositoryRef(owner=owner, name=project["path"])
            repositories.append(Repository(self.client, ref, api_object=GitLabObject(GitLabObjectKind.PROJECT, project)))
        return repositories

    def create(
        self, ref: RepositoryRef, info: RepositoryInfo, options: RepositoryCreateOptions | None = None
    ) -> Repository:
        """Create a repository; raises AlreadyExistsError if the name is taken."""
        self._validate_ref(ref)
        repository = Repository(self.client, ref, info=info, create_options=options)
        repository._create_staged()
        return repository

    def reconcile(
        self, ref: RepositoryRef, info: RepositoryInfo, options: RepositoryCreateOptions | None = None
    ) -> tuple[Repository, bool]:
        self._validate_ref(ref)
        repository = Repository(self.client, ref, info=info, create_options=options)
        action_taken = repository.reconcile()
        return repository, action_taken


class OrgRepositoriesClient(RepositoriesClient):
    owner_type = OrganizationRef


class UserRepositoriesClient(RepositoriesClient):
    owner_type = UserRef

    def _list_projects(self, owner: OrganizationRef | UserRef) -> list[dict]:
        return self.client.get_user_projects(owner.full_path)
