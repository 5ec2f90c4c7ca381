"""Repository deploy keys."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_providers.client import encode_path
from git_providers.errors import AlreadyExistsError, NotFoundError, ValidationError
from git_providers.mapper import (
    DeployKeySpec,
    GitLabObject,
    GitLabObjectKind,
    canonical_key,
    deploy_key_create_body,
    deploy_key_to_info,
)
from git_providers.models import DeployKeyInfo, RepositoryRef
from git_providers.resources.base import Resource

if TYPE_CHECKING:
    from git_providers.client import GitLabClient


def _list_deploy_keys(client: GitLabClient, ref: RepositoryRef) -> list[GitLabObject]:
    keys = client.paginate(f"/projects/{encode_path(ref.full_path)}/deploy_keys")
    return [GitLabObject(GitLabObjectKind.DEPLOY_KEY, key) for key in keys]


def _find_deploy_key(client: GitLabClient, ref: RepositoryRef, name: str) -> GitLabObject:
    for key in _list_deploy_keys(client, ref):
        if key["title"] == name:
            return key
    raise NotFoundError(f"Deploy key {name!r} not found in {ref.full_path}")


class DeployKey(Resource[DeployKeyInfo]):
    """A deploy key identified by its name (GitLab ``title``)."""

    target_type = "deploy-key"

    def __init__(
        self,
        client: GitLabClient,
        ref: RepositoryRef,
        info: DeployKeyInfo,
        api_object: GitLabObject | None = None,
    ):
        super().__init__(client, info, api_object)
        self._ref = ref

    def repository(self) -> RepositoryRef:
        return self._ref

    @property
    def path(self) -> str:
        return f"{self._ref.full_path}:{self._info.name}"

    @property
    def _endpoint(self) -> str:
        return f"/projects/{encode_path(self._ref.full_path)}/deploy_keys"

    def _validate(self, info: DeployKeyInfo) -> None:
        if not info.name:
            raise ValidationError("Deploy key requires a name")
        if not info.key or not canonical_key(info.key):
            raise ValidationError(f"Deploy key {info.name!r} requires key content")

    def _fetch(self) -> GitLabObject:
        # Renames are tracked through the id of the key this handle was loaded from
        if self._api_object is not None:
            for key in _list_deploy_keys(self.client, self._ref):
                if key["id"] == self._api_object["id"]:
                    return key
        return _find_deploy_key(self.client, self._ref, self._info.name)

    def _create(self) -> GitLabObject:
        data = self.client.post(self._endpoint, data=deploy_key_create_body(self._info))
        return GitLabObject(GitLabObjectKind.DEPLOY_KEY, data)

    def _update(self, actual: GitLabObject) -> GitLabObject:
        current = DeployKeySpec.from_api(actual)
        desired = current.with_info(self._info)
        if desired.key != current.key:
            # Key material is immutable in GitLab; replace the key
            self.client.delete(f"{self._endpoint}/{actual['id']}")
            return self._create()
        data = self.client.put(
            f"{self._endpoint}/{actual['id']}",
            data={"title": desired.title, "can_push": desired.can_push},
        )
        return GitLabObject(GitLabObjectKind.DEPLOY_KEY, data)

    def _delete(self) -> None:
        actual = self._fetch()
        self.client.delete(f"{self._endpoint}/{actual['id']}")

    def _matches(self, actual: GitLabObject) -> bool:
        current = DeployKeySpec.from_api(actual)
        return current.equals(current.with_info(self._info))

    def _to_info(self, api_object: GitLabObject) -> DeployKeyInfo:
        return deploy_key_to_info(api_object)

    def _describe_changes(self, actual: GitLabObject) -> str:
        current = DeployKeySpec.from_api(actual)
        desired = current.with_info(self._info)
        changed = [name for name in ("title", "key", "can_push") if getattr(current, name) != getattr(desired, name)]
        return f"changed: {changed}"


class DeployKeyClient:
    """Deploy keys of one repository."""

    def __init__(self, client: GitLabClient, ref: RepositoryRef):
        self.client = client
        self.ref = ref

    def get(self, name: str) -> DeployKey:
        key = _find_deploy_key(self.client, self.ref, name)
        return DeployKey(self.client, self.ref, deploy_key_to_info(key), api_object=key)

    def list(self) -> list[DeployKey]:
        return [
            DeployKey(self.client, self.ref, deploy_key_to_info(key), api_object=key)
            for key in _list_deploy_keys(self.client, self.ref)
        ]

    def create(self, info: DeployKeyInfo) -> DeployKey:
        """Add a deploy key; names are unique within a repository."""
        try:
            _find_deploy_key(self.client, self.ref, info.name)
        except NotFoundError:
            deploy_key = DeployKey(self.client, self.ref, info)
            deploy_key._create_staged()
            return deploy_key
        raise AlreadyExistsError(f"Deploy key {info.name!r} already exists in {self.ref.full_path}")

    def reconcile(self, info: DeployKeyInfo) -> tuple[DeployKey, bool]:
        deploy_key = DeployKey(self.client, self.ref, info)
        action_taken = deploy_key.reconcile()
        return deploy_key, action_taken
