"""Repository branches."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_providers.client import encode_path
from git_providers.errors import NotFoundError, ValidationError
from git_providers.mapper import GitLabObject, GitLabObjectKind, branch_to_info
from git_providers.models import BranchInfo, RepositoryRef

if TYPE_CHECKING:
    from git_providers.client import GitLabClient


class Branch:
    def __init__(self, api_object: GitLabObject):
        self._api_object = api_object

    def get(self) -> BranchInfo:
        return branch_to_info(self._api_object)

    def api_object(self) -> GitLabObject:
        return self._api_object


class BranchClient:
    """Branches of one repository."""

    def __init__(self, client: GitLabClient, ref: RepositoryRef):
        self.client = client
        self.ref = ref

    @property
    def _endpoint(self) -> str:
        return f"/projects/{encode_path(self.ref.full_path)}/repository/branches"

    def get(self, name: str) -> Branch:
        data = self.client.get(f"{self._endpoint}/{encode_path(name)}")
        return Branch(GitLabObject(GitLabObjectKind.BRANCH, data))

    def list(self) -> list[Branch]:
        return [Branch(GitLabObject(GitLabObjectKind.BRANCH, b)) for b in self.client.paginate(self._endpoint)]

    def create(self, name: str, from_sha: str) -> Branch:
        """Create ``name`` pointing at ``from_sha``.

        The commit is resolved first, so an unknown SHA fails with
        ValidationError before anything is created.
        """
        if not name:
            raise ValidationError("Branch name must not be empty")
        if not from_sha:
            raise ValidationError(f"Branch {name!r} needs a commit SHA to start from")

        try:
            self.client.get(f"/projects/{encode_path(self.ref.full_path)}/repository/commits/{encode_path(from_sha)}")
        except NotFoundError as e:
            raise ValidationError(
                f"Cannot create branch {name!r}: commit {from_sha!r} does not exist in {self.ref.full_path}",
                response=e.response,
            ) from e

        data = self.client.post(self._endpoint, data={"branch": name, "ref": from_sha})
        self.client.logger.info(f"[branch] {self.ref.full_path}:{name}: create -> created (from {from_sha})")
        return Branch(GitLabObject(GitLabObjectKind.BRANCH, data))
