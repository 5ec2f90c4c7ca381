"""Repository commits."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_providers.client import encode_path
from git_providers.errors import NotFoundError, ValidationError
from git_providers.mapper import GitLabObject, GitLabObjectKind, commit_to_info
from git_providers.models import CommitInfo, File, RepositoryRef

if TYPE_CHECKING:
    from git_providers.client import GitLabClient


class Commit:
    def __init__(self, api_object: GitLabObject):
        self._api_object = api_object

    def get(self) -> CommitInfo:
        return commit_to_info(self._api_object)

    def api_object(self) -> GitLabObject:
        return self._api_object


class CommitClient:
    """Commit history of one repository, and committing files to a branch."""

    def __init__(self, client: GitLabClient, ref: RepositoryRef):
        self.client = client
        self.ref = ref

    @property
    def _project_endpoint(self) -> str:
        return f"/projects/{encode_path(self.ref.full_path)}"

    def list_page(self, branch: str, per_page: int = 20, page: int = 0) -> list[Commit]:
        """One page of ``branch`` history, newest first. ``page=0`` is the first page."""
        params: dict = {"ref_name": branch, "per_page": per_page}
        if page > 0:
            params["page"] = page
        commits = self.client.get(f"{self._project_endpoint}/repository/commits", params=params)
        return [Commit(GitLabObject(GitLabObjectKind.COMMIT, c)) for c in commits]

    def _file_exists(self, branch: str, path: str) -> bool:
        try:
            self.client.head(
                f"{self._project_endpoint}/repository/files/{encode_path(path)}",
                params={"ref": branch},
            )
        except NotFoundError:
            return False
        return True

    def _action_for(self, branch: str, file: File) -> dict:
        if not file.path:
            raise ValidationError("Every committed file needs a path")
        if file.content is None:
            return {"action": "delete", "file_path": file.path}
        action = "update" if self._file_exists(branch, file.path) else "create"
        return {"action": action, "file_path": file.path, "content": file.content}

    def create(self, branch: str, message: str, files: list[File]) -> Commit:
        """Commit ``files`` to ``branch`` in a single commit.

        Files with ``content=None`` are deleted; others are created or
        updated depending on whether they exist on the branch.
        """
        if not files:
            raise ValidationError("A commit needs at least one file")
        if not message:
            raise ValidationError("A commit needs a message")

        actions = [self._action_for(branch, f) for f in files]
        data = self.client.post(
            f"{self._project_endpoint}/repository/commits",
            data={"branch": branch, "commit_message": message, "actions": actions},
        )
        self.client.logger.info(
            f"[commit] {self.ref.full_path}@{branch}: create -> created ({data.get('id', '')[:12]}, {len(actions)} files)"
        )
        return Commit(GitLabObject(GitLabObjectKind.COMMIT, data))
