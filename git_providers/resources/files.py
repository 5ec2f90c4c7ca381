"""Reading repository files."""

from __future__ import annotations

import base64
import posixpath
from typing import TYPE_CHECKING

from git_providers.client import encode_path
from git_providers.models import File, RepositoryRef

if TYPE_CHECKING:
    from git_providers.client import GitLabClient


class FileClient:
    """Files of one repository."""

    def __init__(self, client: GitLabClient, ref: RepositoryRef):
        self.client = client
        self.ref = ref

    @property
    def _project_endpoint(self) -> str:
        return f"/projects/{encode_path(self.ref.full_path)}"

    def _read(self, path: str, branch: str) -> str:
        data = self.client.get(
            f"{self._project_endpoint}/repository/files/{encode_path(path)}",
            params={"ref": branch},
        )
        content = data.get("content") or ""
        if data.get("encoding", "base64") == "base64":
            # Binary blobs keep their bytes: content.encode("utf-8", "surrogateescape") restores them
            return base64.b64decode(content).decode("utf-8", errors="surrogateescape")
        return content

    def get(self, path: str, branch: str) -> list[File]:
        """The files directly under directory ``path`` at ``branch``, in tree listing order.

        Sub-directories are skipped. Non-UTF-8 content is decoded with
        ``surrogateescape``. Raises NotFoundError if the directory
        or branch does not exist.
        """
        tree = self.client.paginate(
            f"{self._project_endpoint}/repository/tree",
            params={"path": path.strip("/"), "ref": branch},
        )
        files = []
        for entry in tree:
            if entry.get("type") != "blob":
                continue
            file_path = entry["path"]
            files.append(
                File(
                    path=file_path,
                    name=entry.get("name") or posixpath.basename(file_path),
                    content=self._read(file_path, branch),
                )
            )
        return files
