"""Pull requests (GitLab merge requests)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_providers.client import encode_path
from git_providers.errors import ValidationError
from git_providers.mapper import GitLabObject, GitLabObjectKind, merge_request_to_info
from git_providers.models import MergeMethod, PullRequestInfo, RepositoryRef

if TYPE_CHECKING:
    from git_providers.client import GitLabClient


class PullRequest:
    def __init__(self, api_object: GitLabObject):
        self._api_object = api_object

    def get(self) -> PullRequestInfo:
        return merge_request_to_info(self._api_object)

    def api_object(self) -> GitLabObject:
        return self._api_object


class PullRequestClient:
    """Merge requests of one repository."""

    def __init__(self, client: GitLabClient, ref: RepositoryRef):
        self.client = client
        self.ref = ref

    @property
    def _endpoint(self) -> str:
        return f"/projects/{encode_path(self.ref.full_path)}/merge_requests"

    def get(self, number: int) -> PullRequest:
        data = self.client.get(f"{self._endpoint}/{number}")
        return PullRequest(GitLabObject(GitLabObjectKind.MERGE_REQUEST, data))

    def list(self) -> list[PullRequest]:
        return [
            PullRequest(GitLabObject(GitLabObjectKind.MERGE_REQUEST, mr)) for mr in self.client.paginate(self._endpoint)
        ]

    def create(self, title: str, branch: str, base_branch: str, description: str = "") -> PullRequest:
        """Open a merge request from ``branch`` into ``base_branch``."""
        if not title:
            raise ValidationError("A pull request needs a title")
        if branch == base_branch:
            raise ValidationError(f"Source and target branch are both {branch!r}")
        data = self.client.post(
            self._endpoint,
            data={
                "title": title,
                "source_branch": branch,
                "target_branch": base_branch,
                "description": description,
            },
        )
        self.client.logger.info(
            f"[pull-request] {self.ref.full_path}!{data.get('iid')}: create -> created ({branch} -> {base_branch})"
        )
        return PullRequest(GitLabObject(GitLabObjectKind.MERGE_REQUEST, data))

    def merge(
        self, number: int, merge_method: MergeMethod = MergeMethod.MERGE, message: str | None = None
    ) -> PullRequest:
        body: dict = {"squash": MergeMethod(merge_method) == MergeMethod.SQUASH}
        if message:
            key = "squash_commit_message" if body["squash"] else "merge_commit_message"
            body[key] = message
        data = self.client.put(f"{self._endpoint}/{number}/merge", data=body)
        return PullRequest(GitLabObject(GitLabObjectKind.MERGE_REQUEST, data))
