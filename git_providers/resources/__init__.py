"""Per-kind resource clients and handles."""

from git_providers.resources.base import Resource
from git_providers.resources.branches import Branch, BranchClient
from git_providers.resources.commits import Commit, CommitClient
from git_providers.resources.deploy_keys import DeployKey, DeployKeyClient
from git_providers.resources.files import FileClient
from git_providers.resources.organizations import Organization, OrganizationsClient, TeamsClient
from git_providers.resources.pull_requests import PullRequest, PullRequestClient
from git_providers.resources.repositories import (
    OrgRepositoriesClient,
    RepositoriesClient,
    Repository,
    UserRepositoriesClient,
)
from git_providers.resources.team_access import TeamAccess, TeamAccessClient

__all__ = [
    "Resource",
    "Branch",
    "BranchClient",
    "Commit",
    "CommitClient",
    "DeployKey",
    "DeployKeyClient",
    "FileClient",
    "Organization",
    "OrganizationsClient",
    "TeamsClient",
    "PullRequest",
    "PullRequestClient",
    "Repository",
    "RepositoriesClient",
    "OrgRepositoriesClient",
    "UserRepositoriesClient",
    "TeamAccess",
    "TeamAccessClient",
]
