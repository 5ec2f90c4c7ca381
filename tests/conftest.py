"""Shared test fixtures for git-providers tests."""

import sys
from pathlib import Path
from typing import Any

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from git_providers import Client, ClientOptions, OrganizationRef, RepositoryRef, UserRef

# Constants for use in tests - pytest makes conftest.py fixtures available,
# but these constants need to be imported directly from tests
MOCK_DOMAIN = "gitlab.example.com"
MOCK_GITLAB_URL = f"https://{MOCK_DOMAIN}"
MOCK_API_URL = f"{MOCK_GITLAB_URL}/api/v4"


@pytest.fixture
def client():
    """Root Client pointing at mock server, deletes allowed."""
    return Client("test-token", ClientOptions(domain=MOCK_DOMAIN, destructive_actions=True))


@pytest.fixture
def org_ref() -> OrganizationRef:
    return OrganizationRef(domain=MOCK_DOMAIN, organization="acme")


@pytest.fixture
def org_repo_ref(org_ref) -> RepositoryRef:
    return RepositoryRef(owner=org_ref, name="demo")


@pytest.fixture
def user_repo_ref() -> RepositoryRef:
    return RepositoryRef(owner=UserRef(domain=MOCK_DOMAIN, user_login="bot"), name="demo")


@pytest.fixture
def sample_group() -> dict[str, Any]:
    """Sample group API response."""
    return {
        "id": 456,
        "name": "Acme",
        "path": "acme",
        "full_path": "acme",
        "description": "Acme Corp",
        "web_url": f"{MOCK_GITLAB_URL}/groups/acme",
    }


@pytest.fixture
def sample_project() -> dict[str, Any]:
    """Sample project API response (as returned by GET or POST /projects)."""
    return {
        "id": 123,
        "name": "demo",
        "path": "demo",
        "path_with_namespace": "acme/demo",
        "description": "Foo",
        "default_branch": "main",
        "visibility": "private",
        "created_at": "2024-01-01T00:00:00Z",
        "last_activity_at": "2024-01-02T00:00:00Z",
        "web_url": f"{MOCK_GITLAB_URL}/acme/demo",
        "shared_with_groups": [],
    }


@pytest.fixture
def shared_group() -> dict[str, Any]:
    """Entry of a project's shared_with_groups list."""
    return {
        "group_id": 789,
        "group_name": "platform",
        "group_full_path": "acme/platform",
        "group_access_level": 30,
        "expires_at": None,
    }


@pytest.fixture
def sample_deploy_key() -> dict[str, Any]:
    return {
        "id": 42,
        "title": "ci-key",
        "key": "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIKey ci@example.com",
        "can_push": False,
        "created_at": "2024-01-01T00:00:00Z",
    }
