"""Base class for reconcilable resources."""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

from git_providers.errors import DestructiveCallDisallowedError, NotFoundError
from git_providers.models import LOGGER_NAME, ActionResult

if TYPE_CHECKING:
    from git_providers.client import GitLabClient
    from git_providers.mapper import GitLabObject

InfoT = TypeVar("InfoT")


class Resource(ABC, Generic[InfoT]):
    """Handle on one provider object.

    The handle holds a staged desired state (``get``/``set``, no I/O) and the
    last wire object seen from the server (``api_object``). ``reconcile``
    fetches the current state and applies the single corrective call needed:

    * absent            -> create, returns True
    * present, matching -> nothing, returns False
    * present, diverged -> update, returns True
    """

    target_type: str = ""

    def __init__(self, client: GitLabClient, info: InfoT, api_object: GitLabObject | None = None):
        self.client = client
        self.logger = logging.getLogger(LOGGER_NAME)
        self._api_object = api_object
        self._info = self._copy(info)

    # -- Staged state --

    def get(self) -> InfoT:
        """A copy of the staged desired state."""
        return self._copy(self._info)

    def set(self, info: InfoT) -> None:
        self._validate(info)
        self._info = self._copy(info)

    def api_object(self) -> GitLabObject | None:
        return self._api_object

    # -- I/O --

    def reconcile(self) -> bool:
        """Bring the server in line with the staged state. Returns whether anything changed."""
        self._validate(self._info)
        try:
            actual = self._fetch()
        except NotFoundError:
            self._refresh(self._create())
            self._record("reconcile", "created")
            return True

        if self._matches(actual):
            self._refresh(actual)
            self._record("reconcile", "already_set")
            return False

        detail = self._describe_changes(actual)
        self._refresh(self._update(actual))
        self._record("reconcile", "updated", detail)
        return True

    def _create_staged(self) -> None:
        """Create the staged state without looking first; the server rejects duplicates."""
        self._validate(self._info)
        self._refresh(self._create())
        self._record("create", "created")

    def delete(self) -> None:
        if not self.client.destructive_actions:
            raise DestructiveCallDisallowedError(
                f"Refusing to delete {self.target_type} {self.path}: destructive actions are disabled"
            )
        self._delete()
        self._record("delete", "deleted")

    # -- Hooks --

    @property
    @abstractmethod
    def path(self) -> str:
        """Human-readable identity used in logs."""
        ...

    @abstractmethod
    def _fetch(self) -> GitLabObject:
        """Get the current wire object; raise NotFoundError if absent."""
        ...

    @abstractmethod
    def _create(self) -> GitLabObject: ...

    @abstractmethod
    def _update(self, actual: GitLabObject) -> GitLabObject: ...

    @abstractmethod
    def _delete(self) -> None: ...

    @abstractmethod
    def _matches(self, actual: GitLabObject) -> bool: ...

    @abstractmethod
    def _to_info(self, api_object: GitLabObject) -> InfoT: ...

    def _validate(self, info: InfoT) -> None:
        """Override to reject invalid desired state before any I/O."""

    def _describe_changes(self, actual: GitLabObject) -> str:
        return ""

    @staticmethod
    def _copy(info: InfoT) -> InfoT:
        return dataclasses.replace(info)

    def _refresh(self, api_object: GitLabObject) -> None:
        self._api_object = api_object
        self._info = self._to_info(api_object)

    def _record(self, operation: str, action: str, detail: str = "") -> ActionResult:
        result = ActionResult(
            target_type=self.target_type,
            target_path=self.path,
            operation=operation,
            action=action,
            detail=detail,
        )
        self.logger.info(
            f"[{result.target_type}] {result.target_path}: {operation} -> {action}"
            f"{' (' + detail + ')' if detail else ''}",
            extra={"action_result": result},
        )
        return result
