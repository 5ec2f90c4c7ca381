"""Typed error taxonomy and GitLab response classification."""

from __future__ import annotations

import errno
from collections.abc import Iterator
from typing import Any

import requests

# Conflict messages GitLab returns while a previous mutation is still settling
TRANSIENT_CONFLICT_MARKERS = ("The project is still being deleted",)
CONNECTION_RESET_MARKER = "connection reset by peer"
ALREADY_TAKEN_MARKER = "has already been taken"
ALREADY_SHARED_MARKER = "already been shared"


class GitProviderError(Exception):
    """Base class for every error raised by git-providers."""


class ConfigurationError(GitProviderError):
    """The client could not be configured (e.g. missing token)."""


class DestructiveCallDisallowedError(GitProviderError):
    """A delete was attempted on a client without destructive actions enabled."""


class ProviderHTTPError(GitProviderError, requests.HTTPError):
    """An error response from the provider, or a request rejected before sending."""

    @property
    def status_code(self) -> int | None:
        return self.response.status_code if self.response is not None else None


class NotFoundError(ProviderHTTPError):
    pass


class AlreadyExistsError(ProviderHTTPError):
    pass


class ValidationError(ProviderHTTPError):
    pass


class InvalidRefError(ValidationError):
    """A reference does not belong to the client's domain or is incomplete."""


class PermissionDeniedError(ProviderHTTPError):
    pass


class UnclassifiedError(ProviderHTTPError):
    pass


class TransientNetworkError(GitProviderError, requests.exceptions.ConnectionError):
    """A transient condition that did not clear within the retry budget."""


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def error_payload(response: requests.Response) -> Any:
    """Return the decoded ``message``/``error`` payload of an error response, or its text."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        for key in ("message", "error", "error_description"):
            if key in body:
                return body[key]
    return body


def _iter_messages(payload: Any) -> Iterator[str]:
    if isinstance(payload, str):
        yield payload
    elif isinstance(payload, dict):
        for value in payload.values():
            yield from _iter_messages(value)
    elif isinstance(payload, list):
        for value in payload:
            yield from _iter_messages(value)
    elif payload is not None:
        yield str(payload)


def is_transient_conflict(response: requests.Response) -> bool:
    """True if an error response says the resource is still settling."""
    if response.status_code < 400:
        return False
    messages = list(_iter_messages(error_payload(response)))
    if any(marker in m for m in messages for marker in TRANSIENT_CONFLICT_MARKERS):
        return True
    # Last resort: raw body scan for bodies that are not GitLab's JSON shape
    return any(marker in response.text for marker in TRANSIENT_CONFLICT_MARKERS)


def _walk_exception(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    stack = [exc]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.extend(a for a in getattr(current, "args", ()) if isinstance(a, BaseException))
        for attr in ("reason", "__cause__", "__context__"):
            nested = getattr(current, attr, None)
            if isinstance(nested, BaseException):
                stack.append(nested)


def is_connection_reset(exc: BaseException) -> bool:
    """True if ``exc`` (or anything it wraps) is a connection reset by the peer."""
    for e in _walk_exception(exc):
        if isinstance(e, ConnectionResetError):
            return True
        if isinstance(e, OSError) and e.errno == errno.ECONNRESET:
            return True
    return CONNECTION_RESET_MARKER in str(exc).lower()


def _is_already_taken(payload: Any) -> bool:
    # GitLab field errors: {"message": {"name": ["has already been taken"], ...}}
    return any(ALREADY_TAKEN_MARKER in m or ALREADY_SHARED_MARKER in m for m in _iter_messages(payload))


def classify_response(response: requests.Response) -> GitProviderError:
    """Map an error response onto the typed taxonomy."""
    payload = error_payload(response)
    message = f"{response.status_code} {response.reason or ''}: {payload}".strip()

    if is_transient_conflict(response):
        return TransientNetworkError(message, response=response)

    status = response.status_code
    if status == 404:
        return NotFoundError(message, response=response)
    if status in (401, 403):
        return PermissionDeniedError(message, response=response)
    if status == 409:
        return AlreadyExistsError(message, response=response)
    if status in (400, 422):
        if _is_already_taken(payload):
            return AlreadyExistsError(message, response=response)
        return ValidationError(message, response=response)
    return UnclassifiedError(message, response=response)
