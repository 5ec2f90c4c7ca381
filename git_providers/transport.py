"""HTTP transport with transient-failure retry, and the cache-hit counter."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

import requests
from requests.adapters import HTTPAdapter

from git_providers.errors import TransientNetworkError, is_connection_reset, is_transient_conflict
from git_providers.models import DEFAULT_MAX_ATTEMPTS, FROM_CACHE_HEADER, LOGGER_NAME, RETRY_BACKOFF


def _buffer_request_body(request: requests.PreparedRequest) -> None:
    """Replace a streaming request body with bytes so it can be resent."""
    body = request.body
    if body is None or isinstance(body, (bytes, str)):
        return
    if hasattr(body, "read"):
        data = body.read()
    else:
        data = b"".join(body)
    if isinstance(data, str):
        data = data.encode("utf-8")
    request.body = data
    request.headers.pop("Transfer-Encoding", None)
    request.headers["Content-Length"] = str(len(data))


class RetryTransport(HTTPAdapter):
    """HTTP adapter that retries connection resets and transient conflicts with a fixed backoff.

    Every response body is read into memory before inspection, so callers can
    still read it afterwards. Anything that is not transient is returned (or
    raised) on the first attempt.
    """

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS, backoff: float = RETRY_BACKOFF, **kwargs):
        super().__init__(**kwargs)
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff
        self.logger = logging.getLogger(LOGGER_NAME)

    def send(self, request: requests.PreparedRequest, **kwargs) -> requests.Response:
        _buffer_request_body(request)

        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = super().send(request, **kwargs)
            except requests.exceptions.ConnectionError as e:
                if not is_connection_reset(e):
                    raise
                if attempt >= self.max_attempts:
                    raise TransientNetworkError(
                        f"Connection reset after {attempt} attempts: {e}", request=request
                    ) from e
                self.logger.warning(
                    f"Connection reset on {request.method} {request.url}, "
                    f"retrying in {self.backoff:.1f}s (attempt {attempt}/{self.max_attempts})"
                )
                time.sleep(self.backoff)
                continue

            _ = resp.content  # buffered; callers re-read it
            if is_transient_conflict(resp) and attempt < self.max_attempts:
                self.logger.warning(
                    f"Transient conflict {resp.status_code} on {request.method} {request.url}, "
                    f"retrying in {self.backoff:.1f}s (attempt {attempt}/{self.max_attempts})"
                )
                time.sleep(self.backoff)
                continue
            return resp

        # Should not reach here, but safety net
        raise RuntimeError("Unexpected retry loop exit")


class CacheHitCounter:
    """Counts responses carrying the ``X-From-Cache`` header while enabled.

    Installed as a session response hook; safe for concurrent requests.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._enabled = False
        self._hits = 0

    def __call__(self, response: requests.Response, *args, **kwargs) -> requests.Response:
        with self._lock:
            if self._enabled and FROM_CACHE_HEADER in response.headers:
                self._hits += 1
        return response

    def set_enabled(self, state: bool) -> None:
        with self._lock:
            self._enabled = state

    def reset(self) -> None:
        with self._lock:
            self._hits = 0

    @property
    def hits(self) -> int:
        with self._lock:
            return self._hits

    def count_for(self, fn: Callable[[], object]) -> int:
        """Run ``fn`` and return how many cache hits it caused."""
        self.set_enabled(True)
        self.reset()
        try:
            fn()
        finally:
            self.set_enabled(False)
        return self.hits
