"""Conditional-request cache layered over the retrying transport."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict

from git_providers.models import FROM_CACHE_HEADER, LOGGER_NAME

UNSAFE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


@dataclass(frozen=True)
class CachedResponse:
    url: str
    status_code: int
    reason: str
    headers: dict[str, str]
    content: bytes
    encoding: str | None
    etag: str | None
    last_modified: str | None


class CacheStore:
    """Thread-safe in-memory store of validatable GET responses."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, CachedResponse] = {}

    def get(self, key: str) -> CachedResponse | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: CachedResponse) -> None:
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def cache_key(request: requests.PreparedRequest) -> str:
    return f"GET {request.url}"


class ConditionalCacheAdapter(HTTPAdapter):
    """Adapter that revalidates cached GET responses with ``If-None-Match``/``If-Modified-Since``.

    A ``304 Not Modified`` from the server is answered with the stored body and
    the ``X-From-Cache`` header. The server is asked on every request, so the
    content seen by callers is identical with or without the cache.
    """

    def __init__(self, transport: HTTPAdapter, store: CacheStore | None = None):
        super().__init__()
        self.transport = transport
        self.store = store if store is not None else CacheStore()
        self.logger = logging.getLogger(LOGGER_NAME)

    def send(self, request: requests.PreparedRequest, **kwargs) -> requests.Response:
        method = (request.method or "GET").upper()
        if method != "GET":
            resp = self.transport.send(request, **kwargs)
            if method in UNSAFE_METHODS and resp.ok:
                self.store.delete(cache_key(request))
            return resp

        key = cache_key(request)
        entry = self.store.get(key)
        if entry is not None:
            if entry.etag:
                request.headers["If-None-Match"] = entry.etag
            if entry.last_modified:
                request.headers["If-Modified-Since"] = entry.last_modified

        resp = self.transport.send(request, **kwargs)

        if resp.status_code == 304 and entry is not None:
            self.logger.debug(f"Cache hit: {request.url}")
            return self._build_cached_response(entry, request, resp)

        if resp.status_code == 200:
            etag = resp.headers.get("ETag")
            last_modified = resp.headers.get("Last-Modified")
            if etag or last_modified:
                self.store.set(
                    key,
                    CachedResponse(
                        url=resp.url,
                        status_code=resp.status_code,
                        reason=resp.reason,
                        headers=dict(resp.headers),
                        content=resp.content,
                        encoding=resp.encoding,
                        etag=etag,
                        last_modified=last_modified,
                    ),
                )
                return resp
        self.store.delete(key)
        return resp

    @staticmethod
    def _build_cached_response(
        entry: CachedResponse, request: requests.PreparedRequest, not_modified: requests.Response
    ) -> requests.Response:
        response = requests.Response()
        response.status_code = entry.status_code
        response.reason = entry.reason
        response.headers = CaseInsensitiveDict(entry.headers)
        response.headers[FROM_CACHE_HEADER] = "1"
        response._content = entry.content
        response._content_consumed = True
        response.encoding = entry.encoding
        response.url = entry.url
        response.request = request
        response.elapsed = not_modified.elapsed
        response.connection = getattr(not_modified, "connection", None)
        return response

    def close(self) -> None:
        self.transport.close()
        super().close()
