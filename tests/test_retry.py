"""Tests for transient-failure retry in the transport."""

import io
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import requests
import responses

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Constants
MOCK_DOMAIN = "gitlab.example.com"
MOCK_API_URL = f"https://{MOCK_DOMAIN}/api/v4"

from git_providers import (
    DEFAULT_MAX_ATTEMPTS,
    RETRY_BACKOFF,
    GitLabClient,
    NotFoundError,
    TransientNetworkError,
    UnclassifiedError,
    ValidationError,
)
from git_providers.transport import _buffer_request_body

STILL_DELETING = {"message": {"base": ["The project is still being deleted. Please try again later."]}}


def connection_reset() -> requests.exceptions.ConnectionError:
    return requests.exceptions.ConnectionError(
        ConnectionResetError(104, "Connection reset by peer"),
    )


def failing_callback(failures: int, exc_factory=connection_reset):
    """Callback raising ``exc_factory()`` on the first ``failures`` calls, then succeeding."""
    call_count = [0]

    def request_callback(request):
        call_count[0] += 1
        if call_count[0] <= failures:
            raise exc_factory()
        return (200, {}, '{"id": 123}')

    return request_callback, call_count


class TestRetryOnConnectionReset:
    """Connection resets are retried with a fixed backoff."""

    @responses.activate
    def test_reset_then_success(self):
        """A single reset is retried and the successful response returned."""
        callback, call_count = failing_callback(1)
        responses.add_callback(responses.GET, f"{MOCK_API_URL}/projects/123", callback=callback)

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep") as mock_sleep:
            result = client.get("/projects/123")

        assert result["id"] == 123
        assert call_count[0] == 2
        mock_sleep.assert_called_once_with(RETRY_BACKOFF)

    @responses.activate
    def test_two_resets_then_success(self):
        """Failures on attempts 1 and 2 still succeed on attempt 3."""
        callback, call_count = failing_callback(2)
        responses.add_callback(responses.GET, f"{MOCK_API_URL}/projects/123", callback=callback)

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep") as mock_sleep:
            result = client.get("/projects/123")

        assert result["id"] == 123
        assert call_count[0] == 3
        assert mock_sleep.call_count == 2

    @responses.activate
    def test_reset_on_every_attempt_fails(self):
        """Resets on all attempts surface as TransientNetworkError."""
        callback, call_count = failing_callback(DEFAULT_MAX_ATTEMPTS)
        responses.add_callback(responses.GET, f"{MOCK_API_URL}/projects/123", callback=callback)

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep") as mock_sleep:
            with pytest.raises(TransientNetworkError) as exc_info:
                client.get("/projects/123")

        assert call_count[0] == DEFAULT_MAX_ATTEMPTS
        assert mock_sleep.call_count == DEFAULT_MAX_ATTEMPTS - 1
        # Still a requests ConnectionError for callers that catch those
        assert isinstance(exc_info.value, requests.exceptions.ConnectionError)

    @responses.activate
    def test_reset_detected_from_message(self):
        """A reset only visible in the error text is still classified as transient."""
        callback, call_count = failing_callback(
            1, lambda: requests.exceptions.ConnectionError("read tcp: connection reset by peer")
        )
        responses.add_callback(responses.GET, f"{MOCK_API_URL}/projects/123", callback=callback)

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep"):
            assert client.get("/projects/123")["id"] == 123
        assert call_count[0] == 2

    @responses.activate
    def test_other_connection_errors_not_retried(self):
        """Connection refused is not transient and propagates immediately."""
        callback, call_count = failing_callback(
            5, lambda: requests.exceptions.ConnectionError("Connection refused")
        )
        responses.add_callback(responses.GET, f"{MOCK_API_URL}/projects/123", callback=callback)

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep") as mock_sleep:
            with pytest.raises(requests.exceptions.ConnectionError) as exc_info:
                client.get("/projects/123")

        assert not isinstance(exc_info.value, TransientNetworkError)
        assert call_count[0] == 1
        mock_sleep.assert_not_called()


class TestRetryOnTransientConflict:
    """Responses saying the project is still being deleted are retried."""

    @responses.activate
    def test_conflict_then_success_resends_body(self):
        """The original request body is resent unchanged on retry."""
        responses.add(responses.POST, f"{MOCK_API_URL}/projects", status=400, json=STILL_DELETING)
        responses.add(responses.POST, f"{MOCK_API_URL}/projects", status=201, json={"id": 1, "name": "demo"})

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep") as mock_sleep:
            result = client.post("/projects", data={"name": "demo", "path": "demo"})

        assert result["name"] == "demo"
        assert len(responses.calls) == 2
        assert responses.calls[0].request.body == responses.calls[1].request.body
        assert b'"name": "demo"' in responses.calls[1].request.body
        mock_sleep.assert_called_once_with(RETRY_BACKOFF)

    @responses.activate
    def test_conflict_on_every_attempt_fails(self):
        """A conflict that outlasts the retry budget is raised as TransientNetworkError."""
        for _ in range(DEFAULT_MAX_ATTEMPTS):
            responses.add(responses.POST, f"{MOCK_API_URL}/projects", status=400, json=STILL_DELETING)

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep"):
            with pytest.raises(TransientNetworkError) as exc_info:
                client.post("/projects", data={"name": "demo"})

        assert len(responses.calls) == DEFAULT_MAX_ATTEMPTS
        assert exc_info.value.response.status_code == 400

    @responses.activate
    def test_conflict_marker_in_plain_text_body(self):
        """Non-JSON bodies fall back to a text scan."""
        responses.add(
            responses.POST,
            f"{MOCK_API_URL}/projects",
            status=400,
            body="The project is still being deleted",
            content_type="text/plain",
        )
        responses.add(responses.POST, f"{MOCK_API_URL}/projects", status=201, json={"id": 1})

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep"):
            assert client.post("/projects", data={"name": "demo"})["id"] == 1


class TestNoRetry:
    """Everything that is not transient is returned on the first attempt."""

    @responses.activate
    def test_400_not_retried(self):
        """400 Bad Request is not retried."""
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", status=400, json={"message": "bad"})

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with pytest.raises(ValidationError):
            client.get("/projects/123")

        assert len(responses.calls) == 1  # No retry

    @responses.activate
    def test_404_not_retried(self):
        """404 Not Found is not retried."""
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", status=404)

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with pytest.raises(NotFoundError):
            client.get("/projects/123")

        assert len(responses.calls) == 1  # No retry

    @responses.activate
    def test_503_not_retried(self):
        """Server errors are passed through to the caller."""
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", status=503)

        client = GitLabClient(MOCK_DOMAIN, "test-token")

        with patch("time.sleep") as mock_sleep:
            with pytest.raises(UnclassifiedError) as exc_info:
                client.get("/projects/123")

        assert exc_info.value.status_code == 503
        assert len(responses.calls) == 1
        mock_sleep.assert_not_called()


class TestCustomMaxAttempts:
    """Tests for custom max_attempts configuration."""

    @responses.activate
    def test_single_attempt_no_retry(self):
        """max_attempts=1 means no retries."""
        callback, call_count = failing_callback(1)
        responses.add_callback(responses.GET, f"{MOCK_API_URL}/projects/123", callback=callback)

        client = GitLabClient(MOCK_DOMAIN, "test-token", max_attempts=1)

        with pytest.raises(TransientNetworkError):
            client.get("/projects/123")

        assert call_count[0] == 1  # Only initial attempt

    @responses.activate
    def test_custom_backoff_respected(self):
        """The configured backoff is used between attempts."""
        callback, _ = failing_callback(1)
        responses.add_callback(responses.GET, f"{MOCK_API_URL}/projects/123", callback=callback)

        client = GitLabClient(MOCK_DOMAIN, "test-token", retry_backoff=0.25)

        with patch("time.sleep") as mock_sleep:
            client.get("/projects/123")

        mock_sleep.assert_called_once_with(0.25)


class TestRequestBodyBuffering:
    """Streaming request bodies are buffered so a retry can resend them."""

    def test_file_like_body_buffered(self):
        request = requests.Request("POST", f"{MOCK_API_URL}/projects", data=io.BytesIO(b"payload")).prepare()

        _buffer_request_body(request)

        assert request.body == b"payload"
        assert request.headers["Content-Length"] == "7"

    def test_generator_body_buffered(self):
        request = requests.Request("POST", f"{MOCK_API_URL}/projects", data=(c for c in [b"a", b"b"])).prepare()

        _buffer_request_body(request)

        assert request.body == b"ab"
        assert "Transfer-Encoding" not in request.headers

    def test_bytes_body_untouched(self):
        request = requests.Request("POST", f"{MOCK_API_URL}/projects", json={"a": 1}).prepare()
        body = request.body

        _buffer_request_body(request)

        assert request.body is body
