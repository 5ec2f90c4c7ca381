"""Tests for the conditional-request cache and cache-hit counting."""

import json
import sys
import threading
from pathlib import Path

import requests
import responses

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Constants
MOCK_DOMAIN = "gitlab.example.com"
MOCK_API_URL = f"https://{MOCK_DOMAIN}/api/v4"

from git_providers import FROM_CACHE_HEADER, Client, ClientOptions, GitLabClient, OrganizationRef
from git_providers.transport import CacheHitCounter

GROUP = {"id": 456, "name": "Acme", "path": "acme", "full_path": "acme", "description": "Acme Corp"}


def etag_callback(body: dict, etag: str = '"v1"', seen_headers: list | None = None):
    """Serve ``body`` with an ETag and answer matching revalidations with 304."""

    def callback(request):
        if seen_headers is not None:
            seen_headers.append(dict(request.headers))
        if request.headers.get("If-None-Match") == etag:
            return (304, {"ETag": etag}, "")
        return (200, {"ETag": etag}, json.dumps(body))

    return callback


class TestConditionalCache:
    """Repeated GETs are revalidated and served from the cache on 304."""

    @responses.activate
    def test_second_identical_read_is_a_cache_hit(self):
        """First call misses, second identical call hits."""
        responses.add_callback(
            responses.GET,
            f"{MOCK_API_URL}/groups/acme",
            callback=etag_callback(GROUP),
            content_type="application/json",
        )
        client = GitLabClient(MOCK_DOMAIN, "test-token", conditional_requests=True)

        first = []
        second = []
        hits_first = client.cache_hits.count_for(lambda: first.append(client.get("/groups/acme")))
        hits_second = client.cache_hits.count_for(lambda: second.append(client.get("/groups/acme")))

        assert hits_first == 0
        assert hits_second == 1
        assert first == second == [GROUP]

    @responses.activate
    def test_revalidation_sends_if_none_match(self):
        """The stored ETag is sent back to the server."""
        seen = []
        responses.add_callback(
            responses.GET,
            f"{MOCK_API_URL}/groups/acme",
            callback=etag_callback(GROUP, seen_headers=seen),
            content_type="application/json",
        )
        client = GitLabClient(MOCK_DOMAIN, "test-token", conditional_requests=True)

        client.get("/groups/acme")
        client.get("/groups/acme")

        assert "If-None-Match" not in seen[0]
        assert seen[1]["If-None-Match"] == '"v1"'

    @responses.activate
    def test_cached_response_carries_from_cache_header(self):
        responses.add_callback(
            responses.GET,
            f"{MOCK_API_URL}/groups/acme",
            callback=etag_callback(GROUP),
            content_type="application/json",
        )
        client = GitLabClient(MOCK_DOMAIN, "test-token", conditional_requests=True)

        first = client._request("GET", "/groups/acme")
        second = client._request("GET", "/groups/acme")

        assert FROM_CACHE_HEADER not in first.headers
        assert second.headers[FROM_CACHE_HEADER] == "1"
        assert second.status_code == 200
        assert second.json() == GROUP

    @responses.activate
    def test_changed_resource_is_not_a_hit(self):
        """A new ETag from the server replaces the cached body."""
        responses.add(responses.GET, f"{MOCK_API_URL}/groups/acme", json=GROUP, headers={"ETag": '"v1"'})
        updated = dict(GROUP, description="Updated")
        responses.add(responses.GET, f"{MOCK_API_URL}/groups/acme", json=updated, headers={"ETag": '"v2"'})
        client = GitLabClient(MOCK_DOMAIN, "test-token", conditional_requests=True)

        client.get("/groups/acme")
        results = []
        hits = client.cache_hits.count_for(lambda: results.append(client.get("/groups/acme")))

        assert hits == 0
        assert results == [updated]
        assert client.cache.store.get(f"GET {MOCK_API_URL}/groups/acme").etag == '"v2"'

    @responses.activate
    def test_last_modified_validator(self):
        """Responses with only Last-Modified are revalidated with If-Modified-Since."""
        stamp = "Wed, 21 Oct 2015 07:28:00 GMT"

        def callback(request):
            if request.headers.get("If-Modified-Since") == stamp:
                return (304, {}, "")
            return (200, {"Last-Modified": stamp}, json.dumps(GROUP))

        responses.add_callback(
            responses.GET, f"{MOCK_API_URL}/groups/acme", callback=callback, content_type="application/json"
        )
        client = GitLabClient(MOCK_DOMAIN, "test-token", conditional_requests=True)

        client.get("/groups/acme")
        hits = client.cache_hits.count_for(lambda: client.get("/groups/acme"))

        assert hits == 1

    @responses.activate
    def test_unsafe_method_invalidates_entry(self):
        """A successful PUT drops the cached GET of the same URL."""
        responses.add(responses.GET, f"{MOCK_API_URL}/projects/123", json={"id": 123}, headers={"ETag": '"v1"'})
        responses.add(responses.PUT, f"{MOCK_API_URL}/projects/123", json={"id": 123})
        client = GitLabClient(MOCK_DOMAIN, "test-token", conditional_requests=True)

        client.get("/projects/123")
        assert len(client.cache.store) == 1

        client.put("/projects/123", data={"description": "x"})

        assert len(client.cache.store) == 0

    @responses.activate
    def test_disabled_cache_never_hits(self):
        """Without conditional requests, content is identical and nothing is counted."""
        seen = []
        responses.add_callback(
            responses.GET,
            f"{MOCK_API_URL}/groups/acme",
            callback=etag_callback(GROUP, seen_headers=seen),
            content_type="application/json",
        )
        client = GitLabClient(MOCK_DOMAIN, "test-token")

        results = []
        hits = client.cache_hits.count_for(
            lambda: results.extend([client.get("/groups/acme"), client.get("/groups/acme")])
        )

        assert client.cache is None
        assert hits == 0
        assert results == [GROUP, GROUP]
        assert all("If-None-Match" not in headers for headers in seen)


class TestCacheHitCounter:
    """Counting is isolated to the function passed to count_for."""

    @staticmethod
    def cached_response() -> requests.Response:
        response = requests.Response()
        response.headers[FROM_CACHE_HEADER] = "1"
        return response

    def test_not_counting_when_disabled(self):
        counter = CacheHitCounter()

        counter(self.cached_response())

        assert counter.hits == 0

    def test_count_for_resets_and_disables(self):
        counter = CacheHitCounter()

        assert counter.count_for(lambda: counter(self.cached_response())) == 1
        # Outside count_for nothing is recorded
        counter(self.cached_response())
        assert counter.hits == 1
        # A new scope starts from zero
        assert counter.count_for(lambda: None) == 0

    def test_responses_without_header_ignored(self):
        counter = CacheHitCounter()

        assert counter.count_for(lambda: counter(requests.Response())) == 0

    def test_concurrent_hits_all_counted(self):
        counter = CacheHitCounter()
        response = self.cached_response()

        def hammer():
            for _ in range(200):
                counter(response)

        def run():
            threads = [threading.Thread(target=hammer) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert counter.count_for(run) == 1600


class TestClientCacheHits:
    """Cache observability through the root client."""

    @responses.activate
    def test_organization_get_hits_cache_on_second_call(self):
        responses.add_callback(
            responses.GET,
            f"{MOCK_API_URL}/groups/acme",
            callback=etag_callback(GROUP),
            content_type="application/json",
        )
        client = Client("test-token", ClientOptions(domain=MOCK_DOMAIN, conditional_requests=True))
        ref = OrganizationRef(domain=MOCK_DOMAIN, organization="acme")

        orgs = []
        assert client.cache_hits.count_for(lambda: orgs.append(client.organizations().get(ref))) == 0
        assert client.cache_hits.count_for(lambda: orgs.append(client.organizations().get(ref))) == 1
        assert orgs[0].get() == orgs[1].get()
