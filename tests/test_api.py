"""Unit tests for the Sling POST servlet client."""

import asyncio
import base64
from unittest.mock import patch

import httpx
import pytest

from pysling.api import SlingClient
from pysling.exceptions import (
    SlingFileNotFoundError,
    SlingInvalidResponseError,
    SlingNetworkError,
)
from pysling.models import Endpoint, ImportOptions


def run(coro):
    return asyncio.run(coro)


async def _call(client, method, *args):
    async with client:
        return await getattr(client, method)(*args)


class TestSlingClient:
    """Tests for SlingClient initialization."""

    def test_init_with_endpoint(self, endpoint):
        client = SlingClient(endpoint=endpoint)
        assert client.endpoint is endpoint

    def test_init_uses_config(self):
        with patch("pysling.api.config") as mock_config:
            mock_config.endpoint.return_value = Endpoint(host="from-config")
            client = SlingClient()
        assert client.endpoint.host == "from-config"

    def test_retry_delay_grows(self):
        client = SlingClient(endpoint=Endpoint(), retry_delay=1.0)
        assert 0.75 <= client._calculate_retry_delay(0) <= 1.25
        assert 3.0 <= client._calculate_retry_delay(2) <= 5.0

    def test_close_without_requests(self, endpoint):
        run(SlingClient(endpoint=endpoint).close())


class TestCreateNode:
    """Tests for create_node."""

    def test_posts_properties(self, client, server):
        response = run(
            _call(client, "create_node", "/content/page", {"title": "Hello"})
        )

        assert response.ok
        assert response.path == "/content/page"
        assert response.body == {"path": "/content/page", "status.code": 200}
        request = server.requests[0]
        assert request.method == "POST"
        assert request.path == "/content/page"
        assert request.fields == [("title", "Hello")]

    def test_authentication_and_accept_headers(self, client, server):
        run(_call(client, "create_node", "/content", {}))

        request = server.requests[0]
        expected = base64.b64encode(b"user:pass").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.headers["Accept"] == "application/json"

    def test_target_url(self, endpoint, server):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(200)

        client = SlingClient(endpoint=endpoint, transport=httpx.MockTransport(handler))
        run(_call(client, "create_node", "/content/a", {}))

        assert urls == ["http://sling.test:4502/content/a"]

    def test_empty_properties_still_sends_request(self, client, server):
        run(_call(client, "create_node", "/content/empty", {}))

        assert server.paths() == ["/content/empty"]
        assert server.requests[0].raw == b""

    def test_array_property_type_hint(self, client, server):
        run(_call(client, "create_node", "/content/page", {"tags": ["a", "b"]}))

        request = server.requests[0]
        assert request.values("tags") == ["a", "b"]
        assert request.value("tags@TypeHint") == "String[]"

    def test_boolean_properties(self, client, server):
        run(_call(client, "create_node", "/c", {"on": True, "off": False}))

        request = server.requests[0]
        assert request.value("on") == "true"
        assert request.value("off") == "false"

    def test_trailing_slash_removed(self, client, server):
        run(_call(client, "create_node", "/content/page/", {}))
        assert server.paths() == ["/content/page"]

    def test_root_path_kept(self, client, server):
        run(_call(client, "create_node", "/", {}))
        assert server.paths() == ["/"]

    def test_rejection_is_returned_not_raised(self, client, server):
        server.responses["/content/bad"] = httpx.Response(
            500,
            json={
                "path": "/content/bad",
                "error": {"class": "javax.jcr.RepositoryException", "message": "no"},
            },
        )

        response = run(_call(client, "create_node", "/content/bad", {}))

        assert not response.ok
        assert response.status_code == 500
        assert response.body["error"]["message"] == "no"

    def test_empty_body(self, endpoint):
        transport = httpx.MockTransport(lambda request: httpx.Response(201))
        client = SlingClient(endpoint=endpoint, transport=transport)

        response = run(_call(client, "create_node", "/content", {}))

        assert response.status_code == 201
        assert response.body == {}

    def test_invalid_json_raises(self, endpoint):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(500, text="<html>Error</html>")
        )
        client = SlingClient(endpoint=endpoint, transport=transport)

        with pytest.raises(SlingInvalidResponseError, match="Invalid JSON"):
            run(_call(client, "create_node", "/content", {}))

    def test_non_object_json_raises(self, endpoint):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[1]))
        client = SlingClient(endpoint=endpoint, transport=transport)

        with pytest.raises(SlingInvalidResponseError, match="expected an object"):
            run(_call(client, "create_node", "/content", {}))


class TestRetries:
    """Tests for transport error handling."""

    def test_network_error_raises(self, client, server):
        server.failures["/content"] = 1

        with pytest.raises(SlingNetworkError, match="Network error"):
            run(_call(client, "create_node", "/content", {}))

    def test_network_error_retried(self, endpoint, server):
        server.failures["/content"] = 2
        client = SlingClient(
            endpoint=endpoint,
            max_retries=2,
            retry_delay=0,
            transport=httpx.MockTransport(server),
        )

        response = run(_call(client, "create_node", "/content", {"a": "b"}))

        assert response.ok
        assert len(server.at("/content")) == 3

    def test_retries_exhausted(self, endpoint, server):
        server.failures["/content"] = 5
        client = SlingClient(
            endpoint=endpoint,
            max_retries=1,
            retry_delay=0,
            transport=httpx.MockTransport(server),
        )

        with pytest.raises(SlingNetworkError):
            run(_call(client, "create_node", "/content", {}))
        assert len(server.at("/content")) == 2


class TestCreateFile:
    """Tests for create_file."""

    def test_uploads_file_under_parent(self, client, server, tmp_path):
        local_file = tmp_path / "outer.txt"
        local_file.write_bytes(b"hello")

        response = run(_call(client, "create_file", "/content/", local_file, {}))

        assert response.ok
        request = server.requests[0]
        assert request.path == "/content"
        assert request.files == {"./outer.txt": ("outer.txt", b"hello")}

    def test_properties_are_namespaced(self, client, server, tmp_path):
        local_file = tmp_path / "a.txt"
        local_file.write_text("x")

        run(
            _call(
                client,
                "create_file",
                "/content",
                local_file,
                {"title": "A", "tags": ["x", "y"], "draft": True},
            )
        )

        request = server.requests[0]
        assert request.value("./a.txt/title") == "A"
        assert request.values("./a.txt/tags") == ["x", "y"]
        assert request.value("./a.txt/tags@TypeHint") == "String[]"
        assert request.value("./a.txt/draft") == "true"
        assert "title" not in request.field_names()

    def test_missing_file(self, client, server, tmp_path):
        with pytest.raises(SlingFileNotFoundError):
            run(_call(client, "create_file", "/content", tmp_path / "nope.txt", {}))
        assert server.requests == []

    def test_files_opened_only_with_a_free_connection(
        self, endpoint, tmp_path, monkeypatch
    ):
        local_files = []
        for i in range(20):
            local_file = tmp_path / f"f{i}.txt"
            local_file.write_text(str(i))
            local_files.append(local_file)

        real_open = open
        handles = []
        peak = 0

        def tracking_open(*args, **kwargs):
            nonlocal peak
            handle = real_open(*args, **kwargs)
            handles.append(handle)
            peak = max(peak, sum(not h.closed for h in handles))
            return handle

        monkeypatch.setattr("pysling.api.open", tracking_open, raising=False)

        async def handler(request):
            await asyncio.sleep(0.005)
            return httpx.Response(200, json={})

        client = SlingClient(
            endpoint=endpoint,
            max_retries=0,
            retry_delay=0,
            max_connections=3,
            transport=httpx.MockTransport(handler),
        )

        async def upload_all():
            async with client:
                return await asyncio.gather(
                    *(client.create_file("/content", f, {}) for f in local_files)
                )

        responses = run(upload_all())

        assert all(response.ok for response in responses)
        assert len(handles) == 20
        assert peak <= 3


class TestImportContent:
    """Tests for import_content."""

    def test_import_fields(self, client, server, tmp_path):
        local_file = tmp_path / "report.jcr.xml"
        local_file.write_bytes(b"<xml/>")

        run(
            _call(
                client,
                "import_content",
                "/content/",
                "report",
                local_file,
                "jcr.xml",
                ImportOptions(),
            )
        )

        request = server.requests[0]
        assert request.path == "/content"
        assert request.value(":operation") == "import"
        assert request.value(":name") == "report"
        assert request.value(":contentType") == "jcr.xml"
        assert request.files[":contentFile"] == ("report.jcr.xml", b"<xml/>")
        assert not request.field_names() & {
            ":checkin",
            ":autoCheckout",
            ":replace",
            ":replaceProperties",
        }

    def test_truthy_flags_only(self, client, server, tmp_path):
        local_file = tmp_path / "site.json"
        local_file.write_text("{}")

        run(
            _call(
                client,
                "import_content",
                "/",
                "site",
                local_file,
                "json",
                ImportOptions(replace=True, checkin=True),
            )
        )

        request = server.requests[0]
        assert request.path == "/"
        assert request.value(":replace") == "true"
        assert request.value(":checkin") == "true"
        assert request.value(":autoCheckout") is None
        assert request.value(":replaceProperties") is None
