"""Shared fixtures: an in-memory filesystem, a fake client and a fake server."""

import asyncio
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from unittest.mock import Mock
from urllib.parse import parse_qsl

import httpx
import pytest

from pysling.api import SlingClient
from pysling.exceptions import SlingConfigError
from pysling.models import Endpoint, PostResponse
from pysling.output import OutputFormatter
from pysling.sync.filesystem import EntryKind


class FakeFileSystem:
    """In-memory :class:`FileSystem`.

    Directories are dicts, files are strings. Descriptors are files whose
    content is JSON text. ``aliases`` maps a path to the real path it
    resolves to, to model symlinks.
    """

    def __init__(self, tree: dict[str, Any], aliases: Optional[dict[str, str]] = None):
        self.tree = tree
        self.aliases = aliases or {}
        self.descriptor_reads: list[str] = []

    def _lookup(self, path: Path) -> Any:
        node: Any = self.tree
        for part in Path(path).parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def list_children(self, directory: Path) -> list[str]:
        return sorted(self._lookup(directory))

    def kind(self, path: Path) -> EntryKind:
        node = self._lookup(path)
        if node is None:
            return EntryKind.MISSING
        if isinstance(node, dict):
            return EntryKind.DIRECTORY
        if isinstance(node, str):
            return EntryKind.FILE
        return EntryKind.OTHER

    def read_descriptor(self, path: Path) -> dict[str, Any]:
        self.descriptor_reads.append(Path(path).as_posix())
        try:
            return json.loads(self._lookup(path))
        except json.JSONDecodeError as e:
            raise SlingConfigError(f"Invalid JSON in descriptor {path}: {e}") from e

    def real_path(self, path: Path) -> str:
        posix = Path(path).as_posix()
        return self.aliases.get(posix, posix)


class FakeClient:
    """Stands in for :class:`SlingClient`, recording every call.

    ``statuses`` maps a path to (status, body) for rejected requests;
    ``errors`` maps a path to an exception raised instead of answering;
    ``delays`` maps a path to seconds to wait before answering.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.events: list[tuple[str, str]] = []
        self.statuses: dict[str, tuple[int, dict[str, Any]]] = {}
        self.errors: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def _answer(self, key: str, path: str) -> PostResponse:
        self.events.append(("start", key))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(key, 0))
            if key in self.errors:
                raise self.errors[key]
            status, body = self.statuses.get(key, (200, {}))
            return PostResponse(path=path, status_code=status, body=body)
        finally:
            self.in_flight -= 1
            self.events.append(("end", key))

    async def create_node(self, path: str, properties: dict[str, Any]) -> PostResponse:
        self.calls.append(("node", path, properties))
        return await self._answer(path, path)

    async def create_file(
        self, parent_path: str, local_file: Path, properties: dict[str, Any]
    ) -> PostResponse:
        key = f"{parent_path}|{Path(local_file).name}"
        self.calls.append(("file", parent_path, Path(local_file).as_posix(), properties))
        return await self._answer(key, parent_path)

    def node_paths(self) -> list[str]:
        return [call[1] for call in self.calls if call[0] == "node"]

    def file_calls(self) -> list[tuple[str, str]]:
        return [(call[1], Path(call[2]).name) for call in self.calls if call[0] == "file"]


@dataclass
class RecordedRequest:
    """A request received by :class:`FakeServer`, with its form decoded."""

    method: str
    path: str
    headers: httpx.Headers
    fields: list[tuple[str, str]] = field(default_factory=list)
    files: dict[str, tuple[str, bytes]] = field(default_factory=dict)
    raw: bytes = b""

    def values(self, name: str) -> list[str]:
        return [value for key, value in self.fields if key == name]

    def value(self, name: str) -> Optional[str]:
        values = self.values(name)
        return values[0] if values else None

    def field_names(self) -> set[str]:
        return {key for key, _ in self.fields}


def _parse_multipart(content_type: str, body: bytes) -> tuple[list, dict]:
    boundary = content_type.split("boundary=", 1)[1].strip('"').encode()
    fields: list[tuple[str, str]] = []
    files: dict[str, tuple[str, bytes]] = {}
    for part in body.split(b"--" + boundary)[1:-1]:
        part = part[2:-2]  # strip the CRLF after the boundary and before the next
        raw_headers, _, value = part.partition(b"\r\n\r\n")
        headers = raw_headers.decode()
        name = re.search(r'name="([^"]*)"', headers).group(1)
        filename = re.search(r'filename="([^"]*)"', headers)
        if filename:
            files[name] = (filename.group(1), value)
        else:
            fields.append((name, value.decode()))
    return fields, files


class FakeServer:
    """Handler for ``httpx.MockTransport`` mimicking the POST servlet."""

    def __init__(self) -> None:
        self.requests: list[RecordedRequest] = []
        self.responses: dict[str, httpx.Response] = {}
        self.failures: dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = request.read()
        content_type = request.headers.get("Content-Type", "")
        recorded = RecordedRequest(
            method=request.method,
            path=request.url.path,
            headers=request.headers,
            raw=body,
        )
        if content_type.startswith("multipart/form-data"):
            recorded.fields, recorded.files = _parse_multipart(content_type, body)
        elif body:
            recorded.fields = parse_qsl(body.decode(), keep_blank_values=True)
        self.requests.append(recorded)

        remaining = self.failures.get(recorded.path, 0)
        if remaining:
            self.failures[recorded.path] = remaining - 1
            raise httpx.ConnectError("Connection refused", request=request)

        if recorded.path in self.responses:
            return self.responses[recorded.path]
        return httpx.Response(
            200, json={"path": recorded.path, "status.code": 200}
        )

    def at(self, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.path == path]

    def paths(self) -> list[str]:
        return [r.path for r in self.requests]


@pytest.fixture
def endpoint():
    """Endpoint with non-default credentials."""
    return Endpoint(host="sling.test", port=4502, user="user", password="pass")


@pytest.fixture
def server():
    """A fake POST servlet."""
    return FakeServer()


@pytest.fixture
def client(endpoint, server):
    """A real SlingClient talking to the fake servlet, without retry delays."""
    return SlingClient(
        endpoint=endpoint,
        max_retries=0,
        retry_delay=0,
        transport=httpx.MockTransport(server),
    )


@pytest.fixture
def fake_client():
    """A fake client recording calls."""
    return FakeClient()


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = True
    output.json_output = False
    return output
