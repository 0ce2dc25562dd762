"""API client for the Sling POST servlet."""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import Any

import httpx

from .config import config
from .exceptions import (
    SlingFileNotFoundError,
    SlingInvalidResponseError,
    SlingNetworkError,
)
from .models import Endpoint, ImportOptions, PostResponse
from .utils import (
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    detect_mime_type,
    namespace_properties,
    normalize_properties,
    remove_trailing_slash,
)

logger = logging.getLogger(__name__)


class SlingClient:
    """Client for creating content through the Sling POST servlet.

    Every operation returns a :class:`PostResponse`. Non-2xx statuses are
    not raised; deciding what a rejection means is left to the caller.
    Transport failures raise :class:`SlingNetworkError`.
    """

    def __init__(
        self,
        endpoint: Endpoint | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            endpoint: Connection details (uses config if not provided)
            max_retries: Maximum number of retries on transport errors (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            max_connections: Maximum number of requests sent at once
                (default: 100). Requests beyond it wait before their
                local file is opened.
            transport: Optional custom httpx transport
        """
        self.endpoint = endpoint or config.endpoint()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.max_connections = max_connections
        self._slots = asyncio.Semaphore(max_connections)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                auth=httpx.BasicAuth(self.endpoint.user, self.endpoint.password),
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_connections=self.max_connections),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> SlingClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _parse_body(self, path: str, response: httpx.Response) -> dict[str, Any]:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise SlingInvalidResponseError(
                f"Invalid JSON response for {path} "
                f"(status {response.status_code})"
            ) from e
        if not isinstance(body, dict):
            raise SlingInvalidResponseError(
                f"Unexpected JSON response for {path}: expected an object"
            )
        return body

    async def _post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> PostResponse:
        """POST a form to a resource path, retrying on transport errors.

        Args:
            path: Resource path
            data: Form fields (no body is sent when empty)
            files: Multipart file fields

        Returns:
            Outcome of the request

        Raises:
            SlingNetworkError: If the request fails after all retries
            SlingInvalidResponseError: If the body is not valid JSON
        """
        url = self.endpoint.url_for(path)
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = await client.post(url, data=data or None, files=files)
            except httpx.RequestError as e:
                if attempt < self.max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        "POST %s failed (%s), retrying in %.2fs", path, e, delay
                    )
                    await asyncio.sleep(delay)
                    continue
                raise SlingNetworkError(f"Network error for {path}: {e}") from e

            logger.debug("POST %s -> %d", path, response.status_code)
            return PostResponse(
                path=path,
                status_code=response.status_code,
                body=self._parse_body(path, response),
            )

        # Unreachable: the loop either returns or raises
        raise SlingNetworkError(f"Request to {path} failed after all retry attempts")

    # =========================
    # Content Operations
    # =========================

    async def create_node(self, path: str, properties: dict[str, Any]) -> PostResponse:
        """Create or update the node at ``path`` with the given properties.

        Array values are sent as multi-value properties and booleans as
        "true"/"false". An empty property bag still sends the request, so
        the node is created.

        Args:
            path: Resource path of the node
            properties: Property bag

        Returns:
            Outcome of the request
        """
        path = remove_trailing_slash(path)
        async with self._slots:
            return await self._post(path, data=normalize_properties(properties))

    async def create_file(
        self,
        parent_path: str,
        local_file: Path,
        properties: dict[str, Any],
    ) -> PostResponse:
        """Upload a file as a child of ``parent_path``.

        The content is sent as ``./<name>`` and each property as
        ``./<name>/<key>`` so that properties land on the file node.

        Args:
            parent_path: Resource path of the parent node
            local_file: Local file to upload
            properties: Properties for the file node

        Returns:
            Outcome of the request

        Raises:
            SlingFileNotFoundError: If the local file does not exist
        """
        parent_path = remove_trailing_slash(parent_path)
        local_file = Path(local_file)
        if not local_file.is_file():
            raise SlingFileNotFoundError(str(local_file))

        field_name = "./" + local_file.name
        data = normalize_properties(namespace_properties(field_name, properties))

        async with self._slots:
            with open(local_file, "rb") as f:
                files = {
                    field_name: (local_file.name, f, detect_mime_type(local_file))
                }
                return await self._post(parent_path, data=data, files=files)

    async def import_content(
        self,
        parent_path: str,
        node_name: str,
        local_file: Path,
        import_type: str,
        options: ImportOptions | None = None,
    ) -> PostResponse:
        """Import a content file using the servlet's import operation.

        Args:
            parent_path: Resource path under which the content is imported
            node_name: Name of the node to create
            local_file: Content file (json, jar, zip, jcr.xml or xml)
            import_type: Content type of the import
            options: Import control flags (only truthy flags are sent)

        Returns:
            Outcome of the request

        Raises:
            SlingFileNotFoundError: If the local file does not exist
        """
        parent_path = remove_trailing_slash(parent_path)
        local_file = Path(local_file)
        if not local_file.is_file():
            raise SlingFileNotFoundError(str(local_file))

        data: dict[str, Any] = {
            ":operation": "import",
            ":name": node_name,
            ":contentType": import_type,
        }
        data.update((options or ImportOptions()).to_fields())

        async with self._slots:
            with open(local_file, "rb") as f:
                files = {
                    ":contentFile": (local_file.name, f, detect_mime_type(local_file))
                }
                return await self._post(parent_path, data=data, files=files)
