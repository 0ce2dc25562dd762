"""Import of packaged content files through the POST servlet."""

import asyncio
import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import Optional

from .api import SlingClient
from .exceptions import SlingConfigError, SlingError, SlingFileNotFoundError
from .models import ImportOptions, PostResponse
from .output import OutputFormatter
from .sync.report import Failure, ImportReport, RemoteWarning

logger = logging.getLogger(__name__)

# Checked in order: "jcr.xml" must win over "xml"
SUPPORTED_IMPORT_TYPES: tuple[str, ...] = ("json", "jar", "zip", "jcr.xml", "xml")


def get_import_type(file: str) -> Optional[str]:
    """Return the import type of a file from its extension.

    Args:
        file: File name or path

    Returns:
        One of :data:`SUPPORTED_IMPORT_TYPES`, or None if unsupported

    Examples:
        >>> get_import_type("report.jcr.xml")
        'jcr.xml'
        >>> get_import_type("notes.txt") is None
        True
    """
    for import_type in SUPPORTED_IMPORT_TYPES:
        if str(file).endswith("." + import_type):
            return import_type
    return None


def get_node_name(file: str, import_type: str) -> str:
    """Return the node name for a file: its base name minus the type suffix."""
    base = Path(file).name
    return base[: len(base) - len(import_type) - 1]


class ImportRunner:
    """Imports content files (json, jar, zip, jcr.xml, xml) into a resource.

    The same :class:`ImportOptions` apply to every file of a batch. Files
    are imported concurrently and each failure is reported on its own.
    """

    def __init__(
        self,
        client: SlingClient,
        options: Optional[ImportOptions] = None,
        output: Optional[OutputFormatter] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize import runner.

        Args:
            client: Sling POST servlet client
            options: Import flags applied to every file
            output: Output formatter for displaying warnings
            max_workers: Maximum number of requests in flight
                (None for no limit)
        """
        if max_workers is not None and max_workers < 1:
            raise SlingConfigError("max_workers must be at least 1")
        self.client = client
        self.options = options or ImportOptions()
        self.output = output or OutputFormatter()
        self._semaphore = asyncio.Semaphore(max_workers) if max_workers else None

    def validate(self, files: list[Path]) -> list[tuple[Path, str]]:
        """Check every file before anything is sent.

        Returns:
            Each file paired with its import type

        Raises:
            SlingConfigError: If there are no files, or a file has no
                supported import type
            SlingFileNotFoundError: If a file does not exist
        """
        if not files:
            raise SlingConfigError("No files to import.")
        typed: list[tuple[Path, str]] = []
        for file in files:
            import_type = get_import_type(str(file))
            if import_type is None:
                raise SlingConfigError(
                    f"Unable to determine the import type of {file}"
                )
            if not Path(file).is_file():
                raise SlingFileNotFoundError(str(file))
            typed.append((Path(file), import_type))
        return typed

    async def run(self, files: list[Path], dest: str = "/") -> ImportReport:
        """Import files under the resource path ``dest``.

        Args:
            files: Content files
            dest: Resource path receiving the imported nodes

        Returns:
            Report with per-file warnings and failures

        Raises:
            SlingConfigError: If validation fails (nothing is sent)
        """
        typed = self.validate([Path(file) for file in files])

        report = ImportReport()
        results = await asyncio.gather(
            *(
                self._import_file(file, import_type, dest, report)
                for file, import_type in typed
            ),
            return_exceptions=True,
        )

        for (file, _), result in zip(typed, results):
            if not isinstance(result, BaseException):
                continue
            if not isinstance(result, (SlingError, OSError)):
                raise result
            report.failures.append(Failure(str(file), result))
            self.output.error(f"Failed to import {file}: {result}")

        return report

    async def _request(self, request: Awaitable[PostResponse]) -> PostResponse:
        if self._semaphore is None:
            return await request
        async with self._semaphore:
            return await request

    async def _import_file(
        self, file: Path, import_type: str, dest: str, report: ImportReport
    ) -> None:
        name = get_node_name(str(file), import_type)

        logger.debug("Importing %s with type '%s'", file, import_type)

        response = await self._request(
            self.client.import_content(dest, name, file, import_type, self.options)
        )
        if response.ok:
            report.imported += 1
            return

        warning = RemoteWarning.from_import_response(response)
        report.warnings.append(warning)
        self.output.warning(str(warning))
