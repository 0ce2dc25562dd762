"""Core sync engine pushing local directory trees to the POST servlet."""

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from pathlib import Path
from typing import Optional

from ..api import SlingClient
from ..exceptions import (
    SlingConfigError,
    SlingCycleError,
    SlingError,
    SlingFileNotFoundError,
)
from ..models import PostResponse, SyncTarget
from ..output import OutputFormatter
from ..utils import DESCRIPTOR_EXTENSION, FOLDER_PROPERTIES, concat_resource
from .filesystem import EntryKind, FileSystem, LocalFileSystem
from .report import Failure, RemoteWarning, SyncReport
from .scanner import DirectoryLevel, scan_level

logger = logging.getLogger(__name__)


async def gather_all(aws: Iterable[Awaitable[object]]) -> None:
    """Wait for every awaitable, then raise the first error, if any.

    Unlike a plain ``asyncio.gather``, siblings are never left running when
    one of them fails: the caller only resumes once all have completed.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    errors = [result for result in results if isinstance(result, BaseException)]
    if not errors:
        return
    for error in errors[1:]:
        logger.debug("Additional failure: %s", error)
    raise errors[0]


class SyncEngine:
    """Pushes local directories to a Sling instance, one level at a time.

    For every directory the engine creates its files, its subfolders and
    the virtual nodes of unused descriptors concurrently. Once all of them
    completed, it descends into the subdirectories, again concurrently.
    """

    def __init__(
        self,
        client: SlingClient,
        filesystem: Optional[FileSystem] = None,
        output: Optional[OutputFormatter] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Sling POST servlet client
            filesystem: Filesystem to read from (defaults to the local disk)
            output: Output formatter for displaying warnings
            max_workers: Maximum number of requests in flight
                (None for no limit)
        """
        if max_workers is not None and max_workers < 1:
            raise SlingConfigError("max_workers must be at least 1")
        self.client = client
        self.filesystem = filesystem or LocalFileSystem()
        self.output = output or OutputFormatter()
        self.max_workers = max_workers
        self._semaphore = asyncio.Semaphore(max_workers) if max_workers else None

    def validate_targets(self, targets: list[SyncTarget]) -> None:
        """Check that every target's local path is an existing directory.

        Raises:
            SlingFileNotFoundError: If a local path does not exist
            SlingConfigError: If a local path is not a directory, or there
                are no targets
        """
        if not targets:
            raise SlingConfigError("No directories to synchronize.")
        for target in targets:
            kind = self.filesystem.kind(target.local)
            if kind is EntryKind.MISSING:
                raise SlingFileNotFoundError(str(target.local))
            if kind is not EntryKind.DIRECTORY:
                raise SlingConfigError(f"The path {target.local} is not a directory.")

    async def sync_targets(self, targets: list[SyncTarget]) -> SyncReport:
        """Synchronize several directories concurrently.

        All targets are validated before any request is sent. A target that
        fails is recorded in the report and does not stop the others.

        Args:
            targets: Directories and the resource paths they map to

        Returns:
            Report of the whole run

        Examples:
            >>> engine = SyncEngine(client)
            >>> report = await engine.sync_targets(
            ...     [SyncTarget(Path("root/content"), "/content")]
            ... )
        """
        self.validate_targets(targets)

        report = SyncReport()
        results = await asyncio.gather(
            *(self.sync_directory(t.local, t.remote, report) for t in targets),
            return_exceptions=True,
        )

        for target, result in zip(targets, results):
            if not isinstance(result, BaseException):
                continue
            if not isinstance(result, (SlingError, OSError)):
                raise result
            report.failures.append(Failure(str(target.local), result))
            self.output.error(f"Failed to synchronize {target.local}: {result}")

        return report

    async def sync_directory(
        self,
        local: Path,
        remote: str,
        report: Optional[SyncReport] = None,
    ) -> SyncReport:
        """Recursively synchronize one directory to a resource path.

        Args:
            local: Local directory
            remote: Resource path the directory maps to
            report: Report to add results to (a new one if None)

        Returns:
            The report

        Raises:
            SlingNetworkError: If a request could not be delivered
            SlingInvalidResponseError: If a response could not be parsed
            SlingCycleError: If a directory links back to an ancestor
        """
        if report is None:
            report = SyncReport()
        await self._sync_level(Path(local), remote, report, frozenset())
        return report

    async def _sync_level(
        self,
        directory: Path,
        resource: str,
        report: SyncReport,
        ancestors: frozenset[str],
    ) -> None:
        real_path = self.filesystem.real_path(directory)
        if real_path in ancestors:
            raise SlingCycleError(
                f"Directory {directory} links back to one of its ancestors"
            )
        ancestors = ancestors | {real_path}

        level = scan_level(self.filesystem, directory)
        logger.debug(
            "Level %s -> %s: %d file(s), %d dir(s), %d descriptor(s)",
            directory,
            resource,
            len(level.files),
            len(level.directories),
            len(level.descriptors),
        )

        tasks = [self._create_file(level, resource, name, report) for name in level.files]
        tasks += [
            self._create_node(level, resource, name, report)
            for name in level.unused_descriptor_names()
        ]
        tasks += [
            self._create_folder(level, resource, name, report)
            for name in level.directories
        ]
        await gather_all(tasks)

        await gather_all(
            self._sync_level(
                directory / name, concat_resource(resource, name), report, ancestors
            )
            for name in level.directories
        )

    async def _request(self, request: Awaitable[PostResponse]) -> PostResponse:
        if self._semaphore is None:
            return await request
        async with self._semaphore:
            return await request

    def _check_response(self, response: PostResponse, report: SyncReport) -> bool:
        """Record a warning if the servlet rejected a request.

        Returns:
            True if the request succeeded
        """
        if response.ok:
            return True
        warning = RemoteWarning.from_post_response(response)
        report.warnings.append(warning)
        logger.debug("Rejected with status %d: %s", response.status_code, warning)
        self.output.warning(str(warning))
        return False

    async def _create_file(
        self, level: DirectoryLevel, resource: str, name: str, report: SyncReport
    ) -> None:
        local_file = level.directory / name
        logger.debug("File: %s", local_file)
        properties = level.store.properties_for(name)
        response = await self._request(
            self.client.create_file(resource, local_file, properties)
        )
        if self._check_response(response, report):
            report.files += 1

    async def _create_node(
        self, level: DirectoryLevel, resource: str, name: str, report: SyncReport
    ) -> None:
        descriptor = name + DESCRIPTOR_EXTENSION
        logger.debug("Node: %s", level.directory / descriptor)
        properties = level.store.properties_for(descriptor)
        response = await self._request(
            self.client.create_node(concat_resource(resource, name), properties)
        )
        if self._check_response(response, report):
            report.nodes += 1

    async def _create_folder(
        self, level: DirectoryLevel, resource: str, name: str, report: SyncReport
    ) -> None:
        logger.debug("Dir : %s", level.directory / name)
        properties = level.store.properties_for(name, FOLDER_PROPERTIES)
        response = await self._request(
            self.client.create_node(concat_resource(resource, name), properties)
        )
        if self._check_response(response, report):
            report.folders += 1
