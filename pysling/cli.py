"""CLI interface for PySling."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import SlingClient
from .config import config
from .exceptions import SlingConfigError
from .importer import ImportRunner
from .models import Endpoint, ImportOptions, SyncTarget, load_targets_from_json
from .output import OutputFormatter
from .sync import ImportReport, SyncEngine, SyncReport

logger = logging.getLogger(__name__)


async def _run_post(
    endpoint: Endpoint,
    targets: list[SyncTarget],
    out: OutputFormatter,
    workers: Optional[int],
) -> SyncReport:
    async with SlingClient(endpoint=endpoint) as client:
        engine = SyncEngine(client, output=out, max_workers=workers)
        return await engine.sync_targets(targets)


async def _run_import(
    endpoint: Endpoint,
    files: list[Path],
    dest: str,
    options: ImportOptions,
    out: OutputFormatter,
    workers: Optional[int],
) -> ImportReport:
    async with SlingClient(endpoint=endpoint) as client:
        runner = ImportRunner(client, options, output=out, max_workers=workers)
        return await runner.run(files, dest)


@click.group()
@click.option("--host", "-H", envvar="SLING_HOST", help="Sling host (default: localhost)")
@click.option(
    "--port", "-P", envvar="SLING_PORT", type=int, help="Sling port (default: 8080)"
)
@click.option("--user", "-u", envvar="SLING_USER", help="User name (default: admin)")
@click.option(
    "--password", "-p", envvar="SLING_PASSWORD", help="Password (default: admin)"
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: Any,
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PySling - Push content trees to Apache Sling."""
    ctx.ensure_object(dict)
    out = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["out"] = out

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pysling").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        endpoint = config.endpoint(host=host, port=port, user=user, password=password)
    except SlingConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    logger.debug("Host: %s", endpoint.host)
    logger.debug("Port: %s", endpoint.port)
    logger.debug("User: %s", endpoint.user)
    ctx.obj["endpoint"] = endpoint


@main.command()
@click.argument("sources", nargs=-1, type=click.Path(path_type=Path))
@click.option(
    "--dest",
    "-d",
    default="/",
    show_default=True,
    help="Resource path the source directories are mapped to",
)
@click.option(
    "--targets",
    "targets_file",
    type=click.Path(path_type=Path),
    help="JSON file with a list of {src, dest} groups",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of concurrent requests (default: unlimited)",
)
@click.pass_context
def post(
    ctx: Any,
    sources: tuple[Path, ...],
    dest: str,
    targets_file: Optional[Path],
    workers: Optional[int],
) -> None:
    """Push directories recursively through the POST servlet.

    Every directory becomes a sling:Folder, every file a file node, and
    every NAME.json descriptor supplies properties for NAME (or creates a
    node NAME when there is no such file or directory).

    Examples:

        pysling post root/content -d /content

        pysling post --targets targets.json
    """
    out: OutputFormatter = ctx.obj["out"]
    endpoint: Endpoint = ctx.obj["endpoint"]

    try:
        targets = [SyncTarget(local=source, remote=dest) for source in sources]
        if targets_file is not None:
            targets.extend(load_targets_from_json(targets_file))

        for target in targets:
            out.info(f"Syncing: {target.local} -> {target.remote}")

        report = asyncio.run(_run_post(endpoint, targets, out, workers))
    except SlingConfigError as e:
        out.error(str(e))
        ctx.exit(1)
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)  # Standard exit code for SIGINT

    if out.json_output:
        out.output_json(report.to_dict())
    else:
        summary_items = [
            ("Files", str(report.files)),
            ("Folders", str(report.folders)),
            ("Nodes", str(report.nodes)),
        ]
        if report.warnings:
            summary_items.append(("Warnings", str(len(report.warnings))))
        if report.failures:
            summary_items.append(("Failed", str(len(report.failures))))
        out.print_summary("Sync Complete", summary_items)

    if not report.ok:
        ctx.exit(1)


@main.command(name="import")
@click.argument("files", nargs=-1, type=click.Path(path_type=Path))
@click.option(
    "--dest",
    "-d",
    default="/",
    show_default=True,
    help="Resource path under which content is imported",
)
@click.option("--checkin", is_flag=True, help="Check in imported versionable nodes")
@click.option(
    "--auto-checkout", is_flag=True, help="Check out versionable nodes when needed"
)
@click.option("--replace", is_flag=True, help="Replace existing nodes")
@click.option(
    "--replace-properties", is_flag=True, help="Replace existing properties"
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of concurrent requests (default: unlimited)",
)
@click.pass_context
def import_(
    ctx: Any,
    files: tuple[Path, ...],
    dest: str,
    checkin: bool,
    auto_checkout: bool,
    replace: bool,
    replace_properties: bool,
    workers: Optional[int],
) -> None:
    """Import content files (json, jar, zip, jcr.xml, xml).

    The node name is the file name without its import type extension,
    e.g. report.jcr.xml is imported as "report".
    """
    out: OutputFormatter = ctx.obj["out"]
    endpoint: Endpoint = ctx.obj["endpoint"]

    options = ImportOptions(
        checkin=checkin,
        auto_checkout=auto_checkout,
        replace=replace,
        replace_properties=replace_properties,
    )
    logger.debug("Checkin: %s", options.checkin)
    logger.debug("Auto-checkout: %s", options.auto_checkout)
    logger.debug("Replace: %s", options.replace)
    logger.debug("Replace properties: %s", options.replace_properties)

    try:
        report = asyncio.run(
            _run_import(endpoint, list(files), dest, options, out, workers)
        )
    except SlingConfigError as e:
        out.error(str(e))
        ctx.exit(1)
    except KeyboardInterrupt:
        out.warning("\nImport cancelled by user")
        ctx.exit(130)

    if out.json_output:
        out.output_json(report.to_dict())
    else:
        summary_items = [("Imported", f"{report.imported} file(s)")]
        if report.warnings:
            summary_items.append(("Warnings", str(len(report.warnings))))
        if report.failures:
            summary_items.append(("Failed", str(len(report.failures))))
        out.print_summary("Import Complete", summary_items)

    if not report.ok:
        ctx.exit(1)


if __name__ == "__main__":
    main()
