"""Console output formatting for the pysling CLI."""

import json
import sys
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormatter:
    """Formats user-facing messages, respecting quiet and JSON modes."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine readable JSON instead of text
            quiet: Suppress non-essential output
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console()
        self.err_console = Console(stderr=True)

    def print(self, message: str = "") -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(escape(message), highlight=False, soft_wrap=True)

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(escape(message), highlight=False, soft_wrap=True)

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(
            f"[green]{escape(message)}[/green]", highlight=False, soft_wrap=True
        )

    def warning(self, message: str) -> None:
        """Print a warning. Warnings are shown even in quiet mode."""
        self.err_console.print(
            f"[yellow]Warning:[/yellow] {escape(message)}",
            highlight=False,
            soft_wrap=True,
        )

    def error(self, message: str) -> None:
        """Print an error. Errors are always shown."""
        self.err_console.print(
            f"[red]Error:[/red] {escape(message)}", highlight=False, soft_wrap=True
        )

    def output_json(self, data: Any) -> None:
        sys.stdout.write(json.dumps(data, indent=2) + "\n")

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a two-column summary table.

        Args:
            title: Table title
            items: List of (label, value) rows
        """
        if self.quiet or self.json_output:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Item", style="bold")
        table.add_column("Value")
        for label, value in items:
            table.add_row(label, value)
        self.console.print(table)
