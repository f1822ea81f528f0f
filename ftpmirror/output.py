"""Console output for the ftpmirror CLI."""

import json
import sys
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormatter:
    """Formats CLI output as rich text or JSON.

    Status messages go to stderr. In JSON mode only the JSON document (and
    warnings or errors on stderr) is written, so stdout stays
    machine-readable.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit JSON documents instead of tables
            quiet: Suppress informational messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    @property
    def _chatty(self) -> bool:
        return not self.quiet and not self.json_output

    def print(self, message: str = "") -> None:
        if self._chatty:
            self.console.print(escape(message))

    def info(self, message: str) -> None:
        if self._chatty:
            self.err_console.print(escape(message))

    def success(self, message: str) -> None:
        if self._chatty:
            self.err_console.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]Warning: {escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error: {escape(message)}[/red]")

    def output_json(self, data: Any) -> None:
        sys.stdout.write(json.dumps(data, indent=2) + "\n")
        sys.stdout.flush()

    def output_table(
        self,
        rows: list[dict[str, Any]],
        columns: list[str],
        headers: Optional[dict[str, str]] = None,
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a table.

        Args:
            rows: One dictionary per row
            columns: Keys to show, in order
            headers: Optional column titles keyed by column
            title: Optional table title
        """
        headers = headers or {}
        table = Table(title=escape(title) if title else None)
        for column in columns:
            table.add_column(headers.get(column, column.replace("_", " ").title()))
        for row in rows:
            table.add_row(*(escape(str(row.get(column, ""))) for column in columns))
        self.console.print(table)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled list of key/value pairs."""
        if self.quiet:
            return
        self.console.print(f"\n[bold]{escape(title)}[/bold]")
        for key, value in items:
            self.console.print(f"  {escape(key)}: {escape(value)}")
