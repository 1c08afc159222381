"""Output formatting utilities using Rich."""

import json
from enum import Enum
from typing import Any

import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

error_console = Console(stderr=True)

# Rich styles for deployment poll states and CodeDeploy statuses
STATE_STYLES = {
    "succeeded": "green",
    "skipped": "cyan",
    "in-progress": "yellow",
    "unknown": "dim",
    "failed": "red",
    "timed-out": "red",
    "stopped": "red",
}


class OutputFormat(str, Enum):
    """Supported output formats."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"
    RAW = "raw"


class OutputFormatter:
    """Handles output formatting for CLI commands."""

    def __init__(
        self,
        format: OutputFormat = OutputFormat.TABLE,
        color: bool = True,
        quiet: bool = False,
    ):
        self.format = format
        self.color = color
        self.quiet = quiet
        self._console = Console(force_terminal=color, no_color=not color)

    def print_error(self, message: str) -> None:
        """Print an error message to stderr."""
        error_console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        if self.quiet:
            return
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        if self.quiet:
            return
        self._console.print(f"[green]✓[/green] {message}")

    def print_data(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: list[str] | None = None,
        title: str | None = None,
    ) -> None:
        """Print data in the configured format."""
        if self.format == OutputFormat.JSON:
            self._print_json(data)
        elif self.format == OutputFormat.YAML:
            self._print_yaml(data)
        elif self.format == OutputFormat.RAW:
            self._print_raw(data)
        else:
            self._print_table(data, headers, title)

    def print_summary(self, summary: dict[str, Any], title: str = "Deployment") -> None:
        """Print a run summary, colouring its state in table output.

        Machine formats get the summary unchanged so scripts can parse it.
        """
        if self.quiet:
            return
        if self.format != OutputFormat.TABLE:
            self.print_data(summary)
            return

        table = Table(title=title, show_header=False, box=None, pad_edge=False)
        table.add_column("Field", style="dim")
        table.add_column("Value")
        for key, value in summary.items():
            if value is None or value == {}:
                continue
            text = str(value)
            if key in ("state", "status"):
                style = STATE_STYLES.get(text.lower())
                if style:
                    text = f"[{style}]{text}[/{style}]"
            elif isinstance(value, dict):
                text = ", ".join(f"{k}: {v}" for k, v in value.items())
            table.add_row(key.replace("_", " "), text)
        self._console.print(table)

    def _print_json(self, data: Any) -> None:
        json_str = json.dumps(data, indent=2, default=str)
        if self.color:
            self._console.print(Syntax(json_str, "json", theme="monokai"))
        else:
            print(json_str)

    def _print_yaml(self, data: Any) -> None:
        yaml_str = yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
        if self.color:
            self._console.print(Syntax(yaml_str, "yaml", theme="monokai"))
        else:
            print(yaml_str)

    def _print_raw(self, data: Any) -> None:
        if isinstance(data, list):
            for item in data:
                # Single-column rows print as bare values, e.g. region names
                if isinstance(item, dict) and len(item) == 1:
                    print(next(iter(item.values())))
                else:
                    print(item)
        elif isinstance(data, dict):
            for key, value in data.items():
                print(f"{key}: {value}")
        else:
            print(data)

    def _print_table(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: list[str] | None = None,
        title: str | None = None,
    ) -> None:
        if isinstance(data, dict):
            # Single record as key/value rows
            table = Table(title=title, show_header=True, header_style="bold cyan")
            table.add_column("Field", style="dim")
            table.add_column("Value")
            for key, value in data.items():
                table.add_row(str(key), str(value))
            self._console.print(table)
        elif data:
            headers = headers or list(data[0].keys())
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in data:
                table.add_row(*[str(row.get(h, "")) for h in headers])
            self._console.print(table)
        else:
            self._console.print("[dim]No data to display[/dim]")


def format_bytes(size: float) -> str:
    """Format an archive size, e.g. ``2.0 KB``."""
    for unit in ["B", "KB", "MB", "GB"]:
        if abs(size) < 1024.0:
            return f"{size:3.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"


def format_duration(seconds: float) -> str:
    """Format a wait time, e.g. ``45.0s``, ``2m 30s`` or ``1h 05m``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"
