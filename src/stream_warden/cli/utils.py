"""Utility functions for CLI operations."""

from __future__ import annotations

import threading
from typing import Any, Iterable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stream_warden.domain.models.channel import Channel
from stream_warden.domain.services.status_sink import StatusSink

console = Console()

STATUS_STYLES = {
    "Offline": "[dim]⚪ Offline[/dim]",
    "Recording": "[red]🔴 Recording[/red]",
    "Error": "[yellow]⚠️ Error[/yellow]",
    "": "[dim]-[/dim]",
}


def format_status(status: str) -> str:
    """Format a channel status with colors."""
    return STATUS_STYLES.get(status, status)


class ConsoleStatusSink(StatusSink):
    """Status sink that prints to a rich console."""

    def __init__(self, output: Console | None = None, show_log_lines: bool = True) -> None:
        self.console = output or console
        self.show_log_lines = show_log_lines
        # Monitors call in from many threads; keep lines whole
        self._lock = threading.Lock()

    def on_status_changed(self, channel: Channel, status: str) -> None:
        with self._lock:
            self.console.print(
                f"[cyan]{channel.platform}[/cyan] {channel.channel_name}: {format_status(status)}"
            )

    def on_log_message(self, line: str) -> None:
        if not self.show_log_lines:
            return
        with self._lock:
            self.console.print(line, markup=False, highlight=False)


def create_channel_table(channels: Iterable[Any], title: str = "Channels") -> Table:
    """Create a table of configured channels."""
    table = Table(title=title)
    table.add_column("Platform", style="cyan")
    table.add_column("Channel", style="bold")
    table.add_column("URL", style="dim")
    table.add_column("Quality", justify="center")
    table.add_column("Interval", justify="right")
    table.add_column("Active", justify="center")

    for channel in channels:
        interval = f"{channel.check_interval}s" if channel.check_interval else "default"
        table.add_row(
            channel.platform,
            channel.channel_name,
            channel.channel_url,
            channel.quality,
            interval,
            "✅" if channel.active else "❌",
        )

    return table


def display_error_summary(errors: list[str]) -> None:
    """Display configuration errors."""
    if not errors:
        return

    console.print(Panel(
        "\n".join(f"• {error}" for error in errors),
        title="[red]❌ Errors Found[/red]",
        border_style="red"
    ))


def display_success_message(message: str) -> None:
    """Display a success message."""
    console.print(Panel(
        f"[green]{message}[/green]",
        title="[green]✅ Success[/green]",
        border_style="green"
    ))


def display_warning_message(message: str) -> None:
    """Display a warning message."""
    console.print(Panel(
        f"[yellow]{message}[/yellow]",
        title="[yellow]⚠️ Warning[/yellow]",
        border_style="yellow"
    ))
