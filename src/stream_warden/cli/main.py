"""Main CLI interface for StreamWarden."""

from __future__ import annotations

import shutil
import signal
import sys
import threading
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.panel import Panel

from stream_warden import __version__
from stream_warden.cli.utils import (
    ConsoleStatusSink,
    create_channel_table,
    display_error_summary,
    display_success_message,
    display_warning_message,
)
from stream_warden.domain.exceptions import ConfigurationError, StreamWardenError
from stream_warden.domain.models.channel import ChannelConfig, Platform
from stream_warden.domain.models.quality import build_quality_chain
from stream_warden.infrastructure.config.yaml_provider import create_default_config
from stream_warden.infrastructure.container import (
    create_container,
    get_configuration_provider,
    get_monitoring_service,
)
from stream_warden.infrastructure.logging_setup import setup_logging

console = Console()

# How often the run loop wakes up to notice a stop request
RUN_POLL_INTERVAL = 0.5


@click.group()
@click.version_option(version=__version__, prog_name="StreamWarden")
@click.option(
    "--config",
    "-c",
    type=click.Path(dir_okay=False, path_type=Path),
    default="config/config.yml",
    help="Path to configuration file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def cli(ctx: click.Context, config: Path, verbose: bool) -> None:
    """
    StreamWarden - Watch live-stream channels and record them while they are live.

    Every configured channel is probed with the stream helper at its check
    interval; a live channel is recorded to the output directory until the
    stream ends.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose

    if verbose:
        console.print(f"[dim]Using configuration: {config}[/dim]")


@cli.command()
@click.option(
    "--channel",
    "channel_names",
    multiple=True,
    help="Monitor only this channel name or platform:name key (can be used multiple times)",
)
@click.pass_context
def run(ctx: click.Context, channel_names: tuple[str, ...]) -> None:
    """Monitor channels and record them while they are live."""
    config_path = ctx.obj["config_path"]
    verbose = ctx.obj["verbose"]

    try:
        container = create_container(config_path, status_sink=ConsoleStatusSink(console))
        config_provider = get_configuration_provider(container)
        setup_logging(
            config_provider.get_logging_config(),
            console=console if verbose else None,
            verbose=verbose,
        )
        settings = config_provider.get_settings()
        channels = [record.to_domain() for record in config_provider.get_channels()]

        if channel_names:
            selected = _select_channels(channels, channel_names)
        elif settings.auto_start_monitoring:
            selected = [channel for channel in channels if channel.active]
        else:
            console.print("[yellow]💡 Tip:[/yellow] Automatic monitoring is disabled. "
                          "Use --channel to pick channels to monitor.")
            return

        if not selected:
            display_warning_message("No active channels to monitor.")
            return

        service = get_monitoring_service(container)
        started = service.start_all_active(selected)

        console.print(Panel(
            f"[blue]📡 Monitoring {started} channel(s)[/blue]\n"
            f"Recordings are saved to: {settings.output_directory}\n"
            "Press Ctrl+C to stop.",
            title="StreamWarden",
            border_style="blue"
        ))

        _wait_for_stop_request()

        console.print("\n[yellow]Stopping monitors...[/yellow]")
        service.shutdown()
        display_success_message("All monitors stopped.")

    except ConfigurationError as e:
        console.print(f"[red]❌ Configuration Error:[/red] {e}")
        sys.exit(1)
    except StreamWardenError as e:
        console.print(f"[red]❌ Error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]❌ Unexpected Error:[/red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate configuration, output directory and helper availability."""
    config_path = ctx.obj["config_path"]
    verbose = ctx.obj["verbose"]

    console.print(Panel(
        "[blue]🔍 Configuration Validation[/blue]\n"
        "Checking configuration file, output directory and stream helper...",
        title="Validation",
        border_style="blue"
    ))

    try:
        container = create_container(config_path)
        config_provider = get_configuration_provider(container)
        settings = config_provider.get_settings()
        channels = config_provider.get_channels()
        errors: list[str] = []

        console.print("\n[cyan]📋 Configuration Check[/cyan]")
        console.print(f"✅ Found {len(channels)} configured channels "
                      f"({len(config_provider.get_active_channels())} active)")
        console.print(f"✅ Default check interval: {settings.default_check_interval} seconds")
        console.print(f"✅ Default quality: {settings.default_quality}")
        console.print(f"✅ High FPS recording: {settings.record_high_fps}")

        console.print("\n[cyan]📁 Output Directory Check[/cyan]")
        output_dir = Path(settings.output_directory)
        if output_dir.is_dir():
            console.print(f"✅ Output directory: {output_dir}")
        elif output_dir.exists():
            errors.append(f"Output path is not a directory: {output_dir}")
        else:
            console.print(f"[yellow]⚠️  Output directory will be created: {output_dir}[/yellow]")

        console.print("\n[cyan]🔧 Stream Helper Check[/cyan]")
        helper = shutil.which(settings.helper_path)
        if helper:
            console.print(f"✅ Stream helper: {helper}")
        else:
            errors.append(f"Stream helper not found: {settings.helper_path}")

        if channels:
            console.print()
            console.print(create_channel_table(channels))

        if errors:
            display_error_summary(errors)
            sys.exit(1)

        console.print("\n[green]✅ Validation complete![/green]")

    except ConfigurationError as e:
        console.print(f"\n[red]❌ Validation failed:[/red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)


@cli.group()
def channels() -> None:
    """Channel list management commands."""
    pass


@channels.command("list")
@click.pass_context
def list_channels(ctx: click.Context) -> None:
    """Show the configured channels."""
    config_path = ctx.obj["config_path"]

    try:
        config_provider = get_configuration_provider(create_container(config_path))
        configured = config_provider.get_channels()
    except ConfigurationError as e:
        console.print(f"[red]❌ Configuration Error:[/red] {e}")
        sys.exit(1)

    if not configured:
        console.print("[yellow]No channels configured.[/yellow]")
        console.print("[yellow]💡 Tip:[/yellow] Run 'stream-warden channels add' to add one.")
        return

    console.print(create_channel_table(configured))


@channels.command("add")
@click.option(
    "--platform",
    "-p",
    required=True,
    help=f"Streaming platform ({', '.join(p.value for p in Platform)} or any name with --url)",
)
@click.option("--name", "-n", "channel_name", required=True, help="Channel name or handle")
@click.option("--url", "channel_url", default="", help="Channel URL (derived for known platforms)")
@click.option("--quality", "-q", default=None, help="Preferred quality (defaults to settings)")
@click.option("--check-interval", type=int, default=None, help="Seconds between liveness checks")
@click.option("--inactive", is_flag=True, help="Add the channel without monitoring it")
@click.pass_context
def add_channel(
    ctx: click.Context,
    platform: str,
    channel_name: str,
    channel_url: str,
    quality: str | None,
    check_interval: int | None,
    inactive: bool,
) -> None:
    """Add a channel to the configuration."""
    config_path = ctx.obj["config_path"]

    try:
        config_provider = get_configuration_provider(create_container(config_path))
        record = ChannelConfig(
            platform=platform,
            channel_name=channel_name,
            channel_url=channel_url,
            active=not inactive,
            quality=quality or config_provider.get_settings().default_quality,
            check_interval=check_interval,
        )
        config_provider.add_channel(record)
    except PydanticValidationError as e:
        display_error_summary([_format_validation_error(error) for error in e.errors()])
        sys.exit(1)
    except ConfigurationError as e:
        console.print(f"[red]❌ Configuration Error:[/red] {e}")
        sys.exit(1)

    display_success_message(f"Added {record.key}\n{record.channel_url}")


@channels.command("remove")
@click.option("--platform", "-p", required=True, help="Streaming platform")
@click.option("--name", "-n", "channel_name", required=True, help="Channel name or handle")
@click.pass_context
def remove_channel(ctx: click.Context, platform: str, channel_name: str) -> None:
    """Remove a channel from the configuration."""
    config_path = ctx.obj["config_path"]

    try:
        config_provider = get_configuration_provider(create_container(config_path))
        removed = config_provider.remove_channel(platform, channel_name)
    except ConfigurationError as e:
        console.print(f"[red]❌ Configuration Error:[/red] {e}")
        sys.exit(1)

    if not removed:
        console.print(f"[red]❌ Channel not found:[/red] {platform}:{channel_name}")
        sys.exit(1)

    display_success_message(f"Removed {platform}:{channel_name}")


@channels.command("edit")
@click.option("--platform", "-p", required=True, help="Streaming platform")
@click.option("--name", "-n", "channel_name", required=True, help="Channel name or handle")
@click.option("--url", "channel_url", default=None, help="New channel URL")
@click.option("--quality", "-q", default=None, help="New preferred quality")
@click.option("--check-interval", type=int, default=None, help="New seconds between liveness checks")
@click.option(
    "--default-interval",
    is_flag=True,
    help="Use the default check interval from the settings",
)
@click.pass_context
def edit_channel(
    ctx: click.Context,
    platform: str,
    channel_name: str,
    channel_url: str | None,
    quality: str | None,
    check_interval: int | None,
    default_interval: bool,
) -> None:
    """Change the URL, quality or check interval of a channel."""
    if check_interval is not None and default_interval:
        raise click.UsageError("--check-interval and --default-interval are mutually exclusive")

    changes: dict[str, Any] = {}
    if channel_url is not None:
        changes["channel_url"] = channel_url
    if quality is not None:
        changes["quality"] = quality
    if check_interval is not None or default_interval:
        changes["check_interval"] = check_interval

    if not changes:
        display_warning_message("Nothing to change.")
        return

    record = _update_channel(ctx.obj["config_path"], platform, channel_name, changes)
    interval = record.check_interval if record.check_interval is not None else "default"
    display_success_message(
        f"Updated {record.key}\n{record.channel_url}\n"
        f"Quality: {record.quality}, check interval: {interval}"
    )


@channels.command("enable")
@click.option("--platform", "-p", required=True, help="Streaming platform")
@click.option("--name", "-n", "channel_name", required=True, help="Channel name or handle")
@click.pass_context
def enable_channel(ctx: click.Context, platform: str, channel_name: str) -> None:
    """Mark a channel active so that it is monitored."""
    record = _update_channel(ctx.obj["config_path"], platform, channel_name, {"active": True})
    display_success_message(f"Enabled {record.key}")


@channels.command("disable")
@click.option("--platform", "-p", required=True, help="Streaming platform")
@click.option("--name", "-n", "channel_name", required=True, help="Channel name or handle")
@click.pass_context
def disable_channel(ctx: click.Context, platform: str, channel_name: str) -> None:
    """Mark a channel inactive so that it is no longer monitored."""
    record = _update_channel(ctx.obj["config_path"], platform, channel_name, {"active": False})
    display_success_message(f"Disabled {record.key}")


@cli.command("quality-chain")
@click.argument("quality")
@click.option(
    "--high-fps/--standard-fps",
    default=True,
    help="Prefer 60/50 fps variants (default) or standard frame rates",
)
def quality_chain(quality: str, high_fps: bool) -> None:
    """Print the quality chain passed to the helper for QUALITY."""
    click.echo(build_quality_chain(quality, high_fps))


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write a configuration file with default settings."""
    config_path = ctx.obj["config_path"]

    try:
        path = create_default_config(config_path, overwrite=force)
    except ConfigurationError as e:
        console.print(f"[red]❌ Configuration Error:[/red] {e}")
        if not force:
            console.print("[yellow]💡 Tip:[/yellow] Use --force to overwrite it.")
        sys.exit(1)

    display_success_message(f"Configuration written to {path}")


def _select_channels(channels: list[Any], names: tuple[str, ...]) -> list[Any]:
    """Pick channels by name or key, warning about unknown and inactive ones."""
    selected = []
    for name in names:
        matches = [c for c in channels if name in (c.channel_name, c.key)]
        if not matches:
            display_warning_message(f"Channel not configured: {name}")
            continue
        for channel in matches:
            if not channel.active:
                display_warning_message(f"Channel is inactive: {channel.key}")
            elif channel not in selected:
                selected.append(channel)
    return selected


def _update_channel(
    config_path: Path, platform: str, channel_name: str, changes: dict[str, Any]
) -> ChannelConfig:
    """Apply changes to a saved channel, exiting with an error summary on failure."""
    try:
        config_provider = get_configuration_provider(create_container(config_path))
        return config_provider.update_channel(platform, channel_name, **changes)
    except ConfigurationError as e:
        if isinstance(e.cause, PydanticValidationError):
            display_error_summary([_format_validation_error(error) for error in e.cause.errors()])
        else:
            console.print(f"[red]❌ Configuration Error:[/red] {e}")
        sys.exit(1)


def _wait_for_stop_request() -> None:
    """Block until Ctrl+C or SIGTERM."""
    stop_requested = threading.Event()
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: stop_requested.set())
    try:
        while not stop_requested.wait(RUN_POLL_INTERVAL):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        signal.signal(signal.SIGTERM, previous)


def _format_validation_error(error: Any) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "channel"
    return f"{location}: {error.get('msg', 'invalid value')}"


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
