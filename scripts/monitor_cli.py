#!/usr/bin/env python3
"""
Monitor CLI - Tail daemon events, container stats and container logs.

Usage:
  python scripts/monitor_cli.py info                   # Daemon version and info
  python scripts/monitor_cli.py events                 # Follow events
  python scripts/monitor_cli.py events --since 3600    # Events of the last hour
  python scripts/monitor_cli.py stats <container>      # Follow resource usage
  python scripts/monitor_cli.py logs <container> -f    # Follow logs

The daemon address and TLS settings come from the environment (.env is
loaded): DOCKER_HOST, DOCKER_API_VERSION, DOCKER_TLS_VERIFY, ...
"""

import argparse
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env")

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich import box

from dockstream import DockerClient, DockStreamError, Event, LogEntry, Stats, StreamType
from dockstream.config import Settings
from dockstream.utils.logging import setup_logging

console = Console()
err_console = Console(stderr=True)


def format_event(event: Event) -> Text:
    """One line per event: time, type, action, actor."""
    ts = datetime.fromtimestamp(event.time, tz=timezone.utc) if event.time else None
    text = Text()
    text.append(ts.strftime("%H:%M:%S ") if ts else "--:--:-- ", style="dim")
    text.append(f"{event.type or 'container':<10}", style="cyan")
    text.append(f"{event.action or event.status:<14}", style="bold")
    actor_id = event.actor.id or event.id
    text.append(actor_id[:12])
    name = event.actor.attributes.get("name")
    if name:
        text.append(f" ({name})", style="dim")
    return text


def format_bytes(value: float) -> str:
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024:
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}TiB"


def format_stats(container_id: str, stats: Stats) -> Table:
    table = Table(box=box.SIMPLE, show_header=True)
    table.add_column("Container", style="cyan")
    table.add_column("CPU %", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Mem %", justify="right")
    table.add_column("Net RX / TX", justify="right")
    net = stats.total_network_io()
    table.add_row(
        container_id[:12],
        f"{stats.cpu_percent():.2f}",
        format_bytes(stats.memory_stats.usage),
        f"{stats.memory_percent():.1f}",
        f"{format_bytes(net.rx_bytes)} / {format_bytes(net.tx_bytes)}",
    )
    return table


def print_log_entry(entry: LogEntry) -> None:
    style = "red" if entry.stream == StreamType.STDERR else None
    prefix = f"{entry.timestamp.isoformat()} " if entry.timestamp else ""
    console.print(f"{prefix}{entry.text}", style=style, end="", markup=False, highlight=False)


async def wait_until_stopped(docker: DockerClient, token: int, duration: Optional[int]) -> None:
    """Keep a monitor running for ``duration`` seconds or until its task ends."""
    task = docker.monitor_task(token)
    try:
        if task is None:
            return
        await asyncio.wait_for(asyncio.shield(task), timeout=duration)
    except asyncio.TimeoutError:
        pass
    finally:
        docker.stop_monitor(token)


async def cmd_info(docker: DockerClient, args) -> None:
    version = await docker.version()
    info = await docker.info()

    table = Table(show_header=False, box=box.ROUNDED)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Endpoint", docker.base_url)
    table.add_row("Client API", docker.api_version)
    table.add_row("Server version", version.version)
    table.add_row("Server API", version.api_version)
    table.add_row("Kernel", version.kernel_version or info.kernel_version)
    table.add_row("Name", info.name)
    table.add_row("Containers", str(info.containers))
    table.add_row("Images", str(info.images))
    table.add_row("CPUs", str(info.ncpu))
    table.add_row("Memory", format_bytes(info.mem_total))
    console.print(table)


async def cmd_events(docker: DockerClient, args) -> None:
    if args.since is not None:
        events = await docker.events_since(
            timedelta(seconds=args.since),
            timedelta(seconds=args.until) if args.until is not None else None,
            filters=args.filters,
        )
        for event in events:
            console.print(format_event(event))
        console.print(f"[dim]{len(events)} events[/dim]")
        return

    def on_event(event: Event, error: Optional[Exception]) -> None:
        if error is not None:
            err_console.print(f"[red]Event stream error:[/red] {error}")
        else:
            console.print(format_event(event))

    token = docker.monitor_events(on_event, filters=args.filters)
    console.print(f"[dim]Monitoring events (token {token}), Ctrl+C to stop[/dim]")
    await wait_until_stopped(docker, token, args.duration)


async def cmd_stats(docker: DockerClient, args) -> None:
    def on_stats(stats: Stats, error: Optional[Exception]) -> None:
        if error is not None:
            err_console.print(f"[red]Stats stream error:[/red] {error}")
        else:
            console.print(format_stats(args.container, stats))

    if args.once:
        console.print(format_stats(args.container, await docker.get_stats(args.container)))
        return

    token = docker.monitor_stats(args.container, on_stats)
    await wait_until_stopped(docker, token, args.duration)


async def cmd_logs(docker: DockerClient, args) -> None:
    tty = args.tty
    if tty is None:
        tty = (await docker.inspect_container(args.container)).tty

    if not args.follow:
        entries = await docker.container_logs(
            args.container, tty, timestamps=args.timestamps, tail=args.tail
        )
        for entry in entries:
            print_log_entry(entry)
        return

    def on_entry(entry: LogEntry, error: Optional[Exception]) -> None:
        if error is not None:
            err_console.print(f"[red]Log stream error:[/red] {error}")
        else:
            print_log_entry(entry)

    token = docker.monitor_logs(
        args.container, on_entry, tty, timestamps=args.timestamps, tail=args.tail
    )
    await wait_until_stopped(docker, token, args.duration)


async def run(args) -> int:
    config = Settings()
    overrides = {}
    if args.host:
        overrides["daemon_url"] = args.host
    if args.api_version:
        overrides["api_version"] = args.api_version

    handlers = {
        "info": cmd_info,
        "events": cmd_events,
        "stats": cmd_stats,
        "logs": cmd_logs,
    }

    async with DockerClient.from_settings(config, **overrides) as docker:
        try:
            await handlers[args.command](docker, args)
        except DockStreamError as e:
            err_console.print(f"[red]Error:[/red] {e}")
            return 1
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Monitor CLI - Tail daemon events, stats and logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-H", "--host", help="Daemon address (overrides DOCKER_HOST)")
    parser.add_argument("--api-version", help="Remote API version")
    parser.add_argument("--log-level", default="WARNING", help="Client log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # info
    subparsers.add_parser("info", help="Show daemon version and info")

    # events
    events_p = subparsers.add_parser("events", help="Follow or poll daemon events")
    events_p.add_argument("--filters", help="JSON filters, e.g. '{\"type\":[\"container\"]}'")
    events_p.add_argument("--since", type=int, help="Poll events from N seconds ago")
    events_p.add_argument("--until", type=int, help="Poll events up to N seconds ago")
    events_p.add_argument("--duration", type=int, help="Stop following after N seconds")

    # stats
    stats_p = subparsers.add_parser("stats", help="Follow container resource usage")
    stats_p.add_argument("container")
    stats_p.add_argument("--once", action="store_true", help="Print one snapshot and exit")
    stats_p.add_argument("--duration", type=int, help="Stop following after N seconds")

    # logs
    logs_p = subparsers.add_parser("logs", help="Show or follow container logs")
    logs_p.add_argument("container")
    logs_p.add_argument("-f", "--follow", action="store_true")
    logs_p.add_argument("-t", "--timestamps", action="store_true")
    logs_p.add_argument("--tail", type=int)
    logs_p.add_argument(
        "--tty",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Container has a tty (default: inspect the container)",
    )
    logs_p.add_argument("--duration", type=int, help="Stop following after N seconds")

    args = parser.parse_args()
    setup_logging(level=args.log_level, fmt="console")

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
