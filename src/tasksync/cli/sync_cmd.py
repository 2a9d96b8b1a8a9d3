"""Sync commands: connect, register, disconnect, push, pull, status, watch."""

from __future__ import annotations

import json
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from ._common import (
    console,
    home_option,
    logger,
    open_engine,
    print_sync_line,
    status_icon,
    sync_guidance,
)
from ..models import SyncStatus
from ..sync.engine import SyncEngine
from ..sync.errors import SyncValidationError
from ..sync.models import RegistrationResult

LOG_DIR = "logs"

code_option = click.option(
    "--code",
    prompt="Sync code",
    hide_input=True,
    help="Sync passphrase (prompted if omitted).",
)


def _report_failure(engine: SyncEngine) -> None:
    if engine.status not in (SyncStatus.ERROR, SyncStatus.OFFLINE):
        return
    if engine.last_error:
        console.print(f"  [red]{engine.last_error}[/]")
    hint = sync_guidance(engine.last_error_kind)
    if hint:
        console.print(f"  [dim]{hint}[/]")


def _setup_file_logging(home_path: Path) -> Path:
    """Send engine logs to ``<home>/logs/sync.log`` as well."""
    log_dir = home_path / LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "sync.log"
    handler = logging.FileHandler(log_file)
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s")
    )
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    return log_file


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.group()
    def sync():
        """Passphrase sync — one remote copy shared by every device.

        The sync code never leaves this machine; only a hash of it does.
        """

    @sync.command("connect")
    @code_option
    @home_option
    def sync_connect(code: str, home: str):
        """Sync under an existing (or new) code. Remote tasks win."""
        engine = open_engine(home)
        engine.config.auto_pull = False
        try:
            tasks = engine.connect(code)
        except SyncValidationError as exc:
            console.print(f"[bold red]{exc}[/]")
            sys.exit(1)

        console.print(f"\n  Connected: {len(tasks)} task(s) on this device")
        print_sync_line(engine)
        _report_failure(engine)
        console.print()
        if engine.status == SyncStatus.ERROR:
            sys.exit(1)

    @sync.command("register")
    @code_option
    @home_option
    def sync_register(code: str, home: str):
        """Claim a new code, seeding it with this device's tasks."""
        engine = open_engine(home)
        engine.config.auto_pull = False
        try:
            result = engine.register(code)
        except SyncValidationError as exc:
            console.print(f"[bold red]{exc}[/]")
            sys.exit(1)

        if result == RegistrationResult.CREATED:
            console.print("\n  [green]Registered.[/] Use the same code on your other devices.\n")
        elif result == RegistrationResult.EXISTS:
            console.print(
                "\n  [yellow]That code is already in use.[/] "
                "Pick another, or run [bold]tasksync sync connect[/] to join it.\n"
            )
            sys.exit(1)
        else:
            console.print("\n  [red]Registration failed.[/]")
            _report_failure(engine)
            sys.exit(1)

    @sync.command("disconnect")
    @home_option
    def sync_disconnect(home: str):
        """Stop syncing. Local tasks and the remote copy are both kept."""
        engine = open_engine(home)
        engine.disconnect()
        console.print("  [dim]Sync disconnected. Working locally.[/]")

    @sync.command("push")
    @home_option
    def sync_push(home: str):
        """Send this device's tasks to the remote copy."""
        engine = open_engine(home)
        if not engine.connected:
            console.print("  [yellow]Not connected.[/] Run tasksync sync connect first.")
            sys.exit(1)
        tasks = engine.load_tasks()
        engine.push(tasks)
        engine.close()
        console.print(f"  Pushed {len(tasks)} task(s)")
        print_sync_line(engine)
        _report_failure(engine)
        if engine.status == SyncStatus.ERROR:
            sys.exit(1)

    @sync.command("pull")
    @home_option
    def sync_pull(home: str):
        """Fetch the remote copy; it replaces local tasks if different."""
        engine = open_engine(home)
        if not engine.connected:
            console.print("  [yellow]Not connected.[/] Run tasksync sync connect first.")
            sys.exit(1)
        changed = engine.pull(force=True)
        if changed is None:
            console.print("  [dim]Already up to date.[/]")
        else:
            console.print(f"  [green]Updated:[/] {len(changed)} task(s) from remote")
        print_sync_line(engine)
        _report_failure(engine)
        if engine.status == SyncStatus.ERROR:
            sys.exit(1)

    @sync.command("status")
    @click.option("--json-out", is_flag=True, help="Output as JSON.")
    @home_option
    def sync_status(json_out: bool, home: str):
        """Show sync configuration and state."""
        engine = open_engine(home)
        report = engine.report()
        if json_out:
            click.echo(json.dumps(report, indent=2))
            return

        console.print()
        console.print(
            Panel(
                f"Status: {status_icon(engine.status)}\n"
                f"Backend: [cyan]{report['backend'] or 'none'}[/]"
                f"{'' if report['available'] else ' [yellow](not configured)[/]'}\n"
                f"Key: {report['key'] or '[dim]none[/]'}\n"
                f"Poll interval: {report['poll_interval_seconds']}s\n"
                f"Push delay: {report['push_delay_seconds']}s",
                title="tasksync",
                border_style="magenta",
            )
        )
        console.print()

    @sync.command("watch")
    @click.option("--interval", type=float, default=None, help="Seconds between pulls.")
    @home_option
    def sync_watch(interval: Optional[float], home: str):
        """Keep pulling remote changes until interrupted."""
        home_path = Path(home).expanduser()
        log_file = _setup_file_logging(home_path)

        engine = open_engine(
            home,
            on_status=lambda s: console.print(f"  {status_icon(s)}"),
        )
        if interval:
            engine.config.poll_interval_seconds = interval
        if not engine.start_polling():
            console.print("  [yellow]Not connected.[/] Run tasksync sync connect first.")
            sys.exit(1)

        console.print(
            f"  Watching every {engine.config.poll_interval_seconds}s "
            f"[dim](log: {log_file}, Ctrl-C to stop)[/]"
        )
        stop = threading.Event()
        try:
            while not stop.is_set():
                stop.wait(timeout=1)
        except KeyboardInterrupt:
            pass
        finally:
            engine.close()
            logger.info("Watch stopped")
