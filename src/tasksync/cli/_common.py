"""Shared utilities for all CLI command modules.

Provides the Rich console instance, engine construction, and status
formatting helpers used across every command group.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from .. import TASKSYNC_HOME
from ..config import AppConfig, load_config
from ..models import SyncStatus
from ..store import LocalCache
from ..sync.backends import RemoteStore, create_backend
from ..sync.engine import StatusCallback, SyncEngine

console = Console()
logger = logging.getLogger("tasksync.cli")

home_option = click.option(
    "--home", default=TASKSYNC_HOME, help="App home directory.", type=click.Path()
)


def status_icon(status: SyncStatus) -> str:
    """Map sync status to a Rich-formatted indicator.

    Args:
        status: Current sync status.

    Returns:
        str: Rich markup string for the status.
    """
    return {
        SyncStatus.SYNCED: "[bold green]SYNCED[/]",
        SyncStatus.SYNCING: "[bold cyan]SYNCING[/]",
        SyncStatus.ERROR: "[bold red]ERROR[/]",
        SyncStatus.OFFLINE: "[dim]OFFLINE[/]",
    }.get(status, "[dim]UNKNOWN[/]")


def open_backend(home_path: Path, config: AppConfig) -> Optional[RemoteStore]:
    try:
        return create_backend(config.sync.backend, home_path)
    except (ValueError, OSError) as exc:
        logger.warning("Remote backend unavailable: %s", exc)
        return None


def open_engine(home: str, on_status: Optional[StatusCallback] = None) -> SyncEngine:
    """Build a SyncEngine for the app home at ``home``."""
    home_path = Path(home).expanduser()
    config = load_config(home_path)
    return SyncEngine(
        LocalCache(home_path),
        open_backend(home_path, config),
        config.sync,
        on_status=on_status,
    )


def print_sync_line(engine: SyncEngine) -> None:
    """One-line sync indicator printed after a mutation."""
    line = f"  Sync: {status_icon(engine.status)}"
    if engine.status in (SyncStatus.ERROR, SyncStatus.OFFLINE) and engine.last_error:
        line += f" [dim]{engine.last_error}[/]"
    console.print(line)


def sync_guidance(kind: Optional[str]) -> Optional[str]:
    """What to tell the user for a given failure class."""
    return {
        "transient": "Network problem; will retry on the next sync.",
        "permission": "The backend refused access. Check its access rules.",
        "configuration": "Configure a backend with: tasksync config set-backend",
        "backend": "The backend rejected the request.",
    }.get(kind or "")
