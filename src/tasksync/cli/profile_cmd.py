"""Profile and config commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.panel import Panel

from ._common import console, home_option
from ..config import load_config, save_config
from ..models import avatar_url
from ..store import LocalCache
from ..sync.models import SyncBackendType


def register_profile_commands(main: click.Group) -> None:
    """Register the profile and config command groups."""

    @main.group()
    def profile():
        """Your name and avatar on this device."""

    @profile.command("show")
    @click.option("--json-out", is_flag=True, help="Output as JSON.")
    @home_option
    def profile_show(json_out: bool, home: str):
        """Show the profile. The sync code itself is never printed."""
        prof = LocalCache(Path(home).expanduser()).load_profile()
        data = {
            "name": prof.name,
            "avatar_seed": prof.avatar_seed,
            "avatar_url": avatar_url(prof.avatar_seed),
            "syncing": prof.is_syncing,
        }
        if json_out:
            click.echo(json.dumps(data, indent=2))
            return
        console.print(
            Panel(
                f"Name: [bold]{prof.name or '[dim]unset[/]'}[/]\n"
                f"Avatar: {data['avatar_url']}\n"
                f"Sync: {'[green]on[/]' if prof.is_syncing else '[dim]off[/]'}",
                title="Profile",
                border_style="bright_blue",
            )
        )

    @profile.command("set")
    @click.option("--name", default=None)
    @click.option("--avatar-seed", default=None)
    @home_option
    def profile_set(name: Optional[str], avatar_seed: Optional[str], home: str):
        """Update name or avatar seed."""
        cache = LocalCache(Path(home).expanduser())
        prof = cache.load_profile()
        if name is not None:
            prof.name = name.strip()
        if avatar_seed is not None:
            prof.avatar_seed = avatar_seed.strip() or prof.avatar_seed
        cache.save_profile(prof)
        console.print(f"  Profile saved for [cyan]{prof.name or 'unnamed'}[/]")

    @main.group()
    def config():
        """Remote backend and sync policy."""

    @config.command("show")
    @home_option
    def config_show(home: str):
        """Print the effective configuration."""
        cfg = load_config(Path(home).expanduser())
        click.echo(yaml.dump(cfg.model_dump(mode="json"), default_flow_style=False))

    @config.command("set-backend")
    @click.argument("backend_type", type=click.Choice([b.value for b in SyncBackendType]))
    @click.option("--base-url", default=None, help="JSON blob store URL.")
    @click.option("--project-id", default=None, help="Firestore project.")
    @click.option("--collection", default=None, help="Firestore collection.")
    @click.option("--api-key-env", default=None, help="Env var holding the Firestore API key.")
    @click.option("--local-path", default=None, type=click.Path(), help="Local store directory.")
    @click.option("--poll-interval", type=float, default=None, help="Seconds between pulls.")
    @click.option("--push-delay", type=float, default=None, help="Batch pushes within this many seconds.")
    @home_option
    def config_set_backend(
        backend_type: str,
        base_url: Optional[str],
        project_id: Optional[str],
        collection: Optional[str],
        api_key_env: Optional[str],
        local_path: Optional[str],
        poll_interval: Optional[float],
        push_delay: Optional[float],
        home: str,
    ):
        """Choose the remote backend."""
        home_path = Path(home).expanduser()
        cfg = load_config(home_path)
        backend = cfg.sync.backend
        backend.backend_type = SyncBackendType(backend_type)
        if base_url is not None:
            backend.base_url = base_url
        if project_id is not None:
            backend.project_id = project_id
        if collection is not None:
            backend.collection = collection
        if api_key_env is not None:
            backend.api_key_env_var = api_key_env
        if local_path is not None:
            backend.local_path = Path(local_path)
        if poll_interval is not None:
            cfg.sync.poll_interval_seconds = poll_interval
        if push_delay is not None:
            cfg.sync.push_delay_seconds = push_delay

        path = save_config(home_path, cfg)
        console.print(f"  Backend set to [cyan]{backend_type}[/] [dim]({path})[/]")
