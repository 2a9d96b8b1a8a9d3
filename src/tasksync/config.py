"""
App configuration -- ``<home>/config.yaml``.

Holds the remote backend settings and sync policy. Secrets (API keys)
stay in the environment; the file only names the variable to read.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from .sync.models import SyncConfig

logger = logging.getLogger("tasksync.config")

CONFIG_FILE = "config.yaml"


class AppConfig(BaseModel):
    """Complete configuration for one device."""

    sync: SyncConfig = Field(default_factory=SyncConfig)


def load_config(home: Path) -> AppConfig:
    """Load configuration from disk.

    Args:
        home: App home directory.

    Returns:
        The stored AppConfig, or defaults if missing or invalid.
    """
    config_file = home / CONFIG_FILE
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return AppConfig(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as exc:
            logger.warning("Failed to load config: %s", exc)
    return AppConfig()


def save_config(home: Path, config: AppConfig) -> Path:
    """Persist configuration to disk.

    Returns:
        Path of the written file.
    """
    home.mkdir(parents=True, exist_ok=True)
    config_file = home / CONFIG_FILE
    data = config.model_dump(mode="json", exclude_none=True)
    config_file.write_text(
        yaml.dump(data, default_flow_style=False), encoding="utf-8"
    )
    return config_file
