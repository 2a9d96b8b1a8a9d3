"""
Local cache -- the device's durable copy of tasks and profile.

Two whole-value JSON blobs under the app home. Every save replaces the
entire blob atomically, so a crash mid-write leaves the previous value.
Local durability never depends on the network.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from . import TASKSYNC_HOME
from .models import Task, UserProfile

logger = logging.getLogger("tasksync.store")

TASKS_FILE = "tasks.json"
PROFILE_FILE = "profile.json"


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON to ``path`` via a temp file and ``os.replace``.

    Args:
        path: Destination file. Parent directories are created.
        data: JSON-serializable value.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class LocalCache:
    """On-device task and profile storage.

    Args:
        home: App home directory. Defaults to ~/.tasksync.
    """

    def __init__(self, home: Optional[Path] = None):
        self.home = (home or Path(TASKSYNC_HOME)).expanduser()
        self.tasks_file = self.home / TASKS_FILE
        self.profile_file = self.home / PROFILE_FILE

    def save_tasks(self, tasks: list[Task]) -> None:
        """Replace the stored task collection."""
        atomic_write_json(self.tasks_file, [t.to_wire() for t in tasks])
        logger.debug("Saved %d task(s) locally", len(tasks))

    def load_tasks(self) -> list[Task]:
        """Load the stored task collection, or [] if absent or unreadable."""
        if not self.tasks_file.exists():
            return []
        try:
            data = json.loads(self.tasks_file.read_text(encoding="utf-8"))
            return [Task.model_validate(item) for item in data]
        except (json.JSONDecodeError, TypeError, ValidationError) as exc:
            logger.warning("Failed to load local tasks: %s", exc)
            return []

    def save_profile(self, profile: UserProfile) -> None:
        """Replace the stored user profile."""
        atomic_write_json(self.profile_file, profile.model_dump(mode="json"))

    def load_profile(self) -> UserProfile:
        """Load the stored profile, or a fresh local-only profile."""
        if not self.profile_file.exists():
            return UserProfile()
        try:
            data = json.loads(self.profile_file.read_text(encoding="utf-8"))
            return UserProfile.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Failed to load profile: %s", exc)
            return UserProfile()

    def clear_tasks(self) -> None:
        """Forget all local tasks."""
        self.tasks_file.unlink(missing_ok=True)

    def clear(self) -> None:
        """Forget tasks and profile."""
        self.clear_tasks()
        self.profile_file.unlink(missing_ok=True)
