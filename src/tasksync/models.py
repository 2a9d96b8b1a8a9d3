"""
Pydantic models for tasks, the user profile, and sync state.

Tasks belong to the device. The remote document only ever holds a copy
of the whole collection, never ownership of individual tasks.
"""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

DEFAULT_AVATAR_SEED = "Jarvis"
AVATAR_URL_TEMPLATE = "https://api.dicebear.com/7.x/bottts/svg?seed={seed}"


class SyncStatus(str, Enum):
    """Sync indicator shown next to the task list."""

    SYNCED = "synced"
    SYNCING = "syncing"
    ERROR = "error"
    OFFLINE = "offline"


class Task(BaseModel):
    """A single to-do item on a calendar day.

    ``time`` is 24h ``HH:MM``; an empty string means "all day".
    """

    id: str
    title: str
    description: str = ""
    date: str
    time: str = ""
    completed: bool = False
    generated: Optional[bool] = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        if not DATE_PATTERN.match(value):
            raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
        return value

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        if value and not TIME_PATTERN.match(value):
            raise ValueError(f"time must be HH:MM (24h), got {value!r}")
        return value

    def to_wire(self) -> dict:
        """Serialize for storage, dropping unset optional flags."""
        return self.model_dump(mode="json", exclude_none=True)


class UserProfile(BaseModel):
    """Who is using this device and which passphrase it syncs under.

    ``sync_code`` is the raw secret. It is only ever fed to key
    derivation; the derived key is what crosses the network.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    sync_code: str = Field(default="", alias="syncCode")
    avatar_seed: str = Field(default=DEFAULT_AVATAR_SEED, alias="avatarSeed")

    @property
    def is_syncing(self) -> bool:
        return bool(self.sync_code)


class StoredDocument(BaseModel):
    """Body of the remote document: the full task collection.

    ``last_updated`` is informational. Conflict resolution never reads it.
    """

    model_config = ConfigDict(populate_by_name=True)

    tasks: list[Task] = Field(default_factory=list)
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="lastUpdated",
    )

    def to_wire(self) -> dict:
        return {
            "tasks": [t.to_wire() for t in self.tasks],
            "lastUpdated": self.last_updated.isoformat(),
        }


def new_task(
    title: str,
    task_date: Optional[str] = None,
    time: str = "",
    description: str = "",
    generated: Optional[bool] = None,
) -> Task:
    """Create a task with a fresh opaque id.

    Args:
        title: Short task title.
        task_date: Calendar day (YYYY-MM-DD). Defaults to today.
        time: 24h HH:MM, or empty for all day.
        description: Free text.
        generated: True when the task came from voice extraction.

    Returns:
        The new Task.
    """
    return Task(
        id=uuid.uuid4().hex,
        title=title,
        description=description,
        date=task_date or local_iso_date(),
        time=time,
        completed=False,
        generated=generated,
    )


def local_iso_date(today: Optional[date] = None) -> str:
    """Today's date in device-local time as YYYY-MM-DD."""
    return (today or date.today()).isoformat()


def avatar_url(seed: str) -> str:
    """Avatar image URL for a profile seed."""
    return AVATAR_URL_TEMPLATE.format(seed=quote(seed, safe=""))
