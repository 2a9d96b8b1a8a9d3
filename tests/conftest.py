"""Shared test fixtures for tasksync."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pytest

from tasksync.models import Task
from tasksync.store import LocalCache
from tasksync.sync.backends import RemoteStore
from tasksync.sync.identity import KeyFormat


class FakeStore(RemoteStore):
    """In-memory remote store with failure injection."""

    def __init__(self, key_format: KeyFormat = KeyFormat.HEX):
        self.key_format = key_format
        self.docs: dict[str, list[Task]] = {}
        self.fail_with: Optional[Exception] = None
        self.is_available = True
        self.on_get: Optional[Callable[[str], None]] = None
        self.puts: list[tuple[str, list[Task]]] = []
        self.gets = 0

    @property
    def name(self) -> str:
        return "fake"

    def available(self) -> bool:
        return self.is_available

    def put(self, key: str, tasks: list[Task]) -> bool:
        if self.fail_with:
            raise self.fail_with
        self.docs[key] = list(tasks)
        self.puts.append((key, list(tasks)))
        return True

    def get(self, key: str) -> Optional[list[Task]]:
        self.gets += 1
        if self.on_get:
            self.on_get(key)
        if self.fail_with:
            raise self.fail_with
        doc = self.docs.get(key)
        return list(doc) if doc is not None else None


def make_task(
    task_id: str = "t1",
    title: str = "Buy milk",
    date: str = "2024-05-01",
    time: str = "09:30",
    completed: bool = False,
) -> Task:
    """Build a Task with sensible defaults."""
    return Task(
        id=task_id,
        title=title,
        description=f"{title} details",
        date=date,
        time=time,
        completed=completed,
    )


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide a temporary app home directory."""
    home = tmp_path / ".tasksync"
    home.mkdir()
    return home


@pytest.fixture
def cache(tmp_home: Path) -> LocalCache:
    return LocalCache(tmp_home)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
