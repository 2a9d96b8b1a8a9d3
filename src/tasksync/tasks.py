"""
Task board -- the mutations the app performs on the task list.

Each mutation builds the complete new collection and hands it to the
sync engine, which writes the local cache before anything else.
"""

from __future__ import annotations

import logging

from .models import Task
from .sync.engine import SyncEngine

logger = logging.getLogger("tasksync.tasks")


def _sort_key(task: Task) -> tuple:
    # all-day tasks ("" time) after timed ones
    return (task.time == "", task.time, task.title.lower())


class TaskBoard:
    """Task list operations backed by a SyncEngine.

    Args:
        engine: Engine owning the local cache and remote sync.
    """

    def __init__(self, engine: SyncEngine):
        self.engine = engine

    @property
    def tasks(self) -> list[Task]:
        return self.engine.load_tasks()

    def get(self, task_id: str) -> Task:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise KeyError(task_id)

    def find(self, prefix: str) -> Task:
        """Look a task up by id or unique id prefix.

        Raises:
            KeyError: If nothing matches, or the prefix is ambiguous.
        """
        matches = [t for t in self.tasks if t.id.startswith(prefix)]
        exact = [t for t in matches if t.id == prefix]
        if exact:
            return exact[0]
        if len(matches) != 1:
            raise KeyError(prefix)
        return matches[0]

    def add(self, task: Task) -> list[Task]:
        tasks = self.tasks + [task]
        self.engine.push(tasks)
        logger.debug("Added task %s", task.id)
        return tasks

    def toggle(self, task_id: str) -> Task:
        """Flip a task's completed flag.

        Returns:
            The updated task.
        """
        tasks = self.tasks
        updated = None
        for i, task in enumerate(tasks):
            if task.id == task_id:
                updated = task.model_copy(update={"completed": not task.completed})
                tasks[i] = updated
                break
        if updated is None:
            raise KeyError(task_id)
        self.engine.push(tasks)
        return updated

    def edit(self, task: Task) -> list[Task]:
        """Replace the task with the same id."""
        tasks = self.tasks
        ids = [t.id for t in tasks]
        if task.id not in ids:
            raise KeyError(task.id)
        tasks[ids.index(task.id)] = task
        self.engine.push(tasks)
        return tasks

    def delete(self, task_id: str) -> list[Task]:
        tasks = self.tasks
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            raise KeyError(task_id)
        self.engine.push(remaining)
        return remaining

    def for_date(self, day: str) -> list[Task]:
        """Tasks on ``day`` ordered by time, all-day tasks last."""
        return sorted((t for t in self.tasks if t.date == day), key=_sort_key)

    def dates_with_tasks(self) -> dict[str, int]:
        """Count of tasks per calendar day."""
        counts: dict[str, int] = {}
        for task in self.tasks:
            counts[task.date] = counts.get(task.date, 0) + 1
        return dict(sorted(counts.items()))

    def clear(self) -> None:
        """Drop every local task. The remote document is not touched."""
        self.engine.cache.clear_tasks()
        logger.info("Cleared local tasks")
