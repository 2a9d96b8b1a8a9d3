"""Completion statistics over a task list."""

from __future__ import annotations

from typing import Optional

from .models import Task


def task_stats(
    tasks: list[Task],
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> dict:
    """Summarize completion over an inclusive date range.

    Args:
        tasks: Tasks to summarize.
        start: First day (YYYY-MM-DD), unbounded if None.
        end: Last day (YYYY-MM-DD), unbounded if None.

    Returns:
        Dict with total, completed, pending, completion_rate (percent,
        rounded) and per-day {date: {"total", "completed"}}.
    """
    selected = [
        t for t in tasks
        if (start is None or t.date >= start) and (end is None or t.date <= end)
    ]
    completed = sum(1 for t in selected if t.completed)
    total = len(selected)

    by_date: dict[str, dict[str, int]] = {}
    for task in selected:
        day = by_date.setdefault(task.date, {"total": 0, "completed": 0})
        day["total"] += 1
        if task.completed:
            day["completed"] += 1

    return {
        "total": total,
        "completed": completed,
        "pending": total - completed,
        "completion_rate": round(completed * 100 / total) if total else 0,
        "by_date": dict(sorted(by_date.items())),
    }
