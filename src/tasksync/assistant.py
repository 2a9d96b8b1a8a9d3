"""
Assistant collaborators -- voice capture, daily summaries, speech.

The speech-to-text / LLM / TTS services are external. Only the shapes
the task core needs from them live here, plus the glue that turns an
extraction into a task and a day into a summary prompt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

from pydantic import BaseModel

from .models import TIME_PATTERN, Task, new_task

if TYPE_CHECKING:
    from .tasks import TaskBoard

ALL_DAY_LABEL = "all day"


class ExtractedTask(BaseModel):
    """What a speech/LLM service pulls out of a dictated task."""

    title: str
    description: str = ""
    time: Optional[str] = None


class TaskExtractor(Protocol):
    def extract(self, audio: bytes) -> ExtractedTask:
        """Transcribe ``audio`` and extract one task from it."""


class DailySummarizer(Protocol):
    def summarize(self, tasks: list[Task], day: str) -> str:
        """Write a short spoken-style summary of the day's tasks."""


class SpeechSynthesizer(Protocol):
    def speak(self, text: str) -> bytes:
        """Render ``text`` as audio."""


def task_from_extraction(result: ExtractedTask, day: str) -> Task:
    """Build a generated task on ``day`` from an extraction result.

    A missing or malformed time makes the task all-day.
    """
    time = result.time or ""
    if time and not TIME_PATTERN.match(time):
        time = ""
    return new_task(
        title=result.title.strip() or "New task",
        task_date=day,
        time=time,
        description=result.description,
        generated=True,
    )


def summary_prompt(tasks: list[Task], day: str) -> str:
    """Render the day's task list for a summarizer."""
    lines = [
        f"- [{t.time or ALL_DAY_LABEL}] {t.title}: {t.description}"
        for t in tasks
        if t.date == day
    ]
    listing = "\n".join(lines) if lines else "(no tasks)"
    return (
        f"Today is {day}.\n"
        f"These are the user's tasks for today:\n{listing}\n\n"
        "Write a short, friendly spoken summary of the day in under 100 words. "
        "Mention how busy the day is and highlight the most important items."
    )


def capture_task(
    board: TaskBoard, extractor: TaskExtractor, audio: bytes, day: str
) -> Task:
    """Extract a task from dictated ``audio`` and add it to ``board``.

    Args:
        board: TaskBoard receiving the task.
        extractor: Speech/LLM service.
        audio: Recorded audio.
        day: Calendar day the task belongs to.

    Returns:
        The added task.
    """
    task = task_from_extraction(extractor.extract(audio), day)
    board.add(task)
    return task
