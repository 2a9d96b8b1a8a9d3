"""Tests for the assistant glue (extraction -> task, summary prompt)."""

from __future__ import annotations

from tasksync.assistant import (
    ExtractedTask,
    capture_task,
    summary_prompt,
    task_from_extraction,
)
from tasksync.sync.engine import SyncEngine
from tasksync.tasks import TaskBoard

from conftest import make_task


class StubExtractor:
    def __init__(self, result: ExtractedTask):
        self.result = result
        self.audio = None

    def extract(self, audio: bytes) -> ExtractedTask:
        self.audio = audio
        return self.result


def test_task_from_extraction():
    task = task_from_extraction(
        ExtractedTask(title="Dentist", description="Dentist at five", time="17:00"),
        "2024-05-01",
    )
    assert task.generated is True
    assert task.time == "17:00"
    assert task.date == "2024-05-01"
    assert task.completed is False


def test_bad_time_becomes_all_day():
    task = task_from_extraction(ExtractedTask(title="Call", time="5pm"), "2024-05-01")
    assert task.time == ""


def test_blank_title_gets_default():
    task = task_from_extraction(ExtractedTask(title="  "), "2024-05-01")
    assert task.title == "New task"


def test_capture_adds_to_board(cache):
    board = TaskBoard(SyncEngine(cache))
    extractor = StubExtractor(ExtractedTask(title="Buy bread", description="bread"))

    task = capture_task(board, extractor, b"RIFF....", "2024-05-01")

    assert extractor.audio == b"RIFF...."
    assert cache.load_tasks() == [task]


def test_summary_prompt_lists_day_only():
    tasks = [
        make_task("a", "Buy milk", time="09:30"),
        make_task("b", "Gym", time=""),
        make_task("c", "Tomorrow thing", date="2024-05-02"),
    ]
    prompt = summary_prompt(tasks, "2024-05-01")
    assert "- [09:30] Buy milk: Buy milk details" in prompt
    assert "- [all day] Gym" in prompt
    assert "Tomorrow thing" not in prompt


def test_summary_prompt_empty_day():
    assert "(no tasks)" in summary_prompt([], "2024-05-01")
