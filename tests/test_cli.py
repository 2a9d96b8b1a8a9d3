"""Tests for the tasksync CLI.

Covers:
- Backend configuration (config set-backend / show)
- Task commands (add, list, done, rm, stats)
- Sync commands against a local-directory store shared by two homes
- Profile display never leaking the sync code
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tasksync.cli import main

CODE = "family-plan-2024"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def remote_dir(tmp_path: Path) -> Path:
    return tmp_path / "shared"


def _home(tmp_path: Path, runner: CliRunner, remote_dir: Path, name: str) -> str:
    home = str(tmp_path / name)
    result = runner.invoke(
        main,
        ["config", "set-backend", "local", "--local-path", str(remote_dir), "--home", home],
    )
    assert result.exit_code == 0, result.output
    return home


def _list(runner: CliRunner, home: str) -> list[dict]:
    result = runner.invoke(main, ["task", "list", "--all", "--json-out", "--home", home])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def _add(runner: CliRunner, home: str, title: str, time: str = "09:30") -> None:
    result = runner.invoke(
        main,
        ["task", "add", title, "--date", "2024-05-01", "--time", time, "--home", home],
    )
    assert result.exit_code == 0, result.output


class TestHelp:

    @pytest.mark.parametrize("group", ["task", "sync", "profile", "config"])
    def test_group_help(self, runner: CliRunner, group: str):
        result = runner.invoke(main, [group, "--help"])
        assert result.exit_code == 0

    def test_version(self, runner: CliRunner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "tasksync" in result.output


class TestConfig:

    def test_set_backend_written(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        result = runner.invoke(main, ["config", "show", "--home", home])
        assert result.exit_code == 0
        assert "backend_type: local" in result.output

    def test_unknown_backend_rejected(self, runner, tmp_path):
        result = runner.invoke(main, ["config", "set-backend", "ftp", "--home", str(tmp_path)])
        assert result.exit_code != 0


class TestTaskCommands:

    def test_add_and_list(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        _add(runner, home, "Buy milk")
        tasks = _list(runner, home)
        assert [t["title"] for t in tasks] == ["Buy milk"]
        assert tasks[0]["time"] == "09:30"
        assert tasks[0]["completed"] is False

    def test_add_rejects_bad_time(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        result = runner.invoke(main, ["task", "add", "Gym", "--time", "25:00", "--home", home])
        assert result.exit_code == 1
        assert _list(runner, home) == []

    def test_done_and_rm(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        _add(runner, home, "Buy milk")
        task_id = _list(runner, home)[0]["id"]

        result = runner.invoke(main, ["task", "done", task_id[:6], "--home", home])
        assert result.exit_code == 0
        assert _list(runner, home)[0]["completed"] is True

        result = runner.invoke(main, ["task", "rm", task_id, "--home", home])
        assert result.exit_code == 0
        assert _list(runner, home) == []

    def test_unknown_id(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        result = runner.invoke(main, ["task", "done", "nope", "--home", home])
        assert result.exit_code == 1

    def test_stats_json(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        _add(runner, home, "Buy milk")
        _add(runner, home, "Gym", time="")
        result = runner.invoke(main, ["task", "stats", "--json-out", "--home", home])
        assert result.exit_code == 0
        stats = json.loads(result.output)
        assert stats["total"] == 2
        assert stats["completion_rate"] == 0


class TestSyncCommands:

    def test_register_then_connect_other_home(self, runner, tmp_path, remote_dir):
        phone = _home(tmp_path, runner, remote_dir, "phone")
        laptop = _home(tmp_path, runner, remote_dir, "laptop")
        _add(runner, phone, "Buy milk")

        result = runner.invoke(main, ["sync", "register", "--code", CODE, "--home", phone])
        assert result.exit_code == 0, result.output
        assert "Registered." in result.output
        assert len(list(remote_dir.glob("*.json"))) == 1

        result = runner.invoke(main, ["sync", "connect", "--code", CODE, "--home", laptop])
        assert result.exit_code == 0, result.output
        assert [t["title"] for t in _list(runner, laptop)] == ["Buy milk"]

    def test_register_existing_code(self, runner, tmp_path, remote_dir):
        phone = _home(tmp_path, runner, remote_dir, "phone")
        laptop = _home(tmp_path, runner, remote_dir, "laptop")
        runner.invoke(main, ["sync", "register", "--code", CODE, "--home", phone])

        result = runner.invoke(main, ["sync", "register", "--code", CODE, "--home", laptop])
        assert result.exit_code == 1
        assert "already in use" in result.output

    def test_short_code_rejected(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        result = runner.invoke(main, ["sync", "connect", "--code", "abc", "--home", home])
        assert result.exit_code == 1
        assert "at least 4" in result.output

    def test_pull_picks_up_other_device(self, runner, tmp_path, remote_dir):
        phone = _home(tmp_path, runner, remote_dir, "phone")
        laptop = _home(tmp_path, runner, remote_dir, "laptop")
        runner.invoke(main, ["sync", "connect", "--code", CODE, "--home", phone])
        runner.invoke(main, ["sync", "connect", "--code", CODE, "--home", laptop])

        _add(runner, laptop, "Dentist")
        result = runner.invoke(main, ["sync", "pull", "--home", phone])
        assert result.exit_code == 0, result.output
        assert "Updated:" in result.output
        assert [t["title"] for t in _list(runner, phone)] == ["Dentist"]

        result = runner.invoke(main, ["sync", "pull", "--home", phone])
        assert "Already up to date." in result.output

    def test_push_and_pull_need_connection(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        for command in ("push", "pull"):
            result = runner.invoke(main, ["sync", command, "--home", home])
            assert result.exit_code == 1
            assert "Not connected." in result.output

    def test_status_json(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        runner.invoke(main, ["sync", "connect", "--code", CODE, "--home", home])

        result = runner.invoke(main, ["sync", "status", "--json-out", "--home", home])
        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["status"] == "synced"
        assert report["backend"] == "local"
        assert report["key"].endswith("...")
        assert CODE not in result.output

    def test_disconnect(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        runner.invoke(main, ["sync", "connect", "--code", CODE, "--home", home])
        _add(runner, home, "Buy milk")

        result = runner.invoke(main, ["sync", "disconnect", "--home", home])
        assert result.exit_code == 0
        assert "Sync disconnected" in result.output

        report = json.loads(
            runner.invoke(main, ["sync", "status", "--json-out", "--home", home]).output
        )
        assert report["status"] == "offline"
        assert report["key"] is None
        assert [t["title"] for t in _list(runner, home)] == ["Buy milk"]


class TestProfileCommands:

    def test_show_never_prints_code(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        runner.invoke(main, ["sync", "connect", "--code", CODE, "--home", home])

        for args in (["profile", "show"], ["profile", "show", "--json-out"]):
            result = runner.invoke(main, args + ["--home", home])
            assert result.exit_code == 0
            assert CODE not in result.output

    def test_set_name(self, runner, tmp_path, remote_dir):
        home = _home(tmp_path, runner, remote_dir, "a")
        runner.invoke(main, ["profile", "set", "--name", "Ada", "--avatar-seed", "Robo", "--home", home])

        result = runner.invoke(main, ["profile", "show", "--json-out", "--home", home])
        data = json.loads(result.output)
        assert data["name"] == "Ada"
        assert data["avatar_seed"] == "Robo"
        assert data["avatar_url"].endswith("seed=Robo")
        assert data["syncing"] is False
