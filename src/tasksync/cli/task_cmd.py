"""Task commands: add, list, done, edit, rm, clear, stats."""

from __future__ import annotations

import json
import sys
from typing import Optional

import click
from pydantic import ValidationError
from rich.table import Table

from ._common import console, home_option, open_engine, print_sync_line
from ..models import Task, local_iso_date, new_task
from ..stats import task_stats
from ..tasks import TaskBoard


def _render_tasks(tasks: list[Task], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("", width=3)
    table.add_column("ID", style="dim")
    table.add_column("Date")
    table.add_column("Time", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Description", style="dim")
    for t in tasks:
        table.add_row(
            "[green]✓[/]" if t.completed else "·",
            t.id[:8],
            t.date,
            t.time or "all day",
            t.title,
            t.description,
        )
    console.print(table)


def _find(board: TaskBoard, task_id: str) -> Task:
    try:
        return board.find(task_id)
    except KeyError:
        console.print(f"[bold red]No unique task matches[/] {task_id}")
        sys.exit(1)


def register_task_commands(main: click.Group) -> None:
    """Register the task command group."""

    @main.group()
    def task():
        """Add, complete, edit, and list tasks."""

    @task.command("add")
    @click.argument("title")
    @click.option("--date", "task_date", default=None, help="Day (YYYY-MM-DD). Defaults to today.")
    @click.option("--time", "task_time", default="", help="Time (HH:MM, 24h). Empty for all day.")
    @click.option("--description", "-d", default="", help="Details.")
    @home_option
    def task_add(title: str, task_date: Optional[str], task_time: str, description: str, home: str):
        """Add a task."""
        try:
            item = new_task(title, task_date, task_time, description)
        except ValidationError as exc:
            console.print(f"[bold red]Invalid task:[/] {exc.errors()[0]['msg']}")
            sys.exit(1)

        engine = open_engine(home)
        TaskBoard(engine).add(item)
        engine.close()
        console.print(f"  Added [cyan]{item.id[:8]}[/] {item.title} ({item.date} {item.time or 'all day'})")
        print_sync_line(engine)

    @task.command("list")
    @click.option("--date", "task_date", default=None, help="Day to show. Defaults to today.")
    @click.option("--all", "show_all", is_flag=True, help="Show every day.")
    @click.option("--json-out", is_flag=True, help="Output as JSON.")
    @home_option
    def task_list(task_date: Optional[str], show_all: bool, json_out: bool, home: str):
        """List tasks for a day."""
        board = TaskBoard(open_engine(home))
        if show_all:
            tasks = sorted(board.tasks, key=lambda t: (t.date, t.time == "", t.time))
            title = "All tasks"
        else:
            day = task_date or local_iso_date()
            tasks = board.for_date(day)
            title = f"Tasks for {day}"

        if json_out:
            click.echo(json.dumps([t.to_wire() for t in tasks], indent=2))
            return
        if not tasks:
            console.print(f"  [dim]{title}: nothing yet.[/]")
            return
        _render_tasks(tasks, title)

    @task.command("done")
    @click.argument("task_id")
    @home_option
    def task_done(task_id: str, home: str):
        """Toggle a task's completed flag."""
        engine = open_engine(home)
        board = TaskBoard(engine)
        updated = board.toggle(_find(board, task_id).id)
        engine.close()
        state = "[green]done[/]" if updated.completed else "[yellow]open[/]"
        console.print(f"  {updated.title}: {state}")
        print_sync_line(engine)

    @task.command("edit")
    @click.argument("task_id")
    @click.option("--title", default=None)
    @click.option("--description", "-d", default=None)
    @click.option("--date", "task_date", default=None)
    @click.option("--time", "task_time", default=None)
    @home_option
    def task_edit(
        task_id: str,
        title: Optional[str],
        description: Optional[str],
        task_date: Optional[str],
        task_time: Optional[str],
        home: str,
    ):
        """Change a task's fields."""
        engine = open_engine(home)
        board = TaskBoard(engine)
        current = _find(board, task_id)
        changes = {
            k: v for k, v in {
                "title": title,
                "description": description,
                "date": task_date,
                "time": task_time,
            }.items()
            if v is not None
        }
        try:
            updated = Task.model_validate({**current.model_dump(), **changes})
        except ValidationError as exc:
            console.print(f"[bold red]Invalid task:[/] {exc.errors()[0]['msg']}")
            sys.exit(1)

        board.edit(updated)
        engine.close()
        console.print(f"  Updated [cyan]{updated.id[:8]}[/] {updated.title}")
        print_sync_line(engine)

    @task.command("rm")
    @click.argument("task_id")
    @home_option
    def task_rm(task_id: str, home: str):
        """Delete a task."""
        engine = open_engine(home)
        board = TaskBoard(engine)
        target = _find(board, task_id)
        board.delete(target.id)
        engine.close()
        console.print(f"  Deleted {target.title}")
        print_sync_line(engine)

    @task.command("clear")
    @click.option("--force", is_flag=True, help="Skip confirmation.")
    @home_option
    def task_clear(force: bool, home: str):
        """Delete every task on this device (the remote copy is kept)."""
        if not force and not click.confirm("Delete all local tasks?"):
            return
        TaskBoard(open_engine(home)).clear()
        console.print("  [yellow]Local tasks cleared.[/]")

    @task.command("stats")
    @click.option("--start", default=None, help="First day (YYYY-MM-DD).")
    @click.option("--end", default=None, help="Last day (YYYY-MM-DD).")
    @click.option("--json-out", is_flag=True, help="Output as JSON.")
    @home_option
    def task_stats_cmd(start: Optional[str], end: Optional[str], json_out: bool, home: str):
        """Completion statistics."""
        stats = task_stats(open_engine(home).load_tasks(), start, end)
        if json_out:
            click.echo(json.dumps(stats, indent=2))
            return

        console.print(
            f"\n  Total: [bold]{stats['total']}[/]  "
            f"Completed: [green]{stats['completed']}[/]  "
            f"Pending: [yellow]{stats['pending']}[/]  "
            f"Rate: [cyan]{stats['completion_rate']}%[/]"
        )
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Day")
        table.add_column("Done", justify="right")
        table.add_column("Total", justify="right")
        for day, counts in stats["by_date"].items():
            table.add_row(day, str(counts["completed"]), str(counts["total"]))
        console.print(table)
        console.print()
