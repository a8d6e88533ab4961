"""``task`` command: the academic tracker from the shell.

Every subcommand prints through ``devsetup.utils.console`` and returns an
exit status; coded ``ValueError``s are reported and turned into status 1.
"""
from __future__ import annotations
import argparse
import logging
import os
import sys
from datetime import date, datetime
from typing import Callable, Optional

from rich import box
from rich.table import Table
from rich.text import Text

from devsetup.config import AcademicSettings, load_config
from devsetup.domain.models import Task
from devsetup.domain.status import ALL_STATUSES, COMPLETED
from devsetup.errors import describe
from devsetup.logger import setup_logging
from devsetup.services import latex_service
from devsetup.services.task_service import TaskService, format_due, is_valid_date
from devsetup.utils import console

log = logging.getLogger(__name__)

NAME_WIDTH = 20
COURSE_WIDTH = 12


def truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[:width - 3] + "..."


def _due_cell(due_date: str, now: Optional[datetime] = None) -> Text:
    try:
        due, sev = format_due(due_date, now)
    except ValueError:
        return console.styled(due_date)
    return console.styled(due, console.SEVERITY_STYLE[sev])


def print_table(rows: list[tuple[int, Task]], empty: str, now: Optional[datetime] = None,
                with_status: bool = True) -> None:
    if not rows:
        console.info(empty)
        return
    table = Table(box=box.SIMPLE_HEAD, header_style="bold cyan")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name", no_wrap=True)
    table.add_column("Due Date")
    if with_status:
        table.add_column("Status", no_wrap=True)
    table.add_column("Course", no_wrap=True)
    for idx, task in rows:
        cells = [console.styled(str(idx)), console.styled(truncate(task.name, NAME_WIDTH)),
                 _due_cell(task.due_date, now)]
        if with_status:
            cells.append(console.status_text(task.status, task.status == COMPLETED))
        cells.append(console.styled(truncate(task.course, COURSE_WIDTH)))
        table.add_row(*cells)
    console.term.print(table, soft_wrap=False)


def prompt_date(ask: Callable[[str, Optional[str]], str], label: str, default: Optional[str] = None) -> str:
    while True:
        value = ask(label, default)
        if is_valid_date(value):
            return value
        console.error(describe(ValueError("E_DATE_INVALID")))


# ---------- subcommands ----------

def cmd_list(svc: TaskService, args) -> int:
    console.header("📋 ALL ACADEMIC TASKS")
    print_table(svc.list_tasks(), "No tasks found. Add a task with 'task add'.")
    return 0

def cmd_pending(svc: TaskService, args) -> int:
    console.header("📋 PENDING ACADEMIC TASKS")
    print_table(svc.list_pending(), "No pending tasks. Great job!", with_status=False)
    return 0

def cmd_today(svc: TaskService, args) -> int:
    console.header("📋 TASKS DUE TODAY")
    print_table(svc.list_due_today(date.today()), "No tasks due today.")
    return 0

def cmd_week(svc: TaskService, args) -> int:
    console.header("📋 TASKS DUE THIS WEEK")
    print_table(svc.list_due_this_week(), "No tasks due this week.")
    return 0

def cmd_add(svc: TaskService, args) -> int:
    name, due = args.name, args.due
    description, course = args.description, args.course
    if name is None:
        console.header("➕ ADD NEW TASK")
        name = console.ask("Task name")
        due = prompt_date(console.ask, "Due date (YYYY-MM-DD)")
        description = console.ask("Description", "")
        course = console.ask("Course (optional)", "")
    elif due is None:
        due = prompt_date(console.ask, "Due date (YYYY-MM-DD)")
    task = svc.add(name, due, description or "", course or "")
    console.success(f"Task added: {task.name}")
    console.info(f"Task folder: {svc.folder_for(task)}")
    return 0

def cmd_complete(svc: TaskService, args) -> int:
    task, changed = svc.complete(args.id)
    if changed:
        console.success(f"Task marked as completed: {task.name}")
    else:
        console.info(f"Task is already completed: {task.name}")
    return 0

def cmd_delete(svc: TaskService, args) -> int:
    _, task = svc.get(args.id)
    if not args.yes and not console.confirm(f"Delete task '{task.name}'?"):
        console.info("Deletion cancelled")
        return 0
    remove = args.remove_folder
    if not args.yes and not remove and os.path.isdir(svc.folder_for(task)):
        remove = console.confirm("Also delete the task folder and its files?")
    svc.delete(args.id, remove_folder=remove)
    console.success(f"Task deleted: {task.name}")
    return 0

def cmd_edit(svc: TaskService, args) -> int:
    flags = {k: getattr(args, k) for k in ("name", "due", "description", "status", "course")}
    if all(v is None for v in flags.values()):
        _, cur = svc.get(args.id)
        console.header("✏️ EDIT TASK")
        console.info("Leave a field empty to keep the current value")
        flags["name"] = console.ask("Name", cur.name)
        flags["due"] = prompt_date(console.ask, "Due date (YYYY-MM-DD)", cur.due_date)
        flags["description"] = console.ask("Description", cur.description)
        flags["course"] = console.ask("Course", cur.course)
        flags["status"] = console.ask(f"Status ({'/'.join(ALL_STATUSES)})", cur.status)
    task = svc.edit(args.id, name=flags["name"], due_date=flags["due"], description=flags["description"],
                    status=flags["status"], course=flags["course"])
    console.success(f"Task updated: {task.name}")
    return 0

def cmd_view(svc: TaskService, args) -> int:
    d = svc.view(args.id)
    t = d.task
    due = _due_cell(t.due_date)
    console.header("📄 TASK DETAILS")
    print(f"{'Name:':<13}{t.name}")
    console.term.print(Text.assemble(f"{'Due Date:':<13}", due))
    print(f"{'Course:':<13}{t.course}")
    print(f"{'Description:':<13}{t.description}")
    console.term.print(Text.assemble(f"{'Status:':<13}", console.status_text(t.status, t.status == COMPLETED)))
    if d.folder is None:
        print(f"{'Folder:':<13}Not created yet")
        return 0
    print(f"{'Folder:':<13}{d.folder}")
    if not d.files:
        print(f"{'Files:':<13}No additional files in folder")
    else:
        print(f"{'Files:':<13}{len(d.files)} files in folder (excluding README)")
        for f in d.files:
            print(f"- {f.name} ({f.size})")
    return 0

def cmd_latex(svc: TaskService, args, author: str = "", uni_dir: str = "") -> int:
    if args.id is not None:
        _, task = svc.get(args.id)
        target, title, course = svc.folder_for(task), task.name, task.course
    else:
        target = os.path.join(uni_dir, latex_service.STANDALONE_DIR)
        title, course = args.title or "Untitled", args.course or ""
    tpl = latex_service.create_template(args.type, title, target, author, course)
    console.success(f"LaTeX template created: {tpl.tex_path}")
    console.info(f"Compile with: {tpl.compile_script}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="task", description="Academic task tracker")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("list", help="List all tasks").set_defaults(func=cmd_list)
    sub.add_parser("pending", help="List pending tasks").set_defaults(func=cmd_pending)
    sub.add_parser("today", help="List tasks due today").set_defaults(func=cmd_today)
    sub.add_parser("week", help="List tasks due in the next 7 days").set_defaults(func=cmd_week)
    sub.add_parser("help", help="Show this help")

    p = sub.add_parser("add", help="Add a task (prompts when --name is omitted)")
    p.add_argument("--name")
    p.add_argument("--due", help="Due date (YYYY-MM-DD)")
    p.add_argument("--description", default="")
    p.add_argument("--course", default="")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("complete", help="Mark a task as completed")
    p.add_argument("id")
    p.set_defaults(func=cmd_complete)

    p = sub.add_parser("delete", help="Delete a task")
    p.add_argument("id")
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p.add_argument("--remove-folder", action="store_true", help="Also delete the task folder")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("edit", help="Edit a task (prompts when no flags are given)")
    p.add_argument("id")
    p.add_argument("--name")
    p.add_argument("--due")
    p.add_argument("--description")
    p.add_argument("--status", choices=ALL_STATUSES)
    p.add_argument("--course")
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("view", help="Show task details")
    p.add_argument("id")
    p.set_defaults(func=cmd_view)

    p = sub.add_parser("latex", help="Create a LaTeX template")
    p.add_argument("id", nargs="?", help="Task ID (omit for a standalone template)")
    p.add_argument("--type", required=True, choices=latex_service.KINDS)
    p.add_argument("--title")
    p.add_argument("--course")
    p.set_defaults(func=cmd_latex)
    return parser


def run(argv: Optional[list[str]], svc: TaskService, author: str = "", uni_dir: str = "") -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command in (None, "help"):
        parser.print_help()
        return 0
    try:
        if args.func is cmd_latex:
            return cmd_latex(svc, args, author=author, uni_dir=uni_dir)
        return args.func(svc, args)
    except ValueError as e:
        console.error(describe(e))
        return 1


def main(argv: Optional[list[str]] = None) -> int:
    cfg = load_config()
    setup_logging(cfg.log_level, cfg.logs_dir)
    settings = AcademicSettings.load(cfg)
    svc = TaskService(settings.tasks_file, settings.academic_dir)
    repaired = svc.repo.ensure_file()
    if repaired:
        console.warning(f"Tasks file had no header; original saved to {repaired}")
    return run(argv, svc, author=settings.author_name, uni_dir=settings.academic_dir)


if __name__ == "__main__":
    sys.exit(main())
