from __future__ import annotations
import logging
import os
import re
import shutil
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional, Union

from devsetup.domain.models import Task, TaskDetails, TaskFile
from devsetup.domain.status import ALL_STATUSES, COMPLETED, LATER, OVERDUE, PENDING, SOON, URGENT
from devsetup.repositories.task_repo import TaskRepo
from devsetup.services import task_readme
from devsetup.utils.time import human_size

log = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TaskId = Union[int, str]


def parse_date(value: str) -> datetime:
    value = (value or "").strip()
    if not _DATE_RE.match(value):
        raise ValueError("E_DATE_INVALID")
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValueError("E_DATE_INVALID") from None

def is_valid_date(value: str) -> bool:
    try:
        parse_date(value)
    except ValueError:
        return False
    return True

def days_until_due(due_date: str, now: Optional[datetime] = None) -> int:
    """Whole days from ``now`` to local midnight of ``due_date``, truncated toward zero."""
    now = now or datetime.now()
    delta = parse_date(due_date).timestamp() - now.timestamp()
    return int(delta / SECONDS_PER_DAY)

def severity(days: int) -> str:
    if days < 0:
        return OVERDUE
    if days == 0:
        return URGENT
    if days <= 7:
        return SOON
    return LATER

def format_due(due_date: str, now: Optional[datetime] = None) -> tuple[str, str]:
    days = days_until_due(due_date, now)
    if days < 0:
        text = f"{due_date} ({-days} days overdue)"
    elif days == 0:
        text = f"{due_date} (Due today)"
    elif days == 1:
        text = f"{due_date} (Due tomorrow)"
    else:
        text = f"{due_date} (Due in {days} days)"
    return text, severity(days)

def sanitize(value: Optional[str]) -> str:
    return (value or "").replace(",", ";")


class TaskService:
    def __init__(self, tasks_file: str, uni_dir: str):
        self.repo = TaskRepo(tasks_file)
        self.uni_dir = uni_dir

    # ---------- helpers ----------

    def folder_for(self, task: Task) -> str:
        return os.path.join(self.uni_dir, task.folder_name)

    def _resolve(self, task_id: TaskId, tasks: list[Task]) -> int:
        raw = str(task_id).strip()
        if not raw.isdigit():
            raise ValueError("E_TASK_ID_INVALID")
        idx = int(raw)
        if idx >= len(tasks):
            raise ValueError("E_TASK_NOT_FOUND")
        return idx

    # ---------- queries ----------

    def list_tasks(self) -> list[tuple[int, Task]]:
        return list(enumerate(self.repo.all()))

    def list_pending(self) -> list[tuple[int, Task]]:
        return [(i, t) for i, t in self.list_tasks() if t.status != COMPLETED]

    def list_due_today(self, today: Optional[date] = None) -> list[tuple[int, Task]]:
        key = (today or date.today()).isoformat()
        return [(i, t) for i, t in self.list_tasks() if t.due_date == key]

    def list_due_this_week(self, now: Optional[datetime] = None) -> list[tuple[int, Task]]:
        now = now or datetime.now()
        out = []
        for i, t in self.list_tasks():
            try:
                days = days_until_due(t.due_date, now)
            except ValueError:
                log.warning("Task %s has an unreadable due date %r", i, t.due_date)
                continue
            if 0 <= days < 7:
                out.append((i, t))
        return out

    def get(self, task_id: TaskId) -> tuple[int, Task]:
        tasks = self.repo.all()
        idx = self._resolve(task_id, tasks)
        return idx, tasks[idx]

    def view(self, task_id: TaskId, now: Optional[datetime] = None) -> TaskDetails:
        idx, task = self.get(task_id)
        folder = self.folder_for(task)
        files: list[TaskFile] = []
        if os.path.isdir(folder):
            for root, _dirs, names in os.walk(folder):
                for n in sorted(names):
                    full = os.path.join(root, n)
                    rel = os.path.relpath(full, folder)
                    if rel == task_readme.README:
                        continue
                    files.append(TaskFile(name=rel, size=human_size(os.path.getsize(full))))
        else:
            folder = None
        try:
            days = days_until_due(task.due_date, now)
        except ValueError:
            days = 0
        return TaskDetails(id=idx, task=task, days_until_due=days, folder=folder, files=files)

    # ---------- mutations ----------

    def add(self, name: str, due_date: str, description: str = "", course: str = "") -> Task:
        name = sanitize(name).strip()
        if not name:
            raise ValueError("E_NAME_EMPTY")
        parse_date(due_date)
        task = Task(
            name=name,
            due_date=due_date.strip(),
            description=sanitize(description),
            status=PENDING,
            course=sanitize(course).strip(),
        )
        self.repo.append(task)
        task_readme.write_new(self.folder_for(task), task)
        log.info("Task added: %s (due %s)", task.name, task.due_date)
        return task

    def complete(self, task_id: TaskId) -> tuple[Task, bool]:
        with self.repo.table.lock:
            idx, task = self.get(task_id)
            if task.status == COMPLETED:
                return task, False
            done = replace(task, status=COMPLETED)
            self.repo.replace(done)
        task_readme.set_status(self.folder_for(done), COMPLETED)
        log.info("Task %s completed: %s", idx, done.name)
        return done, True

    def edit(self, task_id: TaskId, name: Optional[str] = None, due_date: Optional[str] = None,
             description: Optional[str] = None, status: Optional[str] = None,
             course: Optional[str] = None) -> Task:
        if status is not None and status not in ALL_STATUSES:
            raise ValueError("E_STATUS_INVALID")
        if due_date is not None:
            parse_date(due_date)
        if name is not None and not sanitize(name).strip():
            raise ValueError("E_NAME_EMPTY")

        with self.repo.table.lock:
            idx, old = self.get(task_id)
            new = replace(
                old,
                name=old.name if name is None else sanitize(name).strip(),
                due_date=old.due_date if due_date is None else due_date.strip(),
                description=old.description if description is None else sanitize(description),
                status=old.status if status is None else status,
                course=old.course if course is None else sanitize(course).strip(),
            )
            self.repo.replace(new)

        old_dir, new_dir = self.folder_for(old), self.folder_for(new)
        if old_dir != new_dir and os.path.isdir(old_dir) and not os.path.exists(new_dir):
            shutil.move(old_dir, new_dir)
            log.info("Task folder moved: %s -> %s", old_dir, new_dir)
        task_readme.update(new_dir, new)
        log.info("Task %s updated: %s", idx, new.name)
        return new

    def delete(self, task_id: TaskId, remove_folder: bool = False) -> Task:
        with self.repo.table.lock:
            idx, task = self.get(task_id)
            self.repo.remove(task.uid)
        if remove_folder:
            folder = self.folder_for(task)
            if os.path.isdir(folder):
                shutil.rmtree(folder)
                log.info("Task folder removed: %s", folder)
        log.info("Task %s deleted: %s", idx, task.name)
        return task

    def seed_example(self, today: Optional[date] = None) -> Optional[Task]:
        if self.repo.all():
            return None
        due = (today or date.today()) + timedelta(days=7)
        return self.add(
            "Example Assignment",
            due.isoformat(),
            "This is an example assignment. Replace with your actual tasks.",
        )
