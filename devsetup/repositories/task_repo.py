from __future__ import annotations
import logging
import shutil
from datetime import datetime
from typing import Optional

import pandas as pd

from devsetup.domain.models import Task
from devsetup.repositories.csv_repo import CsvTable
from devsetup.utils.ids import new_id
from devsetup.utils.time import stamp

log = logging.getLogger(__name__)

TASK_COLUMNS = ["Name", "Due Date", "Description", "Status", "Course", "UID"]
HEADER_PREFIX = "Name,Due Date,Description,Status"

_FIELD_BY_COLUMN = {
    "Name": "name",
    "Due Date": "due_date",
    "Description": "description",
    "Status": "status",
    "Course": "course",
    "UID": "uid",
}


def _to_task(row: dict) -> Task:
    return Task(**{attr: str(row.get(col, "") or "") for col, attr in _FIELD_BY_COLUMN.items()})

def _to_row(task: Task) -> dict:
    return {col: getattr(task, attr) for col, attr in _FIELD_BY_COLUMN.items()}


class TaskRepo:
    """Rows of ``tasks.csv`` in file order. A row's display ID is its index."""

    def __init__(self, path: str):
        self.path = path
        self.table = CsvTable(path, TASK_COLUMNS)

    def ensure_file(self, now: Optional[datetime] = None) -> Optional[str]:
        """Create the file or repair its header. Returns the backup path when a repair was made."""
        with self.table.lock:
            if not self.table.exists():
                self.table.create()
                return None
            if self.table.first_line().startswith(HEADER_PREFIX):
                return None
            backup = f"{self.path}.backup.{stamp(now)}"
            shutil.copy2(self.path, backup)
            with open(self.path, "r", encoding="utf-8") as f:
                body = f.read()
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(",".join(TASK_COLUMNS) + "\n" + body)
            log.warning("tasks file had no header, repaired (backup: %s)", backup)
            return backup

    def all(self) -> list[Task]:
        with self.table.lock:
            self.ensure_file()
            df = self.table.read()
            tasks = [_to_task(r) for r in df.to_dict("records")]
            missing = [t for t in tasks if not t.uid]
            if missing:
                for t in missing:
                    t.uid = new_id("tsk")
                self._write(tasks)
            return tasks

    def _write(self, tasks: list[Task]) -> None:
        df = pd.DataFrame([_to_row(t) for t in tasks], columns=TASK_COLUMNS, dtype=str)
        self.table.write(df)

    def append(self, task: Task) -> Task:
        with self.table.lock:
            self.ensure_file()
            if not task.uid:
                task.uid = new_id("tsk")
            self.table.append_row(_to_row(task))
        return task

    def replace(self, task: Task) -> bool:
        with self.table.lock:
            tasks = self.all()
            for i, t in enumerate(tasks):
                if t.uid == task.uid:
                    tasks[i] = task
                    self._write(tasks)
                    return True
            return False

    def remove(self, uid: str) -> bool:
        with self.table.lock:
            tasks = self.all()
            kept = [t for t in tasks if t.uid != uid]
            if len(kept) == len(tasks):
                return False
            self._write(kept)
            return True
