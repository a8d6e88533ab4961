from dataclasses import dataclass, field
from typing import Optional

from devsetup.domain.status import PENDING

@dataclass
class Task:
    name: str
    due_date: str
    description: str = ""
    status: str = PENDING
    course: str = ""
    uid: str = ""

    @property
    def folder_name(self) -> str:
        return self.name.replace(" ", "_")

@dataclass
class TaskFile:
    name: str
    size: str

@dataclass
class TaskDetails:
    id: int
    task: Task
    days_until_due: int
    folder: Optional[str] = None
    files: list[TaskFile] = field(default_factory=list)

@dataclass
class ArchiveResult:
    label: str
    path: Optional[str] = None
    size: str = ""
    encrypted: bool = False
    verified: bool = False
    skipped: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped
