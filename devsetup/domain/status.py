from typing import Literal

TaskStatus = Literal["Pending", "Completed"]

PENDING = "Pending"
COMPLETED = "Completed"

ALL_STATUSES: tuple[TaskStatus, ...] = (PENDING, COMPLETED)

Severity = Literal["overdue", "urgent", "soon", "later"]

OVERDUE = "overdue"
URGENT = "urgent"
SOON = "soon"
LATER = "later"
