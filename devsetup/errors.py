from __future__ import annotations
from typing import Sequence

MESSAGES = {
    "E_TASK_NOT_FOUND": "Task not found. Use 'task list' to see valid IDs.",
    "E_TASK_ID_INVALID": "Task ID must be a non-negative number.",
    "E_DATE_INVALID": "Invalid date format. Please use YYYY-MM-DD.",
    "E_NAME_EMPTY": "Name cannot be empty.",
    "E_STATUS_INVALID": "Status must be Pending or Completed.",
    "E_REPO_URL_MISSING": "Dotfiles repository URL is not configured.",
    "E_PROJECT_EXISTS": "A project with that name already exists.",
    "E_DOWNLOADS_DIR_MISSING": "Downloads directory does not exist.",
    "E_BACKUP_DIR": "Could not create the backup directory.",
    "E_TEMPLATE_KIND": "Unknown template type.",
    "E_WINDOWS_SCRIPT": "Unknown Windows script.",
    "E_NO_NETWORK": "No internet connection.",
    "E_SCHEDULE_INVALID": "Schedule must be daily, weekly or monthly.",
    "E_DATASET_INVALID": "Dataset must be none, mnist, iris, cifar10 or boston.",
    "E_BROWSER_INVALID": "Unknown browser.",
    "E_SEARCH_INVALID": "Unknown search engine.",
}


class CommandError(RuntimeError):
    def __init__(self, cmd: Sequence[str], returncode: int, output: str = ""):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        super().__init__(f"{' '.join(self.cmd)} exited with {returncode}")


def describe(exc: Exception) -> str:
    """Human-readable text for an ``E_*`` coded ValueError (or any exception)."""
    code = str(exc)
    head = code.split(":", 1)[0]
    if head in MESSAGES:
        detail = code[len(head) + 1:].strip()
        return f"{MESSAGES[head]} ({detail})" if detail else MESSAGES[head]
    return code
