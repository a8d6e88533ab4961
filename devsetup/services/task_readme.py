"""Per-task ``README.md`` rendering and in-place field updates."""
from __future__ import annotations
import os
import re

from devsetup.domain.models import Task

README = "README.md"

_TEMPLATE = """# {name}

**Due Date:** {due_date}
**Course:** {course}
**Status:** {status}

## Description
{description}

## Tasks
- [ ] Task 1
- [ ] Task 2

## Notes
-

## Resources
-
"""

def render(task: Task) -> str:
    return _TEMPLATE.format(
        name=task.name,
        due_date=task.due_date,
        course=task.course,
        status=task.status,
        description=task.description,
    )

def write_new(folder: str, task: Task) -> str:
    os.makedirs(folder, exist_ok=True)
    path = os.path.join(folder, README)
    with open(path, "w", encoding="utf-8") as f:
        f.write(render(task))
    return path

def _set_line(text: str, pattern: str, line: str, after: str | None = None) -> str:
    rx = re.compile(pattern, re.MULTILINE)
    if rx.search(text):
        return rx.sub(lambda _: line, text, count=1)
    if after:
        anchor = re.compile(after, re.MULTILINE).search(text)
        if anchor:
            return text[:anchor.end()] + "\n" + line + text[anchor.end():]
    return text

def replace_section(text: str, heading: str, body: str) -> str:
    """Replace everything between ``## <heading>`` and the next ``## `` heading."""
    lines = text.split("\n")
    start = None
    for i, ln in enumerate(lines):
        if ln.strip() == f"## {heading}":
            start = i
            break
    if start is None:
        return text.rstrip("\n") + f"\n\n## {heading}\n{body}\n"
    end = len(lines)
    for j in range(start + 1, len(lines)):
        if lines[j].startswith("## "):
            end = j
            break
    new_body = body.split("\n") if body else [""]
    tail = lines[end:]
    if tail:
        new_body = new_body + [""]
    return "\n".join(lines[:start + 1] + new_body + tail)

def apply(text: str, task: Task) -> str:
    text = _set_line(text, r"^# .*$", f"# {task.name}")
    text = _set_line(text, r"^\*\*Due Date:\*\*.*$", f"**Due Date:** {task.due_date}")
    text = _set_line(text, r"^\*\*Course:\*\*.*$", f"**Course:** {task.course}", after=r"^\*\*Due Date:\*\*.*$")
    text = _set_line(text, r"^\*\*Status:\*\*.*$", f"**Status:** {task.status}")
    return replace_section(text, "Description", task.description)

def update(folder: str, task: Task) -> str:
    """Rewrite the front-matter and description of an existing README, or create one."""
    path = os.path.join(folder, README)
    if not os.path.exists(path):
        return write_new(folder, task)
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    with open(path, "w", encoding="utf-8") as f:
        f.write(apply(text, task))
    return path

def set_status(folder: str, status: str) -> bool:
    path = os.path.join(folder, README)
    if not os.path.exists(path):
        return False
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    with open(path, "w", encoding="utf-8") as f:
        f.write(_set_line(text, r"^\*\*Status:\*\*.*$", f"**Status:** {status}"))
    return True
