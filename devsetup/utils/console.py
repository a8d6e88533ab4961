"""Colour-coded user messages.

Every message is printed with a severity prefix and also written to the
``devsetup`` logger, so the rotating log file keeps a copy of what the user saw.
Rendering goes through a shared rich ``Console``; it drops colour on its own
when stdout is not a terminal or NO_COLOR is set.
"""
from __future__ import annotations
import logging

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.text import Text

log = logging.getLogger("devsetup")

term = Console(highlight=False, soft_wrap=True, emoji=False)

SEVERITY_STYLE = {
    "overdue": "red",
    "urgent": "red",
    "soon": "yellow",
    "later": "green",
}


def styled(text: str, style: str = "") -> Text:
    return Text(text, style=style)


def status_text(status: str, completed: bool) -> Text:
    return Text(status, style="green" if completed else "yellow")


def success(message: str) -> None:
    term.print(styled(f"✅ {message}", "green"))
    log.info("[SUCCESS] %s", message)


def info(message: str) -> None:
    term.print(styled(f"ℹ️ {message}", "blue"))
    log.info(message)


def warning(message: str) -> None:
    term.print(styled(f"⚠️ {message}", "yellow"))
    log.warning(message)


def error(message: str) -> None:
    term.print(styled(f"❌ {message}", "red"))
    log.error(message)


def header(title: str) -> None:
    term.rule(styled(title, "bold cyan"), characters="=", style="bold cyan")


def ask(prompt: str, default: str | None = None) -> str:
    raw = Prompt.ask(escape(prompt), console=term, default=default or "", show_default=bool(default))
    return raw.strip() or (default or "")


def confirm(prompt: str, default: bool = False) -> bool:
    return Confirm.ask(escape(prompt), console=term, default=default)
