from __future__ import annotations
import logging
import os
import shutil
import stat
import time
from dataclasses import dataclass, field
from typing import Optional

from devsetup.config import DownloadsSettings
from devsetup.utils.host import WSL, wsl_to_windows_path

log = logging.getLogger(__name__)

CATEGORIES: dict[str, tuple[str, ...]] = {
    "Installers": (".exe", ".msi", ".appx", ".appxbundle", ".msixbundle", ".deb", ".rpm", ".pkg", ".dmg"),
    "Images": (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".svg", ".webp", ".tiff", ".ico"),
    "Documents": (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt", ".rtf",
                  ".odt", ".ods", ".odp", ".md", ".epub"),
    "Archives": (".zip", ".rar", ".7z", ".tar", ".tar.gz", ".tgz", ".gz", ".bz2", ".xz"),
    "Code": (".py", ".js", ".html", ".css", ".java", ".c", ".cpp", ".h", ".sh", ".rb", ".php",
             ".go", ".rs", ".ts", ".json", ".xml", ".yml", ".yaml"),
}

_FLAG_FOR = {
    "Installers": "organize_installers",
    "Images": "organize_images",
    "Documents": "organize_documents",
    "Archives": "organize_archives",
    "Code": "organize_code",
}

CRON_SCHEDULES = {"daily": "0 3 * * *", "weekly": "0 3 * * 0"}


@dataclass
class OrganizeReport:
    moved: dict[str, list[str]] = field(default_factory=dict)
    cleaned: list[str] = field(default_factory=list)

    @property
    def moved_count(self) -> int:
        return sum(len(v) for v in self.moved.values())


@dataclass
class ScheduleArtifacts:
    runner_script: str
    batch_file: Optional[str] = None
    task_script: Optional[str] = None
    cron_line: Optional[str] = None


def category_for(filename: str) -> Optional[str]:
    lower = filename.lower()
    # longest suffix wins so "x.tar.gz" is an archive via ".tar.gz", not ".gz"
    best, best_len = None, 0
    for cat, exts in CATEGORIES.items():
        for ext in exts:
            if lower.endswith(ext) and len(ext) > best_len and len(lower) > len(ext):
                best, best_len = cat, len(ext)
    return best

def unique_destination(folder: str, filename: str) -> str:
    dest = os.path.join(folder, filename)
    if not os.path.exists(dest):
        return dest
    stem, ext = filename, ""
    for e in (".tar.gz",):
        if filename.lower().endswith(e):
            stem, ext = filename[:-len(e)], filename[-len(e):]
            break
    else:
        stem, ext = os.path.splitext(filename)
    n = 1
    while True:
        dest = os.path.join(folder, f"{stem} ({n}){ext}")
        if not os.path.exists(dest):
            return dest
        n += 1


class DownloadsService:
    def __init__(self, settings: DownloadsSettings, platform: str = "linux"):
        self.settings = settings
        self.platform = platform

    def enabled_categories(self) -> list[str]:
        return [c for c in CATEGORIES if getattr(self.settings, _FLAG_FOR[c])]

    def organize(self, now: Optional[float] = None) -> OrganizeReport:
        root = self.settings.downloads_dir
        if not os.path.isdir(root):
            raise ValueError(f"E_DOWNLOADS_DIR_MISSING: {root}")

        enabled = set(self.enabled_categories())
        report = OrganizeReport()
        for entry in sorted(os.scandir(root), key=lambda e: e.name):
            if not entry.is_file(follow_symlinks=False):
                continue
            cat = category_for(entry.name)
            if cat is None or cat not in enabled:
                continue
            target_dir = os.path.join(root, cat)
            os.makedirs(target_dir, exist_ok=True)
            dest = unique_destination(target_dir, entry.name)
            shutil.move(entry.path, dest)
            report.moved.setdefault(cat, []).append(os.path.basename(dest))
            log.info("Moved: %s to %s", entry.name, cat)

        if self.settings.delete_old:
            report.cleaned = self.clean_old_files(now)
        log.info("Downloads organized: %d files moved, %d old files removed",
                 report.moved_count, len(report.cleaned))
        return report

    def clean_old_files(self, now: Optional[float] = None) -> list[str]:
        temp = os.path.join(self.settings.downloads_dir, self.settings.temp_dir)
        os.makedirs(temp, exist_ok=True)
        cutoff = (now if now is not None else time.time()) - self.settings.old_days * 86400
        removed = []
        for root, _dirs, files in os.walk(temp):
            for name in files:
                path = os.path.join(root, name)
                try:
                    if os.path.getmtime(path) < cutoff:
                        os.remove(path)
                        removed.append(path)
                except OSError as e:
                    log.warning("Could not remove %s: %s", path, e)
        return removed

    def write_schedule_artifacts(self, scripts_dir: str, frequency: str = "daily",
                                 logs_dir: Optional[str] = None) -> ScheduleArtifacts:
        """Write a standalone runner plus the platform's scheduling helper."""
        out_dir = os.path.join(scripts_dir, "productivity")
        os.makedirs(out_dir, exist_ok=True)
        runner = os.path.join(out_dir, "organize_downloads.sh")
        with open(runner, "w", encoding="utf-8") as f:
            f.write("#!/bin/bash\n# Organize the Downloads folder\ndevsetup downloads --run\n")
        os.chmod(runner, os.stat(runner).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        artifacts = ScheduleArtifacts(runner_script=runner)

        if self.platform == WSL:
            bat = os.path.join(out_dir, "organize_downloads.bat")
            with open(bat, "w", encoding="utf-8", newline="\r\n") as f:
                f.write("@echo off\n:: Run Downloads Organizer via WSL\n")
                f.write(f'wsl bash -c "{runner}"\n')
            artifacts.batch_file = bat

            ps1 = os.path.join(out_dir, "schedule_downloads_organizer.ps1")
            trigger = "-Daily -At 3am" if frequency != "weekly" else "-Weekly -DaysOfWeek Sunday -At 3am"
            with open(ps1, "w", encoding="utf-8") as f:
                f.write(_TASK_SCHEDULER_PS1.replace("__BAT__", wsl_to_windows_path(bat)).replace("__TRIGGER__", trigger))
            artifacts.task_script = ps1
        else:
            cron = CRON_SCHEDULES.get(frequency)
            if cron is None:
                log.warning("Unknown frequency %r, defaulting to daily", frequency)
                cron = CRON_SCHEDULES["daily"]
            tail = f" >> {os.path.join(logs_dir, 'downloads_organizer.log')} 2>&1" if logs_dir else ""
            artifacts.cron_line = f"{cron} {runner}{tail}"
        return artifacts


_TASK_SCHEDULER_PS1 = """# Register a Windows scheduled task for the Downloads Organizer
# Run this with PowerShell as Administrator

$ErrorActionPreference = "Stop"
$currentPrincipal = New-Object Security.Principal.WindowsPrincipal([Security.Principal.WindowsIdentity]::GetCurrent())
if (-not $currentPrincipal.IsInRole([Security.Principal.WindowsBuiltInRole]::Administrator)) {
    Write-Host "This script needs to be run as Administrator." -ForegroundColor Red
    exit 1
}

try {
    $action = New-ScheduledTaskAction -Execute "cmd.exe" -Argument "/c `"__BAT__`""
    $trigger = New-ScheduledTaskTrigger __TRIGGER__
    Register-ScheduledTask -TaskName "DownloadsOrganizer" -Action $action -Trigger $trigger `
        -Description "Automatically organize Downloads folder" -RunLevel Highest -Force
    Write-Host "Downloads Organizer scheduled task created." -ForegroundColor Green
}
catch {
    Write-Host "Error creating scheduled task: $_" -ForegroundColor Red
    exit 1
}
"""
