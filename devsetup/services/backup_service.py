from __future__ import annotations
import getpass
import logging
import os
import shutil
import socket
import stat
import tarfile
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from devsetup.config import BackupSettings
from devsetup.domain.models import ArchiveResult
from devsetup.utils.crypto import decrypt_file, encrypt_file
from devsetup.utils.host import WSL
from devsetup.utils.time import backup_stamp, human_size

log = logging.getLogger(__name__)

EXCLUDED_DIRS = {"node_modules", ".git", "venv", "__pycache__", ".ipynb_checkpoints", "dist", "build"}
CONFIG_FILES = [".zshrc", ".bashrc", ".bash_aliases", ".gitconfig", ".vimrc", ".tmux.conf", ".ssh/config"]
VSCODE_FILES = ["settings.json", "keybindings.json"]
LAST_BACKUP_FILE = "last_backup.txt"

PasswordPrompt = Callable[[], Optional[str]]


@dataclass
class BackupReport:
    backup_dir: str
    stamp: str
    archives: list[ArchiveResult] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)
    summary_path: Optional[str] = None
    restore_script: Optional[str] = None

    @property
    def ok(self) -> bool:
        return all(a.error is None for a in self.archives)


def exclude_filter(info: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
    # the archive root itself is never excluded, only directories below it
    parts = info.name.split("/")[1:]
    if any(p in EXCLUDED_DIRS for p in parts):
        return None
    return info

def backup_dir_hints(base_dir: str, platform: str) -> list[str]:
    if platform == WSL and base_dir.startswith("/mnt/") and len(base_dir) > 5:
        drive = base_dir[5].upper()
        return [
            f"Drive {drive}: may not be mounted in WSL (try: sudo mkdir -p /mnt/{drive.lower()} && "
            f"sudo mount -t drvfs {drive}: /mnt/{drive.lower()})",
            "Google Drive may not be running in Windows, or its drive letter differs",
            "Create the folder from Windows Explorer first and retry",
        ]
    return ["Make sure the path exists and is writable"]

def prompt_password() -> Optional[str]:
    pw = getpass.getpass("Enter encryption password: ")
    return pw or None


class BackupService:
    def __init__(self, settings: BackupSettings, home: str, scripts_dir: str,
                 vscode_dir: Optional[str] = None, platform: str = "linux"):
        self.settings = settings
        self.home = home
        self.scripts_dir = scripts_dir
        self.vscode_dir = vscode_dir
        self.platform = platform
        self._password: Optional[str] = None

    # ---------- password ----------

    def _resolve_password(self, prompt: Optional[PasswordPrompt]) -> Optional[str]:
        if not self.settings.backup_encryption:
            return None
        if self._password is None:
            self._password = self.settings.encryption_password or None
            if self._password is None and prompt is not None:
                # prompted passwords are never written back to backup.conf
                self._password = prompt()
            if not self._password:
                log.warning("Encryption enabled but no password given, archives stay unencrypted")
                self._password = ""
        return self._password or None

    # ---------- stages ----------

    def create_archive(self, source_dir: str, label: str, backup_dir: str, stamp: str) -> ArchiveResult:
        result = ArchiveResult(label=label)
        if not os.path.isdir(source_dir):
            log.info("Directory not found: %s, skipping %s", source_dir, label)
            result.skipped = True
            return result
        path = os.path.join(backup_dir, f"{label}_{stamp}.tar.gz")
        try:
            with tarfile.open(path, "w:gz") as tar:
                tar.add(source_dir, arcname=os.path.basename(os.path.normpath(source_dir)), filter=exclude_filter)
        except (OSError, tarfile.TarError) as e:
            log.error("Failed to create backup for %s: %s", label, e)
            result.error = f"archive failed: {e}"
            return result
        result.path = path
        result.size = human_size(os.path.getsize(path))
        log.info("Created backup: %s (%s)", path, result.size)
        return result

    def encrypt(self, result: ArchiveResult, password: str) -> ArchiveResult:
        if not result.path:
            return result
        enc_path = result.path + ".enc"
        try:
            encrypt_file(result.path, enc_path, password)
        except (OSError, ValueError) as e:
            log.error("Encryption failed for %s, keeping unencrypted archive: %s", result.label, e)
            if os.path.exists(enc_path):
                os.remove(enc_path)
            result.error = f"encryption failed: {e}"
            return result
        os.remove(result.path)
        result.path = enc_path
        result.encrypted = True
        result.size = human_size(os.path.getsize(enc_path))
        log.info("Encrypted backup: %s", enc_path)
        return result

    def verify(self, result: ArchiveResult, password: Optional[str]) -> bool:
        if not result.path or not os.path.exists(result.path):
            return False
        try:
            if result.encrypted:
                with tempfile.TemporaryDirectory() as tmp:
                    plain = os.path.join(tmp, "verify.tar.gz")
                    decrypt_file(result.path, plain, password or "")
                    with tarfile.open(plain, "r:gz") as tar:
                        tar.getmembers()
            else:
                with tarfile.open(result.path, "r:gz") as tar:
                    tar.getmembers()
        except (OSError, ValueError, tarfile.TarError) as e:
            log.error("Verification failed for %s: %s", result.label, e)
            if result.error is None:
                result.error = f"verification failed: {e}"
            result.verified = False
            return False
        result.verified = True
        log.info("Verified backup: %s", result.label)
        return True

    def backup_directory(self, source_dir: str, label: str, backup_dir: str, stamp: str,
                         password: Optional[str]) -> ArchiveResult:
        result = self.create_archive(source_dir, label, backup_dir, stamp)
        if result.path and password:
            self.encrypt(result, password)
        if result.path:
            self.verify(result, password)
        return result

    def collect_configs(self, target: str) -> list[str]:
        copied = []
        for rel in CONFIG_FILES:
            src = os.path.join(self.home, rel)
            if os.path.isfile(src):
                dst = os.path.join(target, rel)
                os.makedirs(os.path.dirname(dst), exist_ok=True)
                shutil.copy2(src, dst)
                copied.append(rel)
        if self.vscode_dir and os.path.isdir(self.vscode_dir):
            vs_target = os.path.join(target, "vscode")
            for name in VSCODE_FILES:
                src = os.path.join(self.vscode_dir, name)
                if os.path.isfile(src):
                    os.makedirs(vs_target, exist_ok=True)
                    shutil.copy2(src, os.path.join(vs_target, name))
                    copied.append(f"vscode/{name}")
            snippets = os.path.join(self.vscode_dir, "snippets")
            if os.path.isdir(snippets):
                shutil.copytree(snippets, os.path.join(vs_target, "snippets"), dirs_exist_ok=True)
                copied.append("vscode/snippets")
        return copied

    def backup_configs(self, backup_dir: str, stamp: str, password: Optional[str]) -> ArchiveResult:
        result = ArchiveResult(label="configs")
        staging = os.path.join(backup_dir, "configs")
        os.makedirs(staging, exist_ok=True)
        copied = self.collect_configs(staging)
        log.info("Collected %d configuration files", len(copied))
        path = os.path.join(backup_dir, f"configs_{stamp}.tar.gz")
        try:
            with tarfile.open(path, "w:gz") as tar:
                tar.add(staging, arcname="configs")
        except (OSError, tarfile.TarError) as e:
            log.error("Failed to compress configuration files: %s", e)
            result.error = f"archive failed: {e}"
            return result
        shutil.rmtree(staging, ignore_errors=True)
        result.path = path
        result.size = human_size(os.path.getsize(path))
        if password:
            self.encrypt(result, password)
        return result

    def write_summary(self, report: BackupReport, now: datetime) -> str:
        s = self.settings
        lines = [
            "=" * 40,
            f"BACKUP SUMMARY - {report.stamp}",
            "=" * 40,
            f"Backup Location: {report.backup_dir}",
            f"Encrypted: {'Yes' if any(a.encrypted for a in report.archives) else 'No'}",
            "",
            "Directories backed up:",
            f"- Projects: {s.projects_dir}",
            f"- University: {s.uni_dir}",
            f"- Configuration Files: {'Yes' if s.backup_config_files else 'No'}",
            "",
            "Archives:",
        ]
        for a in report.archives:
            if a.skipped:
                state = "skipped"
            elif a.error:
                state = a.error
            else:
                state = f"{a.size}{', verified' if a.verified else ''}"
            lines.append(f"- {a.label}: {os.path.basename(a.path) if a.path else '-'} ({state})")
        lines += [
            "",
            f"Date: {now.strftime('%Y-%m-%d %H:%M:%S')}",
            f"Username: {os.getenv('USER', '')}",
            f"Host: {socket.gethostname()}",
            "=" * 40,
        ]
        path = os.path.join(report.backup_dir, "backup_summary.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        return path

    def write_restore_script(self, backup_dir: str, stamp: str) -> str:
        path = os.path.join(backup_dir, "restore_backup.sh")
        script = f"""#!/bin/bash
# Restore script for backup {stamp}
set -e

cd "$(dirname "${{BASH_SOURCE[0]}}")"
TARGET="${{1:-$HOME/restored_{stamp}}}"
mkdir -p "$TARGET"

for archive in *_{stamp}.tar.gz *_{stamp}.tar.gz.enc; do
    [ -e "$archive" ] || continue
    echo "Restoring $archive -> $TARGET"
    if [[ "$archive" == *.enc ]]; then
        openssl enc -d -aes-256-cbc -md sha256 -in "$archive" | tar -xzf - -C "$TARGET"
    else
        tar -xzf "$archive" -C "$TARGET"
    fi
done

echo "Restore completed: $TARGET"
"""
        with open(path, "w", encoding="utf-8") as f:
            f.write(script)
        os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    def prune(self, keep: Optional[str] = None, now: Optional[float] = None) -> list[str]:
        """Remove backup folders whose mtime is older than the retention window."""
        days = self.settings.retention_days
        base = self.settings.backup_base_dir
        if days <= 0 or not os.path.isdir(base):
            return []
        cutoff = (now if now is not None else time.time()) - days * 86400
        removed = []
        for entry in os.scandir(base):
            if not entry.is_dir(follow_symlinks=False) or entry.path == keep:
                continue
            try:
                if entry.stat().st_mtime < cutoff:
                    shutil.rmtree(entry.path)
                    removed.append(entry.path)
                    log.info("Pruned old backup: %s", entry.path)
            except OSError as e:
                log.warning("Could not prune %s: %s", entry.path, e)
        return removed

    # ---------- entry point ----------

    def run(self, password_prompt: Optional[PasswordPrompt] = None, now: Optional[datetime] = None) -> BackupReport:
        now = now or datetime.now()
        ts = backup_stamp(now)
        backup_dir = os.path.join(self.settings.backup_base_dir, ts)
        try:
            os.makedirs(backup_dir, exist_ok=True)
        except OSError as e:
            log.error("Could not create backup directory %s: %s", backup_dir, e)
            raise ValueError(f"E_BACKUP_DIR: {backup_dir}") from e

        log.info("==== Backup started: %s ====", backup_dir)
        report = BackupReport(backup_dir=backup_dir, stamp=ts)
        password = self._resolve_password(password_prompt)

        report.archives.append(self.backup_directory(self.settings.projects_dir, "Projects", backup_dir, ts, password))
        report.archives.append(self.backup_directory(self.settings.uni_dir, "University", backup_dir, ts, password))
        if self.settings.backup_config_files:
            report.archives.append(self.backup_configs(backup_dir, ts, password))

        report.summary_path = self.write_summary(report, now)
        report.restore_script = self.write_restore_script(backup_dir, ts)

        os.makedirs(self.scripts_dir, exist_ok=True)
        with open(os.path.join(self.scripts_dir, LAST_BACKUP_FILE), "w", encoding="utf-8") as f:
            f.write(now.strftime("%Y-%m-%d") + "\n")

        report.pruned = self.prune(keep=backup_dir, now=now.timestamp())
        log.info("==== Backup completed: %s ====", backup_dir)
        return report


def last_backup(scripts_dir: str) -> Optional[str]:
    path = os.path.join(scripts_dir, LAST_BACKUP_FILE)
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return f.read().strip() or None
