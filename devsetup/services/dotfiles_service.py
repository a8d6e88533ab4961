from __future__ import annotations
import difflib
import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from devsetup.config import DotfilesSettings
from devsetup.errors import CommandError
from devsetup.integrations.base import Runner
from devsetup.integrations.git_client import GitClient
from devsetup.utils.checksums import same_content
from devsetup.utils.time import stamp

log = logging.getLogger(__name__)

VSCODE_FILES = ("settings.json", "keybindings.json")
RESTORE_SCRIPT = "restore.sh"
CRON_MARKER = "devsetup dotfiles --backup"

CRON_SCHEDULES = {
    "daily": "0 0 * * *",
    "weekly": "0 0 * * 0",
    "monthly": "0 0 1 * *",
}

_GITIGNORE = """# Ignore temporary files
*.swp
*.swo
*~
.DS_Store

# Ignore sensitive information
.env
.env.*
"""


@dataclass
class SyncReport:
    copied: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    committed: bool = False
    pushed: bool = False
    backup_dir: Optional[str] = None
    ran_script: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class FileDiff:
    name: str
    state: str  # same | changed | only_home | only_repo | missing
    lines: list[str] = field(default_factory=list)


class DotfilesService:
    def __init__(self, settings: DotfilesSettings, home: str, git: GitClient, runner: Runner):
        self.settings = settings
        self.home = home
        self.git = git
        self.runner = runner

    @property
    def repo_dir(self) -> str:
        return self.settings.dotfiles_dir

    def _pairs(self) -> list[tuple[str, str, str]]:
        """(display name, home path, repo path) for every synced file."""
        out = [(f, os.path.join(self.home, f), os.path.join(self.repo_dir, f)) for f in self.settings.sync_files]
        vs = self.settings.vscode_settings_dir
        if self.settings.sync_vscode and vs:
            for name in VSCODE_FILES:
                out.append((f"vscode/{name}", os.path.join(vs, name), os.path.join(self.repo_dir, "vscode", name)))
        return out

    def _snippets(self) -> Optional[tuple[str, str]]:
        vs = self.settings.vscode_settings_dir
        if self.settings.sync_vscode and vs:
            return os.path.join(vs, "snippets"), os.path.join(self.repo_dir, "vscode", "snippets")
        return None

    # ---------- repository ----------

    def _write_skeleton(self) -> None:
        files = "\n".join(f"- `{f}`" for f in self.settings.sync_files)
        readme = (
            "# Dotfiles\n\n"
            "Personal dotfiles, synced with `devsetup dotfiles`.\n\n"
            f"## Files\n\n{files}\n\n"
            "## Restore\n\n"
            "```bash\n"
            f"git clone {self.settings.dotfiles_repo} ~/.dotfiles\n"
            "devsetup dotfiles --restore\n"
            "```\n"
        )
        with open(os.path.join(self.repo_dir, "README.md"), "w", encoding="utf-8") as f:
            f.write(readme)
        with open(os.path.join(self.repo_dir, ".gitignore"), "w", encoding="utf-8") as f:
            f.write(_GITIGNORE)

    def _init_repo(self) -> None:
        s = self.settings
        self.git.init(self.repo_dir, s.dotfiles_branch)
        self.git.set_remote(self.repo_dir, s.dotfiles_repo)
        self._write_skeleton()
        self.git.add_all(self.repo_dir)
        self.git.commit(self.repo_dir, "Initial dotfiles setup")
        log.info("Initialized new dotfiles repository at %s", self.repo_dir)

    def setup_repo(self, overwrite: bool = False, now: Optional[datetime] = None) -> str:
        s = self.settings
        if not s.dotfiles_repo:
            raise ValueError("E_REPO_URL_MISSING")

        if os.path.isdir(self.repo_dir):
            if overwrite:
                moved = f"{self.repo_dir}.backup.{stamp(now)}"
                shutil.move(self.repo_dir, moved)
                log.info("Existing dotfiles directory moved to %s", moved)
            else:
                if not self.git.is_repo(self.repo_dir):
                    self.git.init(self.repo_dir, s.dotfiles_branch)
                if self.git.remote_url(self.repo_dir) != s.dotfiles_repo:
                    self.git.set_remote(self.repo_dir, s.dotfiles_repo)
                self.git.checkout(self.repo_dir, s.dotfiles_branch, create=True)
                try:
                    self.git.pull(self.repo_dir, s.dotfiles_branch)
                except CommandError as e:
                    log.warning("Pull failed, continuing with local repository: %s", e)
                return self.repo_dir

        try:
            self.git.clone(s.dotfiles_repo, self.repo_dir)
        except CommandError as e:
            # an empty remote cannot be cloned, start a fresh repository instead
            log.warning("Clone failed (%s), initializing a new repository", e)
            if os.path.isdir(self.repo_dir) and not os.listdir(self.repo_dir):
                os.rmdir(self.repo_dir)
            self._init_repo()
            return self.repo_dir
        self.git.checkout(self.repo_dir, s.dotfiles_branch, create=True)
        return self.repo_dir

    # ---------- sync ----------

    def backup(self, push: bool = True, now: Optional[datetime] = None) -> SyncReport:
        """Copy files HOME -> repository, commit when something changed, optionally push."""
        report = SyncReport()
        if not self.git.is_repo(self.repo_dir):
            self.setup_repo()
        self.git.checkout(self.repo_dir, self.settings.dotfiles_branch, create=True)

        for name, home_path, repo_path in self._pairs():
            if not os.path.isfile(home_path):
                report.missing.append(name)
                continue
            os.makedirs(os.path.dirname(repo_path), exist_ok=True)
            shutil.copy2(home_path, repo_path)
            report.copied.append(name)
        snippets = self._snippets()
        if snippets and os.path.isdir(snippets[0]):
            shutil.copytree(snippets[0], snippets[1], dirs_exist_ok=True)
            report.copied.append("vscode/snippets")

        if not self.git.is_dirty(self.repo_dir):
            log.info("No changes to dotfiles detected")
            return report

        ts = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
        self.git.add_all(self.repo_dir)
        self.git.commit(self.repo_dir, f"Update dotfiles - {ts}")
        report.committed = True

        if push:
            try:
                self.git.push(self.repo_dir, self.settings.dotfiles_branch)
                report.pushed = True
            except CommandError as e:
                report.warnings.append(f"push failed: {e}")
                log.warning("Failed to push dotfiles: %s", e)
        return report

    def restore(self, now: Optional[datetime] = None) -> SyncReport:
        """Repository -> HOME. Existing files are copied aside first; nothing is merged."""
        s = self.settings
        report = SyncReport()
        if not self.git.is_repo(self.repo_dir):
            if not s.dotfiles_repo:
                raise ValueError("E_REPO_URL_MISSING")
            self.git.clone(s.dotfiles_repo, self.repo_dir, branch=s.dotfiles_branch)
        else:
            self.git.checkout(self.repo_dir, s.dotfiles_branch)
            try:
                self.git.pull(self.repo_dir, s.dotfiles_branch)
            except CommandError as e:
                report.warnings.append(f"pull failed: {e}")
                log.warning("Failed to pull latest dotfiles, using local copy: %s", e)

        script = os.path.join(self.repo_dir, RESTORE_SCRIPT)
        if os.path.isfile(script):
            log.info("Running %s", script)
            self.runner.run(["bash", script], cwd=self.repo_dir)
            report.ran_script = True
            return report

        backup_dir = os.path.join(self.home, f".dotfiles_backup_{stamp(now)}")
        for name, home_path, repo_path in self._pairs():
            if not os.path.isfile(repo_path):
                report.missing.append(name)
                continue
            if os.path.isfile(home_path):
                aside = os.path.join(backup_dir, name)
                os.makedirs(os.path.dirname(aside), exist_ok=True)
                shutil.copy2(home_path, aside)
            os.makedirs(os.path.dirname(home_path), exist_ok=True)
            shutil.copy2(repo_path, home_path)
            report.copied.append(name)
        snippets = self._snippets()
        if snippets and os.path.isdir(snippets[1]):
            shutil.copytree(snippets[1], snippets[0], dirs_exist_ok=True)
            report.copied.append("vscode/snippets")

        if os.path.isdir(backup_dir) and os.listdir(backup_dir):
            report.backup_dir = backup_dir
            log.info("Previous dotfiles saved to %s", backup_dir)
        return report

    def diff(self) -> list[FileDiff]:
        out = []
        for name, home_path, repo_path in self._pairs():
            in_home, in_repo = os.path.isfile(home_path), os.path.isfile(repo_path)
            if not in_home and not in_repo:
                out.append(FileDiff(name, "missing"))
            elif not in_repo:
                out.append(FileDiff(name, "only_home"))
            elif not in_home:
                out.append(FileDiff(name, "only_repo"))
            elif same_content(home_path, repo_path):
                out.append(FileDiff(name, "same"))
            else:
                with open(repo_path, "r", encoding="utf-8", errors="replace") as f:
                    a = f.readlines()
                with open(home_path, "r", encoding="utf-8", errors="replace") as f:
                    b = f.readlines()
                lines = list(difflib.unified_diff(a, b, fromfile=f"repository/{name}", tofile=f"home/{name}"))
                out.append(FileDiff(name, "changed", lines))
        return out

    # ---------- scheduling ----------

    def schedule_line(self, frequency: str, logs_dir: str) -> str:
        cron = CRON_SCHEDULES.get(frequency)
        if cron is None:
            raise ValueError(f"E_SCHEDULE_INVALID: {frequency}")
        log_file = os.path.join(logs_dir, "dotfiles_backup_cron.log")
        return f"{cron} {CRON_MARKER} >> {log_file} 2>&1"

    def install_schedule(self, frequency: str, logs_dir: str) -> str:
        line = self.schedule_line(frequency, logs_dir)
        current = self.runner.run(["crontab", "-l"], check=False)
        kept = [ln for ln in current.stdout.splitlines() if ln.strip() and CRON_MARKER not in ln] if current.ok else []
        kept.append(line)
        self.runner.run(["crontab", "-"], input="\n".join(kept) + "\n")
        log.info("Dotfiles backup scheduled: %s", line)
        return line
