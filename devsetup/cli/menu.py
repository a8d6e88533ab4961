from __future__ import annotations
import logging
import os
from typing import Callable, Optional

from devsetup.config import (
    AcademicSettings, BackupSettings, BrowserSettings, Config, DotfilesSettings, DownloadsSettings,
)
from devsetup.errors import CommandError, describe
from devsetup.integrations.base import Runner
from devsetup.integrations.commands import SubprocessRunner
from devsetup.integrations.git_client import GitClient
from devsetup.cli import task_cli
from devsetup.services.backup_service import BackupService, backup_dir_hints, last_backup, prompt_password
from devsetup.services.browser_service import BROWSERS, SEARCH_ENGINES, BrowserService
from devsetup.services.dotfiles_service import CRON_SCHEDULES, DotfilesService
from devsetup.services.downloads_service import DownloadsService
from devsetup.services.installer_service import InstallerService
from devsetup.services.settings_service import SettingsService
from devsetup.services.task_service import TaskService
from devsetup.services.windows_scripts import WindowsScriptGenerator, launch_hint
from devsetup.services.workspace_service import DATASETS, WorkspaceService
from devsetup.utils import console
from devsetup.utils.host import WSL, vscode_settings_dir

log = logging.getLogger(__name__)

MAIN_MENU = [
    ("1", "🛠️ Dev Environment Setup"),
    ("2", "🌐 Browser & Privacy Settings"),
    ("3", "🤖 AI Workspace Setup"),
    ("4", "🧹 Clean Slate Windows Configuration"),
    ("5", "📁 Downloads Organizer"),
    ("6", "🔄 Dotfiles Syncer"),
    ("7", "💾 System Backup"),
    ("8", "📚 Academic Project Tracker"),
    ("9", "⚙️ Configure All Tools"),
    ("0", "Exit"),
]

CLEAN_SLATE = {"1": "performance", "2": "dev", "3": "wsl", "4": "startup"}


class Services:
    """Builds services on demand from the loaded configuration."""

    def __init__(self, cfg: Config, runner: Optional[Runner] = None):
        self.cfg = cfg
        self.runner = runner or SubprocessRunner()
        self.git = GitClient(self.runner)

    def dotfiles(self) -> DotfilesService:
        settings = DotfilesSettings.load(self.cfg)
        if not settings.vscode_settings_dir:
            found = vscode_settings_dir(self.cfg.platform, self.cfg.home)
            if found:
                settings = settings.update(self.cfg, vscode_settings_dir=found)
        return DotfilesService(settings, self.cfg.home, self.git, self.runner)

    def downloads(self) -> DownloadsService:
        return DownloadsService(DownloadsSettings.load(self.cfg), self.cfg.platform)

    def backup(self) -> BackupService:
        return BackupService(BackupSettings.load(self.cfg), self.cfg.home, self.cfg.scripts_dir,
                             vscode_dir=vscode_settings_dir(self.cfg.platform, self.cfg.home),
                             platform=self.cfg.platform)

    def tasks(self) -> tuple[TaskService, AcademicSettings]:
        settings = AcademicSettings.load(self.cfg)
        return TaskService(settings.tasks_file, settings.academic_dir), settings

    def windows(self, **options) -> WindowsScriptGenerator:
        return WindowsScriptGenerator(os.path.join(self.cfg.scripts_dir, "windows"), **options)


def choose(title: str, options: list[tuple[str, str]]) -> str:
    console.header(title)
    for key, label in options:
        print(f"{key}. {label}")
    print()
    return console.ask("Enter your choice").strip()


def guarded(action: Callable[[], None]) -> bool:
    """Run a menu action, reporting failures instead of leaving the menu."""
    try:
        action()
        return True
    except (ValueError, CommandError, OSError) as e:
        console.error(describe(e))
        log.exception("menu action failed")
        return False


def _pause() -> None:
    input("Press Enter to continue...")


class Menu:
    def __init__(self, services: Services):
        self.s = services
        self.cfg = services.cfg
        self.actions: dict[str, Callable[[], None]] = {
            "1": self.dev_environment,
            "2": self.browser,
            "3": self.ai_workspace,
            "4": self.clean_slate,
            "5": self.downloads,
            "6": self.dotfiles,
            "7": self.backup,
            "8": self.academic,
            "9": self.configure_all,
        }

    def loop(self) -> int:
        while True:
            choice = choose("🚀 DEV SETUP MENU", MAIN_MENU)
            if choice == "0":
                console.info("Goodbye!")
                return 0
            action = self.actions.get(choice)
            if action is None:
                console.warning(f"Invalid choice: {choice}")
                continue
            guarded(action)
            _pause()

    # ---------- 1 ----------

    def dev_environment(self) -> None:
        installer = InstallerService(self.s.runner, self.s.git, self.cfg.home, self.cfg.projects_dir,
                                     self.cfg.platform, ask=console.ask)
        if not console.confirm("Install packages and configure the shell now?", True):
            return
        report = installer.run(self.cfg.user_name, self.cfg.user_email)
        for w in report.warnings:
            console.warning(w)
        if report.aborted:
            console.error(f"Setup aborted: {', '.join(report.failed)} failed")
        elif report.failed:
            console.warning(f"Setup finished with failures: {', '.join(report.failed)}")
        else:
            console.success(f"Development environment ready ({len(report.succeeded)} steps)")
        if report.skipped:
            console.info(f"Skipped: {', '.join(report.skipped)}")

    # ---------- 2 ----------

    def browser(self) -> None:
        svc = BrowserService(self.cfg, BrowserSettings.load(self.cfg), self.s.runner)
        while True:
            choice = choose("🌐 BROWSER & PRIVACY", [
                ("1", "Install browsers"),
                ("2", f"Set default browser (current: {svc.settings.default_browser})"),
                ("3", f"Set default search engine (current: {svc.settings.default_search})"),
                ("4", "Generate Windows privacy script"),
                ("0", "Back"),
            ])
            if choice == "0":
                return
            if choice == "1":
                keys = console.ask(f"Browsers to install ({','.join(BROWSERS)})", "brave")
                report = svc.install([k.strip() for k in keys.split(",") if k.strip()])
                if report.installed:
                    console.success(f"Installed: {', '.join(report.installed)}")
                if report.failed:
                    console.warning(f"Failed: {', '.join(report.failed)}")
            elif choice == "2":
                key = console.ask(f"Default browser ({'/'.join(BROWSERS)})", svc.settings.default_browser)
                if guarded(lambda: svc.set_default_browser(key)):
                    console.success(f"Default browser preference: {key}")
            elif choice == "3":
                key = console.ask(f"Search engine ({'/'.join(SEARCH_ENGINES)})", svc.settings.default_search)
                if guarded(lambda: svc.set_search_engine(key)):
                    console.success(f"Default search engine preference: {key}")
            elif choice == "4":
                ps1, _bat = svc.privacy_script()
                console.success(f"Privacy script written: {ps1}")
                console.info(f"Run from Windows: {launch_hint(ps1)}")
            else:
                console.warning(f"Invalid choice: {choice}")

    # ---------- 3 ----------

    def ai_workspace(self) -> None:
        console.header("🤖 AI WORKSPACE SETUP")
        svc = WorkspaceService(self.cfg.projects_dir, self.s.runner)
        name = console.ask("Project name")
        dataset = console.ask(f"Sample dataset ({'/'.join(DATASETS)})", "none")
        overwrite = False
        if name and os.path.exists(os.path.join(self.cfg.projects_dir, name.strip())):
            overwrite = console.confirm("Project already exists. Back it up and recreate?")
            if not overwrite:
                return
        venv = console.confirm("Create a virtual environment and install requirements?", True)
        report = svc.create_project(name, dataset=dataset, overwrite=overwrite, create_venv=venv)
        if report.backup:
            console.info(f"Previous project moved to {report.backup}")
        for w in report.warnings:
            console.warning(w)
        console.success(f"AI project created at {report.path}")

    # ---------- 4 ----------

    def clean_slate(self) -> None:
        if self.cfg.platform != WSL:
            console.warning("This does not look like WSL; scripts are generated for manual execution on Windows")
            if not console.confirm("Generate them anyway?"):
                return
        gen = self.s.windows()
        while True:
            choice = choose("🧹 CLEAN SLATE WINDOWS CONFIGURATION", [
                ("1", "Performance optimizer"),
                ("2", "Development environment"),
                ("3", "WSL optimizer"),
                ("4", "Startup manager"),
                ("5", "All of the above"),
                ("0", "Back"),
            ])
            if choice == "0":
                return
            if choice == "5":
                written = gen.generate_all()
            elif choice in CLEAN_SLATE:
                written = [gen.generate(CLEAN_SLATE[choice])]
            else:
                console.warning(f"Invalid choice: {choice}")
                continue
            for ps1, _bat in written:
                console.success(f"Generated {ps1}")
                console.info(f"Run as Administrator: {launch_hint(ps1)}")

    # ---------- 5 ----------

    def downloads(self) -> None:
        while True:
            svc = self.s.downloads()
            choice = choose("📁 DOWNLOADS ORGANIZER", [
                ("1", "Organize now"),
                ("2", "Settings"),
                ("3", "Schedule automatic organizing"),
                ("0", "Back"),
            ])
            if choice == "0":
                return
            if choice == "1":
                report = svc.organize()
                for cat, names in report.moved.items():
                    console.info(f"{cat}: {len(names)} files")
                console.success(f"Moved {report.moved_count} files, removed {len(report.cleaned)} old files")
            elif choice == "2":
                self._downloads_settings(svc)
            elif choice == "3":
                freq = console.ask("Frequency (daily/weekly)", "daily")
                art = svc.write_schedule_artifacts(self.cfg.scripts_dir, freq, self.cfg.logs_dir)
                console.success(f"Runner script: {art.runner_script}")
                if art.task_script:
                    console.info(f"Register the task from an elevated PowerShell: {launch_hint(art.task_script)}")
                if art.cron_line:
                    console.info(f"Add to crontab: {art.cron_line}")
            else:
                console.warning(f"Invalid choice: {choice}")

    def _downloads_settings(self, svc: DownloadsService) -> None:
        st = svc.settings
        changes = {"downloads_dir": console.ask("Downloads directory", st.downloads_dir)}
        for flag in ("organize_installers", "organize_images", "organize_documents",
                     "organize_archives", "organize_code", "delete_old"):
            changes[flag] = console.confirm(flag.replace("_", " ").capitalize() + "?", getattr(st, flag))
        days = console.ask("Delete files in Temp older than (days)", str(st.old_days))
        if days.isdigit():
            changes["old_days"] = int(days)
        st.update(self.cfg, **changes)
        console.success("Downloads organizer settings saved")

    # ---------- 6 ----------

    def dotfiles(self) -> None:
        while True:
            svc = self.s.dotfiles()
            choice = choose("🔄 DOTFILES SYNCER", [
                ("1", "Set up repository"),
                ("2", "Back up dotfiles to repository"),
                ("3", "Restore dotfiles from repository"),
                ("4", "Show differences"),
                ("5", "Schedule automatic backups"),
                ("0", "Back"),
            ])
            if choice == "0":
                return
            if choice == "1":
                if not svc.settings.dotfiles_repo:
                    url = console.ask("Dotfiles repository URL")
                    svc.settings = svc.settings.update(self.cfg, dotfiles_repo=url)
                overwrite = os.path.isdir(svc.repo_dir) and not svc.git.is_repo(svc.repo_dir) and \
                    console.confirm(f"{svc.repo_dir} exists and is not a repository. Move it aside?")
                path = svc.setup_repo(overwrite=overwrite)
                console.success(f"Dotfiles repository ready at {path}")
            elif choice == "2":
                report_sync(svc.backup(push=console.confirm("Push to remote?", True)))
            elif choice == "3":
                if console.confirm("Overwrite dotfiles in your home directory?"):
                    report_sync(svc.restore())
            elif choice == "4":
                for d in svc.diff():
                    if d.state == "changed":
                        console.warning(f"{d.name}: changed")
                        print("".join(d.lines))
                    elif d.state != "same":
                        console.info(f"{d.name}: {d.state.replace('_', ' ')}")
            elif choice == "5":
                freq = console.ask(f"Frequency ({'/'.join(CRON_SCHEDULES)})", "daily")
                console.success(f"Scheduled: {svc.install_schedule(freq, self.cfg.logs_dir)}")
            else:
                console.warning(f"Invalid choice: {choice}")

    # ---------- 7 ----------

    def backup(self) -> None:
        console.header("💾 SYSTEM BACKUP")
        last = last_backup(self.cfg.scripts_dir)
        console.info(f"Last backup: {last or 'never'}")
        svc = self.s.backup()
        console.info(f"Destination: {svc.settings.backup_base_dir}")
        if not console.confirm("Start backup now?", True):
            return
        try:
            report = svc.run(password_prompt=prompt_password)
        except ValueError as e:
            console.error(describe(e))
            for hint in backup_dir_hints(svc.settings.backup_base_dir, self.cfg.platform):
                console.info(hint)
            return
        for a in report.archives:
            if a.skipped:
                console.info(f"{a.label}: skipped")
            elif a.ok:
                console.success(f"{a.label}: {a.path} ({a.size})")
            else:
                console.error(f"{a.label}: {a.error}")
        if report.pruned:
            console.info(f"Removed {len(report.pruned)} old backups")
        console.success(f"Backup written to {report.backup_dir}")

    # ---------- 8 ----------

    def academic(self) -> None:
        svc, settings = self.s.tasks()
        svc.repo.ensure_file()
        if svc.seed_example():
            console.info("Added an example assignment to get you started")
        def run(argv: list[str]) -> int:
            # argparse exits on bad arguments
            try:
                return task_cli.run(argv, svc, author=settings.author_name, uni_dir=settings.academic_dir)
            except SystemExit as e:
                console.warning(f"Invalid input: {' '.join(argv)}")
                return e.code if isinstance(e.code, int) else 1

        while True:
            choice = choose("📚 ACADEMIC PROJECT TRACKER", [
                ("1", "List all tasks"),
                ("2", "List pending tasks"),
                ("3", "Tasks due today"),
                ("4", "Tasks due this week"),
                ("5", "Add task"),
                ("6", "View task"),
                ("7", "Edit task"),
                ("8", "Complete task"),
                ("9", "Delete task"),
                ("10", "Create LaTeX template"),
                ("0", "Back"),
            ])
            simple = {"1": "list", "2": "pending", "3": "today", "4": "week", "5": "add"}
            with_id = {"6": "view", "7": "edit", "8": "complete", "9": "delete"}
            if choice == "0":
                return
            if choice in simple:
                run([simple[choice]])
            elif choice in with_id:
                run([with_id[choice], console.ask("Task ID")])
            elif choice == "10":
                kind = console.ask("Template type (assignment/research_paper/lab_report/essay/presentation)", "assignment")
                task_id = console.ask("Task ID (empty for a standalone template)", "")
                argv = ["latex", "--type", kind]
                if task_id:
                    argv.insert(1, task_id)
                else:
                    argv += ["--title", console.ask("Title", "Untitled")]
                run(argv)
            else:
                console.warning(f"Invalid choice: {choice}")

    # ---------- 9 ----------

    def configure_all(self) -> None:
        console.header("⚙️ CONFIGURE ALL TOOLS")
        svc = SettingsService(self.cfg, self.s.git)
        report = svc.configure_all(svc.collect(console.ask))
        console.success(f"Backup path set to {report.backup_base_dir}")
        for key, value in report.git_identity.items():
            console.success(f"git {key} = {value}")
        if report.zsh_theme_set:
            console.success("Zsh theme set to Powerlevel10k")
        if report.vscode_settings:
            console.success(f"VS Code settings written to {report.vscode_settings}")
            if report.vscode_backup:
                console.info(f"Previous settings saved as {report.vscode_backup}")


def report_sync(report) -> None:
    if report.ran_script:
        console.success("restore.sh from the repository was run")
    if report.copied:
        console.success(f"Synced: {', '.join(report.copied)}")
    if report.missing:
        console.info(f"Not found: {', '.join(report.missing)}")
    if report.committed:
        console.success("Changes committed" + (" and pushed" if report.pushed else ""))
    if report.backup_dir:
        console.info(f"Previous files saved to {report.backup_dir}")
    for w in report.warnings:
        console.warning(w)
