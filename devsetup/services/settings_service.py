from __future__ import annotations
import json
import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from devsetup.config import BackupSettings, Config
from devsetup.integrations.git_client import GitClient
from devsetup.utils.host import WSL, vscode_settings_dir, windows_to_wsl_path
from devsetup.utils.time import stamp

log = logging.getLogger(__name__)

ZSH_THEME = "powerlevel10k/powerlevel10k"
DEFAULT_WINDOWS_BACKUP = r"G:\My Drive\Backups"

VSCODE_SETTINGS = {
    "editor.fontFamily": "JetBrains Mono, Consolas, 'Courier New', monospace",
    "editor.fontSize": 14,
    "editor.lineHeight": 22,
    "editor.tabSize": 2,
    "editor.formatOnSave": True,
    "editor.defaultFormatter": "esbenp.prettier-vscode",
    "editor.codeActionsOnSave": {"source.fixAll.eslint": "explicit"},
    "editor.bracketPairColorization.enabled": True,
    "editor.guides.bracketPairs": True,
    "editor.minimap.enabled": False,
    "editor.rulers": [80, 100],
    "editor.wordWrap": "on",
    "explorer.confirmDelete": False,
    "explorer.confirmDragAndDrop": False,
    "files.trimTrailingWhitespace": True,
    "files.insertFinalNewline": True,
    "files.exclude": {
        "**/.git": True,
        "**/.DS_Store": True,
        "**/node_modules": True,
        "**/__pycache__": True,
        "**/venv": True,
        ".pytest_cache": True,
        ".coverage": True,
    },
    "terminal.integrated.fontFamily": "JetBrains Mono, Consolas, 'Courier New', monospace",
    "terminal.integrated.fontSize": 14,
    "workbench.editor.enablePreview": False,
    "workbench.startupEditor": "newUntitledFile",
    "javascript.updateImportsOnFileMove.enabled": "always",
    "jupyter.themeMatplotlibPlots": True,
    "jupyter.askForKernelRestart": False,
    "[python]": {"editor.defaultFormatter": "ms-python.black-formatter", "editor.tabSize": 4},
    "[javascript]": {"editor.defaultFormatter": "esbenp.prettier-vscode"},
    "[typescript]": {"editor.defaultFormatter": "esbenp.prettier-vscode"},
}


@dataclass
class WizardAnswers:
    full_name: str
    email: str
    github_user: str
    backup_path: str


@dataclass
class WizardReport:
    backup_base_dir: str = ""
    git_identity: dict[str, str] = field(default_factory=dict)
    zsh_theme_set: bool = False
    vscode_settings: Optional[str] = None
    vscode_backup: Optional[str] = None


def backup_path_from_input(raw: str, platform: str) -> str:
    """On WSL the user types a Windows path (G:\\My Drive\\Backups); store its /mnt form."""
    raw = raw.strip()
    if platform == WSL:
        return windows_to_wsl_path(raw)
    return os.path.expanduser(raw)


def set_zsh_theme(text: str, theme: str = ZSH_THEME) -> tuple[str, bool]:
    if re.search(rf'^ZSH_THEME="{re.escape(theme)}"', text, flags=re.M):
        return text, False
    new, n = re.subn(r'^ZSH_THEME=.*$', f'ZSH_THEME="{theme}"', text, count=1, flags=re.M)
    return new, n > 0


class SettingsService:
    def __init__(self, cfg: Config, git: GitClient, vscode_dir: Optional[str] = None):
        self.cfg = cfg
        self.git = git
        self.vscode_dir = vscode_dir if vscode_dir is not None else vscode_settings_dir(cfg.platform, cfg.home)

    def collect(self, ask: Callable[[str, str], str]) -> WizardAnswers:
        name = ask("Enter your full name for configuration", self.cfg.user_name or self.git.config_get("user.name"))
        email = ask("Enter your email for configuration", self.cfg.user_email or self.git.config_get("user.email"))
        github = ask("Enter your GitHub username", self.cfg.github_user)
        if self.cfg.platform == WSL:
            raw = ask("Enter the Windows path for backups", DEFAULT_WINDOWS_BACKUP)
        else:
            raw = ask("Enter the path for backups", os.path.join(self.cfg.home, "Backups"))
        return WizardAnswers(name, email, github, backup_path_from_input(raw, self.cfg.platform))

    def configure_all(self, answers: WizardAnswers, now: Optional[datetime] = None) -> WizardReport:
        report = WizardReport()

        settings = BackupSettings.load(self.cfg)
        settings.update(self.cfg, backup_base_dir=answers.backup_path)
        report.backup_base_dir = answers.backup_path
        log.info("Backup path set to %s", answers.backup_path)

        for key, value in (("user.name", answers.full_name), ("user.email", answers.email)):
            if value:
                self.git.config_set(key, value)
                report.git_identity[key] = value
        if answers.github_user:
            self.git.config_set("github.user", answers.github_user)
            report.git_identity["github.user"] = answers.github_user

        zshrc = os.path.join(self.cfg.home, ".zshrc")
        if os.path.isfile(zshrc):
            with open(zshrc, "r", encoding="utf-8") as f:
                text, changed = set_zsh_theme(f.read())
            if changed:
                with open(zshrc, "w", encoding="utf-8") as f:
                    f.write(text)
                report.zsh_theme_set = True

        if self.vscode_dir:
            report.vscode_settings, report.vscode_backup = self.write_vscode_settings(now)
        return report

    def write_vscode_settings(self, now: Optional[datetime] = None) -> tuple[str, Optional[str]]:
        os.makedirs(self.vscode_dir, exist_ok=True)
        path = os.path.join(self.vscode_dir, "settings.json")
        backup = None
        if os.path.exists(path):
            backup = f"{path}.backup.{stamp(now)}"
            shutil.copy2(path, backup)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(VSCODE_SETTINGS, f, indent=4)
            f.write("\n")
        log.info("VS Code settings written to %s", path)
        return path, backup
