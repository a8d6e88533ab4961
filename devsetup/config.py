from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar

from dotenv import dotenv_values, load_dotenv, set_key

from devsetup.utils.host import WSL, detect_platform, windows_username

log = logging.getLogger(__name__)

DEFAULT_SYNC_FILES = [
    ".zshrc", ".bashrc", ".bash_aliases", ".gitconfig", ".vimrc",
    ".tmux.conf", ".p10k.zsh", ".aliases", ".profile", ".gitignore_global",
]

@dataclass(frozen=True)
class Config:
    home: str
    scripts_dir: str
    config_dir: str
    logs_dir: str
    academic_dir: str
    projects_dir: str
    uni_dir: str
    platform: str
    log_level: str
    user_name: str
    user_email: str
    github_user: str

def load_config() -> Config:
    load_dotenv()

    home = os.path.expanduser(os.getenv("DEVSETUP_HOME") or "~")
    scripts_dir = os.getenv("DEVSETUP_SCRIPTS_DIR") or os.path.join(home, "scripts")
    log_level = (os.getenv("DEVSETUP_LOG_LEVEL", "INFO") or "INFO").upper()

    cfg = Config(
        home=home,
        scripts_dir=scripts_dir,
        config_dir=os.path.join(scripts_dir, "config"),
        logs_dir=os.path.join(scripts_dir, "logs"),
        academic_dir=os.path.join(scripts_dir, "academic"),
        projects_dir=os.getenv("DEVSETUP_PROJECTS_DIR") or os.path.join(home, "Projects"),
        uni_dir=os.getenv("DEVSETUP_UNI_DIR") or os.path.join(home, "Uni"),
        platform=os.getenv("DEVSETUP_PLATFORM") or detect_platform(),
        log_level=log_level,
        user_name=os.getenv("DEVSETUP_USER_NAME", "") or "",
        user_email=os.getenv("DEVSETUP_USER_EMAIL", "") or "",
        github_user=os.getenv("DEVSETUP_GITHUB_USER", "") or "",
    )
    for d in (cfg.scripts_dir, cfg.config_dir, cfg.logs_dir, cfg.academic_dir):
        os.makedirs(d, exist_ok=True)
    return cfg


# ---------------------------------------------------------------------------
# KEY="value" tool settings files
# ---------------------------------------------------------------------------

def _key(name: str, path: bool = False, **kw) -> Any:
    return field(metadata={"key": name, "path": path}, **kw)

def _coerce(raw: str | None, current: Any, path: bool = False) -> Any:
    if raw is None:
        return current
    if isinstance(current, bool):
        v = raw.strip().lower()
        if v in {"true", "1", "yes", "on"}:
            return True
        if v in {"false", "0", "no", "off"}:
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if isinstance(current, int):
        return int(raw.strip())
    if isinstance(current, list):
        return [p.strip() for p in raw.split(",") if p.strip()]
    if path:
        return os.path.expandvars(os.path.expanduser(raw))
    return raw

def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(value)
    return str(value)

def _escape(value: str) -> str:
    # dotenv decodes backslash escapes inside quoted values
    return value.replace("\\", "\\\\")


class SettingsFile:
    """Mixin for dataclasses whose fields map to keys of a flat ``.conf`` file."""

    FILE_NAME: ClassVar[str] = ""
    TITLE: ClassVar[str] = ""

    @classmethod
    def path_for(cls, cfg: Config) -> str:
        return os.path.join(cfg.config_dir, cls.FILE_NAME)

    @classmethod
    def defaults(cls, cfg: Config):
        raise NotImplementedError

    @classmethod
    def load(cls, cfg: Config):
        path = cls.path_for(cfg)
        base = cls.defaults(cfg)
        if not os.path.exists(path):
            base.save(path)
            return base
        values = dotenv_values(path, interpolate=False)
        kwargs = {}
        for f in fields(base):
            key = f.metadata.get("key")
            current = getattr(base, f.name)
            try:
                kwargs[f.name] = _coerce(values.get(key), current, f.metadata.get("path", False))
            except ValueError:
                log.warning("Bad value for %s in %s, using default", key, path)
                kwargs[f.name] = current
        return replace(base, **kwargs)

    def save(self, path: str) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        lines = [f"# {self.TITLE}", ""]
        for f in fields(self):
            value = _escape(_render(getattr(self, f.name))).replace('"', '\\"')
            lines.append(f'{f.metadata["key"]}="{value}"')
        with open(path, "w", encoding="utf-8") as fh:
            fh.write("\n".join(lines) + "\n")

    def update(self, cfg: Config, **changes):
        """Persist the changed keys in place and return the new settings."""
        path = self.path_for(cfg)
        if not os.path.exists(path):
            self.save(path)
        keys = {f.name: f.metadata["key"] for f in fields(self)}
        for name, value in changes.items():
            set_key(path, keys[name], _escape(_render(value)), quote_mode="always")
        return replace(self, **changes)


@dataclass(frozen=True)
class BackupSettings(SettingsFile):
    FILE_NAME: ClassVar[str] = "backup.conf"
    TITLE: ClassVar[str] = "Configuration for System Backup"

    backup_base_dir: str = _key("BACKUP_BASE_DIR", path=True, default="")
    projects_dir: str = _key("PROJECTS_DIR", path=True, default="")
    uni_dir: str = _key("UNI_DIR", path=True, default="")
    backup_config_files: bool = _key("BACKUP_CONFIG_FILES", default=True)
    backup_encryption: bool = _key("BACKUP_ENCRYPTION", default=False)
    encryption_password: str = _key("ENCRYPTION_PASSWORD", default="")
    retention_days: int = _key("RETENTION_DAYS", default=30)

    @classmethod
    def defaults(cls, cfg: Config) -> "BackupSettings":
        base = "/mnt/g/My Drive/Backups" if cfg.platform == WSL else os.path.join(cfg.home, "Backups")
        return cls(backup_base_dir=base, projects_dir=cfg.projects_dir, uni_dir=cfg.uni_dir)


@dataclass(frozen=True)
class DownloadsSettings(SettingsFile):
    FILE_NAME: ClassVar[str] = "downloads_organizer.conf"
    TITLE: ClassVar[str] = "Configuration for Downloads Organizer"

    downloads_dir: str = _key("DOWNLOADS_DIR", path=True, default="")
    organize_installers: bool = _key("ORGANIZE_INSTALLERS", default=True)
    organize_images: bool = _key("ORGANIZE_IMAGES", default=True)
    organize_documents: bool = _key("ORGANIZE_DOCUMENTS", default=True)
    organize_archives: bool = _key("ORGANIZE_ARCHIVES", default=True)
    organize_code: bool = _key("ORGANIZE_CODE", default=True)
    delete_old: bool = _key("DELETE_OLD", default=True)
    old_days: int = _key("OLD_DAYS", default=30)
    temp_dir: str = _key("TEMP_DIR", default="Temp")

    @classmethod
    def defaults(cls, cfg: Config) -> "DownloadsSettings":
        downloads = os.path.join(cfg.home, "Downloads")
        if cfg.platform == WSL:
            user = windows_username()
            downloads = f"/mnt/c/Users/{user}/Downloads" if user else "/mnt/c/Users/Public/Downloads"
        return cls(downloads_dir=downloads)


@dataclass(frozen=True)
class DotfilesSettings(SettingsFile):
    FILE_NAME: ClassVar[str] = "dotfiles_sync.conf"
    TITLE: ClassVar[str] = "Configuration for Dotfiles Sync"

    dotfiles_dir: str = _key("DOTFILES_DIR", path=True, default="")
    dotfiles_repo: str = _key("DOTFILES_REPO", default="")
    dotfiles_branch: str = _key("DOTFILES_BRANCH", default="main")
    sync_files: list = _key("SYNC_FILES", default_factory=lambda: list(DEFAULT_SYNC_FILES))
    sync_vscode: bool = _key("SYNC_VSCODE", default=True)
    vscode_settings_dir: str = _key("VSCODE_SETTINGS_DIR", path=True, default="")

    @classmethod
    def defaults(cls, cfg: Config) -> "DotfilesSettings":
        return cls(dotfiles_dir=os.path.join(cfg.home, ".dotfiles"))


@dataclass(frozen=True)
class AcademicSettings(SettingsFile):
    FILE_NAME: ClassVar[str] = "academic.conf"
    TITLE: ClassVar[str] = "Configuration for Academic Project Tracker"

    academic_dir: str = _key("ACADEMIC_DIR", path=True, default="")
    tasks_file: str = _key("TASKS_FILE", path=True, default="")
    author_name: str = _key("USER_NAME", default="")

    @classmethod
    def defaults(cls, cfg: Config) -> "AcademicSettings":
        return cls(
            academic_dir=cfg.uni_dir,
            tasks_file=os.path.join(cfg.academic_dir, "tasks.csv"),
            author_name=cfg.user_name or os.getenv("USER", ""),
        )


@dataclass(frozen=True)
class BrowserSettings(SettingsFile):
    FILE_NAME: ClassVar[str] = "browser.conf"
    TITLE: ClassVar[str] = "Browser preferences"

    default_browser: str = _key("DEFAULT_BROWSER", default="brave")
    default_search: str = _key("DEFAULT_SEARCH", default="google")

    @classmethod
    def defaults(cls, cfg: Config) -> "BrowserSettings":
        return cls()
