from __future__ import annotations
import logging
import os
import re
import shutil
import socket
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

import yaml

from devsetup.errors import CommandError
from devsetup.integrations.base import Runner
from devsetup.integrations.git_client import GitClient
from devsetup.utils.retry import retry
from devsetup.utils.time import stamp

log = logging.getLogger(__name__)

MANIFEST_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "manifests", "packages.yaml")

MANAGERS = ("apt", "pip", "npm", "brew", "winget", "code", "script", "git-clone")

BASH_ALIASES_LINE = "[ -f ~/.bash_aliases ] && source ~/.bash_aliases"


@dataclass
class Step:
    name: str
    manager: str
    packages: list = field(default_factory=list)
    command: list[str] = field(default_factory=list)
    critical: bool = False
    platforms: list[str] = field(default_factory=list)
    retry: int = 1
    check_command: bool = False

    def applies_to(self, platform: str) -> bool:
        return not self.platforms or platform in self.platforms


@dataclass
class Manifest:
    steps: list[Step]
    git: dict[str, str] = field(default_factory=dict)
    zsh: dict = field(default_factory=dict)
    folders: dict = field(default_factory=dict)


@dataclass
class InstallReport:
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.failed


def load_manifest(path: str = MANIFEST_PATH) -> Manifest:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    steps = []
    for raw in data.get("steps") or []:
        manager = raw.get("manager")
        if manager not in MANAGERS:
            raise ValueError(f"Unknown package manager {manager!r} in step {raw.get('name')!r}")
        steps.append(Step(
            name=raw["name"],
            manager=manager,
            packages=list(raw.get("packages") or []),
            command=[str(c) for c in raw.get("command") or []],
            critical=bool(raw.get("critical", False)),
            platforms=list(raw.get("platforms") or []),
            retry=int(raw.get("retry", 1)),
            check_command=bool(raw.get("check_command", False)),
        ))
    return Manifest(
        steps=steps,
        git={k: str(v) for k, v in (data.get("git") or {}).items()},
        zsh=data.get("zsh") or {},
        folders=data.get("folders") or {},
    )


def check_network(host: str = "google.com", port: int = 443, timeout: float = 5.0) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError as e:
        log.error("Network check failed (%s:%d): %s", host, port, e)
        return False


def install_command(manager: str, package: str) -> list[str]:
    if manager == "apt":
        return ["sudo", "apt", "install", "-y", package]
    if manager == "pip":
        return ["pip3", "install", "--user", package]
    if manager == "npm":
        return ["npm", "install", "-g", package]
    if manager == "brew":
        return ["brew", "install", package]
    if manager == "winget":
        return ["powershell.exe", "-Command",
                f"winget install -e --id {package} --accept-source-agreements --accept-package-agreements"]
    if manager == "code":
        return ["code", "--install-extension", package]
    raise ValueError(f"No install command for manager {manager!r}")


def update_zshrc(text: str, theme: str, plugins: list[str]) -> str:
    """Set the theme, extend ``plugins=(...)`` and make sure ~/.bash_aliases is sourced."""
    if theme:
        if re.search(r'^ZSH_THEME=.*$', text, flags=re.M):
            text = re.sub(r'^ZSH_THEME=.*$', f'ZSH_THEME="{theme}"', text, count=1, flags=re.M)
        else:
            text = f'ZSH_THEME="{theme}"\n' + text
    if plugins:
        m = re.search(r'^plugins=\(([^)]*)\)', text, flags=re.M)
        if m:
            current = m.group(1).split()
            merged = current + [p for p in plugins if p not in current]
            text = text[:m.start()] + f"plugins=({' '.join(merged)})" + text[m.end():]
        else:
            text = text.rstrip("\n") + f"\nplugins=({' '.join(plugins)})\n"
    if "source ~/.bash_aliases" not in text:
        text = text.rstrip("\n") + f"\n\n{BASH_ALIASES_LINE}\n"
    return text


class InstallerService:
    def __init__(self, runner: Runner, git: GitClient, home: str, projects_dir: str, platform: str,
                 manifest: Optional[Manifest] = None,
                 ask: Optional[Callable[[str, str], str]] = None,
                 network_check: Callable[[], bool] = check_network,
                 sleep: Optional[Callable[[float], None]] = None):
        self.runner = runner
        self.git = git
        self.home = home
        self.projects_dir = projects_dir
        self.platform = platform
        self.manifest = manifest or load_manifest()
        self.ask = ask or (lambda _q, default: default)
        self.network_check = network_check
        self._sleep = sleep

    def _retry(self, func, attempts: int, context: str):
        kw = {"sleep": self._sleep} if self._sleep else {}
        return retry(func, attempts=attempts, context=context, **kw)

    def _expand(self, path: str) -> str:
        if path.startswith("~"):
            path = os.path.join(self.home, path[1:].lstrip("/"))
        return os.path.expandvars(path)

    # ---------- manifest steps ----------

    def run_step(self, step: Step, report: InstallReport) -> bool:
        """Run one manifest step. Returns False only when a critical step failed."""
        if not step.applies_to(self.platform):
            report.skipped.append(step.name)
            return True

        if step.manager == "script":
            try:
                self._retry(lambda: self.runner.run(step.command), step.retry, step.name)
            except CommandError as e:
                report.failed.append(step.name)
                report.warnings.append(f"{step.name}: {e}")
                return not step.critical
            report.succeeded.append(step.name)
            return True

        if step.manager in ("code", "npm", "pip", "brew") and not self.runner.which(self._tool(step.manager)):
            report.skipped.append(step.name)
            report.warnings.append(f"{step.name}: {self._tool(step.manager)} not found")
            log.warning("Skipping %s: %s not found", step.name, self._tool(step.manager))
            return True

        failures = []
        for pkg in step.packages:
            try:
                if step.manager == "git-clone":
                    self._clone_or_update(pkg, step.retry)
                    continue
                if step.check_command and self.runner.which(pkg):
                    log.info("%s already installed", pkg)
                    continue
                self._retry(lambda p=pkg: self.runner.run(install_command(step.manager, p)),
                            step.retry, f"install {pkg}")
            except CommandError as e:
                label = pkg["repo"] if isinstance(pkg, dict) else pkg
                failures.append(label)
                report.warnings.append(f"Failed to install {label}: {e}")

        if failures:
            report.failed.append(step.name)
            return not step.critical
        report.succeeded.append(step.name)
        return True

    @staticmethod
    def _tool(manager: str) -> str:
        return {"pip": "pip3"}.get(manager, manager)

    def _clone_or_update(self, entry: dict, attempts: int) -> None:
        dest = self._expand(entry["dest"])
        if self.git.is_repo(dest):
            log.info("Updating %s", dest)
            self.runner.run(["git", "-C", dest, "pull"], check=False)
            return
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        url = f"https://github.com/{entry['repo']}"
        self._retry(lambda: self.runner.run(["git", "clone", "--depth=1", url, dest]), attempts, f"git clone {url}")

    # ---------- configuration ----------

    def configure_git(self, user_name: str = "", user_email: str = "") -> dict[str, str]:
        applied = {}
        for key, default in (("user.name", user_name), ("user.email", user_email)):
            if not self.git.config_get(key):
                value = self.ask(f"Enter your {key.split('.')[1]} for Git configuration", default)
                if value:
                    self.git.config_set(key, value)
                    applied[key] = value
        for key, value in self.manifest.git.items():
            self.git.config_set(key, value)
            applied[key] = value
        log.info("Git configuration completed")
        return applied

    def configure_zsh(self, now: Optional[datetime] = None) -> Optional[str]:
        """Back up ~/.zshrc and apply theme/plugins. Returns the backup path, None when there is no .zshrc."""
        zshrc = os.path.join(self.home, ".zshrc")
        if not os.path.isfile(zshrc):
            log.warning(".zshrc not found, skipping Zsh configuration")
            return None
        backup = f"{zshrc}.backup.{stamp(now)}"
        shutil.copy2(zshrc, backup)
        with open(zshrc, "r", encoding="utf-8") as f:
            text = f.read()
        text = update_zshrc(text, self.manifest.zsh.get("theme", ""), list(self.manifest.zsh.get("plugins") or []))
        with open(zshrc, "w", encoding="utf-8") as f:
            f.write(text)
        log.info("Zsh configuration updated (backup: %s)", backup)
        return backup

    def create_folders(self) -> list[str]:
        created = []
        for name in self.manifest.folders.get("projects") or []:
            created.append(os.path.join(self.projects_dir, name))
        for rel in self.manifest.folders.get("home") or []:
            created.append(os.path.join(self.home, rel))
        for path in created:
            os.makedirs(path, exist_ok=True)
        return created

    def ensure_ssh_key(self, email: str) -> Optional[str]:
        key = os.path.join(self.home, ".ssh", "id_ed25519")
        if os.path.exists(key):
            return None
        os.makedirs(os.path.dirname(key), mode=0o700, exist_ok=True)
        self.runner.run(["ssh-keygen", "-t", "ed25519", "-C", email or "devsetup", "-f", key, "-N", ""])
        log.info("SSH key generated: %s.pub", key)
        return key + ".pub"

    # ---------- full run ----------

    def run(self, user_name: str = "", user_email: str = "", steps: Optional[list[str]] = None,
            now: Optional[datetime] = None) -> InstallReport:
        if not self.network_check():
            raise ValueError("E_NO_NETWORK")

        report = InstallReport()
        for step in self.manifest.steps:
            if steps is not None and step.name not in steps:
                continue
            log.info("Running step %s (%s)", step.name, step.manager)
            if not self.run_step(step, report):
                report.aborted = True
                log.error("Critical step %s failed, aborting", step.name)
                return report

        for name, action in (
            ("git-config", lambda: self.configure_git(user_name, user_email)),
            ("zsh-config", lambda: self.configure_zsh(now)),
            ("project-folders", self.create_folders),
            ("ssh-key", lambda: self.ensure_ssh_key(user_email)),
        ):
            try:
                action()
                report.succeeded.append(name)
            except (CommandError, OSError) as e:
                report.failed.append(name)
                report.warnings.append(f"{name}: {e}")
                log.warning("%s failed: %s", name, e)
        return report
