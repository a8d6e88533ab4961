from __future__ import annotations
import logging
import os
from typing import Optional

from devsetup.errors import CommandError
from devsetup.utils.retry import retry
from .base import Runner

log = logging.getLogger(__name__)


class GitClient:
    """Thin wrapper over the ``git`` CLI. Network operations are retried."""

    def __init__(self, runner: Runner, attempts: int = 3, delay: float = 5.0, sleep=None):
        self.runner = runner
        self.attempts = attempts
        self.delay = delay
        self._sleep = sleep

    def _git(self, repo: Optional[str], *args: str, check: bool = True):
        cmd = ["git"]
        if repo:
            cmd += ["-C", repo]
        return self.runner.run(cmd + list(args), check=check)

    def _net(self, context: str, repo: Optional[str], *args: str):
        kw = {"sleep": self._sleep} if self._sleep else {}
        return retry(lambda: self._git(repo, *args), attempts=self.attempts, delay=self.delay, context=context, **kw)

    def is_repo(self, path: str) -> bool:
        return os.path.isdir(os.path.join(path, ".git"))

    def clone(self, url: str, dest: str, branch: Optional[str] = None) -> None:
        args = ["clone"]
        if branch:
            args += ["-b", branch]
        self._net(f"git clone {url}", None, *args, url, dest)

    def init(self, path: str, branch: str = "main") -> None:
        os.makedirs(path, exist_ok=True)
        self._git(path, "init")
        self._git(path, "checkout", "-B", branch)

    def remote_url(self, path: str, remote: str = "origin") -> Optional[str]:
        res = self._git(path, "remote", "get-url", remote, check=False)
        return res.stdout.strip() if res.ok else None

    def set_remote(self, path: str, url: str, remote: str = "origin") -> None:
        if self.remote_url(path, remote) is None:
            self._git(path, "remote", "add", remote, url)
        else:
            self._git(path, "remote", "set-url", remote, url)

    def checkout(self, path: str, branch: str, create: bool = False) -> None:
        res = self._git(path, "checkout", branch, check=False)
        if not res.ok:
            if not create:
                raise CommandError(res.cmd, res.returncode, res.stderr)
            self._git(path, "checkout", "-b", branch)

    def pull(self, path: str, branch: str, remote: str = "origin") -> None:
        self._net("git pull", path, "pull", remote, branch)

    def push(self, path: str, branch: str, remote: str = "origin") -> None:
        self._net("git push", path, "push", "-u", remote, branch)

    def is_dirty(self, path: str) -> bool:
        return bool(self._git(path, "status", "--porcelain").stdout.strip())

    def add_all(self, path: str) -> None:
        self._git(path, "add", "-A")

    def commit(self, path: str, message: str) -> None:
        self._git(path, "commit", "-m", message)

    def config_get(self, key: str) -> str:
        return self._git(None, "config", "--global", key, check=False).stdout.strip()

    def config_set(self, key: str, value: str) -> None:
        self._git(None, "config", "--global", key, value)
