from __future__ import annotations
import logging
import os
import shutil
import subprocess
from typing import Optional, Sequence

from devsetup.errors import CommandError
from .base import CommandResult, Runner

log = logging.getLogger(__name__)


class SubprocessRunner(Runner):
    def __init__(self, timeout: Optional[float] = None, dry_run: bool = False):
        self.timeout = timeout
        self.dry_run = dry_run

    def run(self, cmd: Sequence[str], cwd: Optional[str] = None, check: bool = True,
            input: Optional[str] = None, env: Optional[dict] = None) -> CommandResult:
        argv = [str(c) for c in cmd]
        log.debug("run: %s (cwd=%s)", " ".join(argv), cwd or ".")
        if self.dry_run:
            return CommandResult(argv, 0)
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)
        try:
            proc = subprocess.run(
                argv, cwd=cwd, input=input, env=full_env,
                capture_output=True, text=True, timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(argv, 127, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise CommandError(argv, -1, f"timed out after {self.timeout}s") from e
        result = CommandResult(argv, proc.returncode, proc.stdout or "", proc.stderr or "")
        if check and not result.ok:
            log.warning("command failed (%d): %s\n%s", result.returncode, " ".join(argv), result.stderr.strip())
            raise CommandError(argv, result.returncode, result.stderr)
        return result

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)
