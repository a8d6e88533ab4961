import os, sys, pathlib
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.config import Config
from devsetup.errors import CommandError
from devsetup.integrations.base import CommandResult


class FakeRunner:
    """Records commands instead of running them.

    ``fail`` holds substrings; a command line containing one exits 1.
    ``outputs`` maps substrings to stdout. ``git init``/``git clone`` create a
    ``.git`` directory so repository checks behave as after the real command.
    """

    def __init__(self):
        self.calls = []
        self.fail = set()
        self.outputs = {}
        self.available = set()

    def run(self, cmd, cwd=None, check=True, input=None, env=None):
        argv = [str(c) for c in cmd]
        line = " ".join(argv)
        self.calls.append((argv, cwd, input))
        rc = 1 if any(f in line for f in self.fail) else 0
        out = next((v for k, v in self.outputs.items() if k in line), "")
        if rc == 0:
            self._simulate(argv, cwd)
        if check and rc:
            raise CommandError(argv, rc, "boom")
        return CommandResult(argv, rc, out, "boom" if rc else "")

    def _simulate(self, argv, cwd):
        if argv[0] != "git":
            return
        args, repo = argv[1:], cwd
        if args[:1] == ["-C"]:
            repo, args = args[1], args[2:]
        if args[:1] == ["init"] and repo:
            os.makedirs(os.path.join(repo, ".git"), exist_ok=True)
        if args[:1] == ["clone"]:
            os.makedirs(os.path.join(args[-1], ".git"), exist_ok=True)

    def which(self, name):
        return f"/usr/bin/{name}" if name in self.available else None

    def lines(self):
        return [" ".join(argv) for argv, _cwd, _input in self.calls]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def cfg(tmp_path):
    home = tmp_path / "home"
    scripts = home / "scripts"
    for d in ("config", "logs", "academic"):
        (scripts / d).mkdir(parents=True, exist_ok=True)
    return Config(
        home=str(home),
        scripts_dir=str(scripts),
        config_dir=str(scripts / "config"),
        logs_dir=str(scripts / "logs"),
        academic_dir=str(scripts / "academic"),
        projects_dir=str(home / "Projects"),
        uni_dir=str(home / "Uni"),
        platform="linux",
        log_level="INFO",
        user_name="Ada Lovelace",
        user_email="ada@example.com",
        github_user="ada",
    )
