import os, sys, pathlib
from datetime import datetime
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.config import DotfilesSettings
from devsetup.integrations.git_client import GitClient
from devsetup.services.dotfiles_service import DotfilesService

REPO_URL = "git@github.com:ada/dotfiles.git"
NOW = datetime(2025, 4, 28, 10, 0, 0)


def make_service(tmp_path, runner, **overrides):
    home = tmp_path / "home"
    home.mkdir(exist_ok=True)
    values = dict(
        dotfiles_dir=str(home / ".dotfiles"),
        dotfiles_repo=REPO_URL,
        sync_files=[".zshrc", ".vimrc"],
        sync_vscode=False,
    )
    values.update(overrides)
    git = GitClient(runner, attempts=1, delay=0)
    return DotfilesService(DotfilesSettings(**values), str(home), git, runner), home


def test_setup_clones_remote(tmp_path, runner):
    svc, home = make_service(tmp_path, runner)
    assert svc.setup_repo() == str(home / ".dotfiles")
    assert f"git clone {REPO_URL} {home / '.dotfiles'}" in runner.lines()
    assert (home / ".dotfiles" / ".git").is_dir()


def test_setup_initializes_when_clone_fails(tmp_path, runner):
    runner.fail = {"clone"}
    svc, home = make_service(tmp_path, runner)
    svc.setup_repo()
    repo = home / ".dotfiles"
    assert (repo / "README.md").exists()
    assert "*.swp" in (repo / ".gitignore").read_text(encoding="utf-8")
    lines = runner.lines()
    assert f"git -C {repo} init" in lines
    assert f"git -C {repo} commit -m Initial dotfiles setup" in lines
    assert not (repo / "restore.sh").exists()


def test_setup_requires_repo_url(tmp_path, runner):
    svc, _ = make_service(tmp_path, runner, dotfiles_repo="")
    with pytest.raises(ValueError, match="E_REPO_URL_MISSING"):
        svc.setup_repo()
    assert runner.calls == []


def test_backup_commits_changes_and_survives_push_failure(tmp_path, runner):
    svc, home = make_service(tmp_path, runner)
    (home / ".dotfiles" / ".git").mkdir(parents=True)
    (home / ".zshrc").write_text("export A=1\n", encoding="utf-8")
    runner.outputs = {"status --porcelain": " M .zshrc"}
    runner.fail = {"push"}

    report = svc.backup(now=NOW)
    assert report.copied == [".zshrc"]
    assert report.missing == [".vimrc"]
    assert report.committed and not report.pushed
    assert report.warnings and report.warnings[0].startswith("push failed")
    assert (home / ".dotfiles" / ".zshrc").read_text(encoding="utf-8") == "export A=1\n"
    assert any("Update dotfiles - 2025-04-28 10:00:00" in ln for ln in runner.lines())


def test_backup_without_changes_does_not_commit(tmp_path, runner):
    svc, home = make_service(tmp_path, runner)
    (home / ".dotfiles" / ".git").mkdir(parents=True)
    report = svc.backup()
    assert not report.committed
    assert not any(" commit " in ln for ln in runner.lines())


def test_restore_copies_files_and_keeps_previous(tmp_path, runner):
    svc, home = make_service(tmp_path, runner)
    repo = home / ".dotfiles"
    (repo / ".git").mkdir(parents=True)
    (repo / ".zshrc").write_text("new\n", encoding="utf-8")
    (home / ".zshrc").write_text("old\n", encoding="utf-8")

    report = svc.restore(now=NOW)
    assert (home / ".zshrc").read_text(encoding="utf-8") == "new\n"
    assert report.backup_dir == str(home / ".dotfiles_backup_20250428100000")
    assert (pathlib.Path(report.backup_dir) / ".zshrc").read_text(encoding="utf-8") == "old\n"
    assert report.missing == [".vimrc"]


def test_restore_runs_repository_script(tmp_path, runner):
    svc, home = make_service(tmp_path, runner)
    repo = home / ".dotfiles"
    (repo / ".git").mkdir(parents=True)
    (repo / "restore.sh").write_text("#!/bin/bash\n", encoding="utf-8")
    (repo / ".zshrc").write_text("new\n", encoding="utf-8")

    report = svc.restore()
    assert report.ran_script
    assert f"bash {repo / 'restore.sh'}" in runner.lines()
    assert not (home / ".zshrc").exists()


def test_diff_states(tmp_path, runner):
    svc, home = make_service(tmp_path, runner, sync_files=[".zshrc", ".vimrc", ".bashrc", ".profile"])
    repo = home / ".dotfiles"
    repo.mkdir()
    (home / ".zshrc").write_text("a\n", encoding="utf-8")
    (repo / ".zshrc").write_text("b\n", encoding="utf-8")
    (repo / ".vimrc").write_text("set nu\n", encoding="utf-8")
    (home / ".bashrc").write_text("same\n", encoding="utf-8")
    (repo / ".bashrc").write_text("same\n", encoding="utf-8")

    states = {d.name: d for d in svc.diff()}
    assert states[".zshrc"].state == "changed"
    assert "-b\n" in states[".zshrc"].lines and "+a\n" in states[".zshrc"].lines
    assert states[".vimrc"].state == "only_repo"
    assert states[".bashrc"].state == "same"
    assert states[".profile"].state == "missing"


def test_install_schedule_replaces_previous_entry(tmp_path, runner):
    svc, _ = make_service(tmp_path, runner)
    runner.outputs = {
        "crontab -l": "0 1 * * * other-job\n0 0 * * * devsetup dotfiles --backup >> /old.log 2>&1\n",
    }
    line = svc.install_schedule("weekly", "/logs")
    assert line == "0 0 * * 0 devsetup dotfiles --backup >> /logs/dotfiles_backup_cron.log 2>&1"
    argv, _cwd, written = runner.calls[-1]
    assert argv == ["crontab", "-"]
    assert written == "0 1 * * * other-job\n" + line + "\n"


def test_unknown_schedule(tmp_path, runner):
    svc, _ = make_service(tmp_path, runner)
    with pytest.raises(ValueError, match="E_SCHEDULE_INVALID"):
        svc.schedule_line("hourly", "/logs")
