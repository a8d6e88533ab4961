import os, sys, pathlib
from datetime import datetime
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.integrations.git_client import GitClient
from devsetup.services.installer_service import (
    BASH_ALIASES_LINE, InstallReport, InstallerService, Manifest, Step,
    install_command, load_manifest, update_zshrc,
)


def make_service(tmp_path, runner, steps=(), platform="linux", **manifest_kw):
    manifest = Manifest(steps=list(steps), **manifest_kw)
    return InstallerService(
        runner, GitClient(runner, attempts=1, delay=0),
        home=str(tmp_path / "home"), projects_dir=str(tmp_path / "home" / "Projects"),
        platform=platform, manifest=manifest,
        network_check=lambda: True, sleep=lambda s: None,
    )


def test_bundled_manifest_loads():
    manifest = load_manifest()
    names = [s.name for s in manifest.steps]
    assert names[0] == "package-index"
    assert manifest.steps[0].critical
    assert "zsh-plugins" in names
    assert manifest.git["init.defaultBranch"] == "main"
    assert manifest.git["pull.rebase"] == "false"


def test_unknown_manager_is_rejected(tmp_path):
    path = tmp_path / "m.yaml"
    path.write_text("steps:\n  - name: x\n    manager: pacman\n", encoding="utf-8")
    with pytest.raises(ValueError, match="pacman"):
        load_manifest(str(path))


def test_install_commands():
    assert install_command("apt", "jq") == ["sudo", "apt", "install", "-y", "jq"]
    assert install_command("pip", "black") == ["pip3", "install", "--user", "black"]
    assert install_command("code", "ms-python.python") == ["code", "--install-extension", "ms-python.python"]
    assert install_command("winget", "Git.Git")[0] == "powershell.exe"


def test_offline_run_is_refused(tmp_path, runner):
    svc = make_service(tmp_path, runner)
    svc.network_check = lambda: False
    with pytest.raises(ValueError, match="E_NO_NETWORK"):
        svc.run()
    assert runner.calls == []


def test_critical_failure_aborts(tmp_path, runner):
    runner.fail = {"apt update"}
    svc = make_service(tmp_path, runner, steps=[
        Step("package-index", "script", command=["sudo", "apt", "update"], critical=True, retry=3),
        Step("essentials", "apt", packages=["jq"]),
    ])
    report = svc.run()
    assert report.aborted and not report.ok
    assert report.failed == ["package-index"]
    assert runner.lines().count("sudo apt update") == 3
    assert "sudo apt install -y jq" not in runner.lines()


def test_non_critical_failure_continues(tmp_path, runner):
    runner.fail = {"install -y bad"}
    runner.available = {"git"}
    svc = make_service(tmp_path, runner, steps=[
        Step("essentials", "apt", packages=["bad", "git", "jq"], check_command=True),
        Step("mac-only", "brew", packages=["fd"], platforms=["macos"]),
        Step("editor", "code", packages=["ms-python.python"]),
    ])
    report = InstallReport()
    for step in svc.manifest.steps:
        assert svc.run_step(step, report)
    assert report.failed == ["essentials"]
    assert report.skipped == ["mac-only", "editor"]
    lines = runner.lines()
    assert "sudo apt install -y jq" in lines
    assert "sudo apt install -y git" not in lines


def test_git_clone_step_clones_then_updates(tmp_path, runner):
    entry = {"repo": "zsh-users/zsh-autosuggestions", "dest": "~/.oh-my-zsh/custom/plugins/zsh-autosuggestions"}
    svc = make_service(tmp_path, runner, steps=[Step("zsh-plugins", "git-clone", packages=[entry])])
    dest = tmp_path / "home" / ".oh-my-zsh" / "custom" / "plugins" / "zsh-autosuggestions"

    svc.run_step(svc.manifest.steps[0], InstallReport())
    assert f"git clone --depth=1 https://github.com/zsh-users/zsh-autosuggestions {dest}" in runner.lines()
    svc.run_step(svc.manifest.steps[0], InstallReport())
    assert runner.lines()[-1] == f"git -C {dest} pull"


def test_update_zshrc():
    text = 'ZSH_THEME="robbyrussell"\nplugins=(git)\nsource $ZSH/oh-my-zsh.sh\n'
    out = update_zshrc(text, "agnoster", ["git", "zsh-autosuggestions"])
    assert 'ZSH_THEME="agnoster"' in out
    assert "plugins=(git zsh-autosuggestions)" in out
    assert out.rstrip().endswith(BASH_ALIASES_LINE)
    assert update_zshrc(out, "agnoster", ["git", "zsh-autosuggestions"]) == out


def test_configure_git_prompts_for_missing_identity(tmp_path, runner):
    runner.outputs = {"config --global user.email": "set@example.com"}
    svc = make_service(tmp_path, runner, git={"core.autocrlf": "input"})
    asked = []
    svc.ask = lambda q, default: asked.append(q) or "Ada"

    applied = svc.configure_git()
    assert asked == ["Enter your name for Git configuration"]
    assert applied == {"user.name": "Ada", "core.autocrlf": "input"}
    assert "git config --global core.autocrlf input" in runner.lines()


def test_configure_zsh_backs_up(tmp_path, runner):
    home = tmp_path / "home"
    home.mkdir()
    svc = make_service(tmp_path, runner, zsh={"theme": "agnoster", "plugins": ["git"]})
    assert svc.configure_zsh() is None
    (home / ".zshrc").write_text("plugins=(git)\n", encoding="utf-8")
    backup = svc.configure_zsh(datetime(2025, 4, 28, 9, 0, 0))
    assert backup == str(home / ".zshrc.backup.20250428090000")
    assert (home / ".zshrc").read_text(encoding="utf-8").startswith('ZSH_THEME="agnoster"\n')


def test_folders_and_ssh_key(tmp_path, runner):
    svc = make_service(tmp_path, runner, folders={"projects": ["demo"], "home": ["Uni/Assignments"]})
    created = svc.create_folders()
    assert all(os.path.isdir(p) for p in created)
    assert (tmp_path / "home" / "Projects" / "demo").is_dir()

    pub = svc.ensure_ssh_key("ada@example.com")
    key = tmp_path / "home" / ".ssh" / "id_ed25519"
    assert pub == f"{key}.pub"
    assert f"ssh-keygen -t ed25519 -C ada@example.com -f {key} -N " in runner.lines()
    key.write_text("k", encoding="utf-8")
    assert svc.ensure_ssh_key("ada@example.com") is None
