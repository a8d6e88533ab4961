import os, sys, pathlib
import argparse
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.cli.menu import Menu, Services, guarded
from devsetup.config import DownloadsSettings
from devsetup.errors import CommandError
from devsetup.main import build_parser, run_command


def feed(monkeypatch, *answers):
    it = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(it))


def test_guarded_reports_errors(capsys):
    def bad_name():
        raise ValueError("E_NAME_EMPTY")

    def failed_push():
        raise CommandError(["git", "push"], 1)

    assert guarded(lambda: None)
    assert not guarded(bad_name)
    assert not guarded(failed_push)
    out = capsys.readouterr().out
    assert "Name cannot be empty." in out
    assert "git push exited with 1" in out


def test_menu_rejects_unknown_choice_then_exits(cfg, runner, monkeypatch, capsys):
    feed(monkeypatch, "42", "0")
    assert Menu(Services(cfg, runner)).loop() == 0
    out = capsys.readouterr().out
    assert "Invalid choice: 42" in out
    assert "Goodbye!" in out


def test_academic_menu_seeds_and_lists(cfg, runner, monkeypatch, capsys):
    feed(monkeypatch, "1", "0")
    Menu(Services(cfg, runner)).academic()
    out = capsys.readouterr().out
    assert "Example Assignment" in out


def test_clean_slate_generates_selected_script(cfg, runner, monkeypatch):
    feed(monkeypatch, "y", "3", "0")
    Menu(Services(cfg, runner)).clean_slate()
    assert os.path.exists(os.path.join(cfg.scripts_dir, "windows", "wsl_optimizer.ps1"))


def test_downloads_command(cfg, runner, capsys):
    downloads = pathlib.Path(cfg.home, "Downloads")
    downloads.mkdir()
    (downloads / "a.pdf").write_text("x", encoding="utf-8")
    DownloadsSettings.load(cfg)

    args = build_parser().parse_args(["downloads", "--run"])
    assert run_command(args, Services(cfg, runner)) == 0
    assert (downloads / "Documents" / "a.pdf").exists()
    assert "Moved 1 files" in capsys.readouterr().out


def test_dotfiles_flags_are_exclusive(capsys):
    parser = build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["dotfiles", "--backup", "--restore"])
    assert isinstance(parser.parse_args(["dotfiles", "--setup"]), argparse.Namespace)


def test_academic_menu_survives_bad_template_type(cfg, runner, monkeypatch, capsys):
    feed(monkeypatch, "10", "thesis", "", "Title", "0")
    Menu(Services(cfg, runner)).academic()
    captured = capsys.readouterr()
    assert "thesis" in captured.err
    assert "Invalid input: latex --type thesis --title Title" in captured.out


def test_academic_menu_rejects_flag_like_task_id(cfg, runner, monkeypatch, capsys):
    feed(monkeypatch, "6", "--bogus", "1", "0")
    Menu(Services(cfg, runner)).academic()
    out = capsys.readouterr().out
    assert "Invalid input: view --bogus" in out
    assert "Example Assignment" in out
