import os, sys, pathlib
from dataclasses import replace
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.config import BrowserSettings
from devsetup.errors import describe
from devsetup.services.browser_service import BROWSERS, BrowserService, install_command


def test_install_command_per_platform():
    brave = BROWSERS["brave"]
    assert install_command(brave, "macos") == ["brew", "install", "--cask", "brave-browser"]
    assert install_command(brave, "linux") == ["sudo", "snap", "install", "brave"]
    assert "BraveSoftware.BraveBrowser" in install_command(brave, "wsl")[-1]
    assert install_command(BROWSERS["chrome"], "linux")[-1] == "google-chrome-stable"


def test_install_reports_failures(cfg, runner):
    runner.fail = {"firefox"}
    svc = BrowserService(cfg, BrowserSettings.load(cfg), runner)
    report = svc.install(["brave", "firefox", "netscape"])
    assert report.installed == ["brave"]
    assert report.failed == ["firefox", "netscape"]


def test_default_browser_is_persisted(cfg, runner):
    runner.available = {"xdg-settings"}
    svc = BrowserService(cfg, BrowserSettings.load(cfg), runner)
    svc.set_default_browser("firefox")
    assert BrowserSettings.load(cfg).default_browser == "firefox"
    assert "xdg-settings set default-web-browser firefox.desktop" in runner.lines()
    with pytest.raises(ValueError, match="E_BROWSER_INVALID"):
        svc.set_default_browser("mosaic")


def test_default_browser_on_wsl_opens_settings(cfg, runner):
    wsl = replace(cfg, platform="wsl")
    svc = BrowserService(wsl, BrowserSettings.load(wsl), runner)
    svc.set_default_browser("edge")
    assert runner.lines() == ["cmd.exe /c start  ms-settings:defaultapps"]


def test_search_engine_guide(cfg, runner):
    svc = BrowserService(cfg, BrowserSettings.load(cfg), runner)
    url = svc.set_search_engine("duckduckgo")
    assert url == "https://duckduckgo.com/?q=%s"
    assert BrowserSettings.load(cfg).default_search == "duckduckgo"
    guide = pathlib.Path(cfg.config_dir, "search_engine_guide.md").read_text(encoding="utf-8")
    assert "Keyword: duckduckgo.com" in guide


def test_privacy_script(cfg, runner, tmp_path):
    svc = BrowserService(cfg, BrowserSettings.load(cfg), runner)
    ps1, bat = svc.privacy_script(str(tmp_path / "win"))
    assert ps1.endswith("privacy_settings.ps1")
    assert os.path.exists(bat)


def test_unknown_search_engine_is_rejected(cfg, runner):
    svc = BrowserService(cfg, BrowserSettings.load(cfg), runner)
    with pytest.raises(ValueError, match="E_SEARCH_INVALID") as exc:
        svc.set_search_engine("altavista")
    assert describe(exc.value) == "Unknown search engine. (altavista)"
    assert BrowserSettings.load(cfg).default_search == "google"
