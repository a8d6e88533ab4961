from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from devsetup.config import BrowserSettings, Config
from devsetup.errors import CommandError
from devsetup.integrations.base import Runner
from devsetup.services.windows_scripts import WindowsScriptGenerator
from devsetup.utils.host import LINUX, MACOS, WSL

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Browser:
    key: str
    title: str
    cask: str
    winget: str
    linux: tuple[str, str]  # (manager, package)
    desktop: str


BROWSERS: dict[str, Browser] = {
    "brave": Browser("brave", "Brave Browser", "brave-browser", "BraveSoftware.BraveBrowser",
                     ("snap", "brave"), "brave-browser.desktop"),
    "firefox": Browser("firefox", "Firefox", "firefox", "Mozilla.Firefox",
                       ("apt", "firefox"), "firefox.desktop"),
    "chrome": Browser("chrome", "Google Chrome", "google-chrome", "Google.Chrome",
                      ("apt", "google-chrome-stable"), "google-chrome.desktop"),
    "edge": Browser("edge", "Microsoft Edge", "microsoft-edge", "Microsoft.Edge",
                    ("apt", "microsoft-edge-stable"), "microsoft-edge.desktop"),
}

SEARCH_ENGINES = {
    "google": ("Google", "https://www.google.com/search?q=%s"),
    "duckduckgo": ("DuckDuckGo", "https://duckduckgo.com/?q=%s"),
    "bing": ("Bing", "https://www.bing.com/search?q=%s"),
    "brave": ("Brave Search", "https://search.brave.com/search?q=%s"),
}


@dataclass
class BrowserInstallReport:
    installed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def install_command(browser: Browser, platform: str) -> list[str]:
    if platform == MACOS:
        return ["brew", "install", "--cask", browser.cask]
    if platform == WSL:
        return ["powershell.exe", "-Command",
                f"winget install -e --id {browser.winget} --accept-source-agreements --accept-package-agreements -s winget"]
    manager, package = browser.linux
    if manager == "snap":
        return ["sudo", "snap", "install", package]
    return ["sudo", "apt", "install", "-y", package]


class BrowserService:
    def __init__(self, cfg: Config, settings: BrowserSettings, runner: Runner):
        self.cfg = cfg
        self.settings = settings
        self.runner = runner

    def install(self, browsers: list[str]) -> BrowserInstallReport:
        report = BrowserInstallReport()
        for key in browsers:
            browser = BROWSERS.get(key)
            if browser is None:
                log.warning("Unknown browser %r, skipping", key)
                report.failed.append(key)
                continue
            try:
                self.runner.run(install_command(browser, self.cfg.platform))
                report.installed.append(key)
                log.info("%s installed", browser.title)
            except CommandError as e:
                report.failed.append(key)
                log.warning("Failed to install %s: %s", browser.title, e)
        return report

    def set_default_browser(self, key: str) -> BrowserSettings:
        """Persist the preference and hand off to the OS where it can't be set from here."""
        browser = BROWSERS.get(key)
        if browser is None:
            raise ValueError(f"E_BROWSER_INVALID: {key}")
        self.settings = self.settings.update(self.cfg, default_browser=key)
        if self.cfg.platform == WSL:
            self.runner.run(["cmd.exe", "/c", "start", "", "ms-settings:defaultapps"], check=False)
        elif self.cfg.platform == MACOS:
            self.runner.run(["open", "/System/Library/PreferencePanes/General.prefPane"], check=False)
        elif self.cfg.platform == LINUX and self.runner.which("xdg-settings"):
            res = self.runner.run(["xdg-settings", "set", "default-web-browser", browser.desktop], check=False)
            if not res.ok:
                log.warning("xdg-settings could not set %s as default", browser.title)
        return self.settings

    def set_search_engine(self, key: str) -> str:
        if key not in SEARCH_ENGINES:
            raise ValueError(f"E_SEARCH_INVALID: {key}")
        self.settings = self.settings.update(self.cfg, default_search=key)
        title, url = SEARCH_ENGINES[key]
        self._write_search_guide(title, url)
        return url

    def _write_search_guide(self, title: str, url: str) -> str:
        path = os.path.join(self.cfg.config_dir, "search_engine_guide.md")
        keyword = url.split("/")[2].removeprefix("www.")
        body = (
            f"# Setting Up {title} as Your Default Search Engine\n\n"
            "Chromium browsers (Brave, Chrome, Edge): Settings > Search engine > Manage search engines, "
            "then add:\n\n"
            f"- Search engine: {title}\n"
            f"- Keyword: {keyword}\n"
            f"- URL with %s in place of query: {url}\n\n"
            "Firefox: Settings > Search > Default Search Engine.\n"
        )
        with open(path, "w", encoding="utf-8") as f:
            f.write(body)
        return path

    def privacy_script(self, out_dir: Optional[str] = None) -> tuple[str, str]:
        gen = WindowsScriptGenerator(out_dir or os.path.join(self.cfg.scripts_dir, "windows"))
        return gen.generate("privacy")
