from __future__ import annotations
import os
import platform as _platform
import re
import subprocess
from typing import Literal

Platform = Literal["wsl", "macos", "linux"]

WSL = "wsl"
MACOS = "macos"
LINUX = "linux"

_MNT_RE = re.compile(r"^/mnt/([a-zA-Z])(/.*)?$")


def detect_platform(proc_version: str = "/proc/version") -> Platform:
    """Best-effort detection of WSL / macOS / plain Linux."""
    try:
        with open(proc_version, "r", encoding="utf-8", errors="ignore") as f:
            if "microsoft" in f.read().lower():
                return WSL
    except OSError:
        pass
    if _platform.system() == "Darwin":
        return MACOS
    return LINUX


def windows_username() -> str | None:
    """Ask cmd.exe for %USERNAME%; None outside WSL or on failure."""
    try:
        out = subprocess.run(
            ["cmd.exe", "/c", "echo %USERNAME%"],
            capture_output=True, text=True, timeout=10,
        ).stdout
    except (OSError, subprocess.SubprocessError):
        return None
    name = out.replace("\r", "").strip()
    if not name or name.endswith("%"):
        return None
    return name


def wsl_distro() -> str:
    name = os.getenv("WSL_DISTRO_NAME")
    if name:
        return name
    try:
        with open("/etc/os-release", "r", encoding="utf-8") as f:
            for line in f:
                if line.startswith("ID="):
                    return line.split("=", 1)[1].strip().strip('"').capitalize()
    except OSError:
        pass
    return "Ubuntu"


def windows_to_wsl_path(win_path: str) -> str:
    r"""G:\My Drive\Backups -> /mnt/g/My Drive/Backups"""
    p = win_path.strip().replace("\\", "/")
    if len(p) >= 2 and p[1] == ":":
        return f"/mnt/{p[0].lower()}{p[2:]}"
    return p


def wsl_to_windows_path(path: str, distro: str | None = None) -> str:
    r"""Path as Windows sees it: /mnt/c/x -> C:\x, anything else -> \\wsl$\<distro>\..."""
    m = _MNT_RE.match(path)
    if m:
        rest = (m.group(2) or "/").replace("/", "\\")
        return m.group(1).upper() + ":" + rest
    distro = distro or wsl_distro()
    return "\\\\wsl$\\" + distro + path.replace("/", "\\")


def vscode_settings_dir(plat: str, home: str) -> str | None:
    linux_dir = os.path.join(home, ".config", "Code", "User")
    if os.path.isdir(linux_dir):
        return linux_dir
    if plat == MACOS:
        mac_dir = os.path.join(home, "Library", "Application Support", "Code", "User")
        return mac_dir if os.path.isdir(mac_dir) else None
    if plat == WSL:
        user = windows_username()
        if user:
            win_dir = f"/mnt/c/Users/{user}/AppData/Roaming/Code/User"
            if os.path.isdir(win_dir):
                return win_dir
    return None
