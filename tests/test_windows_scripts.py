import os, sys, pathlib
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.services.windows_scripts import (
    RegistryTweak, WindowsScriptGenerator, build_scripts, launch_hint, render,
)


def test_known_scripts():
    assert list(build_scripts()) == ["performance", "dev", "wsl", "startup", "privacy"]


def test_registry_tweak_rendering():
    assert RegistryTweak(r"HKCU:\X", "A", 1).render() == 'Set-RegistryValue -Path "HKCU:\\X" -Name "A" -Value 1 -Type DWord'
    assert RegistryTweak(r"HKCU:\X", "B", "0").render().endswith('-Value "0" -Type String')
    assert "0x03, 0x00" in RegistryTweak(r"HKCU:\X", "C", b"\x03\x00").render()


def test_privacy_script_content():
    text = render(build_scripts()["privacy"])
    assert "function Set-RegistryValue" in text
    assert '-Name "AllowTelemetry" -Value 0' in text
    assert "Windows Privacy Configuration completed." in text


def test_generate_writes_script_and_launcher(tmp_path):
    gen = WindowsScriptGenerator(str(tmp_path), distro="Ubuntu")
    ps1, bat = gen.generate("performance")
    assert ps1 == str(tmp_path / "performance_optimizer.ps1")
    assert 'Disable-ServiceIfPresent -Name "DiagTrack"' in pathlib.Path(ps1).read_text(encoding="utf-8")
    raw = pathlib.Path(bat).read_bytes()
    assert raw.startswith(b"@echo off\r\n")
    assert b"\\\\wsl$\\Ubuntu" in raw


def test_unknown_script_kind(tmp_path):
    gen = WindowsScriptGenerator(str(tmp_path / "out"))
    with pytest.raises(ValueError, match="E_WINDOWS_SCRIPT"):
        gen.generate("registry-cleaner")
    assert not (tmp_path / "out").exists()


def test_wsl_limits_are_configurable():
    text = render(build_scripts(memory_gb=8, processors=4, swap_gb=2)["wsl"])
    assert "$ramToAllocate = 8" in text
    assert "$cpuToAllocate = 4" in text
    assert "swap=2GB" in text


def test_launch_hint_for_windows_drive():
    hint = launch_hint("/mnt/c/Users/ada/scripts/privacy_settings.ps1")
    assert hint == 'PowerShell.exe -ExecutionPolicy Bypass -File "C:\\Users\\ada\\scripts\\privacy_settings.ps1"'
