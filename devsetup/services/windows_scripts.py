"""PowerShell generators for Windows-side tweaks.

WSL cannot touch the Windows registry, so every tweak is rendered into a
``.ps1`` file (plus a ``.bat`` launcher) that the user runs as Administrator.
Registry edits are declared as data and rendered through one helper function.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Union

from devsetup.utils.host import wsl_to_windows_path

log = logging.getLogger(__name__)

RegValue = Union[int, str, bytes]


@dataclass(frozen=True)
class RegistryTweak:
    path: str
    name: str
    value: RegValue
    kind: str = "DWord"

    def render(self) -> str:
        if isinstance(self.value, bytes):
            v = "([byte[]](" + ", ".join(f"0x{b:02X}" for b in self.value) + "))"
            kind = "Binary"
        elif isinstance(self.value, str):
            v = f'"{self.value}"'
            kind = "String" if self.kind == "DWord" else self.kind
        else:
            v = str(self.value)
            kind = self.kind
        return f'Set-RegistryValue -Path "{self.path}" -Name "{self.name}" -Value {v} -Type {kind}'


@dataclass
class Section:
    title: str
    tweaks: list[RegistryTweak] = field(default_factory=list)
    services: list[str] = field(default_factory=list)
    raw: str = ""


@dataclass
class WindowsScript:
    key: str
    filename: str
    title: str
    sections: list[Section]
    reboot_hint: bool = True


_HEADER = """# {title}
# Generated by devsetup. Run in PowerShell as Administrator.

$ErrorActionPreference = "Continue"
$currentPrincipal = New-Object Security.Principal.WindowsPrincipal([Security.Principal.WindowsIdentity]::GetCurrent())
if (-not $currentPrincipal.IsInRole([Security.Principal.WindowsBuiltInRole]::Administrator)) {{
    Write-Host "This script needs to be run as Administrator." -ForegroundColor Red
    Write-Host "Right-click PowerShell, select 'Run as administrator', then try again." -ForegroundColor Yellow
    exit 1
}}

function Set-RegistryValue {{
    param (
        [string]$Path,
        [string]$Name,
        [object]$Value,
        [string]$Type = "DWord"
    )
    if (!(Test-Path $Path)) {{
        New-Item -Path $Path -Force | Out-Null
    }}
    Set-ItemProperty -Path $Path -Name $Name -Value $Value -Type $Type
    Write-Host "Set $Path\\$Name = $Value" -ForegroundColor Green
}}

function Disable-ServiceIfPresent {{
    param ([string]$Name)
    $svc = Get-Service -Name $Name -ErrorAction SilentlyContinue
    if ($svc) {{
        Write-Host "Disabling service: $Name" -ForegroundColor Yellow
        Stop-Service -Name $Name -Force -ErrorAction SilentlyContinue
        Set-Service -Name $Name -StartupType Disabled -ErrorAction SilentlyContinue
    }}
}}

Write-Host "Starting: {title}" -ForegroundColor Cyan
"""

_FOOTER = """
Write-Host "{title} completed." -ForegroundColor Green
"""

_REBOOT = """Write-Host "Some changes need a restart to take effect." -ForegroundColor Yellow
"""

_ADVANCED = r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced"

DEV_TOOLS = [
    ("Git.Git", "Git version control system"),
    ("Microsoft.VisualStudioCode", "Visual Studio Code editor"),
    ("Microsoft.WindowsTerminal", "Windows Terminal"),
    ("Microsoft.PowerToys", "PowerToys for Windows"),
    ("7zip.7zip", "7-Zip file archiver"),
]

PERFORMANCE_SERVICES = [
    "DiagTrack", "dmwappushservice", "SysMain", "WSearch", "lfsvc", "MapsBroker",
    "RetailDemo", "XblAuthManager", "XblGameSave", "XboxNetApiSvc", "PushToInstall", "OneSyncSvc",
]


def _winget_block(tools: list[tuple[str, str]]) -> str:
    lines = ["$devTools = @("]
    lines += [f'    @{{Name = "{name}"; Description = "{desc}"}},' for name, desc in tools]
    lines[-1] = lines[-1].rstrip(",")
    lines += [
        ")",
        "foreach ($tool in $devTools) {",
        '    Write-Host "Installing $($tool.Description)..." -ForegroundColor Yellow',
        "    winget install $tool.Name --accept-source-agreements --accept-package-agreements -s winget",
        "}",
    ]
    return "\n".join(lines)


def _wslconfig_block(memory_gb: Optional[int], processors: Optional[int], swap_gb: int) -> str:
    mem = f"{memory_gb}" if memory_gb else "[Math]::Max(4, [Math]::Min(16, [int]($totalRam / 2)))"
    cpu = f"{processors}" if processors else "[Math]::Max(2, [Math]::Min(8, $cpuCount - 2))"
    return f"""$wslConfigPath = "$env:USERPROFILE\\.wslconfig"
$totalRam = (Get-CimInstance Win32_PhysicalMemory | Measure-Object -Property capacity -Sum).Sum / 1GB
$cpuCount = (Get-CimInstance Win32_ComputerSystem).NumberOfLogicalProcessors
$ramToAllocate = {mem}
$cpuToAllocate = {cpu}
$wslConfig = @"
[wsl2]
memory=${{ramToAllocate}}GB
processors=$cpuToAllocate
swap={swap_gb}GB
localhostForwarding=true
"@
$wslConfig | Set-Content -Path $wslConfigPath -Force
Write-Host "Wrote $wslConfigPath (memory ${{ramToAllocate}}GB, $cpuToAllocate processors)" -ForegroundColor Green
wsl --shutdown"""


_STARTUP_BLOCK = r"""$runKeys = @(
    "HKCU:\SOFTWARE\Microsoft\Windows\CurrentVersion\Run",
    "HKLM:\SOFTWARE\Microsoft\Windows\CurrentVersion\Run"
)
$entries = @()
foreach ($key in $runKeys) {
    if (Test-Path $key) {
        $props = Get-ItemProperty -Path $key
        foreach ($p in $props.PSObject.Properties) {
            if ($p.Name -notlike "PS*") {
                $entries += [PSCustomObject]@{Key = $key; Name = $p.Name; Command = $p.Value}
            }
        }
    }
}
if ($entries.Count -eq 0) {
    Write-Host "No startup entries found." -ForegroundColor Green
} else {
    for ($i = 0; $i -lt $entries.Count; $i++) {
        Write-Host ("[{0}] {1}  ->  {2}" -f $i, $entries[$i].Name, $entries[$i].Command)
    }
    $choice = Read-Host "Comma-separated numbers to disable (empty to skip)"
    if ($choice) {
        foreach ($n in $choice.Split(",")) {
            $e = $entries[[int]$n.Trim()]
            $approved = $e.Key.Replace("\Run", "\Explorer\StartupApproved\Run")
            Set-RegistryValue -Path $approved -Name $e.Name -Value ([byte[]](0x03,0,0,0,0,0,0,0,0,0,0,0)) -Type Binary
            Write-Host "Disabled: $($e.Name)" -ForegroundColor Yellow
        }
    }
}"""


def build_scripts(memory_gb: Optional[int] = None, processors: Optional[int] = None,
                  swap_gb: int = 4) -> dict[str, WindowsScript]:
    return {
        "performance": WindowsScript("performance", "performance_optimizer.ps1", "Windows Performance Optimizer", [
            Section("Disabling unnecessary services", services=list(PERFORMANCE_SERVICES)),
            Section("Optimizing visual effects", tweaks=[
                RegistryTweak(r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Explorer\VisualEffects", "VisualFXSetting", 2),
                RegistryTweak(r"HKCU:\Control Panel\Desktop", "DragFullWindows", "0"),
                RegistryTweak(r"HKCU:\Control Panel\Desktop", "MenuShowDelay", "0"),
                RegistryTweak(r"HKCU:\Control Panel\Desktop\WindowMetrics", "MinAnimate", "0"),
                RegistryTweak(_ADVANCED, "ListviewAlphaSelect", 0),
                RegistryTweak(_ADVANCED, "ListviewShadow", 0),
                RegistryTweak(_ADVANCED, "TaskbarAnimations", 0),
            ]),
            Section("Tuning memory and network", tweaks=[
                RegistryTweak(r"HKLM:\SYSTEM\CurrentControlSet\Control\Session Manager\Memory Management", "LargeSystemCache", 0),
                RegistryTweak(r"HKLM:\SYSTEM\CurrentControlSet\Control\Session Manager\Memory Management", "DisablePagingExecutive", 1),
                RegistryTweak(r"HKLM:\SYSTEM\CurrentControlSet\Services\Tcpip\Parameters", "EnableTCPChimney", 1),
                RegistryTweak(r"HKLM:\SYSTEM\CurrentControlSet\Services\Tcpip\Parameters", "EnableRSS", 1),
            ]),
            Section("Enabling Game Mode, disabling Game DVR", tweaks=[
                RegistryTweak(r"HKCU:\Software\Microsoft\GameBar", "AllowAutoGameMode", 1),
                RegistryTweak(r"HKCU:\Software\Microsoft\GameBar", "AutoGameModeEnabled", 1),
                RegistryTweak(r"HKCU:\Software\Microsoft\Windows\CurrentVersion\GameDVR", "AppCaptureEnabled", 0),
            ]),
            Section("Selecting the High Performance power plan",
                    raw="powercfg -setactive 8c5e7fda-e8bf-4a96-9a85-a6e23a8c635c"),
        ]),
        "dev": WindowsScript("dev", "dev_environment_setup.ps1", "Windows Development Environment Setup", [
            Section("Installing developer tools with winget", raw=_winget_block(DEV_TOOLS)),
            Section("Configuring File Explorer", tweaks=[
                RegistryTweak(_ADVANCED, "HideFileExt", 0),
                RegistryTweak(_ADVANCED, "Hidden", 1),
                RegistryTweak(r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Explorer\CabinetState", "FullPath", 1),
                RegistryTweak(_ADVANCED, "LaunchTo", 1),
            ]),
            Section("Enabling Developer Mode", tweaks=[
                RegistryTweak(r"HKLM:\SOFTWARE\Microsoft\Windows\CurrentVersion\AppModelUnlock", "AllowDevelopmentWithoutDevLicense", 1),
            ]),
        ], reboot_hint=False),
        "wsl": WindowsScript("wsl", "wsl_optimizer.ps1", "WSL Optimizer", [
            Section("Writing .wslconfig", raw=_wslconfig_block(memory_gb, processors, swap_gb)),
            Section("Reserving Hyper-V memory", tweaks=[
                RegistryTweak(r"HKLM:\SOFTWARE\Microsoft\Windows NT\CurrentVersion\Virtualization", "MemoryReserve", 1024),
            ]),
        ]),
        "startup": WindowsScript("startup", "startup_manager.ps1", "Startup Manager", [
            Section("Listing startup programs", raw=_STARTUP_BLOCK),
        ], reboot_hint=False),
        "privacy": WindowsScript("privacy", "privacy_settings.ps1", "Windows Privacy Configuration", [
            Section("Disabling telemetry", tweaks=[
                RegistryTweak(r"HKLM:\SOFTWARE\Policies\Microsoft\Windows\DataCollection", "AllowTelemetry", 0),
                RegistryTweak(r"HKLM:\SOFTWARE\Microsoft\Windows\CurrentVersion\Policies\DataCollection", "AllowTelemetry", 0),
                RegistryTweak(r"HKLM:\SOFTWARE\Policies\Microsoft\Windows\DataCollection", "DoNotShowFeedbackNotifications", 1),
            ]),
            Section("Disabling advertising ID and app tracking", tweaks=[
                RegistryTweak(r"HKCU:\SOFTWARE\Microsoft\Windows\CurrentVersion\AdvertisingInfo", "Enabled", 0),
                RegistryTweak(_ADVANCED, "Start_TrackProgs", 0),
            ]),
            Section("Disabling suggestions", tweaks=[
                RegistryTweak(r"HKCU:\SOFTWARE\Microsoft\Windows\CurrentVersion\ContentDeliveryManager", "SubscribedContent-338388Enabled", 0),
                RegistryTweak(r"HKCU:\SOFTWARE\Microsoft\Windows\CurrentVersion\ContentDeliveryManager", "SystemPaneSuggestionsEnabled", 0),
            ]),
            Section("Disabling location, feedback and background apps", tweaks=[
                RegistryTweak(r"HKLM:\SOFTWARE\Microsoft\Windows\CurrentVersion\CapabilityAccessManager\ConsentStore\location", "Value", "Deny"),
                RegistryTweak(r"HKCU:\SOFTWARE\Microsoft\Siuf\Rules", "NumberOfSIUFInPeriod", 0),
                RegistryTweak(r"HKCU:\SOFTWARE\Microsoft\Windows\CurrentVersion\BackgroundAccessApplications", "GlobalUserDisabled", 1),
                RegistryTweak(r"HKLM:\SOFTWARE\Policies\Microsoft\Windows\System", "EnableActivityFeed", 0),
            ]),
        ]),
    }


def render(script: WindowsScript) -> str:
    parts = [_HEADER.format(title=script.title)]
    for sec in script.sections:
        parts.append(f'\n# ======= {sec.title} =======\nWrite-Host "{sec.title}..." -ForegroundColor Yellow')
        for svc in sec.services:
            parts.append(f'Disable-ServiceIfPresent -Name "{svc}"')
        for tw in sec.tweaks:
            parts.append(tw.render())
        if sec.raw:
            parts.append(sec.raw)
    parts.append(_FOOTER.format(title=script.title))
    if script.reboot_hint:
        parts.append(_REBOOT)
    return "\n".join(parts)


def launcher(ps1_windows_path: str) -> str:
    return (
        "@echo off\r\n"
        ":: Run the PowerShell script as Administrator\r\n"
        f"PowerShell -NoProfile -ExecutionPolicy Bypass -Command \"Start-Process PowerShell "
        f"-ArgumentList '-NoProfile -ExecutionPolicy Bypass -File \"\"{ps1_windows_path}\"\"' -Verb RunAs\"\r\n"
    )


def launch_hint(path: str, distro: Optional[str] = None) -> str:
    return f'PowerShell.exe -ExecutionPolicy Bypass -File "{wsl_to_windows_path(path, distro)}"'


class WindowsScriptGenerator:
    def __init__(self, out_dir: str, distro: Optional[str] = None, **options):
        self.out_dir = out_dir
        self.distro = distro
        self.scripts = build_scripts(**options)

    def generate(self, kind: str) -> tuple[str, str]:
        """Write ``<kind>.ps1`` and its ``.bat`` launcher; returns both paths."""
        script = self.scripts.get(kind)
        if script is None:
            raise ValueError(f"E_WINDOWS_SCRIPT: {kind}")
        os.makedirs(self.out_dir, exist_ok=True)
        ps1 = os.path.join(self.out_dir, script.filename)
        with open(ps1, "w", encoding="utf-8") as f:
            f.write(render(script))
        bat = os.path.splitext(ps1)[0] + ".bat"
        with open(bat, "w", encoding="utf-8", newline="") as f:
            f.write(launcher(wsl_to_windows_path(ps1, self.distro)))
        log.info("Generated %s", ps1)
        return ps1, bat

    def generate_all(self) -> list[tuple[str, str]]:
        return [self.generate(k) for k in self.scripts]
