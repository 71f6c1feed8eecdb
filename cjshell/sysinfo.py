"""System, environment and network facts shown in the prompt."""

from __future__ import annotations

import os
import platform
import re
import subprocess
import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path

_OS_RELEASE = Path("/etc/os-release")
_POWER_SUPPLY = Path("/sys/class/power_supply/BAT0")
_EXTERNAL_IP_HOST = "icanhazip.com"

_CHARGING_ICON = "⚡"
_DISCHARGING_ICON = "🔋"

_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_LANGUAGE_COMMANDS = {
    "python": "python --version 2>&1",
    "node": "node --version",
    "nodejs": "node --version",
    "ruby": "ruby --version | awk '{print $2}'",
    "go": "go version | awk '{print $3}' | sed 's/go//'",
    "rust": "rustc --version | awk '{print $2}'",
}


class TTLCache:
    """Remembers computed values for a limited number of seconds."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, compute: Callable[[], str], ttl: float) -> str:
        """Return the cached value for key, computing it again once ttl has passed."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and now - entry[1] < ttl:
                return entry[0]
        value = compute()
        with self._lock:
            self._entries[key] = (value, self._clock())
        return value


_cache = TTLCache()


def _platform() -> str:
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform.startswith("linux"):
        return "linux"
    return "other"


def _shell_output(cmd: str) -> str | None:
    """Run cmd through the system shell and return its output, or None if it cannot start."""
    try:
        completed = subprocess.run(
            cmd,
            shell=True,
            stdout=subprocess.PIPE,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError:
        return None
    return completed.stdout or ""


def _chomp(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


def _first_line(text: str) -> str:
    return text.split("\n", 1)[0]


def _parse_float_prefix(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return 0.0
    try:
        return float(match.group())
    except ValueError:
        return 0.0


def _read_first_line(path: Path) -> str:
    try:
        with path.open(errors="replace") as handle:
            return _chomp(handle.readline())
    except OSError:
        return ""


def _compute_os_info() -> str:
    kind = _platform()
    if kind == "darwin":
        name = _shell_output("sw_vers -productName")
        if name is None:
            return "Unknown"
        result = _chomp(name)
        version = _shell_output("sw_vers -productVersion")
        if version is not None:
            result += " " + _chomp(version)
        return result
    if kind == "linux":
        try:
            text = _OS_RELEASE.read_text(errors="replace")
        except OSError:
            return ""
        names = [
            line.split('"')[1] if '"' in line else line
            for line in text.split("\n")
            if "PRETTY_NAME" in line
        ]
        return "\n".join(names)
    return "Unknown OS"


def get_os_info() -> str:
    """Operating system name and version, cached for an hour."""
    return _cache.get("os_info", _compute_os_info, 3600)


def get_kernel_version() -> str:
    """Kernel release, cached for an hour."""
    return _cache.get("kernel_version", lambda: platform.release() or "Unknown", 3600)


def get_cpu_usage() -> float:
    """Current CPU usage in percent, or 0.0 if it cannot be read."""
    kind = _platform()
    if kind == "darwin":
        cmd = r'top -l 1 | grep "CPU usage" | awk "{print \$3}" | cut -d"%" -f1'
    elif kind == "linux":
        cmd = r'top -bn1 | grep "Cpu(s)" | awk "{print \$2 + \$4}"'
    else:
        return 0.0
    output = _shell_output(cmd)
    return 0.0 if output is None else _parse_float_prefix(output)


def get_memory_usage() -> float:
    """Current memory usage, or 0.0 if it cannot be read."""
    kind = _platform()
    if kind == "darwin":
        cmd = r'top -l 1 | grep PhysMem | awk "{print \$2}" | cut -d"M" -f1'
    elif kind == "linux":
        cmd = r'free | grep Mem | awk "{print \$3/\$2 * 100.0}"'
    else:
        return 0.0
    output = _shell_output(cmd)
    return 0.0 if output is None else _parse_float_prefix(output)


def get_battery_status() -> str:
    """Battery percentage followed by a charging or discharging icon."""
    kind = _platform()
    if kind == "darwin":
        output = _shell_output(r'pmset -g batt | grep -Eo "\\d+%"')
        if output is None:
            return "Unknown"
        percentage = _first_line(output)
        output = _shell_output(
            'pmset -g batt | grep -Eo ";.*" | cut -d ";" -f2 | cut -d " " -f2'
        )
        if output is None:
            return percentage
        status = _first_line(output)
        icon = {"charging": _CHARGING_ICON, "discharging": _DISCHARGING_ICON}.get(
            status, ""
        )
        return f"{percentage} {icon}"
    if kind == "linux":
        percentage = _read_first_line(_POWER_SUPPLY / "capacity")
        status = _read_first_line(_POWER_SUPPLY / "status")
        icon = {"Charging": _CHARGING_ICON, "Discharging": _DISCHARGING_ICON}.get(
            status, ""
        )
        return f"{percentage}% {icon}"
    return "Unknown"


def get_uptime() -> str:
    """System uptime as reported by the uptime command."""
    output = _shell_output(r'uptime | awk "{print \$3 \$4 \$5}" | sed "s/,//g"')
    return "Unknown" if output is None else _chomp(output)


def get_terminal_type() -> str:
    """The TERM environment variable, or "Unknown"."""
    return os.environ.get("TERM", "Unknown")


def get_terminal_dimensions() -> tuple[int, int]:
    """Terminal (columns, rows) of standard output, or (0, 0) if not a terminal."""
    try:
        size = os.get_terminal_size(sys.stdout.fileno())
    except (OSError, ValueError, AttributeError):
        return 0, 0
    return size.columns, size.lines


def get_active_language_version(language: str) -> str:
    """Version of the named language's tool, or "Unknown"."""
    cmd = _LANGUAGE_COMMANDS.get(language)
    if cmd is None:
        return "Unknown"
    output = _shell_output(cmd)
    return "Unknown" if output is None else _chomp(output)


def virtual_environment_name() -> str | None:
    """Name of the active Python, nvm or rbenv environment, or None."""
    python_env = os.environ.get("VIRTUAL_ENV")
    if python_env is not None:
        return re.split(r"[/\\]", python_env)[-1]
    if "NVM_DIR" in os.environ:
        return "nvm"
    ruby_env = os.environ.get("RBENV_VERSION")
    if ruby_env is not None:
        return "rbenv:" + ruby_env
    return None


def _compute_external_ip() -> str:
    output = _shell_output(f"curl -s -m 2 {_EXTERNAL_IP_HOST}")
    return "Unknown" if output is None else _chomp(output)


def _compute_local_ip() -> str:
    kind = _platform()
    if kind == "darwin":
        cmd = "ipconfig getifaddr en0 2>/dev/null || ipconfig getifaddr en1"
    elif kind == "linux":
        cmd = r'hostname -I | awk "{print \$1}"'
    else:
        return "Unknown"
    output = _shell_output(cmd)
    return "Unknown" if output is None else _chomp(output)


def get_ip_address(external: bool) -> str:
    """Local or external IP address, cached for one or five minutes."""
    if external:
        return _cache.get("external_ip", _compute_external_ip, 300)
    return _cache.get("local_ip", _compute_local_ip, 60)


def _compute_vpn_active() -> str:
    kind = _platform()
    if kind == "darwin":
        cmd = "scutil --nc list | grep Connected | wc -l"
    elif kind == "linux":
        cmd = "ip tuntap show | grep -q tun && echo 1 || echo 0"
    else:
        return "0"
    output = _shell_output(cmd)
    return "0" if output is None else output.rstrip(" \n\r\t")


def is_vpn_active() -> bool:
    """True if a VPN tunnel appears to be up."""
    return _cache.get("vpn_active", _compute_vpn_active, 60) in ("1", "true")


def _compute_network_interface() -> str:
    kind = _platform()
    if kind == "darwin":
        cmd = r'route get default | grep interface | awk "{print \$2}"'
    elif kind == "linux":
        cmd = r'ip route | grep default | awk "{print \$5}" | head -n1'
    else:
        return "Unknown"
    output = _shell_output(cmd)
    return "Unknown" if output is None else _chomp(output)


def get_active_network_interface() -> str:
    """Interface carrying the default route, cached for two minutes."""
    return _cache.get("active_network_interface", _compute_network_interface, 120)


def get_background_jobs_count() -> int:
    """Number of background jobs reported by a fresh shell."""
    output = _shell_output("jobs -p | wc -l")
    if output is None:
        return 0
    try:
        return int(_first_line(output).strip())
    except ValueError:
        return 0