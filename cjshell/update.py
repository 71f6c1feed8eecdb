"""Update checks, the update cache and first-boot markers."""

from __future__ import annotations

import json
import re
import sys
import time
import urllib.error
import urllib.request
from dataclasses import asdict, dataclass
from pathlib import Path

_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_FIRST_BOOT_FLAG = ".first_boot_complete"


@dataclass
class UpdateCache:
    """What the last update check found and when it ran."""

    update_available: bool
    latest_version: str
    check_time: int


def parse_version(ver: str) -> list[int]:
    """Split a dotted version into integers; raise ValueError on a bad part."""
    parts = ver.split(".")
    if parts and parts[-1] == "":
        parts.pop()
    numbers = []
    for part in parts:
        match = _INT_PREFIX.match(part)
        if match is None:
            raise ValueError(f"invalid version component: {part!r}")
        numbers.append(int(match.group()))
    return numbers


def is_newer_version(latest: str, current: str) -> bool:
    """True if latest is strictly greater than current."""
    a, b = parse_version(latest), parse_version(current)
    size = max(len(a), len(b))
    a += [0] * (size - len(a))
    b += [0] * (size - len(b))
    return a > b


def check_for_update(current_version: str, update_url: str) -> tuple[bool, str | None]:
    """Fetch the latest release and return (update available, latest version)."""
    try:
        with urllib.request.urlopen(update_url, timeout=10) as response:
            body = response.read().decode("utf-8", errors="replace")
    except (urllib.error.URLError, OSError) as exc:
        print(f"Error: Unable to execute update check: {exc}", file=sys.stderr)
        return False, None

    try:
        data = json.loads(body)
        if not isinstance(data, dict) or "tag_name" not in data:
            return False, None
        latest = data["tag_name"]
        if not isinstance(latest, str):
            raise TypeError("tag_name is not a string")
        latest = latest.removeprefix("v")
        current = current_version.removeprefix("v")
        if is_newer_version(latest, current):
            print(f"\n{current_version} -> {latest}")
            return True, latest
        return False, latest
    except (ValueError, TypeError) as exc:
        print(f"Error parsing update data: {exc}", file=sys.stderr)
        return False, None


def load_update_cache(path: str | Path) -> UpdateCache | None:
    """Read the update cache, or return None if it is missing or unusable."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        cache = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        print(f"Error loading update cache: {exc}", file=sys.stderr)
        return None
    if not isinstance(cache, dict) or not all(
        key in cache for key in ("update_available", "latest_version", "check_time")
    ):
        return None
    available, latest, checked = (
        cache["update_available"],
        cache["latest_version"],
        cache["check_time"],
    )
    if (
        not isinstance(available, bool)
        or not isinstance(latest, str)
        or not isinstance(checked, int)
        or isinstance(checked, bool)
    ):
        print("Error loading update cache: unexpected value types", file=sys.stderr)
        return None
    return UpdateCache(available, latest, checked)


def save_update_cache(path: str | Path, available: bool, latest: str) -> UpdateCache | None:
    """Write the result of an update check; return it, or None if unwritable."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    cache = UpdateCache(available, latest, int(time.time()))
    try:
        path.write_text(json.dumps(asdict(cache), indent=4) + "\n")
    except OSError:
        print(
            f"Warning: Could not open update cache file for writing: {path}",
            file=sys.stderr,
        )
        return None
    return cache


def should_check_for_updates(last_check: int, interval: int) -> bool:
    """True if no check has run yet or more than interval seconds have passed."""
    if last_check == 0:
        return True
    return int(time.time()) - last_check > interval


def is_first_boot(data_dir: str | Path) -> bool:
    """True until the first-boot marker exists in data_dir."""
    return not (Path(data_dir) / _FIRST_BOOT_FLAG).exists()


def mark_first_boot_complete(data_dir: str | Path) -> None:
    """Create the first-boot marker in data_dir."""
    (Path(data_dir) / _FIRST_BOOT_FLAG).touch()


def display_changelog(path: str | Path) -> None:
    """Print a changelog file between banners; do nothing if unreadable."""
    try:
        content = Path(path).read_text()
    except OSError:
        return
    print(f"\n===== CHANGELOG =====\n{content}\n=====================")