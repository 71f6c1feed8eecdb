"""Values for the prompt placeholders: user, paths, time, git and system facts."""

from __future__ import annotations

import datetime
import os
import pwd
import re
import socket
import subprocess
import sys
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from cjshell.sysinfo import (
    get_active_language_version,
    get_active_network_interface,
    get_background_jobs_count,
    get_battery_status,
    get_cpu_usage,
    get_ip_address,
    get_kernel_version,
    get_memory_usage,
    get_os_info,
    get_terminal_dimensions,
    get_terminal_type,
    get_uptime,
    is_vpn_active,
    virtual_environment_name,
)

SHELL_NAME = "cjsh"
SHELL_VERSION = "2.1.13"

_GIT_STATUS_INTERVAL = 30.0
_CLEAN_SYMBOL = "✓"
_DIRTY_SYMBOL = "*"
_UNKNOWN_SYMBOL = "?"

_HEAD_PATTERN = re.compile(r"ref: refs/heads/(.*)")
_LANG_PATTERN = re.compile(r"\{LANG_VER:([^}]+)\}")

Segment = Mapping[str, object]


def _segment_contents(segments: Sequence[Segment]) -> list[str]:
    return [
        str(segment["content"])
        for segment in segments
        if isinstance(segment, Mapping) and "content" in segment
    ]


class PromptInfo:
    """Collects the values that theme segments substitute into the prompt."""

    def __init__(
        self,
        shell_name: str = SHELL_NAME,
        shell_version: str = SHELL_VERSION,
        debug: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.shell_name = shell_name
        self.shell_version = shell_version
        self.debug = debug
        self._clock = clock
        self._git_lock = threading.Lock()
        self._last_git_status_check: float | None = None
        self._git_status_check_running = False
        self._cached_git_dir = ""
        self._cached_status_symbols = ""
        self._cached_is_clean_repo = True

    def _debug(self, message: str) -> None:
        if self.debug:
            print(f"DEBUG: {message}", file=sys.stderr)

    def get_basic_prompt(self) -> str:
        """A plain "user@host : path $ " prompt."""
        return (
            f"{self.get_username()}@{self.get_hostname()} : "
            f"{self.get_current_file_path()} $ "
        )

    def get_basic_ai_prompt(self) -> str:
        """A plain "user@host : path > " prompt."""
        return (
            f"{self.get_username()}@{self.get_hostname()} : "
            f"{self.get_current_file_path()} > "
        )

    def get_basic_title(self) -> str:
        """The terminal title used when themes are off."""
        return self.get_current_file_path()

    def is_variable_used(self, var_name: str, segments: Sequence[Segment]) -> bool:
        """True if any segment's content contains {var_name}."""
        placeholder = "{" + var_name + "}"
        return any(placeholder in content for content in _segment_contents(segments))

    def find_git_repository(self) -> Path | None:
        """The nearest directory at or above the cwd holding .git/HEAD, or None."""
        self._debug("Checking if path is git repository")
        repo_root = Path.cwd()
        while repo_root != Path(repo_root.anchor):
            if (repo_root / ".git" / "HEAD").exists():
                return repo_root
            repo_root = repo_root.parent
        return None

    def get_git_branch(self, git_head_path: str | Path) -> str:
        """The branch named in a git HEAD file, or "unknown"."""
        self._debug(f"Getting git branch from {git_head_path}")
        try:
            with open(git_head_path, errors="replace") as head:
                for line in head:
                    match = _HEAD_PATTERN.search(line.rstrip("\n"))
                    if match:
                        return match.group(1) or "unknown"
        except OSError:
            pass
        return "unknown"

    def _git(self, repo_root: str | Path, *args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", *args],
            cwd=str(repo_root),
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            errors="replace",
            check=False,
        )

    def get_git_status(self, repo_root: str | Path) -> str:
        """" ✓" for a clean work tree, " *" for a dirty one; refreshed every 30 s."""
        self._debug(f"Getting git status for {repo_root}")
        git_dir = str(repo_root)
        now = self._clock()
        with self._git_lock:
            stale = (
                self._last_git_status_check is None
                or now - self._last_git_status_check > _GIT_STATUS_INTERVAL
                or self._cached_git_dir != git_dir
            )
            refresh = stale and not self._git_status_check_running
            if refresh:
                self._git_status_check_running = True
            else:
                symbols = self._cached_status_symbols
                clean = self._cached_is_clean_repo

        if refresh:
            try:
                output = self._git(git_dir, "status", "--porcelain").stdout or ""
            except OSError:
                output = None
            with self._git_lock:
                if output is None:
                    self._cached_status_symbols = _UNKNOWN_SYMBOL
                    self._cached_is_clean_repo = False
                else:
                    self._cached_git_dir = git_dir
                    clean_now = output == ""
                    self._cached_status_symbols = (
                        _CLEAN_SYMBOL if clean_now else _DIRTY_SYMBOL
                    )
                    self._cached_is_clean_repo = clean_now
                    self._last_git_status_check = self._clock()
                symbols = self._cached_status_symbols
                clean = self._cached_is_clean_repo
                self._git_status_check_running = False

        return f" {_CLEAN_SYMBOL}" if clean else f" {symbols}"

    def get_local_path(self, repo_root: str | Path) -> str:
        """The cwd relative to the repository, starting with the repository's name."""
        cwd = os.getcwd()
        root = str(repo_root)
        root_name = Path(root).name
        if cwd == root:
            return root_name
        if cwd.startswith(root + "/"):
            relative = cwd[len(root) :].lstrip("/")[:]
            relative = cwd[len(root) + 1 :] if cwd[len(root)] == "/" else relative
            return root_name + ("/" + relative if relative else "")
        return "/"

    def get_current_file_path(self) -> str:
        """The cwd with the home directory shown as ~."""
        path = os.getcwd()
        if path == "/":
            return "/"
        home = os.environ.get("HOME")
        if home is not None:
            if path == home:
                return "~"
            if path.startswith(home + "/"):
                return "~" + path[len(home) :]
        return path

    def get_current_file_name(self) -> str:
        """The last component of the cwd, or "/" or "~"."""
        current = self.get_current_file_path()
        if current in ("/", "~"):
            return current
        if current.startswith("~/"):
            relative = current[2:]
            if not relative:
                return "~"
            return relative.rsplit("/", 1)[-1]
        return Path(current).name or "/"

    def get_username(self) -> str:
        """The current user's login name, or "user"."""
        try:
            return pwd.getpwuid(os.getuid()).pw_name
        except KeyError:
            return "user"

    def get_hostname(self) -> str:
        """The machine's host name."""
        return socket.gethostname()

    def get_current_time(self, twelve_hour_format: bool = False) -> str:
        """Local time as HH:MM:SS, with an AM/PM suffix in twelve-hour format."""
        now = datetime.datetime.now()
        hour = now.hour
        suffix = ""
        if twelve_hour_format:
            suffix = " PM" if hour >= 12 else " AM"
            hour = hour % 12 or 12
        return f"{hour:02d}:{now.minute:02d}:{now.second:02d}{suffix}"

    def get_current_date(self) -> str:
        """Local date as YYYY-MM-DD."""
        today = datetime.date.today()
        return f"{today.year}-{today.month:02d}-{today.day:02d}"

    def get_git_ahead_behind(self, repo_root: str | Path) -> tuple[int, int] | None:
        """(ahead, behind) counts against the upstream, or None if unavailable."""
        self._debug(f"Getting git ahead/behind for {repo_root}")
        branch = self.get_git_branch(Path(repo_root) / ".git" / "HEAD")
        if branch == "unknown":
            self._debug("Unknown branch, cannot get ahead/behind")
            return None
        try:
            output = self._git(
                repo_root, "rev-list", "--left-right", "--count", "@{u}...HEAD"
            ).stdout or ""
        except OSError as exc:
            self._debug(f"Error getting git ahead/behind status: {exc}")
            return None

        numbers = output.split()
        behind = ahead = 0
        try:
            if numbers:
                behind = int(numbers[0])
            if len(numbers) > 1:
                ahead = int(numbers[1])
        except ValueError:
            pass
        self._debug(f"Git ahead/behind result: ahead={ahead}, behind={behind}")
        return ahead, behind

    def get_git_stash_count(self, repo_root: str | Path) -> int:
        """Number of stash entries, or 0."""
        try:
            output = self._git(repo_root, "stash", "list").stdout or ""
        except OSError:
            return 0
        return len(output.splitlines())

    def get_git_has_staged_changes(self, repo_root: str | Path) -> bool:
        """True unless git reports that the index matches HEAD."""
        try:
            return self._git(repo_root, "diff", "--cached", "--quiet").returncode != 0
        except OSError:
            return True

    def get_git_uncommitted_changes(self, repo_root: str | Path) -> int:
        """Number of entries in git status --porcelain."""
        try:
            output = self._git(repo_root, "status", "--porcelain").stdout or ""
        except OSError:
            return 0
        return len(output.splitlines())

    def get_variables(
        self,
        segments: Sequence[Segment],
        is_git_repo: bool = False,
        repo_root: str | Path | None = None,
    ) -> dict[str, str]:
        """Values for every placeholder the segments use."""
        self._debug(f"Getting prompt variables, is_git_repo={int(is_git_repo)}")
        used = lambda name: self.is_variable_used(name, segments)  # noqa: E731
        variables: dict[str, str] = {}

        simple: list[tuple[str, Callable[[], str]]] = [
            ("USERNAME", self.get_username),
            ("HOSTNAME", self.get_hostname),
            ("PATH", self.get_current_file_path),
            ("DIRECTORY", self.get_current_file_name),
            ("TIME12", lambda: self.get_current_time(True)),
            ("TIME", lambda: self.get_current_time(False)),
            ("DATE", self.get_current_date),
            ("SHELL", lambda: self.shell_name),
            ("SHELL_VER", lambda: self.shell_version),
            ("OS_INFO", get_os_info),
            ("KERNEL_VER", get_kernel_version),
            ("CPU_USAGE", lambda: f"{int(get_cpu_usage())}%"),
            ("MEM_USAGE", lambda: f"{int(get_memory_usage())}%"),
            ("BATTERY", get_battery_status),
            ("UPTIME", get_uptime),
            ("TERM_TYPE", get_terminal_type),
            ("TERM_SIZE", lambda: "{}x{}".format(*get_terminal_dimensions())),
        ]
        for name, compute in simple:
            if used(name):
                variables[name] = compute()

        for content in _segment_contents(segments):
            for match in _LANG_PATTERN.finditer(content):
                language = match.group(1)
                variables["LANG_VER:" + language] = get_active_language_version(language)

        if used("VIRTUAL_ENV"):
            variables["VIRTUAL_ENV"] = virtual_environment_name() or ""
        if used("BG_JOBS"):
            jobs = get_background_jobs_count()
            variables["BG_JOBS"] = str(jobs) if jobs > 0 else ""
        if used("STATUS"):
            variables["STATUS"] = os.environ.get("STATUS", "0")
        if used("IP_LOCAL"):
            variables["IP_LOCAL"] = get_ip_address(False)
        if used("IP_EXTERNAL"):
            variables["IP_EXTERNAL"] = get_ip_address(True)
        if used("VPN_STATUS"):
            variables["VPN_STATUS"] = "on" if is_vpn_active() else "off"
        if used("NET_IFACE"):
            variables["NET_IFACE"] = get_active_network_interface()

        if is_git_repo and repo_root is not None:
            root = Path(repo_root)
            if used("GIT_BRANCH"):
                variables["GIT_BRANCH"] = self.get_git_branch(root / ".git" / "HEAD")
            if used("GIT_STATUS"):
                variables["GIT_STATUS"] = self.get_git_status(root)
            if used("LOCAL_PATH"):
                variables["LOCAL_PATH"] = self.get_local_path(root)
            if used("GIT_AHEAD") or used("GIT_BEHIND"):
                counts = self.get_git_ahead_behind(root) or (0, 0)
                variables["GIT_AHEAD"] = str(counts[0])
                variables["GIT_BEHIND"] = str(counts[1])
            if used("GIT_STASHES"):
                variables["GIT_STASHES"] = str(self.get_git_stash_count(root))
            if used("GIT_STAGED"):
                variables["GIT_STAGED"] = (
                    _CLEAN_SYMBOL if self.get_git_has_staged_changes(root) else ""
                )
            if used("GIT_CHANGES"):
                variables["GIT_CHANGES"] = str(self.get_git_uncommitted_changes(root))

        return variables