"""Prompt themes: JSON segment lists rendered into colored prompt lines."""

from __future__ import annotations

import json
import os
import re
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

RESET = "\033[0m"
BG_RESET = "\033[49m"

_NAMED_COLORS: dict[str, tuple[int, int, int]] = {
    "BLACK": (0, 0, 0),
    "RED": (205, 0, 0),
    "GREEN": (0, 205, 0),
    "YELLOW": (205, 205, 0),
    "BLUE": (0, 0, 238),
    "MAGENTA": (205, 0, 205),
    "CYAN": (0, 205, 205),
    "WHITE": (229, 229, 229),
    "BLACK_BRIGHT": (127, 127, 127),
    "RED_BRIGHT": (255, 0, 0),
    "GREEN_BRIGHT": (0, 255, 0),
    "YELLOW_BRIGHT": (255, 255, 0),
    "BLUE_BRIGHT": (92, 92, 255),
    "MAGENTA_BRIGHT": (255, 0, 255),
    "CYAN_BRIGHT": (0, 255, 255),
    "WHITE_BRIGHT": (255, 255, 255),
}
_HEX_COLOR = re.compile(r"#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})")
_RGB_COLOR = re.compile(r"(?:rgb\()?\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)?")

Segment = Mapping[str, object]


def _parse_color(value: str) -> tuple[int, int, int] | None:
    text = value.strip()
    named = _NAMED_COLORS.get(text.upper())
    if named is not None:
        return named
    match = _HEX_COLOR.fullmatch(text)
    if match:
        return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]
    match = _RGB_COLOR.fullmatch(text)
    if match:
        return tuple(min(int(part), 255) for part in match.groups())  # type: ignore[return-value]
    return None


def _fg(name: str) -> str:
    rgb = _parse_color(name)
    return "" if rgb is None else "\033[38;2;{};{};{}m".format(*rgb)


def _bg(name: str) -> str:
    rgb = _parse_color(name)
    return "" if rgb is None else "\033[48;2;{};{};{}m".format(*rgb)


def _text(segment: Segment, key: str, default: str) -> str:
    value = segment.get(key, default)
    return default if value is None else str(value)


def _render_segment(segment: Segment, content: str, separator: str) -> str:
    parts: list[str] = []

    forward = segment.get("forward_separator")
    if forward is not None and not (isinstance(forward, (list, dict)) and not forward):
        fsep_fg = _text(segment, "forward_separator_fg", "RESET")
        fsep_bg = _text(segment, "forward_separator_bg", "RESET")
        parts.append(_bg(fsep_bg) if fsep_bg != "RESET" else BG_RESET)
        if fsep_fg != "RESET":
            parts.append(_fg(fsep_fg))
        parts.append(str(forward))

    bg_name = _text(segment, "bg_color", "RESET")
    fg_name = _text(segment, "fg_color", "RESET")
    parts.append(_bg(bg_name) if bg_name != "RESET" else BG_RESET)
    if fg_name != "RESET":
        parts.append(_fg(fg_name))
    parts.append(content)

    if separator:
        sep_fg = _text(segment, "separator_fg", "RESET")
        sep_bg = _text(segment, "separator_bg", "RESET")
        if sep_fg != "RESET":
            parts.append(_fg(sep_fg))
        parts.append(_bg(sep_bg) if sep_bg != "RESET" else BG_RESET)
        parts.append(separator)

    return "".join(parts)


def calculate_raw_length(text: str) -> int:
    """Visible length of text, ignoring CSI and OSC escape sequences."""
    length = 0
    i = 0
    size = len(text)
    while i < size:
        ch = text[i]
        if ch != "\033":
            length += 1
            i += 1
            continue
        if i + 1 >= size:
            i += 1
            continue
        following = text[i + 1]
        i += 2
        if following == "[":
            while i < size and not ("@" <= text[i] <= "~"):
                i += 1
            if i < size:
                i += 1
        elif following == "]":
            while i < size:
                if text[i] == "\a":
                    i += 1
                    break
                if text[i] == "\033" and i + 1 < size and text[i + 1] == "\\":
                    i += 2
                    break
                i += 1
    return length


def get_terminal_width() -> int:
    """Columns of the terminal on standard output, or 80."""
    try:
        columns = os.get_terminal_size(sys.stdout.fileno()).columns
    except (OSError, ValueError, AttributeError):
        return 80
    return columns if columns > 0 else 80


def _default_segment(tag, content, fg, separator, separator_fg) -> dict[str, str]:
    return {
        "tag": tag,
        "content": content,
        "bg_color": "RESET",
        "fg_color": fg,
        "separator": separator,
        "separator_fg": separator_fg,
        "separator_bg": "RESET",
    }


def _has_duplicate_tags(segments: Sequence[Segment]) -> bool:
    seen: set[str] = set()
    for segment in segments:
        tag = _text(segment, "tag", "")
        if tag in seen:
            return True
        seen.add(tag)
    return False


class Theme:
    """A set of prompt segment lists loaded from a directory of JSON themes."""

    def __init__(
        self,
        theme_dir: str | Path,
        enabled: bool = True,
        width: Callable[[], int] | None = None,
        debug: bool = False,
    ) -> None:
        self.theme_directory = Path(theme_dir)
        self.enabled = enabled
        self.debug = debug
        self._width = width or get_terminal_width
        self.current_theme: str | None = None
        self.ps1_segments: list[dict] = []
        self.git_segments: list[dict] = []
        self.ai_segments: list[dict] = []
        self.newline_segments: list[dict] = []
        self.terminal_title_format = ""
        self.fill_char = " "
        self.fill_fg_color = "RESET"
        self.fill_bg_color = "RESET"
        self.last_ps1_raw_length = 0
        self.last_git_raw_length = 0
        self.last_ai_raw_length = 0
        self.last_newline_raw_length = 0
        if not (self.theme_directory / "default.json").exists():
            self.create_default_theme()

    def create_default_theme(self) -> None:
        """Write default.json into the theme directory."""
        theme = {
            "terminal_title": "{PATH}",
            "ps1_segments": [
                _default_segment(
                    "username", "{USERNAME}@{HOSTNAME}:", "BLUE_BRIGHT", "", "RESET"
                ),
                _default_segment(
                    "directory", " {DIRECTORY} ", "GREEN_BRIGHT", " ", "WHITE_BRIGHT"
                ),
                _default_segment("prompt", "$ ", "WHITE_BRIGHT", "", "RESET"),
            ],
            "git_segments": [
                _default_segment(
                    "path", " {LOCAL_PATH} ", "GREEN_BRIGHT", " ", "WHITE_BRIGHT"
                ),
                _default_segment("branch", "{GIT_BRANCH}", "YELLOW_BRIGHT", "", "RESET"),
                _default_segment(
                    "status", "{GIT_STATUS}", "RED_BRIGHT", " $ ", "WHITE_BRIGHT"
                ),
            ],
            "ai_segments": [
                _default_segment(
                    "model", " {AI_MODEL} ", "MAGENTA_BRIGHT", " / ", "WHITE_BRIGHT"
                ),
                _default_segment("mode", "{AI_AGENT_TYPE} ", "CYAN_BRIGHT", "", "RESET"),
            ],
            "newline_segments": [],
            "fill_char": "",
            "fill_fg_color": "RESET",
            "fill_bg_color": "RESET",
        }
        self.theme_directory.mkdir(parents=True, exist_ok=True)
        (self.theme_directory / "default.json").write_text(
            json.dumps(theme, indent=4, sort_keys=True, ensure_ascii=False)
        )

    def load_theme(self, theme_name: str) -> bool:
        """Load a theme by name; False if it is missing or has duplicate tags."""
        name = theme_name if self.enabled else "default"
        theme_file = self.theme_directory / f"{name}.json"
        if not theme_file.exists():
            return False

        data = json.loads(theme_file.read_text())
        if not isinstance(data, dict):
            data = {}

        def segments(key: str) -> list[dict]:
            value = data.get(key)
            return list(value) if isinstance(value, list) else []

        self.ps1_segments = segments("ps1_segments")
        self.git_segments = segments("git_segments")
        self.ai_segments = segments("ai_segments")
        self.newline_segments = segments("newline_segments")

        if any(
            _has_duplicate_tags(group)
            for group in (
                self.ps1_segments,
                self.git_segments,
                self.ai_segments,
                self.newline_segments,
            )
        ):
            return False

        if "terminal_title" in data:
            self.terminal_title_format = str(data["terminal_title"])
        fill_char = data.get("fill_char")
        if isinstance(fill_char, str) and fill_char:
            self.fill_char = fill_char
        if isinstance(data.get("fill_fg_color"), str):
            self.fill_fg_color = data["fill_fg_color"]
        if isinstance(data.get("fill_bg_color"), str):
            self.fill_bg_color = data["fill_bg_color"]

        self.current_theme = name
        return True

    def prerender_line(self, segments: Sequence[Segment]) -> str:
        """Color a segment list without substituting placeholders."""
        if not segments:
            return ""
        result = "".join(
            _render_segment(
                segment, _text(segment, "content", ""), _text(segment, "separator", "")
            )
            for segment in segments
        ) + RESET
        if self.debug:
            print(f"Prerendered line: \n{result}")
        return result

    def render_line(self, line: str, vars: Mapping[str, str]) -> str:
        """Replace every {NAME} in line whose NAME is in vars."""
        if not line:
            return ""
        result = line
        start = result.find("{")
        while start != -1:
            end = result.find("}", start)
            if end == -1:
                break
            key = result[start + 1 : end]
            if key in vars:
                value = vars[key]
                result = result[:start] + value + result[end + 1 :]
                start = result.find("{", start + len(value))
            else:
                start = result.find("{", end + 1)
        if self.debug:
            print(f"Rendered line: \n{result}")
        return result

    def _fill(self, count: int) -> str:
        unit = (
            _bg(self.fill_bg_color) if self.fill_bg_color != "RESET" else BG_RESET
        )
        if self.fill_fg_color != "RESET":
            unit += _fg(self.fill_fg_color)
        return (unit + self.fill_char) * count

    def _build(self, bucket: Sequence[Segment], vars: Mapping[str, str]) -> str:
        return "".join(
            _render_segment(
                segment,
                self.render_line(_text(segment, "content", ""), vars),
                self.render_line(_text(segment, "separator", ""), vars),
            )
            for segment in bucket
        )

    def render_line_aligned(
        self, segments: Sequence[Segment], vars: Mapping[str, str]
    ) -> str:
        """Render segments, padding between left, center and right groups."""
        if not segments:
            return ""
        if not any("align" in segment for segment in segments):
            return self.render_line(self.prerender_line(segments), vars)

        left: list[Segment] = []
        center: list[Segment] = []
        right: list[Segment] = []
        for segment in segments:
            align = _text(segment, "align", "left")
            if align == "center":
                center.append(segment)
            elif align == "right":
                right.append(segment)
            else:
                left.append(segment)

        left_text = self._build(left, vars)
        center_text = self._build(center, vars)
        right_text = self._build(right, vars)

        width = self._width()
        len_left = calculate_raw_length(left_text)
        len_center = calculate_raw_length(center_text)
        len_right = calculate_raw_length(right_text)

        if center_text:
            desired = (width - len_center) // 2 if width > len_center else 0
            pad_left = desired - len_left if desired > len_left else 0
            after_center = len_left + pad_left + len_center
            pad_right = (
                width - after_center - len_right - 1
                if width > after_center + len_right
                else 0
            )
            out = (
                left_text
                + self._fill(pad_left)
                + center_text
                + self._fill(pad_right)
                + right_text
            )
        else:
            pad = (
                width - len_left - len_right - 1 if width > len_left + len_right else 0
            )
            out = left_text + self._fill(pad) + right_text

        out += RESET
        if self.debug:
            print(f"\nCombined render:\n{out}")
        return out

    def get_ps1_prompt_format(self, vars: Mapping[str, str]) -> str:
        """The rendered PS1 line."""
        result = self.render_line_aligned(self.ps1_segments, vars)
        self.last_ps1_raw_length = calculate_raw_length(result)
        return result

    def get_git_prompt_format(self, vars: Mapping[str, str]) -> str:
        """The rendered prompt line used inside git repositories."""
        result = self.render_line_aligned(self.git_segments, vars)
        self.last_git_raw_length = calculate_raw_length(result)
        return result

    def get_ai_prompt_format(self, vars: Mapping[str, str]) -> str:
        """The rendered AI prompt line."""
        result = self.render_line_aligned(self.ai_segments, vars)
        self.last_ai_raw_length = calculate_raw_length(result)
        return result

    def get_newline_prompt(self, vars: Mapping[str, str]) -> str:
        """The rendered second prompt line."""
        result = self.render_line_aligned(self.newline_segments, vars)
        self.last_newline_raw_length = calculate_raw_length(result)
        return result

    def list_themes(self) -> list[str]:
        """Names of all themes in the theme directory."""
        return sorted(
            entry.stem
            for entry in self.theme_directory.iterdir()
            if entry.suffix == ".json"
        )

    def uses_newline(self) -> bool:
        """True if the theme has a second prompt line."""
        return bool(self.newline_segments)