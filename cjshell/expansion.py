"""Variable, command-substitution and backtick expansion for shell scripts."""

from __future__ import annotations

import enum
import os
import subprocess
import sys
from collections.abc import Callable

_WHITESPACE = " \t\n\r\f\v"
_DEFAULT_PATH_EXPORT = (
    'PATH="/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin"; export PATH;'
)


class DebugLevel(enum.IntEnum):
    """How much the script interpreter reports on stderr."""

    NONE = 0
    BASIC = 1
    VERBOSE = 2
    TRACE = 3


def trim_string(text: str) -> str:
    """Strip ASCII whitespace from both ends."""
    return text.strip(_WHITESPACE)


def split_command(cmd: str) -> list[str]:
    """Split on unquoted spaces, dropping the quote characters themselves."""
    result: list[str] = []
    current: list[str] = []
    quote_char: str | None = None

    for ch in cmd:
        if ch in "\"'":
            if quote_char is None:
                quote_char = ch
            elif ch == quote_char:
                quote_char = None
            else:
                current.append(ch)
        elif ch == " " and quote_char is None:
            if current:
                result.append("".join(current))
                current.clear()
        else:
            current.append(ch)

    if current:
        result.append("".join(current))
    return result


def escape_debug_string(text: str) -> str:
    """Make control and non-ASCII characters visible for debug output."""
    pieces: list[str] = []
    for byte in text.encode("utf-8", errors="surrogateescape"):
        if byte == 0x0A:
            pieces.append("\\n")
        elif byte == 0x0D:
            pieces.append("\\r")
        elif byte == 0x09:
            pieces.append("\\t")
        elif byte < 32 or byte > 126:
            pieces.append(f"\\x{byte:02X}")
        else:
            pieces.append(chr(byte))
    return "".join(pieces)


def _is_name_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def _join_output_lines(output: str) -> str:
    lines = (trim_string(line) for line in output.split("\n"))
    return " ".join(line for line in lines if line)


class VariableExpander:
    """Expands $NAME, ${NAME}, $(cmd) and `cmd` using script variables.

    ``capture`` runs a command and returns its output; without it, commands
    run through the system shell.
    """

    def __init__(
        self,
        local_variables: dict[str, str] | None = None,
        debug_level: DebugLevel = DebugLevel.NONE,
        capture: Callable[[str], str] | None = None,
    ) -> None:
        self.local_variables: dict[str, str] = (
            dict(local_variables) if local_variables else {}
        )
        self.debug_level = debug_level
        self.debug_indent_level = 0
        self.capture = capture

    def _indentation(self) -> str:
        return "  " * self.debug_indent_level

    def debug_print(self, message: str, level: DebugLevel = DebugLevel.BASIC) -> None:
        """Write a debug message to stderr if the debug level allows it."""
        if self.debug_level >= level:
            print(f"{self._indentation()}[DEBUG] {message}", file=sys.stderr)

    def _lookup(self, name: str) -> str:
        if name in self.local_variables:
            return self.local_variables[name]
        return os.environ.get(name, "")

    def _expand_braced(self, result: str) -> str:
        pos = result.find("${")
        while pos != -1:
            end = result.find("}", pos + 2)
            if end == -1:
                break
            value = self._lookup(result[pos + 2 : end])
            result = result[:pos] + value + result[end + 1 :]
            pos = result.find("${", pos + len(value))
        return result

    def _expand_plain(self, result: str) -> str:
        pos = result.find("$")
        while pos != -1:
            if pos + 1 < len(result) and result[pos + 1] == "{":
                pos = result.find("$", pos + 2)
                continue
            end = pos + 1
            while end < len(result) and _is_name_char(result[end]):
                end += 1
            if end > pos + 1:
                value = self._lookup(result[pos + 1 : end])
                result = result[:pos] + value + result[end:]
                pos += len(value)
            else:
                pos += 1
            pos = result.find("$", pos)
        return result

    def _expand_dollar_parens(self, result: str) -> str:
        pos = result.find("$(")
        while pos != -1:
            depth = 1
            end = pos + 2
            while end < len(result) and depth > 0:
                if result[end] == "(":
                    depth += 1
                elif result[end] == ")":
                    depth -= 1
                end += 1

            if depth == 0:
                cmd = result[pos + 2 : end - 1]
                processed = _join_output_lines(self.execute_command_substitution(cmd))
                self.debug_print(
                    "Processed backtick output: " + escape_debug_string(processed),
                    DebugLevel.VERBOSE,
                )
                # The character following the closing parenthesis is consumed too.
                result = result[:pos] + processed + result[end + 1 :]
                pos += len(processed)
            else:
                pos += 2
            pos = result.find("$(", pos)
        return result

    def _expand_backticks(self, result: str) -> str:
        pos = result.find("`")
        while pos != -1:
            end = result.find("`", pos + 1)
            if end == -1:
                self.debug_print(
                    f"Warning: Unmatched backtick at position {pos}", DebugLevel.BASIC
                )
                break

            cmd = result[pos + 1 : end]
            self.debug_print(
                "Backtick command: " + escape_debug_string(cmd), DebugLevel.VERBOSE
            )
            expanded = self.expand_variables(cmd)
            if expanded != cmd:
                self.debug_print(
                    "Expanded backtick command: " + escape_debug_string(expanded),
                    DebugLevel.VERBOSE,
                )

            processed = _join_output_lines(self.execute_command_substitution(expanded))
            self.debug_print(
                "Processed backtick output: " + escape_debug_string(processed),
                DebugLevel.VERBOSE,
            )
            result = result[:pos] + processed + result[end + 1 :]
            pos = result.find("`", pos + len(processed))
        return result

    def expand_variables(self, text: str) -> str:
        """Expand variables and command substitutions in text."""
        if not text:
            self.debug_print("Empty string for variable expansion", DebugLevel.TRACE)
            return text

        self.debug_print(
            "Expanding variables in: " + escape_debug_string(text), DebugLevel.TRACE
        )

        result = self._expand_braced(text)
        result = self._expand_plain(result)
        result = self._expand_dollar_parens(result)
        result = self._expand_backticks(result)

        if len(result) == 1:
            ch = result
            if ch in "\n\r" or (ord(ch) < 32 and ch != "\t"):
                self.debug_print(
                    "Filtered control character in expansion: "
                    + escape_debug_string(result),
                    DebugLevel.VERBOSE,
                )
                return ""

        self.debug_print(
            "Expanded result: " + escape_debug_string(result), DebugLevel.TRACE
        )
        return result

    def execute_command_substitution(self, cmd: str) -> str:
        """Run cmd and return its standard output without trailing newlines."""
        if not trim_string(cmd):
            self.debug_print("Skipping empty command substitution", DebugLevel.VERBOSE)
            return ""

        self.debug_print(
            "Command substitution: " + escape_debug_string(cmd), DebugLevel.VERBOSE
        )
        if "/usr/libexec/path_helper" in cmd:
            self.debug_print(
                "Executing path_helper command with extra caution", DebugLevel.VERBOSE
            )

        if self.capture is not None:
            return self.capture(cmd)

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
            message = "Error executing command: " + escape_debug_string(cmd)
            self.debug_print(message, DebugLevel.BASIC)
            print(message, file=sys.stderr)
            return ""

        if completed.returncode != 0:
            self.debug_print(
                f"Command returned non-zero status: {completed.returncode}",
                DebugLevel.VERBOSE,
            )

        output = completed.stdout or ""
        if not output and "path_helper" in cmd:
            self.debug_print(
                "WARNING: path_helper command returned empty result", DebugLevel.BASIC
            )
            return _DEFAULT_PATH_EXPORT

        output = output.rstrip("\r\n")
        self.debug_print(
            "Command substitution result: " + escape_debug_string(output),
            DebugLevel.VERBOSE,
        )
        return output