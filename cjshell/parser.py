"""Command-line tokenizing and expansion for the shell."""

from __future__ import annotations

import glob
import os
import re
from dataclasses import dataclass, field

_SPACE = " \t\n\v\f\r"
_LINE_SPACE = " \t\n\r"
_WILDCARD_CHARS = "*?[]"
_ASSIGNMENT_RE = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)=(.*)")


def _is_name_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def tokenize_command(cmdline: str) -> list[str]:
    """Split a command line into words, honouring quotes and backslashes."""
    tokens: list[str] = []
    current: list[str] = []
    quote_char: str | None = None
    escaped = False

    for ch in cmdline:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch in "\"'" and quote_char is None:
            quote_char = ch
        elif quote_char is not None and ch == quote_char:
            quote_char = None
        elif ch in _SPACE and quote_char is None:
            if current:
                tokens.append("".join(current))
                current.clear()
        else:
            current.append(ch)

    if current:
        tokens.append("".join(current))
    return tokens


def _split_outside_quotes(command: str, separator: str) -> list[str]:
    """Split on a single character that is not inside quotes, keeping quotes."""
    parts: list[str] = []
    current: list[str] = []
    quote_char: str | None = None

    for ch in command:
        if ch in "\"'":
            if quote_char is None:
                quote_char = ch
            elif quote_char == ch:
                quote_char = None
            current.append(ch)
        elif ch == separator and quote_char is None:
            if current:
                parts.append("".join(current))
                current.clear()
        else:
            current.append(ch)

    if current:
        parts.append("".join(current))
    return parts


def _expand_home(path: str, home: str | None) -> str:
    if home is not None and path.startswith("~"):
        return home + path[1:]
    return path


@dataclass
class Command:
    """One stage of a pipeline with its redirections."""

    args: list[str] = field(default_factory=list)
    input_file: str = ""
    output_file: str = ""
    append_file: str = ""
    background: bool = False


@dataclass
class LogicalCommand:
    """A command followed by the operator ("&&", "||" or "") joining it to the next."""

    command: str
    op: str


@dataclass
class Parser:
    """Parses command lines using the shell's aliases and variables."""

    aliases: dict[str, str] = field(default_factory=dict)
    env_vars: dict[str, str] = field(default_factory=dict)

    def parse_command(self, cmdline: str) -> list[str]:
        """Tokenize a line and apply alias, brace, variable, tilde and glob expansion."""
        args = tokenize_command(cmdline)

        if args and args[0] in self.aliases:
            alias_args = tokenize_command(self.aliases[args[0]])
            if alias_args:
                args = alias_args + args[1:]

        braced: list[str] = []
        for arg in args:
            if "{" in arg and "}" in arg:
                braced.extend(self.expand_braces(arg))
            else:
                braced.append(arg)

        home = os.environ.get("HOME")
        expanded = [_expand_home(self.expand_env_vars(arg), home) for arg in braced]

        final: list[str] = []
        for arg in expanded:
            final.extend(self.expand_wildcards(arg))
        return final

    def expand_braces(self, pattern: str) -> list[str]:
        """Expand the first balanced brace group of a word, recursively."""
        open_pos = pattern.find("{")
        if open_pos == -1:
            return [pattern]

        depth = 0
        close_pos = -1
        for pos in range(open_pos, len(pattern)):
            ch = pattern[pos]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    close_pos = pos
                    break
        if close_pos == -1:
            return [pattern]

        prefix = pattern[:open_pos]
        content = pattern[open_pos + 1 : close_pos]
        suffix = pattern[close_pos + 1 :]

        options: list[str] = []
        current: list[str] = []
        depth = 0
        for ch in content:
            if ch == "," and depth == 0:
                options.append("".join(current))
                current.clear()
                continue
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
            current.append(ch)
        options.append("".join(current))

        result: list[str] = []
        for option in options:
            result.extend(self.expand_braces(prefix + option + suffix))
        return result

    def _lookup(self, name: str) -> str:
        if name in self.env_vars:
            return self.env_vars[name]
        return os.environ.get(name, "")

    def expand_env_vars(self, arg: str) -> str:
        """Replace $NAME references with shell or environment values."""
        result: list[str] = []
        var_name: str | None = None

        for i, ch in enumerate(arg):
            if ch == "$" and i + 1 < len(arg) and _is_name_char(arg[i + 1]):
                var_name = ""
                continue
            if var_name is not None:
                if _is_name_char(ch):
                    var_name += ch
                else:
                    result.append(self._lookup(var_name))
                    result.append(ch)
                    var_name = None
            else:
                result.append(ch)

        if var_name is not None:
            result.append(self._lookup(var_name))
        return "".join(result)

    def parse_pipeline(self, command: str) -> list[Command]:
        """Split a line on unquoted pipes and collect redirections."""
        home = os.environ.get("HOME")
        commands: list[Command] = []

        for part in _split_outside_quotes(command, "|"):
            cmd = Command()
            if part.endswith("&"):
                cmd.background = True
                part = part[:-1].rstrip(_LINE_SPACE)

            tokens = iter(tokenize_command(part))
            for token in tokens:
                if token in ("<", ">", ">>"):
                    target = next(tokens, None)
                    if target is None:
                        cmd.args.append(token)
                    elif token == "<":
                        cmd.input_file = target
                    elif token == ">":
                        cmd.output_file = target
                    else:
                        cmd.append_file = target
                else:
                    cmd.args.append(token)

            cmd.input_file = _expand_home(cmd.input_file, home)
            cmd.output_file = _expand_home(cmd.output_file, home)
            cmd.append_file = _expand_home(cmd.append_file, home)
            commands.append(cmd)

        return commands

    def is_env_assignment(self, command: str) -> tuple[str, str] | None:
        """Return (name, value) if the line is NAME=value, else None."""
        match = _ASSIGNMENT_RE.fullmatch(command)
        if match is None:
            return None
        name, value = match.group(1), match.group(2)
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        return name, value

    def parse_logical_commands(self, command: str) -> list[LogicalCommand]:
        """Split a line on unquoted && and || operators."""
        result: list[LogicalCommand] = []
        current: list[str] = []
        quote_char: str | None = None
        length = len(command)
        i = 0

        while i < length:
            ch = command[i]
            if ch in "\"'":
                if quote_char is None:
                    quote_char = ch
                elif quote_char == ch:
                    quote_char = None
                current.append(ch)
            elif quote_char is None and i < length - 1 and ch in "&|" and command[i + 1] == ch:
                if current:
                    result.append(LogicalCommand("".join(current), ch * 2))
                    current.clear()
                i += 1
            else:
                current.append(ch)
            i += 1

        if current:
            result.append(LogicalCommand("".join(current), ""))
        return result

    def parse_semicolon_commands(self, command: str) -> list[str]:
        """Split a line on unquoted semicolons, dropping empty pieces."""
        pieces = (part.strip(_LINE_SPACE) for part in _split_outside_quotes(command, ";"))
        return [piece for piece in pieces if piece]

    def expand_wildcards(self, pattern: str) -> list[str]:
        """Expand glob characters; an unmatched pattern is kept as is."""
        if not any(ch in pattern for ch in _WILDCARD_CHARS):
            return [pattern]

        matches = sorted(glob.glob(os.path.expanduser(pattern)))
        if not matches:
            return [pattern]
        return [m + "/" if os.path.isdir(m) and not m.endswith("/") else m for m in matches]