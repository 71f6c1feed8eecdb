"""A small interpreter for shell startup scripts: assignments, if, for and while."""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from cjshell.expansion import (
    DebugLevel,
    VariableExpander,
    escape_debug_string,
    split_command,
    trim_string,
)

_DEFAULT_PATH = "/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin"

_DUMPED_ENV_VARS = (
    "PATH",
    "HOME",
    "USER",
    "SHELL",
    "PWD",
    "OLDPWD",
    "TERM",
    "LANG",
    "LC_ALL",
    "DISPLAY",
    "?",
    "PPID",
    "PS1",
    "PS2",
    "HOSTNAME",
    "OSTYPE",
    "MACHTYPE",
    "LOGNAME",
    "LD_LIBRARY_PATH",
    "DYLD_LIBRARY_PATH",
    "MANPATH",
    "JAVA_HOME",
    "PYTHONPATH",
    "GOPATH",
    "NODE_PATH",
)

CommandExecutor = Callable[[str, bool], bool]


def _system_executor(cmd: str, _interactive: bool) -> bool:
    """Run cmd through the system shell; True if it exits with status 0."""
    try:
        return subprocess.run(cmd, shell=True, check=False).returncode == 0
    except OSError:
        return False


def _strip_matching_quotes(value: str) -> str:
    if value and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _verdict(result: bool) -> str:
    return "true" if result else "false"


class ShellScriptInterpreter(VariableExpander):
    """Runs shell scripts line by line, keeping script-local variables."""

    def __init__(
        self,
        local_variables: dict[str, str] | None = None,
        debug_level: DebugLevel = DebugLevel.NONE,
        capture: Callable[[str], str] | None = None,
        command_executor: CommandExecutor | None = None,
    ) -> None:
        super().__init__(local_variables, debug_level, capture)
        self.command_executor: CommandExecutor = command_executor or _system_executor
        self.in_then_block = False
        self.show_command_output = False
        self.startup_args: list[str] = []

    def set_command_executor(self, executor: CommandExecutor) -> None:
        """Replace the function that runs plain commands."""
        self.command_executor = executor

    def handle_debug_command(self, command: str) -> bool:
        """Apply a 'debug ...' command; return False if it is not one."""
        messages = {
            "debug on": (DebugLevel.BASIC, "Debug mode ON (basic)"),
            "debug off": (DebugLevel.NONE, "Debug mode OFF"),
            "debug verbose": (DebugLevel.VERBOSE, "Debug mode ON (verbose)"),
            "debug trace": (DebugLevel.TRACE, "Debug mode ON (trace)"),
        }
        if command in messages:
            self.debug_level, message = messages[command]
            print(message, file=sys.stderr)
            return True
        if command == "debug level":
            print(f"Current debug level: {int(self.debug_level)}", file=sys.stderr)
            return True
        if command == "debug vars":
            self.dump_variables()
            return True
        if command == "debug show_output on":
            self.show_command_output = True
            print("Command output display ON", file=sys.stderr)
            return True
        if command == "debug show_output off":
            self.show_command_output = False
            print("Command output display OFF", file=sys.stderr)
            return True
        if command == "debug safe_mode on":
            self.debug_print(
                "Enabling safe mode - path operations will be more carefully validated",
                DebugLevel.BASIC,
            )
            self.local_variables["CJSH_SAFE_MODE"] = "1"
            return True
        if command == "debug safe_mode off":
            self.debug_print("Disabling safe mode", DebugLevel.BASIC)
            self.local_variables["CJSH_SAFE_MODE"] = "0"
            return True
        return False

    def dump_variables(self) -> str:
        """Write script and key environment variables to stderr and return the text."""
        if self.debug_level == DebugLevel.NONE:
            return ""

        indent = self._indentation()
        width = max((len(name) for name in self.local_variables), default=0) + 2
        lines = [f"{indent}[DEBUG] Variable dump:"]
        lines.extend(
            f'{indent}  {name:<{width}}= "{value}"'
            for name, value in self.local_variables.items()
        )
        lines.append(f"{indent}[DEBUG] Key environment variables:")
        for name in _DUMPED_ENV_VARS:
            value = os.environ.get(name)
            if value is not None:
                lines.append(f'{indent}  {name:<{width}}= "{value}"')

        text = "".join(line + "\n" for line in lines)
        sys.stderr.write(text)
        return text

    def execute_script(self, filename: str | Path) -> bool:
        """Run every line of a script file; False if it cannot be read or fails."""
        self.debug_print(f"Executing script: {filename}")
        try:
            text = Path(filename).read_text(errors="replace")
        except OSError:
            print(f"Error: Could not open script file: {filename}", file=sys.stderr)
            return False

        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()

        if self.debug_level >= DebugLevel.VERBOSE:
            self.debug_print(
                f"Script content ({len(lines)} lines):", DebugLevel.VERBOSE
            )
            for number, line in enumerate(lines, start=1):
                self.debug_print(f"{number}: {line}", DebugLevel.VERBOSE)

        return self.execute_block(lines)

    def execute_block(self, lines: Iterable[str]) -> bool:
        """Run a block of lines, handling if/for/while constructs."""
        lines = list(lines)
        index = 0
        while index < len(lines):
            raw = lines[index]
            trimmed = trim_string(raw)

            if not trimmed or trimmed.startswith("#"):
                self.debug_print(
                    "Skipping empty line or comment: " + escape_debug_string(raw),
                    DebugLevel.VERBOSE,
                )
                index += 1
                continue

            if trimmed.startswith("if "):
                self.debug_print(
                    "Found if statement: " + escape_debug_string(trimmed),
                    DebugLevel.VERBOSE,
                )
                if "; then" in trimmed:
                    self.debug_print("Found 'then' on same line", DebugLevel.VERBOSE)
                next_index = self._parse_conditional(lines, index)
                if next_index is None:
                    return False
                index = next_index
                continue

            if trimmed.startswith(("for ", "while ")):
                next_index = self._parse_loop(lines, index)
                if next_index is None:
                    return False
                index = next_index
                continue

            if not self.execute_line(trimmed):
                self.debug_print(
                    "Command failed: " + escape_debug_string(trimmed), DebugLevel.BASIC
                )
                return False
            index += 1

        return True

    def _run(self, cmd: str) -> bool:
        return self.command_executor(cmd, True)

    def _assign(self, trimmed: str, equals_pos: int) -> bool:
        name = trim_string(trimmed[:equals_pos])
        value = trim_string(trimmed[equals_pos + 1 :])
        self.debug_print(f"Variable assignment: {name}={value}", DebugLevel.VERBOSE)

        unquoted = _strip_matching_quotes(value)
        if unquoted != value:
            value = unquoted
            self.debug_print(f"Removed quotes: {value}", DebugLevel.TRACE)

        is_export = name.startswith("export ")
        if is_export:
            name = trim_string(name[7:])
            self.debug_print(f"Export variable: {name}", DebugLevel.VERBOSE)

        original = value
        value = self.expand_variables(value)
        if original != value and self.debug_level >= DebugLevel.VERBOSE:
            self.debug_print(
                f"Expanded value: {original} -> {value}", DebugLevel.VERBOSE
            )

        if name == "PATH" and not value:
            self.debug_print(
                "WARNING: Attempt to set PATH to empty string, using default value "
                "instead",
                DebugLevel.BASIC,
            )
            value = _DEFAULT_PATH

        self.local_variables[name] = value

        if is_export:
            try:
                os.environ[name] = value
            except (ValueError, OSError) as exc:
                self.debug_print(
                    f"ERROR: Failed to set environment variable: {name} - {exc}",
                    DebugLevel.BASIC,
                )
                return False
            self.debug_print(
                f"Set environment variable: {name}={value}", DebugLevel.VERBOSE
            )
        return True

    def _eval(self, trimmed: str) -> bool:
        cmd = trim_string(trimmed[4:])
        self.debug_print("Eval command: " + escape_debug_string(cmd), DebugLevel.VERBOSE)

        if cmd and cmd[0] == "`" and cmd[-1] == "`":
            cmd = cmd[1:-1]
            self.debug_print(
                "Backtick command: " + escape_debug_string(cmd), DebugLevel.VERBOSE
            )
            expanded = self.expand_variables(cmd)
            if expanded != cmd and self.debug_level >= DebugLevel.VERBOSE:
                self.debug_print(
                    "Expanded command: " + escape_debug_string(expanded),
                    DebugLevel.VERBOSE,
                )
            self.debug_print("Executing backtick command", DebugLevel.VERBOSE)
            result = trim_string(self.execute_command_substitution(expanded))
            self.debug_print(
                "Command result: " + escape_debug_string(result), DebugLevel.VERBOSE
            )
            return self._run(result)

        expanded = self.expand_variables(cmd)
        if expanded != cmd and self.debug_level >= DebugLevel.VERBOSE:
            self.debug_print(f"Expanded eval command: {expanded}", DebugLevel.VERBOSE)
        self.debug_print("Executing eval command", DebugLevel.BASIC)
        return self._run(expanded)

    def execute_line(self, line: str) -> bool:
        """Run one line: an assignment, startup argument, eval or command."""
        trimmed = trim_string(line)
        if not trimmed:
            self.debug_print("Skipping empty line", DebugLevel.VERBOSE)
            return True

        try:
            self.debug_print(
                "Executing line: " + escape_debug_string(trimmed), DebugLevel.BASIC
            )

            if trimmed.startswith("#"):
                self.debug_print("Skipping comment", DebugLevel.VERBOSE)
                return True

            if trimmed.startswith("--"):
                self.debug_print(f"Found startup argument: {trimmed}", DebugLevel.BASIC)
                self.startup_args.append(trimmed)
                self.debug_print(f"Added to startup args: {trimmed}", DebugLevel.VERBOSE)
                return True

            equals_pos = trimmed.find("=")
            space_pos = trimmed.find(" ")
            if equals_pos != -1 and (space_pos == -1 or space_pos > equals_pos):
                return self._assign(trimmed, equals_pos)

            if trimmed.startswith("if "):
                then_pos = trimmed.find("; then")
                if then_pos != -1:
                    condition = trim_string(trimmed[3:then_pos])
                    self.debug_print(
                        f"Evaluating condition: {condition}", DebugLevel.VERBOSE
                    )
                    result = self.evaluate_condition(condition)
                    self.debug_print(
                        f"Condition result: {_verdict(result)}", DebugLevel.VERBOSE
                    )
                    self.local_variables["?"] = "0" if result else "1"
                return True

            if trimmed == "then":
                self.debug_print("Then statement", DebugLevel.VERBOSE)
                return True

            if trimmed.startswith("eval "):
                return self._eval(trimmed)

            expanded = self.expand_variables(trimmed)
            if expanded != trimmed and self.debug_level >= DebugLevel.VERBOSE:
                self.debug_print(f"Expanded command: {expanded}", DebugLevel.VERBOSE)
            self.debug_print("Executing command", DebugLevel.BASIC)
            return self._run(expanded)
        except Exception as exc:  # a failing line must not abort the interpreter
            self.debug_print(
                f"ERROR: Exception in execute_line: {exc}", DebugLevel.BASIC
            )
            return False

    def _check_access(self, description: str, operand: str, mode: int) -> bool:
        path = self.expand_variables(trim_string(operand))
        self.debug_print(f"Checking if file {description}: {path}", DebugLevel.VERBOSE)
        result = os.access(path, mode)
        self.debug_print(f"Result: {_verdict(result)}", DebugLevel.VERBOSE)
        return result

    def _evaluate_test(self, test: str) -> bool:
        self.debug_print("Test condition: " + escape_debug_string(test), DebugLevel.VERBOSE)

        if test.startswith("-x "):
            return self._check_access("is executable", test[3:], os.X_OK)
        if test.startswith("-e "):
            return self._check_access("exists", test[3:], os.F_OK)
        if test.startswith("-r "):
            return self._check_access("is readable", test[3:], os.R_OK)

        for operator, equal in ((" = ", True), (" != ", False)):
            pos = test.find(operator)
            if pos != -1:
                lhs = self.expand_variables(trim_string(test[:pos]))
                rhs = self.expand_variables(trim_string(test[pos + len(operator) :]))
                self.debug_print(
                    f"Comparing strings: '{lhs}'{operator}'{rhs}'", DebugLevel.VERBOSE
                )
                result = (lhs == rhs) == equal
                self.debug_print(f"Result: {_verdict(result)}", DebugLevel.VERBOSE)
                return result

        if test.startswith(("-n ", "-z ")):
            value = self.expand_variables(trim_string(test[3:]))
            want_empty = test.startswith("-z ")
            self.debug_print(
                f"Checking if string is {'empty' if want_empty else 'non-empty'}: "
                f"'{value}'",
                DebugLevel.VERBOSE,
            )
            result = (not value) == want_empty
            self.debug_print(f"Result: {_verdict(result)}", DebugLevel.VERBOSE)
            return result

        self.debug_print(f"Unrecognized test condition: {test}", DebugLevel.BASIC)
        return False

    def evaluate_condition(self, condition: str) -> bool:
        """Evaluate a [ test ] expression or run a command and test its status."""
        self.debug_print(
            "Evaluating condition: " + escape_debug_string(condition), DebugLevel.VERBOSE
        )

        if condition and condition[0] == "[" and condition[-1] == "]":
            return self._evaluate_test(trim_string(condition[1:-1]))

        expanded = self.expand_variables(condition)
        self.debug_print(f"Executing condition command: {expanded}", DebugLevel.VERBOSE)
        try:
            status = subprocess.run(
                expanded, shell=True, stdout=subprocess.DEVNULL, check=False
            ).returncode
        except OSError:
            self.debug_print("Failed to execute condition command", DebugLevel.BASIC)
            return False
        result = status == 0
        self.debug_print(
            f"Command returned: {status}, result: {_verdict(result)}",
            DebugLevel.VERBOSE,
        )
        return result

    def _parse_conditional(self, lines: Sequence[str], index: int) -> int | None:
        """Run an if/elif/else/fi construct; return the index after fi."""
        line = lines[index]
        self.debug_print(
            "Parsing conditional: " + escape_debug_string(line), DebugLevel.VERBOSE
        )

        then_pos = line.find("; then")
        if then_pos != -1:
            condition = trim_string(line[3:then_pos])
            self.debug_print(
                "Extracted condition from same line: " + escape_debug_string(condition),
                DebugLevel.VERBOSE,
            )
            condition_met = self.evaluate_condition(condition)
            self.in_then_block = True
        else:
            condition = trim_string(line[3:])
            self.debug_print(
                "Extracted condition from separate line: "
                + escape_debug_string(condition),
                DebugLevel.VERBOSE,
            )
            condition_met = self.evaluate_condition(condition)
            self.in_then_block = False

        self.debug_print(f"Condition result: {_verdict(condition_met)}", DebugLevel.VERBOSE)
        self.local_variables["?"] = "0" if condition_met else "1"

        executing_block = condition_met
        found_else = False
        block: list[str] = []

        for pos, raw in enumerate(lines[index + 1 :], start=index + 1):
            current = trim_string(raw)
            self.debug_print(
                "Conditional processing line: " + escape_debug_string(current),
                DebugLevel.TRACE,
            )

            if current == "then":
                self.debug_print("Found 'then' statement", DebugLevel.VERBOSE)
                self.in_then_block = True
                continue
            if current == "else":
                if condition_met and block:
                    self.debug_print("Executing 'then' block", DebugLevel.VERBOSE)
                    self.execute_block(block)
                block = []
                executing_block = not condition_met
                found_else = True
                continue
            if current == "fi":
                if executing_block and block:
                    self.debug_print("Executing final block", DebugLevel.VERBOSE)
                    self.execute_block(block)
                return pos + 1
            if current.startswith("elif "):
                if condition_met and block:
                    self.execute_block(block)
                if not condition_met and not found_else:
                    condition = trim_string(current[5:])
                    condition_met = self.evaluate_condition(condition)
                    executing_block = condition_met
                else:
                    executing_block = False
                block = []
                continue

            if self.in_then_block and executing_block:
                self.debug_print(
                    "Adding line to conditional block: " + escape_debug_string(current),
                    DebugLevel.TRACE,
                )
                block.append(current)
            else:
                self.debug_print(
                    "Skipping line in inactive block: " + escape_debug_string(current),
                    DebugLevel.TRACE,
                )

        print("Error: Unexpected end of if block (missing fi)", file=sys.stderr)
        return None

    def _parse_loop(self, lines: Sequence[str], index: int) -> int | None:
        """Run a for or while loop; return the index after done."""
        loop_line = lines[index]
        is_for_loop = loop_line.startswith("for ")
        body: list[str] = []
        in_do_block = False

        for pos, raw in enumerate(lines[index + 1 :], start=index + 1):
            current = trim_string(raw)
            if current == "do":
                in_do_block = True
            elif current == "done":
                done_pos = pos
                break
            elif in_do_block:
                body.append(current)
        else:
            print("Error: Unexpected end of loop (missing done)", file=sys.stderr)
            return None

        if is_for_loop:
            declaration = trim_string(loop_line[4:])
            in_pos = declaration.find(" in ")
            if in_pos != -1:
                var_name = trim_string(declaration[:in_pos])
                for value in split_command(trim_string(declaration[in_pos + 4 :])):
                    self.local_variables[var_name] = value
                    self.execute_block(body)
        else:
            condition = trim_string(loop_line[6:])
            while self.evaluate_condition(condition):
                self.execute_block(body)

        return done_pos + 1