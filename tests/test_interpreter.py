import os

import pytest

from cjshell.expansion import DebugLevel
from cjshell.interpreter import ShellScriptInterpreter


class Recorder:
    def __init__(self, result=True):
        self.calls = []
        self.result = result

    def __call__(self, cmd, interactive):
        self.calls.append(cmd)
        return self.result


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def interp(recorder):
    return ShellScriptInterpreter(command_executor=recorder)


def test_assignment_sets_local_variable(interp, recorder):
    assert interp.execute_line("NAME=value") is True
    assert interp.local_variables["NAME"] == "value"
    assert recorder.calls == []


def test_assignment_strips_matching_quotes(interp):
    interp.execute_line('GREETING="hello world"')
    interp.execute_line("OTHER='x'")
    assert interp.local_variables["GREETING"] == "hello world"
    assert interp.local_variables["OTHER"] == "x"


def test_assignment_expands_variables(interp):
    interp.execute_line("A=one")
    interp.execute_line("B=${A}-$A")
    assert interp.local_variables["B"] == "one-one"


def test_empty_path_gets_default(interp):
    interp.execute_line("PATH=")
    assert interp.local_variables["PATH"] == "/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin"


def test_command_is_expanded_and_executed(interp, recorder):
    interp.local_variables["WHO"] = "world"
    assert interp.execute_line("echo $WHO") is True
    assert recorder.calls == ["echo world"]


def test_comment_and_blank_lines_do_nothing(interp, recorder):
    assert interp.execute_line("# comment") is True
    assert interp.execute_line("   ") is True
    assert recorder.calls == []


def test_startup_arguments_are_collected(interp, recorder):
    assert interp.execute_line("--no-plugins") is True
    assert interp.startup_args == ["--no-plugins"]
    assert recorder.calls == []


def test_failing_command_stops_block():
    rec = Recorder(result=False)
    interp = ShellScriptInterpreter(command_executor=rec)
    assert interp.execute_block(["first", "second"]) is False
    assert rec.calls == ["first"]


def test_executor_exception_makes_line_fail():
    def boom(cmd, interactive):
        raise RuntimeError("broken")

    interp = ShellScriptInterpreter(command_executor=boom)
    assert interp.execute_line("anything") is False


def test_set_command_executor_replaces_executor(interp, recorder):
    other = Recorder()
    interp.set_command_executor(other)
    interp.execute_line("ls")
    assert other.calls == ["ls"]
    assert recorder.calls == []


def test_default_executor_reports_exit_status():
    interp = ShellScriptInterpreter()
    assert interp.execute_line("true") is True
    assert interp.execute_line("false") is False


def test_eval_expands_and_runs(interp, recorder):
    interp.local_variables["X"] = "val"
    assert interp.execute_line("eval echo $X") is True
    assert recorder.calls == ["echo val"]


def test_eval_backtick_runs_trimmed_output(recorder):
    captured = []

    def capture(cmd):
        captured.append(cmd)
        return "  run-me \n"

    interp = ShellScriptInterpreter(capture=capture, command_executor=recorder)
    assert interp.execute_line("eval `produce`") is True
    assert captured == ["produce"]
    assert recorder.calls == ["run-me"]


def test_if_then_else_true_branch(interp, recorder):
    lines = ["if [ a = a ]; then", "echo yes", "else", "echo no", "fi"]
    assert interp.execute_block(lines) is True
    assert recorder.calls == ["echo yes"]
    assert interp.local_variables["?"] == "0"


def test_if_then_else_false_branch(interp, recorder):
    lines = ["if [ a = b ]; then", "echo yes", "else", "echo no", "fi"]
    assert interp.execute_block(lines) is True
    assert recorder.calls == ["echo no"]
    assert interp.local_variables["?"] == "1"


def test_then_on_separate_line(interp, recorder):
    lines = ["if [ -n word ]", "then", "echo inside", "fi", "echo after"]
    assert interp.execute_block(lines) is True
    assert recorder.calls == ["echo inside", "echo after"]


def test_missing_fi_fails(interp, recorder):
    assert interp.execute_block(["if [ a = a ]; then", "echo yes"]) is False
    assert recorder.calls == []


def test_for_loop_runs_body_per_value(interp, recorder):
    lines = ["for x in a b c", "do", "echo $x", "done"]
    assert interp.execute_block(lines) is True
    assert recorder.calls == ["echo a", "echo b", "echo c"]
    assert interp.local_variables["x"] == "c"


def test_for_loop_honours_quoted_values(interp, recorder):
    lines = ['for x in "one two" three', "do", "echo $x", "done"]
    assert interp.execute_block(lines) is True
    assert recorder.calls == ["echo one two", "echo three"]
    assert interp.local_variables["x"] == "three"


def test_missing_done_fails(interp, recorder):
    assert interp.execute_block(["for x in a", "do", "echo $x"]) is False
    assert recorder.calls == []


def test_while_loop_until_condition_false(interp, recorder):
    interp.local_variables["flag"] = "go"
    lines = ["while [ $flag = go ]", "do", "echo hi", "flag=stop", "done"]
    assert interp.execute_block(lines) is True
    assert recorder.calls == ["echo hi"]
    assert interp.local_variables["flag"] == "stop"


def test_if_line_alone_sets_status(interp):
    assert interp.execute_line("if [ -z x ]; then") is True
    assert interp.local_variables["?"] == "1"


@pytest.mark.parametrize(
    "condition, expected",
    [
        ("[ a = a ]", True),
        ("[ a = b ]", False),
        ("[ a != b ]", True),
        ("[ a != a ]", False),
        ("[ -n text ]", True),
        ("[ -z text ]", False),
        ("[ -q nonsense ]", False),
    ],
)
def test_string_tests(interp, condition, expected):
    assert interp.evaluate_condition(condition) is expected


def test_file_tests(interp, tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    assert interp.evaluate_condition(f"[ -e {target} ]") is True
    assert interp.evaluate_condition(f"[ -r {target} ]") is True
    assert interp.evaluate_condition(f"[ -e {tmp_path / 'missing'} ]") is False


def test_file_test_expands_variables(interp, tmp_path):
    interp.local_variables["DIR"] = str(tmp_path)
    assert interp.evaluate_condition("[ -e $DIR ]") is True


def test_command_conditions(interp):
    assert interp.evaluate_condition("true") is True
    assert interp.evaluate_condition("false") is False


def test_handle_debug_command_levels(interp):
    assert interp.handle_debug_command("debug verbose") is True
    assert interp.debug_level == DebugLevel.VERBOSE
    assert interp.handle_debug_command("debug off") is True
    assert interp.debug_level == DebugLevel.NONE
    assert interp.handle_debug_command("debug nonsense") is False


def test_handle_debug_command_flags(interp):
    interp.handle_debug_command("debug show_output on")
    assert interp.show_command_output is True
    interp.handle_debug_command("debug safe_mode on")
    assert interp.local_variables["CJSH_SAFE_MODE"] == "1"
    interp.handle_debug_command("debug safe_mode off")
    assert interp.local_variables["CJSH_SAFE_MODE"] == "0"


def test_dump_variables_silent_without_debug(interp):
    interp.local_variables["A"] = "1"
    assert interp.dump_variables() == ""


def test_dump_variables_lists_locals(interp):
    interp.debug_level = DebugLevel.BASIC
    interp.local_variables["A"] = "1"
    out = interp.dump_variables()
    assert out.startswith("[DEBUG] Variable dump:")
    assert 'A  = "1"' in out
    if "HOME" in os.environ:
        assert os.environ["HOME"] in out


def test_execute_script_runs_file(tmp_path, recorder):
    script = tmp_path / "rc"
    script.write_text("# setup\nNAME=world\necho $NAME\n")
    interp = ShellScriptInterpreter(command_executor=recorder)
    assert interp.execute_script(script) is True
    assert recorder.calls == ["echo world"]


def test_execute_script_missing_file(tmp_path, interp):
    assert interp.execute_script(tmp_path / "absent") is False