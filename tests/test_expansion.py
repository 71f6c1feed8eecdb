import pytest

from cjshell.expansion import (
    DebugLevel,
    VariableExpander,
    escape_debug_string,
    split_command,
    trim_string,
)


class _FakeCapture:
    def __init__(self, outputs):
        self.outputs = outputs
        self.calls = []

    def __call__(self, cmd):
        self.calls.append(cmd)
        return self.outputs.get(cmd, "")


@pytest.mark.parametrize(
    "text, expected",
    [("  \t abc \n", "abc"), ("abc", "abc"), (" \f\v\r\n", ""), ("", "")],
)
def test_trim_string(text, expected):
    assert trim_string(text) == expected


def test_trim_string_keeps_inner_whitespace():
    assert trim_string("  a  b  ") == "a  b"


def test_split_command_respects_quotes():
    assert split_command('one "two three" four') == ["one", "two three", "four"]


def test_split_command_keeps_other_quote_inside_quotes():
    assert split_command("'it\"s' x") == ['it"s', "x"]


def test_split_command_skips_repeated_spaces():
    assert split_command("  a   b ") == ["a", "b"]


def test_escape_debug_string_named_escapes():
    assert escape_debug_string("a\nb\rc\td") == "a\\nb\\rc\\td"


def test_escape_debug_string_control_byte():
    assert escape_debug_string("\x01") == "\\x01"


@pytest.mark.parametrize("text", ["plain", "tab\there", "caf\u00e9", "\x7f\x00\n"])
def test_escape_debug_string_output_is_printable_ascii(text):
    escaped = escape_debug_string(text)
    assert all(32 <= ord(ch) <= 126 for ch in escaped)


def test_expand_braced_local_variable():
    expander = VariableExpander({"NAME": "world"})
    assert expander.expand_variables("hello ${NAME}!") == "hello world!"


def test_expand_plain_local_variable():
    expander = VariableExpander({"NAME": "world"})
    assert expander.expand_variables("hello $NAME.") == "hello world."


def test_local_variable_overrides_environment(monkeypatch):
    monkeypatch.setenv("CJSH_TEST_VAR", "from-env")
    expander = VariableExpander({"CJSH_TEST_VAR": "local"})
    assert expander.expand_variables("$CJSH_TEST_VAR") == "local"


def test_environment_fallback(monkeypatch):
    monkeypatch.setenv("CJSH_TEST_VAR", "from-env")
    expander = VariableExpander()
    assert expander.expand_variables("${CJSH_TEST_VAR}") == "from-env"


def test_missing_variable_expands_to_empty(monkeypatch):
    monkeypatch.delenv("CJSH_MISSING_VAR", raising=False)
    expander = VariableExpander()
    assert expander.expand_variables("a$CJSH_MISSING_VAR b") == "a b"


def test_lone_dollar_and_unterminated_brace_kept():
    expander = VariableExpander()
    assert expander.expand_variables("cost $ 5") == "cost $ 5"
    assert expander.expand_variables("${OPEN") == "${OPEN"


def test_empty_text_unchanged():
    assert VariableExpander().expand_variables("") == ""


def test_single_control_character_result_filtered():
    expander = VariableExpander({"NL": "\n"})
    assert expander.expand_variables("$NL") == ""


def test_dollar_paren_substitution_joins_lines():
    capture = _FakeCapture({"list": "  one \n\n two\n"})
    expander = VariableExpander(capture=capture)
    assert expander.expand_variables("items: $(list)") == "items: one two"
    assert capture.calls == ["list"]


def test_backtick_command_is_expanded_before_running():
    capture = _FakeCapture({"echo value": "value"})
    expander = VariableExpander({"X": "value"}, capture=capture)
    assert expander.expand_variables("got `echo $X` ok") == "got value ok"
    assert capture.calls == ["echo value"]


def test_unmatched_backtick_left_alone():
    capture = _FakeCapture({})
    expander = VariableExpander(capture=capture)
    assert expander.expand_variables("a `b") == "a `b"
    assert capture.calls == []


def test_empty_substitution_does_not_run():
    capture = _FakeCapture({})
    expander = VariableExpander(capture=capture)
    assert expander.execute_command_substitution("   ") == ""
    assert capture.calls == []


def test_substitution_through_system_shell_strips_newlines():
    expander = VariableExpander()
    assert expander.execute_command_substitution("printf 'hi\\n\\n'") == "hi"


def test_path_helper_empty_output_falls_back():
    expander = VariableExpander()
    assert (
        expander.execute_command_substitution("true # path_helper")
        == 'PATH="/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin"; export PATH;'
    )


def test_debug_print_respects_level(capsys):
    expander = VariableExpander(debug_level=DebugLevel.BASIC)
    expander.debug_print("quiet", DebugLevel.VERBOSE)
    assert capsys.readouterr().err == ""


def test_debug_print_indents(capsys):
    expander = VariableExpander(debug_level=DebugLevel.TRACE)
    expander.debug_indent_level = 1
    expander.debug_print("message", DebugLevel.BASIC)
    assert capsys.readouterr().err == "  [DEBUG] message\n"


def test_debug_print_verbose_shows_lower_levels_only(capsys):
    expander = VariableExpander(debug_level=DebugLevel.VERBOSE)
    expander.debug_print("basic", DebugLevel.BASIC)
    expander.debug_print("verbose", DebugLevel.VERBOSE)
    expander.debug_print("trace", DebugLevel.TRACE)
    assert capsys.readouterr().err == "[DEBUG] basic\n[DEBUG] verbose\n"