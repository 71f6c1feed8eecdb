import re

from cjshell.prompt import Prompt, replace_placeholder
from cjshell.prompt_info import PromptInfo
from cjshell.theme import Theme, calculate_raw_length

_ESCAPE = re.compile(r"\x1b\[[0-9;]*[@-~]")


def _visible(text):
    return _ESCAPE.sub("", text)


def test_replace_placeholder_all_occurrences():
    assert replace_placeholder("a{X}b{X}", "{X}", "1") == "a1b1"


def test_replace_placeholder_no_rescan():
    assert replace_placeholder("{X}", "{X}", "{X}{X}") == "{X}{X}"


def test_disabled_theme_falls_back(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    info = PromptInfo()
    prompt = Prompt(Theme(tmp_path / "themes", enabled=False), info)
    assert prompt.get_prompt() == info.get_basic_prompt()
    assert prompt.get_ai_prompt("m", "t") == " > "
    assert prompt.get_newline_prompt() == " "
    assert prompt.get_title_prompt() == info.get_basic_title()


def test_prompt_outside_repository(tmp_path, monkeypatch):
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    info = PromptInfo()
    theme = Theme(tmp_path / "themes")
    prompt = Prompt(theme, info)
    out = _visible(prompt.get_prompt())
    assert f"{info.get_username()}@{info.get_hostname()}:" in out
    assert " work " in out
    assert theme.current_theme == "default"


def test_prompt_inside_repository(tmp_path, monkeypatch):
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    (repo / ".git" / "HEAD").write_text("ref: refs/heads/feature\n")
    monkeypatch.chdir(repo)
    theme = Theme(tmp_path / "themes")
    out = Prompt(theme, PromptInfo()).get_prompt()
    assert "feature" in _visible(out)
    assert " repo " in _visible(out)
    assert theme.last_git_raw_length == calculate_raw_length(out)


def test_ai_prompt_defaults(tmp_path):
    prompt = Prompt(Theme(tmp_path / "themes"), PromptInfo())
    out = _visible(prompt.get_ai_prompt("gpt", ""))
    assert "gpt" in out
    assert "Chat" in out
    out = _visible(prompt.get_ai_prompt("", "Coder"))
    assert "Unknown" in out
    assert "Coder" in out


def test_newline_prompt_empty_by_default(tmp_path):
    prompt = Prompt(Theme(tmp_path / "themes"), PromptInfo())
    assert prompt.get_newline_prompt() == ""


def test_title_prompt_uses_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    info = PromptInfo()
    prompt = Prompt(Theme(tmp_path / "themes"), info)
    assert prompt.get_title_prompt() == info.get_current_file_path()