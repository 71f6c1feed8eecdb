"""Builds the shell, AI, newline and title prompts from the active theme."""

from __future__ import annotations

from cjshell.prompt_info import PromptInfo
from cjshell.theme import Theme


def replace_placeholder(fmt: str, placeholder: str, value: str) -> str:
    """Replace every occurrence of placeholder, never rescanning inserted text."""
    if not placeholder:
        return fmt
    return fmt.replace(placeholder, value)


class Prompt:
    """Renders prompts with a theme, falling back to plain text when themes are off."""

    def __init__(self, theme: Theme, info: PromptInfo | None = None) -> None:
        self.theme = theme
        self.info = info or PromptInfo()

    def _themed(self) -> bool:
        if self.theme.current_theme is None:
            if not self.theme.enabled:
                return False
            self.theme.load_theme("default")
        return True

    def get_prompt(self) -> str:
        """The main prompt, using the git segments inside a repository."""
        if not self._themed():
            return self.info.get_basic_prompt()
        repo_root = self.info.find_git_repository()
        is_git_repo = repo_root is not None
        segments = self.theme.git_segments if is_git_repo else self.theme.ps1_segments
        variables = self.info.get_variables(segments, is_git_repo, repo_root)
        if is_git_repo:
            return self.theme.get_git_prompt_format(variables)
        return self.theme.get_ps1_prompt_format(variables)

    def get_ai_prompt(self, model: str = "", assistant_type: str = "") -> str:
        """The AI prompt showing the model and assistant type."""
        if not self._themed():
            return " > "
        model = model or "Unknown"
        assistant_type = assistant_type or "Chat"
        segments = self.theme.ai_segments
        variables: dict[str, str] = {}
        if self.info.is_variable_used("AI_MODEL", segments):
            variables["AI_MODEL"] = model
        if self.info.is_variable_used("AI_AGENT_TYPE", segments):
            variables["AI_AGENT_TYPE"] = assistant_type
        if self.info.is_variable_used("AI_DIVIDER", segments):
            variables["AI_DIVIDER"] = ">"
        variables.update(self.info.get_variables(segments))
        return self.theme.get_ai_prompt_format(variables)

    def get_newline_prompt(self) -> str:
        """The second prompt line."""
        if not self._themed():
            return " "
        segments = self.theme.newline_segments
        return self.theme.get_newline_prompt(self.info.get_variables(segments))

    def get_title_prompt(self) -> str:
        """The terminal title text."""
        if not self._themed():
            return self.info.get_basic_title()
        title = self.theme.terminal_title_format
        variables = self.info.get_variables([{"content": title}])
        for key, value in variables.items():
            title = replace_placeholder(title, "{" + key + "}", value)
        return title