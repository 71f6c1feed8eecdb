"""Shell building blocks: command parsing, script interpretation, themed prompts and update checks."""

__version__ = "2.1.13"