[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cjshell"
version = "2.1.13"
description = "Shell building blocks: command-line parsing, script interpretation, themed prompts and update checks"
requires-python = ">=3.10"
dependencies = []
keywords = ["shell", "prompt", "parser", "theme", "interpreter", "git"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Shells",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cjshell"]

[tool.pytest.ini_options]
addopts = "-ra"
