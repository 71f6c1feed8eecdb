# cjshell

Building blocks for an interactive shell, in plain Python with no third-party
dependencies. It runs on POSIX systems (it uses `pwd` and the system shell).

## Modules

### `cjshell.parser`

- `tokenize_command(cmdline)` splits a line into words. It honours single and
  double quotes and backslash escapes.
- `Parser(aliases=..., env_vars=...)` is a dataclass:
  - `parse_command(cmdline)` tokenizes the line, then expands a leading alias,
    braces (`file{1,2}.txt`), `$NAME` variables (shell variables first, then
    the environment), a leading `~` and glob wildcards. A pattern with no match
    is kept as it is. Matched directories get a trailing `/`.
  - `expand_braces`, `expand_env_vars` and `expand_wildcards` run one
    expansion each.
  - `parse_pipeline(command)` splits on unquoted `|` and returns `Command`
    objects. Each carries `args`, `input_file` (`<`), `output_file` (`>`),
    `append_file` (`>>`) and `background` (a trailing `&`).
  - `parse_logical_commands(command)` splits on unquoted `&&` and `||`. It
    returns `LogicalCommand(command, op)`.
  - `parse_semicolon_commands(command)` splits on unquoted `;` and drops empty
    pieces.
  - `is_env_assignment(command)` returns `(name, value)` for `NAME=value`,
    with matching quotes removed, and otherwise `None`.

### `cjshell.expansion`

- `VariableExpander` expands `${NAME}`, `$NAME`, `$(cmd)` and `` `cmd` ``.
  Substitution output is joined into one line. Commands run through the
  system shell unless a `capture` callable is given.
- The module also provides the helpers `trim_string`, `split_command` and
  `escape_debug_string`, and the `DebugLevel` enumeration (`NONE`, `BASIC`,
  `VERBOSE`, `TRACE`).

### `cjshell.interpreter`

`ShellScriptInterpreter` extends `VariableExpander` and runs simple scripts
line by line:

- `NAME=value` and `export NAME=value` assignments, with expansion.
- `if`/`elif`/`else`/`fi`, `for NAME in ...; do ... done` and `while`.
- `[ -x | -e | -r path ]`, `[ a = b ]`, `[ a != b ]`, `[ -n s ]` and
  `[ -z s ]` tests. Any other condition runs as a command.
- `eval` lines.
- Lines starting with `--`, which are collected in `startup_args`.

Plain commands go to a command executor, which by default is the system shell.
`set_command_executor` replaces it. `handle_debug_command` accepts
`debug on/off/verbose/trace/level/vars`, `debug show_output on/off` and
`debug safe_mode on/off`.

### `cjshell.sysinfo`

Functions for what a prompt shows:

- `get_os_info`, `get_kernel_version`, `get_cpu_usage`, `get_memory_usage`,
  `get_battery_status` and `get_uptime`.
- `get_terminal_type` and `get_terminal_dimensions`.
- `get_active_language_version` and `virtual_environment_name`.
- `get_ip_address`, `is_vpn_active`, `get_active_network_interface` and
  `get_background_jobs_count`.

Slow lookups are kept in a `TTLCache`.

### `cjshell.prompt_info`

`PromptInfo` gives values for prompt placeholders such as `{USERNAME}`,
`{PATH}`, `{DIRECTORY}`, `{TIME}`, `{TIME12}`, `{DATE}`, `{GIT_BRANCH}`,
`{GIT_STATUS}`, `{LOCAL_PATH}`, `{GIT_AHEAD}`, `{LANG_VER:python}` and
`{IP_LOCAL}`. `get_variables(segments, is_git_repo, repo_root)` computes only
the placeholders that the segments use. `find_git_repository()` returns the
enclosing repository root, or `None`.

### `cjshell.theme`

`Theme(theme_dir)` writes a `default.json` if the directory has none.
`load_theme(name)` reads `<name>.json`; it returns `False` if the file is
missing or a segment list repeats a tag.

A segment has these keys:

- `content`, `fg_color`, `bg_color`
- `separator`, `separator_fg`, `separator_bg`
- `forward_separator`
- `align`: `left`, `center` or `right`

A color is a name such as `GREEN_BRIGHT`, `#rrggbb` or `rgb(r,g,b)`.

Aligned lines are padded to the terminal width with `fill_char`.
`calculate_raw_length` counts the visible characters, skipping escape
sequences.

### `cjshell.prompt`

`Prompt(theme, info=None)` renders:

- `get_prompt()`
- `get_ai_prompt(model, assistant_type)`
- `get_newline_prompt()`
- `get_title_prompt()`

When themes are disabled it falls back to plain text.

### `cjshell.update`

- `parse_version` and `is_newer_version` compare dotted versions.
- `check_for_update(current_version, update_url)` reads a JSON release
  document with a `tag_name` field.
- `load_update_cache` and `save_update_cache` keep the result in a JSON file.
  `should_check_for_updates` decides whether a new check is due.
- `is_first_boot`, `mark_first_boot_complete` and `display_changelog` round
  out the module.

## What it does not do

This package is a library, not a runnable shell. It has no command-line entry
point and no interactive line editor.

The parser only describes pipelines, redirections and background jobs. Nothing
here executes them or does job control. There is no plugin system and no AI
chat; `get_ai_prompt` only renders a prompt for one.

## Examples

```python
from cjshell.parser import Parser, tokenize_command

tokenize_command('echo "hello world" foo')   # ['echo', 'hello world', 'foo']

parser = Parser()
parser.expand_braces("file{1,2}.txt")        # ['file1.txt', 'file2.txt']
parser.parse_semicolon_commands("ls; pwd")   # ['ls', 'pwd']
parser.is_env_assignment('NAME="value"')     # ('NAME', 'value')
```

```python
from cjshell.update import is_newer_version

is_newer_version("2.1.14", "2.1.13")         # True
```

```python
from cjshell.interpreter import ShellScriptInterpreter

interp = ShellScriptInterpreter()
interp.execute_line("GREETING=hello")
interp.expand_variables("$GREETING world")   # 'hello world'
```

## Installation

```
pip install .
```

## Running the tests

```
pip install .[test]
pytest
```