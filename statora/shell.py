"""Shell hook snippets for switching versions on directory change."""

from __future__ import annotations

import os
from typing import TextIO

_PROGRAM = "statora"
_POSIX_FUNCTION = f"_{_PROGRAM}_use"
_FISH_FUNCTION = f"__{_PROGRAM}_use"


def _use_command(shell: str) -> str:
    return f"{_PROGRAM} use --shell {shell} 2>/dev/null"


def _posix_function(shell: str) -> str:
    """A shell function that evaluates the PATH export when the program exists."""
    return "\n".join(
        [
            f"{_POSIX_FUNCTION}() {{",
            f"  if command -v {_PROGRAM} >/dev/null 2>&1; then",
            f'    eval "$({_use_command(shell)})"',
            "  fi",
            "}",
        ]
    )


def _zsh_hook() -> str:
    return "\n".join(
        [
            "autoload -U add-zsh-hook",
            "",
            _posix_function("zsh"),
            "",
            f"add-zsh-hook chpwd {_POSIX_FUNCTION}",
            _POSIX_FUNCTION,
            "",
        ]
    )


def _bash_hook() -> str:
    return "\n".join(
        [
            _posix_function("bash"),
            "",
            f'if [[ "${{PROMPT_COMMAND}}" != *"{_POSIX_FUNCTION}"* ]]; then',
            f'  PROMPT_COMMAND="{_POSIX_FUNCTION}${{PROMPT_COMMAND:+;$PROMPT_COMMAND}}"',
            "fi",
            _POSIX_FUNCTION,
            "",
        ]
    )


def _fish_hook() -> str:
    return "\n".join(
        [
            f"function {_FISH_FUNCTION} --on-variable PWD",
            f"  if command -q {_PROGRAM}",
            f"    {_use_command('fish')} | source",
            "  end",
            "end",
            _FISH_FUNCTION,
            "",
        ]
    )


HOOKS: dict[str, str] = {"zsh": _zsh_hook(), "bash": _bash_hook(), "fish": _fish_hook()}


class UnsupportedShellError(ValueError):
    """Raised for a shell that has no hook."""


def detect_shell(shell_env: str, flag_value: str = "") -> str:
    """Pick the shell from an explicit flag, else from the SHELL path."""
    shell = flag_value or os.path.basename(shell_env.rstrip("/")) or "."
    if shell in HOOKS:
        return shell
    raise UnsupportedShellError(f'unsupported shell "{shell}" — use --shell zsh|bash|fish')


def print_env(stream: TextIO, shell: str) -> None:
    """Write the hook snippet for ``shell`` to ``stream``."""
    try:
        hook = HOOKS[shell]
    except KeyError:
        raise UnsupportedShellError(f'unsupported shell "{shell}"') from None
    stream.write(hook)