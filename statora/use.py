"""PATH export lines that put the active versions first."""

from __future__ import annotations

import os
import stat
from typing import TextIO

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def _quote(text: str) -> str:
    """Double-quote a string, escaping quotes, backslashes and control characters."""
    parts = []
    for ch in text:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ch.isprintable():
            parts.append(ch)
        elif ord(ch) < 0x80:
            parts.append(f"\\x{ord(ch):02x}")
        elif ord(ch) <= 0xFFFF:
            parts.append(f"\\u{ord(ch):04x}")
        else:
            parts.append(f"\\U{ord(ch):08x}")
    return '"' + "".join(parts) + '"'


def strip_statora_dirs(path: str, home_dir: str) -> str:
    """Drop empty entries and those under <home>/.statora/ from a PATH string."""
    prefix = home_dir + "/.statora/"
    return ":".join(p for p in path.split(":") if p and not p.startswith(prefix))


def build_path_export(
    shell: str, php_bin_dir: str, composer_bin_dir: str, stripped_path: str
) -> str:
    """Return the shell line that prepends the two bin dirs to ``stripped_path``."""
    if shell == "fish":
        dirs = [php_bin_dir, composer_bin_dir]
        if stripped_path:
            dirs.extend(stripped_path.split(":"))
        return f"set -gx PATH {' '.join(dirs)}\n"
    new_path = f"{php_bin_dir}:{composer_bin_dir}"
    if stripped_path:
        new_path += ":" + stripped_path
    return f"export PATH={_quote(new_path)}\n"


def print_use(
    stream: TextIO,
    shell: str,
    php_bin_dir: str,
    composer_bin_dir: str,
    current_path: str,
    home_dir: str,
) -> None:
    """Write the PATH export for ``shell`` to ``stream``."""
    stripped = strip_statora_dirs(current_path, home_dir)
    stream.write(build_path_export(shell, php_bin_dir, composer_bin_dir, stripped))


def is_terminal(stream: object) -> bool:
    """Report whether ``stream`` is attached to a character device."""
    try:
        fd = stream.fileno()  # type: ignore[attr-defined]
        return stat.S_ISCHR(os.fstat(fd).st_mode)
    except (AttributeError, OSError, ValueError):
        return False