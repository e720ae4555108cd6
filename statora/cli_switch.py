"""The "switch" and "use" commands.

Each sets a ``handler(args, services)`` default on its parser.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from statora.app import Services
from statora.composer import ComposerError
from statora.php import PhpError
from statora.pipeline import StageError
from statora.shell import detect_shell
from statora.switcher import Switcher, prompt_confirm
from statora.use import is_terminal, print_use

_USE_DESCRIPTION = """\
Resolve the active PHP/Composer versions and print a shell PATH export.

Designed to be eval'd by the shell hook set up by 'statora env'.

  zsh/bash:  eval "$(statora use)"
  fish:      statora use | source"""


def prompt_install(label: str) -> bool:
    """Ask whether to install ``label``; False when the answer is no or stdin is not a terminal."""
    if not is_terminal(sys.stdin):
        return False
    print(f"{label} is not installed. Install now? [y/N] ", end="", flush=True)
    line = sys.stdin.readline()
    if not line:
        return False
    return line.strip().lower() in ("y", "yes")


def _switch(args: argparse.Namespace, services: Services) -> None:
    switcher = Switcher(
        services.cfg, services.resolver, services.php, services.composer, services.log
    )
    plan = switcher.build_plan(Path.cwd())
    if not plan.has_changes():
        print("Already up to date.")
        return
    if not prompt_confirm(plan):
        print("Aborted.")
        return
    switcher.execute(plan)


def _use(args: argparse.Namespace, services: Services) -> None:
    shell = detect_shell(os.environ.get("SHELL", ""), args.shell)
    directory = Path.cwd()

    resolution = services.resolver.resolve(directory)
    if resolution.source == "none":
        return

    php_version = resolution.php
    if not services.php.is_installed(php_version):
        if not prompt_install(f"PHP {php_version}"):
            print(
                f"statora: skipping PATH update (PHP {php_version} not installed)",
                file=sys.stderr,
            )
            return
        try:
            services.php.install(php_version)
        except (PhpError, StageError, OSError) as exc:
            raise PhpError(f"installing PHP {php_version}: {exc}") from exc
        resolution = services.resolver.resolve(directory)
        php_version = resolution.php

    composer_version = resolution.composer
    if not services.composer.is_installed(composer_version):
        if not prompt_install(f"Composer {composer_version}"):
            print(
                f"statora: skipping PATH update (Composer {composer_version} not installed)",
                file=sys.stderr,
            )
            return
        try:
            services.composer.install(composer_version)
        except (ComposerError, StageError, OSError) as exc:
            raise ComposerError(f"installing Composer {composer_version}: {exc}") from exc
        resolution = services.resolver.resolve(directory)
        composer_version = resolution.composer

    php_bin_dir = services.cfg.php_runtime_dir(php_version) / "bin"
    composer_bin_dir = services.cfg.paths.composer_dir / composer_version / "bin"
    print_use(
        sys.stdout,
        shell,
        str(php_bin_dir),
        str(composer_bin_dir),
        os.environ.get("PATH", ""),
        str(services.cfg.paths.home.parent),
    )


def register(subparsers: argparse._SubParsersAction) -> None:
    """Add the "switch" and "use" commands."""
    switch = subparsers.add_parser(
        "switch",
        help="Switch to the PHP/Composer versions defined in .statora or global config",
    )
    switch.set_defaults(handler=_switch)

    use = subparsers.add_parser(
        "use",
        help="Output PATH export for the active PHP/Composer versions (eval this in your shell)",
        description=_USE_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    use.add_argument("--shell", default="", help="Shell to target (zsh, bash, fish)")
    use.set_defaults(handler=_use)