"""The "composer" command group: install, select and inspect Composer versions.

Every subcommand sets a ``handler(args, services)`` default on its parser.
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from tabulate import tabulate
from termcolor import colored

from statora import dispatch
from statora.app import Services
from statora.composer import ComposerError
from statora.config import PROJECT_FILE
from statora.pipeline import StageError


def _read_project_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError):
        return {}


def _ensure_installed(services: Services, version: str) -> None:
    if services.composer.is_installed(version):
        return
    print(f"Composer {version} is not installed. Installing...")
    try:
        services.composer.install(version)
    except (ComposerError, StageError, OSError) as exc:
        raise ComposerError(f"auto-install Composer {version}: {exc}") from exc


def _version_from_phar(phar: str) -> str:
    """Pick the version out of .../composer/<version>/composer.phar, else return as is."""
    parts = phar.replace(os.sep, "/").split("/")
    for index, part in enumerate(parts):
        if part == "composer" and index + 2 < len(parts):
            return parts[index + 1]
    return phar


def _install(args: argparse.Namespace, services: Services) -> None:
    services.composer.install(args.version)


def _uninstall(args: argparse.Namespace, services: Services) -> None:
    services.composer.uninstall(args.version)


def _list(args: argparse.Namespace, services: Services) -> None:
    versions = services.composer.list_versions()
    if not versions:
        print("No Composer versions installed.")
        return
    active_phar = dispatch.read_cache(services.cfg, dispatch.KEY_COMPOSER)
    rows = [
        [
            version,
            colored("active", "green")
            if str(services.cfg.composer_phar(version)) == active_phar
            else "",
        ]
        for version in versions
    ]
    print(tabulate(rows, headers=["Version", "Status"], tablefmt="simple_outline"))


def _global(args: argparse.Namespace, services: Services) -> None:
    _ensure_installed(services, args.version)
    current = services.cfg.load_global()
    services.cfg.write_global(dataclasses.replace(current, composer=args.version))


def _local(args: argparse.Namespace, services: Services) -> None:
    version = args.version
    path = Path.cwd() / PROJECT_FILE
    data = _read_project_file(path)
    current = str(data.get("composer", "") or "")

    _ensure_installed(services, version)

    if current == version:
        print(f"Composer is already set to {version} (no change).")
        return

    data["composer"] = version
    with path.open("wb") as handle:
        tomli_w.dump(data, handle)

    if current:
        print(f"Updated local Composer: {current} → {version}.")
    else:
        print(f"Set local Composer to {version}.")


def _current(args: argparse.Namespace, services: Services) -> None:
    phar = dispatch.read_cache(services.cfg, dispatch.KEY_COMPOSER)
    if not phar:
        print("No active Composer version. Run `statora switch`.")
        return
    print(_version_from_phar(phar))


def _compat(args: argparse.Namespace, services: Services) -> None:
    php_version = args.php_version
    constraint = services.checker.resolve_composer(php_version)
    if not constraint:
        print(f"No Composer compatibility rule for PHP {php_version}")
        return
    print(f"PHP {php_version} → Composer {constraint}")


def register(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """Add the "composer" command and its subcommands."""
    parser = subparsers.add_parser("composer", help="Manage Composer versions")
    commands = parser.add_subparsers(
        dest="composer_command", metavar="<command>", required=True
    )

    for name, help_text, handler, argument in (
        ("install", "Install a Composer version", _install, "version"),
        ("uninstall", "Uninstall a Composer version", _uninstall, "version"),
        ("list", "List installed Composer versions", _list, None),
        ("global", "Set the global Composer version", _global, "version"),
        (
            "local",
            "Set the Composer version for the current project (.statora)",
            _local,
            "version",
        ),
        ("current", "Show the active Composer version", _current, None),
        (
            "compat",
            "Show the compatible Composer constraint for a PHP version",
            _compat,
            "php_version",
        ),
    ):
        command = commands.add_parser(name, help=help_text)
        if argument is not None:
            command.add_argument(argument)
        command.set_defaults(handler=handler)
    return parser