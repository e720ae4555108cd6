"""The "ext" command group: manage extensions of the active PHP version.

Every subcommand sets a ``handler(args, services)`` default on its parser.
"""

from __future__ import annotations

import argparse

from tabulate import tabulate
from termcolor import colored

from statora import dispatch
from statora.app import Services
from statora.extension import ExtensionError, ExtensionInstaller


def _active_version(services: Services) -> str:
    version = dispatch.read_cache(services.cfg, dispatch.KEY_PHP_ACTIVE)
    if not version:
        raise ExtensionError("no active PHP version — run `statora switch` first")
    return version


def _installer(services: Services) -> ExtensionInstaller:
    return services.extensions(_active_version(services))


def _install(args: argparse.Namespace, services: Services) -> None:
    _installer(services).install(args.name)


def _uninstall(args: argparse.Namespace, services: Services) -> None:
    php_version = _active_version(services)
    installer = services.extensions(php_version)
    if installer.is_enabled(args.name):
        installer.disable(args.name)
    (services.cfg.ext_available_dir(php_version) / f"{args.name}.so").unlink(
        missing_ok=True
    )
    print(f"Extension {args.name} uninstalled.")


def _enable(args: argparse.Namespace, services: Services) -> None:
    _installer(services).enable(args.name)


def _disable(args: argparse.Namespace, services: Services) -> None:
    _installer(services).disable(args.name)


def _list(args: argparse.Namespace, services: Services) -> None:
    php_version = _active_version(services)
    installer = services.extensions(php_version)
    available = installer.list_available()
    if not available:
        print(f"No extensions installed for PHP {php_version}.")
        return
    enabled = set(installer.list_enabled())
    rows = [
        [
            name,
            colored("enabled", "green")
            if name in enabled
            else colored("available", "yellow"),
        ]
        for name in available
    ]
    print(tabulate(rows, headers=["Extension", "Status"], tablefmt="simple_outline"))


def _info(args: argparse.Namespace, services: Services) -> None:
    php_version = _active_version(services)
    installer = services.extensions(php_version)
    name = args.name
    print(f"Extension: {colored(name, 'cyan')}")
    print(f"PHP:       {php_version}")
    if installer.is_available(name):
        print(f"Available: {colored('yes', 'green')}")
    else:
        print(f"Available: {colored('no', 'red')}")
    if installer.is_enabled(name):
        print(f"Enabled:   {colored('yes', 'green')}")
    else:
        print(f"Enabled:   {colored('no', 'yellow')}")


def register(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """Add the "ext" command and its subcommands."""
    parser = subparsers.add_parser("ext", help="Manage PHP extensions")
    commands = parser.add_subparsers(dest="ext_command", metavar="<command>", required=True)

    for name, help_text, handler, takes_name in (
        ("install", "Install a PHP extension", _install, True),
        ("uninstall", "Uninstall a PHP extension", _uninstall, True),
        ("enable", "Enable a PHP extension", _enable, True),
        ("disable", "Disable a PHP extension", _disable, True),
        (
            "list",
            "List available and enabled extensions for the active PHP version",
            _list,
            False,
        ),
        ("info", "Show info about an extension", _info, True),
    ):
        command = commands.add_parser(name, help=help_text)
        if takes_name:
            command.add_argument("name")
        command.set_defaults(handler=handler)
    return parser