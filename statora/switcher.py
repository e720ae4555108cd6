"""Plans and applies a switch to the versions configured for a directory."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from termcolor import colored

from statora import dispatch
from statora.composer import ComposerError, ComposerManager
from statora.config import Config, load_project
from statora.extension import ExtensionError, ExtensionInstaller
from statora.php import PhpError, PhpPlugin
from statora.pipeline import StageError
from statora.resolver import Resolution, Resolver

_CONFIRM_ANSWERS = frozenset({"y", "yes", ""})


@dataclass(frozen=True)
class Action:
    """One change of a plan: kind is "php", "composer", "ext-enable" or "ext-disable"."""

    kind: str
    name: str = ""
    current: str = ""
    target: str = ""


@dataclass
class Plan:
    """Every change that a switch will apply."""

    resolution: Resolution = field(default_factory=Resolution)
    actions: list[Action] = field(default_factory=list)
    directory: Path | None = None

    def has_changes(self) -> bool:
        return bool(self.actions)


class Switcher:
    """Builds switch plans and applies them."""

    def __init__(
        self,
        cfg: Config,
        resolver: Resolver,
        php: PhpPlugin,
        composer: ComposerManager,
        log: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.resolver = resolver
        self.php = php
        self.composer = composer
        self.log = log if log is not None else logging.getLogger("statora")

    def build_plan(self, directory: Path | str) -> Plan:
        """Resolve the target versions for ``directory`` and list what must change."""
        resolution = self.resolver.resolve(directory)
        if resolution.source == "none":
            raise LookupError(
                "no PHP version configured — set one with "
                "`statora php global <version>` or create a .statora file"
            )

        plan = Plan(resolution=resolution, directory=Path(directory))

        current_php = dispatch.read_cache(self.cfg, dispatch.KEY_PHP_ACTIVE)
        if current_php != resolution.php:
            plan.actions.append(
                Action("php", resolution.php, current_php, resolution.php)
            )

        current_composer = dispatch.read_cache(self.cfg, dispatch.KEY_COMPOSER)
        if current_composer != resolution.composer:
            plan.actions.append(
                Action("composer", resolution.composer, current_composer, resolution.composer)
            )
        return plan

    def execute(self, plan: Plan) -> None:
        """Install missing versions, enable declared extensions and update the cache."""
        resolution = plan.resolution

        if not self.php.is_installed(resolution.php):
            print(f"Installing PHP {resolution.php}...")
            try:
                self.php.install(resolution.php)
            except (PhpError, StageError, OSError) as exc:
                raise PhpError(f"installing PHP {resolution.php}: {exc}") from exc

        if not self.composer.is_installed(resolution.composer):
            print(f"Installing Composer {resolution.composer}...")
            try:
                self.composer.install(resolution.composer)
            except (ComposerError, StageError, OSError) as exc:
                raise ComposerError(
                    f"installing Composer {resolution.composer}: {exc}"
                ) from exc

        directory = plan.directory if plan.directory is not None else Path(os.getcwd())
        project = load_project(directory)
        if project is not None:
            installer = ExtensionInstaller(self.cfg, self.log, resolution.php)
            for name in project.extensions:
                if installer.is_enabled(name):
                    continue
                try:
                    installer.enable(name)
                except (ExtensionError, OSError) as exc:
                    self.log.warning("Could not enable extension %s: %s", name, exc)

        dispatch.invalidate_cache(self.cfg, resolution)


def render_plan(plan: Plan) -> str:
    """Return the confirmation text that shows a plan."""
    parts = [colored("\n  Switch Plan\n", "cyan"), colored("  ──────────\n", "cyan")]
    for action in plan.actions:
        if action.kind == "php":
            old = action.current or "(none)"
            parts.append(
                f"  PHP       {colored(old, 'yellow')} → {colored(action.name, 'green')}\n"
            )
        elif action.kind == "composer":
            parts.append(f"  Composer  → {colored(action.name, 'green')}\n")
        elif action.kind == "ext-enable":
            parts.append(f"  Enable    {colored(action.name, 'green')}\n")
        elif action.kind == "ext-disable":
            parts.append(f"  Disable   {colored(action.name, 'red')}\n")
    parts.append("\n  Apply? [y/N] ")
    return "".join(parts)


def prompt_confirm(plan: Plan) -> bool:
    """Show the plan and ask for confirmation; "y" or a bare enter confirms."""
    if not plan.has_changes():
        print("Nothing to switch — already up to date.")
        return False
    try:
        answer = input(render_plan(plan))
    except (EOFError, KeyboardInterrupt):
        print()
        return False
    return answer.strip().lower() in _CONFIRM_ANSWERS