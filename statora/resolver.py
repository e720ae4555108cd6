"""Resolve the active PHP and Composer versions for a directory."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from statora.compat import Checker
from statora.config import PROJECT_FILE, Config, load_project
from statora.versions import normalize_installed


@dataclass(frozen=True)
class Resolution:
    """Resolved versions and where they came from: "project", "global" or "none"."""

    php: str = ""
    composer: str = ""
    source: str = ""


class Resolver:
    """Resolves versions with priority: project .statora, then the global file."""

    def __init__(self, cfg: Config, checker: Checker | None = None) -> None:
        self.cfg = cfg
        self.checker = checker if checker is not None else Checker()

    def resolve(self, directory: Path | str) -> Resolution:
        """Return the active versions for ``directory``.

        Composer is inferred from the compatibility matrix when not set.
        """
        project = load_project(directory)
        if project is not None and project.php:
            return self._resolution(project.php, project.composer, "project")

        global_config = self.cfg.load_global()
        if global_config.php:
            return self._resolution(global_config.php, global_config.composer, "global")

        return Resolution(source="none")

    def resolve_from_cwd(self) -> Resolution:
        """Resolve using the current working directory."""
        return self.resolve(os.getcwd())

    def _resolution(self, php: str, composer: str, source: str) -> Resolution:
        if not composer:
            composer = self.checker.resolve_composer(php)
        return Resolution(
            php=_normalize(php, self._installed_php_versions()),
            composer=_normalize(composer, self._installed_composer_versions()),
            source=source,
        )

    def _installed_php_versions(self) -> list[str]:
        return _installed(self.cfg.paths.runtimes_dir / "php", self.cfg.php_bin)

    def _installed_composer_versions(self) -> list[str]:
        return _installed(self.cfg.paths.composer_dir, self.cfg.composer_bin)


def _installed(root: Path, binary_for: Callable[[str], Path]) -> list[str]:
    try:
        entries = sorted(root.iterdir(), key=lambda entry: entry.name)
    except OSError:
        return []
    return [
        entry.name
        for entry in entries
        if entry.is_dir() and binary_for(entry.name).exists()
    ]


def _normalize(version: str, installed: list[str]) -> str:
    """Map a partial version to the highest installed match, else keep it."""
    return normalize_installed(version, installed) or version


def nearest_project_file(directory: Path | str) -> Path | None:
    """Walk up from ``directory`` to the first one holding a .statora file."""
    current = Path(directory)
    while True:
        if (current / PROJECT_FILE).exists():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent