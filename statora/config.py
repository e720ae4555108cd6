"""Application paths and the global and per-project version files."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

PROJECT_FILE = ".statora"


@dataclass(frozen=True)
class Paths:
    """Every directory and file under ~/.statora."""

    home: Path
    runtimes_dir: Path
    composer_dir: Path
    cache_dir: Path
    download_dir: Path
    build_dir: Path
    rescache_dir: Path
    versions_dir: Path
    global_file: Path
    config_file: Path
    errors_dir: Path

    @classmethod
    def under(cls, root: Path) -> Paths:
        return cls(
            home=root,
            runtimes_dir=root / "runtimes",
            composer_dir=root / "composer",
            cache_dir=root / "cache",
            download_dir=root / "cache" / "downloads",
            build_dir=root / "cache" / "builds",
            rescache_dir=root / ".rescache",
            versions_dir=root / "versions",
            global_file=root / "versions" / "global.toml",
            config_file=root / "config.toml",
            errors_dir=root / "errors",
        )


@dataclass
class ProjectConfig:
    """Contents of a project's .statora file."""

    php: str = ""
    composer: str = ""
    extensions: list[str] = field(default_factory=list)


@dataclass
class GlobalConfig:
    """Contents of ~/.statora/versions/global.toml."""

    php: str = ""
    composer: str = ""


def _as_str(value: Any, key: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    raise TypeError(f"{key!r} must be a string, not {type(value).__name__}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if isinstance(value, list):
        return [_as_str(item, key) for item in value]
    return [_as_str(value, key)]


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    return {key.lower(): value for key, value in data.items()}


@dataclass(frozen=True)
class Config:
    """Resolved application paths plus run-time flags."""

    paths: Paths
    debug: bool = False

    def load_global(self) -> GlobalConfig:
        """Read the global version file; a missing file gives empty values."""
        try:
            data = _read_toml(self.paths.global_file)
        except FileNotFoundError:
            return GlobalConfig()
        return GlobalConfig(
            php=_as_str(data.get("php", ""), "php"),
            composer=_as_str(data.get("composer", ""), "composer"),
        )

    def write_global(self, global_config: GlobalConfig) -> None:
        """Write the global version file, leaving out empty values."""
        data = {
            key: value
            for key, value in (("php", global_config.php), ("composer", global_config.composer))
            if value
        }
        self.paths.global_file.parent.mkdir(parents=True, exist_ok=True)
        with self.paths.global_file.open("wb") as handle:
            tomli_w.dump(data, handle)

    def php_runtime_dir(self, version: str) -> Path:
        return self.paths.runtimes_dir / "php" / version

    def php_bin(self, version: str) -> Path:
        return self.php_runtime_dir(version) / "bin" / "php"

    def composer_phar(self, version: str) -> Path:
        return self.paths.composer_dir / version / "composer.phar"

    def composer_bin(self, version: str) -> Path:
        return self.paths.composer_dir / version / "bin" / "composer"

    def ext_available_dir(self, php_version: str) -> Path:
        return self.php_runtime_dir(php_version) / "lib" / "extensions" / "available"

    def ext_enabled_dir(self, php_version: str) -> Path:
        return self.php_runtime_dir(php_version) / "lib" / "extensions" / "enabled"


def load_config(debug: bool = False, home: Path | str | None = None) -> Config:
    """Build the configuration rooted at <home>/.statora, creating its directories."""
    base = Path(home) if home is not None else Path.home()
    paths = Paths.under(base / ".statora")
    for directory in (
        paths.runtimes_dir,
        paths.composer_dir,
        paths.download_dir,
        paths.build_dir,
        paths.rescache_dir,
        paths.versions_dir,
        paths.errors_dir,
    ):
        directory.mkdir(parents=True, exist_ok=True)
    return Config(paths=paths, debug=debug)


def load_project(directory: Path | str) -> ProjectConfig | None:
    """Read the .statora file in ``directory``; None if absent or unreadable."""
    try:
        data = _read_toml(Path(directory) / PROJECT_FILE)
    except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError):
        return None
    extensions = data.get("extensions", [])
    return ProjectConfig(
        php=_as_str(data.get("php", ""), "php"),
        composer=_as_str(data.get("composer", ""), "composer"),
        extensions=_as_str_list(extensions, "extensions"),
    )