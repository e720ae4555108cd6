"""Small on-disk cache of the active versions."""

from __future__ import annotations

from statora.config import Config
from statora.resolver import Resolution

KEY_PHP = "php"
KEY_COMPOSER = "composer"
KEY_PHP_ACTIVE = ".php_active"


def read_cache(cfg: Config, key: str) -> str:
    """Return the cached value for ``key``, or "" if there is none."""
    try:
        return (cfg.paths.rescache_dir / key).read_text(encoding="utf-8").strip()
    except OSError:
        return ""


def write_cache(cfg: Config, key: str, value: str) -> None:
    """Store ``value`` under ``key``."""
    (cfg.paths.rescache_dir / key).write_text(value + "\n", encoding="utf-8")


def invalidate_cache(cfg: Config, resolution: Resolution) -> None:
    """Rewrite the cache entries from a resolution, skipping empty versions."""
    if resolution.php:
        write_cache(cfg, KEY_PHP, resolution.php)
        write_cache(cfg, KEY_PHP_ACTIVE, resolution.php)
    if resolution.composer:
        write_cache(cfg, KEY_COMPOSER, resolution.composer)