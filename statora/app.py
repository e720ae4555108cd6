"""Wiring of the application's services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from statora.compat import Checker
from statora.composer import ComposerManager
from statora.config import Config, load_config
from statora.extension import ExtensionInstaller
from statora.logger import new_logger
from statora.php import PhpPlugin
from statora.resolver import Resolver


@dataclass(frozen=True)
class Services:
    """The shared services a command needs, built from one configuration."""

    cfg: Config
    log: logging.Logger
    checker: Checker
    resolver: Resolver
    php: PhpPlugin
    composer: ComposerManager

    @classmethod
    def create(cls, debug: bool = False, home: Path | str | None = None) -> Services:
        """Build every service, creating the ~/.statora layout as needed."""
        cfg = load_config(debug, home)
        log = new_logger(debug)
        checker = Checker()
        return cls(
            cfg=cfg,
            log=log,
            checker=checker,
            resolver=Resolver(cfg, checker),
            php=PhpPlugin(cfg, log),
            composer=ComposerManager(cfg, log),
        )

    @property
    def debug(self) -> bool:
        return self.cfg.debug

    def extensions(self, php_version: str) -> ExtensionInstaller:
        """Return an extension installer for one PHP version."""
        return ExtensionInstaller(self.cfg, self.log, php_version)