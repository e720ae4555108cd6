"""Ordered install pipelines made of named stages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from termcolor import colored

from statora.config import Config


@dataclass
class Context:
    """State shared by the stages of one pipeline run."""

    version: str = ""
    category: str = ""
    cfg: Config | None = None
    log: logging.Logger | None = None
    data: dict[str, Any] = field(default_factory=dict)
    captured_output: str = ""


class Stage(Protocol):
    """A single named step of a pipeline."""

    name: str

    def run(self, ctx: Context) -> None: ...


class StageError(Exception):
    """Raised when a pipeline stage fails."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f'stage "{stage}" failed: {cause}')
        self.stage = stage
        self.cause = cause


class Pipeline:
    """Runs stages in order, stopping at the first failure."""

    def __init__(self, *stages: Stage) -> None:
        self.stages: tuple[Stage, ...] = stages

    def run(self, ctx: Context) -> None:
        """Run every stage; on failure write an error log and raise StageError."""
        total = len(self.stages)
        for index, stage in enumerate(self.stages, start=1):
            print(f"{colored(f'[{index}/{total}]', 'cyan')} {stage.name}")
            try:
                stage.run(ctx)
            except Exception as exc:
                error = StageError(stage.name, exc)
                log_path = _write_error_log(ctx, stage.name, error)
                if log_path is not None:
                    print(colored(f"  Error log written: {log_path}", "yellow"))
                raise error from exc
            print(colored(f"     ✓ {stage.name}", "green"))


def _write_error_log(ctx: Context, stage: str, error: Exception) -> Path | None:
    if ctx.cfg is None:
        return None
    directory = ctx.cfg.paths.errors_dir / (ctx.category or "general")
    now = datetime.now(timezone.utc)
    path = directory / f"{now:%Y-%m-%d}.log"

    lines = [
        f"=== Error at {now:%Y-%m-%dT%H:%M:%SZ} ===",
        f"Version : {ctx.version}",
        f"Stage   : {stage}",
        f"Error   : {error}",
    ]
    if ctx.captured_output:
        lines += ["", "--- Captured Output ---", ctx.captured_output]
    entry = "\n".join(lines) + "\n\n"

    try:
        directory.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(entry)
    except OSError:
        return None
    return path