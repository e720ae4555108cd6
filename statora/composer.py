"""Installing, listing and locating Composer versions from getcomposer.org."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import time
import urllib.error
import urllib.request
from collections.abc import Iterable
from pathlib import Path
from typing import Any, NamedTuple

from statora.config import Config
from statora.pipeline import Context, Pipeline
from statora.versions import Version, VersionError, parse_constraint, parse_version

_VERSIONS_URL = "https://getcomposer.org/versions"
_DOWNLOAD_URL = "https://getcomposer.org/download/{}/composer.phar"
_SHA256_URL = "https://getcomposer.org/download/{}/composer.phar.sha256sum"
_CONSTRAINT_CHARS = frozenset(" <>~^*|")
_PROGRESS_INTERVAL = 0.15
_CHUNK_SIZE = 64 * 1024


class ComposerError(Exception):
    """Raised when a Composer version operation fails."""


class _Release(NamedTuple):
    version: str
    sha256: str


def is_constraint(text: str) -> bool:
    """Report whether ``text`` is a range constraint rather than a concrete version."""
    return any(ch in _CONSTRAINT_CHARS for ch in text)


def is_partial_version(text: str) -> bool:
    """Report whether ``text`` is a one- or two-part numeric version such as "2" or "2.7"."""
    if not text or is_constraint(text):
        return False
    parts = text.split(".")
    if len(parts) > 2:
        return False
    return all(part and all("0" <= ch <= "9" for ch in part) for part in parts)


def matches_partial_prefix(partial: str, version: str) -> bool:
    """Report whether ``version`` falls under ``partial`` ("2.7" matches "2.7.4", not "2.70.0")."""
    return version.startswith(partial + ".")


def download_url(version: str) -> str:
    """Return the composer.phar download URL for a concrete version."""
    return _DOWNLOAD_URL.format(version)


def sha256_url(version: str) -> str:
    """Return the URL of the .sha256sum file for a concrete version."""
    return _SHA256_URL.format(version)


def _fetch(url: str, attempts: int = 3, timeout: float = 30) -> bytes:
    """GET ``url`` with exponential backoff and return the body of a 200 response."""
    failure: BaseException | None = None
    status: int | None = None
    for attempt in range(attempts):
        try:
            response = urllib.request.urlopen(url, timeout=timeout)
        except urllib.error.HTTPError as exc:
            failure, status = None, exc.code
            exc.close()
        except (urllib.error.URLError, OSError) as exc:
            failure, status = exc, None
        else:
            with response:
                if response.status == 200:
                    return response.read()
                failure, status = None, response.status
        time.sleep(1 << attempt)
    if failure is not None:
        raise ComposerError(f"GET {url}: {failure}") from failure
    raise ComposerError(f"GET {url}: status {status}")


def _releases(payload: dict[str, Any], key: str) -> list[_Release]:
    entries = payload.get(key) or []
    if not isinstance(entries, list):
        return []
    releases = []
    for entry in entries:
        if isinstance(entry, dict) and isinstance(entry.get("version"), str):
            releases.append(_Release(entry["version"], entry.get("sha256sum") or ""))
    return releases


def _parsed(releases: Iterable[_Release]) -> Iterable[tuple[Version, _Release]]:
    for release in releases:
        try:
            yield parse_version(release.version), release
        except VersionError:
            continue


def _highest(candidates: Iterable[tuple[Version, _Release]]) -> _Release | None:
    best: tuple[Version, _Release] | None = None
    for version, release in candidates:
        if best is None or version > best[0]:
            best = (version, release)
    return best[1] if best else None


def resolve_version(text: str) -> tuple[str, str]:
    """Resolve a version, partial version or constraint to a concrete release.

    Returns the version and its SHA256; the hash is "" when not listed.
    """
    try:
        body = _fetch(_VERSIONS_URL)
    except ComposerError as exc:
        raise ComposerError(f"fetching getcomposer.org/versions: {exc}") from exc
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise ComposerError(f"parsing versions response: {exc}") from exc
    if not isinstance(payload, dict):
        raise ComposerError("parsing versions response: expected a JSON object")

    stable = _releases(payload, "stable")
    preview = _releases(payload, "preview")

    if not is_constraint(text):
        if is_partial_version(text):
            best = _highest(
                pair for pair in _parsed(stable) if matches_partial_prefix(text, pair[1].version)
            )
            if best is None:
                raise ComposerError(f'no stable Composer release matches "{text}"')
            return best.version, best.sha256
        for release in stable + preview:
            if release.version == text:
                return release.version, release.sha256
        return text, ""

    try:
        constraint = parse_constraint(text)
    except VersionError as exc:
        raise ComposerError(f'invalid constraint "{text}": {exc}') from exc
    best = _highest(pair for pair in _parsed(stable) if constraint.check(pair[0]))
    if best is None:
        raise ComposerError(f'no stable Composer release matches "{text}"')
    return best.version, best.sha256


def _config(ctx: Context) -> Config:
    if ctx.cfg is None:
        raise ComposerError("install context has no configuration")
    return ctx.cfg


def _download_with_progress(url: str, dest: Path) -> int:
    with urllib.request.urlopen(url, timeout=60) as response, dest.open("wb") as out:
        total = int(response.headers.get("Content-Length") or 0)
        done = 0
        last_report = time.monotonic()
        while chunk := response.read(_CHUNK_SIZE):
            out.write(chunk)
            done += len(chunk)
            now = time.monotonic()
            if now - last_report >= _PROGRESS_INTERVAL:
                last_report = now
                pct = 100 * done / total if total else 0.0
                print(
                    f"\r  Downloading... {pct:5.1f}%  {done / 1e6:.1f} / {total / 1e6:.1f} MB",
                    end="",
                    flush=True,
                )
    return total or done


class _DownloadStage:
    name = "Download composer.phar"

    def run(self, ctx: Context) -> None:
        dest_dir = _config(ctx).paths.composer_dir / ctx.version
        dest_dir.mkdir(parents=True, exist_ok=True)
        phar = dest_dir / "composer.phar"
        ctx.data["pharDest"] = phar

        if phar.exists():
            print("  Already downloaded: composer.phar")
            return

        print(f"  → composer.phar (v{ctx.version})")
        try:
            size = _download_with_progress(ctx.data["pharURL"], phar)
        except (urllib.error.URLError, OSError) as exc:
            print()
            phar.unlink(missing_ok=True)
            raise ComposerError(f"downloading composer.phar: {exc}") from exc
        print(f"\r  Downloaded {size / 1e6:.2f} MB                                    ")


class _VerifyChecksumStage:
    name = "Verify SHA256 checksum"

    def run(self, ctx: Context) -> None:
        phar = Path(ctx.data["pharDest"])
        expected = ctx.data.get("sha256hint") or ""
        if not expected:
            try:
                raw = _fetch(ctx.data["sha256URL"])
            except ComposerError as exc:
                raise ComposerError(f"fetching checksum file: {exc}") from exc
            fields = raw.decode("utf-8", errors="replace").split()
            if not fields:
                raise ComposerError("reading checksum file: file is empty")
            expected = fields[0].lower()

        digest = hashlib.sha256()
        with phar.open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        got = digest.hexdigest()
        if got != expected:
            print(f"  Warning: SHA256 mismatch (got {got}, want {expected}) — continuing anyway")


class _InstallStage:
    name = "Install composer.phar"

    def run(self, ctx: Context) -> None:
        os.chmod(ctx.data["pharDest"], 0o755)


class ComposerManager:
    """Manages installed Composer versions."""

    def __init__(self, cfg: Config, log: logging.Logger | None = None) -> None:
        self.cfg = cfg
        self.log = log if log is not None else logging.getLogger("statora")

    def install(self, version_or_constraint: str) -> None:
        """Install a concrete version, partial version or constraint."""
        try:
            concrete, sha256 = resolve_version(version_or_constraint)
        except ComposerError as exc:
            raise ComposerError(f"resolving Composer version: {exc}") from exc
        if concrete != version_or_constraint:
            print(f'  Resolved "{version_or_constraint}" → {concrete}')

        if self.is_installed(concrete):
            print(f"Composer {concrete} is already installed.")
            return

        pipeline = Pipeline(_DownloadStage(), _VerifyChecksumStage(), _InstallStage())
        ctx = Context(
            version=concrete,
            category="composer",
            cfg=self.cfg,
            log=self.log,
            data={
                "pharURL": download_url(concrete),
                "sha256URL": sha256_url(concrete),
                "sha256hint": sha256,
            },
        )
        pipeline.run(ctx)
        self.create_wrapper_script(concrete)

    def uninstall(self, version: str) -> None:
        """Remove a Composer version's directory."""
        directory = self.cfg.paths.composer_dir / version
        if not directory.exists():
            raise ComposerError(f"Composer {version} is not installed")
        shutil.rmtree(directory)

    def list_versions(self) -> list[str]:
        """Return every version directory under the Composer directory."""
        try:
            entries = sorted(self.cfg.paths.composer_dir.iterdir(), key=lambda e: e.name)
        except FileNotFoundError:
            return []
        return [entry.name for entry in entries if entry.is_dir()]

    def create_wrapper_script(self, version: str) -> None:
        """Write an executable bin/composer script that runs the version's phar."""
        binary = self.cfg.composer_bin(version)
        try:
            binary.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ComposerError(f"creating composer bin dir: {exc}") from exc
        script = f'#!/bin/sh\nexec php {self.cfg.composer_phar(version)} "$@"\n'
        try:
            binary.write_text(script, encoding="utf-8")
            os.chmod(binary, 0o755)
        except OSError as exc:
            raise ComposerError(f"writing composer wrapper script: {exc}") from exc

    def is_installed(self, version: str) -> bool:
        return self.cfg.composer_phar(version).exists()

    def phar(self, version: str) -> Path:
        """Return the composer.phar of a version."""
        path = self.cfg.composer_phar(version)
        if not path.exists():
            raise ComposerError(f"Composer {version} not found at {path}")
        return path