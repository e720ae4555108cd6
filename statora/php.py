"""Installing, listing and locating PHP versions built from php.net sources."""

from __future__ import annotations

import hashlib
import io
import json
import logging
import os
import shutil
import subprocess
import sys
import time
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from statora.config import Config
from statora.pipeline import Context, Pipeline

_RELEASES_URL = "https://www.php.net/releases/index.php?json&version={}"
_DISTRIBUTION_URL = "https://www.php.net/distributions/{}"
_TARBALL_SUFFIX = ".tar.gz"
_PROGRESS_INTERVAL = 0.15
_CHUNK_SIZE = 64 * 1024


class PhpError(Exception):
    """Raised when a PHP version operation fails."""


def is_version_string(text: str) -> bool:
    """Quick sanity check: a version has exactly three dot-separated parts."""
    return len(text.split(".")) == 3


def _base_name(url: str) -> str:
    stripped = url.rstrip("/")
    if not stripped:
        return "/" if url else "."
    return stripped.rsplit("/", 1)[-1]


def extract_php_version(url: str) -> str:
    """Return the version in a php.net distribution URL, or "" if there is none.

    "https://www.php.net/distributions/php-8.1.25.tar.gz" gives "8.1.25".
    """
    base = _base_name(url).removesuffix(_TARBALL_SUFFIX).removeprefix("php-")
    return base if is_version_string(base) else ""


def _pick_tarball(info: Any, version: str) -> tuple[str, str]:
    sources = info.get("source", []) if isinstance(info, dict) else []
    for entry in sources:
        if not isinstance(entry, dict):
            continue
        filename = entry.get("filename") or ""
        if len(filename) > len(_TARBALL_SUFFIX) and filename.endswith(_TARBALL_SUFFIX):
            return _DISTRIBUTION_URL.format(filename), entry.get("sha256") or ""
    raise PhpError(f"no .tar.gz source found for PHP {version}")


def resolve_source(version: str) -> tuple[str, str]:
    """Look up the source tarball URL and its SHA256 for a PHP version on php.net."""
    api_url = _RELEASES_URL.format(version)
    failure: BaseException | None = None
    status: int | None = None
    for attempt in range(3):
        try:
            response = urllib.request.urlopen(api_url, timeout=15)
        except urllib.error.HTTPError as exc:
            failure, status = None, exc.code
            exc.close()
        except (urllib.error.URLError, OSError) as exc:
            failure, status = exc, None
        else:
            with response:
                if response.status == 200:
                    try:
                        info = json.load(response)
                    except ValueError as exc:
                        raise PhpError(f"parsing php.net response: {exc}") from exc
                    return _pick_tarball(info, version)
                failure, status = None, response.status
        time.sleep(1 << attempt)
    if failure is not None:
        raise PhpError(f"fetching php.net releases: {failure}") from failure
    raise PhpError(f"php.net returned {status} for version {version}")


def _log(ctx: Context) -> logging.Logger:
    return ctx.log if ctx.log is not None else logging.getLogger("statora")


def _config(ctx: Context) -> Config:
    if ctx.cfg is None:
        raise PhpError("install context has no configuration")
    return ctx.cfg


class _ResolveSourceStage:
    name = "Resolve PHP source"

    def run(self, ctx: Context) -> None:
        url, sha256 = resolve_source(ctx.version)
        ctx.data["url"] = url
        ctx.data["sha256"] = sha256
        # A partial request such as "8.1" becomes the concrete patch release.
        concrete = extract_php_version(url)
        if concrete:
            ctx.version = concrete


class _DownloadStage:
    name = "Download PHP source"

    def run(self, ctx: Context) -> None:
        url: str = ctx.data["url"]
        dest = _config(ctx).paths.download_dir / _base_name(url)
        ctx.data["archive"] = dest

        if dest.exists():
            _log(ctx).info("Already downloaded: %s", dest)
            print(f"  Already downloaded: {dest.name}")
            return

        print(f"  → {_base_name(url)}")
        try:
            size = _download_with_progress(url, dest)
        except (urllib.error.URLError, OSError) as exc:
            print()
            dest.unlink(missing_ok=True)
            raise PhpError(f"downloading {url}: {exc}") from exc
        print(f"\r  Downloaded {size / 1e6:.1f} MB                                    ")


def _download_with_progress(url: str, dest: Path) -> int:
    dest.parent.mkdir(parents=True, exist_ok=True)
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


class _VerifyChecksumStage:
    name = "Verify checksum"

    def run(self, ctx: Context) -> None:
        archive = Path(ctx.data["archive"])
        expected: str = ctx.data["sha256"]
        digest = hashlib.sha256()
        with archive.open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        got = digest.hexdigest()
        if got.lower() != expected.lower():
            raise PhpError(f"SHA256 mismatch: got {got}, want {expected}")


def _is_extracted(build_dir: Path) -> bool:
    """True when build_dir holds a subdirectory with a configure script."""
    try:
        entries = list(build_dir.iterdir())
    except OSError:
        return False
    return any(entry.is_dir() and (entry / "configure").exists() for entry in entries)


class _ExtractStage:
    name = "Extract source"

    def run(self, ctx: Context) -> None:
        archive = Path(ctx.data["archive"])
        build_dir = _config(ctx).paths.build_dir / f"php-{ctx.version}"

        if _is_extracted(build_dir):
            print("  Already extracted, reusing build directory.")
            ctx.data["srcDir"] = build_dir
            return

        shutil.rmtree(build_dir, ignore_errors=True)
        build_dir.mkdir(parents=True, exist_ok=True)
        try:
            shutil.unpack_archive(str(archive), str(build_dir))
        except (OSError, ValueError, shutil.ReadError) as exc:
            shutil.rmtree(build_dir, ignore_errors=True)
            raise PhpError(f"extracting {archive}: {exc}") from exc
        ctx.data["srcDir"] = build_dir


def _first_subdir(directory: Path) -> Path | None:
    return next((entry for entry in sorted(directory.iterdir()) if entry.is_dir()), None)


class _CompileStage:
    name = "Compile PHP"

    def run(self, ctx: Context) -> None:
        src_dir = Path(ctx.data["srcDir"])
        prefix = _config(ctx).php_runtime_dir(ctx.version)
        extracted = _first_subdir(src_dir) or src_dir
        output = io.StringIO()

        def run(label: str, *command: str) -> None:
            try:
                _tee(list(command), extracted, output)
            except (OSError, subprocess.CalledProcessError) as exc:
                ctx.captured_output = output.getvalue()
                # Start from a clean extraction next time.
                shutil.rmtree(src_dir, ignore_errors=True)
                raise PhpError(f"{label}: {exc}") from exc

        configure_args = [
            f"--prefix={prefix}",
            "--enable-mbstring",
            "--with-openssl",
            "--disable-phpdbg",
            "--without-pear",
        ]
        if sys.platform == "darwin":
            iconv = _darwin_iconv_prefix()
            if iconv:
                configure_args.append(f"--with-iconv={iconv}")

        run("configure", "./configure", *configure_args)
        run("make", "make", "-j4")
        run("make install", "make", "install")


def _tee(command: list[str], cwd: Path, sink: io.StringIO) -> None:
    """Run a command, echoing its combined output and keeping a copy in ``sink``."""
    with subprocess.Popen(
        command,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
    ) as process:
        assert process.stdout is not None
        for line in process.stdout:
            sys.stdout.write(line)
            sink.write(line)
    if process.returncode != 0:
        raise subprocess.CalledProcessError(process.returncode, command)


def _darwin_iconv_prefix() -> str:
    """Find a libiconv prefix that has include/iconv.h, or return ""."""

    def has_header(prefix: Path) -> bool:
        return (prefix / "include" / "iconv.h").exists()

    def command_output(*command: str) -> str:
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=True)
        except (OSError, subprocess.CalledProcessError):
            return ""
        return result.stdout.strip()

    brew = command_output("brew", "--prefix", "libiconv")
    if brew and has_header(Path(brew)):
        return brew

    for candidate in ("/opt/homebrew/opt/libiconv", "/usr/local/opt/libiconv"):
        if has_header(Path(candidate)):
            return candidate

    sdk = command_output("xcrun", "--show-sdk-path")
    if sdk:
        usr = Path(sdk) / "usr"
        if has_header(usr):
            return str(usr)
    return ""


class _InstallStage:
    name = "Finalize install"

    def run(self, ctx: Context) -> None:
        cfg = _config(ctx)
        for directory in (cfg.ext_available_dir(ctx.version), cfg.ext_enabled_dir(ctx.version)):
            directory.mkdir(parents=True, exist_ok=True)


class PhpPlugin:
    """Manages installed PHP versions."""

    def __init__(self, cfg: Config, log: logging.Logger | None = None) -> None:
        self.cfg = cfg
        self.log = log if log is not None else logging.getLogger("statora")

    def install(self, version: str) -> None:
        """Download, compile and install a PHP version."""
        if self.is_installed(version):
            print(f"PHP {version} is already installed.")
            return
        pipeline = Pipeline(
            _ResolveSourceStage(),
            _DownloadStage(),
            _VerifyChecksumStage(),
            _ExtractStage(),
            _CompileStage(),
            _InstallStage(),
        )
        pipeline.run(Context(version=version, category="php", cfg=self.cfg, log=self.log))

    def uninstall(self, version: str) -> None:
        """Remove a PHP version's runtime directory."""
        directory = self.cfg.php_runtime_dir(version)
        if not directory.exists():
            raise PhpError(f"PHP {version} is not installed")
        shutil.rmtree(directory)

    def list_versions(self) -> list[str]:
        """Return every version directory under the PHP runtimes directory."""
        root = self.cfg.paths.runtimes_dir / "php"
        try:
            entries = sorted(root.iterdir(), key=lambda entry: entry.name)
        except FileNotFoundError:
            return []
        return [entry.name for entry in entries if entry.is_dir()]

    def is_installed(self, version: str) -> bool:
        return self.cfg.php_bin(version).exists()

    def which(self, version: str) -> Path:
        """Return the php binary of a version."""
        binary = self.cfg.php_bin(version)
        if not binary.exists():
            raise PhpError(f"PHP {version} not found at {binary}")
        return binary

    def installed_versions(self) -> list[str]:
        """Return only the versions that have a php binary."""
        return [version for version in self.list_versions() if self.is_installed(version)]

    def rehash(self) -> list[str]:
        """Rescan the installed versions and return those with a php binary.

        Dispatch reads the cache directly, so no shims need writing.
        """
        versions = self.installed_versions()
        self.log.debug("rehash found %d PHP versions", len(versions))
        print("Rehash complete.")
        return versions