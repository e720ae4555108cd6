"""Installing, enabling and listing PHP extensions for one PHP version."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tarfile
import time
import urllib.error
import urllib.request
from pathlib import Path

from statora.config import Config


class ExtensionError(Exception):
    """Raised when an extension operation fails."""


class ExtensionInstaller:
    """Manages extensions of a specific PHP version."""

    def __init__(
        self, cfg: Config, log: logging.Logger | None, php_version: str
    ) -> None:
        self.cfg = cfg
        self.log = log if log is not None else logging.getLogger("statora")
        self.php_version = php_version

    @property
    def _runtime_dir(self) -> Path:
        return self.cfg.php_runtime_dir(self.php_version)

    @property
    def _available_dir(self) -> Path:
        return self.cfg.ext_available_dir(self.php_version)

    @property
    def _enabled_dir(self) -> Path:
        return self.cfg.ext_enabled_dir(self.php_version)

    def install(self, name: str) -> None:
        """Install an extension with pecl, falling back to building from source."""
        if self.is_available(name):
            print(f"Extension {name} is already available.")
            return
        try:
            self._install_from_pecl(name)
        except (ExtensionError, OSError):
            self._install_from_source(name)
        else:
            self.log.info("Installed %s from PECL", name)

    def _install_from_pecl(self, name: str) -> None:
        pecl = self._runtime_dir / "bin" / "pecl"
        if not pecl.exists():
            raise ExtensionError(f"pecl not found at {pecl}")
        php_ini = self._runtime_dir / "lib" / "php.ini"
        env = {**os.environ, "PHP_INI_DIR": str(php_ini.parent)}
        try:
            subprocess.run([str(pecl), "install", name], env=env, check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise ExtensionError(f"pecl install {name}: {exc}") from exc
        self._link_built(name)

    def _install_from_source(self, name: str) -> None:
        phpize = self._runtime_dir / "bin" / "phpize"
        if not phpize.exists():
            raise ExtensionError(
                f"phpize not found at {phpize} — is PHP {self.php_version} compiled?"
            )

        src_url = f"https://pecl.php.net/get/{name}"
        src_dir = self.cfg.paths.build_dir / f"ext-{name}"
        shutil.rmtree(src_dir, ignore_errors=True)
        src_dir.mkdir(parents=True, exist_ok=True)

        archive = self.cfg.paths.download_dir / f"{name}.tgz"
        try:
            _download_file(src_url, archive)
        except (ExtensionError, OSError) as exc:
            raise ExtensionError(f"downloading {name} source: {exc}") from exc

        try:
            shutil.unpack_archive(str(archive), str(src_dir), format="gztar")
        except (OSError, tarfile.TarError, ValueError) as exc:
            raise ExtensionError(f"extracting {name}: {exc}") from exc

        ext_src = next(
            (entry for entry in sorted(src_dir.iterdir()) if entry.is_dir()), None
        )
        if ext_src is None:
            raise ExtensionError(f"no source directory found after extracting {name}")

        php_config = self._runtime_dir / "bin" / "php-config"
        _run([str(phpize)], ext_src, "phpize")
        _run(["./configure", f"--with-php-config={php_config}"], ext_src, "configure")
        _run(["make", "-j4"], ext_src, "make")

        so_name = f"{name}.so"
        built = ext_src / "modules" / so_name
        if not built.exists():
            raise ExtensionError(f"compiled extension not found at {built}")
        self._available_dir.mkdir(parents=True, exist_ok=True)
        os.replace(built, self._available_dir / so_name)

    def _link_built(self, name: str) -> None:
        """Move the freshly built .so from PHP's extension dir into available/."""
        self._available_dir.mkdir(parents=True, exist_ok=True)
        so_name = f"{name}.so"
        so_path = self._php_extension_dir() / so_name
        if not so_path.exists():
            raise ExtensionError(f"compiled extension not found at {so_path}")
        os.replace(so_path, self._available_dir / so_name)

    def _php_extension_dir(self) -> Path:
        php_config = self._runtime_dir / "bin" / "php-config"
        try:
            result = subprocess.run(
                [str(php_config), "--extension-dir"],
                capture_output=True,
                text=True,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            raise ExtensionError(f"php-config --extension-dir: {exc}") from exc
        return Path(result.stdout.removesuffix("\n"))

    def enable(self, name: str) -> None:
        """Symlink available/<name>.so into enabled/; a no-op if already there."""
        so_name = f"{name}.so"
        src = self._available_dir / so_name
        if not src.exists():
            raise ExtensionError(f"extension {name} is not available (install it first)")
        self._enabled_dir.mkdir(parents=True, exist_ok=True)
        dest = self._enabled_dir / so_name
        if os.path.lexists(dest):
            return
        dest.symlink_to(src)

    def disable(self, name: str) -> None:
        """Remove the link from enabled/."""
        dest = self._enabled_dir / f"{name}.so"
        if not os.path.lexists(dest):
            raise ExtensionError(f"extension {name} is not enabled")
        dest.unlink()

    def is_available(self, name: str) -> bool:
        return (self._available_dir / f"{name}.so").exists()

    def is_enabled(self, name: str) -> bool:
        return os.path.lexists(self._enabled_dir / f"{name}.so")

    def list_available(self) -> list[str]:
        return _list_so(self._available_dir)

    def list_enabled(self) -> list[str]:
        return _list_so(self._enabled_dir)


def _list_so(directory: Path) -> list[str]:
    try:
        names = sorted(entry.name for entry in directory.iterdir())
    except FileNotFoundError:
        return []
    return [name.removesuffix(".so") for name in names if name.endswith(".so")]


def _run(command: list[str], cwd: Path, label: str) -> None:
    try:
        subprocess.run(command, cwd=cwd, check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise ExtensionError(f"{label}: {exc}") from exc


def _download_file(url: str, dest: Path, attempts: int = 3, timeout: float = 60) -> None:
    """Download ``url`` to ``dest``, retrying with exponential backoff."""
    failure: ExtensionError | None = None
    for attempt in range(attempts):
        try:
            response = urllib.request.urlopen(url, timeout=timeout)
        except urllib.error.HTTPError as exc:
            failure = ExtensionError(f"GET {url}: status {exc.code}")
        except (urllib.error.URLError, OSError) as exc:
            failure = ExtensionError(f"GET {url}: {exc}")
        else:
            with response:
                if response.status == 200:
                    with dest.open("wb") as out:
                        shutil.copyfileobj(response, out)
                    return
                failure = ExtensionError(f"GET {url}: status {response.status}")
        time.sleep(1 << attempt)
    assert failure is not None
    raise failure