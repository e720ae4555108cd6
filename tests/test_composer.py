import hashlib
import io
import json
import os
import urllib.error
from unittest import mock

import pytest

from statora.composer import (
    ComposerError,
    ComposerManager,
    download_url,
    is_constraint,
    is_partial_version,
    matches_partial_prefix,
    resolve_version,
    sha256_url,
)
from statora.config import load_config

PAYLOAD = {
    "stable": [
        {"version": "1.10.27", "sha256sum": "sum-1.10.27"},
        {"version": "2.2.24", "sha256sum": "sum-2.2.24"},
        {"version": "2.7.4", "sha256sum": "sum-2.7.4"},
        {"version": "2.7.10", "sha256sum": "sum-2.7.10"},
    ],
    "preview": [{"version": "2.8.0-RC1", "sha256sum": "sum-rc"}],
    "snapshot": [],
}


class _FakeResponse(io.BytesIO):
    def __init__(self, body: bytes, status: int = 200) -> None:
        super().__init__(body)
        self.status = status
        self.headers = {"Content-Length": str(len(body))}


def _server(payload, phar_body=b"", checksum_body=b""):
    def urlopen(url, timeout=None):
        if url.endswith("/versions"):
            return _FakeResponse(json.dumps(payload).encode())
        if url.endswith(".sha256sum"):
            return _FakeResponse(checksum_body)
        if url.endswith("composer.phar"):
            return _FakeResponse(phar_body)
        raise urllib.error.URLError("unexpected url")

    return urlopen


@pytest.fixture
def cfg(tmp_path):
    return load_config(home=tmp_path)


@pytest.fixture
def manager(cfg):
    return ComposerManager(cfg)


def fake_install(cfg, version):
    phar = cfg.composer_phar(version)
    phar.parent.mkdir(parents=True, exist_ok=True)
    phar.write_bytes(b"#!/usr/bin/env php")
    os.chmod(phar, 0o755)


def test_list_empty(manager):
    assert manager.list_versions() == []


def test_is_installed_false(manager):
    assert manager.is_installed("2.7.1") is False


def test_is_installed_true(cfg, manager):
    fake_install(cfg, "2.7.1")
    assert manager.is_installed("2.7.1") is True


def test_list(cfg, manager):
    fake_install(cfg, "2.5.0")
    fake_install(cfg, "2.7.1")
    versions = manager.list_versions()
    assert len(versions) == 2
    assert versions == ["2.5.0", "2.7.1"]


def test_uninstall(cfg, manager):
    fake_install(cfg, "2.7.1")
    manager.uninstall("2.7.1")
    assert manager.is_installed("2.7.1") is False


def test_uninstall_not_installed(manager):
    with pytest.raises(ComposerError, match="not installed"):
        manager.uninstall("2.7.1")


def test_phar(cfg, manager):
    fake_install(cfg, "2.7.1")
    assert manager.phar("2.7.1") == cfg.composer_phar("2.7.1")


def test_phar_missing(manager):
    with pytest.raises(ComposerError, match="not found"):
        manager.phar("2.7.1")


def test_create_wrapper_script(cfg, manager):
    fake_install(cfg, "2.9.5")
    manager.create_wrapper_script("2.9.5")
    binary = cfg.composer_bin("2.9.5")
    assert binary.stat().st_mode & 0o111 != 0
    content = binary.read_text()
    assert "composer.phar" in content
    assert "#!/bin/sh" in content
    assert content == f'#!/bin/sh\nexec php {cfg.composer_phar("2.9.5")} "$@"\n'


def test_is_partial_version():
    assert is_partial_version("2")
    assert is_partial_version("2.7")
    assert not is_partial_version("2.7.4")
    assert not is_partial_version(">= 2.2")
    assert not is_partial_version("")
    assert not is_partial_version("abc")


@pytest.mark.parametrize(
    ("partial", "version", "expected"),
    [
        ("2", "2.7.4", True),
        ("2", "2.0.0", True),
        ("2", "1.10.0", False),
        ("2.7", "2.7.4", True),
        ("2.7", "2.7.0", True),
        ("2.7", "2.8.0", False),
        ("2.7", "2.70.0", False),
    ],
)
def test_matches_partial_prefix(partial, version, expected):
    assert matches_partial_prefix(partial, version) is expected


def test_is_constraint():
    assert is_constraint(">= 2.2.0, < 3.0.0")
    assert is_constraint("^2.7")
    assert not is_constraint("2.7.4")


def test_urls():
    assert download_url("2.7.4") == "https://getcomposer.org/download/2.7.4/composer.phar"
    assert sha256_url("2.7.4") == (
        "https://getcomposer.org/download/2.7.4/composer.phar.sha256sum"
    )


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2.7", ("2.7.10", "sum-2.7.10")),
        ("2", ("2.7.10", "sum-2.7.10")),
        (">= 2.0.0, < 2.5.0", ("2.2.24", "sum-2.2.24")),
        ("2.8.0-RC1", ("2.8.0-RC1", "sum-rc")),
        ("2.6.6", ("2.6.6", "")),
    ],
)
def test_resolve_version(text, expected):
    with mock.patch("urllib.request.urlopen", side_effect=_server(PAYLOAD)):
        assert resolve_version(text) == expected


@pytest.mark.parametrize("text", ["3", "> 5.0.0"])
def test_resolve_version_no_match(text):
    with mock.patch("urllib.request.urlopen", side_effect=_server(PAYLOAD)):
        with pytest.raises(ComposerError, match="no stable Composer release"):
            resolve_version(text)


def test_resolve_version_network_failure_retries():
    failing = mock.Mock(side_effect=urllib.error.URLError("down"))
    with mock.patch("urllib.request.urlopen", failing), mock.patch("time.sleep"):
        with pytest.raises(ComposerError, match="fetching getcomposer.org/versions"):
            resolve_version("2.7")
    assert failing.call_count == 3


def test_install_downloads_and_wraps(cfg, manager):
    body = b"<?php // phar contents"
    payload = {"stable": [{"version": "2.7.4", "sha256sum": hashlib.sha256(body).hexdigest()}]}
    with mock.patch("urllib.request.urlopen", side_effect=_server(payload, body)):
        manager.install("2.7")
    assert cfg.composer_phar("2.7.4").read_bytes() == body
    assert cfg.composer_bin("2.7.4").stat().st_mode & 0o111 != 0
    assert manager.list_versions() == ["2.7.4"]


def test_install_warns_on_checksum_mismatch(cfg, manager, capsys):
    body = b"<?php // phar contents"
    payload = {"stable": [{"version": "2.7.4"}]}
    server = _server(payload, body, b"deadbeef  composer.phar\n")
    with mock.patch("urllib.request.urlopen", side_effect=server):
        manager.install("2.7.4")
    assert "SHA256 mismatch" in capsys.readouterr().out
    assert manager.is_installed("2.7.4") is True


def test_install_already_installed(cfg, manager, capsys):
    fake_install(cfg, "2.7.10")
    with mock.patch("urllib.request.urlopen", side_effect=_server(PAYLOAD)):
        manager.install("2.7")
    assert "Composer 2.7.10 is already installed." in capsys.readouterr().out
    assert not cfg.composer_bin("2.7.10").exists()