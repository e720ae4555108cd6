import argparse

import pytest

from statora import dispatch
from statora.app import Services
from statora.cli_ext import register
from statora.extension import ExtensionError

PHP = "8.2.15"


@pytest.fixture
def services(tmp_path):
    return Services.create(home=tmp_path / "home")


@pytest.fixture
def active(services):
    dispatch.write_cache(services.cfg, dispatch.KEY_PHP_ACTIVE, PHP)
    return services


def run(services, *argv):
    parser = argparse.ArgumentParser()
    register(parser.add_subparsers(dest="command"))
    args = parser.parse_args(["ext", *argv])
    args.handler(args, services)


def place(services, name):
    directory = services.cfg.ext_available_dir(PHP)
    directory.mkdir(parents=True, exist_ok=True)
    (directory / f"{name}.so").write_bytes(b"ELF")


@pytest.mark.parametrize("argv", [["list"], ["enable", "redis"], ["info", "redis"]])
def test_requires_active_version(services, argv):
    with pytest.raises(ExtensionError, match="no active PHP version"):
        run(services, *argv)
    assert dispatch.read_cache(services.cfg, dispatch.KEY_PHP_ACTIVE) == ""


def test_enable_disable(active):
    place(active, "redis")
    run(active, "enable", "redis")
    assert active.extensions(PHP).is_enabled("redis")
    run(active, "disable", "redis")
    assert not active.extensions(PHP).is_enabled("redis")


def test_enable_not_available(active):
    with pytest.raises(ExtensionError, match="not available"):
        run(active, "enable", "redis")
    assert active.extensions(PHP).is_enabled("redis") is False


def test_disable_not_enabled(active):
    place(active, "redis")
    with pytest.raises(ExtensionError, match="not enabled"):
        run(active, "disable", "redis")
    assert active.extensions(PHP).is_available("redis") is True
    assert active.extensions(PHP).is_enabled("redis") is False


def test_list_empty(active, capsys):
    run(active, "list")
    assert capsys.readouterr().out.strip() == f"No extensions installed for PHP {PHP}."
    assert active.extensions(PHP).is_available("redis") is False


def test_list_statuses(active, capsys):
    place(active, "redis")
    place(active, "xdebug")
    run(active, "enable", "redis")
    run(active, "list")
    lines = capsys.readouterr().out.splitlines()
    redis_line = next(line for line in lines if "redis" in line)
    xdebug_line = next(line for line in lines if "xdebug" in line)
    assert "enabled" in redis_line
    assert "available" in xdebug_line
    installer = active.extensions(PHP)
    assert installer.is_enabled("redis") is True
    assert installer.is_enabled("xdebug") is False


def test_info(active, capsys):
    place(active, "redis")
    run(active, "info", "redis")
    lines = capsys.readouterr().out.splitlines()
    assert "redis" in lines[0]
    assert lines[1] == f"PHP:       {PHP}"
    assert "yes" in next(line for line in lines if line.startswith("Available:"))
    assert "no" in next(line for line in lines if line.startswith("Enabled:"))
    installer = active.extensions(PHP)
    assert installer.is_available("redis") is True
    assert installer.is_enabled("redis") is False


def test_uninstall_disables_and_removes(active, capsys):
    place(active, "redis")
    run(active, "enable", "redis")
    run(active, "uninstall", "redis")
    installer = active.extensions(PHP)
    assert not installer.is_enabled("redis")
    assert not installer.is_available("redis")
    assert capsys.readouterr().out.strip() == "Extension redis uninstalled."


def test_install_already_available(active, capsys):
    place(active, "redis")
    run(active, "install", "redis")
    assert capsys.readouterr().out.strip() == "Extension redis is already available."
    assert active.extensions(PHP).is_available("redis") is True