import logging

import pytest

from statora.app import Services
from statora.config import GlobalConfig


@pytest.fixture
def services(tmp_path):
    return Services.create(debug=False, home=tmp_path)


def test_create_builds_layout(tmp_path, services):
    assert services.cfg.paths.home == tmp_path / ".statora"
    assert services.cfg.paths.runtimes_dir.is_dir()
    assert services.cfg.paths.rescache_dir.is_dir()


def test_services_share_config(services):
    assert services.resolver.cfg is services.cfg
    assert services.php.cfg is services.cfg
    assert services.composer.cfg is services.cfg
    assert services.resolver.checker is services.checker


def test_debug_flag(tmp_path):
    services = Services.create(debug=True, home=tmp_path)
    assert services.debug is True
    assert services.log.level == logging.DEBUG


def test_production_logger_level(services):
    assert services.debug is False
    assert services.log.level == logging.INFO


def test_extensions_for_version(services):
    installer = services.extensions("8.2.15")
    assert installer.php_version == "8.2.15"
    assert installer.cfg is services.cfg
    assert installer.list_available() == []


def test_resolver_reads_global(tmp_path, services):
    services.cfg.write_global(GlobalConfig(php="8.1.0", composer="2.5.0"))
    project = tmp_path / "project"
    project.mkdir()
    resolution = services.resolver.resolve(project)
    assert resolution.php == "8.1.0"
    assert resolution.composer == "2.5.0"
    assert resolution.source == "global"