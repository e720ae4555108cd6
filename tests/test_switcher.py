import io
import sys

import pytest

from statora import dispatch
from statora.app import Services
from statora.config import GlobalConfig
from statora.resolver import Resolution
from statora.switcher import Action, Plan, Switcher, prompt_confirm, render_plan


@pytest.fixture
def services(tmp_path, monkeypatch):
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return Services.create(home=tmp_path / "home")


@pytest.fixture
def switcher(services):
    return Switcher(
        services.cfg, services.resolver, services.php, services.composer, services.log
    )


def install_php(cfg, version):
    binary = cfg.php_bin(version)
    binary.parent.mkdir(parents=True, exist_ok=True)
    binary.write_text("#!/bin/sh\n")


def install_composer(cfg, version):
    phar = cfg.composer_phar(version)
    phar.parent.mkdir(parents=True, exist_ok=True)
    phar.write_text("#!/usr/bin/env php\n")


def test_plan_has_changes():
    plan = Plan()
    assert plan.has_changes() is False
    plan.actions.append(Action(kind="php", target="8.2.15"))
    assert plan.has_changes() is True


def test_plan_resolution():
    res = Resolution(php="8.2.15", composer="2.7.1", source="project")
    plan = Plan(resolution=res)
    assert plan.resolution.php == "8.2.15"
    assert plan.resolution.source == "project"


def test_build_plan_without_config_raises(switcher, tmp_path):
    with pytest.raises(LookupError, match="no PHP version configured"):
        switcher.build_plan(tmp_path / "project")


def test_build_plan_lists_changes_from_empty_cache(services, switcher, tmp_path):
    services.cfg.write_global(GlobalConfig(php="8.2.15", composer="2.7.1"))
    plan = switcher.build_plan(tmp_path / "project")
    assert plan.resolution.source == "global"
    assert plan.actions == [
        Action("php", "8.2.15", "", "8.2.15"),
        Action("composer", "2.7.1", "", "2.7.1"),
    ]


def test_build_plan_no_changes_when_cache_matches(services, switcher, tmp_path):
    services.cfg.write_global(GlobalConfig(php="8.2.15", composer="2.7.1"))
    dispatch.invalidate_cache(services.cfg, Resolution(php="8.2.15", composer="2.7.1"))
    plan = switcher.build_plan(tmp_path / "project")
    assert plan.has_changes() is False


def test_build_plan_records_current_php(services, switcher, tmp_path):
    services.cfg.write_global(GlobalConfig(php="8.2.15", composer="2.7.1"))
    dispatch.write_cache(services.cfg, dispatch.KEY_PHP_ACTIVE, "8.1.0")
    dispatch.write_cache(services.cfg, dispatch.KEY_COMPOSER, "2.7.1")
    plan = switcher.build_plan(tmp_path / "project")
    assert plan.actions == [Action("php", "8.2.15", "8.1.0", "8.2.15")]


def test_execute_updates_cache_and_enables_extensions(services, switcher, tmp_path):
    cfg = services.cfg
    install_php(cfg, "8.2.15")
    install_composer(cfg, "2.7.1")
    available = cfg.ext_available_dir("8.2.15")
    available.mkdir(parents=True)
    (available / "redis.so").write_bytes(b"ELF")
    project = tmp_path / "project"
    (project / ".statora").write_text(
        'php = "8.2.15"\ncomposer = "2.7.1"\nextensions = ["redis", "missing"]\n'
    )

    plan = switcher.build_plan(project)
    switcher.execute(plan)

    assert dispatch.read_cache(cfg, dispatch.KEY_PHP_ACTIVE) == "8.2.15"
    assert dispatch.read_cache(cfg, dispatch.KEY_PHP) == "8.2.15"
    assert dispatch.read_cache(cfg, dispatch.KEY_COMPOSER) == "2.7.1"
    assert services.extensions("8.2.15").list_enabled() == ["redis"]


def test_render_plan_shows_actions():
    plan = Plan(
        actions=[
            Action("php", "8.2.15", "", "8.2.15"),
            Action("composer", "2.7.1", "", "2.7.1"),
            Action("ext-enable", "redis"),
            Action("ext-disable", "xdebug"),
        ]
    )
    text = render_plan(plan)
    assert "Switch Plan" in text
    assert "(none)" in text
    assert "8.2.15" in text and "2.7.1" in text
    assert "Enable" in text and "redis" in text
    assert "Disable" in text and "xdebug" in text
    assert text.endswith("Apply? [y/N] ")


def test_prompt_confirm_without_changes(capsys):
    assert prompt_confirm(Plan()) is False
    assert "Nothing to switch — already up to date." in capsys.readouterr().out


@pytest.mark.parametrize(
    ("answer", "expected"),
    [("y\n", True), ("Y\n", True), ("\n", True), ("n\n", False), ("q\n", False), ("", False)],
)
def test_prompt_confirm_answers(monkeypatch, answer, expected):
    monkeypatch.setattr(sys, "stdin", io.StringIO(answer))
    plan = Plan(actions=[Action("php", "8.2.15", "", "8.2.15")])
    assert prompt_confirm(plan) is expected