"""Compatibility matrix between PHP and Composer versions."""

from __future__ import annotations

from dataclasses import dataclass

from statora.versions import VersionError, parse_constraint, parse_version


@dataclass(frozen=True)
class Rule:
    """Maps a PHP version range to the compatible Composer range."""

    php_constraint: str
    composer_constraint: str


_MATRIX: tuple[Rule, ...] = (
    Rule(">= 5.3.0, <= 5.6.99", ">= 1.0.0, <= 1.10.27"),
    Rule(">= 7.0.0, <= 7.1.99", ">= 1.0.0, <= 2.2.24"),
    Rule(">= 7.2.0, <= 7.4.99", ">= 2.0.0, < 3.0.0"),
    Rule(">= 8.0.0, < 9.0.0", ">= 2.2.0, < 3.0.0"),
)


def resolve_composer(php_version: str) -> str:
    """Return the Composer constraint for a PHP version, or "" if no rule matches."""
    try:
        php = parse_version(php_version)
    except VersionError as exc:
        raise VersionError(f'invalid PHP version "{php_version}": {exc}') from exc
    for rule in _MATRIX:
        if parse_constraint(rule.php_constraint).check(php):
            return rule.composer_constraint
    return ""


def is_compatible(php_version: str, composer_version: str) -> bool:
    """Report whether the given PHP and Composer versions work together."""
    constraint = resolve_composer(php_version)
    if not constraint:
        raise VersionError(f"no compat rule for PHP {php_version}")
    try:
        composer = parse_version(composer_version)
    except VersionError as exc:
        raise VersionError(f'invalid Composer version "{composer_version}": {exc}') from exc
    return parse_constraint(constraint).check(composer)


def rules() -> list[Rule]:
    """Return a copy of the full compatibility matrix."""
    return list(_MATRIX)


class Checker:
    """Object wrapper around the compatibility functions for injection."""

    def resolve_composer(self, php_version: str) -> str:
        return resolve_composer(php_version)

    def is_compatible(self, php_version: str, composer_version: str) -> bool:
        return is_compatible(php_version, composer_version)