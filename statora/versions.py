"""Semantic version parsing, range constraints and installed-version lookup."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering


class VersionError(ValueError):
    """Raised when a version or constraint string cannot be parsed."""


_VERSION_RE = re.compile(
    r"v?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<meta>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
)

_TERM_RE = re.compile(
    r"\s*(?P<op>!=|>=|=>|<=|=<|~>|>|<|=|~|\^)?\s*"
    r"(?P<ver>v?[0-9xX*]+(?:\.[0-9xX*]+){0,2}"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)\s*"
)

_WILDCARDS = {"x", "X", "*"}


def _prerelease_key(prerelease: str) -> tuple:
    if not prerelease:
        return (1,)
    identifiers = tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part)
        for part in prerelease.split(".")
    )
    return (0, identifiers)


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A semantic version; build metadata is ignored when comparing."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    metadata: str = ""
    original: str = ""

    @property
    def canonical(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    def _key(self) -> tuple:
        return (self.major, self.minor, self.patch, _prerelease_key(self.prerelease))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.original or self.canonical


def parse_version(text: str) -> Version:
    """Parse a version such as "8.2.15", "v2.7" or "1.0.0-rc1"."""
    match = _VERSION_RE.fullmatch(text or "")
    if match is None:
        raise VersionError(f"invalid semantic version: {text!r}")
    return Version(
        major=int(match["major"]),
        minor=int(match["minor"] or 0),
        patch=int(match["patch"] or 0),
        prerelease=match["pre"] or "",
        metadata=match["meta"] or "",
        original=text,
    )


@dataclass(frozen=True)
class _Term:
    lower: Version | None = None
    lower_inclusive: bool = True
    upper: Version | None = None
    upper_inclusive: bool = False
    negate: bool = False
    empty: bool = False
    allows_prerelease: bool = False

    def matches(self, version: Version) -> bool:
        if version.prerelease and not self.allows_prerelease:
            return False
        if self.empty:
            inside = False
        else:
            inside = True
            if self.lower is not None:
                inside = version >= self.lower if self.lower_inclusive else version > self.lower
            if inside and self.upper is not None:
                inside = version <= self.upper if self.upper_inclusive else version < self.upper
        return not inside if self.negate else inside


def _parse_bound(raw: str) -> tuple[Version, int]:
    body = raw[1:] if raw.startswith("v") else raw
    body, _, _meta = body.partition("+")
    body, _, prerelease = body.partition("-")
    numbers: list[int] = []
    for part in body.split("."):
        if part in _WILDCARDS:
            break
        if not part.isdigit():
            raise VersionError(f"invalid version in constraint: {raw!r}")
        numbers.append(int(part))
    depth = len(numbers)
    padded = numbers + [0] * (3 - depth)
    return Version(padded[0], padded[1], padded[2], prerelease=prerelease), depth


def _bump(base: Version, depth: int) -> Version | None:
    if depth == 0:
        return None
    if depth == 1:
        return Version(base.major + 1, 0, 0)
    if depth == 2:
        return Version(base.major, base.minor + 1, 0)
    return Version(base.major, base.minor, base.patch + 1)


def _make_term(op: str, raw: str) -> _Term:
    base, depth = _parse_bound(raw)
    pre = bool(base.prerelease)
    following = _bump(base, depth)
    op = {"=>": ">=", "=<": "<=", "~>": "~"}.get(op, op)

    if op in ("=", "!="):
        negate = op == "!="
        if depth == 3:
            return _Term(base, True, base, True, negate=negate, allows_prerelease=pre)
        return _Term(base, True, following, False, negate=negate, allows_prerelease=pre)
    if op == ">":
        if depth == 0:
            return _Term(empty=True, allows_prerelease=pre)
        if depth == 3:
            return _Term(lower=base, lower_inclusive=False, allows_prerelease=pre)
        return _Term(lower=following, allows_prerelease=pre)
    if op == ">=":
        return _Term(lower=base, allows_prerelease=pre)
    if op == "<":
        if depth == 0:
            return _Term(empty=True, allows_prerelease=pre)
        return _Term(upper=base, allows_prerelease=pre)
    if op == "<=":
        if depth == 3:
            return _Term(upper=base, upper_inclusive=True, allows_prerelease=pre)
        return _Term(upper=following, allows_prerelease=pre)
    if op == "~":
        return _Term(lower=base, upper=_bump(base, min(depth, 2)), allows_prerelease=pre)
    # caret
    if depth == 0:
        upper = None
    elif base.major > 0 or depth == 1:
        upper = _bump(base, 1)
    elif base.minor > 0 or depth == 2:
        upper = _bump(base, 2)
    else:
        upper = _bump(base, 3)
    return _Term(lower=base, upper=upper, allows_prerelease=pre)


def _parse_group(text: str) -> tuple[_Term, ...]:
    text = text.strip()
    terms: list[_Term] = []
    pos = 0
    while pos < len(text):
        match = _TERM_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise VersionError(f"improper constraint: {text!r}")
        terms.append(_make_term(match["op"] or "=", match["ver"]))
        pos = match.end()
        if pos < len(text) and text[pos] == ",":
            pos += 1
    if not terms:
        raise VersionError(f"improper constraint: {text!r}")
    return tuple(terms)


@dataclass(frozen=True)
class Constraint:
    """A set of version ranges: comma/space means AND, "||" means OR."""

    text: str
    groups: tuple[tuple[_Term, ...], ...]

    def check(self, version: Version | str) -> bool:
        """Report whether the version satisfies the constraint."""
        if isinstance(version, str):
            version = parse_version(version)
        return any(all(term.matches(version) for term in group) for group in self.groups)

    def __str__(self) -> str:
        return self.text


def parse_constraint(text: str) -> Constraint:
    """Parse a constraint such as ">= 2.2.0, < 3.0.0" or "^8.1 || 7.4.x"."""
    if not text or not text.strip():
        raise VersionError("empty constraint")
    groups = tuple(_parse_group(part) for part in text.split("||"))
    return Constraint(text, groups)


def normalize_installed(version: str, installed: list[str] | None) -> str:
    """Return the highest installed version matching an exact or partial version.

    An exact match wins; otherwise ``version`` is treated as a prefix such as
    "8" or "8.1". Returns "" when nothing matches.
    """
    if not installed or not version:
        return ""
    if version in installed:
        return version

    prefix = version + "."
    best: tuple[Version, str] | None = None
    for candidate in installed:
        if not candidate.startswith(prefix):
            continue
        try:
            parsed = parse_version(candidate)
        except VersionError:
            continue
        if best is None or parsed > best[0]:
            best = (parsed, candidate)
    return best[1] if best else ""