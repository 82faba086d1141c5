# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Version Ranges

Single responsibility: Parse and evaluate semantic version range expressions

Ranges are small immutable expression trees:

    Comparator(">=", 1.2.0)              >=1.2.0
    AllOf((a, b))                        >=1.2.0 <2.0.0
    AnyOf((a, b))                        <1.0.0 || >=2.0.0
    AnyVersion()                         *

Every node is callable with a version and can be combined with ``&``
(intersection) and ``|`` (union).
"""

import itertools
import operator
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple, Union

from semantic_version import Version

VersionLike = Union[Version, str]

_OPERATORS: Dict[str, Callable[[Version, Version], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
    "=": operator.eq,
    "!=": operator.ne,
}

# Aliases accepted on input, rendered in canonical form
_OPERATOR_ALIASES = {"==": "=", "!": "!=", "": "="}

_COMPARATOR_RE = re.compile(r"^(>=|<=|!=|==|>|<|=|!)?\s*(\S+)$")
_WILDCARD_RE = re.compile(r"^(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?$")
_WILDCARDS = {"x", "X", "*"}


def parse_version(text: str) -> Version:
    """Parse a strict semantic version (``1.2.3``, ``1.2.3-rc.1+build``)."""
    return Version(text.strip())


def parse_tolerant(text: str) -> Version:
    """
    Parse a version leniently.

    Accepts a leading ``v`` and pads missing minor/patch components
    (``v1.2`` -> ``1.2.0``).

    Raises:
        ValueError: If no numeric component can be found
    """
    text = text.strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    return Version.coerce(text)


def _as_version(version: VersionLike) -> Version:
    if isinstance(version, Version):
        return version
    return parse_version(version)


class VersionRange:
    """Base class for range expressions"""

    def matches(self, version: VersionLike) -> bool:
        raise NotImplementedError

    def conjunctions(self) -> List[Tuple["Comparator", ...]]:
        """Disjunctive normal form: OR of AND-ed comparator tuples"""
        raise NotImplementedError

    def __call__(self, version: VersionLike) -> bool:
        return self.matches(version)

    def __and__(self, other: "VersionRange") -> "VersionRange":
        return intersect(self, other)

    def __or__(self, other: "VersionRange") -> "VersionRange":
        return union(self, other)

    def __str__(self) -> str:
        parts = []
        for conj in self.conjunctions():
            parts.append(" ".join(str(c) for c in conj) if conj else "*")
        return " || ".join(parts)


@dataclass(frozen=True)
class AnyVersion(VersionRange):
    """Accepts every version"""

    def matches(self, version: VersionLike) -> bool:
        return True

    def conjunctions(self) -> List[Tuple["Comparator", ...]]:
        return [()]


@dataclass(frozen=True)
class Comparator(VersionRange):
    """Single ``<op><version>`` comparison"""
    op: str
    version: Version

    def __post_init__(self):
        if self.op not in _OPERATORS:
            raise ValueError(f"Unknown comparison operator: {self.op!r}")

    def matches(self, version: VersionLike) -> bool:
        return _OPERATORS[self.op](_as_version(version), self.version)

    def conjunctions(self) -> List[Tuple["Comparator", ...]]:
        return [(self,)]

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


@dataclass(frozen=True)
class AllOf(VersionRange):
    """Accepts a version only if every member range accepts it"""
    ranges: Tuple[VersionRange, ...]

    def matches(self, version: VersionLike) -> bool:
        version = _as_version(version)
        return all(r.matches(version) for r in self.ranges)

    def conjunctions(self) -> List[Tuple["Comparator", ...]]:
        result = []
        for combo in itertools.product(*(r.conjunctions() for r in self.ranges)):
            result.append(tuple(itertools.chain.from_iterable(combo)))
        return result


@dataclass(frozen=True)
class AnyOf(VersionRange):
    """Accepts a version if at least one member range accepts it"""
    ranges: Tuple[VersionRange, ...]

    def matches(self, version: VersionLike) -> bool:
        version = _as_version(version)
        return any(r.matches(version) for r in self.ranges)

    def conjunctions(self) -> List[Tuple["Comparator", ...]]:
        return [conj for r in self.ranges for conj in r.conjunctions()]


ANY_VERSION = AnyVersion()


def intersect(*ranges: VersionRange) -> VersionRange:
    """AND ranges together, flattening nested intersections"""
    members: List[VersionRange] = []
    for r in ranges:
        if isinstance(r, AnyVersion):
            continue
        if isinstance(r, AllOf):
            members.extend(r.ranges)
        else:
            members.append(r)
    if not members:
        return ANY_VERSION
    if len(members) == 1:
        return members[0]
    return AllOf(tuple(members))


def union(*ranges: VersionRange) -> VersionRange:
    """OR ranges together, flattening nested unions"""
    members: List[VersionRange] = []
    for r in ranges:
        if isinstance(r, AnyVersion):
            return ANY_VERSION
        if isinstance(r, AnyOf):
            members.extend(r.ranges)
        else:
            members.append(r)
    if len(members) == 1:
        return members[0]
    return AnyOf(tuple(members))


def at_least(version: VersionLike) -> VersionRange:
    """Range accepting ``version`` and anything newer"""
    return Comparator(">=", _as_version(version))


def _expand_wildcard(op: str, text: str) -> List[VersionRange]:
    """Turn ``1.x`` / ``1.2.*`` style versions into half-open intervals"""
    match = _WILDCARD_RE.match(text)
    if not match:
        raise ValueError(f"Invalid wildcard version: {text!r}")

    parts = [p for p in match.groups() if p is not None]
    numeric = list(itertools.takewhile(lambda p: p not in _WILDCARDS, parts))
    if any(p not in _WILDCARDS for p in parts[len(numeric):]):
        raise ValueError(f"Invalid wildcard version: {text!r}")

    if not numeric:
        if op in ("=", ">="):
            return [ANY_VERSION]
        raise ValueError(f"Operator {op!r} cannot be used with {text!r}")

    major = int(numeric[0])
    if len(numeric) == 1:
        lower = Version(major=major, minor=0, patch=0)
        upper = Version(major=major + 1, minor=0, patch=0)
    else:
        minor = int(numeric[1])
        lower = Version(major=major, minor=minor, patch=0)
        upper = Version(major=major, minor=minor + 1, patch=0)

    if op == "=":
        return [Comparator(">=", lower), Comparator("<", upper)]
    if op == ">=":
        return [Comparator(">=", lower)]
    if op == ">":
        return [Comparator(">=", upper)]
    if op == "<":
        return [Comparator("<", lower)]
    if op == "<=":
        return [Comparator("<", upper)]
    raise ValueError(f"Operator {op!r} cannot be used with wildcard {text!r}")


def _parse_comparator(token: str) -> List[VersionRange]:
    match = _COMPARATOR_RE.match(token)
    if not match:
        raise ValueError(f"Invalid comparator: {token!r}")
    raw_op, text = match.group(1) or "", match.group(2)
    op = _OPERATOR_ALIASES.get(raw_op, raw_op)

    if any(w in text for w in _WILDCARDS) and "-" not in text and "+" not in text:
        return _expand_wildcard(op, text)

    return [Comparator(op, parse_version(text))]


def _split_comparators(part: str) -> List[str]:
    """Split on whitespace, re-attaching bare operators to their version"""
    tokens: List[str] = []
    pending_op = ""
    for token in part.split():
        if token in _OPERATORS or token in _OPERATOR_ALIASES:
            if pending_op:
                raise ValueError(f"Dangling operator {pending_op!r}")
            pending_op = token
            continue
        tokens.append(pending_op + token)
        pending_op = ""
    if pending_op:
        raise ValueError(f"Dangling operator {pending_op!r}")
    return tokens


def parse_range(text: str) -> VersionRange:
    """
    Parse a range expression.

    Whitespace separates AND-ed comparators, ``||`` separates OR-ed
    alternatives: ``">=1.2.0 <2.0.0 || 3.x"``.

    Raises:
        ValueError: If the expression is empty or malformed
    """
    if not text or not text.strip():
        raise ValueError("Empty version range")

    alternatives: List[VersionRange] = []
    for part in text.split("||"):
        tokens = _split_comparators(part)
        if not tokens:
            raise ValueError(f"Empty alternative in range: {text!r}")
        comparators: List[VersionRange] = []
        for token in tokens:
            comparators.extend(_parse_comparator(token))
        alternatives.append(intersect(*comparators))

    return union(*alternatives)
