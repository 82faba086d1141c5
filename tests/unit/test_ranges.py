# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for version ranges

Tests range parsing, evaluation and composition.
"""

import pytest
from semantic_version import Version

from plugman.models.ranges import (
    ANY_VERSION,
    AllOf,
    AnyOf,
    Comparator,
    at_least,
    parse_range,
    parse_tolerant,
)


class TestParseRange:
    """Test parse_range function"""

    def test_and_of_comparators(self):
        """Space separated comparators must all hold"""
        r = parse_range(">=1.2.0 <2.0.0")

        assert r("1.2.0")
        assert r("1.9.9")
        assert not r("1.1.9")
        assert not r("2.0.0")

    def test_or_of_alternatives(self):
        """|| separates alternatives"""
        r = parse_range("<1.0.0 || >=2.0.0")

        assert isinstance(r, AnyOf)
        assert r("0.9.0")
        assert r("2.1.0")
        assert not r("1.5.0")

    def test_operator_aliases(self):
        """== and bare versions mean equality, ! means inequality"""
        assert parse_range("==1.0.0")("1.0.0")
        assert parse_range("1.0.0")("1.0.0")
        assert not parse_range("1.0.0")("1.0.1")
        assert not parse_range("!1.0.0")("1.0.0")
        assert parse_range("!=1.0.0")("1.0.1")

    def test_space_between_operator_and_version(self):
        """Operator may be separated from its version"""
        r = parse_range(">= 1.2.0 < 2.0.0")

        assert r == parse_range(">=1.2.0 <2.0.0")

    def test_wildcards(self):
        """x/X/* expand to half-open intervals"""
        assert parse_range("1.x")("1.9.9")
        assert not parse_range("1.x")("2.0.0")
        assert parse_range("1.2.*")("1.2.7")
        assert not parse_range("1.2.*")("1.3.0")
        assert parse_range(">1.x")("2.0.0")
        assert not parse_range(">1.x")("1.9.0")
        assert parse_range("<=1.2.x")("1.2.9")
        assert not parse_range("<=1.2.x")("1.3.0")

    def test_star_accepts_everything(self):
        """A lone * is the any-version range"""
        assert parse_range("*") == ANY_VERSION
        assert parse_range("*")("0.0.1")

    @pytest.mark.parametrize("text", ["", "   ", ">=", "abc", "!=1.x", ">=1.0.0 ||", "1.2.3.4"])
    def test_rejects_malformed(self, text):
        """Should raise ValueError for malformed expressions"""
        with pytest.raises(ValueError):
            parse_range(text)

    def test_prerelease_ordering(self):
        """Pre-releases sort before their release"""
        r = parse_range("<1.0.0")

        assert r("1.0.0-rc.1")


class TestRangeStr:
    """Test range rendering"""

    def test_renders_canonical_form(self):
        """Should render canonical operators"""
        assert str(parse_range(">= 1.2.0  <2.0.0")) == ">=1.2.0 <2.0.0"
        assert str(parse_range("==1.0.0")) == "=1.0.0"
        assert str(parse_range("1.x")) == ">=1.0.0 <2.0.0"
        assert str(ANY_VERSION) == "*"

    def test_round_trips_through_parse(self):
        """str() output parses back to an equivalent range"""
        for text in [">=1.2.0 <2.0.0", "<1.0.0 || >=2.0.0", "!=1.5.0", "*"]:
            r = parse_range(text)
            assert parse_range(str(r)) == r

    def test_intersection_of_union_renders_as_dnf(self):
        """AND over an OR distributes"""
        r = parse_range("<1.0.0 || >=2.0.0") & parse_range("!=2.5.0")

        assert str(r) == "<1.0.0 !=2.5.0 || >=2.0.0 !=2.5.0"


class TestComposition:
    """Test & and | operators"""

    def test_and_flattens(self):
        """Nested intersections flatten into one AllOf"""
        r = parse_range(">=1.0.0") & parse_range("<3.0.0") & parse_range("!=2.0.0")

        assert isinstance(r, AllOf)
        assert len(r.ranges) == 3
        assert r("1.5.0")
        assert not r("2.0.0")

    def test_and_with_any_is_identity(self):
        """ANY_VERSION is the neutral element of &"""
        r = parse_range(">=1.0.0")

        assert (r & ANY_VERSION) == r
        assert (ANY_VERSION & r) == r

    def test_or_with_any_is_any(self):
        """ANY_VERSION absorbs |"""
        assert (parse_range(">=1.0.0") | ANY_VERSION) == ANY_VERSION

    def test_at_least(self):
        """at_least is an inclusive lower bound"""
        r = at_least(Version("1.2.0"))

        assert r == Comparator(">=", Version("1.2.0"))
        assert r("1.2.0")
        assert not r("1.1.9")

    def test_unknown_operator_rejected(self):
        """Comparator only accepts known operators"""
        with pytest.raises(ValueError):
            Comparator("~>", Version("1.0.0"))


class TestParseTolerant:
    """Test parse_tolerant function"""

    @pytest.mark.parametrize("text,expected", [
        ("1.2.3", "1.2.3"),
        ("v1.2", "1.2.0"),
        ("V2", "2.0.0"),
        (" 1.0.0 ", "1.0.0"),
    ])
    def test_parses_loose_versions(self, text, expected):
        """Should pad and strip loose versions"""
        assert parse_tolerant(text) == Version(expected)

    @pytest.mark.parametrize("text", ["", "nightly", "v"])
    def test_rejects_non_numeric(self, text):
        """Should raise ValueError without a numeric component"""
        with pytest.raises(ValueError):
            parse_tolerant(text)
