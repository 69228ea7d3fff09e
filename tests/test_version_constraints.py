"""Tests for version ordering and constraint evaluation."""

import pytest

from versioning.constraints import (
    ConstraintKind,
    VersionConstraint,
    compare_versions,
    parse_version,
    pick_version,
)
from versioning.errors import MalformedVersionError, UnsatisfiableConstraintError


class TestParseVersion:
    """Ordering rules for individual versions."""

    def test_numeric_segments_compare_numerically(self):
        assert compare_versions("1.10.0", "1.9.0") == 1
        assert compare_versions("24.1.1", "24.1.0") == 1

    def test_missing_segments_pad_with_zero(self):
        assert compare_versions("1.0", "1.0.0") == 0

    def test_prerelease_sorts_below_release(self):
        assert compare_versions("2.0.0-beta01", "2.0.0") == -1
        assert compare_versions("2.0.0-rc1", "2.0.0-alpha1") == 1

    def test_snapshot_sorts_below_release(self):
        assert compare_versions("1.0-SNAPSHOT", "1.0") == -1

    def test_maven_release_suffix_is_ignored(self):
        assert compare_versions("5.3.0.RELEASE", "5.3.0") == 0

    def test_qualifier_kept_as_local_label(self):
        assert compare_versions("31.1-jre", "30.0-jre") == 1

    @pytest.mark.parametrize("text", ["", "abc", "not.a.version!"])
    def test_malformed_raises(self, text):
        with pytest.raises(MalformedVersionError):
            parse_version(text)


class TestVersionConstraint:
    """Parsing and matching of the supported constraint notations."""

    @pytest.mark.parametrize("raw", ["", "*", "+", "latest.release"])
    def test_dynamic_constraints_allow_anything(self, raw):
        c = VersionConstraint.parse(raw)
        assert c.kind == ConstraintKind.ANY
        assert c.preferred is None
        assert c.allows("0.0.1")

    def test_plain_version_is_upgradable(self):
        c = VersionConstraint.parse("16.0.0")
        assert c.kind == ConstraintKind.PREFERRED
        assert c.preferred == "16.0.0"
        assert c.allows("16.0.0")
        assert c.allows("17.1.0")
        assert not c.allows("15.9.9")

    @pytest.mark.parametrize("raw", ["=1.0", "==1.0", "1.0!!"])
    def test_strict_equality(self, raw):
        c = VersionConstraint.parse(raw)
        assert c.kind == ConstraintKind.STRICT
        assert c.preferred == "1.0"
        assert c.allows("1.0.0")
        assert not c.allows("1.0.1")

    def test_lower_bound(self):
        c = VersionConstraint.parse(">=23.0")
        assert c.kind == ConstraintKind.RANGE
        assert c.preferred == "23.0"
        assert c.allows("24.1.1")
        assert not c.allows("22.9")

    def test_comparator_list_with_spaces(self):
        c = VersionConstraint.parse(">= 1.0, < 2.0")
        assert c.allows("1.5")
        assert not c.allows("2.0")
        assert c.preferred == "1.0"

    def test_exclusive_lower_bound_names_no_version(self):
        assert VersionConstraint.parse(">1.0").preferred is None

    def test_maven_range(self):
        c = VersionConstraint.parse("[1.0,2.0)")
        assert c.kind == ConstraintKind.MAVEN_RANGE
        assert c.allows("1.0")
        assert c.allows("1.9.9")
        assert not c.allows("2.0")
        assert c.preferred == "1.0"

    def test_maven_exact_range(self):
        c = VersionConstraint.parse("[19.0.0]")
        assert c.preferred == "19.0.0"
        assert c.allows("19.0.0")
        assert not c.allows("19.0.1")

    def test_maven_range_union(self):
        c = VersionConstraint.parse("[1.0,2.0),[3.0,4.0]")
        assert c.allows("1.5")
        assert c.allows("4.0")
        assert not c.allows("2.5")
        assert c.preferred == "4.0"

    def test_prefix_wildcard(self):
        c = VersionConstraint.parse("1.2.+")
        assert c.kind == ConstraintKind.PREFIX
        assert c.allows("1.2.9")
        assert not c.allows("1.3.0")
        assert c.preferred is None

    def test_npm_caret(self):
        c = VersionConstraint.parse("^1.2.0")
        assert c.kind == ConstraintKind.NPM
        assert c.preferred == "1.2.0"
        assert c.allows("1.9.0")
        assert not c.allows("2.0.0")

    @pytest.mark.parametrize("raw", ["[1.0,2.0", ">=banana", "x.+", "=="])
    def test_malformed_constraints(self, raw):
        with pytest.raises(MalformedVersionError):
            VersionConstraint.parse(raw)


class TestPickVersion:
    """Highest-version-wins selection."""

    def _parse(self, *raws):
        return [VersionConstraint.parse(r) for r in raws]

    def test_highest_preferred_wins(self):
        assert pick_version(self._parse("1.0", "2.0")) == "2.0"

    def test_lower_bounds_pick_highest_bound(self):
        assert pick_version(self._parse(">=23.0", ">=22.0")) == "23.0"

    def test_upper_bound_limits_choice(self):
        assert pick_version(self._parse("1.0", "1.2", "[1.0,1.5]")) == "1.5"

    def test_preferred_version_above_range_conflicts(self):
        with pytest.raises(UnsatisfiableConstraintError):
            pick_version(self._parse("2.0", "[1.0,1.5]"))

    def test_strict_conflict_is_unsatisfiable(self):
        with pytest.raises(UnsatisfiableConstraintError) as excinfo:
            pick_version(self._parse("=1.0", "=2.0"))
        assert excinfo.value.constraints == ["=1.0", "=2.0"]

    def test_dynamic_constraints_agree(self):
        assert pick_version(self._parse("+", "")) == "+"
        assert pick_version(self._parse("", "latest.release")) == "latest.release"

    def test_upper_bounds_take_the_tightest(self):
        assert pick_version(self._parse("<3.0", "<2.0")) == "<2.0"

    def test_prefix_and_exclusive_lower_bound_overlap(self):
        assert pick_version(self._parse("1.+", ">1.0")) == ">1.0,<2"

    def test_dynamic_and_bounded_keeps_the_bound(self):
        assert pick_version(self._parse("", "1.+")) == "1.+"

    def test_range_lower_bound_meets_upper_bound(self):
        assert pick_version(self._parse("[1.0,1.5)", "<=1.0")) == "1.0"

    def test_disjoint_bounds_are_unsatisfiable(self):
        with pytest.raises(UnsatisfiableConstraintError):
            pick_version(self._parse("1.+", ">=2.0,<3.0", "<1.0"))

    def test_disjoint_npm_and_prefix(self):
        with pytest.raises(UnsatisfiableConstraintError):
            pick_version(self._parse("^1.2.0", "2.+"))
