"""Version / VersionRange 单元测试"""

from __future__ import annotations

import pytest

from vaultpkg.core.dep.version import Version, VersionRange, explode


def v(text: str) -> Version:
    return Version.create(text)


class TestExplode:
    def test_no_separator(self) -> None:
        assert explode("abc", ".") == ["abc"]

    def test_trailing_empty_dropped(self) -> None:
        assert explode("1.0..", ".") == ["1", "0"]

    def test_inner_empty_kept(self) -> None:
        assert explode("1..0", ".") == ["1", "", "0"]


class TestVersion:
    def test_create_empty(self) -> None:
        assert Version.create("") is Version.EMPTY
        assert Version.create(None) is Version.EMPTY
        assert not Version.EMPTY
        assert str(Version.EMPTY) == ""

    def test_create_from_segments(self) -> None:
        ver = Version.create(["1", "2", "3"])
        assert str(ver) == "1.2.3"
        assert ver.segments == ("1", "2", "3")

    def test_equality_by_text(self) -> None:
        assert v("1.0") == v("1.0")
        assert v("1.0") != v("1.0.0")
        assert len({v("1.0"), v("1.0")}) == 1

    @pytest.mark.parametrize(("a", "b", "expected"), [
        ("1.0", "1.0", 0),
        ("1.0", "1.0.1", -1),
        ("1.10", "1.9", 1),
        ("2.1", "2.1-SNAPSHOT", 1),
        ("1.a", "1.b", -1),
        ("", "1.0", -1),
        ("1.0-R2", "1.0-R10", 1),
    ])
    def test_compare(self, a: str, b: str, expected: int) -> None:
        assert v(a).compare(v(b)) == expected
        assert v(b).compare(v(a)) == -expected

    def test_sort_order(self) -> None:
        versions = [v("2.0"), v("1.10"), v("1.9"), v("1.9-SNAPSHOT"), Version.EMPTY]
        assert [str(x) for x in sorted(versions)] == ["", "1.9-SNAPSHOT", "1.9", "1.10", "2.0"]

    def test_qualifier_order(self) -> None:
        assert v("2.1-R12345") < v("2.1-SNAPSHOT")
        assert v("2.1-SNAPSHOT") > v("2.1-R12345")
        assert v("2.1-R12345").osgi_compare(v("2.1-SNAPSHOT")) == -1

    def test_ordering_follows_compare(self) -> None:
        """文本不同但比较结果为 0 的版本互相 <= / >=，但不相等"""
        a, b = v("1"), v("1.")
        assert a.compare(b) == 0
        assert a <= b and b <= a
        assert a >= b and b >= a
        assert not a < b and not b < a
        assert a != b

    def test_osgi_compare_flattens_qualifier(self) -> None:
        """OSGi 比较下带限定符的版本更大"""
        assert v("1.0-SNAPSHOT").osgi_compare(v("1.0")) == 1
        assert v("1.0-SNAPSHOT").compare(v("1.0")) == -1

    def test_osgi_compare_numeric(self) -> None:
        assert v("1.2.10").osgi_compare(v("1.2.9")) == 1
        assert v("1.2").osgi_compare(v("1.2")) == 0


class TestVersionRangeParse:
    def test_empty_is_infinite(self) -> None:
        r = VersionRange.parse("")
        assert r.is_infinite
        assert str(r) == ""
        assert r == VersionRange.INFINITE

    def test_single_version_is_lower_bound(self) -> None:
        r = VersionRange.parse("1.0")
        assert r.low == v("1.0") and r.low_inclusive
        assert r.high is None
        assert str(r) == "1.0"

    @pytest.mark.parametrize("text", ["[1.0,2.0)", "(1.0,2.0]", "(,2.0]", "(1.0,)", "[1.0,1.0]"])
    def test_bracket_forms_round_trip(self, text: str) -> None:
        assert str(VersionRange.parse(text)) == text

    def test_closed_lower_bound_only_is_canonicalized(self) -> None:
        r = VersionRange.parse("[1.0,)")
        assert str(r) == "1.0"
        assert r == VersionRange.parse("1.0")

    def test_missing_bracket(self) -> None:
        with pytest.raises(ValueError):
            VersionRange.parse("1.0,2.0")

    def test_low_greater_than_high(self) -> None:
        with pytest.raises(ValueError):
            VersionRange.parse("[2.0,1.0]")

    def test_equal_bounds_must_be_closed(self) -> None:
        with pytest.raises(ValueError):
            VersionRange.parse("[1.0,1.0)")

    def test_exact(self) -> None:
        assert VersionRange.exact(v("1.0")) == VersionRange.parse("[1.0,1.0]")


class TestVersionRangeContains:
    def test_half_open(self) -> None:
        r = VersionRange.parse("[1.0,2.0)")
        assert r.is_in_range(v("1.0"))
        assert r.is_in_range(v("1.5.3"))
        assert not r.is_in_range(v("2.0"))
        assert not r.is_in_range(v("0.9"))

    def test_exclusive_low(self) -> None:
        r = VersionRange.parse("(1.0,)")
        assert not r.is_in_range(v("1.0"))
        assert r.is_in_range(v("1.0.1"))

    def test_qualifier_uses_osgi_order(self) -> None:
        r = VersionRange.parse("[1.0,2.0)")
        assert r.is_in_range(v("1.0-SNAPSHOT"))
        assert not r.is_in_range(v("2.0-SNAPSHOT"))

    def test_infinite_contains_everything(self) -> None:
        assert VersionRange.INFINITE.is_in_range(Version.EMPTY)
        assert VersionRange.INFINITE.is_in_range(v("99"))
