"""Tests for version derivation."""

import re
from datetime import datetime

import pytest

from relnotes_core.versioning import (
    SemVer,
    basic_increment,
    clean_version,
    compare_versions,
    derive_version,
    generate_build_number,
    increment_version,
    strip_tag_prefix,
    validate_version,
)

NOW = datetime(2024, 3, 5, 7, 9)


class TestStripTagPrefix:
    def test_longest_prefix_wins(self):
        assert strip_tag_prefix("version-1.2.3") == "1.2.3"

    def test_only_one_prefix_removed(self):
        assert strip_tag_prefix("vv1.2.3") == "v1.2.3"

    def test_unprefixed_unchanged(self):
        assert strip_tag_prefix("1.2.3") == "1.2.3"


class TestCleanVersion:
    @pytest.mark.parametrize("prefix", ["", "v", "release-", "version-"])
    @pytest.mark.parametrize("version", ["1.2.3", "0.0.1", "10.20.30"])
    def test_strips_known_prefixes(self, prefix, version):
        assert clean_version(prefix + version) == version

    @pytest.mark.parametrize("tag", ["", "latest", "v1.2", "release-abc", "1.2.3.4", "version-x.y.z"])
    def test_invalid_becomes_default(self, tag):
        assert clean_version(tag) == "1.0.0"

    def test_keeps_prerelease(self):
        assert clean_version("v2.0.0-rc.1") == "2.0.0-rc.1"


class TestIncrementVersion:
    def test_patch(self):
        assert increment_version("1.2.3", "patch") == "1.2.4"

    def test_minor(self):
        assert increment_version("1.2.3", "minor") == "1.3.0"

    def test_major(self):
        assert increment_version("1.2.3", "major") == "2.0.0"

    def test_invalid_strategy_behaves_as_patch(self):
        assert increment_version("1.2.3", "sideways") == "1.2.4"

    def test_prerelease_bumps_to_its_release(self):
        assert increment_version("2.0.0-rc.1", "major") == "2.0.0"
        assert increment_version("1.3.0-beta", "minor") == "1.3.0"
        assert increment_version("1.2.4-dev.abc1234", "patch") == "1.2.4"

    def test_unparseable_uses_basic_increment(self):
        assert increment_version("1.2", "minor") == "1.3.0"


class TestBasicIncrement:
    def test_non_numeric_parts_count_as_zero(self):
        assert basic_increment("x.2.y", "patch") == "0.2.1"

    def test_short_versions_are_padded(self):
        assert basic_increment("4", "major") == "5.0.0"


class TestSemVer:
    def test_precedence(self):
        ordered = ["1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-beta", "1.0.0-beta.2", "1.0.0-beta.11", "1.0.0", "1.0.1"]
        parsed = [SemVer.parse(v) for v in ordered]
        assert sorted(reversed(parsed)) == parsed

    def test_build_metadata_ignored_for_equality(self):
        assert SemVer.parse("1.0.0+abc") == SemVer.parse("1.0.0+def")

    def test_rejects_leading_zeros(self):
        with pytest.raises(ValueError):
            SemVer.parse("01.2.3")


class TestBuildNumber:
    def test_format(self):
        assert generate_build_number(NOW) == "20240305.0709"

    def test_current_time_matches_pattern(self):
        assert re.fullmatch(r"\d{8}\.\d{4}", generate_build_number())


class TestDeriveVersion:
    def test_release_grade_bumps(self):
        info = derive_version("v1.2.0", "abc1234", "minor", release_grade=True, now=NOW)
        assert info.new_version == "1.3.0"
        assert info.tag_name == "v1.3.0"
        assert info.previous_version == "v1.2.0"
        assert info.clean_previous_version == "1.2.0"
        assert info.build_number == "20240305.0709"

    def test_development_grade_decorates_with_commit(self):
        info = derive_version("1.0.0", "abc1234", "patch", release_grade=False, now=NOW)
        assert info.previous_version == "1.0.0"
        assert info.new_version == "1.0.0-dev.abc1234"
        assert info.tag_name == "v1.0.0-dev.abc1234"

    def test_missing_tag_defaults(self):
        info = derive_version(None, "abc1234", "patch", release_grade=True, now=NOW)
        assert info.previous_version == "1.0.0"
        assert info.new_version == "1.0.1"

    def test_custom_prefix(self):
        info = derive_version("release-2.0.0", "abc", "major", release_grade=True, prefix="release-", now=NOW)
        assert info.tag_name == "release-3.0.0"


class TestValidateAndCompare:
    def test_validate(self):
        assert validate_version("v1.2.3") is True
        assert validate_version("release-1.2.3-rc.1") is True
        assert validate_version("nope") is False

    def test_compare(self):
        assert compare_versions("v1.2.3", "v1.10.0") == -1
        assert compare_versions("v2.0.0", "1.9.9") == 1
        assert compare_versions("v1.0.0", "release-1.0.0") == 0
