"""Tests for version normalisation, ordering and bumping."""

import pytest

from update_panel.errors import InvalidInput
from update_panel.versioning import (
    bump_version,
    compare_versions,
    normalize_version,
    prefix_version,
    sort_versions,
    version_key,
)


class TestNormalizeVersion:
    def test_adds_v_prefix(self):
        assert normalize_version("2.0") == "v2.0"

    def test_keeps_existing_prefix(self):
        assert normalize_version("v2.0") == "v2.0"

    def test_strips_whitespace(self):
        assert normalize_version("  1.3 ") == "v1.3"

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_is_invalid(self, raw):
        with pytest.raises(InvalidInput):
            normalize_version(raw)

    @pytest.mark.parametrize("raw", ["1/2", "1.0 beta", "v1#2", "v1?x", "v2\u00b2", "../v1"])
    def test_unsafe_characters_rejected(self, raw):
        with pytest.raises(InvalidInput):
            normalize_version(raw)

    def test_allowed_punctuation(self):
        assert normalize_version("1.0-rc.1+build_2") == "v1.0-rc.1+build_2"

    def test_prefix_version_does_not_check_characters(self):
        assert prefix_version("1\u00b2") == "v1\u00b2"


class TestOrdering:
    def test_numeric_aware_sort(self):
        assert sort_versions(["v2.0", "v1.10", "v1.9"]) == ["v1.9", "v1.10", "v2.0"]

    def test_not_lexical(self):
        assert compare_versions("v1.10", "v1.9") == 1
        assert compare_versions("v1.9", "v1.10") == -1

    def test_equal_versions(self):
        assert compare_versions("v3.1", "v3.1") == 0

    def test_prefix_is_ignored(self):
        assert version_key("1.2") == version_key("v1.2")

    def test_freeform_versions_sort_deterministically(self):
        versions = ["beta", "v1.0", "v1.0-rc1", "alpha"]
        assert sort_versions(versions) == sort_versions(list(reversed(versions)))

    def test_superscript_digits_are_text(self):
        assert version_key("v1\u00b2") == ((0, 1, ""), (1, 0, "\u00b2"))
        assert sort_versions(["v2\u00b2", "v1.0", "v10"]) == ["v1.0", "v2\u00b2", "v10"]
        assert compare_versions("v1\u00b2", "v1.0") == 1

    def test_reverse(self):
        assert sort_versions(["v1", "v3", "v2"], reverse=True) == ["v3", "v2", "v1"]


class TestBumpVersion:
    def test_minor(self):
        assert bump_version("v1.4") == "v1.5"

    def test_minor_crosses_nine(self):
        assert bump_version("v1.9") == "v1.10"

    def test_major(self):
        assert bump_version("v1.4", part="major") == "v2.0"

    def test_patch(self):
        assert bump_version("v1.4", part="patch") == "v1.4.1"
        assert bump_version("v1.4.2", part="patch") == "v1.4.3"

    def test_single_component(self):
        assert bump_version("v1") == "v1.1"

    def test_nothing_published_yet(self):
        assert bump_version(None) == "v1.0"

    def test_non_numeric_is_invalid(self):
        with pytest.raises(InvalidInput):
            bump_version("stable")

    def test_unknown_part(self):
        with pytest.raises(ValueError):
            bump_version("v1.0", part="build")
