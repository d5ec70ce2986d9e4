"""Tests for ScanResult, Icon and ErrorWithRecommendations."""

from __future__ import annotations

from pathlib import Path

from ciscout.core.models import ErrorWithRecommendations, Icon, OptionNode, ScanResult


class TestIcon:
    """Tests for Icon.from_path."""

    def test_filename_is_stable_hash_with_extension(self, tmp_path: Path) -> None:
        """Test that the same relative path always gives the same id."""
        path = tmp_path / "res" / "mipmap-hdpi" / "ic_launcher.png"
        first = Icon.from_path(path, tmp_path)
        second = Icon.from_path(path, tmp_path)
        assert first.filename == second.filename
        assert first.filename.endswith(".png")
        assert len(first.filename) == 64 + len(".png")

    def test_different_paths_get_different_ids(self, tmp_path: Path) -> None:
        """Test that distinct files get distinct ids."""
        a = Icon.from_path(tmp_path / "a.png", tmp_path)
        b = Icon.from_path(tmp_path / "b.png", tmp_path)
        assert a.filename != b.filename


class TestScanResult:
    """Tests for ScanResult helpers and serialization."""

    def test_add_icons_skips_duplicates(self, tmp_path: Path) -> None:
        """Test icons are collected once per filename."""
        icon = Icon.from_path(tmp_path / "icon.png", tmp_path)
        result = ScanResult()
        result.add_icons([icon])
        result.add_icons([icon, Icon.from_path(tmp_path / "other.png", tmp_path)])
        assert len(result.icons) == 2

    def test_add_error_with_recommendation_appends(self) -> None:
        """Test errors with recommendations are grouped by scanner."""
        result = ScanResult()
        result.add_error_with_recommendation("general", ErrorWithRecommendations("a"))
        result.add_error_with_recommendation("general", ErrorWithRecommendations("b"))
        assert [e.error for e in result.errors_with_recommendations["general"]] == ["a", "b"]

    def test_to_dict_omits_empty_sections(self) -> None:
        """Test that an empty result serializes to an empty mapping."""
        assert ScanResult().to_dict() == {}

    def test_round_trip(self) -> None:
        """Test that from_dict inverts to_dict."""
        root = OptionNode.new_option("Title", "", "KEY")
        root.add_config("v", OptionNode.new_config_option("cfg"))
        result = ScanResult(
            options={"android": root},
            configs={"android": {"cfg": "format_version: '4'\n"}},
            warnings={"android": ["careful"]},
            errors={"ios": ["broken"]},
            warnings_with_recommendations={
                "cordova": [ErrorWithRecommendations("w", {"DetailedError": {"title": "t"}})]
            },
        )
        restored = ScanResult.from_dict(result.to_dict())
        assert restored.options == result.options
        assert restored.configs == result.configs
        assert restored.warnings == result.warnings
        assert restored.errors == result.errors
        assert restored.warnings_with_recommendations == result.warnings_with_recommendations
        assert restored.detected_scanners() == ["android"]
