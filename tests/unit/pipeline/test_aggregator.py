"""Tests for the result aggregation rules."""

from __future__ import annotations

from pathlib import Path

from ciscout.core.models import ErrorWithRecommendations, Icon, OptionNode
from ciscout.pipeline.aggregator import aggregate
from ciscout.pipeline.orchestrator import ScannerOutput, ScannerStatus


def _tree() -> OptionNode:
    root = OptionNode.new_option("T", "", "K")
    root.add_config("v", OptionNode.new_config_option("cfg"))
    return root


class TestAggregate:
    """Tests for aggregate."""

    def test_detected_scanner_is_copied(self) -> None:
        """Test that options, configs and warnings of a clean scanner are kept."""
        output = ScannerOutput(
            status=ScannerStatus.DETECTED,
            options=_tree(),
            configs={"cfg": "yaml"},
            warnings=["w"],
        )
        result = aggregate({"android": output})
        assert result.options["android"] == _tree()
        assert result.configs["android"] == {"cfg": "yaml"}
        assert result.warnings["android"] == ["w"]

    def test_detected_without_configs_has_no_options(self) -> None:
        """Test that a scanner with an empty config map contributes no options."""
        output = ScannerOutput(status=ScannerStatus.DETECTED, options=OptionNode(), configs={})
        result = aggregate({"fastlane": output})
        assert "fastlane" not in result.options
        assert "fastlane" not in result.configs

    def test_failed_scanner_keeps_errors_only(self) -> None:
        """Test that a scanner detected with errors reports errors but no options."""
        output = ScannerOutput(
            status=ScannerStatus.DETECTED_WITH_ERRORS,
            errors=["broken"],
            errors_with_recommendations=[ErrorWithRecommendations("bad", {"k": "v"})],
        )
        result = aggregate({"ios": output})
        assert result.errors["ios"] == ["broken"]
        assert result.errors_with_recommendations["ios"][0].error == "bad"
        assert result.options == {}

    def test_undetected_scanner_keeps_warnings_not_errors(self) -> None:
        """Test that undetected scanners still surface their warnings."""
        output = ScannerOutput(
            status=ScannerStatus.NOT_DETECTED,
            warnings_with_recommendations=[ErrorWithRecommendations("detect failed")],
            errors=["ignored"],
        )
        result = aggregate({"cordova": output})
        assert result.warnings_with_recommendations["cordova"][0].error == "detect failed"
        assert "cordova" not in result.errors

    def test_silent_undetected_scanner_is_absent(self) -> None:
        """Test that a quiet undetected scanner leaves no trace."""
        result = aggregate({"xamarin": ScannerOutput()})
        assert result.to_dict() == {}

    def test_icons_deduplicated(self, tmp_path: Path) -> None:
        """Test that icons are collected once across scanners."""
        icon = Icon.from_path(tmp_path / "icon.png", tmp_path)
        outputs = {
            "a": ScannerOutput(status=ScannerStatus.DETECTED, icons=[icon]),
            "b": ScannerOutput(status=ScannerStatus.DETECTED, icons=[icon]),
        }
        assert aggregate(outputs).icons == [icon]
