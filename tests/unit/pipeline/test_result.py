"""Tests for the scan entry points."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from ciscout.output.writer import OutputFormat
from ciscout.pipeline.orchestrator import GENERAL_SCANNER_NAME
from ciscout.pipeline.recommendations import NO_PLATFORM_DETECTED_KEY
from ciscout.pipeline.result import (
    NO_PLATFORM_DETECTED,
    NoPlatformDetectedError,
    directory_tree,
    generate_and_write_results,
    generate_scan_result,
)


class TestGenerateScanResult:
    """Tests for generate_scan_result."""

    def test_detected(self, tmp_path: Path, fake_scanner) -> None:
        """Test that a detected platform is reported."""
        result, detected = generate_scan_result(tmp_path, True, [fake_scanner("android")], [])
        assert detected
        assert result.detected_scanners() == ["android"]
        assert GENERAL_SCANNER_NAME not in result.errors_with_recommendations

    def test_nothing_detected_adds_general_error(self, tmp_path: Path, fake_scanner) -> None:
        """Test that an empty scan carries the no-platform recommendation."""
        result, detected = generate_scan_result(
            tmp_path, True, [fake_scanner("android", detected=False)], []
        )
        assert not detected
        entry = result.errors_with_recommendations[GENERAL_SCANNER_NAME][0]
        assert entry.error == NO_PLATFORM_DETECTED
        assert entry.recommendations[NO_PLATFORM_DETECTED_KEY] is True
        assert "android" in str(entry.recommendations)

    def test_tool_only_detection_counts(
        self, tmp_path: Path, fake_scanner, fake_tool_scanner
    ) -> None:
        """Test that a tool scanner alone is enough for a detection."""
        result, detected = generate_scan_result(
            tmp_path, True, [fake_scanner("android", detected=False)], [fake_tool_scanner()]
        )
        assert detected
        assert result.configs["fake-tool"] == {"tool_other": "yaml"}


class TestGenerateAndWriteResults:
    """Tests for generate_and_write_results."""

    def test_writes_result(self, tmp_path: Path, android_project: Path) -> None:
        """Test that the result file is written for a real project."""
        out = tmp_path / "_out"
        result = generate_and_write_results(android_project, out, OutputFormat.YAML)
        data = yaml.safe_load((out / "result.yml").read_text())
        assert "android" in data["options"]
        assert result.detected_scanners() == ["android"]

    def test_raises_after_writing_when_nothing_detected(self, tmp_path: Path) -> None:
        """Test that the result is written before NoPlatformDetectedError."""
        project = tmp_path / "empty"
        project.mkdir()
        out = tmp_path / "_out"
        with pytest.raises(NoPlatformDetectedError) as exc_info:
            generate_and_write_results(project, out, OutputFormat.JSON)
        assert (out / "result.json").exists()
        assert exc_info.value.result is not None
        assert GENERAL_SCANNER_NAME in exc_info.value.result.errors_with_recommendations

    def test_passes_disabled_scanners(self, tmp_path: Path, android_project: Path) -> None:
        """Test that disabled scanners are not run."""
        with pytest.raises(NoPlatformDetectedError):
            generate_and_write_results(
                android_project, tmp_path / "_out", OutputFormat.YAML, disabled=["android"]
            )

    def test_logs_directory_tree_when_nothing_detected(self, tmp_path: Path) -> None:
        """Test that the directory listing is logged for an empty scan."""
        with patch("ciscout.pipeline.result.log_directory_tree") as mock_log:
            with pytest.raises(NoPlatformDetectedError):
                generate_and_write_results(tmp_path, tmp_path / "_out", OutputFormat.YAML)
        mock_log.assert_called_once()


class TestDirectoryTree:
    """Tests for directory_tree."""

    def test_depth_limited_listing(self, tmp_path: Path, write_files) -> None:
        """Test indentation and the depth limit."""
        write_files(tmp_path, {"a/b/c/d.txt": "", "top.txt": ""})
        assert directory_tree(tmp_path, 2) == ["a/", "  b/", "top.txt"]
