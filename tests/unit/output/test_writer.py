"""Tests for writing scan results to disk."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from ciscout.core.models import Icon, OptionNode, ScanResult
from ciscout.output.writer import OutputFormat, copy_icons, format_scan_result, write_scan_result


def _result() -> ScanResult:
    root = OptionNode.new_option("Project", "", "PROJECT")
    root.add_config("app", OptionNode.new_config_option("cfg"))
    return ScanResult(
        options={"ios": root},
        configs={"ios": {"cfg": "format_version: '4'\n"}},
        warnings={"fastlane": ["No valid Fastfile found"]},
    )


class TestOutputFormat:
    """Tests for OutputFormat."""

    def test_extensions(self) -> None:
        """Test the file extension of each format."""
        assert OutputFormat.YAML.extension == "yml"
        assert OutputFormat.JSON.extension == "json"

    def test_from_value(self) -> None:
        """Test lookup by CLI value."""
        assert OutputFormat("json") is OutputFormat.JSON


class TestWriteScanResult:
    """Tests for write_scan_result."""

    def test_writes_yaml(self, tmp_path: Path) -> None:
        """Test that the YAML result keeps its top level key order."""
        path = write_scan_result(_result(), tmp_path / "out", OutputFormat.YAML)
        assert path == tmp_path / "out" / "result.yml"
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert list(data) == ["options", "configs", "warnings"]
        assert data["configs"]["ios"]["cfg"] == "format_version: '4'\n"

    def test_writes_json(self, tmp_path: Path) -> None:
        """Test that JSON output parses back to the same dict."""
        result = _result()
        path = write_scan_result(result, tmp_path, OutputFormat.JSON)
        assert path.name == "result.json"
        assert json.loads(path.read_text(encoding="utf-8")) == result.to_dict()

    def test_no_icons_no_icons_dir(self, tmp_path: Path) -> None:
        """Test that the icons directory only exists when there are icons."""
        write_scan_result(_result(), tmp_path, OutputFormat.YAML)
        assert not (tmp_path / "icons").exists()

    def test_empty_result_formats(self) -> None:
        """Test that an empty result serializes to an empty document."""
        assert json.loads(format_scan_result(ScanResult(), OutputFormat.JSON)) == {}


class TestCopyIcons:
    """Tests for copy_icons."""

    def test_copies_valid_and_skips_invalid(self, tmp_path: Path, make_png) -> None:
        """Test that only valid PNGs are copied, under their hashed names."""
        good = make_png("src/good.png")
        big = make_png("src/big.png", width=2048, height=2048)
        icons = [Icon(filename="a1.png", path=good), Icon(filename="b2.png", path=big)]

        copied = copy_icons(icons, tmp_path / "out")

        assert copied == [tmp_path / "out" / "icons" / "a1.png"]
        assert copied[0].read_bytes() == good.read_bytes()
        assert not (tmp_path / "out" / "icons" / "b2.png").exists()
