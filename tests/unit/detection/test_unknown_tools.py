"""Tests for unsupported build tool detection."""

from __future__ import annotations

from pathlib import Path

from ciscout.config.ignore import IgnorePatterns
from ciscout.detection.unknown_tools import detect_unknown_tools, log_unknown_tools


class TestDetectUnknownTools:
    """Tests for detect_unknown_tools."""

    def test_nothing_detected(self, tmp_path: Path, write_files) -> None:
        """Test a plain project."""
        write_files(tmp_path, {"README.md": "hello\n"})
        assert detect_unknown_tools(tmp_path) == []

    def test_detects_named_files(self, tmp_path: Path, write_files) -> None:
        """Test Tuist, XcodeGen and Bazel marker files."""
        write_files(
            tmp_path,
            {
                "Project.swift": "",
                "ios/project.yml": "name: App\n",
                "WORKSPACE.bazel": "",
            },
        )
        results = detect_unknown_tools(tmp_path)
        assert [result.tool for result in results] == ["Tuist", "XcodeGen", "Bazel"]
        assert results[1].evidence == tmp_path / "ios" / "project.yml"

    def test_kotlin_multiplatform(self, tmp_path: Path, write_files) -> None:
        """Test that only the multiplatform plugin marks a KMP project."""
        write_files(
            tmp_path,
            {
                "app/build.gradle.kts": 'plugins { id("com.android.application") }\n',
                "shared/build.gradle.kts": 'plugins {\n    kotlin("multiplatform")\n}\n',
            },
        )
        results = detect_unknown_tools(tmp_path)
        assert [result.tool for result in results] == ["Kotlin Multiplatform"]
        assert results[0].evidence == tmp_path / "shared" / "build.gradle.kts"

    def test_respects_ignore_patterns(self, tmp_path: Path, write_files) -> None:
        """Test that ignored directories are not inspected."""
        write_files(tmp_path, {"vendor/BUCK": ""})
        assert detect_unknown_tools(tmp_path, IgnorePatterns(["vendor/"])) == []

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Test that an unreadable search dir yields no results."""
        assert detect_unknown_tools(tmp_path / "missing") == []

    def test_log_returns_results(self, tmp_path: Path, write_files) -> None:
        """Test that logging passes the results through."""
        write_files(tmp_path, {"BUCK": ""})
        assert [result.tool for result in log_unknown_tools(tmp_path)] == ["Buck"]
