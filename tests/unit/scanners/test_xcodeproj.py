"""Tests for the Xcode project file readers."""

from __future__ import annotations

from pathlib import Path

import pytest

from ciscout.scanners.xcodeproj import (
    parse_scheme,
    parse_targets,
    read_project,
    read_sdks,
    read_workspace_project_paths,
)


class TestPbxproj:
    """Tests for project.pbxproj parsing."""

    def test_read_sdks(self, pbxproj_source) -> None:
        """Test that SDKROOT values are collected."""
        assert read_sdks(pbxproj_source(sdk="macosx")) == {"macosx"}

    def test_targets_and_test_relation(self, pbxproj_source) -> None:
        """Test that a test bundle marks the app target it depends on."""
        targets = {target.name: target for target in parse_targets(pbxproj_source())}
        assert set(targets) == {"App", "AppTests"}
        assert targets["App"].is_application
        assert targets["App"].has_xctest
        assert targets["AppTests"].is_test
        assert not targets["App"].has_app_clip

    def test_app_without_tests(self, pbxproj_source) -> None:
        """Test that an app without a test bundle has no xctest."""
        targets = parse_targets(pbxproj_source(with_tests=False))
        assert [t.name for t in targets] == ["App"]
        assert not targets[0].has_xctest

    def test_app_clip_relation(self, pbxproj_source) -> None:
        """Test that an app depending on an app clip target is marked."""
        targets = {t.name: t for t in parse_targets(pbxproj_source(with_app_clip=True))}
        assert targets["App"].has_app_clip
        assert not targets["Clip"].is_application


class TestSchemes:
    """Tests for xcscheme parsing."""

    def test_parse_scheme(self, tmp_path: Path, scheme_source) -> None:
        """Test buildable ids and the xctest flag."""
        path = tmp_path / "App.xcscheme"
        path.write_text(scheme_source())
        scheme = parse_scheme(path)
        assert scheme.name == "App"
        assert scheme.has_xctest
        assert scheme.buildable_ids == [f"{1:024X}"]

    def test_scheme_without_tests(self, tmp_path: Path, scheme_source) -> None:
        """Test that a scheme without testables has no xctest."""
        path = tmp_path / "App.xcscheme"
        path.write_text(scheme_source(with_tests=False))
        assert not parse_scheme(path).has_xctest

    def test_invalid_xml(self, tmp_path: Path) -> None:
        """Test that malformed scheme XML raises ValueError."""
        path = tmp_path / "Bad.xcscheme"
        path.write_text("<Scheme>")
        with pytest.raises(ValueError, match="Failed to parse scheme"):
            parse_scheme(path)

    def test_read_project_collects_shared_schemes(self, tmp_path: Path, xcode_project) -> None:
        """Test that read_project picks up shared schemes."""
        project = read_project(xcode_project(tmp_path, shared_scheme=True))
        assert [scheme.name for scheme in project.shared_schemes] == ["App"]
        assert project.sdks == {"iphoneos"}
        assert [t.name for t in project.application_targets] == ["App"]


class TestWorkspace:
    """Tests for workspace data parsing."""

    def test_group_and_container_locations(self, tmp_path: Path) -> None:
        """Test that group-relative references resolve against the workspace dir."""
        workspace = tmp_path / "App.xcworkspace"
        workspace.mkdir()
        (workspace / "contents.xcworkspacedata").write_text(
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<Workspace version="1.0">\n'
            '   <FileRef location="group:App.xcodeproj"></FileRef>\n'
            '   <Group location="container:Sub" name="Sub">\n'
            '      <FileRef location="group:Lib.xcodeproj"></FileRef>\n'
            "   </Group>\n"
            '   <FileRef location="group:README.md"></FileRef>\n'
            "</Workspace>\n"
        )
        assert read_workspace_project_paths(workspace) == [
            tmp_path / "App.xcodeproj",
            tmp_path / "Sub" / "Lib.xcodeproj",
        ]

    def test_missing_data_is_empty(self, tmp_path: Path) -> None:
        """Test that a workspace without data references nothing."""
        assert read_workspace_project_paths(tmp_path) == []
