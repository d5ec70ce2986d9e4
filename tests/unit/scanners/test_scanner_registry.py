"""Tests for the scanner registry and entry point discovery."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from ciscout.config.ignore import IgnorePatterns
from ciscout.scanners import (
    automation_tool_scanners,
    available_scanner_names,
    project_scanners,
)
from ciscout.scanners.base import AutomationToolScannerPlugin, ScannerPlugin
from ciscout.scanners.discovery import PROJECT_SCANNER_ENTRY_POINT_GROUP, discover_plugins


class TestRegistry:
    """Tests for the built-in scanner order."""

    def test_project_scanner_order(self) -> None:
        """Test that cross-platform scanners run before native ones."""
        names = [scanner.name for scanner in project_scanners()]
        assert names[:8] == [
            "react-native",
            "flutter",
            "ionic",
            "cordova",
            "ios",
            "macos",
            "android",
            "xamarin",
        ]

    def test_tool_scanners(self) -> None:
        """Test that fastlane is an automation tool scanner."""
        scanners = automation_tool_scanners()
        assert [scanner.name for scanner in scanners][:1] == ["fastlane"]
        assert all(isinstance(scanner, AutomationToolScannerPlugin) for scanner in scanners)

    def test_fresh_instances(self) -> None:
        """Test that every call returns new scanner objects."""
        assert project_scanners()[0] is not project_scanners()[0]

    def test_disabled_scanners_are_dropped(self) -> None:
        """Test that disabled names are filtered out."""
        names = [s.name for s in project_scanners(disabled=["xamarin", "ios"])]
        assert "xamarin" not in names
        assert "ios" not in names
        assert "android" in names

    def test_ignore_patterns_are_passed(self) -> None:
        """Test that scanners receive the ignore patterns."""
        ignore = IgnorePatterns(["build/"])
        assert all(scanner._ignore is ignore for scanner in project_scanners(ignore=ignore))

    def test_available_names(self) -> None:
        """Test that tool scanners are listed after project scanners."""
        names = available_scanner_names()
        assert names.index("fastlane") > names.index("xamarin")


class TestDiscovery:
    """Tests for entry point discovery."""

    def test_loads_subclasses_sorted_by_name(self) -> None:
        """Test that valid plugins are loaded in name order."""

        class PluginScanner(ScannerPlugin):
            pass

        second = MagicMock()
        second.name = "zeta"
        second.load.return_value = PluginScanner
        first = MagicMock()
        first.name = "alpha"
        first.load.return_value = PluginScanner

        with patch("ciscout.scanners.discovery.entry_points", return_value=[second, first]):
            plugins = discover_plugins(PROJECT_SCANNER_ENTRY_POINT_GROUP, ScannerPlugin)
        assert list(plugins) == ["alpha", "zeta"]

    def test_skips_invalid_and_failing_plugins(self) -> None:
        """Test that non-subclasses and load errors are skipped."""
        wrong = MagicMock()
        wrong.name = "wrong"
        wrong.load.return_value = dict
        broken = MagicMock()
        broken.name = "broken"
        broken.load.side_effect = ImportError("missing module")

        with patch("ciscout.scanners.discovery.entry_points", return_value=[wrong, broken]):
            assert discover_plugins(PROJECT_SCANNER_ENTRY_POINT_GROUP, ScannerPlugin) == {}
