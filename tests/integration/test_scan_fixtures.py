"""End-to-end scans of repositories built on disk.

Every test runs the full registry of scanners, so exclusions between
scanners and the automation tool pass are exercised together.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from ciscout.config.ignore import IgnorePatterns
from ciscout.output.writer import OutputFormat
from ciscout.pipeline.result import (
    NO_PLATFORM_DETECTED,
    NoPlatformDetectedError,
    generate_and_write_results,
    generate_scan_result,
)

pytestmark = pytest.mark.integration

ANDROID_FILES = {
    "build.gradle": "buildscript {}\n",
    "gradlew": "#!/bin/sh\n",
    "settings.gradle": "include ':app'\n",
    "app/build.gradle": "apply plugin: 'com.android.application'\n",
}

FASTFILE = """\
default_platform(:android)

platform :android do
  lane :beta do
    gradle(task: "assemble")
  end
end

lane :test do
  gradle(task: "test")
end
"""


def _prefixed(prefix: str, files: dict) -> dict:
    return {f"{prefix}/{name}": content for name, content in files.items()}


class TestMixedRepositories:
    """Scans of repositories with more than one project type."""

    def test_android_with_fastlane(self, tmp_path: Path, write_files) -> None:
        """Test that fastlane lanes are offered for the detected Android project."""
        write_files(tmp_path, {**ANDROID_FILES, "fastlane/Fastfile": FASTFILE})

        result, detected = generate_scan_result(tmp_path, is_private_repository=True)

        assert detected
        assert list(result.options) == ["android", "fastlane"]
        lane_option = result.options["fastlane"].children["."]
        assert list(lane_option.children) == ["android beta", "test"]
        assert list(result.configs["fastlane"]) == ["fastlane-config_android"]

    def test_flutter_excludes_native_scanners(self, tmp_path: Path, write_files) -> None:
        """Test that the native folders of a Flutter app are not scanned again."""
        write_files(tmp_path, {
            "pubspec.yaml": "name: app\ndependencies:\n  flutter:\n    sdk: flutter\n",
            "ios/": "",
            **_prefixed("android", ANDROID_FILES),
        })

        result, detected = generate_scan_result(tmp_path, is_private_repository=False)

        assert detected
        assert list(result.options) == ["flutter"]

    def test_native_ios_and_android(self, tmp_path: Path, write_files, xcode_project) -> None:
        """Test that unrelated iOS and Android projects are both reported."""
        write_files(tmp_path, _prefixed("android", ANDROID_FILES))
        xcode_project(tmp_path / "ios", shared_scheme=True)

        result, detected = generate_scan_result(tmp_path, is_private_repository=True)

        assert detected
        assert set(result.options) == {"ios", "android"}
        for name in ("ios", "android"):
            for config_name in result.options[name].config_names():
                assert config_name in result.configs[name]

    def test_ignored_project_is_not_detected(self, tmp_path: Path, write_files) -> None:
        """Test that ignore patterns hide a project from every scanner."""
        write_files(tmp_path, _prefixed("legacy", ANDROID_FILES))

        result, detected = generate_scan_result(
            tmp_path, is_private_repository=True, ignore=IgnorePatterns(["legacy/"])
        )

        assert not detected
        assert result.errors_with_recommendations["general"][0].error == NO_PLATFORM_DETECTED

    def test_disabled_scanner(self, tmp_path: Path, write_files) -> None:
        """Test that a disabled scanner never runs."""
        write_files(tmp_path, ANDROID_FILES)
        result, detected = generate_scan_result(
            tmp_path, is_private_repository=True, disabled=["android"]
        )
        assert not detected
        assert "android" not in result.options


class TestWrittenResults:
    """Tests for the files written after a scan."""

    def test_configs_are_valid_pipelines(self, tmp_path: Path, write_files) -> None:
        """Test that every written config parses as a pipeline document."""
        repo = write_files(tmp_path / "repo", {**ANDROID_FILES, "fastlane/Fastfile": FASTFILE})
        out = tmp_path / "out"

        generate_and_write_results(repo, out, OutputFormat.JSON)

        data = json.loads((out / "result.json").read_text(encoding="utf-8"))
        for configs in data["configs"].values():
            for text in configs.values():
                pipeline = yaml.safe_load(text)
                assert pipeline["format_version"] == "4"
                assert pipeline["workflows"]["primary"]["steps"]

    def test_no_platform_writes_result(self, tmp_path: Path) -> None:
        """Test that the result is written before the no-platform error."""
        repo = tmp_path / "repo"
        repo.mkdir()
        out = tmp_path / "out"

        with pytest.raises(NoPlatformDetectedError) as exc_info:
            generate_and_write_results(repo, out, OutputFormat.YAML)

        assert exc_info.value.result is not None
        data = yaml.safe_load((out / "result.yml").read_text(encoding="utf-8"))
        assert "general" in data["errors_with_recommendations"]


REPOSITORIES = {
    "android-fastlane": {**ANDROID_FILES, "fastlane/Fastfile": FASTFILE},
    "flutter": {
        "pubspec.yaml": "name: app\ndependencies:\n  flutter:\n    sdk: flutter\n",
        "test/widget_test.dart": "",
        "android/": "",
    },
    "react-native": {
        "package.json": json.dumps({"dependencies": {"react-native": "0.70"}, "scripts": {"test": "jest"}}),
        "yarn.lock": "",
        **_prefixed("android", ANDROID_FILES),
    },
    "cordova": {
        "config.xml": (
            '<?xml version="1.0" encoding="utf-8"?>\n'
            '<widget id="io.example.app" version="1.0.0" xmlns="http://www.w3.org/ns/widgets" '
            'xmlns:cdv="http://cordova.apache.org/ns/1.0">\n</widget>\n'
        ),
        "package.json": "{}",
    },
}


class TestRepeatedScans:
    """Scanning an unchanged repository twice gives the same result."""

    @pytest.mark.parametrize("name", sorted(REPOSITORIES))
    def test_scan_is_idempotent(self, tmp_path: Path, write_files, name: str) -> None:
        """Test that option trees and configs do not change between scans."""
        write_files(tmp_path, REPOSITORIES[name])

        first, detected = generate_scan_result(tmp_path, is_private_repository=True)
        second, _ = generate_scan_result(tmp_path, is_private_repository=True)

        assert detected
        assert first.to_dict() == second.to_dict()
        for platform, root in first.options.items():
            assert root.config_names() == second.options[platform].config_names()

    def test_xcode_scan_is_idempotent(self, tmp_path: Path, xcode_project) -> None:
        """Test that Xcode trees do not change between scans."""
        xcode_project(tmp_path, shared_scheme=True)
        (tmp_path / "Podfile").write_text("platform :ios, '13.0'\n")

        first, detected = generate_scan_result(tmp_path, is_private_repository=False)
        second, _ = generate_scan_result(tmp_path, is_private_repository=False)

        assert detected
        assert first.to_dict() == second.to_dict()
