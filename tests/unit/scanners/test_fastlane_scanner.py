"""Tests for the fastlane automation tool scanner."""

from __future__ import annotations

from pathlib import Path

import yaml

from ciscout.generation.steps import step_ids
from ciscout.scanners.fastlane import NO_VALID_FASTFILE, FastlaneScanner, parse_lanes

FASTFILE = """
default_platform(:ios)

platform :ios do
  desc "Push a new beta build"
  lane :beta do
    build_app(scheme: "App")
    if is_ci
      setup_ci
    end
  end

  lane :release do
    upload_to_app_store
  end
end

lane :test do # shared
  run_tests
end
"""


class TestParseLanes:
    """Tests for parse_lanes."""

    def test_platform_and_shared_lanes(self) -> None:
        """Test that platform blocks prefix their lanes and end correctly."""
        assert parse_lanes(FASTFILE) == ["ios beta", "ios release", "test"]

    def test_commented_lane_is_ignored(self) -> None:
        """Test that commented out lanes are not reported."""
        assert parse_lanes("# lane :old do\nlane :new do\nend\n") == ["new"]


class TestFastlaneScanner:
    """Tests for detection, options and configs."""

    def test_fastfile_must_be_in_fastlane_dir(self, tmp_path: Path) -> None:
        """Test that a stray Fastfile is not detected."""
        (tmp_path / "Fastfile").write_text(FASTFILE)
        assert not FastlaneScanner().detect_platform(tmp_path)

    def test_tree_per_project_type(self, tmp_path: Path, write_files) -> None:
        """Test work dir -> lane -> project type with one config per type."""
        write_files(tmp_path, {"fastlane/Fastfile": FASTFILE})
        scanner = FastlaneScanner()
        scanner.set_detected_project_types(["ios", "android"])
        assert scanner.detect_platform(tmp_path)
        options = scanner.options()

        lanes = options.root.children["."]
        assert list(lanes.children) == ["ios beta", "ios release", "test"]
        project_type = lanes.children["test"]
        assert project_type.title == "Project type"
        assert project_type.children["ios"].config == "fastlane-config_ios"
        assert options.root.config_names() == ["fastlane-config_ios", "fastlane-config_android"]

        configs = scanner.configs(True)
        assert set(configs) == {"fastlane-config_ios", "fastlane-config_android"}
        ios = yaml.safe_load(configs["fastlane-config_ios"])
        assert ios["app"]["envs"] == [{"FASTLANE_XCODE_LIST_TIMEOUT": "120"}]
        assert "certificate-and-profile-installer@1.8.5" in step_ids(ios["workflows"]["primary"]["steps"])
        android = yaml.safe_load(configs["fastlane-config_android"])
        assert "certificate-and-profile-installer@1.8.5" not in step_ids(
            android["workflows"]["primary"]["steps"]
        )

    def test_no_lanes_gives_empty_result(self, tmp_path: Path, write_files) -> None:
        """Test that Fastfiles without lanes produce no options or configs."""
        write_files(tmp_path, {"fastlane/Fastfile": "default_platform(:ios)\n"})
        scanner = FastlaneScanner()
        scanner.set_detected_project_types(["ios"])
        scanner.detect_platform(tmp_path)
        options = scanner.options()
        assert NO_VALID_FASTFILE in options.warnings
        assert options.root.children == {}
        assert scanner.configs(True) == {}

    def test_defaults(self) -> None:
        """Test the default tree covers both default platforms."""
        scanner = FastlaneScanner()
        tree = scanner.default_options()
        tree.validate()
        assert set(tree.config_names()) == set(scanner.default_configs())
