"""Tests for CLI argument parsing."""

from __future__ import annotations

import pytest

from ciscout.cli.arguments import build_parser


class TestBuildParser:
    """Tests for build_parser."""

    def test_global_flags(self) -> None:
        """Test that global flags come before the command."""
        args = build_parser().parse_args(["--debug", "-q", "config"])
        assert args.debug
        assert args.quiet
        assert not args.verbose
        assert args.command == "config"

    def test_config_defaults(self) -> None:
        """Test the config command defaults."""
        args = build_parser().parse_args(["config"])
        assert args.dir == "."
        assert not args.public_repo
        assert args.output_dir is None
        assert args.format is None
        assert args.config is None
        assert args.api_token is None

    def test_config_options(self) -> None:
        """Test every config command option."""
        args = build_parser().parse_args([
            "config",
            "--dir", "app",
            "--public-repo",
            "--output-dir", "out",
            "--format", "json",
            "--config", "custom.yml",
            "--upload-url", "https://example.com/icons",
            "--submit-url", "https://example.com/results",
            "--api-token", "secret",
        ])
        assert args.dir == "app"
        assert args.public_repo
        assert args.output_dir == "out"
        assert args.format == "json"
        assert args.config == "custom.yml"
        assert args.upload_url == "https://example.com/icons"
        assert args.submit_url == "https://example.com/results"
        assert args.api_token == "secret"

    def test_invalid_format(self) -> None:
        """Test that unknown formats are usage errors."""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["config", "--format", "xml"])
        assert exc_info.value.code == 2

    def test_manual_config_options(self) -> None:
        """Test that manual-config takes output options only."""
        args = build_parser().parse_args(["manual-config", "--output-dir", "defaults"])
        assert args.command == "manual-config"
        assert args.output_dir == "defaults"
        assert not hasattr(args, "dir")

    def test_init_options(self) -> None:
        """Test the init command options."""
        args = build_parser().parse_args(
            ["init", "-f", "--output", "ci/bitrise.yml", "--from-result", "result.yml"]
        )
        assert args.force
        assert args.output == "ci/bitrise.yml"
        assert args.from_result == "result.yml"
        assert args.dir == "."
