"""Argument parser construction for ciscout CLI.

This module builds the argument parser with subcommands:
- ciscout config         - Scan a repository and write the scan result (CI)
- ciscout manual-config  - Write the default options and configs
- ciscout init           - Pick a config interactively and write bitrise.yml
"""

from __future__ import annotations

import argparse

from ciscout.config.models import DEFAULT_OUTPUT_DIR


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    """Add global options available to all commands."""
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show ciscout version and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (info-level) logging.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Reduce logging output to errors only.",
    )


def _add_output_options(parser: argparse.ArgumentParser) -> None:
    output_group = parser.add_argument_group("output")
    output_group.add_argument(
        "--output-dir",
        metavar="DIR",
        help=f"Directory to write the result into (default: {DEFAULT_OUTPUT_DIR}).",
    )
    output_group.add_argument(
        "--format",
        choices=["yaml", "json"],
        help="Result file format (default: yaml).",
    )


def _build_config_parser(subparsers: argparse._SubParsersAction) -> None:
    """Build the 'config' subcommand parser."""
    config_parser = subparsers.add_parser(
        "config",
        help="Scan a repository and write every detected option and config.",
        description=(
            "Run all scanners on a repository and write the scan result, "
            "with every option tree and generated config, for a CI service."
        ),
    )

    target_group = config_parser.add_argument_group("targets")
    target_group.add_argument(
        "--dir",
        default=".",
        help="Directory to scan (default: current directory).",
    )
    target_group.add_argument(
        "--public-repo",
        action="store_true",
        help="The repository is public; skip the SSH key activation step.",
    )

    _add_output_options(config_parser)

    config_group = config_parser.add_argument_group("configuration")
    config_group.add_argument(
        "--config",
        metavar="PATH",
        help="Path to a ciscout config file (default: .ciscout.yml in the scanned directory).",
    )

    upload_group = config_parser.add_argument_group("upload")
    upload_group.add_argument(
        "--upload-url",
        metavar="URL",
        help="Icon upload endpoint. Requires --api-token.",
    )
    upload_group.add_argument(
        "--submit-url",
        metavar="URL",
        help="Endpoint to POST the scan result to. Requires --api-token.",
    )
    upload_group.add_argument(
        "--api-token",
        metavar="TOKEN",
        help="API token for icon upload and result submission.",
    )


def _build_manual_config_parser(subparsers: argparse._SubParsersAction) -> None:
    """Build the 'manual-config' subcommand parser."""
    manual_parser = subparsers.add_parser(
        "manual-config",
        help="Write the default options and configs of every scanner.",
        description=(
            "Write option trees and configs for every supported project type "
            "without scanning, for setting up a pipeline by hand."
        ),
    )
    _add_output_options(manual_parser)


def _build_init_parser(subparsers: argparse._SubParsersAction) -> None:
    """Build the 'init' subcommand parser."""
    init_parser = subparsers.add_parser(
        "init",
        help="Pick a config interactively and write bitrise.yml.",
        description=(
            "Scan a repository, or load a saved scan result, walk the options "
            "with interactive prompts and write the chosen pipeline."
        ),
    )
    init_parser.add_argument(
        "--dir",
        default=".",
        help="Directory to scan (default: current directory).",
    )
    init_parser.add_argument(
        "--output",
        metavar="PATH",
        help="Where to write the pipeline (default: bitrise.yml in the scanned directory).",
    )
    init_parser.add_argument(
        "--public-repo",
        action="store_true",
        help="The repository is public; skip the SSH key activation step.",
    )
    init_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite an existing pipeline file.",
    )
    init_parser.add_argument(
        "--from-result",
        metavar="PATH",
        help="Use a saved scan result (yaml or json) instead of scanning.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for ciscout CLI.

    Returns:
        Configured ArgumentParser instance with subcommands.
    """
    parser = argparse.ArgumentParser(
        prog="ciscout",
        description="ciscout - Detect mobile projects and generate CI pipeline configs.",
        epilog=(
            "Examples:\n"
            "  ciscout config --dir ./app           # Scan and write _ciscout/result.yml\n"
            "  ciscout config --format json         # Write result.json\n"
            "  ciscout manual-config                # Write default configs\n"
            "  ciscout init                         # Interactive bitrise.yml setup\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    _add_global_options(parser)

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands:",
        metavar="COMMAND",
    )

    _build_config_parser(subparsers)
    _build_manual_config_parser(subparsers)
    _build_init_parser(subparsers)

    return parser
