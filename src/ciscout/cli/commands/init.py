"""Init command implementation.

Interactive setup:
1. Scans the repository, or loads a saved scan result
2. Walks the option tree with questionary prompts
3. Writes the chosen pipeline, with the answers as app envs
"""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from typing import Optional

import questionary
import yaml

from ciscout.cli.commands import Command
from ciscout.cli.exit_codes import EXIT_FAILURE, EXIT_INVALID_USAGE, EXIT_SUCCESS
from ciscout.config.models import CIScoutConfig
from ciscout.core.logging import get_logger
from ciscout.core.models import ScanResult
from ciscout.pipeline.result import generate_scan_result
from ciscout.selection.walker import STYLE, OptionSelectionError, Prompter, ask_for_config

LOGGER = get_logger(__name__)

PIPELINE_FILENAME = "bitrise.yml"


def load_scan_result(path: Path) -> ScanResult:
    """Read a scan result written by ``ciscout config`` (yaml or json)."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a scan result")
    return ScanResult.from_dict(data)


class InitCommand(Command):
    """Interactive pipeline setup command."""

    def __init__(self, prompter: Optional[Prompter] = None) -> None:
        self._prompter = prompter

    @property
    def name(self) -> str:
        return "init"

    def execute(self, args: Namespace, config: Optional[CIScoutConfig] = None) -> int:
        config = config or CIScoutConfig()
        search_dir = Path(args.dir).resolve()
        if not search_dir.is_dir():
            print(f"Error: {search_dir} is not a directory")
            return EXIT_INVALID_USAGE

        output_path = Path(args.output) if args.output else search_dir / PIPELINE_FILENAME
        if output_path.exists() and not args.force:
            overwrite = questionary.confirm(
                f"{output_path.name} already exists. Overwrite?",
                default=False,
                style=STYLE,
            ).ask()
            if not overwrite:
                print("Aborted.")
                return EXIT_SUCCESS

        if args.from_result:
            try:
                result = load_scan_result(Path(args.from_result))
            except (OSError, ValueError, yaml.YAMLError) as e:
                print(f"Error: failed to read scan result: {e}")
                return EXIT_INVALID_USAGE
        else:
            print("\nAnalyzing project...\n")
            result, detected = generate_scan_result(
                search_dir,
                config.private_repository,
                ignore=config.ignore_patterns(),
                disabled=config.scanners.disabled,
            )
            if not detected:
                self._display_problems(result)
                return EXIT_FAILURE
            print(f"Detected: {', '.join(result.detected_scanners())}\n")

        try:
            pipeline = ask_for_config(result, self._prompter)
        except KeyboardInterrupt:
            print("\nAborted.")
            return EXIT_SUCCESS
        except OptionSelectionError as e:
            print(f"Error: {e}")
            return EXIT_FAILURE

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(pipeline, encoding="utf-8")
        print(f"\nCreated {output_path}")
        return EXIT_SUCCESS

    @staticmethod
    def _display_problems(result: ScanResult) -> None:
        for scanner, entries in result.errors_with_recommendations.items():
            for entry in entries:
                print(f"[{scanner}] {entry.error}")
        for scanner, messages in result.errors.items():
            for message in messages:
                print(f"[{scanner}] {message}")
