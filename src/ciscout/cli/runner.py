"""CLI runner orchestration.

This module handles command dispatch and execution for the ciscout CLI.
"""

from __future__ import annotations

from argparse import Namespace
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Iterable, Optional

from ciscout.cli.arguments import build_parser
from ciscout.cli.commands.config import ConfigCommand
from ciscout.cli.commands.init import InitCommand
from ciscout.cli.commands.manual_config import ManualConfigCommand
from ciscout.cli.config_bridge import ConfigBridge
from ciscout.cli.exit_codes import EXIT_FAILURE, EXIT_INVALID_USAGE, EXIT_SUCCESS
from ciscout.config import load_config
from ciscout.config.loader import ConfigError
from ciscout.config.models import CIScoutConfig
from ciscout.core.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


def get_version() -> str:
    """Get ciscout version.

    Returns:
        Version string from package metadata or fallback.
    """
    try:
        return version("ciscout")
    except PackageNotFoundError:
        # Fallback for editable installs that have not yet built metadata.
        from ciscout import __version__
        return __version__


class CLIRunner:
    """Orchestrates CLI execution with subcommand dispatch."""

    def __init__(self) -> None:
        self.parser = build_parser()
        self._version = get_version()
        self.config_cmd = ConfigCommand()
        self.manual_config_cmd = ManualConfigCommand()
        self.init_cmd = InitCommand()

    def run(self, argv: Optional[Iterable[str]] = None) -> int:
        """Run the CLI.

        Args:
            argv: Command-line arguments (defaults to sys.argv).

        Returns:
            Exit code.
        """
        argv_list = list(argv) if argv is not None else None
        try:
            args = self.parser.parse_args(argv_list)
        except SystemExit as e:
            # argparse exits 0 for --help and 2 for usage errors.
            return EXIT_SUCCESS if not e.code else EXIT_INVALID_USAGE

        # Configure logging as early as possible
        configure_logging(
            debug=args.debug,
            verbose=args.verbose,
            quiet=args.quiet,
        )

        if args.version:
            print(self._version)
            return EXIT_SUCCESS

        command = getattr(args, "command", None)
        if command == "config":
            return self._run_command(self.config_cmd, args, self._load(args, Path(args.dir)))
        elif command == "init":
            return self._run_command(self.init_cmd, args, self._load(args, Path(args.dir)))
        elif command == "manual-config":
            return self._run_command(self.manual_config_cmd, args, self._load(args, Path.cwd()))
        else:
            # No command specified - show help
            self.parser.print_help()
            return EXIT_SUCCESS

    def _load(self, args: Namespace, project_root: Path) -> Optional[CIScoutConfig]:
        try:
            return load_config(
                project_root=project_root.resolve(),
                cli_config_path=Path(args.config) if getattr(args, "config", None) else None,
                cli_overrides=ConfigBridge.args_to_overrides(args),
            )
        except ConfigError as e:
            LOGGER.error(str(e))
            return None

    def _run_command(self, command, args: Namespace, config: Optional[CIScoutConfig]) -> int:
        if config is None:
            return EXIT_INVALID_USAGE
        try:
            return command.execute(args, config)
        except Exception as e:
            if args.debug:
                import traceback
                traceback.print_exc()
            LOGGER.error(f"{command.name} failed: {e}")
            return EXIT_FAILURE
