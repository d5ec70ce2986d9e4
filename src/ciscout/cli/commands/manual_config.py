"""Manual config command implementation."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from typing import Optional

from ciscout.cli.commands import Command
from ciscout.cli.exit_codes import EXIT_FAILURE, EXIT_SUCCESS
from ciscout.config.models import CIScoutConfig
from ciscout.core.logging import get_logger
from ciscout.output.writer import OutputFormat, write_scan_result
from ciscout.pipeline.manual import ManualConfigError, manual_config

LOGGER = get_logger(__name__)


class ManualConfigCommand(Command):
    """Writes the default options and configs of every scanner."""

    @property
    def name(self) -> str:
        return "manual-config"

    def execute(self, args: Namespace, config: Optional[CIScoutConfig] = None) -> int:
        config = config or CIScoutConfig()
        try:
            result = manual_config()
        except ManualConfigError as e:
            LOGGER.error(str(e))
            return EXIT_FAILURE

        path = write_scan_result(
            result, Path(config.output.dir), OutputFormat(config.output.format)
        )
        print(f"Default configs written to {path}")
        return EXIT_SUCCESS
