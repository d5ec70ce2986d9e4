"""Config command implementation.

Scans a repository unattended and writes every option tree and config, then
optionally uploads app icons and submits the result.
"""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from typing import Optional

from ciscout.cli.commands import Command
from ciscout.cli.exit_codes import (
    EXIT_INVALID_USAGE,
    EXIT_NO_PLATFORM_DETECTED,
    EXIT_SUCCESS,
    EXIT_UPLOAD_ERROR,
)
from ciscout.config.models import CIScoutConfig
from ciscout.core.logging import get_logger
from ciscout.core.models import ScanResult
from ciscout.output.writer import OutputFormat
from ciscout.pipeline.result import NoPlatformDetectedError, generate_and_write_results
from ciscout.upload.icons import UploadError, submit_result, upload_icons

LOGGER = get_logger(__name__)


class ConfigCommand(Command):
    """Unattended scan for CI services."""

    @property
    def name(self) -> str:
        return "config"

    def execute(self, args: Namespace, config: Optional[CIScoutConfig] = None) -> int:
        config = config or CIScoutConfig()
        search_dir = Path(args.dir).resolve()
        if not search_dir.is_dir():
            LOGGER.error(f"{search_dir} is not a directory")
            return EXIT_INVALID_USAGE

        upload = config.upload
        if (upload.url or upload.submit_url) and not upload.api_token:
            LOGGER.error("--upload-url and --submit-url require --api-token")
            return EXIT_INVALID_USAGE

        output_dir = Path(config.output.dir)
        print(f"Scanning {search_dir}")
        exit_code = EXIT_SUCCESS
        try:
            result = generate_and_write_results(
                search_dir,
                output_dir,
                OutputFormat(config.output.format),
                is_private_repository=config.private_repository,
                ignore=config.ignore_patterns(),
                disabled=config.scanners.disabled,
            )
        except NoPlatformDetectedError as e:
            LOGGER.error(str(e))
            result = e.result or ScanResult()
            exit_code = EXIT_NO_PLATFORM_DETECTED
        else:
            print(f"Detected: {', '.join(result.detected_scanners())}")
        print(f"Result written to {output_dir}")

        try:
            self._upload(result, config)
        except UploadError as e:
            LOGGER.error(str(e))
            return EXIT_UPLOAD_ERROR
        return exit_code

    @staticmethod
    def _upload(result: ScanResult, config: CIScoutConfig) -> None:
        upload = config.upload
        if upload.icon_upload_enabled and result.icons:
            upload_icons(result.icons, upload.url or "", upload.api_token or "")
        if upload.submit_url and upload.api_token:
            submit_result(result, upload.submit_url, upload.api_token)
