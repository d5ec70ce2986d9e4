"""Scan entry points used by the CLI."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ciscout.config.ignore import IgnorePatterns
from ciscout.core.logging import get_logger
from ciscout.core.models import ErrorWithRecommendations, ScanResult
from ciscout.detection.unknown_tools import log_unknown_tools
from ciscout.output.writer import OutputFormat, write_scan_result
from ciscout.pipeline.orchestrator import GENERAL_SCANNER_NAME, ScannerOrchestrator
from ciscout.pipeline.recommendations import no_platform_detected_recommendation
from ciscout.scanners import automation_tool_scanners, project_scanners
from ciscout.scanners.base import AutomationToolScannerPlugin, ScannerPlugin

LOGGER = get_logger(__name__)

NO_PLATFORM_DETECTED = "No known platform detected"
DIRECTORY_LOG_DEPTH = 3


class NoPlatformDetectedError(Exception):
    """No scanner produced an option tree.

    ``result`` holds the scan result, with the recommendation attached.
    """

    def __init__(self, message: str, result: Optional[ScanResult] = None) -> None:
        super().__init__(message)
        self.result = result


def generate_scan_result(
    search_dir: Path,
    is_private_repository: bool,
    scanners: Optional[Sequence[ScannerPlugin]] = None,
    tool_scanners: Optional[Sequence[AutomationToolScannerPlugin]] = None,
    ignore: Optional[IgnorePatterns] = None,
    disabled: Sequence[str] = (),
) -> Tuple[ScanResult, bool]:
    """Scan ``search_dir`` with every registered scanner.

    Returns:
        The scan result and whether any platform was detected. When nothing
        is detected a ``general`` error with a recommendation is added.
    """
    if scanners is None:
        scanners = project_scanners(ignore=ignore, disabled=disabled)
    if tool_scanners is None:
        tool_scanners = automation_tool_scanners(ignore=ignore, disabled=disabled)

    result = ScannerOrchestrator(scanners, tool_scanners).run(search_dir, is_private_repository)
    log_unknown_tools(search_dir, ignore)

    if result.options:
        LOGGER.info(f"Detected platforms: {result.detected_scanners()}")
        return result, True

    names = [scanner.name for scanner in [*scanners, *tool_scanners]]
    result.add_error_with_recommendation(
        GENERAL_SCANNER_NAME,
        ErrorWithRecommendations(
            error=NO_PLATFORM_DETECTED,
            recommendations=no_platform_detected_recommendation(names),
        ),
    )
    return result, False


def generate_and_write_results(
    search_dir: Path,
    output_dir: Path,
    fmt: OutputFormat,
    is_private_repository: bool = True,
    ignore: Optional[IgnorePatterns] = None,
    disabled: Sequence[str] = (),
) -> ScanResult:
    """Scan, then write the result and icons to ``output_dir``.

    Raises:
        NoPlatformDetectedError: After writing, if no platform was detected.
    """
    result, detected = generate_scan_result(
        search_dir, is_private_repository, ignore=ignore, disabled=disabled
    )
    path = write_scan_result(result, output_dir, fmt)
    LOGGER.info(f"Scan result written to {path}")

    if not detected:
        log_directory_tree(search_dir, DIRECTORY_LOG_DEPTH)
        raise NoPlatformDetectedError(NO_PLATFORM_DETECTED, result)
    return result


def directory_tree(root: Path, max_depth: int) -> List[str]:
    """Indented listing of ``root`` down to ``max_depth`` levels."""
    lines: List[str] = []

    def walk(directory: Path, depth: int) -> None:
        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError as e:
            lines.append(f"{'  ' * depth}<{e}>")
            return
        for entry in entries:
            suffix = "/" if entry.is_dir(follow_symlinks=False) else ""
            lines.append(f"{'  ' * depth}{entry.name}{suffix}")
            if suffix and depth + 1 < max_depth:
                walk(Path(entry.path), depth + 1)

    walk(root, 0)
    return lines


def log_directory_tree(search_dir: Path, max_depth: int) -> None:
    LOGGER.info(f"Contents of {search_dir} ({max_depth} levels):")
    for line in directory_tree(search_dir, max_depth):
        LOGGER.info(line)
