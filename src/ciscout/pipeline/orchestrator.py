"""Scanner orchestration.

Runs the project scanners, then the automation tool scanners, and records
every outcome per scanner name. A failing scanner never aborts the scan: its
exception is recorded as a warning or error and the next scanner runs.
"""

from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Union

from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, ErrorWithRecommendations, Icon, OptionNode, ScanResult
from ciscout.core.paths import resolve_search_dir, working_directory
from ciscout.pipeline.recommendations import (
    CONFIGS_FAILED_TAG,
    DETECT_PLATFORM_FAILED_TAG,
    OPTIONS_FAILED_TAG,
    classify,
)
from ciscout.scanners.base import AutomationToolScannerPlugin, ScannerPlugin

LOGGER = get_logger(__name__)

GENERAL_SCANNER_NAME = "general"
OTHER_PROJECT_TYPE = "other"


class ScannerStatus(str, Enum):
    NOT_DETECTED = "not_detected"
    DETECTED_WITH_ERRORS = "detected_with_errors"
    DETECTED = "detected"


@dataclass
class ScannerOutput:
    """Everything one scanner produced during a scan."""

    status: ScannerStatus = ScannerStatus.NOT_DETECTED
    warnings: List[str] = field(default_factory=list)
    warnings_with_recommendations: List[ErrorWithRecommendations] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    errors_with_recommendations: List[ErrorWithRecommendations] = field(default_factory=list)
    options: Optional[OptionNode] = None
    configs: ConfigMap = field(default_factory=dict)
    icons: List[Icon] = field(default_factory=list)
    excluded_scanners: List[str] = field(default_factory=list)

    def add_warnings(self, tag: str, *messages: str) -> None:
        """Record warnings, attaching a recommendation where one applies."""
        for message in messages:
            recommendation = classify(tag, message)
            if recommendation is not None:
                self.warnings_with_recommendations.append(
                    ErrorWithRecommendations(error=message, recommendations=recommendation)
                )
            else:
                self.warnings.append(message)

    def add_errors(self, tag: str, *messages: str) -> None:
        """Record errors, attaching a recommendation where one applies."""
        for message in messages:
            recommendation = classify(tag, message)
            if recommendation is not None:
                self.errors_with_recommendations.append(
                    ErrorWithRecommendations(error=message, recommendations=recommendation)
                )
            else:
                self.errors.append(message)


def run_scanner(
    scanner: ScannerPlugin,
    search_dir: Path,
    is_private_repository: bool,
) -> ScannerOutput:
    """Run one scanner through detect, options and configs."""
    output = ScannerOutput()
    LOGGER.info(f"Scanner: {scanner.name}")

    try:
        detected = scanner.detect_platform(search_dir)
    except Exception as e:
        LOGGER.warning(f"Scanner {scanner.name} failed to detect platform: {e}")
        output.add_warnings(DETECT_PLATFORM_FAILED_TAG, str(e))
        return output

    if not detected:
        LOGGER.info(f"Scanner {scanner.name}: platform not detected")
        return output

    LOGGER.info(f"Scanner {scanner.name}: platform detected")
    try:
        options = scanner.options()
        output.add_warnings(OPTIONS_FAILED_TAG, *options.warnings)
    except Exception as e:
        LOGGER.error(f"Scanner {scanner.name} failed to create options: {e}")
        output.status = ScannerStatus.DETECTED_WITH_ERRORS
        output.add_warnings(OPTIONS_FAILED_TAG, str(e))
        return output

    try:
        configs = scanner.configs(is_private_repository)
        excluded_scanners = list(scanner.excluded_scanner_names())
    except Exception as e:
        LOGGER.error(f"Scanner {scanner.name} failed to generate configs: {e}")
        output.status = ScannerStatus.DETECTED_WITH_ERRORS
        output.add_errors(CONFIGS_FAILED_TAG, str(e))
        return output

    output.status = ScannerStatus.DETECTED
    output.options = options.root
    output.configs = configs
    output.icons = list(options.icons)
    output.excluded_scanners = excluded_scanners
    return output


def run_scanners(
    scanners: Sequence[ScannerPlugin],
    search_dir: Path,
    is_private_repository: bool,
    excluded: Set[str],
) -> Dict[str, ScannerOutput]:
    """Run scanners in order, honoring and growing the ``excluded`` set.

    ``excluded`` belongs to the caller; names excluded by a detected scanner
    are added to it and skip every scanner that follows.
    """
    outputs: Dict[str, ScannerOutput] = {}
    for scanner in scanners:
        if scanner.name in excluded:
            LOGGER.warning(f"Scanner {scanner.name} skipped: excluded by an earlier scanner")
            continue

        output = run_scanner(scanner, search_dir, is_private_repository)
        outputs[scanner.name] = output
        if output.status == ScannerStatus.DETECTED and output.excluded_scanners:
            LOGGER.info(f"Scanner {scanner.name} excludes: {output.excluded_scanners}")
            excluded.update(output.excluded_scanners)
    return outputs


def detected_scanner_names(outputs: Dict[str, ScannerOutput]) -> List[str]:
    return [name for name, output in outputs.items() if output.status == ScannerStatus.DETECTED]


class ScannerOrchestrator:
    """Two-pass scan: project scanners first, automation tool scanners second."""

    def __init__(
        self,
        project_scanners: Sequence[ScannerPlugin],
        tool_scanners: Sequence[AutomationToolScannerPlugin] = (),
    ) -> None:
        self._project_scanners = list(project_scanners)
        self._tool_scanners = list(tool_scanners)

    def run(self, search_dir: Union[str, Path, None], is_private_repository: bool) -> ScanResult:
        """Scan ``search_dir``. Never raises for scanner or setup failures."""
        try:
            resolved = resolve_search_dir(search_dir)
        except OSError as e:
            return _setup_failure(f"Failed to expand path ({search_dir}): {e}")

        with ExitStack() as stack:
            try:
                stack.enter_context(working_directory(resolved))
            except OSError as e:
                return _setup_failure(f"Failed to change dir, to ({resolved}): {e}")
            outputs = self._run_passes(resolved, is_private_repository)

        # Import here to avoid circular imports
        from ciscout.pipeline.aggregator import aggregate

        return aggregate(outputs)

    def _run_passes(self, search_dir: Path, is_private_repository: bool) -> Dict[str, ScannerOutput]:
        LOGGER.info(f"Running project scanners in {search_dir}")
        project_outputs = run_scanners(
            self._project_scanners, search_dir, is_private_repository, set()
        )

        project_types = detected_scanner_names(project_outputs) or [OTHER_PROJECT_TYPE]
        LOGGER.info(f"Detected project types: {project_types}")
        for tool_scanner in self._tool_scanners:
            tool_scanner.set_detected_project_types(project_types)

        LOGGER.info("Running automation tool scanners")
        tool_outputs = run_scanners(self._tool_scanners, search_dir, is_private_repository, set())

        merged = dict(project_outputs)
        merged.update(tool_outputs)
        return merged


def _setup_failure(message: str) -> ScanResult:
    LOGGER.error(message)
    general = ScannerOutput()
    general.add_errors(DETECT_PLATFORM_FAILED_TAG, message)
    return _general_result(general)


def _general_result(general: ScannerOutput) -> ScanResult:
    result = ScanResult()
    if general.errors:
        result.errors[GENERAL_SCANNER_NAME] = list(general.errors)
    for entry in general.errors_with_recommendations:
        result.add_error_with_recommendation(GENERAL_SCANNER_NAME, entry)
    return result
