"""Assemble per-scanner outputs into a ScanResult."""

from __future__ import annotations

from typing import Dict

from ciscout.core.models import ScanResult
from ciscout.pipeline.orchestrator import ScannerOutput, ScannerStatus

_REPORTED_STATUSES = (ScannerStatus.DETECTED, ScannerStatus.DETECTED_WITH_ERRORS)


def aggregate(outputs: Dict[str, ScannerOutput]) -> ScanResult:
    """Copy each scanner's output into the result under its own name.

    - warnings are kept for detected scanners, or whenever there are any;
    - errors are kept only for detected scanners;
    - options and configs are kept only for cleanly detected scanners that
      generated at least one config;
    - icons from every scanner are collected once per filename.
    """
    result = ScanResult()
    for name, output in outputs.items():
        has_warnings = bool(output.warnings or output.warnings_with_recommendations)
        if output.status != ScannerStatus.NOT_DETECTED or has_warnings:
            if output.warnings:
                result.warnings[name] = list(output.warnings)
            if output.warnings_with_recommendations:
                result.warnings_with_recommendations[name] = list(
                    output.warnings_with_recommendations
                )

        if output.status in _REPORTED_STATUSES:
            if output.errors:
                result.errors[name] = list(output.errors)
            if output.errors_with_recommendations:
                result.errors_with_recommendations[name] = list(
                    output.errors_with_recommendations
                )

        if (
            output.status == ScannerStatus.DETECTED
            and output.options is not None
            and output.configs
        ):
            result.options[name] = output.options
            result.configs[name] = dict(output.configs)

        result.add_icons(output.icons)
    return result
