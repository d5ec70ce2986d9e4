"""Scan pipeline: orchestration, aggregation and result entry points."""

from ciscout.pipeline.orchestrator import (
    ScannerOrchestrator,
    ScannerOutput,
    ScannerStatus,
    run_scanner,
    run_scanners,
)

__all__ = [
    "ScannerOrchestrator",
    "ScannerOutput",
    "ScannerStatus",
    "run_scanner",
    "run_scanners",
]
