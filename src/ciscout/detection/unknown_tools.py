"""Detection of build tools no scanner supports.

Tuist, XcodeGen, Bazel, Buck and Kotlin Multiplatform projects are reported
in the log so a failed or partial scan can be explained. Results never change
the scan itself.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ciscout.config.ignore import IgnorePatterns
from ciscout.core.files import filter_by_name, list_files
from ciscout.core.logging import get_logger

LOGGER = get_logger(__name__)

MAX_DEPTH = 4

_KOTLIN_MULTIPLATFORM_RE = re.compile(r"""kotlin\(\s*["']multiplatform["']\s*\)""")


@dataclass
class UnknownToolResult:
    """A detected tool and the file that gave it away."""

    tool: str
    evidence: Optional[Path] = None


def _first_named(*names: str) -> Callable[[List[Path]], Optional[Path]]:
    def detect(paths: List[Path]) -> Optional[Path]:
        found = filter_by_name(paths, *names)
        return found[0] if found else None

    return detect


def _kotlin_multiplatform(paths: List[Path]) -> Optional[Path]:
    for gradle_file in filter_by_name(paths, "build.gradle", "build.gradle.kts"):
        content = gradle_file.read_text(encoding="utf-8", errors="replace")
        if _KOTLIN_MULTIPLATFORM_RE.search(content):
            return gradle_file
    return None


# Tool name -> detector over the listed files.
DETECTORS: List[Tuple[str, Callable[[List[Path]], Optional[Path]]]] = [
    ("Tuist", _first_named("Project.swift")),
    ("XcodeGen", _first_named("project.yml")),
    ("Bazel", _first_named("WORKSPACE", "WORKSPACE.bazel")),
    ("Buck", _first_named("BUCK")),
    ("Kotlin Multiplatform", _kotlin_multiplatform),
]


def detect_unknown_tools(
    search_dir: Path,
    ignore: Optional[IgnorePatterns] = None,
) -> List[UnknownToolResult]:
    """Run every detector; a failing detector is logged and skipped."""
    try:
        paths = list_files(search_dir, ignore=ignore, max_depth=MAX_DEPTH)
    except OSError as e:
        LOGGER.warning(f"Failed to list files for tool detection: {e}")
        return []

    results: List[UnknownToolResult] = []
    for tool, detector in DETECTORS:
        try:
            evidence = detector(paths)
        except OSError as e:
            LOGGER.warning(f"{tool} detection failed: {e}")
            continue
        if evidence is not None:
            results.append(UnknownToolResult(tool=tool, evidence=evidence))
    return results


def log_unknown_tools(search_dir: Path, ignore: Optional[IgnorePatterns] = None) -> List[UnknownToolResult]:
    results = detect_unknown_tools(search_dir, ignore)
    for result in results:
        LOGGER.info(f"Unsupported tool detected: {result.tool} ({result.evidence})")
    return results
