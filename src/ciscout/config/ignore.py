"""Gitignore-style pattern matching for directory walks.

Patterns come from the ``ignore`` list of the config file. The pathspec
library provides full gitignore semantics (``**``, ``!`` negation, comments).
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import pathspec

from ciscout.core.logging import get_logger

LOGGER = get_logger(__name__)


class IgnorePatterns:
    """Compiled set of ignore patterns."""

    def __init__(self, patterns: List[str], source: str = "config") -> None:
        self._source = source
        self._patterns = [
            p.strip() for p in patterns if p.strip() and not p.strip().startswith("#")
        ]
        self._spec = pathspec.PathSpec.from_lines(
            pathspec.patterns.GitWildMatchPattern,
            self._patterns,
        )
        if self._patterns:
            LOGGER.debug(f"Loaded {len(self._patterns)} ignore patterns from {source}")

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def matches(self, path: Path, root: Path) -> bool:
        """Check if ``path`` is ignored, relative to ``root``."""
        try:
            rel_path = path.relative_to(root)
        except ValueError:
            rel_path = path

        rel_str = rel_path.as_posix()
        if path.is_dir():
            # Directory-only patterns such as "build/" need the trailing slash.
            rel_str += "/"
        return self._spec.match_file(rel_str)
