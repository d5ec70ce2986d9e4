"""Directory listing shared by scanners and tool detectors."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional

from ciscout.core.logging import get_logger

if TYPE_CHECKING:
    from ciscout.config.ignore import IgnorePatterns

LOGGER = get_logger(__name__)

# Directory names never descended into.
EXCLUDED_DIR_NAMES = frozenset({
    ".git",
    ".idea",
    "node_modules",
    "Pods",
    "Carthage",
    "CordovaLib",
})

# Directory extensions never descended into.
EXCLUDED_DIR_EXTENSIONS = frozenset({".framework"})


def _is_excluded_dir(name: str) -> bool:
    if name in EXCLUDED_DIR_NAMES:
        return True
    return os.path.splitext(name)[1] in EXCLUDED_DIR_EXTENSIONS


def component_sort_key(path: Path):
    """Sort shallower paths first, then alphabetically."""
    return (len(path.parts), path.as_posix())


def list_files(
    search_dir: Path,
    ignore: Optional["IgnorePatterns"] = None,
    max_depth: Optional[int] = None,
) -> List[Path]:
    """List every file and directory below ``search_dir``.

    Args:
        search_dir: Root of the walk.
        ignore: Optional gitignore-style patterns to skip.
        max_depth: Optional depth limit, 1 meaning direct children only.

    Returns:
        Absolute paths sorted by component count, then name.
    """
    root = search_dir.resolve()
    paths: List[Path] = []
    root_depth = len(root.parts)

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        depth = len(current.parts) - root_depth

        kept_dirs = []
        for name in sorted(dirnames):
            if _is_excluded_dir(name):
                continue
            candidate = current / name
            if ignore is not None and ignore.matches(candidate, root):
                continue
            kept_dirs.append(name)
            paths.append(candidate)

        if max_depth is not None and depth + 1 >= max_depth:
            dirnames[:] = []
        else:
            dirnames[:] = kept_dirs

        for name in filenames:
            candidate = current / name
            if ignore is not None and ignore.matches(candidate, root):
                continue
            paths.append(candidate)

    paths.sort(key=component_sort_key)
    LOGGER.debug(f"Listed {len(paths)} paths under {root}")
    return paths


def filter_by_name(paths: Iterable[Path], *names: str) -> List[Path]:
    """Keep paths whose base name is one of ``names``."""
    wanted = set(names)
    return [p for p in paths if p.name in wanted]


def filter_by_suffix(paths: Iterable[Path], *suffixes: str) -> List[Path]:
    """Keep paths whose extension is one of ``suffixes``."""
    wanted = set(suffixes)
    return [p for p in paths if p.suffix in wanted]


def without_component(paths: Iterable[Path], component: str) -> List[Path]:
    """Drop paths that contain ``component`` as a path part."""
    return [p for p in paths if component not in p.parts]


def relative_path(path: Path, base: Path) -> str:
    """Posix path of ``path`` relative to ``base``, ``"."`` for the base itself."""
    try:
        rel = path.resolve().relative_to(base.resolve())
    except ValueError:
        return path.as_posix()
    text = rel.as_posix()
    return text if text else "."
