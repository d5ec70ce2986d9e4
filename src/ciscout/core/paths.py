"""Working directory handling for scans."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from ciscout.core.logging import get_logger

LOGGER = get_logger(__name__)


def resolve_search_dir(search_dir: Union[str, Path, None]) -> Path:
    """Return the absolute search directory, defaulting to the current one.

    Raises:
        OSError: If the current directory cannot be determined.
        FileNotFoundError: If ``search_dir`` does not exist.
    """
    if search_dir is None or str(search_dir) == "":
        return Path(os.getcwd())
    path = Path(search_dir).expanduser()
    if not path.is_absolute():
        path = Path(os.getcwd()) / path
    return path.resolve(strict=True)


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Change into ``path`` for the duration of the block.

    The previous working directory is restored on every exit path, including
    when the block raises.
    """
    previous = os.getcwd()
    if Path(previous) == path:
        yield path
        return

    os.chdir(path)
    LOGGER.debug(f"Changed working directory to {path}")
    try:
        yield path
    finally:
        try:
            os.chdir(previous)
        except OSError as e:
            LOGGER.warning(f"Failed to change dir back to {previous}: {e}")
