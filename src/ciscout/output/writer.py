"""Write scan results to disk."""

from __future__ import annotations

import json
import shutil
from enum import Enum
from pathlib import Path
from typing import List

import yaml

from ciscout.core.logging import get_logger
from ciscout.core.models import Icon, ScanResult
from ciscout.upload.icons import InvalidIconError, validate_icon

LOGGER = get_logger(__name__)

RESULT_BASENAME = "result"
ICONS_DIR = "icons"


class OutputFormat(str, Enum):
    YAML = "yaml"
    JSON = "json"

    @property
    def extension(self) -> str:
        return "yml" if self == OutputFormat.YAML else "json"


def format_scan_result(result: ScanResult, fmt: OutputFormat) -> str:
    data = result.to_dict()
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


def copy_icons(icons: List[Icon], output_dir: Path) -> List[Path]:
    """Copy valid icons into ``output_dir/icons``; invalid ones are skipped."""
    copied: List[Path] = []
    if not icons:
        return copied

    icons_dir = output_dir / ICONS_DIR
    icons_dir.mkdir(parents=True, exist_ok=True)
    for icon in icons:
        try:
            validate_icon(icon.path)
        except InvalidIconError as e:
            LOGGER.warning(f"Skipping icon {icon.path}: {e}")
            continue
        target = icons_dir / icon.filename
        shutil.copyfile(icon.path, target)
        copied.append(target)
    LOGGER.info(f"Copied {len(copied)} icon(s) to {icons_dir}")
    return copied


def write_scan_result(result: ScanResult, output_dir: Path, fmt: OutputFormat) -> Path:
    """Write ``result.{yml|json}`` and the icons directory.

    Returns:
        Path of the written result file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    result_path = output_dir / f"{RESULT_BASENAME}.{fmt.extension}"
    result_path.write_text(format_scan_result(result, fmt), encoding="utf-8")
    LOGGER.info(f"Scan result written to {result_path}")
    copy_icons(result.icons, output_dir)
    return result_path
