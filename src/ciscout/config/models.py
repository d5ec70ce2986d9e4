"""Typed configuration model for ciscout."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ciscout.config.ignore import IgnorePatterns

DEFAULT_OUTPUT_DIR = "_ciscout"
DEFAULT_OUTPUT_FORMAT = "yaml"


@dataclass
class OutputConfig:
    """Where and how the scan result is written."""

    format: str = DEFAULT_OUTPUT_FORMAT
    dir: str = DEFAULT_OUTPUT_DIR


@dataclass
class ScannersConfig:
    """Scanner selection."""

    disabled: List[str] = field(default_factory=list)


@dataclass
class UploadConfig:
    """Icon upload and result submission endpoints."""

    url: Optional[str] = None
    submit_url: Optional[str] = None
    api_token: Optional[str] = None

    @property
    def icon_upload_enabled(self) -> bool:
        return bool(self.url and self.api_token)


@dataclass
class CIScoutConfig:
    """Complete ciscout configuration."""

    private_repository: bool = True
    output: OutputConfig = field(default_factory=OutputConfig)
    ignore: List[str] = field(default_factory=list)
    scanners: ScannersConfig = field(default_factory=ScannersConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)

    # Set by the loader, for diagnostics only.
    _config_sources: List[str] = field(default_factory=list, repr=False)

    def ignore_patterns(self) -> Optional[IgnorePatterns]:
        return IgnorePatterns(self.ignore) if self.ignore else None
