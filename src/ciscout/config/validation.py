"""Configuration validation for ciscout.

Validates known keys and warns on unknown ones. Validation never raises;
it returns warnings and logs them.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import get_close_matches
from typing import Any, Dict, List, Optional, Set

from ciscout.core.logging import get_logger

LOGGER = get_logger(__name__)

VALID_TOP_LEVEL_KEYS: Set[str] = {
    "private_repository",
    "output",
    "ignore",
    "scanners",
    "upload",
}

VALID_OUTPUT_KEYS: Set[str] = {
    "format",
    "dir",
}

VALID_OUTPUT_FORMATS: Set[str] = {
    "yaml",
    "json",
}

VALID_SCANNERS_KEYS: Set[str] = {
    "disabled",
}

VALID_UPLOAD_KEYS: Set[str] = {
    "url",
    "submit_url",
    "api_token",
}


@dataclass
class ConfigValidationWarning:
    """A validation warning for configuration."""

    message: str
    source: str
    key: Optional[str] = None
    suggestion: Optional[str] = None


def validate_config(
    data: Dict[str, Any],
    source: str,
) -> List[ConfigValidationWarning]:
    """Validate a configuration dictionary.

    Args:
        data: Config dictionary to validate.
        source: Source file path for warning messages.

    Returns:
        List of validation warnings.
    """
    warnings: List[ConfigValidationWarning] = []

    def warn(message: str, key: Optional[str] = None, suggestion: Optional[str] = None) -> None:
        warning = ConfigValidationWarning(
            message=message, source=source, key=key, suggestion=suggestion
        )
        warnings.append(warning)
        _log_warning(warning)

    for key in data.keys():
        if key not in VALID_TOP_LEVEL_KEYS:
            warn(
                f"Unknown top-level key '{key}'",
                key=key,
                suggestion=_suggest_key(key, VALID_TOP_LEVEL_KEYS),
            )

    private = data.get("private_repository")
    if private is not None and not isinstance(private, bool):
        warn(
            f"'private_repository' must be a boolean, got {type(private).__name__}",
            key="private_repository",
        )

    ignore = data.get("ignore")
    if ignore is not None and not isinstance(ignore, list):
        warn(f"'ignore' must be a list, got {type(ignore).__name__}", key="ignore")

    _validate_section(data, "output", VALID_OUTPUT_KEYS, warn)
    output = data.get("output")
    if isinstance(output, dict):
        fmt = output.get("format")
        if fmt is not None and str(fmt).lower() not in VALID_OUTPUT_FORMATS:
            warn(
                f"Invalid value '{fmt}' for 'output.format'. "
                f"Valid values: {', '.join(sorted(VALID_OUTPUT_FORMATS))}",
                key="output.format",
                suggestion=_suggest_key(str(fmt).lower(), VALID_OUTPUT_FORMATS),
            )

    _validate_section(data, "scanners", VALID_SCANNERS_KEYS, warn)
    scanners = data.get("scanners")
    if isinstance(scanners, dict):
        disabled = scanners.get("disabled")
        if disabled is not None and not isinstance(disabled, list):
            warn(
                f"'scanners.disabled' must be a list, got {type(disabled).__name__}",
                key="scanners.disabled",
            )

    _validate_section(data, "upload", VALID_UPLOAD_KEYS, warn)

    return warnings


def _validate_section(data: Dict[str, Any], section: str, valid_keys: Set[str], warn) -> None:
    value = data.get(section)
    if value is None:
        return
    if not isinstance(value, dict):
        warn(f"'{section}' must be a mapping, got {type(value).__name__}", key=section)
        return
    for key in value.keys():
        if key not in valid_keys:
            warn(
                f"Unknown key '{section}.{key}'",
                key=f"{section}.{key}",
                suggestion=_suggest_key(key, valid_keys),
            )


def _suggest_key(invalid_key: str, valid_keys: Set[str]) -> Optional[str]:
    """Suggest a valid key for a potential typo."""
    matches = get_close_matches(invalid_key, list(valid_keys), n=1, cutoff=0.6)
    return matches[0] if matches else None


def _log_warning(warning: ConfigValidationWarning) -> None:
    msg = f"{warning.message} in {warning.source}"
    if warning.suggestion:
        msg += f" (did you mean '{warning.suggestion}'?)"
    LOGGER.warning(msg)
