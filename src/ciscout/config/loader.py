"""Configuration file loading and merging.

Handles loading configuration from YAML files with:
- Project-level config (.ciscout.yml) in the search directory
- An explicit config file given with --config
- Environment variable expansion (${VAR} and ${VAR:-default})
- CLI overrides merged on top
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ciscout.config.models import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_OUTPUT_FORMAT,
    CIScoutConfig,
    OutputConfig,
    ScannersConfig,
    UploadConfig,
)
from ciscout.config.validation import validate_config
from ciscout.core.logging import get_logger

LOGGER = get_logger(__name__)

PROJECT_CONFIG_NAMES = [".ciscout.yml", ".ciscout.yaml", "ciscout.yml", "ciscout.yaml"]

# Environment variable pattern: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class ConfigError(Exception):
    """Configuration loading or parsing error."""

    pass


def load_config(
    project_root: Path,
    cli_config_path: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
) -> CIScoutConfig:
    """Load configuration with proper precedence.

    Precedence (highest to lowest):
    1. CLI flags (cli_overrides)
    2. Custom config file (cli_config_path) OR project config (.ciscout.yml)
    3. Built-in defaults

    Args:
        project_root: Directory searched for a project config file.
        cli_config_path: Optional path to a custom config file.
        cli_overrides: Dict of CLI flag overrides.

    Returns:
        Merged CIScoutConfig instance.

    Raises:
        ConfigError: If the config file is missing, unparsable or malformed.
    """
    sources: List[str] = []
    merged: Dict[str, Any] = {}

    if cli_config_path:
        if not cli_config_path.exists():
            raise ConfigError(f"Config file not found: {cli_config_path}")
        config_path: Optional[Path] = cli_config_path
        label = "custom"
    else:
        config_path = find_project_config(project_root)
        label = "project"

    if config_path is not None:
        try:
            file_dict = load_yaml_file(config_path)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        validate_config(file_dict, source=str(config_path))
        merged = merge_configs(merged, file_dict)
        sources.append(f"{label}:{config_path}")
        LOGGER.debug(f"Loaded {label} config from {config_path}")

    if cli_overrides:
        merged = merge_configs(merged, cli_overrides)
        sources.append("cli")
        LOGGER.debug("Applied CLI overrides")

    config = dict_to_config(merged)
    config._config_sources = sources

    LOGGER.debug(f"Config loaded from sources: {sources}")
    return config


def find_project_config(project_root: Path) -> Optional[Path]:
    """Find a config file in ``project_root``, or None."""
    for name in PROJECT_CONFIG_NAMES:
        config_path = project_root / name
        if config_path.exists():
            return config_path
    return None


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML config file, expanding environment variables.

    Raises:
        yaml.YAMLError: If YAML parsing fails.
        ConfigError: If the document is not a mapping.
    """
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    data = yaml.safe_load(content)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(data).__name__}")

    return expand_env_vars(data)


def expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in config values."""
    if isinstance(data, dict):
        return {k: expand_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        return ENV_VAR_PATTERN.sub(_env_var_replacer, data)
    else:
        return data


def _env_var_replacer(match: re.Match) -> str:
    var_name = match.group(1)
    default_value = match.group(2)

    value = os.environ.get(var_name)
    if value is not None:
        return value
    if default_value is not None:
        return default_value

    LOGGER.warning(f"Environment variable ${var_name} is not set and has no default")
    return ""


def merge_configs(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two config dicts, with overlay taking precedence.

    Scalars and lists from overlay replace base values; dicts merge
    recursively.
    """
    result = base.copy()

    for key, overlay_value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(overlay_value, dict):
            result[key] = merge_configs(result[key], overlay_value)
        else:
            result[key] = overlay_value

    return result


def dict_to_config(data: Dict[str, Any]) -> CIScoutConfig:
    """Convert a merged config dict to a typed CIScoutConfig.

    Raises:
        ConfigError: If a value has the wrong type.
    """
    private = data.get("private_repository", True)
    if not isinstance(private, bool):
        raise ConfigError(
            f"'private_repository' must be a boolean, got {type(private).__name__}"
        )

    output_data = _section(data, "output")
    output_format = str(output_data.get("format") or DEFAULT_OUTPUT_FORMAT).lower()
    if output_format not in ("yaml", "json"):
        raise ConfigError(f"Unsupported output format: {output_format}")

    ignore = data.get("ignore") or []
    if not isinstance(ignore, list):
        raise ConfigError(f"'ignore' must be a list, got {type(ignore).__name__}")

    scanners_data = _section(data, "scanners")
    disabled = scanners_data.get("disabled") or []
    if not isinstance(disabled, list):
        raise ConfigError(
            f"'scanners.disabled' must be a list, got {type(disabled).__name__}"
        )

    upload_data = _section(data, "upload")

    return CIScoutConfig(
        private_repository=private,
        output=OutputConfig(
            format=output_format,
            dir=str(output_data.get("dir") or DEFAULT_OUTPUT_DIR),
        ),
        ignore=[str(p) for p in ignore],
        scanners=ScannersConfig(disabled=[str(name) for name in disabled]),
        upload=UploadConfig(
            url=upload_data.get("url") or None,
            submit_url=upload_data.get("submit_url") or None,
            api_token=upload_data.get("api_token") or None,
        ),
    )


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value
