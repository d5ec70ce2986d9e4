"""Default option trees and configs for every scanner, without detection."""

from __future__ import annotations

from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, OptionNode, OptionType, ScanResult
from ciscout.generation import steps
from ciscout.generation.builder import PRIMARY_WORKFLOW_ID, ConfigBuilder, to_yaml
from ciscout.generation.steps import SSHKeyActivation
from ciscout.scanners import automation_tool_scanners, project_scanners

LOGGER = get_logger(__name__)

OTHER_SCANNER_NAME = "other"
OTHER_CONFIG_NAME = "other-config"


class ManualConfigError(Exception):
    """Creating the default configs failed."""


def other_options() -> OptionNode:
    root = OptionNode.new_option("Project type", "", "", OptionType.OPTIONAL_USER_INPUT)
    root.add_config("_", OptionNode.new_config_option(OTHER_CONFIG_NAME))
    return root


def other_configs() -> ConfigMap:
    builder = ConfigBuilder()
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_prepare_steps(SSHKeyActivation.CONDITIONAL))
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())
    return {OTHER_CONFIG_NAME: to_yaml(builder.generate(OTHER_SCANNER_NAME))}


def manual_config() -> ScanResult:
    """Collect every scanner's default options and configs.

    Raises:
        ManualConfigError: If a scanner fails to build its defaults.
    """
    result = ScanResult()
    for scanner in [*project_scanners(), *automation_tool_scanners()]:
        try:
            result.options[scanner.name] = scanner.default_options()
            result.configs[scanner.name] = scanner.default_configs()
        except Exception as e:
            raise ManualConfigError(f"Failed to create default configs: {e}") from e
        LOGGER.debug(f"Default configs of {scanner.name}: {list(result.configs[scanner.name])}")

    result.options[OTHER_SCANNER_NAME] = other_options()
    result.configs[OTHER_SCANNER_NAME] = other_configs()
    return result
