"""Pipeline generation.

This package provides:
- ConfigBuilder, the bitrise.yml document model
- Step list item factories
- Config descriptors and deduplication
"""

from ciscout.generation.builder import (
    DEPLOY_WORKFLOW_ID,
    PRIMARY_WORKFLOW_ID,
    ConfigBuilder,
    to_yaml,
)
from ciscout.generation.descriptor import (
    ConfigDescriptor,
    ConfigNameCollisionError,
    dedupe_descriptors,
    generate_config_map,
)
from ciscout.generation.steps import SSHKeyActivation

__all__ = [
    "ConfigBuilder",
    "ConfigDescriptor",
    "ConfigNameCollisionError",
    "DEPLOY_WORKFLOW_ID",
    "PRIMARY_WORKFLOW_ID",
    "SSHKeyActivation",
    "dedupe_descriptors",
    "generate_config_map",
    "to_yaml",
]
