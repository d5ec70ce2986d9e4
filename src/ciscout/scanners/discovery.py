"""Scanner discovery via Python entry points.

Third-party packages can add scanners by registering them in one of two
groups:
- Project scanners: ciscout.project_scanners
- Automation tool scanners: ciscout.tool_scanners
"""

from __future__ import annotations

from importlib.metadata import entry_points
from typing import Dict, Type, TypeVar

from ciscout.core.logging import get_logger

LOGGER = get_logger(__name__)

PROJECT_SCANNER_ENTRY_POINT_GROUP = "ciscout.project_scanners"
TOOL_SCANNER_ENTRY_POINT_GROUP = "ciscout.tool_scanners"

T = TypeVar("T")


def discover_plugins(group: str, base_class: Type[T]) -> Dict[str, Type[T]]:
    """Discover all installed scanners for a given entry point group.

    Plugins register themselves in their pyproject.toml:

        [project.entry-points."ciscout.project_scanners"]
        kmp = "ciscout_kmp.scanner:KotlinMultiplatformScanner"

    Args:
        group: Entry point group name.
        base_class: Base class every plugin must inherit from.

    Returns:
        Dictionary mapping entry point names to scanner classes, sorted by name.
    """
    plugins: Dict[str, Type[T]] = {}

    try:
        eps = entry_points(group=group)
    except TypeError:
        # Python 3.9 compatibility
        all_eps = entry_points()
        eps = all_eps.get(group, [])  # type: ignore[attr-defined]

    for ep in sorted(eps, key=lambda ep: ep.name):
        try:
            plugin_class = ep.load()
            if not isinstance(plugin_class, type) or not issubclass(plugin_class, base_class):
                LOGGER.warning(
                    f"Plugin '{ep.name}' does not inherit from {base_class.__name__}, skipping"
                )
                continue
            plugins[ep.name] = plugin_class
            LOGGER.debug(f"Discovered plugin: {ep.name} (group: {group})")
        except Exception as e:
            LOGGER.warning(f"Failed to load plugin '{ep.name}': {e}")

    return plugins
