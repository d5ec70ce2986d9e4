from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, NamedTuple, Optional

from ciscout.config.ignore import IgnorePatterns
from ciscout.core.files import list_files
from ciscout.core.models import ConfigMap, Icon, OptionNode


class ScannerOptions(NamedTuple):
    """What ``ScannerPlugin.options`` returns."""

    root: OptionNode
    warnings: List[str]
    icons: List[Icon]


class ScannerPlugin(ABC):
    """Base class for all platform scanners.

    A scanner is created fresh for every scan and keeps the state found by
    ``detect_platform`` for the ``options`` and ``configs`` calls that follow.
    Any method may raise; the orchestrator records the message.
    """

    def __init__(self, ignore: Optional[IgnorePatterns] = None) -> None:
        self._ignore = ignore
        self._search_dir: Optional[Path] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Scanner identifier (e.g., 'android', 'ios')."""

    @abstractmethod
    def detect_platform(self, search_dir: Path) -> bool:
        """Return True if the platform is present under ``search_dir``."""

    def excluded_scanner_names(self) -> List[str]:
        """Scanners that must not run once this one has been detected."""
        return []

    @abstractmethod
    def options(self) -> ScannerOptions:
        """Build the option tree for the detected project(s)."""

    @abstractmethod
    def configs(self, is_private_repository: bool) -> ConfigMap:
        """Generate a pipeline for every config the option tree references."""

    @abstractmethod
    def default_options(self) -> OptionNode:
        """Option tree used when the user configures the project manually."""

    @abstractmethod
    def default_configs(self) -> ConfigMap:
        """Configs referenced by ``default_options``."""

    @property
    def search_dir(self) -> Path:
        if self._search_dir is None:
            raise RuntimeError(f"{self.name}: detect_platform has not been called")
        return self._search_dir

    def _list_files(self, search_dir: Path, max_depth: Optional[int] = None) -> List[Path]:
        return list_files(search_dir, ignore=self._ignore, max_depth=max_depth)


class AutomationToolScannerPlugin(ScannerPlugin):
    """A scanner for a cross-platform tool, run after the project scanners."""

    def __init__(self, ignore: Optional[IgnorePatterns] = None) -> None:
        super().__init__(ignore=ignore)
        self._project_types: List[str] = []

    def set_detected_project_types(self, project_types: List[str]) -> None:
        self._project_types = list(project_types)

    @property
    def detected_project_types(self) -> List[str]:
        return list(self._project_types)


PROJECT_TYPE_TITLE = "Project type"
PROJECT_TYPE_SUMMARY = "The project type of the app you added to Bitrise."


def project_type_config_name(config_name: str, project_type: str) -> str:
    return f"{config_name}_{project_type}"


def add_project_type_options(root: OptionNode, project_types: List[str]) -> OptionNode:
    """Replace every config leaf of a tool tree with a project type selector.

    A leaf pointing at ``name`` becomes a selector whose values are the
    detected project types, each pointing at ``name_{type}``. The tree is
    modified in place and returned.
    """
    for node in [root, *_descendants(root)]:
        for value, child in list(node.children.items()):
            if not child.is_terminal:
                continue
            selector = OptionNode.new_option(PROJECT_TYPE_TITLE, PROJECT_TYPE_SUMMARY, "")
            for project_type in project_types:
                selector.add_config(
                    project_type,
                    OptionNode.new_config_option(
                        project_type_config_name(child.config or "", project_type), child.icons
                    ),
                )
            node.children[value] = selector
    return root


def _descendants(node: OptionNode) -> List[OptionNode]:
    found: List[OptionNode] = []
    for child in node.children.values():
        if not child.is_terminal:
            found.append(child)
            found.extend(_descendants(child))
    return found
