"""package.json and Cordova config.xml helpers shared by the JavaScript scanners."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import defusedxml.ElementTree as ElementTree  # type: ignore[import-untyped]

from ciscout.core.files import filter_by_name, without_component
from ciscout.core.logging import get_logger

LOGGER = get_logger(__name__)

CORDOVA_NAMESPACE_MARKER = "cordova.apache.org"


@dataclass
class PackageJson:
    """The parts of a package.json the scanners look at."""

    path: Path
    name: str = ""
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)

    def has_dependency(self, name: str) -> bool:
        return name in self.dependencies or name in self.dev_dependencies

    def has_dependency_like(self, fragment: str) -> bool:
        """True if any (dev) dependency name contains ``fragment``."""
        return any(fragment in dep for dep in [*self.dependencies, *self.dev_dependencies])

    def has_script(self, name: str) -> bool:
        return name in self.scripts


def parse_package_json(path: Path) -> PackageJson:
    """Parse a package.json file.

    Raises:
        ValueError: If the file is not a JSON object.
        OSError: If the file cannot be read.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Failed to parse {path}: not a JSON object")

    def _mapping(key: str) -> Dict[str, str]:
        value = data.get(key) or {}
        return {str(k): str(v) for k, v in value.items()} if isinstance(value, dict) else {}

    return PackageJson(
        path=path,
        name=str(data.get("name") or ""),
        dependencies=_mapping("dependencies"),
        dev_dependencies=_mapping("devDependencies"),
        scripts=_mapping("scripts"),
    )


def find_package_json_files(paths: Iterable[Path]) -> List[Path]:
    return without_component(filter_by_name(paths, "package.json"), "node_modules")


@dataclass
class CordovaWidget:
    """Root ``<widget>`` element of a Cordova config.xml."""

    path: Path
    widget_id: str = ""
    version: str = ""
    namespaces: Dict[str, str] = field(default_factory=dict)

    @property
    def cdv_namespace(self) -> str:
        return self.namespaces.get("cdv", "")

    @property
    def is_cordova(self) -> bool:
        return CORDOVA_NAMESPACE_MARKER in self.cdv_namespace


def parse_config_xml(path: Path) -> CordovaWidget:
    """Parse a config.xml file into a CordovaWidget.

    Raises:
        ValueError: If the file is not well-formed or its root is not ``widget``.
    """
    namespaces: Dict[str, str] = {}
    root = None
    try:
        for event, item in ElementTree.iterparse(str(path), events=("start-ns", "start")):
            if event == "start-ns":
                prefix, uri = item
                namespaces.setdefault(prefix, uri)
            elif root is None:
                root = item
    except ElementTree.ParseError as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e

    if root is None or root.tag.rsplit("}", 1)[-1] != "widget":
        raise ValueError(f"{path} is not a widget configuration")

    return CordovaWidget(
        path=path,
        widget_id=root.get("id", ""),
        version=root.get("version", ""),
        namespaces=namespaces,
    )


def find_root_config_xml(paths: Iterable[Path]) -> Optional[Path]:
    """Return the shallowest config.xml outside dependency folders.

    ``paths`` must already be sorted by component count.
    """
    candidates = without_component(filter_by_name(paths, "config.xml"), "platforms")
    return candidates[0] if candidates else None
