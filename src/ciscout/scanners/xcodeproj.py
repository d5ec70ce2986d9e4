"""Readers for Xcode project, workspace and scheme files.

Only the handful of facts the Xcode scanners need are extracted: the SDKs a
project builds for, its native targets, its shared schemes and the projects a
workspace references. ``project.pbxproj`` is an old-style plist, so targets
are read with regular expressions rather than a plist parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

import defusedxml.ElementTree as ElementTree  # type: ignore[import-untyped]

from ciscout.core.logging import get_logger

LOGGER = get_logger(__name__)

PROJECT_EXTENSION = ".xcodeproj"
WORKSPACE_EXTENSION = ".xcworkspace"

APPLICATION_PRODUCT_TYPE = "com.apple.product-type.application"
APP_CLIP_PRODUCT_TYPE = "com.apple.product-type.application.on-demand-install-capable"
TEST_PRODUCT_TYPES = frozenset({
    "com.apple.product-type.bundle.unit-test",
    "com.apple.product-type.bundle.ui-testing",
})

_SDKROOT_RE = re.compile(r"\bSDKROOT\s*=\s*\"?([A-Za-z]+)\"?\s*;")
_OBJECT_RE = re.compile(
    r"^\s*([0-9A-Fa-f]{24})\s*(?:/\*.*?\*/)?\s*=\s*\{[ \t]*\n(.*?)^\s*\};",
    re.MULTILINE | re.DOTALL,
)
_ISA_RE = re.compile(r"\bisa\s*=\s*(\w+)\s*;")
_NAME_RE = re.compile(r"^\s*name\s*=\s*\"?(.*?)\"?\s*;", re.MULTILINE)
_PRODUCT_TYPE_RE = re.compile(r"\bproductType\s*=\s*\"?([\w.\-]+)\"?\s*;")
_DEPENDENCIES_RE = re.compile(r"\bdependencies\s*=\s*\((.*?)\)\s*;", re.DOTALL)
_TARGET_RE = re.compile(r"\btarget\s*=\s*([0-9A-Fa-f]{24})")
_ID_RE = re.compile(r"([0-9A-Fa-f]{24})")


@dataclass
class XcodeTarget:
    """A native target of an Xcode project."""

    target_id: str
    name: str
    product_type: str = ""
    dependency_ids: List[str] = field(default_factory=list)
    has_xctest: bool = False
    has_app_clip: bool = False

    @property
    def is_application(self) -> bool:
        return self.product_type == APPLICATION_PRODUCT_TYPE

    @property
    def is_test(self) -> bool:
        return self.product_type in TEST_PRODUCT_TYPES


@dataclass
class XcodeScheme:
    name: str
    has_xctest: bool = False
    buildable_ids: List[str] = field(default_factory=list)


@dataclass
class XcodeProject:
    path: Path
    sdks: Set[str] = field(default_factory=set)
    targets: List[XcodeTarget] = field(default_factory=list)
    shared_schemes: List[XcodeScheme] = field(default_factory=list)

    @property
    def application_targets(self) -> List[XcodeTarget]:
        return [target for target in self.targets if target.is_application]


@dataclass
class XcodeWorkspace:
    path: Path
    projects: List[XcodeProject] = field(default_factory=list)
    shared_schemes: List[XcodeScheme] = field(default_factory=list)
    # Set when the workspace is generated by (or contains) CocoaPods.
    is_pod_workspace: bool = False

    def all_shared_schemes(self) -> List[XcodeScheme]:
        """Workspace schemes first, then the schemes of its projects."""
        schemes = list(self.shared_schemes)
        for project in self.projects:
            schemes.extend(project.shared_schemes)
        return schemes

    def all_targets(self) -> List[XcodeTarget]:
        return [target for project in self.projects for target in project.targets]


def read_sdks(pbxproj_text: str) -> Set[str]:
    return set(_SDKROOT_RE.findall(pbxproj_text))


def parse_targets(pbxproj_text: str) -> List[XcodeTarget]:
    """Read native targets and resolve test and app clip relations.

    An application target has tests when a test bundle target depends on it,
    and has an app clip when it depends on an app clip target.
    """
    targets: List[XcodeTarget] = []
    dependency_targets: Dict[str, str] = {}

    for object_id, body in _OBJECT_RE.findall(pbxproj_text):
        isa = _ISA_RE.search(body)
        if isa is None:
            continue
        if isa.group(1) == "PBXTargetDependency":
            target = _TARGET_RE.search(body)
            if target:
                dependency_targets[object_id] = target.group(1)
        elif isa.group(1) == "PBXNativeTarget":
            name = _NAME_RE.search(body)
            product_type = _PRODUCT_TYPE_RE.search(body)
            dependencies = _DEPENDENCIES_RE.search(body)
            targets.append(
                XcodeTarget(
                    target_id=object_id,
                    name=name.group(1) if name else "",
                    product_type=product_type.group(1) if product_type else "",
                    dependency_ids=_ID_RE.findall(dependencies.group(1)) if dependencies else [],
                )
            )

    by_id = {target.target_id: target for target in targets}
    for target in targets:
        depends_on = [
            by_id[dependency_targets[dep]]
            for dep in target.dependency_ids
            if dep in dependency_targets and dependency_targets[dep] in by_id
        ]
        for dependency in depends_on:
            if target.is_test:
                dependency.has_xctest = True
            if target.is_application and dependency.product_type == APP_CLIP_PRODUCT_TYPE:
                target.has_app_clip = True
    return targets


def parse_scheme(path: Path) -> XcodeScheme:
    """Parse an ``.xcscheme`` file.

    Raises:
        ValueError: If the file is not well-formed XML.
    """
    try:
        root = ElementTree.parse(str(path)).getroot()
    except ElementTree.ParseError as e:
        raise ValueError(f"Failed to parse scheme {path}: {e}") from e

    buildable_ids: List[str] = []
    for reference in root.iterfind("./BuildAction/BuildActionEntries/BuildActionEntry/BuildableReference"):
        blueprint = reference.get("BlueprintIdentifier", "")
        if blueprint:
            buildable_ids.append(blueprint)

    has_xctest = False
    for testable in root.iterfind("./TestAction/Testables/TestableReference"):
        if testable.get("skipped", "NO") == "YES":
            continue
        reference = testable.find("BuildableReference")
        if reference is not None and reference.get("BuildableName", "").endswith(".xctest"):
            has_xctest = True
            break

    return XcodeScheme(name=path.stem, has_xctest=has_xctest, buildable_ids=buildable_ids)


def read_shared_schemes(container: Path) -> List[XcodeScheme]:
    schemes: List[XcodeScheme] = []
    scheme_dir = container / "xcshareddata" / "xcschemes"
    if not scheme_dir.is_dir():
        return schemes
    for scheme_path in sorted(scheme_dir.glob("*.xcscheme")):
        try:
            schemes.append(parse_scheme(scheme_path))
        except ValueError as e:
            LOGGER.warning(str(e))
    return schemes


def read_project(path: Path) -> XcodeProject:
    """Read an ``.xcodeproj`` bundle.

    Raises:
        FileNotFoundError: If the bundle has no project.pbxproj.
    """
    pbxproj = path / "project.pbxproj"
    text = pbxproj.read_text(encoding="utf-8", errors="replace")
    return XcodeProject(
        path=path,
        sdks=read_sdks(text),
        targets=parse_targets(text),
        shared_schemes=read_shared_schemes(path),
    )


def read_workspace_project_paths(path: Path) -> List[Path]:
    """Projects referenced from ``contents.xcworkspacedata``, in file order.

    Raises:
        ValueError: If the workspace data is not well-formed XML.
    """
    data = path / "contents.xcworkspacedata"
    if not data.exists():
        return []
    try:
        root = ElementTree.parse(str(data)).getroot()
    except ElementTree.ParseError as e:
        raise ValueError(f"Failed to parse workspace {path}: {e}") from e

    projects: List[Path] = []
    _collect_file_refs(root, path.parent, projects)
    return projects


def _collect_file_refs(element, base: Path, projects: List[Path]) -> None:
    for child in element:
        location = child.get("location", "")
        kind, _, relative = location.partition(":")
        if kind == "absolute":
            target = Path(relative)
        elif kind in ("group", "container"):
            target = base / relative
        else:
            target = base
        if child.tag == "Group":
            _collect_file_refs(child, target, projects)
        elif child.tag == "FileRef" and target.suffix == PROJECT_EXTENSION:
            projects.append(target)


def find_project(projects: List[XcodeProject], path: Path) -> Optional[XcodeProject]:
    resolved = path.resolve()
    for project in projects:
        if project.path.resolve() == resolved:
            return project
    return None
