"""Shared fixtures: fake scanners and on-disk project builders."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from PIL import Image

from ciscout.core.models import ConfigMap, Icon, OptionNode
from ciscout.scanners.base import AutomationToolScannerPlugin, ScannerOptions, ScannerPlugin
from ciscout.selection.walker import MAX_WALK_DEPTH


def simple_tree(config_name: str, env_key: str = "FAKE_ENV") -> OptionNode:
    root = OptionNode.new_option("Fake option", "", env_key)
    root.add_config("value", OptionNode.new_config_option(config_name))
    return root


class FakeScanner(ScannerPlugin):
    """Scanner whose every answer is scripted by the test."""

    def __init__(
        self,
        name: str,
        detected: bool = True,
        configs: Optional[ConfigMap] = None,
        warnings: Optional[List[str]] = None,
        excluded: Optional[List[str]] = None,
        icons: Optional[List[Icon]] = None,
        fail_in: str = "",
        error: str = "boom",
    ) -> None:
        super().__init__()
        self._name = name
        self._detected = detected
        self._configs = configs if configs is not None else {f"{name}-config": "yaml"}
        self._warnings = warnings or []
        self._excluded = excluded or []
        self._icons = icons or []
        self._fail_in = fail_in
        self._error = error
        self.calls: List[str] = []
        self.cwd_during_detect: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    def _maybe_fail(self, step: str) -> None:
        self.calls.append(step)
        if self._fail_in == step:
            raise RuntimeError(self._error)

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        self.cwd_during_detect = os.getcwd()
        self._maybe_fail("detect")
        return self._detected

    def excluded_scanner_names(self) -> List[str]:
        return list(self._excluded)

    def options(self) -> ScannerOptions:
        self._maybe_fail("options")
        root = simple_tree(next(iter(self._configs), f"{self._name}-config"))
        return ScannerOptions(root=root, warnings=list(self._warnings), icons=list(self._icons))

    def configs(self, is_private_repository: bool) -> ConfigMap:
        self._maybe_fail("configs")
        return dict(self._configs)

    def default_options(self) -> OptionNode:
        return simple_tree(f"default-{self._name}-config")

    def default_configs(self) -> ConfigMap:
        return {f"default-{self._name}-config": "yaml"}


class FakeToolScanner(AutomationToolScannerPlugin):
    """Tool scanner that produces one config per detected project type."""

    def __init__(self, name: str = "fake-tool", detected: bool = True) -> None:
        super().__init__()
        self._name = name
        self._detected = detected

    @property
    def name(self) -> str:
        return self._name

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        return self._detected

    def options(self) -> ScannerOptions:
        root = OptionNode.new_option("Project type", "", "")
        for project_type in self.detected_project_types:
            root.add_config(project_type, OptionNode.new_config_option(f"tool_{project_type}"))
        return ScannerOptions(root=root, warnings=[], icons=[])

    def configs(self, is_private_repository: bool) -> ConfigMap:
        return {f"tool_{t}": "yaml" for t in self.detected_project_types}

    def default_options(self) -> OptionNode:
        return simple_tree("default-tool-config")

    def default_configs(self) -> ConfigMap:
        return {"default-tool-config": "yaml"}


@pytest.fixture
def fake_scanner() -> Callable[..., FakeScanner]:
    """Factory for scripted project scanners."""
    return FakeScanner


@pytest.fixture
def fake_tool_scanner() -> Callable[..., FakeToolScanner]:
    return FakeToolScanner


def _write_files(root: Path, files: Dict[str, str]) -> Path:
    for relative, content in files.items():
        path = root / relative
        if relative.endswith("/"):
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def write_files() -> Callable[[Path, Dict[str, str]], Path]:
    """Create files (or directories, for keys ending in '/') below a root."""
    return _write_files


def _object_id(n: int) -> str:
    return f"{n:024X}"


def pbxproj(
    sdk: str = "iphoneos",
    app_name: str = "App",
    with_tests: bool = True,
    with_app_clip: bool = False,
) -> str:
    """A minimal project.pbxproj with an app target and optional test and app clip targets."""
    objects: List[str] = []
    app_dependencies: List[str] = []

    if with_app_clip:
        objects.append(
            f"\t\t{_object_id(3)} /* Clip */ = {{\n"
            "\t\t\tisa = PBXNativeTarget;\n"
            "\t\t\tname = Clip;\n"
            '\t\t\tproductType = "com.apple.product-type.application.on-demand-install-capable";\n'
            "\t\t};\n"
        )
        objects.append(
            f"\t\t{_object_id(13)} /* PBXTargetDependency */ = {{\n"
            "\t\t\tisa = PBXTargetDependency;\n"
            f"\t\t\ttarget = {_object_id(3)} /* Clip */;\n"
            "\t\t};\n"
        )
        app_dependencies.append(_object_id(13))

    deps = "".join(f"\t\t\t\t{dep} /* PBXTargetDependency */,\n" for dep in app_dependencies)
    objects.append(
        f"\t\t{_object_id(1)} /* {app_name} */ = {{\n"
        "\t\t\tisa = PBXNativeTarget;\n"
        f"\t\t\tdependencies = (\n{deps}\t\t\t);\n"
        f"\t\t\tname = {app_name};\n"
        '\t\t\tproductType = "com.apple.product-type.application";\n'
        "\t\t};\n"
    )

    if with_tests:
        objects.append(
            f"\t\t{_object_id(2)} /* {app_name}Tests */ = {{\n"
            "\t\t\tisa = PBXNativeTarget;\n"
            "\t\t\tdependencies = (\n"
            f"\t\t\t\t{_object_id(12)} /* PBXTargetDependency */,\n"
            "\t\t\t);\n"
            f"\t\t\tname = {app_name}Tests;\n"
            '\t\t\tproductType = "com.apple.product-type.bundle.unit-test";\n'
            "\t\t};\n"
        )
        objects.append(
            f"\t\t{_object_id(12)} /* PBXTargetDependency */ = {{\n"
            "\t\t\tisa = PBXTargetDependency;\n"
            f"\t\t\ttarget = {_object_id(1)} /* {app_name} */;\n"
            "\t\t};\n"
        )

    objects.append(
        f"\t\t{_object_id(20)} /* Release */ = {{\n"
        "\t\t\tisa = XCBuildConfiguration;\n"
        f"\t\t\tSDKROOT = {sdk};\n"
        "\t\t\tname = Release;\n"
        "\t\t};\n"
    )
    return "// !$*UTF8*$!\n{\n\tobjects = {\n" + "".join(objects) + "\t};\n}\n"


def scheme_xml(app_name: str = "App", with_tests: bool = True, blueprint: str = _object_id(1)) -> str:
    testables = ""
    if with_tests:
        testables = (
            "      <Testables>\n"
            '         <TestableReference skipped = "NO">\n'
            f'            <BuildableReference BuildableName = "{app_name}Tests.xctest"/>\n'
            "         </TestableReference>\n"
            "      </Testables>\n"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<Scheme>\n"
        "   <BuildAction>\n"
        "      <BuildActionEntries>\n"
        "         <BuildActionEntry>\n"
        f'            <BuildableReference BlueprintIdentifier = "{blueprint}" BuildableName = "{app_name}.app"/>\n'
        "         </BuildActionEntry>\n"
        "      </BuildActionEntries>\n"
        "   </BuildAction>\n"
        "   <TestAction>\n"
        f"{testables}"
        "   </TestAction>\n"
        "</Scheme>\n"
    )


def _make_xcode_project(
    directory: Path,
    name: str = "App",
    sdk: str = "iphoneos",
    with_tests: bool = True,
    shared_scheme: bool = False,
    with_app_clip: bool = False,
) -> Path:
    project = directory / f"{name}.xcodeproj"
    project.mkdir(parents=True, exist_ok=True)
    (project / "project.pbxproj").write_text(
        pbxproj(sdk=sdk, app_name=name, with_tests=with_tests, with_app_clip=with_app_clip),
        encoding="utf-8",
    )
    if shared_scheme:
        scheme_dir = project / "xcshareddata" / "xcschemes"
        scheme_dir.mkdir(parents=True)
        (scheme_dir / f"{name}.xcscheme").write_text(
            scheme_xml(name, with_tests=with_tests), encoding="utf-8"
        )
    return project


@pytest.fixture
def xcode_project() -> Callable[..., Path]:
    """Factory writing a minimal .xcodeproj bundle into a directory."""
    return _make_xcode_project


ANDROID_PROJECT_FILES = {
    "build.gradle": "buildscript {}\n",
    "gradlew": "#!/bin/sh\n",
    "settings.gradle": "include ':app'\n",
    "app/build.gradle": "apply plugin: 'com.android.application'\n",
}


@pytest.fixture
def android_project(tmp_path: Path) -> Path:
    """A Gradle Android project at the root of ``tmp_path``."""
    return _write_files(tmp_path, ANDROID_PROJECT_FILES)


@pytest.fixture
def pbxproj_source() -> Callable[..., str]:
    """Builder for project.pbxproj text."""
    return pbxproj


@pytest.fixture
def scheme_source() -> Callable[..., str]:
    return scheme_xml


@pytest.fixture
def make_png(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a real PNG of the given size under ``tmp_path``."""

    def _make(name: str = "icon.png", width: int = 512, height: int = 512) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGBA", (width, height)).save(path, format="PNG")
        return path

    return _make


def _check_tree(root: OptionNode, configs: Optional[ConfigMap] = None) -> None:
    root.validate()
    assert 0 < root.depth() <= MAX_WALK_DEPTH
    if configs is not None:
        for config_name in root.config_names():
            assert config_name in configs


@pytest.fixture
def check_tree() -> Callable[..., None]:
    """Assert a scanner tree is well formed, bounded and backed by its configs."""
    return _check_tree
