"""Flutter project scanner."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml

from ciscout.core.files import filter_by_name, relative_path, without_component
from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, OptionNode, OptionType
from ciscout.generation import steps
from ciscout.generation.builder import (
    DEPLOY_WORKFLOW_ID,
    PRIMARY_WORKFLOW_ID,
    ConfigBuilder,
    to_yaml,
)
from ciscout.generation.descriptor import FlutterConfigDescriptor, generate_config_map
from ciscout.generation.steps import SSHKeyActivation, env_input
from ciscout.scanners.base import ScannerOptions, ScannerPlugin

LOGGER = get_logger(__name__)

SCANNER_NAME = "flutter"
PUBSPEC = "pubspec.yaml"

PROJECT_LOCATION_INPUT_KEY = "project_location"
PROJECT_LOCATION_ENV_KEY = "BITRISE_FLUTTER_PROJECT_LOCATION"
PROJECT_LOCATION_TITLE = "Project location"
PROJECT_LOCATION_SUMMARY = (
    "The path to your Flutter project, stored as an Environment Variable. In your "
    "Workflows, you can specify paths relative to this path."
)

PLATFORM_INPUT_KEY = "platform"
PLATFORM_TITLE = "Platform"
PLATFORM_SUMMARY = "The target platform for your first build: iOS, Android or both."

IOS_OUTPUT_TYPE_INPUT_KEY = "ios_output_type"
IOS_OUTPUT_TYPE_ARCHIVE = "archive"

PRIMARY_WORKFLOW_DESCRIPTION = "Builds project and runs tests."
DEPLOY_WORKFLOW_DESCRIPTION = (
    "Builds and deploys app.\n\n"
    "If you build for iOS, make sure to set up code signing secrets for a successful build."
)

DEFAULT_PROJECTS = [
    FlutterConfigDescriptor(has_test=True, has_ios=True, has_android=True, project_id=0),
    FlutterConfigDescriptor(has_test=True, has_ios=True, has_android=False, project_id=1),
    FlutterConfigDescriptor(has_test=True, has_ios=False, has_android=True, project_id=2),
]


@dataclass
class FlutterProject:
    root: Path
    relative_root: str
    name: str
    descriptor: FlutterConfigDescriptor


def read_pubspec(path: Path) -> Optional[dict]:
    """Load a pubspec.yaml, returning None if it is not a mapping.

    Raises:
        ValueError: If the file is not valid YAML.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e
    return data if isinstance(data, dict) else None


def is_flutter_pubspec(pubspec: dict) -> bool:
    dependencies = pubspec.get("dependencies") or {}
    return isinstance(dependencies, dict) and "flutter" in dependencies


def has_tests(project_root: Path) -> bool:
    test_dir = project_root / "test"
    return test_dir.is_dir() and any(test_dir.rglob("*_test.dart"))


class FlutterScanner(ScannerPlugin):
    """Detects Flutter apps by their pubspec.yaml."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._projects: List[FlutterProject] = []

    @property
    def name(self) -> str:
        return SCANNER_NAME

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        LOGGER.info("Searching for pubspec.yaml files")
        pubspecs = without_component(filter_by_name(self._list_files(search_dir), PUBSPEC), "node_modules")
        LOGGER.info(f"{len(pubspecs)} pubspec.yaml file(s) detected")

        self._projects = []
        for pubspec_path in pubspecs:
            try:
                pubspec = read_pubspec(pubspec_path)
            except (OSError, ValueError) as e:
                LOGGER.error(str(e))
                continue
            if pubspec is None or not is_flutter_pubspec(pubspec):
                LOGGER.debug(f"{pubspec_path} has no flutter dependency, skipping")
                continue

            root = pubspec_path.parent
            descriptor = FlutterConfigDescriptor(
                has_test=has_tests(root),
                has_ios=(root / "ios").is_dir(),
                has_android=(root / "android").is_dir(),
                project_id=len(self._projects),
            )
            project = FlutterProject(
                root=root,
                relative_root=relative_path(root, search_dir),
                name=str(pubspec.get("name") or ""),
                descriptor=descriptor,
            )
            LOGGER.info(
                f"Flutter project '{project.name}' at {project.relative_root} "
                f"(test: {descriptor.has_test}, platform: {descriptor.platform or 'none'})"
            )
            self._projects.append(project)

        return bool(self._projects)

    def excluded_scanner_names(self) -> List[str]:
        return ["ios", "android"]

    def options(self) -> ScannerOptions:
        location_option = OptionNode.new_option(
            PROJECT_LOCATION_TITLE,
            PROJECT_LOCATION_SUMMARY,
            PROJECT_LOCATION_ENV_KEY,
            OptionType.SELECTOR,
        )
        for project in self._projects:
            location_option.add_config(
                project.relative_root,
                OptionNode.new_config_option(project.descriptor.config_name),
            )
        return ScannerOptions(root=location_option, warnings=[], icons=[])

    def configs(self, is_private_repository: bool) -> ConfigMap:
        activation = SSHKeyActivation.for_repository(is_private_repository)
        return generate_config_map(
            [project.descriptor for project in self._projects],
            lambda descriptor: render_config(descriptor, activation),
        )

    def default_options(self) -> OptionNode:
        location_option = OptionNode.new_option(
            PROJECT_LOCATION_TITLE,
            PROJECT_LOCATION_SUMMARY,
            PROJECT_LOCATION_ENV_KEY,
            OptionType.USER_INPUT,
        )
        platform_option = OptionNode.new_option(
            PLATFORM_TITLE, PLATFORM_SUMMARY, "", OptionType.SELECTOR
        )
        location_option.add_option("_", platform_option)
        for descriptor in DEFAULT_PROJECTS:
            platform_option.add_config(
                descriptor.platform, OptionNode.new_config_option(descriptor.config_name)
            )
        return location_option

    def default_configs(self) -> ConfigMap:
        return generate_config_map(
            DEFAULT_PROJECTS,
            lambda descriptor: render_config(descriptor, SSHKeyActivation.CONDITIONAL),
        )


def render_config(descriptor: FlutterConfigDescriptor, activation: SSHKeyActivation) -> str:
    location = env_input(PROJECT_LOCATION_INPUT_KEY, PROJECT_LOCATION_ENV_KEY)
    builder = ConfigBuilder()

    builder.set_workflow_description(PRIMARY_WORKFLOW_ID, PRIMARY_WORKFLOW_DESCRIPTION)
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_prepare_steps(activation))
    builder.append_steps(PRIMARY_WORKFLOW_ID, steps.flutter_installer())
    if descriptor.has_test:
        builder.append_steps(PRIMARY_WORKFLOW_ID, steps.flutter_test(location))
    else:
        builder.append_steps(PRIMARY_WORKFLOW_ID, steps.flutter_analyze(location))
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())

    if descriptor.platform:
        builder.set_workflow_description(DEPLOY_WORKFLOW_ID, DEPLOY_WORKFLOW_DESCRIPTION)
        builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_prepare_steps(activation))
        if descriptor.has_ios:
            builder.append_steps(DEPLOY_WORKFLOW_ID, steps.certificate_and_profile_installer())
        builder.append_steps(
            DEPLOY_WORKFLOW_ID, steps.flutter_installer(), steps.flutter_analyze(location)
        )
        if descriptor.has_test:
            builder.append_steps(DEPLOY_WORKFLOW_ID, steps.flutter_test(location))

        build_inputs = [location, {PLATFORM_INPUT_KEY: descriptor.platform}]
        if descriptor.has_ios:
            build_inputs.append({IOS_OUTPUT_TYPE_INPUT_KEY: IOS_OUTPUT_TYPE_ARCHIVE})
        builder.append_steps(DEPLOY_WORKFLOW_ID, steps.flutter_build(*build_inputs))
        builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_deploy_steps())

    return to_yaml(builder.generate(SCANNER_NAME))
