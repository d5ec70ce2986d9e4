"""Xamarin solution scanner."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ciscout.core.files import filter_by_name, filter_by_suffix, relative_path
from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, OptionNode, OptionType
from ciscout.generation import steps
from ciscout.generation.builder import PRIMARY_WORKFLOW_ID, ConfigBuilder, to_yaml
from ciscout.generation.descriptor import XamarinConfigDescriptor, generate_config_map
from ciscout.generation.steps import SSHKeyActivation, env_input
from ciscout.scanners.base import ScannerOptions, ScannerPlugin

LOGGER = get_logger(__name__)

SCANNER_NAME = "xamarin"
DEFAULT_CONFIG_NAME = "default-xamarin-config"

SOLUTION_EXTENSION = ".sln"
SOLUTION_CONFIGURATION_START = "GlobalSection(SolutionConfigurationPlatforms) = preSolution"
SOLUTION_CONFIGURATION_END = "EndGlobalSection"

PROJECT_INPUT_KEY = "xamarin_project"
PROJECT_ENV_KEY = "BITRISE_PROJECT_PATH"
PROJECT_TITLE = "Path to the Xamarin Solution file"

CONFIGURATION_INPUT_KEY = "xamarin_configuration"
CONFIGURATION_ENV_KEY = "BITRISE_XAMARIN_CONFIGURATION"
CONFIGURATION_TITLE = "Xamarin solution configuration"

PLATFORM_INPUT_KEY = "xamarin_platform"
PLATFORM_ENV_KEY = "BITRISE_XAMARIN_PLATFORM"
PLATFORM_TITLE = "Xamarin solution platform"

IOS_LICENSE_INPUT_KEY = "xamarin_ios_license"
IOS_LICENSE_ENV_KEY = "__XAMARIN_IOS_LICENSE_VALUE__"
ANDROID_LICENSE_INPUT_KEY = "xamarin_android_license"
ANDROID_LICENSE_ENV_KEY = "__XAMARIN_ANDROID_LICENSE_VALUE__"

NO_VALID_SOLUTION = "No valid solution file found"

# Platform APIs, in lookup order.
PLATFORM_APIS = {
    'Include="Mono.Android"': "Mono.Android",
    'Include="monotouch"': "monotouch",
    'Include="Xamarin.iOS"': "Xamarin.iOS",
}
TEST_FRAMEWORKS = {
    'Include="Xamarin.UITest': "Xamarin UITest",
    'Include="MonoTouch.NUnitLite': "NUnitLite test",
    'Include="nunit.framework': "NUnit test",
}

_PROJECT_RE = re.compile(r'Project\("[^"]*"\)\s*=\s*"[^"]*",\s*"([^"]*\.csproj)"')


@dataclass
class Solution:
    path: Path
    # configuration -> platforms, in file order.
    configurations: Dict[str, List[str]] = field(default_factory=dict)
    projects: List[Path] = field(default_factory=list)


def is_components_path(path: Path) -> bool:
    return "Components" in path.parts[:-1]


def filter_solution_files(paths: List[Path]) -> List[Path]:
    return [path for path in filter_by_suffix(paths, SOLUTION_EXTENSION) if not is_components_path(path)]


def parse_solution_configurations(text: str) -> Dict[str, List[str]]:
    """Read the ``Configuration|Platform`` pairs of a solution.

    Raises:
        ValueError: On a malformed line inside the configuration section.
    """
    configurations: Dict[str, List[str]] = {}
    in_section = False
    for line in text.splitlines():
        if SOLUTION_CONFIGURATION_START in line:
            in_section = True
            continue
        if SOLUTION_CONFIGURATION_END in line:
            in_section = False
            continue
        if not in_section or not line.strip():
            continue

        parts = line.split("=")
        if len(parts) != 2:
            raise ValueError(f"Failed to parse config line ({line.strip()})")
        config, sep, platform = parts[1].strip().partition("|")
        if not sep:
            continue
        platforms = configurations.setdefault(config, [])
        if platform not in platforms:
            platforms.append(platform)
    return configurations


def parse_solution_projects(solution_path: Path, text: str) -> List[Path]:
    projects: List[Path] = []
    for line in text.splitlines():
        match = _PROJECT_RE.search(line)
        if match:
            projects.append(solution_path.parent / match.group(1).replace("\\", "/"))
    return projects


def read_solution(path: Path) -> Solution:
    text = path.read_text(encoding="utf-8-sig", errors="replace")
    return Solution(
        path=path,
        configurations=parse_solution_configurations(text),
        projects=parse_solution_projects(path, text),
    )


def project_kind(project_path: Path) -> Optional[str]:
    """Platform API or test framework a .csproj references, if any."""
    try:
        content = project_path.read_text(encoding="utf-8-sig", errors="replace").lower()
    except OSError as e:
        LOGGER.warning(f"Failed to read project {project_path}: {e}")
        return None
    for table in (PLATFORM_APIS, TEST_FRAMEWORKS):
        for pattern, kind in table.items():
            if pattern.lower() in content:
                return kind
    return None


class XamarinScanner(ScannerPlugin):
    """Detects Xamarin solutions."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._paths: List[Path] = []
        self._solution_files: List[Path] = []
        self._descriptor = XamarinConfigDescriptor()

    @property
    def name(self) -> str:
        return SCANNER_NAME

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        LOGGER.info("Searching for solution files")
        self._paths = self._list_files(search_dir)
        self._solution_files = filter_solution_files(self._paths)
        LOGGER.info(f"{len(self._solution_files)} solution file(s) detected")
        return bool(self._solution_files)

    def options(self) -> ScannerOptions:
        has_nuget = bool(filter_by_name(self._paths, "packages.config"))
        has_components = any(is_components_path(path) for path in self._paths)
        LOGGER.info(f"NuGet packages: {has_nuget}, Xamarin Components: {has_components}")
        self._descriptor = XamarinConfigDescriptor(
            has_nuget=has_nuget, has_components=has_components
        )

        project_option = OptionNode.new_option(PROJECT_TITLE, "", PROJECT_ENV_KEY)
        for solution_file in self._solution_files:
            LOGGER.info(f"Inspecting solution file: {solution_file}")
            solution = read_solution(solution_file)
            if not solution.configurations:
                LOGGER.warning(f"No config found for {solution_file}")
                continue
            for project in solution.projects:
                kind = project_kind(project)
                if kind is None:
                    LOGGER.warning(f"No platform api or test framework found in {project}")
                else:
                    LOGGER.info(f"{project.name}: {kind}")

            configuration_option = OptionNode.new_option(
                CONFIGURATION_TITLE, "", CONFIGURATION_ENV_KEY
            )
            for configuration, platforms in solution.configurations.items():
                platform_option = OptionNode.new_option(PLATFORM_TITLE, "", PLATFORM_ENV_KEY)
                for platform in platforms:
                    platform_option.add_config(
                        platform, OptionNode.new_config_option(self._descriptor.config_name)
                    )
                configuration_option.add_option(configuration, platform_option)
            project_option.add_option(
                relative_path(solution_file, self.search_dir), configuration_option
            )

        if not project_option.children:
            raise ValueError(NO_VALID_SOLUTION)
        return ScannerOptions(root=project_option, warnings=[], icons=[])

    def configs(self, is_private_repository: bool) -> ConfigMap:
        activation = SSHKeyActivation.for_repository(is_private_repository)
        return generate_config_map(
            [self._descriptor], lambda descriptor: render_config(descriptor, activation)
        )

    def default_options(self) -> OptionNode:
        project_option = OptionNode.new_option(PROJECT_TITLE, "", PROJECT_ENV_KEY, OptionType.USER_INPUT)
        configuration_option = OptionNode.new_option(
            CONFIGURATION_TITLE, "", CONFIGURATION_ENV_KEY, OptionType.USER_INPUT
        )
        platform_option = OptionNode.new_option(PLATFORM_TITLE, "", PLATFORM_ENV_KEY, OptionType.USER_INPUT)
        project_option.add_option("_", configuration_option)
        configuration_option.add_option("_", platform_option)
        platform_option.add_config("_", OptionNode.new_config_option(DEFAULT_CONFIG_NAME))
        return project_option

    def default_configs(self) -> ConfigMap:
        descriptor = XamarinConfigDescriptor(has_nuget=True, has_components=True)
        return {DEFAULT_CONFIG_NAME: render_config(descriptor, SSHKeyActivation.CONDITIONAL)}


def render_config(descriptor: XamarinConfigDescriptor, activation: SSHKeyActivation) -> str:
    builder = ConfigBuilder()
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_prepare_steps(activation))
    builder.append_steps(
        PRIMARY_WORKFLOW_ID,
        steps.certificate_and_profile_installer(),
        steps.xamarin_user_management(
            env_input(IOS_LICENSE_INPUT_KEY, IOS_LICENSE_ENV_KEY),
            env_input(ANDROID_LICENSE_INPUT_KEY, ANDROID_LICENSE_ENV_KEY),
        ),
    )
    if descriptor.has_nuget:
        builder.append_steps(PRIMARY_WORKFLOW_ID, steps.nuget_restore())
    if descriptor.has_components:
        builder.append_steps(PRIMARY_WORKFLOW_ID, steps.xamarin_components_restore())
    builder.append_steps(
        PRIMARY_WORKFLOW_ID,
        steps.xamarin_archive(
            env_input(PROJECT_INPUT_KEY, PROJECT_ENV_KEY),
            env_input(CONFIGURATION_INPUT_KEY, CONFIGURATION_ENV_KEY),
            env_input(PLATFORM_INPUT_KEY, PLATFORM_ENV_KEY),
        ),
    )
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())
    return to_yaml(builder.generate(SCANNER_NAME))
