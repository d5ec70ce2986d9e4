"""Android (Gradle) project scanner."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from ciscout.core.files import filter_by_name, relative_path
from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, Icon, OptionNode, OptionType
from ciscout.generation import steps
from ciscout.generation.builder import (
    DEPLOY_WORKFLOW_ID,
    PRIMARY_WORKFLOW_ID,
    ConfigBuilder,
    to_yaml,
)
from ciscout.generation.descriptor import ConfigDescriptor, generate_config_map
from ciscout.generation.steps import SSHKeyActivation
from ciscout.scanners.base import ScannerOptions, ScannerPlugin

LOGGER = get_logger(__name__)

SCANNER_NAME = "android"
CONFIG_NAME = "android-config"
DEFAULT_CONFIG_NAME = "default-android-config"

BUILD_GRADLE = "build.gradle"
BUILD_GRADLE_KTS = "build.gradle.kts"

PROJECT_LOCATION_ENV_KEY = "PROJECT_LOCATION"
PROJECT_LOCATION_TITLE = "The root directory of an Android project"

GRADLE_TASK_INPUT_KEY = "gradle_task"
GRADLE_TASK_ENV_KEY = "GRADLE_TASK"
GRADLE_TASK_TITLE = "Gradle task to run"
GRADLE_TASKS = ["assemble", "assembleDebug", "assembleRelease", "bundleRelease"]

BUILD_SCRIPT_TITLE = "Gradle build script language"

GRADLEW_NOT_FOUND_MESSAGE = (
    "No Gradle Wrapper (gradlew) found.\n"
    "Using a Gradle Wrapper (gradlew) is required, as the wrapper is what makes sure "
    "that the right Gradle version is installed and used for the build. More info/guide: "
    "https://docs.gradle.org/current/userguide/gradle_wrapper.html"
)

# Highest density first.
ICON_DENSITIES = ["xxxhdpi", "xxhdpi", "xhdpi", "hdpi", "mdpi", "ldpi"]
ICON_NAMES = ["ic_launcher.png", "ic_launcher_round.png"]

DEPLOY_WORKFLOW_DESCRIPTION = (
    "Builds a release variant with assembleRelease and deploys the generated "
    "artifacts to bitrise.io."
)


@dataclass(frozen=True)
class AndroidConfigDescriptor(ConfigDescriptor):
    is_kotlin_script: bool = False
    # Set when the project location is fixed by the scan rather than chosen.
    project_location: str = ""

    @property
    def prefix(self) -> str:
        return "android"

    @property
    def config_name(self) -> str:
        return CONFIG_NAME + ("-kts" if self.is_kotlin_script else "")

    @property
    def build_file(self) -> str:
        return BUILD_GRADLE_KTS if self.is_kotlin_script else BUILD_GRADLE


@dataclass
class AndroidProject:
    root: Path
    relative_root: str
    is_kotlin_script: bool
    icons: List[Icon]


def find_project_roots(gradle_files: List[Path]) -> List[Path]:
    """Shallowest directories holding a gradle build file.

    ``gradle_files`` must be sorted by component count; nested module build
    files are folded into the project that contains them.
    """
    roots: List[Path] = []
    for gradle_file in gradle_files:
        directory = gradle_file.parent
        if any(root == directory or root in directory.parents for root in roots):
            continue
        roots.append(directory)
    return roots


def find_launcher_icons(project_root: Path, paths: List[Path], search_dir: Path) -> List[Icon]:
    """Return the highest-density launcher icon of the project, if any."""
    candidates: Dict[str, Path] = {}
    for path in filter_by_name(paths, *ICON_NAMES):
        if project_root not in path.parents:
            continue
        folder = path.parent.name
        if not folder.startswith("mipmap-"):
            continue
        density = folder[len("mipmap-"):]
        if density in ICON_DENSITIES and density not in candidates:
            candidates[density] = path
    for density in ICON_DENSITIES:
        if density in candidates:
            return [Icon.from_path(candidates[density], search_dir)]
    return []


def check_local_properties(project_root: Path) -> Optional[str]:
    local_properties = project_root / "local.properties"
    if local_properties.exists():
        return (
            "The local.properties file must NOT be checked into Version Control Systems, "
            "as it contains information specific to your local configuration.\n"
            f"The location of the file is: {local_properties}"
        )
    return None


def check_gradlew(project_root: Path) -> None:
    if not (project_root / "gradlew").exists():
        raise FileNotFoundError(GRADLEW_NOT_FOUND_MESSAGE)


class AndroidScanner(ScannerPlugin):
    """Detects Gradle based Android projects."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._paths: List[Path] = []
        self._roots: List[Path] = []
        self._projects: List[AndroidProject] = []

    @property
    def name(self) -> str:
        return SCANNER_NAME

    @property
    def projects(self) -> List[AndroidProject]:
        return list(self._projects)

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        LOGGER.info("Searching for build.gradle files")
        self._paths = self._list_files(search_dir)
        gradle_files = filter_by_name(self._paths, BUILD_GRADLE, BUILD_GRADLE_KTS)
        LOGGER.info(f"{len(gradle_files)} build.gradle file(s) detected")

        self._roots = find_project_roots(gradle_files)
        if not self._roots:
            LOGGER.info("Platform not detected")
            return False

        LOGGER.info(f"Project root(s): {[relative_path(r, search_dir) for r in self._roots]}")
        return True

    def options(self) -> ScannerOptions:
        warnings: List[str] = []
        icons: List[Icon] = []
        self._projects = []

        for root in self._roots:
            warning = check_local_properties(root)
            if warning:
                warnings.append(warning)

            check_gradlew(root)

            project_icons = find_launcher_icons(root, self._paths, self.search_dir)
            icons.extend(project_icons)
            self._projects.append(
                AndroidProject(
                    root=root,
                    relative_root=relative_path(root, self.search_dir),
                    is_kotlin_script=(root / BUILD_GRADLE_KTS).exists()
                    and not (root / BUILD_GRADLE).exists(),
                    icons=project_icons,
                )
            )

        return ScannerOptions(root=self._build_tree(), warnings=warnings, icons=icons)

    def _build_tree(self) -> OptionNode:
        if len(self._projects) == 1:
            project = self._projects[0]
            return self._gradle_task_option(self._descriptor(project).config_name, project.icons)

        location_option = OptionNode.new_option(
            PROJECT_LOCATION_TITLE, "", PROJECT_LOCATION_ENV_KEY, OptionType.SELECTOR
        )
        for project in self._projects:
            location_option.add_option(
                project.relative_root,
                self._gradle_task_option(self._descriptor(project).config_name, project.icons),
            )
        return location_option

    @staticmethod
    def _gradle_task_option(config_name: str, icons: List[Icon]) -> OptionNode:
        task_option = OptionNode.new_option(
            GRADLE_TASK_TITLE, "", GRADLE_TASK_ENV_KEY, OptionType.SELECTOR
        )
        for task in GRADLE_TASKS:
            task_option.add_config(
                task,
                OptionNode.new_config_option(config_name, [icon.filename for icon in icons]),
            )
        return task_option

    def _descriptor(self, project: AndroidProject) -> AndroidConfigDescriptor:
        location = project.relative_root if len(self._projects) == 1 else ""
        return AndroidConfigDescriptor(
            is_kotlin_script=project.is_kotlin_script,
            project_location=location,
        )

    def configs(self, is_private_repository: bool) -> ConfigMap:
        activation = SSHKeyActivation.for_repository(is_private_repository)
        return generate_config_map(
            [self._descriptor(project) for project in self._projects],
            lambda descriptor: render_config(descriptor, activation),
        )

    def default_options(self) -> OptionNode:
        location_option = OptionNode.new_option(
            PROJECT_LOCATION_TITLE, "", PROJECT_LOCATION_ENV_KEY, OptionType.USER_INPUT
        )
        script_option = OptionNode.new_option(BUILD_SCRIPT_TITLE, "", "", OptionType.SELECTOR)
        location_option.add_option("_", script_option)

        for language, suffix in (("groovy", ""), ("kotlin", "-kts")):
            script_option.add_option(
                language, self._gradle_task_option(DEFAULT_CONFIG_NAME + suffix, [])
            )
        return location_option

    def default_configs(self) -> ConfigMap:
        configs: ConfigMap = {}
        for is_kts in (False, True):
            descriptor = AndroidConfigDescriptor(is_kotlin_script=is_kts)
            name = DEFAULT_CONFIG_NAME + ("-kts" if is_kts else "")
            configs[name] = render_config(descriptor, SSHKeyActivation.CONDITIONAL)
        return configs


def render_config(descriptor: AndroidConfigDescriptor, activation: SSHKeyActivation) -> str:
    project_location = f"${PROJECT_LOCATION_ENV_KEY}"
    gradlew_path = f"{project_location}/gradlew"
    gradle_file = f"{project_location}/{descriptor.build_file}"

    builder = ConfigBuilder()
    for workflow_id, task in ((PRIMARY_WORKFLOW_ID, f"${GRADLE_TASK_ENV_KEY}"),
                              (DEPLOY_WORKFLOW_ID, "assembleRelease")):
        builder.append_steps(workflow_id, *steps.default_prepare_steps(activation))
        builder.append_steps(
            workflow_id,
            steps.install_missing_android_tools({"gradlew_path": gradlew_path}),
            steps.gradle_runner(
                {"gradle_file": gradle_file},
                {GRADLE_TASK_INPUT_KEY: task},
                {"gradlew_path": gradlew_path},
            ),
        )
        builder.append_steps(workflow_id, *steps.default_deploy_steps())
    builder.set_workflow_description(DEPLOY_WORKFLOW_ID, DEPLOY_WORKFLOW_DESCRIPTION)

    app_envs = None
    if descriptor.project_location:
        app_envs = [{PROJECT_LOCATION_ENV_KEY: descriptor.project_location}]
    return to_yaml(builder.generate(SCANNER_NAME, app_envs))
