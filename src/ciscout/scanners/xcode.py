"""Shared implementation of the iOS and macOS scanners."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ciscout.core.files import filter_by_name, filter_by_suffix, relative_path
from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, Icon, OptionNode, OptionType
from ciscout.generation import steps
from ciscout.generation.builder import (
    DEPLOY_WORKFLOW_ID,
    PRIMARY_WORKFLOW_ID,
    ConfigBuilder,
    to_yaml,
)
from ciscout.generation.descriptor import (
    XcodeConfigDescriptor,
    XcodeProjectType,
    generate_config_map,
)
from ciscout.generation.steps import SSHKeyActivation, env_input
from ciscout.scanners.base import ScannerOptions, ScannerPlugin
from ciscout.scanners.xcodeproj import (
    PROJECT_EXTENSION,
    WORKSPACE_EXTENSION,
    XcodeProject,
    XcodeScheme,
    XcodeTarget,
    XcodeWorkspace,
    find_project,
    read_project,
    read_shared_schemes,
    read_workspace_project_paths,
)

LOGGER = get_logger(__name__)

DEFAULT_CONFIG_NAME_FORMAT = "default-{}-config"

PROJECT_PATH_INPUT_KEY = "project_path"
PROJECT_PATH_ENV_KEY = "BITRISE_PROJECT_PATH"
PROJECT_PATH_TITLE = "Project or Workspace path"
PROJECT_PATH_SUMMARY = (
    "The location of your Xcode project or Xcode workspace files, stored as an "
    "Environment Variable. In your Workflows, you can specify paths relative to this path."
)

SCHEME_INPUT_KEY = "scheme"
SCHEME_ENV_KEY = "BITRISE_SCHEME"
SCHEME_TITLE = "Scheme name"
SCHEME_SUMMARY = (
    "An Xcode scheme defines a collection of targets to build, a configuration to use "
    "when building, and a collection of tests to execute. Only shared schemes are "
    "detected automatically but you can use any scheme as a target on Bitrise."
)

DISTRIBUTION_METHOD_INPUT_KEY = "distribution_method"
DISTRIBUTION_METHOD_ENV_KEY = "BITRISE_DISTRIBUTION_METHOD"
DISTRIBUTION_METHOD_TITLE = "Distribution method"
DISTRIBUTION_METHOD_SUMMARY = (
    "The export method used to create an .ipa file in your builds, stored as an "
    "Environment Variable."
)

EXPORT_METHOD_INPUT_KEY = "export_method"
EXPORT_METHOD_ENV_KEY = "BITRISE_EXPORT_METHOD"
EXPORT_METHOD_TITLE = (
    "Application export method\n"
    "NOTE: `none` means: Export a copy of the application without re-signing."
)
EXPORT_METHOD_SUMMARY = (
    "The export method used to create an .app file in your builds, stored as an "
    "Environment Variable."
)

IOS_EXPORT_METHODS = ["app-store", "ad-hoc", "enterprise", "development"]
MACOS_EXPORT_METHODS = ["app-store", "developer-id", "development", "none"]

# App clips are exported separately only for these distribution methods.
APP_CLIP_EXPORT_METHODS = ("development", "ad-hoc")

CARTHAGE_COMMAND_INPUT_KEY = "carthage_command"
CARTFILE = "Cartfile"
CARTFILE_RESOLVED = "Cartfile.resolved"
PODFILE = "Podfile"

SDK_BY_PROJECT_TYPE = {
    XcodeProjectType.IOS: "iphoneos",
    XcodeProjectType.MACOS: "macosx",
}

SHARE_SCHEMES_HINT = (
    "Automatically generated schemes may differ from the ones in your project.\n"
    "Make sure to <a href=\"http://devcenter.bitrise.io/ios/frequent-ios-issues/"
    "#xcode-scheme-not-found\">share your schemes</a> for the expected behaviour."
)


@dataclass(frozen=True)
class ExportMethodOption:
    title: str
    summary: str
    env_key: str
    input_key: str
    methods: Tuple[str, ...]


EXPORT_METHOD_OPTIONS = {
    XcodeProjectType.IOS: ExportMethodOption(
        DISTRIBUTION_METHOD_TITLE,
        DISTRIBUTION_METHOD_SUMMARY,
        DISTRIBUTION_METHOD_ENV_KEY,
        DISTRIBUTION_METHOD_INPUT_KEY,
        tuple(IOS_EXPORT_METHODS),
    ),
    XcodeProjectType.MACOS: ExportMethodOption(
        EXPORT_METHOD_TITLE,
        EXPORT_METHOD_SUMMARY,
        EXPORT_METHOD_ENV_KEY,
        EXPORT_METHOD_INPUT_KEY,
        tuple(MACOS_EXPORT_METHODS),
    ),
}


@dataclass
class Scheme:
    """A buildable scheme, or a target standing in for a missing shared scheme."""

    name: str
    missing: bool = False
    has_xctest: bool = False
    has_app_clip: bool = False
    icons: List[Icon] = field(default_factory=list)


@dataclass
class BuildContainer:
    """A standalone project or a workspace offered as a project path."""

    relative_path: str
    is_workspace: bool = False
    is_pod_workspace: bool = False
    carthage_command: str = ""
    warnings: List[str] = field(default_factory=list)
    schemes: List[Scheme] = field(default_factory=list)


def detect_carthage_command(container_path: Path) -> Tuple[str, Optional[str]]:
    """Return the carthage command for a project directory and an optional warning."""
    directory = container_path.parent
    cartfile = directory / CARTFILE
    if not cartfile.exists():
        return "", None
    if (directory / CARTFILE_RESOLVED).exists():
        return "bootstrap", None
    return "update", (
        f"Cartfile found at ({cartfile}), but no Cartfile.resolved exists in the same "
        "directory.\nIt is <a href=\"https://github.com/Carthage/Carthage/blob/master/"
        "Documentation/Artifacts.md#cartfileresolved\">strongly recommended to commit "
        "this file to your repository</a>"
    )


def is_xcshareddata_gitignored(search_dir: Path) -> bool:
    gitignore = search_dir / ".gitignore"
    if not gitignore.exists():
        return False
    try:
        return "xcshareddata" in gitignore.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        LOGGER.warning(f"Failed to check if xcshareddata is gitignored: {e}")
        return False


def missing_shared_schemes_warning(
    container_path: str,
    gitignore_path: Optional[Path],
    target_names: List[str],
) -> str:
    LOGGER.warning(f"No shared schemes found for {container_path}, adding recreate-user-schemes step")
    LOGGER.warning(f"{len(target_names)} user scheme(s) will be generated: {target_names}")
    message = f"No shared schemes found for project: {container_path}.\n"
    if gitignore_path is not None:
        message += (
            f"Your gitignore file ({gitignore_path}) contains 'xcshareddata', maybe shared "
            "schemes are gitignored?\n"
        )
    return message + SHARE_SCHEMES_HINT


def scheme_has_app_clip(scheme: XcodeScheme, targets: List[XcodeTarget]) -> bool:
    ids = set(scheme.buildable_ids)
    return any(target.target_id in ids and target.has_app_clip for target in targets)


def find_app_icons(project_dir: Path, paths: List[Path], search_dir: Path) -> List[Icon]:
    """Return the largest image of the first AppIcon set below ``project_dir``."""
    for contents in filter_by_name(paths, "Contents.json"):
        if contents.parent.name != "AppIcon.appiconset" or project_dir not in contents.parents:
            continue
        try:
            images = json.loads(contents.read_text(encoding="utf-8")).get("images") or []
        except (OSError, ValueError) as e:
            LOGGER.warning(f"Failed to read app icon set {contents}: {e}")
            continue

        best: Optional[Path] = None
        best_size = 0.0
        for image in images:
            filename = image.get("filename")
            if not filename or not (contents.parent / filename).exists():
                continue
            try:
                size = float(str(image.get("size", "0x0")).split("x")[0])
                scale = float(str(image.get("scale", "1x")).rstrip("x"))
            except ValueError:
                continue
            if size * scale > best_size:
                best, best_size = contents.parent / filename, size * scale
        if best is not None:
            return [Icon.from_path(best, search_dir)]
    return []


class XcodeScanner(ScannerPlugin):
    """Base for the scanners of Xcode based platforms.

    Subclasses set ``project_type``; everything else is shared.
    """

    project_type: XcodeProjectType = XcodeProjectType.IOS

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._paths: List[Path] = []
        self._projects: List[XcodeProject] = []
        self._workspaces: List[XcodeWorkspace] = []
        self._descriptors: List[XcodeConfigDescriptor] = []

    @property
    def name(self) -> str:
        return self.project_type.value

    @property
    def export_method_option(self) -> ExportMethodOption:
        return EXPORT_METHOD_OPTIONS[self.project_type]

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        LOGGER.info(f"Searching for {self.name} Xcode projects and workspaces")
        self._paths = self._list_files(search_dir)
        sdk = SDK_BY_PROJECT_TYPE[self.project_type]

        all_projects: List[XcodeProject] = []
        for path in filter_by_suffix(self._paths, PROJECT_EXTENSION):
            if not path.is_dir():
                continue
            try:
                all_projects.append(read_project(path))
            except OSError as e:
                LOGGER.warning(f"Failed to read project {path}: {e}")

        workspaces: List[XcodeWorkspace] = []
        for path in filter_by_suffix(self._paths, WORKSPACE_EXTENSION):
            # Every .xcodeproj carries an embedded project.xcworkspace.
            if not path.is_dir() or path.parent.suffix == PROJECT_EXTENSION:
                continue
            workspaces.append(self._read_workspace(path, all_projects))

        self._projects = [p for p in all_projects if sdk in p.sdks]
        self._workspaces = [
            w for w in workspaces if any(sdk in p.sdks for p in w.projects)
        ]
        LOGGER.info(
            f"{len(self._projects)} project(s), {len(self._workspaces)} workspace(s) "
            f"targeting {sdk} detected"
        )
        if not self._projects and not self._workspaces:
            LOGGER.info("Platform not detected")
            return False
        return True

    @staticmethod
    def _read_workspace(path: Path, projects: List[XcodeProject]) -> XcodeWorkspace:
        workspace = XcodeWorkspace(path=path, shared_schemes=read_shared_schemes(path))
        for project_path in read_workspace_project_paths(path):
            if project_path.name == "Pods.xcodeproj":
                workspace.is_pod_workspace = True
                continue
            project = find_project(projects, project_path)
            if project is not None:
                workspace.projects.append(project)
        if (path.parent / PODFILE).exists():
            workspace.is_pod_workspace = True
        return workspace

    def _containers(self) -> Tuple[List[XcodeProject], List[XcodeWorkspace]]:
        """Split detected projects into standalone ones and workspaces.

        A standalone project with a Podfile next to it is replaced by the
        workspace ``pod install`` generates for it.
        """
        in_workspace = {
            project.path.resolve()
            for workspace in self._workspaces
            for project in workspace.projects
        }
        standalone: List[XcodeProject] = []
        workspaces = list(self._workspaces)
        for project in self._projects:
            if project.path.resolve() in in_workspace:
                continue
            if (project.path.parent / PODFILE).exists():
                generated = project.path.with_suffix(WORKSPACE_EXTENSION)
                LOGGER.info(f"Podfile found next to {project.path.name}, using {generated.name}")
                workspaces.append(
                    XcodeWorkspace(path=generated, projects=[project], is_pod_workspace=True)
                )
                continue
            standalone.append(project)
        return standalone, workspaces

    def options(self) -> ScannerOptions:
        standalone, workspaces = self._containers()
        gitignore = self.search_dir / ".gitignore"
        gitignore_path = gitignore if is_xcshareddata_gitignored(self.search_dir) else None

        containers: List[BuildContainer] = []
        warnings: List[str] = []
        for project in standalone:
            container = self._container(project.path, [project], project.shared_schemes)
            containers.append(container)
        for workspace in workspaces:
            container = self._container(
                workspace.path, workspace.projects, workspace.all_shared_schemes()
            )
            container.is_workspace = True
            container.is_pod_workspace = workspace.is_pod_workspace
            containers.append(container)

        for container in containers:
            if any(scheme.missing for scheme in container.schemes):
                container.warnings.append(
                    missing_shared_schemes_warning(
                        container.relative_path,
                        gitignore_path,
                        [scheme.name for scheme in container.schemes],
                    )
                )
            warnings.extend(container.warnings)

        root, icons = self._build_tree(containers)
        if not self._descriptors:
            LOGGER.error(f"No valid {self.name} config found")
            raise ValueError(f"No valid {self.name} config found")
        return ScannerOptions(root=root, warnings=warnings, icons=icons)

    def _container(
        self,
        path: Path,
        projects: List[XcodeProject],
        shared_schemes: List[XcodeScheme],
    ) -> BuildContainer:
        LOGGER.info(f"Inspecting {path.name}: {len(shared_schemes)} shared scheme(s)")
        carthage_command, warning = detect_carthage_command(path)
        container = BuildContainer(
            relative_path=relative_path(path, self.search_dir),
            carthage_command=carthage_command,
        )
        if warning:
            container.warnings.append(warning)

        targets = [target for project in projects for target in project.targets]
        if shared_schemes:
            icons = self._icons(projects)
            for scheme in shared_schemes:
                container.schemes.append(
                    Scheme(
                        name=scheme.name,
                        has_xctest=scheme.has_xctest,
                        has_app_clip=scheme_has_app_clip(scheme, targets),
                        icons=icons,
                    )
                )
            return container

        for project in projects:
            icons = self._icons([project])
            for target in project.application_targets:
                container.schemes.append(
                    Scheme(
                        name=target.name,
                        missing=True,
                        has_xctest=target.has_xctest,
                        has_app_clip=target.has_app_clip,
                        icons=icons,
                    )
                )
        return container

    def _icons(self, projects: List[XcodeProject]) -> List[Icon]:
        icons: List[Icon] = []
        for project in projects:
            icons.extend(find_app_icons(project.path.parent, self._paths, self.search_dir))
        return icons

    def _build_tree(self, containers: List[BuildContainer]) -> Tuple[OptionNode, List[Icon]]:
        export = self.export_method_option
        self._descriptors = []
        icons: List[Icon] = []

        project_path_option = OptionNode.new_option(
            PROJECT_PATH_TITLE, PROJECT_PATH_SUMMARY, PROJECT_PATH_ENV_KEY, OptionType.SELECTOR
        )
        for container in containers:
            if not container.schemes:
                continue
            scheme_option = OptionNode.new_option(
                SCHEME_TITLE, SCHEME_SUMMARY, SCHEME_ENV_KEY, OptionType.SELECTOR
            )
            project_path_option.add_option(container.relative_path, scheme_option)

            for scheme in container.schemes:
                icons.extend(scheme.icons)
                icon_ids = [icon.filename for icon in scheme.icons]
                export_option = OptionNode.new_option(
                    export.title, export.summary, export.env_key, OptionType.SELECTOR
                )
                scheme_option.add_option(scheme.name, export_option)

                for method in export.methods:
                    descriptor = self._descriptor(container, scheme, method)
                    self._descriptors.append(descriptor)
                    export_option.add_config(
                        method, OptionNode.new_config_option(descriptor.config_name, icon_ids)
                    )
        return project_path_option, icons

    def _descriptor(
        self, container: BuildContainer, scheme: Scheme, export_method: str
    ) -> XcodeConfigDescriptor:
        has_app_clip = self.project_type == XcodeProjectType.IOS and scheme.has_app_clip
        return XcodeConfigDescriptor(
            project_type=self.project_type,
            has_podfile=container.is_pod_workspace,
            carthage_command=container.carthage_command,
            has_test=scheme.has_xctest,
            has_app_clip=has_app_clip,
            # Only app clip configs depend on the export method.
            export_method=export_method if has_app_clip else "",
            missing_shared_schemes=scheme.missing,
        )

    def configs(self, is_private_repository: bool) -> ConfigMap:
        activation = SSHKeyActivation.for_repository(is_private_repository)
        return generate_config_map(
            self._descriptors,
            lambda descriptor: render_config(descriptor, activation),
        )

    @property
    def default_config_name(self) -> str:
        return DEFAULT_CONFIG_NAME_FORMAT.format(self.name)

    def default_options(self) -> OptionNode:
        export = self.export_method_option
        project_path_option = OptionNode.new_option(
            PROJECT_PATH_TITLE, PROJECT_PATH_SUMMARY, PROJECT_PATH_ENV_KEY, OptionType.USER_INPUT
        )
        scheme_option = OptionNode.new_option(
            SCHEME_TITLE, SCHEME_SUMMARY, SCHEME_ENV_KEY, OptionType.USER_INPUT
        )
        project_path_option.add_option("_", scheme_option)

        export_option = OptionNode.new_option(
            export.title, export.summary, export.env_key, OptionType.SELECTOR
        )
        scheme_option.add_option("_", export_option)
        for method in export.methods:
            export_option.add_config(method, OptionNode.new_config_option(self.default_config_name))
        return project_path_option

    def default_configs(self) -> ConfigMap:
        descriptor = XcodeConfigDescriptor(
            project_type=self.project_type,
            has_podfile=True,
            has_test=True,
            missing_shared_schemes=True,
        )
        return {self.default_config_name: render_config(descriptor, SSHKeyActivation.CONDITIONAL)}


def _base_xcode_inputs() -> List[Dict[str, str]]:
    return [
        env_input(PROJECT_PATH_INPUT_KEY, PROJECT_PATH_ENV_KEY),
        env_input(SCHEME_INPUT_KEY, SCHEME_ENV_KEY),
    ]


def _prepare_steps(descriptor: XcodeConfigDescriptor, activation: SSHKeyActivation) -> List[dict]:
    prepare = steps.default_prepare_steps(activation)
    prepare.append(steps.certificate_and_profile_installer())
    if descriptor.has_podfile:
        prepare.append(steps.cocoapods_install())
    if descriptor.carthage_command:
        prepare.append(steps.carthage({CARTHAGE_COMMAND_INPUT_KEY: descriptor.carthage_command}))
    if descriptor.missing_shared_schemes:
        prepare.append(
            steps.recreate_user_schemes(env_input(PROJECT_PATH_INPUT_KEY, PROJECT_PATH_ENV_KEY))
        )
    return prepare


def _test_step(project_type: XcodeProjectType) -> dict:
    if project_type == XcodeProjectType.IOS:
        return steps.xcode_test(*_base_xcode_inputs())
    return steps.xcode_test_mac(*_base_xcode_inputs())


def _archive_steps(descriptor: XcodeConfigDescriptor) -> List[dict]:
    export = EXPORT_METHOD_OPTIONS[descriptor.project_type]
    inputs = _base_xcode_inputs() + [env_input(export.input_key, export.env_key)]
    if descriptor.project_type == XcodeProjectType.MACOS:
        return [steps.xcode_archive_mac(*inputs)]

    archive = [steps.xcode_archive(*inputs)]
    if descriptor.has_app_clip and descriptor.export_method in APP_CLIP_EXPORT_METHODS:
        archive.append(
            steps.export_xcarchive(
                *_base_xcode_inputs(),
                {"product": "app-clip"},
                env_input(DISTRIBUTION_METHOD_INPUT_KEY, DISTRIBUTION_METHOD_ENV_KEY),
            )
        )
    return archive


def render_config(descriptor: XcodeConfigDescriptor, activation: SSHKeyActivation) -> str:
    builder = ConfigBuilder()

    builder.append_steps(PRIMARY_WORKFLOW_ID, *_prepare_steps(descriptor, activation))
    if descriptor.has_test:
        builder.append_steps(PRIMARY_WORKFLOW_ID, _test_step(descriptor.project_type))
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())

    builder.append_steps(DEPLOY_WORKFLOW_ID, *_prepare_steps(descriptor, activation))
    if descriptor.has_test:
        builder.append_steps(DEPLOY_WORKFLOW_ID, _test_step(descriptor.project_type))
    builder.append_steps(DEPLOY_WORKFLOW_ID, *_archive_steps(descriptor))
    builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_deploy_steps())

    return to_yaml(builder.generate(descriptor.project_type.value))
