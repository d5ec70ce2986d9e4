"""React Native scanner covering plain and Expo managed projects.

Only the first relevant package.json is used: a plain project needs a
``react-native`` dependency and a native ``ios/`` or ``android/`` directory
next to it, an Expo project needs an ``expo`` dependency, an app.json and no
native directories.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ciscout.core.files import filter_by_suffix, relative_path, without_component
from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, OptionNode, OptionType
from ciscout.generation import steps
from ciscout.generation.builder import (
    DEPLOY_WORKFLOW_ID,
    PRIMARY_WORKFLOW_ID,
    ConfigBuilder,
    to_yaml,
)
from ciscout.generation.descriptor import ReactNativeConfigDescriptor, generate_config_map
from ciscout.generation.steps import SSHKeyActivation, StepListItem, env_input
from ciscout.scanners import android, xcode
from ciscout.scanners.base import ScannerOptions, ScannerPlugin
from ciscout.scanners.javascript import PackageJson, find_package_json_files, parse_package_json
from ciscout.scanners.xcodeproj import (
    PROJECT_EXTENSION,
    WORKSPACE_EXTENSION,
    read_project,
    read_shared_schemes,
)

LOGGER = get_logger(__name__)

SCANNER_NAME = "react-native"
DEFAULT_CONFIG_NAME = "default-react-native-config"
EXPO_CONFIG_NAME = "react-native-expo-config"

WORKDIR_INPUT_KEY = "workdir"
WORKDIR_ENV_KEY = "WORKDIR"
WORKDIR_TITLE = "Project root directory (the directory of the project app.json/package.json file)"

DEVELOPMENT_TEAM_ENV_KEY = "BITRISE_IOS_DEVELOPMENT_TEAM"
DEVELOPMENT_TEAM_TITLE = "iOS Development team"
EXPO_USERNAME_ENV_KEY = "EXPO_USERNAME"
EXPO_PASSWORD_ENV_KEY = "EXPO_PASSWORD"

RELEASE_CONFIGURATION = "Release"

PRIMARY_WORKFLOW_DESCRIPTION = "Runs tests."
PRIMARY_WORKFLOW_NO_TESTS_DESCRIPTION = (
    "Installs dependencies.\n\n"
    "Next steps:\n- Add tests to your project and configure the workflow to run them."
)
DEPLOY_WORKFLOW_DESCRIPTION = "Tests, builds and deploys the app."

APP_JSON_EXPLANATION = (
    "The app.json file needs to contain:\n"
    "- name\n"
    "- displayName\n"
    "entries."
)
EXPO_KIT_APP_JSON_EXPLANATION = (
    "If the project uses Expo Kit the app.json file needs to contain:\n"
    "- expo/name\n"
    "- expo/ios/bundleIdentifier\n"
    "- expo/android/package\n"
    "entries."
)

_EXPO_IMPORT_RE = re.compile(r"import .* from 'expo'")
_PROJECT_NAME_RE = re.compile(r"[^a-z0-9_\-]", re.IGNORECASE)


class AppJsonError(ValueError):
    """app.json lacks an entry needed to eject an Expo project."""

    def __init__(self, app_json_path: Path, reason: str, explanation: str) -> None:
        super().__init__(f"app.json file ({app_json_path}) {reason}\n{explanation}")


@dataclass
class IOSProjectInfo:
    """The Xcode project of a React Native app."""

    relative_path: str
    schemes: List[str] = field(default_factory=list)
    has_podfile: bool = False
    missing_shared_schemes: bool = False


@dataclass
class ReactNativeProject:
    """Scanner-wide facts shared by every config of the detected project."""

    package_json: PackageJson
    workdir: str
    use_yarn: bool
    has_test: bool
    android_dir: Optional[str] = None
    ios: Optional[IOSProjectInfo] = None
    is_expo: bool = False
    uses_expo_kit: bool = False


def _get_path(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def read_app_json(path: Path) -> Dict[str, Any]:
    """Load app.json.

    Raises:
        ValueError: If the file is not a JSON object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Failed to parse {path}: not a JSON object")
    return data


def validate_app_json(app_json_path: Path, app: Dict[str, Any], uses_expo_kit: bool) -> str:
    """Check the entries a non-interactive eject needs and return the project name.

    Raises:
        AppJsonError: If a required entry is missing.
    """
    if uses_expo_kit:
        if not isinstance(app.get("expo"), dict):
            raise AppJsonError(app_json_path, "missing expo entry", EXPO_KIT_APP_JSON_EXPLANATION)
        for keys in (("name",), ("ios", "bundleIdentifier"), ("android", "package")):
            if len(keys) > 1 and not isinstance(_get_path(app, "expo", keys[0]), dict):
                raise AppJsonError(
                    app_json_path, f"missing expo/{keys[0]} entry", EXPO_KIT_APP_JSON_EXPLANATION
                )
            if not _get_path(app, "expo", *keys):
                entry = "/".join(("expo",) + keys)
                raise AppJsonError(
                    app_json_path,
                    f"missing or empty {entry} entry",
                    EXPO_KIT_APP_JSON_EXPLANATION,
                )
        return str(app["expo"]["name"])

    for key in ("name", "displayName"):
        if not app.get(key):
            raise AppJsonError(app_json_path, f"missing or empty {key} entry", APP_JSON_EXPLANATION)
    return str(app["name"])


def uses_expo_kit(paths: List[Path]) -> bool:
    """True if any JavaScript source imports from 'expo'."""
    for source in without_component(filter_by_suffix(paths, ".js"), "node_modules"):
        try:
            with open(source, encoding="utf-8", errors="replace") as f:
                for line in f:
                    if _EXPO_IMPORT_RE.search(line):
                        return True
        except OSError as e:
            LOGGER.warning(f"Failed to read {source}: {e}")
    return False


def inspect_ios_dir(ios_dir: Path, search_dir: Path) -> Optional[IOSProjectInfo]:
    """Pick the workspace (or project) of an ``ios/`` directory and its schemes."""
    workspaces = sorted(ios_dir.glob(f"*{WORKSPACE_EXTENSION}"))
    projects = sorted(ios_dir.glob(f"*{PROJECT_EXTENSION}"))
    if not projects:
        return None

    has_podfile = (ios_dir / xcode.PODFILE).exists()
    project = read_project(projects[0])
    if workspaces:
        container = workspaces[0]
    elif has_podfile:
        container = projects[0].with_suffix(WORKSPACE_EXTENSION)
    else:
        container = projects[0]

    schemes = [scheme.name for scheme in project.shared_schemes]
    if workspaces:
        schemes = [s.name for s in read_shared_schemes(workspaces[0])] + schemes
    info = IOSProjectInfo(
        relative_path=relative_path(container, search_dir),
        schemes=schemes,
        has_podfile=has_podfile,
    )
    if not info.schemes:
        info.schemes = [target.name for target in project.application_targets]
        info.missing_shared_schemes = True
    return info


class ReactNativeScanner(ScannerPlugin):
    """Detects React Native and Expo projects."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._paths: List[Path] = []
        self._project: Optional[ReactNativeProject] = None

    @property
    def name(self) -> str:
        return SCANNER_NAME

    @property
    def project(self) -> Optional[ReactNativeProject]:
        return self._project

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        self._project = None
        LOGGER.info("Collecting package.json files")
        self._paths = self._list_files(search_dir)
        package_files = find_package_json_files(self._paths)
        LOGGER.info(f"{len(package_files)} package.json file(s) detected")

        for path in package_files:
            try:
                package_json = parse_package_json(path)
            except ValueError as e:
                LOGGER.warning(str(e))
                continue

            project_dir = path.parent
            has_ios = (project_dir / "ios").is_dir()
            has_android = (project_dir / "android").is_dir()

            is_expo = (
                package_json.has_dependency("expo")
                and (project_dir / "app.json").exists()
                and not (has_ios or has_android)
            )
            is_plain = package_json.has_dependency("react-native") and (has_ios or has_android)
            if not (is_expo or is_plain):
                continue

            workdir = relative_path(project_dir, search_dir)
            self._project = ReactNativeProject(
                package_json=package_json,
                workdir="" if workdir == "." else workdir,
                use_yarn=(project_dir / "yarn.lock").exists(),
                has_test=package_json.has_script("test"),
                is_expo=is_expo,
            )
            LOGGER.info(
                f"{'Expo' if is_expo else 'React Native'} project found: {path} "
                f"(yarn: {self._project.use_yarn}, test: {self._project.has_test})"
            )
            return True

        LOGGER.info("Platform not detected")
        return False

    def excluded_scanner_names(self) -> List[str]:
        return ["ios", "macos", "android"]

    def _require_project(self) -> ReactNativeProject:
        if self._project is None:
            raise RuntimeError(f"{self.name}: no project detected")
        return self._project

    def options(self) -> ScannerOptions:
        project = self._require_project()
        if project.is_expo:
            return self._expo_options(project)
        return self._plain_options(project)

    def _plain_options(self, project: ReactNativeProject) -> ScannerOptions:
        warnings: List[str] = []
        project_dir = project.package_json.path.parent

        android_dir = project_dir / "android"
        if android_dir.is_dir() and (
            (android_dir / android.BUILD_GRADLE).exists()
            or (android_dir / android.BUILD_GRADLE_KTS).exists()
        ):
            android.check_gradlew(android_dir)
            project.android_dir = relative_path(android_dir, self.search_dir)

        ios_dir = project_dir / "ios"
        if ios_dir.is_dir():
            project.ios = inspect_ios_dir(ios_dir, self.search_dir)
            if project.ios is not None and project.ios.missing_shared_schemes:
                warnings.append(
                    xcode.missing_shared_schemes_warning(
                        project.ios.relative_path, None, project.ios.schemes
                    )
                )

        if project.android_dir is None and project.ios is None:
            raise ValueError("no ios nor android project detected")

        config_name = self._descriptor(project).config_name
        leaf: Optional[OptionNode] = None
        if project.ios is not None:
            leaf = _ios_tree(project.ios, config_name)
        if project.android_dir is not None:
            location = OptionNode.new_option(
                android.PROJECT_LOCATION_TITLE, "", android.PROJECT_LOCATION_ENV_KEY
            )
            if leaf is None:
                location.add_config(project.android_dir, OptionNode.new_config_option(config_name))
            else:
                location.add_option(project.android_dir, leaf)
            leaf = location
        assert leaf is not None
        return ScannerOptions(root=leaf, warnings=warnings, icons=[])

    def _expo_options(self, project: ReactNativeProject) -> ScannerOptions:
        project_dir = project.package_json.path.parent
        app_json_path = project_dir / "app.json"
        project.uses_expo_kit = uses_expo_kit(self._paths)
        LOGGER.info(f"Uses ExpoKit: {project.uses_expo_kit}")

        project_name = validate_app_json(
            app_json_path, read_app_json(app_json_path), project.uses_expo_kit
        )
        if project.uses_expo_kit:
            project_name = _PROJECT_NAME_RE.sub("-", project_name).lower()
            ios_path = f"./ios/{project_name}{WORKSPACE_EXTENSION}"
        else:
            ios_path = f"./ios/{project_name}{PROJECT_EXTENSION}"

        project_path_option = OptionNode.new_option(
            xcode.PROJECT_PATH_TITLE, xcode.PROJECT_PATH_SUMMARY, xcode.PROJECT_PATH_ENV_KEY
        )
        scheme_option = OptionNode.new_option(
            xcode.SCHEME_TITLE, xcode.SCHEME_SUMMARY, xcode.SCHEME_ENV_KEY
        )
        project_path_option.add_option(ios_path, scheme_option)
        team_option = OptionNode.new_option(
            DEVELOPMENT_TEAM_TITLE, "", DEVELOPMENT_TEAM_ENV_KEY, OptionType.USER_INPUT
        )
        scheme_option.add_option(project_name, team_option)
        method_option = OptionNode.new_option(
            xcode.DISTRIBUTION_METHOD_TITLE,
            xcode.DISTRIBUTION_METHOD_SUMMARY,
            xcode.DISTRIBUTION_METHOD_ENV_KEY,
        )
        team_option.add_option("_", method_option)

        location_option = OptionNode.new_option(
            android.PROJECT_LOCATION_TITLE, "", android.PROJECT_LOCATION_ENV_KEY
        )
        if project.workdir:
            workdir_option = OptionNode.new_option(WORKDIR_TITLE, "", WORKDIR_ENV_KEY)
            workdir_option.add_option(project.workdir, location_option)
            after_method = workdir_option
            android_location = f"{project.workdir}/android"
        else:
            after_method = location_option
            android_location = "./android"
        for method in xcode.IOS_EXPORT_METHODS:
            method_option.add_option(method, after_method)

        config_option = OptionNode.new_config_option(EXPO_CONFIG_NAME)
        if project.uses_expo_kit:
            username_option = OptionNode.new_option(
                "Expo username", "", EXPO_USERNAME_ENV_KEY, OptionType.USER_INPUT
            )
            password_option = OptionNode.new_option(
                "Expo password", "", EXPO_PASSWORD_ENV_KEY, OptionType.USER_INPUT
            )
            location_option.add_option(android_location, username_option)
            username_option.add_option("_", password_option)
            password_option.add_config("_", config_option)
        else:
            location_option.add_config(android_location, config_option)

        return ScannerOptions(root=project_path_option, warnings=[], icons=[])

    def _descriptor(self, project: ReactNativeProject) -> ReactNativeConfigDescriptor:
        return ReactNativeConfigDescriptor(
            has_android=project.android_dir is not None,
            has_ios=project.ios is not None,
            has_test=project.has_test,
        )

    def configs(self, is_private_repository: bool) -> ConfigMap:
        project = self._require_project()
        activation = SSHKeyActivation.for_repository(is_private_repository)
        if project.is_expo:
            return {EXPO_CONFIG_NAME: render_expo_config(project, activation)}
        return generate_config_map(
            [self._descriptor(project)],
            lambda descriptor: render_config(descriptor, project, activation),
        )

    def default_options(self) -> OptionNode:
        location_option = OptionNode.new_option(
            android.PROJECT_LOCATION_TITLE, "", android.PROJECT_LOCATION_ENV_KEY, OptionType.USER_INPUT
        )
        project_path_option = OptionNode.new_option(
            xcode.PROJECT_PATH_TITLE,
            xcode.PROJECT_PATH_SUMMARY,
            xcode.PROJECT_PATH_ENV_KEY,
            OptionType.USER_INPUT,
        )
        scheme_option = OptionNode.new_option(
            xcode.SCHEME_TITLE, xcode.SCHEME_SUMMARY, xcode.SCHEME_ENV_KEY, OptionType.USER_INPUT
        )
        method_option = OptionNode.new_option(
            xcode.DISTRIBUTION_METHOD_TITLE,
            xcode.DISTRIBUTION_METHOD_SUMMARY,
            xcode.DISTRIBUTION_METHOD_ENV_KEY,
        )
        location_option.add_option("_", project_path_option)
        project_path_option.add_option("_", scheme_option)
        scheme_option.add_option("_", method_option)
        for method in xcode.IOS_EXPORT_METHODS:
            method_option.add_config(method, OptionNode.new_config_option(DEFAULT_CONFIG_NAME))
        return location_option

    def default_configs(self) -> ConfigMap:
        # Assume yarn, tests and both native projects.
        project = ReactNativeProject(
            package_json=PackageJson(path=Path("package.json")),
            workdir="",
            use_yarn=True,
            has_test=True,
            android_dir="android",
            ios=IOSProjectInfo(relative_path="", has_podfile=True),
        )
        descriptor = ReactNativeConfigDescriptor(has_android=True, has_ios=True, has_test=True)
        return {
            DEFAULT_CONFIG_NAME: render_config(descriptor, project, SSHKeyActivation.CONDITIONAL)
        }


def _ios_tree(ios: IOSProjectInfo, config_name: str) -> OptionNode:
    project_path_option = OptionNode.new_option(
        xcode.PROJECT_PATH_TITLE, xcode.PROJECT_PATH_SUMMARY, xcode.PROJECT_PATH_ENV_KEY
    )
    scheme_option = OptionNode.new_option(
        xcode.SCHEME_TITLE, xcode.SCHEME_SUMMARY, xcode.SCHEME_ENV_KEY
    )
    project_path_option.add_option(ios.relative_path, scheme_option)
    for scheme in ios.schemes:
        method_option = OptionNode.new_option(
            xcode.DISTRIBUTION_METHOD_TITLE,
            xcode.DISTRIBUTION_METHOD_SUMMARY,
            xcode.DISTRIBUTION_METHOD_ENV_KEY,
        )
        scheme_option.add_option(scheme, method_option)
        for method in xcode.IOS_EXPORT_METHODS:
            method_option.add_config(method, OptionNode.new_config_option(config_name))
    return project_path_option


def _js_steps(project: ReactNativeProject) -> List[StepListItem]:
    workdir = project.workdir or None
    js_steps = [steps.package_manager_install(project.use_yarn, workdir)]
    if project.has_test:
        js_steps.append(steps.package_manager_install(project.use_yarn, workdir, command="test"))
    return js_steps


def _android_build_steps() -> List[StepListItem]:
    project_location = f"${android.PROJECT_LOCATION_ENV_KEY}"
    return [
        steps.install_missing_android_tools({"gradlew_path": f"{project_location}/gradlew"}),
        steps.gradle_runner(
            {"gradle_file": f"{project_location}/{android.BUILD_GRADLE}"},
            {android.GRADLE_TASK_INPUT_KEY: "assembleRelease"},
            {"gradlew_path": f"{project_location}/gradlew"},
        ),
    ]


def _xcode_archive_step() -> StepListItem:
    return steps.xcode_archive(
        env_input(xcode.PROJECT_PATH_INPUT_KEY, xcode.PROJECT_PATH_ENV_KEY),
        env_input(xcode.SCHEME_INPUT_KEY, xcode.SCHEME_ENV_KEY),
        env_input(xcode.DISTRIBUTION_METHOD_INPUT_KEY, xcode.DISTRIBUTION_METHOD_ENV_KEY),
        {"configuration": RELEASE_CONFIGURATION},
    )


def render_config(
    descriptor: ReactNativeConfigDescriptor,
    project: ReactNativeProject,
    activation: SSHKeyActivation,
) -> str:
    builder = ConfigBuilder()

    builder.set_workflow_description(
        PRIMARY_WORKFLOW_ID,
        PRIMARY_WORKFLOW_DESCRIPTION if descriptor.has_test else PRIMARY_WORKFLOW_NO_TESTS_DESCRIPTION,
    )
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_prepare_steps(activation))
    builder.append_steps(PRIMARY_WORKFLOW_ID, *_js_steps(project))
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())

    builder.set_workflow_description(DEPLOY_WORKFLOW_ID, DEPLOY_WORKFLOW_DESCRIPTION)
    builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_prepare_steps(activation))
    builder.append_steps(DEPLOY_WORKFLOW_ID, *_js_steps(project))
    if descriptor.has_android:
        builder.append_steps(DEPLOY_WORKFLOW_ID, *_android_build_steps())
    if descriptor.has_ios and project.ios is not None:
        builder.append_steps(DEPLOY_WORKFLOW_ID, steps.certificate_and_profile_installer())
        if project.ios.missing_shared_schemes:
            builder.append_steps(
                DEPLOY_WORKFLOW_ID,
                steps.recreate_user_schemes(
                    env_input(xcode.PROJECT_PATH_INPUT_KEY, xcode.PROJECT_PATH_ENV_KEY)
                ),
            )
        if project.ios.has_podfile:
            builder.append_steps(DEPLOY_WORKFLOW_ID, steps.cocoapods_install())
        builder.append_steps(DEPLOY_WORKFLOW_ID, _xcode_archive_step())
    builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_deploy_steps())

    return to_yaml(builder.generate(SCANNER_NAME))


def render_expo_config(project: ReactNativeProject, activation: SSHKeyActivation) -> str:
    builder = ConfigBuilder()

    builder.set_workflow_description(
        PRIMARY_WORKFLOW_ID,
        PRIMARY_WORKFLOW_DESCRIPTION if project.has_test else PRIMARY_WORKFLOW_NO_TESTS_DESCRIPTION,
    )
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_prepare_steps(activation))
    builder.append_steps(PRIMARY_WORKFLOW_ID, *_js_steps(project))
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())

    detach_inputs = [{"project_path": project.workdir or "./"}]
    if project.uses_expo_kit:
        detach_inputs.append(env_input("user_name", EXPO_USERNAME_ENV_KEY))
        detach_inputs.append(env_input("password", EXPO_PASSWORD_ENV_KEY))

    builder.set_workflow_description(DEPLOY_WORKFLOW_ID, DEPLOY_WORKFLOW_DESCRIPTION)
    builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_prepare_steps(activation))
    builder.append_steps(DEPLOY_WORKFLOW_ID, *_js_steps(project))
    builder.append_steps(DEPLOY_WORKFLOW_ID, steps.expo_detach(*detach_inputs))
    builder.append_steps(DEPLOY_WORKFLOW_ID, *_android_build_steps())
    builder.append_steps(DEPLOY_WORKFLOW_ID, steps.certificate_and_profile_installer())
    if project.uses_expo_kit:
        builder.append_steps(DEPLOY_WORKFLOW_ID, steps.cocoapods_install())
    builder.append_steps(DEPLOY_WORKFLOW_ID, _xcode_archive_step())
    builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_deploy_steps())

    return to_yaml(builder.generate(SCANNER_NAME))
