"""Cordova project scanner."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ciscout.core.files import relative_path
from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, OptionNode, OptionType
from ciscout.generation import steps
from ciscout.generation.builder import DEPLOY_WORKFLOW_ID, PRIMARY_WORKFLOW_ID, ConfigBuilder, to_yaml
from ciscout.generation.steps import SSHKeyActivation, StepInput, env_input
from ciscout.scanners.base import ScannerOptions, ScannerPlugin
from ciscout.scanners.javascript import (
    PackageJson,
    find_root_config_xml,
    parse_config_xml,
    parse_package_json,
)

LOGGER = get_logger(__name__)

SCANNER_NAME = "cordova"
CONFIG_NAME = "cordova-config"
DEFAULT_CONFIG_NAME = "default-cordova-config"

WORKDIR_INPUT_KEY = "workdir"
WORKDIR_ENV_KEY = "CORDOVA_WORK_DIR"
WORKDIR_TITLE = "Directory of Cordova Config.xml"

PLATFORM_INPUT_KEY = "platform"
PLATFORM_ENV_KEY = "CORDOVA_PLATFORM"
PLATFORM_TITLE = "Platform to use in cordova-cli commands"
PLATFORMS = ["ios", "android", "ios,android"]

TARGET_INPUT_KEY = "target"
TARGET_EMULATOR = "emulator"

IONIC_MARKERS = ("ionic.config.json", "ionic.project")


def is_ionic_project(project_dir: Path) -> bool:
    return any((project_dir / marker).exists() for marker in IONIC_MARKERS)


def detect_test_runner(package_json: PackageJson) -> Optional[str]:
    """Return "karma" or "jasmine" if the project has a runnable test setup.

    karma-jasmine wins over plain jasmine when both are configured.
    """
    project_dir = package_json.path.parent
    if package_json.has_dependency_like("karma-jasmine") and (project_dir / "karma.conf.js").exists():
        return "karma"
    jasmine_config = project_dir / "spec" / "support" / "jasmine.json"
    if package_json.has_dependency_like("jasmine") and jasmine_config.exists():
        return "jasmine"
    return None


def platform_tree(
    workdir_title: str,
    workdir_env_key: str,
    platform_title: str,
    platform_env_key: str,
    platforms: List[str],
    workdir: str,
    config_name: str,
    workdir_type: OptionType = OptionType.SELECTOR,
) -> OptionNode:
    """``[workdir] -> platform -> config``, skipping the workdir when it is the root.

    Shared by the Cordova and Ionic scanners.
    """
    platform_option = OptionNode.new_option(platform_title, "", platform_env_key)
    for platform in platforms:
        platform_option.add_config(platform, OptionNode.new_config_option(config_name))
    if not workdir:
        return platform_option

    workdir_option = OptionNode.new_option(workdir_title, "", workdir_env_key, workdir_type)
    workdir_option.add_option(workdir, platform_option)
    return workdir_option


class CordovaScanner(ScannerPlugin):
    """Detects Cordova projects by a root ``config.xml`` widget."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._config_xml: Optional[Path] = None
        self._workdir = ""
        self._test_runner: Optional[str] = None

    @property
    def name(self) -> str:
        return SCANNER_NAME

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        LOGGER.info("Searching for config.xml file")
        config_xml = find_root_config_xml(self._list_files(search_dir))
        if config_xml is None:
            LOGGER.info("Platform not detected")
            return False
        LOGGER.info(f"config.xml: {config_xml}")

        try:
            widget = parse_config_xml(config_xml)
        except ValueError as e:
            LOGGER.info(f"Can not parse config.xml as a Cordova widget: {e}")
            return False
        if not widget.is_cordova:
            LOGGER.info("config.xml xmlns:cdv does not contain cordova.apache.org")
            return False
        if is_ionic_project(config_xml.parent):
            LOGGER.info("Ionic project file found, leaving the project to the ionic scanner")
            return False

        self._config_xml = config_xml
        return True

    def excluded_scanner_names(self) -> List[str]:
        return ["ios", "macos", "android"]

    def options(self) -> ScannerOptions:
        if self._config_xml is None:
            raise RuntimeError(f"{self.name}: no project detected")
        project_dir = self._config_xml.parent

        package_json = parse_package_json(project_dir / "package.json")
        self._test_runner = detect_test_runner(package_json)
        LOGGER.info(f"Test runner: {self._test_runner or 'none'}")

        workdir = relative_path(project_dir, self.search_dir)
        self._workdir = "" if workdir == "." else workdir

        root = platform_tree(
            WORKDIR_TITLE, WORKDIR_ENV_KEY, PLATFORM_TITLE, PLATFORM_ENV_KEY,
            PLATFORMS, self._workdir, CONFIG_NAME,
        )
        return ScannerOptions(root=root, warnings=[], icons=[])

    def configs(self, is_private_repository: bool) -> ConfigMap:
        activation = SSHKeyActivation.for_repository(is_private_repository)
        return {
            CONFIG_NAME: render_config(bool(self._workdir), self._test_runner, activation)
        }

    def default_options(self) -> OptionNode:
        return platform_tree(
            WORKDIR_TITLE, WORKDIR_ENV_KEY, PLATFORM_TITLE, PLATFORM_ENV_KEY,
            PLATFORMS, "_", DEFAULT_CONFIG_NAME, OptionType.USER_INPUT,
        )

    def default_configs(self) -> ConfigMap:
        return {DEFAULT_CONFIG_NAME: render_config(True, None, SSHKeyActivation.CONDITIONAL)}


def _test_step(test_runner: Optional[str], workdir_inputs: List[StepInput]) -> List[dict]:
    if test_runner == "karma":
        return [steps.karma_jasmine_runner(*workdir_inputs)]
    if test_runner == "jasmine":
        return [steps.jasmine_runner(*workdir_inputs)]
    return []


def render_config(has_workdir: bool, test_runner: Optional[str], activation: SSHKeyActivation) -> str:
    workdir_inputs: List[StepInput] = []
    if has_workdir:
        workdir_inputs.append(env_input(WORKDIR_INPUT_KEY, WORKDIR_ENV_KEY))
    install = steps.npm(*workdir_inputs, {"command": "install"})
    archive = steps.cordova_archive(
        env_input(PLATFORM_INPUT_KEY, PLATFORM_ENV_KEY),
        {TARGET_INPUT_KEY: TARGET_EMULATOR},
        *workdir_inputs,
    )

    builder = ConfigBuilder()
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_prepare_steps(activation), install)
    if test_runner is None:
        builder.append_steps(
            PRIMARY_WORKFLOW_ID, steps.generate_cordova_build_configuration(), archive
        )
    else:
        builder.append_steps(PRIMARY_WORKFLOW_ID, *_test_step(test_runner, workdir_inputs))
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())

    if test_runner is not None:
        builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_prepare_steps(activation), install)
        builder.append_steps(DEPLOY_WORKFLOW_ID, *_test_step(test_runner, workdir_inputs))
        builder.append_steps(
            DEPLOY_WORKFLOW_ID, steps.generate_cordova_build_configuration(), archive
        )
        builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_deploy_steps())

    return to_yaml(builder.generate(SCANNER_NAME))
