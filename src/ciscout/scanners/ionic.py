"""Ionic (Cordova based) project scanner."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ciscout.core.files import filter_by_name, relative_path, without_component
from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, OptionNode, OptionType
from ciscout.generation import steps
from ciscout.generation.builder import DEPLOY_WORKFLOW_ID, PRIMARY_WORKFLOW_ID, ConfigBuilder, to_yaml
from ciscout.generation.steps import SSHKeyActivation, StepInput, env_input
from ciscout.scanners.base import ScannerOptions, ScannerPlugin
from ciscout.scanners.cordova import (
    IONIC_MARKERS,
    PLATFORMS,
    TARGET_EMULATOR,
    TARGET_INPUT_KEY,
    detect_test_runner,
    platform_tree,
)
from ciscout.scanners.javascript import parse_package_json

LOGGER = get_logger(__name__)

SCANNER_NAME = "ionic"
CONFIG_NAME = "ionic-config"
DEFAULT_CONFIG_NAME = "default-ionic-config"

WORKDIR_INPUT_KEY = "workdir"
WORKDIR_ENV_KEY = "IONIC_WORK_DIR"
WORKDIR_TITLE = "Directory of the Ionic config.xml file"

PLATFORM_INPUT_KEY = "platform"
PLATFORM_ENV_KEY = "IONIC_PLATFORM"
PLATFORM_TITLE = "The platform to use in ionic-cli commands"

CORDOVA_CONFIG_NOT_FOUND = "Cordova config.xml not found."


def find_ionic_config(paths: List[Path]) -> Optional[Path]:
    """Shallowest ionic.config.json, falling back to a legacy ionic.project."""
    for marker in IONIC_MARKERS:
        candidates = without_component(filter_by_name(paths, marker), "node_modules")
        if candidates:
            return candidates[0]
    return None


class IonicScanner(ScannerPlugin):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._ionic_config: Optional[Path] = None
        self._workdir = ""
        self._test_runner: Optional[str] = None

    @property
    def name(self) -> str:
        return SCANNER_NAME

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        self._ionic_config = find_ionic_config(self._list_files(search_dir))
        if self._ionic_config is None:
            LOGGER.info("No ionic.project file nor ionic.config.json found")
            return False
        LOGGER.info(f"Ionic project file: {self._ionic_config}")
        return True

    def excluded_scanner_names(self) -> List[str]:
        return ["ios", "macos", "cordova", "android"]

    def options(self) -> ScannerOptions:
        if self._ionic_config is None:
            raise RuntimeError(f"{self.name}: no project detected")
        project_dir = self._ionic_config.parent
        warnings: List[str] = []

        package_json_path = project_dir / "package.json"
        if package_json_path.exists():
            self._test_runner = detect_test_runner(parse_package_json(package_json_path))
        LOGGER.info(f"Test runner: {self._test_runner or 'none'}")

        if not (project_dir / "config.xml").exists():
            LOGGER.warning(CORDOVA_CONFIG_NOT_FOUND)
            warnings.append(CORDOVA_CONFIG_NOT_FOUND)

        workdir = relative_path(project_dir, self.search_dir)
        self._workdir = "" if workdir == "." else workdir

        root = platform_tree(
            WORKDIR_TITLE, WORKDIR_ENV_KEY, PLATFORM_TITLE, PLATFORM_ENV_KEY,
            PLATFORMS, self._workdir, CONFIG_NAME,
        )
        return ScannerOptions(root=root, warnings=warnings, icons=[])

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


def render_config(has_workdir: bool, test_runner: Optional[str], activation: SSHKeyActivation) -> str:
    workdir_inputs: List[StepInput] = []
    if has_workdir:
        workdir_inputs.append(env_input(WORKDIR_INPUT_KEY, WORKDIR_ENV_KEY))
    install = steps.npm(*workdir_inputs, {"command": "install"})
    test_steps = []
    if test_runner == "karma":
        test_steps.append(steps.karma_jasmine_runner(*workdir_inputs))
    elif test_runner == "jasmine":
        test_steps.append(steps.jasmine_runner(*workdir_inputs))
    build_steps = [
        steps.generate_cordova_build_configuration(),
        steps.ionic_archive(
            env_input(PLATFORM_INPUT_KEY, PLATFORM_ENV_KEY),
            {TARGET_INPUT_KEY: TARGET_EMULATOR},
            *workdir_inputs,
        ),
    ]

    builder = ConfigBuilder()
    prepare = steps.default_prepare_steps(activation)
    if test_steps:
        builder.append_steps(PRIMARY_WORKFLOW_ID, *prepare, install, *test_steps)
        builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())

        builder.append_steps(
            DEPLOY_WORKFLOW_ID,
            *steps.default_prepare_steps(activation),
            steps.certificate_and_profile_installer(),
            install,
            *test_steps,
            *build_steps,
        )
        builder.append_steps(DEPLOY_WORKFLOW_ID, *steps.default_deploy_steps())
    else:
        builder.append_steps(
            PRIMARY_WORKFLOW_ID,
            *prepare,
            steps.certificate_and_profile_installer(),
            install,
            *build_steps,
        )
        builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())

    return to_yaml(builder.generate(SCANNER_NAME))
