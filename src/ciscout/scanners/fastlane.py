"""fastlane automation tool scanner.

Lanes are read from the Fastfile source; the ``fastlane`` binary is never
invoked. Lanes declared inside a ``platform :name do`` block are prefixed
with the platform, the way ``fastlane <platform> <lane>`` expects them.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List

from ciscout.core.files import filter_by_name, relative_path
from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap, OptionNode, OptionType
from ciscout.generation import steps
from ciscout.generation.builder import PRIMARY_WORKFLOW_ID, ConfigBuilder, to_yaml
from ciscout.generation.steps import SSHKeyActivation, env_input
from ciscout.scanners.base import (
    PROJECT_TYPE_SUMMARY,
    PROJECT_TYPE_TITLE,
    AutomationToolScannerPlugin,
    ScannerOptions,
    add_project_type_options,
    project_type_config_name,
)

LOGGER = get_logger(__name__)

SCANNER_NAME = "fastlane"
FASTFILE = "Fastfile"
FASTLANE_DIR = "fastlane"

CONFIG_NAME = "fastlane-config"
DEFAULT_CONFIG_NAME_FORMAT = "default-fastlane-{}-config"
IOS_PLATFORM = "ios"
DEFAULT_PLATFORMS = [IOS_PLATFORM, "android"]

LANE_INPUT_KEY = "lane"
LANE_ENV_KEY = "FASTLANE_LANE"
LANE_TITLE = "Fastlane lane"
LANE_SUMMARY = (
    "The lane that will be used in your builds, stored as an Environment Variable. "
    "You can change this at any time."
)

WORK_DIR_INPUT_KEY = "work_dir"
WORK_DIR_ENV_KEY = "FASTLANE_WORK_DIR"
WORK_DIR_TITLE = "Working directory"
WORK_DIR_SUMMARY = "The directory where your Fastfile is located."

XCODE_LIST_TIMEOUT_ENV_KEY = "FASTLANE_XCODE_LIST_TIMEOUT"
XCODE_LIST_TIMEOUT = "120"

NO_VALID_FASTFILE = "No valid Fastfile found"

_LANE_RE = re.compile(r"^\s*lane\s+:(\w+)\s+do\b")
_PLATFORM_RE = re.compile(r"^\s*platform\s+:(\w+)\s+do\b")
_BLOCK_START_RE = re.compile(r"\bdo\b(\s*\|[^|]*\|)?\s*(#.*)?$")
_BLOCK_KEYWORD_RE = re.compile(r"^\s*(if|unless|case|begin|while|until|def|class|module)\b")
_BLOCK_END_RE = re.compile(r"^\s*end\b")


def filter_fastfiles(paths: List[Path]) -> List[Path]:
    """Fastfiles living in a ``fastlane`` directory, shallowest first."""
    return [path for path in filter_by_name(paths, FASTFILE) if path.parent.name == FASTLANE_DIR]


def fastlane_work_dir(fastfile: Path) -> Path:
    """The directory fastlane runs from: the parent of the ``fastlane`` dir."""
    directory = fastfile.parent
    if directory.name == FASTLANE_DIR:
        return directory.parent
    return directory


def parse_lanes(content: str) -> List[str]:
    """Public lane names of a Fastfile, platform lanes as ``"<platform> <lane>"``.

    ``do ... end`` nesting is tracked so a lane after a platform block is not
    attributed to that platform.
    """
    lanes: List[str] = []
    depth = 0
    platform = ""
    platform_depth = -1

    for line in content.splitlines():
        stripped = line.split("#", 1)[0]
        platform_match = _PLATFORM_RE.match(stripped)
        lane_match = _LANE_RE.match(stripped)

        if platform_match:
            platform = platform_match.group(1)
            platform_depth = depth
        elif lane_match:
            lane = lane_match.group(1)
            lanes.append(f"{platform} {lane}" if platform else lane)

        if _BLOCK_START_RE.search(stripped) or _BLOCK_KEYWORD_RE.match(stripped):
            depth += 1
        elif _BLOCK_END_RE.match(stripped):
            depth -= 1
            if platform and depth == platform_depth:
                platform = ""
                platform_depth = -1
    return lanes


class FastlaneScanner(AutomationToolScannerPlugin):
    """Finds Fastfiles and offers their lanes for every detected project type."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._fastfiles: List[Path] = []
        self._has_lanes = False

    @property
    def name(self) -> str:
        return SCANNER_NAME

    def detect_platform(self, search_dir: Path) -> bool:
        self._search_dir = search_dir
        LOGGER.info("Searching for Fastfiles")
        self._fastfiles = filter_fastfiles(self._list_files(search_dir))
        LOGGER.info(f"{len(self._fastfiles)} Fastfile(s) detected")
        return bool(self._fastfiles)

    def options(self) -> ScannerOptions:
        warnings: List[str] = []
        work_dir_option = OptionNode.new_option(WORK_DIR_TITLE, WORK_DIR_SUMMARY, WORK_DIR_ENV_KEY)
        self._has_lanes = False

        for fastfile in self._fastfiles:
            LOGGER.info(f"Inspecting Fastfile: {fastfile}")
            work_dir = relative_path(fastlane_work_dir(fastfile), self.search_dir)
            try:
                lanes = parse_lanes(fastfile.read_text(encoding="utf-8", errors="replace"))
            except OSError as e:
                LOGGER.warning(f"Failed to inspect Fastfile: {e}")
                warnings.append(f"Failed to inspect Fastfile ({fastfile}), error: {e}")
                continue

            LOGGER.info(f"{len(lanes)} lane(s) found in {work_dir}")
            if not lanes:
                warnings.append(f"No lanes found for Fastfile: {fastfile}")
                continue

            self._has_lanes = True
            lane_option = OptionNode.new_option(LANE_TITLE, LANE_SUMMARY, LANE_ENV_KEY)
            work_dir_option.add_option(work_dir, lane_option)
            for lane in lanes:
                lane_option.add_config(lane, OptionNode.new_config_option(CONFIG_NAME))

        if not self._has_lanes:
            LOGGER.error(NO_VALID_FASTFILE)
            warnings.append(NO_VALID_FASTFILE)
            return ScannerOptions(root=OptionNode(), warnings=warnings, icons=[])

        root = add_project_type_options(work_dir_option, self.detected_project_types)
        return ScannerOptions(root=root, warnings=warnings, icons=[])

    def configs(self, is_private_repository: bool) -> ConfigMap:
        if not self._has_lanes:
            return {}
        activation = SSHKeyActivation.for_repository(is_private_repository)
        return {
            project_type_config_name(CONFIG_NAME, project_type): render_config(project_type, activation)
            for project_type in self.detected_project_types
        }

    def default_options(self) -> OptionNode:
        work_dir_option = OptionNode.new_option(
            WORK_DIR_TITLE, WORK_DIR_SUMMARY, WORK_DIR_ENV_KEY, OptionType.USER_INPUT
        )
        lane_option = OptionNode.new_option(LANE_TITLE, LANE_SUMMARY, LANE_ENV_KEY, OptionType.USER_INPUT)
        work_dir_option.add_option("_", lane_option)
        project_type_option = OptionNode.new_option(PROJECT_TYPE_TITLE, PROJECT_TYPE_SUMMARY, "")
        lane_option.add_option("_", project_type_option)
        for platform in DEFAULT_PLATFORMS:
            project_type_option.add_config(
                platform, OptionNode.new_config_option(DEFAULT_CONFIG_NAME_FORMAT.format(platform))
            )
        return work_dir_option

    def default_configs(self) -> ConfigMap:
        return {
            DEFAULT_CONFIG_NAME_FORMAT.format(platform): render_config(
                platform, SSHKeyActivation.CONDITIONAL
            )
            for platform in DEFAULT_PLATFORMS
        }


def render_config(project_type: str, activation: SSHKeyActivation) -> str:
    builder = ConfigBuilder()
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_prepare_steps(activation))
    if project_type == IOS_PLATFORM:
        builder.append_steps(PRIMARY_WORKFLOW_ID, steps.certificate_and_profile_installer())
    builder.append_steps(
        PRIMARY_WORKFLOW_ID,
        steps.fastlane(
            env_input(LANE_INPUT_KEY, LANE_ENV_KEY),
            env_input(WORK_DIR_INPUT_KEY, WORK_DIR_ENV_KEY),
        ),
    )
    builder.append_steps(PRIMARY_WORKFLOW_ID, *steps.default_deploy_steps())
    return to_yaml(
        builder.generate(project_type, [{XCODE_LIST_TIMEOUT_ENV_KEY: XCODE_LIST_TIMEOUT}])
    )
