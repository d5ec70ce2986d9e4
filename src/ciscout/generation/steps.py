"""Step list item factories for generated pipelines.

A step list item is a single-key mapping ``{"<id>@<version>": {...}}``; the
body carries optional ``title``, ``run_if`` and ``inputs`` entries. Inputs are
a list of single-key mappings so their order survives serialization.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

StepListItem = Dict[str, Dict[str, Any]]
StepInput = Dict[str, str]

SSH_KEY_RUN_IF = '{{getenv "SSH_RSA_PRIVATE_KEY" | ne ""}}'

# Common
ACTIVATE_SSH_KEY = ("activate-ssh-key", "3.1.1")
CHANGE_WORKDIR = ("change-workdir", "1.0.1")
GIT_CLONE = ("git-clone", "3.4.3")
CERTIFICATE_AND_PROFILE_INSTALLER = ("certificate-and-profile-installer", "1.8.5")
DEPLOY_TO_BITRISE_IO = ("deploy-to-bitrise-io", "1.3.3")
SCRIPT = ("script", "1.1.3")

# Android
INSTALL_MISSING_ANDROID_TOOLS = ("install-missing-android-tools", "1.0.2")
GRADLE_RUNNER = ("gradle-runner", "1.6.1")
GENERATE_GRADLE_WRAPPER = ("generate-gradle-wrapper", "0.9.2")

# Fastlane
FASTLANE = ("fastlane", "2.3.9")

# iOS / macOS
COCOAPODS_INSTALL = ("cocoapods-install", "1.6.1")
CARTHAGE = ("carthage", "3.0.6")
RECREATE_USER_SCHEMES = ("recreate-user-schemes", "1.0.1")
XCODE_ARCHIVE = ("xcode-archive", "2.0.5")
XCODE_TEST = ("xcode-test", "1.18.3")
XCODE_ARCHIVE_MAC = ("xcode-archive-mac", "1.4.1")
XCODE_TEST_MAC = ("xcode-test-mac", "1.1.0")
EXPORT_XCARCHIVE = ("export-xcarchive", "3.0.2")

# Xamarin
XAMARIN_USER_MANAGEMENT = ("xamarin-user-management", "1.0.3")
NUGET_RESTORE = ("nuget-restore", "1.0.4")
XAMARIN_COMPONENTS_RESTORE = ("xamarin-components-restore", "0.9.0")
XAMARIN_ARCHIVE = ("xamarin-archive", "1.3.3")

# Cordova / Ionic
CORDOVA_ARCHIVE = ("cordova-archive", "0.9.2")
IONIC_ARCHIVE = ("ionic-archive", "0.9.3")
GENERATE_CORDOVA_BUILD_CONFIGURATION = ("generate-cordova-build-configuration", "0.9.2")
JASMINE_RUNNER = ("jasmine-runner", "0.9.0")
KARMA_JASMINE_RUNNER = ("karma-jasmine-runner", "0.9.1")
NPM = ("npm", "0.9.0")
YARN = ("yarn", "0.0.8")

# React Native (Expo)
EXPO_DETACH = ("expo-detach", "0.9.3")

# Flutter
FLUTTER_INSTALLER = ("flutter-installer", "0.9.2")
FLUTTER_TEST = ("flutter-test", "0.9.1")
FLUTTER_ANALYZE = ("flutter-analyze", "0.1.0")
FLUTTER_BUILD = ("flutter-build", "0.9.1")


class SSHKeyActivation(str, Enum):
    """How the prepare steps activate the repository SSH key."""

    NONE = "none"
    CONDITIONAL = "conditional"
    MANDATORY = "mandatory"

    @classmethod
    def for_repository(cls, is_private_repository: bool) -> "SSHKeyActivation":
        return cls.MANDATORY if is_private_repository else cls.CONDITIONAL


def step_id(step: tuple) -> str:
    """Return the ``id@version`` composite for a step constant."""
    return f"{step[0]}@{step[1]}"


def step_list_item(
    step: tuple,
    *inputs: StepInput,
    title: str = "",
    run_if: str = "",
) -> StepListItem:
    body: Dict[str, Any] = {}
    if title:
        body["title"] = title
    if run_if:
        body["run_if"] = run_if
    if inputs:
        body["inputs"] = [dict(item) for item in inputs]
    return {step_id(step): body}


def env_input(key: str, env_key: str) -> StepInput:
    """Input that references an environment variable (``key: $ENV``)."""
    return {key: f"${env_key}"}


def step_ids(steps: List[StepListItem]) -> List[str]:
    """Composite ids of a step list, in order."""
    return [next(iter(item)) for item in steps]


# Common

def activate_ssh_key(run_if: str = SSH_KEY_RUN_IF) -> StepListItem:
    return step_list_item(ACTIVATE_SSH_KEY, run_if=run_if)


def git_clone() -> StepListItem:
    return step_list_item(GIT_CLONE)


def change_workdir(*inputs: StepInput) -> StepListItem:
    return step_list_item(CHANGE_WORKDIR, *inputs)


def certificate_and_profile_installer() -> StepListItem:
    return step_list_item(CERTIFICATE_AND_PROFILE_INSTALLER)


def deploy_to_bitrise_io() -> StepListItem:
    return step_list_item(DEPLOY_TO_BITRISE_IO)


def script(title: str, *inputs: StepInput) -> StepListItem:
    return step_list_item(SCRIPT, *inputs, title=title)


def default_prepare_steps(
    ssh_key_activation: SSHKeyActivation = SSHKeyActivation.CONDITIONAL,
) -> List[StepListItem]:
    """Steps that open every generated workflow.

    Public repositories get ``activate-ssh-key`` guarded by ``run_if``,
    private ones get it unconditionally, ``NONE`` leaves it out.
    """
    steps: List[StepListItem] = []
    if ssh_key_activation == SSHKeyActivation.CONDITIONAL:
        steps.append(activate_ssh_key())
    elif ssh_key_activation == SSHKeyActivation.MANDATORY:
        steps.append(step_list_item(ACTIVATE_SSH_KEY))
    steps.append(git_clone())
    return steps


def default_deploy_steps() -> List[StepListItem]:
    return [deploy_to_bitrise_io()]


# Android

def install_missing_android_tools(*inputs: StepInput) -> StepListItem:
    return step_list_item(INSTALL_MISSING_ANDROID_TOOLS, *inputs)


def gradle_runner(*inputs: StepInput) -> StepListItem:
    return step_list_item(GRADLE_RUNNER, *inputs)


def generate_gradle_wrapper(*inputs: StepInput) -> StepListItem:
    return step_list_item(GENERATE_GRADLE_WRAPPER, *inputs)


# Fastlane

def fastlane(*inputs: StepInput) -> StepListItem:
    return step_list_item(FASTLANE, *inputs)


# iOS / macOS

def cocoapods_install() -> StepListItem:
    return step_list_item(COCOAPODS_INSTALL)


def carthage(*inputs: StepInput) -> StepListItem:
    return step_list_item(CARTHAGE, *inputs)


def recreate_user_schemes(*inputs: StepInput) -> StepListItem:
    return step_list_item(RECREATE_USER_SCHEMES, *inputs)


def xcode_archive(*inputs: StepInput) -> StepListItem:
    return step_list_item(XCODE_ARCHIVE, *inputs)


def xcode_test(*inputs: StepInput) -> StepListItem:
    return step_list_item(XCODE_TEST, *inputs)


def xcode_archive_mac(*inputs: StepInput) -> StepListItem:
    return step_list_item(XCODE_ARCHIVE_MAC, *inputs)


def xcode_test_mac(*inputs: StepInput) -> StepListItem:
    return step_list_item(XCODE_TEST_MAC, *inputs)


def export_xcarchive(*inputs: StepInput) -> StepListItem:
    return step_list_item(EXPORT_XCARCHIVE, *inputs)


# Xamarin

def xamarin_user_management(*inputs: StepInput) -> StepListItem:
    return step_list_item(XAMARIN_USER_MANAGEMENT, *inputs, run_if=".IsCI")


def nuget_restore() -> StepListItem:
    return step_list_item(NUGET_RESTORE)


def xamarin_components_restore() -> StepListItem:
    return step_list_item(XAMARIN_COMPONENTS_RESTORE)


def xamarin_archive(*inputs: StepInput) -> StepListItem:
    return step_list_item(XAMARIN_ARCHIVE, *inputs)


# Cordova / Ionic / JavaScript

def cordova_archive(*inputs: StepInput) -> StepListItem:
    return step_list_item(CORDOVA_ARCHIVE, *inputs)


def ionic_archive(*inputs: StepInput) -> StepListItem:
    return step_list_item(IONIC_ARCHIVE, *inputs)


def generate_cordova_build_configuration() -> StepListItem:
    return step_list_item(GENERATE_CORDOVA_BUILD_CONFIGURATION)


def jasmine_runner(*inputs: StepInput) -> StepListItem:
    return step_list_item(JASMINE_RUNNER, *inputs)


def karma_jasmine_runner(*inputs: StepInput) -> StepListItem:
    return step_list_item(KARMA_JASMINE_RUNNER, *inputs)


def npm(*inputs: StepInput) -> StepListItem:
    return step_list_item(NPM, *inputs)


def yarn(*inputs: StepInput) -> StepListItem:
    return step_list_item(YARN, *inputs)


def package_manager_install(
    use_yarn: bool,
    workdir: Optional[str] = None,
    command: str = "install",
) -> StepListItem:
    """``npm install`` or ``yarn install`` step, optionally in a workdir."""
    inputs: List[StepInput] = []
    if workdir:
        inputs.append({"workdir": workdir})
    inputs.append({"command": command})
    return yarn(*inputs) if use_yarn else npm(*inputs)


def expo_detach(*inputs: StepInput) -> StepListItem:
    return step_list_item(EXPO_DETACH, *inputs)


# Flutter

def flutter_installer() -> StepListItem:
    return step_list_item(FLUTTER_INSTALLER)


def flutter_test(*inputs: StepInput) -> StepListItem:
    return step_list_item(FLUTTER_TEST, *inputs)


def flutter_analyze(*inputs: StepInput) -> StepListItem:
    return step_list_item(FLUTTER_ANALYZE, *inputs)


def flutter_build(*inputs: StepInput) -> StepListItem:
    return step_list_item(FLUTTER_BUILD, *inputs)
