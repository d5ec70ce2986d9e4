"""Scanner registry.

Built-in project scanners run in a fixed order; the order matters because a
detected scanner can exclude the ones that follow it. Scanners installed via
entry points run after the built-ins, sorted by entry point name.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Type

from ciscout.config.ignore import IgnorePatterns
from ciscout.core.logging import get_logger
from ciscout.scanners.android import AndroidScanner
from ciscout.scanners.base import AutomationToolScannerPlugin, ScannerOptions, ScannerPlugin
from ciscout.scanners.cordova import CordovaScanner
from ciscout.scanners.discovery import (
    PROJECT_SCANNER_ENTRY_POINT_GROUP,
    TOOL_SCANNER_ENTRY_POINT_GROUP,
    discover_plugins,
)
from ciscout.scanners.fastlane import FastlaneScanner
from ciscout.scanners.flutter import FlutterScanner
from ciscout.scanners.ionic import IonicScanner
from ciscout.scanners.ios import IOSScanner
from ciscout.scanners.macos import MacOSScanner
from ciscout.scanners.react_native import ReactNativeScanner
from ciscout.scanners.xamarin import XamarinScanner

LOGGER = get_logger(__name__)

PROJECT_SCANNER_CLASSES: List[Type[ScannerPlugin]] = [
    ReactNativeScanner,
    FlutterScanner,
    IonicScanner,
    CordovaScanner,
    IOSScanner,
    MacOSScanner,
    AndroidScanner,
    XamarinScanner,
]

TOOL_SCANNER_CLASSES: List[Type[AutomationToolScannerPlugin]] = [
    FastlaneScanner,
]


def _instantiate(
    classes: Iterable[Type[ScannerPlugin]],
    ignore: Optional[IgnorePatterns],
    disabled: Iterable[str],
) -> List[ScannerPlugin]:
    disabled_names = set(disabled)
    scanners: List[ScannerPlugin] = []
    for scanner_class in classes:
        scanner = scanner_class(ignore=ignore)
        if scanner.name in disabled_names:
            LOGGER.info(f"Scanner '{scanner.name}' is disabled by configuration")
            continue
        scanners.append(scanner)
    return scanners


def project_scanners(
    ignore: Optional[IgnorePatterns] = None,
    disabled: Iterable[str] = (),
) -> List[ScannerPlugin]:
    """Fresh project scanner instances in registration order."""
    plugins = discover_plugins(PROJECT_SCANNER_ENTRY_POINT_GROUP, ScannerPlugin)
    return _instantiate([*PROJECT_SCANNER_CLASSES, *plugins.values()], ignore, disabled)


def automation_tool_scanners(
    ignore: Optional[IgnorePatterns] = None,
    disabled: Iterable[str] = (),
) -> List[AutomationToolScannerPlugin]:
    """Fresh automation tool scanner instances in registration order."""
    plugins = discover_plugins(TOOL_SCANNER_ENTRY_POINT_GROUP, AutomationToolScannerPlugin)
    scanners = _instantiate([*TOOL_SCANNER_CLASSES, *plugins.values()], ignore, disabled)
    return [scanner for scanner in scanners if isinstance(scanner, AutomationToolScannerPlugin)]


def available_scanner_names() -> List[str]:
    return [scanner.name for scanner in [*project_scanners(), *automation_tool_scanners()]]


__all__ = [
    "AutomationToolScannerPlugin",
    "ScannerOptions",
    "ScannerPlugin",
    "automation_tool_scanners",
    "available_scanner_names",
    "project_scanners",
]
