"""macOS project scanner."""

from __future__ import annotations

from ciscout.generation.descriptor import XcodeProjectType
from ciscout.scanners.xcode import XcodeScanner


class MacOSScanner(XcodeScanner):
    project_type = XcodeProjectType.MACOS
