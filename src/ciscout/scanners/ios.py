"""iOS project scanner."""

from __future__ import annotations

from ciscout.generation.descriptor import XcodeProjectType
from ciscout.scanners.xcode import XcodeScanner


class IOSScanner(XcodeScanner):
    """Detects Xcode projects that build for ``iphoneos``."""

    project_type = XcodeProjectType.IOS
