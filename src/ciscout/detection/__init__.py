"""Detection of unsupported build tools."""

from ciscout.detection.unknown_tools import UnknownToolResult, detect_unknown_tools, log_unknown_tools

__all__ = ["UnknownToolResult", "detect_unknown_tools", "log_unknown_tools"]
