"""Scan result output."""

from ciscout.output.writer import OutputFormat, format_scan_result, write_scan_result

__all__ = ["OutputFormat", "format_scan_result", "write_scan_result"]
