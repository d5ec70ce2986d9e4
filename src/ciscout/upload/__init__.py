"""Icon upload and scan result submission."""

from ciscout.upload.icons import (
    InvalidIconError,
    UploadError,
    redact_url,
    submit_result,
    upload_icons,
    validate_icon,
)

__all__ = [
    "InvalidIconError",
    "UploadError",
    "redact_url",
    "submit_result",
    "upload_icons",
    "validate_icon",
]
