"""App icon validation and upload, and scan result submission.

HTTPS requests use an SSL context built from certifi's CA bundle so the
upload works from standalone binaries that cannot see the system store.
"""

from __future__ import annotations

import json
import re
import ssl
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode, urlsplit, urlunsplit
from urllib.request import Request, urlopen

import certifi
from PIL import Image, UnidentifiedImageError

from ciscout.core.logging import get_logger
from ciscout.core.models import Icon, ScanResult

LOGGER = get_logger(__name__)

MAX_ICON_FILE_SIZE = 2 * 1024 * 1024
MAX_ICON_DIMENSION = 1024

MAX_ATTEMPTS = 3
RETRY_WAIT_SECONDS = 5.0
REQUEST_TIMEOUT = 30.0

_USERINFO_RE = re.compile(r"://[^/@]+@")

T = TypeVar("T")


class InvalidIconError(ValueError):
    """The file cannot be used as an app icon."""


class UploadError(Exception):
    """An icon upload or result submission failed."""


@dataclass
class UploadCandidate:
    filename: str
    filesize: int
    upload_url: str = ""


def redact_url(url: str) -> str:
    """Hide credentials embedded in a URL before it is logged."""
    return _USERINFO_RE.sub("://...@", url)


def get_ssl_context() -> ssl.SSLContext:
    return ssl.create_default_context(cafile=certifi.where())


def validate_icon(path: Path) -> None:
    """Check an icon file is a PNG of at most 2 MB and 1024x1024 pixels.

    The image is decoded and verified with Pillow, so a PNG header followed
    by corrupt data is rejected.

    Raises:
        InvalidIconError: If any check fails.
    """
    try:
        size = path.stat().st_size
    except OSError as e:
        raise InvalidIconError(f"Failed to read icon {path}: {e}") from e
    if size > MAX_ICON_FILE_SIZE:
        raise InvalidIconError(
            f"Icon {path} is {size} bytes, larger than the {MAX_ICON_FILE_SIZE} byte limit"
        )

    try:
        with Image.open(path) as img:
            image_format = img.format
            width, height = img.size
            img.verify()
    except UnidentifiedImageError as e:
        raise InvalidIconError(f"{path} is not a PNG image") from e
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise InvalidIconError(f"Icon {path} is not a valid image: {e}") from e

    if image_format != "PNG":
        raise InvalidIconError(f"{path} is not a PNG image ({image_format})")
    if width > MAX_ICON_DIMENSION or height > MAX_ICON_DIMENSION:
        raise InvalidIconError(
            f"Icon {path} is {width}x{height}, larger than "
            f"{MAX_ICON_DIMENSION}x{MAX_ICON_DIMENSION}"
        )


def with_retry(
    action: Callable[[], T],
    description: str,
    attempts: int = MAX_ATTEMPTS,
    wait: float = RETRY_WAIT_SECONDS,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Call ``action`` up to ``attempts`` times, waiting ``wait`` seconds in between."""
    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            return action()
        except (UploadError, URLError, OSError) as e:
            last_error = e
            if attempt < attempts:
                LOGGER.warning(f"{description} failed (attempt {attempt}/{attempts}): {e}, retrying")
                (sleep or time.sleep)(wait)
    raise UploadError(f"{description} failed after {attempts} attempts: {last_error}")


def _send(request: Request, expected_status: int) -> bytes:
    context = get_ssl_context() if request.full_url.startswith("https://") else None
    try:
        with urlopen(request, timeout=REQUEST_TIMEOUT, context=context) as response:  # nosec B310
            status = response.status
            body = response.read()
    except HTTPError as e:
        raise UploadError(
            f"{request.get_method()} {redact_url(request.full_url)} returned {e.code}"
        ) from e
    if status != expected_status:
        raise UploadError(
            f"{request.get_method()} {redact_url(request.full_url)} returned {status}, "
            f"expected {expected_status}"
        )
    return body


def request_upload_urls(
    icons: List[Icon], base_url: str, api_token: str
) -> List[UploadCandidate]:
    """Register the icons and get a pre-signed upload URL for each."""
    payload = [
        {"filename": icon.filename, "filesize": icon.path.stat().st_size} for icon in icons
    ]
    request = Request(
        base_url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Authorization": f"token {api_token}", "Content-Type": "application/json"},
        method="POST",
    )
    body = with_retry(lambda: _send(request, 201), "Requesting icon upload URLs")
    try:
        data = json.loads(body.decode("utf-8"))["data"]
        candidates = [
            UploadCandidate(
                filename=item["filename"],
                filesize=int(item["filesize"]),
                upload_url=item["upload_url"],
            )
            for item in data
        ]
    except (ValueError, KeyError, TypeError) as e:
        raise UploadError(f"Invalid upload URL response: {e}") from e

    expected = {item["filename"]: item["filesize"] for item in payload}
    for candidate in candidates:
        if expected.get(candidate.filename) != candidate.filesize:
            raise UploadError(
                f"Upload URL response reports {candidate.filesize} bytes for "
                f"{candidate.filename}, expected {expected.get(candidate.filename)}"
            )
    return candidates


def upload_icons(icons: List[Icon], base_url: str, api_token: str) -> None:
    """Upload app icons.

    Raises:
        UploadError: If a request fails after all retries.
    """
    if not icons:
        LOGGER.info("No icons to upload")
        return

    LOGGER.info(f"Uploading {len(icons)} icon(s) to {redact_url(base_url)}")
    by_filename: Dict[str, Icon] = {icon.filename: icon for icon in icons}
    for candidate in request_upload_urls(icons, base_url, api_token):
        icon = by_filename.get(candidate.filename)
        if icon is None:
            raise UploadError(f"Upload URL returned for unknown icon {candidate.filename}")
        request = Request(
            candidate.upload_url,
            data=icon.path.read_bytes(),
            headers={"Content-Type": "image/png"},
            method="PUT",
        )
        with_retry(lambda: _send(request, 200), f"Uploading icon {candidate.filename}")
        LOGGER.info(f"Uploaded {candidate.filename}")


def _with_query(url: str, params: Dict[str, str]) -> str:
    parts = urlsplit(url)
    query = "&".join(filter(None, [parts.query, urlencode(params)]))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def submit_result(result: ScanResult, url: str, api_token: str) -> None:
    """POST the scan result as JSON.

    Raises:
        UploadError: If the request fails after all retries.
    """
    data: Dict[str, Any] = result.to_dict()
    request = Request(
        _with_query(url, {"api_token": api_token}),
        data=json.dumps(data).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    LOGGER.info(f"Submitting scan result to {redact_url(url)}")
    with_retry(lambda: _send(request, 200), "Submitting scan result")
