"""
Source image loading for edit operations.

Fetches the raw bytes of an ImageInput from a remote URL, an inline base64
payload (optionally a data URL) or a local file. Every path enforces the
same byte ceiling; local paths are additionally checked for traversal
segments and an allow-listed extension before anything is read.
"""

import base64
import binascii
import os
import re
from pathlib import Path

import requests

from imagemcp.core.types import ImageInput, ImageInputKind
from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import (
    InvalidInputError,
    NotFoundError,
    TooLargeError,
    UnsupportedFormatError,
)

logger = get_logger(__name__)

# Maximum source image size in bytes (10 MiB)
MAX_INPUT_BYTES = 10 * 1024 * 1024

ALLOWED_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")

_MIME_BY_EXTENSION = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")

_CHUNK_SIZE = 64 * 1024
_USER_AGENT = "imagemcp/1.0"


def mime_type_from_extension(path: str | Path) -> str:
    """Return the MIME type for an image file extension, or application/octet-stream."""
    return _MIME_BY_EXTENSION.get(Path(path).suffix.lower(), "application/octet-stream")


def detect_mime_type(data: bytes) -> str:
    """Infer the MIME type from magic bytes (PNG, JPEG, WebP, GIF)."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return "application/octet-stream"


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def has_traversal(raw_path: str) -> bool:
    """Return True if any segment of the path (either separator style) is '..'."""
    return ".." in re.split(r"[\\/]+", raw_path)


def decode_inline(value: str, max_bytes: int = MAX_INPUT_BYTES) -> bytes:
    """
    Decode inline base64 image data, with or without a data-URL prefix.

    Raises:
        InvalidInputError: If the data URL is malformed or the payload is not strict base64
        TooLargeError: If the decoded payload exceeds max_bytes
    """
    payload = value.strip()
    if payload.startswith("data:"):
        comma = payload.find(",")
        if comma == -1:
            raise InvalidInputError("Invalid base64 data URL format", source="inline")
        payload = payload[comma + 1 :]

    if not payload or not _BASE64_RE.match(payload):
        raise InvalidInputError("Invalid base64 format", source="inline")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(f"Invalid base64 data: {e}", source="inline") from e

    if len(data) > max_bytes:
        raise TooLargeError(
            f"Base64 data too large: {len(data)} bytes (max: {max_bytes} bytes)",
            size_bytes=len(data),
            max_bytes=max_bytes,
            source="inline",
        )
    return data


def load_local_file(raw_path: str, max_bytes: int = MAX_INPUT_BYTES) -> bytes:
    """
    Read a local image file after path-safety checks.

    Raises:
        InvalidInputError: Traversal segment in the path, or not a regular file
        UnsupportedFormatError: Extension outside ALLOWED_EXTENSIONS
        NotFoundError: File does not exist
        TooLargeError: File is larger than max_bytes
    """
    if not raw_path or not raw_path.strip():
        raise InvalidInputError("File path is required", source=raw_path)
    if has_traversal(raw_path):
        raise InvalidInputError(
            "Invalid file path: directory traversal not allowed", source=raw_path
        )

    path = Path(os.path.normpath(raw_path)).expanduser()
    ext = path.suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise UnsupportedFormatError(
            f"Unsupported file extension: {ext or '(none)'}. "
            f"Allowed: {', '.join(ALLOWED_EXTENSIONS)}",
            source=raw_path,
        )

    try:
        stats = path.stat()
    except FileNotFoundError as e:
        raise NotFoundError(f"Image file not found: {path}", source=raw_path) from e
    except OSError as e:
        raise InvalidInputError(f"Cannot access image file {path}: {e}", source=raw_path) from e

    if not path.is_file():
        raise InvalidInputError(f"Path is not a file: {path}", source=raw_path)
    if stats.st_size > max_bytes:
        raise TooLargeError(
            f"File too large: {stats.st_size} bytes (max: {max_bytes} bytes)",
            size_bytes=stats.st_size,
            max_bytes=max_bytes,
            source=raw_path,
        )

    logger.debug("Reading local image path=%s size=%d", path, stats.st_size)
    return path.read_bytes()


def fetch_url(url: str, max_bytes: int = MAX_INPUT_BYTES, timeout: float = 30.0) -> bytes:
    """
    Download a source image, validating status, content type and size.

    Raises:
        InvalidInputError: Unreachable URL, HTTP error, or non-image content type
        TooLargeError: Declared or received size exceeds max_bytes
    """
    if not url.startswith(("http://", "https://")):
        raise InvalidInputError(f"Invalid image URL: {url}", source=url)

    logger.debug("Fetching source image url=%s timeout=%s", url, timeout)
    try:
        response = requests.get(
            url, stream=True, timeout=timeout, headers={"User-Agent": _USER_AGENT}
        )
    except requests.exceptions.RequestException as e:
        raise InvalidInputError(f"Failed to download image from URL: {e}", source=url) from e

    try:
        if response.status_code != 200:
            raise InvalidInputError(
                f"Failed to download image from URL: HTTP {response.status_code}", source=url
            )
        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("image/"):
            raise InvalidInputError(
                f"Invalid content type: {content_type or 'none'}. Expected image/*", source=url
            )

        received = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                received.extend(chunk)
                if len(received) > max_bytes:
                    raise TooLargeError(
                        f"Image too large: more than {max_bytes} bytes",
                        size_bytes=len(received),
                        max_bytes=max_bytes,
                        source=url,
                    )
        except requests.exceptions.RequestException as e:
            raise InvalidInputError(
                f"Failed to download image from URL: {e}", source=url
            ) from e
        return bytes(received)
    finally:
        response.close()


def load_image_input(
    image: ImageInput,
    max_bytes: int = MAX_INPUT_BYTES,
    timeout: float = 30.0,
) -> bytes:
    """
    Load raw image bytes for any ImageInput kind.

    Args:
        image: The source image reference
        max_bytes: Byte ceiling applied to every kind
        timeout: Network timeout in seconds for URL inputs

    Returns:
        The image bytes

    Raises:
        InvalidInputError, TooLargeError, NotFoundError, UnsupportedFormatError
    """
    if image.kind is ImageInputKind.URL:
        return fetch_url(image.value, max_bytes=max_bytes, timeout=timeout)
    if image.kind is ImageInputKind.INLINE:
        return decode_inline(image.value, max_bytes=max_bytes)
    if image.kind is ImageInputKind.LOCAL:
        return load_local_file(image.value, max_bytes=max_bytes)
    raise InvalidInputError(f"Unsupported image input type: {image.kind!r}")
