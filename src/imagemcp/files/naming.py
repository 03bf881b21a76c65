"""
Filename generation for saved images.

Four strategies derive a name when the caller does not supply one:

- timestamp: image_{YYYYMMDD}_{HHMMSS}_{6 hex of sha256(content)}
- content:   sanitized content text, truncated, plus the timestamp suffix
- custom:    {prefix}_{NNN} with a per-prefix counter owned by the engine
- hash:      first 8 hex of sha256(content, or the timestamp when absent)

User-supplied components (prefixes, explicit filenames) are sanitized so no
separator or '..' can reach the filesystem.
"""

import hashlib
import re
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import PurePosixPath

from imagemcp.core.types import NamingStrategy
from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import InvalidOptionError

logger = get_logger(__name__)

DEFAULT_MAX_LENGTH = 100
DEFAULT_CUSTOM_PREFIX = "generated"
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_extension(extension: str) -> str:
    """Return the extension with exactly one leading dot ('png' -> '.png')."""
    ext = extension.strip().lower().lstrip(".")
    return f".{ext}" if ext else ".png"


def sanitize_component(value: str) -> str:
    """
    Reduce a user-supplied name part to [a-z0-9_-].

    Path separators and '..' never survive: dots and slashes are dropped,
    whitespace becomes '_'.
    """
    cleaned = re.sub(r"\s+", "_", value.strip().lower())
    cleaned = re.sub(r"[^a-z0-9_-]", "", cleaned)
    return cleaned[:DEFAULT_MAX_LENGTH]


def sanitize_content(text: str) -> str:
    """Sanitize free text for the content strategy: [a-z0-9_] only."""
    cleaned = re.sub(r"\s+", "_", text.strip().lower())
    cleaned = re.sub(r"[^a-z0-9_]", "", cleaned)
    return re.sub(r"_+", "_", cleaned).strip("_")


def sanitize_filename(filename: str, extension: str = ".png") -> str:
    """
    Turn a caller-supplied filename into a safe basename.

    Directory parts are discarded, a trailing image extension is kept, and any
    other extension is replaced by ``extension``.

    Raises:
        InvalidOptionError: If nothing usable remains after sanitizing
    """
    name = PurePosixPath(filename.replace("\\", "/")).name
    stem, dot, ext = name.rpartition(".")
    keep_ext = f".{ext.lower()}" if dot and f".{ext.lower()}" in IMAGE_EXTENSIONS else None
    if keep_ext is None:
        stem = name
    base = re.sub(r"[^\w\s-]", "", stem)
    base = re.sub(r"\s+", "_", base.strip()).lower()[:DEFAULT_MAX_LENGTH]
    if not base:
        raise InvalidOptionError(f"Filename {filename!r} has no usable characters")
    return f"{base}{keep_ext or normalize_extension(extension)}"


class NamingEngine:
    """Generates filenames; owns the per-prefix sequence counters."""

    def __init__(
        self,
        clock: Callable[[], datetime] = _utc_now,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self._clock = clock
        self._max_length = max_length
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def timestamp(self) -> str:
        """Current clock as YYYYMMDD_HHMMSS."""
        return self._clock().strftime("%Y%m%d_%H%M%S")

    def next_sequence(self, prefix: str) -> int:
        """Increment and return the counter for prefix (first value is 1)."""
        with self._lock:
            value = self._counters.get(prefix, 0) + 1
            self._counters[prefix] = value
        return value

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def generate_filename(
        self,
        strategy: NamingStrategy,
        content: str | None = None,
        extension: str = ".png",
        prefix: str | None = None,
    ) -> str:
        """
        Generate a filename (with extension) for the given strategy.

        Args:
            strategy: Naming strategy
            content: Prompt or other content text the name is derived from
            extension: File extension, with or without the leading dot
            prefix: Sequence prefix for the custom strategy

        Raises:
            InvalidOptionError: If the content strategy has no content, or the
                strategy is unknown
        """
        ext = normalize_extension(extension)
        stamp = self.timestamp()
        try:
            strategy = NamingStrategy(strategy)
        except ValueError as e:
            raise InvalidOptionError(f"Unknown naming strategy: {strategy}") from e

        if strategy is NamingStrategy.TIMESTAMP:
            name = f"image_{stamp}_{_digest(content or '')[:6]}{ext}"
        elif strategy is NamingStrategy.CONTENT:
            if not content:
                raise InvalidOptionError("Content is required for content-based naming")
            room = self._max_length - len(stamp) - len(ext) - 1
            sanitized = sanitize_content(content)[: max(room, 1)].rstrip("_") or "image"
            name = f"{sanitized}_{stamp}{ext}"
        elif strategy is NamingStrategy.CUSTOM:
            safe_prefix = sanitize_component(prefix or "").strip("_-") or DEFAULT_CUSTOM_PREFIX
            name = f"{safe_prefix}_{self.next_sequence(safe_prefix):03d}{ext}"
        else:
            name = f"{_digest(content or stamp)[:8]}{ext}"

        logger.debug("Generated filename strategy=%s name=%s", strategy.value, name)
        return name
