"""
Shared value types for imagemcp.

Enumerations for every string-valued option, the ImageInput tagged union,
the per-save FileOutputRequest and the immutable SavedImage record.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class ImageInputKind(str, Enum):
    URL = "url"
    INLINE = "inline"
    LOCAL = "local"


class NamingStrategy(str, Enum):
    TIMESTAMP = "timestamp"
    CONTENT = "content"
    CUSTOM = "custom"
    HASH = "hash"


class OrganizeBy(str, Enum):
    NONE = "none"
    DATE = "date"
    DIMENSION_RATIO = "dimension-ratio"
    QUALITY = "quality"


class ConflictStrategy(str, Enum):
    OVERWRITE = "overwrite"
    SKIP = "skip"
    AUTO_RENAME = "auto-rename"


class AspectRatio(str, Enum):
    SQUARE = "square"
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"


class ImageQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OutputFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"


class EditKind(str, Enum):
    INPAINT = "inpaint"
    OUTPAINT = "outpaint"
    STYLE_TRANSFER = "styleTransfer"
    OBJECT_REMOVAL = "objectRemoval"
    BACKGROUND_CHANGE = "backgroundChange"
    VARIATION = "variation"


class ErrorHandling(str, Enum):
    FAIL_FAST = "failFast"
    CONTINUE_ON_ERROR = "continueOnError"
    RETRY_FAILED = "retryFailed"


# Upstream sizes per aspect ratio (width, height)
ASPECT_RATIO_SIZES: dict[AspectRatio, tuple[int, int]] = {
    AspectRatio.SQUARE: (1024, 1024),
    AspectRatio.LANDSCAPE: (1536, 1024),
    AspectRatio.PORTRAIT: (1024, 1536),
}


def aspect_ratio_to_size(aspect_ratio: AspectRatio) -> tuple[int, int]:
    """Return (width, height) the upstream model renders for an aspect ratio."""
    return ASPECT_RATIO_SIZES[AspectRatio(aspect_ratio)]


def size_string(size: tuple[int, int]) -> str:
    """Format (width, height) as the upstream 'WxH' size string."""
    return f"{size[0]}x{size[1]}"


@dataclass(frozen=True)
class ImageInput:
    """A source image for edit operations: a URL, inline base64 data, or a local path."""

    kind: ImageInputKind
    value: str

    @classmethod
    def url(cls, value: str) -> "ImageInput":
        return cls(ImageInputKind.URL, value)

    @classmethod
    def inline(cls, value: str) -> "ImageInput":
        return cls(ImageInputKind.INLINE, value)

    @classmethod
    def local(cls, value: str) -> "ImageInput":
        return cls(ImageInputKind.LOCAL, value)

    @classmethod
    def from_value(cls, value: str) -> "ImageInput":
        """Detect the kind of a bare string: data URL, http(s) URL, or local path."""
        stripped = value.strip()
        if stripped.startswith("data:"):
            return cls.inline(stripped)
        if stripped.startswith(("http://", "https://")):
            return cls.url(stripped)
        return cls.local(value)

    def describe(self) -> str:
        """Short reference for results and errors; URLs verbatim, others truncated."""
        if self.kind is ImageInputKind.URL:
            return self.value
        if len(self.value) > 50:
            return f"{self.kind.value}:{self.value[:50]}..."
        return f"{self.kind.value}:{self.value}"


@dataclass(frozen=True)
class FileOutputRequest:
    """Output-shaping intent for a single save."""

    save: bool = True
    output_directory: str | None = None
    filename: str | None = None
    naming_strategy: NamingStrategy = NamingStrategy.TIMESTAMP
    organize_by: OrganizeBy = OrganizeBy.NONE
    filename_prefix: str = ""


@dataclass(frozen=True)
class SavedImage:
    """Result of a successful persist."""

    local_path: str
    filename: str
    directory: str
    size_bytes: int
    format: str
    saved_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
