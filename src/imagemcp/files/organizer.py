"""
Output directory layout: flat, by date, by aspect ratio, or by quality.
"""

from datetime import datetime, timezone
from pathlib import Path

from imagemcp.core.types import OrganizeBy
from imagemcp.files.naming import sanitize_component
from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import DirectoryError, InvalidOptionError

logger = get_logger(__name__)


def _label(value: str | None, what: str) -> str:
    if not value:
        raise InvalidOptionError(f"{what} is required for {what.lower()} organization")
    label = sanitize_component(value)
    if not label:
        raise InvalidOptionError(f"{what} {value!r} is not a usable directory name")
    return label


def resolve_directory(
    base: str | Path,
    organize_by: OrganizeBy,
    aspect_ratio: str | None = None,
    quality: str | None = None,
    reference_time: datetime | None = None,
) -> Path:
    """
    Map a base directory and organization mode to the target directory.

    Nothing is created here; see ensure_directory.

    Raises:
        InvalidOptionError: Unknown mode, or the label the mode needs is missing
    """
    try:
        mode = OrganizeBy(organize_by)
    except ValueError as e:
        raise InvalidOptionError(f"Unknown organization strategy: {organize_by}") from e

    base_path = Path(base)
    if mode is OrganizeBy.NONE:
        return base_path
    if mode is OrganizeBy.DATE:
        when = reference_time or datetime.now(timezone.utc)
        return base_path / when.strftime("%Y-%m-%d")
    if mode is OrganizeBy.DIMENSION_RATIO:
        return base_path / _label(aspect_ratio, "Aspect ratio")
    return base_path / _label(quality, "Quality")


def ensure_directory(path: str | Path) -> Path:
    """
    Create path (and parents) if missing.

    Raises:
        DirectoryError: Empty path, or creation failed; carries the path
    """
    if not str(path).strip():
        raise DirectoryError("Directory path cannot be empty", path=str(path))
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryError(
            f"Failed to create directory {directory}: {e.strerror or e}", path=str(directory)
        ) from e
    return directory
