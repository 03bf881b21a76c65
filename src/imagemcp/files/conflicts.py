"""
Conflict resolution for output paths that already exist.
"""

import time
from collections.abc import Callable
from pathlib import Path

from imagemcp.core.types import ConflictStrategy
from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import FileConflictError, InvalidOptionError

logger = get_logger(__name__)

MAX_RENAME_ATTEMPTS = 100


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


def renamed_candidate(path: Path, counter: int, millis: int) -> Path:
    """{stem}_{counter:03d}_{millis}{suffix} next to path."""
    return path.with_name(f"{path.stem}_{counter:03d}_{millis}{path.suffix}")


def resolve_conflict(
    candidate: str | Path,
    strategy: ConflictStrategy = ConflictStrategy.AUTO_RENAME,
    max_attempts: int = MAX_RENAME_ATTEMPTS,
    clock_ms: Callable[[], int] = _epoch_ms,
) -> Path:
    """
    Return the path a save should write to.

    - overwrite: candidate unchanged
    - skip: FileConflictError if candidate exists
    - auto-rename: first free {stem}_{NNN}_{epoch_ms}{ext}, at most max_attempts tries

    Raises:
        FileConflictError: skip on an existing file, or auto-rename exhausted
        InvalidOptionError: Unknown strategy
    """
    path = Path(candidate)
    try:
        mode = ConflictStrategy(strategy)
    except ValueError as e:
        raise InvalidOptionError(f"Unknown conflict strategy: {strategy}") from e

    if not path.exists() or mode is ConflictStrategy.OVERWRITE:
        return path
    if mode is ConflictStrategy.SKIP:
        raise FileConflictError("File already exists", path=str(path))

    for counter in range(1, max_attempts + 1):
        renamed = renamed_candidate(path, counter, clock_ms())
        if not renamed.exists():
            logger.debug("Resolved name conflict %s -> %s", path.name, renamed.name)
            return renamed

    raise FileConflictError(
        f"Could not find a free filename after {max_attempts} attempts", path=str(path)
    )
