"""
Persisting generated images to disk.

FileManager turns a generated image (remote URL or inline base64) into a
saved file: it resolves the target directory, derives a filename, resolves
name conflicts and streams the bytes to disk. Transfers are size-limited
while they run; a transfer that breaks the ceiling or fails midway leaves no
partial file behind. Network-class download failures are retried according
to an injected RetryPolicy.
"""

import base64
import binascii
import os
import tempfile
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

import requests

from imagemcp.core.config import Config
from imagemcp.core.types import ConflictStrategy, FileOutputRequest, NamingStrategy, SavedImage
from imagemcp.files.conflicts import resolve_conflict
from imagemcp.files.naming import (
    NamingEngine,
    normalize_extension,
    sanitize_component,
    sanitize_filename,
)
from imagemcp.files.organizer import ensure_directory, resolve_directory
from imagemcp.files.retry import RetryPolicy
from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import (
    DiskSpaceError,
    DownloadError,
    FileConflictError,
    FileSystemError,
    ImageMcpError,
    InvalidInputError,
    NetworkError,
    RequestTimeoutError,
)

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024
USER_AGENT = "imagemcp/1.0"
# Attempts to claim a free name when concurrent writers race for the same path
MAX_CLAIM_ATTEMPTS = 10


def format_from_content_type(content_type: str, path: str | Path = "") -> str:
    """Infer image format from a Content-Type, falling back to the file extension."""
    ct = (content_type or "").lower()
    if "png" in ct:
        return "png"
    if "jpeg" in ct or "jpg" in ct:
        return "jpeg"
    if "gif" in ct:
        return "gif"
    if "webp" in ct:
        return "webp"
    ext = Path(path).suffix.lstrip(".").lower()
    if ext == "jpg":
        return "jpeg"
    return ext or "png"


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class OutputSource:
    """A generated image to persist: a remote URL or already-decoded bytes."""

    url: str | None = None
    data: bytes | None = None
    mime_type: str | None = None

    @classmethod
    def from_url(cls, url: str) -> "OutputSource":
        return cls(url=url)

    @classmethod
    def from_base64(cls, value: str, mime_type: str | None = None) -> "OutputSource":
        """
        Build from base64 text or a data URL (whose MIME type wins over mime_type).

        Raises:
            InvalidInputError: If the payload is not valid base64
        """
        payload = value.strip()
        if payload.startswith("data:"):
            header, _, payload = payload.partition(",")
            declared = header[5:].split(";", 1)[0].strip()
            mime_type = declared or mime_type
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInputError(f"Invalid base64 image data: {e}", source="inline") from e
        return cls(data=data, mime_type=mime_type)

    def describe(self) -> str:
        return self.url if self.url else "inline"


@dataclass(frozen=True)
class ImageMetadata:
    """What the generated image is about; feeds naming and organization."""

    prompt: str | None = None
    aspect_ratio: str | None = None
    quality: str | None = None
    format: str = "png"


@dataclass(frozen=True)
class TransferResult:
    path: Path
    size_bytes: int
    format: str
    duration_ms: int


class FileManager:
    """Saves generated images under a base directory and cleans up old ones."""

    def __init__(
        self,
        default_output_dir: str | Path = "./generated_images",
        max_file_size_bytes: int = 50 * 1024 * 1024,
        enable_file_output: bool = True,
        keep_files_days: int = 30,
        download_timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        naming: NamingEngine | None = None,
        conflict_strategy: ConflictStrategy = ConflictStrategy.AUTO_RENAME,
    ) -> None:
        self.default_output_dir = Path(default_output_dir)
        self.max_file_size_bytes = max_file_size_bytes
        self.enable_file_output = enable_file_output
        self.keep_files_days = keep_files_days
        self.download_timeout = download_timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.naming = naming or NamingEngine()
        self.conflict_strategy = conflict_strategy

    @classmethod
    def from_config(cls, config: Config) -> "FileManager":
        return cls(
            default_output_dir=config.default_output_dir,
            max_file_size_bytes=config.max_file_size_bytes,
            enable_file_output=config.enable_file_output,
            keep_files_days=config.keep_files_days,
            download_timeout=config.download_timeout,
            retry_policy=RetryPolicy(max_retries=config.max_retries, base_delay=config.retry_delay),
        )

    # ------------------------------------------------------------------ save

    def save(
        self,
        source: OutputSource,
        request: FileOutputRequest,
        metadata: ImageMetadata,
    ) -> SavedImage | None:
        """
        Persist a generated image according to request.

        Returns None without touching the filesystem when request.save is
        false or file output is disabled.

        Raises:
            InvalidOptionError, DirectoryError, FileConflictError: path computation
            DiskSpaceError: size ceiling exceeded (partial file removed)
            DownloadError: transfer failed, after retries where retryable
            FileSystemError: target could not be written
        """
        if not request.save:
            return None
        if not self.enable_file_output:
            logger.debug("File output disabled; not saving %s", source.describe())
            return None

        base = request.output_directory or self.default_output_dir
        directory = resolve_directory(
            base,
            request.organize_by,
            aspect_ratio=metadata.aspect_ratio,
            quality=metadata.quality,
        )
        ensure_directory(directory)

        extension = normalize_extension(metadata.format or "png")
        target = directory / self._filename(request, metadata, extension)

        for _ in range(MAX_CLAIM_ATTEMPTS):
            final_path = resolve_conflict(target, self.conflict_strategy)
            try:
                result = self._transfer(source, final_path)
                break
            except FileExistsError:
                if self.conflict_strategy is ConflictStrategy.SKIP:
                    raise FileConflictError("File already exists", path=str(final_path))
                logger.debug("Lost race for %s; resolving a new name", final_path.name)
        else:
            raise FileConflictError(
                f"Could not claim a free filename after {MAX_CLAIM_ATTEMPTS} attempts",
                path=str(target),
            )

        logger.info(
            "Saved image path=%s size=%d format=%s in %dms",
            result.path,
            result.size_bytes,
            result.format,
            result.duration_ms,
        )
        return SavedImage(
            local_path=str(result.path),
            filename=result.path.name,
            directory=str(result.path.parent),
            size_bytes=result.size_bytes,
            format=result.format,
            saved_at=_utc_iso(),
        )

    def _filename(self, request: FileOutputRequest, metadata: ImageMetadata, extension: str) -> str:
        if request.filename:
            return sanitize_filename(request.filename, extension)
        if request.naming_strategy is NamingStrategy.CUSTOM:
            return self.naming.generate_filename(
                NamingStrategy.CUSTOM, extension=extension, prefix=request.filename_prefix
            )
        name = self.naming.generate_filename(
            request.naming_strategy, content=metadata.prompt, extension=extension
        )
        prefix = sanitize_component(request.filename_prefix) if request.filename_prefix else ""
        return f"{prefix}{name}"

    def _transfer(self, source: OutputSource, path: Path) -> TransferResult:
        if source.url:
            return self.download(source.url, path)
        if source.data is None:
            raise InvalidInputError("Output source has neither a URL nor data")

        start = time.monotonic()
        data = source.data
        chunks = (data[i : i + CHUNK_SIZE] for i in range(0, len(data), CHUNK_SIZE))
        size = self._stream_to_file(chunks, path, source.describe())
        return TransferResult(
            path=path,
            size_bytes=size,
            format=format_from_content_type(source.mime_type or "", path),
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    # -------------------------------------------------------------- download

    def download(self, url: str, path: str | Path) -> TransferResult:
        """
        Download url to path, retrying network-class failures.

        Raises:
            DownloadError: HTTP/content-type failure, or retries exhausted
            DiskSpaceError: Declared or streamed size above the ceiling
            FileExistsError: path was created by someone else first
        """
        target = Path(path)
        start = time.monotonic()
        attempt = 0
        while True:
            attempt += 1
            try:
                size, fmt = self._download_once(url, target)
                return TransferResult(
                    path=target,
                    size_bytes=size,
                    format=fmt,
                    duration_ms=int((time.monotonic() - start) * 1000),
                )
            except ImageMcpError as e:
                if self.retry_policy.should_retry(e, attempt):
                    delay = self.retry_policy.delay(attempt)
                    logger.warning(
                        "Download attempt %d/%d failed url=%s: %s; retrying in %.1fs",
                        attempt,
                        self.retry_policy.max_attempts,
                        url,
                        e,
                        delay,
                    )
                    self.retry_policy.wait(attempt)
                    continue
                if isinstance(e, DownloadError):
                    e.attempts = attempt
                    raise
                if self.retry_policy.is_retryable(e):
                    raise DownloadError(
                        f"Download failed after {attempt} attempt(s): {e}",
                        source=url,
                        attempts=attempt,
                        path=str(target),
                    ) from e
                raise

    def _download_once(self, url: str, path: Path) -> tuple[int, str]:
        logger.debug("Downloading url=%s timeout=%s", url, self.download_timeout)
        try:
            response = requests.get(
                url,
                stream=True,
                timeout=self.download_timeout,
                headers={"User-Agent": USER_AGENT},
            )
        except requests.exceptions.Timeout as e:
            raise RequestTimeoutError(
                f"Download timed out after {self.download_timeout} seconds"
            ) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Network error: {str(e)}", original_error=e) from e

        try:
            if response.status_code != 200:
                raise DownloadError(
                    f"HTTP {response.status_code}: {response.reason or 'download failed'}",
                    source=url,
                    status_code=response.status_code,
                    path=str(path),
                )
            declared = _content_length(response.headers.get("content-length"))
            if declared > self.max_file_size_bytes:
                raise DiskSpaceError(
                    f"File size ({declared} bytes) exceeds maximum allowed size "
                    f"({self.max_file_size_bytes} bytes)",
                    attempted_bytes=declared,
                    max_bytes=self.max_file_size_bytes,
                    path=str(path),
                )
            content_type = response.headers.get("content-type", "")
            if not content_type.startswith("image/"):
                raise DownloadError(
                    f"Invalid content type: {content_type or 'none'}. Expected image content.",
                    source=url,
                    status_code=response.status_code,
                    path=str(path),
                )
            size = self._stream_to_file(response.iter_content(chunk_size=CHUNK_SIZE), path, url)
            return size, format_from_content_type(content_type, path)
        finally:
            response.close()

    def _open_target(self, path: Path) -> tuple[BinaryIO, Path]:
        """
        Open the file the transfer writes to.

        Overwrites go to a temporary file beside path that replaces it only on
        success, so a failed transfer leaves the existing file untouched.
        Other strategies claim path itself with exclusive creation.
        """
        try:
            if self.conflict_strategy is ConflictStrategy.OVERWRITE:
                fd, temp_name = tempfile.mkstemp(
                    prefix=f".{path.name}.", suffix=".part", dir=path.parent
                )
                return os.fdopen(fd, "wb"), Path(temp_name)
            return open(path, "xb"), path
        except FileExistsError:
            raise
        except OSError as e:
            raise FileSystemError(
                f"Cannot open file for writing: {e.strerror or e}",
                path=str(path),
                code="WRITE_ERROR",
            ) from e

    def _stream_to_file(self, chunks: Iterable[bytes], path: Path, source_ref: str) -> int:
        """Write chunks to path, enforcing the size ceiling; removes the partial file on failure."""
        handle, write_path = self._open_target(path)
        written = 0
        try:
            with handle:
                for chunk in chunks:
                    if not chunk:
                        continue
                    written += len(chunk)
                    if written > self.max_file_size_bytes:
                        raise DiskSpaceError(
                            "Download size exceeded limit during transfer",
                            attempted_bytes=written,
                            max_bytes=self.max_file_size_bytes,
                            path=str(path),
                        )
                    handle.write(chunk)
            if write_path != path:
                os.replace(write_path, path)
        except requests.exceptions.Timeout as e:
            _discard(write_path)
            raise RequestTimeoutError(f"Transfer of {source_ref} timed out") from e
        except requests.exceptions.RequestException as e:
            _discard(write_path)
            raise NetworkError(f"Network error during transfer: {str(e)}", original_error=e) from e
        except OSError as e:
            _discard(write_path)
            raise FileSystemError(
                f"Failed to write file: {e.strerror or e}", path=str(path), code="WRITE_ERROR"
            ) from e
        except BaseException:
            _discard(write_path)
            raise
        return written

    # --------------------------------------------------------------- cleanup

    def cleanup_old_files(
        self,
        directory: str | Path | None = None,
        now: float | None = None,
    ) -> list[Path]:
        """
        Delete regular files directly inside directory older than keep_files_days.

        Subdirectories are not descended into. Files that cannot be inspected
        or removed are logged and skipped.

        Returns:
            Paths that were removed
        """
        root = Path(directory) if directory is not None else self.default_output_dir
        if not root.is_dir():
            return []

        cutoff = (now if now is not None else time.time()) - self.keep_files_days * 86400
        removed: list[Path] = []
        for entry in sorted(root.iterdir()):
            try:
                if entry.is_file() and entry.stat().st_mtime < cutoff:
                    entry.unlink()
                    removed.append(entry)
            except OSError as e:
                logger.warning("Failed to clean up %s: %s", entry, e)
        logger.info("Cleanup removed %d file(s) from %s", len(removed), root)
        return removed


def _content_length(raw: str | None) -> int:
    try:
        return int(raw or 0)
    except ValueError:
        return 0


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove partial file %s: %s", path, e)
