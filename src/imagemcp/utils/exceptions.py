"""
Custom exceptions for imagemcp.

Every error raised by the library derives from ImageMcpError. The families
mirror how callers react to them: validation and input-load errors are never
retried, network errors are retried by the download policy, and file-system
errors carry the path that was being written.
"""


class ImageMcpError(Exception):
    """Base exception for all imagemcp errors."""

    pass


class ValidationError(ImageMcpError):
    """Raised when a tool argument is missing, empty or invalid."""

    def __init__(
        self,
        message: str,
        field: str = "",
        suggestion: str = "",
        code: str = "INVALID_INPUT",
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation (optional)
            suggestion: Actionable hint shown to the caller (optional)
            code: Machine-readable reason, e.g. EMPTY_TEXT or NON_ENGLISH_TEXT
        """
        self.field = field
        self.suggestion = suggestion
        self.code = code
        super().__init__(message)


class ConfigurationError(ImageMcpError):
    """Raised when there is a configuration problem."""

    pass


class APIError(ImageMcpError):
    """Raised when the upstream image API returns an error."""

    def __init__(self, message: str, status_code: int = 0, response: str = "") -> None:
        """
        Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response: Raw API response (if available)
        """
        self.status_code = status_code
        self.response = response
        super().__init__(message)


class NetworkError(ImageMcpError):
    """Raised when a network operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        self.original_error = original_error
        super().__init__(message)


class RequestTimeoutError(ImageMcpError):
    """Raised when a request or download times out."""

    pass


class InputLoadError(ImageMcpError):
    """Raised when a source image cannot be loaded. Never retried."""

    def __init__(self, message: str, source: str = "") -> None:
        """
        Initialize input load error.

        Args:
            message: Error message
            source: Short description of the offending input (URL, path, or 'inline')
        """
        self.source = source
        super().__init__(message)


class InvalidInputError(InputLoadError):
    """Bad path, URL, content type or encoding."""

    pass


class TooLargeError(InputLoadError):
    """Input exceeds the loader's byte ceiling."""

    def __init__(self, message: str, size_bytes: int, max_bytes: int, source: str = "") -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(message, source=source)


class NotFoundError(InputLoadError):
    """Local file does not exist."""

    pass


class UnsupportedFormatError(InputLoadError):
    """File extension is outside the allow-list."""

    pass


class ImageProcessingError(ImageMcpError):
    """Raised when image decoding or conversion fails."""

    def __init__(self, message: str, image_path: str = "") -> None:
        self.image_path = image_path
        super().__init__(message)


class FileSystemError(ImageMcpError):
    """Raised when saving output fails; carries the attempted path."""

    code = "FILE_ERROR"

    def __init__(self, message: str, path: str = "", code: str | None = None) -> None:
        """
        Initialize file-system error.

        Args:
            message: Error message
            path: Path being created or written (if known)
            code: Override for the class-level error code
        """
        self.path = path
        if code is not None:
            self.code = code
        super().__init__(message)


class InvalidOptionError(FileSystemError):
    """A naming or organization option is missing or unknown."""

    code = "INVALID_OPTION"


class DirectoryError(FileSystemError):
    """Output directory could not be created."""

    code = "DIRECTORY_ERROR"


class FileConflictError(FileSystemError):
    """Target file exists and the conflict strategy is 'skip'."""

    code = "FILE_EXISTS"


class DownloadError(FileSystemError):
    """Transfer of a generated image failed (after retries, where retryable)."""

    code = "DOWNLOAD_ERROR"

    def __init__(
        self,
        message: str,
        source: str,
        attempts: int = 0,
        status_code: int | None = None,
        path: str = "",
    ) -> None:
        """
        Initialize download error.

        Args:
            message: Error message
            source: URL (or 'inline') that was being transferred
            attempts: Number of attempts made before giving up
            status_code: HTTP status code of the last response (if any)
            path: Target path of the transfer (if known)
        """
        self.source = source
        self.attempts = attempts
        self.status_code = status_code
        super().__init__(message, path=path)


class DiskSpaceError(FileSystemError):
    """Transfer exceeded the configured size ceiling. Never retried."""

    code = "DISK_SPACE_ERROR"

    def __init__(self, message: str, attempted_bytes: int, max_bytes: int, path: str = "") -> None:
        self.attempted_bytes = attempted_bytes
        self.max_bytes = max_bytes
        super().__init__(message, path=path)


class BatchProcessingError(ImageMcpError):
    """Raised when the batch orchestrator itself fails (not for per-item failures)."""

    def __init__(
        self,
        message: str,
        failed_refs: list[str] | None = None,
        succeeded_refs: list[str] | None = None,
    ) -> None:
        self.failed_refs = list(failed_refs or [])
        self.succeeded_refs = list(succeeded_refs or [])
        super().__init__(message)
