"""
Retry policy for downloads of generated images.

The policy decides whether an error is worth another attempt and how long to
wait first; the caller owns the loop. ``sleep`` is injectable so tests never
wait on real timers.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from imagemcp.utils.exceptions import DownloadError, NetworkError, RequestTimeoutError

# HTTP statuses that signal a transient upstream condition
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


@dataclass
class RetryPolicy:
    """
    max_retries: retries after the first attempt (total attempts = max_retries + 1)
    base_delay: seconds before the first retry
    exponential: double the delay per retry instead of growing it linearly
    """

    max_retries: int = 3
    base_delay: float = 1.0
    exponential: bool = False
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def is_retryable(self, error: BaseException) -> bool:
        """Network-class failures are retryable; validation-class ones are not."""
        if isinstance(error, (NetworkError, RequestTimeoutError)):
            return True
        if isinstance(error, DownloadError):
            return error.status_code in RETRYABLE_STATUS_CODES
        return False

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """attempt is 1-based: the number of attempts already made."""
        return attempt < self.max_attempts and self.is_retryable(error)

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given 1-based attempt failed."""
        if self.exponential:
            return self.base_delay * (2 ** (attempt - 1))
        return self.base_delay * attempt

    def wait(self, attempt: int) -> None:
        self.sleep(self.delay(attempt))
