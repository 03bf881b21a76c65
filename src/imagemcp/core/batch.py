"""
Batch orchestration: run one operation over many items.

Items are processed in sequential chunks of ``max_concurrent``; the items of a
chunk run concurrently in a thread pool and the next chunk starts only after
every item of the current one has settled. An item's failure is recorded as
data in its BatchItemResult and never aborts the batch; only invalid settings
raise BatchProcessingError.
"""

import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from imagemcp.core.types import ErrorHandling, SavedImage
from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import BatchProcessingError

logger = get_logger(__name__)

T = TypeVar("T")

MAX_CONCURRENCY = 10
DEFAULT_CONCURRENCY = 3
SKIPPED_MESSAGE = "Skipped: batch stopped after an earlier failure (failFast)"


@dataclass(frozen=True)
class BatchSettings:
    parallel: bool = True
    max_concurrent: int = DEFAULT_CONCURRENCY
    error_handling: ErrorHandling = ErrorHandling.CONTINUE_ON_ERROR
    # Seconds to pause between chunks
    chunk_delay: float = 0.0

    def validate(self) -> None:
        """
        Raises:
            BatchProcessingError: If max_concurrent is outside 1..10 or the policy is unknown
        """
        if (
            isinstance(self.max_concurrent, bool)
            or not isinstance(self.max_concurrent, int)
            or not 1 <= self.max_concurrent <= MAX_CONCURRENCY
        ):
            raise BatchProcessingError(
                f"max_concurrent must be between 1 and {MAX_CONCURRENCY}, got {self.max_concurrent}"
            )
        try:
            ErrorHandling(self.error_handling)
        except ValueError as e:
            raise BatchProcessingError(
                f"Unknown error handling policy: {self.error_handling}"
            ) from e
        if self.chunk_delay < 0:
            raise BatchProcessingError(f"chunk_delay must not be negative, got {self.chunk_delay}")


@dataclass(frozen=True)
class ItemOutput:
    """What a successful item operation produced."""

    saved_image: SavedImage | None = None
    image_url: str | None = None


@dataclass
class BatchItemResult:
    original_ref: str
    success: bool
    saved_image: SavedImage | None = None
    image_url: str | None = None
    error: str | None = None
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"original_ref": self.original_ref, "success": self.success}
        if self.saved_image is not None:
            result["saved_image"] = self.saved_image.to_dict()
        if self.image_url is not None:
            result["image_url"] = self.image_url
        if self.error is not None:
            result["error"] = self.error
        result["duration_ms"] = self.duration_ms
        return result


@dataclass
class BatchResult:
    total: int
    succeeded: int
    failed: int
    items: list[BatchItemResult] = field(default_factory=list)
    timing_ms: int = 0
    average_time_ms: float = 0.0
    parallel: bool = True
    model_used: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "items": [item.to_dict() for item in self.items],
            "timing_ms": self.timing_ms,
            "average_time_ms": self.average_time_ms,
            "parallel": self.parallel,
            "model_used": self.model_used,
        }


class BatchOrchestrator(Generic[T]):
    """
    Fans an operation out over a list of items.

    Args:
        operation: Called as operation(item, index); returns an ItemOutput or raises
        describe: Maps an item to the reference string stored in its result
        sleep: Used for chunk_delay; injectable for tests
    """

    def __init__(
        self,
        operation: Callable[[T, int], ItemOutput],
        describe: Callable[[T], str] = str,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._operation = operation
        self._describe = describe
        self._sleep = sleep

    def run(
        self,
        items: Sequence[T],
        settings: BatchSettings | None = None,
        model_used: str = "",
    ) -> BatchResult:
        """
        Process every item and aggregate the outcome.

        Raises:
            BatchProcessingError: Invalid settings (raised before any item runs)
        """
        settings = settings or BatchSettings()
        settings.validate()
        policy = ErrorHandling(settings.error_handling)
        width = settings.max_concurrent if settings.parallel else 1

        logger.info(
            "Batch started items=%d parallel=%s max_concurrent=%d policy=%s",
            len(items),
            settings.parallel,
            width,
            policy.value,
        )
        start = time.monotonic()
        results: list[BatchItemResult | None] = [None] * len(items)

        with ThreadPoolExecutor(max_workers=width, thread_name_prefix="imagemcp-batch") as pool:
            self._run_indexes(
                pool, items, list(range(len(items))), width, settings, policy, results
            )
            if policy is ErrorHandling.RETRY_FAILED:
                retry = [i for i, r in enumerate(results) if r is not None and not r.success]
                if retry:
                    logger.info("Retrying %d failed item(s)", len(retry))
                    self._run_indexes(
                        pool,
                        items,
                        retry,
                        width,
                        settings,
                        ErrorHandling.CONTINUE_ON_ERROR,
                        results,
                    )

        # Items never scheduled (failFast) are reported as failed so items == total
        final = [
            r if r is not None else self._skipped(items[i]) for i, r in enumerate(results)
        ]
        elapsed_ms = int((time.monotonic() - start) * 1000)
        succeeded = sum(1 for r in final if r.success)
        batch = BatchResult(
            total=len(items),
            succeeded=succeeded,
            failed=len(final) - succeeded,
            items=final,
            timing_ms=elapsed_ms,
            average_time_ms=elapsed_ms / len(items) if items else 0.0,
            parallel=settings.parallel,
            model_used=model_used,
        )
        logger.info(
            "Batch finished total=%d succeeded=%d failed=%d in %dms",
            batch.total,
            batch.succeeded,
            batch.failed,
            elapsed_ms,
        )
        return batch

    def _run_indexes(
        self,
        pool: ThreadPoolExecutor,
        items: Sequence[T],
        indexes: list[int],
        width: int,
        settings: BatchSettings,
        policy: ErrorHandling,
        results: list[BatchItemResult | None],
    ) -> None:
        chunks = [indexes[i : i + width] for i in range(0, len(indexes), width)]
        for n, chunk in enumerate(chunks):
            if n > 0 and settings.chunk_delay > 0:
                self._sleep(settings.chunk_delay)
            futures = {i: pool.submit(self._run_one, items[i], i) for i in chunk}
            for i, future in futures.items():
                results[i] = future.result()
            if policy is ErrorHandling.FAIL_FAST and any(not results[i].success for i in chunk):
                logger.warning("Batch stopped after chunk %d/%d (failFast)", n + 1, len(chunks))
                return

    def _run_one(self, item: T, index: int) -> BatchItemResult:
        ref = self._safe_describe(item)
        start = time.monotonic()
        try:
            output = self._operation(item, index)
        except Exception as e:
            duration = int((time.monotonic() - start) * 1000)
            logger.warning("Batch item %d failed ref=%s: %s", index + 1, ref, e)
            return BatchItemResult(
                original_ref=ref,
                success=False,
                error=str(e) or type(e).__name__,
                duration_ms=duration,
            )
        duration = int((time.monotonic() - start) * 1000)
        return BatchItemResult(
            original_ref=ref,
            success=True,
            saved_image=output.saved_image if output else None,
            image_url=output.image_url if output else None,
            duration_ms=duration,
        )

    def _skipped(self, item: T) -> BatchItemResult:
        return BatchItemResult(
            original_ref=self._safe_describe(item), success=False, error=SKIPPED_MESSAGE
        )

    def _safe_describe(self, item: T) -> str:
        try:
            return self._describe(item)
        except Exception:
            return "unknown"
