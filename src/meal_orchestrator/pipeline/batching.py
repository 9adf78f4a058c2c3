"""Fixed-size batch processing with per-batch fallback substitution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence, TypeVar

from meal_orchestrator.errors import GatewayError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

BatchDone = Callable[[int, int, bool], None]


@dataclass
class BatchReport:
    total_batches: int = 0
    failed_batches: list[int] = field(default_factory=list)
    gateway_failures: list[int] = field(default_factory=list)
    last_error: str | None = None

    @property
    def degraded(self) -> bool:
        return bool(self.failed_batches)

    def raise_if_unreachable(self) -> None:
        """Fail the run when the model gateway failed for every batch."""
        if self.total_batches and len(self.gateway_failures) == self.total_batches:
            raise GatewayError(
                f"Model gateway unreachable for all {self.total_batches} batches: "
                f"{self.last_error}"
            )


def partition(items: Sequence[T], batch_size: int) -> list[list[T]]:
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [list(items[start : start + batch_size]) for start in range(0, len(items), batch_size)]


def process_in_batches(
    items: Sequence[T],
    batch_size: int,
    worker: Callable[[list[T]], list[R]],
    fallback: Callable[[T], R],
    *,
    on_batch_done: BatchDone | None = None,
    preserve_count: bool = True,
) -> tuple[list[R], BatchReport]:
    """Run `worker` over contiguous batches, substituting fallbacks on failure.

    Batches run sequentially. A batch whose worker raises yields `fallback(item)`
    for each of its items. With `preserve_count`, a batch result of the wrong
    length is padded with fallbacks or trimmed so output length equals input
    length. Without it, any non-empty batch result is accepted as returned.
    `on_batch_done(done, total, succeeded)` runs after every batch.
    """
    batches = partition(items, batch_size)
    report = BatchReport(total_batches=len(batches))
    results: list[R] = []

    for index, batch in enumerate(batches):
        succeeded = True
        try:
            produced = list(worker(batch))
        except Exception as exc:  # noqa: BLE001
            succeeded = False
            report.failed_batches.append(index)
            report.last_error = str(exc)
            if isinstance(exc, GatewayError):
                report.gateway_failures.append(index)
            logger.warning(
                "Batch failed batch=%d/%d size=%d reason=%s; using fallbacks",
                index + 1,
                len(batches),
                len(batch),
                exc,
            )
            produced = [fallback(item) for item in batch]
        else:
            produced = _reconcile(batch, produced, fallback, preserve_count, index, len(batches))

        results.extend(produced)
        if on_batch_done is not None:
            on_batch_done(index + 1, len(batches), succeeded)

    return results, report


def merge_pass(items: list[R], merger: Callable[[list[R]], list[R]]) -> list[R]:
    """One extra call over the whole list; returns `items` unchanged on failure or empty output."""
    if len(items) <= 1:
        return items
    try:
        merged = merger(items)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Merge pass failed; returning unmerged list reason=%s", exc)
        return items
    if not merged:
        logger.warning("Merge pass returned no items; returning unmerged list")
        return items
    logger.info("Merge pass items=%d -> %d", len(items), len(merged))
    return list(merged)


def _reconcile(
    batch: list[T],
    produced: list[R],
    fallback: Callable[[T], R],
    preserve_count: bool,
    index: int,
    total: int,
) -> list[R]:
    if not produced:
        logger.warning("Batch returned no items batch=%d/%d; using fallbacks", index + 1, total)
        return [fallback(item) for item in batch]
    if not preserve_count or len(produced) == len(batch):
        return produced

    logger.warning(
        "Batch count mismatch batch=%d/%d expected=%d got=%d",
        index + 1,
        total,
        len(batch),
        len(produced),
    )
    if len(produced) > len(batch):
        return produced[: len(batch)]
    return produced + [fallback(item) for item in batch[len(produced) :]]
