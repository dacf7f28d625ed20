"""Batch orchestration: summarize and save items in retried, ordered batches."""

import math
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field

from common.logger import get_logger
from connectors.models import NormalizedItem

from .errors import BatchProcessingError
from .models import (
    BatchResult,
    ExtractedAchievement,
    ExtractionContext,
    ItemError,
    SavedAchievement,
)

logger = get_logger(__name__)

SummarizeFn = Callable[[list[NormalizedItem], ExtractionContext], list[ExtractedAchievement]]
SaveFn = Callable[[list[ExtractedAchievement]], list[SavedAchievement]]


@dataclass(frozen=True)
class BatchConfig:
    """Batching and retry settings.

    Attributes:
        max_items_per_batch: Items per batch (the last batch may be smaller)
        max_retries: Attempts per batch, including the first one
        retry_delay: Seconds to wait before the second attempt
        backoff_factor: Multiplier applied to the delay for each later attempt
            (1.0 keeps the delay fixed)
        delay_fn: Called with the delay in seconds; replace in tests
    """

    max_items_per_batch: int = 10
    max_retries: int = 3
    retry_delay: float = 1.0
    backoff_factor: float = 1.0
    delay_fn: Callable[[float], None] = field(default=time.sleep, compare=False)

    def __post_init__(self):
        if self.max_items_per_batch <= 0:
            raise ValueError(f"max_items_per_batch must be positive, got {self.max_items_per_batch}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must not be negative, got {self.retry_delay}")
        if self.backoff_factor < 1:
            raise ValueError(f"backoff_factor must be at least 1, got {self.backoff_factor}")

    def delay_before(self, attempt: int) -> float:
        """Delay in seconds before a 1-based attempt (no delay before the first)."""
        if attempt <= 1:
            return 0.0
        return self.retry_delay * self.backoff_factor ** (attempt - 2)


def partition(items: Sequence[NormalizedItem], size: int) -> list[list[NormalizedItem]]:
    """Split items into ordered batches of at most `size` items."""
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


def _validate_achievements(
    achievements: list[ExtractedAchievement],
    batch: list[NormalizedItem],
    context: ExtractionContext,
) -> tuple[list[ExtractedAchievement], list[ItemError]]:
    """Split summarizer output into savable achievements and per-item errors."""
    batch_ids = {item.id for item in batch}
    valid: list[ExtractedAchievement] = []
    errors: list[ItemError] = []

    for achievement in achievements:
        if not achievement.title or not achievement.title.strip():
            errors.append(ItemError(item_id=achievement.source_item_id, error="Achievement has no title"))
            continue
        if achievement.source_item_id is not None and achievement.source_item_id not in batch_ids:
            errors.append(
                ItemError(
                    item_id=achievement.source_item_id,
                    error=f"Achievement '{achievement.title}' references an item outside its batch",
                )
            )
            continue
        if not achievement.project_id:
            achievement.project_id = context.project_id
        valid.append(achievement)

    return valid, errors


def process_in_batches(
    items: Sequence[NormalizedItem],
    summarize: SummarizeFn,
    save: SaveFn,
    context: ExtractionContext,
    config: BatchConfig | None = None,
) -> Iterator[BatchResult]:
    """
    Summarize and save items batch by batch, yielding each result.

    Batches run strictly in order and one at a time; the next batch is not
    started until the consumer asks for it. Each batch is attempted up to
    `config.max_retries` times. Arguments are checked when this function is
    called, not when iteration starts.

    Args:
        items: Items to process, in order
        summarize: Turns a batch of items into proposed achievements
        save: Persists achievements and returns what was stored
        context: Passed to summarize; supplies the default project_id
        config: Batch and retry settings (defaults to BatchConfig())

    Returns:
        Iterator of BatchResult, one per batch

    Raises:
        ValueError: If the arguments are invalid (at call time)
        BatchProcessingError: During iteration, if a batch fails on every
            attempt. Results already yielded stay valid.

    Example:
        >>> for result in process_in_batches(items, summarize, save, context):
        ...     cache.add(source_id, [item.id for item in result.items])
    """
    config = config or BatchConfig()
    if not isinstance(config, BatchConfig):
        raise ValueError(f"config must be a BatchConfig, got {type(config).__name__}")
    if not callable(summarize) or not callable(save):
        raise ValueError("summarize and save must be callable")
    if context is None:
        raise ValueError("context is required")

    return _run_batches(list(items), summarize, save, context, config)


def _run_batches(
    items: list[NormalizedItem],
    summarize: SummarizeFn,
    save: SaveFn,
    context: ExtractionContext,
    config: BatchConfig,
) -> Iterator[BatchResult]:
    total_batches = math.ceil(len(items) / config.max_items_per_batch)
    logger.info(f"Processing {len(items)} item(s) in {total_batches} batch(es)")
    logger.debug(
        f"Batch config: size={config.max_items_per_batch}, maxRetries={config.max_retries}, "
        f"retryDelay={config.retry_delay}s, backoff={config.backoff_factor}"
    )

    for batch_number, batch in enumerate(partition(items, config.max_items_per_batch), start=1):
        logger.info(f"Processing batch {batch_number}/{total_batches} ({len(batch)} items)...")
        result = _process_batch(batch_number, batch, summarize, save, context, config)
        # Yield outside the retry loop so consumer errors are not retried
        yield result


def _process_batch(
    batch_number: int,
    batch: list[NormalizedItem],
    summarize: SummarizeFn,
    save: SaveFn,
    context: ExtractionContext,
    config: BatchConfig,
) -> BatchResult:
    last_error: Exception | None = None

    for attempt in range(1, config.max_retries + 1):
        if attempt > 1:
            logger.warning(f"Retry attempt {attempt - 1}/{config.max_retries - 1} for batch {batch_number}...")
            config.delay_fn(config.delay_before(attempt))

        try:
            proposed = summarize(batch, context)
            valid, errors = _validate_achievements(list(proposed or []), batch, context)
            saved = save(valid) if valid else []
        except Exception as e:
            last_error = e
            logger.warning(
                f"Error processing batch {batch_number} (attempt {attempt}/{config.max_retries}): {e}"
            )
            continue

        if attempt > 1:
            logger.info(f"Successfully processed batch {batch_number} after {attempt} attempts")
        logger.debug(
            f"Batch {batch_number} results: {len(batch)} items processed, "
            f"{len(saved)} achievements saved, {len(errors)} errors"
        )
        return BatchResult(
            batch_number=batch_number,
            items=batch,
            processed_count=len(batch),
            achievements=list(saved or []),
            errors=errors,
        )

    logger.error(
        f"Failed to process batch {batch_number} after {config.max_retries} attempts: {last_error}"
    )
    raise BatchProcessingError(batch_number, config.max_retries, last_error) from last_error
