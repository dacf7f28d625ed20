"""Run extraction end to end: fetch each source, process batches, record items."""

import dataclasses
from collections.abc import Iterable
from typing import Any

from common.logger import get_logger
from connectors.models import FetchOptions, SourceConfig, parse_source_config
from connectors.registry import ConnectorRegistry
from item_cache.ledger import ItemCache

from .batching import BatchConfig, SaveFn, SummarizeFn, process_in_batches
from .models import ExtractionContext

logger = get_logger(__name__)


def _parse_sources(sources: Iterable[SourceConfig | dict[str, Any]]) -> list[SourceConfig]:
    configs = []
    for source in sources:
        if isinstance(source, dict):
            source = parse_source_config(source)
        configs.append(source)
    return configs


def run_extraction(
    sources: Iterable[SourceConfig | dict[str, Any]],
    registry: ConnectorRegistry,
    cache: ItemCache,
    summarize: SummarizeFn,
    save: SaveFn,
    context: ExtractionContext,
    fetch_options: FetchOptions | None = None,
    batch_config: BatchConfig | None = None,
    dry_run: bool = False,
) -> dict[str, int]:
    """
    Extract achievements from every configured source.

    All source configurations are validated before anything is fetched.
    Items of a batch are recorded in the cache right after the batch is
    saved, so a failure part-way through keeps earlier batches recorded and
    a rerun resumes with the remaining items.

    Args:
        sources: Typed configs or raw mappings accepted by parse_source_config
        registry: Connectors by source type
        cache: Ledger of processed items
        summarize: Turns a batch of items into proposed achievements
        save: Persists achievements
        context: Extraction context; project_id is replaced per source
        fetch_options: Time window, limit and cache behaviour for every fetch
        batch_config: Batch and retry settings
        dry_run: Fetch and count items without summarizing or caching

    Returns:
        Statistics dictionary with keys: sources, items, batches,
        achievements, errors

    Raises:
        ConfigurationError: If any source configuration is invalid
        ConnectorNotFoundError: If a source type has no connector
        ConnectorError: If a source cannot be read
        BatchProcessingError: If a batch fails on every attempt
    """
    configs = _parse_sources(sources)
    for config in configs:
        registry.get(config.type)

    stats = {"sources": 0, "items": 0, "batches": 0, "achievements": 0, "errors": 0}

    for config in configs:
        connector = registry.get(config.type)
        connector.initialize(config)
        items = connector.fetch(fetch_options)
        stats["sources"] += 1
        stats["items"] += len(items)

        if not items:
            logger.info(f"No new items for source {config.source_id}")
            continue

        if dry_run:
            logger.info(f"[dry run] {len(items)} item(s) would be processed for source {config.source_id}")
            for item in items:
                logger.info(f"  {item.id[:12]}  {item.title}")
            continue

        source_context = dataclasses.replace(context, project_id=config.project_id)
        for result in process_in_batches(items, summarize, save, source_context, batch_config):
            cache.add(config.source_id, [item.id for item in result.items])
            stats["batches"] += 1
            stats["achievements"] += len(result.achievements)
            stats["errors"] += len(result.errors)
            for item_error in result.errors:
                logger.warning(f"Batch {result.batch_number}: {item_error.item_id}: {item_error.error}")

    logger.info(
        f"Extraction complete: {stats['items']} item(s) from {stats['sources']} source(s), "
        f"{stats['achievements']} achievement(s)"
    )
    return stats
