"""Tests for the end-to-end extraction runner."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from connectors.base import Connector
from connectors.errors import ConfigurationError, ConnectorNotFoundError
from connectors.models import NormalizedItem, SourceType
from connectors.registry import ConnectorRegistry
from extract.batching import BatchConfig
from extract.errors import BatchProcessingError
from extract.models import ExtractedAchievement, ExtractionContext, SavedAchievement
from extract.pipeline import run_extraction
from item_cache.ledger import ItemCache


def make_items(count: int) -> list[NormalizedItem]:
    return [
        NormalizedItem(
            id=f"c{i}",
            title=f"Commit {i}",
            description="",
            author="Ada",
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        for i in range(count)
    ]


class StaticConnector(Connector):
    """Connector returning a fixed list of items, minus cached ones."""

    def __init__(self, cache, items):
        super().__init__(cache)
        self.items = items
        self.initialized_with = []

    @property
    def type(self):
        return SourceType.GIT

    def initialize(self, config):
        self._check_type(config)
        self.config = config
        self.initialized_with.append(config.source_id)

    def fetch(self, options=None):
        return self._mark_cached(list(self.items), bool(options and options.skip_cache))

    def validate(self):
        return True


def summarize(batch, context):
    return [ExtractedAchievement(title=item.title, source_item_id=item.id) for item in batch]


def save(achievements):
    return [SavedAchievement(id=a.source_item_id, title=a.title, project_id=a.project_id) for a in achievements]


GIT_SOURCE = {"type": "git", "source_id": "repo-1", "project_id": "project-9", "repo_path": "."}


@pytest.fixture
def cache(tmp_path):
    return ItemCache(tmp_path / "cache")


@pytest.fixture
def batch_config():
    return BatchConfig(max_items_per_batch=2, delay_fn=lambda seconds: None)


def make_registry(connector):
    registry = ConnectorRegistry()
    registry.register(SourceType.GIT, connector)
    return registry


class TestRunExtraction:
    """Tests for run_extraction."""

    def test_five_items_batch_size_two(self, cache, batch_config):
        connector = StaticConnector(cache, make_items(5))
        cache_spy = Mock(wraps=cache)
        summarize_spy = Mock(side_effect=summarize)

        stats = run_extraction(
            [GIT_SOURCE],
            make_registry(connector),
            cache_spy,
            summarize_spy,
            save,
            ExtractionContext(project_id="unused"),
            batch_config=batch_config,
        )

        assert summarize_spy.call_count == 3
        assert [call.args for call in cache_spy.add.call_args_list] == [
            ("repo-1", ["c0", "c1"]),
            ("repo-1", ["c2", "c3"]),
            ("repo-1", ["c4"]),
        ]
        assert cache.list("repo-1") == ["c0", "c1", "c2", "c3", "c4"]
        assert stats == {"sources": 1, "items": 5, "batches": 3, "achievements": 5, "errors": 0}

    def test_context_uses_source_project(self, cache, batch_config):
        connector = StaticConnector(cache, make_items(1))
        saved = []

        def capture(achievements):
            saved.extend(achievements)
            return save(achievements)

        run_extraction(
            [GIT_SOURCE], make_registry(connector), cache, summarize, capture,
            ExtractionContext(project_id="other"), batch_config=batch_config,
        )

        assert saved[0].project_id == "project-9"

    def test_failure_keeps_earlier_batches_cached(self, cache, batch_config):
        connector = StaticConnector(cache, make_items(5))

        def flaky(batch, context):
            if batch[0].id == "c2":
                raise RuntimeError("model unavailable")
            return summarize(batch, context)

        with pytest.raises(BatchProcessingError, match="batch 2"):
            run_extraction(
                [GIT_SOURCE], make_registry(connector), cache, flaky, save,
                ExtractionContext(project_id="p"), batch_config=batch_config,
            )

        assert cache.list("repo-1") == ["c0", "c1"]

    def test_rerun_resumes_after_failure(self, cache, batch_config):
        connector = StaticConnector(cache, make_items(3))
        cache.add("repo-1", ["c0", "c1"])
        summarize_spy = Mock(side_effect=summarize)

        stats = run_extraction(
            [GIT_SOURCE], make_registry(connector), cache, summarize_spy, save,
            ExtractionContext(project_id="p"), batch_config=batch_config,
        )

        assert stats["items"] == 1
        assert summarize_spy.call_args.args[0][0].id == "c2"

    def test_dry_run_does_not_summarize_or_cache(self, cache, batch_config):
        connector = StaticConnector(cache, make_items(3))
        summarize_spy = Mock()

        stats = run_extraction(
            [GIT_SOURCE], make_registry(connector), cache, summarize_spy, save,
            ExtractionContext(project_id="p"), batch_config=batch_config, dry_run=True,
        )

        summarize_spy.assert_not_called()
        assert stats["items"] == 3
        assert stats["batches"] == 0
        assert cache.list("repo-1") == []

    def test_no_items(self, cache, batch_config):
        connector = StaticConnector(cache, [])
        stats = run_extraction(
            [GIT_SOURCE], make_registry(connector), cache, summarize, save,
            ExtractionContext(project_id="p"), batch_config=batch_config,
        )
        assert stats == {"sources": 1, "items": 0, "batches": 0, "achievements": 0, "errors": 0}

    def test_invalid_config_fails_before_fetching(self, cache):
        connector = StaticConnector(cache, make_items(1))

        with pytest.raises(ConfigurationError):
            run_extraction(
                [GIT_SOURCE, {"type": "git", "source_id": "x"}],
                make_registry(connector), cache, summarize, save, ExtractionContext(project_id="p"),
            )

        assert connector.initialized_with == []

    def test_unregistered_type_fails_before_fetching(self, cache):
        connector = StaticConnector(cache, make_items(1))
        github = {"type": "github", "source_id": "gh", "project_id": "p", "repo": "acme/api"}

        with pytest.raises(ConnectorNotFoundError):
            run_extraction(
                [GIT_SOURCE, github], make_registry(connector), cache, summarize, save,
                ExtractionContext(project_id="p"),
            )

        assert connector.initialized_with == []
