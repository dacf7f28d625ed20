"""Abstract base class for source connectors."""

from abc import ABC, abstractmethod
from datetime import datetime

from common.logger import get_logger
from item_cache.ledger import ItemCache

from .errors import ConfigurationError, ConnectorError
from .models import FetchOptions, NormalizedItem, SourceConfig, SourceType

logger = get_logger(__name__)


class Connector(ABC):
    """Base class for every achievement source.

    A connector is initialized with one source configuration at a time and
    turns that source's native records into NormalizedItems. Items already
    recorded in the source's ledger are marked ``is_cached`` and, unless the
    caller asks to skip the cache, left out of the result. Connectors never
    write to the ledger themselves: the caller records items only after their
    batch has been saved.
    """

    def __init__(self, cache: ItemCache):
        """Initialize connector.

        Args:
            cache: Ledger of processed items shared by all connectors
        """
        self.cache = cache
        self.config: SourceConfig | None = None

    @property
    @abstractmethod
    def type(self) -> SourceType:
        """Source type this connector handles."""
        pass

    @abstractmethod
    def initialize(self, config: SourceConfig) -> None:
        """Store and validate a source configuration.

        Raises:
            ConfigurationError: If the config is for another source type or a
                required field is missing
        """
        pass

    @abstractmethod
    def fetch(self, options: FetchOptions | None = None) -> list[NormalizedItem]:
        """Fetch normalized items from the source.

        Args:
            options: Time window, limit and cache behaviour

        Returns:
            Items in source order

        Raises:
            ConnectorError: If the source cannot be read
        """
        pass

    @abstractmethod
    def validate(self) -> bool:
        """Check configuration, reachability and authentication.

        Never raises; failures are logged and reported as False.
        """
        pass

    def clear_cache(self) -> None:
        """Forget every processed item of the configured source."""
        config = self._require_config()
        self.cache.clear(config.source_id)
        logger.debug(f"Cache cleared for source {config.source_id}")

    def _check_type(self, config: SourceConfig) -> None:
        if config.type != self.type:
            raise ConfigurationError(
                f"{type(self).__name__} expects type='{self.type.value}', "
                f"got '{getattr(config.type, 'value', config.type)}'"
            )

    def _require_config(self) -> SourceConfig:
        if self.config is None:
            raise ConnectorError("Connector not initialized. Call initialize() first.")
        return self.config

    def _filter_window(
        self,
        items: list[NormalizedItem],
        since: datetime | None,
        until: datetime | None,
    ) -> list[NormalizedItem]:
        """Keep items whose timestamp lies in [since, until]."""
        if since is not None:
            items = [item for item in items if item.timestamp >= since]
        if until is not None:
            items = [item for item in items if item.timestamp <= until]
        return items

    def _mark_cached(self, items: list[NormalizedItem], skip_cache: bool) -> list[NormalizedItem]:
        """Flag items present in the ledger and drop them unless skip_cache."""
        config = self._require_config()
        cached = set(self.cache.list(config.source_id))
        for item in items:
            item.is_cached = item.id in cached

        if skip_cache:
            return items

        uncached = [item for item in items if not item.is_cached]
        logger.debug(
            f"{len(items) - len(uncached)} item(s) already cached, {len(uncached)} new "
            f"for source {config.source_id}"
        )
        return uncached
