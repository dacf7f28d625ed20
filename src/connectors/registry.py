"""Lookup of connectors by source type."""

from common.logger import get_logger
from item_cache.ledger import ItemCache

from .base import Connector
from .errors import ConnectorNotFoundError
from .git_connector import GitConnector
from .github_connector import GitHubConnector
from .models import SourceType

logger = get_logger(__name__)


class ConnectorRegistry:
    """Maps source types to connector instances.

    Registering a type twice replaces the earlier connector.
    """

    def __init__(self):
        self._connectors: dict[str, Connector] = {}

    def register(self, source_type: SourceType | str, connector: Connector) -> None:
        key = _key(source_type)
        self._connectors[key] = connector
        logger.debug(f"Registered connector: {key}")

    def get(self, source_type: SourceType | str) -> Connector:
        """Get the connector for a source type.

        Raises:
            ConnectorNotFoundError: If no connector handles the type
        """
        key = _key(source_type)
        connector = self._connectors.get(key)
        if connector is None:
            raise ConnectorNotFoundError(
                f"No connector registered for type: {key}. "
                f"Available types: {', '.join(self.types())}"
            )
        return connector

    def has(self, source_type: SourceType | str) -> bool:
        return _key(source_type) in self._connectors

    def types(self) -> list[str]:
        """Registered types, in registration order."""
        return list(self._connectors)


def _key(source_type: SourceType | str) -> str:
    if isinstance(source_type, SourceType):
        return source_type.value
    return str(source_type)


def create_default_registry(cache: ItemCache) -> ConnectorRegistry:
    """Build a registry with the git and GitHub connectors.

    Args:
        cache: Item cache shared by every connector

    Example:
        >>> registry = create_default_registry(ItemCache(env.cache_dir()))
        >>> registry.types()
        ['git', 'github']
    """
    registry = ConnectorRegistry()
    registry.register(SourceType.GIT, GitConnector(cache))
    registry.register(SourceType.GITHUB, GitHubConnector(cache))
    logger.debug(f"Connectors initialized: {', '.join(registry.types())}")
    return registry
