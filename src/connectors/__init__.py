"""Source connectors for achievement extraction.

A connector turns one kind of source (a local git repository, a GitHub
repository) into a list of NormalizedItems, leaving out items already
recorded in the item cache.

Example:
    >>> from connectors import FetchOptions, create_default_registry, parse_source_config
    >>> from item_cache.ledger import ItemCache
    >>>
    >>> registry = create_default_registry(ItemCache("~/.bragdoc/cache/commits"))
    >>> config = parse_source_config(
    ...     {"type": "git", "source_id": "s1", "project_id": "p1", "repo_path": "."}
    ... )
    >>> connector = registry.get(config.type)
    >>> connector.initialize(config)
    >>> items = connector.fetch(FetchOptions(limit=20))
"""

from .base import Connector
from .errors import (
    AuthenticationError,
    ConfigurationError,
    ConnectorError,
    ConnectorNotFoundError,
    RateLimitError,
    TransportError,
)
from .git_connector import GitConnector
from .github_connector import GitHubConnector
from .models import (
    FetchOptions,
    GitHubSourceConfig,
    GitSourceConfig,
    NormalizedItem,
    SourceConfig,
    SourceType,
    parse_source_config,
)
from .registry import ConnectorRegistry, create_default_registry

__all__ = [
    # Connectors
    "Connector",
    "GitConnector",
    "GitHubConnector",
    # Registry
    "ConnectorRegistry",
    "create_default_registry",
    # Models
    "FetchOptions",
    "GitHubSourceConfig",
    "GitSourceConfig",
    "NormalizedItem",
    "SourceConfig",
    "SourceType",
    "parse_source_config",
    # Exceptions
    "AuthenticationError",
    "ConfigurationError",
    "ConnectorError",
    "ConnectorNotFoundError",
    "RateLimitError",
    "TransportError",
]
