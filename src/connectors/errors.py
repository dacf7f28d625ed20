"""Exceptions raised by source connectors."""


class ConnectorError(Exception):
    """Base exception for connector errors."""

    pass


class ConfigurationError(ConnectorError):
    """Source configuration is invalid or incomplete. Never retried."""

    pass


class ConnectorNotFoundError(ConnectorError):
    """No connector is registered for the requested source type."""

    pass


class TransportError(ConnectorError):
    """The underlying tool or service failed while fetching."""

    pass


class RateLimitError(TransportError):
    """The remote service refused the request because of rate limiting."""

    pass


class AuthenticationError(TransportError):
    """The remote service rejected our credentials."""

    pass
