"""Core exceptions for the MARKET Protocol client."""

from .enums import MarketError


class MarketProtocolClientError(Exception):
    """Base exception for all client errors."""

    pass


class MarketOperationError(MarketProtocolClientError):
    """Raised when an order operation is rejected for one of the MarketError reasons."""

    def __init__(self, error: MarketError, message: str | None = None):
        self.error = error
        super().__init__(message or error.value)

    @property
    def retryable(self) -> bool:
        return self.error.retryable


class ProviderError(MarketOperationError):
    """Raised when chain state cannot be read or a request cannot reach the node.

    Distinct from economic insufficiency: callers may retry with fresh state.
    """

    def __init__(self, message: str | None = None):
        super().__init__(MarketError.PROVIDER_ERROR, message)


class EventWatchTimeoutError(ProviderError):
    """Raised when the settlement event of a submitted transaction is not observed in time."""

    pass


class TransactionFailedError(MarketProtocolClientError):
    """Raised when a submitted transaction is mined but reverted."""

    pass


class ConfigurationError(MarketProtocolClientError):
    """Raised when configuration is invalid."""

    pass


class InvalidOrderError(MarketProtocolClientError):
    """Raised when order parameters are invalid."""

    pass
