"""Core enumerations for the MARKET Protocol client."""

from enum import Enum


class OrderSide(str, Enum):
    """Order side, derived from the sign of the order quantity."""

    BUY = "BUY"
    SELL = "SELL"


class MarketError(str, Enum):
    """Closed set of reasons a trade or cancel instruction is not admissible."""

    USER_NOT_ENABLED_FOR_CONTRACT = "USER_NOT_ENABLED_FOR_CONTRACT"
    INSUFFICIENT_BALANCE_FOR_TRANSFER = "INSUFFICIENT_BALANCE_FOR_TRANSFER"
    INSUFFICIENT_COLLATERAL_BALANCE = "INSUFFICIENT_COLLATERAL_BALANCE"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_TAKER = "INVALID_TAKER"
    ORDER_EXPIRED = "ORDER_EXPIRED"
    ORDER_FILLED_OR_CANCELLED = "ORDER_FILLED_OR_CANCELLED"
    BUY_SELL_MISMATCH = "BUY_SELL_MISMATCH"
    PROVIDER_ERROR = "PROVIDER_ERROR"  # Transient, safe to retry with fresh state

    @property
    def retryable(self) -> bool:
        """Only chain-access failures may be retried."""
        return self is MarketError.PROVIDER_ERROR


class SettlementErrorCode(int, Enum):
    """Error codes carried by the market contract's Error event."""

    ORDER_EXPIRED = 0
    ORDER_DEAD = 1  # Filled or cancelled

    def to_market_error(self) -> MarketError:
        """Map the on-chain code onto the client taxonomy."""
        if self is SettlementErrorCode.ORDER_EXPIRED:
            return MarketError.ORDER_EXPIRED
        return MarketError.ORDER_FILLED_OR_CANCELLED
