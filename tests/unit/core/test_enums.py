"""Tests for core enumerations."""

import pytest

from market_protocol_client.core.enums import MarketError, OrderSide, SettlementErrorCode


class TestMarketError:
    """Test the error taxonomy."""

    def test_values_match_names(self):
        """Enum values should be their names."""
        for error in MarketError:
            assert error.value == error.name

    def test_only_provider_error_is_retryable(self):
        """Only PROVIDER_ERROR is retryable."""
        retryable = [error for error in MarketError if error.retryable]
        assert retryable == [MarketError.PROVIDER_ERROR]

    def test_compares_to_string(self):
        """str enums compare equal to their value."""
        assert MarketError.ORDER_EXPIRED == "ORDER_EXPIRED"


class TestSettlementErrorCode:
    """Test mapping of on-chain error codes."""

    @pytest.mark.parametrize(
        "code,expected",
        [
            (0, MarketError.ORDER_EXPIRED),
            (1, MarketError.ORDER_FILLED_OR_CANCELLED),
        ],
    )
    def test_to_market_error(self, code, expected):
        """Codes map onto the client taxonomy."""
        assert SettlementErrorCode(code).to_market_error() == expected

    def test_unknown_code_raises(self):
        """Unknown codes are rejected."""
        with pytest.raises(ValueError):
            SettlementErrorCode(7)


class TestOrderSide:
    """Test order side enum."""

    def test_sides(self):
        """BUY and SELL are the only sides."""
        assert {side.value for side in OrderSide} == {"BUY", "SELL"}
