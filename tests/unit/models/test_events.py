"""Tests for decoded market events."""

import pytest
from pydantic import ValidationError

from market_protocol_client.core.enums import SettlementErrorCode
from market_protocol_client.models.events import MarketEvent, OrderErrorEvent, OrderFilledEvent

TX_HASH = "0x" + "12" * 32
ORDER_HASH = "0x" + "34" * 32


class TestMarketEvents:
    """Test event models."""

    def test_filled_event_defaults(self):
        """Fee and price fields default to zero."""
        event = OrderFilledEvent(
            transaction_hash=TX_HASH,
            order_hash=ORDER_HASH,
            maker="0x" + "01" * 20,
            taker="0x" + "02" * 20,
            fee_recipient="0x" + "00" * 20,
            filled_qty=-2,
        )
        assert isinstance(event, MarketEvent)
        assert event.filled_qty == -2
        assert event.paid_maker_fee == 0
        assert event.block_number is None

    def test_error_event_parses_code(self):
        """Raw integer codes become SettlementErrorCode."""
        event = OrderErrorEvent(transaction_hash=TX_HASH, order_hash=ORDER_HASH, error_code=1)
        assert event.error_code is SettlementErrorCode.ORDER_DEAD

    def test_error_event_rejects_unknown_code(self):
        """Unknown codes fail validation."""
        with pytest.raises(ValidationError):
            OrderErrorEvent(transaction_hash=TX_HASH, order_hash=ORDER_HASH, error_code=9)
