"""Unit tests for OrderService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from market_protocol_client.core.enums import MarketError
from market_protocol_client.core.exceptions import (
    EventWatchTimeoutError,
    InvalidOrderError,
    MarketOperationError,
    ProviderError,
)
from market_protocol_client.models.events import OrderCancelledEvent, OrderFilledEvent
from market_protocol_client.risk.validator import OrderValidator, ValidationResult
from market_protocol_client.trading.order_service import OrderService
from tests.fixtures.orders import MAKER_ADDRESS, NOW, ONE_HOUR, OTHER_ADDRESS, build_signed_order


@pytest.fixture
def service(fake_chain, hasher, clock):
    """Order service over the in-memory chain with a frozen validator clock."""
    validator = OrderValidator(fake_chain, hasher, clock=clock)
    return OrderService(
        fake_chain, hasher, fake_chain, fake_chain, validator=validator, event_timeout=1
    )


def admit_everything():
    validator = MagicMock()
    validator.validate = AsyncMock(return_value=ValidationResult.admissible())
    return validator


class TestTradeOrder:
    """Test fills."""

    @pytest.mark.asyncio
    async def test_fill_returns_filled_quantity(
        self, service, fake_chain, signed_order, order_hash
    ):
        """A valid fill returns the quantity settled by the contract."""
        filled = await service.trade_order(signed_order, 1)

        assert filled == 1
        assert fake_chain.filled_or_cancelled[order_hash] == 1
        assert len(fake_chain.sent_transactions) == 1
        assert fake_chain.subscriptions == {}

    @pytest.mark.asyncio
    async def test_fill_is_clamped_to_remaining(self, service, fake_chain, signed_order):
        """Asking for more than remains fills only the remaining quantity."""
        assert await service.trade_order(signed_order, 5) == 3

    @pytest.mark.asyncio
    async def test_sell_fill_returns_negative_quantity(self, service):
        """Sell orders report negative filled quantities."""
        order = build_signed_order(order_qty=-3)
        assert await service.trade_order(order, -2) == -2

    @pytest.mark.asyncio
    async def test_rejected_fill_sends_nothing(self, service, fake_chain, signed_order):
        """A failed validation raises before any transaction or subscription."""
        with pytest.raises(MarketOperationError) as exc_info:
            await service.trade_order(signed_order, 1, {"from": OTHER_ADDRESS})

        assert exc_info.value.error == MarketError.INVALID_TAKER
        assert fake_chain.sent_transactions == []
        assert fake_chain.subscriptions == {}

    @pytest.mark.asyncio
    async def test_direction_mismatch(self, service, fake_chain, signed_order):
        """A sell fill of a buy order is rejected."""
        with pytest.raises(MarketOperationError) as exc_info:
            await service.trade_order(signed_order, -1)
        assert exc_info.value.error == MarketError.BUY_SELL_MISMATCH

    @pytest.mark.asyncio
    async def test_read_failure_sends_nothing(self, service, fake_chain, signed_order):
        """Provider failures during validation propagate as ProviderError."""
        fake_chain.fail_reads = True
        with pytest.raises(ProviderError):
            await service.trade_order(signed_order, 1)
        assert fake_chain.sent_transactions == []

    @pytest.mark.asyncio
    async def test_contract_reports_expired(self, service, fake_chain, signed_order):
        """An Error event with code 0 raises ORDER_EXPIRED."""
        fake_chain.clock = lambda: float(NOW + 2 * ONE_HOUR)

        with pytest.raises(MarketOperationError) as exc_info:
            await service.trade_order(signed_order, 1)

        assert exc_info.value.error == MarketError.ORDER_EXPIRED
        assert len(fake_chain.sent_transactions) == 1
        assert fake_chain.subscriptions == {}

    @pytest.mark.asyncio
    async def test_contract_reports_dead_order(self, fake_chain, hasher, signed_order, order_hash):
        """An Error event with code 1 raises ORDER_FILLED_OR_CANCELLED."""
        service = OrderService(
            fake_chain, hasher, fake_chain, fake_chain, validator=admit_everything()
        )
        fake_chain.filled_or_cancelled[order_hash] = 3

        with pytest.raises(MarketOperationError) as exc_info:
            await service.trade_order(signed_order, 1)

        assert exc_info.value.error == MarketError.ORDER_FILLED_OR_CANCELLED

    @pytest.mark.asyncio
    async def test_missing_event_times_out(self, fake_chain, hasher, clock, signed_order):
        """Without a settlement event the fill fails with EventWatchTimeoutError."""
        fake_chain.deliver_events = False
        service = OrderService(
            fake_chain,
            hasher,
            fake_chain,
            fake_chain,
            validator=OrderValidator(fake_chain, hasher, clock=clock),
            event_timeout=0.05,
        )

        with pytest.raises(EventWatchTimeoutError):
            await service.trade_order(signed_order, 1)
        assert fake_chain.subscriptions == {}

    @pytest.mark.asyncio
    async def test_dropped_subscription(self, service, fake_chain, signed_order):
        """A subscription lost after broadcast surfaces as ProviderError."""
        fake_chain.deliver_events = False
        send = fake_chain.send_trade_order

        async def send_and_drop(*args):
            tx_hash = await send(*args)
            fake_chain.drop_subscriptions(ProviderError("subscription dropped"))
            return tx_hash

        fake_chain.send_trade_order = send_and_drop

        with pytest.raises(ProviderError, match="dropped"):
            await service.trade_order(signed_order, 1)


class TestCancelOrder:
    """Test cancels."""

    @pytest.mark.asyncio
    async def test_cancel_returns_cancelled_quantity(
        self, service, fake_chain, signed_order, order_hash
    ):
        """A cancel returns the quantity the contract cancelled."""
        cancelled = await service.cancel_order(signed_order, 2, {"from": MAKER_ADDRESS})

        assert cancelled == 2
        assert fake_chain.filled_or_cancelled[order_hash] == 2
        assert fake_chain.subscriptions == {}

    @pytest.mark.asyncio
    async def test_cancel_clamped_to_remaining(self, service, fake_chain, signed_order, order_hash):
        """Cancelling more than remains cancels what is left."""
        fake_chain.filled_or_cancelled[order_hash] = 2
        assert await service.cancel_order(signed_order.terms(), 3) == 1

    @pytest.mark.asyncio
    async def test_cancel_zero(self, service, fake_chain, signed_order):
        """A zero cancel is rejected locally."""
        with pytest.raises(InvalidOrderError):
            await service.cancel_order(signed_order, 0)
        assert fake_chain.sent_transactions == []

    @pytest.mark.asyncio
    async def test_cancel_direction_mismatch(self, service, fake_chain, signed_order):
        """A cancel quantity with the wrong sign is rejected locally."""
        with pytest.raises(MarketOperationError) as exc_info:
            await service.cancel_order(signed_order, -1)
        assert exc_info.value.error == MarketError.BUY_SELL_MISMATCH
        assert fake_chain.sent_transactions == []

    @pytest.mark.asyncio
    async def test_cancel_exhausted_order(self, service, fake_chain, signed_order, order_hash):
        """Cancelling an exhausted order yields ORDER_FILLED_OR_CANCELLED."""
        fake_chain.filled_or_cancelled[order_hash] = 3
        with pytest.raises(MarketOperationError) as exc_info:
            await service.cancel_order(signed_order, 1)
        assert exc_info.value.error == MarketError.ORDER_FILLED_OR_CANCELLED


class TestOrderServiceHelpers:
    """Test small helpers."""

    @pytest.mark.asyncio
    async def test_get_qty_filled_or_cancelled(self, service, fake_chain, signed_order, order_hash):
        """The counter is read from chain state."""
        fake_chain.filled_or_cancelled[order_hash] = 2
        market = signed_order.contract_address
        assert await service.get_qty_filled_or_cancelled(market, order_hash) == 2

    def test_unexpected_event_type(self):
        """A cancel event where a fill was expected is a provider inconsistency."""
        event = OrderCancelledEvent(
            transaction_hash="0x" + "12" * 32,
            order_hash="0x" + "34" * 32,
            maker=MAKER_ADDRESS,
            fee_recipient=MAKER_ADDRESS,
            cancelled_qty=1,
        )
        with pytest.raises(ProviderError):
            OrderService._expect_event(event, OrderFilledEvent)
