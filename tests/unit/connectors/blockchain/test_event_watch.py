"""Unit tests for the scoped settlement event watch."""

import pytest

from market_protocol_client.connectors.blockchain.event_watch import ScopedEventWatch
from market_protocol_client.core.exceptions import EventWatchTimeoutError, ProviderError
from market_protocol_client.core.interfaces import MarketEventSource
from market_protocol_client.models.events import OrderErrorEvent

MARKET = "0x" + "a1" * 20
TX_HASH = "0x" + "12" * 32
OTHER_TX_HASH = "0x" + "ef" * 32
ORDER_HASH = "0x" + "34" * 32
OTHER_ORDER_HASH = "0x" + "56" * 32


def make_event(tx_hash=TX_HASH, order_hash=ORDER_HASH):
    return OrderErrorEvent(transaction_hash=tx_hash, order_hash=order_hash, error_code=0)


class ControlledEventSource(MarketEventSource):
    """Event source whose deliveries are driven by the test."""

    def __init__(self, unsubscribe_error=None):
        self.callbacks = {}
        self.error_callbacks = {}
        self.unsubscribed = []
        self.unsubscribe_error = unsubscribe_error

    async def subscribe(self, market_address, event_names, callback, on_error=None):
        subscription_id = f"sub-{len(self.callbacks) + 1}"
        self.callbacks[subscription_id] = callback
        self.error_callbacks[subscription_id] = on_error
        return subscription_id

    async def unsubscribe(self, subscription_id):
        self.unsubscribed.append(subscription_id)
        self.callbacks.pop(subscription_id, None)
        if self.unsubscribe_error is not None:
            raise self.unsubscribe_error

    def emit(self, event):
        for callback in list(self.callbacks.values()):
            callback(event)

    def fail(self, error):
        for on_error in self.error_callbacks.values():
            on_error(error)

    @property
    def active(self):
        return list(self.callbacks)


@pytest.fixture
def source():
    return ControlledEventSource()


class TestScopedEventWatch:
    """Test event matching."""

    @pytest.mark.asyncio
    async def test_event_emitted_before_wait_is_buffered(self, source):
        """An event arriving between broadcast and wait_for is not lost."""
        async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1) as watch:
            source.emit(make_event())
            event = await watch.wait_for(TX_HASH)
        assert event.transaction_hash == TX_HASH

    @pytest.mark.asyncio
    async def test_foreign_events_are_ignored(self, source):
        """Events from other transactions or orders do not resolve the wait."""
        async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1) as watch:
            source.emit(make_event(tx_hash=OTHER_TX_HASH))
            source.emit(make_event(order_hash=OTHER_ORDER_HASH))
            source.emit(make_event())
            event = await watch.wait_for(TX_HASH, ORDER_HASH)
        assert event.order_hash == ORDER_HASH

    @pytest.mark.asyncio
    async def test_matching_ignores_hex_case(self, source):
        """Hashes match case-insensitively."""
        async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1) as watch:
            source.emit(make_event(tx_hash="0x" + "EF" * 32))
            event = await watch.wait_for(OTHER_TX_HASH)
        assert event is not None

    @pytest.mark.asyncio
    async def test_timeout(self, source):
        """No matching event raises EventWatchTimeoutError and unsubscribes."""
        with pytest.raises(EventWatchTimeoutError):
            async with ScopedEventWatch(source, MARKET, ["Error"], timeout=0.01) as watch:
                source.emit(make_event(tx_hash=OTHER_TX_HASH))
                await watch.wait_for(TX_HASH)
        assert source.unsubscribed == ["sub-1"]
        assert source.active == []

    @pytest.mark.asyncio
    async def test_subscription_error_rejects_wait(self, source):
        """A dead subscription surfaces as ProviderError."""
        with pytest.raises(ProviderError, match="dropped"):
            async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1) as watch:
                source.fail(ProviderError("dropped"))
                await watch.wait_for(TX_HASH)
        assert source.active == []

    @pytest.mark.asyncio
    async def test_buffered_match_wins_over_later_error(self, source):
        """An event observed before the subscription died still resolves the wait."""
        async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1) as watch:
            source.emit(make_event())
            source.fail(ProviderError("dropped"))
            event = await watch.wait_for(TX_HASH)
        assert event.transaction_hash == TX_HASH


class TestScopedEventWatchLifecycle:
    """Test subscription lifetime."""

    @pytest.mark.asyncio
    async def test_unsubscribes_on_success(self, source):
        """The subscription is cancelled after a successful wait."""
        async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1) as watch:
            assert source.active == ["sub-1"]
            source.emit(make_event())
            await watch.wait_for(TX_HASH)
        assert source.unsubscribed == ["sub-1"]

    @pytest.mark.asyncio
    async def test_unsubscribes_when_body_raises(self, source):
        """The subscription is cancelled if the broadcast fails."""
        with pytest.raises(RuntimeError):
            async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1):
                raise RuntimeError("broadcast failed")
        assert source.unsubscribed == ["sub-1"]

    @pytest.mark.asyncio
    async def test_unsubscribe_failure_does_not_mask_result(self):
        """A failing unsubscribe is logged, the event is still returned."""
        source = ControlledEventSource(unsubscribe_error=ProviderError("connection gone"))
        async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1) as watch:
            source.emit(make_event())
            event = await watch.wait_for(TX_HASH)
        assert event.transaction_hash == TX_HASH

    @pytest.mark.asyncio
    async def test_any_unsubscribe_error_keeps_result(self):
        """Unsubscribe errors of any type are logged, the event is still returned."""
        source = ControlledEventSource(unsubscribe_error=RuntimeError("socket already closed"))
        async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1) as watch:
            source.emit(make_event())
            event = await watch.wait_for(TX_HASH)
        assert event.transaction_hash == TX_HASH
        assert source.unsubscribed == ["sub-1"]

    @pytest.mark.asyncio
    async def test_any_unsubscribe_error_keeps_body_exception(self):
        """A body exception propagates unchanged when unsubscribe also fails."""
        source = ControlledEventSource(unsubscribe_error=RuntimeError("socket already closed"))
        with pytest.raises(ValueError, match="order expired"):
            async with ScopedEventWatch(source, MARKET, ["Error"], timeout=1):
                raise ValueError("order expired")
        assert source.unsubscribed == ["sub-1"]

    @pytest.mark.asyncio
    async def test_wait_outside_context(self, source):
        """wait_for requires an open subscription."""
        watch = ScopedEventWatch(source, MARKET, ["Error"], timeout=1)
        with pytest.raises(RuntimeError):
            await watch.wait_for(TX_HASH)
