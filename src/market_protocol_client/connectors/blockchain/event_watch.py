"""Single-shot watch for the settlement event of one submitted transaction."""

import asyncio

from ...config.constants import DEFAULT_EVENT_TIMEOUT_SECONDS
from ...core.exceptions import EventWatchTimeoutError
from ...core.interfaces import MarketEventSource
from ...models.events import MarketEvent
from ...utils.logger import get_logger

logger = get_logger(__name__)


class ScopedEventWatch:
    """Subscribe before a transaction is broadcast, then wait for the event it produces.

    The subscription lives exactly as long as the ``async with`` block: it is cancelled
    whether the wait resolves, fails or times out. Events that arrive before ``wait_for``
    is called are buffered so a fast node cannot race the caller.

    Example:
        async with ScopedEventWatch(source, market, ["OrderFilled", "Error"]) as watch:
            tx_hash = await transactor.send_trade_order(order, qty, tx_params)
            event = await watch.wait_for(tx_hash)
    """

    def __init__(
        self,
        source: MarketEventSource,
        market_address: str,
        event_names: list[str],
        timeout: float = DEFAULT_EVENT_TIMEOUT_SECONDS,
    ):
        self.source = source
        self.market_address = market_address
        self.event_names = event_names
        self.timeout = timeout

        self.subscription_id: str | None = None
        self._buffer: list[MarketEvent] = []
        self._future: asyncio.Future[MarketEvent] | None = None
        self._tx_hash: str | None = None
        self._order_hash: str | None = None
        self._error: Exception | None = None

    async def __aenter__(self) -> "ScopedEventWatch":
        self.subscription_id = await self.source.subscribe(
            self.market_address,
            self.event_names,
            self._on_event,
            on_error=self._on_error,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.subscription_id is None:
            return
        subscription_id, self.subscription_id = self.subscription_id, None
        try:
            await self.source.unsubscribe(subscription_id)
        except Exception as e:
            logger.warning(
                "Failed to cancel event subscription",
                subscription_id=subscription_id,
                error=str(e),
            )

    async def wait_for(self, tx_hash: str, order_hash: str | None = None) -> MarketEvent:
        """Wait for the first watched event emitted by ``tx_hash``.

        Args:
            tx_hash: Hash of the submitted transaction
            order_hash: Only accept events for this order, if given

        Returns:
            MarketEvent: The matching decoded event

        Raises:
            EventWatchTimeoutError: If no matching event arrives within the timeout
            ProviderError: If the subscription dies while waiting
        """
        if self.subscription_id is None:
            raise RuntimeError("wait_for() must be called inside 'async with'")

        self._tx_hash = tx_hash.lower()
        self._order_hash = order_hash.lower() if order_hash else None
        self._future = asyncio.get_running_loop().create_future()

        for event in self._buffer:
            if self._matches(event):
                self._future.set_result(event)
                break
        self._buffer.clear()

        if not self._future.done() and self._error is not None:
            self._future.set_exception(self._error)

        try:
            return await asyncio.wait_for(self._future, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                "Settlement event not observed",
                market=self.market_address,
                tx_hash=tx_hash,
                timeout=self.timeout,
            )
            raise EventWatchTimeoutError(
                f"No {'/'.join(self.event_names)} event for {tx_hash} within {self.timeout}s"
            ) from e

    def _matches(self, event: MarketEvent) -> bool:
        if event.transaction_hash.lower() != self._tx_hash:
            return False
        return self._order_hash is None or event.order_hash.lower() == self._order_hash

    def _on_event(self, event: MarketEvent) -> None:
        if self._future is None:
            self._buffer.append(event)
            return
        if not self._future.done() and self._matches(event):
            self._future.set_result(event)

    def _on_error(self, error: Exception) -> None:
        if self._future is None:
            self._error = error
        elif not self._future.done():
            self._future.set_exception(error)
