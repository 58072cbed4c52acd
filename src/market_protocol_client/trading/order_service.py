"""Validate-and-submit flows for fills and cancels."""

from typing import Any

from ..config.constants import (
    DEFAULT_EVENT_TIMEOUT_SECONDS,
    ERROR_EVENT,
    ORDER_CANCELLED_EVENT,
    ORDER_FILLED_EVENT,
)
from ..connectors.blockchain.event_watch import ScopedEventWatch
from ..core.enums import MarketError
from ..core.exceptions import InvalidOrderError, MarketOperationError, ProviderError
from ..core.interfaces import (
    MarketEventSource,
    MarketStateReader,
    MarketTransactor,
    OrderHashService,
)
from ..models.events import MarketEvent, OrderCancelledEvent, OrderErrorEvent, OrderFilledEvent
from ..models.order import Order, SignedOrder
from ..risk.validator import OrderValidator
from ..utils.logger import get_logger, log_context
from ..utils.numeric import sign, to_int

logger = get_logger(__name__)


class OrderService:
    """Submits fills and cancels and waits for the contract's verdict.

    A fill is screened by ``OrderValidator`` first, so orders the contract would reject
    never cost gas. Each submission watches the market's events from before broadcast until
    the event of that transaction arrives, then tears the subscription down.
    """

    def __init__(
        self,
        state: MarketStateReader,
        hasher: OrderHashService,
        transactor: MarketTransactor,
        events: MarketEventSource,
        validator: OrderValidator | None = None,
        event_timeout: float = DEFAULT_EVENT_TIMEOUT_SECONDS,
    ):
        """Initialize order service.

        Args:
            state: On-chain state reader
            hasher: Order hash and signature service
            transactor: Transaction submitter
            events: Market event source
            validator: Pre-trade validator (built from ``state`` and ``hasher`` if omitted)
            event_timeout: Seconds to wait for the settlement event of a transaction
        """
        self.state = state
        self.hasher = hasher
        self.transactor = transactor
        self.events = events
        self.validator = validator or OrderValidator(state, hasher)
        self.event_timeout = event_timeout

    async def trade_order(
        self,
        signed_order: SignedOrder,
        fill_qty: int,
        tx_params: dict[str, Any] | None = None,
    ) -> int:
        """Validate a fill, submit it and wait for settlement.

        Args:
            signed_order: Maker's signed order
            fill_qty: Signed quantity to fill (same sign as the order)
            tx_params: Web3 transaction params; ``from`` is the taker

        Returns:
            int: Signed quantity actually filled (the contract clamps to the remaining quantity)

        Raises:
            MarketOperationError: If validation fails or the contract reports an error event
            TransactionFailedError: If the transaction reverts
            ProviderError: If the chain cannot be reached or no event is observed in time
        """
        fill_qty = to_int(fill_qty)
        tx_params = dict(tx_params or {})
        sender = tx_params.get("from") or self.transactor.default_sender
        market = signed_order.contract_address

        order_hash = await self.hasher.create_order_hash(signed_order.terms())
        with log_context(market=market, order_hash=order_hash):
            result = await self.validator.validate(
                signed_order, fill_qty, sender, order_hash=order_hash
            )
            result.raise_for_error()

            async with ScopedEventWatch(
                self.events, market, [ORDER_FILLED_EVENT, ERROR_EVENT], self.event_timeout
            ) as watch:
                tx_hash = await self.transactor.send_trade_order(signed_order, fill_qty, tx_params)
                event = await watch.wait_for(tx_hash, order_hash)

            filled_qty = self._expect_event(event, OrderFilledEvent).filled_qty
            logger.info("Order filled", fill_qty=fill_qty, filled_qty=filled_qty, tx_hash=tx_hash)
            return filled_qty

    async def cancel_order(
        self,
        order: Order,
        cancel_qty: int,
        tx_params: dict[str, Any] | None = None,
    ) -> int:
        """Cancel part of an order's unfilled quantity and wait for confirmation.

        Args:
            order: Order to cancel (must be sent by the maker)
            cancel_qty: Signed quantity to cancel (same sign as the order)
            tx_params: Web3 transaction params

        Returns:
            int: Signed quantity actually cancelled

        Raises:
            InvalidOrderError: If ``cancel_qty`` is zero
            MarketOperationError: On a direction mismatch or a contract error event
            TransactionFailedError: If the transaction reverts
            ProviderError: If the chain cannot be reached or no event is observed in time
        """
        cancel_qty = to_int(cancel_qty)
        if cancel_qty == 0:
            raise InvalidOrderError("Cancel quantity must be non-zero")
        if sign(cancel_qty) != sign(order.order_qty):
            raise MarketOperationError(
                MarketError.BUY_SELL_MISMATCH,
                f"Cancel quantity {cancel_qty} disagrees with order quantity {order.order_qty}",
            )

        terms = order.terms()
        order_hash = await self.hasher.create_order_hash(terms)
        with log_context(market=order.contract_address, order_hash=order_hash):
            async with ScopedEventWatch(
                self.events,
                order.contract_address,
                [ORDER_CANCELLED_EVENT, ERROR_EVENT],
                self.event_timeout,
            ) as watch:
                tx_hash = await self.transactor.send_cancel_order(
                    terms, cancel_qty, dict(tx_params or {})
                )
                event = await watch.wait_for(tx_hash, order_hash)

            cancelled_qty = self._expect_event(event, OrderCancelledEvent).cancelled_qty
            logger.info("Order cancelled", cancelled_qty=cancelled_qty, tx_hash=tx_hash)
            return cancelled_qty

    async def get_qty_filled_or_cancelled(self, market_address: str, order_hash: str) -> int:
        """Cumulative quantity consumed by fills and cancels of an order."""
        return await self.state.get_qty_filled_or_cancelled(market_address, order_hash)

    @staticmethod
    def _expect_event(event: MarketEvent, expected: type[MarketEvent]) -> Any:
        if isinstance(event, OrderErrorEvent):
            error = event.error_code.to_market_error()
            logger.info("Contract reported settlement error", error=error.value)
            raise MarketOperationError(
                error, f"Contract rejected order {event.order_hash}: {error.value}"
            )
        if not isinstance(event, expected):
            raise ProviderError(
                f"Unexpected {type(event).__name__} for transaction {event.transaction_hash}"
            )
        return event
