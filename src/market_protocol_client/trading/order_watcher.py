"""Live remaining-fillable tracking for a set of signed orders."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from ..core.enums import MarketError
from ..core.exceptions import MarketOperationError, ProviderError
from ..core.interfaces import MarketStateReader, OrderHashService
from ..models.order import SignedOrder
from ..risk.calculator import RemainingFillableCalculator
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class FillableSnapshot:
    """Remaining-fillable quantities of one order as of ``updated_at``."""

    order_hash: str
    remaining_qty: int
    maker_fillable: int
    taker_fillable: int
    maker_error: MarketError | None = None
    taker_error: MarketError | None = None
    updated_at: float = field(default_factory=time.time)


@dataclass
class _TrackedOrder:
    signed_order: SignedOrder
    calculator: RemainingFillableCalculator
    snapshot: FillableSnapshot | None = None


class OrderWatcher:
    """Polls remaining-fillable amounts for tracked orders (advisory order-book depth).

    Every refresh reads fresh chain state; nothing is reused between refreshes except the
    last good snapshot, which is kept when a read fails.
    """

    def __init__(self, state: MarketStateReader, hasher: OrderHashService):
        """Initialize order watcher.

        Args:
            state: On-chain state reader
            hasher: Order hash service (orders are keyed by hash)
        """
        self.state = state
        self.hasher = hasher
        self._orders: dict[str, _TrackedOrder] = {}
        self._refresh_lock = asyncio.Lock()

    async def track(self, signed_order: SignedOrder) -> str:
        """Start tracking an order.

        Returns:
            str: Order hash the order is tracked under
        """
        order_hash = await self.hasher.create_order_hash(signed_order.terms())
        self._orders[order_hash] = _TrackedOrder(
            signed_order=signed_order,
            calculator=RemainingFillableCalculator(self.state, signed_order, order_hash),
        )
        logger.debug("Tracking order", order_hash=order_hash, order_qty=signed_order.order_qty)
        return order_hash

    def untrack(self, order_hash: str) -> None:
        if self._orders.pop(order_hash, None) is not None:
            logger.debug("Stopped tracking order", order_hash=order_hash)

    def tracked_hashes(self) -> list[str]:
        return list(self._orders)

    def get_snapshot(self, order_hash: str) -> FillableSnapshot | None:
        tracked = self._orders.get(order_hash)
        return tracked.snapshot if tracked else None

    def get_snapshots(self) -> dict[str, FillableSnapshot]:
        """Latest snapshot of every tracked order that has been refreshed at least once."""
        return {
            order_hash: tracked.snapshot
            for order_hash, tracked in self._orders.items()
            if tracked.snapshot is not None
        }

    async def refresh(self) -> dict[str, FillableSnapshot]:
        """Recompute every tracked order and drop the ones with nothing left.

        Returns:
            dict[str, FillableSnapshot]: Latest snapshots after the refresh
        """
        async with self._refresh_lock:
            for order_hash, tracked in list(self._orders.items()):
                try:
                    snapshot = await self._compute_snapshot(order_hash, tracked.calculator)
                except ProviderError as e:
                    logger.warning(
                        "Failed to refresh order, keeping previous snapshot",
                        order_hash=order_hash,
                        error=str(e),
                    )
                    continue

                if snapshot is None:
                    logger.info("Order exhausted, no longer tracked", order_hash=order_hash)
                    self._orders.pop(order_hash, None)
                    continue

                tracked.snapshot = snapshot

            return self.get_snapshots()

    async def run(self, interval: float, stop_event: asyncio.Event) -> None:
        """Refresh every ``interval`` seconds until ``stop_event`` is set."""
        while not stop_event.is_set():
            await self.refresh()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    async def _compute_snapshot(
        self, order_hash: str, calculator: RemainingFillableCalculator
    ) -> FillableSnapshot | None:
        remaining = await calculator.get_remaining_qty()
        if remaining == 0:
            return None

        maker_fillable, maker_error = await self._fillable_or_error(
            calculator.compute_remaining_maker_fillable
        )
        taker_fillable, taker_error = await self._fillable_or_error(
            calculator.compute_remaining_taker_fillable
        )
        return FillableSnapshot(
            order_hash=order_hash,
            remaining_qty=remaining,
            maker_fillable=maker_fillable,
            taker_fillable=taker_fillable,
            maker_error=maker_error,
            taker_error=taker_error,
        )

    @staticmethod
    async def _fillable_or_error(
        compute: Callable[[], Awaitable[int]],
    ) -> tuple[int, MarketError | None]:
        try:
            return await compute(), None
        except ProviderError:
            raise
        except MarketOperationError as e:
            # Economic shortfall: nothing fillable on this side until balances change
            return 0, e.error
