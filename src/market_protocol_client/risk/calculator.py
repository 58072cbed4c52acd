"""Remaining fillable quantity calculator for signed orders."""

from ..core.enums import MarketError
from ..core.exceptions import MarketOperationError
from ..core.interfaces import MarketStateReader
from ..models.order import SignedOrder
from ..utils.logger import get_logger
from ..utils.numeric import clamp_non_negative, floor_to_quantity, sign
from .collateral import collateral_fillable_qty, collateral_per_unit, fee_fillable_qty

logger = get_logger(__name__)


class RemainingFillableCalculator:
    """Compute how much of an order each side could still trade given live chain state.

    The result is advisory (display, order-book depth); the settlement contract remains the
    authority at submission time. Every call reads fresh balances and fill state and never
    mutates the order, so repeated calls with unchanged chain state return identical results.
    """

    def __init__(
        self,
        state: MarketStateReader,
        signed_order: SignedOrder,
        order_hash: str,
        collateral_pool_address: str | None = None,
    ):
        """Initialize remaining fillable calculator.

        Args:
            state: On-chain state reader
            signed_order: Order to evaluate
            order_hash: Hash of the order (key of the filled/cancelled counter)
            collateral_pool_address: Pool holding collateral (read from the market if omitted)
        """
        self.state = state
        self.signed_order = signed_order
        self.order_hash = order_hash
        self.collateral_pool_address = collateral_pool_address

    async def get_remaining_qty(self) -> int:
        """Remaining quantity: ``|order_qty|`` minus the on-chain filled/cancelled counter.

        Raises:
            ProviderError: If the counter cannot be read
        """
        filled = await self.state.get_qty_filled_or_cancelled(
            self.signed_order.contract_address, self.order_hash
        )
        return clamp_non_negative(self.signed_order.abs_qty - filled)

    async def compute_remaining_maker_fillable(self) -> int:
        """Largest quantity the maker can still have filled.

        Returns:
            int: Non-negative whole quantity, never above the remaining quantity

        Raises:
            MarketOperationError: INSUFFICIENT_BALANCE_FOR_TRANSFER if the maker cannot pay
                the fee of even a partial fill
            ProviderError: If chain state cannot be read
        """
        return await self._compute_fillable(
            account=self.signed_order.maker,
            fee=self.signed_order.maker_fee,
            qty_sign=sign(self.signed_order.order_qty),
        )

    async def compute_remaining_taker_fillable(self) -> int:
        """Largest quantity the order's taker can still fill.

        With a wildcard taker there is no specific counterparty to check, so the result is
        the remaining quantity.

        Raises:
            MarketOperationError: INSUFFICIENT_BALANCE_FOR_TRANSFER if the taker cannot pay
                the fee of even a partial fill
            ProviderError: If chain state cannot be read
        """
        if self.signed_order.has_wildcard_taker:
            return await self.get_remaining_qty()

        # The taker enters the opposite side of the maker
        return await self._compute_fillable(
            account=self.signed_order.taker,
            fee=self.signed_order.taker_fee,
            qty_sign=-sign(self.signed_order.order_qty),
        )

    async def _compute_fillable(self, account: str, fee: int, qty_sign: int) -> int:
        order = self.signed_order
        market = order.contract_address

        remaining = await self.get_remaining_qty()
        if remaining == 0:
            return 0

        # Step 1: collateral bound, using the market's own multiplier and price bounds
        specs = await self.state.get_contract_specs(market)
        pool = self.collateral_pool_address or specs.collateral_pool_address
        collateral_balance = await self.state.get_collateral_balance(pool, account)
        per_unit = collateral_per_unit(specs, qty_sign, order.price)
        fillable = collateral_fillable_qty(collateral_balance, per_unit, remaining)

        # Step 2: fee bound; any shortfall that blocks even one unit is a hard stop
        if fee > 0:
            fee_balance = await self.state.get_fee_token_balance(account)
            fee_fillable = fee_fillable_qty(fee_balance, fee, order.order_qty)
            if fee_balance <= 0 or fee_fillable <= 0:
                logger.info(
                    "Fee balance cannot cover any fill",
                    account=account,
                    fee=fee,
                    fee_balance=fee_balance,
                    order_hash=self.order_hash,
                )
                raise MarketOperationError(
                    MarketError.INSUFFICIENT_BALANCE_FOR_TRANSFER,
                    f"Fee balance {fee_balance} of {account} cannot cover fee {fee}",
                )
            fillable = min(fillable, fee_fillable)

        result = floor_to_quantity(min(fillable, remaining))

        logger.debug(
            "Computed remaining fillable",
            account=account,
            order_hash=self.order_hash,
            remaining=remaining,
            collateral_balance=collateral_balance,
            collateral_per_unit=per_unit,
            fillable=result,
        )
        return result
