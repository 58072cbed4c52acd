"""Pre-trade admissibility checks for signed orders."""

import time
from collections.abc import Callable
from dataclasses import dataclass

from ..core.enums import MarketError
from ..core.exceptions import MarketOperationError
from ..core.interfaces import MarketStateReader, OrderHashService
from ..models.order import SignedOrder
from ..utils.logger import get_logger
from ..utils.numeric import sign, to_int

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of fill validation."""

    is_valid: bool
    error: MarketError | None = None
    reason: str | None = None

    @classmethod
    def admissible(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def rejected(cls, error: MarketError, reason: str) -> "ValidationResult":
        return cls(is_valid=False, error=error, reason=reason)

    def raise_for_error(self) -> None:
        """Raise ``MarketOperationError`` carrying the violated constraint, if any."""
        if not self.is_valid:
            raise MarketOperationError(self.error, self.reason)


class OrderValidator:
    """Screen a candidate fill against the settlement contract's rules before submission.

    Checks run in the contract's order and stop at the first violation, so the reported
    error is deterministic. Every check reads fresh chain state.
    """

    def __init__(
        self,
        state: MarketStateReader,
        hasher: OrderHashService,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize order validator.

        Args:
            state: On-chain state reader
            hasher: Order hash and signature service
            clock: Source of the current unix time in seconds
        """
        self.state = state
        self.hasher = hasher
        self.clock = clock

    async def validate(
        self,
        signed_order: SignedOrder,
        fill_qty: int,
        sender: str | None,
        collateral_pool_address: str | None = None,
        order_hash: str | None = None,
    ) -> ValidationResult:
        """Validate a proposed fill of ``signed_order``.

        Args:
            signed_order: Order to fill
            fill_qty: Signed quantity to fill (sign must match the order's direction)
            sender: Address that will submit the trade transaction
            collateral_pool_address: Pool holding collateral (read from the market if omitted)
            order_hash: Precomputed hash (recomputed from the terms if omitted)

        Returns:
            ValidationResult: First violated constraint, or admissible

        Raises:
            ProviderError: If chain state cannot be read
        """
        fill_qty = to_int(fill_qty)
        market = signed_order.contract_address
        maker = signed_order.maker
        wildcard = signed_order.has_wildcard_taker
        # With a wildcard taker the counterparty is whoever submits the fill
        taker = (sender or signed_order.taker) if wildcard else signed_order.taker

        result = await self._check(
            signed_order=signed_order,
            fill_qty=fill_qty,
            sender=sender,
            market=market,
            maker=maker,
            taker=taker,
            wildcard=wildcard,
            collateral_pool_address=collateral_pool_address,
            order_hash=order_hash,
        )

        if not result.is_valid:
            logger.info(
                "Order fill rejected",
                market=market,
                maker=maker,
                fill_qty=fill_qty,
                error=result.error.value,
                reason=result.reason,
            )
        return result

    async def _check(
        self,
        signed_order: SignedOrder,
        fill_qty: int,
        sender: str | None,
        market: str,
        maker: str,
        taker: str,
        wildcard: bool,
        collateral_pool_address: str | None,
        order_hash: str | None,
    ) -> ValidationResult:
        # Check 1: registry capability of both sides
        if not await self.state.is_user_enabled_for_contract(market, maker):
            return ValidationResult.rejected(
                MarketError.USER_NOT_ENABLED_FOR_CONTRACT,
                f"Maker {maker} is not enabled for {market}",
            )
        if not await self.state.is_user_enabled_for_contract(market, taker):
            return ValidationResult.rejected(
                MarketError.USER_NOT_ENABLED_FOR_CONTRACT,
                f"Taker {taker} is not enabled for {market}",
            )

        # Check 2: fee token balances cover the fees
        maker_fee_balance = await self.state.get_fee_token_balance(maker)
        if maker_fee_balance < signed_order.maker_fee:
            return ValidationResult.rejected(
                MarketError.INSUFFICIENT_BALANCE_FOR_TRANSFER,
                f"Maker fee balance {maker_fee_balance} < maker fee {signed_order.maker_fee}",
            )
        taker_fee_balance = await self.state.get_fee_token_balance(taker)
        if taker_fee_balance < signed_order.taker_fee:
            return ValidationResult.rejected(
                MarketError.INSUFFICIENT_BALANCE_FOR_TRANSFER,
                f"Taker fee balance {taker_fee_balance} < taker fee {signed_order.taker_fee}",
            )

        # Check 3: maker collateral
        if collateral_pool_address is None:
            specs = await self.state.get_contract_specs(market)
            collateral_pool_address = specs.collateral_pool_address
        maker_collateral = await self.state.get_collateral_balance(collateral_pool_address, maker)
        if maker_collateral < abs(fill_qty):
            return ValidationResult.rejected(
                MarketError.INSUFFICIENT_COLLATERAL_BALANCE,
                f"Maker collateral {maker_collateral} < fill quantity {abs(fill_qty)}",
            )

        # Check 4: signature over the recomputed hash
        if order_hash is None:
            order_hash = await self.hasher.create_order_hash(signed_order.terms())
        if not await self.hasher.is_valid_signature(signed_order, order_hash):
            return ValidationResult.rejected(
                MarketError.INVALID_SIGNATURE,
                f"Signature does not verify against maker {maker}",
            )

        if not wildcard:
            # Check 5: named taker collateral
            taker_collateral = await self.state.get_collateral_balance(
                collateral_pool_address, taker
            )
            if taker_collateral < abs(fill_qty):
                return ValidationResult.rejected(
                    MarketError.INSUFFICIENT_COLLATERAL_BALANCE,
                    f"Taker collateral {taker_collateral} < fill quantity {abs(fill_qty)}",
                )

            # Check 6: only the named taker may fill
            if sender is None or sender.lower() != taker.lower():
                return ValidationResult.rejected(
                    MarketError.INVALID_TAKER,
                    f"Order is reserved for {taker}, sender is {sender}",
                )

        # Check 7: expiration
        now = int(self.clock())
        if signed_order.expiration_timestamp < now:
            return ValidationResult.rejected(
                MarketError.ORDER_EXPIRED,
                f"Order expired at {signed_order.expiration_timestamp} (now {now})",
            )

        # Check 8: remaining quantity from the authoritative counter
        filled = await self.state.get_qty_filled_or_cancelled(market, order_hash)
        remaining = signed_order.abs_qty - filled
        if remaining <= 0:
            return ValidationResult.rejected(
                MarketError.ORDER_FILLED_OR_CANCELLED,
                f"Order {order_hash} has no remaining quantity",
            )

        # Check 9: direction agreement
        if sign(signed_order.order_qty) != sign(fill_qty):
            return ValidationResult.rejected(
                MarketError.BUY_SELL_MISMATCH,
                f"Fill quantity {fill_qty} disagrees with order quantity {signed_order.order_qty}",
            )

        return ValidationResult.admissible()
