"""End-to-end order lifecycle against the in-memory market chain."""

import pytest

from market_protocol_client.config.constants import NULL_ADDRESS
from market_protocol_client.core.enums import MarketError
from market_protocol_client.core.exceptions import MarketOperationError
from market_protocol_client.orders.hashing import compute_order_hash
from market_protocol_client.risk.calculator import RemainingFillableCalculator
from market_protocol_client.risk.validator import OrderValidator
from market_protocol_client.trading.order_service import OrderService
from tests.fixtures.orders import (
    COLLATERAL_POOL_ADDRESS,
    FEE_RECIPIENT_ADDRESS,
    MAKER_ADDRESS,
    MARKET_ADDRESS,
    OTHER_ADDRESS,
    TAKER_ADDRESS,
    build_signed_order,
)

pytestmark = pytest.mark.integration


@pytest.fixture
def service(fake_chain, hasher, clock):
    validator = OrderValidator(fake_chain, hasher, clock=clock)
    return OrderService(
        fake_chain, hasher, fake_chain, fake_chain, validator=validator, event_timeout=1
    )


async def assert_remaining_consistent(chain, order, calculator):
    filled = chain.filled_or_cancelled.get(compute_order_hash(order), 0)
    assert await calculator.get_remaining_qty() == order.abs_qty - filled


class TestFillLifecycle:
    """Partial fills until the order is exhausted."""

    @pytest.mark.asyncio
    async def test_fill_in_steps_until_exhausted(
        self, service, fake_chain, signed_order, order_hash
    ):
        """Fill 1, then half of what is left, then the rest; a further fill is rejected."""
        calc = RemainingFillableCalculator(fake_chain, signed_order, order_hash)

        # First fill
        assert await service.trade_order(signed_order, 1) == 1
        assert await calc.get_remaining_qty() == 2
        assert await calc.compute_remaining_maker_fillable() <= 2
        assert await calc.compute_remaining_taker_fillable() <= 2
        await assert_remaining_consistent(fake_chain, signed_order, calc)

        # Half of what the taker can still fill
        taker_fillable = await calc.compute_remaining_taker_fillable()
        assert taker_fillable == 2
        assert await service.trade_order(signed_order, taker_fillable // 2) == 1
        assert await calc.get_remaining_qty() == 1
        await assert_remaining_consistent(fake_chain, signed_order, calc)

        # The rest
        rest = await calc.compute_remaining_taker_fillable()
        assert rest == 1
        assert await service.trade_order(signed_order, rest) == 1

        assert await calc.get_remaining_qty() == 0
        assert await calc.compute_remaining_maker_fillable() == 0
        assert await calc.compute_remaining_taker_fillable() == 0
        assert fake_chain.filled_or_cancelled[order_hash] == 3

        # Overfill
        with pytest.raises(MarketOperationError) as exc_info:
            await service.trade_order(signed_order, 1)
        assert exc_info.value.error == MarketError.ORDER_FILLED_OR_CANCELLED
        assert len(fake_chain.sent_transactions) == 3
        assert fake_chain.subscriptions == {}

    @pytest.mark.asyncio
    async def test_cancel_then_fill(self, service, fake_chain, signed_order, order_hash):
        """Cancelled quantity is no longer fillable."""
        calc = RemainingFillableCalculator(fake_chain, signed_order, order_hash)

        assert await service.cancel_order(signed_order, 2, {"from": MAKER_ADDRESS}) == 2
        assert await calc.compute_remaining_taker_fillable() == 1

        assert await service.trade_order(signed_order, 3) == 1
        assert await calc.get_remaining_qty() == 0

        with pytest.raises(MarketOperationError) as exc_info:
            await service.cancel_order(signed_order, 1, {"from": MAKER_ADDRESS})
        assert exc_info.value.error == MarketError.ORDER_FILLED_OR_CANCELLED


class TestCollateralLifecycle:
    """Fills lock collateral and shrink what remains fillable."""

    @pytest.mark.asyncio
    async def test_fills_consume_collateral(self, service, fake_chain):
        """Each fill locks collateral on both sides."""
        order = build_signed_order(price=120_000)
        order_hash = compute_order_hash(order)
        pool = COLLATERAL_POOL_ADDRESS.lower()
        # Maker long risks 7e7 per unit, taker short risks 3e7 per unit
        fake_chain.collateral[(pool, MAKER_ADDRESS.lower())] = 140_000_000
        fake_chain.collateral[(pool, TAKER_ADDRESS.lower())] = 90_000_000
        calc = RemainingFillableCalculator(fake_chain, order, order_hash)

        assert await calc.compute_remaining_maker_fillable() == 2
        assert await calc.compute_remaining_taker_fillable() == 3

        assert await service.trade_order(order, 1) == 1

        assert fake_chain.collateral[(pool, MAKER_ADDRESS.lower())] == 70_000_000
        assert fake_chain.collateral[(pool, TAKER_ADDRESS.lower())] == 60_000_000
        assert await calc.compute_remaining_maker_fillable() == 1
        assert await calc.compute_remaining_taker_fillable() == 2


class TestFeeLifecycle:
    """Fees are charged pro rata and bound the fillable quantity."""

    @pytest.mark.asyncio
    async def test_fee_balance_limits_fills(self, service, fake_chain):
        """Paying fees reduces the balance and with it the fillable quantity."""
        order = build_signed_order(fee_recipient=FEE_RECIPIENT_ADDRESS, maker_fee=30, taker_fee=30)
        order_hash = compute_order_hash(order)
        fake_chain.set_fee_balance(MAKER_ADDRESS, 30)
        fake_chain.set_fee_balance(TAKER_ADDRESS, 30)
        calc = RemainingFillableCalculator(fake_chain, order, order_hash)

        assert await calc.compute_remaining_maker_fillable() == 3
        assert await service.trade_order(order, 1) == 1

        assert fake_chain.fee_balances[MAKER_ADDRESS.lower()] == 20
        assert fake_chain.fee_balances[TAKER_ADDRESS.lower()] == 20
        assert await calc.compute_remaining_maker_fillable() == 2

    @pytest.mark.asyncio
    async def test_fee_shortfall_blocks_submission(self, service, fake_chain):
        """A maker who cannot pay the order's fee is rejected before submission."""
        order = build_signed_order(fee_recipient=FEE_RECIPIENT_ADDRESS, maker_fee=10**32)
        calc = RemainingFillableCalculator(fake_chain, order, compute_order_hash(order))

        with pytest.raises(MarketOperationError) as exc_info:
            await calc.compute_remaining_maker_fillable()
        assert exc_info.value.error == MarketError.INSUFFICIENT_BALANCE_FOR_TRANSFER

        with pytest.raises(MarketOperationError) as exc_info:
            await service.trade_order(order, 1)
        assert exc_info.value.error == MarketError.INSUFFICIENT_BALANCE_FOR_TRANSFER
        assert fake_chain.sent_transactions == []


class TestWildcardLifecycle:
    """Orders open to any taker."""

    @pytest.mark.asyncio
    async def test_any_enabled_sender_can_fill(self, service, fake_chain):
        """The sender becomes the taker of a wildcard order."""
        order = build_signed_order(taker=NULL_ADDRESS)

        with pytest.raises(MarketOperationError) as exc_info:
            await service.trade_order(order, 1, {"from": OTHER_ADDRESS})
        assert exc_info.value.error == MarketError.USER_NOT_ENABLED_FOR_CONTRACT

        fake_chain.enable(MARKET_ADDRESS, OTHER_ADDRESS)
        fake_chain.deposit(COLLATERAL_POOL_ADDRESS, OTHER_ADDRESS, 10**12)

        assert await service.trade_order(order, 2, {"from": OTHER_ADDRESS}) == 2
        sent = fake_chain.sent_transactions[-1]
        assert sent["from"] == OTHER_ADDRESS
