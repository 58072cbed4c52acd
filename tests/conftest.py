"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from typing import Any

import pytest

from market_protocol_client.models.market import ContractSpecs
from market_protocol_client.models.order import SignedOrder
from market_protocol_client.orders.hashing import LocalOrderHasher, compute_order_hash
from tests.fixtures.orders import (
    COLLATERAL_POOL_ADDRESS,
    INITIAL_CREDIT,
    MAKER_ADDRESS,
    MARKET_ADDRESS,
    NOW,
    SAMPLE_SPECS,
    TAKER_ADDRESS,
    build_signed_order,
)
from tests.mocks.chain import FakeMarketChain

# ===== Pytest Markers =====


def pytest_configure(config: Any) -> None:
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory chain)")


# ===== Clock =====


@pytest.fixture
def clock() -> Callable[[], float]:
    """Frozen clock at NOW."""
    return lambda: float(NOW)


# ===== Chain Fixtures =====


@pytest.fixture
def sample_specs() -> ContractSpecs:
    """Sample market parameters."""
    return SAMPLE_SPECS


@pytest.fixture
def fake_chain(clock: Callable[[], float]) -> FakeMarketChain:
    """Market with maker and taker enabled and fully collateralized, no fee tokens."""
    chain = FakeMarketChain(sender=TAKER_ADDRESS, clock=clock)
    chain.add_market(SAMPLE_SPECS)
    for user in (MAKER_ADDRESS, TAKER_ADDRESS):
        chain.enable(MARKET_ADDRESS, user)
        chain.deposit(COLLATERAL_POOL_ADDRESS, user, INITIAL_CREDIT)
    return chain


@pytest.fixture
def hasher() -> LocalOrderHasher:
    """Local order hasher."""
    return LocalOrderHasher()


# ===== Order Fixtures =====


@pytest.fixture
def signed_order() -> SignedOrder:
    """Buy 3 @ 100000 from the maker to the named taker, no fees."""
    return build_signed_order()


@pytest.fixture
def order_hash(signed_order: SignedOrder) -> str:
    """Hash of the sample signed order."""
    return compute_order_hash(signed_order)
