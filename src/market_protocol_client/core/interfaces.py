"""Interfaces of the external collaborators consumed by the order core.

All reads are fresh on every call; implementations must not cache balances or fill state.
Transport failures are reported as ``ProviderError``.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from ..models.events import MarketEvent
from ..models.market import ContractSpecs
from ..models.order import Order, SignedOrder

EventCallback = Callable[[MarketEvent], Awaitable[None] | None]


class MarketStateReader(ABC):
    """Read access to on-chain market state."""

    @abstractmethod
    async def is_user_enabled_for_contract(self, market_address: str, user: str) -> bool:
        """Check whether a user holds the registry capability to trade a market.

        Raises:
            ProviderError: If the chain cannot be read
        """
        pass

    @abstractmethod
    async def get_fee_token_balance(self, user: str) -> int:
        """Get the fee token balance of a user, in base units.

        Raises:
            ProviderError: If the chain cannot be read
        """
        pass

    @abstractmethod
    async def get_fee_token_allowance(self, owner: str, spender: str) -> int:
        """Get the fee token amount ``spender`` may transfer on behalf of ``owner``."""
        pass

    @abstractmethod
    async def get_collateral_balance(self, collateral_pool_address: str, user: str) -> int:
        """Get a user's unallocated collateral in a collateral pool, in base units.

        Raises:
            ProviderError: If the chain cannot be read
        """
        pass

    @abstractmethod
    async def get_qty_filled_or_cancelled(self, market_address: str, order_hash: str) -> int:
        """Get the cumulative quantity consumed by fills and cancels for an order hash.

        Raises:
            ProviderError: If the chain cannot be read
        """
        pass

    @abstractmethod
    async def get_contract_specs(self, market_address: str) -> ContractSpecs:
        """Get the price bounds, quantity multiplier and pool of a market.

        Raises:
            ProviderError: If the chain cannot be read
        """
        pass


class OrderHashService(ABC):
    """Deterministic order hashing and signature verification."""

    @abstractmethod
    async def create_order_hash(self, order: Order) -> str:
        """Hash the order terms.

        Returns:
            str: 0x-prefixed 32-byte hex hash
        """
        pass

    @abstractmethod
    async def is_valid_signature(self, signed_order: SignedOrder, order_hash: str) -> bool:
        """Check that the order's signature over ``order_hash`` was produced by the maker."""
        pass


class MarketTransactor(ABC):
    """Submits state-changing market transactions."""

    @property
    @abstractmethod
    def default_sender(self) -> str | None:
        """Address used when tx params carry no ``from``."""
        pass

    @abstractmethod
    async def send_trade_order(
        self,
        signed_order: SignedOrder,
        fill_qty: int,
        tx_params: dict[str, Any],
    ) -> str:
        """Broadcast a tradeOrder transaction.

        Returns:
            str: Transaction hash
        """
        pass

    @abstractmethod
    async def send_cancel_order(
        self,
        order: Order,
        cancel_qty: int,
        tx_params: dict[str, Any],
    ) -> str:
        """Broadcast a cancelOrder transaction.

        Returns:
            str: Transaction hash
        """
        pass


class MarketEventSource(ABC):
    """Subscribes to decoded market contract events."""

    @abstractmethod
    async def subscribe(
        self,
        market_address: str,
        event_names: list[str],
        callback: EventCallback,
        on_error: Callable[[Exception], None] | None = None,
    ) -> str:
        """Subscribe to the named events emitted by a market contract.

        The subscription may deliver events of other users' orders; callers filter them.
        ``on_error`` is called once if the subscription dies before it is cancelled.

        Returns:
            str: Subscription id

        Raises:
            ProviderError: If the subscription cannot be created
        """
        pass

    @abstractmethod
    async def unsubscribe(self, subscription_id: str) -> None:
        """Cancel a subscription. Unknown ids are ignored."""
        pass
