"""Web3-backed implementations of the collaborator interfaces."""

import inspect
from collections.abc import Callable
from typing import Any

from ..connectors.blockchain.client import ChainClient
from ..connectors.blockchain.log_subscriber import LogSubscriber
from ..core.interfaces import (
    EventCallback,
    MarketEventSource,
    MarketStateReader,
    MarketTransactor,
)
from ..models.market import ContractSpecs
from ..models.order import Order, SignedOrder
from ..utils.logger import get_logger
from .market_token import MarketToken
from .registry import MarketContractRegistry

logger = get_logger(__name__)


class Web3MarketState(MarketStateReader):
    """Reads market state from deployed contracts. Balances and fill counters are never cached."""

    def __init__(self, registry: MarketContractRegistry, market_token: MarketToken):
        self.registry = registry
        self.market_token = market_token

    async def is_user_enabled_for_contract(self, market_address: str, user: str) -> bool:
        return await self.market_token.is_user_enabled_for_contract(market_address, user)

    async def get_fee_token_balance(self, user: str) -> int:
        return await self.market_token.get_balance(user)

    async def get_fee_token_allowance(self, owner: str, spender: str) -> int:
        return await self.market_token.get_allowance(owner, spender)

    async def get_collateral_balance(self, collateral_pool_address: str, user: str) -> int:
        pool = self.registry.collateral_pool(collateral_pool_address)
        return await pool.get_user_account_balance(user)

    async def get_qty_filled_or_cancelled(self, market_address: str, order_hash: str) -> int:
        return await self.registry.market(market_address).get_qty_filled_or_cancelled(order_hash)

    async def get_contract_specs(self, market_address: str) -> ContractSpecs:
        return await self.registry.market(market_address).get_contract_specs()


class Web3MarketTransactor(MarketTransactor):
    """Submits tradeOrder / cancelOrder transactions through the chain client."""

    def __init__(self, registry: MarketContractRegistry, client: ChainClient):
        self.registry = registry
        self.client = client

    @property
    def default_sender(self) -> str | None:
        return self.client.default_account

    async def send_trade_order(
        self,
        signed_order: SignedOrder,
        fill_qty: int,
        tx_params: dict[str, Any],
    ) -> str:
        market = self.registry.market(signed_order.contract_address)
        return await market.send_trade_order(signed_order, fill_qty, tx_params)

    async def send_cancel_order(
        self,
        order: Order,
        cancel_qty: int,
        tx_params: dict[str, Any],
    ) -> str:
        market = self.registry.market(order.contract_address)
        return await market.send_cancel_order(order, cancel_qty, tx_params)


class Web3MarketEventSource(MarketEventSource):
    """Decodes market contract logs delivered by a websocket log subscription."""

    def __init__(self, registry: MarketContractRegistry, subscriber: LogSubscriber):
        self.registry = registry
        self.subscriber = subscriber

    async def subscribe(
        self,
        market_address: str,
        event_names: list[str],
        callback: EventCallback,
        on_error: Callable[[Exception], None] | None = None,
    ) -> str:
        market = self.registry.market(market_address)
        topics = market.topics_for(event_names)

        async def on_log(log_entry: dict[str, Any]) -> None:
            event = market.decode_log(log_entry)
            if event is None:
                return
            result = callback(event)
            if inspect.isawaitable(result):
                await result

        return await self.subscriber.subscribe(market.address, topics, on_log, on_error=on_error)

    async def unsubscribe(self, subscription_id: str) -> None:
        await self.subscriber.unsubscribe(subscription_id)
