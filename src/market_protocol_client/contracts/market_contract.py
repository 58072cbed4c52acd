"""Typed access to a deployed MarketContract."""

import asyncio
from typing import Any

from web3 import Web3

from ..config.constants import (
    ERROR_EVENT,
    MARKET_CONTRACT_ABI_NAME,
    ORDER_CANCELLED_EVENT,
    ORDER_FILLED_EVENT,
    load_abi,
)
from ..connectors.blockchain.client import ChainClient
from ..core.enums import SettlementErrorCode
from ..models.events import MarketEvent, OrderCancelledEvent, OrderErrorEvent, OrderFilledEvent
from ..models.market import ContractSpecs
from ..models.order import Order, SignedOrder
from ..utils.logger import get_logger

logger = get_logger(__name__)

MARKET_EVENTS = (ORDER_FILLED_EVENT, ORDER_CANCELLED_EVENT, ERROR_EVENT)


def _order_args(order: Order) -> list[Any]:
    return [
        [Web3.to_checksum_address(a) for a in order.order_addresses],
        list(order.unsigned_order_values),
        order.order_qty,
    ]


def _hex(value: Any) -> str:
    return value.lower() if isinstance(value, str) else Web3.to_hex(value)


class MarketContract:
    """Handle to one MarketContract: reads, transaction submission and log decoding."""

    def __init__(self, client: ChainClient, address: str):
        """Initialize market contract handle.

        Args:
            client: Chain client used for calls and transactions
            address: Market contract address

        Raises:
            ValueError: If the address is invalid
        """
        self.client = client
        self.address = Web3.to_checksum_address(address)
        self.abi = load_abi(MARKET_CONTRACT_ABI_NAME)
        self.contract = client.contract(self.address, self.abi)

        self.event_topics: dict[str, str] = {}
        for event_name in MARKET_EVENTS:
            event_abi = next(
                item for item in self.abi if item["type"] == "event" and item["name"] == event_name
            )
            input_types = ",".join(inp["type"] for inp in event_abi["inputs"])
            self.event_topics[event_name] = Web3.to_hex(
                Web3.keccak(text=f"{event_name}({input_types})")
            )
        self._events_by_topic = {topic: name for name, topic in self.event_topics.items()}

        # Contract parameters never change after deployment
        self._specs: ContractSpecs | None = None

    async def _call(self, function_name: str, *args: Any) -> Any:
        return await self.client.call_contract_function(
            contract_address=self.address,
            function_name=function_name,
            abi=self.abi,
            args=list(args),
        )

    async def get_qty_filled_or_cancelled(self, order_hash: str) -> int:
        """Cumulative quantity consumed by fills and cancels of an order.

        Raises:
            ProviderError: If the call fails
        """
        filled = await self._call(
            "getQtyFilledOrCancelledFromOrder", Web3.to_bytes(hexstr=order_hash)
        )
        return int(filled)

    async def get_collateral_pool_address(self) -> str:
        return (await self.get_contract_specs()).collateral_pool_address

    async def get_contract_specs(self) -> ContractSpecs:
        """Read the market's price bounds, multiplier and collateral addresses.

        Raises:
            ProviderError: If any call fails
        """
        if self._specs is not None:
            return self._specs

        (
            pool,
            token,
            price_floor,
            price_cap,
            qty_multiplier,
            decimal_places,
            expiration,
        ) = await asyncio.gather(
            self._call("MARKET_COLLATERAL_POOL_ADDRESS"),
            self._call("COLLATERAL_TOKEN_ADDRESS"),
            self._call("PRICE_FLOOR"),
            self._call("PRICE_CAP"),
            self._call("QTY_MULTIPLIER"),
            self._call("PRICE_DECIMAL_PLACES"),
            self._call("EXPIRATION"),
        )

        self._specs = ContractSpecs(
            market_address=self.address,
            collateral_pool_address=pool,
            collateral_token_address=token,
            price_floor=price_floor,
            price_cap=price_cap,
            qty_multiplier=qty_multiplier,
            price_decimal_places=decimal_places,
            expiration=expiration,
        )
        logger.debug(
            "Loaded contract specs",
            market=self.address,
            price_floor=price_floor,
            price_cap=price_cap,
            qty_multiplier=qty_multiplier,
        )
        return self._specs

    async def send_trade_order(
        self, signed_order: SignedOrder, fill_qty: int, tx_params: dict[str, Any]
    ) -> str:
        """Broadcast ``tradeOrder`` for ``fill_qty`` of ``signed_order``.

        Returns:
            str: Transaction hash
        """
        signature = signed_order.ec_signature
        return await self.client.send_contract_transaction(
            contract_address=self.address,
            function_name="tradeOrder",
            abi=self.abi,
            args=[
                *_order_args(signed_order),
                fill_qty,
                signature.v,
                signature.r_bytes,
                signature.s_bytes,
            ],
            tx_params=tx_params,
        )

    async def send_cancel_order(
        self, order: Order, cancel_qty: int, tx_params: dict[str, Any]
    ) -> str:
        """Broadcast ``cancelOrder`` for ``cancel_qty`` of ``order``.

        Returns:
            str: Transaction hash
        """
        return await self.client.send_contract_transaction(
            contract_address=self.address,
            function_name="cancelOrder",
            abi=self.abi,
            args=[*_order_args(order), cancel_qty],
            tx_params=tx_params,
        )

    def topics_for(self, event_names: list[str]) -> list[Any]:
        """eth_subscribe topic filter matching any of ``event_names``.

        Raises:
            ValueError: If an event name is unknown
        """
        unknown = [name for name in event_names if name not in self.event_topics]
        if unknown:
            raise ValueError(f"Unknown market events: {unknown}")
        return [[self.event_topics[name] for name in event_names]]

    def decode_log(self, log_entry: dict[str, Any]) -> MarketEvent | None:
        """Decode a raw log into a market event model.

        Returns:
            MarketEvent | None: Decoded event, or None for logs of other events
        """
        topics = log_entry.get("topics") or []
        if not topics:
            return None

        event_name = self._events_by_topic.get(_hex(topics[0]))
        if event_name is None:
            logger.debug("Unknown event signature", market=self.address, topic=_hex(topics[0]))
            return None

        normalized = dict(log_entry)
        normalized["topics"] = [
            Web3.to_bytes(hexstr=t) if isinstance(t, str) else t for t in topics
        ]
        if isinstance(normalized.get("data"), str):
            normalized["data"] = Web3.to_bytes(hexstr=normalized["data"])

        event = getattr(self.contract.events, event_name)().process_log(normalized)
        args = event["args"]
        common = {
            "transaction_hash": _hex(log_entry["transactionHash"]),
            "block_number": _to_block_number(log_entry.get("blockNumber")),
            "order_hash": Web3.to_hex(args["orderHash"]),
        }

        if event_name == ORDER_FILLED_EVENT:
            return OrderFilledEvent(
                **common,
                maker=args["maker"],
                taker=args["taker"],
                fee_recipient=args["feeRecipient"],
                filled_qty=args["filledQty"],
                paid_maker_fee=args["paidMakerFee"],
                paid_taker_fee=args["paidTakerFee"],
                price=args["price"],
            )
        if event_name == ORDER_CANCELLED_EVENT:
            return OrderCancelledEvent(
                **common,
                maker=args["maker"],
                fee_recipient=args["feeRecipient"],
                cancelled_qty=args["cancelledQty"],
            )
        return OrderErrorEvent(**common, error_code=SettlementErrorCode(args["errorCode"]))


def _to_block_number(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16)
    return int(value)
