"""High-level entry point wiring chain access, contracts and order flows together."""

from typing import Any

from .config.settings import Settings
from .connectors.blockchain.client import ChainClient
from .connectors.blockchain.log_subscriber import LogSubscriber
from .contracts.adapters import Web3MarketEventSource, Web3MarketState, Web3MarketTransactor
from .contracts.market_token import MarketToken
from .contracts.registry import MarketContractRegistry
from .core.exceptions import ConfigurationError
from .core.interfaces import OrderHashService
from .models.market import ContractSpecs
from .models.order import Order, SignedOrder
from .orders.factory import create_signed_order
from .orders.hashing import LocalOrderHasher, OrderLibHasher
from .risk.calculator import RemainingFillableCalculator
from .risk.collateral import calculate_needed_collateral
from .risk.validator import OrderValidator, ValidationResult
from .trading.order_service import OrderService
from .trading.order_watcher import OrderWatcher
from .utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


class Market:
    """Client for the MARKET Protocol contracts.

    Example:
        async with Market(Settings()) as market:
            order = await market.create_signed_order(...)
            filled = await market.trade_order(order, 1, {"from": taker})
    """

    def __init__(
        self,
        settings: Settings,
        client: ChainClient | None = None,
        subscriber: LogSubscriber | None = None,
    ):
        """Initialize market client.

        Args:
            settings: Client settings
            client: Chain client (built from settings if omitted)
            subscriber: Websocket log subscriber (built from settings if omitted)
        """
        self.settings = settings
        self.client = client or ChainClient(
            rpc_url=settings.rpc_url,
            private_key=settings.private_key,
            default_account=settings.default_account,
        )
        self.subscriber = subscriber or LogSubscriber(
            settings.ws_url,
            connect_attempts=settings.ws_connect_attempts,
        )

        self.registry = MarketContractRegistry(self.client, settings.registry_address)
        self.market_token = MarketToken(self.client, settings.market_token_address)

        self.hasher: OrderHashService
        if settings.order_lib_address:
            self.hasher = OrderLibHasher(self.client, settings.order_lib_address)
        else:
            self.hasher = LocalOrderHasher()

        self.state = Web3MarketState(self.registry, self.market_token)
        self.transactor = Web3MarketTransactor(self.registry, self.client)
        self.events = Web3MarketEventSource(self.registry, self.subscriber)
        self.validator = OrderValidator(self.state, self.hasher)
        self.orders = OrderService(
            self.state,
            self.hasher,
            self.transactor,
            self.events,
            validator=self.validator,
            event_timeout=settings.event_timeout_seconds,
        )

    @classmethod
    def from_env(cls) -> "Market":
        """Build a client from MARKET_ environment variables and configure logging."""
        settings = Settings()
        configure_logging(settings.log_level, settings.json_logs)
        return cls(settings)

    async def __aenter__(self) -> "Market":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Check the node is reachable and on the expected network.

        Raises:
            ProviderError: If the node cannot be reached
            ConfigurationError: If the node reports another network
        """
        chain_id = await self.client.get_chain_id()
        if self.settings.network_id is not None and chain_id != self.settings.network_id:
            raise ConfigurationError(
                f"Node is on network {chain_id}, expected {self.settings.network_id}"
            )
        logger.info("Connected to chain", chain_id=chain_id, rpc_url=self.settings.rpc_url)

    async def close(self) -> None:
        await self.subscriber.close()

    # Registry

    async def get_address_white_list(self) -> list[str]:
        return await self.registry.get_address_white_list()

    async def is_address_white_listed(self, market_address: str) -> bool:
        return await self.registry.is_address_white_listed(market_address)

    async def get_contract_specs(self, market_address: str) -> ContractSpecs:
        return await self.state.get_contract_specs(market_address)

    # Orders

    async def create_order_hash(self, order: Order) -> str:
        return await self.hasher.create_order_hash(order.terms())

    async def is_valid_signature(self, signed_order: SignedOrder, order_hash: str) -> bool:
        return await self.hasher.is_valid_signature(signed_order, order_hash)

    async def create_signed_order(
        self,
        contract_address: str,
        expiration_timestamp: int,
        fee_recipient: str,
        maker: str,
        maker_fee: int,
        taker: str,
        taker_fee: int,
        order_qty: int,
        price: int,
        salt: int | None = None,
        private_key: str | None = None,
    ) -> SignedOrder:
        """Build and sign an order with ``private_key`` (the configured key by default).

        Raises:
            ConfigurationError: If no signing key is available
            InvalidOrderError: If the terms are invalid or the key does not belong to the maker
        """
        private_key = private_key or self.settings.private_key
        if private_key is None:
            raise ConfigurationError("Signing an order requires a private key")

        return await create_signed_order(
            self.hasher,
            private_key,
            contract_address=contract_address,
            expiration_timestamp=expiration_timestamp,
            fee_recipient=fee_recipient,
            maker=maker,
            maker_fee=maker_fee,
            taker=taker,
            taker_fee=taker_fee,
            order_qty=order_qty,
            price=price,
            salt=salt,
        )

    async def validate_fill(
        self, signed_order: SignedOrder, fill_qty: int, sender: str | None = None
    ) -> ValidationResult:
        """Run the pre-trade checks without submitting anything."""
        return await self.validator.validate(
            signed_order, fill_qty, sender or self.transactor.default_sender
        )

    async def trade_order(
        self,
        signed_order: SignedOrder,
        fill_qty: int,
        tx_params: dict[str, Any] | None = None,
    ) -> int:
        return await self.orders.trade_order(signed_order, fill_qty, tx_params)

    async def cancel_order(
        self,
        order: Order,
        cancel_qty: int,
        tx_params: dict[str, Any] | None = None,
    ) -> int:
        return await self.orders.cancel_order(order, cancel_qty, tx_params)

    async def get_qty_filled_or_cancelled(self, market_address: str, order_hash: str) -> int:
        return await self.orders.get_qty_filled_or_cancelled(market_address, order_hash)

    def remaining_fillable_calculator(
        self,
        signed_order: SignedOrder,
        order_hash: str,
        collateral_pool_address: str | None = None,
    ) -> RemainingFillableCalculator:
        return RemainingFillableCalculator(
            self.state, signed_order, order_hash, collateral_pool_address
        )

    def order_watcher(self) -> OrderWatcher:
        return OrderWatcher(self.state, self.hasher)

    # Collateral

    async def calculate_needed_collateral(self, market_address: str, qty: int, price: int) -> int:
        """Collateral (base units) needed to open ``qty`` at ``price`` in a market."""
        specs = await self.state.get_contract_specs(market_address)
        return calculate_needed_collateral(specs, qty, price)

    async def get_user_account_balance(self, market_address: str, user: str) -> int:
        pool = await self.registry.collateral_pool_for_market(market_address)
        return await pool.get_user_account_balance(user)

    async def deposit_collateral(
        self, market_address: str, amount: int, tx_params: dict[str, Any] | None = None
    ) -> str:
        pool = await self.registry.collateral_pool_for_market(market_address)
        return await pool.deposit(amount, tx_params)

    async def withdraw_collateral(
        self, market_address: str, amount: int, tx_params: dict[str, Any] | None = None
    ) -> str:
        pool = await self.registry.collateral_pool_for_market(market_address)
        return await pool.withdraw(amount, tx_params)

    # Fee token

    async def get_fee_token_balance(self, user: str) -> int:
        return await self.market_token.get_balance(user)

    async def get_fee_token_allowance(self, owner: str, spender: str) -> int:
        return await self.market_token.get_allowance(owner, spender)

    async def approve_fee_token(
        self, spender: str, amount: int, tx_params: dict[str, Any] | None = None
    ) -> str:
        return await self.market_token.approve(spender, amount, tx_params)

    async def is_user_enabled_for_contract(self, market_address: str, user: str) -> bool:
        return await self.market_token.is_user_enabled_for_contract(market_address, user)
