"""MarketContractRegistry access and the shared cache of contract handles."""

import threading

from web3 import Web3

from ..config.constants import MARKET_CONTRACT_REGISTRY_ABI_NAME, load_abi
from ..connectors.blockchain.client import ChainClient
from ..core.exceptions import ConfigurationError
from ..utils.logger import get_logger
from .collateral_pool import CollateralPool
from .market_contract import MarketContract

logger = get_logger(__name__)


class MarketContractRegistry:
    """Whitelist reads plus a lazily filled cache of market and pool handles.

    Handles are keyed by lower-cased address and created at most once per address, even
    when requested from several tasks or threads at the same time.
    """

    def __init__(self, client: ChainClient, address: str | None = None):
        """Initialize registry.

        Args:
            client: Chain client used by every handle
            address: Registry contract address (whitelist reads need it)
        """
        self.client = client
        self.address = Web3.to_checksum_address(address) if address else None
        self.abi = load_abi(MARKET_CONTRACT_REGISTRY_ABI_NAME)

        self._markets: dict[str, MarketContract] = {}
        self._pools: dict[str, CollateralPool] = {}
        self._lock = threading.Lock()

    def market(self, market_address: str) -> MarketContract:
        """Get (or create) the handle of a market contract."""
        key = market_address.lower()
        with self._lock:
            handle = self._markets.get(key)
            if handle is None:
                handle = MarketContract(self.client, market_address)
                self._markets[key] = handle
                logger.debug("Cached market contract handle", market=handle.address)
            return handle

    def collateral_pool(self, pool_address: str) -> CollateralPool:
        """Get (or create) the handle of a collateral pool."""
        key = pool_address.lower()
        with self._lock:
            handle = self._pools.get(key)
            if handle is None:
                handle = CollateralPool(self.client, pool_address)
                self._pools[key] = handle
            return handle

    async def collateral_pool_for_market(self, market_address: str) -> CollateralPool:
        """Resolve the collateral pool backing a market.

        Raises:
            ProviderError: If the market cannot be read
        """
        pool_address = await self.market(market_address).get_collateral_pool_address()
        return self.collateral_pool(pool_address)

    async def get_address_white_list(self) -> list[str]:
        """Addresses of all whitelisted (deployed) market contracts.

        Raises:
            ConfigurationError: If no registry address is configured
            ProviderError: If the call fails
        """
        addresses = await self.client.call_contract_function(
            contract_address=self._require_address(),
            function_name="getAddressWhiteList",
            abi=self.abi,
        )
        return [Web3.to_checksum_address(a) for a in addresses]

    async def is_address_white_listed(self, market_address: str) -> bool:
        return bool(
            await self.client.call_contract_function(
                contract_address=self._require_address(),
                function_name="isAddressWhiteListed",
                abi=self.abi,
                args=[Web3.to_checksum_address(market_address)],
            )
        )

    def _require_address(self) -> str:
        if self.address is None:
            raise ConfigurationError("No market contract registry address configured")
        return self.address
