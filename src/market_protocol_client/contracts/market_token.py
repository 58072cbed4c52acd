"""MKT fee token access: balances, allowances and per-market trading capability."""

from typing import Any

from web3 import Web3

from ..config.constants import MARKET_TOKEN_ABI_NAME, load_abi
from ..connectors.blockchain.client import ChainClient
from ..utils.logger import get_logger

logger = get_logger(__name__)


class MarketToken:
    """Handle to the MARKET fee token."""

    def __init__(self, client: ChainClient, address: str):
        self.client = client
        self.address = Web3.to_checksum_address(address)
        self.abi = load_abi(MARKET_TOKEN_ABI_NAME)

    async def _call(self, function_name: str, *args: Any) -> Any:
        return await self.client.call_contract_function(
            contract_address=self.address,
            function_name=function_name,
            abi=self.abi,
            args=list(args),
        )

    async def get_balance(self, user: str) -> int:
        return int(await self._call("balanceOf", Web3.to_checksum_address(user)))

    async def get_allowance(self, owner: str, spender: str) -> int:
        return int(
            await self._call(
                "allowance",
                Web3.to_checksum_address(owner),
                Web3.to_checksum_address(spender),
            )
        )

    async def is_user_enabled_for_contract(self, market_address: str, user: str) -> bool:
        """Check whether ``user`` locked enough MKT to trade ``market_address``."""
        return bool(
            await self._call(
                "isUserEnabledForContract",
                Web3.to_checksum_address(market_address),
                Web3.to_checksum_address(user),
            )
        )

    async def approve(
        self, spender: str, amount: int, tx_params: dict[str, Any] | None = None
    ) -> str:
        """Approve ``spender`` to transfer ``amount`` fee tokens and wait for the receipt.

        Returns:
            str: Transaction hash

        Raises:
            ValueError: If amount is negative
            TransactionFailedError: If the approval reverts
            ProviderError: If the transaction cannot be sent or confirmed
        """
        if amount < 0:
            raise ValueError(f"Amount must be non-negative, got {amount}")

        tx_hash = await self.client.send_contract_transaction(
            contract_address=self.address,
            function_name="approve",
            abi=self.abi,
            args=[Web3.to_checksum_address(spender), amount],
            tx_params=tx_params,
        )
        await self.client.wait_for_transaction_receipt(tx_hash)

        logger.info("Fee token approval confirmed", spender=spender, amount=amount, tx_hash=tx_hash)
        return tx_hash
