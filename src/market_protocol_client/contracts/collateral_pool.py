"""MarketCollateralPool access: balances, deposits and withdrawals."""

from typing import Any

from web3 import Web3

from ..config.constants import MARKET_COLLATERAL_POOL_ABI_NAME, load_abi
from ..connectors.blockchain.client import ChainClient
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CollateralPool:
    """Handle to the collateral pool backing a market."""

    def __init__(self, client: ChainClient, address: str):
        self.client = client
        self.address = Web3.to_checksum_address(address)
        self.abi = load_abi(MARKET_COLLATERAL_POOL_ABI_NAME)

    async def get_user_account_balance(self, user: str) -> int:
        """Unallocated collateral of ``user``, in collateral token base units.

        Raises:
            ProviderError: If the call fails
        """
        balance = await self.client.call_contract_function(
            contract_address=self.address,
            function_name="getUserAccountBalance",
            abi=self.abi,
            args=[Web3.to_checksum_address(user)],
        )
        return int(balance)

    async def deposit(self, amount: int, tx_params: dict[str, Any] | None = None) -> str:
        """Deposit collateral tokens for trading and wait for the receipt.

        The collateral token must be approved for the pool beforehand.

        Args:
            amount: Amount in collateral token base units
            tx_params: Web3 transaction params

        Returns:
            str: Transaction hash

        Raises:
            ValueError: If amount is not positive
            TransactionFailedError: If the deposit reverts
            ProviderError: If the transaction cannot be sent or confirmed
        """
        return await self._send("depositTokensForTrading", amount, tx_params)

    async def withdraw(self, amount: int, tx_params: dict[str, Any] | None = None) -> str:
        """Withdraw unallocated collateral and wait for the receipt.

        Args:
            amount: Amount in collateral token base units
            tx_params: Web3 transaction params

        Returns:
            str: Transaction hash

        Raises:
            ValueError: If amount is not positive
            TransactionFailedError: If the withdrawal reverts
            ProviderError: If the transaction cannot be sent or confirmed
        """
        return await self._send("withdrawTokens", amount, tx_params)

    async def _send(
        self, function_name: str, amount: int, tx_params: dict[str, Any] | None
    ) -> str:
        if amount <= 0:
            raise ValueError(f"Amount must be positive, got {amount}")

        tx_hash = await self.client.send_contract_transaction(
            contract_address=self.address,
            function_name=function_name,
            abi=self.abi,
            args=[amount],
            tx_params=tx_params,
        )
        await self.client.wait_for_transaction_receipt(tx_hash)

        logger.info(
            "Collateral pool transaction confirmed",
            pool=self.address,
            function=function_name,
            amount=amount,
            tx_hash=tx_hash,
        )
        return tx_hash
