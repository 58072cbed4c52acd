"""Async chain access using Web3.py."""

import asyncio
from typing import Any

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from ...config.constants import TRANSACTION_TIMEOUT_SECONDS
from ...core.exceptions import ConfigurationError, ProviderError, TransactionFailedError
from ...utils.logger import get_logger

logger = get_logger(__name__)


class ChainClient:
    """Thin async wrapper over Web3 for contract reads and transaction submission.

    Reads are never retried: a failed read surfaces as ``ProviderError`` and the caller
    decides whether to try again with fresh state.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str | None = None,
        default_account: str | None = None,
    ):
        """Initialize chain client.

        Args:
            rpc_url: HTTP(S) JSON-RPC endpoint
            private_key: Key for signing transactions locally (optional)
            default_account: Sender used when tx params carry no ``from``

        Raises:
            ProviderError: If the provider cannot be created
            ValueError: If the private key is invalid
        """
        self.rpc_url = rpc_url

        try:
            self.w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        except Exception as e:
            raise ProviderError(f"Failed to initialize Web3: {e}") from e

        self.account = None
        if private_key is not None:
            try:
                self.account = Account.from_key(private_key)
            except Exception as e:
                raise ValueError(f"Invalid private key: {e}") from e

        self.default_account = self.account.address if self.account else default_account

        # Serializes nonce allocation for locally signed transactions
        self._nonce_lock = asyncio.Lock()
        # Contract objects by lower-cased address, with the ABI list they were built from
        self._contracts: dict[str, tuple[list[dict[str, Any]], Any]] = {}

    async def is_connected(self) -> bool:
        """Check if the provider answers."""
        try:
            return await self.w3.is_connected()
        except Exception:
            return False

    async def get_chain_id(self) -> int:
        try:
            return await self.w3.eth.chain_id
        except Exception as e:
            raise ProviderError(f"Failed to get chain id: {e}") from e

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Any:
        """Return a contract object bound to this client's provider.

        Objects are reused for repeated calls with the same address and ABI list.

        Raises:
            ValueError: If the address is invalid
        """
        if not self._is_valid_address(address):
            raise ValueError(f"Invalid contract address: {address}")

        key = address.lower()
        cached = self._contracts.get(key)
        if cached is not None and cached[0] is abi:
            return cached[1]

        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        self._contracts[key] = (abi, contract)
        return contract

    async def call_contract_function(
        self,
        contract_address: str,
        function_name: str,
        abi: list[dict[str, Any]],
        args: list[Any] | None = None,
    ) -> Any:
        """Call a contract view or pure function.

        Args:
            contract_address: Contract address to call
            function_name: Name of the function to call
            abi: Contract ABI definition
            args: Function arguments (optional)

        Returns:
            Any: Function return value (single value or tuple)

        Raises:
            ProviderError: If the call fails
            ValueError: If function not found in ABI or invalid address
        """
        if args is None:
            args = []

        if not any(
            item.get("type") == "function" and item.get("name") == function_name for item in abi
        ):
            raise ValueError(f"Function {function_name} not found in ABI")

        contract = self.contract(contract_address, abi)
        try:
            function = getattr(contract.functions, function_name)
            return await function(*args).call()
        except Exception as e:
            logger.warning(
                "Contract call failed",
                contract=contract_address,
                function=function_name,
                error=str(e),
            )
            raise ProviderError(f"Failed to call {function_name} on {contract_address}: {e}") from e

    async def send_contract_transaction(
        self,
        contract_address: str,
        function_name: str,
        abi: list[dict[str, Any]],
        args: list[Any],
        tx_params: dict[str, Any] | None = None,
    ) -> str:
        """Build, sign (or delegate to the node) and broadcast a contract transaction.

        Args:
            contract_address: Contract to call
            function_name: State-changing function name
            abi: Contract ABI definition
            args: Function arguments
            tx_params: Web3 transaction params (``from``, ``gas``, ...)

        Returns:
            str: Transaction hash (0x-prefixed)

        Raises:
            ConfigurationError: If no sender is known
            TransactionFailedError: If the node rejects the transaction as reverting
            ProviderError: If the transaction cannot be broadcast
        """
        params = dict(tx_params or {})
        sender = params.get("from") or self.default_account
        if sender is None:
            raise ConfigurationError("No sender: pass tx_params['from'] or configure an account")
        params["from"] = Web3.to_checksum_address(sender)

        contract = self.contract(contract_address, abi)
        function = getattr(contract.functions, function_name)(*args)

        try:
            if self.account is not None and sender.lower() == self.account.address.lower():
                async with self._nonce_lock:
                    if "nonce" not in params:
                        params["nonce"] = await self.w3.eth.get_transaction_count(
                            params["from"], "pending"
                        )
                    tx = await function.build_transaction(params)
                    signed_tx = self.account.sign_transaction(tx)
                    tx_hash = await self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            else:
                tx_hash = await function.transact(params)
        except ContractLogicError as e:
            raise TransactionFailedError(f"{function_name} would revert: {e}") from e
        except Exception as e:
            raise ProviderError(f"Failed to send {function_name} transaction: {e}") from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(
            "Transaction submitted",
            contract=contract_address,
            function=function_name,
            sender=params["from"],
            tx_hash=tx_hash_hex,
        )
        return tx_hash_hex

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: float = TRANSACTION_TIMEOUT_SECONDS,
    ) -> dict[str, Any]:
        """Wait for a transaction to be mined.

        Raises:
            TransactionFailedError: If the transaction reverted
            ProviderError: If the receipt cannot be fetched in time
        """
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise ProviderError(f"Transaction {tx_hash} not mined within {timeout}s") from e
        except Exception as e:
            raise ProviderError(f"Failed to get receipt for {tx_hash}: {e}") from e

        receipt = dict(receipt)
        if receipt.get("status") == 0:
            raise TransactionFailedError(f"Transaction {tx_hash} failed (status=0)")
        return receipt

    def _is_valid_address(self, address: str) -> bool:
        """Validate Ethereum address format."""
        if not isinstance(address, str):
            return False
        if not address.startswith("0x"):
            return False
        if len(address) != 42:
            return False
        try:
            int(address, 16)
            return True
        except ValueError:
            return False
