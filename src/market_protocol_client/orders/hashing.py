"""Order hashing and signature verification.

The hash layout mirrors the OrderLib contract:

    keccak256(abi.encodePacked(contractAddress, maker, taker, feeRecipient,
                               makerFee, takerFee, price, expirationTimestamp, salt, orderQty))

and signatures are EIP-191 ``personal_sign`` signatures over that 32-byte hash.
"""

from typing import TYPE_CHECKING

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from ..config.constants import ORDER_LIB_ABI_NAME, load_abi
from ..core.interfaces import OrderHashService
from ..models.order import ECSignature, Order, SignedOrder
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..connectors.blockchain.client import ChainClient

logger = get_logger(__name__)

_ORDER_HASH_TYPES = [
    "address",
    "address",
    "address",
    "address",
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "int256",
]


def compute_order_hash(order: Order) -> str:
    """Compute the order hash locally.

    Returns:
        str: 0x-prefixed 32-byte hex hash
    """
    values = [
        Web3.to_checksum_address(order.contract_address),
        Web3.to_checksum_address(order.maker),
        Web3.to_checksum_address(order.taker),
        Web3.to_checksum_address(order.fee_recipient),
        *order.unsigned_order_values,
        order.order_qty,
    ]
    return Web3.to_hex(Web3.solidity_keccak(_ORDER_HASH_TYPES, values))


def sign_order_hash(order_hash: str, private_key: str) -> ECSignature:
    """Sign an order hash with the maker's key."""
    signed = Account.sign_message(encode_defunct(hexstr=order_hash), private_key=private_key)
    return ECSignature(v=signed.v, r=signed.r, s=signed.s)


def recover_signer(order_hash: str, signature: ECSignature) -> str:
    """Recover the address that produced ``signature`` over ``order_hash``."""
    return Account.recover_message(
        encode_defunct(hexstr=order_hash),
        vrs=(signature.v, int(signature.r, 16), int(signature.s, 16)),
    )


class LocalOrderHasher(OrderHashService):
    """Hashes and verifies orders without a round trip to the chain."""

    async def create_order_hash(self, order: Order) -> str:
        return compute_order_hash(order)

    async def is_valid_signature(self, signed_order: SignedOrder, order_hash: str) -> bool:
        try:
            signer = recover_signer(order_hash, signed_order.ec_signature)
        except Exception as e:
            # Malformed signatures cannot verify against anyone
            logger.debug("Signature recovery failed", order_hash=order_hash, error=str(e))
            return False
        return signer.lower() == signed_order.maker.lower()


class OrderLibHasher(OrderHashService):
    """Hashes and verifies orders by calling the deployed OrderLib contract."""

    def __init__(self, client: "ChainClient", order_lib_address: str):
        """Initialize OrderLib hasher.

        Args:
            client: Chain client used for contract calls
            order_lib_address: Address of the deployed OrderLib
        """
        self.client = client
        self.order_lib_address = order_lib_address
        self.abi = load_abi(ORDER_LIB_ABI_NAME)

    async def create_order_hash(self, order: Order) -> str:
        digest = await self.client.call_contract_function(
            contract_address=self.order_lib_address,
            function_name="createOrderHash",
            abi=self.abi,
            args=[
                Web3.to_checksum_address(order.contract_address),
                [Web3.to_checksum_address(a) for a in order.order_addresses],
                list(order.unsigned_order_values),
                order.order_qty,
            ],
        )
        return Web3.to_hex(digest)

    async def is_valid_signature(self, signed_order: SignedOrder, order_hash: str) -> bool:
        signature = signed_order.ec_signature
        return bool(
            await self.client.call_contract_function(
                contract_address=self.order_lib_address,
                function_name="isValidSignature",
                abi=self.abi,
                args=[
                    Web3.to_checksum_address(signed_order.maker),
                    Web3.to_bytes(hexstr=order_hash),
                    signature.v,
                    signature.r_bytes,
                    signature.s_bytes,
                ],
            )
        )
