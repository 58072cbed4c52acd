"""Order construction helpers."""

import secrets
from typing import Any

from eth_account import Account

from ..core.exceptions import InvalidOrderError
from ..core.interfaces import OrderHashService
from ..models.order import Order, SignedOrder
from .hashing import sign_order_hash


def generate_pseudo_random_salt() -> int:
    """Return a random 256-bit salt."""
    return secrets.randbits(256)


async def create_signed_order(
    hasher: OrderHashService,
    private_key: str,
    contract_address: str,
    expiration_timestamp: Any,
    fee_recipient: str,
    maker: str,
    maker_fee: Any,
    taker: str,
    taker_fee: Any,
    order_qty: Any,
    price: Any,
    salt: Any | None = None,
    remaining_qty: Any | None = None,
) -> SignedOrder:
    """Build, hash and sign an order.

    Args:
        hasher: Order hash service
        private_key: Maker's private key
        contract_address: Market contract the order trades
        expiration_timestamp: Unix timestamp after which the order cannot be filled
        fee_recipient: Fee recipient (null address for no fees)
        maker: Maker address; must match ``private_key``
        maker_fee: Maker fee for the whole order
        taker: Taker address (null address for any taker)
        taker_fee: Taker fee for the whole order
        order_qty: Signed quantity (positive = buy, negative = sell)
        price: Limit price
        salt: Salt (random if omitted)
        remaining_qty: Remaining quantity snapshot (defaults to the full quantity)

    Returns:
        SignedOrder: The signed order

    Raises:
        InvalidOrderError: If the terms are invalid or the key does not belong to the maker
    """
    try:
        order = Order(
            contract_address=contract_address,
            expiration_timestamp=expiration_timestamp,
            fee_recipient=fee_recipient,
            maker=maker,
            maker_fee=maker_fee,
            taker=taker,
            taker_fee=taker_fee,
            order_qty=order_qty,
            price=price,
            salt=generate_pseudo_random_salt() if salt is None else salt,
        )
    except ValueError as e:
        raise InvalidOrderError(f"Invalid order terms: {e}") from e

    signer = Account.from_key(private_key).address
    if signer.lower() != order.maker.lower():
        raise InvalidOrderError(f"Private key belongs to {signer}, not maker {order.maker}")

    order_hash = await hasher.create_order_hash(order)
    signature = sign_order_hash(order_hash, private_key)

    try:
        return SignedOrder(
            **order.model_dump(),
            ec_signature=signature,
            remaining_qty=order.abs_qty if remaining_qty is None else remaining_qty,
        )
    except ValueError as e:
        raise InvalidOrderError(f"Invalid signed order: {e}") from e
