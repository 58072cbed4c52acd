"""Order models."""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config.constants import NULL_ADDRESS
from ..core.enums import OrderSide
from ..utils.numeric import to_int

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_BYTES32_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

ORDER_FIELDS = frozenset(
    {
        "contract_address",
        "expiration_timestamp",
        "fee_recipient",
        "maker",
        "maker_fee",
        "taker",
        "taker_fee",
        "order_qty",
        "price",
        "salt",
    }
)


def _validate_address(value: str) -> str:
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise ValueError(f"Invalid Ethereum address: {value!r}")
    return value


class Order(BaseModel):
    """Economic terms of an order. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    contract_address: str = Field(..., description="Market contract address")
    expiration_timestamp: int = Field(..., description="Unix timestamp (seconds)", ge=0)
    fee_recipient: str = Field(..., description="Fee recipient (null address = no fees charged)")
    maker: str = Field(..., description="Maker address")
    maker_fee: int = Field(..., description="Maker fee for the full order quantity", ge=0)
    taker: str = Field(..., description="Taker address (null address = any taker)")
    taker_fee: int = Field(..., description="Taker fee for the full order quantity", ge=0)
    order_qty: int = Field(..., description="Signed quantity: positive buys, negative sells")
    price: int = Field(..., description="Price in contract price units", ge=0)
    salt: int = Field(..., description="Random salt", ge=0)

    @field_validator("contract_address", "fee_recipient", "maker", "taker")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate address format."""
        return _validate_address(v)

    @field_validator(
        "expiration_timestamp",
        "maker_fee",
        "taker_fee",
        "order_qty",
        "price",
        "salt",
        mode="before",
    )
    @classmethod
    def parse_integer(cls, v: Any) -> int:
        """Accept ints, integral Decimals and numeric strings; reject fractions and floats."""
        return to_int(v)

    @field_validator("order_qty")
    @classmethod
    def validate_order_qty(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Order quantity must be non-zero")
        return v

    @property
    def side(self) -> OrderSide:
        return OrderSide.BUY if self.order_qty > 0 else OrderSide.SELL

    @property
    def is_buy(self) -> bool:
        return self.order_qty > 0

    @property
    def abs_qty(self) -> int:
        return abs(self.order_qty)

    @property
    def has_wildcard_taker(self) -> bool:
        """True when any counterparty may fill this order."""
        return self.taker.lower() == NULL_ADDRESS

    @property
    def order_addresses(self) -> tuple[str, str, str]:
        """Address triple in contract argument order."""
        return (self.maker, self.taker, self.fee_recipient)

    @property
    def unsigned_order_values(self) -> tuple[int, int, int, int, int]:
        """Unsigned values in contract argument order."""
        return (self.maker_fee, self.taker_fee, self.price, self.expiration_timestamp, self.salt)

    def terms(self) -> "Order":
        """Return the bare order terms (drops signature data from subclasses)."""
        return Order(**self.model_dump(include=ORDER_FIELDS))


class ECSignature(BaseModel):
    """ECDSA signature (v, r, s) over an order hash."""

    model_config = ConfigDict(frozen=True)

    v: int = Field(..., description="Recovery id (27 or 28)")
    r: str = Field(..., description="r as 0x-prefixed 32-byte hex")
    s: str = Field(..., description="s as 0x-prefixed 32-byte hex")

    @field_validator("r", "s", mode="before")
    @classmethod
    def parse_bytes32(cls, v: Any) -> str:
        """Normalize ints and bytes to 0x-prefixed 32-byte hex."""
        if isinstance(v, int):
            return "0x" + v.to_bytes(32, "big").hex()
        if isinstance(v, bytes | bytearray):
            if len(v) != 32:
                raise ValueError("Signature component must be 32 bytes")
            return "0x" + bytes(v).hex()
        if isinstance(v, str) and not v.startswith("0x"):
            v = "0x" + v
        if not isinstance(v, str) or not _BYTES32_RE.match(v):
            raise ValueError(f"Invalid signature component: {v!r}")
        return v.lower()

    @field_validator("v")
    @classmethod
    def validate_v(cls, v: int) -> int:
        if v in (0, 1):
            return v + 27
        if v not in (27, 28):
            raise ValueError(f"Invalid signature recovery id: {v}")
        return v

    @property
    def r_bytes(self) -> bytes:
        return bytes.fromhex(self.r[2:])

    @property
    def s_bytes(self) -> bytes:
        return bytes.fromhex(self.s[2:])


class SignedOrder(Order):
    """An order plus the maker's signature and a remaining-quantity snapshot.

    ``remaining_qty`` is informational: it was read from the chain when the object was built.
    Admissibility checks always re-read the filled/cancelled counter.
    """

    ec_signature: ECSignature = Field(..., description="Maker signature over the order hash")
    remaining_qty: int = Field(..., description="Remaining quantity snapshot", ge=0)

    @field_validator("remaining_qty", mode="before")
    @classmethod
    def parse_remaining(cls, v: Any) -> int:
        return to_int(v)

    @model_validator(mode="after")
    def validate_remaining(self) -> "SignedOrder":
        """Remaining quantity cannot exceed the order quantity."""
        if self.remaining_qty > self.abs_qty:
            raise ValueError(
                f"remaining_qty ({self.remaining_qty}) exceeds |order_qty| ({self.abs_qty})"
            )
        return self

    def with_remaining_qty(self, remaining_qty: int) -> "SignedOrder":
        """Return a copy carrying a fresh remaining-quantity snapshot."""
        return SignedOrder(**{**self.model_dump(), "remaining_qty": remaining_qty})
