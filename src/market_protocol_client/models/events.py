"""Decoded market contract events."""

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import SettlementErrorCode


class MarketEvent(BaseModel):
    """Fields shared by all market contract events."""

    model_config = ConfigDict(frozen=True)

    transaction_hash: str = Field(..., description="Hash of the emitting transaction")
    block_number: int | None = Field(None, description="Block the log was mined in")
    order_hash: str = Field(..., description="Hash of the affected order")


class OrderFilledEvent(MarketEvent):
    """OrderFilled: quantity actually settled by a trade transaction."""

    maker: str
    taker: str
    fee_recipient: str
    filled_qty: int = Field(..., description="Signed quantity filled")
    paid_maker_fee: int = 0
    paid_taker_fee: int = 0
    price: int = 0


class OrderCancelledEvent(MarketEvent):
    """OrderCancelled: quantity actually cancelled."""

    maker: str
    fee_recipient: str
    cancelled_qty: int = Field(..., description="Signed quantity cancelled")


class OrderErrorEvent(MarketEvent):
    """Error: the contract declined the instruction without reverting."""

    error_code: SettlementErrorCode
