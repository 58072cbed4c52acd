"""Market contract parameters."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContractSpecs(BaseModel):
    """Immutable parameters of a deployed market contract.

    Prices are integers in the contract's price units; ``qty_multiplier`` converts one unit of
    price movement on one contract into collateral token base units.
    """

    model_config = ConfigDict(frozen=True)

    market_address: str = Field(..., description="Market contract address")
    collateral_pool_address: str = Field(..., description="MarketCollateralPool address")
    collateral_token_address: str = Field(..., description="Collateral ERC20 address")
    price_floor: int = Field(..., description="Lower price bound", ge=0)
    price_cap: int = Field(..., description="Upper price bound", ge=0)
    qty_multiplier: int = Field(..., description="Collateral units per price unit", ge=0)
    price_decimal_places: int = Field(default=0, ge=0)
    expiration: int = Field(default=0, description="Contract expiration (unix seconds)", ge=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "ContractSpecs":
        """Price cap must be above the floor."""
        if self.price_cap <= self.price_floor:
            raise ValueError(
                f"price_cap ({self.price_cap}) must exceed price_floor ({self.price_floor})"
            )
        return self
