"""Cost-basis and position models.

``LotConfig`` is the raw configuration entry and is deliberately lenient:
any of its fields may be missing or invalid, and normalization decides what
survives. ``CostBasisLot`` and ``Position`` are the validated, derived forms.
"""

import math

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class LotConfig(BaseModel):
    """One acquisition as written in the settings file.

    Either ``qty`` or ``usd`` describes the size; ``qty`` wins when both are set.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    price: float | None = None
    qty: float | None = None
    usd: float | None = None
    date: str | None = Field(default=None, validation_alias=AliasChoices("date", "ts"))

    @field_validator("price", "qty", "usd", mode="before")
    @classmethod
    def _lenient_number(cls, value: object) -> float | None:
        """Map unparseable numbers to None so normalization can drop the lot."""
        if value is None or isinstance(value, bool):
            return None
        try:
            number = float(str(value))
        except (TypeError, ValueError):
            return None
        return None if math.isnan(number) else number


class CostBasisLot(BaseModel):
    """A normalized acquisition lot with quantity and USD cost both resolved."""

    model_config = ConfigDict(frozen=True)

    quantity: float = Field(gt=0)
    cost_usd: float = Field(gt=0)
    price: float = Field(gt=0)
    date: str | None = None


class Position(BaseModel):
    """Aggregate holding recomputed every tick.

    ``total_quantity`` comes from the live on-chain balance when one is
    available, otherwise from the sum of lot quantities.
    """

    model_config = ConfigDict(frozen=True)

    lot_count: int
    total_quantity: float
    total_invested_usd: float
    average_cost: float | None = None
    uses_live_quantity: bool = False
