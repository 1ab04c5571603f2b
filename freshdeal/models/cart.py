"""Cart line item record."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from freshdeal.models.offer import as_aware
from freshdeal.money import quantize_money


class CartLineItem(BaseModel):
    """A buyer's selection of one offer.

    ``resolved_*_cost`` are snapshots of the pricing engine output taken
    when the line was added or last refreshed.
    """

    id: int
    offer_id: int
    shop_id: int | None = None
    shop_name: str | None = None
    product_name: str | None = None
    quantity: int = Field(ge=1)
    resolved_original_cost: Decimal | None = None
    resolved_current_cost: Decimal | None = None
    expires_at: datetime

    @field_validator("resolved_original_cost", "resolved_current_cost")
    @classmethod
    def _whole_cents(cls, value: Decimal | None) -> Decimal | None:
        if value is None:
            return None
        return quantize_money(value)

    @field_validator("expires_at")
    @classmethod
    def _aware_expiry(cls, value: datetime) -> datetime:
        return as_aware(value)

    @model_validator(mode="after")
    def _current_not_above_original(self) -> "CartLineItem":
        if (
            self.resolved_current_cost is not None
            and self.resolved_original_cost is not None
            and self.resolved_current_cost > self.resolved_original_cost
        ):
            raise ValueError(
                f"current cost {self.resolved_current_cost} exceeds "
                f"original cost {self.resolved_original_cost}"
            )
        return self
