"""Offer and pricing strategy records."""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from freshdeal.config import get_settings

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def as_aware(value: datetime) -> datetime:
    """Attach the configured timezone to a naive datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=get_settings().zone)
    return value


def _end_of_day(day: date) -> datetime:
    settings = get_settings()
    return datetime.combine(day, settings.date_only_expiry_time, tzinfo=settings.zone)


class PricingStep(BaseModel):
    """Once no more than ``time_remaining_seconds`` of life is left,
    the discount becomes ``discount_percent``."""

    time_remaining_seconds: int = Field(ge=0)
    discount_percent: Decimal = Field(ge=0, le=100)


class PricingStrategy(BaseModel):
    id: int
    name: str = ""
    # Storage order is not meaningful; the engine sorts.
    steps: list[PricingStep] = Field(default_factory=list)


class Offer(BaseModel):
    id: int
    base_cost: str | None = Field(
        default=None, validation_alias=AliasChoices("base_cost", "original_cost")
    )
    fixed_discounted_cost: str | None = Field(
        default=None,
        validation_alias=AliasChoices("fixed_discounted_cost", "current_cost"),
    )
    pricing_strategy_id: int | None = None
    expires_at: datetime = Field(
        validation_alias=AliasChoices("expires_at", "expires_date")
    )
    available_quantity: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("available_quantity", "count")
    )
    shop_id: int | None = None
    shop_name: str | None = None
    product_name: str | None = None

    @field_validator("base_cost", "fixed_discounted_cost", mode="before")
    @classmethod
    def _money_as_text(cls, value: Any) -> Any:
        # Money is parsed later by the engine; keep whatever the source sent.
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("expires_at", mode="before")
    @classmethod
    def _date_only_expiry(cls, value: Any) -> Any:
        if isinstance(value, str) and _DATE_ONLY_RE.match(value.strip()):
            return _end_of_day(date.fromisoformat(value.strip()))
        if isinstance(value, date) and not isinstance(value, datetime):
            return _end_of_day(value)
        return value

    @field_validator("expires_at")
    @classmethod
    def _aware_expiry(cls, value: datetime) -> datetime:
        return as_aware(value)

    @property
    def is_dynamic(self) -> bool:
        return self.pricing_strategy_id is not None

    def is_expired(self, now: datetime) -> bool:
        return as_aware(now) >= self.expires_at

    def is_sellable(self, now: datetime) -> bool:
        return not self.is_expired(now) and self.available_quantity > 0
