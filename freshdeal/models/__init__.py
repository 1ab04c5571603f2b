"""Pydantic records exchanged with the REST backend and local storage."""

from freshdeal.models.cart import CartLineItem
from freshdeal.models.offer import Offer, PricingStep, PricingStrategy, as_aware
from freshdeal.models.order import (
    FulfillmentOutcome,
    LineStatus,
    OrderLineResult,
    RequestedLine,
)

__all__ = [
    "CartLineItem",
    "FulfillmentOutcome",
    "LineStatus",
    "Offer",
    "OrderLineResult",
    "PricingStep",
    "PricingStrategy",
    "RequestedLine",
    "as_aware",
]
