"""Pricing, cart and checkout services."""

from freshdeal.services.cart import Cart
from freshdeal.services.cart_aggregator import CartTotals, ShopGroup
from freshdeal.services.order_reconciliation import ReconciliationSummary, reconcile, summarize
from freshdeal.services.pricing_engine import (
    PriceQuote,
    price_offers,
    resolve_current_price,
    resolve_discount_percent,
)

__all__ = [
    "Cart",
    "CartTotals",
    "PriceQuote",
    "ReconciliationSummary",
    "ShopGroup",
    "price_offers",
    "reconcile",
    "resolve_current_price",
    "resolve_discount_percent",
    "summarize",
]
