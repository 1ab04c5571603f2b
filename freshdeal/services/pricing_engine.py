"""Dynamic pricing engine.

Computes the current unit price and discount percentage of an offer at an
explicitly supplied instant.  An offer is either fixed-priced (optional
``fixed_discounted_cost``) or references a :class:`PricingStrategy`, a
schedule of discount steps keyed by time remaining until expiry.

Nothing here reads the wall clock; every call takes ``now``.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, Sequence

from freshdeal.exceptions import InvalidOfferData
from freshdeal.models import Offer, PricingStep, PricingStrategy, as_aware
from freshdeal.money import ZERO, format_money, parse_decimal, quantize_money

logger = logging.getLogger(__name__)

_HUNDRED = Decimal(100)

# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """Outcome of pricing one offer inside a batch."""

    offer_id: int
    base_cost: Optional[str]
    current_price: Optional[str]
    discount_percent: int
    is_dynamic: bool
    pending: bool = False
    error: Optional[str] = None

    @property
    def display_price(self) -> Optional[str]:
        """Price to show to a buyer.

        Falls back to the base cost while a strategy is still loading, and
        is ``None`` ("price unavailable") when the offer data is invalid.
        Never use this for charging.
        """
        if self.error is not None:
            return None
        if self.pending:
            return self.base_cost
        return self.current_price


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _base_cost(offer: Offer) -> Decimal:
    base = parse_decimal(offer.base_cost)
    if base is None:
        raise InvalidOfferData(
            f"base cost {offer.base_cost!r} is missing or not numeric",
            offer_id=offer.id,
            field="base_cost",
        )
    if base <= 0:
        raise InvalidOfferData(
            f"base cost {offer.base_cost!r} must be positive",
            offer_id=offer.id,
            field="base_cost",
        )
    return base


def _fixed_cost(offer: Offer, base: Decimal) -> Decimal:
    if offer.fixed_discounted_cost is None:
        return base
    fixed = parse_decimal(offer.fixed_discounted_cost)
    if fixed is None:
        logger.warning(
            "Offer %s: fixed discounted cost %r is not numeric, using base cost",
            offer.id,
            offer.fixed_discounted_cost,
        )
        return base
    if fixed < 0 or fixed > base:
        raise InvalidOfferData(
            f"discounted cost {offer.fixed_discounted_cost} outside [0, {offer.base_cost}]",
            offer_id=offer.id,
            field="fixed_discounted_cost",
        )
    return fixed


# ---------------------------------------------------------------------------
# Step selection
# ---------------------------------------------------------------------------


def time_remaining_seconds(expires_at: datetime, now: datetime) -> int:
    """Whole seconds left until *expires_at*, never negative."""
    delta = (as_aware(expires_at) - as_aware(now)).total_seconds()
    return max(0, math.floor(delta))


def select_step(steps: Sequence[PricingStep], time_remaining: int) -> Optional[PricingStep]:
    """Pick the strategy step in effect with *time_remaining* seconds left.

    A step applies once the remaining time is at or below its threshold, so
    the active step is the one with the smallest threshold that is still
    >= the remaining time.  Returns ``None`` while the schedule has not
    started.  At zero remaining time the step with the largest discount
    applies.  Equal thresholds resolve to the larger discount.
    """
    if not steps:
        return None

    if time_remaining <= 0:
        return max(steps, key=lambda s: s.discount_percent)

    ordered = sorted(
        steps, key=lambda s: (s.time_remaining_seconds, -s.discount_percent)
    )
    for step in ordered:
        if step.time_remaining_seconds >= time_remaining:
            return step
    return None


def apply_discount(base: Decimal, discount_percent: Decimal) -> Decimal:
    """``base * (1 - pct/100)`` rounded half-up to cents, floored at zero."""
    price = quantize_money(base * (1 - Decimal(discount_percent) / _HUNDRED))
    return max(ZERO, price)


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


def resolve_current_price(
    offer: Offer,
    strategy: Optional[PricingStrategy],
    now: datetime,
) -> Optional[str]:
    """Return the offer's effective unit price at *now* as a 2-decimal string.

    Returns ``None`` when the offer references a strategy that has not been
    resolved yet; callers may show the base cost meanwhile but must not
    charge it.  Raises :class:`InvalidOfferData` when the base cost is
    missing, non-numeric or not positive, or when a fixed discounted cost
    lies outside ``[0, base_cost]``.

    Sellability is not checked: an expired offer still gets a price.
    """
    base = _base_cost(offer)

    if offer.pricing_strategy_id is None:
        return format_money(_fixed_cost(offer, base))

    if strategy is None:
        logger.debug(
            "Offer %s: strategy %s not resolved yet",
            offer.id,
            offer.pricing_strategy_id,
        )
        return None

    if strategy.id != offer.pricing_strategy_id:
        logger.warning(
            "Offer %s references strategy %s but got strategy %s",
            offer.id,
            offer.pricing_strategy_id,
            strategy.id,
        )
        raise InvalidOfferData(
            f"strategy {strategy.id} does not match reference {offer.pricing_strategy_id}",
            offer_id=offer.id,
            field="pricing_strategy_id",
        )

    remaining = time_remaining_seconds(offer.expires_at, now)
    step = select_step(strategy.steps, remaining)
    if step is None:
        logger.debug(
            "Offer %s: %ss remaining, discount schedule not started",
            offer.id,
            remaining,
        )
        return format_money(base)

    price = apply_discount(base, step.discount_percent)
    logger.debug(
        "Offer %s: %ss remaining -> step %ss/%s%% -> %s",
        offer.id,
        remaining,
        step.time_remaining_seconds,
        step.discount_percent,
        price,
    )
    return format_money(price)


def resolve_discount_percent(
    base_cost: str | Decimal | None, current_price: str | Decimal | None
) -> int:
    """Whole-number discount of *current_price* relative to *base_cost*.

    ``0`` when the base is not positive or the current price is missing.
    Inconsistent inputs are clamped to ``[0, 100]``.
    """
    base = parse_decimal(base_cost)
    current = parse_decimal(current_price)
    if base is None or base <= 0 or current is None:
        return 0

    raw = ((base - current) / base * _HUNDRED).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    pct = int(raw)
    if pct < 0 or pct > 100:
        logger.warning(
            "Discount %s%% for base=%s current=%s out of range, clamping",
            pct,
            base_cost,
            current_price,
        )
        return min(100, max(0, pct))
    return pct


def strategy_for(
    offer: Offer, strategies: Optional[Mapping[int, PricingStrategy]]
) -> Optional[PricingStrategy]:
    """Look up the strategy an offer references, if loaded."""
    if offer.pricing_strategy_id is None or not strategies:
        return None
    return strategies.get(offer.pricing_strategy_id)


def index_strategies(strategies: Iterable[PricingStrategy]) -> dict[int, PricingStrategy]:
    return {s.id: s for s in strategies}


def quote_offer(
    offer: Offer, strategy: Optional[PricingStrategy], now: datetime
) -> PriceQuote:
    """Price a single offer; raises :class:`InvalidOfferData` on bad data."""
    current = resolve_current_price(offer, strategy, now)
    return PriceQuote(
        offer_id=offer.id,
        base_cost=format_money(_base_cost(offer)),
        current_price=current,
        discount_percent=resolve_discount_percent(offer.base_cost, current),
        is_dynamic=offer.is_dynamic,
        pending=current is None,
    )


def price_offers(
    offers: Iterable[Offer],
    strategies: Optional[Mapping[int, PricingStrategy]],
    now: datetime,
) -> list[PriceQuote]:
    """Price many offers, isolating bad data to the offending item."""
    quotes: list[PriceQuote] = []
    for offer in offers:
        try:
            quotes.append(quote_offer(offer, strategy_for(offer, strategies), now))
        except InvalidOfferData as exc:
            logger.error("Cannot price offer %s: %s", offer.id, exc)
            quotes.append(
                PriceQuote(
                    offer_id=offer.id,
                    base_cost=offer.base_cost,
                    current_price=None,
                    discount_percent=0,
                    is_dynamic=offer.is_dynamic,
                    error=str(exc),
                )
            )
    return quotes
