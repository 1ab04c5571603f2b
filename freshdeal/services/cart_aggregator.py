"""Cart aggregation.

Rolls cart line items up into per-shop groups and cart-wide totals, for
all items or for the subset a buyer has checked before checkout.  Amounts
are summed as ``Decimal`` and rounded to cents only at the end.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Collection, Iterable, Optional, Sequence

from freshdeal.models import CartLineItem
from freshdeal.money import ZERO, quantize_money

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ShopGroup:
    """Cart lines belonging to one shop."""

    shop_id: Optional[int]
    shop_name: Optional[str]
    items: list[CartLineItem] = field(default_factory=list)
    subtotal: Decimal = ZERO


@dataclass(frozen=True, slots=True)
class CartTotals:
    """Receipt figures for one scope (whole cart or selected lines)."""

    original: Decimal
    amount: Decimal
    discount: Decimal
    item_count: int


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _current_line(item: CartLineItem) -> Decimal:
    return (item.resolved_current_cost or ZERO) * item.quantity


def _original_line(item: CartLineItem) -> Decimal:
    # Lines without an original snapshot contribute no discount.
    unit = item.resolved_original_cost
    if unit is None:
        unit = item.resolved_current_cost or ZERO
    return unit * item.quantity


def _scope(
    items: Iterable[CartLineItem], selected_ids: Optional[Collection[int]]
) -> list[CartLineItem]:
    if selected_ids is None:
        return list(items)
    selected = set(selected_ids)
    return [item for item in items if item.id in selected]


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


def line_total(item: CartLineItem) -> Decimal:
    return quantize_money(_current_line(item))


def group_by_shop(items: Iterable[CartLineItem]) -> list[ShopGroup]:
    """Group lines by ``shop_id`` in first-seen order."""
    groups: dict[Optional[int], ShopGroup] = {}
    for item in items:
        group = groups.get(item.shop_id)
        if group is None:
            group = ShopGroup(shop_id=item.shop_id, shop_name=item.shop_name)
            groups[item.shop_id] = group
        group.items.append(item)
        group.subtotal += _current_line(item)

    for group in groups.values():
        group.subtotal = quantize_money(group.subtotal)
    return list(groups.values())


def total_amount(items: Iterable[CartLineItem]) -> Decimal:
    """Sum of current cost x quantity over all lines."""
    return quantize_money(sum((_current_line(i) for i in items), ZERO))


def total_amount_selected(
    items: Iterable[CartLineItem], selected_ids: Collection[int]
) -> Decimal:
    return total_amount(_scope(items, selected_ids))


def total_original(
    items: Iterable[CartLineItem], selected_ids: Optional[Collection[int]] = None
) -> Decimal:
    """Sum of original cost x quantity over all lines or the selected ones."""
    scoped = _scope(items, selected_ids)
    return quantize_money(sum((_original_line(i) for i in scoped), ZERO))


def total_discount(
    items: Iterable[CartLineItem], selected_ids: Optional[Collection[int]] = None
) -> Decimal:
    """Original total minus payable total, never negative."""
    scoped = _scope(items, selected_ids)
    discount = total_original(scoped) - total_amount(scoped)
    if discount < 0:
        logger.warning("Negative cart discount %s clamped to 0", discount)
        return ZERO
    return discount


def selected_item_count(
    items: Iterable[CartLineItem], selected_ids: Collection[int]
) -> int:
    """Units (not lines) among the selected lines."""
    return total_items(_scope(items, selected_ids))


def total_items(items: Iterable[CartLineItem]) -> int:
    return sum(item.quantity for item in items)


def shops_count(items: Iterable[CartLineItem]) -> int:
    return len({item.shop_id for item in items})


def cart_totals(
    items: Sequence[CartLineItem], selected_ids: Optional[Collection[int]] = None
) -> CartTotals:
    """All receipt figures for the cart or its selected subset."""
    scoped = _scope(items, selected_ids)
    return CartTotals(
        original=total_original(scoped),
        amount=total_amount(scoped),
        discount=total_discount(scoped),
        item_count=total_items(scoped),
    )
