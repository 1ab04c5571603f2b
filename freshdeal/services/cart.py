"""In-memory shopping cart owned by the caller.

Holds cart lines with price snapshots taken from the pricing engine and
offers the mutations a storefront needs (add, increment, decrement,
remove, refresh) plus the totals and the order request built from it.
Persisting the cart is the caller's job.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Collection, Iterable, Mapping, Optional, Sequence

from freshdeal.exceptions import CartError, InvalidOfferData
from freshdeal.models import CartLineItem, Offer, PricingStrategy, RequestedLine, as_aware
from freshdeal.services.cart_aggregator import (
    CartTotals,
    ShopGroup,
    cart_totals,
    group_by_shop,
    shops_count,
    total_items,
)
from freshdeal.services.pricing_engine import quote_offer, strategy_for

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Line status checks
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ItemStatus:
    is_inactive: bool
    inactive_reason: Optional[str] = None


ACTIVE = ItemStatus(is_inactive=False)

ItemStatusValidator = Callable[[CartLineItem, datetime], ItemStatus]


def expired_item_validator(item: CartLineItem, now: datetime) -> ItemStatus:
    if as_aware(now) >= item.expires_at:
        return ItemStatus(is_inactive=True, inactive_reason="Product expired")
    return ACTIVE


DEFAULT_VALIDATORS: tuple[ItemStatusValidator, ...] = (expired_item_validator,)


def item_status(
    item: CartLineItem,
    now: datetime,
    validators: Sequence[ItemStatusValidator] = DEFAULT_VALIDATORS,
) -> ItemStatus:
    """First inactive status reported by *validators*, else active."""
    for validator in validators:
        status = validator(item, now)
        if status.is_inactive:
            return status
    return ACTIVE


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


class Cart:
    """A buyer's cart: an ordered collection of :class:`CartLineItem`."""

    def __init__(self, items: Iterable[CartLineItem] = ()) -> None:
        self._items: list[CartLineItem] = list(items)
        self._next_id = max((item.id for item in self._items), default=0) + 1

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._items)

    def _allocate_id(self) -> int:
        item_id = self._next_id
        self._next_id += 1
        return item_id

    def get(self, item_id: int) -> CartLineItem:
        for item in self._items:
            if item.id == item_id:
                return item
        raise CartError(f"Cart line {item_id} not found")

    def find_by_offer(self, offer_id: int) -> Optional[CartLineItem]:
        return next((i for i in self._items if i.offer_id == offer_id), None)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_offer(
        self,
        offer: Offer,
        strategy: Optional[PricingStrategy],
        now: datetime,
    ) -> CartLineItem:
        """Add one unit of *offer*, or bump the existing line for it.

        The quantity never exceeds the offer's available stock.  Expired,
        sold-out and not-yet-priceable offers are refused.
        """
        if offer.is_expired(now):
            raise CartError(f"Offer {offer.id} has expired")
        if offer.available_quantity <= 0:
            raise CartError(f"Offer {offer.id} is sold out")

        existing = self.find_by_offer(offer.id)
        if existing is not None:
            existing.quantity = min(existing.quantity + 1, offer.available_quantity)
            return existing

        quote = quote_offer(offer, strategy, now)
        if quote.pending:
            raise CartError(f"Offer {offer.id} price is still being calculated")

        item = CartLineItem(
            id=self._allocate_id(),
            offer_id=offer.id,
            shop_id=offer.shop_id,
            shop_name=offer.shop_name,
            product_name=offer.product_name,
            quantity=1,
            resolved_original_cost=Decimal(quote.base_cost),
            resolved_current_cost=Decimal(quote.current_price),
            expires_at=offer.expires_at,
        )
        self._items.append(item)
        logger.debug("Cart line %s added for offer %s", item.id, offer.id)
        return item

    def increase_quantity(self, item_id: int, max_quantity: Optional[int] = None) -> CartLineItem:
        item = self.get(item_id)
        if max_quantity is not None and max_quantity < 1:
            raise CartError(f"offer {item.offer_id} has no stock left, cap is {max_quantity}")
        quantity = item.quantity + 1
        if max_quantity is not None:
            quantity = min(quantity, max_quantity)
        item.quantity = quantity
        return item

    def decrease_quantity(self, item_id: int) -> Optional[CartLineItem]:
        """Drop one unit; the line is removed when it reaches zero."""
        item = self.get(item_id)
        if item.quantity <= 1:
            self.remove_item(item_id)
            return None
        item.quantity -= 1
        return item

    def remove_item(self, item_id: int) -> CartLineItem:
        item = self.get(item_id)
        self._items.remove(item)
        return item

    def clear(self) -> None:
        self._items.clear()

    def refresh_prices(
        self,
        offers: Iterable[Offer],
        strategies: Optional[Mapping[int, PricingStrategy]],
        now: datetime,
    ) -> list[int]:
        """Re-snapshot prices and expiries from current offer data.

        Returns the ids of lines that could not be refreshed (offer missing,
        invalid or still pending); those keep their previous snapshot.
        """
        by_id = {offer.id: offer for offer in offers}
        stale: list[int] = []
        for item in self._items:
            offer = by_id.get(item.offer_id)
            if offer is None:
                logger.warning("Cart line %s: offer %s not found", item.id, item.offer_id)
                stale.append(item.id)
                continue
            try:
                quote = quote_offer(offer, strategy_for(offer, strategies), now)
            except InvalidOfferData as exc:
                logger.error("Cart line %s: %s", item.id, exc)
                stale.append(item.id)
                continue
            if quote.pending:
                stale.append(item.id)
                continue
            item.resolved_original_cost = Decimal(quote.base_cost)
            item.resolved_current_cost = Decimal(quote.current_price)
            item.expires_at = offer.expires_at
        return stale

    def remove_committed(self, offer_ids: Collection[int]) -> list[CartLineItem]:
        """Take lines out of the cart once they are reserved in an order."""
        committed = set(offer_ids)
        moved = [item for item in self._items if item.offer_id in committed]
        self._items = [item for item in self._items if item.offer_id not in committed]
        return moved

    def restore(
        self,
        items: Iterable[CartLineItem],
        max_quantities: Optional[Mapping[int, int]] = None,
    ) -> None:
        """Put lines back after their pending order was cancelled.

        A line for an offer already in the cart is merged into it.  When
        *max_quantities* (offer id -> available stock) is given, merged and
        restored quantities are capped at that stock and an offer with no
        stock left is dropped from the cart.  Without it the caller is
        responsible for re-checking stock.
        """
        caps = max_quantities or {}
        taken = {item.id for item in self._items}
        for item in items:
            cap = caps.get(item.offer_id)
            existing = self.find_by_offer(item.offer_id)
            if existing is not None:
                quantity = existing.quantity + item.quantity
                if cap is not None:
                    quantity = min(quantity, cap)
                if quantity < 1:
                    logger.info("Offer %s sold out, dropping cart line %s", item.offer_id, existing.id)
                    self._items.remove(existing)
                else:
                    existing.quantity = quantity
                continue
            if cap is not None:
                if cap < 1:
                    logger.info("Offer %s sold out, not restoring cart line %s", item.offer_id, item.id)
                    continue
                if item.quantity > cap:
                    item = item.model_copy(update={"quantity": cap})
            if item.id in taken:
                item = item.model_copy(update={"id": self._allocate_id()})
            else:
                self._next_id = max(self._next_id, item.id + 1)
            taken.add(item.id)
            self._items.append(item)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def group_by_shop(self) -> list[ShopGroup]:
        return group_by_shop(self._items)

    def totals(self, selected_ids: Optional[Collection[int]] = None) -> CartTotals:
        return cart_totals(self._items, selected_ids)

    def total_items(self) -> int:
        return total_items(self._items)

    def shops_count(self) -> int:
        return shops_count(self._items)

    def inactive_items(
        self,
        now: datetime,
        validators: Sequence[ItemStatusValidator] = DEFAULT_VALIDATORS,
    ) -> list[tuple[CartLineItem, ItemStatus]]:
        result = []
        for item in self._items:
            status = item_status(item, now, validators)
            if status.is_inactive:
                result.append((item, status))
        return result

    def requested_lines(
        self, selected_ids: Optional[Collection[int]] = None
    ) -> list[RequestedLine]:
        """Order request for the whole cart or the selected lines."""
        selected = None if selected_ids is None else set(selected_ids)
        quantities: dict[int, int] = {}
        for item in self._items:
            if selected is not None and item.id not in selected:
                continue
            quantities[item.offer_id] = quantities.get(item.offer_id, 0) + item.quantity
        return [
            RequestedLine(offer_id=offer_id, quantity=quantity)
            for offer_id, quantity in quantities.items()
        ]
