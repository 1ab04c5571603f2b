"""Tests for cart aggregation."""

from datetime import timedelta
from decimal import Decimal

from factories import NOW, make_line
from freshdeal.models import CartLineItem
from freshdeal.services.cart_aggregator import (
    cart_totals,
    group_by_shop,
    line_total,
    selected_item_count,
    shops_count,
    total_amount,
    total_amount_selected,
    total_discount,
    total_items,
    total_original,
)


class TestTotals:
    def test_total_amount(self, cart_items):
        assert total_amount(cart_items) == Decimal("167.08")

    def test_total_original_and_discount(self, cart_items):
        assert total_original(cart_items) == Decimal("210.77")
        assert total_discount(cart_items) == Decimal("43.69")

    def test_line_total(self, cart_items):
        assert line_total(cart_items[0]) == Decimal("139.80")

    def test_partitions_sum_to_the_same_total(self, cart_items):
        full = total_amount(cart_items)
        partitions = [
            [cart_items[:1], cart_items[1:]],
            [cart_items[::2], cart_items[1::2]],
            [[item] for item in cart_items],
        ]
        for parts in partitions:
            assert sum((total_amount(p) for p in parts), Decimal("0")) == full

    def test_sub_cent_snapshots_keep_partitions_consistent(self):
        items = [make_line(1, current="0.335"), make_line(2, current="0.335")]
        assert items[0].resolved_current_cost == Decimal("0.34")

        full = total_amount(items)
        assert full == Decimal("0.68")
        assert total_amount(items[:1]) + total_amount(items[1:]) == full

    def test_many_small_lines_do_not_drift(self):
        items = [make_line(i, current="0.10", original="0.10") for i in range(1, 101)]
        assert total_amount(items) == Decimal("10.00")

    def test_missing_current_cost_counts_as_zero(self):
        items = [
            make_line(1, current=None, original="5.00", quantity=2),
            make_line(2, current="3.00", quantity=2),
        ]
        assert total_amount(items) == Decimal("6.00")
        # a line without an original snapshot carries no discount
        assert total_original(items) == Decimal("16.00")
        assert total_discount(items) == Decimal("10.00")

    def test_negative_discount_is_clamped(self):
        inconsistent = CartLineItem.model_construct(
            id=1,
            offer_id=1,
            quantity=1,
            resolved_original_cost=Decimal("1.00"),
            resolved_current_cost=Decimal("1.01"),
            expires_at=NOW + timedelta(hours=1),
        )
        assert total_discount([inconsistent]) == Decimal("0")


class TestSelectedTotals:
    def test_selected_subset(self, cart_items):
        selected = {1, 4}
        assert total_amount_selected(cart_items, selected) == Decimal("142.11")
        assert total_original(cart_items, selected) == Decimal("183.30")
        assert total_discount(cart_items, selected) == Decimal("41.19")
        assert selected_item_count(cart_items, selected) == 9

    def test_selected_never_exceeds_full_total(self, cart_items):
        full = total_amount(cart_items)
        ids = [item.id for item in cart_items]
        for size in range(len(ids) + 1):
            assert total_amount_selected(cart_items, ids[:size]) <= full
        assert total_amount_selected(cart_items, ids) == full

    def test_unknown_ids_are_ignored(self, cart_items):
        assert total_amount_selected(cart_items, {999}) == Decimal("0.00")
        assert selected_item_count(cart_items, {999}) == 0

    def test_cart_totals(self, cart_items):
        totals = cart_totals(cart_items, {2, 3})
        assert totals.amount == Decimal("24.97")
        assert totals.original == Decimal("27.47")
        assert totals.discount == Decimal("2.50")
        assert totals.item_count == 4


class TestGrouping:
    def test_groups_in_first_seen_order(self, cart_items):
        groups = group_by_shop(cart_items)
        assert [g.shop_id for g in groups] == [1, 2, 3]
        assert [i.id for i in groups[0].items] == [1, 3]
        assert groups[0].subtotal == Decimal("154.77")
        assert groups[0].shop_name == "Shop 1"
        assert groups[1].subtotal == Decimal("10.00")
        assert groups[2].subtotal == Decimal("2.31")

    def test_counts(self, cart_items):
        assert total_items(cart_items) == 13
        assert shops_count(cart_items) == 3


class TestEmptyCart:
    def test_empty_collections(self):
        assert total_amount([]) == Decimal("0.00")
        assert total_original([]) == Decimal("0.00")
        assert total_discount([]) == Decimal("0.00")
        assert total_amount_selected([], {1}) == Decimal("0.00")
        assert selected_item_count([], set()) == 0
        assert group_by_shop([]) == []
        assert shops_count([]) == 0

    def test_empty_cart_totals(self):
        totals = cart_totals([])
        assert totals.amount == Decimal("0.00")
        assert totals.discount == Decimal("0.00")
        assert totals.item_count == 0
