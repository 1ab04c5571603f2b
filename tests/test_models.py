"""Tests for record parsing."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from factories import NOW
from freshdeal.models import CartLineItem, Offer, OrderLineResult, PricingStrategy


class TestOfferParsing:
    def test_backend_payload(self):
        offer = Offer.model_validate(
            {
                "id": 12,
                "original_cost": "89.90",
                "current_cost": "69.90",
                "pricing_strategy_id": None,
                "expires_date": "2026-10-17T08:30:00Z",
                "count": 4,
                "shop_id": 3,
            }
        )
        assert offer.base_cost == "89.90"
        assert offer.fixed_discounted_cost == "69.90"
        assert offer.available_quantity == 4
        assert offer.expires_at == datetime(2026, 10, 17, 8, 30, tzinfo=timezone.utc)
        assert offer.is_dynamic is False

    def test_numeric_costs_are_kept_as_text(self):
        offer = Offer.model_validate(
            {"id": 1, "base_cost": 12.5, "expires_at": "2026-10-17T00:00:00+00:00"}
        )
        assert offer.base_cost == "12.5"

    def test_date_only_expiry_means_end_of_day(self):
        offer = Offer.model_validate({"id": 1, "base_cost": "1.00", "expires_at": "2026-10-16"})
        assert offer.expires_at == datetime(2026, 10, 16, 23, 59, 59, tzinfo=timezone.utc)

    def test_naive_expiry_gets_configured_zone(self):
        offer = Offer.model_validate(
            {"id": 1, "base_cost": "1.00", "expires_at": "2026-10-16T13:00:00"}
        )
        assert offer.expires_at.tzinfo is not None
        assert offer.expires_at - NOW == timedelta(hours=1)

    def test_sellability(self):
        offer = Offer(id=1, base_cost="1.00", expires_at=NOW + timedelta(minutes=1), available_quantity=1)
        assert offer.is_sellable(NOW) is True
        assert offer.is_sellable(NOW + timedelta(minutes=1)) is False
        assert offer.model_copy(update={"available_quantity": 0}).is_sellable(NOW) is False

    def test_negative_stock_is_rejected(self):
        with pytest.raises(ValidationError):
            Offer.model_validate({"id": 1, "expires_at": "2026-10-16", "count": -1})

    def test_missing_expiry_is_rejected(self):
        with pytest.raises(ValidationError):
            Offer.model_validate({"id": 1, "base_cost": "1.00"})


class TestStrategyParsing:
    def test_steps_keep_storage_order(self, strategy):
        assert [s.time_remaining_seconds for s in strategy.steps] == [1800, 600, 3600]
        assert strategy.steps[0].discount_percent == Decimal("25")

    @pytest.mark.parametrize(
        "step",
        [
            {"time_remaining_seconds": -1, "discount_percent": 10},
            {"time_remaining_seconds": 60, "discount_percent": 101},
            {"time_remaining_seconds": 60, "discount_percent": -5},
        ],
    )
    def test_invalid_steps(self, step):
        with pytest.raises(ValidationError):
            PricingStrategy.model_validate({"id": 1, "name": "bad", "steps": [step]})


class TestCartLineParsing:
    def test_current_above_original_is_rejected(self):
        with pytest.raises(ValidationError):
            CartLineItem(
                id=1,
                offer_id=1,
                quantity=1,
                resolved_original_cost=Decimal("5.00"),
                resolved_current_cost=Decimal("5.01"),
                expires_at=NOW,
            )

    def test_zero_quantity_is_rejected(self):
        with pytest.raises(ValidationError):
            CartLineItem(id=1, offer_id=1, quantity=0, expires_at=NOW)

    def test_storage_round_trip(self):
        item = CartLineItem(
            id=1,
            offer_id=9,
            quantity=2,
            resolved_original_cost=Decimal("5.00"),
            resolved_current_cost=Decimal("4.00"),
            expires_at=NOW,
        )
        assert CartLineItem.model_validate_json(item.model_dump_json()) == item


class TestOrderLineResult:
    def test_status_serializes_as_text(self):
        result = OrderLineResult(offer_id=1, status="insufficient_quantity", requested_quantity=2, available_quantity=1)
        assert result.model_dump(mode="json")["status"] == "insufficient_quantity"
        assert result.is_success is False
