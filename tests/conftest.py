"""Pytest fixtures for FreshDeal pricing tests."""

from datetime import datetime

import pytest

from factories import NOW, make_line
from freshdeal.models import CartLineItem, PricingStrategy


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def strategy() -> PricingStrategy:
    # Deliberately stored out of order.
    return PricingStrategy.model_validate(
        {
            "id": 7,
            "name": "Evening markdown",
            "steps": [
                {"time_remaining_seconds": 1800, "discount_percent": 25},
                {"time_remaining_seconds": 600, "discount_percent": 50},
                {"time_remaining_seconds": 3600, "discount_percent": 10},
            ],
        }
    )


@pytest.fixture
def cart_items() -> list[CartLineItem]:
    return [
        make_line(1, current="69.90", original="89.90", quantity=2, shop_id=1),
        make_line(2, current="10.00", original="12.50", quantity=1, shop_id=2),
        make_line(3, current="4.99", original="4.99", quantity=3, shop_id=1),
        make_line(4, current="0.33", original="0.50", quantity=7, shop_id=3),
    ]
