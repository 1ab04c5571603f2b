"""Exception types raised by the pricing core."""

from typing import Any


class FreshdealError(Exception):
    """Base class for all library errors."""


class InvalidOfferData(FreshdealError, ValueError):
    """An offer's monetary data cannot be turned into a price."""

    def __init__(self, message: str, *, offer_id: Any = None, field: str | None = None):
        self.offer_id = offer_id
        self.field = field
        prefix = f"offer {offer_id}: " if offer_id is not None else ""
        super().__init__(f"{prefix}{message}")


class InvalidBatchRequest(FreshdealError, ValueError):
    """A reconciliation batch is structurally malformed and was rejected."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("invalid order request: " + "; ".join(problems))


class CartError(FreshdealError, ValueError):
    """A cart mutation could not be applied."""
