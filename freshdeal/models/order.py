"""Order request and per-line reconciliation result records."""

from enum import Enum

from pydantic import BaseModel


class LineStatus(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INSUFFICIENT_QUANTITY = "insufficient_quantity"
    EXPIRED = "expired"


class FulfillmentOutcome(str, Enum):
    ALL_FULFILLED = "all_fulfilled"
    SOME_FULFILLED = "some_fulfilled"
    NONE_FULFILLED = "none_fulfilled"


class RequestedLine(BaseModel):
    # quantity is checked by reconcile() so a bad batch is rejected whole
    offer_id: int
    quantity: int


class OrderLineResult(BaseModel):
    offer_id: int
    status: LineStatus
    requested_quantity: int
    processed_quantity: int = 0
    available_quantity: int | None = None
    price_at_commit: str | None = None
    message: str = ""

    @property
    def is_success(self) -> bool:
        return self.status is LineStatus.SUCCESS
