"""Order pricing reconciliation.

At checkout the buyer's cart snapshot is re-checked against the
authoritative offer state (stock, expiry, current price).  Every requested
line is classified; unavailable lines are reported as result values, never
raised.  Only a structurally malformed batch raises.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from freshdeal.exceptions import InvalidBatchRequest, InvalidOfferData
from freshdeal.models import (
    FulfillmentOutcome,
    LineStatus,
    Offer,
    OrderLineResult,
    PricingStrategy,
    RequestedLine,
)
from freshdeal.money import ZERO, quantize_money
from freshdeal.services.pricing_engine import resolve_current_price, strategy_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconciliationSummary:
    results: list[OrderLineResult]
    outcome: FulfillmentOutcome
    total_processed: int
    total_failed: int
    payable_total: Decimal
    unpriced_offer_ids: list[int]

    @property
    def all_fulfilled(self) -> bool:
        return self.outcome is FulfillmentOutcome.ALL_FULFILLED

    @property
    def some_fulfilled(self) -> bool:
        return self.outcome is not FulfillmentOutcome.NONE_FULFILLED


def _validate_batch(requested_lines: Sequence[RequestedLine]) -> None:
    problems: list[str] = []
    for line in requested_lines:
        if line.quantity <= 0:
            problems.append(f"offer {line.offer_id}: quantity must be > 0, got {line.quantity}")
    counts = Counter(line.offer_id for line in requested_lines)
    for offer_id, count in counts.items():
        if count > 1:
            problems.append(f"offer {offer_id} requested {count} times")
    if problems:
        raise InvalidBatchRequest(problems)


def _unavailable(
    line: RequestedLine,
    status: LineStatus,
    message: str,
    available: Optional[int] = None,
) -> OrderLineResult:
    return OrderLineResult(
        offer_id=line.offer_id,
        status=status,
        requested_quantity=line.quantity,
        processed_quantity=0,
        available_quantity=available,
        message=message,
    )


def reconcile(
    requested_lines: Sequence[RequestedLine],
    authoritative_offers: Iterable[Offer],
    now: datetime,
    strategies: Optional[Mapping[int, PricingStrategy]] = None,
) -> list[OrderLineResult]:
    """Classify each requested line against the authoritative offers.

    Raises :class:`InvalidBatchRequest` for non-positive quantities or a
    repeated offer id; nothing is processed in that case.  A shortfall is
    reported with the available quantity and never partially filled here.

    An offer whose pricing data is invalid cannot be sold and is reported
    as ``not_found`` with the message "Offer pricing data is invalid"; the
    rest of the batch is still processed.
    """
    _validate_batch(requested_lines)
    offers = {offer.id: offer for offer in authoritative_offers}

    results: list[OrderLineResult] = []
    for line in requested_lines:
        offer = offers.get(line.offer_id)
        if offer is None:
            results.append(_unavailable(line, LineStatus.NOT_FOUND, "Offer not found"))
            continue

        if offer.is_expired(now):
            results.append(_unavailable(line, LineStatus.EXPIRED, "Offer has expired"))
            continue

        if offer.available_quantity < line.quantity:
            results.append(
                _unavailable(
                    line,
                    LineStatus.INSUFFICIENT_QUANTITY,
                    f"Only {offer.available_quantity} available, {line.quantity} requested",
                    available=offer.available_quantity,
                )
            )
            continue

        try:
            price = resolve_current_price(offer, strategy_for(offer, strategies), now)
        except InvalidOfferData as exc:
            logger.error("Offer %s cannot be priced at commit: %s", offer.id, exc)
            results.append(
                _unavailable(line, LineStatus.NOT_FOUND, "Offer pricing data is invalid")
            )
            continue

        if price is None:
            logger.warning("Offer %s committed before its strategy was resolved", offer.id)

        results.append(
            OrderLineResult(
                offer_id=line.offer_id,
                status=LineStatus.SUCCESS,
                requested_quantity=line.quantity,
                processed_quantity=line.quantity,
                price_at_commit=price,
                message="Reserved",
            )
        )

    logger.info(
        "Reconciled %d lines: %d reserved",
        len(results),
        sum(1 for r in results if r.is_success),
    )
    return results


def classify_outcome(results: Sequence[OrderLineResult]) -> FulfillmentOutcome:
    if results and all(
        r.is_success and r.processed_quantity == r.requested_quantity for r in results
    ):
        return FulfillmentOutcome.ALL_FULFILLED
    if any(r.processed_quantity > 0 for r in results):
        return FulfillmentOutcome.SOME_FULFILLED
    return FulfillmentOutcome.NONE_FULFILLED


def summarize(results: Sequence[OrderLineResult]) -> ReconciliationSummary:
    """Aggregate outcome and payable total of a reconciliation run.

    Only successful lines with a committed price count towards the
    payable total; successful lines without one are listed separately.
    """
    payable = ZERO
    unpriced: list[int] = []
    processed = 0
    for result in results:
        if not result.is_success:
            continue
        processed += 1
        if result.price_at_commit is None:
            unpriced.append(result.offer_id)
            continue
        payable += Decimal(result.price_at_commit) * result.processed_quantity

    return ReconciliationSummary(
        results=list(results),
        outcome=classify_outcome(results),
        total_processed=processed,
        total_failed=len(results) - processed,
        payable_total=quantize_money(payable),
        unpriced_offer_ids=unpriced,
    )


def adjust_to_available(
    requested_lines: Sequence[RequestedLine],
    results: Sequence[OrderLineResult],
) -> list[RequestedLine]:
    """Follow-up request after the buyer accepts a shortfall.

    Successful lines are kept, insufficient ones are capped at what is
    available, the rest are dropped.
    """
    by_offer = {r.offer_id: r for r in results}
    adjusted: list[RequestedLine] = []
    for line in requested_lines:
        result = by_offer.get(line.offer_id)
        if result is None:
            continue
        if result.status is LineStatus.SUCCESS:
            adjusted.append(line)
        elif result.status is LineStatus.INSUFFICIENT_QUANTITY and result.available_quantity:
            adjusted.append(
                RequestedLine(offer_id=line.offer_id, quantity=result.available_quantity)
            )
    return adjusted
