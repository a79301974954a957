"""Mark delivered use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from deal_desk.domain.deal import Deal
from deal_desk.domain.errors import ValidationError
from deal_desk.domain.lifecycle import guard_mark_delivered
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.use_cases.common import Clock, load_deal, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MarkDeliveredRequest:
    dealer_id: str
    deal_id: str
    customer_confirmed: bool
    delivered_at: datetime | None = None
    mileage: int | None = None
    notes: str | None = None


class MarkDelivered:
    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    def execute(self, request: MarkDeliveredRequest) -> Deal:
        if request.mileage is not None and request.mileage < 0:
            raise ValidationError(
                errors=[{"field": "mileage", "message": "Must be >= 0", "code": "INVALID_VALUE"}]
            )

        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            target = guard_mark_delivered(deal, request.customer_confirmed)
            now = self._clock()

            saved = uow.deals.save(
                replace(
                    deal,
                    status=target,
                    delivered_at=request.delivered_at or now,
                    delivery_mileage=request.mileage,
                    delivery_notes=request.notes,
                    updated_at=now,
                )
            )
            uow.commit()

        logger.info("Deal delivered", extra={"dealer_id": saved.dealer_id, "deal_id": saved.id})
        return saved
