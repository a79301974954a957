"""Update warranty use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from deal_desk.domain.deal import Deal, Warranty
from deal_desk.domain.errors import InvalidTransitionError, ValidationError
from deal_desk.domain.money import quantize_money
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.use_cases.common import Clock, load_deal, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UpdateWarrantyRequest:
    dealer_id: str
    deal_id: str
    warranty: Warranty

    def validate(self) -> None:
        w = self.warranty
        errors = []
        if w.duration_months is not None and w.duration_months < 0:
            errors.append({"field": "durationMonths", "message": "Must be >= 0", "code": "INVALID_VALUE"})
        if w.price_gross is not None and w.price_gross < 0:
            errors.append({"field": "priceGross", "message": "Must be >= 0", "code": "INVALID_VALUE"})
        if w.claim_limit is not None and w.claim_limit < 0:
            errors.append({"field": "claimLimit", "message": "Must be >= 0", "code": "INVALID_VALUE"})
        if errors:
            raise ValidationError(errors=errors)


class UpdateWarranty:
    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    def execute(self, request: UpdateWarrantyRequest) -> Deal:
        request.validate()
        warranty = request.warranty
        if warranty.price_gross is not None:
            warranty = replace(warranty, price_gross=quantize_money(warranty.price_gross))

        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            if not deal.is_editable:
                raise InvalidTransitionError(deal.status.value, "UPDATE_WARRANTY")

            saved = uow.deals.save(replace(deal, warranty=warranty, updated_at=self._clock()))
            uow.commit()

        logger.info(
            "Warranty updated",
            extra={"deal_id": saved.id, "included": warranty.included, "type": warranty.type.value},
        )
        return saved
