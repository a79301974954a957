"""Update (PATCH) deal use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from deal_desk.domain.deal import Deal, Delivery
from deal_desk.domain.errors import InvalidTransitionError, ValidationError
from deal_desk.domain.pricing import DeliveryInput, add_on_errors, price_vehicle
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.use_cases.common import Clock, load_deal, utc_now

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "customer_id",
        "invoice_to_id",
        "sale_type",
        "buyer_use",
        "sale_channel",
        "vat_scheme",
        "vat_rate",
        "vehicle_price_gross",
        "add_ons",
        "delivery",
        "requests",
        "finance_selection",
        "payment_method",
    }
)

# Changing any of these re-derives the stored net/VAT split.
_REPRICING_FIELDS = frozenset({"vat_scheme", "vat_rate", "vehicle_price_gross"})


@dataclass(frozen=True, slots=True)
class UpdateDealRequest:
    """
    Partial update. Only keys present in ``changes`` are applied.

    ``delivery`` takes a ``DeliveryInput`` (or ``None`` to clear it); the
    stored net/VAT amounts are derived from its gross charge.
    """

    dealer_id: str
    deal_id: str
    changes: dict[str, Any]

    def validate(self) -> None:
        errors = [
            {"field": name, "message": "Field cannot be edited", "code": "UNKNOWN_FIELD"}
            for name in sorted(set(self.changes) - EDITABLE_FIELDS)
        ]
        if "add_ons" in self.changes:
            errors.extend(add_on_errors(tuple(self.changes["add_ons"])))
        rate = self.changes.get("vat_rate")
        if rate is not None and (rate < 0 or rate >= 1):
            errors.append({"field": "vatRate", "message": "Must be between 0 and 1", "code": "INVALID_VALUE"})
        if errors:
            raise ValidationError(errors=errors)


class UpdateDeal:
    """Edit classification, parties and pricing while the deal is unlocked."""

    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    def execute(self, request: UpdateDealRequest) -> Deal:
        request.validate()
        changes = dict(request.changes)

        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            if not deal.is_editable:
                raise InvalidTransitionError(deal.status.value, "UPDATE")

            delivery_input = changes.pop("delivery", deal.delivery)
            if "add_ons" in changes:
                changes["add_ons"] = tuple(changes["add_ons"])
            if "requests" in changes:
                changes["requests"] = tuple(changes["requests"])
            gross = changes.pop("vehicle_price_gross", deal.vehicle_price_gross)

            updated = replace(deal, **changes, updated_at=self._clock())
            if _REPRICING_FIELDS & set(request.changes):
                updated = price_vehicle(updated, gross)
            updated = replace(updated, delivery=_resolve_delivery(updated, delivery_input))

            saved = uow.deals.save(updated)
            uow.commit()

        logger.info(
            "Deal updated",
            extra={"deal_id": saved.id, "fields": sorted(request.changes)},
        )
        return saved


def _resolve_delivery(deal: Deal, value: DeliveryInput | Delivery | None) -> Delivery | None:
    # Re-derive from gross so a scheme change also moves the delivery VAT split.
    if value is None:
        return None
    if isinstance(value, DeliveryInput):
        return value.to_delivery(deal)
    return DeliveryInput(
        is_free=value.is_free, amount_gross=value.amount_gross, notes=value.notes
    ).to_delivery(deal)
