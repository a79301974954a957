"""
Deal lifecycle rules.

Defines the only allowed status transitions for a deal and the guard
conditions attached to them. No I/O and no persistence: use cases call
``transition`` to obtain the target status (or a structured error) and then
apply their own side effects.
"""

from __future__ import annotations

from enum import Enum

from deal_desk.domain.deal import Deal, DealStatus
from deal_desk.domain.errors import (
    CancelReasonRequired,
    InvalidTransitionError,
    PreconditionFailedError,
    SettlementConfirmationRequired,
    ValidationError,
)


class DealEvent(str, Enum):
    TAKE_DEPOSIT = "TAKE_DEPOSIT"
    GENERATE_INVOICE = "GENERATE_INVOICE"
    VOID_INVOICE = "VOID_INVOICE"
    RECORD_BALANCE_PAYMENT = "RECORD_BALANCE_PAYMENT"
    MARK_DELIVERED = "MARK_DELIVERED"
    MARK_COMPLETED = "MARK_COMPLETED"
    DELETE = "DELETE"
    CANCEL = "CANCEL"


_S = DealStatus
_NON_CANCELLED = (_S.DRAFT, _S.DEPOSIT_TAKEN, _S.INVOICED, _S.DELIVERED, _S.COMPLETED)

# event -> {from_status: to_status}; ``None`` target means the deal is removed.
TRANSITIONS: dict[DealEvent, dict[DealStatus, DealStatus | None]] = {
    DealEvent.TAKE_DEPOSIT: {
        _S.DRAFT: _S.DEPOSIT_TAKEN,
        _S.DEPOSIT_TAKEN: _S.DEPOSIT_TAKEN,
    },
    DealEvent.GENERATE_INVOICE: {
        _S.DRAFT: _S.INVOICED,
        _S.DEPOSIT_TAKEN: _S.INVOICED,
    },
    DealEvent.VOID_INVOICE: {
        _S.INVOICED: _S.DEPOSIT_TAKEN,
    },
    DealEvent.RECORD_BALANCE_PAYMENT: {status: status for status in _NON_CANCELLED},
    DealEvent.MARK_DELIVERED: {
        _S.INVOICED: _S.DELIVERED,
    },
    DealEvent.MARK_COMPLETED: {
        _S.DELIVERED: _S.COMPLETED,
    },
    DealEvent.DELETE: {
        _S.DRAFT: None,
    },
    DealEvent.CANCEL: {status: _S.CANCELLED for status in _NON_CANCELLED},
}


def can_transition(status: DealStatus, event: DealEvent) -> bool:
    return status in TRANSITIONS[event]


def transition(status: DealStatus, event: DealEvent) -> DealStatus | None:
    """Return the target status for ``event`` or raise ``InvalidTransitionError``."""
    targets = TRANSITIONS[event]
    if status not in targets:
        raise InvalidTransitionError(status.value, event.value)
    return targets[status]


# ==============================================================================
# Guards
# ==============================================================================


def require_customer(deal: Deal) -> None:
    if not deal.customer_id:
        raise PreconditionFailedError("Customer is required", field="customerId")


def require_vehicle_price(deal: Deal) -> None:
    if deal.vehicle_price_gross is None or deal.vehicle_price_gross <= 0:
        raise PreconditionFailedError("Vehicle price is required", field="vehiclePriceGross")


def guard_take_deposit(deal: Deal) -> DealStatus:
    target = transition(deal.status, DealEvent.TAKE_DEPOSIT)
    require_customer(deal)
    require_vehicle_price(deal)
    return target  # type: ignore[return-value]


def guard_generate_invoice(deal: Deal) -> DealStatus:
    target = transition(deal.status, DealEvent.GENERATE_INVOICE)
    require_customer(deal)
    require_vehicle_price(deal)
    if deal.vat_scheme is None:
        raise PreconditionFailedError("VAT scheme is required", field="vatScheme")
    if deal.sale_type is None:
        raise PreconditionFailedError("Sale type is required", field="saleType")
    return target  # type: ignore[return-value]


def guard_record_balance_payment(deal: Deal) -> None:
    transition(deal.status, DealEvent.RECORD_BALANCE_PAYMENT)
    require_customer(deal)


def guard_mark_delivered(deal: Deal, customer_confirmed: bool) -> DealStatus:
    target = transition(deal.status, DealEvent.MARK_DELIVERED)
    if not customer_confirmed:
        raise ValidationError(
            errors=[
                {
                    "field": "customerConfirmed",
                    "message": "Customer must confirm receipt of the vehicle",
                    "code": "CONFIRMATION_REQUIRED",
                }
            ]
        )
    return target  # type: ignore[return-value]


def guard_mark_completed(deal: Deal, confirm_without_settlement: bool) -> DealStatus:
    target = transition(deal.status, DealEvent.MARK_COMPLETED)
    unsettled = deal.financed_px_without_settlement()
    if unsettled and not confirm_without_settlement:
        raise SettlementConfirmationRequired(vrms=unsettled)
    return target  # type: ignore[return-value]


def guard_cancel(deal: Deal, reason: str | None, confirmed: bool) -> DealStatus:
    target = transition(deal.status, DealEvent.CANCEL)
    if deal.status is DealStatus.COMPLETED:
        if not reason or not reason.strip():
            raise CancelReasonRequired("Cancellation reason is required for completed deals")
    elif not confirmed:
        raise ValidationError(
            errors=[
                {
                    "field": "confirmed",
                    "message": "Cancellation must be confirmed",
                    "code": "CONFIRMATION_REQUIRED",
                }
            ]
        )
    return target  # type: ignore[return-value]


def guard_delete(deal: Deal) -> None:
    transition(deal.status, DealEvent.DELETE)
