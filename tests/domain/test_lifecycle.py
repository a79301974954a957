"""Tests for the deal state machine and its guards."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable

import pytest

from deal_desk.domain.deal import Deal, DealStatus, PartExchange
from deal_desk.domain.errors import (
    CancelReasonRequired,
    InvalidTransitionError,
    PreconditionFailedError,
    SettlementConfirmationRequired,
    ValidationError,
)
from deal_desk.domain.lifecycle import (
    DealEvent,
    can_transition,
    guard_cancel,
    guard_delete,
    guard_generate_invoice,
    guard_mark_completed,
    guard_mark_delivered,
    guard_record_balance_payment,
    guard_take_deposit,
    transition,
)

S = DealStatus


# ==============================================================================
# Transition table
# ==============================================================================


@pytest.mark.parametrize(
    "status, event, target",
    [
        (S.DRAFT, DealEvent.TAKE_DEPOSIT, S.DEPOSIT_TAKEN),
        (S.DEPOSIT_TAKEN, DealEvent.TAKE_DEPOSIT, S.DEPOSIT_TAKEN),
        (S.DRAFT, DealEvent.GENERATE_INVOICE, S.INVOICED),
        (S.DEPOSIT_TAKEN, DealEvent.GENERATE_INVOICE, S.INVOICED),
        (S.INVOICED, DealEvent.VOID_INVOICE, S.DEPOSIT_TAKEN),
        (S.INVOICED, DealEvent.MARK_DELIVERED, S.DELIVERED),
        (S.DELIVERED, DealEvent.MARK_COMPLETED, S.COMPLETED),
        (S.COMPLETED, DealEvent.CANCEL, S.CANCELLED),
        (S.DELIVERED, DealEvent.RECORD_BALANCE_PAYMENT, S.DELIVERED),
        (S.DRAFT, DealEvent.DELETE, None),
    ],
)
def test_allowed_transitions(status: DealStatus, event: DealEvent, target: DealStatus | None) -> None:
    assert transition(status, event) is target


@pytest.mark.parametrize(
    "status, event",
    [
        (S.INVOICED, DealEvent.TAKE_DEPOSIT),
        (S.INVOICED, DealEvent.GENERATE_INVOICE),
        (S.DEPOSIT_TAKEN, DealEvent.VOID_INVOICE),
        (S.DEPOSIT_TAKEN, DealEvent.MARK_DELIVERED),
        (S.INVOICED, DealEvent.MARK_COMPLETED),
        (S.CANCELLED, DealEvent.CANCEL),
        (S.CANCELLED, DealEvent.RECORD_BALANCE_PAYMENT),
        (S.DEPOSIT_TAKEN, DealEvent.DELETE),
    ],
)
def test_illegal_transitions_raise(status: DealStatus, event: DealEvent) -> None:
    assert not can_transition(status, event)

    with pytest.raises(InvalidTransitionError) as exc_info:
        transition(status, event)

    assert exc_info.value.context == {"status": status.value, "event": event.value}


def test_cancelled_is_terminal() -> None:
    assert not any(can_transition(S.CANCELLED, event) for event in DealEvent)


# ==============================================================================
# Guards
# ==============================================================================


def test_take_deposit_requires_customer(make_deal: Callable[..., Deal]) -> None:
    with pytest.raises(PreconditionFailedError) as exc_info:
        guard_take_deposit(make_deal(customer_id=None))

    assert exc_info.value.context["field"] == "customerId"


def test_take_deposit_requires_price(make_deal: Callable[..., Deal]) -> None:
    with pytest.raises(PreconditionFailedError, match="Vehicle price is required"):
        guard_take_deposit(make_deal(price=None))


def test_generate_invoice_requires_vat_scheme(make_deal: Callable[..., Deal]) -> None:
    with pytest.raises(PreconditionFailedError, match="VAT scheme is required"):
        guard_generate_invoice(make_deal(vat_scheme=None))


def test_balance_payment_requires_customer(make_deal: Callable[..., Deal]) -> None:
    with pytest.raises(PreconditionFailedError):
        guard_record_balance_payment(make_deal(status=S.INVOICED, customer_id=None))


def test_mark_delivered_requires_customer_confirmation(make_deal: Callable[..., Deal]) -> None:
    deal = make_deal(status=S.INVOICED)

    with pytest.raises(ValidationError):
        guard_mark_delivered(deal, customer_confirmed=False)
    assert guard_mark_delivered(deal, customer_confirmed=True) is S.DELIVERED


def test_mark_completed_requires_settlement_in_writing(make_deal: Callable[..., Deal]) -> None:
    deal = make_deal(
        status=S.DELIVERED,
        part_exchanges=(
            PartExchange(
                vrm="xy99 zzz",
                allowance=Decimal("3000"),
                settlement=Decimal("1200"),
                has_finance=True,
                finance_company_id="fin-1",
            ),
        ),
    )

    with pytest.raises(SettlementConfirmationRequired) as exc_info:
        guard_mark_completed(deal, confirm_without_settlement=False)

    assert exc_info.value.error_code == "SETTLEMENT_CONFIRMATION_REQUIRED"
    assert exc_info.value.context["vrms"] == ["XY99ZZZ"]
    assert guard_mark_completed(deal, confirm_without_settlement=True) is S.COMPLETED


def test_cancel_completed_requires_reason(make_deal: Callable[..., Deal]) -> None:
    deal = make_deal(status=S.COMPLETED)

    with pytest.raises(CancelReasonRequired):
        guard_cancel(deal, reason="   ", confirmed=True)
    assert guard_cancel(deal, reason="Customer rejected vehicle", confirmed=False) is S.CANCELLED


def test_cancel_open_deal_requires_confirmation(make_deal: Callable[..., Deal]) -> None:
    deal = make_deal(status=S.DEPOSIT_TAKEN)

    with pytest.raises(ValidationError):
        guard_cancel(deal, reason=None, confirmed=False)
    assert guard_cancel(deal, reason=None, confirmed=True) is S.CANCELLED


def test_delete_only_from_draft(make_deal: Callable[..., Deal]) -> None:
    guard_delete(make_deal())

    with pytest.raises(InvalidTransitionError):
        guard_delete(make_deal(status=S.DEPOSIT_TAKEN))
