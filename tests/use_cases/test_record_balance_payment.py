"""Test suite for RecordBalancePayment use case."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable
from unittest.mock import patch

import pytest

from deal_desk.adapters.in_memory_document_numbering import InMemoryDocumentNumbering
from deal_desk.adapters.in_memory_unit_of_work import (
    InMemorySalesDocumentRepository,
    InMemoryStore,
)
from deal_desk.domain.deal import AddOn, Deal, DealStatus, Payment, PaymentMethod, PaymentType
from deal_desk.domain.errors import (
    ConflictError,
    InvalidTransitionError,
    ReconciliationError,
)
from deal_desk.domain.sales_document import DocumentType
from deal_desk.use_cases.generate_invoice import GenerateInvoice, GenerateInvoiceRequest
from deal_desk.use_cases.record_balance_payment import (
    RecordBalancePayment,
    RecordBalancePaymentRequest,
)

DEALER_ID = "dealer-1"
DEAL_ID = "11111111-1111-1111-1111-111111111111"
KEY = (DEALER_ID, DEAL_ID)

DEPOSIT = Payment(
    id="pay-dep",
    type=PaymentType.DEPOSIT,
    amount=Decimal("500.00"),
    method=PaymentMethod.CARD,
    paid_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
)
PAINT_PROTECTION = AddOn(name="Paint protection", unit_price_net=Decimal("300.00"))


@pytest.fixture()
def use_case(uow, issuer, stock, contacts, clock) -> RecordBalancePayment:
    return RecordBalancePayment(uow, issuer, stock, contacts, clock)


@pytest.fixture()
def invoiced_deal(uow, issuer, stock, contacts, clock, make_deal: Callable[..., Deal], seed) -> str:
    """£12,360 deal with a £500 deposit and an issued invoice; returns the invoice id."""
    seed(
        make_deal(
            status=DealStatus.DEPOSIT_TAKEN,
            add_ons=(PAINT_PROTECTION,),
            payments=(DEPOSIT,),
        )
    )
    result = GenerateInvoice(uow, issuer, stock, contacts, clock).execute(
        GenerateInvoiceRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID)
    )
    return result.invoice_id


def _request(amount: str, **kwargs) -> RecordBalancePaymentRequest:
    return RecordBalancePaymentRequest(
        dealer_id=DEALER_ID,
        deal_id=DEAL_ID,
        amount=Decimal(amount),
        method=PaymentMethod.BANK_TRANSFER,
        **kwargs,
    )


# ==============================================================================
# Against an issued invoice
# ==============================================================================


def test_final_payment_settles_invoice(
    use_case: RecordBalancePayment, invoiced_deal: str, store: InMemoryStore
) -> None:
    result = use_case.execute(_request("11860.00", reference="BACS-77"))

    assert result.balance_before == Decimal("11860.00")
    assert result.balance_after == Decimal("0.00")
    assert result.is_full_payment is True
    assert result.total_paid == Decimal("12360.00")
    assert result.grand_total == Decimal("12360.00")
    assert result.receipt.document_number == "PAY00001"
    assert result.message == "Payment recorded - balance paid in full"

    invoice = store.documents[invoiced_deal]
    assert invoice.paid_at == datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)
    assert invoice.snapshot["balance_due"] == Decimal("0.00")
    assert invoice.snapshot["total_paid"] == Decimal("12360.00")
    assert invoice.snapshot["other_payments"] == Decimal("11860.00")
    assert len(invoice.snapshot["payments"]) == 2

    receipt = store.documents[result.receipt.id]
    assert receipt.snapshot["payment_receipt"]["invoice_number"] == "INV00001"
    assert receipt.snapshot["balance_due"] == Decimal("0.00")

    # Payments do not move the deal through the lifecycle.
    assert store.deals[KEY].status is DealStatus.INVOICED


def test_part_payment_leaves_invoice_open(
    use_case: RecordBalancePayment, invoiced_deal: str, store: InMemoryStore
) -> None:
    result = use_case.execute(_request("1000"))

    assert result.balance_after == Decimal("10860.00")
    assert result.is_full_payment is False
    assert result.message == "Payment recorded - remaining balance: £10,860.00"
    assert store.documents[invoiced_deal].paid_at is None
    assert store.documents[invoiced_deal].snapshot["balance_due"] == Decimal("10860.00")


def test_overpayment_is_clamped_in_response(
    use_case: RecordBalancePayment, invoiced_deal: str, store: InMemoryStore
) -> None:
    result = use_case.execute(_request("12000"))

    assert result.balance_after == Decimal("0.00")
    assert result.is_full_payment is True
    # The invoice keeps the signed figure so the credit stays visible.
    assert store.documents[invoiced_deal].snapshot["balance_due"] == Decimal("-140.00")


def test_unreferenced_payment_is_referenced_by_its_receipt_number(
    use_case: RecordBalancePayment, invoiced_deal: str, store: InMemoryStore
) -> None:
    result = use_case.execute(_request("100"))

    receipt = store.documents[result.receipt.id]
    assert receipt.snapshot["payment_receipt"]["payment_reference"] == "PAY00001"


def test_payment_without_receipt_allocates_no_number(
    use_case: RecordBalancePayment, invoiced_deal: str, numbering: InMemoryDocumentNumbering
) -> None:
    result = use_case.execute(_request("100", generate_receipt=False))

    assert result.receipt is None
    assert numbering.current(DEALER_ID, DocumentType.PAYMENT_RECEIPT) == 0


def test_replayed_payment_is_recorded_once(
    use_case: RecordBalancePayment, invoiced_deal: str, store: InMemoryStore
) -> None:
    first = use_case.execute(_request("100", idempotency_key="k-1"))
    second = use_case.execute(_request("100", idempotency_key="k-1"))

    assert second.replayed is True
    assert second.payment_id == first.payment_id
    assert second.receipt.document_number == first.receipt.document_number
    assert second.receipt.share_url is None
    assert len(store.deals[KEY].payments) == 2


# ==============================================================================
# Without an invoice
# ==============================================================================


def test_payment_before_invoice_uses_live_totals(
    use_case: RecordBalancePayment, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal(status=DealStatus.DEPOSIT_TAKEN, payments=(DEPOSIT,)))

    result = use_case.execute(_request("1500"))

    assert result.grand_total == Decimal("12000.00")
    assert result.balance_before == Decimal("11500.00")
    assert result.balance_after == Decimal("10000.00")
    assert result.receipt.document_number == "PAY00001"


def test_payment_on_cancelled_deal_is_rejected(
    use_case: RecordBalancePayment, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal(status=DealStatus.CANCELLED))

    with pytest.raises(InvalidTransitionError):
        use_case.execute(_request("100"))


def test_reused_key_on_another_deal_is_a_conflict(
    use_case: RecordBalancePayment,
    invoiced_deal: str,
    make_deal: Callable[..., Deal],
    seed,
    store: InMemoryStore,
) -> None:
    other_id = "22222222-2222-2222-2222-222222222222"
    seed(make_deal(id=other_id, deal_number=2, status=DealStatus.DEPOSIT_TAKEN, payments=(DEPOSIT,)))
    use_case.execute(_request("100", idempotency_key="k-1"))

    with pytest.raises(ConflictError) as exc_info:
        use_case.execute(replace(_request("100", idempotency_key="k-1"), deal_id=other_id))

    assert exc_info.value.error_code == "CONFLICT"
    assert store.deals[(DEALER_ID, other_id)].payments == (DEPOSIT,)


def test_reused_key_with_another_amount_is_a_conflict(
    use_case: RecordBalancePayment, invoiced_deal: str, store: InMemoryStore
) -> None:
    use_case.execute(_request("100", idempotency_key="k-1"))

    with pytest.raises(ConflictError):
        use_case.execute(_request("5000", idempotency_key="k-1"))

    assert [p.amount for p in store.deals[KEY].payments] == [Decimal("500.00"), Decimal("100.00")]
    assert store.documents[invoiced_deal].snapshot["balance_due"] == Decimal("11760.00")


def test_invoice_write_failure_leaves_ledger_and_invoice_untouched(
    use_case: RecordBalancePayment, invoiced_deal: str, store: InMemoryStore
) -> None:
    invoice_before = store.documents[invoiced_deal]
    version_before = store.deals[KEY].version

    with patch.object(
        InMemorySalesDocumentRepository, "save", side_effect=RuntimeError("write failed")
    ) as save:
        with pytest.raises(ReconciliationError):
            use_case.execute(_request("1000"))

    save.assert_called_once()
    assert store.deals[KEY].payments == (DEPOSIT,)
    assert store.deals[KEY].version == version_before
    assert store.documents[invoiced_deal] == invoice_before
    assert store.documents[invoiced_deal].snapshot["balance_due"] == Decimal("11860.00")
    assert [d.type for d in store.documents.values()] == [DocumentType.INVOICE]
