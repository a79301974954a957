"""Test suite for GenerateInvoice and VoidInvoice use cases."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable

import pytest

from deal_desk.adapters.in_memory_unit_of_work import InMemoryStore
from deal_desk.domain.deal import Deal, DealStatus, FinanceSelection, PaymentMethod
from deal_desk.domain.errors import InvalidTransitionError, PreconditionFailedError
from deal_desk.domain.sales_document import DocumentStatus, DocumentType
from deal_desk.use_cases.generate_invoice import GenerateInvoice, GenerateInvoiceRequest
from deal_desk.use_cases.get_deal import GetDealRequest, ListDealDocuments
from deal_desk.use_cases.void_invoice import VoidInvoice, VoidInvoiceRequest

DEALER_ID = "dealer-1"
DEAL_ID = "11111111-1111-1111-1111-111111111111"
KEY = (DEALER_ID, DEAL_ID)


@pytest.fixture()
def generate(uow, issuer, stock, contacts, clock) -> GenerateInvoice:
    return GenerateInvoice(uow, issuer, stock, contacts, clock)


@pytest.fixture()
def void(uow, clock) -> VoidInvoice:
    return VoidInvoice(uow, clock)


def _generate_request(**kwargs) -> GenerateInvoiceRequest:
    return GenerateInvoiceRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID, **kwargs)


def test_generate_invoice_freezes_figures(
    generate: GenerateInvoice, make_deal: Callable[..., Deal], seed, store: InMemoryStore
) -> None:
    seed(make_deal())

    result = generate.execute(
        _generate_request(
            payment_method=PaymentMethod.FINANCE,
            finance_selection=FinanceSelection(is_financed=True, finance_company_id="fin-1"),
        )
    )

    assert result.invoice_number == "INV00001"
    assert result.grand_total == Decimal("12000.00")
    assert result.balance_due == Decimal("12000.00")
    assert "/public/invoice/" in result.share_url

    deal = store.deals[KEY]
    assert deal.status is DealStatus.INVOICED
    assert deal.invoiced_at is not None
    assert deal.payment_method == "FINANCE"

    snapshot = store.documents[result.invoice_id].snapshot
    assert snapshot["document_number"] == "INV00001"
    assert snapshot["grand_total"] == Decimal("12000.00")
    assert snapshot["finance_selection"]["finance_company_id"] == "fin-1"
    assert snapshot["vehicle"]["vrm"] == "AB12CDE"


def test_generate_invoice_requires_vat_scheme(
    generate: GenerateInvoice, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal(vat_scheme=None))

    with pytest.raises(PreconditionFailedError) as exc_info:
        generate.execute(_generate_request())

    assert exc_info.value.context["field"] == "vatScheme"


def test_generate_invoice_twice_is_an_invalid_transition(
    generate: GenerateInvoice, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal())
    generate.execute(_generate_request())

    with pytest.raises(InvalidTransitionError):
        generate.execute(_generate_request())


def test_void_then_reissue_allocates_a_new_number(
    generate: GenerateInvoice,
    void: VoidInvoice,
    uow,
    make_deal: Callable[..., Deal],
    seed,
    store: InMemoryStore,
) -> None:
    seed(make_deal(status=DealStatus.DEPOSIT_TAKEN))
    generate.execute(_generate_request())

    voided = void.execute(VoidInvoiceRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID))

    assert voided.status is DealStatus.DEPOSIT_TAKEN
    assert voided.voided_invoice_number == "INV00001"
    assert voided.reason == "Voided by user"
    assert store.deals[KEY].invoiced_at is None

    reissued = generate.execute(_generate_request())
    assert reissued.invoice_number == "INV00002"

    documents = ListDealDocuments(uow).execute(GetDealRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID))
    assert [(d.document_number, d.status) for d in documents] == [
        ("INV00001", DocumentStatus.VOID),
        ("INV00002", DocumentStatus.ISSUED),
    ]
    assert all(d.type is DocumentType.INVOICE for d in documents)


def test_void_keeps_given_reason(
    generate: GenerateInvoice, void: VoidInvoice, make_deal: Callable[..., Deal], seed, store
) -> None:
    seed(make_deal())
    result = generate.execute(_generate_request())

    void.execute(VoidInvoiceRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID, reason="  Wrong price "))

    assert store.documents[result.invoice_id].void_reason == "Wrong price"


def test_void_without_active_invoice_fails(
    void: VoidInvoice, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal(status=DealStatus.INVOICED))

    with pytest.raises(PreconditionFailedError):
        void.execute(VoidInvoiceRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID))


def test_void_from_draft_is_an_invalid_transition(
    void: VoidInvoice, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal())

    with pytest.raises(InvalidTransitionError):
        void.execute(VoidInvoiceRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID))
