"""Generate invoice use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal

from deal_desk.domain.deal import FinanceSelection, PaymentMethod
from deal_desk.domain.lifecycle import guard_generate_invoice
from deal_desk.domain.sales_document import DocumentType, build_invoice_snapshot
from deal_desk.domain.totals import calculate_totals
from deal_desk.ports.contact_directory import ContactDirectory
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.common import (
    Clock,
    DocumentIssuer,
    load_deal,
    persist_ledger_change,
    utc_now,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GenerateInvoiceRequest:
    dealer_id: str
    deal_id: str
    payment_method: PaymentMethod | None = None
    finance_selection: FinanceSelection | None = None


@dataclass(frozen=True, slots=True)
class GenerateInvoiceResponse:
    deal_id: str
    invoice_id: str
    invoice_number: str
    grand_total: Decimal
    balance_due: Decimal
    share_url: str


class GenerateInvoice:
    """Freeze the deal's current figures into a newly numbered invoice."""

    def __init__(
        self,
        uow: UnitOfWork,
        issuer: DocumentIssuer,
        stock: VehicleStock,
        contacts: ContactDirectory,
        clock: Clock = utc_now,
    ) -> None:
        self._uow = uow
        self._issuer = issuer
        self._stock = stock
        self._contacts = contacts
        self._clock = clock

    def execute(self, request: GenerateInvoiceRequest) -> GenerateInvoiceResponse:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            target = guard_generate_invoice(deal)
            now = self._clock()

            deal = replace(
                deal,
                status=target,
                invoiced_at=now,
                updated_at=now,
                payment_method=(
                    request.payment_method.value if request.payment_method else deal.payment_method
                ),
                finance_selection=request.finance_selection or deal.finance_selection,
            )
            totals = calculate_totals(deal)
            customer = self._contacts.get_party(deal.dealer_id, deal.customer_id)
            invoice_to = (
                self._contacts.get_party(deal.dealer_id, deal.invoice_to_id)
                if deal.invoice_to_id
                else None
            )
            snapshot = build_invoice_snapshot(
                deal,
                totals,
                customer=customer,
                invoice_to=invoice_to,
                vehicle=self._stock.get_vehicle(deal.dealer_id, deal.vehicle_id),
            )
            issued = self._issuer.issue(deal, DocumentType.INVOICE, snapshot)

            saved = persist_ledger_change(uow, deal, new=[issued.document], updated=[])
            uow.commit()

        logger.info(
            "Invoice generated",
            extra={
                "dealer_id": saved.dealer_id,
                "deal_id": saved.id,
                "invoice_number": issued.document.document_number,
                "grand_total": str(totals.grand_total),
            },
        )
        return GenerateInvoiceResponse(
            deal_id=saved.id,
            invoice_id=issued.document.id,
            invoice_number=issued.document.document_number,
            grand_total=totals.grand_total,
            balance_due=totals.balance_due,
            share_url=issued.share_url,
        )
