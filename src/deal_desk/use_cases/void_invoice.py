"""Void invoice use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from deal_desk.domain.deal import DealStatus
from deal_desk.domain.errors import PreconditionFailedError
from deal_desk.domain.lifecycle import DealEvent, transition
from deal_desk.domain.sales_document import DocumentType, void_document
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.use_cases.common import Clock, load_deal, persist_ledger_change, utc_now

logger = logging.getLogger(__name__)

DEFAULT_VOID_REASON = "Voided by user"


@dataclass(frozen=True, slots=True)
class VoidInvoiceRequest:
    dealer_id: str
    deal_id: str
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class VoidInvoiceResponse:
    deal_id: str
    status: DealStatus
    voided_invoice_number: str
    reason: str


class VoidInvoice:
    """
    Void the active invoice and reopen the deal.

    The voided invoice keeps its number; the next invoice for the deal is
    allocated a new, strictly greater one.
    """

    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    def execute(self, request: VoidInvoiceRequest) -> VoidInvoiceResponse:
        reason = (request.reason or "").strip() or DEFAULT_VOID_REASON

        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            target = transition(deal.status, DealEvent.VOID_INVOICE)

            invoice = uow.documents.latest_active(deal.dealer_id, deal.id, DocumentType.INVOICE)
            if invoice is None:
                raise PreconditionFailedError("No active invoice to void", deal_id=deal.id)

            now = self._clock()
            voided = void_document(invoice, reason, now)
            deal = replace(deal, status=target, invoiced_at=None, updated_at=now)

            saved = persist_ledger_change(uow, deal, new=[], updated=[voided])
            uow.commit()

        logger.info(
            "Invoice voided",
            extra={
                "dealer_id": saved.dealer_id,
                "deal_id": saved.id,
                "invoice_number": voided.document_number,
                "reason": reason,
            },
        )
        return VoidInvoiceResponse(
            deal_id=saved.id,
            status=saved.status,
            voided_invoice_number=voided.document_number,
            reason=reason,
        )
