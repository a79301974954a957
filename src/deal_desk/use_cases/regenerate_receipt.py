"""Regenerate deposit receipt use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal

from deal_desk import config
from deal_desk.domain.deal import PaymentType
from deal_desk.domain.errors import NotFoundError
from deal_desk.domain.money import sum_money
from deal_desk.domain.sales_document import DocumentType, build_deposit_receipt_snapshot
from deal_desk.domain.totals import calculate_totals
from deal_desk.ports.contact_directory import ContactDirectory
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.common import Clock, load_deal, new_share_token, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegenerateReceiptRequest:
    dealer_id: str
    deal_id: str


@dataclass(frozen=True, slots=True)
class RegenerateReceiptResponse:
    document_id: str
    document_number: str
    total_paid: Decimal
    balance_due: Decimal
    share_url: str


class RegenerateReceipt:
    """
    Refresh the active deposit receipt with the deal's current pricing.

    The receipt keeps its number and the payments it originally acknowledged.
    Its totals are recomputed from non-refunded deposits, and the share token
    is rotated because only a hash of the previous one is stored.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        stock: VehicleStock,
        contacts: ContactDirectory,
        clock: Clock = utc_now,
    ) -> None:
        self._uow = uow
        self._stock = stock
        self._contacts = contacts
        self._clock = clock

    def execute(self, request: RegenerateReceiptRequest) -> RegenerateReceiptResponse:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            receipt = uow.documents.latest_active(
                deal.dealer_id, deal.id, DocumentType.DEPOSIT_RECEIPT
            )
            if receipt is None:
                raise NotFoundError(resource="Deposit receipt", identifier=deal.id)

            totals = calculate_totals(deal)
            deposits = [p for p in deal.active_payments if p.type is PaymentType.DEPOSIT]
            deposit_total = sum_money(p.amount for p in deposits)

            snapshot = build_deposit_receipt_snapshot(
                deal,
                totals,
                customer=self._contacts.get_party(deal.dealer_id, deal.customer_id),
                vehicle=self._stock.get_vehicle(deal.dealer_id, deal.vehicle_id),
                deposits=deposits,
            )
            snapshot.update(
                document_number=receipt.document_number,
                payments=receipt.snapshot.get("payments", []),
                total_paid=deposit_total,
            )

            share_token, share_token_hash = new_share_token()
            now = self._clock()
            saved = uow.documents.save(
                replace(
                    receipt,
                    snapshot=snapshot,
                    share_token_hash=share_token_hash,
                    updated_at=now,
                )
            )
            uow.commit()

        logger.info(
            "Deposit receipt regenerated",
            extra={"deal_id": deal.id, "document_number": saved.document_number},
        )
        return RegenerateReceiptResponse(
            document_id=saved.id,
            document_number=saved.document_number,
            total_paid=deposit_total,
            balance_due=snapshot["balance_due"],
            share_url=config.share_url(DocumentType.DEPOSIT_RECEIPT, share_token),
        )
