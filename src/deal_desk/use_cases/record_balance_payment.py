"""Record balance payment use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from deal_desk.domain.deal import Payment, PaymentMethod, PaymentType
from deal_desk.domain.errors import ValidationError
from deal_desk.domain.lifecycle import guard_record_balance_payment
from deal_desk.domain.money import ZERO, format_gbp, is_settled, quantize_money
from deal_desk.domain.sales_document import (
    DocumentType,
    SalesDocument,
    apply_payment_to_invoice,
    build_payment_receipt_snapshot,
    snapshot_money,
)
from deal_desk.domain.totals import calculate_totals
from deal_desk.ports.contact_directory import ContactDirectory
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.common import (
    Clock,
    DocumentIssuer,
    ensure_same_payment,
    load_deal,
    new_id,
    persist_ledger_change,
    utc_now,
)

logger = logging.getLogger(__name__)

OPERATION = "record-balance-payment"


@dataclass(frozen=True, slots=True)
class RecordBalancePaymentRequest:
    dealer_id: str
    deal_id: str
    amount: Decimal
    method: PaymentMethod
    reference: str = ""
    notes: str | None = None
    generate_receipt: bool = True
    idempotency_key: str | None = None

    def validate(self) -> None:
        errors = []
        if self.amount is None or self.amount <= 0:
            errors.append({"field": "amount", "message": "Must be > 0", "code": "INVALID_VALUE"})
        if self.method is None:
            errors.append({"field": "method", "message": "Payment method is required", "code": "REQUIRED"})
        if errors:
            raise ValidationError(errors=errors)


@dataclass(frozen=True, slots=True)
class IssuedReceipt:
    id: str
    document_number: str
    share_url: str | None


@dataclass(frozen=True, slots=True)
class RecordBalancePaymentResponse:
    deal_id: str
    payment_id: str
    amount: Decimal
    method: PaymentMethod
    reference: str
    paid_at: datetime
    balance_before: Decimal
    balance_after: Decimal
    is_full_payment: bool
    total_paid: Decimal
    grand_total: Decimal
    receipt: IssuedReceipt | None
    replayed: bool = False

    @property
    def message(self) -> str:
        if self.is_full_payment:
            return "Payment recorded - balance paid in full"
        return f"Payment recorded - remaining balance: {format_gbp(self.balance_after)}"

    def to_outcome(self) -> dict[str, Any]:
        return {
            "deal_id": self.deal_id,
            "payment_id": self.payment_id,
            "amount": str(self.amount),
            "method": self.method.value,
            "reference": self.reference,
            "paid_at": self.paid_at.isoformat(),
            "balance_before": str(self.balance_before),
            "balance_after": str(self.balance_after),
            "is_full_payment": self.is_full_payment,
            "total_paid": str(self.total_paid),
            "grand_total": str(self.grand_total),
            "receipt": (
                {"id": self.receipt.id, "document_number": self.receipt.document_number}
                if self.receipt
                else None
            ),
        }

    @classmethod
    def from_outcome(cls, outcome: dict[str, Any]) -> RecordBalancePaymentResponse:
        receipt = outcome.get("receipt")
        return cls(
            deal_id=outcome["deal_id"],
            payment_id=outcome["payment_id"],
            amount=Decimal(outcome["amount"]),
            method=PaymentMethod(outcome["method"]),
            reference=outcome["reference"],
            paid_at=datetime.fromisoformat(outcome["paid_at"]),
            balance_before=Decimal(outcome["balance_before"]),
            balance_after=Decimal(outcome["balance_after"]),
            is_full_payment=outcome["is_full_payment"],
            total_paid=Decimal(outcome["total_paid"]),
            grand_total=Decimal(outcome["grand_total"]),
            receipt=(
                IssuedReceipt(
                    id=receipt["id"], document_number=receipt["document_number"], share_url=None
                )
                if receipt
                else None
            ),
            replayed=True,
        )


class RecordBalancePayment:
    """
    Append a balance payment to the ledger and reconcile issued documents.

    Figures are taken from the active invoice snapshot when one exists, so the
    balance the customer was invoiced for is the balance the payment reduces.
    The payment, the optional payment receipt and the invoice snapshot update
    commit together or not at all.
    """

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

    def execute(self, request: RecordBalancePaymentRequest) -> RecordBalancePaymentResponse:
        request.validate()
        amount = quantize_money(request.amount)

        with self._uow as uow:
            if request.idempotency_key:
                stored = uow.idempotency.get(request.dealer_id, OPERATION, request.idempotency_key)
                if stored is not None:
                    ensure_same_payment(
                        stored,
                        idempotency_key=request.idempotency_key,
                        deal_id=request.deal_id,
                        amount=amount,
                        method=request.method,
                    )
                    logger.info(
                        "Replaying balance payment",
                        extra={"deal_id": request.deal_id, "idempotency_key": request.idempotency_key},
                    )
                    return RecordBalancePaymentResponse.from_outcome(stored)

            deal = load_deal(uow, request.dealer_id, request.deal_id)
            guard_record_balance_payment(deal)

            invoice = uow.documents.latest_active(deal.dealer_id, deal.id, DocumentType.INVOICE)
            live = calculate_totals(deal)
            if invoice is not None:
                grand_total = snapshot_money(invoice.snapshot.get("grand_total"))
                px_net_value = snapshot_money(invoice.snapshot.get("part_exchange_net"))
            else:
                grand_total = live.grand_total
                px_net_value = live.px_net_value

            total_paid_before = live.total_paid
            balance_before = grand_total - total_paid_before - px_net_value
            balance_after = balance_before - amount
            is_full_payment = is_settled(balance_after)

            now = self._clock()
            payment = Payment(
                id=new_id(),
                type=PaymentType.BALANCE,
                amount=amount,
                method=request.method,
                paid_at=now,
                reference=request.reference,
                notes=request.notes,
            )
            deal = deal.with_payment(payment, now)

            new_documents: list[SalesDocument] = []
            receipt: IssuedReceipt | None = None
            if request.generate_receipt:
                snapshot = build_payment_receipt_snapshot(
                    deal,
                    payment,
                    customer=self._contacts.get_party(deal.dealer_id, deal.customer_id),
                    vehicle=self._stock.get_vehicle(deal.dealer_id, deal.vehicle_id),
                    invoice_number=invoice.document_number if invoice else None,
                    grand_total=grand_total,
                    total_paid=total_paid_before + amount,
                    balance_before=balance_before,
                    balance_after=balance_after,
                    is_full_payment=is_full_payment,
                )
                issued = self._issuer.issue(deal, DocumentType.PAYMENT_RECEIPT, snapshot)
                new_documents.append(issued.document)
                receipt = IssuedReceipt(
                    id=issued.document.id,
                    document_number=issued.document.document_number,
                    share_url=issued.share_url,
                )

            updated_documents: list[SalesDocument] = []
            if invoice is not None:
                updated_documents.append(
                    apply_payment_to_invoice(invoice, payment, fully_paid=is_full_payment, at=now)
                )

            saved = persist_ledger_change(uow, deal, new=new_documents, updated=updated_documents)

            response = RecordBalancePaymentResponse(
                deal_id=saved.id,
                payment_id=payment.id,
                amount=amount,
                method=payment.method,
                reference=payment.reference,
                paid_at=now,
                balance_before=balance_before,
                balance_after=max(ZERO, balance_after),
                is_full_payment=is_full_payment,
                total_paid=total_paid_before + amount,
                grand_total=grand_total,
                receipt=receipt,
            )
            if request.idempotency_key:
                uow.idempotency.put(
                    request.dealer_id, OPERATION, request.idempotency_key, response.to_outcome()
                )
            uow.commit()

        logger.info(
            "Balance payment recorded",
            extra={
                "dealer_id": request.dealer_id,
                "deal_id": response.deal_id,
                "amount": str(amount),
                "balance_after": str(response.balance_after),
                "is_full_payment": is_full_payment,
                "invoice_number": invoice.document_number if invoice else None,
            },
        )
        return response
