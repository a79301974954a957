"""Take deposit use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from deal_desk.domain.deal import Deal, Payment, PaymentMethod, PaymentType
from deal_desk.domain.errors import ValidationError
from deal_desk.domain.lifecycle import guard_take_deposit
from deal_desk.domain.money import quantize_money, sum_money
from deal_desk.domain.sales_document import DocumentType, build_deposit_receipt_snapshot
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

OPERATION = "take-deposit"


@dataclass(frozen=True, slots=True)
class TakeDepositRequest:
    dealer_id: str
    deal_id: str
    amount: Decimal
    method: PaymentMethod
    reference: str = ""
    notes: str | None = None
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
class TakeDepositResponse:
    deal_id: str
    payment_id: str
    amount: Decimal
    method: PaymentMethod
    total_deposits: Decimal
    receipt_id: str
    receipt_number: str
    share_url: str | None
    replayed: bool = False

    def to_outcome(self) -> dict[str, Any]:
        return {
            "deal_id": self.deal_id,
            "payment_id": self.payment_id,
            "amount": str(self.amount),
            "method": self.method.value,
            "total_deposits": str(self.total_deposits),
            "receipt_id": self.receipt_id,
            "receipt_number": self.receipt_number,
        }

    @classmethod
    def from_outcome(cls, outcome: dict[str, Any]) -> TakeDepositResponse:
        # Share tokens are not recoverable from their stored hash.
        return cls(
            deal_id=outcome["deal_id"],
            payment_id=outcome["payment_id"],
            amount=Decimal(outcome["amount"]),
            method=PaymentMethod(outcome["method"]),
            total_deposits=Decimal(outcome["total_deposits"]),
            receipt_id=outcome["receipt_id"],
            receipt_number=outcome["receipt_number"],
            share_url=None,
            replayed=True,
        )


class TakeDeposit:
    """
    Record a customer deposit and issue a deposit receipt.

    The payment, the deal status change and the receipt are written in one
    unit of work. Marking the vehicle as in-deal happens after commit; a
    stock failure is logged but does not undo the deposit.
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

    def execute(self, request: TakeDepositRequest) -> TakeDepositResponse:
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
                        "Replaying deposit",
                        extra={"deal_id": request.deal_id, "idempotency_key": request.idempotency_key},
                    )
                    return TakeDepositResponse.from_outcome(stored)

            deal = load_deal(uow, request.dealer_id, request.deal_id)
            target = guard_take_deposit(deal)
            now = self._clock()

            payment = Payment(
                id=new_id(),
                type=PaymentType.DEPOSIT,
                amount=amount,
                method=request.method,
                paid_at=now,
                reference=request.reference,
                notes=request.notes,
            )
            deal = replace(
                deal.with_payment(payment, now),
                status=target,
                deposit_taken_at=deal.deposit_taken_at or now,
            )
            deposits = [p for p in deal.active_payments if p.type is PaymentType.DEPOSIT]

            snapshot = build_deposit_receipt_snapshot(
                deal,
                calculate_totals(deal),
                customer=self._contacts.get_party(deal.dealer_id, deal.customer_id),
                vehicle=self._stock.get_vehicle(deal.dealer_id, deal.vehicle_id),
                deposits=deposits,
            )
            issued = self._issuer.issue(deal, DocumentType.DEPOSIT_RECEIPT, snapshot)

            saved = persist_ledger_change(uow, deal, new=[issued.document], updated=[])

            response = TakeDepositResponse(
                deal_id=saved.id,
                payment_id=payment.id,
                amount=amount,
                method=payment.method,
                total_deposits=sum_money(p.amount for p in deposits),
                receipt_id=issued.document.id,
                receipt_number=issued.document.document_number,
                share_url=issued.share_url,
            )
            if request.idempotency_key:
                uow.idempotency.put(
                    request.dealer_id, OPERATION, request.idempotency_key, response.to_outcome()
                )
            uow.commit()

        logger.info(
            "Deposit taken",
            extra={
                "dealer_id": request.dealer_id,
                "deal_id": saved.id,
                "amount": str(amount),
                "receipt_number": response.receipt_number,
            },
        )
        self._mark_in_deal(saved)
        return response

    def _mark_in_deal(self, deal: Deal) -> None:
        try:
            self._stock.mark_in_deal(deal.dealer_id, deal.vehicle_id, deal.id)
        except Exception as exc:
            logger.error(
                "Failed to mark vehicle in deal",
                exc_info=exc,
                extra={"deal_id": deal.id, "vehicle_id": deal.vehicle_id},
            )
