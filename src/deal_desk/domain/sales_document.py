"""Sales documents and their frozen snapshots.

A snapshot is captured when a document is issued and afterwards only changes
through explicit reconciliation (``apply_payment_to_invoice``). It is never
rebuilt from the live deal, so an issued invoice total cannot drift.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from deal_desk.domain.deal import Deal, Payment, PaymentType
from deal_desk.domain.errors import PreconditionFailedError
from deal_desk.domain.money import ZERO, quantize_money
from deal_desk.domain.party import Party
from deal_desk.domain.stock import StockVehicle
from deal_desk.domain.totals import Totals, add_on_net, add_on_vat, effective_vat_rate

Snapshot = dict[str, Any]


class DocumentType(str, Enum):
    DEPOSIT_RECEIPT = "DEPOSIT_RECEIPT"
    INVOICE = "INVOICE"
    PAYMENT_RECEIPT = "PAYMENT_RECEIPT"


class DocumentStatus(str, Enum):
    ISSUED = "ISSUED"
    VOID = "VOID"


@dataclass(frozen=True, slots=True)
class AllocatedNumber:
    number: int
    prefix: str
    document_number: str

    @classmethod
    def format(cls, prefix: str, number: int) -> AllocatedNumber:
        return cls(number=number, prefix=prefix, document_number=f"{prefix}{number:05d}")


@dataclass(frozen=True, slots=True)
class SalesDocument:
    id: str
    dealer_id: str
    deal_id: str
    type: DocumentType
    document_number: str
    sequence: int
    issued_at: datetime
    snapshot: Snapshot
    status: DocumentStatus = DocumentStatus.ISSUED
    paid_at: datetime | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    share_token_hash: str | None = None
    updated_at: datetime | None = None
    version: int = field(default=0, compare=False)

    @property
    def is_void(self) -> bool:
        return self.status is DocumentStatus.VOID


def void_document(document: SalesDocument, reason: str, at: datetime) -> SalesDocument:
    if document.is_void:
        raise PreconditionFailedError(
            "Document is already void", document_number=document.document_number
        )
    return replace(
        document,
        status=DocumentStatus.VOID,
        voided_at=at,
        void_reason=reason,
        updated_at=at,
    )


def snapshot_money(value: Any) -> Decimal:
    """Read a money figure from a snapshot (stored as Decimal or decimal string)."""
    if value is None:
        return ZERO
    return quantize_money(Decimal(str(value)))


# ==============================================================================
# Snapshot sections
# ==============================================================================


def payment_entry(payment: Payment) -> dict[str, Any]:
    return {
        "id": payment.id,
        "type": payment.type.value,
        "amount": payment.amount,
        "method": payment.method.value,
        "paid_at": payment.paid_at.isoformat(),
        "reference": payment.reference,
    }


def party_entry(party: Party | None, fallback_id: str | None = None) -> dict[str, Any] | None:
    if party is None:
        return {"id": fallback_id} if fallback_id else None
    return {
        "id": party.id,
        "name": party.name,
        "company_name": party.company_name,
        "email": party.email,
        "phone": party.phone,
        "address": party.address,
    }


def vehicle_entry(vehicle: StockVehicle | None, vehicle_id: str) -> dict[str, Any]:
    if vehicle is None:
        return {"id": vehicle_id}
    return {
        "id": vehicle.id,
        "vrm": vehicle.vrm,
        "make": vehicle.make,
        "model": vehicle.model,
        "year": vehicle.year,
        "mileage": vehicle.mileage,
    }


def _pricing_section(deal: Deal, totals: Totals) -> Snapshot:
    delivery = deal.delivery
    warranty = deal.warranty
    return {
        "deal_number": deal.deal_number,
        "vat_scheme": deal.vat_scheme.value if deal.vat_scheme else None,
        "sale_type": deal.sale_type.value if deal.sale_type else None,
        "buyer_use": deal.buyer_use.value,
        "sale_channel": deal.sale_channel.value,
        "vehicle_price_gross": deal.vehicle_price_gross,
        "vehicle_price_net": deal.vehicle_price_net,
        "vehicle_vat_amount": deal.vehicle_vat_amount,
        "add_ons": [
            {
                "name": a.name,
                "qty": a.qty,
                "unit_price_net": a.unit_price_net,
                "vat_treatment": a.vat_treatment.value,
                "vat_rate": effective_vat_rate(a),
                "line_net": add_on_net(a),
                "line_vat": add_on_vat(a),
            }
            for a in deal.add_ons
        ],
        "add_ons_net_total": totals.add_ons_net_total,
        "add_ons_vat_total": totals.add_ons_vat_total,
        "delivery": (
            {
                "is_free": delivery.is_free,
                "amount_gross": delivery.amount_gross,
                "amount_net": delivery.amount_net,
                "vat_amount": delivery.vat_amount,
                "notes": delivery.notes,
            }
            if delivery
            else None
        ),
        "delivery_amount": totals.delivery_amount,
        "warranty": (
            {
                "type": warranty.type.value,
                "name": warranty.name,
                "duration_months": warranty.duration_months,
                "claim_limit": warranty.claim_limit,
                "price_gross": warranty.price_gross,
                "is_default": warranty.is_default,
            }
            if warranty and warranty.included
            else None
        ),
        "warranty_amount": totals.warranty_amount,
        "part_exchanges": [
            {
                "vrm": px.normalized_vrm,
                "make": px.make,
                "model": px.model,
                "year": px.year,
                "mileage": px.mileage,
                "allowance": px.allowance,
                "settlement": px.settlement,
                "vat_qualifying": px.vat_qualifying,
                "has_finance": px.has_finance,
                "finance_company_id": px.finance_company_id,
                "has_settlement_in_writing": px.has_settlement_in_writing,
            }
            for px in deal.part_exchanges
        ],
        "part_exchange_net": totals.px_net_value,
        "finance_selection": (
            {
                "is_financed": deal.finance_selection.is_financed,
                "finance_company_id": deal.finance_selection.finance_company_id,
                "to_be_confirmed": deal.finance_selection.to_be_confirmed,
            }
            if deal.finance_selection and deal.finance_selection.is_financed
            else None
        ),
        "requests": [
            {"title": r.title, "details": r.details, "type": r.type, "status": r.status.value}
            for r in deal.requests
        ],
        "subtotal": totals.subtotal,
        "total_vat": totals.total_vat,
        "grand_total": totals.grand_total,
    }


# ==============================================================================
# Snapshot builders
# ==============================================================================


def build_deposit_receipt_snapshot(
    deal: Deal,
    totals: Totals,
    *,
    customer: Party | None,
    vehicle: StockVehicle | None,
    deposits: list[Payment],
) -> Snapshot:
    """Deposit receipt: full pricing plus the deposits it acknowledges."""
    deposit_total = sum((p.amount for p in deposits), ZERO)
    return {
        **_pricing_section(deal, totals),
        "vehicle": vehicle_entry(vehicle, deal.vehicle_id),
        "customer": party_entry(customer, deal.customer_id),
        "payments": [payment_entry(p) for p in deposits],
        "total_paid": deposit_total,
        "balance_due": totals.grand_total - deposit_total - totals.px_net_value,
    }


def build_invoice_snapshot(
    deal: Deal,
    totals: Totals,
    *,
    customer: Party | None,
    invoice_to: Party | None,
    vehicle: StockVehicle | None,
) -> Snapshot:
    return {
        **_pricing_section(deal, totals),
        "vehicle": vehicle_entry(vehicle, deal.vehicle_id),
        "customer": party_entry(customer, deal.customer_id),
        "invoice_to": party_entry(invoice_to, deal.invoice_to_id),
        "payment_method": deal.payment_method,
        "payments": [payment_entry(p) for p in deal.active_payments],
        "total_paid": totals.total_paid,
        "deposit_paid": totals.deposit_paid,
        "other_payments": totals.other_payments,
        "finance_advance": totals.finance_advance,
        "balance_due": totals.balance_due,
    }


def stamp_document_number(snapshot: Snapshot, document_number: str) -> Snapshot:
    """Record the allocated number; a receipt for an unreferenced payment is referenced by it."""
    stamped = {**snapshot, "document_number": document_number}
    receipt = snapshot.get("payment_receipt")
    if receipt is not None and not receipt.get("payment_reference"):
        stamped["payment_receipt"] = {**receipt, "payment_reference": document_number}
    return stamped


def build_payment_receipt_snapshot(
    deal: Deal,
    payment: Payment,
    *,
    customer: Party | None,
    vehicle: StockVehicle | None,
    invoice_number: str | None,
    grand_total: Decimal,
    total_paid: Decimal,
    balance_before: Decimal,
    balance_after: Decimal,
    is_full_payment: bool,
) -> Snapshot:
    reported_after = max(ZERO, balance_after)
    return {
        "deal_number": deal.deal_number,
        "vehicle": vehicle_entry(vehicle, deal.vehicle_id),
        "customer": party_entry(customer, deal.customer_id),
        "payment_receipt": {
            "payment_amount": payment.amount,
            "payment_method": payment.method.value,
            "payment_reference": payment.reference,
            "invoice_number": invoice_number,
            "invoice_balance_before": balance_before,
            "invoice_balance_after": reported_after,
            "is_full_payment": is_full_payment,
        },
        "payments": [payment_entry(payment)],
        "grand_total": grand_total,
        "total_paid": total_paid,
        "balance_due": reported_after,
    }


# ==============================================================================
# Reconciliation
# ==============================================================================


def apply_payment_to_invoice(
    invoice: SalesDocument, payment: Payment, *, fully_paid: bool, at: datetime
) -> SalesDocument:
    """
    Bring an issued invoice's snapshot into agreement with a new payment.

    Running figures are adjusted by the payment amount rather than recomputed,
    so everything else frozen on the invoice stays exactly as issued.
    """
    if invoice.type is not DocumentType.INVOICE:
        raise ValueError(f"Expected an invoice, got {invoice.type.value}")

    snapshot = dict(invoice.snapshot)
    amount = payment.amount

    snapshot["payments"] = [*snapshot.get("payments", []), payment_entry(payment)]
    snapshot["total_paid"] = snapshot_money(snapshot.get("total_paid")) + amount
    if payment.type is PaymentType.DEPOSIT:
        snapshot["deposit_paid"] = snapshot_money(snapshot.get("deposit_paid")) + amount
    else:
        snapshot["other_payments"] = snapshot_money(snapshot.get("other_payments")) + amount
    if payment.type is PaymentType.FINANCE_ADVANCE:
        snapshot["finance_advance"] = snapshot_money(snapshot.get("finance_advance")) + amount
    snapshot["balance_due"] = snapshot_money(snapshot.get("balance_due")) - amount

    paid_at = invoice.paid_at
    if fully_paid and paid_at is None:
        paid_at = at

    return replace(invoice, snapshot=snapshot, paid_at=paid_at, updated_at=at)
