"""
JSON codec for deals and sales documents.

Used by the PostgreSQL adapters to store aggregates as JSONB payloads. Money
is written as decimal strings and datetimes as ISO-8601 strings, so a stored
payload round-trips without float rounding.

Older records carry a single ``partExchangeAllowance`` /
``partExchangeSettlement`` pair instead of a ``part_exchanges`` array, and a
``delivery.amount`` instead of ``amount_gross``. ``decode_deal`` rewrites
those shapes so the domain only ever sees the canonical one.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from deal_desk.domain.deal import (
    AddOn,
    AgreedWorkItem,
    BuyerUse,
    Deal,
    DealStatus,
    Delivery,
    FinanceSelection,
    PartExchange,
    Payment,
    PaymentMethod,
    PaymentType,
    RequestStatus,
    SaleChannel,
    SaleType,
    VatScheme,
    VatTreatment,
    Warranty,
    WarrantyType,
)
from deal_desk.domain.money import DEFAULT_VAT_RATE, ZERO, quantize_money
from deal_desk.domain.sales_document import DocumentStatus, DocumentType, SalesDocument

# ==============================================================================
# Scalars
# ==============================================================================


def money_out(value: Decimal | None) -> str | None:
    return None if value is None else str(quantize_money(value))


def money_in(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return quantize_money(Decimal(str(value)))


def rate_in(value: Any) -> Decimal | None:
    return None if value is None else Decimal(str(value))


def dt_out(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def dt_in(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def to_json_safe(value: Any) -> Any:
    """Recursively convert Decimals and datetimes inside a snapshot."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    return value


# ==============================================================================
# Deal
# ==============================================================================


def encode_deal(deal: Deal) -> dict[str, Any]:
    return {
        "status": deal.status.value,
        "sale_type": deal.sale_type.value if deal.sale_type else None,
        "buyer_use": deal.buyer_use.value,
        "sale_channel": deal.sale_channel.value,
        "vat_scheme": deal.vat_scheme.value if deal.vat_scheme else None,
        "vat_rate": str(deal.vat_rate),
        "customer_id": deal.customer_id,
        "invoice_to_id": deal.invoice_to_id,
        "vehicle_price_gross": money_out(deal.vehicle_price_gross),
        "vehicle_price_net": money_out(deal.vehicle_price_net),
        "vehicle_vat_amount": money_out(deal.vehicle_vat_amount),
        "add_ons": [
            {
                "name": a.name,
                "unit_price_net": money_out(a.unit_price_net),
                "qty": a.qty,
                "vat_treatment": a.vat_treatment.value,
                "vat_rate": None if a.vat_rate is None else str(a.vat_rate),
                "category": a.category,
            }
            for a in deal.add_ons
        ],
        "part_exchanges": [
            {
                "vrm": px.vrm,
                "allowance": money_out(px.allowance),
                "settlement": money_out(px.settlement),
                "make": px.make,
                "model": px.model,
                "year": px.year,
                "mileage": px.mileage,
                "colour": px.colour,
                "vat_qualifying": px.vat_qualifying,
                "has_finance": px.has_finance,
                "finance_company_id": px.finance_company_id,
                "has_settlement_in_writing": px.has_settlement_in_writing,
            }
            for px in deal.part_exchanges
        ],
        "payments": [
            {
                "id": p.id,
                "type": p.type.value,
                "amount": money_out(p.amount),
                "method": p.method.value,
                "paid_at": dt_out(p.paid_at),
                "reference": p.reference,
                "notes": p.notes,
                "is_refunded": p.is_refunded,
            }
            for p in deal.payments
        ],
        "requests": [
            {"title": r.title, "details": r.details, "type": r.type, "status": r.status.value}
            for r in deal.requests
        ],
        "delivery": (
            {
                "is_free": deal.delivery.is_free,
                "amount_gross": money_out(deal.delivery.amount_gross),
                "amount_net": money_out(deal.delivery.amount_net),
                "vat_amount": money_out(deal.delivery.vat_amount),
                "notes": deal.delivery.notes,
            }
            if deal.delivery
            else None
        ),
        "warranty": (
            {
                "included": deal.warranty.included,
                "type": deal.warranty.type.value,
                "name": deal.warranty.name,
                "duration_months": deal.warranty.duration_months,
                "claim_limit": money_out(deal.warranty.claim_limit),
                "price_gross": money_out(deal.warranty.price_gross),
                "is_default": deal.warranty.is_default,
            }
            if deal.warranty
            else None
        ),
        "finance_selection": (
            {
                "is_financed": deal.finance_selection.is_financed,
                "finance_company_id": deal.finance_selection.finance_company_id,
                "to_be_confirmed": deal.finance_selection.to_be_confirmed,
            }
            if deal.finance_selection
            else None
        ),
        "payment_method": deal.payment_method,
        "deposit_taken_at": dt_out(deal.deposit_taken_at),
        "invoiced_at": dt_out(deal.invoiced_at),
        "delivered_at": dt_out(deal.delivered_at),
        "completed_at": dt_out(deal.completed_at),
        "cancelled_at": dt_out(deal.cancelled_at),
        "cancel_reason": deal.cancel_reason,
        "delivery_mileage": deal.delivery_mileage,
        "delivery_notes": deal.delivery_notes,
        "completion_notes": deal.completion_notes,
    }


def normalize_legacy_deal(payload: dict[str, Any]) -> dict[str, Any]:
    """Rewrite pre-array part-exchange fields and legacy delivery amounts."""
    data = dict(payload)

    px_id = data.pop("partExchangeId", None)
    vrm = data.pop("partExchangeVrm", None)
    allowance = money_in(data.pop("partExchangeAllowance", None)) or ZERO
    settlement = money_in(data.pop("partExchangeSettlement", None)) or ZERO
    # A linked or non-zero legacy part-exchange counts, negative equity included.
    has_legacy_px = px_id is not None or vrm or allowance != ZERO or settlement != ZERO
    if not data.get("part_exchanges") and has_legacy_px:
        data["part_exchanges"] = [
            {"vrm": vrm or "UNKNOWN", "allowance": str(allowance), "settlement": str(settlement)}
        ]

    delivery = data.get("delivery")
    if isinstance(delivery, dict) and "amount" in delivery and "amount_gross" not in delivery:
        delivery = dict(delivery)
        delivery["amount_gross"] = delivery.pop("amount")
        data["delivery"] = delivery

    return data


def decode_deal(
    payload: dict[str, Any],
    *,
    id: str,
    dealer_id: str,
    deal_number: int,
    vehicle_id: str,
    version: int,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
) -> Deal:
    data = normalize_legacy_deal(payload)
    delivery = data.get("delivery")
    warranty = data.get("warranty")
    finance = data.get("finance_selection")

    return Deal(
        id=id,
        dealer_id=dealer_id,
        deal_number=deal_number,
        vehicle_id=vehicle_id,
        status=DealStatus(data.get("status", DealStatus.DRAFT.value)),
        sale_type=SaleType(data["sale_type"]) if data.get("sale_type") else None,
        buyer_use=BuyerUse(data.get("buyer_use") or BuyerUse.PERSONAL.value),
        sale_channel=SaleChannel(data.get("sale_channel") or SaleChannel.IN_PERSON.value),
        vat_scheme=VatScheme(data["vat_scheme"]) if data.get("vat_scheme") else None,
        vat_rate=rate_in(data.get("vat_rate")) or DEFAULT_VAT_RATE,
        customer_id=data.get("customer_id"),
        invoice_to_id=data.get("invoice_to_id"),
        vehicle_price_gross=money_in(data.get("vehicle_price_gross")),
        vehicle_price_net=money_in(data.get("vehicle_price_net")),
        vehicle_vat_amount=money_in(data.get("vehicle_vat_amount")),
        add_ons=tuple(
            AddOn(
                name=a["name"],
                unit_price_net=money_in(a.get("unit_price_net")) or ZERO,
                qty=a.get("qty", 1),
                vat_treatment=VatTreatment(a.get("vat_treatment") or VatTreatment.STANDARD.value),
                vat_rate=rate_in(a.get("vat_rate")),
                category=a.get("category"),
            )
            for a in data.get("add_ons") or []
        ),
        part_exchanges=tuple(
            PartExchange(
                vrm=px["vrm"],
                allowance=money_in(px.get("allowance")) or ZERO,
                settlement=money_in(px.get("settlement")) or ZERO,
                make=px.get("make"),
                model=px.get("model"),
                year=px.get("year"),
                mileage=px.get("mileage"),
                colour=px.get("colour"),
                vat_qualifying=px.get("vat_qualifying", False),
                has_finance=px.get("has_finance", False),
                finance_company_id=px.get("finance_company_id"),
                has_settlement_in_writing=px.get("has_settlement_in_writing", False),
            )
            for px in data.get("part_exchanges") or []
        ),
        payments=tuple(
            Payment(
                id=p["id"],
                type=PaymentType(p["type"]),
                amount=money_in(p["amount"]),
                method=PaymentMethod(p["method"]),
                paid_at=dt_in(p["paid_at"]),
                reference=p.get("reference") or "",
                notes=p.get("notes"),
                is_refunded=p.get("is_refunded", False),
            )
            for p in data.get("payments") or []
        ),
        requests=tuple(
            AgreedWorkItem(
                title=r["title"],
                details=r.get("details"),
                type=r.get("type") or "OTHER",
                status=RequestStatus(r.get("status") or RequestStatus.REQUESTED.value),
            )
            for r in data.get("requests") or []
        ),
        delivery=(
            Delivery(
                is_free=delivery.get("is_free", False),
                amount_gross=money_in(delivery.get("amount_gross")),
                amount_net=money_in(delivery.get("amount_net")),
                vat_amount=money_in(delivery.get("vat_amount")),
                notes=delivery.get("notes"),
            )
            if delivery
            else None
        ),
        warranty=(
            Warranty(
                included=warranty.get("included", False),
                type=WarrantyType(warranty.get("type") or WarrantyType.DEFAULT.value),
                name=warranty.get("name"),
                duration_months=warranty.get("duration_months"),
                claim_limit=money_in(warranty.get("claim_limit")),
                price_gross=money_in(warranty.get("price_gross")),
                is_default=warranty.get("is_default", False),
            )
            if warranty
            else None
        ),
        finance_selection=(
            FinanceSelection(
                is_financed=finance.get("is_financed", False),
                finance_company_id=finance.get("finance_company_id"),
                to_be_confirmed=finance.get("to_be_confirmed", False),
            )
            if finance
            else None
        ),
        payment_method=data.get("payment_method"),
        deposit_taken_at=dt_in(data.get("deposit_taken_at")),
        invoiced_at=dt_in(data.get("invoiced_at")),
        delivered_at=dt_in(data.get("delivered_at")),
        completed_at=dt_in(data.get("completed_at")),
        cancelled_at=dt_in(data.get("cancelled_at")),
        cancel_reason=data.get("cancel_reason"),
        delivery_mileage=data.get("delivery_mileage"),
        delivery_notes=data.get("delivery_notes"),
        completion_notes=data.get("completion_notes"),
        created_at=created_at,
        updated_at=updated_at,
        version=version,
    )


# ==============================================================================
# Sales documents
# ==============================================================================


def encode_snapshot(snapshot: dict[str, Any]) -> dict[str, Any]:
    return to_json_safe(snapshot)


def decode_document(
    *,
    id: str,
    dealer_id: str,
    deal_id: str,
    type: str,
    document_number: str,
    sequence: int,
    status: str,
    snapshot: dict[str, Any],
    issued_at: datetime,
    paid_at: datetime | None,
    voided_at: datetime | None,
    void_reason: str | None,
    share_token_hash: str | None,
    updated_at: datetime | None,
    version: int,
) -> SalesDocument:
    return SalesDocument(
        id=id,
        dealer_id=dealer_id,
        deal_id=deal_id,
        type=DocumentType(type),
        document_number=document_number,
        sequence=sequence,
        issued_at=issued_at,
        snapshot=dict(snapshot),
        status=DocumentStatus(status),
        paid_at=paid_at,
        voided_at=voided_at,
        void_reason=void_reason,
        share_token_hash=share_token_hash,
        updated_at=updated_at,
        version=version,
    )
