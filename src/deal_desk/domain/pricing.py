"""Derivation of stored net/VAT figures from manually entered gross prices."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from deal_desk.domain.deal import AddOn, Deal, Delivery, VatScheme, VatTreatment
from deal_desk.domain.errors import ValidationError
from deal_desk.domain.money import (
    DEFAULT_VAT_RATE,
    ZERO,
    decompose_gross,
    net_from_gross,
    quantize_money,
)


def price_vehicle(deal: Deal, gross: Decimal | None) -> Deal:
    """
    Set the vehicle price on a deal.

    Net and VAT are only itemised for VAT-qualifying sales; for every other
    scheme they are cleared.
    """
    if gross is None:
        return replace(deal, vehicle_price_gross=None, vehicle_price_net=None, vehicle_vat_amount=None)
    if gross < 0:
        raise ValidationError(
            errors=[{"field": "vehiclePriceGross", "message": "Must be >= 0", "code": "INVALID_VALUE"}]
        )

    if deal.vat_scheme is VatScheme.VAT_QUALIFYING:
        breakdown = decompose_gross(gross, deal.vat_rate)
        return replace(
            deal,
            vehicle_price_gross=breakdown.gross,
            vehicle_price_net=breakdown.net,
            vehicle_vat_amount=breakdown.vat,
        )
    return replace(
        deal,
        vehicle_price_gross=quantize_money(gross),
        vehicle_price_net=None,
        vehicle_vat_amount=None,
    )


def delivery_from_gross(
    deal: Deal, amount_gross: Decimal | None, *, is_free: bool = False, notes: str | None = None
) -> Delivery:
    if is_free or amount_gross is None:
        return Delivery(is_free=is_free, amount_gross=ZERO if is_free else None, notes=notes)
    if amount_gross < 0:
        raise ValidationError(
            errors=[{"field": "delivery.amountGross", "message": "Must be >= 0", "code": "INVALID_VALUE"}]
        )

    vat_bearing = deal.vat_scheme is VatScheme.VAT_QUALIFYING
    breakdown = decompose_gross(amount_gross, deal.vat_rate, vat_bearing)
    return Delivery(
        is_free=False,
        amount_gross=breakdown.gross,
        amount_net=breakdown.net,
        vat_amount=breakdown.vat,
        notes=notes,
    )


def add_on_from_gross(
    name: str,
    unit_price_gross: Decimal,
    *,
    qty: int = 1,
    vat_treatment: VatTreatment = VatTreatment.STANDARD,
    vat_rate: Decimal | None = None,
    category: str | None = None,
) -> AddOn:
    """Build a custom add-on whose price was entered inclusive of VAT."""
    rate = vat_rate if vat_rate is not None else DEFAULT_VAT_RATE
    net = net_from_gross(unit_price_gross, rate, vat_treatment is VatTreatment.STANDARD)
    return AddOn(
        name=name,
        unit_price_net=net,
        qty=qty,
        vat_treatment=vat_treatment,
        vat_rate=vat_rate,
        category=category,
    )


@dataclass(frozen=True, slots=True)
class DeliveryInput:
    """Delivery as entered by the user: a gross charge, or free."""

    is_free: bool = False
    amount_gross: Decimal | None = None
    notes: str | None = None

    def to_delivery(self, deal: Deal) -> Delivery:
        return delivery_from_gross(deal, self.amount_gross, is_free=self.is_free, notes=self.notes)


def add_on_errors(add_ons: tuple[AddOn, ...]) -> list[dict[str, str]]:
    errors = []
    for i, add_on in enumerate(add_ons):
        if not add_on.name:
            errors.append({"field": f"addOns[{i}].name", "message": "Name is required", "code": "REQUIRED"})
        if add_on.qty < 1:
            errors.append({"field": f"addOns[{i}].qty", "message": "Must be >= 1", "code": "INVALID_VALUE"})
        if add_on.unit_price_net < 0:
            errors.append(
                {"field": f"addOns[{i}].unitPriceNet", "message": "Must be >= 0", "code": "INVALID_VALUE"}
            )
    return errors
