"""Pricing and totals for a deal.

``calculate_totals`` is the single source of deal figures. The read path and
every document snapshot writer call it, so the numbers a user sees and the
numbers frozen into a document cannot disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from deal_desk.domain.deal import (
    AddOn,
    Deal,
    Delivery,
    PartExchange,
    PaymentType,
    VatScheme,
    VatTreatment,
    Warranty,
)
from deal_desk.domain.money import DEFAULT_VAT_RATE, ZERO, quantize_money, sum_money, vat_on_net


@dataclass(frozen=True, slots=True)
class Totals:
    add_ons_net_total: Decimal
    add_ons_vat_total: Decimal
    delivery_amount: Decimal
    warranty_amount: Decimal
    subtotal: Decimal
    total_vat: Decimal
    grand_total: Decimal
    total_paid: Decimal
    deposit_paid: Decimal
    other_payments: Decimal
    finance_advance: Decimal
    px_net_value: Decimal
    balance_due: Decimal


# ------------------------------------------------------------------------------
# Effective-value resolvers (one per derived field)
# ------------------------------------------------------------------------------


def effective_vat_rate(add_on: AddOn) -> Decimal:
    return add_on.vat_rate if add_on.vat_rate is not None else DEFAULT_VAT_RATE


def add_on_net(add_on: AddOn) -> Decimal:
    return quantize_money(add_on.unit_price_net * add_on.qty)


def add_on_vat(add_on: AddOn) -> Decimal:
    if add_on.vat_treatment is not VatTreatment.STANDARD:
        return ZERO
    return vat_on_net(add_on.unit_price_net * add_on.qty, effective_vat_rate(add_on))


def effective_delivery_charge(delivery: Delivery | None) -> Decimal:
    """Delivery charged to the customer; zero when collected or free."""
    if delivery is None or delivery.is_free or delivery.amount_gross is None:
        return ZERO
    return quantize_money(delivery.amount_gross)


def effective_warranty_charge(warranty: Warranty | None) -> Decimal:
    if warranty is None or not warranty.included or warranty.price_gross is None:
        return ZERO
    if warranty.price_gross <= 0:
        return ZERO
    return quantize_money(warranty.price_gross)


def effective_vehicle_gross(deal: Deal) -> Decimal:
    return quantize_money(deal.vehicle_price_gross or ZERO)


def effective_vehicle_net(deal: Deal) -> Decimal:
    return quantize_money(deal.vehicle_price_net or ZERO)


def effective_vehicle_vat(deal: Deal) -> Decimal:
    return quantize_money(deal.vehicle_vat_amount or ZERO)


def part_exchange_net_value(part_exchanges: tuple[PartExchange, ...]) -> Decimal:
    return sum_money(px.net_value for px in part_exchanges)


# ------------------------------------------------------------------------------
# Calculator
# ------------------------------------------------------------------------------


def calculate_totals(deal: Deal) -> Totals:
    """
    Compute deal totals.

    Pure function: no I/O, no mutation. Figures are rounded to pence as they
    are derived; see ``deal_desk.domain.money`` for the rounding policy.
    """
    add_ons_net_total = sum_money(add_on_net(a) for a in deal.add_ons)
    add_ons_vat_total = sum_money(add_on_vat(a) for a in deal.add_ons)
    delivery_amount = effective_delivery_charge(deal.delivery)
    warranty_amount = effective_warranty_charge(deal.warranty)

    if deal.vat_scheme is VatScheme.VAT_QUALIFYING:
        subtotal = effective_vehicle_net(deal) + add_ons_net_total
        total_vat = effective_vehicle_vat(deal) + add_ons_vat_total
        grand_total = subtotal + total_vat + delivery_amount + warranty_amount
    else:
        # Margin and non-itemised schemes: VAT (if any) is embedded in the price
        subtotal = effective_vehicle_gross(deal) + add_ons_net_total + add_ons_vat_total
        total_vat = ZERO
        grand_total = subtotal + delivery_amount + warranty_amount

    active = deal.active_payments
    total_paid = sum_money(p.amount for p in active)
    deposit_paid = sum_money(p.amount for p in active if p.type is PaymentType.DEPOSIT)
    finance_advance = sum_money(
        p.amount for p in active if p.type is PaymentType.FINANCE_ADVANCE
    )
    other_payments = total_paid - deposit_paid

    px_net_value = part_exchange_net_value(deal.part_exchanges)

    return Totals(
        add_ons_net_total=add_ons_net_total,
        add_ons_vat_total=add_ons_vat_total,
        delivery_amount=delivery_amount,
        warranty_amount=warranty_amount,
        subtotal=subtotal,
        total_vat=total_vat,
        grand_total=grand_total,
        total_paid=total_paid,
        deposit_paid=deposit_paid,
        other_payments=other_payments,
        finance_advance=finance_advance,
        px_net_value=px_net_value,
        balance_due=grand_total - total_paid - px_net_value,
    )
