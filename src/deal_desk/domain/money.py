"""Money and VAT helpers.

Rounding policy:
- All money is ``Decimal``; floats never cross into the domain
- Every derived money figure is rounded to 2 decimal places (pence) using
  ROUND_HALF_UP at the point of derivation
- Sums are taken over already-rounded figures, so fractional pence never
  accumulate across steps
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0.00")
PENNY = Decimal("0.01")
DEFAULT_VAT_RATE = Decimal("0.20")

# Absolute tolerance used to decide a balance has been cleared.
FULL_PAYMENT_TOLERANCE = Decimal("0.01")


def quantize_money(value: Decimal | int) -> Decimal:
    """Round a money value to pence."""
    if isinstance(value, float):
        raise TypeError("money must be Decimal or int (no floats past the boundary)")
    return Decimal(value).quantize(PENNY, rounding=ROUND_HALF_UP)


def parse_money(value: str | int | Decimal) -> Decimal:
    """Parse a boundary value (string or int) into a rounded Decimal."""
    if isinstance(value, float):
        raise TypeError("money must be str, int or Decimal (no floats past the boundary)")
    try:
        return quantize_money(Decimal(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid money value: {value!r}") from exc


def sum_money(values: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for value in values:
        total += value
    return quantize_money(total)


def net_from_gross(gross: Decimal, vat_rate: Decimal, vat_bearing: bool = True) -> Decimal:
    """Derive the net figure from a manually entered gross price.

    ``net = gross / (1 + rate)`` when VAT-bearing, otherwise ``net = gross``.
    """
    if not vat_bearing or vat_rate == 0:
        return quantize_money(gross)
    return quantize_money(gross / (Decimal("1") + vat_rate))


def vat_on_net(net: Decimal, vat_rate: Decimal) -> Decimal:
    return quantize_money(net * vat_rate)


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    net: Decimal
    vat: Decimal
    gross: Decimal


def decompose_gross(gross: Decimal, vat_rate: Decimal, vat_bearing: bool = True) -> PriceBreakdown:
    """Split a gross price into net and VAT so that ``net + vat == gross`` exactly."""
    gross = quantize_money(gross)
    net = net_from_gross(gross, vat_rate, vat_bearing)
    return PriceBreakdown(net=net, vat=gross - net, gross=gross)


def is_settled(balance: Decimal, tolerance: Decimal = FULL_PAYMENT_TOLERANCE) -> bool:
    """True when a remaining balance is within the full-payment tolerance."""
    return balance <= tolerance


def format_gbp(value: Decimal) -> str:
    return f"£{quantize_money(value):,.2f}"
