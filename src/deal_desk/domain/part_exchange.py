"""Part-exchange valuation and editing rules."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any

from deal_desk.domain.deal import (
    EDITABLE_STATUSES,
    MAX_PART_EXCHANGES,
    Deal,
    DealStatus,
    PartExchange,
    normalize_vrm,
)
from deal_desk.domain.errors import (
    DuplicateVrmError,
    InvalidTransitionError,
    PartExchangeLimitError,
    ValidationError,
    VrmInStockError,
)
from deal_desk.domain.money import quantize_money

# Written settlement confirmation may arrive after the invoice is issued.
SETTLEMENT_TOGGLE_STATUSES = EDITABLE_STATUSES | {DealStatus.INVOICED, DealStatus.DELIVERED}

_PX_FIELDS = frozenset(f.name for f in fields(PartExchange))


@dataclass(frozen=True, slots=True)
class PartExchangeValuation:
    vrm: str
    allowance: Decimal
    settlement: Decimal
    net_value: Decimal


def value_part_exchanges(deal: Deal) -> list[PartExchangeValuation]:
    return [
        PartExchangeValuation(
            vrm=px.normalized_vrm,
            allowance=px.allowance,
            settlement=px.settlement,
            net_value=quantize_money(px.net_value),
        )
        for px in deal.part_exchanges
    ]


def validate_part_exchange(px: PartExchange) -> None:
    errors: list[dict[str, str]] = []

    if not px.vrm or not normalize_vrm(px.vrm):
        errors.append({"field": "vrm", "message": "VRM is required", "code": "REQUIRED"})
    if px.allowance is None:
        errors.append({"field": "allowance", "message": "Allowance is required", "code": "REQUIRED"})
    elif px.allowance < 0:
        errors.append({"field": "allowance", "message": "Must be >= 0", "code": "INVALID_VALUE"})
    if px.settlement < 0:
        errors.append({"field": "settlement", "message": "Must be >= 0", "code": "INVALID_VALUE"})
    if px.has_finance and not px.finance_company_id:
        errors.append(
            {
                "field": "financeCompanyId",
                "message": "Finance company is required when part exchange has outstanding finance",
                "code": "REQUIRED",
            }
        )

    if errors:
        raise ValidationError(errors=errors)


def ensure_vrm_available(
    deal: Deal, vrm: str, *, in_stock: bool, ignore_index: int | None = None
) -> None:
    """Reject a VRM already on the deal or currently held as dealer stock."""
    normalized = normalize_vrm(vrm)
    for index, existing in enumerate(deal.part_exchanges):
        if index != ignore_index and existing.normalized_vrm == normalized:
            raise DuplicateVrmError(
                "This vehicle is already added as a part exchange on this deal",
                vrm=normalized,
            )
    if in_stock:
        raise VrmInStockError(
            "This vehicle is currently in stock and cannot be taken in part exchange",
            vrm=normalized,
        )


def add_part_exchange(deal: Deal, px: PartExchange, *, vrm_in_stock: bool) -> Deal:
    if deal.status not in EDITABLE_STATUSES:
        raise InvalidTransitionError(deal.status.value, "ADD_PART_EXCHANGE")
    if len(deal.part_exchanges) >= MAX_PART_EXCHANGES:
        raise PartExchangeLimitError(
            f"A deal can have at most {MAX_PART_EXCHANGES} part exchanges",
            limit=MAX_PART_EXCHANGES,
        )

    validate_part_exchange(px)
    ensure_vrm_available(deal, px.vrm, in_stock=vrm_in_stock)

    stored = replace(px, vrm=normalize_vrm(px.vrm))
    return replace(deal, part_exchanges=deal.part_exchanges + (stored,))


def is_settlement_only_update(updates: dict[str, Any]) -> bool:
    return set(updates) == {"has_settlement_in_writing"}


def update_part_exchange(
    deal: Deal, index: int, updates: dict[str, Any], *, vrm_in_stock: bool = False
) -> Deal:
    """
    Apply a partial update to the part-exchange at ``index``.

    A settlement-in-writing toggle on its own is accepted while INVOICED or
    DELIVERED; any other change requires the deal to be editable.
    """
    unknown = set(updates) - _PX_FIELDS
    if unknown:
        raise ValidationError(
            errors=[
                {"field": name, "message": "Unknown part exchange field", "code": "UNKNOWN_FIELD"}
                for name in sorted(unknown)
            ]
        )

    allowed = (
        SETTLEMENT_TOGGLE_STATUSES if is_settlement_only_update(updates) else EDITABLE_STATUSES
    )
    if deal.status not in allowed:
        raise InvalidTransitionError(deal.status.value, "UPDATE_PART_EXCHANGE")

    existing = _at(deal, index)
    updated = replace(existing, **updates)
    validate_part_exchange(updated)

    if "vrm" in updates and normalize_vrm(updates["vrm"]) != existing.normalized_vrm:
        ensure_vrm_available(deal, updated.vrm, in_stock=vrm_in_stock, ignore_index=index)
    updated = replace(updated, vrm=normalize_vrm(updated.vrm))

    part_exchanges = list(deal.part_exchanges)
    part_exchanges[index] = updated
    return replace(deal, part_exchanges=tuple(part_exchanges))


def remove_part_exchange(deal: Deal, index: int) -> Deal:
    if deal.status not in EDITABLE_STATUSES:
        raise InvalidTransitionError(deal.status.value, "REMOVE_PART_EXCHANGE")
    _at(deal, index)

    part_exchanges = list(deal.part_exchanges)
    del part_exchanges[index]
    return replace(deal, part_exchanges=tuple(part_exchanges))


def _at(deal: Deal, index: int) -> PartExchange:
    if index < 0 or index >= len(deal.part_exchanges):
        raise ValidationError(
            errors=[
                {
                    "field": "index",
                    "message": "Invalid part exchange index",
                    "code": "INVALID_INDEX",
                }
            ]
        )
    return deal.part_exchanges[index]
