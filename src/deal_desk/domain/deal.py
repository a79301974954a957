from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from deal_desk.domain.money import DEFAULT_VAT_RATE, ZERO


class DealStatus(str, Enum):
    DRAFT = "DRAFT"
    DEPOSIT_TAKEN = "DEPOSIT_TAKEN"
    INVOICED = "INVOICED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SaleType(str, Enum):
    RETAIL = "RETAIL"
    TRADE = "TRADE"
    EXPORT = "EXPORT"


class BuyerUse(str, Enum):
    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"


class SaleChannel(str, Enum):
    IN_PERSON = "IN_PERSON"
    DISTANCE = "DISTANCE"


class VatScheme(str, Enum):
    MARGIN = "MARGIN"
    VAT_QUALIFYING = "VAT_QUALIFYING"
    NO_VAT = "NO_VAT"
    ZERO = "ZERO"
    EXEMPT = "EXEMPT"


class VatTreatment(str, Enum):
    STANDARD = "STANDARD"
    NO_VAT = "NO_VAT"
    ZERO = "ZERO"
    EXEMPT = "EXEMPT"


class PaymentType(str, Enum):
    DEPOSIT = "DEPOSIT"
    BALANCE = "BALANCE"
    FINANCE_ADVANCE = "FINANCE_ADVANCE"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    FINANCE = "FINANCE"
    OTHER = "OTHER"


class WarrantyType(str, Enum):
    DEFAULT = "DEFAULT"
    THIRD_PARTY = "THIRD_PARTY"
    TRADE = "TRADE"


class RequestStatus(str, Enum):
    REQUESTED = "REQUESTED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


# Statuses in which pricing, parties, add-ons and part-exchanges may change.
EDITABLE_STATUSES = frozenset({DealStatus.DRAFT, DealStatus.DEPOSIT_TAKEN})
TERMINAL_STATUSES = frozenset({DealStatus.COMPLETED, DealStatus.CANCELLED})

MAX_PART_EXCHANGES = 2


def normalize_vrm(vrm: str) -> str:
    """Uppercase a registration mark and strip all whitespace."""
    return "".join(vrm.split()).upper()


@dataclass(frozen=True, slots=True)
class AddOn:
    name: str
    unit_price_net: Decimal
    qty: int = 1
    vat_treatment: VatTreatment = VatTreatment.STANDARD
    vat_rate: Decimal | None = None
    category: str | None = None


@dataclass(frozen=True, slots=True)
class PartExchange:
    vrm: str
    allowance: Decimal
    settlement: Decimal = ZERO
    make: str | None = None
    model: str | None = None
    year: int | None = None
    mileage: int | None = None
    colour: str | None = None
    vat_qualifying: bool = False
    has_finance: bool = False
    finance_company_id: str | None = None
    has_settlement_in_writing: bool = False

    @property
    def normalized_vrm(self) -> str:
        return normalize_vrm(self.vrm)

    @property
    def net_value(self) -> Decimal:
        return self.allowance - self.settlement

    @property
    def awaiting_written_settlement(self) -> bool:
        return self.has_finance and not self.has_settlement_in_writing


@dataclass(frozen=True, slots=True)
class Payment:
    """Ledger entry. Never deleted; refunds only set ``is_refunded``."""

    id: str
    type: PaymentType
    amount: Decimal
    method: PaymentMethod
    paid_at: datetime
    reference: str = ""
    notes: str | None = None
    is_refunded: bool = False


@dataclass(frozen=True, slots=True)
class Delivery:
    is_free: bool = False
    amount_gross: Decimal | None = None
    amount_net: Decimal | None = None
    vat_amount: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class Warranty:
    included: bool = False
    type: WarrantyType = WarrantyType.DEFAULT
    name: str | None = None
    duration_months: int | None = None
    claim_limit: Decimal | None = None
    price_gross: Decimal | None = None
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class FinanceSelection:
    is_financed: bool = False
    finance_company_id: str | None = None
    to_be_confirmed: bool = False


@dataclass(frozen=True, slots=True)
class AgreedWorkItem:
    title: str
    details: str | None = None
    type: str = "OTHER"
    status: RequestStatus = RequestStatus.REQUESTED


@dataclass(frozen=True, slots=True)
class Deal:
    """
    Aggregate for a single vehicle sale.

    Instances are immutable: every change produces a new ``Deal`` through the
    use-case layer. ``version`` is the optimistic concurrency token checked by
    repositories on save.
    """

    id: str
    dealer_id: str
    deal_number: int
    vehicle_id: str
    status: DealStatus = DealStatus.DRAFT
    sale_type: SaleType | None = SaleType.RETAIL
    buyer_use: BuyerUse = BuyerUse.PERSONAL
    sale_channel: SaleChannel = SaleChannel.IN_PERSON
    vat_scheme: VatScheme | None = None
    vat_rate: Decimal = DEFAULT_VAT_RATE
    customer_id: str | None = None
    invoice_to_id: str | None = None
    vehicle_price_gross: Decimal | None = None
    vehicle_price_net: Decimal | None = None
    vehicle_vat_amount: Decimal | None = None
    add_ons: tuple[AddOn, ...] = ()
    part_exchanges: tuple[PartExchange, ...] = ()
    payments: tuple[Payment, ...] = ()
    requests: tuple[AgreedWorkItem, ...] = ()
    delivery: Delivery | None = None
    warranty: Warranty | None = None
    finance_selection: FinanceSelection | None = None
    payment_method: str | None = None
    deposit_taken_at: datetime | None = None
    invoiced_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    delivery_mileage: int | None = None
    delivery_notes: str | None = None
    completion_notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = field(default=0, compare=False)

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES

    @property
    def active_payments(self) -> tuple[Payment, ...]:
        return tuple(p for p in self.payments if not p.is_refunded)

    def with_payment(self, payment: Payment, at: datetime) -> Deal:
        return replace(self, payments=self.payments + (payment,), updated_at=at)

    def financed_px_without_settlement(self) -> list[str]:
        """VRMs of financed part-exchanges lacking written settlement."""
        return [px.normalized_vrm for px in self.part_exchanges if px.awaiting_written_settlement]
