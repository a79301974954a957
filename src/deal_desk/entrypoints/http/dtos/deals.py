from datetime import datetime

from pydantic import Field

from deal_desk.domain.deal import (
    BuyerUse,
    DealStatus,
    PaymentMethod,
    PaymentType,
    RequestStatus,
    SaleChannel,
    SaleType,
    VatScheme,
    VatTreatment,
    WarrantyType,
)
from deal_desk.entrypoints.http.dtos.common import CamelModel, MoneyInput, RateInput
from deal_desk.entrypoints.http.dtos.documents import FinanceSelectionDTO
from deal_desk.entrypoints.http.dtos.part_exchanges import PartExchangeDTO


class AddOnDTO(CamelModel):
    """Add-on line. Give either ``unitPriceNet`` or ``unitPriceGross``."""

    name: str = Field(min_length=1, max_length=200)
    qty: int = Field(default=1, ge=1)
    unit_price_net: MoneyInput | None = None
    unit_price_gross: MoneyInput | None = None
    vat_treatment: VatTreatment = VatTreatment.STANDARD
    vat_rate: RateInput | None = None
    category: str | None = None


class DeliveryDTO(CamelModel):
    is_free: bool = False
    amount_gross: MoneyInput | None = None
    notes: str | None = None


class AgreedWorkItemDTO(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    details: str | None = None
    type: str = "OTHER"
    status: RequestStatus = RequestStatus.REQUESTED


class CreateDealRequestDTO(CamelModel):
    vehicle_id: str = Field(min_length=1)
    customer_id: str | None = None
    invoice_to_id: str | None = None
    sale_type: SaleType = SaleType.RETAIL
    buyer_use: BuyerUse = BuyerUse.PERSONAL
    sale_channel: SaleChannel = SaleChannel.IN_PERSON
    vat_scheme: VatScheme | None = None
    vat_rate: RateInput = "0.20"
    vehicle_price_gross: MoneyInput | None = None
    add_ons: list[AddOnDTO] = Field(default_factory=list)
    delivery: DeliveryDTO | None = None


class UpdateDealRequestDTO(CamelModel):
    """PATCH body: only fields present in the JSON are applied."""

    customer_id: str | None = None
    invoice_to_id: str | None = None
    sale_type: SaleType | None = None
    buyer_use: BuyerUse | None = None
    sale_channel: SaleChannel | None = None
    vat_scheme: VatScheme | None = None
    vat_rate: RateInput | None = None
    vehicle_price_gross: MoneyInput | None = None
    add_ons: list[AddOnDTO] | None = None
    delivery: DeliveryDTO | None = None
    requests: list[AgreedWorkItemDTO] | None = None
    finance_selection: FinanceSelectionDTO | None = None
    payment_method: PaymentMethod | None = None


class WarrantyDTO(CamelModel):
    included: bool = False
    type: WarrantyType = WarrantyType.DEFAULT
    name: str | None = None
    duration_months: int | None = Field(default=None, ge=0)
    claim_limit: MoneyInput | None = None
    price_gross: MoneyInput | None = None
    is_default: bool = False


class LedgerPaymentDTO(CamelModel):
    id: str
    type: PaymentType
    amount: str
    method: PaymentMethod
    paid_at: datetime
    reference: str
    notes: str | None = None
    is_refunded: bool = False


class TotalsDTO(CamelModel):
    add_ons_net_total: str
    add_ons_vat_total: str
    delivery_amount: str
    warranty_amount: str
    subtotal: str
    total_vat: str
    grand_total: str
    total_paid: str
    deposit_paid: str
    other_payments: str
    finance_advance: str
    part_exchange_net: str
    balance_due: str


class DealResponseDTO(CamelModel):
    id: str
    deal_number: int
    status: DealStatus
    vehicle_id: str
    customer_id: str | None
    invoice_to_id: str | None
    sale_type: SaleType | None
    buyer_use: BuyerUse
    sale_channel: SaleChannel
    vat_scheme: VatScheme | None
    vat_rate: str
    vehicle_price_gross: str | None
    vehicle_price_net: str | None
    vehicle_vat_amount: str | None
    add_ons: list[AddOnDTO]
    part_exchanges: list[PartExchangeDTO]
    payments: list[LedgerPaymentDTO]
    requests: list[AgreedWorkItemDTO]
    delivery: DeliveryDTO | None
    warranty: WarrantyDTO | None
    finance_selection: FinanceSelectionDTO | None
    payment_method: str | None
    deposit_taken_at: datetime | None
    invoiced_at: datetime | None
    delivered_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    cancel_reason: str | None
    version: int
    totals: TotalsDTO | None = None


class MarkDeliveredRequestDTO(CamelModel):
    customer_confirmed: bool = False
    delivered_at: datetime | None = None
    mileage: int | None = Field(default=None, ge=0)
    notes: str | None = None


class MarkCompletedRequestDTO(CamelModel):
    confirm_without_settlement: bool = False
    notes: str | None = None


class MarkCompletedResponseDTO(CamelModel):
    success: bool = True
    deal: DealResponseDTO
    part_exchanges_stocked: list[str]
    stock_follow_ups: list[str]


class CancelDealRequestDTO(CamelModel):
    reason: str | None = Field(default=None, max_length=1000)
    confirmed: bool = False


class CompensationFailureDTO(CamelModel):
    step: str
    error: str


class CancelDealResponseDTO(CamelModel):
    success: bool
    deal: DealResponseDTO
    previous_status: DealStatus
    removed_part_exchange_vrms: list[str]
    compensation_failures: list[CompensationFailureDTO]
