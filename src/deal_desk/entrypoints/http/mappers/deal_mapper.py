from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from deal_desk.adapters.deal_codec import to_json_safe
from deal_desk.domain.deal import (
    AddOn,
    AgreedWorkItem,
    Deal,
    PartExchange,
    Warranty,
)
from deal_desk.domain.errors import ValidationError
from deal_desk.domain.money import ZERO
from deal_desk.domain.pricing import DeliveryInput, add_on_from_gross
from deal_desk.domain.sales_document import SalesDocument
from deal_desk.domain.totals import Totals
from deal_desk.entrypoints.http.dtos.deals import (
    AddOnDTO,
    AgreedWorkItemDTO,
    CreateDealRequestDTO,
    DealResponseDTO,
    DeliveryDTO,
    LedgerPaymentDTO,
    TotalsDTO,
    UpdateDealRequestDTO,
    WarrantyDTO,
)
from deal_desk.entrypoints.http.dtos.documents import FinanceSelectionDTO, SalesDocumentDTO
from deal_desk.entrypoints.http.dtos.part_exchanges import (
    PartExchangeDTO,
    UpdatePartExchangeRequestDTO,
)
from deal_desk.use_cases.create_deal import CreateDealRequest
from deal_desk.use_cases.update_deal import UpdateDealRequest


def _money(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


class _DecimalParser:
    """Collects conversion errors so one response reports every bad field."""

    def __init__(self) -> None:
        self.errors: list[dict[str, str]] = []

    def parse(self, value: str | None, field: str) -> Decimal | None:
        if value is None:
            return None
        try:
            return Decimal(value)
        except (InvalidOperation, ValueError):
            self.errors.append(
                {
                    "field": field,
                    "message": f"Must be a valid decimal: {value}",
                    "code": "INVALID_DECIMAL",
                }
            )
            return ZERO

    def raise_if_errors(self) -> None:
        if self.errors:
            raise ValidationError(errors=self.errors)


class DealMapper:
    """Maps between REST DTOs and domain models for deals."""

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    @staticmethod
    def parse_money(value: str, field: str) -> Decimal:
        parser = _DecimalParser()
        parsed = parser.parse(value, field)
        parser.raise_if_errors()
        return parsed  # type: ignore[return-value]

    @staticmethod
    def _add_ons(dtos: list[AddOnDTO], parser: _DecimalParser) -> tuple[AddOn, ...]:
        add_ons = []
        for i, dto in enumerate(dtos):
            rate = parser.parse(dto.vat_rate, f"addOns[{i}].vatRate")
            if dto.unit_price_gross is not None and dto.unit_price_net is None:
                gross = parser.parse(dto.unit_price_gross, f"addOns[{i}].unitPriceGross")
                add_ons.append(
                    add_on_from_gross(
                        dto.name,
                        gross,  # type: ignore[arg-type]
                        qty=dto.qty,
                        vat_treatment=dto.vat_treatment,
                        vat_rate=rate,
                        category=dto.category,
                    )
                )
                continue
            if dto.unit_price_net is None:
                parser.errors.append(
                    {
                        "field": f"addOns[{i}].unitPriceNet",
                        "message": "Either unitPriceNet or unitPriceGross is required",
                        "code": "REQUIRED",
                    }
                )
                continue
            add_ons.append(
                AddOn(
                    name=dto.name,
                    unit_price_net=parser.parse(dto.unit_price_net, f"addOns[{i}].unitPriceNet"),  # type: ignore[arg-type]
                    qty=dto.qty,
                    vat_treatment=dto.vat_treatment,
                    vat_rate=rate,
                    category=dto.category,
                )
            )
        return tuple(add_ons)

    @staticmethod
    def _delivery(dto: DeliveryDTO, parser: _DecimalParser) -> DeliveryInput:
        return DeliveryInput(
            is_free=dto.is_free,
            amount_gross=parser.parse(dto.amount_gross, "delivery.amountGross"),
            notes=dto.notes,
        )

    @staticmethod
    def to_create_request(dealer_id: str, dto: CreateDealRequestDTO) -> CreateDealRequest:
        parser = _DecimalParser()
        request = CreateDealRequest(
            dealer_id=dealer_id,
            vehicle_id=dto.vehicle_id,
            customer_id=dto.customer_id,
            invoice_to_id=dto.invoice_to_id,
            sale_type=dto.sale_type,
            buyer_use=dto.buyer_use,
            sale_channel=dto.sale_channel,
            vat_scheme=dto.vat_scheme,
            vat_rate=parser.parse(dto.vat_rate, "vatRate"),  # type: ignore[arg-type]
            vehicle_price_gross=parser.parse(dto.vehicle_price_gross, "vehiclePriceGross"),
            add_ons=DealMapper._add_ons(dto.add_ons, parser),
            delivery=DealMapper._delivery(dto.delivery, parser) if dto.delivery else None,
        )
        parser.raise_if_errors()
        return request

    @staticmethod
    def to_update_request(
        dealer_id: str, deal_id: str, dto: UpdateDealRequestDTO
    ) -> UpdateDealRequest:
        """Only fields present in the request body become changes."""
        parser = _DecimalParser()
        changes: dict[str, Any] = {}

        for name in dto.model_fields_set:
            value = getattr(dto, name)
            if name == "vat_rate":
                changes[name] = parser.parse(value, "vatRate")
            elif name == "vehicle_price_gross":
                changes[name] = parser.parse(value, "vehiclePriceGross")
            elif name == "add_ons":
                changes[name] = DealMapper._add_ons(value or [], parser)
            elif name == "delivery":
                changes[name] = DealMapper._delivery(value, parser) if value else None
            elif name == "requests":
                changes[name] = tuple(
                    AgreedWorkItem(title=r.title, details=r.details, type=r.type, status=r.status)
                    for r in value or []
                )
            elif name == "finance_selection":
                changes[name] = value.to_domain() if value else None
            elif name == "payment_method":
                changes[name] = value.value if value else None
            else:
                changes[name] = value

        parser.raise_if_errors()
        return UpdateDealRequest(dealer_id=dealer_id, deal_id=deal_id, changes=changes)

    @staticmethod
    def to_part_exchange(dto: PartExchangeDTO) -> PartExchange:
        parser = _DecimalParser()
        px = PartExchange(
            vrm=dto.vrm,
            allowance=parser.parse(dto.allowance, "allowance"),  # type: ignore[arg-type]
            settlement=parser.parse(dto.settlement, "settlement"),  # type: ignore[arg-type]
            make=dto.make,
            model=dto.model,
            year=dto.year,
            mileage=dto.mileage,
            colour=dto.colour,
            vat_qualifying=dto.vat_qualifying,
            has_finance=dto.has_finance,
            finance_company_id=dto.finance_company_id,
            has_settlement_in_writing=dto.has_settlement_in_writing,
        )
        parser.raise_if_errors()
        return px

    @staticmethod
    def to_part_exchange_updates(dto: UpdatePartExchangeRequestDTO) -> dict[str, Any]:
        parser = _DecimalParser()
        updates: dict[str, Any] = {}
        for name in dto.model_fields_set - {"index"}:
            value = getattr(dto, name)
            if name in ("allowance", "settlement"):
                value = parser.parse(value, name)
            updates[name] = value
        parser.raise_if_errors()
        return updates

    @staticmethod
    def to_warranty(dto: WarrantyDTO) -> Warranty:
        parser = _DecimalParser()
        warranty = Warranty(
            included=dto.included,
            type=dto.type,
            name=dto.name,
            duration_months=dto.duration_months,
            claim_limit=parser.parse(dto.claim_limit, "claimLimit"),
            price_gross=parser.parse(dto.price_gross, "priceGross"),
            is_default=dto.is_default,
        )
        parser.raise_if_errors()
        return warranty

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    @staticmethod
    def to_totals(totals: Totals) -> TotalsDTO:
        return TotalsDTO(
            add_ons_net_total=str(totals.add_ons_net_total),
            add_ons_vat_total=str(totals.add_ons_vat_total),
            delivery_amount=str(totals.delivery_amount),
            warranty_amount=str(totals.warranty_amount),
            subtotal=str(totals.subtotal),
            total_vat=str(totals.total_vat),
            grand_total=str(totals.grand_total),
            total_paid=str(totals.total_paid),
            deposit_paid=str(totals.deposit_paid),
            other_payments=str(totals.other_payments),
            finance_advance=str(totals.finance_advance),
            part_exchange_net=str(totals.px_net_value),
            balance_due=str(totals.balance_due),
        )

    @staticmethod
    def to_response(deal: Deal, totals: Totals | None = None) -> DealResponseDTO:
        return DealResponseDTO(
            id=deal.id,
            deal_number=deal.deal_number,
            status=deal.status,
            vehicle_id=deal.vehicle_id,
            customer_id=deal.customer_id,
            invoice_to_id=deal.invoice_to_id,
            sale_type=deal.sale_type,
            buyer_use=deal.buyer_use,
            sale_channel=deal.sale_channel,
            vat_scheme=deal.vat_scheme,
            vat_rate=str(deal.vat_rate),
            vehicle_price_gross=_money(deal.vehicle_price_gross),
            vehicle_price_net=_money(deal.vehicle_price_net),
            vehicle_vat_amount=_money(deal.vehicle_vat_amount),
            add_ons=[
                AddOnDTO(
                    name=a.name,
                    qty=a.qty,
                    unit_price_net=str(a.unit_price_net),
                    vat_treatment=a.vat_treatment,
                    vat_rate=None if a.vat_rate is None else str(a.vat_rate),
                    category=a.category,
                )
                for a in deal.add_ons
            ],
            part_exchanges=[
                PartExchangeDTO(
                    vrm=px.vrm,
                    allowance=str(px.allowance),
                    settlement=str(px.settlement),
                    make=px.make,
                    model=px.model,
                    year=px.year,
                    mileage=px.mileage,
                    colour=px.colour,
                    vat_qualifying=px.vat_qualifying,
                    has_finance=px.has_finance,
                    finance_company_id=px.finance_company_id,
                    has_settlement_in_writing=px.has_settlement_in_writing,
                )
                for px in deal.part_exchanges
            ],
            payments=[
                LedgerPaymentDTO(
                    id=p.id,
                    type=p.type,
                    amount=str(p.amount),
                    method=p.method,
                    paid_at=p.paid_at,
                    reference=p.reference,
                    notes=p.notes,
                    is_refunded=p.is_refunded,
                )
                for p in deal.payments
            ],
            requests=[
                AgreedWorkItemDTO(title=r.title, details=r.details, type=r.type, status=r.status)
                for r in deal.requests
            ],
            delivery=(
                DeliveryDTO(
                    is_free=deal.delivery.is_free,
                    amount_gross=_money(deal.delivery.amount_gross),
                    notes=deal.delivery.notes,
                )
                if deal.delivery
                else None
            ),
            warranty=(
                WarrantyDTO(
                    included=deal.warranty.included,
                    type=deal.warranty.type,
                    name=deal.warranty.name,
                    duration_months=deal.warranty.duration_months,
                    claim_limit=_money(deal.warranty.claim_limit),
                    price_gross=_money(deal.warranty.price_gross),
                    is_default=deal.warranty.is_default,
                )
                if deal.warranty
                else None
            ),
            finance_selection=(
                FinanceSelectionDTO(
                    is_financed=deal.finance_selection.is_financed,
                    finance_company_id=deal.finance_selection.finance_company_id,
                    to_be_confirmed=deal.finance_selection.to_be_confirmed,
                )
                if deal.finance_selection
                else None
            ),
            payment_method=deal.payment_method,
            deposit_taken_at=deal.deposit_taken_at,
            invoiced_at=deal.invoiced_at,
            delivered_at=deal.delivered_at,
            completed_at=deal.completed_at,
            cancelled_at=deal.cancelled_at,
            cancel_reason=deal.cancel_reason,
            version=deal.version,
            totals=DealMapper.to_totals(totals) if totals else None,
        )

    @staticmethod
    def to_document(document: SalesDocument) -> SalesDocumentDTO:
        return SalesDocumentDTO(
            id=document.id,
            type=document.type,
            document_number=document.document_number,
            status=document.status,
            issued_at=document.issued_at,
            paid_at=document.paid_at,
            voided_at=document.voided_at,
            void_reason=document.void_reason,
            snapshot=to_json_safe(document.snapshot),
        )
