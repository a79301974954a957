"""Create deal use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal

from deal_desk.domain.deal import (
    AddOn,
    BuyerUse,
    Deal,
    SaleChannel,
    SaleType,
    VatScheme,
)
from deal_desk.domain.errors import ConflictError, NotFoundError, ValidationError
from deal_desk.domain.money import DEFAULT_VAT_RATE
from deal_desk.domain.pricing import DeliveryInput, add_on_errors, price_vehicle
from deal_desk.domain.stock import StockStatus
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.common import Clock, new_id, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreateDealRequest:
    dealer_id: str
    vehicle_id: str
    customer_id: str | None = None
    invoice_to_id: str | None = None
    sale_type: SaleType = SaleType.RETAIL
    buyer_use: BuyerUse = BuyerUse.PERSONAL
    sale_channel: SaleChannel = SaleChannel.IN_PERSON
    vat_scheme: VatScheme | None = None
    vat_rate: Decimal = DEFAULT_VAT_RATE
    vehicle_price_gross: Decimal | None = None
    add_ons: tuple[AddOn, ...] = ()
    delivery: DeliveryInput | None = None

    def validate(self) -> None:
        errors = []
        if not self.vehicle_id:
            errors.append({"field": "vehicleId", "message": "Vehicle is required", "code": "REQUIRED"})
        if self.vat_rate < 0 or self.vat_rate >= 1:
            errors.append({"field": "vatRate", "message": "Must be between 0 and 1", "code": "INVALID_VALUE"})
        errors.extend(add_on_errors(self.add_ons))
        if errors:
            raise ValidationError(errors=errors)


class CreateDeal:
    """
    Open a DRAFT deal for a stock vehicle.

    Deal numbers are sequential per dealer. The vehicle must exist in the
    dealer's stock and must not already be sold.
    """

    def __init__(self, uow: UnitOfWork, stock: VehicleStock, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._stock = stock
        self._clock = clock

    def execute(self, request: CreateDealRequest) -> Deal:
        request.validate()

        vehicle = self._stock.get_vehicle(request.dealer_id, request.vehicle_id)
        if vehicle is None:
            raise NotFoundError(resource="Vehicle", identifier=request.vehicle_id)
        if vehicle.status is StockStatus.SOLD:
            raise ConflictError("Vehicle has already been sold", vehicle_id=vehicle.id)

        with self._uow as uow:
            now = self._clock()
            deal = Deal(
                id=new_id(),
                dealer_id=request.dealer_id,
                deal_number=uow.deals.next_deal_number(request.dealer_id),
                vehicle_id=vehicle.id,
                sale_type=request.sale_type,
                buyer_use=request.buyer_use,
                sale_channel=request.sale_channel,
                vat_scheme=request.vat_scheme,
                vat_rate=request.vat_rate,
                customer_id=request.customer_id,
                invoice_to_id=request.invoice_to_id,
                add_ons=request.add_ons,
                created_at=now,
                updated_at=now,
            )
            deal = price_vehicle(deal, request.vehicle_price_gross)
            if request.delivery is not None:
                deal = replace(deal, delivery=request.delivery.to_delivery(deal))
            saved = uow.deals.add(deal)
            uow.commit()

        logger.info(
            "Deal created",
            extra={
                "dealer_id": saved.dealer_id,
                "deal_id": saved.id,
                "deal_number": saved.deal_number,
                "vehicle_id": saved.vehicle_id,
            },
        )
        return saved
