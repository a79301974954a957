"""Test suite for MarkDelivered and MarkCompleted use cases."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable
from unittest.mock import Mock

import pytest

from deal_desk.adapters.in_memory_unit_of_work import InMemoryStore
from deal_desk.adapters.in_memory_vehicle_stock import InMemoryVehicleStock
from deal_desk.domain.deal import Deal, DealStatus, PartExchange
from deal_desk.domain.errors import (
    InvalidTransitionError,
    SettlementConfirmationRequired,
    ValidationError,
)
from deal_desk.domain.stock import StockStatus, StockVehicle
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.mark_completed import MarkCompleted, MarkCompletedRequest
from deal_desk.use_cases.mark_delivered import MarkDelivered, MarkDeliveredRequest

DEALER_ID = "dealer-1"
DEAL_ID = "11111111-1111-1111-1111-111111111111"
KEY = (DEALER_ID, DEAL_ID)

FINANCED_PX = PartExchange(
    vrm="xy65 abc",
    allowance=Decimal("3000.00"),
    settlement=Decimal("1200.00"),
    make="Vauxhall",
    model="Corsa",
    has_finance=True,
    finance_company_id="fin-1",
)


# ==============================================================================
# MarkDelivered
# ==============================================================================


def test_mark_delivered_records_handover(
    uow, clock, make_deal: Callable[..., Deal], seed, store: InMemoryStore
) -> None:
    seed(make_deal(status=DealStatus.INVOICED))

    deal = MarkDelivered(uow, clock).execute(
        MarkDeliveredRequest(
            dealer_id=DEALER_ID, deal_id=DEAL_ID, customer_confirmed=True, mileage=42100
        )
    )

    assert deal.status is DealStatus.DELIVERED
    assert deal.delivered_at == clock()
    assert deal.delivery_mileage == 42100
    assert store.deals[KEY].status is DealStatus.DELIVERED


def test_mark_delivered_requires_customer_confirmation(
    uow, clock, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal(status=DealStatus.INVOICED))

    with pytest.raises(ValidationError) as exc_info:
        MarkDelivered(uow, clock).execute(
            MarkDeliveredRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID, customer_confirmed=False)
        )

    assert exc_info.value.errors[0]["field"] == "customerConfirmed"


def test_mark_delivered_before_invoice_is_invalid(
    uow, clock, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal(status=DealStatus.DEPOSIT_TAKEN))

    with pytest.raises(InvalidTransitionError):
        MarkDelivered(uow, clock).execute(
            MarkDeliveredRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID, customer_confirmed=True)
        )


def test_mark_delivered_rejects_negative_mileage(uow, clock) -> None:
    with pytest.raises(ValidationError):
        MarkDelivered(uow, clock).execute(
            MarkDeliveredRequest(
                dealer_id=DEALER_ID, deal_id=DEAL_ID, customer_confirmed=True, mileage=-1
            )
        )


# ==============================================================================
# MarkCompleted
# ==============================================================================


def test_financed_px_without_settlement_needs_confirmation(
    uow, stock: InMemoryVehicleStock, clock, make_deal: Callable[..., Deal], seed, store
) -> None:
    seed(make_deal(status=DealStatus.DELIVERED, part_exchanges=(FINANCED_PX,)))

    with pytest.raises(SettlementConfirmationRequired) as exc_info:
        MarkCompleted(uow, stock, clock).execute(
            MarkCompletedRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID)
        )

    assert exc_info.value.context["vrms"] == ["XY65ABC"]
    assert store.deals[KEY].status is DealStatus.DELIVERED


def test_completion_sells_vehicle_and_stocks_part_exchange(
    uow, stock: InMemoryVehicleStock, clock, make_deal: Callable[..., Deal], seed, store
) -> None:
    seed(make_deal(status=DealStatus.DELIVERED, part_exchanges=(FINANCED_PX,)))

    result = MarkCompleted(uow, stock, clock).execute(
        MarkCompletedRequest(
            dealer_id=DEALER_ID,
            deal_id=DEAL_ID,
            confirm_without_settlement=True,
            notes="Keys handed over",
        )
    )

    assert result.deal.status is DealStatus.COMPLETED
    assert result.deal.completion_notes == "Keys handed over"
    assert result.stock_follow_ups == []
    assert result.part_exchanges_stocked == ["XY65ABC"]
    assert stock.get_vehicle(DEALER_ID, "veh-1").status is StockStatus.SOLD
    intake = [v for v in stock.vehicles if v.source_deal_id == DEAL_ID]
    assert [v.vrm for v in intake] == ["XY65ABC"]


def test_part_exchange_already_in_stock_is_not_duplicated(
    uow, clock, make_deal: Callable[..., Deal], seed
) -> None:
    stock = InMemoryVehicleStock(
        [
            StockVehicle(id="veh-1", dealer_id=DEALER_ID, vrm="AB12CDE"),
            StockVehicle(id="veh-2", dealer_id=DEALER_ID, vrm="XY65ABC"),
        ]
    )
    px = PartExchange(vrm="XY65ABC", allowance=Decimal("3000.00"))
    seed(make_deal(status=DealStatus.DELIVERED, part_exchanges=(px,)))

    result = MarkCompleted(uow, stock, clock).execute(
        MarkCompletedRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID)
    )

    assert result.part_exchanges_stocked == []
    assert len(stock.vehicles) == 2


def test_stock_failures_are_reported_not_reverted(
    uow, clock, make_deal: Callable[..., Deal], seed, store: InMemoryStore
) -> None:
    px = PartExchange(vrm="XY65ABC", allowance=Decimal("3000.00"))
    seed(make_deal(status=DealStatus.DELIVERED, part_exchanges=(px,)))
    stock = Mock(spec=VehicleStock)
    stock.mark_sold.side_effect = RuntimeError("stock service down")
    stock.intake_part_exchange.side_effect = RuntimeError("stock service down")

    result = MarkCompleted(uow, stock, clock).execute(
        MarkCompletedRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID)
    )

    assert result.stock_follow_ups == [
        "Failed to mark vehicle sold",
        "Failed to take part exchange XY65ABC into stock",
    ]
    assert store.deals[KEY].status is DealStatus.COMPLETED


def test_complete_before_delivery_is_invalid(
    uow, stock, clock, make_deal: Callable[..., Deal], seed
) -> None:
    seed(make_deal(status=DealStatus.INVOICED))

    with pytest.raises(InvalidTransitionError):
        MarkCompleted(uow, stock, clock).execute(
            MarkCompletedRequest(dealer_id=DEALER_ID, deal_id=DEAL_ID)
        )
