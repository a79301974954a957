"""Shared fixtures: in-memory collaborators, a fixed clock and deal builders."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

import pytest

from deal_desk.adapters.in_memory_contact_directory import InMemoryContactDirectory
from deal_desk.adapters.in_memory_document_numbering import InMemoryDocumentNumbering
from deal_desk.adapters.in_memory_unit_of_work import InMemoryStore, InMemoryUnitOfWork
from deal_desk.adapters.in_memory_vehicle_stock import InMemoryVehicleStock
from deal_desk.domain.deal import Deal, DealStatus, VatScheme
from deal_desk.domain.party import Party
from deal_desk.domain.pricing import price_vehicle
from deal_desk.domain.stock import StockVehicle
from deal_desk.use_cases.common import DocumentIssuer

DEALER_ID = "dealer-1"
OTHER_DEALER_ID = "dealer-2"
VEHICLE_ID = "veh-1"
CUSTOMER_ID = "cust-1"
DEAL_ID = "11111111-1111-1111-1111-111111111111"

FIXED_NOW = datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def uow(store: InMemoryStore) -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork(store)


@pytest.fixture()
def stock() -> InMemoryVehicleStock:
    return InMemoryVehicleStock(
        [
            StockVehicle(
                id=VEHICLE_ID,
                dealer_id=DEALER_ID,
                vrm="AB12CDE",
                make="Ford",
                model="Focus",
                year=2019,
                mileage=42000,
            )
        ]
    )


@pytest.fixture()
def contacts() -> InMemoryContactDirectory:
    return InMemoryContactDirectory(
        {DEALER_ID: [Party(id=CUSTOMER_ID, name="Jane Buyer", email="jane@example.com")]}
    )


@pytest.fixture()
def numbering() -> InMemoryDocumentNumbering:
    return InMemoryDocumentNumbering()


@pytest.fixture()
def issuer(numbering: InMemoryDocumentNumbering, clock: Callable[[], datetime]) -> DocumentIssuer:
    return DocumentIssuer(numbering, clock)


@pytest.fixture()
def make_deal() -> Callable[..., Deal]:
    """
    Build a deal ready for deposit: customer set and a MARGIN price of
    £12,000. Pass ``price`` to reprice through the normal gross derivation.
    """

    def _make(price: Decimal | None = Decimal("12000.00"), **overrides: Any) -> Deal:
        deal = Deal(
            id=overrides.pop("id", DEAL_ID),
            dealer_id=overrides.pop("dealer_id", DEALER_ID),
            deal_number=overrides.pop("deal_number", 1),
            vehicle_id=overrides.pop("vehicle_id", VEHICLE_ID),
            customer_id=overrides.pop("customer_id", CUSTOMER_ID),
            vat_scheme=overrides.pop("vat_scheme", VatScheme.MARGIN),
            status=overrides.pop("status", DealStatus.DRAFT),
        )
        deal = price_vehicle(deal, price)
        return replace(deal, **overrides)

    return _make


@pytest.fixture()
def seed(store: InMemoryStore) -> Callable[[Deal], Deal]:
    """Commit a deal straight into the store and return the stored copy."""

    def _seed(deal: Deal) -> Deal:
        seeding = InMemoryUnitOfWork(store)
        with seeding:
            stored = seeding.deals.add(deal)
            seeding.commit()
        return stored

    return _seed
