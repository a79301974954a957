"""Tests for the in-memory unit of work, stock book and numbering."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Callable

import pytest

from deal_desk.adapters.in_memory_document_numbering import InMemoryDocumentNumbering
from deal_desk.adapters.in_memory_unit_of_work import InMemoryStore, InMemoryUnitOfWork
from deal_desk.adapters.in_memory_vehicle_stock import InMemoryVehicleStock
from deal_desk.domain.deal import Deal, DealStatus, PartExchange
from deal_desk.domain.errors import ConflictError, NotFoundError
from deal_desk.domain.sales_document import DocumentType
from deal_desk.domain.stock import StockStatus

DEALER_ID = "dealer-1"
DEAL_ID = "11111111-1111-1111-1111-111111111111"
KEY = (DEALER_ID, DEAL_ID)


# ==============================================================================
# InMemoryUnitOfWork
# ==============================================================================


class TestInMemoryUnitOfWork:
    def test_writes_without_commit_are_discarded(
        self, store: InMemoryStore, make_deal: Callable[..., Deal]
    ) -> None:
        uow = InMemoryUnitOfWork(store)

        with uow:
            uow.deals.add(make_deal())

        assert store.deals == {}

    def test_exception_rolls_back(self, store: InMemoryStore, make_deal: Callable[..., Deal]) -> None:
        uow = InMemoryUnitOfWork(store)

        with pytest.raises(RuntimeError):
            with uow:
                uow.deals.add(make_deal())
                raise RuntimeError("boom")

        assert store.deals == {}

    def test_reads_see_own_staged_writes(self, make_deal: Callable[..., Deal]) -> None:
        uow = InMemoryUnitOfWork()

        with uow:
            stored = uow.deals.add(make_deal())
            assert uow.deals.get(DEALER_ID, DEAL_ID) == stored

    def test_stale_save_is_rejected(self, seed, store: InMemoryStore) -> None:
        deal = seed_deal(seed)
        uow = InMemoryUnitOfWork(store)

        with uow, pytest.raises(ConflictError):
            uow.deals.save(replace(deal, version=7))

    def test_concurrent_writers_conflict_on_commit(self, seed, store: InMemoryStore) -> None:
        seed_deal(seed)
        first = InMemoryUnitOfWork(store)
        second = InMemoryUnitOfWork(store)

        with first, second:
            a = first.deals.get(DEALER_ID, DEAL_ID)
            b = second.deals.get(DEALER_ID, DEAL_ID)
            first.deals.save(replace(a, status=DealStatus.DEPOSIT_TAKEN))
            second.deals.save(replace(b, status=DealStatus.CANCELLED))

            first.commit()
            with pytest.raises(ConflictError):
                second.commit()

        assert store.deals[KEY].status is DealStatus.DEPOSIT_TAKEN
        assert store.deals[KEY].version == 2

    def test_idempotency_key_used_twice_conflicts(self, store: InMemoryStore) -> None:
        first = InMemoryUnitOfWork(store)
        second = InMemoryUnitOfWork(store)

        with first, second:
            first.idempotency.put(DEALER_ID, "take-deposit", "k", {"ok": True})
            second.idempotency.put(DEALER_ID, "take-deposit", "k", {"ok": True})
            first.commit()
            with pytest.raises(ConflictError):
                second.commit()

    def test_deal_numbers_are_per_dealer(self) -> None:
        uow = InMemoryUnitOfWork()

        assert [uow.deals.next_deal_number("a") for _ in range(3)] == [1, 2, 3]
        assert uow.deals.next_deal_number("b") == 1


def seed_deal(seed) -> Deal:
    return seed(Deal(id=DEAL_ID, dealer_id=DEALER_ID, deal_number=1, vehicle_id="veh-1"))


# ==============================================================================
# InMemoryVehicleStock
# ==============================================================================


class TestInMemoryVehicleStock:
    def test_is_in_stock_ignores_spacing_and_case(self, stock: InMemoryVehicleStock) -> None:
        assert stock.is_in_stock(DEALER_ID, "ab12 cde") is True
        assert stock.is_in_stock("dealer-2", "AB12CDE") is False

    def test_sold_vehicle_is_no_longer_in_stock(self, stock: InMemoryVehicleStock) -> None:
        stock.mark_sold(DEALER_ID, "veh-1", DEAL_ID)

        assert stock.is_in_stock(DEALER_ID, "AB12CDE") is False
        assert stock.get_vehicle(DEALER_ID, "veh-1").status is StockStatus.SOLD

    def test_intake_and_removal_of_part_exchange(self, stock: InMemoryVehicleStock) -> None:
        px = PartExchange(vrm="xy65 abc", allowance=Decimal("1000.00"), make="Kia")

        vehicle = stock.intake_part_exchange(DEALER_ID, DEAL_ID, px)

        assert vehicle.vrm == "XY65ABC"
        assert vehicle.source_deal_id == DEAL_ID
        assert stock.intake_part_exchange(DEALER_ID, DEAL_ID, px) is None
        assert stock.remove_unsold_part_exchanges(DEALER_ID, DEAL_ID) == ["XY65ABC"]
        assert stock.is_in_stock(DEALER_ID, "XY65ABC") is False

    def test_sold_part_exchange_is_kept(self, stock: InMemoryVehicleStock) -> None:
        px = PartExchange(vrm="XY65ABC", allowance=Decimal("1000.00"))
        vehicle = stock.intake_part_exchange(DEALER_ID, DEAL_ID, px)
        stock.mark_sold(DEALER_ID, vehicle.id, "later-deal")

        assert stock.remove_unsold_part_exchanges(DEALER_ID, DEAL_ID) == []

    def test_status_change_for_unknown_vehicle_raises(self, stock: InMemoryVehicleStock) -> None:
        with pytest.raises(NotFoundError):
            stock.mark_in_deal(DEALER_ID, "missing", DEAL_ID)


# ==============================================================================
# InMemoryDocumentNumbering
# ==============================================================================


def test_numbering_counts_per_dealer_and_type() -> None:
    numbering = InMemoryDocumentNumbering()

    first = numbering.allocate_number(DEALER_ID, DocumentType.INVOICE, "INV")
    second = numbering.allocate_number(DEALER_ID, DocumentType.INVOICE, "INV")
    other_type = numbering.allocate_number(DEALER_ID, DocumentType.DEPOSIT_RECEIPT, "DEP")
    other_dealer = numbering.allocate_number("dealer-2", DocumentType.INVOICE, "INV")

    assert [first.document_number, second.document_number] == ["INV00001", "INV00002"]
    assert other_type.document_number == "DEP00001"
    assert other_dealer.number == 1
    assert numbering.current(DEALER_ID, DocumentType.INVOICE) == 2


def test_numbering_can_start_from_existing_counter() -> None:
    numbering = InMemoryDocumentNumbering({(DEALER_ID, DocumentType.INVOICE): 41})

    assert numbering.allocate_number(DEALER_ID, DocumentType.INVOICE, "INV").document_number == "INV00042"
