"""Add, update and remove part-exchange vehicles on a deal."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from deal_desk.domain.deal import Deal, PartExchange, normalize_vrm
from deal_desk.domain.part_exchange import (
    add_part_exchange,
    remove_part_exchange,
    update_part_exchange,
)
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.common import Clock, load_deal, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AddPartExchangeRequest:
    dealer_id: str
    deal_id: str
    part_exchange: PartExchange


@dataclass(frozen=True, slots=True)
class UpdatePartExchangeRequest:
    dealer_id: str
    deal_id: str
    index: int
    updates: dict[str, Any]


@dataclass(frozen=True, slots=True)
class RemovePartExchangeRequest:
    dealer_id: str
    deal_id: str
    index: int


class _PartExchangeUseCase:
    def __init__(self, uow: UnitOfWork, stock: VehicleStock, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._stock = stock
        self._clock = clock

    def _vrm_in_stock(self, dealer_id: str, vrm: str | None) -> bool:
        if not vrm:
            return False
        return self._stock.is_in_stock(dealer_id, normalize_vrm(vrm))

    def _save(self, uow: UnitOfWork, deal: Deal) -> Deal:
        saved = uow.deals.save(replace(deal, updated_at=self._clock()))
        uow.commit()
        return saved


class AddPartExchange(_PartExchangeUseCase):
    def execute(self, request: AddPartExchangeRequest) -> Deal:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            in_stock = self._vrm_in_stock(deal.dealer_id, request.part_exchange.vrm)
            saved = self._save(uow, add_part_exchange(deal, request.part_exchange, vrm_in_stock=in_stock))

        logger.info(
            "Part exchange added",
            extra={"deal_id": saved.id, "vrm": saved.part_exchanges[-1].vrm},
        )
        return saved


class UpdatePartExchange(_PartExchangeUseCase):
    def execute(self, request: UpdatePartExchangeRequest) -> Deal:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            in_stock = self._vrm_in_stock(deal.dealer_id, request.updates.get("vrm"))
            saved = self._save(
                uow,
                update_part_exchange(deal, request.index, request.updates, vrm_in_stock=in_stock),
            )

        logger.info(
            "Part exchange updated",
            extra={"deal_id": saved.id, "index": request.index, "fields": sorted(request.updates)},
        )
        return saved


class RemovePartExchange(_PartExchangeUseCase):
    def execute(self, request: RemovePartExchangeRequest) -> Deal:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            saved = self._save(uow, remove_part_exchange(deal, request.index))

        logger.info("Part exchange removed", extra={"deal_id": saved.id, "index": request.index})
        return saved
