"""Delete deal use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from deal_desk.domain.lifecycle import guard_delete
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.common import load_deal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeleteDealRequest:
    dealer_id: str
    deal_id: str


class DeleteDeal:
    """Remove a draft deal and release its vehicle."""

    def __init__(self, uow: UnitOfWork, stock: VehicleStock) -> None:
        self._uow = uow
        self._stock = stock

    def execute(self, request: DeleteDealRequest) -> None:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            guard_delete(deal)
            uow.deals.delete(deal)
            uow.commit()

        logger.info("Draft deal deleted", extra={"dealer_id": deal.dealer_id, "deal_id": deal.id})

        try:
            self._stock.restore_to_stock(deal.dealer_id, deal.vehicle_id)
        except Exception as exc:
            logger.error(
                "Failed to release vehicle after delete",
                exc_info=exc,
                extra={"deal_id": deal.id, "vehicle_id": deal.vehicle_id},
            )
