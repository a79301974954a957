"""Mark completed use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from deal_desk.domain.deal import Deal
from deal_desk.domain.lifecycle import guard_mark_completed
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.common import Clock, load_deal, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MarkCompletedRequest:
    dealer_id: str
    deal_id: str
    confirm_without_settlement: bool = False
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class MarkCompletedResponse:
    deal: Deal
    stock_follow_ups: list[str]
    part_exchanges_stocked: list[str]


class MarkCompleted:
    """
    Complete a delivered deal.

    Stock updates (vehicle sold, part-exchanges taken into stock) run after the
    status change commits. Each failure is logged and returned in
    ``stock_follow_ups``; none of them reverts the completion.
    """

    def __init__(self, uow: UnitOfWork, stock: VehicleStock, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._stock = stock
        self._clock = clock

    def execute(self, request: MarkCompletedRequest) -> MarkCompletedResponse:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            target = guard_mark_completed(deal, request.confirm_without_settlement)
            now = self._clock()

            saved = uow.deals.save(
                replace(
                    deal,
                    status=target,
                    completed_at=now,
                    completion_notes=request.notes,
                    updated_at=now,
                )
            )
            uow.commit()

        logger.info(
            "Deal completed",
            extra={
                "dealer_id": saved.dealer_id,
                "deal_id": saved.id,
                "without_settlement": bool(saved.financed_px_without_settlement()),
            },
        )

        follow_ups: list[str] = []
        stocked: list[str] = []

        try:
            self._stock.mark_sold(saved.dealer_id, saved.vehicle_id, saved.id)
        except Exception as exc:
            self._report(saved, "mark vehicle sold", exc, follow_ups)

        for px in saved.part_exchanges:
            try:
                vehicle = self._stock.intake_part_exchange(saved.dealer_id, saved.id, px)
            except Exception as exc:
                self._report(saved, f"take part exchange {px.normalized_vrm} into stock", exc, follow_ups)
                continue
            if vehicle is not None:
                stocked.append(vehicle.vrm)

        return MarkCompletedResponse(deal=saved, stock_follow_ups=follow_ups, part_exchanges_stocked=stocked)

    @staticmethod
    def _report(deal: Deal, step: str, exc: Exception, follow_ups: list[str]) -> None:
        logger.error(
            "Completion follow-up failed",
            exc_info=exc,
            extra={"deal_id": deal.id, "dealer_id": deal.dealer_id, "step": step},
        )
        follow_ups.append(f"Failed to {step}")
