"""Cancel deal use case."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable

from deal_desk.domain.deal import AgreedWorkItem, Deal, DealStatus, RequestStatus
from deal_desk.domain.lifecycle import guard_cancel
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.common import Clock, load_deal, utc_now

logger = logging.getLogger(__name__)

_OPEN_REQUEST_STATUSES = frozenset({RequestStatus.REQUESTED, RequestStatus.IN_PROGRESS})


@dataclass(frozen=True, slots=True)
class CancelDealRequest:
    dealer_id: str
    deal_id: str
    reason: str | None = None
    confirmed: bool = False


@dataclass(frozen=True, slots=True)
class CompensationFailure:
    step: str
    error: str


@dataclass(frozen=True, slots=True)
class CancelDealResponse:
    deal: Deal
    previous_status: DealStatus
    removed_part_exchange_vrms: list[str]
    compensation_failures: list[CompensationFailure]

    @property
    def success(self) -> bool:
        return not self.compensation_failures


def cancel_open_requests(requests: tuple[AgreedWorkItem, ...]) -> tuple[AgreedWorkItem, ...]:
    return tuple(
        replace(r, status=RequestStatus.CANCELLED) if r.status in _OPEN_REQUEST_STATUSES else r
        for r in requests
    )


class CancelDeal:
    """
    Cancel a deal, then compensate in the stock book.

    The cancellation commits first. Compensating steps run afterwards, each in
    isolation: restoring the vehicle to stock, and for a completed deal
    removing the part-exchange vehicles it brought in that have not been
    resold. A failing step is logged and reported, and the remaining steps
    still run.
    """

    def __init__(self, uow: UnitOfWork, stock: VehicleStock, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._stock = stock
        self._clock = clock

    def execute(self, request: CancelDealRequest) -> CancelDealResponse:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            target = guard_cancel(deal, request.reason, request.confirmed)
            previous_status = deal.status
            now = self._clock()

            saved = uow.deals.save(
                replace(
                    deal,
                    status=target,
                    cancelled_at=now,
                    cancel_reason=(request.reason or "").strip() or None,
                    requests=cancel_open_requests(deal.requests),
                    updated_at=now,
                )
            )
            uow.commit()

        logger.info(
            "Deal cancelled",
            extra={
                "dealer_id": saved.dealer_id,
                "deal_id": saved.id,
                "previous_status": previous_status.value,
                "reason": saved.cancel_reason,
            },
        )

        failures: list[CompensationFailure] = []
        removed: list[str] = []

        self._compensate(
            saved,
            "restore_vehicle_to_stock",
            lambda: self._stock.restore_to_stock(saved.dealer_id, saved.vehicle_id),
            failures,
        )
        if previous_status is DealStatus.COMPLETED:
            self._compensate(
                saved,
                "remove_unsold_part_exchanges",
                lambda: removed.extend(
                    self._stock.remove_unsold_part_exchanges(saved.dealer_id, saved.id)
                ),
                failures,
            )

        return CancelDealResponse(
            deal=saved,
            previous_status=previous_status,
            removed_part_exchange_vrms=removed,
            compensation_failures=failures,
        )

    @staticmethod
    def _compensate(
        deal: Deal,
        step: str,
        action: Callable[[], object],
        failures: list[CompensationFailure],
    ) -> None:
        try:
            action()
        except Exception as exc:
            logger.error(
                "Cancellation compensation failed",
                exc_info=exc,
                extra={"deal_id": deal.id, "dealer_id": deal.dealer_id, "step": step},
            )
            failures.append(CompensationFailure(step=step, error=str(exc)))
