"""Read-side use cases: a deal with live totals, and its documents."""

from __future__ import annotations

from dataclasses import dataclass

from deal_desk.domain.deal import Deal
from deal_desk.domain.part_exchange import PartExchangeValuation, value_part_exchanges
from deal_desk.domain.sales_document import SalesDocument
from deal_desk.domain.totals import Totals, calculate_totals
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.use_cases.common import load_deal


@dataclass(frozen=True, slots=True)
class GetDealRequest:
    dealer_id: str
    deal_id: str


@dataclass(frozen=True, slots=True)
class GetDealResponse:
    deal: Deal
    totals: Totals
    part_exchange_valuations: list[PartExchangeValuation]


class GetDeal:
    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, request: GetDealRequest) -> GetDealResponse:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
        return GetDealResponse(
            deal=deal,
            totals=calculate_totals(deal),
            part_exchange_valuations=value_part_exchanges(deal),
        )


class ListDealDocuments:
    """Documents for a deal in issue order, voided ones included."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def execute(self, request: GetDealRequest) -> list[SalesDocument]:
        with self._uow as uow:
            deal = load_deal(uow, request.dealer_id, request.deal_id)
            return uow.documents.list_for_deal(deal.dealer_id, deal.id)
