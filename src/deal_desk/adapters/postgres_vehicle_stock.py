"""PostgreSQL implementation of the VehicleStock collaborator port."""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, sessionmaker

from deal_desk.adapters.postgres_deal_repository import parse_uuid
from deal_desk.domain.deal import PartExchange, normalize_vrm
from deal_desk.domain.errors import NotFoundError
from deal_desk.domain.stock import StockStatus, StockVehicle
from deal_desk.infra.db.models.vehicle import VehicleRow
from deal_desk.ports.vehicle_stock import VehicleStock


class PostgresVehicleStock(VehicleStock):
    """
    Stock book access through its own sessions.

    Every call commits independently of the deal's unit of work, which keeps
    stock updates in a separate failure domain: callers run them after the
    deal change commits and report failures instead of rolling back.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_vehicle(self, dealer_id: str, vehicle_id: str) -> StockVehicle | None:
        row_id = parse_uuid(vehicle_id)
        if row_id is None:
            return None
        with self._session_factory() as session:
            row = session.execute(
                select(VehicleRow).where(VehicleRow.id == row_id, VehicleRow.dealer_id == dealer_id)
            ).scalar_one_or_none()
            return self._to_domain(row) if row else None

    def is_in_stock(self, dealer_id: str, vrm: str) -> bool:
        with self._session_factory() as session:
            count = session.execute(
                select(func.count())
                .select_from(VehicleRow)
                .where(
                    VehicleRow.dealer_id == dealer_id,
                    func.upper(func.replace(VehicleRow.vrm, " ", "")) == normalize_vrm(vrm),
                    VehicleRow.status != StockStatus.SOLD.value,
                )
            ).scalar()
        return bool(count)

    def mark_in_deal(self, dealer_id: str, vehicle_id: str, deal_id: str) -> None:
        self._set_status(dealer_id, vehicle_id, StockStatus.IN_DEAL)

    def mark_sold(self, dealer_id: str, vehicle_id: str, deal_id: str) -> None:
        self._set_status(dealer_id, vehicle_id, StockStatus.SOLD)

    def restore_to_stock(self, dealer_id: str, vehicle_id: str) -> None:
        self._set_status(dealer_id, vehicle_id, StockStatus.AVAILABLE)

    def intake_part_exchange(
        self, dealer_id: str, deal_id: str, part_exchange: PartExchange
    ) -> StockVehicle | None:
        if self.is_in_stock(dealer_id, part_exchange.vrm):
            return None
        row = VehicleRow(
            id=uuid4(),
            dealer_id=dealer_id,
            vrm=part_exchange.normalized_vrm,
            make=part_exchange.make,
            model=part_exchange.model,
            year=part_exchange.year,
            mileage=part_exchange.mileage,
            status=StockStatus.AVAILABLE.value,
            source_deal_id=UUID(deal_id),
        )
        with self._session_factory() as session, session.begin():
            session.add(row)
        return self._to_domain(row)

    def remove_unsold_part_exchanges(self, dealer_id: str, deal_id: str) -> list[str]:
        statement = (
            delete(VehicleRow)
            .where(
                VehicleRow.dealer_id == dealer_id,
                VehicleRow.source_deal_id == UUID(deal_id),
                VehicleRow.status != StockStatus.SOLD.value,
            )
            .returning(VehicleRow.vrm)
        )
        with self._session_factory() as session, session.begin():
            return list(session.execute(statement).scalars().all())

    def _set_status(self, dealer_id: str, vehicle_id: str, status: StockStatus) -> None:
        row_id = parse_uuid(vehicle_id)
        if row_id is None:
            raise NotFoundError(resource="Vehicle", identifier=vehicle_id)
        with self._session_factory() as session, session.begin():
            result = session.execute(
                update(VehicleRow)
                .where(VehicleRow.id == row_id, VehicleRow.dealer_id == dealer_id)
                .values(status=status.value)
            )
            if result.rowcount != 1:
                raise NotFoundError(resource="Vehicle", identifier=vehicle_id)

    def _to_domain(self, row: VehicleRow) -> StockVehicle:
        return StockVehicle(
            id=str(row.id),
            dealer_id=row.dealer_id,
            vrm=row.vrm,
            make=row.make,
            model=row.model,
            year=row.year,
            mileage=row.mileage,
            status=StockStatus(row.status),
            source_deal_id=str(row.source_deal_id) if row.source_deal_id else None,
        )
