"""PostgreSQL implementation of DealRepository."""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from deal_desk.adapters.deal_codec import decode_deal, encode_deal
from deal_desk.domain.deal import Deal
from deal_desk.domain.errors import ConflictError
from deal_desk.infra.db.models.deal import DealRow
from deal_desk.infra.db.models.document_counter import DocumentCounterRow
from deal_desk.ports.deal_repository import DealRepository

# Counter row used for deal numbers alongside the document counters
DEAL_NUMBER_COUNTER = "DEAL"


def parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


class PostgresDealRepository(DealRepository):
    """
    PostgreSQL implementation of DealRepository.

    - Stores the aggregate as a JSONB payload next to indexed scope columns
    - ``save`` is a single ``UPDATE ... WHERE version = :expected``; zero rows
      affected means another writer got there first
    - Runs inside the caller's session; the unit of work owns the transaction
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, dealer_id: str, deal_id: str) -> Deal | None:
        row_id = parse_uuid(deal_id)
        if row_id is None:
            return None
        query = select(DealRow).where(DealRow.id == row_id, DealRow.dealer_id == dealer_id)
        row = self._session.execute(query).scalar_one_or_none()
        return self._to_domain(row) if row else None

    def add(self, deal: Deal) -> Deal:
        stored = replace(deal, version=1)
        self._session.add(
            DealRow(
                id=UUID(deal.id),
                dealer_id=deal.dealer_id,
                deal_number=deal.deal_number,
                vehicle_id=deal.vehicle_id,
                status=deal.status.value,
                payload=encode_deal(stored),
                version=1,
            )
        )
        self._session.flush()
        return stored

    def save(self, deal: Deal) -> Deal:
        result = self._session.execute(
            update(DealRow)
            .where(
                DealRow.id == UUID(deal.id),
                DealRow.dealer_id == deal.dealer_id,
                DealRow.version == deal.version,
            )
            .values(
                status=deal.status.value,
                payload=encode_deal(deal),
                version=deal.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Deal was modified by another request", deal_id=deal.id)
        return replace(deal, version=deal.version + 1)

    def delete(self, deal: Deal) -> None:
        result = self._session.execute(
            delete(DealRow)
            .where(
                DealRow.id == UUID(deal.id),
                DealRow.dealer_id == deal.dealer_id,
                DealRow.version == deal.version,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Deal was modified by another request", deal_id=deal.id)

    def next_deal_number(self, dealer_id: str) -> int:
        statement = (
            insert(DocumentCounterRow)
            .values(dealer_id=dealer_id, document_type=DEAL_NUMBER_COUNTER, last_number=1)
            .on_conflict_do_update(
                index_elements=[DocumentCounterRow.dealer_id, DocumentCounterRow.document_type],
                set_={"last_number": DocumentCounterRow.last_number + 1},
            )
            .returning(DocumentCounterRow.last_number)
        )
        return int(self._session.execute(statement).scalar_one())

    def _to_domain(self, row: DealRow) -> Deal:
        return decode_deal(
            row.payload,
            id=str(row.id),
            dealer_id=row.dealer_id,
            deal_number=row.deal_number,
            vehicle_id=row.vehicle_id,
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
