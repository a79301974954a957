from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from deal_desk.adapters.postgres_deal_repository import parse_uuid
from deal_desk.domain.party import Party
from deal_desk.infra.db.models.contact import ContactRow
from deal_desk.ports.contact_directory import ContactDirectory


class PostgresContactDirectory(ContactDirectory):
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_party(self, dealer_id: str, contact_id: str) -> Party | None:
        row_id = parse_uuid(contact_id) if contact_id else None
        if row_id is None:
            return None
        query = select(ContactRow).where(ContactRow.id == row_id, ContactRow.dealer_id == dealer_id)
        row = self._session.execute(query).scalar_one_or_none()
        if row is None:
            return None
        return Party(
            id=str(row.id),
            name=row.name,
            company_name=row.company_name,
            email=row.email,
            phone=row.phone,
            address=row.address,
        )
