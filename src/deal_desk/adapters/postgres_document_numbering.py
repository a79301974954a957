"""PostgreSQL implementation of DocumentNumbering."""

from __future__ import annotations

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session, sessionmaker

from deal_desk.domain.sales_document import AllocatedNumber, DocumentType
from deal_desk.infra.db.models.document_counter import DocumentCounterRow
from deal_desk.ports.document_numbering import DocumentNumbering


class PostgresDocumentNumbering(DocumentNumbering):
    """
    Atomic counters in ``document_counters``.

    Each allocation is a single upsert committed in its own session, so the
    number stays consumed when the caller's transaction rolls back and
    concurrent callers serialise on the counter row.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def allocate_number(
        self, dealer_id: str, document_type: DocumentType, prefix: str
    ) -> AllocatedNumber:
        statement = (
            insert(DocumentCounterRow)
            .values(dealer_id=dealer_id, document_type=document_type.value, last_number=1)
            .on_conflict_do_update(
                index_elements=[DocumentCounterRow.dealer_id, DocumentCounterRow.document_type],
                set_={"last_number": DocumentCounterRow.last_number + 1},
            )
            .returning(DocumentCounterRow.last_number)
        )
        with self._session_factory() as session, session.begin():
            number = int(session.execute(statement).scalar_one())
        return AllocatedNumber.format(prefix, number)
