from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from deal_desk.adapters.postgres_deal_repository import PostgresDealRepository
from deal_desk.adapters.postgres_idempotency_store import PostgresIdempotencyStore
from deal_desk.adapters.postgres_sales_document_repository import PostgresSalesDocumentRepository
from deal_desk.domain.errors import ConflictError
from deal_desk.ports.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """
    Unit of work over one SQLAlchemy session (one request).

    Repositories share the session, so deal, document and idempotency writes
    commit or roll back together.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._committed = False
        self.deals = PostgresDealRepository(session)
        self.documents = PostgresSalesDocumentRepository(session)
        self.idempotency = PostgresIdempotencyStore(session)

    def begin(self) -> None:
        self._committed = False

    def commit(self) -> None:
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError("Conflicting write") from exc
        self._committed = True

    def rollback(self) -> None:
        if not self._committed:
            self._session.rollback()
