from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from deal_desk.ports.deal_repository import DealRepository
from deal_desk.ports.idempotency_store import IdempotencyStore
from deal_desk.ports.sales_document_repository import SalesDocumentRepository


class UnitOfWork(ABC):
    """
    Atomic boundary around deal, document and idempotency writes.

    Usage:
        with uow:
            ...
            uow.commit()

    Leaving the block without ``commit`` (or through an exception) rolls back
    every write made through the repositories.
    """

    deals: DealRepository
    documents: SalesDocumentRepository
    idempotency: IdempotencyStore

    def __enter__(self) -> UnitOfWork:
        self.begin()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.rollback()

    def begin(self) -> None:
        """Hook for adapters that stage writes."""

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None:
        """Discard uncommitted writes; a no-op after ``commit``."""
        ...
