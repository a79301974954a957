from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Any

from deal_desk.domain.deal import Deal
from deal_desk.domain.errors import ConflictError
from deal_desk.domain.sales_document import DocumentType, SalesDocument
from deal_desk.ports.deal_repository import DealRepository
from deal_desk.ports.idempotency_store import IdempotencyStore
from deal_desk.ports.sales_document_repository import SalesDocumentRepository
from deal_desk.ports.unit_of_work import UnitOfWork

DealKey = tuple[str, str]
IdempotencyKey = tuple[str, str, str]


class InMemoryStore:
    """
    Committed state shared by every in-memory unit of work.

    One store stands in for one database. Tests that need to observe
    concurrent writers create several units of work over the same store.
    """

    def __init__(self) -> None:
        self.deals: dict[DealKey, Deal] = {}
        self.documents: dict[str, SalesDocument] = {}
        self.idempotency: dict[IdempotencyKey, dict[str, Any]] = {}
        self.deal_numbers: dict[str, int] = {}
        self.lock = threading.Lock()


@dataclass
class _Staging:
    deals: dict[DealKey, Deal | None] = field(default_factory=dict)
    deal_base_versions: dict[DealKey, int | None] = field(default_factory=dict)
    documents: dict[str, SalesDocument] = field(default_factory=dict)
    document_base_versions: dict[str, int | None] = field(default_factory=dict)
    idempotency: dict[IdempotencyKey, dict[str, Any]] = field(default_factory=dict)


class InMemoryDealRepository(DealRepository):
    """
    Canonical contract implementation for tests.

    - Reads see this unit of work's staged writes first
    - ``save`` checks the caller's version against the visible version
    - Staged writes reach the store only through ``InMemoryUnitOfWork.commit``
    """

    def __init__(self, store: InMemoryStore, staging: _Staging) -> None:
        self._store = store
        self._staging = staging

    def get(self, dealer_id: str, deal_id: str) -> Deal | None:
        key = (dealer_id, deal_id)
        if key in self._staging.deals:
            return self._staging.deals[key]
        return self._store.deals.get(key)

    def add(self, deal: Deal) -> Deal:
        key = (deal.dealer_id, deal.id)
        if self.get(*key) is not None:
            raise ConflictError("Deal already exists", deal_id=deal.id)
        stored = replace(deal, version=1)
        self._staging.deal_base_versions.setdefault(key, None)
        self._staging.deals[key] = stored
        return stored

    def save(self, deal: Deal) -> Deal:
        key = (deal.dealer_id, deal.id)
        current = self.get(*key)
        if current is None or current.version != deal.version:
            raise ConflictError("Deal was modified by another request", deal_id=deal.id)
        stored = replace(deal, version=deal.version + 1)
        self._staging.deal_base_versions.setdefault(key, current.version)
        self._staging.deals[key] = stored
        return stored

    def delete(self, deal: Deal) -> None:
        key = (deal.dealer_id, deal.id)
        current = self.get(*key)
        if current is None or current.version != deal.version:
            raise ConflictError("Deal was modified by another request", deal_id=deal.id)
        self._staging.deal_base_versions.setdefault(key, current.version)
        self._staging.deals[key] = None

    def next_deal_number(self, dealer_id: str) -> int:
        # Allocated outside the transaction, like a database sequence.
        with self._store.lock:
            number = self._store.deal_numbers.get(dealer_id, 0) + 1
            self._store.deal_numbers[dealer_id] = number
        return number


class InMemorySalesDocumentRepository(SalesDocumentRepository):
    def __init__(self, store: InMemoryStore, staging: _Staging) -> None:
        self._store = store
        self._staging = staging

    def _visible(self) -> dict[str, SalesDocument]:
        return {**self._store.documents, **self._staging.documents}

    def get(self, dealer_id: str, document_id: str) -> SalesDocument | None:
        document = self._visible().get(document_id)
        if document is None or document.dealer_id != dealer_id:
            return None
        return document

    def latest_active(
        self, dealer_id: str, deal_id: str, document_type: DocumentType
    ) -> SalesDocument | None:
        candidates = [
            d
            for d in self.list_for_deal(dealer_id, deal_id)
            if d.type is document_type and not d.is_void
        ]
        return candidates[-1] if candidates else None

    def list_for_deal(self, dealer_id: str, deal_id: str) -> list[SalesDocument]:
        documents = [
            d for d in self._visible().values() if d.dealer_id == dealer_id and d.deal_id == deal_id
        ]
        return sorted(documents, key=lambda d: (d.issued_at, d.sequence))

    def add(self, document: SalesDocument) -> SalesDocument:
        if document.id in self._visible():
            raise ConflictError("Document already exists", document_id=document.id)
        stored = replace(document, version=1)
        self._staging.document_base_versions.setdefault(document.id, None)
        self._staging.documents[document.id] = stored
        return stored

    def save(self, document: SalesDocument) -> SalesDocument:
        current = self._visible().get(document.id)
        if current is None or current.version != document.version:
            raise ConflictError(
                "Document was modified by another request",
                document_number=document.document_number,
            )
        stored = replace(document, version=document.version + 1)
        self._staging.document_base_versions.setdefault(document.id, current.version)
        self._staging.documents[document.id] = stored
        return stored


class InMemoryIdempotencyStore(IdempotencyStore):
    def __init__(self, store: InMemoryStore, staging: _Staging) -> None:
        self._store = store
        self._staging = staging

    def get(self, dealer_id: str, operation: str, key: str) -> dict[str, Any] | None:
        record_key = (dealer_id, operation, key)
        if record_key in self._staging.idempotency:
            return self._staging.idempotency[record_key]
        return self._store.idempotency.get(record_key)

    def put(self, dealer_id: str, operation: str, key: str, outcome: dict[str, Any]) -> None:
        self._staging.idempotency[(dealer_id, operation, key)] = outcome


class InMemoryUnitOfWork(UnitOfWork):
    """
    Unit of work over an ``InMemoryStore``.

    Writes are staged per block and applied on ``commit`` under the store
    lock, after re-checking that nothing they were based on changed in the
    meantime.
    """

    def __init__(self, store: InMemoryStore | None = None) -> None:
        self.store = store or InMemoryStore()
        self.committed = False
        self.begin()

    def begin(self) -> None:
        self._staging = _Staging()
        self.committed = False
        self.deals = InMemoryDealRepository(self.store, self._staging)
        self.documents = InMemorySalesDocumentRepository(self.store, self._staging)
        self.idempotency = InMemoryIdempotencyStore(self.store, self._staging)

    def commit(self) -> None:
        staging = self._staging
        with self.store.lock:
            for key, base in staging.deal_base_versions.items():
                current = self.store.deals.get(key)
                if (current.version if current else None) != base:
                    raise ConflictError("Deal was modified by another request", deal_id=key[1])
            for document_id, base in staging.document_base_versions.items():
                current = self.store.documents.get(document_id)
                if (current.version if current else None) != base:
                    raise ConflictError("Document was modified by another request")
            for record_key in staging.idempotency:
                if record_key in self.store.idempotency:
                    raise ConflictError("Idempotency key already used", key=record_key[2])

            for key, deal in staging.deals.items():
                if deal is None:
                    self.store.deals.pop(key, None)
                else:
                    self.store.deals[key] = deal
            self.store.documents.update(staging.documents)
            self.store.idempotency.update(staging.idempotency)

        self.committed = True

    def rollback(self) -> None:
        if not self.committed:
            self._staging.deals.clear()
            self._staging.deal_base_versions.clear()
            self._staging.documents.clear()
            self._staging.document_base_versions.clear()
            self._staging.idempotency.clear()
