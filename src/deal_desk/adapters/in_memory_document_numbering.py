from __future__ import annotations

import threading

from deal_desk.domain.sales_document import AllocatedNumber, DocumentType
from deal_desk.ports.document_numbering import DocumentNumbering


class InMemoryDocumentNumbering(DocumentNumbering):
    """
    Thread-safe counter per (dealer, document type).

    Counters live outside any unit of work: a number handed out is consumed
    even if the caller later rolls back.
    """

    def __init__(self, start_at: dict[tuple[str, DocumentType], int] | None = None) -> None:
        self._counters: dict[tuple[str, DocumentType], int] = dict(start_at or {})
        self._lock = threading.Lock()

    def allocate_number(
        self, dealer_id: str, document_type: DocumentType, prefix: str
    ) -> AllocatedNumber:
        key = (dealer_id, document_type)
        with self._lock:
            number = self._counters.get(key, 0) + 1
            self._counters[key] = number
        return AllocatedNumber.format(prefix, number)

    def current(self, dealer_id: str, document_type: DocumentType) -> int:
        return self._counters.get((dealer_id, document_type), 0)
