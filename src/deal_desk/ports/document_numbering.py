from __future__ import annotations

from abc import ABC, abstractmethod

from deal_desk.domain.sales_document import AllocatedNumber, DocumentType


class DocumentNumbering(ABC):
    """
    Atomic document-number allocation.

    Contract:
        - Numbers are unique and strictly increasing per (dealer, document type),
          including under concurrent callers
        - An allocated number is never handed out again, even if the caller's
          own transaction later rolls back or the document is voided
        - Allocation runs independently of the caller's unit of work
    """

    @abstractmethod
    def allocate_number(
        self, dealer_id: str, document_type: DocumentType, prefix: str
    ) -> AllocatedNumber: ...
