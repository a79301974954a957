from __future__ import annotations

from abc import ABC, abstractmethod

from deal_desk.domain.sales_document import DocumentType, SalesDocument


class SalesDocumentRepository(ABC):
    """
    Port for sales document persistence.

    Documents are never deleted. ``save`` follows the same optimistic
    versioning contract as ``DealRepository.save``.
    """

    @abstractmethod
    def get(self, dealer_id: str, document_id: str) -> SalesDocument | None: ...

    @abstractmethod
    def latest_active(
        self, dealer_id: str, deal_id: str, document_type: DocumentType
    ) -> SalesDocument | None:
        """Most recently issued non-void document of ``document_type`` for a deal."""
        ...

    @abstractmethod
    def list_for_deal(self, dealer_id: str, deal_id: str) -> list[SalesDocument]: ...

    @abstractmethod
    def add(self, document: SalesDocument) -> SalesDocument: ...

    @abstractmethod
    def save(self, document: SalesDocument) -> SalesDocument: ...
