from __future__ import annotations

from abc import ABC, abstractmethod

from deal_desk.domain.deal import Deal


class DealRepository(ABC):
    """
    Port for deal persistence.

    Contract:
        - Lookups are dealer-scoped: a deal belonging to another dealer is
          reported as missing, never returned
        - ``save`` applies optimistic concurrency: it succeeds only if the
          stored version equals ``deal.version`` and returns the deal with its
          version incremented; otherwise it raises ``ConflictError``
    """

    @abstractmethod
    def get(self, dealer_id: str, deal_id: str) -> Deal | None: ...

    @abstractmethod
    def add(self, deal: Deal) -> Deal: ...

    @abstractmethod
    def save(self, deal: Deal) -> Deal: ...

    @abstractmethod
    def delete(self, deal: Deal) -> None: ...

    @abstractmethod
    def next_deal_number(self, dealer_id: str) -> int: ...
