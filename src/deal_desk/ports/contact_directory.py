from __future__ import annotations

from abc import ABC, abstractmethod

from deal_desk.domain.party import Party


class ContactDirectory(ABC):
    """Read-only port to the contact/CRM collaborator."""

    @abstractmethod
    def get_party(self, dealer_id: str, contact_id: str) -> Party | None: ...
