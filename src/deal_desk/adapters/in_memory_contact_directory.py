from __future__ import annotations

from deal_desk.domain.party import Party
from deal_desk.ports.contact_directory import ContactDirectory


class InMemoryContactDirectory(ContactDirectory):
    def __init__(self, parties: dict[str, list[Party]] | None = None) -> None:
        # dealer_id -> contacts
        self._parties = parties or {}

    def add(self, dealer_id: str, party: Party) -> None:
        self._parties.setdefault(dealer_id, []).append(party)

    def get_party(self, dealer_id: str, contact_id: str) -> Party | None:
        for party in self._parties.get(dealer_id, []):
            if party.id == contact_id:
                return party
        return None
