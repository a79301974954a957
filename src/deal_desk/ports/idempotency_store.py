from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IdempotencyStore(ABC):
    """
    Stores the outcome of money-mutating operations by client-supplied key.

    Records are written inside the same unit of work as the mutation they
    describe, so a stored outcome exists if and only if the mutation committed.
    """

    @abstractmethod
    def get(self, dealer_id: str, operation: str, key: str) -> dict[str, Any] | None: ...

    @abstractmethod
    def put(self, dealer_id: str, operation: str, key: str, outcome: dict[str, Any]) -> None: ...
