from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from deal_desk.adapters.deal_codec import to_json_safe
from deal_desk.infra.db.models.idempotency_key import IdempotencyKeyRow
from deal_desk.ports.idempotency_store import IdempotencyStore


class PostgresIdempotencyStore(IdempotencyStore):
    """
    Idempotency records in the caller's transaction.

    A concurrent request with the same key fails on the primary key at
    flush/commit and its whole unit of work rolls back.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, dealer_id: str, operation: str, key: str) -> dict[str, Any] | None:
        query = select(IdempotencyKeyRow.outcome).where(
            IdempotencyKeyRow.dealer_id == dealer_id,
            IdempotencyKeyRow.operation == operation,
            IdempotencyKeyRow.key == key,
        )
        return self._session.execute(query).scalar_one_or_none()

    def put(self, dealer_id: str, operation: str, key: str, outcome: dict[str, Any]) -> None:
        self._session.add(
            IdempotencyKeyRow(
                dealer_id=dealer_id,
                operation=operation,
                key=key,
                outcome=to_json_safe(outcome),
            )
        )
