"""
Unit test suite for the PostgreSQL adapters.

Sessions are mocked; these tests cover statement outcomes the adapters act
on (row counts, scalar results, integrity errors) rather than SQL text.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable
from unittest.mock import MagicMock, Mock

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from deal_desk.adapters.deal_codec import encode_deal
from deal_desk.adapters.postgres_deal_repository import PostgresDealRepository
from deal_desk.adapters.postgres_document_numbering import PostgresDocumentNumbering
from deal_desk.adapters.postgres_idempotency_store import PostgresIdempotencyStore
from deal_desk.adapters.postgres_unit_of_work import SqlAlchemyUnitOfWork
from deal_desk.domain.deal import Deal, DealStatus
from deal_desk.domain.errors import ConflictError
from deal_desk.domain.sales_document import DocumentType
from deal_desk.infra.db.models.deal import DealRow
from deal_desk.infra.db.models.idempotency_key import IdempotencyKeyRow

DEAL_ID = "11111111-1111-1111-1111-111111111111"
CREATED_AT = datetime(2026, 3, 1, tzinfo=timezone.utc)


@pytest.fixture()
def mock_session() -> Mock:
    """Mock SQLAlchemy session."""
    return Mock(spec=Session)


# ==============================================================================
# PostgresDealRepository
# ==============================================================================


class TestPostgresDealRepository:
    def test_get_with_malformed_id_skips_query(self, mock_session: Mock) -> None:
        repository = PostgresDealRepository(mock_session)

        assert repository.get("dealer-1", "not-a-uuid") is None
        mock_session.execute.assert_not_called()

    def test_get_decodes_row(self, mock_session: Mock, make_deal: Callable[..., Deal]) -> None:
        deal = make_deal(status=DealStatus.DEPOSIT_TAKEN)
        row = DealRow(
            id=uuid.UUID(DEAL_ID),
            dealer_id="dealer-1",
            deal_number=1,
            vehicle_id="veh-1",
            status="DEPOSIT_TAKEN",
            payload=encode_deal(deal),
            version=4,
            created_at=CREATED_AT,
            updated_at=CREATED_AT,
        )
        mock_session.execute.return_value.scalar_one_or_none.return_value = row

        result = PostgresDealRepository(mock_session).get("dealer-1", DEAL_ID)

        assert result.status is DealStatus.DEPOSIT_TAKEN
        assert result.vehicle_price_gross == Decimal("12000.00")
        assert result.version == 4
        assert result.created_at == CREATED_AT

    def test_add_flushes_and_sets_first_version(
        self, mock_session: Mock, make_deal: Callable[..., Deal]
    ) -> None:
        stored = PostgresDealRepository(mock_session).add(make_deal())

        assert stored.version == 1
        row = mock_session.add.call_args.args[0]
        assert isinstance(row, DealRow)
        assert row.payload["vehicle_price_gross"] == "12000.00"
        mock_session.flush.assert_called_once()

    def test_save_increments_version(self, mock_session: Mock, make_deal: Callable[..., Deal]) -> None:
        mock_session.execute.return_value.rowcount = 1

        saved = PostgresDealRepository(mock_session).save(make_deal(version=2))

        assert saved.version == 3

    def test_save_with_stale_version_raises_conflict(
        self, mock_session: Mock, make_deal: Callable[..., Deal]
    ) -> None:
        mock_session.execute.return_value.rowcount = 0

        with pytest.raises(ConflictError) as exc_info:
            PostgresDealRepository(mock_session).save(make_deal(version=2))

        assert exc_info.value.context["deal_id"] == DEAL_ID

    def test_next_deal_number_returns_counter(self, mock_session: Mock) -> None:
        mock_session.execute.return_value.scalar_one.return_value = 17

        assert PostgresDealRepository(mock_session).next_deal_number("dealer-1") == 17


# ==============================================================================
# PostgresDocumentNumbering
# ==============================================================================


def test_numbering_commits_in_its_own_session() -> None:
    session_factory = MagicMock()
    session = session_factory.return_value.__enter__.return_value
    session.execute.return_value.scalar_one.return_value = 7

    allocated = PostgresDocumentNumbering(session_factory).allocate_number(
        "dealer-1", DocumentType.INVOICE, "INV"
    )

    assert allocated.document_number == "INV00007"
    assert allocated.number == 7
    session.begin.assert_called_once()


# ==============================================================================
# PostgresIdempotencyStore
# ==============================================================================


def test_idempotency_outcome_is_stored_json_safe(mock_session: Mock) -> None:
    PostgresIdempotencyStore(mock_session).put(
        "dealer-1", "take-deposit", "k-1", {"amount": Decimal("500.00")}
    )

    row = mock_session.add.call_args.args[0]
    assert isinstance(row, IdempotencyKeyRow)
    assert row.outcome == {"amount": "500.00"}


def test_idempotency_get_returns_outcome(mock_session: Mock) -> None:
    mock_session.execute.return_value.scalar_one_or_none.return_value = {"receipt_id": "r-1"}

    assert PostgresIdempotencyStore(mock_session).get("dealer-1", "take-deposit", "k-1") == {
        "receipt_id": "r-1"
    }


# ==============================================================================
# SqlAlchemyUnitOfWork
# ==============================================================================


class TestSqlAlchemyUnitOfWork:
    def test_leaving_block_without_commit_rolls_back(self, mock_session: Mock) -> None:
        with SqlAlchemyUnitOfWork(mock_session):
            pass

        mock_session.rollback.assert_called_once()

    def test_commit_then_exit_does_not_roll_back(self, mock_session: Mock) -> None:
        with SqlAlchemyUnitOfWork(mock_session) as uow:
            uow.commit()

        mock_session.commit.assert_called_once()
        mock_session.rollback.assert_not_called()

    def test_integrity_error_becomes_conflict(self, mock_session: Mock) -> None:
        mock_session.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        uow = SqlAlchemyUnitOfWork(mock_session)

        with pytest.raises(ConflictError):
            with uow:
                uow.commit()

        assert mock_session.rollback.call_count == 2
