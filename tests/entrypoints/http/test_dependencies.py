"""
Unit tests for FastAPI dependency injection functions.

- get_db() yields a database session per request
- get_dealer_id() refuses requests without dealer scope
- Use case factories wire the collaborators they are given
- Each call builds fresh instances

Tests use mocks to verify wiring without requiring a real database.
"""

from __future__ import annotations

from unittest.mock import MagicMock, Mock, patch

import pytest
from sqlalchemy.orm import Session

from deal_desk.adapters.postgres_contact_directory import PostgresContactDirectory
from deal_desk.adapters.postgres_document_numbering import PostgresDocumentNumbering
from deal_desk.adapters.postgres_unit_of_work import SqlAlchemyUnitOfWork
from deal_desk.adapters.postgres_vehicle_stock import PostgresVehicleStock
from deal_desk.domain.errors import UnauthorizedError
from deal_desk.entrypoints.http.dependencies import (
    get_cancel_deal_use_case,
    get_contacts,
    get_db,
    get_dealer_id,
    get_issuer,
    get_numbering,
    get_stock,
    get_take_deposit_use_case,
    get_uow,
)
from deal_desk.use_cases.cancel_deal import CancelDeal
from deal_desk.use_cases.common import DocumentIssuer
from deal_desk.use_cases.take_deposit import TakeDeposit


# ==============================================================================
# get_db() - Database Session Provider
# ==============================================================================


def test_get_db_yields_session_from_get_session() -> None:
    """get_db() yields a session from the get_session context manager."""
    mock_session = Mock()
    mock_context_manager = MagicMock()
    mock_context_manager.__enter__.return_value = mock_session
    mock_context_manager.__exit__.return_value = None

    with patch("deal_desk.entrypoints.http.dependencies.get_session") as mock_get_session:
        mock_get_session.return_value = mock_context_manager

        generator = get_db()
        session = next(generator)

        mock_get_session.assert_called_once()
        assert session is mock_session

        with pytest.raises(StopIteration):
            next(generator)

    mock_context_manager.__exit__.assert_called_once()


def test_get_db_creates_new_session_each_call() -> None:
    """Sessions are never cached between requests."""
    sessions = [Mock(), Mock()]
    managers = []
    for s in sessions:
        manager = MagicMock()
        manager.__enter__.return_value = s
        managers.append(manager)

    with patch(
        "deal_desk.entrypoints.http.dependencies.get_session", side_effect=managers
    ):
        first = next(get_db())
        second = next(get_db())

    assert first is sessions[0]
    assert second is sessions[1]


# ==============================================================================
# get_dealer_id() - Dealer scope
# ==============================================================================


class TestGetDealerId:
    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_missing_or_blank_header_is_unauthorized(self, header: str | None) -> None:
        with pytest.raises(UnauthorizedError) as exc_info:
            get_dealer_id(header)

        assert exc_info.value.error_code == "UNAUTHORIZED"

    def test_value_is_stripped(self) -> None:
        assert get_dealer_id("  dealer-1 ") == "dealer-1"


# ==============================================================================
# Collaborators
# ==============================================================================


def test_get_uow_wraps_request_session() -> None:
    db = Mock(spec=Session)

    uow = get_uow(db=db)

    assert isinstance(uow, SqlAlchemyUnitOfWork)


def test_get_contacts_uses_request_session() -> None:
    assert isinstance(get_contacts(db=Mock(spec=Session)), PostgresContactDirectory)


def test_numbering_and_stock_use_the_shared_session_factory() -> None:
    factory = Mock()

    with patch(
        "deal_desk.entrypoints.http.dependencies.get_session_local", return_value=factory
    ) as mock_local:
        numbering = get_numbering()
        stock = get_stock()

    assert isinstance(numbering, PostgresDocumentNumbering)
    assert isinstance(stock, PostgresVehicleStock)
    assert mock_local.call_count == 2
    factory.assert_not_called()


def test_get_issuer_wraps_numbering() -> None:
    numbering = Mock()

    issuer = get_issuer(numbering=numbering)

    assert isinstance(issuer, DocumentIssuer)


# ==============================================================================
# Use case factories
# ==============================================================================


def test_get_take_deposit_use_case_wires_collaborators() -> None:
    uow, issuer, stock, contacts = Mock(), Mock(), Mock(), Mock()

    use_case = get_take_deposit_use_case(uow=uow, issuer=issuer, stock=stock, contacts=contacts)

    assert isinstance(use_case, TakeDeposit)
    assert use_case._uow is uow
    assert use_case._issuer is issuer
    assert use_case._stock is stock
    assert use_case._contacts is contacts


def test_factories_return_fresh_instances() -> None:
    uow, stock = Mock(), Mock()

    first = get_cancel_deal_use_case(uow=uow, stock=stock)
    second = get_cancel_deal_use_case(uow=uow, stock=stock)

    assert isinstance(first, CancelDeal)
    assert first is not second
    assert first._stock is stock
