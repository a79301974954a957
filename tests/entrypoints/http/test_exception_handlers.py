"""Tests for FastAPI exception handlers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from deal_desk.domain.errors import (
    CancelReasonRequired,
    ConflictError,
    DuplicateVrmError,
    InvalidTransitionError,
    NotFoundError,
    ReconciliationError,
    SettlementConfirmationRequired,
    UnauthorizedError,
    ValidationError,
)
from deal_desk.entrypoints.http.exception_handlers import register_exception_handlers


class _Body(BaseModel):
    amount: int


@pytest.fixture
def app() -> FastAPI:
    """Create a minimal FastAPI app with exception handlers registered."""
    test_app = FastAPI()
    register_exception_handlers(test_app)

    @test_app.get("/validation-error")
    def raise_validation_error() -> None:
        raise ValidationError(
            errors=[{"field": "amount", "message": "Must be > 0", "code": "INVALID_VALUE"}]
        )

    @test_app.get("/invalid-transition")
    def raise_invalid_transition() -> None:
        raise InvalidTransitionError("CANCELLED", "TAKE_DEPOSIT")

    @test_app.get("/settlement-required")
    def raise_settlement_required() -> None:
        raise SettlementConfirmationRequired(vrms=["XY65ABC"])

    @test_app.get("/reason-required")
    def raise_reason_required() -> None:
        raise CancelReasonRequired("Cancellation reason is required")

    @test_app.get("/not-found-error")
    def raise_not_found_error() -> None:
        raise NotFoundError("Deal", "123")

    @test_app.get("/conflict-error")
    def raise_conflict_error() -> None:
        raise ConflictError("Deal was modified by another request")

    @test_app.get("/duplicate-vrm")
    def raise_duplicate_vrm() -> None:
        raise DuplicateVrmError("Already added", vrm="XY65ABC")

    @test_app.get("/unauthorized-error")
    def raise_unauthorized_error() -> None:
        raise UnauthorizedError("Missing dealer scope")

    @test_app.get("/reconciliation-error")
    def raise_reconciliation_error() -> None:
        raise ReconciliationError("Could not allocate a document number")

    @test_app.get("/unexpected-error")
    def raise_unexpected_error() -> dict:
        raise RuntimeError("Something went wrong")

    @test_app.post("/body")
    def accept_body(body: _Body) -> dict:
        return {"amount": body.amount}

    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create a test client."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize(
    ("path", "status_code", "code"),
    [
        ("/validation-error", 400, "VALIDATION_ERROR"),
        ("/invalid-transition", 400, "INVALID_TRANSITION"),
        ("/settlement-required", 400, "SETTLEMENT_CONFIRMATION_REQUIRED"),
        ("/reason-required", 400, "REASON_REQUIRED"),
        ("/not-found-error", 404, "NOT_FOUND"),
        ("/conflict-error", 409, "CONFLICT"),
        ("/duplicate-vrm", 409, "DUPLICATE_VRM"),
        ("/unauthorized-error", 401, "UNAUTHORIZED"),
        ("/reconciliation-error", 500, "RECONCILIATION_FAILED"),
    ],
)
def test_domain_error_status_mapping(
    client: TestClient, path: str, status_code: int, code: str
) -> None:
    response = client.get(path)

    assert response.status_code == status_code
    assert response.json()["code"] == code


def test_validation_error_includes_field_errors(client: TestClient) -> None:
    response = client.get("/validation-error")

    assert response.json() == {
        "detail": "Validation failed",
        "code": "VALIDATION_ERROR",
        "errors": [{"field": "amount", "message": "Must be > 0", "code": "INVALID_VALUE"}],
    }


def test_context_is_flattened_into_body(client: TestClient) -> None:
    assert client.get("/invalid-transition").json() == {
        "detail": "Cannot take deposit while deal is CANCELLED",
        "code": "INVALID_TRANSITION",
        "status": "CANCELLED",
        "event": "TAKE_DEPOSIT",
    }
    assert client.get("/settlement-required").json()["vrms"] == ["XY65ABC"]
    assert client.get("/not-found-error").json() == {
        "detail": "Deal with identifier '123' not found",
        "code": "NOT_FOUND",
        "resource": "Deal",
        "identifier": "123",
    }


def test_request_validation_error_returns_400(client: TestClient) -> None:
    response = client.post("/body", json={"amount": "lots"})

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert data["detail"] == "Invalid request"
    assert data["errors"][0]["field"] == "amount"


def test_unexpected_error_hides_details(client: TestClient) -> None:
    response = client.get("/unexpected-error")

    assert response.status_code == 500
    assert response.json() == {"detail": "An unexpected error occurred", "code": "INTERNAL_ERROR"}
