"""Tests for PaymentMapper: decimal strings in, decimal strings out."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from deal_desk.domain.deal import DealStatus, PaymentMethod
from deal_desk.domain.errors import ValidationError
from deal_desk.entrypoints.http.dtos.payments import (
    PaymentRequestDTO,
    RecordBalancePaymentRequestDTO,
)
from deal_desk.entrypoints.http.mappers.payment_mapper import PaymentMapper
from deal_desk.use_cases.record_balance_payment import (
    IssuedReceipt,
    RecordBalancePaymentResponse,
)
from deal_desk.use_cases.take_deposit import TakeDepositResponse
from deal_desk.use_cases.void_invoice import VoidInvoiceResponse

PAID_AT = datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)


def _balance_result(**overrides) -> RecordBalancePaymentResponse:
    values = dict(
        deal_id="deal-1",
        payment_id="pay-1",
        amount=Decimal("1000.00"),
        method=PaymentMethod.CARD,
        reference="TXN-2",
        paid_at=PAID_AT,
        balance_before=Decimal("10200.00"),
        balance_after=Decimal("9200.00"),
        is_full_payment=False,
        total_paid=Decimal("1500.00"),
        grand_total=Decimal("12360.00"),
        receipt=IssuedReceipt(id="doc-2", document_number="PAY00001", share_url=None),
    )
    values.update(overrides)
    return RecordBalancePaymentResponse(**values)


class TestRequests:
    def test_take_deposit_request(self) -> None:
        dto = PaymentRequestDTO(amount="500.00", method=PaymentMethod.CARD, reference="TXN-1")

        request = PaymentMapper.to_take_deposit_request("dealer-1", "deal-1", dto, "key-1")

        assert request.amount == Decimal("500.00")
        assert request.method is PaymentMethod.CARD
        assert request.reference == "TXN-1"
        assert request.idempotency_key == "key-1"

    def test_balance_payment_request_defaults_to_receipt(self) -> None:
        dto = RecordBalancePaymentRequestDTO(amount="11860", method=PaymentMethod.BANK_TRANSFER)

        request = PaymentMapper.to_balance_payment_request("dealer-1", "deal-1", dto, None)

        assert request.amount == Decimal("11860")
        assert request.generate_receipt is True
        assert request.idempotency_key is None

    def test_amount_that_is_not_a_decimal_raises(self) -> None:
        dto = PaymentRequestDTO.model_construct(amount="NaN-ish", method=PaymentMethod.CASH)

        with pytest.raises(ValidationError) as exc_info:
            PaymentMapper.to_take_deposit_request("dealer-1", "deal-1", dto, None)

        assert exc_info.value.errors[0]["field"] == "amount"
        assert exc_info.value.errors[0]["code"] == "INVALID_DECIMAL"

    @pytest.mark.parametrize(
        ("amount", "expected"), [(500, Decimal("500")), (12.5, Decimal("12.5")), (0.1, Decimal("0.1"))]
    )
    def test_numeric_amount_is_read_through_its_string_form(self, amount, expected) -> None:
        dto = PaymentRequestDTO.model_validate({"amount": amount, "method": "CARD"})

        request = PaymentMapper.to_take_deposit_request("dealer-1", "deal-1", dto, None)

        assert dto.amount == str(expected)
        assert request.amount == expected

    def test_numeric_amount_with_too_many_places_is_rejected(self) -> None:
        from pydantic import ValidationError as PydanticValidationError

        with pytest.raises(PydanticValidationError):
            PaymentRequestDTO.model_validate({"amount": 10.125, "method": "CARD"})


class TestResponses:
    def test_take_deposit_response(self) -> None:
        result = TakeDepositResponse(
            deal_id="deal-1",
            payment_id="pay-1",
            amount=Decimal("500.00"),
            method=PaymentMethod.CARD,
            total_deposits=Decimal("750.00"),
            receipt_id="doc-1",
            receipt_number="DEP00002",
            share_url="https://dealer.example/public/deposit-receipt/t",
        )

        dto = PaymentMapper.to_take_deposit_response(result)

        body = dto.model_dump(by_alias=True)
        assert body["totalDeposits"] == "750.00"
        assert body["depositReceipt"] == {
            "id": "doc-1",
            "documentNumber": "DEP00002",
            "shareUrl": "https://dealer.example/public/deposit-receipt/t",
        }
        assert body["replayed"] is False

    def test_balance_payment_response(self) -> None:
        dto = PaymentMapper.to_balance_payment_response(_balance_result())

        assert dto.balance_after == "9200.00"
        assert dto.payment.paid_at == PAID_AT
        assert dto.payment_receipt is not None
        assert dto.payment_receipt.document_number == "PAY00001"
        assert dto.message == "Payment recorded - remaining balance: £9,200.00"

    def test_balance_payment_without_receipt(self) -> None:
        dto = PaymentMapper.to_balance_payment_response(_balance_result(receipt=None))

        assert dto.payment_receipt is None

    def test_void_response_status_is_plain_string(self) -> None:
        result = VoidInvoiceResponse(
            deal_id="deal-1",
            status=DealStatus.DEPOSIT_TAKEN,
            voided_invoice_number="INV00001",
            reason="Voided by user",
        )

        dto = PaymentMapper.to_void_response(result)

        assert dto.status == "DEPOSIT_TAKEN"
        assert dto.voided_invoice_number == "INV00001"
