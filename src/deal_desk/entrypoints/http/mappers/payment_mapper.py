from __future__ import annotations

from deal_desk.entrypoints.http.dtos.documents import (
    GenerateInvoiceResponseDTO,
    RegenerateReceiptResponseDTO,
    VoidInvoiceResponseDTO,
)
from deal_desk.entrypoints.http.dtos.payments import (
    IssuedDocumentDTO,
    PaymentDTO,
    PaymentRequestDTO,
    RecordBalancePaymentRequestDTO,
    RecordBalancePaymentResponseDTO,
    TakeDepositResponseDTO,
)
from deal_desk.entrypoints.http.mappers.deal_mapper import DealMapper
from deal_desk.use_cases.generate_invoice import GenerateInvoiceResponse
from deal_desk.use_cases.record_balance_payment import (
    RecordBalancePaymentRequest,
    RecordBalancePaymentResponse,
)
from deal_desk.use_cases.regenerate_receipt import RegenerateReceiptResponse
from deal_desk.use_cases.take_deposit import TakeDepositRequest, TakeDepositResponse
from deal_desk.use_cases.void_invoice import VoidInvoiceResponse


class PaymentMapper:
    """Maps ledger and document DTOs to use-case requests and back (string ↔ Decimal)."""

    @staticmethod
    def to_take_deposit_request(
        dealer_id: str, deal_id: str, dto: PaymentRequestDTO, idempotency_key: str | None
    ) -> TakeDepositRequest:
        return TakeDepositRequest(
            dealer_id=dealer_id,
            deal_id=deal_id,
            amount=DealMapper.parse_money(dto.amount, "amount"),
            method=dto.method,
            reference=dto.reference,
            notes=dto.notes,
            idempotency_key=idempotency_key,
        )

    @staticmethod
    def to_balance_payment_request(
        dealer_id: str,
        deal_id: str,
        dto: RecordBalancePaymentRequestDTO,
        idempotency_key: str | None,
    ) -> RecordBalancePaymentRequest:
        return RecordBalancePaymentRequest(
            dealer_id=dealer_id,
            deal_id=deal_id,
            amount=DealMapper.parse_money(dto.amount, "amount"),
            method=dto.method,
            reference=dto.reference,
            notes=dto.notes,
            generate_receipt=dto.generate_receipt,
            idempotency_key=idempotency_key,
        )

    @staticmethod
    def to_take_deposit_response(result: TakeDepositResponse) -> TakeDepositResponseDTO:
        return TakeDepositResponseDTO(
            deal_id=result.deal_id,
            payment_id=result.payment_id,
            amount=str(result.amount),
            total_deposits=str(result.total_deposits),
            deposit_receipt=IssuedDocumentDTO(
                id=result.receipt_id,
                document_number=result.receipt_number,
                share_url=result.share_url,
            ),
            replayed=result.replayed,
        )

    @staticmethod
    def to_balance_payment_response(
        result: RecordBalancePaymentResponse,
    ) -> RecordBalancePaymentResponseDTO:
        return RecordBalancePaymentResponseDTO(
            deal_id=result.deal_id,
            payment=PaymentDTO(
                amount=str(result.amount),
                method=result.method,
                reference=result.reference,
                paid_at=result.paid_at,
            ),
            balance_before=str(result.balance_before),
            balance_after=str(result.balance_after),
            is_full_payment=result.is_full_payment,
            total_paid=str(result.total_paid),
            grand_total=str(result.grand_total),
            payment_receipt=(
                IssuedDocumentDTO(
                    id=result.receipt.id,
                    document_number=result.receipt.document_number,
                    share_url=result.receipt.share_url,
                )
                if result.receipt
                else None
            ),
            message=result.message,
            replayed=result.replayed,
        )

    @staticmethod
    def to_invoice_response(result: GenerateInvoiceResponse) -> GenerateInvoiceResponseDTO:
        return GenerateInvoiceResponseDTO(
            deal_id=result.deal_id,
            invoice_id=result.invoice_id,
            invoice_number=result.invoice_number,
            grand_total=str(result.grand_total),
            balance_due=str(result.balance_due),
            share_url=result.share_url,
        )

    @staticmethod
    def to_void_response(result: VoidInvoiceResponse) -> VoidInvoiceResponseDTO:
        return VoidInvoiceResponseDTO(
            deal_id=result.deal_id,
            status=result.status.value,
            voided_invoice_number=result.voided_invoice_number,
            reason=result.reason,
        )

    @staticmethod
    def to_regenerate_response(result: RegenerateReceiptResponse) -> RegenerateReceiptResponseDTO:
        return RegenerateReceiptResponseDTO(
            document_id=result.document_id,
            document_number=result.document_number,
            total_paid=str(result.total_paid),
            balance_due=str(result.balance_due),
            share_url=result.share_url,
        )
