from datetime import datetime

from pydantic import ConfigDict, Field

from deal_desk.domain.deal import PaymentMethod
from deal_desk.entrypoints.http.dtos.common import CamelModel, MoneyInput, money_field


class PaymentRequestDTO(CamelModel):
    """Request payload shared by take-deposit and record-balance-payment."""

    amount: MoneyInput = money_field("Payment amount, decimal string or number; must be > 0")
    method: PaymentMethod = Field(description="Payment method", examples=["CARD"])
    reference: str = Field(default="", max_length=200)
    notes: str | None = Field(default=None, max_length=2000)


class RecordBalancePaymentRequestDTO(PaymentRequestDTO):
    generate_receipt: bool = Field(
        default=True, description="Issue a numbered payment receipt for this payment"
    )


class PaymentDTO(CamelModel):
    amount: str
    method: PaymentMethod
    reference: str
    paid_at: datetime


class IssuedDocumentDTO(CamelModel):
    id: str
    document_number: str
    share_url: str | None = Field(
        default=None, description="Public link; null on an idempotent replay"
    )


class TakeDepositResponseDTO(CamelModel):
    success: bool = True
    deal_id: str
    payment_id: str
    amount: str
    total_deposits: str
    deposit_receipt: IssuedDocumentDTO
    replayed: bool = False


class RecordBalancePaymentResponseDTO(CamelModel):
    success: bool = True
    deal_id: str
    payment: PaymentDTO
    balance_before: str
    balance_after: str
    is_full_payment: bool
    total_paid: str
    grand_total: str
    payment_receipt: IssuedDocumentDTO | None
    message: str
    replayed: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "dealId": "6f1c2b8e-1d7a-4a43-9d55-0d2f1f6a1c11",
                "payment": {
                    "amount": "1000.00",
                    "method": "CARD",
                    "reference": "",
                    "paidAt": "2026-03-02T10:15:00+00:00",
                },
                "balanceBefore": "10200.00",
                "balanceAfter": "9200.00",
                "isFullPayment": False,
                "totalPaid": "1500.00",
                "grandTotal": "12360.00",
                "paymentReceipt": {
                    "id": "1b7a0a40-8f7e-4c1c-a3a7-2d3c8f4e8d10",
                    "documentNumber": "PAY00001",
                    "shareUrl": "https://dealer.example/public/payment-receipt/abc",
                },
                "message": "Payment recorded - remaining balance: £9,200.00",
            }
        }
    )
