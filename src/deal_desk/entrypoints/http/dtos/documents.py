from datetime import datetime
from typing import Any

from pydantic import Field

from deal_desk.domain.deal import FinanceSelection, PaymentMethod
from deal_desk.domain.sales_document import DocumentStatus, DocumentType
from deal_desk.entrypoints.http.dtos.common import CamelModel


class FinanceSelectionDTO(CamelModel):
    is_financed: bool = False
    finance_company_id: str | None = None
    to_be_confirmed: bool = False

    def to_domain(self) -> FinanceSelection:
        return FinanceSelection(
            is_financed=self.is_financed,
            finance_company_id=self.finance_company_id,
            to_be_confirmed=self.to_be_confirmed,
        )


class GenerateInvoiceRequestDTO(CamelModel):
    payment_method: PaymentMethod | None = None
    finance_selection: FinanceSelectionDTO | None = None


class GenerateInvoiceResponseDTO(CamelModel):
    success: bool = True
    deal_id: str
    invoice_id: str
    invoice_number: str
    grand_total: str
    balance_due: str
    share_url: str


class VoidInvoiceRequestDTO(CamelModel):
    reason: str | None = Field(default=None, max_length=500)


class VoidInvoiceResponseDTO(CamelModel):
    success: bool = True
    deal_id: str
    status: str
    voided_invoice_number: str
    reason: str


class RegenerateReceiptResponseDTO(CamelModel):
    success: bool = True
    document_id: str
    document_number: str
    total_paid: str
    balance_due: str
    share_url: str
    message: str = "Deposit receipt regenerated successfully"


class SalesDocumentDTO(CamelModel):
    """Issued document as stored. Snapshot keys are returned as written."""

    id: str
    type: DocumentType
    document_number: str
    status: DocumentStatus
    issued_at: datetime
    paid_at: datetime | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    snapshot: dict[str, Any]


class DocumentListResponseDTO(CamelModel):
    documents: list[SalesDocumentDTO]
