"""Runtime settings read from the environment.

Values are read on each call so tests can override them with monkeypatch.
"""

from __future__ import annotations

import os

from deal_desk.domain.sales_document import DocumentType

DEFAULT_PREFIXES: dict[DocumentType, str] = {
    DocumentType.DEPOSIT_RECEIPT: "DEP",
    DocumentType.INVOICE: "INV",
    DocumentType.PAYMENT_RECEIPT: "PAY",
}

_PREFIX_ENV_VARS: dict[DocumentType, str] = {
    DocumentType.DEPOSIT_RECEIPT: "DEPOSIT_RECEIPT_PREFIX",
    DocumentType.INVOICE: "INVOICE_NUMBER_PREFIX",
    DocumentType.PAYMENT_RECEIPT: "PAYMENT_RECEIPT_PREFIX",
}

_SHARE_PATHS: dict[DocumentType, str] = {
    DocumentType.DEPOSIT_RECEIPT: "deposit-receipt",
    DocumentType.INVOICE: "invoice",
    DocumentType.PAYMENT_RECEIPT: "payment-receipt",
}


def document_prefix(document_type: DocumentType) -> str:
    return os.getenv(_PREFIX_ENV_VARS[document_type]) or DEFAULT_PREFIXES[document_type]


def public_base_url() -> str:
    return os.getenv("PUBLIC_BASE_URL", "").rstrip("/")


def share_url(document_type: DocumentType, token: str) -> str:
    return f"{public_base_url()}/public/{_SHARE_PATHS[document_type]}/{token}"
