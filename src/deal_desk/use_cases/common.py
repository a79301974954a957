"""Helpers shared by the deal use cases."""

from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

from deal_desk import config
from deal_desk.domain.deal import Deal, PaymentMethod
from deal_desk.domain.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    ReconciliationError,
)
from deal_desk.domain.sales_document import (
    DocumentType,
    SalesDocument,
    Snapshot,
    stamp_document_number,
)
from deal_desk.ports.document_numbering import DocumentNumbering
from deal_desk.ports.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def new_share_token() -> tuple[str, str]:
    """Return a random share token and the SHA-256 hex digest that is stored."""
    token = secrets.token_urlsafe(32)
    return token, hashlib.sha256(token.encode()).hexdigest()


def load_deal(uow: UnitOfWork, dealer_id: str, deal_id: str) -> Deal:
    """Load a deal within the caller's dealer scope or raise ``NotFoundError``."""
    deal = uow.deals.get(dealer_id, deal_id)
    if deal is None:
        raise NotFoundError(resource="Deal", identifier=deal_id)
    return deal


@dataclass(frozen=True, slots=True)
class IssuedDocument:
    document: SalesDocument
    share_token: str

    @property
    def share_url(self) -> str:
        return config.share_url(self.document.type, self.share_token)


class DocumentIssuer:
    """
    Builds new sales documents with a freshly allocated number.

    The share token is returned to the caller once; only its SHA-256 hash is
    stored on the document.
    """

    def __init__(self, numbering: DocumentNumbering, clock: Clock = utc_now) -> None:
        self._numbering = numbering
        self._clock = clock

    def issue(self, deal: Deal, document_type: DocumentType, snapshot: Snapshot) -> IssuedDocument:
        prefix = config.document_prefix(document_type)
        try:
            allocated = self._numbering.allocate_number(deal.dealer_id, document_type, prefix)
        except DomainError:
            raise
        except Exception as exc:
            logger.error(
                "Document number allocation failed",
                exc_info=exc,
                extra={
                    "dealer_id": deal.dealer_id,
                    "deal_id": deal.id,
                    "document_type": document_type.value,
                },
            )
            raise ReconciliationError(
                "Could not allocate a document number",
                document_type=document_type.value,
            ) from exc

        share_token, share_token_hash = new_share_token()
        now = self._clock()
        document = SalesDocument(
            id=new_id(),
            dealer_id=deal.dealer_id,
            deal_id=deal.id,
            type=document_type,
            document_number=allocated.document_number,
            sequence=allocated.number,
            issued_at=now,
            snapshot=stamp_document_number(snapshot, allocated.document_number),
            share_token_hash=share_token_hash,
            updated_at=now,
        )
        return IssuedDocument(document=document, share_token=share_token)


def persist_ledger_change(
    uow: UnitOfWork,
    deal: Deal,
    *,
    new: list[SalesDocument],
    updated: list[SalesDocument],
) -> Deal:
    """
    Write a deal together with the documents that must agree with its ledger.

    Conflicts and other domain errors propagate unchanged; any other failure
    becomes ``ReconciliationError`` so the caller's unit of work rolls back.
    """
    try:
        saved = uow.deals.save(deal)
        for document in new:
            uow.documents.add(document)
        for document in updated:
            uow.documents.save(document)
    except DomainError:
        raise
    except Exception as exc:
        logger.error(
            "Ledger write failed",
            exc_info=exc,
            extra={"dealer_id": deal.dealer_id, "deal_id": deal.id},
        )
        raise ReconciliationError("Could not write payment and document changes", deal_id=deal.id) from exc
    return saved


def ensure_same_payment(
    stored: dict[str, Any],
    *,
    idempotency_key: str,
    deal_id: str,
    amount: Decimal,
    method: PaymentMethod,
) -> None:
    """Refuse to replay a stored payment outcome for a request that differs from it."""
    recorded = (stored.get("deal_id"), stored.get("amount"), stored.get("method"))
    if recorded != (deal_id, str(amount), method.value):
        raise ConflictError(
            "Idempotency key was already used for a different payment",
            idempotency_key=idempotency_key,
            deal_id=deal_id,
        )
