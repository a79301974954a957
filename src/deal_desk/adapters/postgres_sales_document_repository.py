"""PostgreSQL implementation of SalesDocumentRepository."""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from deal_desk.adapters.deal_codec import decode_document, encode_snapshot
from deal_desk.adapters.postgres_deal_repository import parse_uuid
from deal_desk.domain.errors import ConflictError
from deal_desk.domain.sales_document import DocumentStatus, DocumentType, SalesDocument
from deal_desk.infra.db.models.sales_document import SalesDocumentRow
from deal_desk.ports.sales_document_repository import SalesDocumentRepository


class PostgresSalesDocumentRepository(SalesDocumentRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, dealer_id: str, document_id: str) -> SalesDocument | None:
        row_id = parse_uuid(document_id)
        if row_id is None:
            return None
        query = select(SalesDocumentRow).where(
            SalesDocumentRow.id == row_id, SalesDocumentRow.dealer_id == dealer_id
        )
        row = self._session.execute(query).scalar_one_or_none()
        return self._to_domain(row) if row else None

    def latest_active(
        self, dealer_id: str, deal_id: str, document_type: DocumentType
    ) -> SalesDocument | None:
        row_id = parse_uuid(deal_id)
        if row_id is None:
            return None
        query = (
            select(SalesDocumentRow)
            .where(
                SalesDocumentRow.dealer_id == dealer_id,
                SalesDocumentRow.deal_id == row_id,
                SalesDocumentRow.type == document_type.value,
                SalesDocumentRow.status != DocumentStatus.VOID.value,
            )
            .order_by(SalesDocumentRow.issued_at.desc(), SalesDocumentRow.sequence.desc())
            .limit(1)
        )
        row = self._session.execute(query).scalar_one_or_none()
        return self._to_domain(row) if row else None

    def list_for_deal(self, dealer_id: str, deal_id: str) -> list[SalesDocument]:
        row_id = parse_uuid(deal_id)
        if row_id is None:
            return []
        query = (
            select(SalesDocumentRow)
            .where(SalesDocumentRow.dealer_id == dealer_id, SalesDocumentRow.deal_id == row_id)
            .order_by(SalesDocumentRow.issued_at, SalesDocumentRow.sequence)
        )
        return [self._to_domain(row) for row in self._session.execute(query).scalars().all()]

    def add(self, document: SalesDocument) -> SalesDocument:
        stored = replace(document, version=1)
        self._session.add(
            SalesDocumentRow(
                id=UUID(document.id),
                dealer_id=document.dealer_id,
                deal_id=UUID(document.deal_id),
                type=document.type.value,
                document_number=document.document_number,
                sequence=document.sequence,
                status=document.status.value,
                snapshot=encode_snapshot(document.snapshot),
                share_token_hash=document.share_token_hash,
                void_reason=document.void_reason,
                issued_at=document.issued_at,
                paid_at=document.paid_at,
                voided_at=document.voided_at,
                version=1,
            )
        )
        self._session.flush()
        return stored

    def save(self, document: SalesDocument) -> SalesDocument:
        result = self._session.execute(
            update(SalesDocumentRow)
            .where(
                SalesDocumentRow.id == UUID(document.id),
                SalesDocumentRow.dealer_id == document.dealer_id,
                SalesDocumentRow.version == document.version,
            )
            .values(
                status=document.status.value,
                snapshot=encode_snapshot(document.snapshot),
                share_token_hash=document.share_token_hash,
                void_reason=document.void_reason,
                paid_at=document.paid_at,
                voided_at=document.voided_at,
                version=document.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                "Document was modified by another request",
                document_number=document.document_number,
            )
        return replace(document, version=document.version + 1)

    def _to_domain(self, row: SalesDocumentRow) -> SalesDocument:
        return decode_document(
            id=str(row.id),
            dealer_id=row.dealer_id,
            deal_id=str(row.deal_id),
            type=row.type,
            document_number=row.document_number,
            sequence=row.sequence,
            status=row.status,
            snapshot=row.snapshot,
            issued_at=row.issued_at,
            paid_at=row.paid_at,
            voided_at=row.voided_at,
            void_reason=row.void_reason,
            share_token_hash=row.share_token_hash,
            updated_at=row.updated_at,
            version=row.version,
        )
