from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from deal_desk.infra.db.models.base import Base


class DocumentCounterRow(Base):
    """Last allocated number per (dealer, document type)."""

    __tablename__ = "document_counters"

    dealer_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    document_type: Mapped[str] = mapped_column(String(20), primary_key=True)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
