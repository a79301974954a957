"""
Dependency injection for FastAPI routes.

Key principle: Database sessions should be per-request, not cached.
Document numbering and stock writes open their own short sessions from the
shared session factory, so they never share the request transaction.
"""

from __future__ import annotations

from typing import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from deal_desk.adapters.postgres_contact_directory import PostgresContactDirectory
from deal_desk.adapters.postgres_document_numbering import PostgresDocumentNumbering
from deal_desk.adapters.postgres_unit_of_work import SqlAlchemyUnitOfWork
from deal_desk.adapters.postgres_vehicle_stock import PostgresVehicleStock
from deal_desk.domain.errors import UnauthorizedError
from deal_desk.infra.db.session import get_session, get_session_local
from deal_desk.ports.contact_directory import ContactDirectory
from deal_desk.ports.document_numbering import DocumentNumbering
from deal_desk.ports.unit_of_work import UnitOfWork
from deal_desk.ports.vehicle_stock import VehicleStock
from deal_desk.use_cases.cancel_deal import CancelDeal
from deal_desk.use_cases.common import DocumentIssuer
from deal_desk.use_cases.create_deal import CreateDeal
from deal_desk.use_cases.delete_deal import DeleteDeal
from deal_desk.use_cases.generate_invoice import GenerateInvoice
from deal_desk.use_cases.get_deal import GetDeal, ListDealDocuments
from deal_desk.use_cases.manage_part_exchanges import (
    AddPartExchange,
    RemovePartExchange,
    UpdatePartExchange,
)
from deal_desk.use_cases.mark_completed import MarkCompleted
from deal_desk.use_cases.mark_delivered import MarkDelivered
from deal_desk.use_cases.record_balance_payment import RecordBalancePayment
from deal_desk.use_cases.regenerate_receipt import RegenerateReceipt
from deal_desk.use_cases.take_deposit import TakeDeposit
from deal_desk.use_cases.update_deal import UpdateDeal
from deal_desk.use_cases.update_warranty import UpdateWarranty
from deal_desk.use_cases.void_invoice import VoidInvoice


def get_db() -> Generator[Session, None, None]:
    """
    Provides a database session for a single request.

    The unit of work commits explicitly; ``get_session`` still rolls back
    and closes the session if the request fails part-way.

    Yields:
        Session: SQLAlchemy database session (per-request)
    """
    with get_session() as session:
        yield session


def get_dealer_id(x_dealer_id: str | None = Header(default=None, alias="X-Dealer-Id")) -> str:
    """
    Dealer scope for the request.

    Authentication happens upstream; this service only trusts the dealer id
    the gateway forwards and refuses requests without one.
    """
    if not x_dealer_id or not x_dealer_id.strip():
        raise UnauthorizedError("Missing dealer scope")
    return x_dealer_id.strip()


def get_uow(db: Session = Depends(get_db)) -> UnitOfWork:
    return SqlAlchemyUnitOfWork(db)


def get_numbering() -> DocumentNumbering:
    return PostgresDocumentNumbering(get_session_local())


def get_stock() -> VehicleStock:
    return PostgresVehicleStock(get_session_local())


def get_contacts(db: Session = Depends(get_db)) -> ContactDirectory:
    return PostgresContactDirectory(db)


def get_issuer(numbering: DocumentNumbering = Depends(get_numbering)) -> DocumentIssuer:
    return DocumentIssuer(numbering)


# ----------------------------------------------------------------------
# Use case factories (one fresh instance per request)
# ----------------------------------------------------------------------


def get_create_deal_use_case(
    uow: UnitOfWork = Depends(get_uow), stock: VehicleStock = Depends(get_stock)
) -> CreateDeal:
    return CreateDeal(uow, stock)


def get_get_deal_use_case(uow: UnitOfWork = Depends(get_uow)) -> GetDeal:
    return GetDeal(uow)


def get_list_documents_use_case(uow: UnitOfWork = Depends(get_uow)) -> ListDealDocuments:
    return ListDealDocuments(uow)


def get_update_deal_use_case(uow: UnitOfWork = Depends(get_uow)) -> UpdateDeal:
    return UpdateDeal(uow)


def get_delete_deal_use_case(
    uow: UnitOfWork = Depends(get_uow), stock: VehicleStock = Depends(get_stock)
) -> DeleteDeal:
    return DeleteDeal(uow, stock)


def get_take_deposit_use_case(
    uow: UnitOfWork = Depends(get_uow),
    issuer: DocumentIssuer = Depends(get_issuer),
    stock: VehicleStock = Depends(get_stock),
    contacts: ContactDirectory = Depends(get_contacts),
) -> TakeDeposit:
    """
    Factory function that returns a configured TakeDeposit use case.

    Args:
        uow: Request-scoped unit of work (deal, documents, idempotency keys)
        issuer: Allocates receipt numbers in their own transaction
        stock: Vehicle stock for the vehicle snapshot and IN_DEAL marking
        contacts: Customer lookup for the receipt snapshot

    Returns:
        TakeDeposit: Configured use case instance
    """
    return TakeDeposit(uow, issuer, stock, contacts)


def get_generate_invoice_use_case(
    uow: UnitOfWork = Depends(get_uow),
    issuer: DocumentIssuer = Depends(get_issuer),
    stock: VehicleStock = Depends(get_stock),
    contacts: ContactDirectory = Depends(get_contacts),
) -> GenerateInvoice:
    return GenerateInvoice(uow, issuer, stock, contacts)


def get_void_invoice_use_case(uow: UnitOfWork = Depends(get_uow)) -> VoidInvoice:
    return VoidInvoice(uow)


def get_record_balance_payment_use_case(
    uow: UnitOfWork = Depends(get_uow),
    issuer: DocumentIssuer = Depends(get_issuer),
    stock: VehicleStock = Depends(get_stock),
    contacts: ContactDirectory = Depends(get_contacts),
) -> RecordBalancePayment:
    return RecordBalancePayment(uow, issuer, stock, contacts)


def get_regenerate_receipt_use_case(
    uow: UnitOfWork = Depends(get_uow),
    stock: VehicleStock = Depends(get_stock),
    contacts: ContactDirectory = Depends(get_contacts),
) -> RegenerateReceipt:
    return RegenerateReceipt(uow, stock, contacts)


def get_mark_delivered_use_case(uow: UnitOfWork = Depends(get_uow)) -> MarkDelivered:
    return MarkDelivered(uow)


def get_mark_completed_use_case(
    uow: UnitOfWork = Depends(get_uow), stock: VehicleStock = Depends(get_stock)
) -> MarkCompleted:
    return MarkCompleted(uow, stock)


def get_cancel_deal_use_case(
    uow: UnitOfWork = Depends(get_uow), stock: VehicleStock = Depends(get_stock)
) -> CancelDeal:
    return CancelDeal(uow, stock)


def get_add_part_exchange_use_case(
    uow: UnitOfWork = Depends(get_uow), stock: VehicleStock = Depends(get_stock)
) -> AddPartExchange:
    return AddPartExchange(uow, stock)


def get_update_part_exchange_use_case(
    uow: UnitOfWork = Depends(get_uow), stock: VehicleStock = Depends(get_stock)
) -> UpdatePartExchange:
    return UpdatePartExchange(uow, stock)


def get_remove_part_exchange_use_case(
    uow: UnitOfWork = Depends(get_uow), stock: VehicleStock = Depends(get_stock)
) -> RemovePartExchange:
    return RemovePartExchange(uow, stock)


def get_update_warranty_use_case(uow: UnitOfWork = Depends(get_uow)) -> UpdateWarranty:
    return UpdateWarranty(uow)
