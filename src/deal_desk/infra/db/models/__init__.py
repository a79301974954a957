from deal_desk.infra.db.models.contact import ContactRow
from deal_desk.infra.db.models.deal import DealRow
from deal_desk.infra.db.models.document_counter import DocumentCounterRow
from deal_desk.infra.db.models.idempotency_key import IdempotencyKeyRow
from deal_desk.infra.db.models.sales_document import SalesDocumentRow
from deal_desk.infra.db.models.vehicle import VehicleRow

__all__ = [
    "ContactRow",
    "DealRow",
    "DocumentCounterRow",
    "IdempotencyKeyRow",
    "SalesDocumentRow",
    "VehicleRow",
]
