from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StockStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    IN_DEAL = "IN_DEAL"
    SOLD = "SOLD"


@dataclass(frozen=True, slots=True)
class StockVehicle:
    """Read-only view of a vehicle owned by the stock collaborator."""

    id: str
    dealer_id: str
    vrm: str
    make: str | None = None
    model: str | None = None
    year: int | None = None
    mileage: int | None = None
    status: StockStatus = StockStatus.AVAILABLE
    source_deal_id: str | None = None  # set when taken in as a part exchange
