from __future__ import annotations

from abc import ABC, abstractmethod

from deal_desk.domain.deal import PartExchange
from deal_desk.domain.stock import StockVehicle


class VehicleStock(ABC):
    """
    Port to the dealer's stock book (external collaborator).

    Calls are synchronous and have their own failure domain; callers decide
    whether a failure aborts their operation or is reported for follow-up.
    """

    @abstractmethod
    def get_vehicle(self, dealer_id: str, vehicle_id: str) -> StockVehicle | None: ...

    @abstractmethod
    def is_in_stock(self, dealer_id: str, vrm: str) -> bool:
        """True if a vehicle with this normalized VRM is currently held as stock."""
        ...

    @abstractmethod
    def mark_in_deal(self, dealer_id: str, vehicle_id: str, deal_id: str) -> None: ...

    @abstractmethod
    def mark_sold(self, dealer_id: str, vehicle_id: str, deal_id: str) -> None: ...

    @abstractmethod
    def restore_to_stock(self, dealer_id: str, vehicle_id: str) -> None: ...

    @abstractmethod
    def intake_part_exchange(
        self, dealer_id: str, deal_id: str, part_exchange: PartExchange
    ) -> StockVehicle | None:
        """Take a part-exchange into stock; ``None`` if its VRM is already stocked."""
        ...

    @abstractmethod
    def remove_unsold_part_exchanges(self, dealer_id: str, deal_id: str) -> list[str]:
        """Delete unsold stock vehicles taken in from ``deal_id``; return their VRMs."""
        ...
