from __future__ import annotations

import uuid
from dataclasses import replace

from deal_desk.domain.deal import PartExchange, normalize_vrm
from deal_desk.domain.errors import NotFoundError
from deal_desk.domain.stock import StockStatus, StockVehicle
from deal_desk.ports.vehicle_stock import VehicleStock


class InMemoryVehicleStock(VehicleStock):
    """
    Canonical stock book for tests.

    - Vehicles are keyed by id and scoped by dealer
    - A vehicle counts as "in stock" until it is SOLD
    - Part-exchange intakes remember the deal they came from
    """

    def __init__(self, vehicles: list[StockVehicle] | None = None) -> None:
        self._vehicles: dict[str, StockVehicle] = {v.id: v for v in vehicles or []}

    @property
    def vehicles(self) -> list[StockVehicle]:
        return list(self._vehicles.values())

    def get_vehicle(self, dealer_id: str, vehicle_id: str) -> StockVehicle | None:
        vehicle = self._vehicles.get(vehicle_id)
        if vehicle is None or vehicle.dealer_id != dealer_id:
            return None
        return vehicle

    def is_in_stock(self, dealer_id: str, vrm: str) -> bool:
        return self._find_by_vrm(dealer_id, vrm) is not None

    def mark_in_deal(self, dealer_id: str, vehicle_id: str, deal_id: str) -> None:
        self._set_status(dealer_id, vehicle_id, StockStatus.IN_DEAL)

    def mark_sold(self, dealer_id: str, vehicle_id: str, deal_id: str) -> None:
        self._set_status(dealer_id, vehicle_id, StockStatus.SOLD)

    def restore_to_stock(self, dealer_id: str, vehicle_id: str) -> None:
        self._set_status(dealer_id, vehicle_id, StockStatus.AVAILABLE)

    def intake_part_exchange(
        self, dealer_id: str, deal_id: str, part_exchange: PartExchange
    ) -> StockVehicle | None:
        if self._find_by_vrm(dealer_id, part_exchange.vrm) is not None:
            return None
        vehicle = StockVehicle(
            id=str(uuid.uuid4()),
            dealer_id=dealer_id,
            vrm=part_exchange.normalized_vrm,
            make=part_exchange.make,
            model=part_exchange.model,
            year=part_exchange.year,
            mileage=part_exchange.mileage,
            source_deal_id=deal_id,
        )
        self._vehicles[vehicle.id] = vehicle
        return vehicle

    def remove_unsold_part_exchanges(self, dealer_id: str, deal_id: str) -> list[str]:
        removable = [
            v
            for v in self._vehicles.values()
            if v.dealer_id == dealer_id
            and v.source_deal_id == deal_id
            and v.status is not StockStatus.SOLD
        ]
        for vehicle in removable:
            del self._vehicles[vehicle.id]
        return [v.vrm for v in removable]

    def _find_by_vrm(self, dealer_id: str, vrm: str) -> StockVehicle | None:
        normalized = normalize_vrm(vrm)
        for vehicle in self._vehicles.values():
            if (
                vehicle.dealer_id == dealer_id
                and normalize_vrm(vehicle.vrm) == normalized
                and vehicle.status is not StockStatus.SOLD
            ):
                return vehicle
        return None

    def _set_status(self, dealer_id: str, vehicle_id: str, status: StockStatus) -> None:
        vehicle = self.get_vehicle(dealer_id, vehicle_id)
        if vehicle is None:
            raise NotFoundError(resource="Vehicle", identifier=vehicle_id)
        self._vehicles[vehicle_id] = replace(vehicle, status=status)
