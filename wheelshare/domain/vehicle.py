"""
Vehicle aggregate (bikes and scooters).

State machine
-------------
::

    AVAILABLE --reserve()--> RESERVED --start_trip()--> IN_USE
        ^                       |                          |
        |           release_reservation()             end_trip()
        +-----------------------+--------------------------+
                    (UNAVAILABLE instead when battery < 20 %)

    any status except IN_USE --mark_for_maintenance()--> MAINTENANCE
    MAINTENANCE --complete_maintenance()--> AVAILABLE | UNAVAILABLE

Status is never written directly by callers; every change goes through one
of the methods below, which raise ``DomainError`` when the guard fails.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .enums import VehicleStatus, VehicleType
from .errors import DomainError, Error
from .value_objects import BatteryLevel, Location, utcnow


class VehicleErrors:
    CODE_EMPTY = Error("Vehicle.CodeEmpty", "Vehicle code cannot be empty")
    NOT_AVAILABLE = Error(
        "Vehicle.NotAvailable", "Vehicle is not available for reservation"
    )
    NOT_RESERVED = Error(
        "Vehicle.NotReserved", "Vehicle must be reserved before starting a trip"
    )
    NOT_IN_USE = Error("Vehicle.NotInUse", "Vehicle is not currently in use")
    IN_USE = Error(
        "Vehicle.InUse", "Cannot mark vehicle for maintenance while in use"
    )
    NOT_IN_MAINTENANCE = Error(
        "Vehicle.NotInMaintenance", "Vehicle is not in maintenance"
    )


@dataclass(eq=False)
class Vehicle:
    code: str
    vehicle_type: VehicleType
    battery_level: int
    latitude: float
    longitude: float
    status: VehicleStatus = VehicleStatus.AVAILABLE
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    last_location_update: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        code: str,
        vehicle_type: VehicleType,
        battery: BatteryLevel,
        location: Location,
    ) -> "Vehicle":
        if not code or not code.strip():
            raise DomainError(VehicleErrors.CODE_EMPTY)
        now = utcnow()
        return cls(
            code=code,
            vehicle_type=vehicle_type,
            battery_level=battery.value,
            latitude=location.latitude,
            longitude=location.longitude,
            last_location_update=now,
            created_at=now,
            updated_at=now,
        )

    # ── Read helpers ──────────────────────────────────────────────────

    @property
    def battery(self) -> BatteryLevel:
        return BatteryLevel(self.battery_level)

    @property
    def location(self) -> Location:
        return Location(self.latitude, self.longitude)

    def is_available_for_reservation(self) -> bool:
        return self.status == VehicleStatus.AVAILABLE and self.battery.is_available()

    # ── Transitions ───────────────────────────────────────────────────

    def reserve(self) -> None:
        if not self.is_available_for_reservation():
            raise DomainError(VehicleErrors.NOT_AVAILABLE)
        self._set_status(VehicleStatus.RESERVED)

    def release_reservation(self) -> None:
        """Return a held vehicle to the pool after a cancel or expiry."""
        if self.status != VehicleStatus.RESERVED:
            raise DomainError(VehicleErrors.NOT_RESERVED)
        self._set_status(self._idle_status())

    def start_trip(self) -> None:
        if self.status != VehicleStatus.RESERVED:
            raise DomainError(VehicleErrors.NOT_RESERVED)
        self._set_status(VehicleStatus.IN_USE)

    def end_trip(self, end_location: Location) -> None:
        if self.status != VehicleStatus.IN_USE:
            raise DomainError(VehicleErrors.NOT_IN_USE)
        self.latitude = end_location.latitude
        self.longitude = end_location.longitude
        self.last_location_update = utcnow()
        self._set_status(self._idle_status())

    def mark_for_maintenance(self) -> None:
        if self.status == VehicleStatus.IN_USE:
            raise DomainError(VehicleErrors.IN_USE)
        self._set_status(VehicleStatus.MAINTENANCE)

    def complete_maintenance(self) -> None:
        if self.status != VehicleStatus.MAINTENANCE:
            raise DomainError(VehicleErrors.NOT_IN_MAINTENANCE)
        self._set_status(self._idle_status())

    def update_battery_level(self, level: BatteryLevel) -> None:
        self.battery_level = level.value
        self.updated_at = utcnow()
        if level.is_low() and self.status == VehicleStatus.AVAILABLE:
            self.status = VehicleStatus.UNAVAILABLE

    def update_location(self, location: Location) -> None:
        self.latitude = location.latitude
        self.longitude = location.longitude
        self.last_location_update = utcnow()
        self.updated_at = self.last_location_update

    # ── Internals ─────────────────────────────────────────────────────

    def _idle_status(self) -> VehicleStatus:
        if self.battery.is_available():
            return VehicleStatus.AVAILABLE
        return VehicleStatus.UNAVAILABLE

    def _set_status(self, status: VehicleStatus) -> None:
        self.status = status
        self.updated_at = utcnow()
