"""Domain enumerations and state-transition rules."""

import enum


class VehicleType(str, enum.Enum):
    BIKE = "BIKE"
    SCOOTER = "SCOOTER"


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    IN_USE = "IN_USE"
    UNAVAILABLE = "UNAVAILABLE"  # low battery
    MAINTENANCE = "MAINTENANCE"


class ReservationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    CONVERTED = "CONVERTED"


class TripStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethodKind(str, enum.Enum):
    WALLET = "WALLET"
    CREDIT_CARD = "CREDIT_CARD"


class WalletTransactionType(str, enum.Enum):
    TOP_UP = "TOP_UP"
    DEDUCTION = "DEDUCTION"


# State machines: maps current status -> set of valid next statuses
RESERVATION_TRANSITIONS: dict[ReservationStatus, set[ReservationStatus]] = {
    ReservationStatus.ACTIVE: {
        ReservationStatus.CANCELLED,
        ReservationStatus.EXPIRED,
        ReservationStatus.CONVERTED,
    },
    ReservationStatus.CANCELLED: set(),
    ReservationStatus.EXPIRED: set(),
    ReservationStatus.CONVERTED: set(),
}

TRIP_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.ACTIVE: {TripStatus.COMPLETED, TripStatus.CANCELLED},
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
}
