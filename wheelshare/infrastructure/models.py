"""
SQLAlchemy table definitions and imperative mappings.

Tables
------
* ``users``               -- riders and their wallet balance
* ``payment_methods``     -- stored cards (last 4 digits only)
* ``wallet_transactions`` -- append-only wallet ledger
* ``vehicles``            -- bikes / scooters with status + battery
* ``reservations``        -- five minute vehicle holds
* ``trips``               -- metered rental sessions
* ``receipts``            -- one immutable receipt per completed trip

Concurrency guards
------------------
* **Partial unique indexes** on ``reservations`` and ``trips`` allow at most
  one ACTIVE row per user and per vehicle, closing the check-then-insert
  race in the handlers.
* **Version columns** on ``vehicles`` and ``users`` are SQLAlchemy
  ``version_id_col``s, so a write based on a stale read raises
  ``StaleDataError`` instead of silently overwriting.
"""

from datetime import timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    TypeDecorator,
    Uuid,
    func,
    text,
)

from .database import mapper_registry, metadata
from wheelshare.domain.enums import (
    ReservationStatus,
    TripStatus,
    VehicleStatus,
    VehicleType,
    WalletTransactionType,
)
from wheelshare.domain.receipt import Receipt
from wheelshare.domain.reservation import Reservation
from wheelshare.domain.trip import ActiveTrip
from wheelshare.domain.vehicle import Vehicle
from wheelshare.domain.wallet import PaymentMethod, User, WalletTransaction


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend (SQLite drops tzinfo)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


ACTIVE_ONLY = text("status = 'ACTIVE'")

Money = Numeric(12, 2)


users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("full_name", String(120), nullable=False),
    Column("email", String(255), unique=True, nullable=False),
    Column("phone_number", String(20), unique=True, nullable=False),
    Column("wallet_balance", Money, nullable=False, default=0),
    Column("version", Integer, nullable=False),
    Column("created_at", UTCDateTime, server_default=func.now()),
    Column("updated_at", UTCDateTime, server_default=func.now()),
    CheckConstraint("wallet_balance >= 0", name="ck_users_wallet_non_negative"),
)

payment_methods = Table(
    "payment_methods",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("card_last4", String(4), nullable=False),
    Column("card_type", String(20), nullable=False),
    Column("expiry_month", Integer, nullable=False),
    Column("expiry_year", Integer, nullable=False),
    Column("is_default", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime, server_default=func.now()),
    Column("updated_at", UTCDateTime, server_default=func.now()),
    Index("idx_payment_methods_user", "user_id"),
)

wallet_transactions = Table(
    "wallet_transactions",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("amount", Money, nullable=False),
    Column(
        "transaction_type",
        Enum(WalletTransactionType, name="wallettransactiontype"),
        nullable=False,
    ),
    Column("payment_method", String(20), nullable=False),
    Column("payment_details", String(255), nullable=True),
    Column("balance_before", Money, nullable=False),
    Column("balance_after", Money, nullable=False),
    # Immutable - no updated_at
    Column("created_at", UTCDateTime, server_default=func.now()),
    Index("idx_wallet_transactions_user", "user_id"),
)

vehicles = Table(
    "vehicles",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("code", String(20), unique=True, nullable=False),
    Column("vehicle_type", Enum(VehicleType, name="vehicletype"), nullable=False),
    Column(
        "status",
        Enum(VehicleStatus, name="vehiclestatus"),
        default=VehicleStatus.AVAILABLE,
        nullable=False,
    ),
    Column("battery_level", Integer, nullable=False),
    Column("latitude", Float, nullable=False),
    Column("longitude", Float, nullable=False),
    Column("last_location_update", UTCDateTime, nullable=True),
    Column("version", Integer, nullable=False),
    Column("created_at", UTCDateTime, server_default=func.now()),
    Column("updated_at", UTCDateTime, server_default=func.now()),
    CheckConstraint(
        "battery_level >= 0 AND battery_level <= 100",
        name="ck_vehicles_battery_range",
    ),
    Index("idx_vehicles_status", "status"),
)

reservations = Table(
    "reservations",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("vehicle_id", Uuid, ForeignKey("vehicles.id"), nullable=False),
    Column(
        "status",
        Enum(ReservationStatus, name="reservationstatus"),
        default=ReservationStatus.ACTIVE,
        nullable=False,
    ),
    Column("created_at", UTCDateTime, nullable=False),
    Column("expires_at", UTCDateTime, nullable=False),
    Column("cancelled_at", UTCDateTime, nullable=True),
    Column("converted_at", UTCDateTime, nullable=True),
    Column("updated_at", UTCDateTime, nullable=True),
    Index(
        "uq_reservations_active_user",
        "user_id",
        unique=True,
        postgresql_where=ACTIVE_ONLY,
        sqlite_where=ACTIVE_ONLY,
    ),
    Index(
        "uq_reservations_active_vehicle",
        "vehicle_id",
        unique=True,
        postgresql_where=ACTIVE_ONLY,
        sqlite_where=ACTIVE_ONLY,
    ),
    Index("idx_reservations_status_expiry", "status", "expires_at"),
)

trips = Table(
    "trips",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("vehicle_id", Uuid, ForeignKey("vehicles.id"), nullable=False),
    Column("reservation_id", Uuid, ForeignKey("reservations.id"), nullable=True),
    Column(
        "status",
        Enum(TripStatus, name="tripstatus"),
        default=TripStatus.ACTIVE,
        nullable=False,
    ),
    Column("start_time", UTCDateTime, nullable=False),
    Column("start_latitude", Float, nullable=False),
    Column("start_longitude", Float, nullable=False),
    Column("end_time", UTCDateTime, nullable=True),
    Column("end_latitude", Float, nullable=True),
    Column("end_longitude", Float, nullable=True),
    Column("total_cost", Money, nullable=False),
    Column("duration_minutes", Integer, nullable=False, default=0),
    Column("rating_stars", Integer, nullable=True),
    Column("rating_comment", String(500), nullable=True),
    Column("rated_at", UTCDateTime, nullable=True),
    Column("created_at", UTCDateTime, server_default=func.now()),
    Column("updated_at", UTCDateTime, server_default=func.now()),
    CheckConstraint(
        "rating_stars IS NULL OR (rating_stars >= 1 AND rating_stars <= 5)",
        name="ck_trips_rating_range",
    ),
    Index(
        "uq_trips_active_user",
        "user_id",
        unique=True,
        postgresql_where=ACTIVE_ONLY,
        sqlite_where=ACTIVE_ONLY,
    ),
    Index(
        "uq_trips_active_vehicle",
        "vehicle_id",
        unique=True,
        postgresql_where=ACTIVE_ONLY,
        sqlite_where=ACTIVE_ONLY,
    ),
    Index("idx_trips_user_start", "user_id", "start_time"),
)

receipts = Table(
    "receipts",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("trip_id", Uuid, ForeignKey("trips.id"), unique=True, nullable=False),
    Column("user_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("receipt_number", String(50), unique=True, nullable=False),
    Column("vehicle_code", String(20), nullable=False),
    Column("trip_start_time", UTCDateTime, nullable=False),
    Column("trip_end_time", UTCDateTime, nullable=False),
    Column("duration_minutes", Integer, nullable=False),
    Column("distance_meters", Integer, nullable=False),
    Column("start_latitude", Float, nullable=False),
    Column("start_longitude", Float, nullable=False),
    Column("end_latitude", Float, nullable=False),
    Column("end_longitude", Float, nullable=False),
    Column("base_cost", Money, nullable=False),
    Column("time_cost", Money, nullable=False),
    Column("total_cost", Money, nullable=False),
    Column("payment_method", String(20), nullable=False),
    Column("payment_details", String(255), nullable=False),
    Column("wallet_balance_before", Money, nullable=False),
    Column("wallet_balance_after", Money, nullable=False),
    # Immutable - no updated_at
    Column("created_at", UTCDateTime, server_default=func.now()),
    Index("idx_receipts_user", "user_id"),
)


mapper_registry.map_imperatively(User, users, version_id_col=users.c.version)
mapper_registry.map_imperatively(PaymentMethod, payment_methods)
mapper_registry.map_imperatively(WalletTransaction, wallet_transactions)
mapper_registry.map_imperatively(Vehicle, vehicles, version_id_col=vehicles.c.version)
mapper_registry.map_imperatively(Reservation, reservations)
mapper_registry.map_imperatively(ActiveTrip, trips)
mapper_registry.map_imperatively(Receipt, receipts)
