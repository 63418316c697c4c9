"""Initial schema: users, wallet ledger, cards, vehicles, reservations, trips.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_ONLY = sa.text("status = 'ACTIVE'")


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone_number", sa.String(20), unique=True, nullable=False),
        sa.Column("wallet_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("wallet_balance >= 0", name="ck_users_wallet_non_negative"),
    )

    # ── payment_methods ───────────────────────────────────────────────
    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("card_last4", sa.String(4), nullable=False),
        sa.Column("card_type", sa.String(20), nullable=False),
        sa.Column("expiry_month", sa.Integer, nullable=False),
        sa.Column("expiry_year", sa.Integer, nullable=False),
        sa.Column("is_default", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_payment_methods_user", "payment_methods", ["user_id"])

    # ── wallet_transactions (append-only) ─────────────────────────────
    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "transaction_type",
            sa.Enum("TOP_UP", "DEDUCTION", name="wallettransactiontype"),
            nullable=False,
        ),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("payment_details", sa.String(255), nullable=True),
        sa.Column("balance_before", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_wallet_transactions_user", "wallet_transactions", ["user_id"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("code", sa.String(20), unique=True, nullable=False),
        sa.Column(
            "vehicle_type",
            sa.Enum("BIKE", "SCOOTER", name="vehicletype"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(
                "AVAILABLE",
                "RESERVED",
                "IN_USE",
                "UNAVAILABLE",
                "MAINTENANCE",
                name="vehiclestatus",
            ),
            server_default="AVAILABLE",
            nullable=False,
        ),
        sa.Column("battery_level", sa.Integer, nullable=False),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("last_location_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "battery_level >= 0 AND battery_level <= 100",
            name="ck_vehicles_battery_range",
        ),
    )
    op.create_index("idx_vehicles_status", "vehicles", ["status"])

    # ── reservations ──────────────────────────────────────────────────
    op.create_table(
        "reservations",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("vehicle_id", sa.Uuid, sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "ACTIVE", "CANCELLED", "EXPIRED", "CONVERTED",
                name="reservationstatus",
            ),
            server_default="ACTIVE",
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    # At most one ACTIVE hold per user and per vehicle
    op.create_index(
        "uq_reservations_active_user", "reservations", ["user_id"],
        unique=True, postgresql_where=ACTIVE_ONLY,
    )
    op.create_index(
        "uq_reservations_active_vehicle", "reservations", ["vehicle_id"],
        unique=True, postgresql_where=ACTIVE_ONLY,
    )
    op.create_index(
        "idx_reservations_status_expiry", "reservations", ["status", "expires_at"]
    )

    # ── trips ─────────────────────────────────────────────────────────
    op.create_table(
        "trips",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("vehicle_id", sa.Uuid, sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column(
            "reservation_id", sa.Uuid, sa.ForeignKey("reservations.id"), nullable=True
        ),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "COMPLETED", "CANCELLED", name="tripstatus"),
            server_default="ACTIVE",
            nullable=False,
        ),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("start_latitude", sa.Float, nullable=False),
        sa.Column("start_longitude", sa.Float, nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_latitude", sa.Float, nullable=True),
        sa.Column("end_longitude", sa.Float, nullable=True),
        sa.Column("total_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rating_stars", sa.Integer, nullable=True),
        sa.Column("rating_comment", sa.String(500), nullable=True),
        sa.Column("rated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "rating_stars IS NULL OR (rating_stars >= 1 AND rating_stars <= 5)",
            name="ck_trips_rating_range",
        ),
    )
    op.create_index(
        "uq_trips_active_user", "trips", ["user_id"],
        unique=True, postgresql_where=ACTIVE_ONLY,
    )
    op.create_index(
        "uq_trips_active_vehicle", "trips", ["vehicle_id"],
        unique=True, postgresql_where=ACTIVE_ONLY,
    )
    op.create_index("idx_trips_user_start", "trips", ["user_id", "start_time"])


def downgrade() -> None:
    op.drop_table("trips")
    op.drop_table("reservations")
    op.drop_table("vehicles")
    op.drop_table("wallet_transactions")
    op.drop_table("payment_methods")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS tripstatus")
    op.execute("DROP TYPE IF EXISTS reservationstatus")
    op.execute("DROP TYPE IF EXISTS vehiclestatus")
    op.execute("DROP TYPE IF EXISTS vehicletype")
    op.execute("DROP TYPE IF EXISTS wallettransactiontype")
