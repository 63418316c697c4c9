"""Trip receipts.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "receipts",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("trip_id", sa.Uuid, sa.ForeignKey("trips.id"), unique=True, nullable=False),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("receipt_number", sa.String(50), unique=True, nullable=False),
        sa.Column("vehicle_code", sa.String(20), nullable=False),
        sa.Column("trip_start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("trip_end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False),
        sa.Column("distance_meters", sa.Integer, nullable=False),
        sa.Column("start_latitude", sa.Float, nullable=False),
        sa.Column("start_longitude", sa.Float, nullable=False),
        sa.Column("end_latitude", sa.Float, nullable=False),
        sa.Column("end_longitude", sa.Float, nullable=False),
        sa.Column("base_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("time_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("payment_details", sa.String(255), nullable=False),
        sa.Column("wallet_balance_before", sa.Numeric(12, 2), nullable=False),
        sa.Column("wallet_balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_receipts_user", "receipts", ["user_id"])


def downgrade() -> None:
    op.drop_index("idx_receipts_user", table_name="receipts")
    op.drop_table("receipts")
