"""Initial schema: the rides table.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _miles(name: str) -> sa.Column:
    return sa.Column(name, sa.Float, nullable=True)


def _stamp(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), **kwargs)


def upgrade() -> None:
    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("member_id", sa.Integer, nullable=False),
        sa.Column("driver_id", sa.Integer, nullable=True),
        sa.Column("trip_id", sa.String(16), nullable=True),
        sa.Column("is_return_trip", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("round_trip", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("pickup_address", sa.JSON, nullable=False),
        sa.Column("dropoff_address", sa.JSON, nullable=False),
        _stamp("scheduled_pickup_time", nullable=False),
        # Plain string so legacy values survive and can be reported
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("recurring", sa.String(32), nullable=True),
        _miles("start_miles"),
        _miles("pickup_miles"),
        _miles("end_miles"),
        _miles("return_start_miles"),
        _miles("return_pickup_miles"),
        _miles("return_end_miles"),
        _stamp("start_time", nullable=True),
        _stamp("pickup_time", nullable=True),
        _stamp("end_time", nullable=True),
        _stamp("return_start_time", nullable=True),
        _stamp("return_pickup_time", nullable=True),
        _stamp("return_end_time", nullable=True),
        _stamp("created_at", server_default=sa.func.now()),
        _stamp("updated_at", server_default=sa.func.now()),
        sa.UniqueConstraint("trip_id", "is_return_trip", name="uq_rides_trip_leg"),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_member", "rides", ["member_id"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_trip", "rides", ["trip_id"])
    op.create_index("idx_rides_scheduled", "rides", ["scheduled_pickup_time"])


def downgrade() -> None:
    op.drop_table("rides")
