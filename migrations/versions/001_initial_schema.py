"""Initial schema: users, drivers, rides, notifications, payments, retention.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("fcm_token", sa.String(255), nullable=True),
        sa.Column("default_payment_method", sa.String(64), nullable=True),
        sa.Column("total_rides", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_spent", sa.Float, server_default="0", nullable=False),
        *_timestamps(),
    )

    # ── drivers ───────────────────────────────────────────────────────
    # Enum columns are stored as plain strings holding the lowercase values
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("is_available", sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column("current_lat", sa.Float, nullable=True),
        sa.Column("current_lng", sa.Float, nullable=True),
        sa.Column("current_ride_id", sa.Integer, nullable=True),
        sa.Column("rating", sa.Float, server_default="0", nullable=False),
        sa.Column("fcm_token", sa.String(255), nullable=True),
        sa.Column("earnings", sa.Float, server_default="0", nullable=False),
        sa.Column("total_rides", sa.Integer, server_default="0", nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_drivers_matchable", "drivers", ["status", "is_available"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "passenger_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("passenger_name", sa.String(120), nullable=True),
        sa.Column("passenger_lat", sa.Float, nullable=True),
        sa.Column("passenger_lng", sa.Float, nullable=True),
        sa.Column("pickup_address", sa.String(255), nullable=True),
        sa.Column("dropoff_address", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), server_default="requested", nullable=False),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True
        ),
        sa.Column("driver_name", sa.String(120), nullable=True),
        sa.Column("driver_phone", sa.String(32), nullable=True),
        sa.Column("driver_lat", sa.Float, nullable=True),
        sa.Column("driver_lng", sa.Float, nullable=True),
        sa.Column("estimated_pickup_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_fare", sa.Float, nullable=True),
        sa.Column("distance_km", sa.Float, nullable=True),
        sa.Column("base_fare", sa.Float, nullable=True),
        sa.Column("per_minute_rate", sa.Float, nullable=True),
        sa.Column("per_km_rate", sa.Float, nullable=True),
        sa.Column("surge_factor", sa.Float, nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fare", sa.Float, nullable=True),
        sa.Column("payment_method", sa.String(64), nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=True),
        sa.Column("payment_error", sa.String(255), nullable=True),
        sa.Column("transaction_id", sa.String(64), nullable=True),
        sa.Column("archived", sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column(
            "requested_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        *_timestamps(),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_passenger", "rides", ["passenger_id"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_created", "rides", ["created_at", "archived"])

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("recipient_id", sa.Integer, nullable=False),
        sa.Column("recipient_role", sa.String(16), nullable=False),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("message", sa.String(500), nullable=False),
        sa.Column("ride_id", sa.Integer, nullable=True),
        sa.Column("status", sa.String(32), nullable=True),
        sa.Column("read", sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_notifications_recipient",
        "notifications",
        ["recipient_role", "recipient_id"],
    )
    op.create_index("idx_notifications_created", "notifications", ["created_at"])

    # ── payments ──────────────────────────────────────────────────────
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("transaction_id", sa.String(64), unique=True, nullable=False),
        sa.Column("ride_id", sa.Integer, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column("passenger_id", sa.Integer, nullable=False),
        sa.Column("driver_id", sa.Integer, nullable=False),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("payment_method", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("type", sa.String(32), server_default="ride_payment", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_table(
        "platform_earnings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("total", sa.Float, server_default="0", nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── retention ─────────────────────────────────────────────────────
    op.create_table(
        "archived_rides",
        sa.Column("ride_id", sa.Integer, primary_key=True),
        sa.Column("snapshot", sa.JSON, nullable=False),
        sa.Column(
            "archived_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_table(
        "location_updates",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("user_role", sa.String(16), nullable=False),
        sa.Column("ride_id", sa.Integer, nullable=True),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_location_updates_ts", "location_updates", ["timestamp"])
    op.create_table(
        "reports",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("month", sa.Integer, nullable=False),
        sa.Column("total_rides", sa.Integer, server_default="0", nullable=False),
        sa.Column("completed_rides", sa.Integer, server_default="0", nullable=False),
        sa.Column("cancelled_rides", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_revenue", sa.Float, server_default="0", nullable=False),
        sa.Column("total_distance", sa.Float, server_default="0", nullable=False),
        sa.Column("completion_rate", sa.Float, server_default="0", nullable=False),
        sa.Column("average_fare", sa.Float, server_default="0", nullable=False),
        sa.Column("average_distance", sa.Float, server_default="0", nullable=False),
        sa.Column(
            "generated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("year", "month", name="uq_reports_month"),
    )


def downgrade() -> None:
    op.drop_table("reports")
    op.drop_table("location_updates")
    op.drop_table("archived_rides")
    op.drop_table("platform_earnings")
    op.drop_table("transactions")
    op.drop_table("notifications")
    op.drop_table("rides")
    op.drop_table("drivers")
    op.drop_table("users")
