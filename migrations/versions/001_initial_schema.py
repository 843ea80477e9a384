"""Initial schema: profiles, rides, bookings, notifications, ratings.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


USER_ROLE = sa.Enum("rider", "driver", "both", name="user_role")
RIDE_STATUS = sa.Enum("active", "completed", "cancelled", name="ride_status")
BOOKING_STATUS = sa.Enum(
    "pending", "confirmed", "cancelled", "completed", name="booking_status"
)
NOTIFICATION_TYPE = sa.Enum(
    "booking_request",
    "booking_confirmed",
    "booking_cancelled",
    "ride_completed",
    "ride_cancelled",
    name="notification_type",
)


def _timestamps(updated: bool = True) -> list:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
            )
        )
    return columns


def upgrade() -> None:
    # ── profiles ──────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=True),
        sa.Column("full_name", sa.String(120), nullable=True),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("university", sa.String(160), nullable=True),
        sa.Column("role", USER_ROLE, nullable=False, server_default="rider"),
        sa.Column("rating", sa.Float, nullable=True),
        sa.Column("is_verified", sa.Boolean, server_default=sa.false()),
        *_timestamps(),
    )

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "driver_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("from_location", sa.String(255), nullable=False),
        sa.Column("to_location", sa.String(255), nullable=False),
        sa.Column("from_lat", sa.Float, nullable=False),
        sa.Column("from_lng", sa.Float, nullable=False),
        sa.Column("to_lat", sa.Float, nullable=False),
        sa.Column("to_lng", sa.Float, nullable=False),
        sa.Column("origin_cell", sa.String(20), nullable=True),
        sa.Column("departure_date", sa.Date, nullable=False),
        sa.Column("departure_time", sa.Time, nullable=False),
        sa.Column("available_seats", sa.Integer, nullable=False),
        sa.Column("max_passengers", sa.Integer, nullable=True),
        sa.Column("price", sa.Float, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("status", RIDE_STATUS, nullable=False, server_default="active"),
        *_timestamps(),
        sa.CheckConstraint(
            "available_seats >= 0", name="ck_rides_available_seats_non_negative"
        ),
        sa.CheckConstraint("price >= 0", name="ck_rides_price_non_negative"),
    )
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_origin_cell", "rides", ["origin_cell"])
    op.create_index(
        "idx_rides_departure", "rides", ["departure_date", "departure_time"]
    )

    # ── ride_passengers ───────────────────────────────────────────────
    op.create_table(
        "ride_passengers",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("ride_id", sa.Uuid, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column(
            "passenger_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column(
            "status", BOOKING_STATUS, nullable=False, server_default="pending"
        ),
        *_timestamps(),
    )
    # At most one live booking per (ride, passenger)
    op.create_index(
        "uq_ride_passengers_live",
        "ride_passengers",
        ["ride_id", "passenger_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )
    op.create_index("idx_ride_passengers_ride", "ride_passengers", ["ride_id"])
    op.create_index(
        "idx_ride_passengers_passenger", "ride_passengers", ["passenger_id"]
    )

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "user_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("notification_type", NOTIFICATION_TYPE, nullable=False),
        sa.Column("reference_id", sa.Uuid, nullable=True),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("idx_notifications_user", "notifications", ["user_id"])
    op.create_index(
        "idx_notifications_unpublished",
        "notifications",
        ["created_at"],
        postgresql_where=sa.text("published_at IS NULL"),
    )

    # ── ratings ───────────────────────────────────────────────────────
    op.create_table(
        "ratings",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("ride_id", sa.Uuid, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column(
            "rater_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column(
            "rated_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint(
            "ride_id", "rater_id", "rated_id", name="uq_ratings_once_per_ride"
        ),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
    )
    op.create_index("idx_ratings_rated", "ratings", ["rated_id"])


def downgrade() -> None:
    op.drop_table("ratings")
    op.drop_table("notifications")
    op.drop_table("ride_passengers")
    op.drop_table("rides")
    op.drop_table("profiles")
    op.execute("DROP TYPE IF EXISTS notification_type")
    op.execute("DROP TYPE IF EXISTS booking_status")
    op.execute("DROP TYPE IF EXISTS ride_status")
    op.execute("DROP TYPE IF EXISTS user_role")
