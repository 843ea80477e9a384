"""Direct messages, quick routes, ride schedules and ride shares.

Also adds the scheduled-ride columns on rides and the lat/lng index used
by wide proximity searches.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


SCHEDULE_TYPE = sa.Enum("daily", "weekly", "custom", name="schedule_type")
SHARE_STATUS = sa.Enum("pending", "accepted", "declined", name="share_status")


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
    op.execute("ALTER TYPE notification_type ADD VALUE IF NOT EXISTS 'ride_shared'")

    # ── rides ─────────────────────────────────────────────────────────
    op.add_column(
        "rides",
        sa.Column(
            "is_scheduled", sa.Boolean, nullable=False, server_default=sa.false()
        ),
    )
    op.add_column("rides", sa.Column("scheduled_for", sa.Date, nullable=True))
    op.create_index("idx_rides_origin_latlng", "rides", ["from_lat", "from_lng"])

    # ── messages ──────────────────────────────────────────────────────
    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "sender_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column(
            "receiver_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint("sender_id <> receiver_id", name="ck_messages_not_self"),
    )
    op.create_index("idx_messages_sender", "messages", ["sender_id", "created_at"])
    op.create_index(
        "idx_messages_receiver", "messages", ["receiver_id", "created_at"]
    )
    op.create_index(
        "idx_messages_unpublished",
        "messages",
        ["created_at"],
        postgresql_where=sa.text("published_at IS NULL"),
    )

    # ── quick_routes ──────────────────────────────────────────────────
    op.create_table(
        "quick_routes",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("from_location", sa.String(255), nullable=False),
        sa.Column("to_location", sa.String(255), nullable=False),
        sa.Column("from_lat", sa.Float, nullable=False),
        sa.Column("from_lng", sa.Float, nullable=False),
        sa.Column("to_lat", sa.Float, nullable=False),
        sa.Column("to_lng", sa.Float, nullable=False),
        sa.Column("distance_km", sa.Float, nullable=False),
        sa.Column("estimated_duration_min", sa.Integer, nullable=False),
        sa.Column(
            "is_active", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "distance_km >= 0 AND estimated_duration_min >= 0",
            name="ck_quick_routes_non_negative",
        ),
    )

    # ── ride_schedules ────────────────────────────────────────────────
    op.create_table(
        "ride_schedules",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "ride_id",
            sa.Uuid,
            sa.ForeignKey("rides.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("schedule_type", SCHEDULE_TYPE, nullable=False),
        sa.Column("schedule_days", postgresql.JSON, nullable=True),
        sa.Column("schedule_dates", postgresql.JSON, nullable=True),
        *_timestamps(),
    )

    # ── ride_shares ───────────────────────────────────────────────────
    op.create_table(
        "ride_shares",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("ride_id", sa.Uuid, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column(
            "sharer_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column(
            "shared_with_id", sa.Uuid, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("status", SHARE_STATUS, nullable=False, server_default="pending"),
        *_timestamps(),
        sa.UniqueConstraint(
            "ride_id", "sharer_id", "shared_with_id", name="uq_ride_shares_once"
        ),
    )
    op.create_index("idx_ride_shares_sharer", "ride_shares", ["sharer_id"])
    op.create_index(
        "idx_ride_shares_shared_with", "ride_shares", ["shared_with_id"]
    )


def downgrade() -> None:
    op.drop_table("ride_shares")
    op.drop_table("ride_schedules")
    op.drop_table("quick_routes")
    op.drop_table("messages")
    op.drop_index("idx_rides_origin_latlng", table_name="rides")
    op.drop_column("rides", "scheduled_for")
    op.drop_column("rides", "is_scheduled")
    op.execute("DROP TYPE IF EXISTS share_status")
    op.execute("DROP TYPE IF EXISTS schedule_type")
    # Postgres cannot drop a single enum value; 'ride_shared' stays.
