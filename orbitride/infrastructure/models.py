"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``profiles``         -- one row per authenticated account
* ``rides``            -- rides offered by drivers
* ``ride_passengers``  -- bookings: a passenger's request for a seat
* ``notifications``    -- per-user inbox, also the realtime outbox
* ``ratings``          -- user-to-user ratings scoped to a ride
* ``messages``         -- direct messages, also the realtime outbox for chat
* ``quick_routes``     -- preset routes offered as one-tap ride templates
* ``ride_schedules``   -- recurrence of a scheduled ride
* ``ride_shares``      -- a ride recommended by one user to another

Constraints
-----------
* ``ck_rides_available_seats_non_negative`` backs the guarded seat
  decrement: the count can never drop below zero even if a caller skips
  the conditional update.
* ``uq_ride_passengers_live`` is a **partial unique index** on
  (ride_id, passenger_id) for non-cancelled bookings, so at most one live
  booking per pair exists regardless of request interleaving.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
    func,
    text,
)

from .database import Base
from orbitride.domain.enums import (
    BookingStatus,
    NotificationType,
    RideStatus,
    ScheduleType,
    ShareStatus,
    UserRole,
)


def _values(enum_cls):
    return [member.value for member in enum_cls]


class ProfileModel(Base):
    __tablename__ = "profiles"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=True)
    full_name = Column(String(120), nullable=True)
    phone_number = Column(String(32), nullable=True)
    university = Column(String(160), nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_values),
        default=UserRole.RIDER,
        nullable=False,
    )
    rating = Column(Float, nullable=True)
    is_verified = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class RideModel(Base):
    __tablename__ = "rides"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    driver_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)

    from_location = Column(String(255), nullable=False)
    to_location = Column(String(255), nullable=False)
    from_lat = Column(Float, nullable=False)
    from_lng = Column(Float, nullable=False)
    to_lat = Column(Float, nullable=False)
    to_lng = Column(Float, nullable=False)
    # H3 index of the origin, for proximity search
    origin_cell = Column(String(20), nullable=True)

    departure_date = Column(Date, nullable=False)
    departure_time = Column(Time, nullable=False)

    available_seats = Column(Integer, nullable=False)
    max_passengers = Column(Integer, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)
    is_scheduled = Column(Boolean, default=False, nullable=False)
    scheduled_for = Column(Date, nullable=True)

    status = Column(
        Enum(RideStatus, name="ride_status", values_callable=_values),
        default=RideStatus.ACTIVE,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "available_seats >= 0", name="ck_rides_available_seats_non_negative"
        ),
        CheckConstraint("price >= 0", name="ck_rides_price_non_negative"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_status", "status"),
        Index("idx_rides_origin_cell", "origin_cell"),
        Index("idx_rides_origin_latlng", "from_lat", "from_lng"),
        Index("idx_rides_departure", "departure_date", "departure_time"),
    )


class BookingModel(Base):
    __tablename__ = "ride_passengers"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ride_id = Column(Uuid, ForeignKey("rides.id"), nullable=False)
    passenger_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    status = Column(
        Enum(BookingStatus, name="booking_status", values_callable=_values),
        default=BookingStatus.PENDING,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index(
            "uq_ride_passengers_live",
            "ride_id",
            "passenger_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index("idx_ride_passengers_ride", "ride_id"),
        Index("idx_ride_passengers_passenger", "passenger_id"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    notification_type = Column(
        Enum(NotificationType, name="notification_type", values_callable=_values),
        nullable=False,
    )
    reference_id = Column(Uuid, nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    # Stamped by the relay once pushed to the realtime channel
    published_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_notifications_user", "user_id"),
        Index(
            "idx_notifications_unpublished",
            "created_at",
            postgresql_where=text("published_at IS NULL"),
        ),
    )


class RatingModel(Base):
    __tablename__ = "ratings"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ride_id = Column(Uuid, ForeignKey("rides.id"), nullable=False)
    rater_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    rated_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "ride_id", "rater_id", "rated_id", name="uq_ratings_once_per_ride"
        ),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
        Index("idx_ratings_rated", "rated_id"),
    )


class MessageModel(Base):
    __tablename__ = "messages"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    receiver_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    content = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    # Stamped by the relay once pushed to the receiver's channel
    published_at = Column(DateTime(timezone=True), nullable=True)

    # Set in Python so messages sent within the same second keep their order
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("sender_id <> receiver_id", name="ck_messages_not_self"),
        Index("idx_messages_sender", "sender_id", "created_at"),
        Index("idx_messages_receiver", "receiver_id", "created_at"),
        Index(
            "idx_messages_unpublished",
            "created_at",
            postgresql_where=text("published_at IS NULL"),
        ),
    )


class QuickRouteModel(Base):
    __tablename__ = "quick_routes"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    from_location = Column(String(255), nullable=False)
    to_location = Column(String(255), nullable=False)
    from_lat = Column(Float, nullable=False)
    from_lng = Column(Float, nullable=False)
    to_lat = Column(Float, nullable=False)
    to_lng = Column(Float, nullable=False)
    distance_km = Column(Float, nullable=False)
    estimated_duration_min = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "distance_km >= 0 AND estimated_duration_min >= 0",
            name="ck_quick_routes_non_negative",
        ),
    )


class RideScheduleModel(Base):
    __tablename__ = "ride_schedules"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ride_id = Column(Uuid, ForeignKey("rides.id"), nullable=False, unique=True)
    schedule_type = Column(
        Enum(ScheduleType, name="schedule_type", values_callable=_values),
        nullable=False,
    )
    # Lower-case weekday names for weekly schedules
    schedule_days = Column(JSON, nullable=True)
    # ISO dates for custom schedules, ascending
    schedule_dates = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class RideShareModel(Base):
    __tablename__ = "ride_shares"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ride_id = Column(Uuid, ForeignKey("rides.id"), nullable=False)
    sharer_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    shared_with_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    status = Column(
        Enum(ShareStatus, name="share_status", values_callable=_values),
        default=ShareStatus.PENDING,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "ride_id", "sharer_id", "shared_with_id", name="uq_ride_shares_once"
        ),
        Index("idx_ride_shares_sharer", "sharer_id"),
        Index("idx_ride_shares_shared_with", "shared_with_id"),
    )
