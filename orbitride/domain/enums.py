"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# State machines: map current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.ACTIVE: {RideStatus.COMPLETED, RideStatus.CANCELLED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}

# Statuses a driver may set on a ride / booking through the workflow
RIDE_TARGETS = frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED})
BOOKING_TARGETS = frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED})


class UserRole(str, enum.Enum):
    RIDER = "rider"
    DRIVER = "driver"
    BOTH = "both"

    @property
    def can_drive(self) -> bool:
        return self in (UserRole.DRIVER, UserRole.BOTH)


class NotificationType(str, enum.Enum):
    BOOKING_REQUEST = "booking_request"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    RIDE_COMPLETED = "ride_completed"
    RIDE_CANCELLED = "ride_cancelled"
    RIDE_SHARED = "ride_shared"


class ScheduleType(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class ShareStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


SHARE_TRANSITIONS: dict[ShareStatus, set[ShareStatus]] = {
    ShareStatus.PENDING: {ShareStatus.ACCEPTED, ShareStatus.DECLINED},
    ShareStatus.ACCEPTED: set(),
    ShareStatus.DECLINED: set(),
}
