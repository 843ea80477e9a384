"""
Domain value objects and state-machine guards.

Patterns used
-------------
- **State tables** in ``enums``: every ride / booking status change goes
  through ``ensure_ride_transition`` / ``ensure_booking_transition``
  (and ride shares through ``ensure_share_transition``), which reject
  anything outside the allow-list.
- ``NotificationDraft`` is the unit of the outbox: produced inside a unit
  of work, dispatched only after it commits.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Literal, Optional

from .enums import (
    BOOKING_TRANSITIONS,
    RIDE_TRANSITIONS,
    SHARE_TRANSITIONS,
    BookingStatus,
    NotificationType,
    RideStatus,
    ShareStatus,
)
from .exceptions import InvalidTransition


def ensure_ride_transition(current: RideStatus, target: RideStatus) -> None:
    """Raise ``InvalidTransition`` unless *current* -> *target* is legal."""
    current, target = RideStatus(current), RideStatus(target)
    if target not in RIDE_TRANSITIONS.get(current, set()):
        raise InvalidTransition(
            f"Cannot change a {current.value} ride to {target.value}"
        )


def ensure_booking_transition(
    current: BookingStatus, target: BookingStatus
) -> None:
    current, target = BookingStatus(current), BookingStatus(target)
    if target not in BOOKING_TRANSITIONS.get(current, set()):
        raise InvalidTransition(
            f"Cannot change a {current.value} booking to {target.value}"
        )


def ensure_share_transition(current: ShareStatus, target: ShareStatus) -> None:
    current, target = ShareStatus(current), ShareStatus(target)
    if target not in SHARE_TRANSITIONS.get(current, set()):
        raise InvalidTransition(
            f"This share was already {current.value}"
        )


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class NotificationDraft:
    user_id: uuid.UUID
    title: str
    content: str
    notification_type: NotificationType
    reference_id: Optional[uuid.UUID] = None


# ── Read models ───────────────────────────────────────────────────────


@dataclass
class RideView:
    """A ride as seen by one user, tagged with that user's role on it."""

    ride: Any
    role: Literal["driver", "passenger"]
    booking_id: Optional[uuid.UUID] = None
    booking_status: Optional[BookingStatus] = None


@dataclass
class PassengerView:
    booking: Any
    passenger: Any = None


@dataclass
class RideDetails:
    ride: Any
    driver: Any = None
    passengers: list[PassengerView] | None = None


@dataclass
class Conversation:
    """Latest message exchanged with one other user, plus unread count."""

    other_user: Any
    last_message: Any
    unread_count: int = 0


@dataclass
class ScheduledRide:
    ride: Any
    schedule: Any = None


@dataclass
class SharedRide:
    share: Any
    ride: Any = None
