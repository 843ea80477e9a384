"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from orbitride.domain.enums import (
    BookingStatus,
    NotificationType,
    RideStatus,
    ScheduleType,
    ShareStatus,
    UserRole,
)


# ── Requests ──────────────────────────────────────────────────────────


class RideCreateRequest(BaseModel):
    from_location: str = Field(..., min_length=1, max_length=255)
    to_location: str = Field(..., min_length=1, max_length=255)
    from_lat: float = Field(..., ge=-90, le=90)
    from_lng: float = Field(..., ge=-180, le=180)
    to_lat: float = Field(..., ge=-90, le=90)
    to_lng: float = Field(..., ge=-180, le=180)
    departure_date: date
    departure_time: time
    available_seats: int = Field(1, ge=1, le=8)
    max_passengers: Optional[int] = Field(None, ge=1, le=8)
    price: float = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def seats_within_limit(self) -> "RideCreateRequest":
        if self.max_passengers is not None and self.available_seats > self.max_passengers:
            raise ValueError("available_seats cannot exceed max_passengers")
        return self


class RideStatusUpdate(BaseModel):
    status: Literal["completed", "cancelled"]


class BookingStatusUpdate(BaseModel):
    status: Literal["confirmed", "cancelled"]


class ProfileUpdateRequest(BaseModel):
    email: Optional[str] = Field(None, max_length=255)
    full_name: Optional[str] = Field(None, max_length=120)
    phone_number: Optional[str] = Field(None, max_length=32)
    university: Optional[str] = Field(None, max_length=160)
    role: Optional[UserRole] = None


class RatingCreateRequest(BaseModel):
    ride_id: uuid.UUID
    rated_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class ScheduledRideCreateRequest(RideCreateRequest):
    departure_date: Optional[date] = None
    schedule_type: ScheduleType
    schedule_days: Optional[list[str]] = None
    schedule_dates: Optional[list[date]] = None

    @model_validator(mode="after")
    def departure_known(self) -> "ScheduledRideCreateRequest":
        if self.schedule_type != ScheduleType.CUSTOM and self.departure_date is None:
            raise ValueError("departure_date is required for daily and weekly rides")
        return self


class QuickRouteCreateRequest(BaseModel):
    from_location: str = Field(..., min_length=1, max_length=255)
    to_location: str = Field(..., min_length=1, max_length=255)
    from_lat: float = Field(..., ge=-90, le=90)
    from_lng: float = Field(..., ge=-180, le=180)
    to_lat: float = Field(..., ge=-90, le=90)
    to_lng: float = Field(..., ge=-180, le=180)
    distance_km: Optional[float] = Field(None, ge=0)
    estimated_duration_min: int = Field(..., ge=0)


class QuickRideRequest(BaseModel):
    """Offer a ride along a quick route."""

    departure_date: date
    departure_time: time
    available_seats: int = Field(1, ge=1, le=8)
    max_passengers: Optional[int] = Field(None, ge=1, le=8)
    price: float = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class MessageCreateRequest(BaseModel):
    receiver_id: uuid.UUID
    content: str = Field(..., min_length=1)


class RideShareCreateRequest(BaseModel):
    shared_with_id: uuid.UUID


class RideShareUpdate(BaseModel):
    status: Literal["accepted", "declined"]


# ── Responses ─────────────────────────────────────────────────────────


class ProfileResponse(BaseModel):
    id: uuid.UUID
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    university: Optional[str] = None
    role: UserRole
    rating: Optional[float] = None
    is_verified: Optional[bool] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    def without_contact(self) -> "ProfileResponse":
        return self.model_copy(update={"email": None, "phone_number": None})


class RideResponse(BaseModel):
    id: uuid.UUID
    driver_id: uuid.UUID
    from_location: str
    to_location: str
    from_lat: float
    from_lng: float
    to_lat: float
    to_lng: float
    departure_date: date
    departure_time: time
    available_seats: int
    max_passengers: Optional[int] = None
    price: float
    notes: Optional[str] = None
    is_scheduled: bool = False
    scheduled_for: Optional[date] = None
    status: RideStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserRideResponse(RideResponse):
    user_role: Literal["driver", "passenger"]
    booking_id: Optional[uuid.UUID] = None
    booking_status: Optional[BookingStatus] = None


class BookingResponse(BaseModel):
    id: uuid.UUID
    ride_id: uuid.UUID
    passenger_id: uuid.UUID
    status: BookingStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PassengerResponse(BookingResponse):
    passenger: Optional[ProfileResponse] = None


class RideDetailsResponse(RideResponse):
    driver: Optional[ProfileResponse] = None
    passengers: list[PassengerResponse] = []


class RatingResponse(BaseModel):
    id: uuid.UUID
    ride_id: uuid.UUID
    rater_id: uuid.UUID
    rated_id: uuid.UUID
    rating: int
    comment: Optional[str] = None
    rater_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NotificationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    content: str
    notification_type: NotificationType
    reference_id: Optional[uuid.UUID] = None
    read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MarkAllReadResponse(BaseModel):
    updated: int


class RideScheduleResponse(BaseModel):
    id: uuid.UUID
    ride_id: uuid.UUID
    schedule_type: ScheduleType
    schedule_days: Optional[list[str]] = None
    schedule_dates: Optional[list[date]] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ScheduledRideResponse(RideResponse):
    schedule: Optional[RideScheduleResponse] = None


class QuickRouteResponse(BaseModel):
    id: uuid.UUID
    from_location: str
    to_location: str
    from_lat: float
    from_lng: float
    to_lat: float
    to_lng: float
    distance_km: float
    estimated_duration_min: int
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str
    read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConversationResponse(BaseModel):
    other_user: ProfileResponse
    last_message: MessageResponse
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread: int


class RideShareResponse(BaseModel):
    id: uuid.UUID
    ride_id: uuid.UUID
    sharer_id: uuid.UUID
    shared_with_id: uuid.UUID
    status: ShareStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SharedRideResponse(RideShareResponse):
    ride: RideResponse


class FareEstimateResponse(BaseModel):
    distance_km: float
    duration_min: float
    passengers: int
    fare: float


class HealthResponse(BaseModel):
    status: str = "ok"
    pending_notifications: int = 0


class ErrorResponse(BaseModel):
    detail: str
    code: str
