"""
Ride endpoints
==============

POST  /api/v1/rides                     -- offer a ride (drivers only)
GET   /api/v1/rides                     -- search active rides
GET   /api/v1/rides/mine                -- rides the caller drives or booked
GET   /api/v1/rides/fare-estimate       -- suggested fare for a route
POST  /api/v1/rides/scheduled           -- offer a recurring ride (drivers only)
GET   /api/v1/rides/scheduled           -- active scheduled rides (?mine=true)
GET   /api/v1/rides/{ride_id}           -- ride with driver and passengers (signed in)
PATCH /api/v1/rides/{ride_id}/status    -- complete or cancel (driver only)
POST  /api/v1/rides/{ride_id}/bookings  -- request a seat (pending until confirmed)
GET   /api/v1/rides/{ride_id}/bookings  -- bookings with passenger profiles (signed in)

Email and phone number are only shown to the driver and passengers
holding a live booking on the ride.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from orbitride.api.dependencies import (
    get_current_user_id,
    get_optional_user_id,
    get_workflow,
)
from orbitride.api.middleware import limiter
from orbitride.api.schemas import (
    BookingResponse,
    ErrorResponse,
    FareEstimateResponse,
    PassengerResponse,
    ProfileResponse,
    RideCreateRequest,
    RideDetailsResponse,
    RideResponse,
    RideScheduleResponse,
    RideStatusUpdate,
    ScheduledRideCreateRequest,
    ScheduledRideResponse,
    UserRideResponse,
)
from orbitride.config import settings
from orbitride.domain.entities import Location, PassengerView, ScheduledRide
from orbitride.domain.enums import BookingStatus, RideStatus
from orbitride.domain.pricing import FareEstimator, FareRates
from orbitride.services.booking import BookingWorkflow

router = APIRouter(prefix="/rides", tags=["rides"])

estimator = FareEstimator(
    FareRates(
        base_fare=settings.base_fare,
        rate_per_km=settings.rate_per_km,
        rate_per_minute=settings.rate_per_minute,
        rate_per_extra_passenger=settings.rate_per_extra_passenger,
    )
)

_errors = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _profile_response(profile, show_contact: bool) -> Optional[ProfileResponse]:
    if profile is None:
        return None
    response = ProfileResponse.model_validate(profile)
    return response if show_contact else response.without_contact()


def _is_participant(
    user_id: uuid.UUID, driver_id: uuid.UUID, passengers: list[PassengerView]
) -> bool:
    """Contact details are shared with the driver and live passengers only."""
    return user_id == driver_id or any(
        p.booking.passenger_id == user_id
        and p.booking.status != BookingStatus.CANCELLED
        for p in passengers
    )


def _scheduled_response(scheduled: ScheduledRide) -> ScheduledRideResponse:
    return ScheduledRideResponse(
        **RideResponse.model_validate(scheduled.ride).model_dump(),
        schedule=(
            RideScheduleResponse.model_validate(scheduled.schedule)
            if scheduled.schedule
            else None
        ),
    )


def _passenger_response(view: PassengerView, show_contact: bool) -> PassengerResponse:
    return PassengerResponse(
        id=view.booking.id,
        ride_id=view.booking.ride_id,
        passenger_id=view.booking.passenger_id,
        status=view.booking.status,
        created_at=view.booking.created_at,
        passenger=_profile_response(view.passenger, show_contact),
    )


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Offer a ride",
    responses=_errors,
)
@limiter.limit("100/minute")
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return await workflow.create_ride(
        user_id,
        from_location=body.from_location,
        to_location=body.to_location,
        origin=Location(body.from_lat, body.from_lng),
        destination=Location(body.to_lat, body.to_lng),
        departure_date=body.departure_date,
        departure_time=body.departure_time,
        available_seats=body.available_seats,
        max_passengers=body.max_passengers,
        price=body.price,
        notes=body.notes,
    )


@router.get(
    "",
    response_model=list[RideResponse],
    summary="Search active rides",
    description=(
        "Active rides ordered by departure, excluding the caller's own. "
        "Filter by location names, date, or proximity of the origin."
    ),
)
@limiter.limit("100/minute")
async def search_rides(
    request: Request,
    from_location: Optional[str] = Query(None, alias="from"),
    to_location: Optional[str] = Query(None, alias="to"),
    on_date: Optional[date] = Query(None, alias="date"),
    near_lat: Optional[float] = Query(None, ge=-90, le=90),
    near_lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0, le=100),
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    near = (
        Location(near_lat, near_lng)
        if near_lat is not None and near_lng is not None
        else None
    )
    return await workflow.search_rides(
        actor_id=user_id,
        from_query=from_location,
        to_query=to_location,
        on_date=on_date,
        near=near,
        radius_km=radius_km,
    )


@router.get(
    "/mine",
    response_model=list[UserRideResponse],
    summary="Rides the caller drives or has booked",
)
@limiter.limit("100/minute")
async def my_rides(
    request: Request,
    status: Optional[RideStatus] = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    views = await workflow.list_rides_for_user(user_id, status)
    views.sort(key=lambda v: (v.ride.departure_date, v.ride.departure_time))
    return [
        UserRideResponse(
            **RideResponse.model_validate(v.ride).model_dump(),
            user_role=v.role,
            booking_id=v.booking_id,
            booking_status=v.booking_status,
        )
        for v in views
    ]


@router.get(
    "/fare-estimate",
    response_model=FareEstimateResponse,
    summary="Suggested fare for a route",
)
@limiter.limit("100/minute")
async def fare_estimate(
    request: Request,
    distance_km: float = Query(..., ge=0),
    duration_min: float = Query(..., ge=0),
    passengers: int = Query(1, ge=1, le=8),
    base_fare: Optional[float] = Query(None, ge=0),
):
    return FareEstimateResponse(
        distance_km=distance_km,
        duration_min=duration_min,
        passengers=passengers,
        fare=estimator.estimate(distance_km, duration_min, passengers, base_fare),
    )


@router.post(
    "/scheduled",
    status_code=201,
    response_model=ScheduledRideResponse,
    summary="Offer a recurring ride",
    description=(
        "Daily and weekly rides keep the given departure date; a custom "
        "schedule departs first on its earliest date."
    ),
    responses=_errors,
)
@limiter.limit("100/minute")
async def create_scheduled_ride(
    request: Request,
    body: ScheduledRideCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    scheduled = await workflow.create_scheduled_ride(
        user_id,
        schedule_type=body.schedule_type,
        schedule_days=body.schedule_days,
        schedule_dates=body.schedule_dates,
        from_location=body.from_location,
        to_location=body.to_location,
        origin=Location(body.from_lat, body.from_lng),
        destination=Location(body.to_lat, body.to_lng),
        departure_date=body.departure_date,
        departure_time=body.departure_time,
        available_seats=body.available_seats,
        max_passengers=body.max_passengers,
        price=body.price,
        notes=body.notes,
    )
    return _scheduled_response(scheduled)


@router.get(
    "/scheduled",
    response_model=list[ScheduledRideResponse],
    summary="Active scheduled rides, earliest first",
)
@limiter.limit("100/minute")
async def list_scheduled_rides(
    request: Request,
    mine: bool = False,
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    if mine and user_id is None:
        raise HTTPException(status_code=401, detail="You must be logged in")
    rides = await workflow.list_scheduled_rides(user_id if mine else None)
    return [_scheduled_response(s) for s in rides]


@router.get(
    "/{ride_id}",
    response_model=RideDetailsResponse,
    summary="Ride with driver and passengers",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit("100/minute")
async def get_ride(
    request: Request,
    ride_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    details = await workflow.get_ride(ride_id)
    passengers = details.passengers or []
    show_contact = _is_participant(user_id, details.ride.driver_id, passengers)
    return RideDetailsResponse(
        **RideResponse.model_validate(details.ride).model_dump(),
        driver=_profile_response(details.driver, show_contact),
        passengers=[_passenger_response(p, show_contact) for p in passengers],
    )


@router.patch(
    "/{ride_id}/status",
    response_model=RideResponse,
    summary="Complete or cancel a ride",
    description=(
        "Only the ride's driver may do this. Completing a ride also completes "
        "every confirmed booking. Completed and cancelled rides are final."
    ),
    responses=_errors,
)
@limiter.limit("100/minute")
async def update_ride_status(
    request: Request,
    ride_id: uuid.UUID,
    body: RideStatusUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return await workflow.set_ride_status(ride_id, RideStatus(body.status), user_id)


@router.post(
    "/{ride_id}/bookings",
    status_code=201,
    response_model=BookingResponse,
    summary="Request a seat",
    description=(
        "Creates a pending booking. The seat is only taken once the driver "
        "confirms it."
    ),
    responses=_errors,
)
@limiter.limit("100/minute")
async def request_booking(
    request: Request,
    ride_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return await workflow.request_booking(ride_id, user_id)


@router.get(
    "/{ride_id}/bookings",
    response_model=list[PassengerResponse],
    summary="Bookings on a ride",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit("100/minute")
async def ride_bookings(
    request: Request,
    ride_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    details = await workflow.get_ride(ride_id)
    passengers = details.passengers or []
    show_contact = _is_participant(user_id, details.ride.driver_id, passengers)
    return [_passenger_response(p, show_contact) for p in passengers]
