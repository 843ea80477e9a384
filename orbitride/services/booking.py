"""
Booking Workflow
================

Orchestrates rides and bookings for drivers and passengers.

Concurrency safety
------------------
* Every mutating operation is ONE transaction (``UnitOfWork``).
* Seat counts change only through the conditional updates
  ``RideRepository.take_seat`` / ``release_seat``; a confirm whose seat
  decrement matches no row raises ``NoSeatsAvailable`` and the booking
  status change rolls back with it.
* Status changes are compare-and-set on the status read at validation
  time; if another request got there first, nothing is written.
* A partial unique index backs "one live booking per (ride, passenger)".

Side effects
------------
Notification drafts are collected during the transaction and handed to
the ``NotificationDispatcher`` only after commit.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, time
from typing import Optional

from sqlalchemy.exc import IntegrityError

from orbitride.config import settings
from orbitride.domain.entities import (
    Location,
    NotificationDraft,
    PassengerView,
    RideDetails,
    RideView,
    ScheduledRide,
    ensure_booking_transition,
    ensure_ride_transition,
)
from orbitride.domain.enums import (
    BOOKING_TARGETS,
    RIDE_TARGETS,
    WEEKDAYS,
    BookingStatus,
    NotificationType,
    RideStatus,
    ScheduleType,
)
from orbitride.domain.exceptions import (
    AlreadyBooked,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NoSeatsAvailable,
    NotFound,
    SelfBookingForbidden,
)
from orbitride.domain.geo import (
    bounding_box,
    cells_within,
    haversine_km,
    origin_cell,
)
from orbitride.infrastructure.models import (
    BookingModel,
    RideModel,
    RideScheduleModel,
)
from orbitride.infrastructure.repositories import (
    BookingRepository,
    ProfileRepository,
    RideRepository,
    RideScheduleRepository,
)

from .notifications import NotificationDispatcher
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def _display_name(profile, fallback: str) -> str:
    return (profile.full_name if profile and profile.full_name else None) or fallback


class BookingWorkflow:
    def __init__(
        self,
        uow: UnitOfWork,
        dispatcher: NotificationDispatcher,
        *,
        restore_seat_on_cancel: bool | None = None,
        h3_resolution: int | None = None,
    ):
        self.uow = uow
        self.dispatcher = dispatcher
        self.restore_seat_on_cancel = (
            settings.restore_seat_on_cancel
            if restore_seat_on_cancel is None
            else restore_seat_on_cancel
        )
        self.h3_resolution = h3_resolution or settings.h3_resolution

    # ── Rides ─────────────────────────────────────────────────────────

    async def create_ride(
        self,
        actor_id: uuid.UUID,
        *,
        from_location: str,
        to_location: str,
        origin: Location,
        destination: Location,
        departure_date: date,
        departure_time: time,
        available_seats: int,
        price: float,
        max_passengers: int | None = None,
        notes: str | None = None,
    ) -> RideModel:
        values = self._ride_values(
            from_location=from_location,
            to_location=to_location,
            origin=origin,
            destination=destination,
            departure_date=departure_date,
            departure_time=departure_time,
            available_seats=available_seats,
            price=price,
            max_passengers=max_passengers,
            notes=notes,
        )
        ride, _ = await self._offer(actor_id, values)
        logger.info("Ride %s created by driver %s", ride.id, actor_id)
        return ride

    async def create_scheduled_ride(
        self,
        actor_id: uuid.UUID,
        *,
        schedule_type: ScheduleType,
        schedule_days: list[str] | None = None,
        schedule_dates: list[date] | None = None,
        **ride_fields,
    ) -> ScheduledRide:
        """
        Offer a ride that recurs daily, on given weekdays, or on given dates.

        A custom schedule departs first on its earliest date, which is also
        stored as ``scheduled_for``.  Daily and weekly schedules keep the
        given departure date and leave ``scheduled_for`` empty.
        """
        schedule_type = ScheduleType(schedule_type)
        days = dates = None
        scheduled_for = None
        if schedule_type == ScheduleType.WEEKLY:
            wanted = {d.strip().lower() for d in schedule_days or []}
            unknown = wanted - set(WEEKDAYS)
            if not wanted or unknown:
                raise InvalidRequest(
                    "A weekly schedule needs weekday names such as 'monday'"
                )
            days = [d for d in WEEKDAYS if d in wanted]
        elif schedule_type == ScheduleType.CUSTOM:
            if not schedule_dates:
                raise InvalidRequest("A custom schedule needs at least one date")
            ordered = sorted(set(schedule_dates))
            dates = [d.isoformat() for d in ordered]
            scheduled_for = ordered[0]
            ride_fields["departure_date"] = scheduled_for

        values = self._ride_values(**ride_fields)
        values.update(is_scheduled=True, scheduled_for=scheduled_for)
        schedule = dict(
            schedule_type=schedule_type,
            schedule_days=days,
            schedule_dates=dates,
        )
        ride, stored = await self._offer(actor_id, values, schedule)
        logger.info(
            "Scheduled ride %s (%s) created by driver %s",
            ride.id,
            schedule_type.value,
            actor_id,
        )
        return ScheduledRide(ride=ride, schedule=stored)

    def _ride_values(
        self,
        *,
        from_location: str,
        to_location: str,
        origin: Location,
        destination: Location,
        departure_date: date,
        departure_time: time,
        available_seats: int,
        price: float,
        max_passengers: int | None = None,
        notes: str | None = None,
    ) -> dict:
        if available_seats < 0 or price < 0:
            raise InvalidRequest("Seats and price must not be negative")
        if max_passengers is None:
            max_passengers = available_seats
        if max_passengers < available_seats:
            raise InvalidRequest(
                "Available seats cannot exceed the passenger limit"
            )
        return dict(
            from_location=from_location,
            to_location=to_location,
            from_lat=origin.latitude,
            from_lng=origin.longitude,
            to_lat=destination.latitude,
            to_lng=destination.longitude,
            origin_cell=origin_cell(
                origin.latitude, origin.longitude, self.h3_resolution
            ),
            departure_date=departure_date,
            departure_time=departure_time,
            available_seats=available_seats,
            max_passengers=max_passengers,
            price=price,
            notes=notes,
        )

    async def _offer(
        self, actor_id: uuid.UUID, values: dict, schedule: dict | None = None
    ) -> tuple[RideModel, RideScheduleModel | None]:
        async def work(session, _outbox):
            profile = await ProfileRepository(session).get_by_id(actor_id)
            if profile is None:
                raise NotFound("Profile not found")
            if not profile.role.can_drive:
                raise Forbidden("Only drivers can create rides")

            ride = await RideRepository(session).create(
                RideModel(driver_id=actor_id, status=RideStatus.ACTIVE, **values)
            )
            stored = None
            if schedule is not None:
                stored = await RideScheduleRepository(session).create(
                    RideScheduleModel(ride_id=ride.id, **schedule)
                )
            return ride, stored

        (ride, stored), _ = await self.uow.run(work, label="create ride")
        return ride, stored

    async def list_scheduled_rides(
        self, driver_id: uuid.UUID | None = None
    ) -> list[ScheduledRide]:
        async def work(session, _outbox):
            rows = await RideScheduleRepository(session).list_scheduled_rides(
                driver_id
            )
            return [ScheduledRide(ride=r, schedule=s) for r, s in rows]

        rides, _ = await self.uow.run(work, label="list scheduled rides")
        return rides

    async def set_ride_status(
        self, ride_id: uuid.UUID, target: RideStatus, actor_id: uuid.UUID
    ) -> RideModel:
        """
        Complete or cancel a ride.

        Completing also moves every confirmed booking to completed in the
        same transaction.  Passengers whose booking was confirmed get one
        notification each.
        """
        target = RideStatus(target)
        if target not in RIDE_TARGETS:
            raise InvalidTransition(f"A ride cannot be set to {target.value}")

        async def work(session, outbox):
            rides = RideRepository(session)
            bookings = BookingRepository(session)

            ride = await rides.get_by_id(ride_id)
            if ride is None:
                raise NotFound("Ride not found")
            if ride.driver_id != actor_id:
                raise Forbidden("You can only update rides that you created")
            if ride.status == target:
                return ride
            ensure_ride_transition(ride.status, target)

            previous = RideStatus(ride.status)
            if not await rides.compare_and_set_status(ride_id, previous, target):
                raise InvalidTransition("The ride was updated by another request")
            # Read after the ride left active: no later confirm can take a seat
            confirmed = await bookings.list_for_ride(
                ride_id, status=BookingStatus.CONFIRMED
            )
            if target == RideStatus.COMPLETED:
                completed = await bookings.complete_confirmed(ride_id)
                logger.info(
                    "Ride %s completed, %d bookings completed", ride_id, completed
                )

            ntype = (
                NotificationType.RIDE_COMPLETED
                if target == RideStatus.COMPLETED
                else NotificationType.RIDE_CANCELLED
            )
            for booking in confirmed:
                outbox.append(
                    NotificationDraft(
                        user_id=booking.passenger_id,
                        title=f"Ride {target.value.capitalize()}",
                        content=(
                            f"Your ride from {ride.from_location} to "
                            f"{ride.to_location} has been marked as "
                            f"{target.value} by the driver."
                        ),
                        notification_type=ntype,
                        reference_id=ride_id,
                    )
                )
            return await rides.refresh(ride)

        ride, outbox = await self.uow.run(work, label="set ride status")
        self.dispatcher.enqueue(outbox)
        return ride

    # ── Bookings ──────────────────────────────────────────────────────

    async def request_booking(
        self, ride_id: uuid.UUID, actor_id: uuid.UUID
    ) -> BookingModel:
        """Ask for a seat.  The seat is consumed only when the driver confirms."""

        async def work(session, outbox):
            rides = RideRepository(session)
            bookings = BookingRepository(session)
            profiles = ProfileRepository(session)

            ride = await rides.get_by_id(ride_id)
            if ride is None:
                raise NotFound("Ride not found")
            passenger = await profiles.get_by_id(actor_id)
            if passenger is None:
                raise NotFound("Profile not found")
            if ride.status != RideStatus.ACTIVE:
                raise InvalidTransition(
                    f"This ride is {ride.status.value} and no longer takes bookings"
                )
            if await bookings.get_live(ride_id, actor_id):
                raise AlreadyBooked()
            if ride.driver_id == actor_id:
                raise SelfBookingForbidden()
            if ride.available_seats <= 0:
                raise NoSeatsAvailable()

            try:
                booking = await bookings.create(ride_id, actor_id)
            except IntegrityError as exc:
                raise AlreadyBooked() from exc

            outbox.append(
                NotificationDraft(
                    user_id=ride.driver_id,
                    title="New Booking Request",
                    content=(
                        f"{_display_name(passenger, 'A passenger')} wants to "
                        f"join your ride from {ride.from_location} to "
                        f"{ride.to_location}"
                    ),
                    notification_type=NotificationType.BOOKING_REQUEST,
                    reference_id=ride_id,
                )
            )
            return booking

        booking, outbox = await self.uow.run(work, label="request booking")
        logger.info(
            "Booking %s requested on ride %s by %s", booking.id, ride_id, actor_id
        )
        self.dispatcher.enqueue(outbox)
        return booking

    async def set_booking_status(
        self, booking_id: uuid.UUID, target: BookingStatus, actor_id: uuid.UUID
    ) -> BookingModel:
        """
        Confirm or cancel a booking as the ride's driver.

        Confirming consumes one seat in the same transaction.  Re-applying
        the booking's current status is a no-op.
        """
        target = BookingStatus(target)
        if target not in BOOKING_TARGETS:
            raise InvalidTransition(f"A booking cannot be set to {target.value}")

        async def work(session, outbox):
            rides = RideRepository(session)
            bookings = BookingRepository(session)

            booking = await bookings.get_by_id(booking_id)
            if booking is None:
                raise NotFound("Booking not found")
            ride = await rides.get_by_id(booking.ride_id)
            if ride is None:
                raise NotFound("Ride not found")
            if ride.driver_id != actor_id:
                raise Forbidden("Only the driver can update booking status")
            if booking.status == target:
                return booking
            if ride.status != RideStatus.ACTIVE:
                raise InvalidTransition(
                    f"This ride is {ride.status.value}; its bookings are closed"
                )
            ensure_booking_transition(booking.status, target)
            if target == BookingStatus.CONFIRMED and ride.available_seats <= 0:
                raise NoSeatsAvailable("Cannot confirm booking: no seats available")

            previous = BookingStatus(booking.status)
            if not await bookings.compare_and_set_status(
                booking_id, previous, target
            ):
                raise InvalidTransition("The booking was updated by another request")

            if target == BookingStatus.CONFIRMED:
                if not await rides.take_seat(ride.id):
                    current = await rides.get_status(ride.id)
                    if current is not None and current != RideStatus.ACTIVE:
                        raise InvalidTransition(
                            f"This ride is {current.value}; its bookings are closed"
                        )
                    raise NoSeatsAvailable(
                        "Cannot confirm booking: no seats available"
                    )
            elif previous == BookingStatus.CONFIRMED and self.restore_seat_on_cancel:
                await rides.release_seat(ride.id)

            driver = await ProfileRepository(session).get_by_id(actor_id)
            driver_name = _display_name(driver, "the driver")
            if target == BookingStatus.CONFIRMED:
                title = "Ride Booking Confirmed"
                verb = f"has been accepted by {driver_name}"
                ntype = NotificationType.BOOKING_CONFIRMED
            else:
                title = "Ride Booking Cancelled"
                verb = f"has been declined by {driver_name}"
                ntype = NotificationType.BOOKING_CANCELLED
            outbox.append(
                NotificationDraft(
                    user_id=booking.passenger_id,
                    title=title,
                    content=(
                        f"Your ride request from {ride.from_location} to "
                        f"{ride.to_location} {verb}."
                    ),
                    notification_type=ntype,
                    reference_id=ride.id,
                )
            )
            await rides.refresh(ride)
            return await bookings.refresh(booking)

        booking, outbox = await self.uow.run(work, label="set booking status")
        if outbox:
            logger.info("Booking %s set to %s", booking_id, target.value)
        self.dispatcher.enqueue(outbox)
        return booking

    # ── Reads ─────────────────────────────────────────────────────────

    async def list_rides_for_user(
        self, user_id: uuid.UUID, status: RideStatus | None = None
    ) -> list[RideView]:
        """
        Rides the user drives plus rides reached through their bookings.

        Passenger rows whose ride did not load are skipped, not fatal.
        """

        async def work(session, _outbox):
            driven = await RideRepository(session).list_by_driver(user_id, status)
            booked = await BookingRepository(session).list_for_passenger(
                user_id, status
            )

            views = [RideView(ride=ride, role="driver") for ride in driven]
            for booking, ride in booked:
                if ride is None:
                    logger.warning(
                        "Booking %s references ride %s which did not load; skipping",
                        booking.id,
                        booking.ride_id,
                    )
                    continue
                views.append(
                    RideView(
                        ride=ride,
                        role="passenger",
                        booking_id=booking.id,
                        booking_status=BookingStatus(booking.status),
                    )
                )
            return views

        views, _ = await self.uow.run(work, label="list rides for user")
        return views

    async def search_rides(
        self,
        *,
        actor_id: Optional[uuid.UUID] = None,
        from_query: str | None = None,
        to_query: str | None = None,
        on_date: date | None = None,
        near: Location | None = None,
        radius_km: float | None = None,
    ) -> list[RideModel]:
        """Active rides, soonest first, never including the caller's own."""
        radius_km = radius_km or settings.default_search_radius_km
        cells = box = None
        if near is not None:
            cells = cells_within(
                near.latitude, near.longitude, radius_km, self.h3_resolution
            )
            if cells is None:
                box = bounding_box(near.latitude, near.longitude, radius_km)

        async def work(session, _outbox):
            return await RideRepository(session).search_active(
                exclude_driver=actor_id,
                from_query=from_query,
                to_query=to_query,
                on_date=on_date,
                origin_cells=cells,
                origin_box=box,
            )

        rides, _ = await self.uow.run(work, label="search rides")
        if near is not None:
            rides = [
                r
                for r in rides
                if haversine_km(near.latitude, near.longitude, r.from_lat, r.from_lng)
                <= radius_km
            ]
        return rides

    async def get_ride(self, ride_id: uuid.UUID) -> RideDetails:
        async def work(session, _outbox):
            ride = await RideRepository(session).get_by_id(ride_id)
            if ride is None:
                raise NotFound("Ride not found")
            passengers = await self._passengers(session, ride_id)
            driver = await ProfileRepository(session).get_by_id(ride.driver_id)
            return RideDetails(ride=ride, driver=driver, passengers=passengers)

        details, _ = await self.uow.run(work, label="get ride")
        return details

    async def get_ride_passengers(self, ride_id: uuid.UUID) -> list[PassengerView]:
        async def work(session, _outbox):
            if await RideRepository(session).get_by_id(ride_id) is None:
                raise NotFound("Ride not found")
            return await self._passengers(session, ride_id)

        passengers, _ = await self.uow.run(work, label="get ride passengers")
        return passengers

    @staticmethod
    async def _passengers(session, ride_id: uuid.UUID) -> list[PassengerView]:
        bookings = await BookingRepository(session).list_for_ride(ride_id)
        profiles = await ProfileRepository(session).get_many(
            b.passenger_id for b in bookings
        )
        return [
            PassengerView(booking=b, passenger=profiles.get(b.passenger_id))
            for b in bookings
        ]
