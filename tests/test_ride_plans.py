"""Quick route, scheduled ride and ride share service tests."""

import uuid
from datetime import date, time, timedelta

import pytest
import pytest_asyncio

from orbitride.domain.enums import (
    NotificationType,
    RideStatus,
    ScheduleType,
    ShareStatus,
    UserRole,
)
from orbitride.domain.exceptions import (
    AlreadyShared,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
)
from orbitride.services.quick_routes import QuickRouteService
from orbitride.services.sharing import RideShareService

from tests.conftest import AIRPORT, CAMPUS

NEXT_WEEK = date.today() + timedelta(days=7)

RIDE_FIELDS = dict(
    from_location="COEP Hostel",
    to_location="Pune Airport",
    origin=CAMPUS,
    destination=AIRPORT,
    departure_date=date.today() + timedelta(days=1),
    departure_time=time(6, 45),
    available_seats=3,
    price=90.0,
)


@pytest_asyncio.fixture
async def quick_routes(uow) -> QuickRouteService:
    return QuickRouteService(uow)


@pytest_asyncio.fixture
async def shares(uow, dispatcher) -> RideShareService:
    return RideShareService(uow, dispatcher)


class TestQuickRoutes:
    @pytest.mark.asyncio
    async def test_distance_defaults_to_great_circle(self, quick_routes, driver):
        route = await quick_routes.create(
            driver,
            from_location="COEP Hostel",
            to_location="Pune Airport",
            origin=CAMPUS,
            destination=AIRPORT,
            estimated_duration_min=25,
        )
        assert 8 < route.distance_km < 9
        assert route.distance_km == round(route.distance_km, 2)
        assert [r.id for r in await quick_routes.list_active()] == [route.id]
        assert (await quick_routes.get(route.id)).to_location == "Pune Airport"

    @pytest.mark.asyncio
    async def test_only_drivers_add_routes(self, quick_routes, passenger):
        with pytest.raises(Forbidden):
            await quick_routes.create(
                passenger,
                from_location="COEP Hostel",
                to_location="Pune Airport",
                origin=CAMPUS,
                destination=AIRPORT,
                estimated_duration_min=25,
            )
        assert await quick_routes.list_active() == []

    @pytest.mark.asyncio
    async def test_negative_values_rejected(self, quick_routes, driver):
        with pytest.raises(InvalidRequest):
            await quick_routes.create(
                driver,
                from_location="COEP Hostel",
                to_location="Pune Airport",
                origin=CAMPUS,
                destination=AIRPORT,
                estimated_duration_min=-5,
            )

    @pytest.mark.asyncio
    async def test_unknown_route(self, quick_routes):
        with pytest.raises(NotFound):
            await quick_routes.get(uuid.uuid4())


class TestScheduledRides:
    @pytest.mark.asyncio
    async def test_weekly_days_are_normalised(self, workflow, driver):
        scheduled = await workflow.create_scheduled_ride(
            driver,
            schedule_type=ScheduleType.WEEKLY,
            schedule_days=["Friday", "monday ", "friday"],
            **RIDE_FIELDS,
        )
        assert scheduled.ride.is_scheduled
        assert scheduled.ride.scheduled_for is None
        assert scheduled.schedule.schedule_days == ["monday", "friday"]
        assert scheduled.schedule.schedule_dates is None

    @pytest.mark.parametrize("days", [None, [], ["funday"]])
    @pytest.mark.asyncio
    async def test_weekly_needs_real_days(self, workflow, driver, days):
        with pytest.raises(InvalidRequest):
            await workflow.create_scheduled_ride(
                driver,
                schedule_type=ScheduleType.WEEKLY,
                schedule_days=days,
                **RIDE_FIELDS,
            )

    @pytest.mark.asyncio
    async def test_custom_departs_on_earliest_date(self, workflow, driver):
        later = NEXT_WEEK + timedelta(days=3)
        scheduled = await workflow.create_scheduled_ride(
            driver,
            schedule_type=ScheduleType.CUSTOM,
            schedule_dates=[later, NEXT_WEEK, later],
            **RIDE_FIELDS,
        )
        assert scheduled.ride.scheduled_for == NEXT_WEEK
        assert scheduled.ride.departure_date == NEXT_WEEK
        assert scheduled.schedule.schedule_dates == [
            NEXT_WEEK.isoformat(),
            later.isoformat(),
        ]

    @pytest.mark.asyncio
    async def test_custom_needs_dates(self, workflow, driver):
        with pytest.raises(InvalidRequest):
            await workflow.create_scheduled_ride(
                driver, schedule_type=ScheduleType.CUSTOM, **RIDE_FIELDS
            )

    @pytest.mark.asyncio
    async def test_riders_cannot_schedule(self, workflow, passenger):
        with pytest.raises(Forbidden):
            await workflow.create_scheduled_ride(
                passenger, schedule_type=ScheduleType.DAILY, **RIDE_FIELDS
            )

    @pytest.mark.asyncio
    async def test_listing_skips_closed_and_one_off_rides(
        self, workflow, make_ride, make_profile, driver
    ):
        other = await make_profile("Rohan Mehta", UserRole.BOTH)
        daily = await workflow.create_scheduled_ride(
            driver, schedule_type=ScheduleType.DAILY, **RIDE_FIELDS
        )
        custom = await workflow.create_scheduled_ride(
            other,
            schedule_type=ScheduleType.CUSTOM,
            schedule_dates=[NEXT_WEEK],
            **RIDE_FIELDS,
        )
        cancelled = await workflow.create_scheduled_ride(
            driver, schedule_type=ScheduleType.DAILY, **RIDE_FIELDS
        )
        await workflow.set_ride_status(
            cancelled.ride.id, RideStatus.CANCELLED, actor_id=driver
        )
        await make_ride(driver)

        listed = await workflow.list_scheduled_rides()
        # Dated schedules come before open-ended ones
        assert [s.ride.id for s in listed] == [custom.ride.id, daily.ride.id]
        assert listed[1].schedule.schedule_type == ScheduleType.DAILY

        mine = await workflow.list_scheduled_rides(driver)
        assert [s.ride.id for s in mine] == [daily.ride.id]


class TestRideShares:
    @pytest.mark.asyncio
    async def test_share_notifies_recipient(
        self, shares, dispatcher, inbox, make_ride, driver, passenger
    ):
        ride = await make_ride(driver)
        share = await shares.share(driver, ride.id, passenger)
        await dispatcher.drain()

        assert share.status == ShareStatus.PENDING
        [notification] = await inbox.list_for_user(passenger)
        assert notification.notification_type == NotificationType.RIDE_SHARED
        assert notification.reference_id == ride.id
        assert "Aarav Sharma" in notification.content

    @pytest.mark.asyncio
    async def test_share_once_per_pair(self, shares, make_ride, driver, passenger):
        ride = await make_ride(driver)
        await shares.share(driver, ride.id, passenger)
        with pytest.raises(AlreadyShared):
            await shares.share(driver, ride.id, passenger)

    @pytest.mark.asyncio
    async def test_bad_targets(self, shares, workflow, make_ride, driver, passenger):
        ride = await make_ride(driver)
        with pytest.raises(Forbidden):
            await shares.share(driver, ride.id, driver)
        with pytest.raises(NotFound):
            await shares.share(driver, uuid.uuid4(), passenger)
        with pytest.raises(NotFound):
            await shares.share(driver, ride.id, uuid.uuid4())

        await workflow.set_ride_status(ride.id, RideStatus.CANCELLED, actor_id=driver)
        with pytest.raises(InvalidTransition):
            await shares.share(driver, ride.id, passenger)

    @pytest.mark.asyncio
    async def test_only_recipient_answers_once(
        self, shares, make_ride, driver, passenger
    ):
        ride = await make_ride(driver)
        share = await shares.share(driver, ride.id, passenger)

        with pytest.raises(Forbidden):
            await shares.respond(driver, share.id, ShareStatus.ACCEPTED)

        accepted = await shares.respond(passenger, share.id, ShareStatus.ACCEPTED)
        assert accepted.status == ShareStatus.ACCEPTED
        # Repeating the same answer is a no-op
        again = await shares.respond(passenger, share.id, ShareStatus.ACCEPTED)
        assert again.status == ShareStatus.ACCEPTED
        with pytest.raises(InvalidTransition):
            await shares.respond(passenger, share.id, ShareStatus.DECLINED)

        with pytest.raises(NotFound):
            await shares.respond(passenger, uuid.uuid4(), ShareStatus.DECLINED)

    @pytest.mark.asyncio
    async def test_listing_covers_sent_and_received(
        self, shares, make_ride, make_profile, driver, passenger
    ):
        other = await make_profile("Vikram Singh")
        ride = await make_ride(driver)
        await shares.share(driver, ride.id, passenger)
        await shares.share(passenger, ride.id, other)

        seen_by_passenger = await shares.list_for_user(passenger)
        assert len(seen_by_passenger) == 2
        assert {s.ride.id for s in seen_by_passenger} == {ride.id}
        assert [s.share.sharer_id for s in await shares.list_for_user(other)] == [
            passenger
        ]
        assert await shares.list_for_user(uuid.uuid4()) == []
