"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 sample profiles (3 drivers, 5 riders)
  - 5 sample rides around Pune university campuses
  - bookings in every state (pending, confirmed, cancelled) plus one
    completed ride, all written through the booking workflow so seat
    counts and notifications stay consistent
"""

import asyncio
import uuid
from datetime import date, time, timedelta

from sqlalchemy import func, select

from orbitride.domain.entities import Location
from orbitride.domain.enums import BookingStatus, RideStatus, ScheduleType, UserRole
from orbitride.infrastructure.database import async_session_factory, engine
from orbitride.infrastructure.models import ProfileModel
from orbitride.services.booking import BookingWorkflow
from orbitride.services.messages import MessageService
from orbitride.services.notifications import NotificationDispatcher
from orbitride.services.quick_routes import QuickRouteService
from orbitride.services.unit_of_work import UnitOfWork


PROFILES = [
    {"full_name": "Aarav Sharma", "email": "aarav@example.edu", "role": UserRole.DRIVER},
    {"full_name": "Priya Patel", "email": "priya@example.edu", "role": UserRole.BOTH},
    {"full_name": "Rohan Mehta", "email": "rohan@example.edu", "role": UserRole.DRIVER},
    {"full_name": "Sneha Gupta", "email": "sneha@example.edu", "role": UserRole.RIDER},
    {"full_name": "Vikram Singh", "email": "vikram@example.edu", "role": UserRole.RIDER},
    {"full_name": "Ananya Reddy", "email": "ananya@example.edu", "role": UserRole.RIDER},
    {"full_name": "Karan Joshi", "email": "karan@example.edu", "role": UserRole.RIDER},
    {"full_name": "Meera Nair", "email": "meera@example.edu", "role": UserRole.RIDER},
]

# (driver index, from, origin, to, destination, days ahead, hour, seats, price)
RIDES = [
    (0, "COEP Hostel", (18.5293, 73.8567), "Pune Airport", (18.5821, 73.9197), 1, 7, 3, 120.0),
    (0, "COEP Hostel", (18.5293, 73.8567), "Pune Station", (18.5289, 73.8744), 2, 18, 2, 60.0),
    (1, "FC Road", (18.5236, 73.8412), "Hinjewadi Phase 1", (18.5912, 73.7389), 1, 8, 4, 90.0),
    (2, "Viman Nagar", (18.5679, 73.9143), "Swargate", (18.5018, 73.8636), 3, 9, 1, 75.0),
    (2, "Kothrud Depot", (18.5074, 73.8077), "Lonavala", (18.7546, 73.4062), 5, 6, 3, 250.0),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(ProfileModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Profiles ──────────────────────────────────────────────────
        profiles = []
        for p in PROFILES:
            m = ProfileModel(
                id=uuid.uuid4(),
                full_name=p["full_name"],
                email=p["email"],
                role=p["role"],
                university="Savitribai Phule Pune University",
                is_verified=True,
            )
            session.add(m)
            profiles.append(m)
        await session.commit()
        print(f"  Created {len(profiles)} profiles")

    dispatcher = NotificationDispatcher(async_session_factory)
    workflow = BookingWorkflow(UnitOfWork(async_session_factory), dispatcher)

    # ── Rides ─────────────────────────────────────────────────────────
    rides = []
    today = date.today()
    for driver, src, origin, dst, destination, ahead, hour, seats, price in RIDES:
        ride = await workflow.create_ride(
            profiles[driver].id,
            from_location=src,
            to_location=dst,
            origin=Location(*origin),
            destination=Location(*destination),
            departure_date=today + timedelta(days=ahead),
            departure_time=time(hour, 0),
            available_seats=seats,
            price=price,
        )
        rides.append(ride)
    print(f"  Created {len(rides)} rides")

    # ── Bookings ──────────────────────────────────────────────────────
    # (ride index, passenger index, final status or None for pending)
    bookings = [
        (0, 3, BookingStatus.CONFIRMED),
        (0, 4, BookingStatus.CONFIRMED),
        (0, 5, None),
        (2, 6, BookingStatus.CONFIRMED),
        (2, 7, BookingStatus.CANCELLED),
        (3, 3, BookingStatus.CONFIRMED),
        (4, 5, None),
    ]
    for ride_idx, passenger_idx, final in bookings:
        ride = rides[ride_idx]
        booking = await workflow.request_booking(ride.id, profiles[passenger_idx].id)
        if final is not None:
            await workflow.set_booking_status(booking.id, final, ride.driver_id)
    print(f"  Created {len(bookings)} bookings")

    # One finished trip, so passengers see a completed booking
    await workflow.set_ride_status(rides[3].id, RideStatus.COMPLETED, rides[3].driver_id)
    print("  Completed 1 ride")

    # ── Quick routes, a weekday commute and a chat ───────────────────
    uow = UnitOfWork(async_session_factory)
    quick_routes = QuickRouteService(uow)
    for _, src, origin, dst, destination, *_ in RIDES[:3]:
        await quick_routes.create(
            profiles[0].id,
            from_location=src,
            to_location=dst,
            origin=Location(*origin),
            destination=Location(*destination),
            estimated_duration_min=30,
        )
    print("  Created 3 quick routes")

    await workflow.create_scheduled_ride(
        profiles[1].id,
        schedule_type=ScheduleType.WEEKLY,
        schedule_days=["monday", "wednesday", "friday"],
        from_location="FC Road",
        to_location="Hinjewadi Phase 1",
        origin=Location(18.5236, 73.8412),
        destination=Location(18.5912, 73.7389),
        departure_date=today + timedelta(days=1),
        departure_time=time(8, 30),
        available_seats=3,
        price=90.0,
    )
    print("  Created 1 scheduled ride")

    messages = MessageService(uow)
    await messages.send(profiles[3].id, profiles[0].id, "Which gate do we meet at?")
    await messages.send(profiles[0].id, profiles[3].id, "Main gate, 6:50.")
    print("  Created 2 messages")

    await dispatcher.drain()
    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
