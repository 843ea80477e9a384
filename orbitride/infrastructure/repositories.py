"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.

Shared counters and statuses are never changed by read-then-write in
Python: ``take_seat``, ``release_seat`` and the ``compare_and_set_status``
methods are single conditional ``UPDATE`` statements and report whether
they matched a row.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    BookingModel,
    MessageModel,
    NotificationModel,
    ProfileModel,
    QuickRouteModel,
    RatingModel,
    RideModel,
    RideScheduleModel,
    RideShareModel,
)
from orbitride.domain.entities import NotificationDraft
from orbitride.domain.enums import BookingStatus, RideStatus, ShareStatus


class ProfileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[ProfileModel]:
        return await self.session.get(ProfileModel, user_id)

    async def get_many(
        self, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, ProfileModel]:
        ids = set(user_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(ProfileModel).where(ProfileModel.id.in_(ids))
        )
        return {p.id: p for p in result.scalars().all()}

    async def create(self, profile: ProfileModel) -> ProfileModel:
        self.session.add(profile)
        await self.session.flush()
        return profile

    async def set_rating(self, user_id: uuid.UUID, rating: float | None) -> None:
        await self.session.execute(
            update(ProfileModel)
            .where(ProfileModel.id == user_id)
            .values(rating=rating)
            .execution_options(synchronize_session=False)
        )


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: uuid.UUID) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def refresh(self, ride: RideModel) -> RideModel:
        await self.session.refresh(ride)
        return ride

    async def get_status(self, ride_id: uuid.UUID) -> Optional[RideStatus]:
        """The stored status, bypassing whatever the session has cached."""
        result = await self.session.execute(
            select(RideModel.status).where(RideModel.id == ride_id)
        )
        status = result.scalar_one_or_none()
        return RideStatus(status) if status is not None else None

    async def take_seat(self, ride_id: uuid.UUID) -> bool:
        """Atomically consume one seat of an active ride."""
        result = await self.session.execute(
            update(RideModel)
            .where(
                RideModel.id == ride_id,
                RideModel.status == RideStatus.ACTIVE,
                RideModel.available_seats > 0,
            )
            .values(available_seats=RideModel.available_seats - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release_seat(self, ride_id: uuid.UUID) -> bool:
        """Give one seat back, never beyond ``max_passengers``."""
        result = await self.session.execute(
            update(RideModel)
            .where(
                RideModel.id == ride_id,
                RideModel.status == RideStatus.ACTIVE,
                or_(
                    RideModel.max_passengers.is_(None),
                    RideModel.available_seats < RideModel.max_passengers,
                ),
            )
            .values(available_seats=RideModel.available_seats + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def compare_and_set_status(
        self, ride_id: uuid.UUID, expected: RideStatus, target: RideStatus
    ) -> bool:
        result = await self.session.execute(
            update(RideModel)
            .where(RideModel.id == ride_id, RideModel.status == expected)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_by_driver(
        self, driver_id: uuid.UUID, status: RideStatus | None = None
    ) -> list[RideModel]:
        query = select(RideModel).where(RideModel.driver_id == driver_id)
        if status is not None:
            query = query.where(RideModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def search_active(
        self,
        *,
        exclude_driver: uuid.UUID | None = None,
        from_query: str | None = None,
        to_query: str | None = None,
        on_date: date | None = None,
        origin_cells: set[str] | None = None,
        origin_box: tuple | None = None,
    ) -> list[RideModel]:
        query = select(RideModel).where(RideModel.status == RideStatus.ACTIVE)
        if exclude_driver is not None:
            query = query.where(RideModel.driver_id != exclude_driver)
        if from_query:
            query = query.where(RideModel.from_location.ilike(f"%{from_query}%"))
        if to_query:
            query = query.where(RideModel.to_location.ilike(f"%{to_query}%"))
        if on_date is not None:
            query = query.where(RideModel.departure_date == on_date)
        if origin_cells is not None:
            query = query.where(RideModel.origin_cell.in_(origin_cells))
        if origin_box is not None:
            min_lat, max_lat, min_lng, max_lng = origin_box
            query = query.where(RideModel.from_lat.between(min_lat, max_lat))
            if min_lng is not None:
                query = query.where(RideModel.from_lng.between(min_lng, max_lng))
        query = query.order_by(
            RideModel.departure_date, RideModel.departure_time
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, ride_id: uuid.UUID, passenger_id: uuid.UUID
    ) -> BookingModel:
        booking = BookingModel(
            ride_id=ride_id,
            passenger_id=passenger_id,
            status=BookingStatus.PENDING,
        )
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: uuid.UUID) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def refresh(self, booking: BookingModel) -> BookingModel:
        await self.session.refresh(booking)
        return booking

    async def get_live(
        self, ride_id: uuid.UUID, passenger_id: uuid.UUID
    ) -> list[BookingModel]:
        """Every non-cancelled booking for the pair, whatever the row order."""
        result = await self.session.execute(
            select(BookingModel).where(
                BookingModel.ride_id == ride_id,
                BookingModel.passenger_id == passenger_id,
                BookingModel.status != BookingStatus.CANCELLED,
            )
        )
        return list(result.scalars().all())

    async def compare_and_set_status(
        self,
        booking_id: uuid.UUID,
        expected: BookingStatus,
        target: BookingStatus,
    ) -> bool:
        result = await self.session.execute(
            update(BookingModel)
            .where(BookingModel.id == booking_id, BookingModel.status == expected)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_for_ride(
        self, ride_id: uuid.UUID, status: BookingStatus | None = None
    ) -> list[BookingModel]:
        query = select(BookingModel).where(BookingModel.ride_id == ride_id)
        if status is not None:
            query = query.where(BookingModel.status == status)
        result = await self.session.execute(query.order_by(BookingModel.created_at))
        return list(result.scalars().all())

    async def complete_confirmed(self, ride_id: uuid.UUID) -> int:
        """Bulk-move every confirmed booking of a ride to completed."""
        result = await self.session.execute(
            update(BookingModel)
            .where(
                BookingModel.ride_id == ride_id,
                BookingModel.status == BookingStatus.CONFIRMED,
            )
            .values(status=BookingStatus.COMPLETED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def list_for_passenger(
        self, passenger_id: uuid.UUID, ride_status: RideStatus | None = None
    ) -> list[tuple[BookingModel, Optional[RideModel]]]:
        """Bookings joined to their rides; the ride is ``None`` if missing."""
        query = (
            select(BookingModel, RideModel)
            .outerjoin(RideModel, RideModel.id == BookingModel.ride_id)
            .where(BookingModel.passenger_id == passenger_id)
        )
        if ride_status is not None:
            query = query.where(RideModel.status == ride_status)
        result = await self.session.execute(query)
        return [(booking, ride) for booking, ride in result.all()]


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, draft: NotificationDraft) -> NotificationModel:
        notification = NotificationModel(
            user_id=draft.user_id,
            title=draft.title,
            content=draft.content,
            notification_type=draft.notification_type,
            reference_id=draft.reference_id,
            read=False,
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def get_by_id(
        self, notification_id: uuid.UUID
    ) -> Optional[NotificationModel]:
        return await self.session.get(NotificationModel, notification_id)

    async def list_for_user(self, user_id: uuid.UUID) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        result = await self.session.execute(
            update(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def get_unpublished_for_update(
        self, limit: int = 100
    ) -> list[NotificationModel]:
        """SELECT ... FOR UPDATE SKIP LOCKED so relays never double-publish."""
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.published_at.is_(None))
            .order_by(NotificationModel.created_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(result.scalars().all())

    async def mark_published(
        self, notification_ids: list[uuid.UUID], at: datetime
    ) -> None:
        if not notification_ids:
            return
        await self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.id.in_(notification_ids))
            .values(published_at=at)
            .execution_options(synchronize_session=False)
        )


class RatingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, rating: RatingModel) -> RatingModel:
        self.session.add(rating)
        await self.session.flush()
        return rating

    async def average_for(self, rated_id: uuid.UUID) -> float | None:
        result = await self.session.execute(
            select(func.avg(RatingModel.rating)).where(
                RatingModel.rated_id == rated_id
            )
        )
        average = result.scalar()
        return round(float(average), 2) if average is not None else None

    async def list_for_user(
        self, rated_id: uuid.UUID
    ) -> list[tuple[RatingModel, Optional[str]]]:
        result = await self.session.execute(
            select(RatingModel, ProfileModel.full_name)
            .outerjoin(ProfileModel, ProfileModel.id == RatingModel.rater_id)
            .where(RatingModel.rated_id == rated_id)
            .order_by(RatingModel.created_at.desc())
        )
        return [(rating, name) for rating, name in result.all()]


class MessageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, sender_id: uuid.UUID, receiver_id: uuid.UUID, content: str
    ) -> MessageModel:
        message = MessageModel(
            sender_id=sender_id, receiver_id=receiver_id, content=content, read=False
        )
        self.session.add(message)
        await self.session.flush()
        return message

    async def list_involving(self, user_id: uuid.UUID) -> list[MessageModel]:
        """Every message the user sent or received, newest first."""
        result = await self.session.execute(
            select(MessageModel)
            .where(
                or_(
                    MessageModel.sender_id == user_id,
                    MessageModel.receiver_id == user_id,
                )
            )
            .order_by(MessageModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_between(
        self, user_id: uuid.UUID, other_id: uuid.UUID
    ) -> list[MessageModel]:
        """The thread between two users, oldest first."""
        result = await self.session.execute(
            select(MessageModel)
            .where(
                or_(
                    and_(
                        MessageModel.sender_id == user_id,
                        MessageModel.receiver_id == other_id,
                    ),
                    and_(
                        MessageModel.sender_id == other_id,
                        MessageModel.receiver_id == user_id,
                    ),
                )
            )
            .order_by(MessageModel.created_at)
        )
        return list(result.scalars().all())

    async def mark_read_from(
        self, receiver_id: uuid.UUID, sender_id: uuid.UUID
    ) -> int:
        result = await self.session.execute(
            update(MessageModel)
            .where(
                MessageModel.receiver_id == receiver_id,
                MessageModel.sender_id == sender_id,
                MessageModel.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def get_unpublished_for_update(self, limit: int = 100) -> list[MessageModel]:
        result = await self.session.execute(
            select(MessageModel)
            .where(MessageModel.published_at.is_(None))
            .order_by(MessageModel.created_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(result.scalars().all())

    async def mark_published(
        self, message_ids: list[uuid.UUID], at: datetime
    ) -> None:
        if not message_ids:
            return
        await self.session.execute(
            update(MessageModel)
            .where(MessageModel.id.in_(message_ids))
            .values(published_at=at)
            .execution_options(synchronize_session=False)
        )


class QuickRouteRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, route: QuickRouteModel) -> QuickRouteModel:
        self.session.add(route)
        await self.session.flush()
        return route

    async def get_by_id(self, route_id: uuid.UUID) -> Optional[QuickRouteModel]:
        return await self.session.get(QuickRouteModel, route_id)

    async def list_active(self) -> list[QuickRouteModel]:
        result = await self.session.execute(
            select(QuickRouteModel)
            .where(QuickRouteModel.is_active.is_(True))
            .order_by(QuickRouteModel.from_location, QuickRouteModel.to_location)
        )
        return list(result.scalars().all())


class RideScheduleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, schedule: RideScheduleModel) -> RideScheduleModel:
        self.session.add(schedule)
        await self.session.flush()
        return schedule

    async def list_scheduled_rides(
        self, driver_id: uuid.UUID | None = None
    ) -> list[tuple[RideModel, Optional[RideScheduleModel]]]:
        """Active scheduled rides with their schedule, earliest first."""
        query = (
            select(RideModel, RideScheduleModel)
            .outerjoin(RideScheduleModel, RideScheduleModel.ride_id == RideModel.id)
            .where(
                RideModel.is_scheduled.is_(True),
                RideModel.status == RideStatus.ACTIVE,
            )
        )
        if driver_id is not None:
            query = query.where(RideModel.driver_id == driver_id)
        query = query.order_by(
            RideModel.scheduled_for.is_(None),
            RideModel.scheduled_for,
            RideModel.departure_date,
            RideModel.departure_time,
        )
        result = await self.session.execute(query)
        return [(ride, schedule) for ride, schedule in result.all()]


class RideShareRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, ride_id: uuid.UUID, sharer_id: uuid.UUID, shared_with_id: uuid.UUID
    ) -> RideShareModel:
        share = RideShareModel(
            ride_id=ride_id,
            sharer_id=sharer_id,
            shared_with_id=shared_with_id,
            status=ShareStatus.PENDING,
        )
        self.session.add(share)
        await self.session.flush()
        return share

    async def get_by_id(self, share_id: uuid.UUID) -> Optional[RideShareModel]:
        return await self.session.get(RideShareModel, share_id)

    async def refresh(self, share: RideShareModel) -> RideShareModel:
        await self.session.refresh(share)
        return share

    async def compare_and_set_status(
        self, share_id: uuid.UUID, expected: ShareStatus, target: ShareStatus
    ) -> bool:
        result = await self.session.execute(
            update(RideShareModel)
            .where(RideShareModel.id == share_id, RideShareModel.status == expected)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_involving(
        self, user_id: uuid.UUID
    ) -> list[tuple[RideShareModel, Optional[RideModel]]]:
        """Shares the user sent or received, joined to their rides."""
        result = await self.session.execute(
            select(RideShareModel, RideModel)
            .outerjoin(RideModel, RideModel.id == RideShareModel.ride_id)
            .where(
                or_(
                    RideShareModel.sharer_id == user_id,
                    RideShareModel.shared_with_id == user_id,
                )
            )
            .order_by(RideShareModel.created_at.desc())
        )
        return [(share, ride) for share, ride in result.all()]
