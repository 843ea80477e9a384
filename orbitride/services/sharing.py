"""
Ride shares: one user recommends a ride to another.

The recipient accepts or declines a share once; a share never books a
seat by itself.  The recipient is notified through the same post-commit
dispatcher the booking workflow uses.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError

from orbitride.domain.entities import (
    NotificationDraft,
    SharedRide,
    ensure_share_transition,
)
from orbitride.domain.enums import NotificationType, RideStatus, ShareStatus
from orbitride.domain.exceptions import (
    AlreadyShared,
    Forbidden,
    InvalidTransition,
    NotFound,
)
from orbitride.infrastructure.models import RideShareModel
from orbitride.infrastructure.repositories import (
    ProfileRepository,
    RideRepository,
    RideShareRepository,
)

from .notifications import NotificationDispatcher
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class RideShareService:
    def __init__(self, uow: UnitOfWork, dispatcher: NotificationDispatcher):
        self.uow = uow
        self.dispatcher = dispatcher

    async def share(
        self, actor_id: uuid.UUID, ride_id: uuid.UUID, shared_with_id: uuid.UUID
    ) -> RideShareModel:
        if actor_id == shared_with_id:
            raise Forbidden("You cannot share a ride with yourself")

        async def work(session, outbox):
            ride = await RideRepository(session).get_by_id(ride_id)
            if ride is None:
                raise NotFound("Ride not found")
            if ride.status != RideStatus.ACTIVE:
                raise InvalidTransition(
                    f"This ride is {ride.status.value} and can no longer be shared"
                )
            profiles = ProfileRepository(session)
            sharer = await profiles.get_by_id(actor_id)
            if sharer is None:
                raise NotFound("Your profile was not found")
            if await profiles.get_by_id(shared_with_id) is None:
                raise NotFound("Profile not found")

            try:
                share = await RideShareRepository(session).create(
                    ride_id, actor_id, shared_with_id
                )
            except IntegrityError as exc:
                raise AlreadyShared() from exc

            outbox.append(
                NotificationDraft(
                    user_id=shared_with_id,
                    title="Ride Shared With You",
                    content=(
                        f"{sharer.full_name or 'Someone'} shared a ride from "
                        f"{ride.from_location} to {ride.to_location} with you"
                    ),
                    notification_type=NotificationType.RIDE_SHARED,
                    reference_id=ride_id,
                )
            )
            return share

        share, outbox = await self.uow.run(work, label="share ride")
        logger.info("Ride %s shared by %s with %s", ride_id, actor_id, shared_with_id)
        self.dispatcher.enqueue(outbox)
        return share

    async def respond(
        self, actor_id: uuid.UUID, share_id: uuid.UUID, target: ShareStatus
    ) -> RideShareModel:
        """Accept or decline a share; only its recipient may answer."""
        target = ShareStatus(target)

        async def work(session, _outbox):
            shares = RideShareRepository(session)
            share = await shares.get_by_id(share_id)
            if share is None:
                raise NotFound("Share not found")
            if share.shared_with_id != actor_id:
                raise Forbidden("Only the recipient can answer a share")
            if share.status == target:
                return share
            ensure_share_transition(share.status, target)
            if not await shares.compare_and_set_status(
                share_id, ShareStatus(share.status), target
            ):
                raise InvalidTransition("The share was answered by another request")
            return await shares.refresh(share)

        share, _ = await self.uow.run(work, label="respond to share")
        return share

    async def list_for_user(self, actor_id: uuid.UUID) -> list[SharedRide]:
        """Shares the user sent or received.  Shares whose ride is gone are skipped."""

        async def work(session, _outbox):
            rows = await RideShareRepository(session).list_involving(actor_id)
            return [SharedRide(share=s, ride=r) for s, r in rows if r is not None]

        shared, _ = await self.uow.run(work, label="list shared rides")
        return shared
