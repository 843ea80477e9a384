"""Profiles and user-to-user ratings."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from orbitride.domain.enums import UserRole
from orbitride.domain.exceptions import (
    AlreadyRated,
    Forbidden,
    InvalidRequest,
    NotFound,
)
from orbitride.infrastructure.models import ProfileModel, RatingModel
from orbitride.infrastructure.repositories import (
    ProfileRepository,
    RatingRepository,
    RideRepository,
)

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {"email", "full_name", "phone_number", "university", "role"}
)

MIN_RATING, MAX_RATING = 1, 5


class ProfileService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def get_profile(self, user_id: uuid.UUID) -> ProfileModel:
        async def work(session, _outbox):
            profile = await ProfileRepository(session).get_by_id(user_id)
            if profile is None:
                raise NotFound("Profile not found")
            return profile

        profile, _ = await self.uow.run(work, label="get profile")
        return profile

    async def save_profile(
        self, actor_id: uuid.UUID, **fields: Any
    ) -> ProfileModel:
        """Create or update the caller's own profile."""
        changes = {
            k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None
        }
        if "role" in changes:
            changes["role"] = UserRole(changes["role"])

        async def work(session, _outbox):
            profiles = ProfileRepository(session)
            profile = await profiles.get_by_id(actor_id)
            if profile is None:
                return await profiles.create(ProfileModel(id=actor_id, **changes))
            for key, value in changes.items():
                setattr(profile, key, value)
            await session.flush()
            return profile

        profile, _ = await self.uow.run(work, label="save profile")
        return profile

    # ── Ratings ───────────────────────────────────────────────────────

    async def rate_user(
        self,
        actor_id: uuid.UUID,
        *,
        ride_id: uuid.UUID,
        rated_id: uuid.UUID,
        rating: int,
        comment: Optional[str] = None,
    ) -> RatingModel:
        """Record a rating and refresh the ratee's average in one transaction."""
        if actor_id == rated_id:
            raise Forbidden("You cannot rate yourself")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRequest(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}"
            )

        async def work(session, _outbox):
            if await RideRepository(session).get_by_id(ride_id) is None:
                raise NotFound("Ride not found")
            profiles = ProfileRepository(session)
            if await profiles.get_by_id(actor_id) is None:
                raise NotFound("Your profile was not found")
            if await profiles.get_by_id(rated_id) is None:
                raise NotFound("Profile not found")

            ratings = RatingRepository(session)
            try:
                entry = await ratings.create(
                    RatingModel(
                        ride_id=ride_id,
                        rater_id=actor_id,
                        rated_id=rated_id,
                        rating=rating,
                        comment=comment,
                    )
                )
            except IntegrityError as exc:
                raise AlreadyRated() from exc
            await profiles.set_rating(rated_id, await ratings.average_for(rated_id))
            return entry

        entry, _ = await self.uow.run(work, label="rate user")
        logger.info("User %s rated %s on ride %s", actor_id, rated_id, ride_id)
        return entry

    async def list_ratings(
        self, user_id: uuid.UUID
    ) -> list[tuple[RatingModel, Optional[str]]]:
        async def work(session, _outbox):
            return await RatingRepository(session).list_for_user(user_id)

        ratings, _ = await self.uow.run(work, label="list ratings")
        return ratings
