"""Preset routes drivers can offer a ride on with one tap."""

from __future__ import annotations

import logging
import uuid

from orbitride.domain.entities import Location
from orbitride.domain.exceptions import Forbidden, InvalidRequest, NotFound
from orbitride.domain.geo import haversine_km
from orbitride.infrastructure.models import QuickRouteModel
from orbitride.infrastructure.repositories import (
    ProfileRepository,
    QuickRouteRepository,
)

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class QuickRouteService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def list_active(self) -> list[QuickRouteModel]:
        async def work(session, _outbox):
            return await QuickRouteRepository(session).list_active()

        routes, _ = await self.uow.run(work, label="list quick routes")
        return routes

    async def create(
        self,
        actor_id: uuid.UUID,
        *,
        from_location: str,
        to_location: str,
        origin: Location,
        destination: Location,
        estimated_duration_min: int,
        distance_km: float | None = None,
    ) -> QuickRouteModel:
        """
        Add a route.  Only users who can drive may add one.

        Without *distance_km* the great-circle distance between the two
        points is stored.
        """
        if estimated_duration_min < 0 or (distance_km is not None and distance_km < 0):
            raise InvalidRequest("Distance and duration must not be negative")
        if distance_km is None:
            distance_km = round(
                haversine_km(
                    origin.latitude,
                    origin.longitude,
                    destination.latitude,
                    destination.longitude,
                ),
                2,
            )

        async def work(session, _outbox):
            profile = await ProfileRepository(session).get_by_id(actor_id)
            if profile is None:
                raise NotFound("Profile not found")
            if not profile.role.can_drive:
                raise Forbidden("Only drivers can add quick routes")
            return await QuickRouteRepository(session).create(
                QuickRouteModel(
                    from_location=from_location,
                    to_location=to_location,
                    from_lat=origin.latitude,
                    from_lng=origin.longitude,
                    to_lat=destination.latitude,
                    to_lng=destination.longitude,
                    distance_km=distance_km,
                    estimated_duration_min=estimated_duration_min,
                    is_active=True,
                )
            )

        route, _ = await self.uow.run(work, label="create quick route")
        logger.info("Quick route %s added by %s", route.id, actor_id)
        return route

    async def get(self, route_id: uuid.UUID) -> QuickRouteModel:
        async def work(session, _outbox):
            route = await QuickRouteRepository(session).get_by_id(route_id)
            if route is None or not route.is_active:
                raise NotFound("Quick route not found")
            return route

        route, _ = await self.uow.run(work, label="get quick route")
        return route
