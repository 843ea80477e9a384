"""
Quick route endpoints
=====================

GET  /api/v1/quick-routes                   -- active preset routes
POST /api/v1/quick-routes                   -- add a route (drivers only)
POST /api/v1/quick-routes/{route_id}/rides  -- offer a ride along a route
"""

import uuid

from fastapi import APIRouter, Depends, Request

from orbitride.api.dependencies import (
    get_current_user_id,
    get_quick_routes,
    get_workflow,
)
from orbitride.api.middleware import limiter
from orbitride.api.schemas import (
    ErrorResponse,
    QuickRideRequest,
    QuickRouteCreateRequest,
    QuickRouteResponse,
    RideResponse,
)
from orbitride.domain.entities import Location
from orbitride.services.booking import BookingWorkflow
from orbitride.services.quick_routes import QuickRouteService

router = APIRouter(prefix="/quick-routes", tags=["quick routes"])

_errors = {403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


@router.get("", response_model=list[QuickRouteResponse])
@limiter.limit("100/minute")
async def list_quick_routes(
    request: Request,
    routes: QuickRouteService = Depends(get_quick_routes),
):
    return await routes.list_active()


@router.post(
    "",
    status_code=201,
    response_model=QuickRouteResponse,
    summary="Add a quick route",
    responses=_errors,
)
@limiter.limit("100/minute")
async def create_quick_route(
    request: Request,
    body: QuickRouteCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    routes: QuickRouteService = Depends(get_quick_routes),
):
    return await routes.create(
        user_id,
        from_location=body.from_location,
        to_location=body.to_location,
        origin=Location(body.from_lat, body.from_lng),
        destination=Location(body.to_lat, body.to_lng),
        distance_km=body.distance_km,
        estimated_duration_min=body.estimated_duration_min,
    )


@router.post(
    "/{route_id}/rides",
    status_code=201,
    response_model=RideResponse,
    summary="Offer a ride along a quick route",
    responses=_errors,
)
@limiter.limit("100/minute")
async def offer_quick_ride(
    request: Request,
    route_id: uuid.UUID,
    body: QuickRideRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    routes: QuickRouteService = Depends(get_quick_routes),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    route = await routes.get(route_id)
    return await workflow.create_ride(
        user_id,
        from_location=route.from_location,
        to_location=route.to_location,
        origin=Location(route.from_lat, route.from_lng),
        destination=Location(route.to_lat, route.to_lng),
        departure_date=body.departure_date,
        departure_time=body.departure_time,
        available_seats=body.available_seats,
        max_passengers=body.max_passengers,
        price=body.price,
        notes=body.notes,
    )
