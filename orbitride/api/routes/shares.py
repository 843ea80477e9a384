"""
Ride share endpoints
====================

POST  /api/v1/rides/{ride_id}/shares  -- recommend a ride to another user
GET   /api/v1/shares                  -- shares the caller sent or received
PATCH /api/v1/shares/{share_id}       -- accept or decline (recipient only)
"""

import uuid

from fastapi import APIRouter, Depends, Request

from orbitride.api.dependencies import get_current_user_id, get_share_service
from orbitride.api.middleware import limiter
from orbitride.api.schemas import (
    ErrorResponse,
    RideResponse,
    RideShareCreateRequest,
    RideShareResponse,
    RideShareUpdate,
    SharedRideResponse,
)
from orbitride.domain.enums import ShareStatus
from orbitride.services.sharing import RideShareService

router = APIRouter(tags=["shares"])

_errors = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.post(
    "/rides/{ride_id}/shares",
    status_code=201,
    response_model=RideShareResponse,
    summary="Share a ride with another user",
    responses=_errors,
)
@limiter.limit("100/minute")
async def share_ride(
    request: Request,
    ride_id: uuid.UUID,
    body: RideShareCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    shares: RideShareService = Depends(get_share_service),
):
    return await shares.share(user_id, ride_id, body.shared_with_id)


@router.get("/shares", response_model=list[SharedRideResponse])
@limiter.limit("100/minute")
async def list_shares(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    shares: RideShareService = Depends(get_share_service),
):
    return [
        SharedRideResponse(
            **RideShareResponse.model_validate(s.share).model_dump(),
            ride=RideResponse.model_validate(s.ride),
        )
        for s in await shares.list_for_user(user_id)
    ]


@router.patch(
    "/shares/{share_id}",
    response_model=RideShareResponse,
    summary="Accept or decline a shared ride",
    responses=_errors,
)
@limiter.limit("100/minute")
async def respond_to_share(
    request: Request,
    share_id: uuid.UUID,
    body: RideShareUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    shares: RideShareService = Depends(get_share_service),
):
    return await shares.respond(user_id, share_id, ShareStatus(body.status))
