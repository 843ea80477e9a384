"""
Profile and rating endpoints
============================

GET  /api/v1/profiles/me                -- caller's profile
PUT  /api/v1/profiles/me                -- create or update caller's profile
GET  /api/v1/profiles/{user_id}         -- public profile, without contact details
GET  /api/v1/profiles/{user_id}/ratings -- ratings received, newest first
POST /api/v1/ratings                    -- rate another user for a ride
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Request

from orbitride.api.dependencies import (
    get_current_user_id,
    get_optional_user_id,
    get_profile_service,
)
from orbitride.api.middleware import limiter
from orbitride.api.schemas import (
    ErrorResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    RatingCreateRequest,
    RatingResponse,
)
from orbitride.services.profiles import ProfileService

router = APIRouter(tags=["profiles"])


@router.get("/profiles/me", response_model=ProfileResponse, summary="My profile")
@limiter.limit("100/minute")
async def get_my_profile(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service),
):
    return await profiles.get_profile(user_id)


@router.put("/profiles/me", response_model=ProfileResponse, summary="Save my profile")
@limiter.limit("100/minute")
async def save_my_profile(
    request: Request,
    body: ProfileUpdateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service),
):
    return await profiles.save_profile(user_id, **body.model_dump(exclude_unset=True))


@router.get(
    "/profiles/{profile_id}",
    response_model=ProfileResponse,
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit("100/minute")
async def get_profile(
    request: Request,
    profile_id: uuid.UUID,
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
    profiles: ProfileService = Depends(get_profile_service),
):
    response = ProfileResponse.model_validate(await profiles.get_profile(profile_id))
    return response if user_id == profile_id else response.without_contact()


@router.get("/profiles/{profile_id}/ratings", response_model=list[RatingResponse])
@limiter.limit("100/minute")
async def list_ratings(
    request: Request,
    profile_id: uuid.UUID,
    profiles: ProfileService = Depends(get_profile_service),
):
    return [
        RatingResponse(
            **RatingResponse.model_validate(rating).model_dump(exclude={"rater_name"}),
            rater_name=rater_name,
        )
        for rating, rater_name in await profiles.list_ratings(profile_id)
    ]


@router.post(
    "/ratings",
    status_code=201,
    response_model=RatingResponse,
    summary="Rate a user for a ride",
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit("100/minute")
async def rate_user(
    request: Request,
    body: RatingCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service),
):
    return await profiles.rate_user(
        user_id,
        ride_id=body.ride_id,
        rated_id=body.rated_id,
        rating=body.rating,
        comment=body.comment,
    )
