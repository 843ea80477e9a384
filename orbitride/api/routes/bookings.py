"""
Booking endpoints
=================

PATCH /api/v1/bookings/{booking_id} -- confirm or decline (ride's driver only)
"""

import uuid

from fastapi import APIRouter, Depends, Request

from orbitride.api.dependencies import get_current_user_id, get_workflow
from orbitride.api.middleware import limiter
from orbitride.api.schemas import BookingResponse, BookingStatusUpdate, ErrorResponse
from orbitride.domain.enums import BookingStatus
from orbitride.services.booking import BookingWorkflow

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.patch(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Confirm or decline a booking",
    description=(
        "Confirming takes one of the ride's seats. Re-sending the booking's "
        "current status succeeds without changing anything."
    ),
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit("100/minute")
async def update_booking_status(
    request: Request,
    booking_id: uuid.UUID,
    body: BookingStatusUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return await workflow.set_booking_status(
        booking_id, BookingStatus(body.status), user_id
    )
