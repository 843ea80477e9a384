"""
Notification endpoints
======================

GET   /api/v1/notifications                 -- caller's inbox, newest first
PATCH /api/v1/notifications/{id}/read       -- mark one as read
POST  /api/v1/notifications/read-all        -- mark all as read
"""

import uuid

from fastapi import APIRouter, Depends, Request

from orbitride.api.dependencies import get_current_user_id, get_inbox
from orbitride.api.middleware import limiter
from orbitride.api.schemas import (
    ErrorResponse,
    MarkAllReadResponse,
    NotificationResponse,
)
from orbitride.services.notifications import NotificationInbox

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
@limiter.limit("100/minute")
async def list_notifications(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    inbox: NotificationInbox = Depends(get_inbox),
):
    return await inbox.list_for_user(user_id)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit("100/minute")
async def mark_read(
    request: Request,
    notification_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    inbox: NotificationInbox = Depends(get_inbox),
):
    return await inbox.mark_read(user_id, notification_id)


@router.post("/read-all", response_model=MarkAllReadResponse)
@limiter.limit("100/minute")
async def mark_all_read(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    inbox: NotificationInbox = Depends(get_inbox),
):
    return MarkAllReadResponse(updated=await inbox.mark_all_read(user_id))
