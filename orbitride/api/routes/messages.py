"""
Direct message endpoints
========================

GET  /api/v1/messages/conversations   -- one entry per other user, newest first
GET  /api/v1/messages/unread-count    -- unread messages across conversations
GET  /api/v1/messages/{user_id}       -- thread with a user; marks theirs read
POST /api/v1/messages                 -- send a message

Realtime delivery goes through the relay worker on ``messages:<user_id>``.
"""

import uuid

from fastapi import APIRouter, Depends, Request

from orbitride.api.dependencies import get_current_user_id, get_message_service
from orbitride.api.middleware import limiter
from orbitride.api.schemas import (
    ConversationResponse,
    ErrorResponse,
    MessageCreateRequest,
    MessageResponse,
    ProfileResponse,
    UnreadCountResponse,
)
from orbitride.services.messages import MessageService

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/conversations", response_model=list[ConversationResponse])
@limiter.limit("100/minute")
async def list_conversations(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    messages: MessageService = Depends(get_message_service),
):
    return [
        ConversationResponse(
            other_user=ProfileResponse.model_validate(c.other_user).without_contact(),
            last_message=MessageResponse.model_validate(c.last_message),
            unread_count=c.unread_count,
        )
        for c in await messages.list_conversations(user_id)
    ]


@router.get("/unread-count", response_model=UnreadCountResponse)
@limiter.limit("100/minute")
async def unread_count(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    messages: MessageService = Depends(get_message_service),
):
    return UnreadCountResponse(unread=await messages.unread_count(user_id))


@router.get(
    "/{other_user_id}",
    response_model=list[MessageResponse],
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit("100/minute")
async def get_thread(
    request: Request,
    other_user_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    messages: MessageService = Depends(get_message_service),
):
    return await messages.get_thread(user_id, other_user_id)


@router.post(
    "",
    status_code=201,
    response_model=MessageResponse,
    summary="Send a direct message",
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
@limiter.limit("100/minute")
async def send_message(
    request: Request,
    body: MessageCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    messages: MessageService = Depends(get_message_service),
):
    return await messages.send(user_id, body.receiver_id, body.content)
