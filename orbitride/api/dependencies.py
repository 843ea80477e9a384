"""
FastAPI dependency injection helpers.

The acting user is always taken from the bearer token issued by the
identity provider (claim ``sub``), never from a request body.
"""

from __future__ import annotations

import uuid
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from orbitride.config import settings
from orbitride.services.booking import BookingWorkflow
from orbitride.services.messages import MessageService
from orbitride.services.notifications import NotificationInbox
from orbitride.services.profiles import ProfileService
from orbitride.services.quick_routes import QuickRouteService
from orbitride.services.sharing import RideShareService

bearer = HTTPBearer(auto_error=False)


def _decode_subject(token: str) -> uuid.UUID:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
        return uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> uuid.UUID:
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="You must be logged in",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _decode_subject(credentials.credentials)


async def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Optional[uuid.UUID]:
    if credentials is None:
        return None
    return _decode_subject(credentials.credentials)


def get_workflow(request: Request) -> BookingWorkflow:
    return request.app.state.workflow


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profiles


def get_inbox(request: Request) -> NotificationInbox:
    return request.app.state.inbox


def get_message_service(request: Request) -> MessageService:
    return request.app.state.messages


def get_quick_routes(request: Request) -> QuickRouteService:
    return request.app.state.quick_routes


def get_share_service(request: Request) -> RideShareService:
    return request.app.state.shares
