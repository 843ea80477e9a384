"""Maps workflow errors to HTTP responses."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from orbitride.domain.exceptions import (
    AlreadyBooked,
    AlreadyRated,
    AlreadyShared,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NoSeatsAvailable,
    NotFound,
    OrbitRideError,
    RemoteStoreError,
    SelfBookingForbidden,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[OrbitRideError], int] = {
    NotFound: 404,
    Forbidden: 403,
    SelfBookingForbidden: 403,
    AlreadyBooked: 409,
    NoSeatsAvailable: 409,
    InvalidTransition: 409,
    AlreadyRated: 409,
    AlreadyShared: 409,
    InvalidRequest: 422,
    RemoteStoreError: 503,
}


async def orbitride_error_handler(
    request: Request, exc: OrbitRideError
) -> JSONResponse:
    status_code = STATUS_CODES.get(type(exc), 400)
    if status_code >= 500:
        logger.warning("%s %s -> %s", request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )
