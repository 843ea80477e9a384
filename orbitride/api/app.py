"""
FastAPI application factory.

* Builds the service layer (booking workflow, profiles, inbox, messages,
  quick routes, ride shares) on ``app.state`` around one session factory.
* Starts / stops the notification relay via lifespan events and drains
  in-flight notification deliveries on shutdown.
* Maps workflow errors to HTTP statuses and applies rate limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from orbitride.api.errors import orbitride_error_handler
from orbitride.api.middleware import limiter
from orbitride.api.routes import (
    admin,
    bookings,
    messages,
    notifications,
    profiles,
    quick_routes,
    rides,
    shares,
)
from orbitride.config import settings
from orbitride.domain.exceptions import OrbitRideError
from orbitride.infrastructure.database import async_session_factory
from orbitride.services.booking import BookingWorkflow
from orbitride.services.messages import MessageService
from orbitride.services.notifications import NotificationDispatcher, NotificationInbox
from orbitride.services.profiles import ProfileService
from orbitride.services.quick_routes import QuickRouteService
from orbitride.services.sharing import RideShareService
from orbitride.services.unit_of_work import UnitOfWork
from orbitride.workers import notification_relay as _relay

logging.basicConfig(level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the notification relay on startup; stop it on shutdown."""
    await _relay.start_relay_loop()
    yield
    await app.state.dispatcher.drain()
    await _relay.stop_relay_loop()


def create_app(session_factory=None) -> FastAPI:
    app = FastAPI(
        title="OrbitRide API",
        description=(
            "Ride sharing for college students: drivers offer rides, "
            "passengers request seats, drivers confirm them.  Seat counts "
            "and status changes are applied atomically."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Services
    session_factory = session_factory or async_session_factory
    uow = UnitOfWork(session_factory)
    dispatcher = NotificationDispatcher(
        session_factory,
        retry_attempts=settings.store_retry_attempts,
        retry_backoff_seconds=settings.store_retry_backoff_seconds,
    )
    app.state.dispatcher = dispatcher
    app.state.workflow = BookingWorkflow(uow, dispatcher)
    app.state.profiles = ProfileService(uow)
    app.state.inbox = NotificationInbox(uow)
    app.state.messages = MessageService(uow)
    app.state.quick_routes = QuickRouteService(uow)
    app.state.shares = RideShareService(uow, dispatcher)

    # Errors and rate limiter
    app.add_exception_handler(OrbitRideError, orbitride_error_handler)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(profiles.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.include_router(messages.router, prefix="/api/v1")
    app.include_router(quick_routes.router, prefix="/api/v1")
    app.include_router(shares.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
