"""
Error taxonomy for the booking workflow.

Every error carries a stable ``code`` (used by API clients) and a
user-facing message.  Validation errors are raised before any mutation;
``RemoteStoreError`` wraps failures of the backing store itself.
"""


class OrbitRideError(Exception):
    code = "error"
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(OrbitRideError):
    code = "not_found"
    default_message = "Not found"


class Forbidden(OrbitRideError):
    code = "forbidden"
    default_message = "You are not allowed to do that"


class AlreadyBooked(OrbitRideError):
    code = "already_booked"
    default_message = "You have already booked this ride"


class SelfBookingForbidden(OrbitRideError):
    code = "self_booking_forbidden"
    default_message = "You cannot book your own ride"


class NoSeatsAvailable(OrbitRideError):
    code = "no_seats_available"
    default_message = "No seats available for this ride"


class InvalidTransition(OrbitRideError):
    """Raised when a status change violates a state machine."""

    code = "invalid_transition"
    default_message = "That status change is not allowed"


class AlreadyRated(OrbitRideError):
    code = "already_rated"
    default_message = "You have already rated this user for this ride"


class RemoteStoreError(OrbitRideError):
    code = "remote_store_error"
    default_message = "The service is temporarily unavailable, please try again"


class InvalidRequest(OrbitRideError):
    code = "invalid_request"
    default_message = "The request is not valid"


class AlreadyShared(OrbitRideError):
    code = "already_shared"
    default_message = "You have already shared this ride with that user"
