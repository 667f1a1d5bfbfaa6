# Overview: Business-rule error taxonomy shared by services and routes.

"""
Every rejection a caller can fix carries a message plus a details dict
(which supply, which window, which event). Details never include data from
another tenant.

Anything that is not a BookingError (SQLAlchemy failures, bugs) is an
unexpected failure and is rendered as a generic 500 by the app.
"""


class BookingError(Exception):
    """Base class for business-rule rejections."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(BookingError):
    """Malformed input: missing field, bad type, non-positive quantity."""
    status_code = 400


class InvalidTimeRangeError(ValidationError):
    """End instant is not after the start instant."""
    status_code = 400


class SlotConflictError(BookingError):
    """The resource is already booked for an overlapping window."""
    status_code = 409


class InsufficientStockError(BookingError):
    """Requested quantity exceeds the supply's current stock."""
    status_code = 409


class NotFoundError(BookingError):
    """Referenced record is absent or belongs to another tenant."""
    status_code = 404


class StateError(BookingError):
    """Operation is not valid for the record's current status."""
    status_code = 409
