"""
core/exceptions.py

Description:
Defines a standard error response format for the API and the domain errors
raised by the data access and booking layers.
"""

from typing import Any

from fastapi import HTTPException, status


class APIError(HTTPException):
    """Custom exception with standardized error response."""

    def __init__(self, status_code: int, message: str, headers: dict[str, Any] | None = None):
        super().__init__(status_code=status_code, detail={"error": message}, headers=headers)
        self.message = message


class ReferenceResolutionError(APIError):
    """A provider, category or service reference could not be resolved to a stored row."""

    def __init__(self, reference: str, value: Any, reason: str = "could not be resolved"):
        self.reference = reference
        self.value = value
        super().__init__(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            f"{reference} reference '{value}' {reason}",
        )


class InvalidTransitionError(APIError):
    """A booking status change out of a terminal state was requested."""

    def __init__(self, booking_id: Any, current: str, requested: str):
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Booking {booking_id} is {current} and cannot move to {requested}",
        )


class BookingPermissionError(APIError):
    """The store's access policy rejected a booking write."""

    def __init__(self, message: str = "Booking write rejected by access policy"):
        super().__init__(status.HTTP_403_FORBIDDEN, message)


class IdentitySyncError(APIError):
    """The local user record for an identity could not be written."""

    def __init__(self, message: str = "Could not save your account, please try again"):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, message)


class RoleConflictError(APIError):
    """Registration asked for a role other than the one already registered."""

    def __init__(self, registered: str, requested: str):
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Account is already registered as {registered} and cannot register as {requested}",
        )


class RowShapeError(ValueError):
    """A storage row did not carry the columns its entity map declares."""
