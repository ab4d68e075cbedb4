"""
servicewala/database/enums.py

Enumerations

Defines enumerations used across the platform:
- UserRole: Roles assigned at signup (client, provider)
- PriceType: How a service is priced (fixed, hourly)
- BookingStatus: Booking lifecycle states
"""

from enum import Enum

# ---------------------------------------------------
# User Role Enumeration
# ---------------------------------------------------


class UserRole(str, Enum):
    """
    Enum representing user roles. A user is either a client or a provider.
    """

    CLIENT = "client"
    PROVIDER = "provider"


# ---------------------------------------------------
# Price Type Enumeration
# ---------------------------------------------------


class PriceType(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"


# ---------------------------------------------------
# Booking Status Enumeration
# ---------------------------------------------------


class BookingStatus(str, Enum):
    """
    Enum representing the status of a booking.

    pending -> approved | rejected | cancelled
    approved -> in_progress | cancelled
    in_progress -> completed | cancelled
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_BOOKING_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
)
ACTIVE_BOOKING_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.IN_PROGRESS}
)
RESPONSE_BOOKING_STATUSES = frozenset(
    {BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
)


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Stores enum values (not member names) in the database."""
    return [member.value for member in enum_cls]
