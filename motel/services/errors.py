"""Reservation engine failure kinds shared by the service layer."""

from __future__ import annotations

from motel.repository.data_repository import PersistenceError


class ReservationError(Exception):
    """Base exception for reservation workflow failures."""


class UnauthorizedError(ReservationError):
    """Raised when the caller identity is missing or does not own the record."""


class ForbiddenError(UnauthorizedError):
    """Raised when an authenticated caller lacks administrator rights."""


class NotFoundError(ReservationError):
    """Base for missing rooms, reservations and users."""


class RoomUnavailableError(NotFoundError):
    """Raised when no room satisfies the requested attributes and dates."""


class ReservationNotFoundError(NotFoundError):
    """Raised when a reservation id or a check-in/out candidate is missing."""


class UserNotFoundError(NotFoundError):
    """Raised when the caller has no user record."""


class RoomNotFoundError(NotFoundError):
    """Raised when a room id does not exist in the inventory."""


class InvalidStateError(ReservationError):
    """Raised when an action is attempted outside its valid window or state."""


class ReservationValidationError(ReservationError):
    """Raised when request inputs are invalid."""


__all__ = [
    "ForbiddenError",
    "InvalidStateError",
    "NotFoundError",
    "PersistenceError",
    "ReservationError",
    "ReservationNotFoundError",
    "ReservationValidationError",
    "RoomNotFoundError",
    "RoomUnavailableError",
    "UnauthorizedError",
    "UserNotFoundError",
]
