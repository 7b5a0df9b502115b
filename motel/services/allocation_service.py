"""Reservation allocation: match a stay request to a free room and book it."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional, Sequence

from motel.domain.constraints import stay_interval, validate_stay_request
from motel.domain.intervals import overlaps
from motel.domain.models import (
    BookedInterval,
    BookingOutcome,
    Identity,
    Reservation,
    RoomFilter,
    StayRequest,
)
from motel.repository.data_repository import DataRepository, PersistenceError
from motel.services.errors import (
    ReservationValidationError,
    RoomUnavailableError,
    UnauthorizedError,
    UserNotFoundError,
)
from motel.utils.config import Settings, get_settings
from motel.utils.logger import get_logger


logger = get_logger(__name__)


def is_free_for_stay(booked: Sequence[BookedInterval], candidate: BookedInterval) -> bool:
    return not overlaps(booked, candidate)


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None or not identity.user_id:
        raise UnauthorizedError("Unauthorized")
    return identity


def build_stay_filter(request: StayRequest) -> RoomFilter:
    """Optional exact-match filters used by new bookings."""
    return RoomFilter(
        room_type=request.room_type,
        floor=request.floor,
        capacity=request.capacity,
    )


def index_user_reservation(
    *,
    repository: DataRepository,
    reservation: Reservation,
    remove_reservation_id: Optional[str] = None,
) -> list[str]:
    """Maintain the per-user reservation list; failures become warnings.

    The list is a convenience index only. Listing reads the reservations
    table, so a missed update here never hides or invents a booking.
    """
    warnings: list[str] = []
    if remove_reservation_id is not None:
        try:
            repository.remove_user_reservation(reservation.user_id, remove_reservation_id)
        except PersistenceError as exc:
            logger.warning(
                "User index removal failed | user_id=%s | reservation_id=%s | error=%s",
                reservation.user_id,
                remove_reservation_id,
                exc,
            )
            warnings.append(f"user reservation list not updated for {remove_reservation_id}")
    try:
        repository.append_user_reservation(reservation.user_id, reservation.reservation_id)
    except PersistenceError as exc:
        logger.warning(
            "User index append failed | user_id=%s | reservation_id=%s | error=%s",
            reservation.user_id,
            reservation.reservation_id,
            exc,
        )
        warnings.append(f"user reservation list not updated for {reservation.reservation_id}")
    return warnings


class ReservationAllocator:
    """Books the first available room that matches a stay request."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def allocate(self, identity: Optional[Identity], request: StayRequest) -> BookingOutcome:
        caller = require_identity(identity)
        try:
            validate_stay_request(request, self._settings.max_stay_days)
            interval = stay_interval(request.start_date, request.duration_days)
        except ValueError as exc:
            raise ReservationValidationError(str(exc)) from exc

        if not self._repository.user_exists(caller.user_id):
            raise UserNotFoundError(f"User {caller.user_id} not found")

        reservation = self._repository.book_first_available_room(
            user_id=caller.user_id,
            room_filter=build_stay_filter(request),
            interval=interval,
            is_free=partial(is_free_for_stay, candidate=interval),
            now=self._clock(),
        )
        if reservation is None:
            logger.info(
                "No room available | user_id=%s | start=%s | end=%s | type=%s | floor=%s | capacity=%s",
                caller.user_id,
                interval.start.isoformat(),
                interval.end.isoformat(),
                request.room_type,
                request.floor,
                request.capacity,
            )
            raise RoomUnavailableError("No available rooms found")

        warnings = index_user_reservation(repository=self._repository, reservation=reservation)
        logger.info(
            "Reservation created | reservation_id=%s | user_id=%s | room_id=%s | start=%s | end=%s",
            reservation.reservation_id,
            reservation.user_id,
            reservation.room_id,
            reservation.start_date.isoformat(),
            reservation.end_date.isoformat(),
        )
        return BookingOutcome(reservation=reservation, warnings=warnings)
