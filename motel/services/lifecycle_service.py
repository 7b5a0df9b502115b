"""Reservation lifecycle: rebind, cancel, check-in, check-out and reads."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional, Sequence

from motel.domain.constraints import stay_interval, validate_rebind_request
from motel.domain.intervals import rebind_conflicts
from motel.domain.models import (
    ROOM_STATUS_AVAILABLE,
    ROOM_STATUS_OCCUPIED,
    BookedInterval,
    BookingOutcome,
    Identity,
    RebindRequest,
    Reservation,
    RoomFilter,
)
from motel.repository.data_repository import DataRepository, PersistenceError
from motel.services.allocation_service import index_user_reservation, require_identity
from motel.services.errors import (
    InvalidStateError,
    ReservationNotFoundError,
    ReservationValidationError,
    RoomUnavailableError,
    UnauthorizedError,
)
from motel.utils.config import Settings, get_settings
from motel.utils.logger import get_logger


logger = get_logger(__name__)


def is_free_for_rebind(booked: Sequence[BookedInterval], candidate: BookedInterval) -> bool:
    return not rebind_conflicts(booked, candidate)


def build_rebind_filter(request: RebindRequest) -> RoomFilter:
    """Type must match; capacity is a lower bound when moving a stay."""
    return RoomFilter(
        room_type=request.room_type,
        capacity=request.capacity,
        minimum_capacity=True,
    )


def can_check_in(reservation: Reservation, now: datetime) -> bool:
    return reservation.start_date <= now < reservation.end_date


def can_check_out(reservation: Reservation, now: datetime) -> bool:
    return reservation.start_date <= now <= reservation.end_date


class ReservationLifecycleManager:
    """Drives existing reservations through their state transitions."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _owned_reservation(self, caller: Identity, reservation_id: str) -> Reservation:
        reservation = self._repository.find_reservation(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError("Reservation not found")
        if reservation.user_id != caller.user_id:
            raise UnauthorizedError("Unauthorized")
        return reservation

    def list_reservations(self, identity: Optional[Identity]) -> list[Reservation]:
        caller = require_identity(identity)
        return self._repository.list_reservations_for_user(caller.user_id)

    def get_reservation(self, identity: Optional[Identity], reservation_id: str) -> Reservation:
        caller = require_identity(identity)
        return self._owned_reservation(caller, reservation_id)

    def update(
        self,
        reservation_id: str,
        identity: Optional[Identity],
        request: RebindRequest,
    ) -> BookingOutcome:
        """Move a reservation onto a room free for the new dates.

        The replacement gets a new id. When no room qualifies the original
        reservation is left untouched.
        """
        caller = require_identity(identity)
        try:
            validate_rebind_request(request, self._settings.max_stay_days)
            interval = stay_interval(request.start_date, request.duration_days)
        except ValueError as exc:
            raise ReservationValidationError(str(exc)) from exc

        current = self._owned_reservation(caller, reservation_id)
        if current.check_out:
            raise InvalidStateError("A checked-out reservation cannot be updated")
        replacement = self._repository.rebind_reservation(
            reservation=current,
            room_filter=build_rebind_filter(request),
            interval=interval,
            is_free=partial(is_free_for_rebind, candidate=interval),
            now=self._clock(),
        )
        if replacement is None:
            if self._repository.find_reservation(reservation_id) is None:
                raise ReservationNotFoundError("Reservation not found")
            logger.info(
                "Rebind found no room | reservation_id=%s | start=%s | end=%s | type=%s | capacity>=%s",
                reservation_id,
                interval.start.isoformat(),
                interval.end.isoformat(),
                request.room_type,
                request.capacity,
            )
            raise RoomUnavailableError("No available rooms matching the criteria")

        warnings = index_user_reservation(
            repository=self._repository,
            reservation=replacement,
            remove_reservation_id=current.reservation_id,
        )
        logger.info(
            "Reservation rebound | old_id=%s | new_id=%s | old_room=%s | new_room=%s",
            current.reservation_id,
            replacement.reservation_id,
            current.room_id,
            replacement.room_id,
        )
        return BookingOutcome(reservation=replacement, warnings=warnings)

    def cancel(self, reservation_id: str) -> list[str]:
        """Delete a reservation and release its room; returns warnings."""
        existing = self._repository.find_reservation(reservation_id)
        if existing is None:
            raise ReservationNotFoundError("Reservation not found")
        if existing.check_out:
            raise InvalidStateError("A checked-out reservation cannot be cancelled")

        cancelled = self._repository.cancel_reservation(reservation_id, self._clock())
        if cancelled is None:
            raise ReservationNotFoundError("Reservation not found")

        warnings: list[str] = []
        try:
            self._repository.remove_user_reservation(cancelled.user_id, cancelled.reservation_id)
        except PersistenceError as exc:
            logger.warning(
                "User index removal failed | user_id=%s | reservation_id=%s | error=%s",
                cancelled.user_id,
                cancelled.reservation_id,
                exc,
            )
            warnings.append(f"user reservation list not updated for {cancelled.reservation_id}")
        logger.info(
            "Reservation cancelled | reservation_id=%s | room_id=%s",
            cancelled.reservation_id,
            cancelled.room_id,
        )
        return warnings

    def check_in(self, identity: Optional[Identity]) -> Reservation:
        caller = require_identity(identity)
        now = self._clock()
        reservation = self._repository.find_check_in_candidate(caller.user_id, now)
        if reservation is None:
            raise ReservationNotFoundError("Reservation not found")
        if not can_check_in(reservation, now):
            raise InvalidStateError("Check-in not allowed at this time")

        updated = self._repository.record_stay_event(
            reservation_id=reservation.reservation_id,
            column="check_in",
            room_status=ROOM_STATUS_OCCUPIED,
            now=now,
        )
        if updated is None:
            raise ReservationNotFoundError("Reservation not found")
        logger.info(
            "Checked in | reservation_id=%s | room_id=%s",
            updated.reservation_id,
            updated.room_id,
        )
        return updated

    def check_out(self, identity: Optional[Identity]) -> Reservation:
        caller = require_identity(identity)
        now = self._clock()
        reservation = self._repository.find_check_out_candidate(caller.user_id, now)
        if reservation is None:
            raise ReservationNotFoundError("No reservation found for check-out")
        if not can_check_out(reservation, now):
            raise InvalidStateError("Check-out not allowed at this time")

        updated = self._repository.record_stay_event(
            reservation_id=reservation.reservation_id,
            column="check_out",
            room_status=ROOM_STATUS_AVAILABLE,
            now=now,
        )
        if updated is None:
            raise ReservationNotFoundError("No reservation found for check-out")
        logger.info(
            "Checked out | reservation_id=%s | room_id=%s",
            updated.reservation_id,
            updated.room_id,
        )
        return updated
