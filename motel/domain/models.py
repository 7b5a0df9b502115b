"""Domain models for room inventory and reservations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


ROOM_STATUS_AVAILABLE = "available"
ROOM_STATUS_OCCUPIED = "occupied"
ROOM_STATUS_MAINTENANCE = "under-maintenance"
ROOM_STATUSES = (ROOM_STATUS_AVAILABLE, ROOM_STATUS_OCCUPIED, ROOM_STATUS_MAINTENANCE)


@dataclass(frozen=True)
class BookedInterval:
    """Half-open stay window ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("interval end must be after start")


@dataclass(frozen=True)
class Room:
    room_id: int
    number: str
    floor: int
    room_type: str
    capacity: int
    price: float
    status: str
    booked_intervals: tuple[BookedInterval, ...] = ()


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    user_id: str
    room_id: int
    start_date: datetime
    end_date: datetime
    check_in: bool
    check_out: bool
    created_at: datetime
    updated_at: datetime

    @property
    def interval(self) -> BookedInterval:
        return BookedInterval(start=self.start_date, end=self.end_date)


@dataclass(frozen=True)
class Identity:
    """Verified caller identity handed over by the identity provider."""

    user_id: str
    is_admin: bool = False


@dataclass(frozen=True)
class StayRequest:
    start_date: datetime
    duration_days: int
    room_type: str | None = None
    floor: int | None = None
    capacity: int | None = None


@dataclass(frozen=True)
class RebindRequest:
    start_date: datetime
    duration_days: int
    room_type: str
    capacity: int


@dataclass(frozen=True)
class RoomFilter:
    """Attribute constraints applied while searching for a free room.

    ``capacity`` is an exact match unless ``minimum_capacity`` is set.
    """

    room_type: str | None = None
    floor: int | None = None
    capacity: int | None = None
    minimum_capacity: bool = False


@dataclass(frozen=True)
class BookingOutcome:
    """Result of a booking write plus any secondary-write warnings."""

    reservation: Reservation
    warnings: list[str] = field(default_factory=list)
