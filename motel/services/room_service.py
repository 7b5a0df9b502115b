"""Administrative access to the room inventory."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from motel.domain.intervals import find_pairwise_overlaps
from motel.domain.models import (
    ROOM_STATUS_AVAILABLE,
    ROOM_STATUS_MAINTENANCE,
    ROOM_STATUSES,
    Identity,
    Room,
)
from motel.repository.data_repository import DataRepository
from motel.services.allocation_service import require_identity
from motel.services.errors import (
    ForbiddenError,
    ReservationValidationError,
    RoomNotFoundError,
)
from motel.utils.config import Settings, get_settings
from motel.utils.logger import get_logger


logger = get_logger(__name__)


def require_admin_identity(identity: Optional[Identity]) -> Identity:
    caller = require_identity(identity)
    if not caller.is_admin:
        raise ForbiddenError("Access denied.")
    return caller


class RoomInventoryService:
    """Creates rooms, lists them and takes them out of service."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def create_room(
        self,
        identity: Optional[Identity],
        *,
        number: str,
        floor: int,
        room_type: str,
        capacity: int,
        price: float,
        status: str = ROOM_STATUS_AVAILABLE,
    ) -> Room:
        require_admin_identity(identity)
        if status not in ROOM_STATUSES:
            raise ReservationValidationError(
                f"status must be one of {', '.join(ROOM_STATUSES)}"
            )
        if room_type not in self._settings.room_types:
            logger.info("Creating room with non-standard type | type=%s", room_type)
        room = self._repository.create_room(
            number=number,
            floor=floor,
            room_type=room_type,
            capacity=capacity,
            price=price,
            status=status,
            now=self._clock(),
        )
        logger.info("Room created | room_id=%s | number=%s", room.room_id, room.number)
        return room

    def list_rooms(self, identity: Optional[Identity]) -> list[Room]:
        require_admin_identity(identity)
        rooms = self._repository.list_rooms()
        for room in rooms:
            clashes = find_pairwise_overlaps(room.booked_intervals)
            if clashes:
                logger.error(
                    "Room has overlapping bookings | room_id=%s | clashes=%s",
                    room.room_id,
                    len(clashes),
                )
        return rooms

    def mark_under_maintenance(self, identity: Optional[Identity], room_id: int) -> Room:
        require_admin_identity(identity)
        if not self._repository.set_room_status(room_id, ROOM_STATUS_MAINTENANCE, self._clock()):
            raise RoomNotFoundError("Room not found")
        logger.info("Room taken out of service | room_id=%s", room_id)
        return self._repository.get_room(room_id)
