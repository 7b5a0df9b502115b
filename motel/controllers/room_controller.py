"""Controller layer for admin room inventory endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from motel.controllers.dependencies import (
    get_current_identity,
    get_room_service,
    to_http_exception,
)
from motel.domain.models import ROOM_STATUS_AVAILABLE, ROOM_STATUSES, Identity, Room
from motel.repository.data_repository import PersistenceError
from motel.services.errors import ReservationError
from motel.services.room_service import RoomInventoryService
from motel.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


class CreateRoomRequest(BaseModel):
    number: str = Field(min_length=1)
    floor: int = Field(ge=0)
    type: str = Field(min_length=1)
    capacity: int = Field(gt=0)
    price: float = Field(ge=0.0)
    status: str = ROOM_STATUS_AVAILABLE

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if value not in ROOM_STATUSES:
            raise ValueError(f"status must be one of {', '.join(ROOM_STATUSES)}")
        return value


class BookedIntervalResponse(BaseModel):
    start_date: datetime
    end_date: datetime


class RoomResponse(BaseModel):
    room_id: int = Field(gt=0)
    number: str
    floor: int
    type: str
    capacity: int = Field(gt=0)
    price: float = Field(ge=0.0)
    status: str
    booked_dates: list[BookedIntervalResponse]


class RoomListResponse(BaseModel):
    rooms: list[RoomResponse]


def _room_response(room: Room) -> RoomResponse:
    return RoomResponse(
        room_id=room.room_id,
        number=room.number,
        floor=room.floor,
        type=room.room_type,
        capacity=room.capacity,
        price=room.price,
        status=room.status,
        booked_dates=[
            BookedIntervalResponse(start_date=item.start, end_date=item.end)
            for item in room.booked_intervals
        ],
    )


def _persistence_failure(exc: PersistenceError) -> HTTPException:
    logger.error("Room inventory persistence failure | error=%s", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: CreateRoomRequest,
    identity: Identity = Depends(get_current_identity),
    service: RoomInventoryService = Depends(get_room_service),
) -> RoomResponse:
    try:
        room = service.create_room(
            identity,
            number=payload.number,
            floor=payload.floor,
            room_type=payload.type,
            capacity=payload.capacity,
            price=payload.price,
            status=payload.status,
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _persistence_failure(exc) from exc
    return _room_response(room)


@router.get("", response_model=RoomListResponse)
def list_rooms(
    identity: Identity = Depends(get_current_identity),
    service: RoomInventoryService = Depends(get_room_service),
) -> RoomListResponse:
    try:
        rooms = service.list_rooms(identity)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _persistence_failure(exc) from exc
    return RoomListResponse(rooms=[_room_response(room) for room in rooms])


@router.put("/{room_id}/maintenance", response_model=RoomResponse)
def mark_under_maintenance(
    room_id: int,
    identity: Identity = Depends(get_current_identity),
    service: RoomInventoryService = Depends(get_room_service),
) -> RoomResponse:
    """Take a room out of the allocatable inventory."""
    try:
        room = service.mark_under_maintenance(identity, room_id)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _persistence_failure(exc) from exc
    return _room_response(room)
