"""HTTP controller layer for reservations."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from motel.controllers.dependencies import (
    get_allocator,
    get_current_identity,
    get_lifecycle_manager,
    to_http_exception,
)
from motel.domain.constraints import parse_start_date
from motel.domain.models import Identity, RebindRequest, Reservation, StayRequest
from motel.repository.data_repository import PersistenceError
from motel.services.allocation_service import ReservationAllocator
from motel.services.errors import ReservationError
from motel.services.lifecycle_service import ReservationLifecycleManager
from motel.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/reservations", tags=["reservations"])


class _StartDateModel(BaseModel):
    start_date: datetime

    @field_validator("start_date", mode="before")
    @classmethod
    def normalize_start_date(cls, value: object) -> datetime:
        return parse_start_date(value)  # type: ignore[arg-type]


class CreateReservationRequest(_StartDateModel):
    """Input DTO validated before entering service layer."""

    duration: int = Field(gt=0)
    type: str | None = Field(default=None, min_length=1)
    floor: int | None = Field(default=None, ge=0)
    capacity: int | None = Field(default=None, gt=0)


class UpdateReservationRequest(_StartDateModel):
    duration: int = Field(gt=0)
    type: str = Field(min_length=1)
    capacity: int = Field(gt=0)


class ReservationSummary(BaseModel):
    reservation_id: str
    room_id: int = Field(gt=0)
    start_date: datetime
    end_date: datetime
    check_in: bool
    check_out: bool


class ReservationDetail(ReservationSummary):
    user_id: str
    created_at: datetime
    updated_at: datetime


class ReservationCreatedResponse(BaseModel):
    message: str
    reservation_id: str
    room_id: int = Field(gt=0)
    start_date: datetime
    end_date: datetime
    warnings: list[str] = Field(default_factory=list)


class ReservationListResponse(BaseModel):
    message: str
    reservations: list[ReservationSummary]


class ReservationDetailResponse(BaseModel):
    message: str
    reservation: ReservationDetail
    warnings: list[str] = Field(default_factory=list)


class AckResponse(BaseModel):
    message: str
    warnings: list[str] = Field(default_factory=list)


def _summary(reservation: Reservation) -> ReservationSummary:
    return ReservationSummary(
        reservation_id=reservation.reservation_id,
        room_id=reservation.room_id,
        start_date=reservation.start_date,
        end_date=reservation.end_date,
        check_in=reservation.check_in,
        check_out=reservation.check_out,
    )


def _detail(reservation: Reservation) -> ReservationDetail:
    return ReservationDetail(
        **_summary(reservation).model_dump(),
        user_id=reservation.user_id,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
    )


def _internal_error(action: str) -> HTTPException:
    logger.exception("Unexpected failure while trying to %s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


@router.post(
    "",
    response_model=ReservationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(
    payload: CreateReservationRequest,
    identity: Identity = Depends(get_current_identity),
    allocator: ReservationAllocator = Depends(get_allocator),
) -> ReservationCreatedResponse:
    """Book the first free room matching the optional filters."""
    try:
        outcome = allocator.allocate(
            identity,
            StayRequest(
                start_date=payload.start_date,
                duration_days=payload.duration,
                room_type=payload.type,
                floor=payload.floor,
                capacity=payload.capacity,
            ),
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _internal_error("create reservation") from exc
    reservation = outcome.reservation
    return ReservationCreatedResponse(
        message="Reservation created successfully",
        reservation_id=reservation.reservation_id,
        room_id=reservation.room_id,
        start_date=reservation.start_date,
        end_date=reservation.end_date,
        warnings=outcome.warnings,
    )


@router.get("", response_model=ReservationListResponse)
def list_reservations(
    identity: Identity = Depends(get_current_identity),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager),
) -> ReservationListResponse:
    try:
        reservations = manager.list_reservations(identity)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _internal_error("list reservations") from exc
    return ReservationListResponse(
        message="Reservations retrieved successfully",
        reservations=[_summary(item) for item in reservations],
    )


@router.put("/check-in", response_model=AckResponse)
def check_in(
    identity: Identity = Depends(get_current_identity),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager),
) -> AckResponse:
    try:
        manager.check_in(identity)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _internal_error("check in") from exc
    return AckResponse(message="You have checked in!")


@router.put("/check-out", response_model=AckResponse)
def check_out(
    identity: Identity = Depends(get_current_identity),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager),
) -> AckResponse:
    try:
        manager.check_out(identity)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _internal_error("check out") from exc
    return AckResponse(message="You have checked out!")


@router.get("/{reservation_id}", response_model=ReservationDetailResponse)
def get_reservation(
    reservation_id: str,
    identity: Identity = Depends(get_current_identity),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager),
) -> ReservationDetailResponse:
    try:
        reservation = manager.get_reservation(identity, reservation_id)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _internal_error("get reservation") from exc
    return ReservationDetailResponse(
        message="Reservation retrieved successfully",
        reservation=_detail(reservation),
    )


@router.put("/{reservation_id}", response_model=ReservationDetailResponse)
def update_reservation(
    reservation_id: str,
    payload: UpdateReservationRequest,
    identity: Identity = Depends(get_current_identity),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager),
) -> ReservationDetailResponse:
    """Move the stay to new dates; the response carries the new reservation id."""
    try:
        outcome = manager.update(
            reservation_id,
            identity,
            RebindRequest(
                start_date=payload.start_date,
                duration_days=payload.duration,
                room_type=payload.type,
                capacity=payload.capacity,
            ),
        )
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _internal_error("update reservation") from exc
    return ReservationDetailResponse(
        message="Reservation updated successfully",
        reservation=_detail(outcome.reservation),
        warnings=outcome.warnings,
    )


@router.delete("/{reservation_id}", response_model=AckResponse)
def cancel_reservation(
    reservation_id: str,
    _: Identity = Depends(get_current_identity),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager),
) -> AckResponse:
    try:
        warnings = manager.cancel(reservation_id)
    except ReservationError as exc:
        raise to_http_exception(exc) from exc
    except PersistenceError as exc:
        raise _internal_error("cancel reservation") from exc
    return AckResponse(message="Reservation cancelled successfully", warnings=warnings)
