"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from motel.domain.models import Identity
from motel.services.allocation_service import ReservationAllocator
from motel.services.auth_service import AuthService, InvalidSessionTokenError
from motel.services.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ReservationError,
    ReservationValidationError,
    UnauthorizedError,
)
from motel.services.lifecycle_service import ReservationLifecycleManager
from motel.services.room_service import RoomInventoryService


bearer_scheme = HTTPBearer(auto_error=False)


def _service_from_state(request: Request, attribute: str, label: str):
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not initialized",
        )
    return service


def get_auth_service(request: Request) -> AuthService:
    return _service_from_state(request, "auth_service", "Auth service")


def get_allocator(request: Request) -> ReservationAllocator:
    return _service_from_state(request, "allocator", "Reservation allocator")


def get_lifecycle_manager(request: Request) -> ReservationLifecycleManager:
    return _service_from_state(request, "lifecycle_manager", "Reservation lifecycle manager")


def get_room_service(request: Request) -> RoomInventoryService:
    return _service_from_state(request, "room_service", "Room inventory service")


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Identity:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied, no token provided!",
        )
    try:
        return auth_service.resolve(credentials.credentials)
    except InvalidSessionTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


def to_http_exception(exc: ReservationError) -> HTTPException:
    """Map a domain failure onto its transport status."""
    if isinstance(exc, ForbiddenError):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, UnauthorizedError):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidStateError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ReservationValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=str(exc))
