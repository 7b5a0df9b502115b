"""
ASGI entry point for the reservation API.

``create_app`` builds one repository, hands it to every service through
``app.state`` and creates the schema on startup. Tests call it with their own
settings; uvicorn imports the module-level ``app``:

    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from motel.controllers.auth_controller import router as auth_router
from motel.controllers.reservation_controller import router as reservation_router
from motel.controllers.room_controller import router as room_router
from motel.repository.data_repository import DataRepository
from motel.services.allocation_service import ReservationAllocator
from motel.services.auth_service import AuthService
from motel.services.lifecycle_service import ReservationLifecycleManager
from motel.services.room_service import RoomInventoryService
from motel.utils.config import Settings, get_settings
from motel.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API around a single repository.

    Services are reached by the controllers through app.state.
    """
    settings = settings or get_settings()

    # --- Repository (one SQLite connection per call) ---
    repository = DataRepository(settings)

    # --- Services ---
    auth_service = AuthService(repository=repository, settings=settings)
    allocator = ReservationAllocator(repository=repository, settings=settings)
    lifecycle_manager = ReservationLifecycleManager(repository=repository, settings=settings)
    room_service = RoomInventoryService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(auth_router)
    app.include_router(reservation_router)
    app.include_router(room_router)

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.state.settings = settings
    app.state.repository = repository
    app.state.auth_service = auth_service
    app.state.allocator = allocator
    app.state.lifecycle_manager = lifecycle_manager
    app.state.room_service = room_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Create the schema, then seed demo rooms into an empty inventory.

    Both steps are no-ops on an already initialized database.
    """
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_rooms:
        logger.info("Startup: seeding demo rooms (skipped if Rooms table not empty)")
        repository.seed_rooms_if_empty()

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
