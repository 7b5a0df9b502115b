#!/usr/bin/env python3
"""Readiness checks for a local reservation service install.

Runs against a throwaway database so it never touches ``data/motel.db``.
"""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from motel.domain.intervals import find_pairwise_overlaps
from motel.domain.models import Identity, StayRequest
from motel.repository.data_repository import DEMO_ROOMS, DataRepository
from motel.services.allocation_service import ReservationAllocator
from motel.services.lifecycle_service import ReservationLifecycleManager
from motel.utils.config import Settings, get_settings

RULE = "-" * 52
REQUIRED_MODULES = ("fastapi", "uvicorn", "pydantic", "httpx", "pytest")


def check_interpreter(_: DataRepository, __: Settings) -> str:
    if sys.version_info < (3, 10):
        raise RuntimeError(f"Python 3.10+ required, found {sys.version.split()[0]}")
    return sys.version.split()[0]


def check_modules(_: DataRepository, __: Settings) -> str:
    missing = []
    for module_name in REQUIRED_MODULES:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            missing.append(f"{module_name} ({exc})")
    if missing:
        raise RuntimeError("cannot import " + "; ".join(missing))
    return ", ".join(REQUIRED_MODULES)


def check_schema(repository: DataRepository, _: Settings) -> str:
    repository.initialize_database()
    return str(repository.database_path.name)


def check_inventory(repository: DataRepository, _: Settings) -> str:
    seeded = repository.seed_rooms_if_empty()
    if seeded != len(DEMO_ROOMS):
        raise RuntimeError(f"expected {len(DEMO_ROOMS)} seeded rooms, got {seeded}")
    return f"{seeded} rooms"


def check_booking(repository: DataRepository, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    guest = Identity(user_id="env-check")
    repository.ensure_user(guest.user_id, False, now)
    allocator = ReservationAllocator(repository=repository, settings=settings)
    manager = ReservationLifecycleManager(repository=repository, settings=settings)
    outcome = allocator.allocate(
        guest,
        StayRequest(start_date=now + timedelta(days=1), duration_days=2, room_type="single"),
    )
    reservation_id = outcome.reservation.reservation_id
    if reservation_id not in repository.list_user_reservation_index(guest.user_id):
        raise RuntimeError("booking missing from the user reservation list")
    manager.cancel(reservation_id)
    if reservation_id in repository.list_user_reservation_index(guest.user_id):
        raise RuntimeError("cancelled booking still in the user reservation list")
    return f"booked and released room {outcome.reservation.room_id}"


def check_no_double_booking(repository: DataRepository, _: Settings) -> str:
    clashing = [
        room.room_id
        for room in repository.list_rooms()
        if find_pairwise_overlaps(room.booked_intervals)
    ]
    if clashing:
        raise RuntimeError(f"overlapping bookings in rooms {clashing}")
    return "no overlapping bookings"


CHECKS: tuple[tuple[str, Callable[[DataRepository, Settings], str]], ...] = (
    ("interpreter", check_interpreter),
    ("modules", check_modules),
    ("schema", check_schema),
    ("inventory", check_inventory),
    ("booking round trip", check_booking),
    ("non-overlap", check_no_double_booking),
)


def main() -> int:
    workdir = Path(tempfile.mkdtemp(prefix="motel-env-"))
    settings = replace(get_settings(), database_path=workdir / "readiness.db")
    repository = DataRepository(settings)
    failures = 0

    print(RULE)
    print(" motel reservation service readiness")
    print(RULE)
    try:
        for name, check in CHECKS:
            try:
                detail = check(repository, settings)
            except Exception as exc:
                failures += 1
                print(f" FAIL  {name:<20} {exc}")
                continue
            print(f" ok    {name:<20} {detail}")
    finally:
        shutil.rmtree(workdir, ignore_errors=True)
    print(RULE)
    print(" ready" if failures == 0 else f" {failures} check(s) failed")
    return 0 if failures == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
