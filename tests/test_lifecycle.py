from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from motel.domain.models import (
    ROOM_STATUS_AVAILABLE,
    ROOM_STATUS_OCCUPIED,
    BookedInterval,
    Identity,
    RebindRequest,
    StayRequest,
)
from motel.repository.data_repository import DataRepository
from motel.services.allocation_service import ReservationAllocator
from motel.services.errors import (
    InvalidStateError,
    ReservationNotFoundError,
    ReservationValidationError,
    RoomUnavailableError,
    UnauthorizedError,
)
from motel.services.lifecycle_service import ReservationLifecycleManager
from motel.utils.config import get_settings


START = datetime(2024, 1, 10, tzinfo=timezone.utc)
END = START + timedelta(days=2)
TICK = timedelta(microseconds=1)


class _Clock:
    """Settable clock shared by the services under test."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _build_test_settings(tmp_path, filename: str):
    base = get_settings()
    return replace(base, database_path=tmp_path / filename, seed_demo_rooms=False)


def _day(value: int) -> datetime:
    return datetime(2024, 1, value, tzinfo=timezone.utc)


def _setup(tmp_path, filename: str, rooms=(("A", "single", 1),)):
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    clock = _Clock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    for user_id in ("user1", "user2"):
        repository.ensure_user(user_id, False, clock())
    for number, room_type, capacity in rooms:
        repository.create_room(
            number=number,
            floor=1,
            room_type=room_type,
            capacity=capacity,
            price=70.0,
            status=ROOM_STATUS_AVAILABLE,
            now=clock(),
        )
    allocator = ReservationAllocator(repository=repository, settings=settings, clock=clock)
    manager = ReservationLifecycleManager(repository=repository, settings=settings, clock=clock)
    return repository, allocator, manager, clock


def _book(allocator, user_id: str, start: datetime = START, days: int = 2, room_type: str = "single"):
    return allocator.allocate(
        Identity(user_id),
        StayRequest(start_date=start, duration_days=days, room_type=room_type),
    ).reservation


# --- reads ---

def test_get_reservation_enforces_ownership(tmp_path):
    _, allocator, manager, _ = _setup(tmp_path, "reads.db")
    reservation = _book(allocator, "user1")

    assert manager.get_reservation(Identity("user1"), reservation.reservation_id) == reservation
    with pytest.raises(UnauthorizedError):
        manager.get_reservation(Identity("user2"), reservation.reservation_id)
    with pytest.raises(ReservationNotFoundError):
        manager.get_reservation(Identity("user1"), "missing")


def test_list_reservations_is_sorted_by_start(tmp_path):
    _, allocator, manager, _ = _setup(tmp_path, "list.db")
    later = _book(allocator, "user1", start=_day(20), days=1)
    earlier = _book(allocator, "user1", start=_day(5), days=1)
    _book(allocator, "user2", start=_day(25), days=1)

    listed = manager.list_reservations(Identity("user1"))
    assert [item.reservation_id for item in listed] == [earlier.reservation_id, later.reservation_id]
    assert manager.list_reservations(Identity("nobody")) == []


# --- update ---

def test_update_moves_reservation_and_issues_new_id(tmp_path):
    repository, allocator, manager, _ = _setup(tmp_path, "rebind.db")
    original = _book(allocator, "user1")

    outcome = manager.update(
        original.reservation_id,
        Identity("user1"),
        RebindRequest(start_date=_day(15), duration_days=2, room_type="single", capacity=1),
    )

    replacement = outcome.reservation
    assert replacement.reservation_id != original.reservation_id
    assert replacement.start_date == _day(15)
    assert replacement.end_date == _day(17)
    assert repository.find_reservation(original.reservation_id) is None
    assert repository.get_room(replacement.room_id).booked_intervals == (
        BookedInterval(_day(15), _day(17)),
    )
    assert repository.list_user_reservation_index("user1") == [replacement.reservation_id]


def test_update_uses_minimum_capacity(tmp_path):
    _, allocator, manager, _ = _setup(
        tmp_path,
        "capacity.db",
        rooms=(("A", "single", 1), ("C", "single", 2)),
    )
    original = _book(allocator, "user1", start=_day(3), days=1)

    outcome = manager.update(
        original.reservation_id,
        Identity("user1"),
        RebindRequest(start_date=_day(20), duration_days=1, room_type="single", capacity=2),
    )
    assert outcome.reservation.room_id == 2


def test_update_without_free_room_leaves_original_untouched(tmp_path):
    repository, allocator, manager, _ = _setup(
        tmp_path,
        "rebind_blocked.db",
        rooms=(("A", "single", 1), ("B", "single", 1)),
    )
    original = _book(allocator, "user1")
    _book(allocator, "user2")

    with pytest.raises(RoomUnavailableError):
        manager.update(
            original.reservation_id,
            Identity("user1"),
            RebindRequest(start_date=_day(11), duration_days=1, room_type="single", capacity=1),
        )

    assert repository.find_reservation(original.reservation_id) == original
    assert repository.get_room(original.room_id).booked_intervals == (BookedInterval(START, END),)


def test_update_treats_touching_stays_as_conflicts(tmp_path):
    _, allocator, manager, _ = _setup(
        tmp_path,
        "rebind_touching.db",
        rooms=(("A", "single", 1), ("B", "double", 2)),
    )
    _book(allocator, "user1")
    movable = _book(allocator, "user2", start=_day(20), days=1, room_type="double")

    # A new booking may start on the checkout day, a rebind may not.
    with pytest.raises(RoomUnavailableError):
        manager.update(
            movable.reservation_id,
            Identity("user2"),
            RebindRequest(start_date=END, duration_days=1, room_type="single", capacity=1),
        )
    assert _book(allocator, "user2", start=END, days=1).room_id == 1


def test_update_requires_ownership(tmp_path):
    repository, allocator, manager, _ = _setup(tmp_path, "rebind_owner.db")
    original = _book(allocator, "user1")

    with pytest.raises(UnauthorizedError):
        manager.update(
            original.reservation_id,
            Identity("user2"),
            RebindRequest(start_date=_day(20), duration_days=1, room_type="single", capacity=1),
        )
    assert repository.find_reservation(original.reservation_id) == original


def test_update_of_checked_in_stay_releases_old_room(tmp_path):
    repository, allocator, manager, clock = _setup(
        tmp_path,
        "rebind_checked_in.db",
        rooms=(("A", "single", 1), ("B", "single", 1)),
    )
    original = _book(allocator, "user1")
    clock.now = START
    manager.check_in(Identity("user1"))

    outcome = manager.update(
        original.reservation_id,
        Identity("user1"),
        RebindRequest(start_date=_day(30), duration_days=1, room_type="single", capacity=1),
    )

    assert outcome.reservation.room_id == 2
    old_room = repository.get_room(original.room_id)
    assert old_room.status == ROOM_STATUS_AVAILABLE
    assert old_room.booked_intervals == ()


def test_checked_out_reservation_cannot_be_updated(tmp_path):
    repository, allocator, manager, clock = _setup(tmp_path, "rebind_done.db")
    original = _book(allocator, "user1")
    clock.now = START
    manager.check_in(Identity("user1"))
    clock.now = END
    finished = manager.check_out(Identity("user1"))

    with pytest.raises(InvalidStateError):
        manager.update(
            original.reservation_id,
            Identity("user1"),
            RebindRequest(start_date=_day(20), duration_days=1, room_type="single", capacity=1),
        )
    assert repository.find_reservation(original.reservation_id) == finished


def test_update_past_supported_dates_is_a_validation_error(tmp_path):
    _, allocator, manager, _ = _setup(tmp_path, "rebind_overflow.db")
    original = _book(allocator, "user1")

    with pytest.raises(ReservationValidationError):
        manager.update(
            original.reservation_id,
            Identity("user1"),
            RebindRequest(
                start_date=datetime(9999, 12, 30, tzinfo=timezone.utc),
                duration_days=5,
                room_type="single",
                capacity=1,
            ),
        )


def test_update_unknown_reservation(tmp_path):
    _, _, manager, _ = _setup(tmp_path, "rebind_missing.db")

    with pytest.raises(ReservationNotFoundError):
        manager.update(
            "missing",
            Identity("user1"),
            RebindRequest(start_date=_day(20), duration_days=1, room_type="single", capacity=1),
        )


# --- cancel ---

def test_cancel_twice_reports_not_found(tmp_path):
    repository, allocator, manager, _ = _setup(tmp_path, "cancel.db")
    reservation = _book(allocator, "user1")

    assert manager.cancel(reservation.reservation_id) == []
    room = repository.get_room(reservation.room_id)
    assert room.booked_intervals == ()
    assert room.status == ROOM_STATUS_AVAILABLE
    assert repository.list_user_reservation_index("user1") == []

    with pytest.raises(ReservationNotFoundError):
        manager.cancel(reservation.reservation_id)


def test_cancel_only_releases_its_own_interval(tmp_path):
    repository, allocator, manager, _ = _setup(tmp_path, "cancel_keep.db")
    first = _book(allocator, "user1")
    second = _book(allocator, "user2", start=END, days=1)

    manager.cancel(first.reservation_id)
    assert repository.get_room(second.room_id).booked_intervals == (second.interval,)


def test_checked_out_reservation_cannot_be_cancelled(tmp_path):
    _, allocator, manager, clock = _setup(tmp_path, "cancel_done.db")
    reservation = _book(allocator, "user1")
    clock.now = START
    manager.check_in(Identity("user1"))
    clock.now = END
    manager.check_out(Identity("user1"))

    with pytest.raises(InvalidStateError):
        manager.cancel(reservation.reservation_id)


# --- check-in / check-out windows ---

def test_check_in_at_start_occupies_room(tmp_path):
    repository, allocator, manager, clock = _setup(tmp_path, "checkin.db")
    reservation = _book(allocator, "user1")
    clock.now = START

    checked_in = manager.check_in(Identity("user1"))
    assert checked_in.reservation_id == reservation.reservation_id
    assert checked_in.check_in
    assert repository.get_room(reservation.room_id).status == ROOM_STATUS_OCCUPIED


def test_check_in_one_tick_early_is_invalid(tmp_path):
    _, allocator, manager, clock = _setup(tmp_path, "checkin_early.db")
    _book(allocator, "user1")
    clock.now = START - TICK

    with pytest.raises(InvalidStateError):
        manager.check_in(Identity("user1"))


def test_check_in_at_end_is_invalid(tmp_path):
    _, allocator, manager, clock = _setup(tmp_path, "checkin_late.db")
    _book(allocator, "user1")
    clock.now = END

    with pytest.raises(InvalidStateError):
        manager.check_in(Identity("user1"))


def test_check_in_without_reservation(tmp_path):
    _, _, manager, _ = _setup(tmp_path, "checkin_none.db")

    with pytest.raises(ReservationNotFoundError):
        manager.check_in(Identity("user1"))


def test_check_out_at_end_frees_room(tmp_path):
    repository, allocator, manager, clock = _setup(tmp_path, "checkout.db")
    reservation = _book(allocator, "user1")
    clock.now = START
    manager.check_in(Identity("user1"))
    clock.now = END

    checked_out = manager.check_out(Identity("user1"))
    assert checked_out.check_out
    assert repository.get_room(reservation.room_id).status == ROOM_STATUS_AVAILABLE


def test_check_out_prefers_the_stay_under_way(tmp_path):
    repository, allocator, manager, clock = _setup(
        tmp_path,
        "checkout_overlap.db",
        rooms=(("A", "single", 1), ("B", "single", 1)),
    )
    current = _book(allocator, "user1", start=_day(10), days=5)
    upcoming = _book(allocator, "user1", start=_day(12), days=1)
    assert upcoming.room_id != current.room_id
    clock.now = _day(11)
    manager.check_in(Identity("user1"))

    checked_out = manager.check_out(Identity("user1"))

    assert checked_out.reservation_id == current.reservation_id
    assert repository.find_reservation(upcoming.reservation_id).check_out is False
    assert repository.get_room(current.room_id).status == ROOM_STATUS_AVAILABLE


def test_check_out_one_tick_late_finds_nothing(tmp_path):
    _, allocator, manager, clock = _setup(tmp_path, "checkout_late.db")
    _book(allocator, "user1")
    clock.now = END + TICK

    with pytest.raises(ReservationNotFoundError):
        manager.check_out(Identity("user1"))


def test_check_out_before_start_is_invalid(tmp_path):
    _, allocator, manager, clock = _setup(tmp_path, "checkout_early.db")
    _book(allocator, "user1")
    clock.now = START - TICK

    with pytest.raises(InvalidStateError):
        manager.check_out(Identity("user1"))


def test_stay_events_require_identity(tmp_path):
    _, _, manager, _ = _setup(tmp_path, "checkin_anon.db")

    with pytest.raises(UnauthorizedError):
        manager.check_in(None)
    with pytest.raises(UnauthorizedError):
        manager.check_out(None)
