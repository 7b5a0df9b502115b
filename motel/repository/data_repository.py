"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence
from uuid import uuid4

from motel.domain.constraints import from_storage, to_storage
from motel.domain.models import (
    ROOM_STATUS_AVAILABLE,
    ROOM_STATUSES,
    BookedInterval,
    Reservation,
    Room,
    RoomFilter,
)
from motel.utils.config import Settings, get_settings
from motel.utils.logger import get_logger


logger = get_logger(__name__)

# Sample inventory used to bootstrap an empty database.
DEMO_ROOMS: tuple[tuple[str, int, str, int, float], ...] = (
    ("101", 1, "single", 1, 50.0),
    ("102", 1, "single", 1, 60.0),
    ("103", 1, "double", 2, 70.0),
    ("104", 1, "double", 2, 80.0),
    ("105", 1, "suite", 4, 120.0),
    ("201", 2, "single", 1, 55.0),
    ("202", 2, "double", 2, 75.0),
    ("203", 2, "suite", 4, 125.0),
    ("301", 3, "single", 1, 58.0),
    ("302", 3, "double", 2, 85.0),
    ("303", 3, "suite", 4, 130.0),
    ("401", 4, "single", 1, 65.0),
    ("402", 4, "single", 1, 65.0),
    ("403", 4, "double", 2, 90.0),
    ("404", 4, "double", 2, 95.0),
    ("405", 4, "suite", 4, 135.0),
)

IntervalPredicate = Callable[[Sequence[BookedInterval]], bool]


class PersistenceError(RuntimeError):
    """Raised when the storage layer fails."""


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic.

    Every booking write runs inside ``BEGIN IMMEDIATE`` so the room search and
    the interval insert see the same snapshot, and the interval insert itself
    is conditional on the absence of an overlapping interval.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.database_busy_timeout_seconds,
            isolation_level=None,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Cursor]:
        connection = self._connect()
        try:
            yield connection.cursor()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Database read failed: {exc}") from exc
        finally:
            connection.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Hold the database write lock for the duration of the block."""
        connection = self._connect()
        try:
            connection.execute("BEGIN IMMEDIATE;")
            try:
                yield connection.cursor()
            except BaseException:
                connection.execute("ROLLBACK;")
                raise
            connection.execute("COMMIT;")
        except sqlite3.Error as exc:
            raise PersistenceError(f"Database write failed: {exc}") from exc
        finally:
            connection.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        statuses = ",".join(f"'{status}'" for status in ROOM_STATUSES)
        with self._transaction() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Users (
                    id TEXT PRIMARY KEY,
                    is_admin INTEGER NOT NULL DEFAULT 0 CHECK (is_admin IN (0,1)),
                    created_at TEXT NOT NULL
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS UserReservations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    reservation_id TEXT NOT NULL,
                    UNIQUE (user_id, reservation_id),
                    FOREIGN KEY (user_id) REFERENCES Users(id)
                );
                """
            )
            cursor.execute(
                f"""
                CREATE TABLE IF NOT EXISTS Rooms (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    number TEXT NOT NULL,
                    floor INTEGER NOT NULL,
                    room_type TEXT NOT NULL,
                    capacity INTEGER NOT NULL CHECK (capacity > 0),
                    price REAL NOT NULL CHECK (price >= 0),
                    status TEXT NOT NULL DEFAULT '{ROOM_STATUS_AVAILABLE}'
                        CHECK (status IN ({statuses})),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS BookedIntervals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    room_id INTEGER NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    CHECK (end_date > start_date),
                    FOREIGN KEY (room_id) REFERENCES Rooms(id)
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Reservations (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    room_id INTEGER NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    check_in INTEGER NOT NULL DEFAULT 0 CHECK (check_in IN (0,1)),
                    check_out INTEGER NOT NULL DEFAULT 0 CHECK (check_out IN (0,1)),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    CHECK (end_date > start_date),
                    FOREIGN KEY (user_id) REFERENCES Users(id),
                    FOREIGN KEY (room_id) REFERENCES Rooms(id)
                );
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_intervals_room_dates
                ON BookedIntervals(room_id, start_date, end_date);
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_reservations_user_dates
                ON Reservations(user_id, start_date, end_date);
                """
            )
        logger.info("Database initialized at %s", self._db_path)

    def seed_rooms_if_empty(self) -> int:
        """Insert the demo inventory when no room exists yet."""
        now = to_storage(datetime.now().astimezone())
        with self._transaction() as cursor:
            cursor.execute("SELECT COUNT(*) AS count FROM Rooms;")
            if int(cursor.fetchone()["count"]) > 0:
                logger.info("Room inventory already present; skipping seed")
                return 0
            cursor.executemany(
                """
                INSERT INTO Rooms (number, floor, room_type, capacity, price, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                [(*room, now, now) for room in DEMO_ROOMS],
            )
        logger.info("Seeded %s demo rooms", len(DEMO_ROOMS))
        return len(DEMO_ROOMS)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def ensure_user(self, user_id: str, is_admin: bool, now: datetime) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO Users (id, is_admin, created_at)
                VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET is_admin = excluded.is_admin;
                """,
                (user_id, int(is_admin), to_storage(now)),
            )

    def user_exists(self, user_id: str) -> bool:
        with self._read() as cursor:
            cursor.execute("SELECT 1 FROM Users WHERE id = ?;", (user_id,))
            return cursor.fetchone() is not None

    def append_user_reservation(self, user_id: str, reservation_id: str) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT OR IGNORE INTO UserReservations (user_id, reservation_id)
                VALUES (?, ?);
                """,
                (user_id, reservation_id),
            )

    def remove_user_reservation(self, user_id: str, reservation_id: str) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                "DELETE FROM UserReservations WHERE user_id = ? AND reservation_id = ?;",
                (user_id, reservation_id),
            )

    def list_user_reservation_index(self, user_id: str) -> list[str]:
        """Return the cached reservation id list in insertion order.

        Inspection helper for the readiness check and tests; listing endpoints
        read the Reservations table instead.
        """
        with self._read() as cursor:
            cursor.execute(
                "SELECT reservation_id FROM UserReservations WHERE user_id = ? ORDER BY id ASC;",
                (user_id,),
            )
            return [str(row["reservation_id"]) for row in cursor.fetchall()]

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def create_room(
        self,
        *,
        number: str,
        floor: int,
        room_type: str,
        capacity: int,
        price: float,
        status: str,
        now: datetime,
    ) -> Room:
        stamp = to_storage(now)
        with self._transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO Rooms (number, floor, room_type, capacity, price, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (number, floor, room_type, capacity, price, status, stamp, stamp),
            )
            room_id = int(cursor.lastrowid)
            return self._load_room(cursor, room_id)

    def get_room(self, room_id: int) -> Optional[Room]:
        with self._read() as cursor:
            return self._load_room(cursor, room_id)

    def list_rooms(self) -> list[Room]:
        with self._read() as cursor:
            cursor.execute("SELECT * FROM Rooms ORDER BY id ASC;")
            rows = cursor.fetchall()
            intervals = self._intervals_by_room(cursor, [int(row["id"]) for row in rows])
            return [self._room_from_row(row, intervals.get(int(row["id"]), ())) for row in rows]

    def set_room_status(self, room_id: int, status: str, now: datetime) -> bool:
        with self._transaction() as cursor:
            return self._set_room_status(cursor, room_id, status, now)

    def find_matching_available_room(
        self,
        room_filter: RoomFilter,
        is_free: IntervalPredicate,
    ) -> Optional[Room]:
        """Return the lowest-id available room passing filters and ``is_free``."""
        with self._read() as cursor:
            return self._find_matching_available_room(cursor, room_filter, is_free)

    def append_booked_interval(self, room_id: int, interval: BookedInterval) -> bool:
        """Conditionally append ``interval``; False when it would overlap."""
        with self._transaction() as cursor:
            return self._append_booked_interval(cursor, room_id, interval)

    def remove_booked_interval(self, room_id: int, interval: BookedInterval) -> bool:
        with self._transaction() as cursor:
            return self._remove_booked_interval(cursor, room_id, interval)

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def create_reservation(
        self,
        *,
        user_id: str,
        room_id: int,
        interval: BookedInterval,
        now: datetime,
    ) -> Reservation:
        """Insert a reservation row without touching the room's intervals."""
        with self._transaction() as cursor:
            return self._insert_reservation(cursor, user_id, room_id, interval, now)

    def delete_reservation(self, reservation_id: str) -> Optional[Reservation]:
        """Delete and return the reservation row; intervals are left as-is."""
        with self._transaction() as cursor:
            return self._delete_reservation(cursor, reservation_id)

    def find_reservation(self, reservation_id: str) -> Optional[Reservation]:
        with self._read() as cursor:
            return self._load_reservation(cursor, reservation_id)

    def list_reservations_for_user(self, user_id: str) -> list[Reservation]:
        with self._read() as cursor:
            cursor.execute(
                """
                SELECT * FROM Reservations
                WHERE user_id = ?
                ORDER BY start_date ASC, created_at ASC;
                """,
                (user_id,),
            )
            return [self._reservation_from_row(row) for row in cursor.fetchall()]

    def find_check_in_candidate(self, user_id: str, now: datetime) -> Optional[Reservation]:
        """Latest started stay not yet checked out, else the nearest upcoming one."""
        stamp = to_storage(now)
        with self._read() as cursor:
            cursor.execute(
                """
                SELECT * FROM Reservations
                WHERE user_id = ? AND check_out = 0 AND start_date <= ?
                ORDER BY start_date DESC
                LIMIT 1;
                """,
                (user_id, stamp),
            )
            row = cursor.fetchone()
            if row is None:
                cursor.execute(
                    """
                    SELECT * FROM Reservations
                    WHERE user_id = ? AND check_out = 0 AND start_date > ?
                    ORDER BY start_date ASC
                    LIMIT 1;
                    """,
                    (user_id, stamp),
                )
                row = cursor.fetchone()
            return None if row is None else self._reservation_from_row(row)

    def find_check_out_candidate(self, user_id: str, now: datetime) -> Optional[Reservation]:
        """Earliest-ending open stay, preferring ones already under way."""
        stamp = to_storage(now)
        with self._read() as cursor:
            cursor.execute(
                """
                SELECT * FROM Reservations
                WHERE user_id = ? AND check_out = 0 AND end_date >= ?
                ORDER BY (start_date <= ?) DESC, check_in DESC, end_date ASC
                LIMIT 1;
                """,
                (user_id, stamp, stamp),
            )
            row = cursor.fetchone()
            return None if row is None else self._reservation_from_row(row)

    # ------------------------------------------------------------------
    # Atomic multi-row operations
    # ------------------------------------------------------------------

    def book_first_available_room(
        self,
        *,
        user_id: str,
        room_filter: RoomFilter,
        interval: BookedInterval,
        is_free: IntervalPredicate,
        now: datetime,
    ) -> Optional[Reservation]:
        """Select, book and record a room in one write transaction."""
        with self._transaction() as cursor:
            room = self._find_matching_available_room(cursor, room_filter, is_free)
            if room is None:
                return None
            if not self._append_booked_interval(cursor, room.room_id, interval):
                return None
            return self._insert_reservation(cursor, user_id, room.room_id, interval, now)

    def rebind_reservation(
        self,
        *,
        reservation: Reservation,
        room_filter: RoomFilter,
        interval: BookedInterval,
        is_free: IntervalPredicate,
        now: datetime,
    ) -> Optional[Reservation]:
        """Replace ``reservation`` with a new one on a freshly selected room.

        The search runs while the old booking still holds its interval. A
        checked-in guest vacates the old room, so it becomes available again.
        When no room qualifies, or the old reservation vanished meanwhile,
        nothing is written and None is returned.
        """
        with self._transaction() as cursor:
            room = self._find_matching_available_room(cursor, room_filter, is_free)
            if room is None:
                return None
            if self._delete_reservation(cursor, reservation.reservation_id) is None:
                return None
            self._remove_booked_interval(cursor, reservation.room_id, reservation.interval)
            if reservation.check_in:
                self._set_room_status(cursor, reservation.room_id, ROOM_STATUS_AVAILABLE, now)
            if not self._append_booked_interval(cursor, room.room_id, interval):
                raise PersistenceError(
                    f"Room {room.room_id} lost its free window during rebind"
                )
            return self._insert_reservation(
                cursor, reservation.user_id, room.room_id, interval, now
            )

    def cancel_reservation(self, reservation_id: str, now: datetime) -> Optional[Reservation]:
        """Delete the reservation, release its interval and free the room."""
        with self._transaction() as cursor:
            reservation = self._delete_reservation(cursor, reservation_id)
            if reservation is None:
                return None
            if self._load_room(cursor, reservation.room_id) is not None:
                self._remove_booked_interval(cursor, reservation.room_id, reservation.interval)
                self._set_room_status(cursor, reservation.room_id, ROOM_STATUS_AVAILABLE, now)
            return reservation

    def record_stay_event(
        self,
        *,
        reservation_id: str,
        column: str,
        room_status: str,
        now: datetime,
    ) -> Optional[Reservation]:
        """Set ``check_in`` or ``check_out`` and the room status together."""
        if column not in ("check_in", "check_out"):
            raise ValueError(f"Unsupported stay event column: {column}")
        stamp = to_storage(now)
        with self._transaction() as cursor:
            cursor.execute(
                f"UPDATE Reservations SET {column} = 1, updated_at = ? WHERE id = ?;",
                (stamp, reservation_id),
            )
            if cursor.rowcount == 0:
                return None
            reservation = self._load_reservation(cursor, reservation_id)
            self._set_room_status(cursor, reservation.room_id, room_status, now)
            return reservation

    # ------------------------------------------------------------------
    # Cursor-level helpers shared by the public operations
    # ------------------------------------------------------------------

    def _find_matching_available_room(
        self,
        cursor: sqlite3.Cursor,
        room_filter: RoomFilter,
        is_free: IntervalPredicate,
    ) -> Optional[Room]:
        clauses = ["status = ?"]
        params: list[object] = [ROOM_STATUS_AVAILABLE]
        if room_filter.room_type is not None:
            clauses.append("room_type = ?")
            params.append(room_filter.room_type)
        if room_filter.floor is not None:
            clauses.append("floor = ?")
            params.append(room_filter.floor)
        if room_filter.capacity is not None:
            clauses.append("capacity >= ?" if room_filter.minimum_capacity else "capacity = ?")
            params.append(room_filter.capacity)
        cursor.execute(
            f"SELECT * FROM Rooms WHERE {' AND '.join(clauses)} ORDER BY id ASC;",
            tuple(params),
        )
        rows = cursor.fetchall()
        intervals = self._intervals_by_room(cursor, [int(row["id"]) for row in rows])
        for row in rows:
            booked = intervals.get(int(row["id"]), ())
            if is_free(booked):
                return self._room_from_row(row, booked)
        return None

    def _append_booked_interval(
        self,
        cursor: sqlite3.Cursor,
        room_id: int,
        interval: BookedInterval,
    ) -> bool:
        start, end = to_storage(interval.start), to_storage(interval.end)
        cursor.execute(
            """
            INSERT INTO BookedIntervals (room_id, start_date, end_date)
            SELECT ?, ?, ?
            WHERE NOT EXISTS (
                SELECT 1 FROM BookedIntervals
                WHERE room_id = ? AND start_date < ? AND ? < end_date
            );
            """,
            (room_id, start, end, room_id, end, start),
        )
        return cursor.rowcount == 1

    def _remove_booked_interval(
        self,
        cursor: sqlite3.Cursor,
        room_id: int,
        interval: BookedInterval,
    ) -> bool:
        cursor.execute(
            """
            DELETE FROM BookedIntervals
            WHERE room_id = ? AND start_date = ? AND end_date = ?;
            """,
            (room_id, to_storage(interval.start), to_storage(interval.end)),
        )
        return cursor.rowcount > 0

    def _set_room_status(
        self,
        cursor: sqlite3.Cursor,
        room_id: int,
        status: str,
        now: datetime,
    ) -> bool:
        cursor.execute(
            "UPDATE Rooms SET status = ?, updated_at = ? WHERE id = ?;",
            (status, to_storage(now), room_id),
        )
        return cursor.rowcount == 1

    def _insert_reservation(
        self,
        cursor: sqlite3.Cursor,
        user_id: str,
        room_id: int,
        interval: BookedInterval,
        now: datetime,
    ) -> Reservation:
        reservation_id = uuid4().hex
        stamp = to_storage(now)
        cursor.execute(
            """
            INSERT INTO Reservations (
                id, user_id, room_id, start_date, end_date, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                reservation_id,
                user_id,
                room_id,
                to_storage(interval.start),
                to_storage(interval.end),
                stamp,
                stamp,
            ),
        )
        return self._load_reservation(cursor, reservation_id)

    def _delete_reservation(
        self,
        cursor: sqlite3.Cursor,
        reservation_id: str,
    ) -> Optional[Reservation]:
        reservation = self._load_reservation(cursor, reservation_id)
        if reservation is None:
            return None
        cursor.execute("DELETE FROM Reservations WHERE id = ?;", (reservation_id,))
        return reservation

    def _load_reservation(
        self,
        cursor: sqlite3.Cursor,
        reservation_id: str,
    ) -> Optional[Reservation]:
        cursor.execute("SELECT * FROM Reservations WHERE id = ?;", (reservation_id,))
        row = cursor.fetchone()
        return None if row is None else self._reservation_from_row(row)

    def _load_room(self, cursor: sqlite3.Cursor, room_id: int) -> Optional[Room]:
        cursor.execute("SELECT * FROM Rooms WHERE id = ?;", (room_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        intervals = self._intervals_by_room(cursor, [room_id])
        return self._room_from_row(row, intervals.get(room_id, ()))

    @staticmethod
    def _intervals_by_room(
        cursor: sqlite3.Cursor,
        room_ids: Sequence[int],
    ) -> dict[int, tuple[BookedInterval, ...]]:
        if not room_ids:
            return {}
        placeholders = ",".join("?" for _ in room_ids)
        cursor.execute(
            f"""
            SELECT room_id, start_date, end_date
            FROM BookedIntervals
            WHERE room_id IN ({placeholders})
            ORDER BY room_id ASC, start_date ASC;
            """,
            tuple(room_ids),
        )
        grouped: dict[int, list[BookedInterval]] = {}
        for row in cursor.fetchall():
            grouped.setdefault(int(row["room_id"]), []).append(
                BookedInterval(
                    start=from_storage(str(row["start_date"])),
                    end=from_storage(str(row["end_date"])),
                )
            )
        return {room_id: tuple(items) for room_id, items in grouped.items()}

    @staticmethod
    def _room_from_row(
        row: sqlite3.Row,
        intervals: Sequence[BookedInterval],
    ) -> Room:
        return Room(
            room_id=int(row["id"]),
            number=str(row["number"]),
            floor=int(row["floor"]),
            room_type=str(row["room_type"]),
            capacity=int(row["capacity"]),
            price=float(row["price"]),
            status=str(row["status"]),
            booked_intervals=tuple(intervals),
        )

    @staticmethod
    def _reservation_from_row(row: sqlite3.Row) -> Reservation:
        return Reservation(
            reservation_id=str(row["id"]),
            user_id=str(row["user_id"]),
            room_id=int(row["room_id"]),
            start_date=from_storage(str(row["start_date"])),
            end_date=from_storage(str(row["end_date"])),
            check_in=bool(row["check_in"]),
            check_out=bool(row["check_out"]),
            created_at=from_storage(str(row["created_at"])),
            updated_at=from_storage(str(row["updated_at"])),
        )
