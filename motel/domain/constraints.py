"""Domain-level validation rules for stay requests."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from motel.domain.models import BookedInterval, RebindRequest, StayRequest


STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def parse_start_date(value: str | date | datetime) -> datetime:
    """Normalize a requested start into an aware UTC datetime.

    Bare dates mean midnight UTC; naive datetimes are read as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"start_date is not a valid date: {value!r}") from exc
    else:
        raise ValueError("start_date must be an ISO-8601 date or datetime")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_storage(value: datetime) -> str:
    """Fixed-width UTC text whose lexical order is chronological."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(STORAGE_FORMAT)


def from_storage(value: str) -> datetime:
    return datetime.strptime(value, STORAGE_FORMAT).replace(tzinfo=timezone.utc)


def stay_interval(start_date: datetime, duration_days: int) -> BookedInterval:
    try:
        end_date = start_date + timedelta(days=duration_days)
    except OverflowError as exc:
        raise ValueError("stay ends beyond the supported date range") from exc
    return BookedInterval(start=start_date, end=end_date)


def _validate_duration(duration_days: int, max_stay_days: int) -> None:
    if duration_days <= 0:
        raise ValueError("duration must be > 0 days")
    if duration_days > max_stay_days:
        raise ValueError(f"duration must not exceed {max_stay_days} days")


def validate_stay_request(request: StayRequest, max_stay_days: int) -> None:
    _validate_duration(request.duration_days, max_stay_days)
    if request.floor is not None and request.floor < 0:
        raise ValueError("floor must be >= 0")
    if request.capacity is not None and request.capacity <= 0:
        raise ValueError("capacity must be > 0")
    if request.room_type is not None and not request.room_type.strip():
        raise ValueError("type must be non-empty when provided")


def validate_rebind_request(request: RebindRequest, max_stay_days: int) -> None:
    _validate_duration(request.duration_days, max_stay_days)
    if request.capacity <= 0:
        raise ValueError("capacity must be > 0")
    if not request.room_type.strip():
        raise ValueError("type must be non-empty")
