"""Tests for stay request validation and date normalization."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from motel.domain.constraints import (
    from_storage,
    parse_start_date,
    stay_interval,
    to_storage,
    validate_rebind_request,
    validate_stay_request,
)
from motel.domain.models import RebindRequest, StayRequest


START = datetime(2024, 1, 10, tzinfo=timezone.utc)


def valid_stay(**overrides) -> StayRequest:
    """Return a valid baseline StayRequest, optionally overriding fields."""
    defaults = {
        "start_date": START,
        "duration_days": 2,
        "room_type": "single",
        "floor": 1,
        "capacity": 1,
    }
    defaults.update(overrides)
    return StayRequest(**defaults)


# --- parse_start_date ---

def test_bare_date_string_means_midnight_utc() -> None:
    assert parse_start_date("2024-01-10") == START


def test_zulu_suffix_is_accepted() -> None:
    assert parse_start_date("2024-01-10T00:00:00Z") == START


def test_offset_datetime_is_converted_to_utc() -> None:
    parsed = parse_start_date("2024-01-10T02:00:00+02:00")
    assert parsed == START
    assert parsed.tzinfo == timezone.utc


def test_date_object_is_accepted() -> None:
    assert parse_start_date(date(2024, 1, 10)) == START


def test_naive_datetime_is_read_as_utc() -> None:
    assert parse_start_date(datetime(2024, 1, 10)) == START


def test_garbage_start_date_raises() -> None:
    with pytest.raises(ValueError):
        parse_start_date("not-a-date")


def test_non_string_start_date_raises() -> None:
    with pytest.raises(ValueError):
        parse_start_date(20240110)  # type: ignore[arg-type]


# --- storage format ---

def test_storage_text_sorts_chronologically() -> None:
    earlier = to_storage(START)
    later = to_storage(START + timedelta(microseconds=1))
    assert earlier < later
    assert from_storage(later) == START + timedelta(microseconds=1)


def test_stay_interval_adds_whole_days() -> None:
    interval = stay_interval(START, 3)
    assert interval.end == datetime(2024, 1, 13, tzinfo=timezone.utc)


# --- validate_stay_request ---

def test_valid_stay_passes() -> None:
    validate_stay_request(valid_stay(), max_stay_days=30)


def test_filters_are_optional() -> None:
    validate_stay_request(
        valid_stay(room_type=None, floor=None, capacity=None),
        max_stay_days=30,
    )


def test_zero_duration_raises() -> None:
    with pytest.raises(ValueError):
        validate_stay_request(valid_stay(duration_days=0), max_stay_days=30)


def test_negative_duration_raises() -> None:
    with pytest.raises(ValueError):
        validate_stay_request(valid_stay(duration_days=-1), max_stay_days=30)


def test_duration_above_limit_raises() -> None:
    with pytest.raises(ValueError):
        validate_stay_request(valid_stay(duration_days=31), max_stay_days=30)


def test_non_positive_capacity_raises() -> None:
    with pytest.raises(ValueError):
        validate_stay_request(valid_stay(capacity=0), max_stay_days=30)


def test_blank_type_raises() -> None:
    with pytest.raises(ValueError):
        validate_stay_request(valid_stay(room_type="  "), max_stay_days=30)


# --- validate_rebind_request ---

def test_rebind_requires_positive_capacity() -> None:
    with pytest.raises(ValueError):
        validate_rebind_request(
            RebindRequest(start_date=START, duration_days=1, room_type="single", capacity=0),
            max_stay_days=30,
        )


def test_rebind_boundary_duration_passes() -> None:
    validate_rebind_request(
        RebindRequest(start_date=START, duration_days=30, room_type="single", capacity=1),
        max_stay_days=30,
    )


def test_stay_ending_past_supported_dates_raises() -> None:
    with pytest.raises(ValueError):
        stay_interval(datetime(9999, 12, 30, tzinfo=timezone.utc), 5)
