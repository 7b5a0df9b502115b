"""Tests for the pure interval conflict checks."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from motel.domain.intervals import (
    find_pairwise_overlaps,
    intervals_overlap,
    overlaps,
    rebind_conflicts,
)
from motel.domain.models import BookedInterval


def day(value: int) -> datetime:
    return datetime(2024, 1, value, tzinfo=timezone.utc)


def span(start: int, end: int) -> BookedInterval:
    return BookedInterval(start=day(start), end=day(end))


# --- BookedInterval ---

def test_interval_requires_end_after_start() -> None:
    with pytest.raises(ValueError):
        BookedInterval(start=day(10), end=day(10))


# --- overlaps (half-open) ---

def test_partial_overlap_conflicts() -> None:
    assert overlaps([span(10, 12)], span(11, 13))


def test_contained_interval_conflicts() -> None:
    assert overlaps([span(10, 20)], span(12, 14))


def test_containing_interval_conflicts() -> None:
    assert overlaps([span(12, 14)], span(10, 20))


def test_touching_intervals_do_not_conflict() -> None:
    assert not overlaps([span(10, 12)], span(12, 14))
    assert not overlaps([span(12, 14)], span(10, 12))


def test_empty_existing_never_conflicts() -> None:
    assert not overlaps([], span(10, 12))


def test_one_microsecond_of_overlap_conflicts() -> None:
    existing = BookedInterval(start=day(10), end=day(12) + timedelta(microseconds=1))
    assert intervals_overlap(existing, span(12, 14))


# --- rebind_conflicts (closed, three clauses) ---

def test_rebind_touching_intervals_conflict() -> None:
    assert rebind_conflicts([span(10, 12)], span(12, 14))
    assert rebind_conflicts([span(14, 16)], span(12, 14))


def test_rebind_covers_containment_both_ways() -> None:
    assert rebind_conflicts([span(5, 20)], span(10, 12))
    assert rebind_conflicts([span(10, 12)], span(5, 20))


def test_rebind_disjoint_intervals_are_free() -> None:
    assert not rebind_conflicts([span(1, 3), span(20, 25)], span(10, 12))


def test_rebind_is_never_looser_than_overlaps() -> None:
    existing = [span(3, 6), span(8, 9), span(15, 20)]
    for start in range(1, 22):
        for end in range(start + 1, 24):
            candidate = span(start, end)
            if overlaps(existing, candidate):
                assert rebind_conflicts(existing, candidate)


# --- find_pairwise_overlaps ---

def test_consistent_room_has_no_pairwise_overlaps() -> None:
    assert find_pairwise_overlaps([span(12, 14), span(10, 12), span(20, 22)]) == []


def test_pairwise_overlaps_are_reported() -> None:
    clashes = find_pairwise_overlaps([span(10, 15), span(14, 16), span(1, 2)])
    assert clashes == [(span(10, 15), span(14, 16))]
