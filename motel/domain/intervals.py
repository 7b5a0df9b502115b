"""Pure overlap tests over booked stay intervals."""

from __future__ import annotations

from typing import Iterable

from motel.domain.models import BookedInterval


def intervals_overlap(first: BookedInterval, second: BookedInterval) -> bool:
    """Half-open overlap: touching endpoints do not conflict."""
    return first.start < second.end and second.start < first.end


def overlaps(existing: Iterable[BookedInterval], candidate: BookedInterval) -> bool:
    """Return True when ``candidate`` overlaps any interval in ``existing``."""
    return any(intervals_overlap(interval, candidate) for interval in existing)


def _rebind_clash(interval: BookedInterval, candidate: BookedInterval) -> bool:
    contains_candidate = interval.start <= candidate.start and interval.end >= candidate.end
    inside_candidate = interval.start >= candidate.start and interval.end <= candidate.end
    edge_inside = (
        candidate.start <= interval.start <= candidate.end
        or candidate.start <= interval.end <= candidate.end
    )
    return contains_candidate or inside_candidate or edge_inside


def rebind_conflicts(existing: Iterable[BookedInterval], candidate: BookedInterval) -> bool:
    """Broader test used when moving a reservation.

    An existing interval clashes when it contains the candidate, lies inside
    it, or has an endpoint inside the candidate's closed range. Touching
    intervals therefore clash here, unlike :func:`overlaps`.
    """
    return any(_rebind_clash(interval, candidate) for interval in existing)


def find_pairwise_overlaps(
    intervals: Iterable[BookedInterval],
) -> list[tuple[BookedInterval, BookedInterval]]:
    """Return every overlapping pair; empty for a consistent room."""
    ordered = sorted(intervals, key=lambda item: (item.start, item.end))
    clashes: list[tuple[BookedInterval, BookedInterval]] = []
    for index, current in enumerate(ordered):
        for later in ordered[index + 1:]:
            if later.start >= current.end:
                break
            clashes.append((current, later))
    return clashes
