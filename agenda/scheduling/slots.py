"""Candidate start times for a service inside an employee's free time.

Everything here is pure: no clock, no database. The same overlap predicate is
used by the reservation path so that a listed slot is always bookable.
"""

from datetime import date, datetime, timedelta
from typing import Iterable

from agenda.core.errors import BookingValidationError
from agenda.scheduling.windows import MINUTES_PER_DAY, TimeWindow, normalize_windows

MAX_NOTICE_MINUTES = 365 * MINUTES_PER_DAY


def overlaps_any(occupied: Iterable[TimeWindow], start: int, end: int) -> bool:
    return any(interval.overlaps(start, end) for interval in occupied)


def fits_window(windows: Iterable[TimeWindow], start: int, end: int) -> bool:
    return any(window.contains(start, end) for window in windows)


def is_interval_free(
    windows: Iterable[TimeWindow],
    occupied: Iterable[TimeWindow],
    start: int,
    duration_minutes: int,
) -> bool:
    end = start + duration_minutes
    return fits_window(windows, start, end) and not overlaps_any(occupied, start, end)


def generate_slots(
    windows: Iterable[TimeWindow],
    occupied: Iterable[TimeWindow],
    duration_minutes: int,
    step_minutes: int,
) -> list[int]:
    if duration_minutes <= 0:
        raise BookingValidationError('Service duration must be positive.')
    if step_minutes <= 0:
        raise BookingValidationError('Slot step must be positive.')

    busy = sorted(TimeWindow(*interval) for interval in occupied)
    slots: list[int] = []

    for window in normalize_windows(windows):
        # Intervals ending at or before the current candidate can never block a later one.
        first_relevant = 0
        candidate = window.start

        while candidate + duration_minutes <= window.end:
            candidate_end = candidate + duration_minutes
            while first_relevant < len(busy) and busy[first_relevant].end <= candidate:
                first_relevant += 1

            blocked = False
            for interval in busy[first_relevant:]:
                if interval.start >= candidate_end:
                    break
                if interval.overlaps(candidate, candidate_end):
                    blocked = True
                    break

            if not blocked:
                slots.append(candidate)
            candidate += step_minutes

    return slots


def apply_notice(
    slots: list[int],
    on_date: date,
    now: datetime,
    min_notice_minutes: int | None,
) -> list[int]:
    """Drop slots that start sooner than the tenant's notice period."""
    if min_notice_minutes is None:
        return slots

    earliest = now + timedelta(minutes=min_notice_minutes)
    day_start = datetime.combine(on_date, datetime.min.time())
    return [slot for slot in slots if day_start + timedelta(minutes=slot) >= earliest]


def validate_step(step_minutes: int) -> None:
    if not 5 <= step_minutes <= 240 or MINUTES_PER_DAY % step_minutes != 0:
        raise BookingValidationError('Slot step must divide the day and be between 5 and 240 minutes.')
