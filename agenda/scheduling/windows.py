"""Resolution of an employee's nominal working windows for a date.

Times of day are handled as minutes since midnight. A date-specific
exception replaces the weekly entry entirely; the weekly schedule is only
consulted when no exception exists for the date.
"""

from datetime import date, time
from typing import Iterable, NamedTuple

from sqlalchemy.orm import Session

from agenda.core.errors import BookingValidationError
from agenda.models.exception import CUSTOM_RANGES, FULL_DAY_OFF, ScheduleException
from agenda.models.schedule import WorkSchedule

MINUTES_PER_DAY = 24 * 60
DAYS_PER_WEEK = 7


class TimeWindow(NamedTuple):
    start: int
    end: int

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and self.end > start

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'{minutes} is not a time of day.')
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def parse_clock(value: str) -> int:
    """Parse ``HH:MM``; ``24:00`` is accepted as the end of the day."""
    try:
        hours_text, minutes_text = value.strip().split(':')
        hours, minutes = int(hours_text), int(minutes_text)
    except (AttributeError, ValueError) as exc:
        raise BookingValidationError(f'Invalid time of day: {value!r}.') from exc

    total = hours * 60 + minutes
    if hours < 0 or not 0 <= minutes < 60 or total > MINUTES_PER_DAY:
        raise BookingValidationError(f'Invalid time of day: {value!r}.')
    return total


def day_of_week(on_date: date) -> int:
    # 0 = Sunday ... 6 = Saturday
    return (on_date.weekday() + 1) % DAYS_PER_WEEK


def normalize_windows(windows: Iterable[TimeWindow]) -> list[TimeWindow]:
    """Sort windows, drop empty ones and merge overlapping or adjacent ones."""
    ordered = sorted(TimeWindow(*window) for window in windows if window[0] < window[1])
    merged: list[TimeWindow] = []

    for window in ordered:
        if merged and window.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = TimeWindow(last.start, max(last.end, window.end))
        else:
            merged.append(window)

    return merged


def parse_ranges(ranges: Iterable[dict]) -> list[TimeWindow]:
    windows = []
    for entry in ranges:
        try:
            start, end = parse_clock(entry['start']), parse_clock(entry['end'])
        except (KeyError, TypeError) as exc:
            raise BookingValidationError('Each range needs a start and an end.') from exc
        if start >= end:
            raise BookingValidationError(
                f'Range {format_minutes(start)}-{format_minutes(end)} must start before it ends.'
            )
        windows.append(TimeWindow(start, end))
    return windows


def validate_weekly_schedule(entries: list) -> None:
    days = [entry.day_of_week for entry in entries]
    if sorted(days) != list(range(DAYS_PER_WEEK)):
        raise BookingValidationError('The weekly schedule needs exactly one entry for each day 0-6.')

    for entry in entries:
        if not entry.is_work_day:
            continue
        if entry.start_time is None or entry.end_time is None:
            raise BookingValidationError(f'Day {entry.day_of_week} is a work day but has no hours.')
        if entry.start_time >= entry.end_time:
            raise BookingValidationError(f'Day {entry.day_of_week} must start before it ends.')


def resolve_windows(on_date: date, weekly_entries: Iterable, exception=None) -> list[TimeWindow]:
    if exception is not None:
        if exception.exception_type == FULL_DAY_OFF:
            return []
        if exception.exception_type == CUSTOM_RANGES:
            return normalize_windows(parse_ranges(exception.ranges or []))
        raise BookingValidationError(f'Unknown exception type {exception.exception_type!r}.')

    weekday = day_of_week(on_date)
    entry = next((item for item in weekly_entries if item.day_of_week == weekday), None)
    if entry is None or not entry.is_work_day or entry.start_time is None or entry.end_time is None:
        return []

    return normalize_windows([TimeWindow(to_minutes(entry.start_time), to_minutes(entry.end_time))])


def load_windows(db: Session, tenant_id: str, employee_id: int, on_date: date) -> list[TimeWindow]:
    exception = db.query(ScheduleException).filter(
        ScheduleException.tenant_id == tenant_id,
        ScheduleException.employee_id == employee_id,
        ScheduleException.date == on_date,
    ).first()
    if exception is not None:
        return resolve_windows(on_date, [], exception)

    weekly_entries = db.query(WorkSchedule).filter(
        WorkSchedule.tenant_id == tenant_id,
        WorkSchedule.employee_id == employee_id,
        WorkSchedule.day_of_week == day_of_week(on_date),
    ).all()
    return resolve_windows(on_date, weekly_entries)
