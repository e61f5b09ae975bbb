from datetime import date, time
from types import SimpleNamespace

import pytest

from agenda.core.errors import BookingValidationError
from agenda.models.exception import CUSTOM_RANGES, FULL_DAY_OFF, ScheduleException
from agenda.scheduling.windows import (
    TimeWindow,
    day_of_week,
    format_minutes,
    load_windows,
    normalize_windows,
    parse_clock,
    resolve_windows,
    validate_weekly_schedule,
)

TUESDAY = date(2026, 1, 6)
SUNDAY = date(2026, 1, 4)


def _weekly(start: time = time(8, 0), end: time = time(19, 0)) -> list[SimpleNamespace]:
    return [
        SimpleNamespace(
            day_of_week=day,
            is_work_day=day != 0,
            start_time=start if day != 0 else None,
            end_time=end if day != 0 else None,
        )
        for day in range(7)
    ]


def test_day_of_week_counts_from_sunday() -> None:
    assert day_of_week(SUNDAY) == 0
    assert day_of_week(date(2026, 1, 5)) == 1
    assert day_of_week(date(2026, 1, 10)) == 6


def test_parse_clock_accepts_end_of_day() -> None:
    assert parse_clock('08:30') == 510
    assert parse_clock('24:00') == 1440
    assert format_minutes(1110) == '18:30'


@pytest.mark.parametrize('value', ['8', '25:00', '10:60', 'ab:cd', '24:30'])
def test_parse_clock_rejects_malformed_values(value: str) -> None:
    with pytest.raises(BookingValidationError):
        parse_clock(value)


def test_normalize_windows_sorts_and_merges_overlapping_and_adjacent() -> None:
    windows = [TimeWindow(720, 780), TimeWindow(600, 660), TimeWindow(660, 700), TimeWindow(750, 800), (900, 900)]

    assert normalize_windows(windows) == [TimeWindow(600, 700), TimeWindow(720, 800)]


def test_weekly_entry_is_used_without_exception() -> None:
    assert resolve_windows(TUESDAY, _weekly()) == [TimeWindow(480, 1140)]


def test_non_working_day_has_no_windows() -> None:
    assert resolve_windows(SUNDAY, _weekly()) == []


def test_full_day_off_exception_empties_the_day() -> None:
    exception = SimpleNamespace(exception_type=FULL_DAY_OFF, ranges=[])

    assert resolve_windows(TUESDAY, _weekly(), exception) == []


def test_custom_ranges_replace_the_weekly_entry_even_when_wider() -> None:
    exception = SimpleNamespace(
        exception_type=CUSTOM_RANGES,
        ranges=[{'start': '18:00', 'end': '21:00'}, {'start': '07:00', 'end': '09:00'}],
    )

    assert resolve_windows(TUESDAY, _weekly(), exception) == [TimeWindow(420, 540), TimeWindow(1080, 1260)]


def test_custom_ranges_open_a_day_that_is_normally_off() -> None:
    exception = SimpleNamespace(exception_type=CUSTOM_RANGES, ranges=[{'start': '10:00', 'end': '12:00'}])

    assert resolve_windows(SUNDAY, _weekly(), exception) == [TimeWindow(600, 720)]


def test_exception_with_inverted_range_is_rejected() -> None:
    exception = SimpleNamespace(exception_type=CUSTOM_RANGES, ranges=[{'start': '12:00', 'end': '10:00'}])

    with pytest.raises(BookingValidationError):
        resolve_windows(TUESDAY, _weekly(), exception)


def test_validate_weekly_schedule_requires_every_day_once() -> None:
    entries = _weekly()[:6]

    with pytest.raises(BookingValidationError) as exception_info:
        validate_weekly_schedule(entries)

    assert exception_info.value.message == 'The weekly schedule needs exactly one entry for each day 0-6.'


def test_validate_weekly_schedule_rejects_inverted_work_day() -> None:
    entries = _weekly(start=time(19, 0), end=time(8, 0))

    with pytest.raises(BookingValidationError):
        validate_weekly_schedule(entries)


def test_load_windows_prefers_stored_exception(db_session, world) -> None:
    assert load_windows(db_session, world.tenant_id, world.employee_id, TUESDAY) == [TimeWindow(480, 1140)]

    db_session.add(
        ScheduleException(
            tenant_id=world.tenant_id,
            employee_id=world.employee_id,
            date=TUESDAY,
            exception_type=CUSTOM_RANGES,
            ranges=[{'start': '10:00', 'end': '12:00'}],
        )
    )
    db_session.commit()

    assert load_windows(db_session, world.tenant_id, world.employee_id, TUESDAY) == [TimeWindow(600, 720)]
    assert load_windows(db_session, world.tenant_id, world.employee_id, date(2026, 1, 7)) == [TimeWindow(480, 1140)]


def test_load_windows_is_scoped_by_tenant(db_session, world) -> None:
    assert load_windows(db_session, 'another-tenant', world.employee_id, TUESDAY) == []
