from datetime import date, datetime

import pytest

from agenda.core.errors import BookingValidationError
from agenda.scheduling.slots import apply_notice, generate_slots, is_interval_free, validate_step
from agenda.scheduling.windows import TimeWindow, format_minutes, parse_clock

WORK_DAY = [TimeWindow(parse_clock('08:00'), parse_clock('19:00'))]


def _clock(slots: list[int]) -> list[str]:
    return [format_minutes(slot) for slot in slots]


def test_free_day_yields_every_half_hour_until_last_fitting_start() -> None:
    slots = _clock(generate_slots(WORK_DAY, [], duration_minutes=30, step_minutes=30))

    assert len(slots) == 22
    assert slots[0] == '08:00'
    assert slots[1] == '08:30'
    assert slots[-1] == '18:30'


def test_existing_appointment_removes_only_its_slot() -> None:
    occupied = [TimeWindow(parse_clock('09:00'), parse_clock('09:30'))]

    slots = _clock(generate_slots(WORK_DAY, occupied, duration_minutes=30, step_minutes=30))

    assert len(slots) == 21
    assert '09:00' not in slots
    assert '08:30' in slots
    assert '09:30' in slots


def test_no_windows_means_no_slots() -> None:
    assert generate_slots([], [], duration_minutes=30, step_minutes=30) == []


def test_custom_range_produces_only_its_slots() -> None:
    windows = [TimeWindow(parse_clock('10:00'), parse_clock('12:00'))]

    assert _clock(generate_slots(windows, [], 30, 30)) == ['10:00', '10:30', '11:00', '11:30']


def test_longer_service_is_blocked_by_any_overlap() -> None:
    occupied = [TimeWindow(parse_clock('10:00'), parse_clock('10:30'))]
    windows = [TimeWindow(parse_clock('08:00'), parse_clock('12:00'))]

    slots = _clock(generate_slots(windows, occupied, duration_minutes=60, step_minutes=30))

    assert slots == ['08:00', '08:30', '09:00', '10:30', '11:00']


def test_duration_longer_than_every_window_is_empty_not_an_error() -> None:
    windows = [TimeWindow(600, 630), TimeWindow(700, 745)]

    assert generate_slots(windows, [], duration_minutes=60, step_minutes=15) == []


def test_unaligned_occupied_interval_is_respected() -> None:
    occupied = [TimeWindow(parse_clock('08:10'), parse_clock('08:40'))]
    windows = [TimeWindow(parse_clock('08:00'), parse_clock('10:00'))]

    assert _clock(generate_slots(windows, occupied, 30, 30)) == ['09:00', '09:30']


def test_long_occupied_interval_listed_first_still_blocks_later_candidates() -> None:
    occupied = [TimeWindow(480, 720), TimeWindow(500, 520)]
    windows = [TimeWindow(480, 780)]

    assert generate_slots(windows, occupied, 30, 30) == [720, 750]


def test_overlapping_windows_are_normalized_before_walking() -> None:
    windows = [TimeWindow(600, 690), TimeWindow(540, 630)]

    assert _clock(generate_slots(windows, [], 30, 30)) == ['09:00', '09:30', '10:00', '10:30', '11:00']


def test_output_is_deterministic() -> None:
    occupied = [TimeWindow(600, 660), TimeWindow(540, 555)]

    first = generate_slots(WORK_DAY, occupied, 45, 15)
    second = generate_slots(list(reversed(WORK_DAY)), list(reversed(occupied)), 45, 15)

    assert first == second
    assert first == sorted(first)


@pytest.mark.parametrize(('duration', 'step'), [(0, 30), (30, 0), (-15, 30)])
def test_non_positive_duration_or_step_is_rejected(duration: int, step: int) -> None:
    with pytest.raises(BookingValidationError):
        generate_slots(WORK_DAY, [], duration, step)


def test_every_generated_slot_is_a_free_interval() -> None:
    occupied = [TimeWindow(600, 645), TimeWindow(900, 930)]

    for slot in generate_slots(WORK_DAY, occupied, 45, 15):
        assert is_interval_free(WORK_DAY, occupied, slot, 45)


def test_apply_notice_drops_slots_inside_the_notice_period() -> None:
    slots = [480, 510, 540, 570]
    now = datetime(2026, 1, 6, 8, 5)

    assert apply_notice(slots, date(2026, 1, 6), now, min_notice_minutes=30) == [540, 570]
    assert apply_notice(slots, date(2026, 1, 6), now, min_notice_minutes=None) == slots


@pytest.mark.parametrize('step', [7, 4, 300])
def test_validate_step_rejects_steps_that_do_not_tile_the_day(step: int) -> None:
    with pytest.raises(BookingValidationError):
        validate_step(step)
