from datetime import date, time

import pytest
from pydantic import ValidationError

from agenda.schemas import (
    CreateAppointmentRequest,
    ExceptionRequest,
    SettingsRequest,
    TimeRange,
    UpdateAppointmentRequest,
)


def test_create_appointment_request_reads_camel_case_and_trims_notes() -> None:
    request = CreateAppointmentRequest.model_validate(
        {
            'branchId': 1,
            'serviceId': 2,
            'employeeId': 3,
            'clientId': 4,
            'date': '2026-01-06',
            'time': '09:30',
            'notes': '   ',
        }
    )

    assert request.employee_id == 3
    assert request.date == date(2026, 1, 6)
    assert request.time == time(9, 30)
    assert request.notes is None


def test_create_appointment_request_rejects_non_positive_ids() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(
            branch_id=0,
            service_id=1,
            employee_id=1,
            client_id=1,
            date=date(2026, 1, 6),
            time=time(9, 0),
        )


def test_update_request_only_accepts_cancelled_status() -> None:
    assert UpdateAppointmentRequest.model_validate({'status': 'cancelled'}).status == 'cancelled'

    with pytest.raises(ValidationError):
        UpdateAppointmentRequest.model_validate({'status': 'confirmed'})


def test_time_range_normalizes_clock_values() -> None:
    assert TimeRange(start='9:05', end='24:00').model_dump() == {'start': '09:05', 'end': '24:00'}


def test_full_day_off_discards_ranges() -> None:
    request = ExceptionRequest.model_validate(
        {
            'employeeId': 1,
            'date': '2026-01-06',
            'type': 'FULL_DAY_OFF',
            'ranges': [{'start': '10:00', 'end': '11:00'}],
        }
    )

    assert request.ranges == []


def test_settings_request_tracks_only_the_fields_sent() -> None:
    request = SettingsRequest.model_validate({'minNoticeMinutes': None, 'emailReminders': '24, 1'})

    assert request.model_dump(exclude_unset=True) == {'min_notice_minutes': None, 'email_reminders': '24,1'}
