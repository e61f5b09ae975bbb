"""Request and response contracts.

Wire names are camelCase; Python code only sees the snake_case names used by
the models. Requests reject unknown fields.
"""

from datetime import date, datetime, time
from typing import Literal

from pydantic import BaseModel, Field, PositiveInt, field_validator, model_validator
from pydantic.alias_generators import to_camel

from agenda.core.errors import BookingValidationError
from agenda.models.appointment import Appointment
from agenda.models.exception import CUSTOM_RANGES, FULL_DAY_OFF, ScheduleException
from agenda.reminders.planning import MAX_REMINDER_OFFSET_HOURS, is_valid_offset
from agenda.scheduling.slots import MAX_NOTICE_MINUTES, validate_step
from agenda.scheduling.windows import format_minutes, parse_clock

MAX_NOTES_LENGTH = 600


class ApiModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class RequestModel(ApiModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = 'forbid'


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_NOTES_LENGTH} characters or fewer.')

    return normalized


class TimeRange(RequestModel):
    start: str
    end: str

    @model_validator(mode='after')
    def validate_bounds(self) -> 'TimeRange':
        try:
            start, end = parse_clock(self.start), parse_clock(self.end)
        except BookingValidationError as exc:
            raise ValueError(exc.message) from exc
        if start >= end:
            raise ValueError('A range must start before it ends.')
        self.start, self.end = format_minutes(start), format_minutes(end)
        return self


class ScheduleDay(RequestModel):
    day_of_week: int = Field(ge=0, le=6)
    is_work_day: bool
    start_time: time | None = None
    end_time: time | None = None

    @model_validator(mode='after')
    def validate_hours(self) -> 'ScheduleDay':
        if not self.is_work_day:
            self.start_time = None
            self.end_time = None
            return self
        if self.start_time is None or self.end_time is None:
            raise ValueError('Work days need a start and an end time.')
        if self.start_time >= self.end_time:
            raise ValueError('A work day must start before it ends.')
        return self


class WeeklyScheduleRequest(RequestModel):
    days: list[ScheduleDay]

    @field_validator('days')
    @classmethod
    def validate_one_entry_per_day(cls, value: list[ScheduleDay]) -> list[ScheduleDay]:
        if sorted(day.day_of_week for day in value) != list(range(7)):
            raise ValueError('The weekly schedule needs exactly one entry for each day 0-6.')
        return sorted(value, key=lambda day: day.day_of_week)


class ScheduleDayResponse(ApiModel):
    day_of_week: int
    is_work_day: bool
    start_time: time | None = None
    end_time: time | None = None


class ExceptionRequest(RequestModel):
    employee_id: PositiveInt
    exception_date: date = Field(alias='date')
    exception_type: Literal['FULL_DAY_OFF', 'CUSTOM_RANGES'] = Field(alias='type')
    ranges: list[TimeRange] = Field(default_factory=list)
    reason: str | None = None

    @model_validator(mode='after')
    def validate_ranges(self) -> 'ExceptionRequest':
        if self.exception_type == FULL_DAY_OFF:
            self.ranges = []
        elif self.exception_type == CUSTOM_RANGES and not self.ranges:
            raise ValueError('CUSTOM_RANGES exceptions need at least one range.')
        return self


class ExceptionResponse(ApiModel):
    id: int
    employee_id: int
    exception_date: date = Field(alias='date')
    exception_type: str = Field(alias='type')
    ranges: list[dict]
    reason: str | None = None


def exception_to_response(exception: ScheduleException) -> ExceptionResponse:
    return ExceptionResponse(
        id=exception.id,
        employee_id=exception.employee_id,
        exception_date=exception.date,
        exception_type=exception.exception_type,
        ranges=list(exception.ranges or []),
        reason=exception.reason,
    )


class SlotResponse(ApiModel):
    time: str
    start_time: datetime
    end_time: datetime


class AvailabilityResponse(ApiModel):
    available: bool


class EmployeeSummaryResponse(ApiModel):
    id: int
    name: str
    branch_id: int


class CreateAppointmentRequest(RequestModel):
    branch_id: PositiveInt
    service_id: PositiveInt
    employee_id: PositiveInt
    client_id: PositiveInt
    date: date
    time: time
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class UpdateAppointmentRequest(RequestModel):
    new_date: date | None = Field(default=None, alias='date')
    new_time: time | None = Field(default=None, alias='time')
    service_id: PositiveInt | None = None
    employee_id: PositiveInt | None = None
    notes: str | None = None
    status: Literal['cancelled'] | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class AppointmentResponse(ApiModel):
    id: int
    branch_id: int
    service_id: int
    employee_id: int
    client_id: int
    date: date
    time: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    notes: str | None = None


def appointment_to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        branch_id=appointment.branch_id,
        service_id=appointment.service_id,
        employee_id=appointment.employee_id,
        client_id=appointment.client_id,
        date=appointment.date,
        time=appointment.start_time.strftime('%H:%M'),
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        duration_minutes=appointment.duration_minutes,
        status=appointment.status,
        notes=appointment.notes,
    )


class SettingsRequest(RequestModel):
    """Partial update; fields left out keep their current value."""

    slot_step_minutes: int | None = None
    min_notice_minutes: int | None = Field(default=None, ge=0, le=MAX_NOTICE_MINUTES)
    email_reminders: str | None = None
    whatsapp_reminders: str | None = None
    webhook_url: str | None = None
    webhook_api_key: str | None = None

    @field_validator('slot_step_minutes')
    @classmethod
    def validate_slot_step(cls, value: int | None) -> int:
        if value is None:
            raise ValueError('Slot step cannot be null.')
        try:
            validate_step(value)
        except BookingValidationError as exc:
            raise ValueError(exc.message) from exc
        return value

    @field_validator('email_reminders', 'whatsapp_reminders')
    @classmethod
    def validate_offsets(cls, value: str | None) -> str:
        if value is None:
            raise ValueError('Use an empty string to disable reminders on a channel.')
        parts = [part.strip() for part in value.split(',') if part.strip()]
        for part in parts:
            try:
                offset = float(part)
            except ValueError as exc:
                raise ValueError(f'{part!r} is not a number of hours.') from exc
            if not is_valid_offset(offset):
                raise ValueError(f'Reminder offsets must be between 0 and {MAX_REMINDER_OFFSET_HOURS} hours.')
        return ','.join(parts)


class SettingsResponse(ApiModel):
    slot_step_minutes: int
    min_notice_minutes: int | None = None
    email_reminders: str
    whatsapp_reminders: str
    webhook_url: str | None = None
    has_webhook_api_key: bool


class ReminderResponse(ApiModel):
    id: int
    appointment_id: int
    channel: str
    offset_hours: float
    scheduled_at: datetime
    status: str
    attempted_at: datetime | None = None
    last_error: str | None = None


class ReminderSweepResponse(ApiModel):
    processed: int
    sent: int
    failed: int
    cancelled: int
