"""Occupied intervals derived from live appointments."""

from datetime import date, datetime, time

from sqlalchemy.orm import Session

from agenda.models.appointment import STATUS_CANCELLED, Appointment
from agenda.scheduling.windows import TimeWindow


def _minutes_from_midnight(on_date: date, instant: datetime) -> int:
    delta = instant - datetime.combine(on_date, time())
    return int(delta.total_seconds() // 60)


def live_appointments(
    db: Session,
    tenant_id: str,
    employee_id: int,
    on_date: date,
    exclude_appointment_id: int | None = None,
) -> list[Appointment]:
    query = db.query(Appointment).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.employee_id == employee_id,
        Appointment.date == on_date,
        Appointment.status != STATUS_CANCELLED,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.order_by(Appointment.start_time.asc()).all()


def occupied_intervals(
    db: Session,
    tenant_id: str,
    employee_id: int,
    on_date: date,
    exclude_appointment_id: int | None = None,
) -> list[TimeWindow]:
    return [
        TimeWindow(
            _minutes_from_midnight(on_date, appointment.start_time),
            _minutes_from_midnight(on_date, appointment.end_time),
        )
        for appointment in live_appointments(db, tenant_id, employee_id, on_date, exclude_appointment_id)
    ]


def find_conflict(
    db: Session,
    tenant_id: str,
    employee_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_appointment_id: int | None = None,
) -> Appointment | None:
    query = db.query(Appointment).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.employee_id == employee_id,
        Appointment.status != STATUS_CANCELLED,
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.first()
