from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import BookingError, BookingValidationError, NotFoundError
from agenda.core.tenant import get_tenant_id
from agenda.database import get_db
from agenda.models.appointment import APPOINTMENT_STATUSES, Appointment
from agenda.routes.common import database_unavailable, ensure_database_ready, http_error
from agenda.scheduling.reservations import ReservationRequest, RescheduleRequest, coordinator
from agenda.schemas import (
    AppointmentResponse,
    CreateAppointmentRequest,
    UpdateAppointmentRequest,
    appointment_to_response,
)

router = APIRouter(tags=['appointments'])


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    branch_id: int | None = Query(default=None, alias='branchId'),
    employee_id: int | None = Query(default=None, alias='employeeId'),
    appointment_date: date | None = Query(default=None, alias='date'),
    appointment_status: str | None = Query(default=None, alias='status'),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    if appointment_status is not None and appointment_status not in APPOINTMENT_STATUSES:
        raise http_error(BookingValidationError(f'Unknown appointment status {appointment_status!r}.'))

    try:
        query = db.query(Appointment).filter(Appointment.tenant_id == tenant_id)
        if branch_id is not None:
            query = query.filter(Appointment.branch_id == branch_id)
        if employee_id is not None:
            query = query.filter(Appointment.employee_id == employee_id)
        if appointment_date is not None:
            query = query.filter(Appointment.date == appointment_date)
        if appointment_status is not None:
            query = query.filter(Appointment.status == appointment_status)

        appointments = query.order_by(Appointment.start_time.asc()).all()
        return [appointment_to_response(appointment) for appointment in appointments]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.tenant_id == tenant_id,
        ).first()
        if appointment is None:
            raise NotFoundError(f'Appointment {appointment_id} not found.')

        return appointment_to_response(appointment)
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    request = ReservationRequest(
        branch_id=data.branch_id,
        service_id=data.service_id,
        employee_id=data.employee_id,
        client_id=data.client_id,
        date=data.date,
        start_time=data.time,
        notes=data.notes,
    )

    try:
        appointment = coordinator.reserve(db, tenant_id, request)
        return appointment_to_response(appointment)
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        if data.status is not None:
            appointment = coordinator.cancel(db, tenant_id, appointment_id)
        else:
            appointment = coordinator.reschedule(
                db,
                tenant_id,
                appointment_id,
                RescheduleRequest(
                    on_date=data.new_date,
                    start_time=data.new_time,
                    service_id=data.service_id,
                    employee_id=data.employee_id,
                    notes=data.notes,
                ),
            )
        return appointment_to_response(appointment)
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def cancel_appointment(
    appointment_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        coordinator.cancel(db, tenant_id, appointment_id)
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
