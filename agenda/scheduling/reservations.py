"""The only write path for appointments.

Every reservation for one (tenant, employee, date) runs its re-check and
insert while holding that key's lock, so at most one of several overlapping
requests can commit. On PostgreSQL the employee row is also locked for the
length of the transaction, which extends the guarantee across processes; the
partial unique index on live start times is the last line of defence.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from threading import Lock
from typing import Callable, Hashable, Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agenda.core import config
from agenda.core.errors import (
    BookingError,
    BookingValidationError,
    NotFoundError,
    SlotTakenError,
    TransientUnavailableError,
)
from agenda.models.appointment import STATUS_CANCELLED, STATUS_CONFIRMED, Appointment
from agenda.models.branch import Branch
from agenda.models.client import Client
from agenda.models.employee import Employee
from agenda.models.service import Service
from agenda.reminders.planning import cancel_pending_reminders, plan_reminders
from agenda.repository import get_booking_settings
from agenda.scheduling.ledger import find_conflict, occupied_intervals
from agenda.scheduling.slots import fits_window, is_interval_free
from agenda.scheduling.windows import load_windows, to_minutes

logger = logging.getLogger(__name__)


@dataclass
class ReservationRequest:
    branch_id: int
    service_id: int
    employee_id: int
    client_id: int
    date: date
    start_time: time
    notes: str | None = None


@dataclass
class RescheduleRequest:
    on_date: date | None = None
    start_time: time | None = None
    service_id: int | None = None
    employee_id: int | None = None
    notes: str | None = None


class KeyedLocks:
    """One lock per key, created on demand and dropped when nobody holds it."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._entries: dict[Hashable, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, key: Hashable, timeout: float) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, [Lock(), 0])
            entry[1] += 1

        acquired = entry[0].acquire(timeout=timeout)
        try:
            if not acquired:
                raise TransientUnavailableError('Could not confirm the booking in time; please try again.')
            yield
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]


def _get_owned(db: Session, model, tenant_id: str, entity_id: int, label: str):
    instance = db.query(model).filter(model.id == entity_id, model.tenant_id == tenant_id).first()
    if instance is None:
        raise NotFoundError(f'{label} {entity_id} not found.')
    return instance


class ReservationCoordinator:
    def __init__(
        self,
        lock_timeout: float | None = None,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.lock_timeout = lock_timeout or config.RESERVATION_LOCK_TIMEOUT_SECONDS
        self.locks = locks or KeyedLocks()
        self.clock = clock

    def reserve(self, db: Session, tenant_id: str, request: ReservationRequest) -> Appointment:
        _get_owned(db, Branch, tenant_id, request.branch_id, 'Branch')
        _get_owned(db, Client, tenant_id, request.client_id, 'Client')
        service, employee = self.resolve_service_and_employee(db, tenant_id, request.service_id, request.employee_id)
        if employee.branch_id != request.branch_id:
            raise BookingValidationError(f'Employee {employee.id} does not work at branch {request.branch_id}.')

        start_time, end_time = self._interval(request.date, request.start_time, service.duration_minutes)
        settings = get_booking_settings(db, tenant_id)
        self._check_notice(settings.min_notice_minutes, start_time)

        def build() -> Appointment:
            appointment = Appointment(
                tenant_id=tenant_id,
                branch_id=request.branch_id,
                service_id=service.id,
                employee_id=employee.id,
                client_id=request.client_id,
                date=request.date,
                start_time=start_time,
                end_time=end_time,
                duration_minutes=service.duration_minutes,
                status=STATUS_CONFIRMED,
                notes=request.notes,
            )
            db.add(appointment)
            return appointment

        appointment = self._commit_interval(db, tenant_id, employee.id, start_time, end_time, build, settings)
        logger.info(
            'Reserved appointment %s tenant=%s employee=%s %s',
            appointment.id,
            tenant_id,
            employee.id,
            start_time.isoformat(),
        )
        return appointment

    def reschedule(self, db: Session, tenant_id: str, appointment_id: int, changes: RescheduleRequest) -> Appointment:
        appointment = _get_owned(db, Appointment, tenant_id, appointment_id, 'Appointment')
        if appointment.is_cancelled:
            raise BookingValidationError('Cancelled appointments cannot be changed.')

        service, employee = self.resolve_service_and_employee(
            db,
            tenant_id,
            changes.service_id or appointment.service_id,
            changes.employee_id or appointment.employee_id,
        )
        if employee.branch_id != appointment.branch_id:
            raise BookingValidationError(f'Employee {employee.id} does not work at branch {appointment.branch_id}.')

        on_date = changes.on_date or appointment.date
        start_of_day = changes.start_time or appointment.start_time.time()
        start_time, end_time = self._interval(on_date, start_of_day, service.duration_minutes)
        settings = get_booking_settings(db, tenant_id)
        if start_time != appointment.start_time:
            self._check_notice(settings.min_notice_minutes, start_time)

        def apply() -> Appointment:
            appointment.service_id = service.id
            appointment.employee_id = employee.id
            appointment.date = on_date
            appointment.start_time = start_time
            appointment.end_time = end_time
            appointment.duration_minutes = service.duration_minutes
            if changes.notes is not None:
                appointment.notes = changes.notes
            cancel_pending_reminders(db, appointment.id)
            return appointment

        self._commit_interval(
            db, tenant_id, employee.id, start_time, end_time, apply, settings, exclude_appointment_id=appointment.id
        )
        logger.info('Rescheduled appointment %s tenant=%s to %s', appointment.id, tenant_id, start_time.isoformat())
        return appointment

    def cancel(self, db: Session, tenant_id: str, appointment_id: int) -> Appointment:
        appointment = _get_owned(db, Appointment, tenant_id, appointment_id, 'Appointment')
        if appointment.is_cancelled:
            return appointment

        appointment.status = STATUS_CANCELLED
        cancel_pending_reminders(db, appointment.id)
        db.commit()
        db.refresh(appointment)
        logger.info('Cancelled appointment %s tenant=%s', appointment.id, tenant_id)
        return appointment

    def is_available(
        self,
        db: Session,
        tenant_id: str,
        employee_id: int,
        on_date: date,
        start_time: time,
        duration_minutes: int,
    ) -> bool:
        windows = load_windows(db, tenant_id, employee_id, on_date)
        occupied = occupied_intervals(db, tenant_id, employee_id, on_date)
        return is_interval_free(windows, occupied, to_minutes(start_time), duration_minutes)

    def resolve_service_and_employee(self, db: Session, tenant_id: str, service_id: int, employee_id: int):
        service = _get_owned(db, Service, tenant_id, service_id, 'Service')
        employee = _get_owned(db, Employee, tenant_id, employee_id, 'Employee')
        if not service.is_active:
            raise BookingValidationError(f'Service {service.id} is not active.')
        if not employee.is_active:
            raise BookingValidationError(f'Employee {employee.id} is not active.')
        if not employee.offers(service.id):
            raise BookingValidationError(f'Employee {employee.id} does not offer service {service.id}.')
        return service, employee

    def _interval(self, on_date: date, start_of_day: time, duration_minutes: int) -> tuple[datetime, datetime]:
        start_time = datetime.combine(on_date, start_of_day).replace(second=0, microsecond=0)
        return start_time, start_time + timedelta(minutes=duration_minutes)

    def _check_notice(self, min_notice_minutes: int | None, start_time: datetime) -> None:
        if min_notice_minutes is None:
            return
        if start_time < self.clock() + timedelta(minutes=min_notice_minutes):
            raise BookingValidationError(
                f'Appointments must be booked at least {min_notice_minutes} minutes in advance.'
            )

    def _commit_interval(
        self,
        db: Session,
        tenant_id: str,
        employee_id: int,
        start_time: datetime,
        end_time: datetime,
        write: Callable[[], Appointment],
        settings,
        exclude_appointment_id: int | None = None,
    ) -> Appointment:
        on_date = start_time.date()
        context = (
            f'tenant={tenant_id} employee={employee_id} date={on_date.isoformat()} '
            f'interval={start_time:%H:%M}-{end_time:%H:%M}'
        )

        try:
            with self.locks.hold((tenant_id, employee_id, on_date), self.lock_timeout):
                try:
                    # Serializes writers from other processes on databases with row locks.
                    db.query(Employee).filter(Employee.id == employee_id).with_for_update().one()

                    windows = load_windows(db, tenant_id, employee_id, on_date)
                    start_minute = to_minutes(start_time.time())
                    end_minute = start_minute + int((end_time - start_time).total_seconds() // 60)
                    if not fits_window(windows, start_minute, end_minute):
                        raise BookingValidationError('The requested time is outside the employee\'s working hours.')

                    if find_conflict(db, tenant_id, employee_id, start_time, end_time, exclude_appointment_id):
                        raise SlotTakenError()

                    appointment = write()
                    db.flush()
                    plan_reminders(db, appointment, settings, self.clock())
                    db.commit()
                except IntegrityError as exc:
                    db.rollback()
                    raise SlotTakenError() from exc
                except BookingError:
                    db.rollback()
                    raise
                except Exception:
                    db.rollback()
                    logger.exception('Reservation failed unexpectedly: %s', context)
                    raise
        except SlotTakenError:
            logger.warning('SLOT_TAKEN %s', context)
            raise
        except TransientUnavailableError:
            logger.warning('Reservation lock timed out: %s', context)
            raise

        db.refresh(appointment)
        return appointment


coordinator = ReservationCoordinator()
