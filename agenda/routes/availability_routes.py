from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import BookingError, NotFoundError
from agenda.core.tenant import get_tenant_id
from agenda.database import get_db
from agenda.models.branch import Branch
from agenda.models.employee import Employee
from agenda.repository import get_booking_settings
from agenda.routes.common import database_unavailable, ensure_database_ready, http_error
from agenda.scheduling.ledger import occupied_intervals
from agenda.scheduling.reservations import coordinator
from agenda.scheduling.slots import apply_notice, generate_slots
from agenda.scheduling.windows import format_minutes, load_windows
from agenda.schemas import AvailabilityResponse, EmployeeSummaryResponse, SlotResponse

router = APIRouter(tags=['availability'])


def slot_to_response(slot_date: date, start_minute: int, duration_minutes: int) -> SlotResponse:
    start_time = datetime.combine(slot_date, time()) + timedelta(minutes=start_minute)
    return SlotResponse(
        time=format_minutes(start_minute),
        start_time=start_time,
        end_time=start_time + timedelta(minutes=duration_minutes),
    )


def compute_slots(db: Session, tenant_id: str, employee_id: int, service_id: int, slot_date: date) -> list[SlotResponse]:
    service, employee = coordinator.resolve_service_and_employee(db, tenant_id, service_id, employee_id)
    settings = get_booking_settings(db, tenant_id)

    windows = load_windows(db, tenant_id, employee.id, slot_date)
    occupied = occupied_intervals(db, tenant_id, employee.id, slot_date)
    slots = generate_slots(windows, occupied, service.duration_minutes, settings.slot_step_minutes)
    slots = apply_notice(slots, slot_date, datetime.now(), settings.min_notice_minutes)

    return [slot_to_response(slot_date, slot, service.duration_minutes) for slot in slots]


@router.get('/slots', response_model=list[SlotResponse])
def list_slots(
    employee_id: int = Query(..., alias='employeeId', gt=0),
    service_id: int = Query(..., alias='serviceId', gt=0),
    slot_date: date = Query(..., alias='date'),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return compute_slots(db, tenant_id, employee_id, service_id, slot_date)
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def _requested_duration(db: Session, tenant_id: str, employee_id: int, service_id: int | None) -> int:
    if service_id is not None:
        service, _ = coordinator.resolve_service_and_employee(db, tenant_id, service_id, employee_id)
        return service.duration_minutes
    return get_booking_settings(db, tenant_id).slot_step_minutes


@router.get('/availability', response_model=AvailabilityResponse)
def check_availability(
    employee_id: int = Query(..., alias='employeeId', gt=0),
    slot_date: date = Query(..., alias='date'),
    slot_time: time = Query(..., alias='time'),
    service_id: int | None = Query(default=None, alias='serviceId', gt=0),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        employee = db.query(Employee).filter(Employee.id == employee_id, Employee.tenant_id == tenant_id).first()
        if employee is None:
            raise NotFoundError(f'Employee {employee_id} not found.')

        duration_minutes = _requested_duration(db, tenant_id, employee_id, service_id)
        available = coordinator.is_available(db, tenant_id, employee_id, slot_date, slot_time, duration_minutes)
        return AvailabilityResponse(available=available)
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/availability/employees', response_model=list[EmployeeSummaryResponse])
def list_available_employees(
    branch_id: int = Query(..., alias='branchId', gt=0),
    slot_date: date = Query(..., alias='date'),
    slot_time: time = Query(..., alias='time'),
    service_id: int | None = Query(default=None, alias='serviceId', gt=0),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        branch = db.query(Branch).filter(Branch.id == branch_id, Branch.tenant_id == tenant_id).first()
        if branch is None:
            raise NotFoundError(f'Branch {branch_id} not found.')

        employees = db.query(Employee).filter(
            Employee.tenant_id == tenant_id,
            Employee.branch_id == branch_id,
            Employee.is_active.is_(True),
        ).order_by(Employee.name.asc()).all()

        available: list[EmployeeSummaryResponse] = []
        for employee in employees:
            if service_id is not None and not employee.offers(service_id):
                continue

            duration_minutes = _requested_duration(db, tenant_id, employee.id, service_id)
            if coordinator.is_available(db, tenant_id, employee.id, slot_date, slot_time, duration_minutes):
                available.append(
                    EmployeeSummaryResponse(id=employee.id, name=employee.name, branch_id=employee.branch_id)
                )

        return available
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
