from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import BookingError, NotFoundError, TransientUnavailableError
from agenda.core.tenant import get_tenant_id
from agenda.database import get_db
from agenda.models.employee import Employee
from agenda.models.schedule import WorkSchedule
from agenda.repository import upsert_by_natural_key
from agenda.routes.common import database_unavailable, ensure_database_ready, http_error
from agenda.scheduling.windows import validate_weekly_schedule
from agenda.schemas import ScheduleDayResponse, WeeklyScheduleRequest

router = APIRouter(tags=['schedules'])


def get_tenant_employee(db: Session, tenant_id: str, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id, Employee.tenant_id == tenant_id).first()
    if employee is None:
        raise NotFoundError(f'Employee {employee_id} not found.')
    return employee


def _weekly_entries(db: Session, tenant_id: str, employee_id: int) -> list[WorkSchedule]:
    return db.query(WorkSchedule).filter(
        WorkSchedule.tenant_id == tenant_id,
        WorkSchedule.employee_id == employee_id,
    ).order_by(WorkSchedule.day_of_week.asc()).all()


@router.get('/{employee_id}/schedule', response_model=list[ScheduleDayResponse])
def get_weekly_schedule(
    employee_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_tenant_employee(db, tenant_id, employee_id)
        return _weekly_entries(db, tenant_id, employee_id)
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{employee_id}/schedule', response_model=list[ScheduleDayResponse])
def replace_weekly_schedule(
    employee_id: int,
    data: WeeklyScheduleRequest,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_tenant_employee(db, tenant_id, employee_id)
        validate_weekly_schedule(data.days)

        for day in data.days:
            upsert_by_natural_key(
                db,
                WorkSchedule,
                {'employee_id': employee_id, 'day_of_week': day.day_of_week},
                {
                    'tenant_id': tenant_id,
                    'is_work_day': day.is_work_day,
                    'start_time': day.start_time,
                    'end_time': day.end_time,
                },
            )
        db.commit()

        return _weekly_entries(db, tenant_id, employee_id)
    except BookingError as exc:
        db.rollback()
        raise http_error(exc) from exc
    except IntegrityError as exc:
        db.rollback()
        raise http_error(TransientUnavailableError('The schedule was changed concurrently; please retry.')) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
