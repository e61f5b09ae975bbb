from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import BookingError, NotFoundError, TransientUnavailableError
from agenda.core.tenant import get_tenant_id
from agenda.database import get_db
from agenda.models.exception import ScheduleException
from agenda.repository import upsert_by_natural_key
from agenda.routes.common import database_unavailable, ensure_database_ready, http_error
from agenda.routes.schedule_routes import get_tenant_employee
from agenda.schemas import ExceptionRequest, ExceptionResponse, exception_to_response

router = APIRouter(tags=['exceptions'])


@router.get('/{employee_id}', response_model=list[ExceptionResponse])
def list_exceptions(
    employee_id: int,
    date_from: date | None = Query(default=None, alias='from'),
    date_to: date | None = Query(default=None, alias='to'),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_tenant_employee(db, tenant_id, employee_id)

        query = db.query(ScheduleException).filter(
            ScheduleException.tenant_id == tenant_id,
            ScheduleException.employee_id == employee_id,
        )
        if date_from is not None:
            query = query.filter(ScheduleException.date >= date_from)
        if date_to is not None:
            query = query.filter(ScheduleException.date <= date_to)

        return [exception_to_response(item) for item in query.order_by(ScheduleException.date.asc()).all()]
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=ExceptionResponse, status_code=status.HTTP_201_CREATED)
def upsert_exception(
    data: ExceptionRequest,
    response: Response,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_tenant_employee(db, tenant_id, data.employee_id)

        exception, created = upsert_by_natural_key(
            db,
            ScheduleException,
            {'employee_id': data.employee_id, 'date': data.exception_date},
            {
                'tenant_id': tenant_id,
                'exception_type': data.exception_type,
                'ranges': [{'start': item.start, 'end': item.end} for item in data.ranges],
                'reason': data.reason,
            },
        )
        db.commit()
        db.refresh(exception)

        if not created:
            response.status_code = status.HTTP_200_OK
        return exception_to_response(exception)
    except BookingError as exc:
        db.rollback()
        raise http_error(exc) from exc
    except IntegrityError as exc:
        db.rollback()
        raise http_error(TransientUnavailableError('The exception was changed concurrently; please retry.')) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{exception_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_exception(
    exception_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        exception = db.query(ScheduleException).filter(
            ScheduleException.id == exception_id,
            ScheduleException.tenant_id == tenant_id,
        ).first()
        if exception is None:
            raise NotFoundError(f'Exception {exception_id} not found.')

        db.delete(exception)
        db.commit()
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
