from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core import config
from agenda.core.errors import BookingError, BookingValidationError, NotFoundError
from agenda.core.tenant import get_tenant_id
from agenda.database import get_db
from agenda.models.reminder import REMINDER_FAILED, REMINDER_PENDING, REMINDER_STATUSES, Reminder
from agenda.reminders.dispatcher import dispatcher
from agenda.routes.common import database_unavailable, ensure_database_ready, http_error
from agenda.schemas import ReminderResponse, ReminderSweepResponse

router = APIRouter(tags=['reminders'])


@router.get('', response_model=list[ReminderResponse])
def list_reminders(
    reminder_status: str | None = Query(default=None, alias='status'),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    if reminder_status is not None and reminder_status not in REMINDER_STATUSES:
        raise http_error(BookingValidationError(f'Unknown reminder status {reminder_status!r}.'))

    try:
        query = db.query(Reminder).filter(Reminder.tenant_id == tenant_id)
        if reminder_status is not None:
            query = query.filter(Reminder.status == reminder_status)
        return query.order_by(Reminder.scheduled_at.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/{reminder_id}/requeue', response_model=ReminderResponse)
def requeue_reminder(
    reminder_id: int,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        reminder = db.query(Reminder).filter(
            Reminder.id == reminder_id,
            Reminder.tenant_id == tenant_id,
        ).first()
        if reminder is None:
            raise NotFoundError(f'Reminder {reminder_id} not found.')
        if reminder.status != REMINDER_FAILED:
            raise BookingValidationError('Only failed reminders can be requeued.')

        reminder.status = REMINDER_PENDING
        reminder.last_error = None
        db.commit()
        db.refresh(reminder)
        return reminder
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/process', response_model=ReminderSweepResponse)
def process_reminders(tenant_id: str = Depends(get_tenant_id)):
    """Deliver the tenant's due reminders now instead of waiting for the next tick."""
    ensure_database_ready()

    try:
        return dispatcher.run_once(
            tenant_id=tenant_id,
            batch_size=config.REMINDER_ON_DEMAND_BATCH_SIZE,
            lock_timeout=config.REMINDER_ON_DEMAND_LOCK_TIMEOUT_SECONDS,
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
