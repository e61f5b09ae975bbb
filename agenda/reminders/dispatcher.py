"""Periodic delivery of due reminders.

The dispatcher runs on its own thread and talks to the request handlers only
through the database. A failed delivery is terminal for that reminder; it is
left in ``failed`` for someone to requeue by hand.

Each reminder is claimed with a row lock that re-checks it is still pending,
so two workers sharing a database never deliver the same reminder twice.
"""

import logging
import threading
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from agenda.core import config
from agenda.core.errors import DeliveryFailedError, TransientUnavailableError
from agenda.database import SessionLocal
from agenda.models.reminder import (
    CHANNEL_EMAIL,
    REMINDER_CANCELLED,
    REMINDER_FAILED,
    REMINDER_PENDING,
    REMINDER_SENT,
    Reminder,
)
from agenda.reminders.notifier import WebhookNotifier
from agenda.repository import get_booking_settings

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500


def _format_offset(offset_hours: float) -> str:
    return f'{offset_hours:g}h_before'


def build_template_data(reminder: Reminder) -> dict:
    appointment = reminder.appointment
    return {
        'trigger': _format_offset(reminder.offset_hours),
        'client': appointment.client.name,
        'email': appointment.client.email,
        'phone': appointment.client.phone,
        'date': appointment.date.isoformat(),
        'time': appointment.start_time.strftime('%H:%M'),
        'service': appointment.service.name,
        'branch': appointment.branch.name,
        'employee': appointment.employee.name,
    }


class ReminderDispatcher:
    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        notifier=None,
        interval_seconds: float | None = None,
        batch_size: int | None = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or WebhookNotifier()
        self.interval_seconds = interval_seconds or config.REMINDER_SWEEP_INTERVAL_SECONDS
        self.batch_size = batch_size or config.REMINDER_BATCH_SIZE
        self._stop_event = threading.Event()
        self._sweep_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name='reminder-dispatcher', daemon=True)
        self._thread.start()
        logger.info('Reminder dispatcher started (every %ss)', self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info('Reminder dispatcher stopped')

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except SQLAlchemyError:
                logger.exception('Reminder sweep failed; retrying on the next tick')
            self._stop_event.wait(self.interval_seconds)

    def run_once(
        self,
        now: datetime | None = None,
        tenant_id: str | None = None,
        batch_size: int | None = None,
        lock_timeout: float | None = None,
    ) -> dict:
        """Deliver due reminders, one claimed row per transaction.

        With ``lock_timeout`` set, a sweep already in progress raises
        :class:`TransientUnavailableError` instead of waiting for it.
        """
        now = now or datetime.now()
        summary = {'processed': 0, 'sent': 0, 'failed': 0, 'cancelled': 0}

        if not self._sweep_lock.acquire(timeout=-1 if lock_timeout is None else lock_timeout):
            raise TransientUnavailableError('A reminder sweep is already running; please retry.')

        try:
            db = self.session_factory()
            try:
                for reminder_id in self._due_reminder_ids(db, now, tenant_id, batch_size or self.batch_size):
                    reminder = self._claim(db, reminder_id)
                    if reminder is None:
                        db.rollback()
                        continue
                    outcome = self._deliver(db, reminder, now)
                    summary['processed'] += 1
                    summary[outcome] += 1
                    db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            finally:
                db.close()
        finally:
            self._sweep_lock.release()

        if summary['processed']:
            logger.info(
                'Reminder sweep: %(processed)s processed, %(sent)s sent, %(failed)s failed, %(cancelled)s cancelled',
                summary,
            )
        return summary

    def _due_reminder_ids(self, db: Session, now: datetime, tenant_id: str | None, limit: int) -> list[int]:
        query = db.query(Reminder.id).filter(
            Reminder.status == REMINDER_PENDING,
            Reminder.scheduled_at <= now,
        )
        if tenant_id is not None:
            query = query.filter(Reminder.tenant_id == tenant_id)
        rows = query.order_by(Reminder.scheduled_at.asc(), Reminder.id.asc()).limit(limit).all()
        db.rollback()
        return [row.id for row in rows]

    def _claim(self, db: Session, reminder_id: int) -> Reminder | None:
        """Lock one reminder for this transaction, or ``None`` if another worker has it or it is no longer pending."""
        return db.query(Reminder).filter(
            Reminder.id == reminder_id,
            Reminder.status == REMINDER_PENDING,
        ).with_for_update(skip_locked=True).populate_existing().first()

    def _deliver(self, db: Session, reminder: Reminder, now: datetime) -> str:
        appointment = reminder.appointment
        if appointment is None or appointment.is_cancelled:
            reminder.status = REMINDER_CANCELLED
            return 'cancelled'

        reminder.attempted_at = now
        settings = get_booking_settings(db, reminder.tenant_id)
        recipient = appointment.client.email if reminder.channel == CHANNEL_EMAIL else appointment.client.phone

        try:
            if not recipient:
                raise DeliveryFailedError(f'Client {appointment.client_id} has no {reminder.channel} contact.')
            self.notifier.send(
                reminder.channel,
                recipient,
                build_template_data(reminder),
                webhook_url=settings.webhook_url,
                api_key=settings.webhook_api_key,
            )
        except DeliveryFailedError as exc:
            return self._mark_failed(reminder, exc.message)
        except Exception as exc:
            logger.exception('Unexpected error delivering reminder %s', reminder.id)
            return self._mark_failed(reminder, str(exc) or exc.__class__.__name__)

        reminder.status = REMINDER_SENT
        reminder.last_error = None
        return 'sent'

    def _mark_failed(self, reminder: Reminder, message: str) -> str:
        reminder.status = REMINDER_FAILED
        reminder.last_error = message[:MAX_ERROR_LENGTH]
        logger.error(
            'DELIVERY_FAILED reminder=%s tenant=%s appointment=%s channel=%s: %s',
            reminder.id,
            reminder.tenant_id,
            reminder.appointment_id,
            reminder.channel,
            message,
        )
        return 'failed'


dispatcher = ReminderDispatcher()
