import logging
import math
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from agenda.models.appointment import Appointment
from agenda.models.reminder import (
    CHANNEL_EMAIL,
    CHANNEL_WHATSAPP,
    REMINDER_CANCELLED,
    REMINDER_PENDING,
    Reminder,
)
from agenda.models.settings import BookingSettings

logger = logging.getLogger(__name__)

MAX_REMINDER_OFFSET_HOURS = 24 * 365


def is_valid_offset(offset: float) -> bool:
    return math.isfinite(offset) and 0 < offset <= MAX_REMINDER_OFFSET_HOURS


def parse_offsets(value: str | None) -> list[float]:
    """Parse ``"24,1,0.5"`` into hour offsets, ignoring blanks, junk and out-of-range values."""
    offsets: list[float] = []
    for part in (value or '').split(','):
        try:
            offset = float(part.strip())
        except ValueError:
            continue
        if is_valid_offset(offset) and offset not in offsets:
            offsets.append(offset)
    return offsets


def plan_reminders(db: Session, appointment: Appointment, settings: BookingSettings, now: datetime) -> list[Reminder]:
    if appointment.start_time <= now:
        return []

    planned: list[Reminder] = []
    channels = (
        (CHANNEL_EMAIL, settings.email_reminders),
        (CHANNEL_WHATSAPP, settings.whatsapp_reminders),
    )
    for channel, offsets in channels:
        for offset_hours in parse_offsets(offsets):
            reminder = Reminder(
                tenant_id=appointment.tenant_id,
                appointment_id=appointment.id,
                channel=channel,
                offset_hours=offset_hours,
                scheduled_at=appointment.start_time - timedelta(hours=offset_hours),
                status=REMINDER_PENDING,
            )
            db.add(reminder)
            planned.append(reminder)

    logger.debug('Planned %s reminders for appointment %s', len(planned), appointment.id)
    return planned


def cancel_pending_reminders(db: Session, appointment_id: int) -> int:
    return db.query(Reminder).filter(
        Reminder.appointment_id == appointment_id,
        Reminder.status == REMINDER_PENDING,
    ).update({Reminder.status: REMINDER_CANCELLED}, synchronize_session=False)
