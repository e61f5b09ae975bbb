"""Shared persistence helpers."""

from typing import Any

from sqlalchemy.orm import Session

from agenda.core import config
from agenda.models.settings import BookingSettings


def upsert_by_natural_key(db: Session, model, natural_key: dict[str, Any], values: dict[str, Any]):
    """Update the row identified by ``natural_key`` or insert it.

    The caller owns the transaction. The table must carry a unique constraint
    on the natural key so a concurrent duplicate insert fails on commit
    instead of producing a second row.
    """
    instance = db.query(model).filter_by(**natural_key).first()
    created = instance is None

    if created:
        instance = model(**natural_key)
        db.add(instance)

    for key, value in values.items():
        setattr(instance, key, value)

    db.flush()
    return instance, created


def get_booking_settings(db: Session, tenant_id: str) -> BookingSettings:
    """Return the tenant's settings, or unsaved defaults when none exist."""
    settings = db.query(BookingSettings).filter(BookingSettings.tenant_id == tenant_id).first()
    if settings is not None:
        return settings

    return BookingSettings(
        tenant_id=tenant_id,
        slot_step_minutes=config.DEFAULT_SLOT_STEP_MINUTES,
        min_notice_minutes=None,
        email_reminders=config.DEFAULT_EMAIL_REMINDERS,
        whatsapp_reminders=config.DEFAULT_WHATSAPP_REMINDERS,
        webhook_url=None,
        webhook_api_key=None,
    )
