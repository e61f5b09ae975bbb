from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import TransientUnavailableError
from agenda.core.tenant import get_tenant_id
from agenda.database import get_db
from agenda.models.settings import BookingSettings
from agenda.repository import get_booking_settings, upsert_by_natural_key
from agenda.routes.common import database_unavailable, ensure_database_ready, http_error
from agenda.schemas import SettingsRequest, SettingsResponse

router = APIRouter(tags=['settings'])

SETTINGS_FIELDS = (
    'slot_step_minutes',
    'min_notice_minutes',
    'email_reminders',
    'whatsapp_reminders',
    'webhook_url',
    'webhook_api_key',
)


def settings_to_response(settings: BookingSettings) -> SettingsResponse:
    return SettingsResponse(
        slot_step_minutes=settings.slot_step_minutes,
        min_notice_minutes=settings.min_notice_minutes,
        email_reminders=settings.email_reminders,
        whatsapp_reminders=settings.whatsapp_reminders,
        webhook_url=settings.webhook_url,
        has_webhook_api_key=bool(settings.webhook_api_key),
    )


@router.get('', response_model=SettingsResponse)
def get_settings(tenant_id: str = Depends(get_tenant_id), db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return settings_to_response(get_booking_settings(db, tenant_id))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('', response_model=SettingsResponse)
def update_settings(
    data: SettingsRequest,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        current = get_booking_settings(db, tenant_id)
        values = {field: getattr(current, field) for field in SETTINGS_FIELDS}
        values.update(data.model_dump(exclude_unset=True))

        settings, _ = upsert_by_natural_key(db, BookingSettings, {'tenant_id': tenant_id}, values)
        db.commit()
        db.refresh(settings)

        return settings_to_response(settings)
    except IntegrityError as exc:
        db.rollback()
        raise http_error(TransientUnavailableError('Settings were changed concurrently; please retry.')) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
