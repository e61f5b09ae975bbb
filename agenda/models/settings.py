"""Per-tenant booking settings."""

from sqlalchemy import Column, ForeignKey, Integer, String
from agenda.database import Base


class BookingSettings(Base):
    """Slot granularity, notice policy and reminder delivery for a tenant."""
    __tablename__ = "booking_settings"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), unique=True, nullable=False)
    slot_step_minutes = Column(Integer, nullable=False)
    min_notice_minutes = Column(Integer)
    email_reminders = Column(String, default="", nullable=False)
    whatsapp_reminders = Column(String, default="", nullable=False)
    webhook_url = Column(String)
    webhook_api_key = Column(String)
