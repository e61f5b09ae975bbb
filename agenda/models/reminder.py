"""Reminder model definitions."""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from agenda.database import Base

CHANNEL_EMAIL = "email"
CHANNEL_WHATSAPP = "whatsapp"

REMINDER_PENDING = "pending"
REMINDER_SENT = "sent"
REMINDER_FAILED = "failed"
REMINDER_CANCELLED = "cancelled"
REMINDER_STATUSES = (REMINDER_PENDING, REMINDER_SENT, REMINDER_FAILED, REMINDER_CANCELLED)


class Reminder(Base):
    """A notification due before an appointment on one channel."""
    __tablename__ = "reminders"
    __table_args__ = (
        Index("idx_reminders_status_due", "status", "scheduled_at"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), index=True, nullable=False)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False)
    channel = Column(String, nullable=False)
    offset_hours = Column(Float, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    status = Column(String, default=REMINDER_PENDING, nullable=False)
    attempted_at = Column(DateTime)
    last_error = Column(String)

    appointment = relationship("Appointment")
