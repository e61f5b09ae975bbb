"""Schedule exception model definitions."""

from sqlalchemy import JSON, Column, Date, ForeignKey, Integer, String, UniqueConstraint
from agenda.database import Base

FULL_DAY_OFF = "FULL_DAY_OFF"
CUSTOM_RANGES = "CUSTOM_RANGES"
EXCEPTION_TYPES = (FULL_DAY_OFF, CUSTOM_RANGES)


class ScheduleException(Base):
    """Overrides an employee's weekly schedule for a single date."""
    __tablename__ = "employee_exceptions"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_employee_exceptions_date"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), index=True, nullable=False)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    exception_type = Column(String, nullable=False)
    # [{"start": "HH:MM", "end": "HH:MM"}, ...], only for CUSTOM_RANGES
    ranges = Column(JSON, default=list, nullable=False)
    reason = Column(String)
