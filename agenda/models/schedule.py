"""Weekly schedule model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Time, UniqueConstraint
from agenda.database import Base


class WorkSchedule(Base):
    """One weekday entry of an employee's recurring schedule (0 = Sunday)."""
    __tablename__ = "employee_schedules"
    __table_args__ = (
        UniqueConstraint("employee_id", "day_of_week", name="uq_employee_schedules_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_employee_schedules_day"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), index=True, nullable=False)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    is_work_day = Column(Boolean, default=False, nullable=False)
    start_time = Column(Time)
    end_time = Column(Time)
