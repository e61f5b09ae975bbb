"""Service model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Numeric, String
from agenda.database import Base


class Service(Base):
    """Represents a bookable service with a fixed duration."""
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_services_positive_duration"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), default=0)
    is_active = Column(Boolean, default=True, nullable=False)
