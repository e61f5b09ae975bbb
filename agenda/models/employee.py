"""Employee model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship
from agenda.database import Base


employee_services = Table(
    "employee_services",
    Base.metadata,
    Column("employee_id", Integer, ForeignKey("employees.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", Integer, ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class Employee(Base):
    """Represents a staff member working at one branch."""
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), index=True, nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String)
    is_active = Column(Boolean, default=True, nullable=False)

    services = relationship("Service", secondary=employee_services, lazy="selectin")

    def offers(self, service_id: int) -> bool:
        return any(service.id == service_id for service in self.services)
