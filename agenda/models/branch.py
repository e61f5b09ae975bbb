"""Branch model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from agenda.database import Base


class Branch(Base):
    """Represents a physical location of a tenant."""
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    address = Column(String)
    is_active = Column(Boolean, default=True, nullable=False)
