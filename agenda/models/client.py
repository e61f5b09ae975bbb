"""Client model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from agenda.database import Base


class Client(Base):
    """Represents a customer who books appointments."""
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String)
    phone = Column(String)
