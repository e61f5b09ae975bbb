"""Tenant model definitions."""

import uuid

from sqlalchemy import Column, String
from agenda.database import Base


def _new_tenant_id() -> str:
    return str(uuid.uuid4())


class Tenant(Base):
    """Represents an isolated business account."""
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=_new_tenant_id)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
