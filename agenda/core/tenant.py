import re

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from agenda.database import get_db
from agenda.models.tenant import Tenant

MAX_TENANT_IDENTIFIER_LENGTH = 100
_FORBIDDEN_CHARACTERS = re.compile(r'[;\'"()\\{}]')


def resolve_tenant(db: Session, identifier: str | None) -> str:
    if identifier is None or not identifier.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='A tenant identifier is required.',
        )

    normalized = identifier.strip()[:MAX_TENANT_IDENTIFIER_LENGTH]
    if _FORBIDDEN_CHARACTERS.search(normalized):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='The tenant identifier contains invalid characters.',
        )

    tenant = db.query(Tenant).filter(Tenant.id == normalized).first()
    if tenant is None:
        tenant = db.query(Tenant).filter(Tenant.slug == normalized.lower()).first()
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f'No tenant found for {normalized!r}.',
        )

    return tenant.id


def get_tenant_id(
    x_tenant_id: str | None = Header(default=None),
    x_tenant: str | None = Header(default=None),
    tenant: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> str:
    return resolve_tenant(db, x_tenant_id or x_tenant or tenant)
