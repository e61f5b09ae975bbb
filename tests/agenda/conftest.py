import os
from datetime import time
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('REMINDERS_ENABLED', 'false')

from agenda.database import Base  # noqa: E402
from agenda.models.branch import Branch  # noqa: E402
from agenda.models.client import Client  # noqa: E402
from agenda.models.employee import Employee  # noqa: E402
from agenda.models.schedule import WorkSchedule  # noqa: E402
from agenda.models.service import Service  # noqa: E402
from agenda.models.tenant import Tenant  # noqa: E402
from agenda.models import appointment, exception, reminder, settings  # noqa: E402,F401

MONDAY_TO_SATURDAY = range(1, 7)


def seed_world(db, slug: str = 'acme', duration_minutes: int = 30) -> SimpleNamespace:
    """A tenant with one branch, one 30-minute service, one employee and one client.

    The employee works Monday to Saturday from 08:00 to 19:00 and is off on Sunday.
    """
    tenant = Tenant(slug=slug, name=slug.title())
    db.add(tenant)
    db.flush()

    branch = Branch(tenant_id=tenant.id, name='Centro')
    service = Service(tenant_id=tenant.id, name='Haircut', duration_minutes=duration_minutes, price=20)
    client = Client(tenant_id=tenant.id, name='Ana', email='ana@example.com', phone='+34600000000')
    db.add_all([branch, service, client])
    db.flush()

    employee = Employee(tenant_id=tenant.id, branch_id=branch.id, name='Lucia')
    employee.services.append(service)
    db.add(employee)
    db.flush()

    for day in range(7):
        is_work_day = day in MONDAY_TO_SATURDAY
        db.add(
            WorkSchedule(
                tenant_id=tenant.id,
                employee_id=employee.id,
                day_of_week=day,
                is_work_day=is_work_day,
                start_time=time(8, 0) if is_work_day else None,
                end_time=time(19, 0) if is_work_day else None,
            )
        )
    db.commit()

    return SimpleNamespace(
        tenant_id=tenant.id,
        slug=tenant.slug,
        branch_id=branch.id,
        service_id=service.id,
        employee_id=employee.id,
        client_id=client.id,
    )


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f'sqlite:///{tmp_path / "agenda.db"}',
        connect_args={'check_same_thread': False, 'timeout': 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def world(db_session) -> SimpleNamespace:
    return seed_world(db_session)


@pytest.fixture
def api(session_factory, monkeypatch: pytest.MonkeyPatch):
    from fastapi.testclient import TestClient

    from agenda.database import get_db
    from agenda.main import app

    monkeypatch.setattr('agenda.routes.common.ensure_booking_schema', lambda: None)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    db = session_factory()
    try:
        ids = seed_world(db)
    finally:
        db.close()

    try:
        yield SimpleNamespace(client=TestClient(app), ids=ids, session_factory=session_factory, app=app)
    finally:
        app.dependency_overrides.clear()
