import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from agenda import database
from agenda.core import config


@pytest.fixture
def legacy_engine(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(database, '_booking_schema_checked', False)
    engine = create_engine(f'sqlite:///{tmp_path / "legacy.db"}')
    with engine.begin() as connection:
        connection.execute(
            text(
                'CREATE TABLE appointments ('
                'id INTEGER PRIMARY KEY, tenant_id VARCHAR(36), employee_id INTEGER, '
                'date DATE, start_time TIMESTAMP, end_time TIMESTAMP, status VARCHAR)'
            )
        )
    try:
        yield engine
    finally:
        engine.dispose()


def test_ensure_booking_schema_adds_missing_columns_and_indexes(legacy_engine) -> None:
    database.ensure_booking_schema(bind=legacy_engine)

    inspector = inspect(legacy_engine)
    columns = {column['name'] for column in inspector.get_columns('appointments')}
    indexes = {index['name']: index for index in inspector.get_indexes('appointments')}

    assert {'notes', 'updated_at'} <= columns
    assert indexes['uq_appointments_live_start']['unique']
    assert 'idx_appointments_employee_date' in indexes


def test_live_start_index_allows_rebooking_after_cancellation(legacy_engine) -> None:
    database.ensure_booking_schema(bind=legacy_engine)
    insert = text(
        'INSERT INTO appointments (tenant_id, employee_id, date, start_time, end_time, status) '
        "VALUES ('t1', 1, '2026-01-06', '2026-01-06 09:00:00', '2026-01-06 09:30:00', :status)"
    )

    with legacy_engine.begin() as connection:
        connection.execute(insert, {'status': 'cancelled'})
        connection.execute(insert, {'status': 'confirmed'})

    with pytest.raises(IntegrityError):
        with legacy_engine.begin() as connection:
            connection.execute(insert, {'status': 'confirmed'})


def test_ensure_booking_schema_runs_once(legacy_engine) -> None:
    database.ensure_booking_schema(bind=legacy_engine)
    with legacy_engine.begin() as connection:
        connection.execute(text('DROP INDEX uq_appointments_live_start'))

    database.ensure_booking_schema(bind=legacy_engine)

    names = {index['name'] for index in inspect(legacy_engine).get_indexes('appointments')}
    assert 'uq_appointments_live_start' not in names


@pytest.mark.parametrize(
    ('value', 'expected'),
    [(None, True), ('1', True), (' Yes ', True), ('off', False), ('false', False)],
)
def test_get_bool_parses_common_spellings(value, expected: bool) -> None:
    assert config._get_bool(value, default=True) is expected


def test_get_list_splits_and_trims() -> None:
    assert config._get_list(' a, b ,,c ', []) == ['a', 'b', 'c']
    assert config._get_list('', ['x']) == ['x']
