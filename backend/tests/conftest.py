"""
Pytest fixtures for shiftkeeper backend tests.

Provides an in-memory database, a store with employees and a manager,
a published schedule, and bearer-session helpers for the test client.
"""

from datetime import date, datetime

import pytest

from shiftkeeper import create_app
from shiftkeeper.extensions import db
from shiftkeeper.models import Shift
from shiftkeeper.services import schedule_service, session_service, store_access_service, store_service


# Tuesday, after the spring DST change (America/Chicago is UTC-5)
SHIFT_DATE = date(2026, 3, 10)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WEATHER_ASYNC': False,
        'OPENWEATHERMAP_API_KEY': None,
        'CLOCK_WINDOW_ENFORCEMENT': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store(db_session):
    """LV1 store in Chicago with the default $200 float."""
    return store_service.create_store(
        "LV1 Downtown",
        timezone="America/Chicago",
        expected_drawer_cents=20000,
        qr_token="qr-downtown",
    )


@pytest.fixture(scope='function')
def other_store(db_session):
    return store_service.create_store("LV2 Uptown", timezone="America/Chicago", qr_token="qr-uptown")


@pytest.fixture(scope='function')
def employee(db_session, store):
    profile = store_access_service.create_profile("Casey Opener")
    store_access_service.add_membership(profile_id=profile.id, store_id=store.id)
    return profile


@pytest.fixture(scope='function')
def closer(db_session, store):
    profile = store_access_service.create_profile("Riley Closer")
    store_access_service.add_membership(profile_id=profile.id, store_id=store.id)
    return profile


@pytest.fixture(scope='function')
def manager(db_session, store):
    profile = store_access_service.create_profile("Morgan Manager")
    store_access_service.add_membership(profile_id=profile.id, store_id=store.id)
    store_access_service.grant_manager_access(profile_id=profile.id, store_id=store.id)
    return profile


@pytest.fixture(scope='function')
def schedule(db_session, store):
    """Published schedule for the week containing SHIFT_DATE."""
    sched = schedule_service.create_schedule(
        store_id=store.id,
        period_start=date(2026, 3, 8),
        period_end=date(2026, 3, 14),
    )
    return schedule_service.publish_schedule(sched, published_at=datetime(2026, 3, 1, 12, 0))


@pytest.fixture(scope='function')
def open_slot(schedule, employee):
    return schedule_service.add_scheduled_shift(
        schedule=schedule,
        profile_id=employee.id,
        shift_date=SHIFT_DATE,
        shift_type="open",
        scheduled_start="09:00",
        scheduled_end="17:00",
    )


@pytest.fixture(scope='function')
def close_slot(schedule, closer):
    return schedule_service.add_scheduled_shift(
        schedule=schedule,
        profile_id=closer.id,
        shift_date=SHIFT_DATE,
        shift_type="close",
        scheduled_start="15:00",
        scheduled_end="23:00",
    )


@pytest.fixture(scope='function')
def sales_enabled(store):
    return store_service.update_settings(store.id, sales_tracking_enabled=True)


def make_shift(store, profile, *, shift_type, start, scheduled_shift=None, ended_at=None):
    """Insert a shift directly; start is UTC-naive."""
    shift = Shift(
        store_id=store.id,
        profile_id=profile.id,
        shift_type=shift_type,
        shift_source="scheduled" if scheduled_shift is not None else "manual",
        scheduled_shift_id=scheduled_shift.id if scheduled_shift is not None else None,
        match_reason="exact" if scheduled_shift is not None else None,
        entered_start_at=start,
        planned_start_at=start,
        started_at=start,
        ended_at=ended_at,
    )
    db.session.add(shift)
    db.session.commit()
    return shift


def make_token(profile, *, kind="employee", store_id=None) -> str:
    _, token = session_service.register_session(profile.id, kind=kind, store_id=store_id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
