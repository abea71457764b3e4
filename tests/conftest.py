"""
Shared pytest fixtures for the Reentry Pathway test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - clock: FixedClock wired into the app's services
    - service: ParticipantService bound to the test database and clock
    - bridge_member / leader / mentor: acting users
    - make_participant: intake helper returning the new participant id
"""

import pytest

from pathway import create_app, init_services
from pathway.models import db as _db
from pathway.models.participant import Actor
from pathway.services.clock import FixedClock


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Engine fixtures ──────────────────────────────────────────────────────


@pytest.fixture()
def clock():
    """Fixed at Monday 2025-11-03 09:00 UTC."""
    return FixedClock()


@pytest.fixture()
def service(app, clock):
    """Fresh engine wiring (store, dispatchers) for each test."""
    return init_services(app, clock=clock)


@pytest.fixture()
def bridge_member():
    return Actor(user_id="bridge-1", user_name="Bea Bridge")


@pytest.fixture()
def leader():
    return Actor(user_id="leader-1", user_name="Lee Leader")


@pytest.fixture()
def mentor():
    return Actor(user_id="mentor-1", user_name="Max Mentor")


@pytest.fixture()
def make_participant(service):
    """Factory: make_participant(first_name="Ada", **intake_fields) -> id."""

    def _make(first_name="Ada", last_name="Lovelace", **fields):
        return service.add_participant({"first_name": first_name, "last_name": last_name, **fields})

    return _make
