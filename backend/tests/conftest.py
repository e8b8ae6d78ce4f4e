"""Shared fixtures: one app per run, one rolled-back transaction per test.

The session joins the connection with a SAVEPOINT, so a unit of work that
commits only releases its own savepoint and a unit of work that rolls back
discards everything since the last commit. Rows that must outlive a failing
service call therefore have to be committed before the call.
"""

from __future__ import annotations

import os

import pytest
from gatekeeper.core.config import TestingConfig
from gatekeeper.core.container import get_services
from gatekeeper.core.extensions import db as _db
from gatekeeper.factory import create_app
from gatekeeper.models import Role
from gatekeeper.seeds.seed_data import ROLE_FIXTURES
from sqlalchemy import event, select
from sqlalchemy.orm import scoped_session, sessionmaker


class TestConfig(TestingConfig):
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-access-secret-with-enough-length-0123456789"
    CONFIRMATION_TOKEN_SECRET = "test-confirmation-secret-with-enough-length-0123"
    APP_URL = "http://testserver"
    USE_PROXYFIX = False
    CORS_ORIGINS = "http://localhost:5173"


@pytest.fixture(scope="session")
def app():
    os.environ.pop("DATABASE_URL", None)
    application = create_app(TestConfig, start_scheduler=False)
    application.logger.setLevel("WARNING")
    return application


@pytest.fixture(scope="session")
def db(app):
    """Schema created once for the run and dropped at the end."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    conn = db.engine.connect()
    yield conn
    conn.close()


@pytest.fixture()
def session(db, connection):
    """Scoped session swapped in for ``db.session`` for one test.

    Everything the test and the code under test write is discarded by rolling
    back the outer transaction afterwards.
    """
    outer = connection.begin()
    savepoint = connection.begin_nested()
    scoped = scoped_session(sessionmaker(bind=connection, autoflush=False))

    @event.listens_for(scoped(), "after_transaction_end")
    def _renew_savepoint(sess, trans):  # pragma: no cover
        nonlocal savepoint
        if trans.nested and not trans._parent.nested:
            savepoint = connection.begin_nested()

    app_session = db.session
    app_session.remove()
    db.session = scoped
    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = app_session
        outer.rollback()


@pytest.fixture(scope="session")
def faker():
    from faker import Faker

    Faker.seed(1337)
    return Faker()


@pytest.fixture(autouse=True)
def _factories_session(session):
    """Make factory_boy create rows on this test's session."""
    from tests.factories import bind_session

    bind_session(session)
    yield
    bind_session(None)


@pytest.fixture()
def services(app, session):
    return get_services()


@pytest.fixture(autouse=True)
def outbox(app):
    """In-memory mail sender, reset before and after every test."""
    with app.app_context():
        sender = get_services().email_sender
    sender.clear()
    yield sender
    sender.clear()


@pytest.fixture()
def roles(services, session):
    """Role catalog seeded and committed, keyed by name."""
    services.user_roles.seed_roles(ROLE_FIXTURES)
    return {role.name: role for role in session.scalars(select(Role))}


@pytest.fixture()
def client(app, session):
    return app.test_client()
