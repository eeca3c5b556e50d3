"""
Central pytest configuration for the clinic backend tests.

Environment variables are set before any application module is imported so
the lazily created engine, the limiter and the JWT helpers pick up test
values.
"""

import os

# Test database configuration (set early so import-time engines use it)
TEST_DATABASE_URL = "sqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["TESTING"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "0"  # Disable rate limiting in tests
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-the-clinic-suite"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key"
os.environ["ALERT_SLOW_QUERY_ENABLED"] = "false"

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tests.config.markers import (  # noqa: E402,F401
    pytest_collection_modifyitems,
    pytest_configure,
    response_helper,
)


# =====================================================
# DATABASE FIXTURES
# =====================================================


@pytest.fixture
def db_session():
    """Session on a private in-memory SQLite database with all tables."""
    from odonto.db import base  # noqa: F401  registers the models
    from odonto.db.session import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


# =====================================================
# APPLICATION FIXTURES
# =====================================================


def _build_app(monkeypatch, tmp_path, login_disabled: bool):
    # A file database per test: the app and the auth decorator open their
    # own sessions, so they need to share something other than one session.
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'odonto_test.db'}")
    monkeypatch.setenv("LOGIN_DISABLED", "true" if login_disabled else "false")

    from odonto.main import create_app

    app = create_app()
    app.config.update({"TESTING": True})
    return app


@pytest.fixture
def app(monkeypatch, tmp_path):
    """Flask app with authentication bypassed (``LOGIN_DISABLED``)."""
    app = _build_app(monkeypatch, tmp_path, login_disabled=True)
    yield app
    from odonto.db.session import drop_tables

    drop_tables()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def secured_app(monkeypatch, tmp_path):
    """Flask app that enforces Bearer tokens on /api routes."""
    app = _build_app(monkeypatch, tmp_path, login_disabled=False)
    yield app
    from odonto.db.session import drop_tables

    drop_tables()


@pytest.fixture
def secured_client(secured_app):
    return secured_app.test_client()
