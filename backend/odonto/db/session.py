import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from odonto.core.db import register_query_timing

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./odonto.db"

# Create Base class for models
Base = declarative_base()

# Internal lazy globals
_engine = None
_SessionLocal = None
_database_url = None


def _mask_url_password(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return url


def get_engine():
    """Return a cached SQLAlchemy engine, creating it from DATABASE_URL on
    first call. Tests set DATABASE_URL before the engine is constructed; a
    changed URL rebuilds the engine."""
    global _engine, _SessionLocal, _database_url
    database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if _engine is not None and _database_url == database_url:
        return _engine

    if _engine is not None:
        _engine.dispose()
        _SessionLocal = None

    url = make_url(database_url)
    is_postgres = url.drivername.startswith("postgres")
    is_sqlite = url.drivername.startswith("sqlite")

    if is_postgres:
        _engine = create_engine(
            database_url,
            pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
            pool_pre_ping=True,  # Detects and refreshes stale connections
            pool_recycle=3600,
            connect_args={
                "application_name": "odonto",  # Visible in pg_stat_activity
                "connect_timeout": 10,
            },
            echo=False,
        )
    elif is_sqlite and (url.database in (None, "", ":memory:")):
        # One shared in-memory database for the whole process so tables
        # created by one session are visible to the next.
        _engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif is_sqlite:
        _engine = create_engine(
            database_url, echo=False, connect_args={"check_same_thread": False}
        )
    else:
        _engine = create_engine(database_url, echo=False)

    register_query_timing(_engine)
    logger.debug(
        "SQLAlchemy engine created",
        extra={
            "context": {
                "url": _mask_url_password(database_url),
                "dialect": _engine.dialect.name,
            }
        },
    )
    _database_url = database_url
    return _engine


def get_sessionmaker():
    """Return a cached sessionmaker bound to the lazy engine."""
    global _SessionLocal
    engine = get_engine()
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )
    return _SessionLocal


def SessionLocal():
    """Return a new Session. Callers close it in ``finally``."""
    return get_sessionmaker()()


def get_db():
    """Yield a database session and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all tables in the database using the lazy engine."""
    from odonto.db import base  # noqa: F401  registers the models on Base

    Base.metadata.create_all(bind=get_engine())


def drop_tables():
    from odonto.db import base  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
