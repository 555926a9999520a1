# app/database.py
"""
Database connection and table creation for the SQL storage backend.
Uses SQLAlchemy; any SQLAlchemy URL works (SQLite by default, PostgreSQL in
deployments). All models are auto-imported here so create_tables() creates
every table in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool   # one shared in-memory DB
        return create_engine(database_url, echo=False, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,                  # Set True to log all SQL queries (debug only)
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine):
    """
    Creates all DB tables. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.user import UserRow                     # noqa
    from app.models.zone import ZoneRow                     # noqa
    from app.models.entry_exit_event import EntryExitEventRow   # noqa
    from app.models.occupancy_record import OccupancyRecordRow  # noqa
    from app.models.seat_post import SeatPostRow            # noqa
    from app.models.announcement import AnnouncementRow     # noqa

    Base.metadata.create_all(bind=engine)
