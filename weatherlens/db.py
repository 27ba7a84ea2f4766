"""
Database configuration for SQLAlchemy + SQLite.

The default database is in-memory: locations, readings and alerts live for
the process lifetime. A single shared connection (StaticPool) is required so
every session sees the same in-memory database. All DB-touching handlers in
main.py are async, so that one connection is only used from the event loop.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
from .settings import settings

IN_MEMORY = ":memory:"

# SQLite needs check_same_thread=False for FastAPI because FastAPI uses threads.
if settings.sqlite_path == IN_MEMORY:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(
        f"sqlite:///{settings.sqlite_path}",
        connect_args={"check_same_thread": False},
    )

# Session factory used by dependency injection
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for ORM models."""
    pass


def get_db():
    """
    FastAPI dependency that yields a DB session per request,
    then closes it cleanly afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
