"""
Database setup using SQLAlchemy.

- engine: the connection to Postgres (SQLite works too, the tests use it)
- SessionLocal: creates a new database session (used per-request in FastAPI)
- Base: all ORM models inherit from this
- get_db(): FastAPI dependency that provides a session and auto-closes it
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from internhub.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are handed between the threadpool workers FastAPI uses
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# Create the database engine from our connection string
engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args(settings.DATABASE_URL))

# Each call to SessionLocal() gives us a fresh database session
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# Base class for all our ORM models
Base = declarative_base()


def get_db():
    """
    FastAPI dependency: yields a database session, then closes it.
    Usage in a route:  def my_route(db: Session = Depends(get_db))
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
