"""Database setup and session management.

SQLAlchemy + SQLite by default (set DATABASE_URL for Postgres etc).
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from experiment_admin.config import settings

# SQLite needs check_same_thread off since FastAPI hands sessions to worker threads
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if "sqlite" in settings.database_url else {}
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting DB session (FastAPI Depends)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database tables (create_all)."""
    # models must be imported so their tables are registered on Base
    from experiment_admin import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
