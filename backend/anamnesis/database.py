"""Database engine, session factory and declarative base."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from anamnesis.config import get_settings


settings = get_settings()

connect_args = {}
engine_kwargs = {}

# SQLite sessions are shared across the threadpool FastAPI runs sync code in
if settings.database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
else:
    engine_kwargs = {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    **engine_kwargs
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for template and anamnesis models."""
    pass


def init_db() -> None:
    """Create all tables that do not exist yet (dev and seed helper)."""
    # Import models so they register on Base.metadata
    import anamnesis.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency that provides a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
