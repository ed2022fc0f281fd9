"""Database engine and session management."""

from collections.abc import Generator
from functools import lru_cache

from fastapi import Depends
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from forum_auth.config import Settings, get_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def build_engine(settings: Settings) -> Engine:
    """Create an engine for the configured database URL."""
    return create_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
    )


@lru_cache
def get_engine() -> Engine:
    """Process-wide engine built from the settings."""
    return build_engine(get_settings())


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the process-wide engine."""
    return sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)


def init_db(engine: Engine) -> None:
    """Create the tables if they do not exist yet."""
    # Imported for its side effect of registering the table on Base.metadata.
    from forum_auth.models.user import User  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(factory: sessionmaker[Session] = Depends(get_session_factory)) -> Generator[Session, None, None]:
    """Yield a database session."""
    db = factory()
    try:
        yield db
    finally:
        db.close()
