"""Database engine and session management."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from log_ingestor.core.config import settings


def create_db_engine(database_url: str, env: str | None = None) -> Engine:
    """Create an engine for the given database URL."""
    env = env or settings.env

    engine_kwargs = {}
    if env == "test":
        engine_kwargs["poolclass"] = NullPool
    if database_url.startswith("sqlite"):
        # Connections are shared across request threads
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        **engine_kwargs,
    )


def create_session_maker(engine: Engine) -> sessionmaker:
    """Create a session factory bound to an engine."""
    return sessionmaker(
        bind=engine,
        class_=Session,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@contextmanager
def session_scope(session_maker: sessionmaker) -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error."""
    with session_maker() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def create_tables(engine: Engine) -> None:
    """Create all database tables and indexes."""
    SQLModel.metadata.create_all(engine)


def is_postgresql(engine: Engine) -> bool:
    return engine.dialect.name == "postgresql"
