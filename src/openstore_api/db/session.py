"""Database session and engine helpers."""

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from openstore_api.config.settings import get_settings

from .base import Base
from . import models  # noqa: F401  # ensure models are imported for metadata

T = TypeVar("T")

DATABASE_URL = get_settings().resolved_database_url()

_SQLITE_CONNECT_ARGS: dict[str, object] = (
    {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    pool_pre_ping=True,
    connect_args=_SQLITE_CONNECT_ARGS,
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    future=True,
    expire_on_commit=False,
)

SessionFactory = Callable[[], Session]


def run_in_session(
    fn: Callable[[Session], T],
    session_factory: SessionFactory | None = None,
) -> T:
    """Run ``fn`` inside a session, committing on success and rolling back on error."""

    factory = session_factory or SessionLocal
    with factory() as session:
        try:
            result = fn(session)
            session.commit()
        except Exception:
            session.rollback()
            raise
        return result


__all__ = [
    "Base",
    "SessionLocal",
    "SessionFactory",
    "engine",
    "run_in_session",
    "DATABASE_URL",
]
