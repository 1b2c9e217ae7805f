# FILE: faqbot/db.py
"""
Database wiring: engine, session factory and declarative base.

The FAQ table is owned by the CMS; this service only reads it. chat_logs is
the one table written here.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from faqbot.config import DATABASE_URL


def _make_engine(url: str):
    # SQLite needs check_same_thread off; other drivers reject the argument
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, echo=False)


engine = _make_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """FastAPI dependency that yields a DB session and closes it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory=None) -> Iterator[Session]:
    """
    Short-lived session for code running inside a streaming generator.

    Request-scoped sessions from get_db may already be closed by the time a
    StreamingResponse body runs, so stream code opens its own.
    """
    db = (factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind=None):
    """Create service-owned tables (and the FAQ table for local/dev databases)."""
    from faqbot.faq import models as faq_models  # noqa: F401
    from faqbot.chatlog import models as chatlog_models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
