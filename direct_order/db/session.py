from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from direct_order.settings import settings

_engine = None
_SessionLocal = None


def _normalize_db_url(url: str) -> str:
    if not url:
        return settings.database_url
    if "://" not in url:
        # bare file path, e.g. DATABASE_URL=data/direct_order.db
        return f"sqlite:///{url}"
    if url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    return url


def get_engine():
    global _engine
    if _engine is None:
        url = _normalize_db_url(settings.database_url)
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    return _engine


def get_sessionmaker():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def init_db(engine=None) -> None:
    from direct_order.db.models import Base

    Base.metadata.create_all(engine or get_engine())


@contextmanager
def get_db():
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
