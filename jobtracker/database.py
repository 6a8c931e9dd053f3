"""
SQLite key-value backend.

Uses SQLAlchemy for the single ``entries`` table. Calls run in a worker
thread so the event loop is not blocked by file I/O.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlalchemy import create_engine, Column, String, Text, DateTime
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base

Base = declarative_base()


class Entry(Base):
    """One stored value."""

    __tablename__ = "entries"

    key = Column(String, primary_key=True)  # e.g. job:<id>
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


def _engine(db_path: Path) -> Engine:
    # sessions are opened from worker threads
    return create_engine(
        f"sqlite:///{db_path}", connect_args={"check_same_thread": False}
    )


def init_database(db_path: Path) -> Engine:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Engine bound to the database
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = _engine(db_path)
    Base.metadata.create_all(engine)
    return engine


def get_session(engine: Engine) -> Session:
    """
    Get database session.

    Args:
        engine: Engine returned by init_database

    Returns:
        SQLAlchemy session
    """
    return Session(bind=engine)


def _like_prefix(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


class SqliteBackend:
    """KeyValueBackend over a SQLite file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._engine = init_database(self.db_path)

    async def list(self, prefix: str) -> List[str]:
        return await asyncio.to_thread(self._list, prefix)

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    def close(self) -> None:
        self._engine.dispose()

    def _list(self, prefix: str) -> List[str]:
        with get_session(self._engine) as session:
            rows = (
                session.query(Entry.key)
                .filter(Entry.key.like(_like_prefix(prefix), escape="\\"))
                .order_by(Entry.key)
                .all()
            )
            # LIKE is case-insensitive for ASCII in SQLite
            return [k for (k,) in rows if k.startswith(prefix)]

    def _get(self, key: str) -> Optional[str]:
        with get_session(self._engine) as session:
            entry = session.get(Entry, key)
            return entry.value if entry is not None else None

    def _set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("backend values must be strings")
        with get_session(self._engine) as session:
            session.merge(Entry(key=key, value=value))
            session.commit()

    def _delete(self, key: str) -> None:
        with get_session(self._engine) as session:
            session.query(Entry).filter_by(key=key).delete()
            session.commit()
