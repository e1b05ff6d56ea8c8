"""
SQLAlchemy-based key-value storage implementation.

Keeps the client's local state in a single table, typically in a SQLite
file next to the agent, so the buffer and visited set survive restarts.
Works with any SQLAlchemy-compatible database.
"""

import asyncio
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from sqlalchemy import Column, DateTime, Engine, String, Text
from sqlalchemy.orm import Session, declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


class KeyValueEntryDB(Base):
    """SQLAlchemy model for one key-value entry."""

    __tablename__ = "kv_entries"

    key = Column(String, primary_key=True)
    value_json = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class SQLAlchemyKeyValueStore:
    """
    SQLAlchemy-based key-value storage.

    Each ``set`` call runs in one transaction, which gives the atomic
    multi-key write the local buffer depends on. Database work runs in a
    worker thread so the event loop is never blocked.

    Example:
        from sqlalchemy import create_engine
        engine = create_engine("sqlite:///memory_agent.db")
        store = SQLAlchemyKeyValueStore(engine)
        store.create_tables()
    """

    def __init__(self, engine: Engine):
        """
        Initialize the SQLAlchemy key-value store.

        Args:
            engine: SQLAlchemy engine for database connection
        """
        self.engine = engine
        logger.info(f"SQLAlchemyKeyValueStore initialized (engine={engine.url})")

    @contextmanager
    def _session(self):
        """Context manager for database sessions with automatic commit/rollback."""
        session = Session(self.engine)
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            session.close()

    def create_tables(self):
        """Create database tables if they don't exist."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables created/verified")

    def _get(self, keys: List[str]) -> Dict[str, Any]:
        with self._session() as session:
            rows = session.query(KeyValueEntryDB).filter(KeyValueEntryDB.key.in_(keys)).all()
            return {row.key: json.loads(row.value_json) for row in rows}

    def _set(self, values: Mapping[str, Any]) -> None:
        encoded = {key: json.dumps(value) for key, value in values.items()}
        now = datetime.now(timezone.utc)
        with self._session() as session:
            for key, value_json in encoded.items():
                session.merge(KeyValueEntryDB(key=key, value_json=value_json, updated_at=now))
        logger.debug(f"Stored keys: {sorted(encoded)}")

    def _clear(self) -> int:
        with self._session() as session:
            return session.query(KeyValueEntryDB).delete()

    async def get(self, keys: List[str]) -> Dict[str, Any]:
        if not keys:
            return {}
        return await asyncio.to_thread(self._get, list(keys))

    async def set(self, values: Mapping[str, Any]) -> None:
        if not values:
            return
        await asyncio.to_thread(self._set, dict(values))

    async def clear(self) -> None:
        count = await asyncio.to_thread(self._clear)
        logger.info(f"Cleared {count} keys")
