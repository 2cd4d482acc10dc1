# telebridge/services/kv_store.py
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterator, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.engine import Engine

from telebridge.config import Settings
from telebridge.db.session import create_db_engine, create_session_factory
from telebridge.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """
    Minimal storage contract the call registry is written against.

    Values are opaque strings (the registry stores JSON). Namespaces keep the
    active index, room index and history apart inside one store.
    """

    @abstractmethod
    def get(self, namespace: str, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def put(self, namespace: str, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, namespace: str, key: str) -> None:
        ...

    @abstractmethod
    def scan(self, namespace: str) -> Iterator[Tuple[str, str]]:
        ...

    def close(self) -> None:
        return None


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Everything is lost on restart."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, str]] = {}

    def get(self, namespace: str, key: str) -> Optional[str]:
        return self._data.get(namespace, {}).get(key)

    def put(self, namespace: str, key: str, value: str) -> None:
        self._data.setdefault(namespace, {})[key] = value

    def delete(self, namespace: str, key: str) -> None:
        self._data.get(namespace, {}).pop(key, None)

    def scan(self, namespace: str) -> Iterator[Tuple[str, str]]:
        # Snapshot so callers may mutate while iterating
        return iter(list(self._data.get(namespace, {}).items()))

    def close(self) -> None:
        self._data.clear()


class SqlKeyValueStore(KeyValueStore):
    """SQLAlchemy-backed store on a single `kv_entries` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    def get(self, namespace: str, key: str) -> Optional[str]:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, (namespace, key))
            return entry.value if entry else None

    def put(self, namespace: str, key: str, value: str) -> None:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, (namespace, key))
            if entry is None:
                entry = KeyValueEntry(namespace=namespace, key=key, value=value)
                db.add(entry)
            else:
                entry.value = value
                entry.updated_at = datetime.utcnow()
            db.commit()

    def delete(self, namespace: str, key: str) -> None:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, (namespace, key))
            if entry is not None:
                db.delete(entry)
                db.commit()

    def scan(self, namespace: str) -> Iterator[Tuple[str, str]]:
        with self._session_factory() as db:
            rows = db.execute(
                select(KeyValueEntry.key, KeyValueEntry.value)
                .where(KeyValueEntry.namespace == namespace)
                .order_by(KeyValueEntry.created_at)
            ).all()
        return iter([(row.key, row.value) for row in rows])

    def close(self) -> None:
        self._engine.dispose()


def build_store(settings: Settings) -> KeyValueStore:
    """
    Construct the store selected by CALL_STORE_BACKEND.
    """
    if settings.CALL_STORE_BACKEND == "sql":
        logger.info("Using SQL call store url=%s", settings.DATABASE_URL)
        return SqlKeyValueStore(create_db_engine(settings.DATABASE_URL))

    logger.info("Using in-memory call store (records are lost on restart)")
    return InMemoryKeyValueStore()
