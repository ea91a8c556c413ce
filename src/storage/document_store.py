"""Document store for admin-scoped records, with versioned conditional writes."""

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import aiosqlite

from config import settings
from src.errors import ConcurrentModificationError

logger = logging.getLogger(__name__)

# Collections
SECURITY_POSTURES = "securityPostures"
SIMULATED_EVENTS = "simulatedEvents"
ACTIVITY_LOGS = "activityLogs"


class DocumentStore(ABC):
    """Generic document-store client.

    Records are plain dicts. Reads return them with ``id`` and ``version``
    merged in; every write bumps ``version``.
    """

    @abstractmethod
    async def find(self, collection: str, filter: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def create(self, collection: str, record: dict[str, Any], doc_id: str | None = None) -> str:
        """Insert a record and return its id.

        Raises ConcurrentModificationError if ``doc_id`` is already taken.
        """

    @abstractmethod
    async def update(
        self,
        collection: str,
        doc_id: str,
        partial: dict[str, Any],
        expected_version: int | None = None,
    ) -> bool:
        """Merge ``partial`` into a record.

        Returns False when the record is absent or, if ``expected_version``
        is given, when the stored version no longer matches.
        """

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        ...


class SQLiteDocumentStore(DocumentStore):
    """Async SQLite-backed document store, one JSON document per row."""

    def __init__(self, db_path: str | None = None):
        self._db_path = db_path or settings.sqlite_db_path
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create database and tables."""
        self._db = await aiosqlite.connect(self._db_path)
        self._write_lock = asyncio.Lock()

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                owner_id TEXT,
                version INTEGER NOT NULL DEFAULT 1,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (collection, doc_id)
            )
        """)
        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_owner
            ON documents(collection, owner_id)
        """)

        await self._db.commit()
        logger.info(f"Document store initialized at {self._db_path}")

    async def _conn(self) -> aiosqlite.Connection:
        if not self._db:
            await self.initialize()
        return self._db

    @staticmethod
    def _to_record(doc_id: str, version: int, data: str) -> dict[str, Any]:
        record = json.loads(data)
        record["id"] = doc_id
        record["version"] = version
        return record

    async def find(self, collection: str, filter: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Return records whose top-level fields equal every ``filter`` value."""
        db = await self._conn()
        filter = dict(filter or {})

        query = "SELECT doc_id, version, data FROM documents WHERE collection = ?"
        params: list[Any] = [collection]
        if "owner_id" in filter:
            query += " AND owner_id = ?"
            params.append(filter.pop("owner_id"))

        async with db.execute(query, params) as cursor:
            rows = await cursor.fetchall()

        records = []
        for row in rows:
            try:
                record = self._to_record(row[0], row[1], row[2])
            except json.JSONDecodeError:
                logger.warning(f"Corrupted document {collection}/{row[0]}")
                continue
            if all(record.get(k) == v for k, v in filter.items()):
                records.append(record)
        return records

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        db = await self._conn()
        async with db.execute(
            "SELECT doc_id, version, data FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._to_record(row[0], row[1], row[2])

    async def create(self, collection: str, record: dict[str, Any], doc_id: str | None = None) -> str:
        db = await self._conn()
        doc_id = doc_id or uuid.uuid4().hex[:20]
        now = datetime.now().isoformat()
        data = {k: v for k, v in record.items() if k not in ("id", "version")}

        async with self._write_lock:
            try:
                await db.execute(
                    """INSERT INTO documents (collection, doc_id, owner_id, version, data,
                                              created_at, updated_at)
                       VALUES (?, ?, ?, 1, ?, ?, ?)""",
                    (collection, doc_id, data.get("owner_id"), json.dumps(data), now, now),
                )
            except aiosqlite.IntegrityError as e:
                raise ConcurrentModificationError(collection, doc_id) from e
            await db.commit()
        return doc_id

    async def update(
        self,
        collection: str,
        doc_id: str,
        partial: dict[str, Any],
        expected_version: int | None = None,
    ) -> bool:
        db = await self._conn()

        async with self._write_lock:
            current = await self.get(collection, doc_id)
            if current is None:
                return False
            version = current.pop("version")
            current.pop("id")
            if expected_version is not None and expected_version != version:
                return False

            current.update({k: v for k, v in partial.items() if k not in ("id", "version")})
            cursor = await db.execute(
                """UPDATE documents SET data = ?, owner_id = ?, version = version + 1,
                                        updated_at = ?
                   WHERE collection = ? AND doc_id = ? AND version = ?""",
                (
                    json.dumps(current),
                    current.get("owner_id"),
                    datetime.now().isoformat(),
                    collection,
                    doc_id,
                    version,
                ),
            )
            await db.commit()
        return cursor.rowcount > 0

    async def delete(self, collection: str, doc_id: str) -> bool:
        db = await self._conn()
        async with self._write_lock:
            cursor = await db.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            await db.commit()
        return cursor.rowcount > 0

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Document store closed")


# Singleton
document_store = SQLiteDocumentStore()
