"""
SQLite storage driver.

Uses aiosqlite for async SQLite access.
WAL mode enabled for concurrent read support.

Records are stored as JSON text, one row per id. Filtering happens
after decoding, with the same structural match as the memory driver.
"""

from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path

import aiosqlite

from sack.core.errors import StorageError
from sack.core.types import Filter, Record, Target, matches, target_id
from sack.store.base import StorageDriver

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteDriver(StorageDriver):
    """
    SQLite-based record store.

    Usage:
        driver = SQLiteDriver("~/.sack/sack.db")
        await driver.initialize()

        await driver.insert({"id": "user-1", "name": "Alex"})
        record = await driver.fetch("user-1")

    Change events are emitted after the write is committed.
    dispose() closes the connection; the data stays on disk.
    """

    def __init__(self, db_path: str | Path, table: str = "entries") -> None:
        super().__init__()
        if not _TABLE_NAME.match(table):
            raise StorageError(f"Invalid table name: {table!r}")
        self._db_path = Path(db_path).expanduser()
        self._table = table
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Initialize the database and create the table."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(str(self._db_path))

            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA synchronous=NORMAL")

            await self._db.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            await self._db.commit()
            logger.debug(f"SQLite driver initialized at {self._db_path}")

        except Exception as e:
            raise StorageError(f"Failed to initialize SQLite at {self._db_path}: {e}")

    async def _ensure_db(self) -> aiosqlite.Connection:
        """Ensure database is initialized."""
        if self._db is None:
            await self.initialize()
        return self._db  # type: ignore[return-value]

    # ━━━ Reads ━━━

    async def fetch(self, id: str) -> Record | None:
        db = await self._ensure_db()
        try:
            async with db.execute(
                f"SELECT data FROM {self._table} WHERE id = ?", (id,)
            ) as cursor:
                row = await cursor.fetchone()
        except Exception as e:
            raise StorageError(f"Failed to fetch '{id}': {e}")
        return json.loads(row[0]) if row else None

    async def find(self, filter: Filter | None = None) -> list[Record]:
        db = await self._ensure_db()
        try:
            async with db.execute(
                f"SELECT data FROM {self._table} ORDER BY created_at, id"
            ) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            raise StorageError(f"Failed to find entries: {e}")
        records = [json.loads(row[0]) for row in rows]
        return [r for r in records if matches(r, filter)]

    # ━━━ Writes ━━━

    async def insert(self, entry: Record) -> None:
        await self.insert_collection([entry])

    async def update(self, entry: Record) -> None:
        await self.update_collection([entry])

    async def delete(self, target: Target) -> None:
        await self.delete_collection([target])

    async def insert_collection(self, entries: list[Record]) -> None:
        if not entries:
            return
        db = await self._ensure_db()
        try:
            for entry in entries:
                await self._upsert(db, entry)
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise StorageError(f"Failed to insert {len(entries)} entries: {e}")

        for entry in entries:
            await self._announce_update(dict(entry), entry["id"])

    async def update_collection(self, entries: list[Record]) -> None:
        if not entries:
            return
        db = await self._ensure_db()
        merged: list[Record] = []
        try:
            for entry in entries:
                async with db.execute(
                    f"SELECT data FROM {self._table} WHERE id = ?", (entry["id"],)
                ) as cursor:
                    row = await cursor.fetchone()
                record = {**json.loads(row[0]), **entry} if row else dict(entry)
                await self._upsert(db, record)
                merged.append(record)
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise StorageError(f"Failed to update {len(entries)} entries: {e}")

        for record in merged:
            await self._announce_update(record, record["id"])

    async def delete_collection(self, targets: list[Target]) -> None:
        if not targets:
            return
        ids = [target_id(t) for t in targets]
        db = await self._ensure_db()
        removed: list[tuple[str, Record | None]] = []
        try:
            for id in ids:
                async with db.execute(
                    f"SELECT data FROM {self._table} WHERE id = ?", (id,)
                ) as cursor:
                    row = await cursor.fetchone()
                await db.execute(f"DELETE FROM {self._table} WHERE id = ?", (id,))
                removed.append((id, json.loads(row[0]) if row else None))
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise StorageError(f"Failed to delete {len(targets)} entries: {e}")

        for id, record in removed:
            await self._announce_delete(record, id)

    async def dispose(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    # ━━━ Internals ━━━

    async def _upsert(self, db: aiosqlite.Connection, record: Record) -> None:
        data = json.dumps(record)
        now = time.time()
        await db.execute(
            f"""
            INSERT INTO {self._table} (id, data, created_at, updated_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
            """,
            (record["id"], data, now, now),
        )
        logger.debug(f"Wrote {record['id']}")
