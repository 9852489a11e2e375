"""
The process-wide SQLite connection.

irismod keeps one aiosqlite connection open for its whole lifetime. SQLite
allows a single writer, so writes go through :meth:`ConnectionManager.transaction`,
which holds an asyncio lock for the duration of the block. A warning insert,
the fresh count and the rule lookup therefore happen without another write
slipping in between. Reads use :meth:`ConnectionManager.read`, which takes the
same lock, so a query never sees rows of a transaction that is still open.
Neither block may be entered from inside the other.

Example::

    manager = ConnectionManager()
    await manager.open(Path("data/irismod.db"))

    async with manager.transaction() as conn:
        await conn.execute("INSERT INTO tenants (tenant_id) VALUES (?)", (1,))

    async with manager.read() as conn:
        cursor = await conn.execute("SELECT COUNT(*) FROM tenants")

    await manager.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from irismod.util.logger import get_logger

logger = get_logger("database_connection")

BUSY_TIMEOUT_MS = 5000


def _pragmas(busy_timeout_ms: int) -> list[str]:
    return [
        "PRAGMA journal_mode = WAL",
        "PRAGMA synchronous = NORMAL",
        # Warnings cascade away with their member and tenant rows
        "PRAGMA foreign_keys = ON",
        "PRAGMA temp_store = MEMORY",
        f"PRAGMA busy_timeout = {int(busy_timeout_ms)}",
    ]


class ConnectionManager:
    """
    Owner of the shared aiosqlite connection.

    ``transaction()`` serialises writers and commits or rolls back.
    ``read()`` waits for any open transaction to finish first.
    """

    def __init__(self, busy_timeout_ms: int = BUSY_TIMEOUT_MS) -> None:
        self._db: Optional[aiosqlite.Connection] = None
        self._db_path: Optional[Path] = None
        self._lock = asyncio.Lock()
        self._busy_timeout_ms = busy_timeout_ms

    @property
    def is_open(self) -> bool:
        return self._db is not None

    @property
    def path(self) -> Optional[Path]:
        return self._db_path

    async def open(self, path: Path) -> None:
        """Connect to ``path`` (creating parent directories) and apply pragmas."""
        if self._db is not None:
            logger.warning("[DB CONNECTION] Already connected to %s, not reopening", self._db_path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(path)
        db.row_factory = aiosqlite.Row
        for pragma in _pragmas(self._busy_timeout_ms):
            await db.execute(pragma)
        await db.commit()

        self._db = db
        self._db_path = path
        logger.info("[DB CONNECTION] Connected to %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL into the main file and disconnect."""
        db, self._db = self._db, None
        if db is None:
            return
        try:
            await db.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await db.commit()
        except aiosqlite.Error as exc:
            logger.error("[DB CONNECTION] WAL checkpoint on close failed: %s", exc)
        finally:
            await db.close()
            logger.info("[DB CONNECTION] Disconnected from %s", self._db_path)

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The open connection.

        Raises:
            RuntimeError: If ``open()`` has not been awaited yet.
        """
        if self._db is None:
            raise RuntimeError("Database connection is not open; await open(path) first")
        return self._db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Exclusive write block. Commits when the block finishes and rolls back
        if it raises.

        Raises:
            RuntimeError: If the connection is not open.
        """
        db = self.connection
        async with self._lock:
            try:
                yield db
            except BaseException:
                await db.rollback()
                raise
            await db.commit()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Query block that only ever sees committed rows."""
        db = self.connection
        async with self._lock:
            yield db


# Shared by the default Database
db_connection = ConnectionManager()
