"""
Database initialization and lifecycle for SQLite.

The Database class owns the shared ConnectionManager and the schema. The
ledger, rule store and secret store are handed ``database.connection`` and
run their own transactions through it.
"""

from __future__ import annotations

from pathlib import Path

from irismod.database.db_connection import ConnectionManager, db_connection
from irismod.database.db_schema import SchemaManager
from irismod.util.logger import get_logger

logger = get_logger("database")

# Database file path
DB_PATH = Path("./data/irismod.db").resolve()


class Database:
    """
    Central database coordinator.

    Lifecycle:
        1. Call initialize() at program startup
        2. Hand ``connection`` to the stores
        3. Call shutdown() at program end
    """

    def __init__(self, db_path: Path = DB_PATH, connection: ConnectionManager | None = None):
        """
        Args:
            db_path: Path to the SQLite database file
            connection: Connection manager to use (defaults to the module singleton)
        """
        self.db_path = db_path
        self.connection = connection if connection is not None else db_connection
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self.connection.open(self.db_path)
            async with self.connection.transaction() as conn:
                await SchemaManager.initialize_schema(conn)
        except Exception as e:
            logger.error("[DATABASE] Database initialization failed: %s", e)
            await self.connection.close()
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        """Close the connection."""
        if not self._initialized:
            return

        await self.connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")
