"""
Database schema initialization.

Handles creation of tables, indexes and schema version tracking. Every
statement is idempotent so initialization can run on each start.
"""

import aiosqlite
from irismod.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the irismod tables, indexes and version row."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables and indexes if they are missing.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        # Tenant and member existence (foreign-key targets for warnings)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS tenants (
                tenant_id INTEGER PRIMARY KEY,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS members (
                tenant_id INTEGER NOT NULL,
                actor_id INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (tenant_id, actor_id),
                FOREIGN KEY (tenant_id) REFERENCES tenants(tenant_id) ON DELETE CASCADE
            )
        """)

        # Warning ledger
        await db.execute("""
            CREATE TABLE IF NOT EXISTS warnings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                actor_id INTEGER NOT NULL,
                tenant_id INTEGER NOT NULL,
                moderator_id INTEGER NOT NULL,
                reason TEXT,
                created_at TIMESTAMP NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
                FOREIGN KEY (tenant_id, actor_id) REFERENCES members(tenant_id, actor_id) ON DELETE CASCADE
            )
        """)

        # Auto-moderation rules, one per (tenant, threshold)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS automod_rules (
                tenant_id INTEGER NOT NULL,
                warning_threshold INTEGER NOT NULL CHECK (warning_threshold > 0),
                action TEXT NOT NULL CHECK (action IN ('mute', 'kick', 'ban')),
                duration TEXT,
                reason TEXT NOT NULL DEFAULT '',
                created_by INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (tenant_id, warning_threshold),
                FOREIGN KEY (tenant_id) REFERENCES tenants(tenant_id) ON DELETE CASCADE
            )
        """)

        # Per-user provider secrets; legacy rows may hold plaintext until first read
        await db.execute("""
            CREATE TABLE IF NOT EXISTS secrets (
                owner_id INTEGER PRIMARY KEY,
                token TEXT NOT NULL,
                provider TEXT NOT NULL DEFAULT 'gemini',
                model TEXT NOT NULL DEFAULT 'gemini-2.0-flash',
                endpoint TEXT NOT NULL DEFAULT 'https://generativelanguage.googleapis.com/v1beta/openai/',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create indexes for the ledger's count and listing queries."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_warnings_member ON warnings(tenant_id, actor_id, id DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_automod_rules_tenant ON automod_rules(tenant_id)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        """Record the schema version."""
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
