"""
Repository for the warnings table.

Rows are immutable; the only mutations are insert, delete by id and delete by
(tenant, actor). Counts are always computed with COUNT(*) over the rows that
exist at query time.
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from irismod.datatypes.identifiers import ActorID, TenantID
from irismod.datatypes.moderation_datatypes import WarningRecord

_COLUMNS = "id, actor_id, tenant_id, moderator_id, reason, created_at"


def _from_row(row: aiosqlite.Row) -> WarningRecord:
    return WarningRecord(
        id=row[0],
        actor_id=ActorID(row[1]),
        tenant_id=TenantID(row[2]),
        moderator_id=ActorID(row[3]),
        reason=row[4],
        created_at=row[5],
    )


class WarningsRepository:
    """Low-level CRUD for the ``warnings`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        actor_id: ActorID,
        tenant_id: TenantID,
        moderator_id: ActorID,
        reason: Optional[str],
    ) -> int:
        """Insert a warning and return its id."""
        cursor = await conn.execute(
            "INSERT INTO warnings (actor_id, tenant_id, moderator_id, reason) VALUES (?, ?, ?, ?)",
            (int(actor_id), int(tenant_id), int(moderator_id), reason),
        )
        return int(cursor.lastrowid)

    @staticmethod
    async def delete(conn: aiosqlite.Connection, warning_id: int) -> bool:
        """Hard-delete a warning by id. Returns True if a row was removed."""
        cursor = await conn.execute("DELETE FROM warnings WHERE id = ?", (warning_id,))
        return cursor.rowcount > 0

    @staticmethod
    async def delete_for_member(
        conn: aiosqlite.Connection, actor_id: ActorID, tenant_id: TenantID
    ) -> int:
        """Hard-delete every warning of a member. Returns the number removed."""
        cursor = await conn.execute(
            "DELETE FROM warnings WHERE tenant_id = ? AND actor_id = ?",
            (int(tenant_id), int(actor_id)),
        )
        return int(cursor.rowcount)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def count(conn: aiosqlite.Connection, actor_id: ActorID, tenant_id: TenantID) -> int:
        async with conn.execute(
            "SELECT COUNT(*) FROM warnings WHERE tenant_id = ? AND actor_id = ?",
            (int(tenant_id), int(actor_id)),
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    async def get(conn: aiosqlite.Connection, warning_id: int) -> Optional[WarningRecord]:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM warnings WHERE id = ?", (warning_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return _from_row(row) if row else None

    @staticmethod
    async def list_for_member(
        conn: aiosqlite.Connection, actor_id: ActorID, tenant_id: TenantID, limit: int
    ) -> List[WarningRecord]:
        """Most recent first."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM warnings WHERE tenant_id = ? AND actor_id = ? "
            "ORDER BY created_at DESC, id DESC LIMIT ?",
            (int(tenant_id), int(actor_id), limit),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_from_row(row) for row in rows]
