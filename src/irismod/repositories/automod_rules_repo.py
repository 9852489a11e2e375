"""
Repository for the automod_rules table.

(tenant_id, warning_threshold) is the primary key; ``upsert`` is a single
INSERT ... ON CONFLICT statement so concurrent edits of the same threshold
never produce two rows.
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from irismod.datatypes.command_datatypes import RuleAction
from irismod.datatypes.identifiers import ActorID, TenantID
from irismod.datatypes.moderation_datatypes import AutoModRule

_COLUMNS = "tenant_id, warning_threshold, action, duration, reason, created_by"


def _from_row(row: aiosqlite.Row) -> AutoModRule:
    return AutoModRule(
        tenant_id=TenantID(row[0]),
        warning_threshold=row[1],
        action=RuleAction(row[2]),
        duration=row[3],
        reason=row[4] or "",
        created_by=ActorID(row[5]),
    )


class AutoModRulesRepository:
    """Low-level CRUD for the ``automod_rules`` table."""

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, rule: AutoModRule) -> None:
        """Insert or replace the rule at (tenant, threshold)."""
        await conn.execute(
            """
            INSERT INTO automod_rules (tenant_id, warning_threshold, action, duration, reason, created_by)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(tenant_id, warning_threshold) DO UPDATE SET
                action     = excluded.action,
                duration   = excluded.duration,
                reason     = excluded.reason,
                created_by = excluded.created_by,
                updated_at = CURRENT_TIMESTAMP
            """,
            (
                int(rule.tenant_id),
                rule.warning_threshold,
                rule.action.value,
                rule.duration,
                rule.reason,
                int(rule.created_by),
            ),
        )

    @staticmethod
    async def get(
        conn: aiosqlite.Connection, tenant_id: TenantID, threshold: int
    ) -> Optional[AutoModRule]:
        """Return the rule for exactly this threshold, if any."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM automod_rules WHERE tenant_id = ? AND warning_threshold = ?",
            (int(tenant_id), threshold),
        ) as cursor:
            row = await cursor.fetchone()
        return _from_row(row) if row else None

    @staticmethod
    async def list_for_tenant(conn: aiosqlite.Connection, tenant_id: TenantID) -> List[AutoModRule]:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM automod_rules WHERE tenant_id = ? ORDER BY warning_threshold ASC",
            (int(tenant_id),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_from_row(row) for row in rows]

    @staticmethod
    async def delete(conn: aiosqlite.Connection, tenant_id: TenantID, threshold: int) -> bool:
        cursor = await conn.execute(
            "DELETE FROM automod_rules WHERE tenant_id = ? AND warning_threshold = ?",
            (int(tenant_id), threshold),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def delete_for_tenant(conn: aiosqlite.Connection, tenant_id: TenantID) -> int:
        cursor = await conn.execute(
            "DELETE FROM automod_rules WHERE tenant_id = ?", (int(tenant_id),)
        )
        return int(cursor.rowcount)
