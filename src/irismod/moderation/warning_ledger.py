"""
Warning ledger: append-only infraction log per (member, guild).

Warnings are never deduplicated or edited. Removing one (or all of a
member's) is a hard delete and has no effect on actions that were already
taken because of them.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import aiosqlite

from irismod.database.db_connection import ConnectionManager
from irismod.datatypes.identifiers import ActorID, TenantID
from irismod.datatypes.moderation_datatypes import WarningRecord
from irismod.repositories.members_repo import MembersRepository
from irismod.repositories.warnings_repo import WarningsRepository
from irismod.util.logger import get_logger

logger = get_logger("warning_ledger")

DEFAULT_PAGE_SIZE = 10


class WarningLedger:
    """Warning persistence on top of the shared connection."""

    def __init__(self, connection: ConnectionManager) -> None:
        self._db = connection

    @staticmethod
    async def append(
        conn: aiosqlite.Connection,
        actor_id: ActorID,
        tenant_id: TenantID,
        moderator_id: ActorID,
        reason: Optional[str],
    ) -> Tuple[int, int]:
        """
        Insert a warning on an open transaction and count the member's warnings.

        Returns:
            (warning_id, new_count) where the count includes the new row.
        """
        await MembersRepository.ensure_exists(conn, tenant_id, actor_id)
        warning_id = await WarningsRepository.insert(conn, actor_id, tenant_id, moderator_id, reason)
        new_count = await WarningsRepository.count(conn, actor_id, tenant_id)
        return warning_id, new_count

    async def record(
        self, actor_id: ActorID, tenant_id: TenantID, moderator_id: ActorID, reason: Optional[str]
    ) -> Tuple[int, int]:
        """Insert a warning in its own transaction. Returns (warning_id, new_count)."""
        async with self._db.transaction() as conn:
            return await self.append(conn, actor_id, tenant_id, moderator_id, reason)

    async def count(self, actor_id: ActorID, tenant_id: TenantID) -> int:
        async with self._db.read() as conn:
            return await WarningsRepository.count(conn, actor_id, tenant_id)

    async def list_warnings(
        self, actor_id: ActorID, tenant_id: TenantID, limit: int = DEFAULT_PAGE_SIZE
    ) -> List[WarningRecord]:
        """Most recent first, at most ``limit`` rows."""
        async with self._db.read() as conn:
            return await WarningsRepository.list_for_member(conn, actor_id, tenant_id, limit)

    async def remove_warning(self, tenant_id: TenantID, warning_id: int) -> Optional[WarningRecord]:
        """
        Delete one warning if it belongs to ``tenant_id``.

        Returns:
            The deleted record, or None when no such warning exists in this guild.
        """
        async with self._db.transaction() as conn:
            record = await WarningsRepository.get(conn, warning_id)
            if record is None or record.tenant_id != tenant_id:
                return None
            await WarningsRepository.delete(conn, warning_id)
        logger.info("[WARNINGS] Removed warning #%s from %s in %s", warning_id, record.actor_id, tenant_id)
        return record

    async def clear_warnings(self, actor_id: ActorID, tenant_id: TenantID) -> int:
        """Delete every warning of a member. Returns the number removed."""
        async with self._db.transaction() as conn:
            removed = await WarningsRepository.delete_for_member(conn, actor_id, tenant_id)
        logger.info("[WARNINGS] Cleared %d warning(s) for %s in %s", removed, actor_id, tenant_id)
        return removed
