"""
Repository for the tenants and members existence tables.

A warning row references (tenant_id, actor_id); both parents are inserted
idempotently in the same transaction before the first warning.
"""

from __future__ import annotations

import aiosqlite

from irismod.datatypes.identifiers import ActorID, TenantID


class MembersRepository:
    """Idempotent inserts for tenants and members."""

    @staticmethod
    async def ensure_exists(
        conn: aiosqlite.Connection, tenant_id: TenantID, actor_id: ActorID | None = None
    ) -> None:
        """Insert the tenant (and member, if given) unless already present."""
        await conn.execute(
            "INSERT OR IGNORE INTO tenants (tenant_id) VALUES (?)",
            (int(tenant_id),),
        )
        if actor_id is not None:
            await conn.execute(
                "INSERT OR IGNORE INTO members (tenant_id, actor_id) VALUES (?, ?)",
                (int(tenant_id), int(actor_id)),
            )
