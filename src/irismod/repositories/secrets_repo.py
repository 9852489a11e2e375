"""
Repository for the secrets table.

This layer stores whatever token it is given; encryption and migration
happen in :mod:`irismod.vault.secret_store`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import aiosqlite


@dataclass
class SecretRow:
    """Raw DB row for one user's provider secret and settings."""
    owner_id: int
    token: str
    provider: str
    model: str
    endpoint: str


class SecretsRepository:
    """Low-level CRUD for the ``secrets`` table."""

    @staticmethod
    async def upsert_token(conn: aiosqlite.Connection, owner_id: int, token: str) -> None:
        """Insert a row or overwrite its token, keeping provider settings."""
        await conn.execute(
            """
            INSERT INTO secrets (owner_id, token) VALUES (?, ?)
            ON CONFLICT(owner_id) DO UPDATE SET
                token      = excluded.token,
                updated_at = CURRENT_TIMESTAMP
            """,
            (owner_id, token),
        )

    @staticmethod
    async def replace_token(
        conn: aiosqlite.Connection, owner_id: int, expected: str, token: str
    ) -> bool:
        """Swap the token only if it still equals ``expected``."""
        cursor = await conn.execute(
            "UPDATE secrets SET token = ?, updated_at = CURRENT_TIMESTAMP WHERE owner_id = ? AND token = ?",
            (token, owner_id, expected),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def set_provider(
        conn: aiosqlite.Connection, owner_id: int, provider: str, endpoint: str
    ) -> bool:
        cursor = await conn.execute(
            "UPDATE secrets SET provider = ?, endpoint = ?, updated_at = CURRENT_TIMESTAMP WHERE owner_id = ?",
            (provider, endpoint, owner_id),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def set_model(conn: aiosqlite.Connection, owner_id: int, model: str) -> bool:
        cursor = await conn.execute(
            "UPDATE secrets SET model = ?, updated_at = CURRENT_TIMESTAMP WHERE owner_id = ?",
            (model, owner_id),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def get(conn: aiosqlite.Connection, owner_id: int) -> Optional[SecretRow]:
        async with conn.execute(
            "SELECT owner_id, token, provider, model, endpoint FROM secrets WHERE owner_id = ?",
            (owner_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return SecretRow(owner_id=row[0], token=row[1], provider=row[2], model=row[3], endpoint=row[4])

    @staticmethod
    async def delete(conn: aiosqlite.Connection, owner_id: int) -> bool:
        cursor = await conn.execute("DELETE FROM secrets WHERE owner_id = ?", (owner_id,))
        return cursor.rowcount > 0

    @staticmethod
    async def delete_if_token(conn: aiosqlite.Connection, owner_id: int, expected: str) -> bool:
        """Delete the row only if its token still equals ``expected``."""
        cursor = await conn.execute(
            "DELETE FROM secrets WHERE owner_id = ? AND token = ?", (owner_id, expected)
        )
        return cursor.rowcount > 0
