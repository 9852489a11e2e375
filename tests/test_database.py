"""Tests for the database coordinator, schema and connection manager."""

import asyncio
from pathlib import Path

import pytest

from irismod.database.database import Database
from irismod.database.db_connection import ConnectionManager
from irismod.database.db_schema import SCHEMA_VERSION
from irismod.datatypes.identifiers import ActorID
from irismod.repositories.members_repo import MembersRepository
from irismod.repositories.warnings_repo import WarningsRepository

from fakes import MEMBER_ID, MODERATOR_ID, TENANT

MEMBER = ActorID(MEMBER_ID)
MODERATOR = ActorID(MODERATOR_ID)


async def _table_names(connection: ConnectionManager) -> set:
    async with connection.read() as db:
        cursor = await db.execute("SELECT name FROM sqlite_master WHERE type='table'")
        return {row["name"] for row in await cursor.fetchall()}


@pytest.mark.asyncio
async def test_initialize_creates_tables(connection: ConnectionManager) -> None:
    tables = await _table_names(connection)

    assert {"tenants", "members", "warnings", "automod_rules", "secrets", "schema_version"} <= tables

    async with connection.read() as db:
        cursor = await db.execute("SELECT MAX(version) FROM schema_version")
        assert (await cursor.fetchone())[0] == SCHEMA_VERSION


@pytest.mark.asyncio
async def test_initialize_is_idempotent(tmp_path: Path) -> None:
    path = tmp_path / "again.db"
    first = Database(path, ConnectionManager())
    assert await first.initialize()
    assert first.connection.is_open
    assert await first.initialize()
    await first.shutdown()

    second = Database(path, ConnectionManager())
    assert await second.initialize()
    assert second.initialized
    await second.shutdown()
    assert not second.initialized
    assert not second.connection.is_open


def test_connection_requires_open() -> None:
    with pytest.raises(RuntimeError, match="not open"):
        ConnectionManager().connection


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(connection: ConnectionManager) -> None:
    with pytest.raises(ValueError):
        async with connection.transaction() as db:
            await MembersRepository.ensure_exists(db, TENANT, MEMBER)
            await WarningsRepository.insert(db, MEMBER, TENANT, MODERATOR, "rolled back")
            raise ValueError("abort")

    async with connection.read() as db:
        assert await WarningsRepository.count(db, MEMBER, TENANT) == 0


@pytest.mark.asyncio
async def test_warnings_require_a_member_row(connection: ConnectionManager) -> None:
    with pytest.raises(Exception, match="FOREIGN KEY"):
        async with connection.transaction() as db:
            await WarningsRepository.insert(db, MEMBER, TENANT, MODERATOR, None)


@pytest.mark.asyncio
async def test_deleting_a_tenant_cascades(connection: ConnectionManager) -> None:
    async with connection.transaction() as db:
        await MembersRepository.ensure_exists(db, TENANT, MEMBER)
        await WarningsRepository.insert(db, MEMBER, TENANT, MODERATOR, "one")

    async with connection.transaction() as db:
        await db.execute("DELETE FROM tenants WHERE tenant_id = ?", (int(TENANT),))

    async with connection.read() as db:
        assert await WarningsRepository.count(db, MEMBER, TENANT) == 0


@pytest.mark.asyncio
async def test_reads_never_see_rows_that_roll_back(connection: ConnectionManager) -> None:
    inserted = asyncio.Event()

    async def doomed_write() -> None:
        async with connection.transaction() as db:
            await MembersRepository.ensure_exists(db, TENANT, MEMBER)
            await WarningsRepository.insert(db, MEMBER, TENANT, MODERATOR, "never committed")
            inserted.set()
            await asyncio.sleep(0.05)
            raise ValueError("abort")

    writer = asyncio.create_task(doomed_write())
    await inserted.wait()

    async with connection.read() as db:
        seen = await WarningsRepository.count(db, MEMBER, TENANT)

    with pytest.raises(ValueError):
        await writer
    assert seen == 0
