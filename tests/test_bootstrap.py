from pathlib import Path

import pytest
import yaml

from irismod.bootstrap import start_core, stop_core
from irismod.configuration.app_configuration import AppConfig
from irismod.database.database import Database
from irismod.database.db_connection import ConnectionManager
from irismod.datatypes.actor_datatypes import Capability
from irismod.datatypes.identifiers import ActorID

from fakes import MEMBER_ID, MODERATOR_ID, TENANT, FakeDirectory, FakePlatformAdapter, make_actor

VARIABLE = "IRISMOD_TEST_BOOTSTRAP_KEY"


@pytest.fixture
def config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    monkeypatch.delenv(VARIABLE, raising=False)
    path = tmp_path / "app_config.yml"
    path.write_text(
        yaml.safe_dump(
            {
                "database": {"path": str(tmp_path / "core.db")},
                "vault": {"env_file": str(tmp_path / ".env"), "key_variable": VARIABLE},
                "platform": {"adapter_timeout_seconds": 1},
                "moderation": {"max_warning_threshold": 5},
            }
        ),
        encoding="utf-8",
    )
    return AppConfig(path)


@pytest.mark.asyncio
async def test_core_handles_requests_and_stores_secrets(config: AppConfig) -> None:
    directory = FakeDirectory(
        TENANT,
        [
            make_actor(MODERATOR_ID, Capability.ADMINISTRATOR, rank=9, name="mod"),
            make_actor(MEMBER_ID, rank=1, name="member"),
        ],
    )
    adapter = FakePlatformAdapter()
    database = Database(config.database_path, ConnectionManager())

    core = await start_core(adapter, directory, config, database)
    try:
        too_high = await core.service.handle(
            TENANT, ActorID(MODERATOR_ID), {"function": "set_automod_rule", "threshold": 6, "action": "kick"}
        )
        warned = await core.service.handle(TENANT, ActorID(MODERATOR_ID), {"function": "warn", "target": "member"})

        await core.secrets.set_secret(MODERATOR_ID, "sk-test-token")
        assert await core.secrets.get_secret(MODERATOR_ID) == "sk-test-token"
    finally:
        await stop_core(core)

    assert not too_high.success
    assert warned.success
    assert (config.vault_env_file).exists()
    assert not database.initialized


@pytest.mark.asyncio
async def test_start_fails_when_database_cannot_open(config: AppConfig, tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    database = Database(blocker / "nested" / "core.db", ConnectionManager())

    with pytest.raises(RuntimeError, match="Could not initialize database"):
        await start_core(FakePlatformAdapter(), FakeDirectory(TENANT), config, database)
