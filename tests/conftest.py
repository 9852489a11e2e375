"""
Pytest configuration and fixtures for irismod tests.
"""

import sys
from pathlib import Path

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import pytest
import pytest_asyncio

from irismod.configuration.moderation_settings import ModerationSettings
from irismod.database.database import Database
from irismod.database.db_connection import ConnectionManager
from irismod.moderation.action_executor import ActionExecutor
from irismod.moderation.automod_rules import AutoModRuleStore
from irismod.moderation.cascade_engine import CascadeEngine
from irismod.moderation.warning_ledger import WarningLedger

from fakes import FakeDirectory, FakePlatformAdapter, RecordingSink, TENANT


@pytest_asyncio.fixture
async def connection(tmp_path: Path):
    """Open a fresh database with the full schema in a temp directory."""
    manager = ConnectionManager()
    database = Database(tmp_path / "test.db", manager)
    assert await database.initialize()
    yield manager
    await database.shutdown()


@pytest.fixture
def settings() -> ModerationSettings:
    return ModerationSettings({"strict_dispatch": False})


@pytest.fixture
def adapter() -> FakePlatformAdapter:
    return FakePlatformAdapter()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(TENANT)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def rules(connection: ConnectionManager, settings: ModerationSettings) -> AutoModRuleStore:
    return AutoModRuleStore(connection, settings)


@pytest.fixture
def cascade(connection: ConnectionManager, rules: AutoModRuleStore, sink: RecordingSink) -> CascadeEngine:
    return CascadeEngine(connection, WarningLedger(connection), rules, sinks=[sink])


@pytest.fixture
def executor(
    adapter: FakePlatformAdapter,
    directory: FakeDirectory,
    rules: AutoModRuleStore,
    cascade: CascadeEngine,
    settings: ModerationSettings,
) -> ActionExecutor:
    executor = ActionExecutor(adapter, directory, rules, settings=settings, adapter_timeout=0.5)
    executor.bind_cascade(cascade)
    return executor
