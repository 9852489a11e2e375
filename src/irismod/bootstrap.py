"""
Startup and shutdown of the irismod core.

``start_core`` opens the database, provisions the vault key and wires the
stores, cascade engine, executor, pipeline and service together.
``start_for_discord`` does the same with the py-cord adapter and directory
for a connected client.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Iterable, Optional

import discord

from irismod.authorization.pipeline import AuthorizationPipeline
from irismod.configuration.app_configuration import AppConfig, app_config
from irismod.database.database import Database
from irismod.database.db_connection import ConnectionManager
from irismod.intake.request_gate import InFlightRequestGate
from irismod.moderation.action_executor import ActionExecutor
from irismod.moderation.automod_rules import AutoModRuleStore
from irismod.moderation.cascade_engine import CascadeEngine
from irismod.moderation.notifications import LoggingNotificationSink, NotificationSink
from irismod.moderation.warning_ledger import WarningLedger
from irismod.platform.adapter import ActorDirectory, PlatformAdapter
from irismod.platform.discord_adapter import DiscordActorDirectory, DiscordPlatformAdapter
from irismod.services.moderation_service import ModerationService
from irismod.util.logger import get_logger, handle_exception
from irismod.vault.encryption import SecretCipher
from irismod.vault.key_management import load_or_create_master_key
from irismod.vault.secret_store import SecretStore

logger = get_logger("bootstrap")


@dataclass(slots=True)
class ModerationCore:
    """Every wired component, for callers that need more than the service."""
    ledger: WarningLedger
    rules: AutoModRuleStore
    cascade: CascadeEngine
    executor: ActionExecutor
    pipeline: AuthorizationPipeline
    service: ModerationService
    secrets: SecretStore
    database: Optional[Database] = None


def build_core(
    connection: ConnectionManager,
    adapter: PlatformAdapter,
    directory: ActorDirectory,
    cipher: SecretCipher,
    config: AppConfig = app_config,
    sinks: Optional[Iterable[NotificationSink]] = None,
) -> ModerationCore:
    """Wire the components over an already open connection."""
    settings = config.moderation
    ledger = WarningLedger(connection)
    rules = AutoModRuleStore(connection, settings)
    cascade = CascadeEngine(
        connection,
        ledger,
        rules,
        sinks=[LoggingNotificationSink()] if sinks is None else sinks,
    )
    executor = ActionExecutor(
        adapter,
        directory,
        rules,
        settings=settings,
        adapter_timeout=config.adapter_timeout_seconds,
    )
    executor.bind_cascade(cascade)
    pipeline = AuthorizationPipeline(directory, settings)
    service = ModerationService(directory, pipeline, executor, InFlightRequestGate())
    return ModerationCore(
        ledger=ledger,
        rules=rules,
        cascade=cascade,
        executor=executor,
        pipeline=pipeline,
        service=service,
        secrets=SecretStore(connection, cipher),
    )


async def start_core(
    adapter: PlatformAdapter,
    directory: ActorDirectory,
    config: AppConfig = app_config,
    database: Optional[Database] = None,
) -> ModerationCore:
    """
    Open the database, load the vault key and build the core.

    Raises:
        RuntimeError: If the database cannot be initialized.
    """
    database = database or Database(config.database_path)
    if not await database.initialize():
        raise RuntimeError(f"Could not initialize database at {database.db_path}")

    key = load_or_create_master_key(config.vault_env_file, config.vault_key_variable)
    core = build_core(database.connection, adapter, directory, SecretCipher(key), config)
    core.database = database
    logger.info("[BOOTSTRAP] Moderation core ready")
    return core


async def start_for_discord(client: discord.Client, config: AppConfig = app_config) -> ModerationCore:
    """Build the core on top of a py-cord client."""
    sys.excepthook = handle_exception
    return await start_core(DiscordPlatformAdapter(client), DiscordActorDirectory(client), config)


async def stop_core(core: ModerationCore) -> None:
    if core.database is not None:
        await core.database.shutdown()
    logger.info("[BOOTSTRAP] Moderation core stopped")
