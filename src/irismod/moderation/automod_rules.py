"""
Auto-moderation rule store.

A guild maps warning counts to punitive actions. There is at most one rule
per (guild, threshold); setting a rule at an existing threshold replaces it.
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from irismod.configuration.moderation_settings import ModerationSettings
from irismod.database.db_connection import ConnectionManager
from irismod.datatypes.command_datatypes import RuleAction
from irismod.datatypes.identifiers import ActorID, TenantID
from irismod.datatypes.moderation_datatypes import AutoModRule
from irismod.repositories.automod_rules_repo import AutoModRulesRepository
from irismod.repositories.members_repo import MembersRepository
from irismod.util.durations import is_valid_duration
from irismod.util.logger import get_logger

logger = get_logger("automod_rules")


class InvalidRule(ValueError):
    """Raised when a rule's threshold, action or duration is unusable."""


def default_rule_reason(action: RuleAction, threshold: int) -> str:
    return f"Auto-{action.value} at {threshold} warnings"


class AutoModRuleStore:
    """Per-guild threshold rules."""

    def __init__(self, connection: ConnectionManager, settings: ModerationSettings | None = None) -> None:
        self._db = connection
        self.settings = settings or ModerationSettings()

    def build_rule(
        self,
        tenant_id: TenantID,
        threshold: int,
        action: RuleAction,
        duration: Optional[str],
        reason: Optional[str],
        created_by: ActorID,
    ) -> AutoModRule:
        """
        Validate rule fields and apply defaults.

        Raises:
            InvalidRule: If the threshold is out of range, or a mute/ban rule
                has no valid duration.
        """
        max_threshold = self.settings.max_warning_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, int) or not 1 <= threshold <= max_threshold:
            raise InvalidRule(f"Warning threshold must be between 1 and {max_threshold}")

        if action.requires_duration:
            if not is_valid_duration(duration):
                raise InvalidRule(f"A valid duration (e.g. 10m, 1h, 7d) is required for {action} rules")
            duration = duration.strip().lower()
        else:
            duration = None

        return AutoModRule(
            tenant_id=tenant_id,
            warning_threshold=threshold,
            action=action,
            duration=duration,
            reason=(reason or "").strip() or default_rule_reason(action, threshold),
            created_by=created_by,
        )

    async def set_rule(
        self,
        tenant_id: TenantID,
        threshold: int,
        action: RuleAction,
        duration: Optional[str],
        reason: Optional[str],
        created_by: ActorID,
    ) -> AutoModRule:
        """Create or replace the rule at ``threshold``."""
        rule = self.build_rule(tenant_id, threshold, action, duration, reason, created_by)
        async with self._db.transaction() as conn:
            await MembersRepository.ensure_exists(conn, tenant_id)
            await AutoModRulesRepository.upsert(conn, rule)
        logger.info(
            "[AUTOMOD RULES] %s set %s rule at %d warnings in %s", created_by, action, threshold, tenant_id
        )
        return rule

    async def get_rule(self, tenant_id: TenantID, threshold: int) -> Optional[AutoModRule]:
        async with self._db.read() as conn:
            return await AutoModRulesRepository.get(conn, tenant_id, threshold)

    @staticmethod
    async def match(conn: aiosqlite.Connection, tenant_id: TenantID, warning_count: int) -> Optional[AutoModRule]:
        """Rule whose threshold equals ``warning_count`` exactly, read on an open transaction."""
        return await AutoModRulesRepository.get(conn, tenant_id, warning_count)

    async def list_rules(self, tenant_id: TenantID) -> List[AutoModRule]:
        """All rules of a guild, lowest threshold first."""
        async with self._db.read() as conn:
            return await AutoModRulesRepository.list_for_tenant(conn, tenant_id)

    async def remove_rule(self, tenant_id: TenantID, threshold: int) -> bool:
        async with self._db.transaction() as conn:
            removed = await AutoModRulesRepository.delete(conn, tenant_id, threshold)
        if removed:
            logger.info("[AUTOMOD RULES] Removed rule at %d warnings in %s", threshold, tenant_id)
        return removed

    async def clear_rules(self, tenant_id: TenantID) -> int:
        async with self._db.transaction() as conn:
            removed = await AutoModRulesRepository.delete_for_tenant(conn, tenant_id)
        logger.info("[AUTOMOD RULES] Cleared %d rule(s) in %s", removed, tenant_id)
        return removed
