"""
Auto-moderation cascade engine.

Recording a warning runs, in one write transaction:

1. insert the warning (never deduplicated)
2. count the member's warnings, including the new one
3. look up the guild's rule whose threshold equals that count exactly

After the commit, a matched rule is turned into a mute/kick/ban command aimed
at the warned member and handed straight to the ActionExecutor. These
commands are system-initiated and skip the authorization pipeline. Whatever
the executor returns, the warning stays recorded.

Because the write transaction is serialised, two concurrent warnings for the
same member always see distinct counts, and every threshold fires at most
once per crossing. The platform call happens outside the transaction so no
database lock is held while waiting on the network.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional

from irismod.database.db_connection import ConnectionManager
from irismod.datatypes.action_datatypes import ExecutionContext, ExecutionResult, ExecutionStatus
from irismod.datatypes.command_datatypes import (
    BanParams,
    Command,
    CommandParams,
    KickParams,
    MuteParams,
    RuleAction,
)
from irismod.datatypes.identifiers import ActorID, TenantID
from irismod.datatypes.moderation_datatypes import (
    AutoModRule,
    TriggeredAction,
    WarningEvent,
    WarningOutcome,
    WarningRecord,
)
from irismod.moderation.automod_rules import AutoModRuleStore
from irismod.moderation.notifications import NotificationSink
from irismod.moderation.warning_ledger import DEFAULT_PAGE_SIZE, WarningLedger
from irismod.util.logger import get_logger

if TYPE_CHECKING:
    from irismod.moderation.action_executor import ActionExecutor

logger = get_logger("cascade_engine")


def command_for_rule(rule: AutoModRule, actor_id: ActorID) -> Command:
    """Build the punitive command a rule calls for, aimed at ``actor_id``."""
    reason = rule.automatic_reason
    params: CommandParams
    match rule.action:
        case RuleAction.MUTE:
            params = MuteParams(duration=rule.duration or "", reason=reason)
        case RuleAction.KICK:
            params = KickParams(reason=reason)
        case RuleAction.BAN:
            params = BanParams(reason=reason, duration=rule.duration)
    return Command.targeting(rule.action.command_kind, actor_id, params)


class CascadeEngine:
    """Records warnings and escalates them through the guild's rules."""

    def __init__(
        self,
        connection: ConnectionManager,
        ledger: WarningLedger,
        rules: AutoModRuleStore,
        executor: Optional["ActionExecutor"] = None,
        sinks: Iterable[NotificationSink] = (),
    ) -> None:
        self._db = connection
        self.ledger = ledger
        self.rules = rules
        self.executor = executor
        self.sinks: List[NotificationSink] = list(sinks)

    def bind_executor(self, executor: "ActionExecutor") -> None:
        self.executor = executor

    def add_sink(self, sink: NotificationSink) -> None:
        self.sinks.append(sink)

    async def record_warning(
        self,
        actor_id: ActorID,
        tenant_id: TenantID,
        moderator_id: ActorID,
        reason: Optional[str],
        channel_id: Optional[int] = None,
    ) -> WarningOutcome:
        """
        Record a warning and run the rule matching the new count, if any.

        Args:
            actor_id: Warned member.
            tenant_id: Guild the warning belongs to.
            moderator_id: Member who issued the warning.
            reason: Free-text reason, may be None.
            channel_id: Channel of the originating request, passed on to the
                triggered command's context.

        Returns:
            WarningOutcome: The new warning id, the fresh count, and the
            triggered action with its execution result when a rule matched.
        """
        async with self._db.transaction() as conn:
            warning_id, new_count = await self.ledger.append(conn, actor_id, tenant_id, moderator_id, reason)
            rule = await self.rules.match(conn, tenant_id, new_count)

        logger.info(
            "[CASCADE] Warning #%s for %s in %s recorded (count=%d)", warning_id, actor_id, tenant_id, new_count
        )
        outcome = WarningOutcome(warning_id=warning_id, new_count=new_count)

        if rule is not None:
            context = ExecutionContext(tenant_id=tenant_id, issuer_id=moderator_id, channel_id=channel_id)
            outcome.triggered = await self._trigger(rule, actor_id, context)

        await self._emit(
            WarningEvent(
                warning_id=warning_id,
                actor_id=actor_id,
                tenant_id=tenant_id,
                moderator_id=moderator_id,
                reason=reason,
                new_count=new_count,
                triggered_action=rule.action if rule is not None else None,
                triggered_success=outcome.triggered.result.success if outcome.triggered else None,
            )
        )
        return outcome

    async def _trigger(self, rule: AutoModRule, actor_id: ActorID, context: ExecutionContext) -> TriggeredAction:
        command = command_for_rule(rule, actor_id)
        logger.info(
            "[CASCADE] Threshold %d reached for %s in %s, applying %s",
            rule.warning_threshold,
            actor_id,
            context.tenant_id,
            rule.action,
        )

        if self.executor is None:
            result = ExecutionResult.failure(ExecutionStatus.INTERNAL_ERROR, "No executor bound to the cascade engine")
        else:
            try:
                result = await self.executor.execute(command, context)
            except Exception as exc:
                logger.exception("[CASCADE] Auto-%s for %s raised", rule.action, actor_id)
                result = ExecutionResult.failure(ExecutionStatus.INTERNAL_ERROR, f"Auto-{rule.action} failed: {exc}")

        if not result.success:
            logger.error(
                "[CASCADE] Auto-%s for %s in %s failed (%s): %s",
                rule.action,
                actor_id,
                context.tenant_id,
                result.status,
                result.message,
            )
        return TriggeredAction(rule=rule, command=command, result=result)

    async def _emit(self, event: WarningEvent) -> None:
        for sink in self.sinks:
            try:
                await sink.notify(event)
            except Exception:
                logger.exception("[CASCADE] Notification sink %s failed", type(sink).__name__)

    async def remove_warning(self, tenant_id: TenantID, warning_id: int) -> Optional[WarningRecord]:
        """Hard delete one warning. Never reverses actions it contributed to."""
        return await self.ledger.remove_warning(tenant_id, warning_id)

    async def clear_warnings(self, actor_id: ActorID, tenant_id: TenantID) -> int:
        """Hard delete every warning of a member. Never reverses past actions."""
        return await self.ledger.clear_warnings(actor_id, tenant_id)

    async def list_warnings(
        self, actor_id: ActorID, tenant_id: TenantID, limit: int = DEFAULT_PAGE_SIZE
    ) -> List[WarningRecord]:
        return await self.ledger.list_warnings(actor_id, tenant_id, limit)

    async def count_warnings(self, actor_id: ActorID, tenant_id: TenantID) -> int:
        return await self.ledger.count(actor_id, tenant_id)
