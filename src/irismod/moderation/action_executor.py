"""
Action executor: dispatches validated commands to their side effects.

Every CommandKind has one handler. Platform work goes through the
PlatformAdapter, warning work through the CascadeEngine and rule work through
the AutoModRuleStore. Handlers always return an ExecutionResult; nothing is
retried here, callers decide whether a TRANSIENT_ERROR is worth another try.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Optional

from irismod.configuration.moderation_settings import ModerationSettings
from irismod.datatypes.action_datatypes import ExecutionContext, ExecutionResult, ExecutionStatus
from irismod.datatypes.actor_datatypes import Actor
from irismod.datatypes.command_datatypes import (
    BanParams,
    ChannelParams,
    ClearParams,
    ClearwarnsParams,
    Command,
    CommandKind,
    DelwarnParams,
    KickParams,
    MuteParams,
    NicknameParams,
    RemoveRuleParams,
    RoleParams,
    SetRuleParams,
    UnmuteParams,
    WarningsParams,
    WarnParams,
)
from irismod.datatypes.identifiers import ActorID, clean_reference, is_snowflake
from irismod.moderation.automod_rules import AutoModRuleStore, InvalidRule
from irismod.moderation.cascade_engine import CascadeEngine
from irismod.platform.adapter import ActorDirectory, AdapterResult, AdapterStatus, PlatformAdapter
from irismod.util.durations import format_duration, parse_duration, retention_days
from irismod.util.logger import get_logger

logger = get_logger("action_executor")

DEFAULT_ADAPTER_TIMEOUT = 10.0

Handler = Callable[[Command, ExecutionContext], Awaitable[ExecutionResult]]

_ADAPTER_FAILURES = {
    AdapterStatus.NOT_FOUND: (
        ExecutionStatus.NOT_FOUND,
        "{action} failed: the member, channel or role no longer exists",
    ),
    AdapterStatus.FORBIDDEN: (
        ExecutionStatus.ADAPTER_FORBIDDEN,
        "{action} failed: I don't have permission. Check my role permissions and position",
    ),
    AdapterStatus.TRANSIENT: (
        ExecutionStatus.TRANSIENT_ERROR,
        "{action} failed: Discord did not respond. Please try again",
    ),
}


class ActionExecutor:
    """Runs authorized (or system-initiated) commands."""

    def __init__(
        self,
        adapter: PlatformAdapter,
        directory: ActorDirectory,
        rules: AutoModRuleStore,
        cascade: Optional[CascadeEngine] = None,
        settings: ModerationSettings | None = None,
        adapter_timeout: float = DEFAULT_ADAPTER_TIMEOUT,
    ) -> None:
        self.adapter = adapter
        self.directory = directory
        self.rules = rules
        self.cascade = cascade
        self.settings = settings or ModerationSettings()
        self.adapter_timeout = adapter_timeout
        self._handlers: Dict[CommandKind, Handler] = {
            CommandKind.MUTE: self._mute,
            CommandKind.UNMUTE: self._unmute,
            CommandKind.KICK: self._kick,
            CommandKind.BAN: self._ban,
            CommandKind.CLEAR: self._clear,
            CommandKind.LOCK: self._lock,
            CommandKind.UNLOCK: self._unlock,
            CommandKind.ADD_ROLE: self._add_role,
            CommandKind.REMOVE_ROLE: self._remove_role,
            CommandKind.SET_NICKNAME: self._set_nickname,
            CommandKind.WARN: self._warn,
            CommandKind.WARNINGS: self._warnings,
            CommandKind.DELWARN: self._delwarn,
            CommandKind.CLEARWARNS: self._clearwarns,
            CommandKind.SET_AUTOMOD_RULE: self._set_rule,
            CommandKind.LIST_AUTOMOD_RULES: self._list_rules,
            CommandKind.REMOVE_AUTOMOD_RULE: self._remove_rule,
            CommandKind.CLEAR_AUTOMOD_RULES: self._clear_rules,
        }

    def bind_cascade(self, cascade: CascadeEngine) -> None:
        """Attach the cascade engine and point it back at this executor."""
        self.cascade = cascade
        cascade.bind_executor(self)

    async def execute(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        """
        Run ``command`` in ``context``.

        Raises:
            LookupError: Only when ``command.kind`` has no handler and
                ``strict_dispatch`` is enabled.
        """
        handler = self._handlers.get(command.kind)
        if handler is None:
            if self.settings.strict_dispatch:
                raise LookupError(f"No handler registered for command kind {command.kind!r}")
            logger.error("[EXECUTOR] No handler for command kind %r", command.kind)
            return ExecutionResult.failure(ExecutionStatus.INTERNAL_ERROR, f"Unsupported command: {command.kind}")

        try:
            result = await handler(command, context)
        except Exception as exc:
            logger.exception("[EXECUTOR] %s in %s failed unexpectedly", command.kind, context.tenant_id)
            return ExecutionResult.failure(ExecutionStatus.INTERNAL_ERROR, f"Error executing {command.kind}: {exc}")

        logger.info(
            "[EXECUTOR] %s in %s by %s -> %s", command.kind, context.tenant_id, context.issuer_id, result.status
        )
        return result

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    async def _call_adapter(
        self, action: str, call: Awaitable[AdapterResult]
    ) -> tuple[Optional[AdapterResult], Optional[ExecutionResult]]:
        """Await an adapter call under the timeout; return (result, None) or (None, failure)."""
        try:
            result = await asyncio.wait_for(call, timeout=self.adapter_timeout)
        except asyncio.TimeoutError:
            logger.warning("[EXECUTOR] %s timed out after %.1fs", action, self.adapter_timeout)
            return None, ExecutionResult.failure(
                ExecutionStatus.TRANSIENT_ERROR, f"{action} timed out. Please try again"
            )

        if result.status is AdapterStatus.OK:
            return result, None
        status, template = _ADAPTER_FAILURES[result.status]
        return None, ExecutionResult.failure(status, template.format(action=action))

    async def _resolve_target(self, command: Command, context: ExecutionContext) -> Optional[Actor]:
        if not command.target_ref:
            return None
        if context.authorized:
            # Only the member whose hierarchy was checked may be acted on
            return context.target
        return await self.directory.resolve(context.tenant_id, command.target_ref)

    @staticmethod
    def _target_missing(command: Command) -> ExecutionResult:
        return ExecutionResult.failure(ExecutionStatus.NOT_FOUND, f"Could not find member: {command.target_ref}")

    async def _member_id(self, command: Command, context: ExecutionContext) -> Optional[ActorID]:
        """Resolve the target, falling back to a raw ID so members who left can still be looked up."""
        target = await self._resolve_target(command, context)
        if target is not None:
            return target.actor_id
        if command.target_ref and is_snowflake(command.target_ref):
            return ActorID(clean_reference(command.target_ref))
        return None

    # ------------------------------------------------------------------
    # Member actions
    # ------------------------------------------------------------------

    async def _mute(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: MuteParams = command.params
        target = await self._resolve_target(command, context)
        if target is None:
            return self._target_missing(command)
        duration_ms = parse_duration(params.duration)
        _, failure = await self._call_adapter(
            "Mute", self.adapter.mute(context.tenant_id, target.actor_id, duration_ms, params.reason)
        )
        if failure:
            return failure
        return ExecutionResult.ok(
            f"Muted {target.label} for {format_duration(duration_ms)}. Reason: {params.reason}",
            f"mute:{target.actor_id}:{params.duration}",
        )

    async def _unmute(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: UnmuteParams = command.params
        target = await self._resolve_target(command, context)
        if target is None:
            return self._target_missing(command)
        _, failure = await self._call_adapter(
            "Unmute", self.adapter.unmute(context.tenant_id, target.actor_id, params.reason)
        )
        return failure or ExecutionResult.ok(f"Unmuted {target.label}", f"unmute:{target.actor_id}")

    async def _kick(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: KickParams = command.params
        target = await self._resolve_target(command, context)
        if target is None:
            return self._target_missing(command)
        _, failure = await self._call_adapter(
            "Kick", self.adapter.kick(context.tenant_id, target.actor_id, params.reason)
        )
        return failure or ExecutionResult.ok(
            f"Kicked {target.label}. Reason: {params.reason}", f"kick:{target.actor_id}"
        )

    async def _ban(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: BanParams = command.params
        target = await self._resolve_target(command, context)
        if target is None:
            return self._target_missing(command)
        days = retention_days(params.duration)
        _, failure = await self._call_adapter(
            "Ban", self.adapter.ban(context.tenant_id, target.actor_id, params.reason, days)
        )
        if failure:
            return failure
        suffix = f" (deleted {days} day(s) of messages)" if days else ""
        return ExecutionResult.ok(
            f"Banned {target.label}{suffix}. Reason: {params.reason}", f"ban:{target.actor_id}:{days}"
        )

    async def _add_role(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: RoleParams = command.params
        target = await self._resolve_target(command, context)
        if target is None:
            return self._target_missing(command)
        result, failure = await self._call_adapter(
            "Add role", self.adapter.add_role(context.tenant_id, target.actor_id, params.role_id, params.reason)
        )
        if failure:
            return failure
        role = result.detail or str(params.role_id)
        return ExecutionResult.ok(f"Added role {role} to {target.label}", f"add_role:{target.actor_id}:{params.role_id}")

    async def _remove_role(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: RoleParams = command.params
        target = await self._resolve_target(command, context)
        if target is None:
            return self._target_missing(command)
        result, failure = await self._call_adapter(
            "Remove role",
            self.adapter.remove_role(context.tenant_id, target.actor_id, params.role_id, params.reason),
        )
        if failure:
            return failure
        role = result.detail or str(params.role_id)
        return ExecutionResult.ok(
            f"Removed role {role} from {target.label}", f"remove_role:{target.actor_id}:{params.role_id}"
        )

    async def _set_nickname(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: NicknameParams = command.params
        target = await self._resolve_target(command, context)
        if target is None:
            return self._target_missing(command)
        _, failure = await self._call_adapter(
            "Set nickname",
            self.adapter.set_nickname(context.tenant_id, target.actor_id, params.nickname, params.reason),
        )
        if failure:
            return failure
        if params.nickname is None:
            return ExecutionResult.ok(f"Reset the nickname of {target.label}", f"set_nickname:{target.actor_id}")
        return ExecutionResult.ok(
            f"Changed the nickname of {target.label} to \"{params.nickname}\"", f"set_nickname:{target.actor_id}"
        )

    # ------------------------------------------------------------------
    # Channel actions
    # ------------------------------------------------------------------

    async def _clear(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: ClearParams = command.params
        if context.channel_id is None:
            return ExecutionResult.failure(ExecutionStatus.INVALID_COMMAND, "clear must be used in a text channel")
        result, failure = await self._call_adapter(
            "Clear", self.adapter.purge_messages(context.tenant_id, context.channel_id, params.amount)
        )
        if failure:
            return failure
        return ExecutionResult.ok(
            f"Deleted {result.count} message(s)", f"clear:{context.channel_id}:{result.count}", data=result.count
        )

    async def _set_lock(self, command: Command, context: ExecutionContext, locked: bool) -> ExecutionResult:
        params: ChannelParams = command.params
        channel_id = params.channel_id or context.channel_id
        if channel_id is None:
            return ExecutionResult.failure(ExecutionStatus.INVALID_COMMAND, f"{command.kind} needs a channel")
        action = "Lock" if locked else "Unlock"
        call = (
            self.adapter.lock_channel(context.tenant_id, channel_id)
            if locked
            else self.adapter.unlock_channel(context.tenant_id, channel_id)
        )
        result, failure = await self._call_adapter(action, call)
        if failure:
            return failure
        name = result.detail or str(channel_id)
        return ExecutionResult.ok(f"{action}ed #{name}", f"{command.kind}:{channel_id}")

    async def _lock(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        return await self._set_lock(command, context, locked=True)

    async def _unlock(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        return await self._set_lock(command, context, locked=False)

    # ------------------------------------------------------------------
    # Warnings
    # ------------------------------------------------------------------

    def _require_cascade(self) -> CascadeEngine:
        if self.cascade is None:
            raise RuntimeError("ActionExecutor has no cascade engine bound")
        return self.cascade

    async def _warn(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: WarnParams = command.params
        cascade = self._require_cascade()
        target = await self._resolve_target(command, context)
        if target is None:
            return self._target_missing(command)
        if target.is_bot:
            return ExecutionResult.failure(ExecutionStatus.INVALID_COMMAND, "Cannot warn bots")

        outcome = await cascade.record_warning(
            target.actor_id, context.tenant_id, context.issuer_id, params.reason, context.channel_id
        )
        message = f"Warned {target.label} (warning #{outcome.warning_id}, {outcome.new_count} total)"
        side_effects = [f"warn:{target.actor_id}:{outcome.warning_id}"]
        if outcome.triggered is not None:
            triggered = outcome.triggered
            if triggered.result.success:
                message += f". Auto-moderation: {triggered.result.message}"
                side_effects.extend(triggered.result.side_effects)
            else:
                message += f". Auto-{triggered.rule.action} failed: {triggered.result.message}"
        return ExecutionResult(ExecutionStatus.OK, message, side_effects, outcome)

    async def _warnings(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: WarningsParams = command.params
        cascade = self._require_cascade()
        actor_id = await self._member_id(command, context)
        if actor_id is None:
            return self._target_missing(command)
        records = await cascade.list_warnings(actor_id, context.tenant_id, params.limit)
        total = await cascade.count_warnings(actor_id, context.tenant_id)
        if not records:
            return ExecutionResult.ok(f"{command.target_ref} has no warnings", data=records)
        lines = [f"#{record.id} ({record.created_at}): {record.reason or 'No reason'}" for record in records]
        return ExecutionResult.ok(f"{total} warning(s):\n" + "\n".join(lines), data=records)

    async def _delwarn(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: DelwarnParams = command.params
        record = await self._require_cascade().remove_warning(context.tenant_id, params.warning_id)
        if record is None:
            return ExecutionResult.failure(ExecutionStatus.NOT_FOUND, f"Warning #{params.warning_id} not found")
        return ExecutionResult.ok(
            f"Removed warning #{params.warning_id} from <@{record.actor_id}>",
            f"delwarn:{params.warning_id}",
            data=record,
        )

    async def _clearwarns(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: ClearwarnsParams = command.params
        cascade = self._require_cascade()
        actor_id = await self._member_id(command, context)
        if actor_id is None:
            return self._target_missing(command)
        removed = await cascade.clear_warnings(actor_id, context.tenant_id)
        logger.debug("[EXECUTOR] clearwarns for %s: %s", actor_id, params.reason or "no reason")
        return ExecutionResult.ok(
            f"Cleared {removed} warning(s) for <@{actor_id}>", f"clearwarns:{actor_id}:{removed}", data=removed
        )

    # ------------------------------------------------------------------
    # Auto-moderation rules
    # ------------------------------------------------------------------

    async def _set_rule(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: SetRuleParams = command.params
        try:
            rule = await self.rules.set_rule(
                context.tenant_id, params.threshold, params.action, params.duration, params.reason, context.issuer_id
            )
        except InvalidRule as exc:
            return ExecutionResult.failure(ExecutionStatus.INVALID_COMMAND, str(exc))
        duration = f" for {rule.duration}" if rule.duration else ""
        return ExecutionResult.ok(
            f"At {rule.warning_threshold} warnings: {rule.action}{duration} ({rule.reason})",
            f"set_automod_rule:{rule.warning_threshold}",
            data=rule,
        )

    async def _list_rules(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        rules = await self.rules.list_rules(context.tenant_id)
        if not rules:
            return ExecutionResult.ok("No auto-moderation rules configured", data=rules)
        lines = [
            f"{rule.warning_threshold} warnings: {rule.action}"
            + (f" for {rule.duration}" if rule.duration else "")
            + f" ({rule.reason})"
            for rule in rules
        ]
        return ExecutionResult.ok("\n".join(lines), data=rules)

    async def _remove_rule(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        params: RemoveRuleParams = command.params
        if not await self.rules.remove_rule(context.tenant_id, params.threshold):
            return ExecutionResult.failure(
                ExecutionStatus.NOT_FOUND, f"No auto-moderation rule at {params.threshold} warnings"
            )
        return ExecutionResult.ok(
            f"Removed the rule at {params.threshold} warnings", f"remove_automod_rule:{params.threshold}"
        )

    async def _clear_rules(self, command: Command, context: ExecutionContext) -> ExecutionResult:
        removed = await self.rules.clear_rules(context.tenant_id)
        return ExecutionResult.ok(
            f"Removed {removed} auto-moderation rule(s)", f"clear_automod_rules:{removed}", data=removed
        )
