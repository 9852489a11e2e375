"""
Entry point for moderation requests coming from the function-calling layer.

``handle`` admits the request through the per-actor gate, resolves the
requesting member (failing closed when that is impossible), authorizes the
command and executes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from irismod.authorization.pipeline import AuthorizationPipeline
from irismod.datatypes.action_datatypes import (
    Decision,
    DenialReason,
    ExecutionContext,
    ExecutionResult,
)
from irismod.datatypes.command_datatypes import RawCommand
from irismod.datatypes.identifiers import ActorID, TenantID
from irismod.intake.request_gate import InFlightRequestGate, RequestInProgress
from irismod.moderation.action_executor import ActionExecutor
from irismod.platform.adapter import ActorDirectory
from irismod.util.logger import get_logger

logger = get_logger("moderation_service")


@dataclass(slots=True)
class CommandOutcome:
    """What happened to one request.

    Exactly one of the following holds: ``busy`` is True (rejected at intake),
    ``decision`` is a denial, or ``result`` carries the execution result.
    """

    message: str
    decision: Optional[Decision] = None
    result: Optional[ExecutionResult] = None
    busy: bool = False

    @property
    def success(self) -> bool:
        return self.result is not None and self.result.success


class ModerationService:
    """Wires intake, authorization and execution together."""

    def __init__(
        self,
        directory: ActorDirectory,
        pipeline: AuthorizationPipeline,
        executor: ActionExecutor,
        gate: InFlightRequestGate | None = None,
    ) -> None:
        self.directory = directory
        self.pipeline = pipeline
        self.executor = executor
        self.gate = gate or InFlightRequestGate()

    async def handle(
        self,
        tenant_id: TenantID,
        actor_id: ActorID,
        raw: RawCommand | Mapping[str, Any],
        channel_id: Optional[int] = None,
    ) -> CommandOutcome:
        """
        Process one moderation request on behalf of ``actor_id``.

        Args:
            tenant_id: Guild the request was made in.
            actor_id: Member making the request.
            raw: Command payload from the function-calling layer.
            channel_id: Channel the request came from.

        Returns:
            CommandOutcome: Never raises for expected failures.
        """
        try:
            async with self.gate.admit(actor_id):
                return await self._process(tenant_id, actor_id, raw, channel_id)
        except RequestInProgress as exc:
            return CommandOutcome(message=str(exc), busy=True)

    async def _process(
        self,
        tenant_id: TenantID,
        actor_id: ActorID,
        raw: RawCommand | Mapping[str, Any],
        channel_id: Optional[int],
    ) -> CommandOutcome:
        actor = await self.directory.resolve(tenant_id, str(actor_id))
        if actor is None:
            logger.warning("[SERVICE] Could not resolve requesting member %s in %s", actor_id, tenant_id)
            decision = Decision.deny(DenialReason.PERMISSION_DENIED, "Could not verify your permissions")
            return CommandOutcome(message=decision.message, decision=decision)

        decision = await self.pipeline.authorize(actor, raw)
        if not decision.allowed:
            return CommandOutcome(message=decision.message, decision=decision)

        context = ExecutionContext(
            tenant_id=tenant_id,
            issuer_id=actor.actor_id,
            channel_id=channel_id,
            target=decision.target,
            authorized=True,
        )
        result = await self.executor.execute(decision.command, context)
        return CommandOutcome(message=result.message, decision=decision, result=result)
