"""
Persisted warning and auto-moderation records, and the cascade's outcome types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from irismod.datatypes.action_datatypes import ExecutionResult
from irismod.datatypes.command_datatypes import Command, RuleAction
from irismod.datatypes.identifiers import ActorID, TenantID


@dataclass(frozen=True, slots=True)
class WarningRecord:
    """A single row of the ``warnings`` table."""

    id: int
    actor_id: ActorID
    tenant_id: TenantID
    moderator_id: ActorID
    reason: Optional[str]
    created_at: str


@dataclass(frozen=True, slots=True)
class AutoModRule:
    """A single row of the ``automod_rules`` table."""

    tenant_id: TenantID
    warning_threshold: int
    action: RuleAction
    duration: Optional[str]
    reason: str
    created_by: ActorID

    @property
    def automatic_reason(self) -> str:
        """Reason attached to the synthesized command, marking it as automatic."""
        return f"Auto-{self.action.value}: {self.reason or 'Reached warning threshold'}"


@dataclass(slots=True)
class TriggeredAction:
    """A rule that fired and what happened when its command was executed."""

    rule: AutoModRule
    command: Command
    result: ExecutionResult


@dataclass(slots=True)
class WarningOutcome:
    """Return value of ``CascadeEngine.record_warning``."""

    warning_id: int
    new_count: int
    triggered: Optional[TriggeredAction] = None


@dataclass(frozen=True, slots=True)
class WarningEvent:
    """Event handed to notification sinks after a warning is recorded."""

    warning_id: int
    actor_id: ActorID
    tenant_id: TenantID
    moderator_id: ActorID
    reason: Optional[str]
    new_count: int
    triggered_action: Optional[RuleAction] = None
    triggered_success: Optional[bool] = None
