"""
Outcome types for authorization and execution.

Every gate and handler reports through these types instead of raising, so a
caller always receives a typed result with a human-readable message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from irismod.datatypes.actor_datatypes import Actor, Capability
from irismod.datatypes.command_datatypes import Command
from irismod.datatypes.identifiers import ActorID, TenantID


class DenialReason(Enum):
    """Why the authorization pipeline refused a command."""

    INVALID_COMMAND = "invalid_command"
    PERMISSION_DENIED = "permission_denied"
    SELF_ACTION_FORBIDDEN = "self_action_forbidden"
    OWNER_PROTECTED = "owner_protected"
    INSUFFICIENT_RANK = "insufficient_rank"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Decision:
    """Result of running a command through the authorization pipeline.

    Attributes:
        allowed: True when every gate passed.
        message: Human-readable explanation, surfaced verbatim on denial.
        command: The validated command (None when shape validation failed).
        denial: Which gate refused the command, if any.
        required_capabilities: Acceptable capability sets, on permission denial.
        target: The resolved target snapshot, if the hierarchy gate resolved one.
    """

    allowed: bool
    message: str = ""
    command: Optional[Command] = None
    denial: Optional[DenialReason] = None
    required_capabilities: Tuple[FrozenSet[Capability], ...] = ()
    target: Optional[Actor] = None

    @classmethod
    def allow(cls, command: Command, target: Optional[Actor] = None) -> "Decision":
        return cls(allowed=True, message="Allowed", command=command, target=target)

    @classmethod
    def deny(
        cls,
        denial: DenialReason,
        message: str,
        command: Optional[Command] = None,
        *,
        required_capabilities: Tuple[FrozenSet[Capability], ...] = (),
        target: Optional[Actor] = None,
    ) -> "Decision":
        return cls(
            allowed=False,
            message=message,
            command=command,
            denial=denial,
            required_capabilities=required_capabilities,
            target=target,
        )


class ExecutionStatus(Enum):
    """Outcome classes of an executed command."""

    OK = "ok"
    NOT_FOUND = "not_found"
    ADAPTER_FORBIDDEN = "adapter_forbidden"
    TRANSIENT_ERROR = "transient_error"
    INVALID_COMMAND = "invalid_command"
    INTERNAL_ERROR = "internal_error"

    def __str__(self) -> str:
        return self.value

    @property
    def retryable(self) -> bool:
        return self is ExecutionStatus.TRANSIENT_ERROR


@dataclass(slots=True)
class ExecutionResult:
    """Result returned by every executor handler.

    Attributes:
        status: Outcome class.
        message: Human-readable description of what happened.
        side_effects: Short labels of the changes that were made.
        data: Optional structured payload (warning listings, rules, counts).
    """

    status: ExecutionStatus
    message: str
    side_effects: List[str] = field(default_factory=list)
    data: object = None

    @property
    def success(self) -> bool:
        return self.status is ExecutionStatus.OK

    @classmethod
    def ok(cls, message: str, *side_effects: str, data: object = None) -> "ExecutionResult":
        return cls(ExecutionStatus.OK, message, list(side_effects), data)

    @classmethod
    def failure(cls, status: ExecutionStatus, message: str) -> "ExecutionResult":
        return cls(status, message)


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Where a command runs and on whose behalf.

    Attributes:
        tenant_id: Guild the command applies to.
        issuer_id: Member who issued the command (the moderator for system actions).
        channel_id: Channel the request came from, used by clear/lock/unlock.
        target: Member the authorizer resolved and checked, if any.
        authorized: True when the command went through authorization. The
            executor then acts only on ``target`` and never looks it up again;
            system actions leave it False and resolve the target themselves.
    """

    tenant_id: TenantID
    issuer_id: ActorID
    channel_id: Optional[int] = None
    target: Optional[Actor] = None
    authorized: bool = False
