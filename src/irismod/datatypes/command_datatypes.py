"""
Command kinds and their typed parameter variants.

A request arrives as a :class:`RawCommand` (an open parameter bag produced by
the function-calling layer). The authorization pipeline validates it into a
:class:`Command` whose ``params`` is exactly one of the frozen parameter
dataclasses below, chosen by ``kind``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from irismod.datatypes.identifiers import ActorID


class CommandKind(Enum):
    """Enumeration of supported command kinds."""

    MUTE = "mute"
    UNMUTE = "unmute"
    KICK = "kick"
    BAN = "ban"
    CLEAR = "clear"
    LOCK = "lock"
    UNLOCK = "unlock"
    ADD_ROLE = "add_role"
    REMOVE_ROLE = "remove_role"
    SET_NICKNAME = "set_nickname"
    WARN = "warn"
    WARNINGS = "warnings"
    DELWARN = "delwarn"
    CLEARWARNS = "clearwarns"
    SET_AUTOMOD_RULE = "set_automod_rule"
    LIST_AUTOMOD_RULES = "list_automod_rules"
    REMOVE_AUTOMOD_RULE = "remove_automod_rule"
    CLEAR_AUTOMOD_RULES = "clear_automod_rules"

    def __str__(self) -> str:
        return self.value


class RuleAction(Enum):
    """Punitive actions an auto-moderation rule may trigger."""

    MUTE = "mute"
    KICK = "kick"
    BAN = "ban"

    def __str__(self) -> str:
        return self.value

    @property
    def requires_duration(self) -> bool:
        return self is not RuleAction.KICK

    @property
    def command_kind(self) -> CommandKind:
        return CommandKind(self.value)


DEFAULT_REASON = "No reason provided"


# ---------------------------------------------------------------------------
# Parameter variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class MuteParams:
    duration: str
    reason: str = DEFAULT_REASON


@dataclass(frozen=True, slots=True)
class UnmuteParams:
    reason: str = DEFAULT_REASON


@dataclass(frozen=True, slots=True)
class KickParams:
    reason: str = DEFAULT_REASON


@dataclass(frozen=True, slots=True)
class BanParams:
    reason: str = DEFAULT_REASON
    duration: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ClearParams:
    amount: int


@dataclass(frozen=True, slots=True)
class ChannelParams:
    """Lock/unlock; ``channel_id`` None means the channel the request came from."""
    channel_id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class RoleParams:
    role_id: int
    reason: str = DEFAULT_REASON


@dataclass(frozen=True, slots=True)
class NicknameParams:
    """``nickname`` None resets the member to their account name."""
    nickname: Optional[str] = None
    reason: str = DEFAULT_REASON


@dataclass(frozen=True, slots=True)
class WarnParams:
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class WarningsParams:
    limit: int = 10


@dataclass(frozen=True, slots=True)
class DelwarnParams:
    warning_id: int
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ClearwarnsParams:
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SetRuleParams:
    threshold: int
    action: RuleAction
    duration: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RemoveRuleParams:
    threshold: int


@dataclass(frozen=True, slots=True)
class NoParams:
    pass


CommandParams = Union[
    MuteParams, UnmuteParams, KickParams, BanParams, ClearParams, ChannelParams,
    RoleParams, NicknameParams, WarnParams, WarningsParams, DelwarnParams, ClearwarnsParams,
    SetRuleParams, RemoveRuleParams, NoParams,
]


@dataclass(frozen=True, slots=True)
class Command:
    """A validated command ready for the capability and hierarchy gates.

    Attributes:
        kind: What to do.
        params: Typed parameters; the dataclass type is determined by ``kind``.
        target_ref: Member reference (snowflake, mention or name), if any.
    """

    kind: CommandKind
    params: CommandParams
    target_ref: Optional[str] = None

    @classmethod
    def targeting(cls, kind: CommandKind, actor_id: ActorID, params: CommandParams) -> "Command":
        """Build a command aimed at a known member ID (used for system-initiated actions)."""
        return cls(kind=kind, params=params, target_ref=str(actor_id))


@dataclass(slots=True)
class RawCommand:
    """An unvalidated command as produced by the function-calling layer.

    Attributes:
        kind: Command name, e.g. ``"mute"``.
        target_ref: Member reference, if the command has one.
        parameters: Open key/value bag (``reason``, ``duration``, ``amount``, ...).
    """

    kind: Any
    target_ref: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "RawCommand":
        """Normalize a function-call payload into a RawCommand.

        Accepts both ``{"kind", "target_ref", "parameters"}`` and the flat
        ``{"function", "target", "reason", "duration", "amount", "warningId",
        "parameters"}`` shape; flat keys are merged under ``parameters``.
        """
        kind = payload.get("kind", payload.get("function"))
        target = payload.get("target_ref", payload.get("target"))
        nested = payload.get("parameters")
        parameters: Dict[str, Any] = dict(nested) if isinstance(nested, Mapping) else {}
        for key, value in payload.items():
            if key in ("kind", "function", "target_ref", "target", "parameters"):
                continue
            parameters.setdefault(key, value)
        if target is not None and not isinstance(target, str):
            target = str(target)
        return cls(kind=kind, target_ref=target, parameters=parameters)
