"""
Shape validation: RawCommand -> Command.

Every supported kind has a parser that pulls its parameters out of the raw
bag, checks types and ranges, applies defaults and returns the matching
frozen parameter dataclass. Any problem raises :class:`InvalidCommand` with a
message that can be shown to the requester as is.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, Mapping, Optional

from irismod.configuration.moderation_settings import ModerationSettings
from irismod.datatypes.command_datatypes import (
    DEFAULT_REASON,
    BanParams,
    ChannelParams,
    ClearParams,
    ClearwarnsParams,
    Command,
    CommandKind,
    CommandParams,
    DelwarnParams,
    KickParams,
    MuteParams,
    NicknameParams,
    NoParams,
    RawCommand,
    RemoveRuleParams,
    RoleParams,
    RuleAction,
    SetRuleParams,
    UnmuteParams,
    WarningsParams,
    WarnParams,
)
from irismod.datatypes.identifiers import clean_reference, is_snowflake
from irismod.authorization.capability_matrix import NO_TARGET_KINDS
from irismod.util.durations import is_valid_duration


class InvalidCommand(ValueError):
    """Raised when a raw command fails shape validation."""


# Platform limit on member nicknames
MAX_NICKNAME_LENGTH = 32

# Function names the chat layer may use for a kind
_KIND_ALIASES = {"change_nickname": CommandKind.SET_NICKNAME}

# ASCII digits only; str.isdigit() also admits superscripts and other scripts
_INTEGER = re.compile(r"-?[0-9]+")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _param(parameters: Mapping[str, Any], *names: str) -> Any:
    """Return the first present, non-None value among ``names``."""
    for name in names:
        value = parameters.get(name)
        if value is not None:
            return value
    return None


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise InvalidCommand(f"{field_name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    raise InvalidCommand(f"{field_name} must be an integer")


def _bounded_int(value: Any, field_name: str, low: int, high: int) -> int:
    number = _as_int(value, field_name)
    if not low <= number <= high:
        raise InvalidCommand(f"{field_name} must be between {low} and {high}")
    return number


def _reason(parameters: Mapping[str, Any], default: Optional[str] = DEFAULT_REASON) -> Optional[str]:
    value = parameters.get("reason")
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidCommand("reason must be a string")
    return value.strip() or default


def _duration(value: Any) -> str:
    if not is_valid_duration(value):
        raise InvalidCommand(f"Invalid duration format: {value!r}. Use formats like 30s, 10m, 1h, 1d")
    return value.strip().lower()


def _snowflake(value: Any, field_name: str) -> int:
    text = str(value) if isinstance(value, int) and not isinstance(value, bool) else value
    if not isinstance(text, str) or not is_snowflake(text):
        raise InvalidCommand(f"{field_name} must be a valid ID")
    return int(clean_reference(text))


# ---------------------------------------------------------------------------
# Per-kind parsers
# ---------------------------------------------------------------------------

class CommandValidator:
    """Validates raw commands against the parameter rules of each kind."""

    def __init__(self, settings: ModerationSettings | None = None) -> None:
        self.settings = settings or ModerationSettings()
        self._parsers: Dict[CommandKind, Callable[[RawCommand], CommandParams]] = {
            CommandKind.MUTE: self._mute,
            CommandKind.UNMUTE: lambda raw: UnmuteParams(reason=_reason(raw.parameters)),
            CommandKind.KICK: lambda raw: KickParams(reason=_reason(raw.parameters)),
            CommandKind.BAN: self._ban,
            CommandKind.CLEAR: self._clear,
            CommandKind.LOCK: self._channel,
            CommandKind.UNLOCK: self._channel,
            CommandKind.ADD_ROLE: self._role,
            CommandKind.REMOVE_ROLE: self._role,
            CommandKind.SET_NICKNAME: self._nickname,
            CommandKind.WARN: lambda raw: WarnParams(reason=_reason(raw.parameters, default=None)),
            CommandKind.WARNINGS: self._warnings,
            CommandKind.DELWARN: self._delwarn,
            CommandKind.CLEARWARNS: lambda raw: ClearwarnsParams(reason=_reason(raw.parameters, default=None)),
            CommandKind.SET_AUTOMOD_RULE: self._set_rule,
            CommandKind.LIST_AUTOMOD_RULES: lambda raw: NoParams(),
            CommandKind.REMOVE_AUTOMOD_RULE: self._remove_rule,
            CommandKind.CLEAR_AUTOMOD_RULES: lambda raw: NoParams(),
        }

    def validate(self, raw: RawCommand | Mapping[str, Any]) -> Command:
        """
        Turn a raw command into a typed Command.

        Raises:
            InvalidCommand: On an unknown kind, a missing target, or a missing,
                mistyped or out-of-range parameter.
        """
        if not isinstance(raw, RawCommand):
            if not isinstance(raw, Mapping):
                raise InvalidCommand("Command must be an object")
            raw = RawCommand.from_mapping(raw)

        kind = self._kind(raw.kind)
        if not isinstance(raw.parameters, Mapping):
            raise InvalidCommand("parameters must be an object")
        params = self._parsers[kind](raw)
        target_ref = self._target(kind, raw)
        return Command(kind=kind, params=params, target_ref=target_ref)

    @staticmethod
    def _kind(value: Any) -> CommandKind:
        if isinstance(value, CommandKind):
            return value
        if isinstance(value, str):
            name = value.strip().lower()
            if name in _KIND_ALIASES:
                return _KIND_ALIASES[name]
            try:
                return CommandKind(name)
            except ValueError:
                pass
        raise InvalidCommand(f"Unknown command: {value}")

    @staticmethod
    def _target(kind: CommandKind, raw: RawCommand) -> Optional[str]:
        if kind in NO_TARGET_KINDS:
            return None
        target = raw.target_ref
        if kind in (CommandKind.ADD_ROLE, CommandKind.SET_NICKNAME) and not target:
            target = _param(raw.parameters, "userId", "user_id")
        if target is not None and not isinstance(target, str):
            target = str(target)
        if not target or not target.strip():
            raise InvalidCommand(f"A target member is required for {kind}")
        return target.strip()

    def _mute(self, raw: RawCommand) -> MuteParams:
        duration = raw.parameters.get("duration")
        if duration is None:
            duration = self.settings.default_mute_duration
        return MuteParams(duration=_duration(duration), reason=_reason(raw.parameters))

    def _ban(self, raw: RawCommand) -> BanParams:
        duration = raw.parameters.get("duration")
        return BanParams(
            reason=_reason(raw.parameters),
            duration=_duration(duration) if duration is not None else None,
        )

    def _clear(self, raw: RawCommand) -> ClearParams:
        amount = raw.parameters.get("amount")
        if amount is None and raw.target_ref:
            amount = raw.target_ref
        if amount is None:
            amount = self.settings.default_clear_amount
        return ClearParams(amount=_bounded_int(amount, "amount", 1, self.settings.max_clear_amount))

    @staticmethod
    def _channel(raw: RawCommand) -> ChannelParams:
        channel = _param(raw.parameters, "channel_id", "channelId")
        return ChannelParams(channel_id=_snowflake(channel, "channel_id") if channel is not None else None)

    @staticmethod
    def _role(raw: RawCommand) -> RoleParams:
        role = _param(raw.parameters, "role_id", "roleId")
        if role is None:
            raise InvalidCommand("role_id is required")
        return RoleParams(role_id=_snowflake(role, "role_id"), reason=_reason(raw.parameters))

    @staticmethod
    def _nickname(raw: RawCommand) -> NicknameParams:
        nickname = raw.parameters.get("nickname")
        if nickname is not None and not isinstance(nickname, str):
            raise InvalidCommand("nickname must be a string")
        nickname = nickname.strip() if nickname else None
        if nickname and len(nickname) > MAX_NICKNAME_LENGTH:
            raise InvalidCommand(f"nickname cannot be longer than {MAX_NICKNAME_LENGTH} characters")
        return NicknameParams(nickname=nickname or None, reason=_reason(raw.parameters))

    def _warnings(self, raw: RawCommand) -> WarningsParams:
        limit = raw.parameters.get("limit")
        if limit is None:
            return WarningsParams(limit=self.settings.warnings_page_size)
        return WarningsParams(limit=_bounded_int(limit, "limit", 1, 100))

    @staticmethod
    def _delwarn(raw: RawCommand) -> DelwarnParams:
        warning_id = _param(raw.parameters, "warning_id", "warningId")
        if warning_id is None and raw.target_ref:
            warning_id = raw.target_ref
        if warning_id is None:
            raise InvalidCommand("warning_id is required")
        number = _as_int(warning_id, "warning_id")
        if number <= 0:
            raise InvalidCommand("warning_id must be a positive integer")
        return DelwarnParams(warning_id=number, reason=_reason(raw.parameters, default=None))

    def _threshold(self, raw: RawCommand) -> int:
        threshold = _param(raw.parameters, "threshold", "warning_threshold", "warnings")
        if threshold is None:
            raise InvalidCommand("threshold is required")
        return _bounded_int(threshold, "threshold", 1, self.settings.max_warning_threshold)

    def _set_rule(self, raw: RawCommand) -> SetRuleParams:
        threshold = self._threshold(raw)

        action_value = raw.parameters.get("action")
        try:
            action = RuleAction(str(action_value).strip().lower())
        except ValueError:
            raise InvalidCommand("action must be one of: mute, kick, ban") from None

        duration = raw.parameters.get("duration")
        if action.requires_duration:
            if duration is None:
                raise InvalidCommand(f"A duration is required for {action} rules")
            duration = _duration(duration)
        else:
            duration = None

        return SetRuleParams(
            threshold=threshold,
            action=action,
            duration=duration,
            reason=_reason(raw.parameters, default=None),
        )

    def _remove_rule(self, raw: RawCommand) -> RemoveRuleParams:
        return RemoveRuleParams(threshold=self._threshold(raw))
