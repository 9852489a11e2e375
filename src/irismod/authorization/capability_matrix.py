"""
Static capability requirements per command kind.

Each kind maps to a tuple of capability sets. An actor may run the command
when it holds every capability of at least one of the sets. Administrator
satisfies every entry.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Tuple

from irismod.datatypes.actor_datatypes import Actor, Capability
from irismod.datatypes.command_datatypes import CommandKind

RequiredCapabilities = Tuple[FrozenSet[Capability], ...]


def _any_of(*capabilities: Capability) -> RequiredCapabilities:
    return tuple(frozenset({capability}) for capability in capabilities)


CAPABILITY_MATRIX: Dict[CommandKind, RequiredCapabilities] = {
    CommandKind.MUTE: _any_of(Capability.MODERATE_MEMBERS),
    CommandKind.UNMUTE: _any_of(Capability.MODERATE_MEMBERS),
    CommandKind.KICK: _any_of(Capability.KICK_MEMBERS),
    CommandKind.BAN: _any_of(Capability.BAN_MEMBERS),
    CommandKind.CLEAR: _any_of(Capability.MANAGE_MESSAGES),
    CommandKind.LOCK: _any_of(Capability.MANAGE_CHANNELS),
    CommandKind.UNLOCK: _any_of(Capability.MANAGE_CHANNELS),
    CommandKind.ADD_ROLE: _any_of(Capability.MANAGE_ROLES),
    CommandKind.REMOVE_ROLE: _any_of(Capability.MANAGE_ROLES),
    CommandKind.SET_NICKNAME: _any_of(Capability.MANAGE_NICKNAMES),
    CommandKind.WARN: _any_of(Capability.MODERATE_MEMBERS),
    CommandKind.WARNINGS: _any_of(Capability.MODERATE_MEMBERS, Capability.KICK_MEMBERS),
    CommandKind.DELWARN: _any_of(Capability.MODERATE_MEMBERS),
    CommandKind.CLEARWARNS: _any_of(Capability.MODERATE_MEMBERS),
    CommandKind.SET_AUTOMOD_RULE: _any_of(Capability.MANAGE_GUILD),
    CommandKind.LIST_AUTOMOD_RULES: _any_of(Capability.MANAGE_GUILD, Capability.MODERATE_MEMBERS),
    CommandKind.REMOVE_AUTOMOD_RULE: _any_of(Capability.MANAGE_GUILD),
    CommandKind.CLEAR_AUTOMOD_RULES: _any_of(Capability.MANAGE_GUILD),
}

# Kinds that never name a member, so the hierarchy gate is skipped.
NO_TARGET_KINDS: FrozenSet[CommandKind] = frozenset({
    CommandKind.CLEAR,
    CommandKind.LOCK,
    CommandKind.UNLOCK,
    CommandKind.DELWARN,
    CommandKind.SET_AUTOMOD_RULE,
    CommandKind.LIST_AUTOMOD_RULES,
    CommandKind.REMOVE_AUTOMOD_RULE,
    CommandKind.CLEAR_AUTOMOD_RULES,
})

# Kinds an actor may aim at themselves.
SELF_ASSIGNABLE_KINDS: FrozenSet[CommandKind] = frozenset({CommandKind.ADD_ROLE, CommandKind.SET_NICKNAME})


def required_capabilities(kind: CommandKind) -> RequiredCapabilities:
    return CAPABILITY_MATRIX[kind]


def has_required_capabilities(actor: Actor, kind: CommandKind) -> bool:
    """Return True if ``actor`` satisfies at least one capability set for ``kind``."""
    if actor.has(Capability.ADMINISTRATOR):
        return True
    return any(option <= actor.capabilities for option in CAPABILITY_MATRIX[kind])


def describe_requirements(requirements: RequiredCapabilities) -> str:
    """Render ``({A}, {B, C})`` as ``"A or B + C"``."""
    return " or ".join(
        " + ".join(sorted(str(capability) for capability in option)) for option in requirements
    )
