"""
Actors, capabilities and the snapshot the authorization pipeline reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet

from irismod.datatypes.identifiers import ActorID, TenantID


class Capability(Enum):
    """Named permission flags an actor may hold within a tenant."""

    ADMINISTRATOR = "Administrator"
    MODERATE_MEMBERS = "ModerateMembers"
    KICK_MEMBERS = "KickMembers"
    BAN_MEMBERS = "BanMembers"
    MANAGE_MESSAGES = "ManageMessages"
    MANAGE_CHANNELS = "ManageChannels"
    MANAGE_ROLES = "ManageRoles"
    MANAGE_NICKNAMES = "ManageNicknames"
    MANAGE_GUILD = "ManageGuild"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Actor:
    """Point-in-time snapshot of a guild member.

    Attributes:
        actor_id: Member snowflake.
        tenant_id: Guild the snapshot was taken in.
        capabilities: Capability flags granted by the member's roles.
        rank: Position of the member's highest role; higher is more senior.
        is_owner: Whether the member owns the guild.
        display_name: Name used in result messages.
        is_bot: Whether the member is a bot account.
    """

    actor_id: ActorID
    tenant_id: TenantID
    capabilities: FrozenSet[Capability] = field(default_factory=frozenset)
    rank: int = 0
    is_owner: bool = False
    display_name: str = ""
    is_bot: bool = False

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def label(self) -> str:
        return self.display_name or str(self.actor_id)
