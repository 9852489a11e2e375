"""
py-cord implementations of the platform contracts.

DiscordPlatformAdapter performs moderation actions through a connected
``discord.Client`` and folds the library's exceptions into AdapterResult
statuses:

- ``discord.NotFound``      -> NOT_FOUND
- ``discord.Forbidden``     -> FORBIDDEN
- ``discord.HTTPException`` -> TRANSIENT

DiscordActorDirectory turns guild members into Actor snapshots.
"""

from __future__ import annotations

import datetime
from typing import Awaitable, Callable, Optional

import discord

from irismod.datatypes.actor_datatypes import Actor, Capability
from irismod.datatypes.identifiers import ActorID, TenantID, clean_reference, is_snowflake
from irismod.platform.adapter import AdapterResult, AdapterStatus
from irismod.util.logger import get_logger

logger = get_logger("discord_adapter")

# Discord rejects timeouts longer than 28 days.
MAX_TIMEOUT = datetime.timedelta(days=28)
MAX_TIMEOUT_MS = MAX_TIMEOUT // datetime.timedelta(milliseconds=1)

_PERMISSION_FLAGS = {
    "administrator": Capability.ADMINISTRATOR,
    "moderate_members": Capability.MODERATE_MEMBERS,
    "kick_members": Capability.KICK_MEMBERS,
    "ban_members": Capability.BAN_MEMBERS,
    "manage_messages": Capability.MANAGE_MESSAGES,
    "manage_channels": Capability.MANAGE_CHANNELS,
    "manage_roles": Capability.MANAGE_ROLES,
    "manage_nicknames": Capability.MANAGE_NICKNAMES,
    "manage_guild": Capability.MANAGE_GUILD,
}


def actor_from_member(member: discord.Member) -> Actor:
    """Snapshot a guild member's capabilities, rank and ownership."""
    permissions = member.guild_permissions
    capabilities = frozenset(
        capability for flag, capability in _PERMISSION_FLAGS.items() if getattr(permissions, flag, False)
    )
    return Actor(
        actor_id=ActorID(member.id),
        tenant_id=TenantID(member.guild.id),
        capabilities=capabilities,
        rank=member.top_role.position if member.top_role is not None else 0,
        is_owner=member.guild.owner_id == member.id,
        display_name=member.display_name,
        is_bot=member.bot,
    )


async def _get_guild(client: discord.Client, tenant_id: TenantID) -> discord.Guild:
    guild = client.get_guild(int(tenant_id))
    if guild is None:
        guild = await client.fetch_guild(int(tenant_id))
    return guild


async def _get_member(guild: discord.Guild, actor_id: ActorID) -> discord.Member:
    member = guild.get_member(int(actor_id))
    if member is None:
        member = await guild.fetch_member(int(actor_id))
    return member


class DiscordPlatformAdapter:
    """PlatformAdapter backed by a py-cord client."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def _run(self, action: str, operation: Callable[[], Awaitable[AdapterResult]]) -> AdapterResult:
        try:
            return await operation()
        except discord.NotFound as exc:
            logger.debug("[DISCORD ADAPTER] %s: not found (%s)", action, exc)
            return AdapterResult(AdapterStatus.NOT_FOUND, str(exc))
        except discord.Forbidden as exc:
            logger.warning("[DISCORD ADAPTER] %s: missing permissions (%s)", action, exc)
            return AdapterResult(AdapterStatus.FORBIDDEN, str(exc))
        except discord.HTTPException as exc:
            logger.warning("[DISCORD ADAPTER] %s: HTTP %s (%s)", action, exc.status, exc)
            return AdapterResult(AdapterStatus.TRANSIENT, str(exc))

    async def mute(self, tenant_id: TenantID, actor_id: ActorID, duration_ms: int, reason: str) -> AdapterResult:
        async def operation() -> AdapterResult:
            member = await _get_member(await _get_guild(self.client, tenant_id), actor_id)
            duration = datetime.timedelta(milliseconds=min(duration_ms, MAX_TIMEOUT_MS))
            await member.timeout_for(duration, reason=reason)
            return AdapterResult.success(f"timed out until {discord.utils.utcnow() + duration:%Y-%m-%d %H:%M} UTC")

        return await self._run(f"mute {actor_id}", operation)

    async def unmute(self, tenant_id: TenantID, actor_id: ActorID, reason: str) -> AdapterResult:
        async def operation() -> AdapterResult:
            member = await _get_member(await _get_guild(self.client, tenant_id), actor_id)
            await member.remove_timeout(reason=reason)
            return AdapterResult.success()

        return await self._run(f"unmute {actor_id}", operation)

    async def kick(self, tenant_id: TenantID, actor_id: ActorID, reason: str) -> AdapterResult:
        async def operation() -> AdapterResult:
            member = await _get_member(await _get_guild(self.client, tenant_id), actor_id)
            await member.kick(reason=reason)
            return AdapterResult.success()

        return await self._run(f"kick {actor_id}", operation)

    async def ban(self, tenant_id: TenantID, actor_id: ActorID, reason: str, retention_days: int) -> AdapterResult:
        async def operation() -> AdapterResult:
            guild = await _get_guild(self.client, tenant_id)
            await guild.ban(
                discord.Object(id=int(actor_id)),
                reason=reason,
                delete_message_seconds=retention_days * 86400,
            )
            return AdapterResult.success()

        return await self._run(f"ban {actor_id}", operation)

    async def _text_channel(self, tenant_id: TenantID, channel_id: int) -> Optional[discord.TextChannel]:
        guild = await _get_guild(self.client, tenant_id)
        channel = guild.get_channel(channel_id)
        return channel if isinstance(channel, discord.TextChannel) else None

    async def purge_messages(self, tenant_id: TenantID, channel_id: int, amount: int) -> AdapterResult:
        async def operation() -> AdapterResult:
            channel = await self._text_channel(tenant_id, channel_id)
            if channel is None:
                return AdapterResult(AdapterStatus.NOT_FOUND, "Text channel not found")
            deleted = await channel.purge(limit=amount)
            return AdapterResult.success(count=len(deleted))

        return await self._run(f"purge {amount} in {channel_id}", operation)

    async def _set_send_messages(self, tenant_id: TenantID, channel_id: int, allowed: Optional[bool]) -> AdapterResult:
        channel = await self._text_channel(tenant_id, channel_id)
        if channel is None:
            return AdapterResult(AdapterStatus.NOT_FOUND, "Text channel not found")
        await channel.set_permissions(channel.guild.default_role, send_messages=allowed)
        return AdapterResult.success(channel.name)

    async def lock_channel(self, tenant_id: TenantID, channel_id: int) -> AdapterResult:
        return await self._run(
            f"lock {channel_id}", lambda: self._set_send_messages(tenant_id, channel_id, False)
        )

    async def unlock_channel(self, tenant_id: TenantID, channel_id: int) -> AdapterResult:
        return await self._run(
            f"unlock {channel_id}", lambda: self._set_send_messages(tenant_id, channel_id, None)
        )

    async def _change_role(
        self, tenant_id: TenantID, actor_id: ActorID, role_id: int, reason: str, add: bool
    ) -> AdapterResult:
        guild = await _get_guild(self.client, tenant_id)
        role = guild.get_role(role_id)
        if role is None:
            return AdapterResult(AdapterStatus.NOT_FOUND, "Role not found")
        member = await _get_member(guild, actor_id)
        if add:
            await member.add_roles(role, reason=reason)
        else:
            await member.remove_roles(role, reason=reason)
        return AdapterResult.success(role.name)

    async def add_role(self, tenant_id: TenantID, actor_id: ActorID, role_id: int, reason: str) -> AdapterResult:
        return await self._run(
            f"add role {role_id} to {actor_id}",
            lambda: self._change_role(tenant_id, actor_id, role_id, reason, add=True),
        )

    async def remove_role(self, tenant_id: TenantID, actor_id: ActorID, role_id: int, reason: str) -> AdapterResult:
        return await self._run(
            f"remove role {role_id} from {actor_id}",
            lambda: self._change_role(tenant_id, actor_id, role_id, reason, add=False),
        )

    async def set_nickname(
        self, tenant_id: TenantID, actor_id: ActorID, nickname: Optional[str], reason: str
    ) -> AdapterResult:
        async def operation() -> AdapterResult:
            member = await _get_member(await _get_guild(self.client, tenant_id), actor_id)
            await member.edit(nick=nickname, reason=reason)
            return AdapterResult.success(nickname or member.name)

        return await self._run(f"set nickname of {actor_id}", operation)


class DiscordActorDirectory:
    """ActorDirectory backed by a py-cord client.

    References are tried as an ID or mention first, then as an exact
    username or display name, then as a partial name match.
    """

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def resolve(self, tenant_id: TenantID, reference: str) -> Optional[Actor]:
        try:
            guild = await _get_guild(self.client, tenant_id)
        except discord.HTTPException as exc:
            logger.warning("[DIRECTORY] Could not load guild %s: %s", tenant_id, exc)
            return None

        cleaned = clean_reference(reference)
        if not cleaned:
            return None

        member: Optional[discord.Member] = None
        if is_snowflake(cleaned):
            try:
                member = await _get_member(guild, ActorID(cleaned))
            except discord.NotFound:
                return None
            except discord.HTTPException as exc:
                logger.warning("[DIRECTORY] Member lookup %s failed: %s", cleaned, exc)
                return None
        else:
            member = self._match_name(guild, cleaned.lower())

        return actor_from_member(member) if member is not None else None

    @staticmethod
    def _match_name(guild: discord.Guild, needle: str) -> Optional[discord.Member]:
        members = list(guild.members)
        for member in members:
            if member.name.lower() == needle or member.display_name.lower() == needle:
                return member
        for member in members:
            if needle in member.name.lower() or needle in member.display_name.lower():
                return member
        return None
