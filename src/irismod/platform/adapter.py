"""
Contracts irismod consumes from the chat platform.

The executor only talks to the platform through :class:`PlatformAdapter`, and
the authorization pipeline and executor look members up through
:class:`ActorDirectory`. Both are structural protocols so tests can pass
in-memory fakes.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from irismod.datatypes.actor_datatypes import Actor
from irismod.datatypes.identifiers import ActorID, TenantID


class AdapterStatus(Enum):
    """Outcome classes reported by every adapter call."""

    OK = "ok"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    TRANSIENT = "transient"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class AdapterResult:
    status: AdapterStatus
    detail: str = ""
    count: int = 0

    @property
    def ok(self) -> bool:
        return self.status is AdapterStatus.OK

    @classmethod
    def success(cls, detail: str = "", count: int = 0) -> "AdapterResult":
        return cls(AdapterStatus.OK, detail, count)


@runtime_checkable
class PlatformAdapter(Protocol):
    """Side-effecting platform operations. Implementations must not raise for expected failures."""

    @abstractmethod
    async def mute(self, tenant_id: TenantID, actor_id: ActorID, duration_ms: int, reason: str) -> AdapterResult:
        ...

    @abstractmethod
    async def unmute(self, tenant_id: TenantID, actor_id: ActorID, reason: str) -> AdapterResult:
        ...

    @abstractmethod
    async def kick(self, tenant_id: TenantID, actor_id: ActorID, reason: str) -> AdapterResult:
        ...

    @abstractmethod
    async def ban(self, tenant_id: TenantID, actor_id: ActorID, reason: str, retention_days: int) -> AdapterResult:
        ...

    @abstractmethod
    async def purge_messages(self, tenant_id: TenantID, channel_id: int, amount: int) -> AdapterResult:
        """Bulk delete the latest ``amount`` messages; ``count`` reports how many went."""
        ...

    @abstractmethod
    async def lock_channel(self, tenant_id: TenantID, channel_id: int) -> AdapterResult:
        ...

    @abstractmethod
    async def unlock_channel(self, tenant_id: TenantID, channel_id: int) -> AdapterResult:
        ...

    @abstractmethod
    async def add_role(self, tenant_id: TenantID, actor_id: ActorID, role_id: int, reason: str) -> AdapterResult:
        ...

    @abstractmethod
    async def remove_role(self, tenant_id: TenantID, actor_id: ActorID, role_id: int, reason: str) -> AdapterResult:
        ...

    @abstractmethod
    async def set_nickname(
        self, tenant_id: TenantID, actor_id: ActorID, nickname: Optional[str], reason: str
    ) -> AdapterResult:
        """Set the member's nickname; None resets it."""
        ...


@runtime_checkable
class ActorDirectory(Protocol):
    """Looks up member snapshots by ID, mention or display name."""

    @abstractmethod
    async def resolve(self, tenant_id: TenantID, reference: str) -> Optional[Actor]:
        """Return the member ``reference`` points at, or None if nobody matches."""
        ...
