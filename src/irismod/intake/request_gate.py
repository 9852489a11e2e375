"""
Per-actor admission control.

A member may have one request in flight at a time. A second request that
arrives while the first is still running is turned away immediately instead
of being queued behind it.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Set

from irismod.datatypes.identifiers import ActorID
from irismod.util.logger import get_logger

logger = get_logger("request_gate")

STILL_PROCESSING_MESSAGE = "I'm still processing your previous request. Please wait for it to finish."


class RequestInProgress(Exception):
    """Raised when an actor already has a request in flight."""

    def __init__(self, actor_id: ActorID) -> None:
        super().__init__(STILL_PROCESSING_MESSAGE)
        self.actor_id = actor_id


class InFlightRequestGate:
    """Keyed guard tracking which actors have a request running."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._in_flight: Set[ActorID] = set()

    def is_busy(self, actor_id: ActorID) -> bool:
        return actor_id in self._in_flight

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @asynccontextmanager
    async def admit(self, actor_id: ActorID) -> AsyncIterator[None]:
        """
        Hold the actor's slot for the duration of the block.

        Raises:
            RequestInProgress: If the actor already holds a slot.
        """
        async with self._lock:
            if actor_id in self._in_flight:
                logger.debug("[INTAKE] Rejected request from %s: still processing", actor_id)
                raise RequestInProgress(actor_id)
            self._in_flight.add(actor_id)
        try:
            yield
        finally:
            async with self._lock:
                self._in_flight.discard(actor_id)
