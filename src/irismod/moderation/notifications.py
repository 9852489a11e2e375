"""
Notification sinks for recorded warnings.

A sink receives a WarningEvent after the warning is committed and any
triggered action has run. Sinks are best effort; the cascade engine logs a
failing sink and carries on.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from irismod.datatypes.moderation_datatypes import WarningEvent
from irismod.util.logger import get_logger

logger = get_logger("notifications")


@runtime_checkable
class NotificationSink(Protocol):
    @abstractmethod
    async def notify(self, event: WarningEvent) -> None:
        ...


class LoggingNotificationSink:
    """Writes every warning event to the moderation log."""

    async def notify(self, event: WarningEvent) -> None:
        if event.triggered_action is None:
            logger.info(
                "[WARN EVENT] #%s %s warned by %s in %s (count=%d): %s",
                event.warning_id,
                event.actor_id,
                event.moderator_id,
                event.tenant_id,
                event.new_count,
                event.reason or "no reason",
            )
            return

        logger.info(
            "[WARN EVENT] #%s %s warned by %s in %s (count=%d), auto-%s %s",
            event.warning_id,
            event.actor_id,
            event.moderator_id,
            event.tenant_id,
            event.new_count,
            event.triggered_action,
            "succeeded" if event.triggered_success else "failed",
        )
