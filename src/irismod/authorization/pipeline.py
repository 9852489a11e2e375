"""
Authorization pipeline.

``authorize`` runs three gates in order and stops at the first failure:

1. Shape validation (:mod:`irismod.authorization.command_validation`)
2. Capability check (:mod:`irismod.authorization.capability_matrix`)
3. Role hierarchy check against the resolved target

The pipeline never writes anything. Given the same directory contents it
returns the same Decision for the same inputs.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from irismod.authorization.capability_matrix import (
    NO_TARGET_KINDS,
    SELF_ASSIGNABLE_KINDS,
    describe_requirements,
    has_required_capabilities,
    required_capabilities,
)
from irismod.authorization.command_validation import CommandValidator, InvalidCommand
from irismod.configuration.moderation_settings import ModerationSettings
from irismod.datatypes.action_datatypes import Decision, DenialReason
from irismod.datatypes.actor_datatypes import Actor
from irismod.datatypes.command_datatypes import CommandKind, RawCommand
from irismod.platform.adapter import ActorDirectory
from irismod.util.logger import get_logger

logger = get_logger("authorization")


def check_hierarchy(actor: Actor, target: Actor, kind: CommandKind) -> Optional[DenialReason]:
    """
    Role hierarchy gate for a resolved target.

    Returns:
        The denial reason, or None when the actor may act on the target.
    """
    if actor.actor_id == target.actor_id:
        return None if kind in SELF_ASSIGNABLE_KINDS else DenialReason.SELF_ACTION_FORBIDDEN
    if target.is_owner and not actor.is_owner:
        return DenialReason.OWNER_PROTECTED
    if actor.is_owner:
        return None
    if actor.rank > target.rank:
        return None
    return DenialReason.INSUFFICIENT_RANK


def _hierarchy_message(denial: DenialReason, kind: CommandKind, target: Actor) -> str:
    match denial:
        case DenialReason.SELF_ACTION_FORBIDDEN:
            return f"You cannot use {kind} on yourself"
        case DenialReason.OWNER_PROTECTED:
            return f"You cannot use {kind} on the server owner"
        case _:
            return (
                f"You cannot use {kind} on {target.label}: "
                "their highest role is equal to or above yours"
            )


class AuthorizationPipeline:
    """Validates, permission-checks and hierarchy-checks commands for one actor at a time."""

    def __init__(self, directory: ActorDirectory, settings: ModerationSettings | None = None) -> None:
        self.directory = directory
        self.validator = CommandValidator(settings)

    async def authorize(self, actor: Actor, raw: RawCommand | Mapping[str, Any]) -> Decision:
        """
        Decide whether ``actor`` may run ``raw``.

        Args:
            actor: Snapshot of the requesting member.
            raw: Unvalidated command, or a function-call payload.

        Returns:
            Decision: ``allowed`` with the typed Command, or a denial naming the
            failing gate with a human-readable message.
        """
        try:
            command = self.validator.validate(raw)
        except InvalidCommand as exc:
            logger.debug("[AUTHZ] Invalid command from %s: %s", actor.actor_id, exc)
            return Decision.deny(DenialReason.INVALID_COMMAND, str(exc))

        if not has_required_capabilities(actor, command.kind):
            requirements = required_capabilities(command.kind)
            logger.info("[AUTHZ] %s lacks permissions for %s", actor.actor_id, command.kind)
            return Decision.deny(
                DenialReason.PERMISSION_DENIED,
                f"You need {describe_requirements(requirements)} permission to use {command.kind}",
                command,
                required_capabilities=requirements,
            )

        if command.kind in NO_TARGET_KINDS or command.target_ref is None:
            return Decision.allow(command)

        target = await self.directory.resolve(actor.tenant_id, command.target_ref)
        if target is None:
            # The executor reports the missing member.
            return Decision.allow(command)

        denial = check_hierarchy(actor, target, command.kind)
        if denial is not None:
            logger.info(
                "[AUTHZ] %s denied %s on %s: %s", actor.actor_id, command.kind, target.actor_id, denial
            )
            return Decision.deny(denial, _hierarchy_message(denial, command.kind, target), command, target=target)

        return Decision.allow(command, target)
