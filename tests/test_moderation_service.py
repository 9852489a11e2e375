import asyncio

import pytest

from irismod.authorization.pipeline import AuthorizationPipeline
from irismod.datatypes.action_datatypes import DenialReason, ExecutionStatus
from irismod.datatypes.actor_datatypes import Capability
from irismod.datatypes.identifiers import ActorID
from irismod.services.moderation_service import ModerationService

from fakes import MEMBER_ID, MODERATOR_ID, OWNER_ID, TENANT, make_actor

MODERATOR = ActorID(MODERATOR_ID)
CHANNEL_ID = 700000000000000007


@pytest.fixture
def service(directory, executor, settings) -> ModerationService:
    directory.add(make_actor(MODERATOR_ID, Capability.MODERATE_MEMBERS, Capability.MANAGE_GUILD, rank=5, name="mod"))
    directory.add(make_actor(MEMBER_ID, rank=1, name="member"))
    directory.add(make_actor(OWNER_ID, rank=0, is_owner=True, name="owner"))
    return ModerationService(directory, AuthorizationPipeline(directory, settings), executor)


@pytest.mark.asyncio
async def test_warn_request_end_to_end(service, adapter) -> None:
    await service.handle(
        TENANT,
        MODERATOR,
        {"function": "set_automod_rule", "threshold": 2, "action": "mute", "duration": "10m"},
        CHANNEL_ID,
    )

    first = await service.handle(TENANT, MODERATOR, {"function": "warn", "target": "member", "reason": "spam"})
    second = await service.handle(TENANT, MODERATOR, {"function": "warn", "target": f"<@{MEMBER_ID}>"})

    assert first.success and second.success
    assert first.result.data.new_count == 1
    assert second.result.data.triggered is not None
    assert "Auto-moderation" in second.message
    assert len(adapter.calls_to("mute")) == 1


@pytest.mark.asyncio
async def test_denials_never_reach_the_executor(service, adapter) -> None:
    outcome = await service.handle(TENANT, MODERATOR, {"function": "ban", "target": "member"})

    assert not outcome.success
    assert outcome.result is None
    assert outcome.decision.denial is DenialReason.PERMISSION_DENIED
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_owner_is_protected(service, adapter) -> None:
    outcome = await service.handle(TENANT, MODERATOR, {"function": "mute", "target": "owner"})

    assert outcome.decision.denial is DenialReason.OWNER_PROTECTED
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_unknown_requester_fails_closed(service, adapter) -> None:
    outcome = await service.handle(TENANT, ActorID(999999999999999999), {"function": "warn", "target": "member"})

    assert outcome.decision.denial is DenialReason.PERMISSION_DENIED
    assert outcome.result is None


@pytest.mark.asyncio
async def test_busy_actor_is_turned_away(service, adapter) -> None:
    adapter.delays["mute"] = 0.2

    slow, fast = await asyncio.gather(
        service.handle(TENANT, MODERATOR, {"function": "mute", "target": "member"}),
        service.handle(TENANT, MODERATOR, {"function": "mute", "target": "member"}),
    )

    assert slow.success
    assert fast.busy
    assert "still processing" in fast.message
    assert len(adapter.calls_to("mute")) == 1


@pytest.mark.asyncio
async def test_execution_failures_are_returned(service, adapter) -> None:
    outcome = await service.handle(TENANT, MODERATOR, {"function": "mute", "target": "nobody-here"})

    assert outcome.decision.allowed
    assert outcome.result.status is ExecutionStatus.NOT_FOUND
    assert not outcome.success


@pytest.mark.asyncio
async def test_unresolved_target_is_never_acted_on(service, directory, adapter) -> None:
    junior = ActorID(110000000000000011)
    directory.add(make_actor(int(junior), Capability.BAN_MEMBERS, rank=1, name="junior"))
    directory.add(make_actor(120000000000000012, rank=10, name="senior"))
    directory.fail_next("senior")

    outcome = await service.handle(TENANT, junior, {"function": "ban", "target": "senior"})

    assert not outcome.success
    assert outcome.result.status is ExecutionStatus.NOT_FOUND
    assert adapter.calls_to("ban") == []
    assert directory.lookups.count("senior") == 1


@pytest.mark.asyncio
async def test_executor_acts_on_the_checked_target(service, directory, adapter) -> None:
    outcome = await service.handle(TENANT, MODERATOR, {"function": "mute", "target": "member"})

    assert outcome.success
    assert outcome.decision.target.actor_id == ActorID(MEMBER_ID)
    assert adapter.calls_to("mute")[0][1] == ActorID(MEMBER_ID)
    assert directory.lookups.count("member") == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", ["²", "--5"])
async def test_malformed_numbers_come_back_as_invalid_commands(service, limit) -> None:
    outcome = await service.handle(TENANT, MODERATOR, {"function": "warnings", "target": "member", "limit": limit})

    assert outcome.decision.denial is DenialReason.INVALID_COMMAND
    assert "limit" in outcome.message
    assert outcome.result is None
