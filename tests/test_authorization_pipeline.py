import itertools

import pytest

from irismod.authorization.capability_matrix import (
    CAPABILITY_MATRIX,
    NO_TARGET_KINDS,
    SELF_ASSIGNABLE_KINDS,
    has_required_capabilities,
)
from irismod.authorization.pipeline import AuthorizationPipeline, check_hierarchy
from irismod.datatypes.action_datatypes import DenialReason
from irismod.datatypes.actor_datatypes import Capability
from irismod.datatypes.command_datatypes import CommandKind, RawCommand

from fakes import (
    ADMIN_ID,
    MEMBER_ID,
    MODERATOR_ID,
    OWNER_ID,
    TENANT,
    FakeDirectory,
    make_actor,
)

ALL_CAPABILITIES = frozenset(Capability)
TARGETED_KINDS = [kind for kind in CommandKind if kind not in NO_TARGET_KINDS]


def test_every_kind_has_capability_requirements() -> None:
    assert set(CAPABILITY_MATRIX) == set(CommandKind)


def test_administrator_satisfies_every_kind() -> None:
    admin = make_actor(ADMIN_ID, Capability.ADMINISTRATOR)
    assert all(has_required_capabilities(admin, kind) for kind in CommandKind)


def test_any_of_requirements() -> None:
    kicker = make_actor(MODERATOR_ID, Capability.KICK_MEMBERS)

    assert has_required_capabilities(kicker, CommandKind.WARNINGS)
    assert not has_required_capabilities(kicker, CommandKind.WARN)


@pytest.mark.parametrize("kind", TARGETED_KINDS)
def test_self_action_whitelist(kind: CommandKind) -> None:
    actor = make_actor(MODERATOR_ID, Capability.ADMINISTRATOR, rank=10)
    denial = check_hierarchy(actor, actor, kind)

    if kind in SELF_ASSIGNABLE_KINDS:
        assert denial is None
    else:
        assert denial is DenialReason.SELF_ACTION_FORBIDDEN


@pytest.mark.parametrize("actor_rank", [0, 5, 50, 1000])
def test_owner_is_protected_from_everyone_else(actor_rank: int) -> None:
    owner = make_actor(OWNER_ID, rank=1, is_owner=True)
    actor = make_actor(MODERATOR_ID, *ALL_CAPABILITIES, rank=actor_rank)

    for kind in TARGETED_KINDS:
        assert check_hierarchy(actor, owner, kind) is DenialReason.OWNER_PROTECTED


def test_owner_passes_regardless_of_rank() -> None:
    owner = make_actor(OWNER_ID, rank=0, is_owner=True)
    target = make_actor(MEMBER_ID, rank=99)

    assert check_hierarchy(owner, target, CommandKind.BAN) is None


def test_rank_must_be_strictly_higher() -> None:
    target = make_actor(MEMBER_ID, rank=5)

    assert check_hierarchy(make_actor(MODERATOR_ID, rank=6), target, CommandKind.KICK) is None
    assert check_hierarchy(make_actor(MODERATOR_ID, rank=5), target, CommandKind.KICK) is DenialReason.INSUFFICIENT_RANK
    assert check_hierarchy(make_actor(MODERATOR_ID, rank=4), target, CommandKind.KICK) is DenialReason.INSUFFICIENT_RANK


def test_raising_rank_never_revokes_permission() -> None:
    target = make_actor(MEMBER_ID, rank=5)
    for kind in TARGETED_KINDS:
        allowed_seen = False
        for rank in range(0, 12):
            allowed = check_hierarchy(make_actor(MODERATOR_ID, rank=rank), target, kind) is None
            assert not (allowed_seen and not allowed)
            allowed_seen = allowed_seen or allowed


def test_adding_capabilities_never_revokes_permission() -> None:
    optional = [capability for capability in Capability if capability is not Capability.ADMINISTRATOR]
    for kind in CommandKind:
        for size in range(len(optional)):
            for subset in itertools.combinations(optional, size):
                if not has_required_capabilities(make_actor(MODERATOR_ID, *subset), kind):
                    continue
                for extra in optional:
                    assert has_required_capabilities(make_actor(MODERATOR_ID, *subset, extra), kind)


@pytest.fixture
def pipeline_directory() -> FakeDirectory:
    return FakeDirectory(
        TENANT,
        [
            make_actor(MEMBER_ID, rank=2, name="member"),
            make_actor(OWNER_ID, rank=1, is_owner=True, name="owner"),
        ],
    )


@pytest.fixture
def pipeline(pipeline_directory: FakeDirectory) -> AuthorizationPipeline:
    return AuthorizationPipeline(pipeline_directory)


@pytest.mark.asyncio
async def test_allowed_command_carries_target(pipeline: AuthorizationPipeline) -> None:
    moderator = make_actor(MODERATOR_ID, Capability.MODERATE_MEMBERS, rank=10)

    decision = await pipeline.authorize(moderator, RawCommand("mute", "member", {"duration": "5m"}))

    assert decision.allowed
    assert decision.command.kind is CommandKind.MUTE
    assert decision.target.actor_id == MEMBER_ID


@pytest.mark.asyncio
async def test_invalid_command_is_checked_first(pipeline: AuthorizationPipeline) -> None:
    nobody = make_actor(MODERATOR_ID)

    decision = await pipeline.authorize(nobody, RawCommand("mute", "member", {"duration": "forever"}))

    assert not decision.allowed
    assert decision.denial is DenialReason.INVALID_COMMAND
    assert decision.command is None


@pytest.mark.asyncio
async def test_permission_denied_lists_required_capabilities(
    pipeline: AuthorizationPipeline, pipeline_directory: FakeDirectory
) -> None:
    nobody = make_actor(MODERATOR_ID, rank=10)

    decision = await pipeline.authorize(nobody, {"function": "warnings", "target": "member"})

    assert decision.denial is DenialReason.PERMISSION_DENIED
    assert decision.required_capabilities == (
        frozenset({Capability.MODERATE_MEMBERS}),
        frozenset({Capability.KICK_MEMBERS}),
    )
    assert "ModerateMembers or KickMembers" in decision.message
    assert pipeline_directory.lookups == []


@pytest.mark.asyncio
async def test_hierarchy_denials(pipeline: AuthorizationPipeline) -> None:
    moderator = make_actor(MODERATOR_ID, Capability.BAN_MEMBERS, rank=2)

    same_rank = await pipeline.authorize(moderator, RawCommand("ban", "member"))
    owner = await pipeline.authorize(moderator, RawCommand("ban", str(OWNER_ID)))

    assert same_rank.denial is DenialReason.INSUFFICIENT_RANK
    assert "member" in same_rank.message
    assert owner.denial is DenialReason.OWNER_PROTECTED


@pytest.mark.asyncio
async def test_unresolved_target_passes(pipeline: AuthorizationPipeline) -> None:
    moderator = make_actor(MODERATOR_ID, Capability.KICK_MEMBERS, rank=1)

    decision = await pipeline.authorize(moderator, RawCommand("kick", "ghost"))

    assert decision.allowed
    assert decision.target is None


@pytest.mark.asyncio
async def test_no_target_kinds_skip_directory(
    pipeline: AuthorizationPipeline, pipeline_directory: FakeDirectory
) -> None:
    manager = make_actor(MODERATOR_ID, Capability.MANAGE_MESSAGES)

    decision = await pipeline.authorize(manager, RawCommand("clear", "10"))

    assert decision.allowed
    assert pipeline_directory.lookups == []


@pytest.mark.asyncio
async def test_self_assignable_role(pipeline: AuthorizationPipeline, pipeline_directory: FakeDirectory) -> None:
    moderator = pipeline_directory.add(make_actor(MODERATOR_ID, Capability.MANAGE_ROLES, rank=3, name="mod"))

    add = await pipeline.authorize(moderator, RawCommand("add_role", "mod", {"role_id": "600000000000000006"}))
    remove = await pipeline.authorize(moderator, RawCommand("remove_role", "mod", {"role_id": "600000000000000006"}))

    assert add.allowed
    assert remove.denial is DenialReason.SELF_ACTION_FORBIDDEN


@pytest.mark.asyncio
async def test_nickname_changes_follow_the_hierarchy(
    pipeline: AuthorizationPipeline, pipeline_directory: FakeDirectory
) -> None:
    moderator = pipeline_directory.add(make_actor(MODERATOR_ID, Capability.MANAGE_NICKNAMES, rank=3, name="mod"))
    pipeline_directory.add(make_actor(ADMIN_ID, rank=9, name="senior"))

    junior = await pipeline.authorize(
        moderator, {"function": "change_nickname", "userId": str(MEMBER_ID), "nickname": "Sprout"}
    )
    senior = await pipeline.authorize(moderator, RawCommand("set_nickname", "senior", {"nickname": "Boss"}))
    owner = await pipeline.authorize(moderator, RawCommand("set_nickname", "owner", {"nickname": "Boss"}))
    own = await pipeline.authorize(moderator, RawCommand("set_nickname", "mod", {"nickname": "Mod"}))

    assert junior.allowed
    assert junior.target.actor_id == MEMBER_ID
    assert senior.denial is DenialReason.INSUFFICIENT_RANK
    assert owner.denial is DenialReason.OWNER_PROTECTED
    assert own.allowed


@pytest.mark.asyncio
async def test_nickname_changes_need_manage_nicknames(pipeline: AuthorizationPipeline) -> None:
    moderator = make_actor(MODERATOR_ID, Capability.MANAGE_ROLES, Capability.MODERATE_MEMBERS, rank=10)

    decision = await pipeline.authorize(moderator, RawCommand("set_nickname", "member", {"nickname": "x"}))

    assert decision.denial is DenialReason.PERMISSION_DENIED
    assert "ManageNicknames" in decision.message


@pytest.mark.asyncio
async def test_authorize_is_idempotent(pipeline: AuthorizationPipeline) -> None:
    moderator = make_actor(MODERATOR_ID, Capability.KICK_MEMBERS, rank=10)
    raw = RawCommand("kick", "member", {"reason": "spam"})

    assert await pipeline.authorize(moderator, raw) == await pipeline.authorize(moderator, raw)
