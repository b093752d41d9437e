"""Tests for membership roles and the last-owner rule."""

from __future__ import annotations

import random

import pytest

from basket.access import Role
from basket.db.households import create_household
from basket.db.invitations import accept_invitation, create_invitation, list_pending_for_user
from basket.db.membership import get_role, leave, list_members, owner_count, remove_member, set_role
from basket.db.stores import create_store
from basket.errors import BasketError, ConflictError, ForbiddenError, NotFoundError


def _join(scope: str, scope_id: str, inviter, invitee, role: str) -> None:
    invitation = create_invitation(scope, scope_id, invitee.email, role, inviter)
    accept_invitation(scope, invitation.token, invitee)


def test_members_listed_owners_first(alice, bob, carol):
    household = create_household("Home", alice)
    _join("household", household.id, alice, bob, "viewer")
    _join("household", household.id, alice, carol, "editor")

    members = list_members("household", household.id, bob)

    assert [member.user_id for member in members] == [alice.user_id, carol.user_id, bob.user_id]
    assert members[0].user_name == "Alice"


def test_owner_changes_roles(alice, bob):
    household = create_household("Home", alice)
    _join("household", household.id, alice, bob, "viewer")

    updated = set_role("household", household.id, bob.user_id, "owner", alice)

    assert updated.role is Role.OWNER
    assert owner_count("household", household.id) == 2


def test_non_owner_cannot_change_roles(alice, bob, carol):
    household = create_household("Home", alice)
    _join("household", household.id, alice, bob, "editor")
    _join("household", household.id, alice, carol, "viewer")

    with pytest.raises(ForbiddenError):
        set_role("household", household.id, carol.user_id, "editor", bob)
    with pytest.raises(ForbiddenError):
        remove_member("household", household.id, carol.user_id, bob)


def test_outsider_sees_not_found(alice, bob):
    household = create_household("Home", alice)

    with pytest.raises(NotFoundError):
        list_members("household", household.id, bob)
    with pytest.raises(NotFoundError):
        set_role("household", household.id, alice.user_id, "viewer", bob)


def test_self_role_change_and_removal_forbidden(alice, bob):
    household = create_household("Home", alice)
    _join("household", household.id, alice, bob, "owner")

    with pytest.raises(ForbiddenError):
        set_role("household", household.id, alice.user_id, "viewer", alice)
    with pytest.raises(ForbiddenError):
        remove_member("household", household.id, alice.user_id, alice)


def test_last_owner_cannot_leave(alice):
    household = create_household("Home", alice)

    with pytest.raises(ConflictError):
        leave("household", household.id, alice)
    assert get_role("household", household.id, alice.user_id) is Role.OWNER


def test_owner_can_leave_when_another_owner_remains(alice, bob):
    household = create_household("Home", alice)
    _join("household", household.id, alice, bob, "owner")

    leave("household", household.id, alice)

    assert get_role("household", household.id, alice.user_id) is None
    assert owner_count("household", household.id) == 1


def test_last_owner_guard_on_demotion_and_removal(alice, bob):
    household = create_household("Home", alice)
    _join("household", household.id, alice, bob, "owner")
    set_role("household", household.id, alice.user_id, "editor", bob)

    # bob is now the only owner; alice cannot touch him and he cannot touch himself
    with pytest.raises(ForbiddenError):
        set_role("household", household.id, bob.user_id, "viewer", alice)
    with pytest.raises(ForbiddenError):
        set_role("household", household.id, bob.user_id, "viewer", bob)
    with pytest.raises(ConflictError):
        leave("household", household.id, bob)
    assert owner_count("household", household.id) == 1


def test_removing_member_and_unknown_target(alice, bob):
    household = create_household("Home", alice)
    _join("household", household.id, alice, bob, "viewer")

    remove_member("household", household.id, bob.user_id, alice)
    assert get_role("household", household.id, bob.user_id) is None

    with pytest.raises(NotFoundError):
        remove_member("household", household.id, bob.user_id, alice)


def test_leave_without_membership_is_not_found(alice, bob):
    household = create_household("Home", alice)

    with pytest.raises(NotFoundError):
        leave("household", household.id, bob)


def test_store_collaborators_share_the_rules(alice, bob):
    store = create_store("Shop", alice)
    _join("store", store.id, alice, bob, "editor")

    with pytest.raises(ConflictError):
        leave("store", store.id, alice)
    with pytest.raises(ForbiddenError):
        remove_member("store", store.id, alice.user_id, bob)

    set_role("store", store.id, bob.user_id, "owner", alice)
    leave("store", store.id, alice)
    assert owner_count("store", store.id) == 1


def test_household_owner_manages_shared_store_collaborators(alice, bob, carol):
    household = create_household("Home", alice)
    _join("household", household.id, alice, bob, "editor")
    store = create_store("Shop", bob, household_id=household.id)
    _join("store", store.id, bob, carol, "editor")

    # alice holds no direct row but inherits ownership from the household
    visible = [member.user_id for member in list_members("store", store.id, alice)]
    assert carol.user_id in visible
    remove_member("store", store.id, carol.user_id, alice)
    assert get_role("store", store.id, carol.user_id) is None


@pytest.mark.parametrize(
    "scope, roles",
    [
        ("household", ["viewer", "editor", "owner"]),
        ("store", ["editor", "owner"]),
    ],
)
def test_random_operation_sequences_keep_an_owner(make_actor, scope, roles):
    rng = random.Random(20240607)
    actors = [make_actor(f"User{index}") for index in range(5)]
    if scope == "household":
        scope_id = create_household("Fuzz", actors[0]).id
    else:
        scope_id = create_store("Fuzz", actors[0]).id
    # a second owner lets demotions and removals reach the last-owner check
    _join(scope, scope_id, actors[0], actors[1], "owner")

    for _ in range(120):
        actor = rng.choice(actors)
        target = rng.choice(actors)
        operation = rng.choice(["invite", "accept", "set_role", "remove", "leave"])
        try:
            if operation == "invite":
                create_invitation(scope, scope_id, target.email, rng.choice(roles), actor)
            elif operation == "accept":
                for invitation in list_pending_for_user(actor.email, scope):
                    if invitation.scope_id == scope_id:
                        accept_invitation(scope, invitation.token, actor)
            elif operation == "set_role":
                set_role(scope, scope_id, target.user_id, rng.choice(roles), actor)
            elif operation == "remove":
                remove_member(scope, scope_id, target.user_id, actor)
            else:
                leave(scope, scope_id, actor)
        except BasketError:
            pass
        assert owner_count(scope, scope_id) >= 1
