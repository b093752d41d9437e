"""Tests for the invitation lifecycle."""

from __future__ import annotations

import pytest

from basket.access import Role
from basket.db.households import create_household
from basket.db.invitations import (
    accept_invitation,
    create_invitation,
    decline_invitation,
    list_pending_for_scope,
    list_pending_for_user,
    retract_invitation,
)
from basket.db.membership import get_role, set_role
from basket.db.models import HouseholdMemberORM
from basket.db.repository import session_scope
from basket.db.stores import create_store
from basket.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from basket.models.households import HouseholdMember
from basket.models.stores import StoreCollaborator


def test_household_invitation_round_trip(alice, bob):
    household = create_household("Home", alice)

    invitation = create_invitation("household", household.id, "Bob@Example.com", "editor", alice)
    assert invitation.invited_email == "bob@example.com"
    assert invitation.role is Role.EDITOR
    assert invitation.scope_name == "Home"
    assert invitation.inviter_name == "Alice"
    assert len(invitation.token) >= 40

    member = accept_invitation("household", invitation.token, bob)
    assert isinstance(member, HouseholdMember)
    assert member.role is Role.EDITOR
    assert get_role("household", household.id, bob.user_id) is Role.EDITOR
    assert list_pending_for_user(bob.email) == []

    with pytest.raises(NotFoundError):
        accept_invitation("household", invitation.token, bob)


def test_store_invitation_creates_collaborator(alice, bob):
    store = create_store("Corner shop", alice)

    invitation = create_invitation("store", store.id, bob.email, "editor", alice)
    collaborator = accept_invitation("store", invitation.token, bob)

    assert isinstance(collaborator, StoreCollaborator)
    assert collaborator.store_id == store.id
    assert collaborator.role is Role.EDITOR


def test_store_invitation_rejects_viewer_role(alice):
    store = create_store("Corner shop", alice)

    with pytest.raises(InvalidInputError):
        create_invitation("store", store.id, "bob@example.com", "viewer", alice)


def test_accept_requires_matching_email(alice, bob, carol):
    household = create_household("Home", alice)
    invitation = create_invitation("household", household.id, bob.email, "viewer", alice)

    with pytest.raises(ForbiddenError):
        accept_invitation("household", invitation.token, carol)
    with pytest.raises(ForbiddenError):
        decline_invitation("household", invitation.token, carol)

    # still pending for the intended recipient
    assert [pending.id for pending in list_pending_for_user(bob.email)] == [invitation.id]


def test_accept_with_unknown_token_is_not_found(bob):
    with pytest.raises(NotFoundError):
        accept_invitation("household", "no-such-token", bob)


def test_accept_when_already_member_keeps_existing_role(alice, bob):
    household = create_household("Home", alice)
    invitation = create_invitation("household", household.id, bob.email, "editor", alice)
    # membership granted through another path while the invitation was pending
    with session_scope() as session:
        session.add(HouseholdMemberORM(household_id=household.id, user_id=bob.user_id, role="viewer"))

    member = accept_invitation("household", invitation.token, bob)

    assert member.role is Role.VIEWER
    assert get_role("household", household.id, bob.user_id) is Role.VIEWER
    assert list_pending_for_user(bob.email) == []


def test_duplicate_pending_invitation_conflicts(alice):
    household = create_household("Home", alice)
    create_invitation("household", household.id, "bob@example.com", "viewer", alice)

    with pytest.raises(ConflictError):
        create_invitation("household", household.id, "BOB@example.com", "editor", alice)


def test_inviting_existing_member_conflicts(alice, bob):
    household = create_household("Home", alice)
    invitation = create_invitation("household", household.id, bob.email, "viewer", alice)
    accept_invitation("household", invitation.token, bob)

    with pytest.raises(ConflictError):
        create_invitation("household", household.id, bob.email, "editor", alice)


def test_invite_permissions(alice, bob, carol):
    household = create_household("Home", alice)

    with pytest.raises(NotFoundError):
        create_invitation("household", household.id, "dave@example.com", "viewer", bob)

    viewer_invite = create_invitation("household", household.id, bob.email, "viewer", alice)
    accept_invitation("household", viewer_invite.token, bob)
    with pytest.raises(ForbiddenError):
        create_invitation("household", household.id, "dave@example.com", "viewer", bob)

    set_role("household", household.id, bob.user_id, "editor", alice)
    # editors may invite but not hand out ownership
    with pytest.raises(ForbiddenError):
        create_invitation("household", household.id, carol.email, "owner", bob)
    invitation = create_invitation("household", household.id, carol.email, "editor", bob)
    assert invitation.invited_by_id == bob.user_id


def test_decline_deletes_invitation(alice, bob):
    household = create_household("Home", alice)
    invitation = create_invitation("household", household.id, bob.email, "viewer", alice)

    decline_invitation("household", invitation.token, bob)

    assert list_pending_for_user(bob.email) == []
    assert get_role("household", household.id, bob.user_id) is None
    with pytest.raises(NotFoundError):
        accept_invitation("household", invitation.token, bob)


def test_retract_by_inviter_or_owner(alice, bob, carol):
    household = create_household("Home", alice)
    editor_invite = create_invitation("household", household.id, bob.email, "editor", alice)
    accept_invitation("household", editor_invite.token, bob)

    by_bob = create_invitation("household", household.id, carol.email, "viewer", bob)
    retract_invitation("household", by_bob.id, bob, scope_id=household.id)
    assert list_pending_for_scope("household", household.id, alice) == []

    again = create_invitation("household", household.id, carol.email, "viewer", bob)
    retract_invitation("household", again.id, alice)
    assert list_pending_for_user(carol.email) == []


def test_retract_denied_for_other_editors_and_outsiders(alice, bob, carol):
    household = create_household("Home", alice)
    editor_invite = create_invitation("household", household.id, bob.email, "editor", alice)
    accept_invitation("household", editor_invite.token, bob)
    pending = create_invitation("household", household.id, "dave@example.com", "viewer", alice)

    with pytest.raises(ForbiddenError):
        retract_invitation("household", pending.id, bob)
    with pytest.raises(NotFoundError):
        retract_invitation("household", pending.id, carol)
    with pytest.raises(NotFoundError):
        retract_invitation("household", pending.id, alice, scope_id="another-household")


def test_pending_lists_are_newest_first(alice, bob):
    home = create_household("Home", alice)
    shop = create_store("Shop", alice)
    first = create_invitation("household", home.id, bob.email, "viewer", alice)
    second = create_invitation("store", shop.id, bob.email, "editor", alice)

    pending = list_pending_for_user("BOB@example.com")
    assert {invitation.id for invitation in pending} == {first.id, second.id}
    assert pending[0].created_at >= pending[1].created_at
    assert [invitation.id for invitation in list_pending_for_user(bob.email, "store")] == [second.id]


def test_listing_scope_invitations_requires_editor(alice, bob):
    household = create_household("Home", alice)
    invitation = create_invitation("household", household.id, bob.email, "viewer", alice)
    accept_invitation("household", invitation.token, bob)

    with pytest.raises(ForbiddenError):
        list_pending_for_scope("household", household.id, bob)
