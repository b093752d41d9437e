"""Tests for the pure access-control predicates."""

from __future__ import annotations

import pytest

from basket.access import (
    Role,
    RoleTable,
    STORE_ROLES,
    can_edit_store,
    can_manage_members,
    can_manage_roles,
    can_manage_store_collaborators,
    has_access_to_store,
    higher_role,
    household_role,
    parse_role,
    require_role,
    store_role,
)
from basket.errors import ForbiddenError, InvalidInputError, NotFoundError


def _table() -> RoleTable:
    return RoleTable(
        household_roles={
            ("owner", "h1"): Role.OWNER,
            ("editor", "h1"): Role.EDITOR,
            ("viewer", "h1"): Role.VIEWER,
        },
        store_roles={
            ("collab", "s-private"): Role.EDITOR,
            ("viewer", "s-shared"): Role.EDITOR,
        },
        store_households={"s-shared": "h1", "s-private": None},
    )


@pytest.mark.parametrize(
    ("user_id", "members", "roles"),
    [
        ("owner", True, True),
        ("editor", True, False),
        ("viewer", False, False),
        ("stranger", False, False),
    ],
)
def test_household_thresholds(user_id, members, roles):
    table = _table()
    assert can_manage_members(table, user_id, "h1") is members
    assert can_manage_roles(table, user_id, "h1") is roles


def test_household_role_unknown_household_is_none():
    assert household_role(_table(), "owner", "h2") is None
    assert household_role(_table(), "owner", None) is None


def test_store_role_inherits_from_household():
    table = _table()
    assert store_role(table, "owner", "s-shared") is Role.OWNER
    assert store_role(table, "editor", "s-shared") is Role.EDITOR
    assert can_manage_store_collaborators(table, "owner", "s-shared")
    assert not can_manage_store_collaborators(table, "editor", "s-shared")


def test_store_role_takes_higher_of_direct_and_inherited():
    table = _table()
    # household viewer with a direct editor grant
    assert store_role(table, "viewer", "s-shared") is Role.EDITOR
    assert can_edit_store(table, "viewer", "s-shared")


def test_private_store_only_visible_to_collaborators():
    table = _table()
    assert has_access_to_store(table, "collab", "s-private")
    assert not has_access_to_store(table, "owner", "s-private")
    assert store_role(table, "stranger", "s-shared") is None


def test_higher_role_handles_missing_facts():
    assert higher_role(None, None) is None
    assert higher_role(Role.VIEWER, None) is Role.VIEWER
    assert higher_role(None, Role.EDITOR) is Role.EDITOR
    assert higher_role(Role.OWNER, Role.EDITOR) is Role.OWNER


def test_require_role_distinguishes_unknown_from_insufficient():
    with pytest.raises(NotFoundError):
        require_role(None, Role.VIEWER, resource="Store", action="view this store")
    with pytest.raises(ForbiddenError):
        require_role(Role.VIEWER, Role.EDITOR, resource="Store", action="edit this store")
    assert require_role(Role.OWNER, Role.EDITOR, resource="Store", action="edit") is Role.OWNER


def test_parse_role_normalizes_and_checks_scope():
    assert parse_role(" Editor ", STORE_ROLES, scope="store") is Role.EDITOR
    with pytest.raises(InvalidInputError):
        parse_role("viewer", STORE_ROLES, scope="store")
    with pytest.raises(InvalidInputError):
        parse_role("admin", STORE_ROLES, scope="store")
