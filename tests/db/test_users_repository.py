"""Tests for user registration."""

from __future__ import annotations

import pytest

from basket.config import get_settings
from basket.db.reference import REGISTRATION_INVITATION_CODE, registration_policy, set_setting
from basket.db.users import get_user, get_user_by_email, register_user, update_user_profile
from basket.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from basket.models.users import Actor, RegistrationPolicy


def _register(email="dana@example.com", **kwargs):
    kwargs.setdefault("policy", RegistrationPolicy())
    return register_user(email=email, name="Dana", password_hash="hash", **kwargs)


def test_register_and_lookup():
    user = _register(email="Dana@Example.com", scopes=["shopping", "admin", "shopping"])

    assert user.email == "dana@example.com"
    assert user.scopes == ["admin", "shopping"]
    assert get_user(user.id).email == user.email
    assert get_user_by_email("DANA@example.com").id == user.id
    assert get_user("missing") is None


def test_duplicate_email_conflicts():
    _register()

    with pytest.raises(ConflictError):
        _register(email="DANA@example.com")


def test_invalid_email_rejected():
    with pytest.raises(InvalidInputError):
        _register(email="not-an-email")


def test_invitation_code_required_when_configured():
    set_setting(REGISTRATION_INVITATION_CODE, "open-sesame")
    policy = registration_policy()
    assert policy.requires_code

    with pytest.raises(ForbiddenError):
        _register(policy=policy)
    with pytest.raises(ForbiddenError):
        _register(policy=policy, invitation_code="wrong")
    with pytest.raises(ForbiddenError):
        _register(policy=policy, invitation_code="sésame")

    assert _register(policy=policy, invitation_code=" open-sesame ").name == "Dana"


def test_policy_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("BASKET_REGISTRATION_INVITATION_CODE", "from-env")
    get_settings.cache_clear()

    assert registration_policy().invitation_code == "from-env"

    set_setting(REGISTRATION_INVITATION_CODE, "from-db")
    assert registration_policy().invitation_code == "from-db"


def test_update_profile_changes_name_only(alice):
    updated = update_user_profile(alice, name="  Alice Smith ")

    assert updated.name == "Alice Smith"
    assert updated.email == alice.email
    assert get_user(alice.user_id).name == "Alice Smith"


def test_update_profile_validation(alice):
    with pytest.raises(InvalidInputError):
        update_user_profile(alice, name="   ")
    with pytest.raises(InvalidInputError):
        update_user_profile(alice, name="A" * 101)
    with pytest.raises(NotFoundError):
        update_user_profile(Actor(user_id="missing", email="ghost@example.com"), name="Ghost")
