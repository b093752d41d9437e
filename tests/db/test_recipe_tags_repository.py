"""Tests for recipe tags, tag filtering and hidden recipes."""

from __future__ import annotations

import pytest

from basket.db.households import create_household, delete_household
from basket.db.invitations import accept_invitation, create_invitation
from basket.db.models import RecipeTagORM
from basket.db.recipe_tags import create_tag, delete_tag, list_tags, update_tag
from basket.db.recipes import (
    assign_tag,
    create_recipe,
    get_recipe,
    list_recipes,
    remove_tag,
    search_recipes_by_tags,
    set_recipe_hidden,
)
from basket.db.repository import session_scope
from basket.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError


@pytest.fixture()
def household(alice):
    return create_household("Home", alice)


def test_tags_are_unique_per_household_ignoring_case(household, alice, bob):
    quick = create_tag(household.id, "Quick", alice, color="#ffcc00")
    create_tag(household.id, "Dinner", alice)

    assert quick.color == "#ffcc00"
    assert [tag.name for tag in list_tags(household.id, alice)] == ["Dinner", "Quick"]
    with pytest.raises(ConflictError):
        create_tag(household.id, "  QUICK ", alice)

    # the same name is free in another household
    other = create_household("Cabin", bob)
    assert create_tag(other.id, "Quick", bob).household_id == other.id


def test_tag_input_validation(household, alice):
    with pytest.raises(InvalidInputError):
        create_tag(household.id, " ", alice)
    with pytest.raises(InvalidInputError):
        create_tag(household.id, "x" * 51, alice)
    with pytest.raises(InvalidInputError):
        create_tag(household.id, "Long colour", alice, color="c" * 256)


def test_update_tag(household, alice):
    tag = create_tag(household.id, "Veg", alice, color="green")
    create_tag(household.id, "Vegan", alice)

    renamed = update_tag(household.id, tag.id, alice, name="Vegetarian")
    assert renamed.name == "Vegetarian"
    assert renamed.color == "green"

    assert update_tag(household.id, tag.id, alice, color=None).color is None
    with pytest.raises(ConflictError):
        update_tag(household.id, tag.id, alice, name="vegan")


def test_assigning_tags(household, alice):
    recipe = create_recipe(household.id, "Curry", alice)
    spicy = create_tag(household.id, "Spicy", alice)
    dinner = create_tag(household.id, "Dinner", alice)

    assign_tag(recipe.id, spicy.id, alice)
    tagged = assign_tag(recipe.id, dinner.id, alice)
    assert [tag.name for tag in tagged.tags] == ["Dinner", "Spicy"]

    # assigning twice is harmless
    assert len(assign_tag(recipe.id, spicy.id, alice).tags) == 2

    untagged = remove_tag(recipe.id, spicy.id, alice)
    assert [tag.id for tag in untagged.tags] == [dinner.id]

    delete_tag(household.id, dinner.id, alice)
    assert get_recipe(recipe.id, alice).tags == []


def test_tags_cannot_cross_households(household, alice):
    recipe = create_recipe(household.id, "Curry", alice)
    other = create_household("Cabin", alice)
    foreign = create_tag(other.id, "Spicy", alice)

    with pytest.raises(NotFoundError):
        assign_tag(recipe.id, foreign.id, alice)
    with pytest.raises(NotFoundError):
        update_tag(household.id, foreign.id, alice, name="Mild")


def test_search_requires_every_tag(household, alice):
    curry = create_recipe(household.id, "Curry", alice)
    chili = create_recipe(household.id, "Chili", alice)
    salad = create_recipe(household.id, "Salad", alice)
    spicy = create_tag(household.id, "Spicy", alice)
    dinner = create_tag(household.id, "Dinner", alice)
    for recipe in (curry, chili):
        assign_tag(recipe.id, spicy.id, alice)
    assign_tag(curry.id, dinner.id, alice)
    assign_tag(salad.id, dinner.id, alice)

    assert [recipe.name for recipe in search_recipes_by_tags(household.id, [spicy.id], alice)] == ["Chili", "Curry"]
    assert [recipe.id for recipe in search_recipes_by_tags(household.id, [spicy.id, dinner.id], alice)] == [curry.id]
    assert len(search_recipes_by_tags(household.id, [], alice)) == 3
    with pytest.raises(NotFoundError):
        search_recipes_by_tags(household.id, ["missing-tag"], alice)


def test_hidden_recipes_leave_default_listings(household, alice):
    curry = create_recipe(household.id, "Curry", alice)
    create_recipe(household.id, "Salad", alice)
    spicy = create_tag(household.id, "Spicy", alice)
    assign_tag(curry.id, spicy.id, alice)

    hidden = set_recipe_hidden(curry.id, True, alice)

    assert hidden.is_hidden is True
    assert [recipe.name for recipe in list_recipes(household.id, alice)] == ["Salad"]
    assert [recipe.name for recipe in list_recipes(household.id, alice, include_hidden=True)] == ["Curry", "Salad"]
    assert search_recipes_by_tags(household.id, [spicy.id], alice) == []
    assert get_recipe(curry.id, alice).is_hidden is True

    set_recipe_hidden(curry.id, False, alice)
    assert len(list_recipes(household.id, alice)) == 2


def test_tag_permissions(household, alice, bob, carol):
    invitation = create_invitation("household", household.id, bob.email, "viewer", alice)
    accept_invitation("household", invitation.token, bob)
    recipe = create_recipe(household.id, "Curry", alice)
    tag = create_tag(household.id, "Spicy", alice)

    assert [entry.id for entry in list_tags(household.id, bob)] == [tag.id]
    with pytest.raises(ForbiddenError):
        create_tag(household.id, "Mild", bob)
    with pytest.raises(ForbiddenError):
        assign_tag(recipe.id, tag.id, bob)
    with pytest.raises(ForbiddenError):
        set_recipe_hidden(recipe.id, True, bob)
    with pytest.raises(NotFoundError):
        list_tags(household.id, carol)


def test_deleting_household_removes_its_tags(household, alice):
    tag = create_tag(household.id, "Spicy", alice)
    delete_household(household.id, alice)

    with session_scope() as session:
        assert session.get(RecipeTagORM, tag.id) is None
