"""Tests for household recipes and adding them to a list."""

from __future__ import annotations

import pytest

from basket.db.catalog import list_items
from basket.db.households import create_household
from basket.db.invitations import accept_invitation, create_invitation
from basket.db.recipes import (
    add_recipe_to_shopping_list,
    create_recipe,
    delete_recipe,
    get_recipe,
    list_recipes,
    update_recipe,
)
from basket.db.shopping_list import list_shopping_list, toggle_checked
from basket.db.stores import create_store
from basket.errors import ForbiddenError, InvalidInputError, NotFoundError

PANCAKES = [
    {"name": "Flour", "qty": 2, "unit_id": "cup"},
    {"name": "Milk", "qty": 1.5, "unit_id": "cup"},
    {"name": "Eggs", "qty": 2},
]


@pytest.fixture()
def household(alice):
    return create_household("Home", alice)


def test_create_and_update_recipe(household, alice):
    recipe = create_recipe(household.id, "Pancakes", alice, notes="weekend", ingredients=PANCAKES)

    assert [ingredient.name for ingredient in recipe.ingredients] == ["Flour", "Milk", "Eggs"]
    assert [ingredient.sort_order for ingredient in recipe.ingredients] == [0, 1, 2]

    updated = update_recipe(recipe.id, alice, name="Fluffy Pancakes", ingredients=PANCAKES[:1])
    assert updated.name == "Fluffy Pancakes"
    assert updated.notes == "weekend"
    assert [ingredient.name for ingredient in updated.ingredients] == ["Flour"]
    assert [entry.id for entry in list_recipes(household.id, alice)] == [recipe.id]


def test_invalid_ingredients_rejected(household, alice):
    with pytest.raises(InvalidInputError):
        create_recipe(household.id, "Soup", alice, ingredients=[{"name": "Water", "unit_id": "bucket"}])
    with pytest.raises(InvalidInputError):
        create_recipe(household.id, "Soup", alice, ingredients=[{"name": "Water", "qty": -2}])
    assert list_recipes(household.id, alice) == []


def test_add_recipe_to_list_is_idempotent(household, alice):
    store = create_store("Market", alice, household_id=household.id)
    recipe = create_recipe(household.id, "Pancakes", alice, ingredients=PANCAKES)

    rows = add_recipe_to_shopping_list(recipe.id, store.id, alice)
    assert [row.display_name for row in rows] == ["Flour", "Milk", "Eggs"]
    toggle_checked(store.id, rows[0].id, alice)

    again = add_recipe_to_shopping_list(recipe.id, store.id, alice)

    assert [row.id for row in again] == [row.id for row in rows]
    assert all(row.is_checked is False for row in again)
    assert len(list_shopping_list(store.id, alice)) == 3
    assert all(item.usage_count == 1 for item in list_items(store.id, alice))


def test_recipe_permissions(household, alice, bob, carol):
    invitation = create_invitation("household", household.id, bob.email, "viewer", alice)
    accept_invitation("household", invitation.token, bob)
    recipe = create_recipe(household.id, "Toast", alice, ingredients=[{"name": "Bread"}])

    assert get_recipe(recipe.id, bob).name == "Toast"
    with pytest.raises(ForbiddenError):
        update_recipe(recipe.id, bob, name="Burnt toast")
    with pytest.raises(NotFoundError):
        get_recipe(recipe.id, carol)

    delete_recipe(recipe.id, alice)
    with pytest.raises(NotFoundError):
        get_recipe(recipe.id, alice)
