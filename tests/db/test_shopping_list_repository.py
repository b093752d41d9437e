"""Tests for the shopping list repository helpers."""

from __future__ import annotations

import pytest

from basket.db.catalog import create_or_get_item, get_item
from basket.db.layout import create_aisle, create_section
from basket.db.shopping_list import (
    clear_checked,
    delete_with_item,
    list_shopping_list,
    remove_item,
    toggle_checked,
    upsert_shopping_list_item,
)
from basket.db.stores import create_store
from basket.errors import ConflictError, InvalidInputError, NotFoundError
from basket.models.shopping import CatalogEntry, IdeaEntry, ShoppingListItemInput


@pytest.fixture()
def store(alice):
    return create_store("Market", alice)


def test_adding_by_name_creates_catalog_item(store, alice):
    row = upsert_shopping_list_item(
        {"store_id": store.id, "name": "Milk", "qty": 2, "unit_id": "gal", "notes": " 2% "}, alice
    )

    assert isinstance(row.entry, CatalogEntry)
    assert row.display_name == "Milk"
    assert row.entry.qty == 2
    assert row.entry.unit_abbreviation == "gal"
    assert row.notes == "2%"
    assert row.is_checked is False
    assert get_item(store.id, row.store_item_id, alice).usage_count == 1


def test_usage_count_moves_only_when_reference_is_gained(store, alice):
    first = upsert_shopping_list_item({"store_id": store.id, "name": "Milk"}, alice)
    again = upsert_shopping_list_item({"store_id": store.id, "name": " milk ", "qty": 3}, alice)

    # the existing row is reconciled rather than duplicated
    assert again.id == first.id
    assert again.entry.qty == 3
    assert len(list_shopping_list(store.id, alice)) == 1
    assert get_item(store.id, first.store_item_id, alice).usage_count == 1

    upsert_shopping_list_item({"id": first.id, "store_id": store.id, "notes": "organic"}, alice)
    assert get_item(store.id, first.store_item_id, alice).usage_count == 1

    remove_item(store.id, first.id, alice)
    upsert_shopping_list_item({"store_id": store.id, "store_item_id": first.store_item_id}, alice)
    item = get_item(store.id, first.store_item_id, alice)
    assert item.usage_count == 2
    assert item.last_used_at is not None


def test_idea_rows(store, alice):
    idea = upsert_shopping_list_item({"store_id": store.id, "is_idea": True, "name": "something for dessert"}, alice)

    assert isinstance(idea.entry, IdeaEntry)
    assert idea.is_idea
    assert idea.store_item_id is None
    assert idea.display_name == "something for dessert"

    with pytest.raises(InvalidInputError):
        upsert_shopping_list_item({"store_id": store.id, "is_idea": True, "name": "cake", "qty": 1}, alice)
    with pytest.raises(InvalidInputError):
        upsert_shopping_list_item({"store_id": store.id, "is_idea": True}, alice)


def test_promoting_idea_uses_its_text(store, alice):
    idea = upsert_shopping_list_item({"store_id": store.id, "is_idea": True, "name": "Ice Cream"}, alice)

    promoted = upsert_shopping_list_item({"id": idea.id, "store_id": store.id, "is_idea": False}, alice)

    assert promoted.id == idea.id
    assert isinstance(promoted.entry, CatalogEntry)
    assert promoted.display_name == "Ice Cream"
    assert get_item(store.id, promoted.store_item_id, alice).usage_count == 1


def test_demoting_catalog_row_to_idea(store, alice):
    row = upsert_shopping_list_item({"store_id": store.id, "name": "Basil", "qty": 1, "unit_id": "unit"}, alice)

    idea = upsert_shopping_list_item({"id": row.id, "store_id": store.id, "is_idea": True}, alice)

    assert isinstance(idea.entry, IdeaEntry)
    assert idea.entry.name == "Basil"
    assert get_item(store.id, row.store_item_id, alice).name == "Basil"


def test_switching_to_item_held_by_another_row_conflicts(store, alice):
    milk = upsert_shopping_list_item({"store_id": store.id, "name": "Milk"}, alice)
    eggs = upsert_shopping_list_item({"store_id": store.id, "name": "Eggs"}, alice)

    with pytest.raises(ConflictError):
        upsert_shopping_list_item({"id": eggs.id, "store_id": store.id, "store_item_id": milk.store_item_id}, alice)


def test_switching_item_counts_new_usage(store, alice):
    row = upsert_shopping_list_item({"store_id": store.id, "name": "Cheddar"}, alice)
    gouda = create_or_get_item(store.id, "Gouda", alice)

    switched = upsert_shopping_list_item({"id": row.id, "store_id": store.id, "store_item_id": gouda.id}, alice)

    assert switched.display_name == "Gouda"
    assert get_item(store.id, gouda.id, alice).usage_count == 1
    assert get_item(store.id, row.store_item_id, alice).usage_count == 1


def test_unknown_unit_and_bad_input(store, alice):
    with pytest.raises(InvalidInputError):
        upsert_shopping_list_item({"store_id": store.id, "name": "Flour", "unit_id": "bushel"}, alice)
    with pytest.raises(InvalidInputError):
        upsert_shopping_list_item({"store_id": store.id, "name": "Flour", "qty": -1}, alice)
    with pytest.raises(InvalidInputError):
        upsert_shopping_list_item({"store_id": store.id, "name": "Flour", "colour": "white"}, alice)
    with pytest.raises(InvalidInputError):
        upsert_shopping_list_item({"store_id": store.id}, alice)


def test_checked_timestamps_follow_transitions(store, alice, bob):
    row = upsert_shopping_list_item(ShoppingListItemInput(store_id=store.id, name="Bread"), alice)

    checked = toggle_checked(store.id, row.id, alice)
    assert checked.is_checked is True
    assert checked.checked_at is not None
    assert checked.checked_by_id == alice.user_id

    # setting the same state again keeps the original stamp
    same = upsert_shopping_list_item({"id": row.id, "store_id": store.id, "is_checked": True}, alice)
    assert same.checked_at == checked.checked_at

    unchecked = toggle_checked(store.id, row.id, alice, is_checked=False)
    assert unchecked.is_checked is False
    assert unchecked.checked_at is None
    assert unchecked.checked_by_id is None


def test_checking_does_not_inflate_usage(store, alice):
    bread = create_or_get_item(store.id, "Bread", alice)
    assert bread.usage_count == 0

    row = upsert_shopping_list_item({"store_id": store.id, "store_item_id": bread.id}, alice)
    assert get_item(store.id, bread.id, alice).usage_count == 1

    for _ in range(2):
        toggle_checked(store.id, row.id, alice, is_checked=True)
        toggle_checked(store.id, row.id, alice, is_checked=False)

    assert get_item(store.id, bread.id, alice).usage_count == 1


def test_adding_a_checked_item_again_unchecks_it(store, alice):
    milk = upsert_shopping_list_item({"store_id": store.id, "name": "Milk"}, alice)
    toggle_checked(store.id, milk.id, alice, is_checked=True)

    again = upsert_shopping_list_item({"store_id": store.id, "name": "milk"}, alice)

    assert again.id == milk.id
    assert again.is_checked is False
    assert again.checked_at is None
    assert again.checked_by_id is None
    assert [row.id for row in list_shopping_list(store.id, alice)] == [milk.id]


def test_adding_again_can_keep_an_explicit_checked_state(store, alice):
    milk = upsert_shopping_list_item({"store_id": store.id, "name": "Milk"}, alice)
    checked = toggle_checked(store.id, milk.id, alice, is_checked=True)

    again = upsert_shopping_list_item({"store_id": store.id, "name": "Milk", "is_checked": True}, alice)

    assert again.is_checked is True
    assert again.checked_at == checked.checked_at


def test_clear_checked_removes_only_checked_rows(store, alice):
    keep = upsert_shopping_list_item({"store_id": store.id, "name": "Apples"}, alice)
    for name in ("Pears", "Plums"):
        row = upsert_shopping_list_item({"store_id": store.id, "name": name}, alice)
        toggle_checked(store.id, row.id, alice)

    assert clear_checked(store.id, alice) == 2
    assert [row.id for row in list_shopping_list(store.id, alice)] == [keep.id]
    assert clear_checked(store.id, alice) == 0


def test_list_follows_walking_order(store, alice):
    produce = create_aisle(store.id, "Produce", alice)
    dairy = create_aisle(store.id, "Dairy", alice)
    cheese = create_section(store.id, dairy.id, "Cheese", alice)

    upsert_shopping_list_item({"store_id": store.id, "is_idea": True, "name": "snacks?"}, alice)
    upsert_shopping_list_item({"store_id": store.id, "name": "Brie", "section_id": cheese.id}, alice)
    upsert_shopping_list_item({"store_id": store.id, "name": "Kale", "aisle_id": produce.id}, alice)

    rows = list_shopping_list(store.id, alice)

    assert [row.display_name for row in rows] == ["Kale", "Brie", "snacks?"]
    assert rows[1].aisle_id == dairy.id
    assert rows[1].section_id == cheese.id


def test_delete_with_item_removes_catalog_entry(store, alice):
    row = upsert_shopping_list_item({"store_id": store.id, "name": "Tofu"}, alice)

    delete_with_item(store.id, row.id, alice)

    assert list_shopping_list(store.id, alice) == []
    with pytest.raises(NotFoundError):
        get_item(store.id, row.store_item_id, alice)


def test_rows_are_scoped_to_their_store(alice):
    first = create_store("One", alice)
    second = create_store("Two", alice)
    row = upsert_shopping_list_item({"store_id": first.id, "name": "Rice"}, alice)

    with pytest.raises(NotFoundError):
        toggle_checked(second.id, row.id, alice)
    with pytest.raises(NotFoundError):
        upsert_shopping_list_item({"id": row.id, "store_id": second.id, "notes": "x"}, alice)


def test_outsiders_cannot_touch_the_list(store, bob):
    with pytest.raises(NotFoundError):
        list_shopping_list(store.id, bob)
    with pytest.raises(NotFoundError):
        upsert_shopping_list_item({"store_id": store.id, "name": "Gum"}, bob)
