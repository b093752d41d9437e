"""Tests for store aisles, sections and their ordering."""

from __future__ import annotations

import pytest

from basket.db.catalog import create_or_get_item, get_item
from basket.db.layout import (
    create_aisle,
    create_section,
    delete_aisle,
    list_aisles,
    list_sections,
    rename_aisle,
    reorder_aisles,
    reorder_sections,
    update_section,
)
from basket.db.stores import create_store
from basket.errors import InvalidInputError, NotFoundError


@pytest.fixture()
def store(alice):
    return create_store("Market", alice)


def test_aisles_append_in_creation_order(store, alice):
    names = ["Produce", "Bakery", "Dairy"]
    for name in names:
        create_aisle(store.id, name, alice)

    aisles = list_aisles(store.id, alice)

    assert [aisle.name for aisle in aisles] == names
    assert [aisle.sort_order for aisle in aisles] == [0, 1, 2]


def test_reorder_aisles_applies_whole_batch(store, alice):
    produce = create_aisle(store.id, "Produce", alice)
    bakery = create_aisle(store.id, "Bakery", alice)

    reordered = reorder_aisles(
        store.id,
        [{"id": produce.id, "sort_order": 5}, {"id": bakery.id, "sort_order": 1}],
        alice,
    )

    assert [aisle.id for aisle in reordered] == [bakery.id, produce.id]


def test_reorder_with_foreign_id_changes_nothing(alice):
    store = create_store("Market", alice)
    other = create_store("Elsewhere", alice)
    produce = create_aisle(store.id, "Produce", alice)
    bakery = create_aisle(store.id, "Bakery", alice)
    foreign = create_aisle(other.id, "Foreign", alice)

    with pytest.raises(NotFoundError):
        reorder_aisles(
            store.id,
            [
                {"id": bakery.id, "sort_order": 0},
                {"id": produce.id, "sort_order": 1},
                {"id": foreign.id, "sort_order": 2},
            ],
            alice,
        )

    assert [aisle.id for aisle in list_aisles(store.id, alice)] == [produce.id, bakery.id]
    assert [aisle.sort_order for aisle in list_aisles(other.id, alice)] == [0]


@pytest.mark.parametrize(
    "updates",
    [
        [{"id": "a", "sort_order": -1}],
        [{"id": "", "sort_order": 1}],
        [{"id": "a", "sort_order": 1}, {"id": "a", "sort_order": 2}],
        [{"sort_order": 1}],
    ],
)
def test_reorder_rejects_malformed_batches(store, alice, updates):
    with pytest.raises(InvalidInputError):
        reorder_aisles(store.id, updates, alice)


def test_sections_listed_in_walking_order(store, alice):
    first = create_aisle(store.id, "First", alice)
    second = create_aisle(store.id, "Second", alice)
    late = create_section(store.id, second.id, "Late", alice)
    early = create_section(store.id, first.id, "Early", alice)
    middle = create_section(store.id, first.id, "Middle", alice)

    assert [section.id for section in list_sections(store.id, alice)] == [early.id, middle.id, late.id]
    assert [section.id for section in list_sections(store.id, alice, aisle_id=second.id)] == [late.id]


def test_reorder_sections_within_aisle(store, alice):
    aisle = create_aisle(store.id, "Deli", alice)
    other = create_aisle(store.id, "Frozen", alice)
    cheese = create_section(store.id, aisle.id, "Cheese", alice)
    meat = create_section(store.id, aisle.id, "Meat", alice)
    ice = create_section(store.id, other.id, "Ice", alice)

    reordered = reorder_sections(
        store.id,
        [{"id": cheese.id, "sort_order": 1}, {"id": meat.id, "sort_order": 0}],
        alice,
        aisle_id=aisle.id,
    )
    assert [section.id for section in reordered] == [meat.id, cheese.id]

    with pytest.raises(NotFoundError):
        reorder_sections(store.id, [{"id": ice.id, "sort_order": 0}], alice, aisle_id=aisle.id)


def test_moving_section_appends_to_new_aisle(store, alice):
    deli = create_aisle(store.id, "Deli", alice)
    frozen = create_aisle(store.id, "Frozen", alice)
    create_section(store.id, frozen.id, "Ice", alice)
    pizza = create_section(store.id, deli.id, "Pizza", alice)

    moved = update_section(store.id, pizza.id, alice, name="Frozen Pizza", aisle_id=frozen.id)

    assert moved.aisle_id == frozen.id
    assert moved.sort_order == 1
    assert moved.name == "Frozen Pizza"


def test_section_cannot_leave_its_aisle(store, alice):
    deli = create_aisle(store.id, "Deli", alice)
    olives = create_section(store.id, deli.id, "Olives", alice)

    with pytest.raises(InvalidInputError):
        update_section(store.id, olives.id, alice, aisle_id=None)

    assert list_sections(store.id, alice)[0].aisle_id == deli.id


def test_deleting_aisle_unplaces_items(store, alice):
    aisle = create_aisle(store.id, "Snacks", alice)
    section = create_section(store.id, aisle.id, "Chips", alice)
    item = create_or_get_item(store.id, "Pretzels", alice, section_id=section.id)

    delete_aisle(store.id, aisle.id, alice)

    assert list_aisles(store.id, alice) == []
    unplaced = get_item(store.id, item.id, alice)
    assert (unplaced.aisle_id, unplaced.section_id) == (None, None)


def test_layout_is_scoped_to_store(alice, bob):
    store = create_store("Market", alice)
    other = create_store("Elsewhere", alice)
    aisle = create_aisle(store.id, "Produce", alice)

    with pytest.raises(NotFoundError):
        rename_aisle(other.id, aisle.id, "Moved", alice)
    with pytest.raises(NotFoundError):
        list_aisles(store.id, bob)
    with pytest.raises(InvalidInputError):
        create_aisle(store.id, "  ", alice)
