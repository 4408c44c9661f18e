"""Tests for the flat, id-indexed design editing model."""

import pytest

from miniapp.models.design import DesignArena, DesignComponentType, DesignEditError

from tests.conftest import make_component


@pytest.fixture
def arena(simple_design):
    return DesignArena(simple_design.root_component)


class TestArena:
    def test_indexes_every_node(self, arena):
        assert len(arena) == 4
        assert arena.children["root"] == ["title", "items", "cta"]
        assert arena.parents["cta"] == "root"

    def test_round_trip_preserves_tree(self, arena, simple_design):
        assert arena.to_component() == simple_design.root_component

    def test_update_single_node(self, arena):
        arena.update("title", data={"text": "Changed"})
        tree = arena.to_component()
        assert tree.children[0].data.text == "Changed"
        assert tree.children[1].data.items == ["One", "Two"]

    def test_update_rejects_structure_changes(self, arena):
        with pytest.raises(DesignEditError):
            arena.update("title", id="other")

    def test_add_at_index(self, arena):
        arena.add(make_component(DesignComponentType.DIVIDER, "line"), index=1)
        assert arena.children["root"] == ["title", "line", "items", "cta"]
        assert arena.to_component().children[1].parent_id == "root"

    def test_add_rejects_duplicate_ids(self, arena):
        with pytest.raises(DesignEditError):
            arena.add(make_component(DesignComponentType.TEXT, "title", text="dup"))

    def test_remove_subtree(self, arena):
        removed = arena.remove("items")
        assert removed.id == "items"
        assert "items" not in arena
        assert arena.children["root"] == ["title", "cta"]

    def test_root_cannot_be_removed(self, arena):
        with pytest.raises(DesignEditError):
            arena.remove("root")

    def test_move_into_card(self, arena):
        arena.add(make_component(DesignComponentType.CARD, "card", text="Card"))
        arena.move("cta", "card")
        tree = arena.to_component()
        card = tree.children[-1]
        assert [c.id for c in card.children] == ["cta"]
        assert card.children[0].parent_id == "card"

    def test_move_into_own_subtree_fails(self, arena):
        arena.add(make_component(DesignComponentType.CARD, "card"))
        arena.add(make_component(DesignComponentType.TEXT, "inner", text="x"), parent_id="card")
        with pytest.raises(DesignEditError):
            arena.move("card", "inner")

    def test_unknown_id(self, arena):
        with pytest.raises(DesignEditError):
            arena.get("ghost")

    def test_apply_to_design(self, arena, simple_design):
        arena.remove("items")
        updated = arena.apply_to(simple_design)
        assert [c.id for c in updated.root_component.children] == ["title", "cta"]
        assert len(simple_design.root_component.children) == 3
