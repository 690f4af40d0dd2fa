"""Tests for the item editor and the embedded item block."""
from __future__ import annotations

import pytest

from assessment_engine.authoring import ItemEditor
from assessment_engine.block import CREATE, EDIT, VIEW, ItemBlock
from assessment_engine.errors import (
    BelowMinimumCardinalityError,
    FixedCardinalityError,
    InvalidItemError,
)
from assessment_engine.session import AttemptSession


class TestItemEditor:
    def test_creating_default(self):
        editor = ItemEditor(initial_kind="ordering", max_points=4)
        assert editor.creating
        assert editor.item.kind == "ordering"
        assert editor.item.max_points == 4

    def test_editing_existing(self, matching_item):
        editor = ItemEditor(matching_item)
        assert not editor.creating
        assert editor.item is matching_item

    def test_on_change_called(self, multiple_choice_item):
        seen = []
        editor = ItemEditor(multiple_choice_item, on_change=seen.append)
        outcome = editor.set_prompt("Pick the mammals")
        assert outcome.ok
        assert seen == [outcome.item]
        assert editor.item.prompt == "Pick the mammals"

    def test_subscribe_and_unsubscribe(self, multiple_choice_item):
        seen = []
        editor = ItemEditor(multiple_choice_item)
        unsubscribe = editor.subscribe(seen.append)
        editor.add_unit()
        unsubscribe()
        editor.add_unit()
        assert len(seen) == 1
        assert len(editor.item.options) == 5

    def test_rejected_edit_keeps_item(self, true_false_item):
        seen = []
        editor = ItemEditor(true_false_item, on_change=seen.append)
        outcome = editor.add_unit()
        assert not outcome.ok
        assert isinstance(outcome.error, FixedCardinalityError)
        assert editor.item is true_false_item
        assert seen == []

    def test_remove_below_minimum_reported(self, single_choice_item):
        editor = ItemEditor(single_choice_item)
        assert editor.remove_unit("A").ok
        outcome = editor.remove_unit("C")
        assert isinstance(outcome.error, BelowMinimumCardinalityError)
        assert len(editor.item.options) == 2

    def test_blank_words_from_text(self, fill_item):
        editor = ItemEditor(fill_item)
        editor.set_blank_words("chien\n\nos\n")
        assert [u.text for u in editor.item.items[1:]] == ["chien", "os"]

    def test_change_kind(self, multiple_choice_item):
        editor = ItemEditor(multiple_choice_item)
        editor.change_kind("true-false")
        assert editor.item.kind == "true-false"
        assert editor.problems() == []

    def test_save_valid(self):
        saved = []
        editor = ItemEditor(on_save=saved.append, initial_kind="matching")
        outcome = editor.save()
        assert outcome.ok
        assert saved == [editor.item]
        assert not editor.creating

    def test_save_invalid(self, single_choice_item):
        saved = []
        editor = ItemEditor(single_choice_item, on_save=saved.append)
        editor.set_correctness("B", False)
        outcome = editor.save()
        assert not outcome.ok
        assert isinstance(outcome.error, InvalidItemError)
        assert outcome.error.problems
        assert saved == []

    def test_cancel(self):
        cancelled = []
        editor = ItemEditor(on_cancel=lambda: cancelled.append(True))
        editor.cancel()
        assert cancelled == [True]


class TestItemBlock:
    def test_new_block_creates(self):
        block = ItemBlock(initial_kind="text")
        assert block.mode == CREATE
        assert block.editor.item.kind == "text"

    def test_existing_block_views(self, ordering_item):
        block = ItemBlock(ordering_item)
        assert block.mode == VIEW
        assert block.editor is None

    def test_edit_then_save(self, ordering_item):
        saved = []
        block = ItemBlock(ordering_item, on_save=saved.append)
        editor = block.edit()
        assert block.mode == EDIT
        editor.set_title("Morning")
        assert editor.save().ok
        assert block.mode == VIEW
        assert block.item.title == "Morning"
        assert saved == [block.item]

    def test_cancel_edit_returns_to_view(self, ordering_item):
        block = ItemBlock(ordering_item)
        block.edit().set_title("Changed")
        block.editor.cancel()
        assert block.mode == VIEW
        assert block.item.title is None

    def test_cancel_create_deletes(self):
        deleted = []
        block = ItemBlock(on_delete=lambda: deleted.append(True))
        block.editor.cancel()
        assert deleted == [True]

    def test_read_only(self, ordering_item):
        block = ItemBlock(ordering_item, read_only=True)
        with pytest.raises(PermissionError):
            block.edit()

    def test_attempt(self, text_item):
        session = ItemBlock(text_item).attempt(user_id="u1")
        assert isinstance(session, AttemptSession)
        assert session.user_id == "u1"

    def test_attempt_without_item(self):
        with pytest.raises(LookupError):
            ItemBlock().attempt()
