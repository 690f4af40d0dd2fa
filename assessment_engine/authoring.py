"""Interactive item editor.

The editor owns one ``Item`` and changes it only through ``item_model``
operations.  A failed operation is reported in the returned ``EditOutcome``
and leaves the held item as it was.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from assessment_engine import item_model
from assessment_engine.errors import AssessmentError, InvalidItemError
from assessment_engine.models import Item

_log = logging.getLogger("assessment_engine.authoring")

Listener = Callable[[Item], None]


@dataclass
class EditOutcome:
    ok: bool
    item: Item
    error: AssessmentError | None = None


class ItemEditor:
    def __init__(
        self,
        initial_item: Item | None = None,
        initial_kind: str = "multiple-choice",
        on_change: Listener | None = None,
        on_save: Listener | None = None,
        on_cancel: Callable[[], None] | None = None,
        max_points: float = 1,
    ):
        self.creating = initial_item is None
        self.item = initial_item or item_model.create_default(initial_kind, max_points=max_points)
        self.on_save = on_save
        self.on_cancel = on_cancel
        self._listeners: list[Listener] = [on_change] if on_change else []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _apply(self, op: Callable[..., Item], *args) -> EditOutcome:
        try:
            updated = op(self.item, *args)
        except AssessmentError as e:
            _log.info("Rejected %s on %s: %s", op.__name__, self.item.id, e)
            return EditOutcome(False, self.item, e)
        self.item = updated
        for listener in list(self._listeners):
            listener(updated)
        return EditOutcome(True, updated)

    # ── Structure ─────────────────────────────────────────────────────────

    def change_kind(self, kind: str) -> EditOutcome:
        return self._apply(item_model.change_kind, kind)

    def add_unit(self) -> EditOutcome:
        return self._apply(item_model.add_unit)

    def remove_unit(self, unit_id: str) -> EditOutcome:
        return self._apply(item_model.remove_unit, unit_id)

    def set_correctness(self, unit_id: str, is_correct: bool) -> EditOutcome:
        return self._apply(item_model.set_correctness, unit_id, is_correct)

    def reorder(self, unit_id: str, direction: str) -> EditOutcome:
        return self._apply(item_model.reorder, unit_id, direction)

    def move_unit(self, unit_id: str, to_index: int) -> EditOutcome:
        return self._apply(item_model.move_unit, unit_id, to_index)

    # ── Content ───────────────────────────────────────────────────────────

    def set_prompt(self, prompt: str) -> EditOutcome:
        return self._apply(item_model.set_prompt, prompt)

    def set_title(self, title: str | None) -> EditOutcome:
        return self._apply(item_model.set_title, title)

    def set_explanation(self, explanation: str | None) -> EditOutcome:
        return self._apply(item_model.set_explanation, explanation)

    def set_max_points(self, max_points: float) -> EditOutcome:
        return self._apply(item_model.set_max_points, max_points)

    def set_unit_text(self, unit_id: str, text: str) -> EditOutcome:
        return self._apply(item_model.set_unit_text, unit_id, text)

    def set_unit_feedback(self, unit_id: str, feedback: str | None) -> EditOutcome:
        return self._apply(item_model.set_unit_feedback, unit_id, feedback)

    def set_position(self, unit_id: str, position: int) -> EditOutcome:
        return self._apply(item_model.set_position, unit_id, position)

    def set_match_id(self, unit_id: str, match_id: str) -> EditOutcome:
        return self._apply(item_model.set_match_id, unit_id, match_id)

    def set_source_text(self, text: str) -> EditOutcome:
        return self._apply(item_model.set_source_text, text)

    def set_blank_words(self, words: list[str] | str) -> EditOutcome:
        """Accepts a list or newline-separated text, one word per line."""
        if isinstance(words, str):
            words = words.split("\n")
        return self._apply(item_model.set_blank_words, words)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def problems(self) -> list[str]:
        return item_model.validate(self.item)

    def save(self) -> EditOutcome:
        problems = self.problems()
        if problems:
            err = InvalidItemError(problems)
            _log.info("Save refused for %s: %s", self.item.id, err)
            return EditOutcome(False, self.item, err)
        if self.on_save:
            self.on_save(self.item)
        self.creating = False
        return EditOutcome(True, self.item)

    def cancel(self) -> None:
        if self.on_cancel:
            self.on_cancel()
