"""A learner's interaction with one item: answer, submit, review, retry."""
from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from assessment_engine.errors import (
    AlreadySubmittedError,
    AssessmentError,
    IncompleteAttemptError,
    UnknownUnitReferenceWarning,
)
from assessment_engine.item_model import blank_count
from assessment_engine.models import QUIZ_KINDS, Attempt, AttemptResult, Item
from assessment_engine.scoring import Grade, grade

if TYPE_CHECKING:
    from assessment_engine.stores.base import AttemptSink

_log = logging.getLogger("assessment_engine.session")

UNANSWERED = "unanswered"
IN_PROGRESS = "in_progress"
SUBMITTED = "submitted"

CHOICE_KINDS = tuple(k for k in QUIZ_KINDS if k != "text")


@dataclass
class SubmitOutcome:
    ok: bool
    grade: Grade | None = None
    result: AttemptResult | None = None
    error: AssessmentError | None = None
    warnings: list[UnknownUnitReferenceWarning] = field(default_factory=list)


class AttemptSession:
    """Holds one Attempt for one item and walks it through
    unanswered -> in_progress -> submitted.

    Answer mutators return ``True`` when the answer changed and ``False`` when
    it was ignored (already submitted, or the unit id is not in the item).
    """

    def __init__(
        self,
        item: Item,
        show_feedback: bool = True,
        rng: random.Random | None = None,
        sink: AttemptSink | None = None,
        user_id: str | None = None,
        lesson_id: str | None = None,
        on_complete: Callable[[float, float], None] | None = None,
    ):
        self.item = item
        self.show_feedback = show_feedback
        self.sink = sink
        self.user_id = user_id
        self.lesson_id = lesson_id
        self.on_complete = on_complete
        self._rng = rng or random.Random()
        self._fresh()

    def _fresh(self) -> None:
        self.state = UNANSWERED
        self.attempt = Attempt()
        self.grade: Grade | None = None
        self.result: AttemptResult | None = None
        self.warnings: list[UnknownUnitReferenceWarning] = []
        if self.item.kind == "ordering":
            ids = [u.id for u in self.item.items]
            self._rng.shuffle(ids)
            self.attempt.order = ids

    # ── Helpers ───────────────────────────────────────────────────────────

    def _require(self, *kinds: str) -> None:
        if self.item.kind not in kinds:
            raise ValueError(f"Operation not available for {self.item.kind} items")

    def _unknown(self, unit_id: str) -> bool:
        w = UnknownUnitReferenceWarning(unit_id, self.item.id)
        self.warnings.append(w)
        _log.warning("%s", w)
        return False

    def _touch(self) -> bool:
        self.state = IN_PROGRESS
        return True

    @property
    def submitted(self) -> bool:
        return self.state == SUBMITTED

    @property
    def blank_slots(self) -> int:
        if self.item.kind != "fill-in-blanks" or not self.item.items:
            return 0
        return blank_count(self.item.items[0].text)

    # ── Answer mutators ───────────────────────────────────────────────────

    def select_option(self, option_id: str) -> bool:
        """Pick an option; toggles for multiple-choice, replaces otherwise."""
        self._require(*CHOICE_KINDS)
        if self.submitted:
            return False
        if option_id not in {o.id for o in self.item.options}:
            return self._unknown(option_id)
        chosen = self.attempt.selected_option_ids
        if self.item.kind == "multiple-choice":
            if option_id in chosen:
                chosen.remove(option_id)
            else:
                chosen.append(option_id)
        else:
            self.attempt.selected_option_ids = [option_id]
        return self._touch()

    def set_text_answer(self, text: str) -> bool:
        self._require("text")
        if self.submitted:
            return False
        self.attempt.text_answer = text
        return self._touch()

    def set_blank_answer(self, index: int, value: str) -> bool:
        self._require("fill-in-blanks")
        if self.submitted:
            return False
        if not 0 <= index < self.blank_slots:
            _log.warning("Blank %d out of range for item %s", index, self.item.id)
            return False
        answers = self.attempt.blank_answers
        while len(answers) <= index:
            answers.append("")
        answers[index] = value
        return self._touch()

    def match(self, left_id: str, right_id: str | None) -> bool:
        """Pair a left item with a right item; ``None`` clears the pairing."""
        self._require("matching")
        if self.submitted:
            return False
        if left_id not in {u.id for u in self.item.left_items}:
            return self._unknown(left_id)
        if not right_id:
            self.attempt.matches.pop(left_id, None)
            return self._touch()
        if right_id not in {u.id for u in self.item.right_items}:
            return self._unknown(right_id)
        self.attempt.matches[left_id] = right_id
        return self._touch()

    def place(self, drag_id: str, drop_id: str | None) -> bool:
        """Drop a drag item into a zone; ``None`` takes it back out."""
        self._require("drag-and-drop")
        if self.submitted:
            return False
        if drag_id not in {u.id for u in self.item.drag_items}:
            return self._unknown(drag_id)
        if not drop_id:
            self.attempt.placements.pop(drag_id, None)
            return self._touch()
        if drop_id not in {u.id for u in self.item.drop_zones}:
            return self._unknown(drop_id)
        self.attempt.placements[drag_id] = drop_id
        return self._touch()

    def move(self, from_index: int, to_index: int) -> bool:
        """Move the ordering item at *from_index* to *to_index*."""
        self._require("ordering")
        if self.submitted:
            return False
        order = self.attempt.order
        if not 0 <= from_index < len(order) or not 0 <= to_index < len(order):
            return False
        if from_index != to_index:
            order.insert(to_index, order.pop(from_index))
        return self._touch()

    def apply_selections(self, raw: dict) -> bool:
        """Apply a serialized selections dict (as produced by ``Attempt.selections_for``)."""
        if self.submitted:
            return False
        kind = self.item.kind
        changed = False
        if kind == "text":
            changed = self.set_text_answer(raw.get("textAnswer", ""))
        elif kind in CHOICE_KINDS:
            self.attempt.selected_option_ids = []
            for option_id in dict.fromkeys(raw.get("selectedOptions", [])):
                changed = self.select_option(option_id) or changed
        elif kind == "fill-in-blanks":
            for i, value in enumerate(raw.get("fillInBlanksAnswers", [])):
                changed = self.set_blank_answer(i, value or "") or changed
        elif kind == "matching":
            for left_id, right_id in raw.get("matchingAnswers", {}).items():
                changed = self.match(left_id, right_id) or changed
        elif kind == "drag-and-drop":
            for drag_id, drop_id in raw.get("dragAndDropAnswers", {}).items():
                changed = self.place(drag_id, drop_id) or changed
        else:
            known = {u.id for u in self.item.items}
            given = []
            for unit_id in raw.get("orderingItems", []):
                if unit_id in known and unit_id not in given:
                    given.append(unit_id)
                elif unit_id not in known:
                    self._unknown(unit_id)
            rest = [i for i in self.attempt.order if i not in given]
            self.attempt.order = given + rest
            changed = self._touch()
        return changed

    # ── Submission ────────────────────────────────────────────────────────

    def is_complete(self) -> bool:
        """Whether the current answers are complete enough to submit."""
        kind = self.item.kind
        if kind == "text":
            return bool(self.attempt.text_answer.strip())
        if kind in CHOICE_KINDS:
            return bool(self.attempt.selected_option_ids)
        if kind == "fill-in-blanks":
            answers = self.attempt.blank_answers
            return all(i < len(answers) and answers[i] for i in range(self.blank_slots))
        if kind == "matching":
            return all(u.id in self.attempt.matches for u in self.item.left_items)
        if kind == "drag-and-drop":
            return all(u.id in self.attempt.placements for u in self.item.drag_items)
        return True

    @property
    def can_submit(self) -> bool:
        return not self.submitted and self.is_complete()

    def submit(self, time_spent: float | None = None) -> SubmitOutcome:
        if self.submitted:
            return SubmitOutcome(False, self.grade, self.result, AlreadySubmittedError(), list(self.warnings))
        if not self.is_complete():
            err = IncompleteAttemptError(self.item.kind)
            _log.info("Submit blocked for item %s: %s", self.item.id, err)
            return SubmitOutcome(False, error=err, warnings=list(self.warnings))

        g = grade(self.item, self.attempt, with_feedback=self.show_feedback)
        now = datetime.now(timezone.utc).isoformat()
        self.attempt.submitted_at = now
        self.attempt.earned_score = g.earned
        self.attempt.correct_count = g.correct_count
        self.grade = g
        self.result = AttemptResult(
            item_id=self.item.id,
            user_id=self.user_id,
            score=g.earned,
            max_score=self.item.max_points,
            correct_count=g.correct_count,
            total_units=g.total_units,
            selections=self.attempt.selections_for(self.item.kind),
            time_spent=time_spent,
            lesson_id=self.lesson_id,
            submitted_at=now,
        )
        self.state = SUBMITTED
        _log.info("Item %s submitted: %s/%s", self.item.id, g.earned, self.item.max_points)

        if self.on_complete:
            self.on_complete(g.earned, self.item.max_points)
        if self.sink is not None:
            try:
                self.sink.record_attempt(self.result)
            except Exception as e:
                _log.warning("Recording attempt for item %s failed: %s", self.item.id, e)
        return SubmitOutcome(True, g, self.result, warnings=list(self.warnings))

    def reset(self) -> None:
        """Clear every answer and reshuffle ordering items."""
        self._fresh()
