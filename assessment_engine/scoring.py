"""Per-kind grading of an attempt against an item.

Each scorer returns ``(points, correct_count, total_units, feedback)`` with
``points`` already clamped and rounded to one decimal.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from assessment_engine.models import Attempt, Item

CORRECT = "correct"
INCORRECT = "incorrect"
MISSED = "missed"


@dataclass
class UnitFeedback:
    unit_id: str
    status: str  # correct | incorrect | missed
    feedback: str | None = None
    expected: str | None = None
    given: str | None = None

    def to_dict(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "status": self.status,
            "feedback": self.feedback,
            "expected": self.expected,
            "given": self.given,
        }


@dataclass
class Grade:
    earned: float
    max_points: float
    correct_count: int
    total_units: int
    feedback: list[UnitFeedback] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "earned": self.earned,
            "max_points": self.max_points,
            "correct_count": self.correct_count,
            "total_units": self.total_units,
            "feedback": [f.to_dict() for f in self.feedback],
        }


def round1(points: float) -> float:
    """Round half up to one decimal, as ``Math.round(points * 10) / 10``."""
    return math.floor(points * 10 + 0.5) / 10


def _ratio(hits: int, total: int) -> float:
    return hits / total if total else 0.0


def _score_text(item: Item, attempt: Attempt):
    canonical = next((o for o in item.options if o.is_correct), None)
    answer = attempt.text_answer.strip().lower()
    hit = canonical is not None and answer == canonical.text.strip().lower()
    feedback = []
    if canonical is not None:
        feedback.append(UnitFeedback(
            canonical.id,
            CORRECT if hit else (INCORRECT if answer else MISSED),
            canonical.feedback,
            expected=canonical.text,
            given=attempt.text_answer,
        ))
    points = item.max_points if hit else 0
    return points, int(hit), 1, feedback


def _choice_feedback(item: Item, selected: set[str], report_missed: bool) -> list[UnitFeedback]:
    out = []
    for o in item.options:
        if o.id in selected:
            out.append(UnitFeedback(o.id, CORRECT if o.is_correct else INCORRECT, o.feedback))
        elif o.is_correct and report_missed:
            out.append(UnitFeedback(o.id, MISSED, o.feedback))
    return out


def _score_exclusive(item: Item, attempt: Attempt):
    """single-choice / true-false: all or nothing."""
    selected = set(attempt.selected_option_ids)
    all_right = all((o.id in selected) == o.is_correct for o in item.options)
    points = item.max_points if all_right else 0
    return points, int(all_right), 1, _choice_feedback(item, selected, report_missed=False)


def _score_multiple(item: Item, attempt: Attempt):
    """Partial credit: (correct picked - wrong picked) / total correct, floored at 0."""
    known = {o.id for o in item.options}
    selected = set(attempt.selected_option_ids) & known
    correct_ids = {o.id for o in item.options if o.is_correct}
    hits = len(selected & correct_ids)
    misses = len(selected) - hits
    raw = max(0.0, _ratio(hits - misses, len(correct_ids)))
    return raw * item.max_points, hits, len(correct_ids), _choice_feedback(item, selected, report_missed=True)


def _score_fill_in_blanks(item: Item, attempt: Attempt):
    words = item.items[1:]
    hits = 0
    feedback = []
    for i, word in enumerate(words):
        given = attempt.blank_answers[i] if i < len(attempt.blank_answers) else ""
        if not given:
            status = MISSED
        elif given.lower() == word.text.lower():
            status = CORRECT
            hits += 1
        else:
            status = INCORRECT
        feedback.append(UnitFeedback(word.id, status, word.feedback, expected=word.text, given=given))
    return _ratio(hits, len(words)) * item.max_points, hits, len(words), feedback


def _score_matching(item: Item, attempt: Attempt):
    rights = {r.id: r for r in item.right_items}
    hits = 0
    feedback = []
    for left in item.left_items:
        chosen = rights.get(attempt.matches.get(left.id, ""))
        expected = next((r for r in item.right_items if r.match_id == left.match_id), None)
        if chosen is None:
            status = MISSED
        elif left.match_id is not None and chosen.match_id == left.match_id:
            status = CORRECT
            hits += 1
        else:
            status = INCORRECT
        feedback.append(UnitFeedback(
            left.id, status, left.feedback,
            expected=expected.text if expected else None,
            given=chosen.text if chosen else None,
        ))
    return _ratio(hits, len(item.left_items)) * item.max_points, hits, len(item.left_items), feedback


def _score_drag_and_drop(item: Item, attempt: Attempt):
    zones = {z.id: z for z in item.drop_zones}
    hits = 0
    feedback = []
    for drag in item.drag_items:
        zone = zones.get(attempt.placements.get(drag.id, ""))
        expected = next((z for z in item.drop_zones if z.position == drag.position), None)
        if zone is None:
            status = MISSED
        elif drag.position is not None and zone.position == drag.position:
            status = CORRECT
            hits += 1
        else:
            status = INCORRECT
        feedback.append(UnitFeedback(
            drag.id, status, drag.feedback,
            expected=expected.text if expected else None,
            given=zone.text if zone else None,
        ))
    return _ratio(hits, len(item.drag_items)) * item.max_points, hits, len(item.drag_items), feedback


def _score_ordering(item: Item, attempt: Attempt):
    by_id = {u.id: u for u in item.items}
    arranged = [by_id[i] for i in attempt.order if i in by_id]
    feedback = []
    hits = 0
    placed = set()
    for index, unit in enumerate(arranged):
        placed.add(unit.id)
        ok = unit.position == index + 1
        hits += ok
        feedback.append(UnitFeedback(
            unit.id, CORRECT if ok else INCORRECT, unit.feedback,
            expected=str(unit.position), given=str(index + 1),
        ))
    for unit in item.items:
        if unit.id not in placed:
            feedback.append(UnitFeedback(unit.id, MISSED, unit.feedback, expected=str(unit.position)))
    total = len(item.items)
    if total and hits == total:
        return item.max_points, hits, total, feedback
    return _ratio(hits, total) * item.max_points, hits, total, feedback


SCORERS = {
    "text": _score_text,
    "single-choice": _score_exclusive,
    "true-false": _score_exclusive,
    "multiple-choice": _score_multiple,
    "fill-in-blanks": _score_fill_in_blanks,
    "matching": _score_matching,
    "drag-and-drop": _score_drag_and_drop,
    "ordering": _score_ordering,
}


def grade(item: Item, attempt: Attempt, with_feedback: bool = True) -> Grade:
    """Score *attempt* against *item*.  The item is only read."""
    points, correct_count, total_units, feedback = SCORERS[item.kind](item, attempt)
    earned = min(round1(max(points, 0.0)), item.max_points)
    return Grade(
        earned=earned,
        max_points=item.max_points,
        correct_count=correct_count,
        total_units=total_units,
        feedback=feedback if with_feedback else [],
    )
