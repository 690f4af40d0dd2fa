"""Item construction, structural invariants and authoring operations.

Every operation takes an ``Item`` and returns a new one; the argument is never
modified, so an operation that raises leaves the caller's item intact.
"""
from __future__ import annotations

import copy
import re
from dataclasses import replace

from assessment_engine.errors import (
    BelowMinimumCardinalityError,
    FixedCardinalityError,
    InvalidItemError,
    SourceTextError,
    UnknownUnitError,
)
from assessment_engine.models import (
    ALL_KINDS,
    PAIRED_KINDS,
    QUIZ_KINDS,
    ExerciseItem,
    Item,
    QuizOption,
    new_id,
)

BLANK_RE = re.compile(r"\[(.*?)\]")

# Minimum units per collection
MINIMUMS = {
    "multiple-choice": {"options": 2},
    "single-choice": {"options": 2},
    "true-false": {"options": 2},
    "text": {"options": 1},
    "fill-in-blanks": {"items": 2},
    "ordering": {"items": 2},
    "drag-and-drop": {"drag_items": 2, "drop_zones": 2},
    "matching": {"left_items": 2, "right_items": 2},
}

# Kinds whose unit count never changes after creation
FIXED_KINDS = {"true-false", "text"}

EXCLUSIVE_KINDS = {"single-choice", "true-false"}


def blank_count(text: str) -> int:
    return len(BLANK_RE.findall(text or ""))


def split_blanks(text: str) -> list[str | int]:
    """Split fill-in-blanks source text into literal strings and blank indices.

    ``"Le [chat] mange"`` becomes ``["Le ", 0, " mange"]``.
    """
    parts: list[str | int] = []
    last = 0
    for index, m in enumerate(BLANK_RE.finditer(text or "")):
        parts.append(text[last:m.start()])
        parts.append(index)
        last = m.end()
    parts.append((text or "")[last:])
    return parts


def _check_kind(kind: str) -> None:
    if kind not in ALL_KINDS:
        raise ValueError(f"Unknown item kind: {kind}")


def _default_units(kind: str) -> dict[str, list]:
    if kind in ("multiple-choice", "single-choice"):
        return {"options": [
            QuizOption(new_id(), "Option 1", is_correct=True),
            QuizOption(new_id(), "Option 2"),
        ]}
    if kind == "true-false":
        return {"options": [
            QuizOption(new_id(), "True", is_correct=True),
            QuizOption(new_id(), "False"),
        ]}
    if kind == "text":
        return {"options": [
            QuizOption(new_id(), "Answer", is_correct=True, feedback="Correct answer"),
        ]}
    if kind == "fill-in-blanks":
        return {"items": [
            ExerciseItem(new_id(), "Text with [word] to complete", is_correct=True),
            ExerciseItem(new_id(), "word", is_correct=True),
        ]}
    if kind == "drag-and-drop":
        return {
            "drag_items": [ExerciseItem(new_id(), f"Drag item {n}", position=n) for n in (1, 2)],
            "drop_zones": [ExerciseItem(new_id(), f"Drop zone {n}", position=n) for n in (1, 2)],
        }
    if kind == "matching":
        return {
            "left_items": [ExerciseItem(new_id(), f"Left item {n}", match_id=f"match{n}") for n in (1, 2)],
            "right_items": [ExerciseItem(new_id(), f"Right item {n}", match_id=f"match{n}") for n in (1, 2)],
        }
    return {"items": [
        ExerciseItem(new_id(), f"Item to order {n}", position=n) for n in (1, 2, 3)
    ]}


def create_default(kind: str, max_points: float = 1) -> Item:
    _check_kind(kind)
    return Item(id=new_id(), kind=kind, max_points=max_points, **_default_units(kind))


def change_kind(item: Item, new_kind: str) -> Item:
    _check_kind(new_kind)
    return Item(
        id=item.id,
        kind=new_kind,
        prompt=item.prompt,
        max_points=item.max_points,
        explanation=item.explanation,
        title=item.title,
        **_default_units(new_kind),
    )


def _locate(item: Item, unit_id: str) -> tuple[str, int]:
    """Return (collection attribute, index) of a unit, or raise UnknownUnitError."""
    for attr, coll in item.collections().items():
        for i, u in enumerate(coll):
            if u.id == unit_id:
                return attr, i
    raise UnknownUnitError(unit_id)


def _renumber(units: list[ExerciseItem]) -> None:
    for i, u in enumerate(units):
        u.position = i + 1


# items[0] of a fill-in-blanks item holds the source text, never a word
def _first_movable(item: Item) -> int:
    return 1 if item.kind == "fill-in-blanks" else 0


def _check_not_source(item: Item, index: int) -> None:
    if item.kind == "fill-in-blanks" and index == 0:
        raise SourceTextError()


def add_unit(item: Item) -> Item:
    if item.kind in FIXED_KINDS:
        raise FixedCardinalityError(item.kind)
    new = copy.deepcopy(item)
    if item.kind in QUIZ_KINDS:
        new.options.append(QuizOption(new_id(), ""))
    elif item.kind == "fill-in-blanks":
        new.items.append(ExerciseItem(new_id(), "", is_correct=True))
    elif item.kind == "ordering":
        new.items.append(ExerciseItem(new_id(), "", position=len(new.items) + 1))
    elif item.kind == "drag-and-drop":
        position = max((u.position or 0 for u in new.drag_items), default=0) + 1
        new.drag_items.append(ExerciseItem(new_id(), "", position=position))
        new.drop_zones.append(ExerciseItem(new_id(), "", position=position))
    else:
        match_id = new_id()
        new.left_items.append(ExerciseItem(new_id(), "", match_id=match_id))
        new.right_items.append(ExerciseItem(new_id(), "", match_id=match_id))
    return new


def _partner_index(item: Item, attr: str, unit) -> tuple[str, int] | None:
    first, second = PAIRED_KINDS[item.kind]
    other = second if attr == first else first
    key = "position" if item.kind == "drag-and-drop" else "match_id"
    value = getattr(unit, key)
    if value is None:
        return None
    for i, u in enumerate(getattr(item, other)):
        if getattr(u, key) == value:
            return other, i
    return None


def remove_unit(item: Item, unit_id: str) -> Item:
    """Remove a unit; for paired kinds the partner on the other side goes too."""
    attr, index = _locate(item, unit_id)
    _check_not_source(item, index)
    new = copy.deepcopy(item)
    removals = [(attr, index)]
    if item.kind in PAIRED_KINDS:
        partner = _partner_index(item, attr, getattr(item, attr)[index])
        if partner is not None:
            removals.append(partner)

    for coll_attr, i in removals:
        minimum = MINIMUMS[item.kind][coll_attr]
        if len(getattr(item, coll_attr)) - 1 < minimum:
            raise BelowMinimumCardinalityError(item.kind, coll_attr, minimum)
    for coll_attr, i in removals:
        del getattr(new, coll_attr)[i]

    if item.kind == "ordering":
        _renumber(new.items)
    return new


def set_correctness(item: Item, unit_id: str, is_correct: bool) -> Item:
    attr, index = _locate(item, unit_id)
    new = copy.deepcopy(item)
    coll = getattr(new, attr)
    if item.kind in EXCLUSIVE_KINDS:
        for i, u in enumerate(coll):
            u.is_correct = is_correct if i == index else False
    else:
        coll[index].is_correct = is_correct
    return new


def move_unit(item: Item, unit_id: str, to_index: int) -> Item:
    attr, index = _locate(item, unit_id)
    _check_not_source(item, index)
    new = copy.deepcopy(item)
    coll = getattr(new, attr)
    to_index = max(_first_movable(item), min(len(coll) - 1, to_index))
    coll.insert(to_index, coll.pop(index))
    if item.kind == "ordering":
        _renumber(coll)
    return new


def reorder(item: Item, unit_id: str, direction: str) -> Item:
    if direction not in ("up", "down"):
        raise ValueError(f"direction must be 'up' or 'down', not {direction!r}")
    attr, index = _locate(item, unit_id)
    target = index - 1 if direction == "up" else index + 1
    _check_not_source(item, index)
    if target < _first_movable(item) or target >= len(getattr(item, attr)):
        return copy.deepcopy(item)
    return move_unit(item, unit_id, target)


# ── Field edits ──────────────────────────────────────────────────────────


def set_prompt(item: Item, prompt: str) -> Item:
    return replace(copy.deepcopy(item), prompt=prompt)


def set_title(item: Item, title: str | None) -> Item:
    return replace(copy.deepcopy(item), title=title)


def set_explanation(item: Item, explanation: str | None) -> Item:
    return replace(copy.deepcopy(item), explanation=explanation)


def set_max_points(item: Item, max_points: float) -> Item:
    if isinstance(max_points, bool) or not isinstance(max_points, (int, float)) or max_points <= 0:
        raise InvalidItemError([f"max points must be a positive number (got {max_points!r})"])
    return replace(copy.deepcopy(item), max_points=max_points)


def _edit_unit(item: Item, unit_id: str, **changes) -> Item:
    attr, index = _locate(item, unit_id)
    new = copy.deepcopy(item)
    coll = getattr(new, attr)
    coll[index] = replace(coll[index], **changes)
    return new


def set_unit_text(item: Item, unit_id: str, text: str) -> Item:
    return _edit_unit(item, unit_id, text=text)


def set_unit_feedback(item: Item, unit_id: str, feedback: str | None) -> Item:
    return _edit_unit(item, unit_id, feedback=feedback or None)


def set_position(item: Item, unit_id: str, position: int) -> Item:
    if position < 1:
        raise InvalidItemError([f"position must be 1 or greater (got {position})"])
    return _edit_unit(item, unit_id, position=position)


def set_match_id(item: Item, unit_id: str, match_id: str) -> Item:
    return _edit_unit(item, unit_id, match_id=match_id)


def set_source_text(item: Item, text: str) -> Item:
    if item.kind != "fill-in-blanks":
        raise InvalidItemError([f"{item.kind} items have no source text"])
    new = copy.deepcopy(item)
    new.items[0].text = text
    return new


def set_blank_words(item: Item, words: list[str]) -> Item:
    """Replace the correct words of a fill-in-blanks item, keeping ids by index."""
    if item.kind != "fill-in-blanks":
        raise InvalidItemError([f"{item.kind} items have no blank words"])
    cleaned = [w.strip() for w in words if w.strip()]
    if len(cleaned) + 1 < MINIMUMS["fill-in-blanks"]["items"]:
        raise BelowMinimumCardinalityError(item.kind, "items", MINIMUMS["fill-in-blanks"]["items"])
    new = copy.deepcopy(item)
    existing = new.items[1:]
    word_items = []
    for i, word in enumerate(cleaned):
        if i < len(existing):
            word_items.append(replace(existing[i], text=word))
        else:
            word_items.append(ExerciseItem(new_id(), word, is_correct=True))
    new.items = [new.items[0]] + word_items
    return new


# ── Validation ───────────────────────────────────────────────────────────


def validate(item: Item) -> list[str]:
    """Return a list of problems; empty when the item satisfies its kind's invariants."""
    if item.kind not in ALL_KINDS:
        return [f"unknown kind: {item.kind!r}"]

    problems: list[str] = []
    if isinstance(item.max_points, bool) or not isinstance(item.max_points, (int, float)) \
            or item.max_points <= 0:
        problems.append(f"max points must be positive (got {item.max_points!r})")

    for attr, minimum in MINIMUMS[item.kind].items():
        count = len(getattr(item, attr))
        if count < minimum:
            problems.append(f"{attr}: {count} present, at least {minimum} required")
        elif item.kind in FIXED_KINDS and count != minimum:
            problems.append(f"{attr}: {item.kind} requires exactly {minimum}")

    if item.kind in QUIZ_KINDS:
        correct = [o for o in item.options if o.is_correct]
        if item.kind in EXCLUSIVE_KINDS and len(correct) != 1:
            problems.append(f"{item.kind} requires exactly one correct option (found {len(correct)})")
        elif item.kind == "multiple-choice" and not correct:
            problems.append("multiple-choice requires at least one correct option")
        elif item.kind == "text":
            if len(correct) != 1:
                problems.append("text requires exactly one canonical answer")
            elif not correct[0].text.strip():
                problems.append("text answer must not be empty")
    elif item.kind == "fill-in-blanks" and item.items:
        blanks = blank_count(item.items[0].text)
        words = len(item.items) - 1
        if blanks == 0:
            problems.append("source text has no [bracketed] blanks")
        elif blanks != words:
            problems.append(f"source text has {blanks} blanks but {words} words are defined")
    elif item.kind == "ordering":
        positions = sorted(u.position or 0 for u in item.items)
        if positions != list(range(1, len(item.items) + 1)):
            problems.append("ordering positions must be 1..n without gaps or duplicates")
    elif item.kind == "drag-and-drop":
        zones = {z.position for z in item.drop_zones}
        for d in item.drag_items:
            if d.position is None or d.position not in zones:
                problems.append(f"drag item {d.text!r} has no drop zone at position {d.position}")
    elif item.kind == "matching":
        right_ids = {r.match_id for r in item.right_items}
        for left in item.left_items:
            if left.match_id is None or left.match_id not in right_ids:
                problems.append(f"left item {left.text!r} has no matching right item")
    return problems
