from __future__ import annotations

import uuid
from dataclasses import dataclass, field

QUIZ_KINDS = ("multiple-choice", "single-choice", "text", "true-false")
EXERCISE_KINDS = ("fill-in-blanks", "drag-and-drop", "matching", "ordering")
ALL_KINDS = QUIZ_KINDS + EXERCISE_KINDS

# Legacy payloads stored drag/left units at even indices and drop/right at odd.
PAIRED_KINDS = {
    "drag-and-drop": ("drag_items", "drop_zones"),
    "matching": ("left_items", "right_items"),
}


def new_id() -> str:
    return str(uuid.uuid4())


def family_of(kind: str) -> str:
    if kind in QUIZ_KINDS:
        return "quiz"
    if kind in EXERCISE_KINDS:
        return "exercise"
    raise ValueError(f"Unknown item kind: {kind}")


@dataclass
class QuizOption:
    id: str
    text: str
    is_correct: bool = False
    feedback: str | None = None

    def to_dict(self) -> dict:
        d = {"id": self.id, "text": self.text, "isCorrect": self.is_correct}
        if self.feedback is not None:
            d["feedback"] = self.feedback
        return d

    @classmethod
    def from_dict(cls, raw: dict) -> QuizOption:
        return cls(
            id=str(raw.get("id") or new_id()),
            text=raw.get("text", ""),
            is_correct=bool(raw.get("isCorrect", False)),
            feedback=raw.get("feedback"),
        )


@dataclass
class ExerciseItem:
    id: str
    text: str
    is_correct: bool | None = None
    match_id: str | None = None
    position: int | None = None
    feedback: str | None = None

    def to_dict(self) -> dict:
        d: dict = {"id": self.id, "text": self.text}
        if self.is_correct is not None:
            d["isCorrect"] = self.is_correct
        if self.match_id is not None:
            d["matchId"] = self.match_id
        if self.position is not None:
            d["position"] = self.position
        if self.feedback is not None:
            d["feedback"] = self.feedback
        return d

    @classmethod
    def from_dict(cls, raw: dict) -> ExerciseItem:
        position = raw.get("position")
        return cls(
            id=str(raw.get("id") or new_id()),
            text=raw.get("text", ""),
            is_correct=raw.get("isCorrect"),
            match_id=raw.get("matchId"),
            position=int(position) if position is not None else None,
            feedback=raw.get("feedback"),
        )


@dataclass
class Item:
    """A gradable quiz question or exercise.

    Quiz kinds populate ``options``.  Exercise kinds populate ``items``
    (fill-in-blanks, ordering) or one of the two named pairs of collections
    (``drag_items``/``drop_zones``, ``left_items``/``right_items``).
    """

    id: str
    kind: str
    prompt: str = ""
    max_points: float = 1
    explanation: str | None = None
    title: str | None = None
    options: list[QuizOption] = field(default_factory=list)
    items: list[ExerciseItem] = field(default_factory=list)
    drag_items: list[ExerciseItem] = field(default_factory=list)
    drop_zones: list[ExerciseItem] = field(default_factory=list)
    left_items: list[ExerciseItem] = field(default_factory=list)
    right_items: list[ExerciseItem] = field(default_factory=list)

    @property
    def family(self) -> str:
        return family_of(self.kind)

    def collections(self) -> dict[str, list]:
        """The populated unit collections for this kind, keyed by attribute name."""
        if self.kind in QUIZ_KINDS:
            return {"options": self.options}
        if self.kind in PAIRED_KINDS:
            first, second = PAIRED_KINDS[self.kind]
            return {first: getattr(self, first), second: getattr(self, second)}
        return {"items": self.items}

    def units(self) -> list:
        return [u for coll in self.collections().values() for u in coll]

    def find_unit(self, unit_id: str):
        for u in self.units():
            if u.id == unit_id:
                return u
        return None

    def to_dict(self) -> dict:
        d: dict = {
            "id": self.id,
            "kind": self.kind,
            "prompt": self.prompt,
            "maxPoints": self.max_points,
        }
        if self.explanation is not None:
            d["explanation"] = self.explanation
        if self.title is not None:
            d["title"] = self.title
        for attr, coll in self.collections().items():
            d[_CAMEL[attr]] = [u.to_dict() for u in coll]
        return d

    @classmethod
    def from_dict(cls, raw: dict) -> Item:
        kind = raw.get("kind") or raw.get("type")
        if kind not in ALL_KINDS:
            raise ValueError(f"Unknown item kind: {kind}")
        # Migrate: question/instructions -> prompt, points -> maxPoints
        prompt = raw.get("prompt")
        if prompt is None:
            prompt = raw.get("question", raw.get("instructions", ""))
        max_points = raw.get("maxPoints", raw.get("points")) or 1

        item = cls(
            id=str(raw.get("id") or new_id()),
            kind=kind,
            prompt=prompt or "",
            max_points=max_points,
            explanation=raw.get("explanation"),
            title=raw.get("title"),
        )
        if kind in QUIZ_KINDS:
            item.options = [QuizOption.from_dict(o) for o in raw.get("options", [])]
        elif kind in PAIRED_KINDS:
            first, second = PAIRED_KINDS[kind]
            if _CAMEL[first] in raw or _CAMEL[second] in raw:
                setattr(item, first, [ExerciseItem.from_dict(u) for u in raw.get(_CAMEL[first], [])])
                setattr(item, second, [ExerciseItem.from_dict(u) for u in raw.get(_CAMEL[second], [])])
            else:
                flat = [ExerciseItem.from_dict(u) for u in raw.get("items", [])]
                setattr(item, first, flat[0::2])
                setattr(item, second, flat[1::2])
        else:
            item.items = [ExerciseItem.from_dict(u) for u in raw.get("items", [])]
        return item


_CAMEL = {
    "options": "options",
    "items": "items",
    "drag_items": "dragItems",
    "drop_zones": "dropZones",
    "left_items": "leftItems",
    "right_items": "rightItems",
}


@dataclass
class Attempt:
    """A learner's in-progress answers to one item.

    Only the field matching the item's kind is meaningful.
    """

    selected_option_ids: list[str] = field(default_factory=list)
    text_answer: str = ""
    blank_answers: list[str] = field(default_factory=list)
    matches: dict[str, str] = field(default_factory=dict)  # left id -> right id
    placements: dict[str, str] = field(default_factory=dict)  # drag id -> drop zone id
    order: list[str] = field(default_factory=list)
    submitted_at: str | None = None
    earned_score: float | None = None
    correct_count: int | None = None

    def selections_for(self, kind: str) -> dict:
        if kind == "text":
            return {"textAnswer": self.text_answer}
        if kind in QUIZ_KINDS:
            return {"selectedOptions": list(self.selected_option_ids)}
        if kind == "fill-in-blanks":
            return {"fillInBlanksAnswers": list(self.blank_answers)}
        if kind == "matching":
            return {"matchingAnswers": dict(self.matches)}
        if kind == "drag-and-drop":
            return {"dragAndDropAnswers": dict(self.placements)}
        return {"orderingItems": list(self.order)}

    @classmethod
    def from_selections(cls, raw: dict) -> Attempt:
        return cls(
            selected_option_ids=list(raw.get("selectedOptions", [])),
            text_answer=raw.get("textAnswer", ""),
            blank_answers=[a or "" for a in raw.get("fillInBlanksAnswers", [])],
            matches=dict(raw.get("matchingAnswers", {})),
            placements=dict(raw.get("dragAndDropAnswers", {})),
            order=list(raw.get("orderingItems", [])),
        )


@dataclass
class AttemptResult:
    item_id: str
    user_id: str | None
    score: float
    max_score: float
    correct_count: int
    total_units: int
    selections: dict
    time_spent: float | None = None
    lesson_id: str | None = None
    submitted_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "user_id": self.user_id,
            "score": self.score,
            "max_score": self.max_score,
            "correct_count": self.correct_count,
            "total_units": self.total_units,
            "selections": self.selections,
            "time_spent": self.time_spent,
            "lesson_id": self.lesson_id,
            "submitted_at": self.submitted_at,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> AttemptResult:
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in raw.items() if k in known})
