"""Errors raised by item model operations and reported by editors and sessions."""
from __future__ import annotations


class AssessmentError(Exception):
    """Base class for recoverable authoring and grading conditions."""


class BelowMinimumCardinalityError(AssessmentError):
    def __init__(self, kind: str, collection: str, minimum: int):
        self.kind = kind
        self.collection = collection
        self.minimum = minimum
        super().__init__(f"{kind} needs at least {minimum} {collection}")


class FixedCardinalityError(AssessmentError):
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"{kind} items have a fixed number of units")


class UnknownUnitError(AssessmentError):
    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"No unit with id {unit_id!r}")


class SourceTextError(AssessmentError):
    def __init__(self):
        super().__init__("the fill-in-blanks source text cannot be removed or moved")


class InvalidItemError(AssessmentError):
    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid item")


class IncompleteAttemptError(AssessmentError):
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"{kind} attempt is not complete enough to submit")


class AlreadySubmittedError(AssessmentError):
    def __init__(self):
        super().__init__("attempt already submitted; reset before answering again")


class UnknownUnitReferenceWarning(UserWarning):
    """An attempt referenced a unit id the item does not contain."""

    def __init__(self, unit_id: str, item_id: str):
        self.unit_id = unit_id
        self.item_id = item_id
        super().__init__(f"Item {item_id} has no unit {unit_id!r}; treated as unanswered")
