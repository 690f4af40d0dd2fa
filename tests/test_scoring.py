"""Tests for per-kind grading."""
from __future__ import annotations

import pytest

from assessment_engine.models import ALL_KINDS, Attempt
from assessment_engine.scoring import CORRECT, INCORRECT, MISSED, SCORERS, grade, round1


def _statuses(g):
    return {f.unit_id: f.status for f in g.feedback}


class TestRound1:
    def test_half_up(self):
        assert round1(0.25) == 0.3
        assert round1(1 / 3) == 0.3
        assert round1(2 / 3) == 0.7

    def test_negative_half_rounds_toward_positive(self):
        assert round1(-0.25) == -0.2

    def test_every_kind_has_scorer(self):
        assert set(SCORERS) == set(ALL_KINDS)


class TestMultipleChoice:
    def test_wrong_cancels_right(self, multiple_choice_item):
        g = grade(multiple_choice_item, Attempt(selected_option_ids=["A", "B"]))
        assert g.earned == 0
        assert g.correct_count == 1
        assert g.total_units == 2

    def test_all_correct(self, multiple_choice_item):
        g = grade(multiple_choice_item, Attempt(selected_option_ids=["A", "C"]))
        assert g.earned == 2

    def test_partial(self, multiple_choice_item):
        g = grade(multiple_choice_item, Attempt(selected_option_ids=["A"]))
        assert g.earned == 1.0
        assert _statuses(g) == {"A": CORRECT, "C": MISSED}

    def test_never_negative(self, multiple_choice_item):
        g = grade(multiple_choice_item, Attempt(selected_option_ids=["B"]))
        assert g.earned == 0
        assert _statuses(g)["B"] == INCORRECT

    def test_unknown_ids_ignored(self, multiple_choice_item):
        g = grade(multiple_choice_item, Attempt(selected_option_ids=["A", "C", "ghost"]))
        assert g.earned == 2

    def test_option_feedback_carried(self, multiple_choice_item):
        g = grade(multiple_choice_item, Attempt(selected_option_ids=["B"]))
        assert g.feedback[0].feedback == "Sharks are fish."


class TestExclusive:
    def test_single_choice_right(self, single_choice_item):
        g = grade(single_choice_item, Attempt(selected_option_ids=["B"]))
        assert (g.earned, g.correct_count, g.total_units) == (1, 1, 1)

    def test_single_choice_wrong(self, single_choice_item):
        g = grade(single_choice_item, Attempt(selected_option_ids=["A"]))
        assert g.earned == 0
        assert _statuses(g) == {"A": INCORRECT}

    def test_true_false(self, true_false_item):
        assert grade(true_false_item, Attempt(selected_option_ids=["T"])).earned == 1
        assert grade(true_false_item, Attempt(selected_option_ids=["F"])).earned == 0


class TestText:
    def test_case_and_whitespace_insensitive(self, text_item):
        g = grade(text_item, Attempt(text_answer="  jUPITER "))
        assert g.earned == 3
        assert g.feedback[0].status == CORRECT
        assert g.feedback[0].expected == "Jupiter"

    def test_wrong(self, text_item):
        g = grade(text_item, Attempt(text_answer="Saturn"))
        assert g.earned == 0
        assert g.feedback[0].given == "Saturn"
        assert g.feedback[0].status == INCORRECT

    def test_empty_is_missed(self, text_item):
        assert grade(text_item, Attempt()).feedback[0].status == MISSED


class TestFillInBlanks:
    def test_half_credit(self, fill_item):
        g = grade(fill_item, Attempt(blank_answers=["chat", "rat"]))
        assert g.earned == 0.5
        assert _statuses(g) == {"w1": CORRECT, "w2": INCORRECT}

    def test_case_insensitive(self, fill_item):
        assert grade(fill_item, Attempt(blank_answers=["CHAT", "Souris"])).earned == 1

    def test_surrounding_space_counts_as_wrong(self, fill_item):
        assert grade(fill_item, Attempt(blank_answers=[" chat", "souris"])).earned == 0.5

    def test_missing_answer(self, fill_item):
        g = grade(fill_item, Attempt(blank_answers=["chat"]))
        assert _statuses(g)["w2"] == MISSED


class TestOrdering:
    def test_full_credit(self, ordering_item):
        g = grade(ordering_item, Attempt(order=["o1", "o2", "o3"]))
        assert g.earned == 1
        assert g.correct_count == 3

    def test_partial(self, ordering_item):
        g = grade(ordering_item, Attempt(order=["o2", "o1", "o3"]))
        assert g.earned == 0.3
        assert g.correct_count == 1

    def test_missing_units_count_wrong(self, ordering_item):
        g = grade(ordering_item, Attempt(order=["o1", "o2"]))
        assert g.earned == 0.7
        assert _statuses(g)["o3"] == MISSED


class TestMatching:
    def test_one_of_two(self, matching_item):
        g = grade(matching_item, Attempt(matches={"L1": "R1", "L2": "R1"}))
        assert g.earned == 1.0
        assert _statuses(g) == {"L1": CORRECT, "L2": INCORRECT}
        assert g.feedback[1].expected == "Rome"
        assert g.feedback[1].given == "Paris"

    def test_unmatched_is_missed(self, matching_item):
        g = grade(matching_item, Attempt(matches={"L1": "R1"}))
        assert _statuses(g)["L2"] == MISSED


class TestDragAndDrop:
    def test_all_placed(self, drag_item):
        assert grade(drag_item, Attempt(placements={"D1": "Z1", "D2": "Z2"})).earned == 1

    def test_swapped(self, drag_item):
        g = grade(drag_item, Attempt(placements={"D1": "Z2", "D2": "Z1"}))
        assert g.earned == 0
        assert g.feedback[0].expected == "Sea"

    def test_half(self, drag_item):
        assert grade(drag_item, Attempt(placements={"D1": "Z1"})).earned == 0.5


class TestBounds:
    @pytest.mark.parametrize("order", [["o1", "o2", "o3"], ["o3", "o2", "o1"], []])
    def test_within_zero_and_max(self, ordering_item, order):
        g = grade(ordering_item, Attempt(order=order))
        assert 0 <= g.earned <= ordering_item.max_points

    def test_feedback_suppressed(self, multiple_choice_item):
        g = grade(multiple_choice_item, Attempt(selected_option_ids=["A"]), with_feedback=False)
        assert g.feedback == []
        assert g.earned == 1.0

    def test_grade_does_not_modify_item(self, matching_item):
        before = matching_item.to_dict()
        grade(matching_item, Attempt(matches={"L1": "R2"}))
        assert matching_item.to_dict() == before
