"""Shared test fixtures."""
from __future__ import annotations

import random

import pytest

from assessment_engine.db import Database
from assessment_engine.models import ExerciseItem, Item, QuizOption


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def multiple_choice_item():
    """Correct options A and C out of A, B, C; worth 2 points."""
    return Item(
        id="mc-1",
        kind="multiple-choice",
        prompt="Which of these are mammals?",
        max_points=2,
        explanation="Whales and bats are mammals.",
        options=[
            QuizOption("A", "Whale", is_correct=True, feedback="Yes, whales nurse their young."),
            QuizOption("B", "Shark", is_correct=False, feedback="Sharks are fish."),
            QuizOption("C", "Bat", is_correct=True),
        ],
    )


@pytest.fixture
def single_choice_item():
    return Item(
        id="sc-1",
        kind="single-choice",
        prompt="Capital of France?",
        options=[
            QuizOption("A", "Lyon"),
            QuizOption("B", "Paris", is_correct=True),
            QuizOption("C", "Marseille"),
        ],
    )


@pytest.fixture
def true_false_item():
    return Item(
        id="tf-1",
        kind="true-false",
        prompt="Water boils at 100°C at sea level.",
        options=[QuizOption("T", "True", is_correct=True), QuizOption("F", "False")],
    )


@pytest.fixture
def text_item():
    return Item(
        id="txt-1",
        kind="text",
        prompt="Name the largest planet.",
        max_points=3,
        options=[QuizOption("ans", "Jupiter", is_correct=True, feedback="Correct answer")],
    )


@pytest.fixture
def fill_item():
    return Item(
        id="fib-1",
        kind="fill-in-blanks",
        prompt="Complete the sentence.",
        items=[
            ExerciseItem("src", "Le [chat] mange une [souris]", is_correct=True),
            ExerciseItem("w1", "chat", is_correct=True),
            ExerciseItem("w2", "souris", is_correct=True),
        ],
    )


@pytest.fixture
def ordering_item():
    return Item(
        id="ord-1",
        kind="ordering",
        prompt="Order the steps.",
        items=[
            ExerciseItem("o1", "Wake up", position=1),
            ExerciseItem("o2", "Brush teeth", position=2),
            ExerciseItem("o3", "Leave home", position=3),
        ],
    )


@pytest.fixture
def matching_item():
    return Item(
        id="match-1",
        kind="matching",
        prompt="Match countries to capitals.",
        max_points=2,
        left_items=[
            ExerciseItem("L1", "France", match_id="m1"),
            ExerciseItem("L2", "Italy", match_id="m2"),
        ],
        right_items=[
            ExerciseItem("R1", "Paris", match_id="m1"),
            ExerciseItem("R2", "Rome", match_id="m2"),
        ],
    )


@pytest.fixture
def drag_item():
    return Item(
        id="dnd-1",
        kind="drag-and-drop",
        prompt="Drop each animal in its habitat.",
        drag_items=[
            ExerciseItem("D1", "Fish", position=1),
            ExerciseItem("D2", "Camel", position=2),
        ],
        drop_zones=[
            ExerciseItem("Z1", "Sea", position=1),
            ExerciseItem("Z2", "Desert", position=2),
        ],
    )


@pytest.fixture
def all_items(
    multiple_choice_item, single_choice_item, true_false_item, text_item,
    fill_item, ordering_item, matching_item, drag_item,
):
    return [
        multiple_choice_item, single_choice_item, true_false_item, text_item,
        fill_item, ordering_item, matching_item, drag_item,
    ]
