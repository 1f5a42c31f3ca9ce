"""Tests for difficulty, category and source heuristics."""

import pytest

from app.modules.flashcards.classifier import (
    classify_category,
    classify_difficulty,
    estimate_difficulty,
    find_source_excerpt,
    guess_category,
    normalize_category,
    normalize_difficulty,
)
from app.modules.flashcards.models import Difficulty


@pytest.mark.parametrize(
    "label, expected",
    [
        ("easy", Difficulty.EASY),
        (" Beginner ", Difficulty.EASY),
        ("intermediate", Difficulty.MEDIUM),
        ("ADVANCED", Difficulty.HARD),
        ("impossible", None),
        (None, None),
    ],
)
def test_normalize_difficulty(label, expected) -> None:
    assert normalize_difficulty(label) == expected


def test_short_recall_question_is_easy() -> None:
    assert estimate_difficulty("What is the capital of Peru?", "Lima.") is Difficulty.EASY


def test_why_question_is_hard() -> None:
    assert (
        estimate_difficulty("Why does ice float?", "It is less dense than water.")
        is Difficulty.HARD
    )


def test_long_answer_is_hard() -> None:
    answer = " ".join(["word"] * 45)
    assert estimate_difficulty("List the steps.", answer) is Difficulty.HARD


def test_unclassifiable_defaults_to_medium() -> None:
    assert estimate_difficulty("Photosynthesis output?", "Oxygen and glucose.") is Difficulty.MEDIUM


def test_provider_label_wins_over_heuristic() -> None:
    assert classify_difficulty("Why?", "Because.", "easy") is Difficulty.EASY
    assert classify_difficulty("Why?", "Because.", "nonsense") is Difficulty.HARD


def test_category_prefers_provider_then_subject_then_keywords() -> None:
    assert classify_category("q", "a", "Cell Biology!", "chemistry") == "cell biology"
    assert classify_category("q", "a", None, "Organic Chemistry") == "organic chemistry"
    assert classify_category("What do enzymes do?", "Catalyse reactions in the cell.") == "biology"
    assert classify_category("Favourite colour?", "Blue.") == "uncategorized"


def test_normalize_category_truncates_long_labels() -> None:
    label = normalize_category("x" * 100)
    assert label is not None
    assert len(label) == 40
    assert normalize_category("!!!") is None


def test_guess_category_counts_keywords() -> None:
    assert guess_category("Supply and demand set the market price") == "economics"
    assert guess_category("") == "uncategorized"


def test_find_source_excerpt_picks_best_matching_sentence() -> None:
    notes = (
        "Water boils at 100 degrees Celsius at sea level. "
        "Mitochondria are the powerhouse of the cell. "
        "The French Revolution began in 1789."
    )
    excerpt = find_source_excerpt(
        "What are mitochondria?", "The powerhouse of the cell.", notes
    )
    assert excerpt == "Mitochondria are the powerhouse of the cell."


def test_find_source_excerpt_without_overlap_is_empty() -> None:
    assert find_source_excerpt("Alpha?", "Beta.", "Gamma delta epsilon.") == ""
