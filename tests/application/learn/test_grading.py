"""Tests for answer normalization and grading."""

import pytest

from smartlearn.application.learn.grading import (
    fuzzy_tolerance,
    grade,
    levenshtein,
    loose_normalize,
    make_hint,
    normalize,
)
from smartlearn.domain.learn.models import LearnParams, Result

# ---------- Normalization ----------


def test_normalize_case_and_whitespace():
    assert normalize("  Con   MÈO \n") == "con mèo"


def test_normalize_nfkc():
    # Fullwidth letters fold to ASCII under NFKC
    assert normalize("ＡＢＣ") == "abc"


def test_loose_normalize_strips_diacritics_and_punctuation():
    assert loose_normalize("Con mèo!") == "con meo"
    assert loose_normalize("đường-phố") == "duong pho"


def test_loose_normalize_only_punctuation_is_empty():
    assert loose_normalize("?!...") == ""


# ---------- Edit distance ----------


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("", "", 0),
        ("abc", "", 3),
        ("", "abc", 3),
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
    ],
)
def test_levenshtein(a, b, expected):
    assert levenshtein(a, b) == expected


def test_fuzzy_tolerance_by_length():
    params = LearnParams()
    assert fuzzy_tolerance(2, params) == 0
    assert fuzzy_tolerance(5, params) == 1
    assert fuzzy_tolerance(7, params) == 1
    assert fuzzy_tolerance(8, params) == 2
    assert fuzzy_tolerance(20, params) == 2


# ---------- Grading ----------


def test_grade_exact_is_correct():
    assert grade("con mèo", "con mèo") is Result.CORRECT


def test_grade_case_and_spacing_is_correct():
    assert grade("con mèo", "  CON   mèo ") is Result.CORRECT


def test_grade_missing_diacritics_is_minor():
    assert grade("con mèo", "con meo") is Result.CORRECT_MINOR


def test_grade_punctuation_difference_is_minor():
    assert grade("New York", "new-york") is Result.CORRECT_MINOR


def test_grade_single_typo_is_minor():
    assert grade("house", "hause") is Result.CORRECT_MINOR


def test_grade_two_typos_short_answer_is_incorrect():
    assert grade("house", "hamse") is Result.INCORRECT


def test_grade_two_typos_long_answer_is_minor():
    assert grade("photosynthesis", "fotosynthesis") is Result.CORRECT_MINOR
    assert grade("photosynthesis", "photosyntesys") is Result.CORRECT_MINOR


def test_grade_very_short_answer_needs_exact_loose_match():
    assert grade("ox", "ax") is Result.INCORRECT
    assert grade("ox", "OX") is Result.CORRECT


def test_grade_wrong_answer():
    assert grade("con mèo", "dog") is Result.INCORRECT


@pytest.mark.parametrize("raw", ["", "   ", "?!"])
def test_grade_empty_answer_is_incorrect(raw):
    assert grade("a", raw) is Result.INCORRECT
    assert grade("con mèo", raw) is Result.INCORRECT


def test_grade_respects_params():
    strict = LearnParams(fuzzy_short_distance=0, fuzzy_long_distance=0)
    assert grade("house", "hause", strict) is Result.INCORRECT
    # Diacritics are still forgiven: that is normalization, not distance
    assert grade("con mèo", "con meo", strict) is Result.CORRECT_MINOR


def test_grade_is_deterministic():
    results = {grade("trọng lực", "trong luc") for _ in range(5)}
    assert results == {Result.CORRECT_MINOR}


# ---------- Hints ----------


def test_make_hint_short_answer():
    assert make_hint("mèo") == "mè..."


def test_make_hint_long_answer_uses_words():
    assert make_hint("the quick brown fox") == "the quick..."
