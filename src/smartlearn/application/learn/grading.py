"""
Answer grading with typo tolerance.

Pure functions, no engine state. Two normalization levels are used:

- ``normalize`` only folds case, Unicode form and whitespace. Equality at this
  level is a plain ``Correct``.
- ``loose_normalize`` also drops diacritics and punctuation. Equality at this
  level, or a small edit distance, is ``CorrectMinor``.
"""

import re
import unicodedata

from smartlearn.domain.learn.models import LearnParams, Result

_WHITESPACE_RE = re.compile(r"\s+")

# Letters that do not decompose into base + combining mark under NFD.
_FOLD_MAP = str.maketrans({"đ": "d", "ø": "o", "ł": "l", "ß": "ss", "æ": "ae", "œ": "oe"})


def normalize(text: str) -> str:
    """Lowercase, NFKC, trim and collapse internal whitespace."""
    text = unicodedata.normalize("NFKC", text).lower()
    return _WHITESPACE_RE.sub(" ", text).strip()


def loose_normalize(text: str) -> str:
    """``normalize`` plus diacritic folding and punctuation/symbol removal."""
    text = normalize(text).translate(_FOLD_MAP)
    decomposed = unicodedata.normalize("NFD", text)
    chars = []
    for ch in decomposed:
        category = unicodedata.category(ch)
        if category.startswith("M"):
            continue
        if category[0] in ("P", "S"):
            chars.append(" ")
        else:
            chars.append(ch)
    return _WHITESPACE_RE.sub(" ", "".join(chars)).strip()


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute), O(len(a) * len(b))."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def fuzzy_tolerance(answer_length: int, params: LearnParams) -> int:
    """Allowed edit distance for an answer of the given (loose) length."""
    if answer_length < params.fuzzy_min_length:
        return 0
    if answer_length < params.fuzzy_length_cutoff:
        return params.fuzzy_short_distance
    return params.fuzzy_long_distance


def grade(canonical: str, raw_answer: str, params: LearnParams | None = None) -> Result:
    """
    Grade a learner's answer against the canonical one.

    Returns CORRECT, CORRECT_MINOR or INCORRECT; never SKIP.
    """
    params = params or LearnParams()

    given = normalize(raw_answer)
    if not given:
        return Result.INCORRECT

    expected = normalize(canonical)
    if given == expected:
        return Result.CORRECT

    given_loose = loose_normalize(given)
    expected_loose = loose_normalize(expected)
    if not given_loose:
        return Result.INCORRECT
    if given_loose == expected_loose:
        return Result.CORRECT_MINOR

    tolerance = fuzzy_tolerance(len(expected_loose), params)
    if tolerance and levenshtein(given_loose, expected_loose) <= tolerance:
        return Result.CORRECT_MINOR

    return Result.INCORRECT


def make_hint(answer: str) -> str:
    """First half of the answer (by words for long answers), followed by '...'."""
    words = answer.split()
    if len(words) <= 2:
        return answer[: (len(answer) + 1) // 2].rstrip() + "..."
    return " ".join(words[: len(words) // 2]) + "..."
