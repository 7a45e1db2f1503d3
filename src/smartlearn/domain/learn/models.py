"""
Domain models for the adaptive review engine.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from smartlearn.domain import constants


class Result(str, Enum):
    """Outcome of grading a single answer."""

    CORRECT = "Correct"
    CORRECT_MINOR = "CorrectMinor"  # matched after loose normalization / typo tolerance
    INCORRECT = "Incorrect"
    SKIP = "Skip"

    @property
    def is_success(self) -> bool:
        return self in (Result.CORRECT, Result.CORRECT_MINOR)


class ReviewDifficultyChoice(str, Enum):
    """A learner's self-reported difficulty, independent of Result."""

    VERY_HARD = "veryHard"
    HARD = "hard"
    AGAIN = "again"
    NORMAL = "normal"


class CardDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Mode(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TYPED_RECALL = "TYPED_RECALL"


# Last result of a card: any Result, or "New" before the first answer.
NEW = "New"
LAST_RESULT_VALUES = frozenset([NEW, *(r.value for r in Result)])


@dataclass(frozen=True)
class Card:
    """
    A flashcard as supplied by the library owner.

    Attributes:
        id: Stable identifier within the library.
        front: Prompt text.
        back: Canonical answer text.
        domain: Optional grouping key used to pick plausible distractors.
        difficulty: Optional author-assigned difficulty tag.
    """

    id: str
    front: str
    back: str
    domain: str | None = None
    difficulty: CardDifficulty | None = None


@dataclass
class CardState:
    """
    Mutable learning state for one card, owned by the engine.

    `next_due` is a session-relative position compared against the number of
    questions answered so far; it is not a timestamp.
    """

    id: str
    mastery: int = 0
    streak_correct: int = 0
    wrong_streak: int = 0
    last_result: str = NEW
    next_due: int = 0
    seen_count: int = 0
    wrong_count: int = 0


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    card_id: str
    prompt: str
    options: list[str]  # exactly one correct, shuffled
    mode: Mode = Mode.MULTIPLE_CHOICE


@dataclass(frozen=True)
class TypedRecallQuestion:
    card_id: str
    prompt: str
    hint: str | None = None
    full_answer: str | None = None  # for a "don't know" reveal
    mode: Mode = Mode.TYPED_RECALL


Question = MultipleChoiceQuestion | TypedRecallQuestion


@dataclass(frozen=True)
class DifficultyRecord:
    """
    The last difficulty choice recorded for a card.

    Attributes:
        choice: What the learner picked.
        seen_at: The card's seen_count when the choice was recorded.
        wrong_at: The card's wrong_count when the choice was recorded.
    """

    choice: ReviewDifficultyChoice
    seen_at: int
    wrong_at: int


@dataclass(frozen=True)
class DifficultyMeta:
    """Derived view over CardState + DifficultyRecord. Never persisted."""

    should_prompt: bool
    wrong_count: int
    wrong_streak: int
    mastery: int
    last_choice: ReviewDifficultyChoice | None
    can_adjust: bool


@dataclass(frozen=True)
class ModePreferences:
    mc: bool = True
    typed: bool = True


@dataclass
class SerializedState:
    """
    Durable form of a whole session.

    `states` are kept in card-index order and `choices` in the same order so
    that serialization is deterministic.
    """

    asked: int
    states: list[CardState]
    correct: int = 0
    incorrect: int = 0
    choices: dict[str, DifficultyRecord] = field(default_factory=dict)
    mode_prefs: ModePreferences = field(default_factory=ModePreferences)
    recent_ms: list[int] = field(default_factory=list)
    version: int = constants.SNAPSHOT_VERSION


@dataclass
class ProgressRecord:
    """What the persistence adapter stores per (user, library)."""

    user_id: str
    library_id: str
    engine_state: SerializedState
    updated_at: str  # ISO-8601


def _default_choice_offsets() -> Mapping[ReviewDifficultyChoice, int | None]:
    return MappingProxyType(
        {ReviewDifficultyChoice(k): v for k, v in constants.CHOICE_OFFSETS.items()}
    )


@dataclass(frozen=True)
class LearnParams:
    """Tunable scheduling, grading and gate policy."""

    max_mastery: int = constants.MAX_MASTERY
    mode_threshold: int = constants.MODE_THRESHOLD
    mc_options: int = constants.MC_OPTIONS
    spacing_base: int = constants.SPACING_BASE
    incorrect_requeue_gap: int = constants.INCORRECT_REQUEUE_GAP
    skip_requeue_gap: int = constants.SKIP_REQUEUE_GAP
    fuzzy_short_distance: int = constants.FUZZY_SHORT_DISTANCE
    fuzzy_long_distance: int = constants.FUZZY_LONG_DISTANCE
    fuzzy_length_cutoff: int = constants.FUZZY_LENGTH_CUTOFF
    fuzzy_min_length: int = constants.FUZZY_MIN_LENGTH
    prompt_wrong_streak: int = constants.PROMPT_WRONG_STREAK
    prompt_wrong_count: int = constants.PROMPT_WRONG_COUNT
    unlock_after_questions: int = constants.UNLOCK_AFTER_QUESTIONS
    choice_offsets: Mapping[ReviewDifficultyChoice, int | None] = field(
        default_factory=_default_choice_offsets
    )
    recent_window: int = constants.RECENT_MS_WINDOW
