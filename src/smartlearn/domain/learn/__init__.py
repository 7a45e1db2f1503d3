# Domain Learn Package
from .errors import LearnError, MalformedStateError, NotFoundError, RatingLockedError
from .models import (
    Card,
    CardDifficulty,
    CardState,
    DifficultyMeta,
    DifficultyRecord,
    LearnParams,
    Mode,
    ModePreferences,
    MultipleChoiceQuestion,
    ProgressRecord,
    Question,
    Result,
    ReviewDifficultyChoice,
    SerializedState,
    TypedRecallQuestion,
)
from .ports import SessionPersistenceAdapter

__all__ = [
    "Card",
    "CardDifficulty",
    "CardState",
    "DifficultyMeta",
    "DifficultyRecord",
    "LearnError",
    "LearnParams",
    "MalformedStateError",
    "Mode",
    "ModePreferences",
    "MultipleChoiceQuestion",
    "NotFoundError",
    "ProgressRecord",
    "Question",
    "RatingLockedError",
    "Result",
    "ReviewDifficultyChoice",
    "SerializedState",
    "SessionPersistenceAdapter",
    "TypedRecallQuestion",
]
