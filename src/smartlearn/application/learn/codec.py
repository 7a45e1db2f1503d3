"""
Snapshot codec: SerializedState <-> JSON-safe documents.

Structural and range validation is done with pydantic; any violation is
reported as MalformedStateError so callers can fall back to a fresh engine.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from smartlearn.domain import constants
from smartlearn.domain.learn.errors import MalformedStateError
from smartlearn.domain.learn.models import (
    CardState,
    DifficultyRecord,
    ModePreferences,
    ReviewDifficultyChoice,
    SerializedState,
)

LastResult = Literal["New", "Correct", "CorrectMinor", "Incorrect", "Skip"]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class CardStateDoc(_Strict):
    id: str = Field(min_length=1)
    mastery: int = Field(ge=0, le=constants.MAX_MASTERY)
    streak_correct: int = Field(ge=0)
    wrong_streak: int = Field(ge=0)
    last_result: LastResult
    next_due: int = Field(ge=0)
    seen_count: int = Field(ge=0)
    wrong_count: int = Field(ge=0)


class DifficultyRecordDoc(_Strict):
    choice: ReviewDifficultyChoice = Field(strict=False)
    seen_at: int = Field(ge=0)
    wrong_at: int = Field(ge=0)


class ModePrefsDoc(_Strict):
    mc: bool = True
    typed: bool = True


class SnapshotDoc(_Strict):
    version: Literal[1]
    asked: int = Field(ge=0)
    correct: int = Field(ge=0)
    incorrect: int = Field(ge=0)
    states: list[CardStateDoc]
    choices: dict[str, DifficultyRecordDoc] = Field(default_factory=dict)
    mode_prefs: ModePrefsDoc = Field(default_factory=ModePrefsDoc)
    recent_ms: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_consistency(self) -> "SnapshotDoc":
        if self.correct + self.incorrect > self.asked:
            raise ValueError("correct + incorrect exceeds asked")
        ids = [s.id for s in self.states]
        if len(ids) != len(set(ids)):
            raise ValueError("duplicate card ids in states")
        if any(ms < 0 for ms in self.recent_ms):
            raise ValueError("negative answer time")
        if not self.mode_prefs.mc and not self.mode_prefs.typed:
            raise ValueError("at least one question mode must be enabled")
        return self


def to_document(state: SerializedState) -> dict[str, Any]:
    """Convert a snapshot to plain dicts/lists/ints/strings (JSON-safe)."""
    return {
        "version": state.version,
        "asked": state.asked,
        "correct": state.correct,
        "incorrect": state.incorrect,
        "states": [
            {
                "id": s.id,
                "mastery": s.mastery,
                "streak_correct": s.streak_correct,
                "wrong_streak": s.wrong_streak,
                "last_result": s.last_result,
                "next_due": s.next_due,
                "seen_count": s.seen_count,
                "wrong_count": s.wrong_count,
            }
            for s in state.states
        ],
        "choices": {
            card_id: {
                "choice": ReviewDifficultyChoice(r.choice).value,
                "seen_at": r.seen_at,
                "wrong_at": r.wrong_at,
            }
            for card_id, r in state.choices.items()
        },
        "mode_prefs": {"mc": state.mode_prefs.mc, "typed": state.mode_prefs.typed},
        "recent_ms": list(state.recent_ms),
    }


def from_document(doc: Any) -> SerializedState:
    """
    Parse and validate a snapshot document.

    Raises:
        MalformedStateError: The document is structurally invalid or holds
            impossible values (negative counters, mastery out of range, ...).
    """
    try:
        parsed = SnapshotDoc.model_validate(doc)
    except ValidationError as e:
        raise MalformedStateError(f"Invalid snapshot: {e.error_count()} error(s): {e}") from e

    return SerializedState(
        version=parsed.version,
        asked=parsed.asked,
        correct=parsed.correct,
        incorrect=parsed.incorrect,
        states=[CardState(**s.model_dump()) for s in parsed.states],
        choices={
            card_id: DifficultyRecord(choice=r.choice, seen_at=r.seen_at, wrong_at=r.wrong_at)
            for card_id, r in parsed.choices.items()
        },
        mode_prefs=ModePreferences(mc=parsed.mode_prefs.mc, typed=parsed.mode_prefs.typed),
        recent_ms=list(parsed.recent_ms),
    )


def validate(state: SerializedState) -> SerializedState:
    """Re-validate an in-memory snapshot by round-tripping it through the schema."""
    try:
        doc = to_document(state)
    except (AttributeError, TypeError, ValueError) as e:
        raise MalformedStateError(f"Invalid snapshot: {e}") from e
    return from_document(doc)
