"""
Review difficulty gate.

Decides when a learner should be asked to rate a card and whether a rating
already given may be changed. Everything except the last recorded choice per
card is derived from CardState on demand.
"""

import logging
from collections.abc import Iterable, Mapping

from smartlearn.domain.learn.errors import MalformedStateError, RatingLockedError
from smartlearn.domain.learn.models import (
    CardState,
    DifficultyMeta,
    DifficultyRecord,
    LearnParams,
    ReviewDifficultyChoice,
)

logger = logging.getLogger(__name__)


class ReviewDifficultyGate:
    """
    Lock/unlock state machine for self-reported difficulty ratings.

    A rating is suggested when the card's wrong streak or wrong count crosses
    a threshold. Once a rating is recorded it is locked until the threshold is
    crossed again by evidence gathered after the rating, or until the card has
    been asked a few more times.
    """

    def __init__(self, params: LearnParams | None = None):
        self._params = params or LearnParams()
        self._records: dict[str, DifficultyRecord] = {}

    @property
    def records(self) -> dict[str, DifficultyRecord]:
        return dict(self._records)

    def last_choice(self, card_id: str) -> ReviewDifficultyChoice | None:
        record = self._records.get(card_id)
        return record.choice if record else None

    def _triggered(self, wrong_streak: int, wrong_count: int) -> bool:
        return (
            wrong_streak >= self._params.prompt_wrong_streak
            or wrong_count >= self._params.prompt_wrong_count
        )

    def should_prompt(self, state: CardState) -> bool:
        record = self._records.get(state.id)
        if record is None:
            return self._triggered(state.wrong_streak, state.wrong_count)

        # Only evidence gathered after the last rating can re-fire the prompt.
        fresh_wrongs = max(0, state.wrong_count - record.wrong_at)
        return self._triggered(min(state.wrong_streak, fresh_wrongs), fresh_wrongs)

    def can_adjust(self, state: CardState) -> bool:
        record = self._records.get(state.id)
        if record is None:
            return True
        if self.should_prompt(state):
            return True
        return state.seen_count - record.seen_at >= self._params.unlock_after_questions

    def meta(self, state: CardState) -> DifficultyMeta:
        return DifficultyMeta(
            should_prompt=self.should_prompt(state),
            wrong_count=state.wrong_count,
            wrong_streak=state.wrong_streak,
            mastery=state.mastery,
            last_choice=self.last_choice(state.id),
            can_adjust=self.can_adjust(state),
        )

    def record(
        self, state: CardState, choice: ReviewDifficultyChoice | str
    ) -> DifficultyRecord:
        """
        Store a rating for the card and lock it.

        Raises:
            RatingLockedError: The card's rating cannot be changed yet.
            ValueError: `choice` is not a valid ReviewDifficultyChoice.
        """
        choice = ReviewDifficultyChoice(choice)
        if not self.can_adjust(state):
            raise RatingLockedError(state.id)

        record = DifficultyRecord(
            choice=choice, seen_at=state.seen_count, wrong_at=state.wrong_count
        )
        self._records[state.id] = record
        logger.debug(f"Recorded difficulty {choice.value} for card {state.id}")
        return record

    def load(self, records: Mapping[str, DifficultyRecord], known_ids: Iterable[str]) -> None:
        """
        Replace all records, validating them against the known card ids.

        Raises:
            MalformedStateError: A record refers to an unknown card or has
                negative counters.
        """
        known = set(known_ids)
        for card_id, record in records.items():
            if card_id not in known:
                raise MalformedStateError(f"Difficulty record for unknown card {card_id!r}")
            if record.seen_at < 0 or record.wrong_at < 0:
                raise MalformedStateError(f"Negative counters in difficulty record {card_id!r}")
        self._records = dict(records)

    def reset(self) -> None:
        self._records.clear()
