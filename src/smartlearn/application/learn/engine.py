"""
Learn engine: rule-based question selection, grading and scheduling.

Usage:
    engine = LearnEngine(cards)
    question = engine.next_question()
    result = engine.submit_answer(question.card_id, "user input")
    snapshot = engine.serialize()

Card states live in an arena (`list[CardState]`, one slot per card in library
order) with an id -> index map, so tie-breaks and serialization order are
deterministic.
"""

import dataclasses
import logging
import random
from collections.abc import Iterable, Mapping
from typing import Any

from smartlearn.application.learn import codec
from smartlearn.application.learn.difficulty_gate import ReviewDifficultyGate
from smartlearn.application.learn.grading import grade, make_hint, normalize
from smartlearn.domain.learn.errors import MalformedStateError
from smartlearn.domain.learn.models import (
    NEW,
    Card,
    CardState,
    DifficultyMeta,
    DifficultyRecord,
    LearnParams,
    Mode,
    ModePreferences,
    MultipleChoiceQuestion,
    Question,
    Result,
    ReviewDifficultyChoice,
    SerializedState,
    TypedRecallQuestion,
)

logger = logging.getLogger(__name__)


class LearnEngine:
    """
    Owns the card-state table for one session.

    Selection and grading are synchronous and never raise for routine edge
    cases (empty deck, unknown card id). Only restoring a malformed snapshot
    and rating a locked card raise.
    """

    def __init__(
        self,
        cards: Iterable[Card],
        params: LearnParams | None = None,
        rng: random.Random | None = None,
    ):
        self._cards: list[Card] = list(cards)
        self._index: dict[str, int] = {}
        for i, card in enumerate(self._cards):
            if card.id in self._index:
                raise ValueError(f"Duplicate card id {card.id!r}")
            self._index[card.id] = i

        self._params = params or LearnParams()
        self._rng = rng or random.Random()
        self._gate = ReviewDifficultyGate(self._params)
        self._reset_progress()

    def _reset_progress(self) -> None:
        self._states: list[CardState] = [CardState(id=c.id) for c in self._cards]
        self._asked = 0
        self._correct = 0
        self._incorrect = 0
        self._recent_ms: list[int] = []
        self._mode_prefs = ModePreferences()
        self._gate.reset()

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def params(self) -> LearnParams:
        return self._params

    @property
    def cards(self) -> list[Card]:
        return list(self._cards)

    @property
    def asked(self) -> int:
        """Questions answered so far; also the current session position."""
        return self._asked

    @property
    def correct(self) -> int:
        return self._correct

    @property
    def incorrect(self) -> int:
        return self._incorrect

    @property
    def recent_ms(self) -> list[int]:
        return list(self._recent_ms)

    @property
    def mode_preferences(self) -> ModePreferences:
        return self._mode_prefs

    def get_card(self, card_id: str) -> Card | None:
        i = self._index.get(card_id)
        return self._cards[i] if i is not None else None

    def get_card_state(self, card_id: str) -> CardState | None:
        """Copy of the card's state, or None for an unknown id."""
        i = self._index.get(card_id)
        if i is None:
            return None
        return dataclasses.replace(self._states[i])

    def all_card_states(self) -> list[CardState]:
        return [dataclasses.replace(s) for s in self._states]

    def is_mastered(self, state: CardState) -> bool:
        return state.mastery >= self._params.max_mastery

    def is_finished(self) -> bool:
        """True when every card is mastered and none is due."""
        return all(
            self.is_mastered(s) and s.next_due > self._asked for s in self._states
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_mode_preferences(self, mc: bool = True, typed: bool = True) -> None:
        """Allow or forbid question modes. Disabling both is ignored."""
        if not mc and not typed:
            logger.debug("Ignoring mode preferences that disable every mode")
            return
        self._mode_prefs = ModePreferences(mc=mc, typed=typed)

    def _pick(self) -> int | None:
        def key(i: int) -> tuple[int, int, int]:
            s = self._states[i]
            return (s.next_due, s.mastery, i)

        indices = range(len(self._states))
        due = [i for i in indices if self._states[i].next_due <= self._asked]
        if due:
            return min(due, key=key)

        # Nothing due: keep unmastered cards moving instead of stalling.
        pending = [i for i in indices if not self.is_mastered(self._states[i])]
        if pending:
            return min(pending, key=key)
        return None

    def choose_mode(self, state: CardState) -> Mode:
        prefs = self._mode_prefs
        if prefs.mc and not prefs.typed:
            return Mode.MULTIPLE_CHOICE
        if prefs.typed and not prefs.mc:
            return Mode.TYPED_RECALL
        if state.mastery < self._params.mode_threshold:
            return Mode.MULTIPLE_CHOICE
        return Mode.TYPED_RECALL

    def next_question(self) -> Question | None:
        """
        Pick the next card and build a question for it.

        Returns None when the deck is empty or finished.
        """
        i = self._pick()
        if i is None:
            return None
        state = self._states[i]
        logger.debug(
            f"Selected card {state.id} (due={state.next_due}, mastery={state.mastery}, "
            f"position={self._asked})"
        )
        return self._build_question(self._cards[i], state)

    def generate_question_for_card(self, card_id: str) -> Question | None:
        """Build a fresh question for a card without touching scheduling."""
        i = self._index.get(card_id)
        if i is None:
            return None
        return self._build_question(self._cards[i], self._states[i])

    def _build_question(self, card: Card, state: CardState) -> Question:
        if self.choose_mode(state) is Mode.MULTIPLE_CHOICE:
            return MultipleChoiceQuestion(
                card_id=card.id, prompt=card.front, options=self._build_options(card)
            )

        hint = None
        if state.mastery < self._params.mode_threshold and state.wrong_count > 0:
            hint = make_hint(card.back)
        return TypedRecallQuestion(
            card_id=card.id, prompt=card.front, hint=hint, full_answer=card.back
        )

    def _rank_distractors(self, card: Card, pool: list[Card]) -> list[Card]:
        """Same difficulty first, then closest answer length; ties stay random."""
        pool = list(pool)
        self._rng.shuffle(pool)
        return sorted(
            pool,
            key=lambda o: (o.difficulty != card.difficulty, abs(len(o.back) - len(card.back))),
        )

    def _build_options(self, card: Card) -> list[str]:
        wanted = max(0, self._params.mc_options - 1)
        seen = {normalize(card.back)}

        def unique_cards(pool: Iterable[Card]) -> list[Card]:
            out = []
            for other in pool:
                key = normalize(other.back)
                if other.id == card.id or key in seen:
                    continue
                seen.add(key)
                out.append(other)
            return out

        same_domain: list[Card] = []
        if card.domain is not None:
            same_domain = unique_cards(c for c in self._cards if c.domain == card.domain)

        distractors = self._rank_distractors(card, same_domain)[:wanted]
        if len(distractors) < wanted:
            backfill = self._rank_distractors(card, unique_cards(self._cards))
            distractors += backfill[: wanted - len(distractors)]

        options = [card.back, *(o.back for o in distractors)]
        self._rng.shuffle(options)
        return options

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def submit_answer(self, card_id: str, raw_answer: str | None, ms: int | None = None) -> Result:
        """
        Grade an answer and update the card's state.

        An unknown card id returns SKIP without side effects. A `raw_answer`
        of None is an explicit skip: the card is requeued soon and only its
        seen count changes.
        """
        i = self._index.get(card_id)
        if i is None:
            logger.debug(f"Ignoring answer for unknown card {card_id!r}")
            return Result.SKIP

        state = self._states[i]
        if raw_answer is None:
            result = Result.SKIP
        else:
            result = grade(self._cards[i].back, raw_answer, self._params)

        self._asked += 1
        self._apply_result(state, result)

        if ms is not None and ms >= 0:
            self._recent_ms.append(int(ms))
            del self._recent_ms[: -self._params.recent_window]

        logger.debug(f"Card {card_id}: {result.value} -> mastery={state.mastery}")
        return result

    def _apply_result(self, state: CardState, result: Result) -> None:
        p = self._params
        state.seen_count += 1
        state.last_result = result.value

        if result.is_success:
            self._correct += 1
            state.streak_correct += 1
            state.wrong_streak = 0
            state.mastery = min(p.max_mastery, state.mastery + 1)
            state.next_due = self._asked + p.spacing_base ** (state.mastery - 1)
        elif result is Result.INCORRECT:
            self._incorrect += 1
            state.streak_correct = 0
            state.wrong_streak += 1
            state.mastery = max(0, state.mastery - 1)
            state.wrong_count += 1
            state.next_due = self._asked + p.incorrect_requeue_gap
        else:
            state.next_due = self._asked + p.skip_requeue_gap

    def mark_card_as_hard(self, card_id: str) -> bool:
        """Learner self-flag: due now and one more wrong, mastery untouched."""
        i = self._index.get(card_id)
        if i is None:
            return False
        state = self._states[i]
        state.next_due = self._asked
        state.wrong_count += 1
        return True

    # ------------------------------------------------------------------
    # Difficulty gate
    # ------------------------------------------------------------------

    def get_difficulty_meta(self, card_id: str) -> DifficultyMeta | None:
        i = self._index.get(card_id)
        if i is None:
            return None
        return self._gate.meta(self._states[i])

    def record_difficulty_choice(
        self, card_id: str, choice: ReviewDifficultyChoice | str
    ) -> DifficultyRecord | None:
        """
        Record a learner's rating and pull the card closer if it asks for it.

        Returns None for an unknown card id.

        Raises:
            RatingLockedError: The rating for this card is locked.
        """
        i = self._index.get(card_id)
        if i is None:
            return None
        state = self._states[i]
        record = self._gate.record(state, choice)

        offset = self._params.choice_offsets.get(record.choice)
        if offset is not None:
            state.next_due = min(state.next_due, self._asked + offset)
        return record

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self) -> SerializedState:
        choices = self._gate.records
        ordered_choices = {
            s.id: choices[s.id] for s in self._states if s.id in choices
        }
        return SerializedState(
            asked=self._asked,
            correct=self._correct,
            incorrect=self._incorrect,
            states=self.all_card_states(),
            choices=ordered_choices,
            mode_prefs=self._mode_prefs,
            recent_ms=list(self._recent_ms),
        )

    def restore(self, snapshot: SerializedState | Mapping[str, Any]) -> None:
        """
        Replace the engine's progress with a snapshot.

        Cards added to the library after the snapshot was taken start fresh and
        are due immediately. The engine is left untouched on failure.

        Raises:
            MalformedStateError: Unknown card ids or impossible values.
        """
        if isinstance(snapshot, SerializedState):
            state = codec.validate(snapshot)
        else:
            state = codec.from_document(snapshot)

        by_id: dict[str, CardState] = {}
        for s in state.states:
            if s.id not in self._index:
                raise MalformedStateError(f"Snapshot references unknown card {s.id!r}")
            if s.mastery > self._params.max_mastery:
                raise MalformedStateError(f"Mastery out of range for card {s.id!r}")
            by_id[s.id] = s

        for card_id, record in state.choices.items():
            s = by_id.get(card_id)
            if s is None:
                raise MalformedStateError(f"Difficulty record for unknown card {card_id!r}")
            if record.seen_at > s.seen_count or record.wrong_at > s.wrong_count:
                raise MalformedStateError(f"Difficulty record ahead of card state {card_id!r}")

        gate = ReviewDifficultyGate(self._params)
        gate.load(state.choices, by_id.keys())

        states = []
        for card in self._cards:
            restored = by_id.get(card.id)
            if restored is None:
                restored = CardState(id=card.id, last_result=NEW, next_due=state.asked)
            states.append(restored)

        self._states = states
        self._asked = state.asked
        self._correct = state.correct
        self._incorrect = state.incorrect
        self._recent_ms = list(state.recent_ms)
        self._mode_prefs = state.mode_prefs
        self._gate = gate
        logger.debug(
            f"Restored {len(by_id)}/{len(self._cards)} card states at position {self._asked}"
        )

    def reset(self) -> None:
        """Forget all progress, as if freshly constructed."""
        self._reset_progress()
