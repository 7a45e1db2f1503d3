"""Tests for the review difficulty gate, on its own and through the engine."""

import pytest

from smartlearn.application.learn.difficulty_gate import ReviewDifficultyGate
from smartlearn.application.learn.engine import LearnEngine
from smartlearn.domain.learn.errors import MalformedStateError, RatingLockedError
from smartlearn.domain.learn.models import (
    Card,
    CardState,
    DifficultyRecord,
    ReviewDifficultyChoice,
)


@pytest.fixture
def gate():
    return ReviewDifficultyGate()


# ---------- Prompt trigger ----------


def test_no_prompt_for_fresh_card(gate):
    assert gate.should_prompt(CardState(id="1")) is False


def test_prompt_after_wrong_streak(gate):
    assert gate.should_prompt(CardState(id="1", wrong_streak=2, wrong_count=2)) is False
    assert gate.should_prompt(CardState(id="1", wrong_streak=3, wrong_count=3)) is True


def test_prompt_after_wrong_count_without_streak(gate):
    state = CardState(id="1", wrong_streak=0, wrong_count=4)
    assert gate.should_prompt(state) is True


# ---------- Lock / unlock ----------


def test_can_adjust_without_record(gate):
    assert gate.can_adjust(CardState(id="1")) is True


def test_record_locks_until_new_evidence(gate):
    state = CardState(id="1", wrong_streak=3, wrong_count=3, seen_count=3)
    record = gate.record(state, ReviewDifficultyChoice.HARD)

    assert record == DifficultyRecord(ReviewDifficultyChoice.HARD, seen_at=3, wrong_at=3)
    assert gate.should_prompt(state) is False
    assert gate.can_adjust(state) is False
    with pytest.raises(RatingLockedError) as exc:
        gate.record(state, ReviewDifficultyChoice.NORMAL)
    assert exc.value.card_id == "1"
    # The failed attempt leaves the original record in place
    assert gate.last_choice("1") is ReviewDifficultyChoice.HARD


def test_unlocks_after_more_questions(gate):
    state = CardState(id="1", wrong_streak=3, wrong_count=3, seen_count=3)
    gate.record(state, "hard")

    state.seen_count = 5
    assert gate.can_adjust(state) is False
    state.seen_count = 6
    assert gate.can_adjust(state) is True
    assert gate.record(state, "normal").choice is ReviewDifficultyChoice.NORMAL


def test_refires_on_fresh_wrong_streak(gate):
    state = CardState(id="1", wrong_streak=3, wrong_count=3, seen_count=3)
    gate.record(state, ReviewDifficultyChoice.VERY_HARD)

    # A long streak that started before the rating only counts its fresh part
    state.wrong_streak, state.wrong_count, state.seen_count = 5, 5, 5
    assert gate.should_prompt(state) is False

    state.wrong_streak, state.wrong_count, state.seen_count = 6, 6, 5
    assert gate.should_prompt(state) is True
    assert gate.can_adjust(state) is True


def test_refires_on_fresh_wrong_count(gate):
    state = CardState(id="1", wrong_streak=3, wrong_count=3, seen_count=3)
    gate.record(state, ReviewDifficultyChoice.AGAIN)

    # Four new misses spread out so the streak never reaches the threshold
    state.wrong_streak, state.wrong_count, state.seen_count = 1, 7, 3
    assert gate.should_prompt(state) is True


def test_invalid_choice_rejected(gate):
    with pytest.raises(ValueError):
        gate.record(CardState(id="1"), "impossible")
    assert gate.records == {}


def test_meta(gate):
    state = CardState(id="1", mastery=1, wrong_streak=3, wrong_count=4)
    meta = gate.meta(state)
    assert meta.should_prompt is True
    assert meta.can_adjust is True
    assert meta.wrong_count == 4
    assert meta.wrong_streak == 3
    assert meta.mastery == 1
    assert meta.last_choice is None


def test_records_property_is_a_copy(gate):
    gate.record(CardState(id="1"), "hard")
    gate.records.clear()
    assert gate.last_choice("1") is ReviewDifficultyChoice.HARD


# ---------- Loading ----------


def test_load_rejects_unknown_ids(gate):
    records = {"ghost": DifficultyRecord(ReviewDifficultyChoice.HARD, 0, 0)}
    with pytest.raises(MalformedStateError):
        gate.load(records, known_ids=["1"])


def test_load_rejects_negative_counters(gate):
    records = {"1": DifficultyRecord(ReviewDifficultyChoice.HARD, -1, 0)}
    with pytest.raises(MalformedStateError):
        gate.load(records, known_ids=["1"])


def test_load_and_reset(gate):
    records = {"1": DifficultyRecord(ReviewDifficultyChoice.HARD, 2, 1)}
    gate.load(records, known_ids=["1", "2"])
    assert gate.last_choice("1") is ReviewDifficultyChoice.HARD
    gate.reset()
    assert gate.records == {}


# ---------- Through the engine ----------


def fail_card(engine: LearnEngine, card_id: str, times: int) -> None:
    for _ in range(times):
        engine.submit_answer(card_id, "definitely wrong")


class TestEngineIntegration:
    @pytest.fixture
    def engine(self):
        return LearnEngine([Card("1", "cat", "con mèo"), Card("2", "dog", "con chó")])

    def test_meta_unknown_card(self, engine):
        assert engine.get_difficulty_meta("missing") is None
        assert engine.record_difficulty_choice("missing", "hard") is None

    def test_prompt_after_three_misses(self, engine):
        fail_card(engine, "1", 2)
        assert engine.get_difficulty_meta("1").should_prompt is False
        fail_card(engine, "1", 1)
        assert engine.get_difficulty_meta("1").should_prompt is True

    @pytest.mark.parametrize(
        "choice,gap",
        [
            (ReviewDifficultyChoice.VERY_HARD, 0),
            (ReviewDifficultyChoice.HARD, 1),
        ],
    )
    def test_choice_pulls_card_closer(self, engine, choice, gap):
        engine.submit_answer("1", "con mèo")
        engine.submit_answer("1", "con mèo")
        engine.submit_answer("1", "con mèo")  # mastery 3, due asked + 4
        engine.record_difficulty_choice("1", choice)
        assert engine.get_card_state("1").next_due == engine.asked + gap

    def test_again_and_normal_never_push_back(self, engine):
        engine.submit_answer("1", "wrong")  # due asked + 1
        before = engine.get_card_state("1").next_due

        engine.record_difficulty_choice("1", ReviewDifficultyChoice.AGAIN)
        assert engine.get_card_state("1").next_due == before

        engine.submit_answer("1", "wrong")
        engine.submit_answer("1", "wrong")
        engine.submit_answer("1", "wrong")
        before = engine.get_card_state("1").next_due
        engine.record_difficulty_choice("1", ReviewDifficultyChoice.NORMAL)
        assert engine.get_card_state("1").next_due == before

    def test_locked_rating_raises_and_keeps_state(self, engine):
        fail_card(engine, "1", 3)
        engine.record_difficulty_choice("1", "hard")
        before = engine.serialize()

        with pytest.raises(RatingLockedError):
            engine.record_difficulty_choice("1", "veryHard")
        assert engine.serialize() == before

    def test_rating_survives_serialize_restore(self, engine):
        fail_card(engine, "1", 3)
        engine.record_difficulty_choice("1", "hard")

        twin = LearnEngine(engine.cards)
        twin.restore(engine.serialize())
        meta = twin.get_difficulty_meta("1")
        assert meta.last_choice is ReviewDifficultyChoice.HARD
        assert meta.can_adjust is False
