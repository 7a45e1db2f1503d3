from smartlearn.application.learn.engine import LearnEngine
from smartlearn.application.learn.progress import ProgressCalculator
from smartlearn.domain.learn.models import Card


def test_summary_fresh_engine(engine):
    s = ProgressCalculator().summary(engine)
    assert s.total == 6
    assert s.mastered == 0
    assert s.learning == 0
    assert s.fresh == 6
    assert s.due == 6
    assert s.percent_mastered == 0.0
    assert s.accuracy_overall == 0.0
    assert s.avg_ms_recent is None


def test_summary_after_answers(engine):
    engine.submit_answer("1", "con mèo", ms=1000)
    engine.submit_answer("2", "nope", ms=2000)
    engine.submit_answer("3", None)

    s = ProgressCalculator().summary(engine)
    assert s.fresh == 3
    assert s.learning == 3
    assert s.accuracy_overall == 0.5
    assert s.avg_ms_recent == 1500


def test_summary_empty_deck():
    s = ProgressCalculator().summary(LearnEngine([]))
    assert s.total == 0
    assert s.percent_mastered == 0.0


def test_detailed_levels():
    engine = LearnEngine([Card("1", "cat", "con mèo"), Card("2", "dog", "con chó")])
    for _ in range(5):
        engine.submit_answer("1", "con mèo")

    detailed = ProgressCalculator().detailed(engine)
    assert detailed.summary.mastered == 1
    assert detailed.summary.percent_mastered == 50.0
    assert len(detailed.levels) == 6
    assert detailed.levels[0].count == 1
    assert detailed.levels[5].count == 1
    assert detailed.levels[5].percent == 50.0


def test_card_rows(engine):
    engine.submit_answer("4", "nope")
    rows = ProgressCalculator().card_rows(engine)
    assert [r.id for r in rows] == ["1", "2", "3", "4", "5", "6"]
    row = rows[3]
    assert row.front == "fish"
    assert row.wrong_count == 1
    assert row.seen_count == 1
