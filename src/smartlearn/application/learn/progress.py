"""
Progress calculator for deriving session summaries from engine state.

This is a pure computation module with no I/O.
"""

from dataclasses import dataclass

from smartlearn.application.learn.engine import LearnEngine


@dataclass
class ProgressSummary:
    """Headline numbers for a session."""

    total: int
    mastered: int
    learning: int
    fresh: int  # never answered
    due: int
    percent_mastered: float  # 0..100, one decimal
    accuracy_overall: float  # 0..1
    avg_ms_recent: int | None


@dataclass
class MasteryLevel:
    count: int
    percent: float


@dataclass
class ProgressDetailed:
    summary: ProgressSummary
    levels: list[MasteryLevel]  # index == mastery level


@dataclass
class CardProgressRow:
    id: str
    front: str
    back: str
    mastery: int
    seen_count: int
    wrong_count: int
    next_due: int


class ProgressCalculator:
    """
    Computes progress views from a LearnEngine.

    Stateless and side-effect free.
    """

    def summary(self, engine: LearnEngine) -> ProgressSummary:
        states = engine.all_card_states()
        total = len(states)
        mastered = sum(1 for s in states if engine.is_mastered(s))
        fresh = sum(1 for s in states if s.seen_count == 0 and not engine.is_mastered(s))
        learning = total - mastered - fresh
        due = sum(1 for s in states if s.next_due <= engine.asked)

        recent = engine.recent_ms
        avg_ms = round(sum(recent) / len(recent)) if recent else None

        return ProgressSummary(
            total=total,
            mastered=mastered,
            learning=learning,
            fresh=fresh,
            due=due,
            percent_mastered=self._percent(mastered, total),
            accuracy_overall=self._accuracy(engine),
            avg_ms_recent=avg_ms,
        )

    def detailed(self, engine: LearnEngine) -> ProgressDetailed:
        states = engine.all_card_states()
        total = len(states)
        counts = [0] * (engine.params.max_mastery + 1)
        for s in states:
            counts[min(max(s.mastery, 0), engine.params.max_mastery)] += 1

        return ProgressDetailed(
            summary=self.summary(engine),
            levels=[MasteryLevel(count=c, percent=self._percent(c, total)) for c in counts],
        )

    def card_rows(self, engine: LearnEngine) -> list[CardProgressRow]:
        rows = []
        for card, state in zip(engine.cards, engine.all_card_states()):
            rows.append(
                CardProgressRow(
                    id=card.id,
                    front=card.front,
                    back=card.back,
                    mastery=state.mastery,
                    seen_count=state.seen_count,
                    wrong_count=state.wrong_count,
                    next_due=state.next_due,
                )
            )
        return rows

    def _percent(self, part: int, total: int) -> float:
        if total == 0:
            return 0.0
        return round(part / total * 100, 1)

    def _accuracy(self, engine: LearnEngine) -> float:
        answered = engine.correct + engine.incorrect
        if answered == 0:
            return 0.0
        return engine.correct / answered
