# Application Learn Package
from .difficulty_gate import ReviewDifficultyGate
from .engine import LearnEngine
from .progress import CardProgressRow, ProgressCalculator, ProgressDetailed, ProgressSummary
from .session_service import SessionContext, SessionService

__all__ = [
    "CardProgressRow",
    "LearnEngine",
    "ProgressCalculator",
    "ProgressDetailed",
    "ProgressSummary",
    "ReviewDifficultyGate",
    "SessionContext",
    "SessionService",
]
