"""Centralized constants for SmartLearn.

All scheduling and grading policy numbers live here so every layer
imports from a single source of truth.
"""

# ---------- Mastery ----------
MAX_MASTERY = 5
MODE_THRESHOLD = 2  # mastery >= threshold => typed recall

# ---------- Multiple choice ----------
MC_OPTIONS = 4  # correct answer + distractors

# ---------- Scheduling (session-relative positions) ----------
SPACING_BASE = 2  # gap after a success = SPACING_BASE ** (mastery - 1)
INCORRECT_REQUEUE_GAP = 1
SKIP_REQUEUE_GAP = 1

# ---------- Typo tolerance ----------
FUZZY_SHORT_DISTANCE = 1
FUZZY_LONG_DISTANCE = 2
FUZZY_LENGTH_CUTOFF = 8  # answers shorter than this use FUZZY_SHORT_DISTANCE
FUZZY_MIN_LENGTH = 3  # shorter answers must match exactly (after loose normalization)

# ---------- Difficulty rating gate ----------
PROMPT_WRONG_STREAK = 3
PROMPT_WRONG_COUNT = 4
UNLOCK_AFTER_QUESTIONS = 3

# Positions after "now" a rated card is pulled to. None keeps the schedule.
CHOICE_OFFSETS: dict[str, int | None] = {
    "veryHard": 0,
    "hard": 1,
    "again": 3,
    "normal": None,
}

# ---------- Progress ----------
RECENT_MS_WINDOW = 50

# ---------- Persistence ----------
SNAPSHOT_VERSION = 1
