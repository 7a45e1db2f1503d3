"""Error taxonomy for the review engine and its collaborators."""


class LearnError(Exception):
    """Base class for all recoverable SmartLearn errors."""


class MalformedStateError(LearnError):
    """
    A snapshot failed validation on restore.

    Callers should discard the snapshot and start a fresh engine.
    """


class RatingLockedError(LearnError):
    """A difficulty rating was submitted while the gate is locked."""

    def __init__(self, card_id: str):
        super().__init__(f"Difficulty rating for card {card_id!r} is locked")
        self.card_id = card_id


class NotFoundError(LearnError):
    """A library or its card set is missing or inaccessible."""
