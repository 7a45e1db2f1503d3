"""SmartLearn: rule-based adaptive flashcard review engine."""

__version__ = "0.1.0"
