"""Keep Quizlet flashcard sets in step with a Google Sheets vocabulary list."""

__version__ = "1.0.0"
