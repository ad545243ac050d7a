"""
Data models for the scoring engine.

This module contains core data models:
- Account: Per-class scores, daily points, play streak, decay timestamp
- AttemptRecord: Per-question attempt and correct-answer history
- QuizProgress: Resumable state of a live quiz
- QuizResult: Immutable record of a completed quiz
"""

from .account import Account
from .attempt_record import AttemptRecord
from .quiz_progress import QuizProgress, QuizResult

__all__ = [
    "Account",
    "AttemptRecord",
    "QuizProgress",
    "QuizResult",
]
