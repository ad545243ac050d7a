"""
Ascendly scoring engine.

Turns answer events into points, applies session bonuses and the daily cap,
decays leaderboard scores over time, and keeps resumable quiz progress
consistent across interrupted sessions.
"""

from .leaderboard import Leaderboard, LeaderboardEntry
from .quiz_session import AnswerOutcome, InvalidTransitionError, QuizSession, QuizState

__version__ = "0.1.0"

__all__ = [
    "Leaderboard",
    "LeaderboardEntry",
    "AnswerOutcome",
    "InvalidTransitionError",
    "QuizSession",
    "QuizState",
]
