"""
Scoring engine.

- points: per-question award (attempt multiplier, speed bonus, mastery penalty)
- session: session bonus, streak multiplier, daily cap
- decay: time-based leaderboard decay
- attempts: AttemptCounter bookkeeping
"""

from .attempts import AttemptCounter
from .decay import DecayResult, apply_decay
from .points import QuestionScore, calculate_question_points
from .session import SessionScore, calculate_session_bonus

__all__ = [
    "AttemptCounter",
    "DecayResult",
    "apply_decay",
    "QuestionScore",
    "calculate_question_points",
    "SessionScore",
    "calculate_session_bonus",
]
