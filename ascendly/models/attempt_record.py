"""
Per (account, question) attempt history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class AttemptRecord:
    """
    Attempt bookkeeping for one account on one question.

    Attributes:
        account_id: Account that answered
        question_id: Question identifier
        attempts: Total answers submitted
        correct_attempts: Correct answers submitted (never above attempts)
        streak: Consecutive correct answers, reset by any incorrect one
        correct_timestamps: ISO timestamps of correct answers, oldest first
        last_attempt_timestamp: ISO timestamp of the latest answer
        last_is_correct: Whether the latest answer was correct
        time_spent_seconds: Total time spent across all attempts
    """

    account_id: str
    question_id: str
    attempts: int = 0
    correct_attempts: int = 0
    streak: int = 0
    correct_timestamps: List[str] = field(default_factory=list)
    last_attempt_timestamp: Optional[str] = None
    last_is_correct: Optional[bool] = None
    time_spent_seconds: float = 0.0

    @property
    def accuracy(self) -> float:
        """Share of attempts answered correctly (0 when never attempted)."""
        return self.correct_attempts / self.attempts if self.attempts else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "question_id": self.question_id,
            "attempts": self.attempts,
            "correct_attempts": self.correct_attempts,
            "streak": self.streak,
            "correct_timestamps": list(self.correct_timestamps),
            "last_attempt_timestamp": self.last_attempt_timestamp,
            "last_is_correct": self.last_is_correct,
            "time_spent_seconds": self.time_spent_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttemptRecord":
        return cls(
            account_id=data["account_id"],
            question_id=data["question_id"],
            attempts=int(data.get("attempts", 0)),
            correct_attempts=int(data.get("correct_attempts", 0)),
            streak=int(data.get("streak", 0)),
            correct_timestamps=list(data.get("correct_timestamps", [])),
            last_attempt_timestamp=data.get("last_attempt_timestamp"),
            last_is_correct=data.get("last_is_correct"),
            time_spent_seconds=float(data.get("time_spent_seconds", 0.0)),
        )
