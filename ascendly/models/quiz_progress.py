"""
Quiz progress and quiz result records.

QuizProgress is the resumable, mutable state of one live quiz
(account x class x unit). QuizResult is the immutable history entry written
when a quiz is completed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set, Tuple

from ..utils.clock import to_iso


ProgressKey = Tuple[str, str, str]


@dataclass
class QuizProgress:
    """
    In-progress quiz state.

    Attributes:
        account_id: Account taking the quiz
        class_name: Class the quiz belongs to
        unit: Unit within the class
        current_index: Index of the question on screen
        correct_answers: Correct answers across the whole quiz (all sittings)
        answered_questions: Indices answered at least once
        points_earned: Question points of the current sitting, not yet committed
        session_correct_answers: Correct answers in the current sitting
        session_total_answered: Answers submitted in the current sitting
        updated_at: ISO timestamp of the last save
    """

    account_id: str
    class_name: str
    unit: str
    current_index: int = 0
    correct_answers: int = 0
    answered_questions: Set[int] = field(default_factory=set)
    points_earned: int = 0
    session_correct_answers: int = 0
    session_total_answered: int = 0
    updated_at: Optional[str] = None

    @property
    def key(self) -> ProgressKey:
        return (self.account_id, self.class_name, self.unit)

    def reset_session_totals(self) -> None:
        """Zero the per-sitting counters once their points have been committed."""
        self.points_earned = 0
        self.session_correct_answers = 0
        self.session_total_answered = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "class_name": self.class_name,
            "unit": self.unit,
            "current_index": self.current_index,
            "correct_answers": self.correct_answers,
            "answered_questions": sorted(self.answered_questions),
            "points_earned": self.points_earned,
            "session_correct_answers": self.session_correct_answers,
            "session_total_answered": self.session_total_answered,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizProgress":
        return cls(
            account_id=data["account_id"],
            class_name=data["class_name"],
            unit=data["unit"],
            current_index=int(data.get("current_index", 0)),
            correct_answers=int(data.get("correct_answers", 0)),
            answered_questions=set(data.get("answered_questions", [])),
            points_earned=int(data.get("points_earned", 0)),
            session_correct_answers=int(data.get("session_correct_answers", 0)),
            session_total_answered=int(data.get("session_total_answered", 0)),
            updated_at=data.get("updated_at"),
        )


@dataclass(frozen=True)
class QuizResult:
    """Completed quiz session. Append-only, never mutated."""

    account_id: str
    class_name: str
    unit: str
    score: int
    total_questions: int
    points_earned: int
    timestamp: str = field(default_factory=to_iso)

    @property
    def percent(self) -> float:
        return 100 * self.score / self.total_questions if self.total_questions else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "class_name": self.class_name,
            "unit": self.unit,
            "score": self.score,
            "total_questions": self.total_questions,
            "points_earned": self.points_earned,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizResult":
        return cls(
            account_id=data["account_id"],
            class_name=data["class_name"],
            unit=data["unit"],
            score=int(data["score"]),
            total_questions=int(data["total_questions"]),
            points_earned=int(data.get("points_earned", 0)),
            timestamp=data["timestamp"],
        )
