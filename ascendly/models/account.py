"""
Account: the leaderboard-facing slice of a user profile.

Holds per-class scores, the daily-points buckets used by the daily cap, the
consecutive-day play streak and the decay bookkeeping timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from ..utils.clock import Timestamp, day_key, previous_day_key, to_iso

Role = Literal["student", "teacher"]


@dataclass
class Account:
    """
    Account scoring state.

    Attributes:
        account_id: Unique identifier
        username: Login / display name
        role: ``student`` or ``teacher``
        classes: Enrolled class names
        class_scores: Class name -> leaderboard score (decay applied lazily)
        streak: Consecutive calendar days with a finalized quiz session
        last_quiz_date: ISO timestamp of the last finalized session
        last_decay_timestamp: ISO timestamp of the last decay pass
        daily_points: Day key (YYYY-MM-DD) -> points earned that day
        created_at: ISO timestamp of account creation
    """

    account_id: str
    username: str
    role: Role = "student"
    classes: List[str] = field(default_factory=list)
    class_scores: Dict[str, int] = field(default_factory=dict)
    streak: int = 0
    last_quiz_date: Optional[str] = None
    last_decay_timestamp: Optional[str] = None
    daily_points: Dict[str, int] = field(default_factory=dict)
    created_at: Optional[str] = None

    def __post_init__(self):
        for class_name in self.class_scores:
            if class_name not in self.classes:
                raise ValueError(
                    f"Account {self.account_id} has a score for '{class_name}' "
                    "but is not enrolled in it"
                )
        if self.created_at is None:
            self.created_at = to_iso()

    # ==================== Enrollment ====================

    def is_enrolled(self, class_name: str) -> bool:
        return class_name in self.classes

    def enroll(self, class_name: str) -> None:
        if class_name not in self.classes:
            self.classes.append(class_name)

    def unenroll(self, class_name: str) -> None:
        """Leave a class; its score goes with it."""
        if class_name in self.classes:
            self.classes.remove(class_name)
        self.class_scores.pop(class_name, None)

    # ==================== Scores ====================

    def class_score(self, class_name: str) -> int:
        return self.class_scores.get(class_name, 0)

    def total_score(self) -> int:
        """Sum of all class scores."""
        return sum(self.class_scores.values())

    def set_class_score(self, class_name: str, score: int) -> None:
        if not self.is_enrolled(class_name):
            raise ValueError(
                f"Account {self.account_id} is not enrolled in '{class_name}'"
            )
        self.class_scores[class_name] = max(0, int(score))

    # ==================== Daily points ====================

    def daily_points_for(self, now: Optional[Timestamp] = None) -> int:
        """Points already earned on the calendar day of ``now``."""
        return self.daily_points.get(day_key(now), 0)

    def add_daily_points(self, points: int, now: Optional[Timestamp] = None) -> int:
        """Add to today's bucket and return the new daily total."""
        key = day_key(now)
        self.daily_points[key] = self.daily_points.get(key, 0) + max(0, int(points))
        return self.daily_points[key]

    # ==================== Streak ====================

    def record_play_day(self, now: Optional[Timestamp] = None) -> int:
        """
        Update the day streak for a session finalized at ``now``.

        Playing on the day after the last session extends the streak, playing
        again on the same day leaves it alone, and any gap restarts it at 1.

        Returns:
            The updated streak
        """
        today = day_key(now)
        if self.last_quiz_date is None:
            self.streak = 1
        else:
            last_day = day_key(self.last_quiz_date)
            if last_day == previous_day_key(now):
                self.streak += 1
            elif last_day != today:
                self.streak = 1
            elif self.streak == 0:
                self.streak = 1
        self.last_quiz_date = to_iso(now)
        return self.streak

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "username": self.username,
            "role": self.role,
            "classes": list(self.classes),
            "class_scores": dict(self.class_scores),
            "streak": self.streak,
            "last_quiz_date": self.last_quiz_date,
            "last_decay_timestamp": self.last_decay_timestamp,
            "daily_points": dict(self.daily_points),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            account_id=data["account_id"],
            username=data["username"],
            role=data.get("role", "student"),
            classes=list(data.get("classes", [])),
            class_scores={k: int(v) for k, v in data.get("class_scores", {}).items()},
            streak=int(data.get("streak", 0)),
            last_quiz_date=data.get("last_quiz_date"),
            last_decay_timestamp=data.get("last_decay_timestamp"),
            daily_points={k: int(v) for k, v in data.get("daily_points", {}).items()},
            created_at=data.get("created_at"),
        )
