"""
Session-level bonuses and the daily earnings cap.

At the end of a quiz sitting the summed question points receive an accuracy
bonus (only above the threshold), a play-streak multiplier, and are then
clamped to whatever is left of the account's daily allowance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import ScoringConfig, config
from ..utils.clock import round_half_up


@dataclass(frozen=True)
class SessionScore:
    """Final award of a quiz sitting and how it was built."""

    question_points: int
    accuracy_bonus: int
    streak_multiplier: float
    total_before_cap: int
    daily_cap_applied: bool
    final_session_points: int

    def format_breakdown(self) -> str:
        breakdown = f"{self.question_points} question pts"
        if self.accuracy_bonus > 0:
            breakdown += f" + {self.accuracy_bonus} accuracy bonus"
        if self.streak_multiplier > 1:
            breakdown += f" x {self.streak_multiplier:.2f} streak"
        if self.daily_cap_applied:
            breakdown += " (capped)"
        return breakdown


def calculate_accuracy_bonus(
    question_points_total: int,
    correct_answers: int,
    total_answered: int,
    rules: Optional[ScoringConfig] = None,
) -> int:
    """Bonus proportional to how far accuracy exceeds the threshold; 0 below it."""
    rules = rules or config.scoring
    accuracy = correct_answers / total_answered if total_answered > 0 else 0.0
    if accuracy <= rules.accuracy_bonus_threshold:
        return 0
    above = accuracy - rules.accuracy_bonus_threshold
    return round_half_up(question_points_total * above * rules.accuracy_bonus_multiplier)


def calculate_streak_multiplier(
    streak_days: int, rules: Optional[ScoringConfig] = None
) -> float:
    """``1 + min(days x 2%, 40%)``."""
    rules = rules or config.scoring
    bonus = min(max(0, streak_days) * rules.streak_bonus_per_day, rules.max_streak_bonus)
    return 1 + bonus


def calculate_session_bonus(
    question_points_total: int,
    correct_answers: int,
    total_answered: int,
    current_streak_days: int,
    daily_points_already_earned: int,
    rules: Optional[ScoringConfig] = None,
) -> SessionScore:
    """
    Combine a sitting's question points into its final award.

    Args:
        question_points_total: Sum of per-question final points
        correct_answers: Correct answers in the sitting
        total_answered: Answers submitted in the sitting
        current_streak_days: Account's consecutive-day play streak
        daily_points_already_earned: Points already earned today
        rules: Scoring constants (default: config.scoring)

    Returns:
        SessionScore; ``final_session_points`` is what should be committed
    """
    rules = rules or config.scoring

    accuracy_bonus = calculate_accuracy_bonus(
        question_points_total, correct_answers, total_answered, rules
    )
    streak_multiplier = calculate_streak_multiplier(current_streak_days, rules)
    total_before_cap = round_half_up(
        (question_points_total + accuracy_bonus) * streak_multiplier
    )

    remaining = max(0, rules.daily_points_cap - daily_points_already_earned)
    final_session_points = max(0, min(total_before_cap, remaining))

    return SessionScore(
        question_points=question_points_total,
        accuracy_bonus=accuracy_bonus,
        streak_multiplier=streak_multiplier,
        total_before_cap=total_before_cap,
        daily_cap_applied=total_before_cap > remaining,
        final_session_points=final_session_points,
    )
