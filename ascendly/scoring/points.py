"""
Per-question point awards.

    final = round(base x attempt_multiplier x (1 + speed_bonus) x (1 - mastery_penalty))

- Attempt multiplier: full points on the first try, half on the second,
  nothing afterwards.
- Speed bonus: up to +20%, shrinking linearly to 0 at the expected duration.
- Mastery penalty: -15% for every correct answer to the same question in the
  last 30 days, capped at -50%, so farming a mastered question pays little.

Everything here is pure. Rounding happens once, on the final product.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Optional

from ..config import ScoringConfig, config
from ..utils.clock import Timestamp, round_half_up, to_datetime


@dataclass(frozen=True)
class QuestionScore:
    """Point award for one answer and how it was built."""

    base_points: int
    attempt_multiplier: float
    speed_bonus: float
    mastery_penalty: float
    final_points: int

    def format_breakdown(self) -> str:
        """Short human-readable breakdown, e.g. ``10 base x 1.10 speed``."""
        if self.attempt_multiplier == 0:
            return "No points (3rd+ attempt)"

        breakdown = f"{self.base_points} base"
        if self.attempt_multiplier < 1:
            breakdown += f" x {self.attempt_multiplier:g} (2nd attempt)"
        if self.speed_bonus > 0:
            breakdown += f" x {1 + self.speed_bonus:.2f} speed"
        if self.mastery_penalty > 0:
            breakdown += f" x {1 - self.mastery_penalty:.2f} mastery"
        return breakdown


def get_attempt_multiplier(
    attempt_ordinal: int, rules: Optional[ScoringConfig] = None
) -> float:
    """1.0 for the first attempt, reduced for the second, 0 otherwise."""
    rules = rules or config.scoring
    if attempt_ordinal == 1:
        return 1.0
    if attempt_ordinal == 2:
        return rules.second_attempt_multiplier
    return 0.0


def calculate_speed_bonus(
    elapsed_seconds: float, rules: Optional[ScoringConfig] = None
) -> float:
    """
    Linear speed bonus in ``[0, max_speed_bonus]``.

    Full bonus at 0 seconds, none at or beyond the expected duration.
    Negative elapsed times count as 0.
    """
    rules = rules or config.scoring
    elapsed = max(0.0, float(elapsed_seconds))
    expected = rules.expected_time_seconds
    if elapsed >= expected:
        return 0.0
    return (expected - elapsed) / expected * rules.max_speed_bonus


def count_recent_corrects(
    correct_timestamps: Iterable[Timestamp],
    now: Optional[Timestamp] = None,
    rules: Optional[ScoringConfig] = None,
) -> int:
    """Correct answers strictly newer than ``now - mastery_window_days``."""
    rules = rules or config.scoring
    cutoff = to_datetime(now) - timedelta(days=rules.mastery_window_days)
    return sum(1 for ts in correct_timestamps if to_datetime(ts) > cutoff)


def calculate_mastery_penalty(
    recent_correct_timestamps: Iterable[Timestamp],
    now: Optional[Timestamp] = None,
    rules: Optional[ScoringConfig] = None,
) -> float:
    """Penalty in ``[0, max_mastery_penalty]`` from recent correct answers."""
    rules = rules or config.scoring
    recent = count_recent_corrects(recent_correct_timestamps, now, rules)
    if recent == 0:
        return 0.0
    return min(recent * rules.mastery_penalty_per_correct, rules.max_mastery_penalty)


def calculate_question_points(
    is_correct: bool,
    attempt_ordinal: int,
    elapsed_seconds: float,
    recent_correct_timestamps: Iterable[Timestamp] = (),
    now: Optional[Timestamp] = None,
    rules: Optional[ScoringConfig] = None,
) -> QuestionScore:
    """
    Score a single answer.

    Args:
        is_correct: Whether the answer was correct
        attempt_ordinal: 1-based attempt count including this answer
        elapsed_seconds: Time taken to answer
        recent_correct_timestamps: Correct-answer history of this question
            *before* this answer
        now: Reference time for the mastery window (default: current time)
        rules: Scoring constants (default: config.scoring)

    Returns:
        QuestionScore with every factor and the rounded final points
    """
    rules = rules or config.scoring
    base = rules.base_points

    if not is_correct:
        return QuestionScore(base, 0.0, 0.0, 0.0, 0)

    attempt_multiplier = get_attempt_multiplier(attempt_ordinal, rules)
    if attempt_multiplier == 0:
        return QuestionScore(base, 0.0, 0.0, 0.0, 0)

    speed_bonus = calculate_speed_bonus(elapsed_seconds, rules)
    mastery_penalty = calculate_mastery_penalty(recent_correct_timestamps, now, rules)

    final_points = round_half_up(
        base * attempt_multiplier * (1 + speed_bonus) * (1 - mastery_penalty)
    )
    return QuestionScore(
        base_points=base,
        attempt_multiplier=attempt_multiplier,
        speed_bonus=speed_bonus,
        mastery_penalty=mastery_penalty,
        final_points=max(0, final_points),
    )
