"""
Time-based leaderboard decay.

A weekly rate (2%) is spread into an equivalent daily rate and compounded
over the fractional number of days since the last decay pass. Nothing
happens until a full day has elapsed, which makes repeated calls within a
day idempotent.

Decay has to be applied, and the account's decay timestamp moved to now,
before new points are added; otherwise fresh points would be decayed too.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import ScoringConfig, config
from ..utils.clock import Timestamp, days_between, round_half_up


@dataclass(frozen=True)
class DecayResult:
    new_score: int
    days_since_decay: float


def decay_factor(days: float, rules: Optional[ScoringConfig] = None) -> float:
    """Multiplier in ``(0, 1]`` for ``days`` of elapsed time."""
    rules = rules or config.scoring
    return (1 - rules.daily_decay_rate) ** max(0.0, days)


def apply_decay(
    current_score: int,
    last_decay_timestamp: Optional[Timestamp],
    now: Optional[Timestamp] = None,
    rules: Optional[ScoringConfig] = None,
) -> DecayResult:
    """
    Decay a stored score for the time elapsed since the last decay pass.

    Args:
        current_score: Stored leaderboard score
        last_decay_timestamp: When decay last ran (None: never, no decay)
        now: Reference time (default: current time)
        rules: Scoring constants (default: config.scoring)

    Returns:
        DecayResult with the new score and the elapsed days
    """
    rules = rules or config.scoring
    score = max(0, int(current_score))

    if last_decay_timestamp is None:
        return DecayResult(score, 0.0)

    days = days_between(last_decay_timestamp, now)
    if days < rules.decay_min_days:
        return DecayResult(score, days)

    return DecayResult(round_half_up(score * decay_factor(days, rules)), days)
