"""
Leaderboard: committing session points and ranking students.

Committing follows a fixed order: decay the stored balance, move the decay
timestamp to now, then add the new points. Adding first would decay points
the player just earned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .models import Account
from .scoring.decay import apply_decay
from .storage import Store
from .utils.clock import Timestamp, to_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    account_id: str
    username: str
    score: int
    streak: int


class Leaderboard:
    """Account score updates and class rankings on top of a ``Store``."""

    def __init__(self, store: Store):
        self.store = store

    def _require_account(self, account_id: str) -> Account:
        account = self.store.get_account(account_id)
        if account is None:
            raise ValueError(f"Account {account_id} not found")
        return account

    def decay_scores(self, account: Account, now: Optional[Timestamp] = None) -> Account:
        """
        Decay every class score of ``account`` in place.

        The decay timestamp is shared by all classes, so all of them are
        brought up to ``now`` together, and the timestamp is then set to
        ``now`` whether or not a full day had passed.
        """
        for class_name, score in list(account.class_scores.items()):
            result = apply_decay(score, account.last_decay_timestamp, now)
            if result.new_score != score:
                logger.info(
                    "Decayed %s '%s' score %d -> %d over %.2f day(s)",
                    account.account_id,
                    class_name,
                    score,
                    result.new_score,
                    result.days_since_decay,
                )
            account.class_scores[class_name] = result.new_score

        account.last_decay_timestamp = to_iso(now)
        return account

    def commit_session_points(
        self,
        account_id: str,
        class_name: str,
        points: int,
        now: Optional[Timestamp] = None,
    ) -> Account:
        """
        Credit a finalized session to an account.

        The play streak is updated for every finalized session. When
        ``points`` is positive the stored scores are decayed first, then the
        points are added to the class score and to today's bucket.

        Returns:
            The updated account (already persisted)
        """
        now = to_iso(now)
        account = self._require_account(account_id)
        if not account.is_enrolled(class_name):
            raise ValueError(f"Account {account_id} is not enrolled in '{class_name}'")

        account.record_play_day(now)

        if points > 0:
            self.decay_scores(account, now)
            account.set_class_score(class_name, account.class_score(class_name) + points)
            account.add_daily_points(points, now)

        self.store.update_account_score_and_daily_points(account)
        logger.info(
            "Committed %d point(s) to %s in '%s' (score=%d, streak=%d)",
            points,
            account_id,
            class_name,
            account.class_score(class_name),
            account.streak,
        )
        return account

    def daily_points_earned(self, account_id: str, now: Optional[Timestamp] = None) -> int:
        return self._require_account(account_id).daily_points_for(now)

    def total_score(self, account_id: str) -> int:
        return self._require_account(account_id).total_score()

    def rankings(self, class_name: str) -> List[LeaderboardEntry]:
        """
        Students enrolled in ``class_name``, best score first.

        Equal scores share a rank (1, 2, 2, 4) and are ordered by username.
        """
        students = [
            a
            for a in self.store.list_accounts()
            if a.role == "student" and a.is_enrolled(class_name)
        ]
        students.sort(key=lambda a: (-a.class_score(class_name), a.username))

        entries: List[LeaderboardEntry] = []
        for position, account in enumerate(students, start=1):
            score = account.class_score(class_name)
            if entries and entries[-1].score == score:
                rank = entries[-1].rank
            else:
                rank = position
            entries.append(
                LeaderboardEntry(
                    rank=rank,
                    account_id=account.account_id,
                    username=account.username,
                    score=score,
                    streak=account.streak,
                )
            )
        return entries
