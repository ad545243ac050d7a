"""
Attempt bookkeeping per (account, question).
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..models import AttemptRecord
from ..storage import Store
from ..utils.clock import Timestamp, to_iso

logger = logging.getLogger(__name__)


class AttemptCounter:
    """
    Records answers and hands out attempt ordinals.

    The ordinal returned by ``record_attempt`` is the 1-based count of
    answers this account has given to this question, including the one just
    recorded. It keeps growing forever; ordinals past the second simply earn
    no points downstream.
    """

    def __init__(self, store: Store):
        self.store = store

    def get_record(self, account_id: str, question_id: str) -> Optional[AttemptRecord]:
        return self.store.get_attempt_record(account_id, question_id)

    def attempt_count(self, account_id: str, question_id: str) -> int:
        record = self.get_record(account_id, question_id)
        return record.attempts if record else 0

    def correct_timestamps(self, account_id: str, question_id: str) -> List[str]:
        """
        Correct-answer history of the question.

        Read this before ``record_attempt`` so the answer being scored does
        not count against itself in the mastery penalty.
        """
        record = self.get_record(account_id, question_id)
        return list(record.correct_timestamps) if record else []

    def record_attempt(
        self,
        account_id: str,
        question_id: str,
        is_correct: bool,
        elapsed_seconds: float = 0.0,
        timestamp: Optional[Timestamp] = None,
    ) -> int:
        """
        Record one answer.

        Args:
            account_id: Account answering
            question_id: Question answered
            is_correct: Whether the answer was correct
            elapsed_seconds: Time taken (negative values count as 0)
            timestamp: When the answer was given (default: now)

        Returns:
            The attempt ordinal (new ``attempts`` value)
        """
        answered_at = to_iso(timestamp)
        record = self.get_record(account_id, question_id) or AttemptRecord(
            account_id=account_id, question_id=question_id
        )

        record.attempts += 1
        if is_correct:
            record.correct_attempts += 1
            record.streak += 1
            record.correct_timestamps.append(answered_at)
        else:
            record.streak = 0
        record.last_is_correct = bool(is_correct)
        record.last_attempt_timestamp = answered_at
        record.time_spent_seconds += max(0.0, float(elapsed_seconds))

        self.store.upsert_attempt_record(record)
        logger.debug(
            "Attempt %d on %s by %s (correct=%s, streak=%d)",
            record.attempts,
            question_id,
            account_id,
            is_correct,
            record.streak,
        )
        return record.attempts
