"""
Persistence contract used by the scoring engine.

The engine never talks to a database directly; it is handed a ``Store``.
Implementations raise ``StoreError`` for any failure of the underlying
medium so that a resilience policy (see ``FallbackStore``) can react to a
single exception type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Account, AttemptRecord, QuizProgress, QuizResult
from ..utils.clock import to_datetime


class StoreError(Exception):
    """A persistence operation failed (I/O, corrupt data, unreachable backend)."""


class Store(ABC):
    """Abstract storage capability for accounts, attempts, progress and results."""

    # ==================== Attempt records ====================

    @abstractmethod
    def get_attempt_record(
        self, account_id: str, question_id: str
    ) -> Optional[AttemptRecord]:
        """Attempt record for the pair, or None if never answered."""

    @abstractmethod
    def upsert_attempt_record(self, record: AttemptRecord) -> None:
        """Create or replace an attempt record."""

    @abstractmethod
    def list_attempt_records(self, account_id: str) -> List[AttemptRecord]:
        """All attempt records of an account."""

    # ==================== Quiz progress ====================

    @abstractmethod
    def get_quiz_progress(
        self, account_id: str, class_name: str, unit: str
    ) -> Optional[QuizProgress]:
        """Live progress for the quiz, or None."""

    @abstractmethod
    def upsert_quiz_progress(self, progress: QuizProgress) -> None:
        """Create or replace the progress record of a quiz."""

    @abstractmethod
    def delete_quiz_progress(self, account_id: str, class_name: str, unit: str) -> None:
        """Delete the progress record (no-op if absent)."""

    # ==================== Quiz results ====================

    @abstractmethod
    def append_quiz_result(self, result: QuizResult) -> None:
        """Append a completed-quiz record."""

    @abstractmethod
    def list_quiz_results(self, account_id: str) -> List[QuizResult]:
        """Quiz history of an account, newest first."""

    # ==================== Accounts ====================

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Account by ID, or None."""

    @abstractmethod
    def upsert_account(self, account: Account) -> None:
        """Create or replace a whole account."""

    @abstractmethod
    def update_account_score_and_daily_points(self, account: Account) -> None:
        """
        Persist the scoring fields of an existing account.

        Writes class scores, daily points, streak, last quiz date and decay
        timestamp; enrollment and identity fields are left as stored.

        Raises:
            StoreError: If the account does not exist or the write fails
        """

    @abstractmethod
    def list_accounts(self) -> List[Account]:
        """Every stored account."""


SCORING_FIELDS = (
    "class_scores",
    "daily_points",
    "streak",
    "last_quiz_date",
    "last_decay_timestamp",
)


def merge_scoring_fields(stored: Account, update: Account) -> Account:
    """Copy the scoring fields of ``update`` onto ``stored``."""
    data = stored.to_dict()
    incoming = update.to_dict()
    for name in SCORING_FIELDS:
        data[name] = incoming[name]
    # Scores for classes the stored account has left are dropped.
    data["class_scores"] = {
        k: v for k, v in data["class_scores"].items() if k in data["classes"]
    }
    return Account.from_dict(data)


def merge_attempt_records(
    stored: Optional[AttemptRecord],
    previous: Optional[AttemptRecord],
    update: AttemptRecord,
) -> AttemptRecord:
    """
    Apply the answers recorded between ``previous`` and ``update`` onto ``stored``.

    ``previous`` is what the writer saw before recording (None for a record
    it created), so only the answers it added are replayed and the history
    already held by ``stored`` is kept.
    """
    if stored is None:
        return AttemptRecord.from_dict(update.to_dict())

    base = previous or AttemptRecord(update.account_id, update.question_id)
    new_attempts = max(0, update.attempts - base.attempts)
    new_correct = max(0, update.correct_attempts - base.correct_attempts)

    merged = AttemptRecord.from_dict(stored.to_dict())
    merged.attempts += new_attempts
    merged.correct_attempts += new_correct
    known = set(merged.correct_timestamps)
    merged.correct_timestamps.extend(
        ts for ts in update.correct_timestamps if ts not in known
    )
    merged.correct_timestamps.sort(key=to_datetime)
    merged.time_spent_seconds += max(
        0.0, update.time_spent_seconds - base.time_spent_seconds
    )
    if new_attempts:
        # An incorrect answer among the new ones restarted the streak
        if new_correct == new_attempts:
            merged.streak += new_correct
        else:
            merged.streak = update.streak
        merged.last_attempt_timestamp = update.last_attempt_timestamp
        merged.last_is_correct = update.last_is_correct
    return merged
