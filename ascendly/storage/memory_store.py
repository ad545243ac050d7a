"""
In-memory store.

Serves as the local, lower-durability tier behind ``FallbackStore`` and as
the store used in tests. Records are kept in serialized form so callers can
never mutate stored state through a returned object.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

from ..models import Account, AttemptRecord, QuizProgress, QuizResult
from .base import Store, StoreError, merge_scoring_fields


class InMemoryStore(Store):
    """Dict-backed ``Store``. Thread-safe; all access holds a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._accounts: Dict[str, dict] = {}
        self._attempts: Dict[Tuple[str, str], dict] = {}
        self._progress: Dict[Tuple[str, str, str], dict] = {}
        self._results: List[dict] = []

    def get_attempt_record(self, account_id, question_id):
        with self._lock:
            data = self._attempts.get((account_id, question_id))
        return AttemptRecord.from_dict(data) if data else None

    def upsert_attempt_record(self, record):
        with self._lock:
            self._attempts[(record.account_id, record.question_id)] = record.to_dict()

    def list_attempt_records(self, account_id):
        with self._lock:
            rows = [d for (acc, _), d in self._attempts.items() if acc == account_id]
        return [AttemptRecord.from_dict(d) for d in rows]

    def get_quiz_progress(self, account_id, class_name, unit):
        with self._lock:
            data = self._progress.get((account_id, class_name, unit))
        return QuizProgress.from_dict(data) if data else None

    def upsert_quiz_progress(self, progress):
        with self._lock:
            self._progress[progress.key] = progress.to_dict()

    def delete_quiz_progress(self, account_id, class_name, unit):
        with self._lock:
            self._progress.pop((account_id, class_name, unit), None)

    def append_quiz_result(self, result):
        with self._lock:
            self._results.append(result.to_dict())

    def list_quiz_results(self, account_id):
        with self._lock:
            rows = [d for d in self._results if d["account_id"] == account_id]
        results = [QuizResult.from_dict(d) for d in rows]
        results.sort(key=lambda r: r.timestamp, reverse=True)
        return results

    def get_account(self, account_id) -> Optional[Account]:
        with self._lock:
            data = self._accounts.get(account_id)
        return Account.from_dict(data) if data else None

    def upsert_account(self, account):
        with self._lock:
            self._accounts[account.account_id] = account.to_dict()

    def update_account_score_and_daily_points(self, account):
        with self._lock:
            data = self._accounts.get(account.account_id)
            if data is None:
                raise StoreError(f"Account {account.account_id} not found")
            merged = merge_scoring_fields(Account.from_dict(data), account)
            self._accounts[account.account_id] = merged.to_dict()

    def list_accounts(self):
        with self._lock:
            rows = list(self._accounts.values())
        return [Account.from_dict(d) for d in rows]
