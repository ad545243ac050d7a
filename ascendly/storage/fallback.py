"""
Remote-first persistence with a local fallback tier.

``FallbackStore`` wraps two interchangeable stores. Every operation is tried
against the primary; when it raises ``StoreError`` the same logical operation
is performed on the fallback, so attempts, scores and progress are never
dropped, only held in a lower-durability tier. Writes that landed on the
fallback are queued and replayed onto the primary by ``reconcile()``.
Attempt records are merged into whatever the primary holds at replay time
rather than overwriting it, so history recorded before the outage survives.

A small circuit breaker stops hammering a primary that keeps failing: after
``failure_threshold`` consecutive failures the primary is skipped until
``reset_timeout_seconds`` have passed.
"""

from __future__ import annotations

import logging
import threading
import time
from copy import deepcopy
from typing import Any, Callable, List, Optional, Tuple

from ..config import config
from .base import Store, StoreError, merge_attempt_records

logger = logging.getLogger(__name__)

WRITE_OPERATIONS = frozenset(
    {
        "upsert_attempt_record",
        "upsert_quiz_progress",
        "delete_quiz_progress",
        "append_quiz_result",
        "upsert_account",
        "update_account_score_and_daily_points",
    }
)


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    States: closed (primary used), open (primary skipped), half-open (one
    trial call allowed after the timeout).
    """

    def __init__(
        self,
        failure_threshold: int,
        reset_timeout_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout_seconds = reset_timeout_seconds
        self._clock = clock
        self.failures = 0
        self.opened_at: Optional[float] = None

    @property
    def state(self) -> str:
        if self.opened_at is None:
            return "closed"
        if self._clock() - self.opened_at >= self.reset_timeout_seconds:
            return "half_open"
        return "open"

    def allow(self) -> bool:
        return self.state != "open"

    def record_success(self) -> None:
        if self.opened_at is not None:
            logger.info("Primary store recovered, closing circuit")
        self.failures = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failures += 1
        if self.state == "half_open" or self.failures >= self.failure_threshold:
            if self.opened_at is None:
                logger.warning(
                    "Primary store failed %d time(s), opening circuit for %.0fs",
                    self.failures,
                    self.reset_timeout_seconds,
                )
            self.opened_at = self._clock()


class FallbackStore(Store):
    """
    ``Store`` that prefers ``primary`` and degrades to ``fallback``.

    Usage:
        store = FallbackStore(JsonFileStore(), InMemoryStore())
        store.upsert_attempt_record(record)   # lands somewhere, never lost
        store.reconcile()                      # push queued writes to primary
    """

    def __init__(
        self,
        primary: Store,
        fallback: Store,
        failure_threshold: Optional[int] = None,
        reset_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.primary = primary
        self.fallback = fallback
        self.breaker = CircuitBreaker(
            failure_threshold or config.storage.failure_threshold,
            (
                reset_timeout_seconds
                if reset_timeout_seconds is not None
                else config.storage.reset_timeout_seconds
            ),
            clock=clock,
        )
        self._pending: List[Tuple[str, tuple]] = []
        self._lock = threading.RLock()

    @property
    def pending_writes(self) -> int:
        """Writes held in the fallback tier awaiting reconciliation."""
        with self._lock:
            return len(self._pending)

    def reconcile(self) -> int:
        """
        Replay queued fallback writes onto the primary, oldest first.

        Stops at the first failure; the rest stay queued.

        Returns:
            Number of writes applied
        """
        applied = 0
        with self._lock:
            while self._pending:
                name, args = self._pending[0]
                try:
                    self._replay(name, args)
                except StoreError as e:
                    logger.warning("Reconciliation stopped at %s: %s", name, e)
                    self.breaker.record_failure()
                    break
                self._pending.pop(0)
                applied += 1
            if applied:
                logger.info("Reconciled %d queued write(s) to primary store", applied)
        return applied

    def _replay(self, name: str, args: tuple) -> None:
        """Apply one queued write to the primary."""
        if name == "upsert_attempt_record":
            previous, record = args
            current = self.primary.get_attempt_record(record.account_id, record.question_id)
            self.primary.upsert_attempt_record(
                merge_attempt_records(current, previous, record)
            )
        else:
            getattr(self.primary, name)(*args)

    def _queue(self, name: str, args: tuple) -> None:
        """Perform a write on the fallback and queue it for the primary."""
        if name == "upsert_attempt_record":
            (record,) = args
            previous = self.fallback.get_attempt_record(record.account_id, record.question_id)
            self.fallback.upsert_attempt_record(record)
            self._pending.append((name, (previous, deepcopy(record))))
        else:
            getattr(self.fallback, name)(*args)
            self._pending.append((name, deepcopy(args)))

    def _drain(self) -> bool:
        """True once nothing is left queued for the primary."""
        if self._pending:
            self.reconcile()
        return not self._pending

    def _mirror(self, name: str, args: tuple, result: Any) -> None:
        """
        Keep the fallback tier warm with what the primary returned or accepted.

        The fallback can then answer reads for records it never saw written
        while the primary is unreachable.
        """
        try:
            if name in WRITE_OPERATIONS:
                getattr(self.fallback, name)(*args)
            elif name == "get_account" and result is not None:
                self.fallback.upsert_account(result)
            elif name == "get_attempt_record" and result is not None:
                self.fallback.upsert_attempt_record(result)
            elif name == "get_quiz_progress":
                if result is None:
                    self.fallback.delete_quiz_progress(*args)
                else:
                    self.fallback.upsert_quiz_progress(result)
        except StoreError as e:
            logger.debug("Fallback mirror of %s skipped: %s", name, e)

    def _call(self, name: str, *args: Any) -> Any:
        with self._lock:
            if self.breaker.allow() and self._drain():
                try:
                    result = getattr(self.primary, name)(*args)
                except StoreError as e:
                    self.breaker.record_failure()
                    logger.warning(
                        "Primary store failed on %s, using fallback: %s", name, e
                    )
                else:
                    self.breaker.record_success()
                    self._mirror(name, args, result)
                    return result

            if name in WRITE_OPERATIONS:
                return self._queue(name, args)
            return getattr(self.fallback, name)(*args)

    # ==================== Store API ====================

    def get_attempt_record(self, account_id, question_id):
        return self._call("get_attempt_record", account_id, question_id)

    def upsert_attempt_record(self, record):
        return self._call("upsert_attempt_record", record)

    def list_attempt_records(self, account_id):
        return self._call("list_attempt_records", account_id)

    def get_quiz_progress(self, account_id, class_name, unit):
        return self._call("get_quiz_progress", account_id, class_name, unit)

    def upsert_quiz_progress(self, progress):
        return self._call("upsert_quiz_progress", progress)

    def delete_quiz_progress(self, account_id, class_name, unit):
        return self._call("delete_quiz_progress", account_id, class_name, unit)

    def append_quiz_result(self, result):
        return self._call("append_quiz_result", result)

    def list_quiz_results(self, account_id):
        return self._call("list_quiz_results", account_id)

    def get_account(self, account_id):
        return self._call("get_account", account_id)

    def upsert_account(self, account):
        return self._call("upsert_account", account)

    def update_account_score_and_daily_points(self, account):
        return self._call("update_account_score_and_daily_points", account)

    def list_accounts(self):
        return self._call("list_accounts")
