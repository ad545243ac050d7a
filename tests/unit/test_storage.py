"""
Unit tests for the storage layer.

Tests:
- JSON file store round trips, layout and schema enforcement
- Scoring-field merge on account updates and attempt merge on replay
- Fallback store degradation, queueing and reconciliation
- Circuit breaker states
- Store factory
"""

import json
from datetime import timedelta

import pytest
from jsonschema import ValidationError

from ascendly.models import Account, AttemptRecord, QuizProgress, QuizResult
from ascendly.scoring.attempts import AttemptCounter
from ascendly.storage import (
    CircuitBreaker,
    FallbackStore,
    InMemoryStore,
    JsonFileStore,
    Store,
    StoreError,
    create_store,
)
from ascendly.storage.base import merge_attempt_records, merge_scoring_fields


BIO = "AP Biology"


class FlakyStore(InMemoryStore):
    """In-memory store whose operations all raise StoreError while ``down``."""

    def __init__(self):
        super().__init__()
        self.down = False
        self.calls = 0

    def __getattribute__(self, name):
        attr = object.__getattribute__(self, name)
        if name in Store.__abstractmethods__:
            self.calls += 1
            if self.down:
                def unreachable(*args):
                    raise StoreError(f"{name}: primary unreachable")
                return unreachable
        return attr


class FakeClock:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


def make_record(question_id="BIO-Q1", attempts=1):
    return AttemptRecord(
        account_id="acc-alice",
        question_id=question_id,
        attempts=attempts,
        correct_attempts=1,
        streak=1,
        correct_timestamps=["2025-03-12T15:30:00+00:00"],
        last_attempt_timestamp="2025-03-12T15:30:00+00:00",
        last_is_correct=True,
        time_spent_seconds=12.0,
    )


class TestJsonFileStore:
    """Test suite for JsonFileStore."""

    def test_account_round_trip(self, json_store, student):
        loaded = json_store.get_account("acc-alice")

        assert loaded == student
        assert json_store.get_account("acc-nobody") is None

    def test_attempt_record_round_trip(self, json_store):
        record = make_record()
        json_store.upsert_attempt_record(record)

        assert json_store.get_attempt_record("acc-alice", "BIO-Q1") == record
        assert json_store.list_attempt_records("acc-alice") == [record]
        assert json_store.get_attempt_record("acc-alice", "BIO-Q2") is None

    def test_identifiers_are_safe_file_names(self, json_store, tmp_path):
        record = make_record(question_id="Unit 1/Q#3?")
        json_store.upsert_attempt_record(record)

        assert json_store.get_attempt_record("acc-alice", "Unit 1/Q#3?") == record
        files = list((tmp_path / "data" / "attempts" / "acc-alice").iterdir())
        assert len(files) == 1

    def test_progress_round_trip_and_delete(self, json_store):
        progress = QuizProgress(
            "acc-alice", BIO, "Unit 3", current_index=4, correct_answers=3,
            answered_questions={3, 0, 1}, points_earned=27,
            session_correct_answers=3, session_total_answered=4,
            updated_at="2025-03-12T15:30:00+00:00",
        )
        json_store.upsert_quiz_progress(progress)

        assert json_store.get_quiz_progress("acc-alice", BIO, "Unit 3") == progress

        json_store.delete_quiz_progress("acc-alice", BIO, "Unit 3")
        assert json_store.get_quiz_progress("acc-alice", BIO, "Unit 3") is None
        # Deleting again is a no-op
        json_store.delete_quiz_progress("acc-alice", BIO, "Unit 3")

    def test_results_listed_newest_first(self, json_store):
        for day in ("10", "12", "11"):
            json_store.append_quiz_result(
                QuizResult("acc-alice", BIO, "Unit 3", 7, 10, 60,
                           timestamp=f"2025-03-{day}T09:00:00+00:00")
            )

        results = json_store.list_quiz_results("acc-alice")

        assert [r.timestamp[8:10] for r in results] == ["12", "11", "10"]
        assert json_store.list_quiz_results("acc-bob") == []

    def test_invalid_record_is_rejected_before_write(self, json_store):
        bad = make_record(attempts=-1)
        with pytest.raises(ValidationError):
            json_store.upsert_attempt_record(bad)
        assert json_store.get_attempt_record("acc-alice", "BIO-Q1") is None

    def test_corrupt_file_raises_store_error(self, json_store, tmp_path):
        path = tmp_path / "data" / "accounts" / "acc-alice.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StoreError):
            json_store.get_account("acc-alice")

    def test_legacy_record_repaired_on_read(self, json_store, tmp_path):
        data = make_record(attempts=3).to_dict()
        data["attempts"] = "3"
        data["legacy"] = True
        folder = tmp_path / "data" / "attempts" / "acc-alice"
        folder.mkdir(parents=True, exist_ok=True)
        (folder / "BIO-Q1.json").write_text(json.dumps(data), encoding="utf-8")

        loaded = json_store.get_attempt_record("acc-alice", "BIO-Q1")

        assert loaded.attempts == 3
        assert json_store.list_attempt_records("acc-alice") == [loaded]

    def test_unrepairable_record_raises_store_error(self, json_store, tmp_path):
        data = make_record().to_dict()
        data["attempts"] = "three"
        folder = tmp_path / "data" / "attempts" / "acc-alice"
        folder.mkdir(parents=True, exist_ok=True)
        (folder / "BIO-Q1.json").write_text(json.dumps(data), encoding="utf-8")

        with pytest.raises(StoreError, match="attempt_record"):
            json_store.get_attempt_record("acc-alice", "BIO-Q1")

    def test_dot_identifiers_stay_inside_their_folder(self, json_store, tmp_path):
        record = AttemptRecord(account_id="..", question_id="q")
        json_store.upsert_attempt_record(record)
        progress = QuizProgress("acc-alice", "..", ".", current_index=1)
        json_store.upsert_quiz_progress(progress)

        assert json_store.get_attempt_record("..", "q") == record
        assert json_store.list_attempt_records("..") == [record]
        assert json_store.get_quiz_progress("acc-alice", "..", ".") == progress
        assert not (tmp_path / "data" / "q.json").exists()
        assert not (tmp_path / "data" / "progress" / "..json").exists()
        assert (tmp_path / "data" / "attempts" / "%2E." / "q.json").exists()

    def test_update_scores_keeps_identity_fields(self, json_store, student):
        update = Account.from_dict(student.to_dict())
        update.username = "renamed"
        update.class_scores = {BIO: 340}
        update.streak = 4
        update.daily_points = {"2025-03-12": 120}

        json_store.update_account_score_and_daily_points(update)
        stored = json_store.get_account("acc-alice")

        assert stored.username == "alice"
        assert stored.class_scores == {BIO: 340}
        assert stored.streak == 4
        assert stored.daily_points == {"2025-03-12": 120}

    def test_update_scores_of_unknown_account(self, json_store):
        with pytest.raises(StoreError, match="not found"):
            json_store.update_account_score_and_daily_points(Account("acc-zed", "zed"))

    def test_list_accounts(self, json_store):
        json_store.upsert_account(Account("acc-bob", "bob", classes=[BIO]))
        assert sorted(a.username for a in json_store.list_accounts()) == ["alice", "bob"]


class TestMergeScoringFields:
    """Test account update merging."""

    def test_drops_scores_for_classes_left_since(self):
        stored = Account("acc-1", "kim", classes=[BIO])
        update = Account(
            "acc-1", "kim", classes=[BIO, "AP Chemistry"],
            class_scores={BIO: 50, "AP Chemistry": 80},
        )

        merged = merge_scoring_fields(stored, update)

        assert merged.classes == [BIO]
        assert merged.class_scores == {BIO: 50}

    def test_in_memory_update_requires_account(self):
        with pytest.raises(StoreError):
            InMemoryStore().update_account_score_and_daily_points(Account("acc-1", "kim"))


class TestMergeAttemptRecords:
    """Test replaying queued attempt changes onto a stored record."""

    def test_adds_new_answers_to_stored_history(self):
        stored = AttemptRecord("acc-1", "Q1", attempts=4, correct_attempts=3, streak=2,
                               correct_timestamps=["2025-03-01T10:00:00+00:00",
                                                   "2025-03-05T10:00:00+00:00",
                                                   "2025-03-08T10:00:00+00:00"],
                               time_spent_seconds=80.0)
        previous = AttemptRecord("acc-1", "Q1", attempts=1, correct_attempts=1, streak=1,
                                 correct_timestamps=["2025-03-05T10:00:00+00:00"],
                                 time_spent_seconds=20.0)
        update = AttemptRecord("acc-1", "Q1", attempts=2, correct_attempts=2, streak=2,
                               correct_timestamps=["2025-03-05T10:00:00+00:00",
                                                   "2025-03-07T10:00:00+00:00"],
                               last_attempt_timestamp="2025-03-07T10:00:00+00:00",
                               last_is_correct=True, time_spent_seconds=35.0)

        merged = merge_attempt_records(stored, previous, update)

        assert merged.attempts == 5
        assert merged.correct_attempts == 4
        assert merged.streak == 3
        assert merged.correct_timestamps == [
            "2025-03-01T10:00:00+00:00",
            "2025-03-05T10:00:00+00:00",
            "2025-03-07T10:00:00+00:00",
            "2025-03-08T10:00:00+00:00",
        ]
        assert merged.time_spent_seconds == 95.0
        assert merged.last_attempt_timestamp == "2025-03-07T10:00:00+00:00"

    def test_new_record_taken_as_is_when_nothing_stored(self):
        update = make_record()
        assert merge_attempt_records(None, None, update) == update

    def test_incorrect_new_answer_resets_streak(self):
        stored = AttemptRecord("acc-1", "Q1", attempts=3, correct_attempts=3, streak=3)
        update = AttemptRecord("acc-1", "Q1", attempts=1, correct_attempts=0, streak=0,
                               last_is_correct=False)

        merged = merge_attempt_records(stored, None, update)

        assert merged.attempts == 4
        assert merged.streak == 0
        assert merged.last_is_correct is False


class TestInMemoryStore:
    """Test suite for InMemoryStore."""

    def test_returned_objects_are_copies(self, memory_store):
        account = memory_store.get_account("acc-alice")
        account.class_scores[BIO] = 9999

        assert memory_store.get_account("acc-alice").class_score(BIO) == 0


class TestCircuitBreaker:
    """Test breaker state changes."""

    def test_opens_after_threshold_and_half_opens_after_timeout(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=2, reset_timeout_seconds=30, clock=clock)

        breaker.record_failure()
        assert breaker.state == "closed"
        breaker.record_failure()
        assert breaker.state == "open"
        assert breaker.allow() is False

        clock.value += 30
        assert breaker.state == "half_open"
        assert breaker.allow() is True

    def test_half_open_failure_reopens(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout_seconds=10, clock=clock)
        breaker.record_failure()
        clock.value += 10

        breaker.record_failure()

        assert breaker.state == "open"

    def test_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout_seconds=10)
        breaker.record_failure()
        breaker.record_success()

        assert breaker.state == "closed"
        assert breaker.failures == 0


class TestFallbackStore:
    """Test primary-first persistence with a local fallback tier."""

    def setup_method(self):
        self.primary = FlakyStore()
        self.fallback = InMemoryStore()
        self.clock = FakeClock()
        self.store = FallbackStore(
            self.primary, self.fallback,
            failure_threshold=3, reset_timeout_seconds=30, clock=self.clock,
        )

    def test_healthy_primary_receives_writes(self):
        record = make_record()
        self.store.upsert_attempt_record(record)

        assert self.primary.get_attempt_record("acc-alice", "BIO-Q1") == record
        assert self.fallback.get_attempt_record("acc-alice", "BIO-Q1") == record
        assert self.store.pending_writes == 0

    def test_write_lands_in_fallback_when_primary_fails(self):
        self.primary.down = True
        record = make_record()

        self.store.upsert_attempt_record(record)

        assert self.store.pending_writes == 1
        assert self.store.get_attempt_record("acc-alice", "BIO-Q1") == record
        self.primary.down = False
        assert self.primary.get_attempt_record("acc-alice", "BIO-Q1") is None

    def test_reconcile_replays_queued_writes(self):
        self.primary.down = True
        self.store.upsert_attempt_record(make_record(attempts=1))
        self.store.upsert_attempt_record(make_record(attempts=2))
        self.primary.down = False

        assert self.store.reconcile() == 2
        assert self.store.pending_writes == 0
        assert self.primary.get_attempt_record("acc-alice", "BIO-Q1").attempts == 2

    def test_reconcile_keeps_queue_while_primary_down(self):
        self.primary.down = True
        self.store.upsert_attempt_record(make_record())

        assert self.store.reconcile() == 0
        assert self.store.pending_writes == 1

    def test_queue_drains_before_next_primary_call(self):
        self.primary.down = True
        self.store.upsert_attempt_record(make_record())
        self.primary.down = False

        self.store.list_attempt_records("acc-alice")

        assert self.store.pending_writes == 0
        assert self.primary.get_attempt_record("acc-alice", "BIO-Q1") is not None

    def test_queued_write_is_a_snapshot(self):
        self.primary.down = True
        record = make_record()
        self.store.upsert_attempt_record(record)
        record.attempts = 99
        self.primary.down = False

        self.store.reconcile()

        assert self.primary.get_attempt_record("acc-alice", "BIO-Q1").attempts == 1

    def test_outage_answer_merges_into_primary_history(self, now):
        earlier = AttemptCounter(self.primary)
        for days in range(5, 0, -1):
            earlier.record_attempt("acc-alice", "BIO-Q1", True, 20, now - timedelta(days=days))

        self.primary.down = True
        AttemptCounter(self.store).record_attempt("acc-alice", "BIO-Q1", True, 10, now)
        self.primary.down = False

        assert self.store.reconcile() == 1
        record = self.primary.get_attempt_record("acc-alice", "BIO-Q1")
        assert record.attempts == 6
        assert record.correct_attempts == 6
        assert record.streak == 6
        assert len(record.correct_timestamps) == 6
        assert record.correct_timestamps[-1] == now.isoformat()
        assert record.time_spent_seconds == 110

    def test_warm_fallback_answers_are_not_counted_twice(self, now):
        counter = AttemptCounter(self.store)
        counter.record_attempt("acc-alice", "BIO-Q1", True, 5, now - timedelta(days=2))
        counter.record_attempt("acc-alice", "BIO-Q1", True, 5, now - timedelta(days=1))

        self.primary.down = True
        ordinal = counter.record_attempt("acc-alice", "BIO-Q1", False, 5, now)
        self.primary.down = False
        self.store.reconcile()

        record = self.primary.get_attempt_record("acc-alice", "BIO-Q1")
        assert ordinal == 3
        assert record.attempts == 3
        assert record.correct_attempts == 2
        assert record.streak == 0
        assert record.last_is_correct is False

    def test_score_update_survives_outage(self, student):
        self.primary.upsert_account(student)
        account = self.store.get_account("acc-alice")
        account.class_scores[BIO] = 75

        self.primary.down = True
        self.store.update_account_score_and_daily_points(account)

        assert self.store.get_account("acc-alice").class_score(BIO) == 75
        self.primary.down = False
        self.store.reconcile()
        assert self.primary.get_account("acc-alice").class_score(BIO) == 75

    def test_open_circuit_skips_primary(self, student):
        self.primary.down = True
        for _ in range(3):
            self.store.get_account("acc-alice")
        assert self.store.breaker.state == "open"

        self.primary.down = False
        self.primary.upsert_account(student)
        calls = self.primary.calls

        assert self.store.get_account("acc-alice") is None
        assert self.primary.calls == calls

        self.clock.value += 30
        assert self.store.get_account("acc-alice") == student
        assert self.store.breaker.state == "closed"


class TestCreateStore:
    """Test the store factory."""

    def test_memory_backend(self):
        assert isinstance(create_store("memory"), InMemoryStore)

    def test_json_backend_has_local_fallback(self, tmp_path):
        store = create_store("json", tmp_path)

        assert isinstance(store, FallbackStore)
        assert isinstance(store.primary, JsonFileStore)
        assert isinstance(store.fallback, InMemoryStore)
        assert store.primary.data_dir == tmp_path

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown store backend"):
            create_store("sqlite")
