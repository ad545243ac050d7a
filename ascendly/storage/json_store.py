"""
JSON file store with schema validation.

Layout under the data directory (identifiers are percent-encoded, with a
leading dot escaped as well, so any question or class name is a safe file
name that stays inside its folder):

    accounts/<account_id>.json
    attempts/<account_id>/<question_id>.json
    progress/<account_id>/<class_name>/<unit>.json
    results/<account_id>/qr-<uuid>.json
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..config import config
from ..models import Account, AttemptRecord, QuizProgress, QuizResult
from ..utils.validation import get_validator
from .base import Store, StoreError, merge_scoring_fields

logger = logging.getLogger(__name__)


def _safe(name: str) -> str:
    encoded = quote(name, safe="")
    # "." and ".." would otherwise resolve to the parent folders
    if encoded.startswith("."):
        encoded = "%2E" + encoded[1:]
    return encoded


class JsonFileStore(Store):
    """
    Handles persistence of scoring records as validated JSON files.

    Features:
    - Validate every record against its schema before writing
    - Repair legacy records on read (stray keys, numeric strings)
    - Atomic writes (temp file + rename)
    - Thread-safe file operations
    - I/O and decoding failures surface as StoreError
    """

    def __init__(self, data_dir: Path | str = None, validate: bool = True):
        """
        Initialize the store.

        Args:
            data_dir: Root directory (default: config.storage.data_dir)
            validate: Whether to validate records before writing
        """
        self.data_dir = Path(data_dir) if data_dir else config.storage.data_dir
        self.validate = validate
        self._lock = threading.RLock()
        try:
            for sub in ("accounts", "attempts", "progress", "results"):
                (self.data_dir / sub).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot prepare data directory {self.data_dir}: {e}") from e

    # ==================== File helpers ====================

    def _read(self, path: Path, record_type: str) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to read {path}: {e}") from e
        if not self.validate:
            return data

        result = get_validator(record_type).validate(data, auto_repair=True)
        if not result.valid:
            raise StoreError(f"Invalid {record_type} in {path}:\n" + "\n".join(result.errors))
        if result.repairs:
            logger.info("Repaired %s on read: %s", path.name, "; ".join(result.repairs))
        return result.data

    def _write(self, path: Path, record_type: str, data: Dict[str, Any]) -> None:
        if self.validate:
            get_validator(record_type).check(data)
        tmp = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}") from e

    def _read_dir(self, directory: Path, record_type: str) -> List[Dict[str, Any]]:
        if not directory.exists():
            return []
        rows = []
        for path in sorted(directory.glob("*.json")):
            data = self._read(path, record_type)
            if data is not None:
                rows.append(data)
        return rows

    def _account_path(self, account_id: str) -> Path:
        return self.data_dir / "accounts" / f"{_safe(account_id)}.json"

    def _attempt_path(self, account_id: str, question_id: str) -> Path:
        return self.data_dir / "attempts" / _safe(account_id) / f"{_safe(question_id)}.json"

    def _progress_path(self, account_id: str, class_name: str, unit: str) -> Path:
        return (
            self.data_dir / "progress" / _safe(account_id) / _safe(class_name)
            / f"{_safe(unit)}.json"
        )

    # ==================== Attempt records ====================

    def get_attempt_record(self, account_id, question_id):
        with self._lock:
            data = self._read(self._attempt_path(account_id, question_id), "attempt_record")
        return AttemptRecord.from_dict(data) if data else None

    def upsert_attempt_record(self, record):
        with self._lock:
            self._write(
                self._attempt_path(record.account_id, record.question_id),
                "attempt_record",
                record.to_dict(),
            )

    def list_attempt_records(self, account_id):
        with self._lock:
            rows = self._read_dir(self.data_dir / "attempts" / _safe(account_id), "attempt_record")
        return [AttemptRecord.from_dict(d) for d in rows]

    # ==================== Quiz progress ====================

    def get_quiz_progress(self, account_id, class_name, unit):
        with self._lock:
            data = self._read(self._progress_path(account_id, class_name, unit), "quiz_progress")
        return QuizProgress.from_dict(data) if data else None

    def upsert_quiz_progress(self, progress):
        with self._lock:
            self._write(
                self._progress_path(*progress.key), "quiz_progress", progress.to_dict()
            )

    def delete_quiz_progress(self, account_id, class_name, unit):
        path = self._progress_path(account_id, class_name, unit)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StoreError(f"Failed to delete {path}: {e}") from e

    # ==================== Quiz results ====================

    def append_quiz_result(self, result):
        path = (
            self.data_dir / "results" / _safe(result.account_id) / f"qr-{uuid.uuid4()}.json"
        )
        with self._lock:
            self._write(path, "quiz_result", result.to_dict())

    def list_quiz_results(self, account_id):
        with self._lock:
            rows = self._read_dir(self.data_dir / "results" / _safe(account_id), "quiz_result")
        results = [QuizResult.from_dict(d) for d in rows]
        results.sort(key=lambda r: r.timestamp, reverse=True)
        return results

    # ==================== Accounts ====================

    def get_account(self, account_id):
        with self._lock:
            data = self._read(self._account_path(account_id), "account")
        return Account.from_dict(data) if data else None

    def upsert_account(self, account):
        with self._lock:
            self._write(self._account_path(account.account_id), "account", account.to_dict())

    def update_account_score_and_daily_points(self, account):
        with self._lock:
            stored = self.get_account(account.account_id)
            if stored is None:
                raise StoreError(f"Account {account.account_id} not found")
            merged = merge_scoring_fields(stored, account)
            self._write(self._account_path(account.account_id), "account", merged.to_dict())
        logger.debug("Saved scores for account %s", account.account_id)

    def list_accounts(self):
        with self._lock:
            rows = self._read_dir(self.data_dir / "accounts", "account")
        return [Account.from_dict(d) for d in rows]
