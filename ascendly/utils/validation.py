"""
Schema validation utilities for persisted scoring records.

Every record the JSON store writes (accounts, attempt records, quiz progress,
quiz results) is checked against a bundled JSON Schema first, so a bad
score map or a negative counter never reaches disk.

Features:
- Format validation (date-time)
- Deep copy to prevent mutations
- Optional repair: unknown keys stripped, numeric strings coerced
- Transparent repair tracking
"""

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft7Validator, FormatChecker, ValidationError

from ..config import config


class ValidationResult:
    """
    Result of a validation attempt.

    Attributes:
        valid: Whether data passed validation
        errors: List of error messages
        data: The validated data (may be modified if repair was attempted)
        repairs: List of repairs applied (for transparency)
    """

    def __init__(
        self,
        valid: bool,
        errors: list[str],
        data: Any = None,
        repairs: Optional[list[str]] = None,
    ):
        self.valid = valid
        self.errors = errors
        self.data = data
        self.repairs = repairs or []

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid

    def __str__(self) -> str:
        if self.valid:
            msg = "Validation passed"
            if self.repairs:
                msg += f" (with {len(self.repairs)} repair(s))"
            return msg
        return f"Validation failed with {len(self.errors)} error(s):\n" + "\n".join(
            f"  - {error}" for error in self.errors
        )


class SchemaValidator:
    """
    JSON Schema validator with optional repair.

    Usage:
        validator = SchemaValidator(config.paths.schema("attempt_record"))
        result = validator.validate(record.to_dict())
        if not result:
            print(result.errors)
    """

    def __init__(self, schema_path: Path | str):
        """
        Initialize validator with a schema file.

        Args:
            schema_path: Path to JSON Schema file
        """
        self.schema_path = Path(schema_path)
        with open(self.schema_path, "r", encoding="utf-8") as f:
            self.schema = json.load(f)
        self.validator = Draft7Validator(self.schema, format_checker=FormatChecker())

    def validate(self, data: dict, auto_repair: bool = False) -> ValidationResult:
        """
        Validate data against schema.

        Args:
            data: Data to validate
            auto_repair: If True, attempt to fix common validation errors

        Returns:
            ValidationResult with validation status and any errors
        """
        errors = [self._format_error(e) for e in self.validator.iter_errors(data)]

        if errors:
            if auto_repair:
                repaired_data, repairs = self._attempt_repair(data)
                result = self.validate(repaired_data, auto_repair=False)
                result.repairs = repairs
                return result
            return ValidationResult(valid=False, errors=errors, data=data)

        return ValidationResult(valid=True, errors=[], data=data)

    def check(self, data: dict) -> None:
        """
        Validate and raise on failure.

        Raises:
            ValidationError: If data does not match the schema
        """
        result = self.validate(data)
        if not result.valid:
            raise ValidationError(
                f"{self.schema_path.name}:\n" + "\n".join(result.errors)
            )

    def _format_error(self, error: ValidationError) -> str:
        """Convert ValidationError to a readable message with its location."""
        path = " -> ".join(str(p) for p in error.path) if error.path else "root"
        validator_name = getattr(error, "validator", "unknown")
        schema_path = "/".join(str(p) for p in error.schema_path)
        return (
            f"At '{path}': {error.message} "
            f"[validator={validator_name}, schema_path=/{schema_path}]"
        )

    def _attempt_repair(self, data: dict) -> tuple[dict, list[str]]:
        """
        Attempt to automatically fix common validation errors.

        Returns:
            Tuple of (repaired data, list of repairs applied)
        """
        repaired = deepcopy(data)
        repairs: list[str] = []

        properties = self.schema.get("properties", {})

        if self.schema.get("additionalProperties") is False:
            for key in [k for k in repaired if k not in properties]:
                repaired.pop(key)
                repairs.append(f"Removed unknown key '{key}'")

        for key, subschema in properties.items():
            value = repaired.get(key)
            if not isinstance(value, str):
                continue
            expected = subschema.get("type")
            if expected == "integer":
                coerced = _safe_number(value, int)
            elif expected == "number":
                coerced = _safe_number(value, float)
            else:
                continue
            if coerced is not None:
                repaired[key] = coerced
                repairs.append(f"Coerced {key}: '{value}' -> {coerced}")

        return repaired, repairs


def _safe_number(text: str, kind: type) -> Optional[float]:
    try:
        return kind(float(text))
    except (ValueError, TypeError):
        return None


_validators: dict[str, SchemaValidator] = {}


def get_validator(record_type: str) -> SchemaValidator:
    """Cached validator for a bundled schema (``account``, ``quiz_result``...)."""
    if record_type not in _validators:
        _validators[record_type] = SchemaValidator(config.paths.schema(record_type))
    return _validators[record_type]


def validate_record(record_type: str, data: dict) -> ValidationResult:
    """
    Validate a serialized record against its bundled schema.

    Args:
        record_type: Schema name without suffix
        data: Record dictionary (``Model.to_dict()``)

    Returns:
        ValidationResult
    """
    return get_validator(record_type).validate(data)
