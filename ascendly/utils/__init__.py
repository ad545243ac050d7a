"""
Utility modules for the scoring engine.

- clock: ISO timestamp parsing, day keys, elapsed days, half-up rounding
- validation: JSON Schema validation of persisted records
"""

from .clock import (
    day_key,
    days_between,
    round_half_up,
    to_datetime,
    to_iso,
    utc_now,
)
from .validation import (
    SchemaValidator,
    ValidationResult,
    get_validator,
    validate_record,
)

__all__ = [
    # Clock
    "day_key",
    "days_between",
    "round_half_up",
    "to_datetime",
    "to_iso",
    "utc_now",
    # Validation
    "SchemaValidator",
    "ValidationResult",
    "get_validator",
    "validate_record",
]
