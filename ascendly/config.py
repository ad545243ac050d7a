"""
Configuration management for the Ascendly scoring engine.

This module centralizes all configuration settings:
- Scoring constants (points, bonuses, penalties, caps, decay)
- Storage location and fallback policy
- Logging level
- Single source of truth for all settings
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv()


@dataclass
class ScoringConfig:
    """Numeric rules for question points, session bonuses and decay."""

    # Per-question
    base_points: int = 10
    second_attempt_multiplier: float = 0.5
    expected_time_seconds: float = 60.0
    max_speed_bonus: float = 0.20  # +20% for an instant answer
    mastery_penalty_per_correct: float = 0.15
    max_mastery_penalty: float = 0.50
    mastery_window_days: float = 30.0

    # Per-session
    accuracy_bonus_threshold: float = 0.70
    accuracy_bonus_multiplier: float = 0.5
    streak_bonus_per_day: float = 0.02
    max_streak_bonus: float = 0.40
    daily_points_cap: int = field(
        default_factory=lambda: int(os.getenv("ASCENDLY_DAILY_POINTS_CAP", "2000"))
    )

    # Leaderboard decay
    weekly_decay_rate: float = field(
        default_factory=lambda: float(os.getenv("ASCENDLY_WEEKLY_DECAY_RATE", "0.02"))
    )
    decay_min_days: float = 1.0

    @property
    def daily_decay_rate(self) -> float:
        """Weekly rate spread evenly across seven days."""
        return self.weekly_decay_rate / 7


@dataclass
class StorageConfig:
    """Persistence settings for the JSON store and the fallback policy."""

    backend: str = field(
        default_factory=lambda: os.getenv("ASCENDLY_STORE", "json")
    )
    data_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("ASCENDLY_DATA_DIR", Path(__file__).parent.parent / "data")
        )
    )

    # Circuit breaker for the primary store
    failure_threshold: int = field(
        default_factory=lambda: int(os.getenv("ASCENDLY_STORE_FAILURE_THRESHOLD", "3"))
    )
    reset_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("ASCENDLY_STORE_RESET_TIMEOUT", "30.0"))
    )


@dataclass
class PathConfig:
    """File system paths shipped with the package."""

    package_root: Path = field(default_factory=lambda: Path(__file__).parent)
    schemas_dir: Path = field(init=False)

    def __post_init__(self):
        self.schemas_dir = self.package_root / "schemas"

    def schema(self, name: str) -> Path:
        """Path of a bundled JSON Schema, e.g. ``schema("account")``."""
        return self.schemas_dir / f"{name}.schema.json"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = field(
        default_factory=lambda: os.getenv("ASCENDLY_LOG_LEVEL", "INFO")
    )
    log_format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Config:
    """
    Main configuration class. Singleton pattern.

    Usage:
        from ascendly.config import config

        cap = config.scoring.daily_points_cap
        data_dir = config.storage.data_dir

        # Apply the log level (call once at startup)
        config.configure_logging()
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.scoring = ScoringConfig()
            cls._instance.storage = StorageConfig()
            cls._instance.paths = PathConfig()
            cls._instance.logging = LoggingConfig()
        return cls._instance

    def configure_logging(self, level: Optional[str] = None) -> None:
        """Configure the ``ascendly`` logger hierarchy."""
        logging.basicConfig(
            level=(level or self.logging.log_level).upper(),
            format=self.logging.log_format,
        )

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        scoring = self.scoring

        if scoring.base_points <= 0:
            errors.append(f"base_points must be > 0, got {scoring.base_points}")

        if scoring.expected_time_seconds <= 0:
            errors.append(
                f"expected_time_seconds must be > 0, got {scoring.expected_time_seconds}"
            )

        if not (0 <= scoring.max_speed_bonus <= 1):
            errors.append(
                f"max_speed_bonus must be in [0, 1], got {scoring.max_speed_bonus}"
            )

        if not (0 <= scoring.max_mastery_penalty <= 1):
            errors.append(
                f"max_mastery_penalty must be in [0, 1], got {scoring.max_mastery_penalty}"
            )

        if scoring.mastery_penalty_per_correct < 0:
            errors.append(
                f"mastery_penalty_per_correct must be >= 0, got {scoring.mastery_penalty_per_correct}"
            )

        if not (0 <= scoring.accuracy_bonus_threshold <= 1):
            errors.append(
                f"accuracy_bonus_threshold must be in [0, 1], got {scoring.accuracy_bonus_threshold}"
            )

        if scoring.daily_points_cap < 0:
            errors.append(
                f"daily_points_cap must be >= 0, got {scoring.daily_points_cap}"
            )

        if not (0 <= scoring.weekly_decay_rate < 1):
            errors.append(
                f"weekly_decay_rate must be in [0, 1), got {scoring.weekly_decay_rate}"
            )

        if self.storage.backend not in ("json", "memory"):
            errors.append(
                f"store backend must be 'json' or 'memory', got {self.storage.backend!r}"
            )

        if self.storage.failure_threshold < 1:
            errors.append(
                f"failure_threshold must be >= 1, got {self.storage.failure_threshold}"
            )

        if not self.paths.schemas_dir.exists():
            errors.append(f"Schemas directory not found: {self.paths.schemas_dir}")

        if not isinstance(logging.getLevelName(self.logging.log_level.upper()), int):
            errors.append(f"Unknown log level: {self.logging.log_level}")

        return errors


# Global config instance
config = Config()
