"""
Core Module - Shared helpers and error types.

Components:
- clock: Practice-day arithmetic with a configurable cutover hour
- mastery: Mastery levels, difficulty tiers, table weighting
- errors: Engine error taxonomy
"""

from practice_engine.core.clock import day_difference, expiry_for, practice_date
from practice_engine.core.errors import (
    ContentUnavailable,
    InvalidOverride,
    PracticeEngineError,
    StaleCache,
    StoreUnavailable,
    UnknownMissionError,
    UnknownQuestionError,
)
from practice_engine.core.mastery import (
    DEFAULT_MASTERY,
    MasteryLevel,
    apply_answer,
    difficulty_tier,
    weighted_table_mastery,
)

__all__ = [
    # Clock
    "practice_date",
    "day_difference",
    "expiry_for",
    # Mastery
    "DEFAULT_MASTERY",
    "MasteryLevel",
    "apply_answer",
    "difficulty_tier",
    "weighted_table_mastery",
    # Errors
    "PracticeEngineError",
    "ContentUnavailable",
    "InvalidOverride",
    "StoreUnavailable",
    "StaleCache",
    "UnknownMissionError",
    "UnknownQuestionError",
]
