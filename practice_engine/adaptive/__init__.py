"""
Adaptive Module - Daily mission planning.

Components:
- phases: The five fixed pedagogical phases and their point table
- phase_selector: Strategy-based atom candidate selection
- mission_builder: Phase planning, hydration and batch assembly
- models: Mission, DailyBatch, BatchOverrides
"""

from practice_engine.adaptive.mission_builder import MissionBuilder, PhasePlan, validate_overrides
from practice_engine.adaptive.models import (
    BatchOverrides,
    DailyBatch,
    Mission,
    MissionDifficulty,
    MissionStatus,
)
from practice_engine.adaptive.phase_selector import PhaseSelector, SelectorConfig
from practice_engine.adaptive.phases import MISSION_PHASES, TARGET_SCORE, Phase, Strategy

__all__ = [
    "MISSION_PHASES",
    "TARGET_SCORE",
    "Phase",
    "Strategy",
    "PhaseSelector",
    "SelectorConfig",
    "MissionBuilder",
    "PhasePlan",
    "validate_overrides",
    "BatchOverrides",
    "DailyBatch",
    "Mission",
    "MissionDifficulty",
    "MissionStatus",
]
