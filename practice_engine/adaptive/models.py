"""
Mission and daily batch models.

Missions and batches are cached as JSON between calls, so they are pydantic
models rather than dataclasses. Hydrated questions are never mutated after
generation; only the status, progress and reward fields of a mission move.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from practice_engine.adaptive.phases import TARGET_SCORE
from practice_engine.content.models import HydratedQuestion


class MissionStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"

    @property
    def is_open(self) -> bool:
        return self in (MissionStatus.AVAILABLE, MissionStatus.IN_PROGRESS)


class MissionDifficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"

    @classmethod
    def from_tiers(cls, tiers: list[int]) -> MissionDifficulty:
        """Mission difficulty from the mean difficulty tier of its questions."""
        if not tiers:
            return cls.MEDIUM
        mean = sum(tiers) / len(tiers)
        if mean < 1.5:
            return cls.EASY
        if mean < 2.5:
            return cls.MEDIUM
        return cls.HARD


class Mission(BaseModel):
    """One phase of the day: ordered hydrated questions plus progress."""

    mission_id: str
    learner_id: str
    batch_date: date
    phase: str
    title: str
    order: int
    questions: list[HydratedQuestion]
    status: MissionStatus = MissionStatus.AVAILABLE
    difficulty: MissionDifficulty = MissionDifficulty.MEDIUM
    points: int
    target_score: int = TARGET_SCORE
    expires_at: datetime
    completed_question_ids: list[str] = Field(default_factory=list)
    correct_question_ids: list[str] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    points_earned: int = 0

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def answered_count(self) -> int:
        return len(self.completed_question_ids)

    @property
    def score(self) -> int:
        """Percentage of the mission's questions answered correctly."""
        if not self.questions:
            return 0
        return round(len(self.correct_question_ids) / len(self.questions) * 100)

    @property
    def is_finished(self) -> bool:
        return bool(self.questions) and self.answered_count >= len(self.questions)

    @property
    def target_met(self) -> bool:
        return self.score >= self.target_score

    def question(self, question_id: str) -> HydratedQuestion | None:
        return next((q for q in self.questions if q.question_id == question_id), None)


class DailyBatch(BaseModel):
    """All missions for one learner and practice date."""

    learner_id: str
    batch_date: date
    generated_at: datetime
    missions: list[Mission] = Field(default_factory=list)
    unique_templates: int = 0
    diversity_score: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.missions

    @property
    def completed_count(self) -> int:
        return sum(1 for m in self.missions if m.status is MissionStatus.COMPLETED)

    @property
    def total_points(self) -> int:
        return sum(m.points for m in self.missions)

    @property
    def earned_points(self) -> int:
        return sum(m.points_earned for m in self.missions)

    @property
    def all_completed(self) -> bool:
        return bool(self.missions) and all(m.status is MissionStatus.COMPLETED for m in self.missions)

    def mission(self, mission_id: str) -> Mission | None:
        return next((m for m in self.missions if m.mission_id == mission_id), None)

    def replace_mission(self, mission: Mission) -> None:
        self.missions = [mission if m.mission_id == mission.mission_id else m for m in self.missions]


class BatchOverrides(BaseModel):
    """
    Caller-requested changes to daily generation.

    Attributes:
        regenerate: Discard today's cached batch and build a new one
        modules: Restrict candidate atoms to these module ids
        templates: Use these template ids for every phase instead of the
            phase pools
    """

    regenerate: bool = False
    modules: list[str] | None = None
    templates: list[str] | None = None
