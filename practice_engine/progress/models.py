"""Streak and statistics models."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from practice_engine.progress.badges import Badge, BadgeType


class Streak(BaseModel):
    """Consecutive-day practice streak, badges and lifetime totals."""

    current_streak: int = 0
    longest_streak: int = 0
    start_date: date | None = None
    last_mission_date: date | None = None
    badges: list[Badge] = Field(default_factory=list)
    total_missions_completed: int = 0
    total_points_earned: int = 0
    hard_missions_completed: int = 0

    @property
    def is_new(self) -> bool:
        return self.last_mission_date is None

    def has_badge(self, badge_type: BadgeType) -> bool:
        return any(b.type is badge_type for b in self.badges)


class MissionStats(BaseModel):
    """Mission statistics over a trailing window of practice days."""

    days: int
    total_missions: int = 0
    available: int = 0
    in_progress: int = 0
    completed: int = 0
    failed: int = 0
    expired: int = 0
    completion_rate: int = 0
    points_earned: int = 0
    points_available: int = 0
    average_completion_seconds: int | None = None
    favorite_phase: str | None = None
    current_streak: int = 0
    longest_streak: int = 0
