"""
Achievement badges.

A badge type is earned at most once per learner; awarding an owned type is
a no-op.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict


class BadgeType(str, Enum):
    FIRST_MISSION = "FIRST_MISSION"
    WEEK_STREAK = "WEEK_STREAK"
    MONTH_STREAK = "MONTH_STREAK"
    PERFECT_DAY = "PERFECT_DAY"
    HARD_CHAMPION = "HARD_CHAMPION"
    SPEED_RUNNER = "SPEED_RUNNER"
    CONSISTENCY = "CONSISTENCY"
    MASTER = "MASTER"


class BadgeInfo(NamedTuple):
    title: str
    description: str
    icon: str


BADGE_CATALOG: dict[BadgeType, BadgeInfo] = {
    BadgeType.FIRST_MISSION: BadgeInfo("First Step", "Completed your first mission", "🌟"),
    BadgeType.WEEK_STREAK: BadgeInfo("Week Warrior", "Practiced 7 days in a row", "🔥"),
    BadgeType.MONTH_STREAK: BadgeInfo("Monthly Master", "Practiced 30 days in a row", "🚀"),
    BadgeType.PERFECT_DAY: BadgeInfo("Perfect Day", "Completed every mission of the day", "✨"),
    BadgeType.HARD_CHAMPION: BadgeInfo("Hard Champion", "Completed 10 hard missions", "👑"),
    BadgeType.SPEED_RUNNER: BadgeInfo("Speed Runner", "Completed a mission in under 2 minutes", "⚡"),
    BadgeType.CONSISTENCY: BadgeInfo("Consistent Learner", "Completed 50 missions", "💪"),
    BadgeType.MASTER: BadgeInfo("Mission Master", "Completed 100 missions", "🏆"),
}

# Milestones
WEEK_STREAK_DAYS = 7
MONTH_STREAK_DAYS = 30
HARD_CHAMPION_MISSIONS = 10
CONSISTENCY_MISSIONS = 50
MASTER_MISSIONS = 100
SPEED_RUNNER_SECONDS = 120


class Badge(BaseModel):
    """Immutable achievement record."""

    model_config = ConfigDict(frozen=True)

    type: BadgeType
    earned_at: datetime

    @property
    def info(self) -> BadgeInfo:
        return BADGE_CATALOG[self.type]

    @property
    def title(self) -> str:
        return self.info.title

    @property
    def icon(self) -> str:
        return self.info.icon


def award(badges: list[Badge], badge_type: BadgeType, now: datetime) -> Badge | None:
    """
    Append a badge unless the learner already owns that type.

    Returns:
        The new Badge, or None when it was already earned
    """
    if any(b.type is badge_type for b in badges):
        return None
    badge = Badge(type=badge_type, earned_at=now)
    badges.append(badge)
    return badge
