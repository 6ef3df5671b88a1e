"""
Progress Module - Mission outcomes, streaks and badges.

Components:
- missions: Mission status transitions and points
- streak_tracker: Streak state machine and learner record patches
- badges: Badge catalog and idempotent awarding
- stats: Mission statistics
"""

from practice_engine.progress.badges import BADGE_CATALOG, Badge, BadgeType, award
from practice_engine.progress.missions import expire_if_due, finish_mission, points_for, record_answer
from practice_engine.progress.models import MissionStats, Streak
from practice_engine.progress.stats import mission_stats
from practice_engine.progress.streak_tracker import ProgressTracker, advance_streak

__all__ = [
    "BADGE_CATALOG",
    "Badge",
    "BadgeType",
    "award",
    "expire_if_due",
    "finish_mission",
    "points_for",
    "record_answer",
    "MissionStats",
    "Streak",
    "mission_stats",
    "ProgressTracker",
    "advance_streak",
]
