"""
Progress & Streak Tracker.

Streak state machine, keyed on the day difference between the last
completion and this one:

    no prior completion  -> current = longest = 1, FIRST_MISSION
    0 (same day)         -> unchanged
    1 (consecutive)      -> current += 1, WEEK_STREAK at 7, MONTH_STREAK at 30
    > 1 (broken)         -> longest = max(longest, current), current = 1

Also turns graded answers into mastery/hurdle patches for the learner
store. Nothing here writes anywhere: the engine persists the returned
patches in one store call.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from loguru import logger

from practice_engine.adaptive.models import DailyBatch, Mission, MissionDifficulty, MissionStatus
from practice_engine.content.models import HydratedQuestion
from practice_engine.core.clock import day_difference
from practice_engine.core.mastery import DEFAULT_MASTERY, MASTERY_STEP, apply_answer
from practice_engine.progress.badges import (
    CONSISTENCY_MISSIONS,
    HARD_CHAMPION_MISSIONS,
    MASTER_MISSIONS,
    MONTH_STREAK_DAYS,
    SPEED_RUNNER_SECONDS,
    WEEK_STREAK_DAYS,
    Badge,
    BadgeType,
    award,
)
from practice_engine.progress.missions import seconds_spent
from practice_engine.progress.models import Streak

if TYPE_CHECKING:
    from practice_engine.delivery.learner_store import LearnerRecord

# Consecutive correct answers on a misconception tag that clear its hurdle
HURDLE_CLEAR_RUN = 3


def advance_streak(streak: Streak, completion_date: date, now: datetime) -> tuple[Streak, list[Badge]]:
    """
    Apply one completion to the streak.

    Args:
        streak: Current streak (not modified)
        completion_date: Practice date of the completed mission
        now: Timestamp for any badge earned

    Returns:
        (updated streak, badges newly earned)
    """
    updated = streak.model_copy(deep=True)
    earned: list[Badge] = []

    def grant(badge_type: BadgeType) -> None:
        badge = award(updated.badges, badge_type, now)
        if badge is not None:
            earned.append(badge)

    if updated.last_mission_date is None:
        updated.current_streak = 1
        updated.longest_streak = max(updated.longest_streak, 1)
        updated.start_date = completion_date
        updated.last_mission_date = completion_date
        grant(BadgeType.FIRST_MISSION)
        return updated, earned

    diff = day_difference(updated.last_mission_date, completion_date)
    if diff <= 0:
        # Already counted today (or an out-of-order completion)
        return updated, earned

    if diff == 1:
        updated.current_streak += 1
        updated.longest_streak = max(updated.longest_streak, updated.current_streak)
        if updated.current_streak == WEEK_STREAK_DAYS:
            grant(BadgeType.WEEK_STREAK)
        elif updated.current_streak == MONTH_STREAK_DAYS:
            grant(BadgeType.MONTH_STREAK)
    else:
        updated.longest_streak = max(updated.longest_streak, updated.current_streak)
        updated.current_streak = 1
        updated.start_date = completion_date

    updated.last_mission_date = completion_date
    return updated, earned


class ProgressTracker:
    """Computes learner record patches for answers and finished missions."""

    def __init__(self, mastery_step: float = MASTERY_STEP, hurdle_clear_run: int = HURDLE_CLEAR_RUN):
        self.mastery_step = mastery_step
        self.hurdle_clear_run = hurdle_clear_run

    def answer_patch(
        self,
        record: LearnerRecord,
        question: HydratedQuestion,
        is_correct: bool,
        now: datetime,
    ) -> dict[str, Any]:
        """
        Mastery, hurdle and last-seen changes for one graded answer.

        Fallback matches still credit the planned atom: the learner practised
        it even if the item was tagged differently.
        """
        patch: dict[str, Any] = {}
        atom_id = question.atom_id

        if atom_id:
            mastery = dict(record.mastery)
            before = mastery.get(atom_id, DEFAULT_MASTERY)
            mastery[atom_id] = apply_answer(before, is_correct, self.mastery_step)
            last_seen = dict(record.last_seen)
            last_seen[atom_id] = now
            patch["mastery"] = mastery
            patch["last_seen"] = last_seen

        tag = question.content.misconception_tag
        if tag:
            hurdles = dict(record.hurdles)
            runs = dict(record.correct_runs)
            if is_correct:
                runs[tag] = runs.get(tag, 0) + 1
                if runs[tag] >= self.hurdle_clear_run:
                    hurdles.pop(tag, None)
                    runs.pop(tag, None)
                    logger.info(f"Misconception {tag} cleared for {record.learner_id}")
            else:
                hurdles[tag] = hurdles.get(tag, 0) + 1
                runs[tag] = 0
            patch["hurdles"] = hurdles
            patch["correct_runs"] = runs

        return patch

    def mission_finished(
        self,
        streak: Streak,
        mission: Mission,
        batch: DailyBatch,
        now: datetime,
    ) -> tuple[Streak, list[Badge]]:
        """
        Update the streak, totals and badges for a mission that just ended.

        Only a COMPLETED mission advances the streak; a FAILED one still
        adds its half points to the totals.

        Args:
            streak: Streak before this mission
            mission: The finished mission
            batch: The day's batch, already containing the finished mission
            now: Completion timestamp
        """
        if mission.status is MissionStatus.FAILED:
            updated = streak.model_copy(
                update={"total_points_earned": streak.total_points_earned + mission.points_earned}
            )
            return updated, []
        if mission.status is not MissionStatus.COMPLETED:
            return streak, []

        updated, earned = advance_streak(streak, mission.batch_date, now)
        updated.total_missions_completed += 1
        updated.total_points_earned += mission.points_earned
        if mission.difficulty is MissionDifficulty.HARD:
            updated.hard_missions_completed += 1

        def grant(badge_type: BadgeType) -> None:
            badge = award(updated.badges, badge_type, now)
            if badge is not None:
                earned.append(badge)

        if updated.hard_missions_completed >= HARD_CHAMPION_MISSIONS:
            grant(BadgeType.HARD_CHAMPION)
        spent = seconds_spent(mission)
        if spent is not None and spent <= SPEED_RUNNER_SECONDS:
            grant(BadgeType.SPEED_RUNNER)
        if updated.total_missions_completed >= CONSISTENCY_MISSIONS:
            grant(BadgeType.CONSISTENCY)
        if updated.total_missions_completed >= MASTER_MISSIONS:
            grant(BadgeType.MASTER)
        if batch.all_completed:
            grant(BadgeType.PERFECT_DAY)

        for badge in earned:
            logger.info(f"Badge earned by {mission.learner_id}: {badge.icon} {badge.title}")
        return updated, earned
