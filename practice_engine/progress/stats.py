"""Mission statistics over cached daily batches."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from practice_engine.adaptive.models import DailyBatch, MissionStatus
from practice_engine.progress.missions import seconds_spent
from practice_engine.progress.models import MissionStats, Streak


def mission_stats(batches: Iterable[DailyBatch], streak: Streak, days: int = 30) -> MissionStats:
    """
    Aggregate mission outcomes.

    Args:
        batches: Batches inside the window (the caller selects the dates)
        streak: Learner streak for the streak fields
        days: Window length, echoed in the result

    Returns:
        MissionStats
    """
    stats = MissionStats(
        days=days,
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
    )
    phases: Counter[str] = Counter()
    durations: list[int] = []

    for batch in batches:
        for mission in batch.missions:
            stats.total_missions += 1
            stats.points_available += mission.points
            stats.points_earned += mission.points_earned
            phases[mission.phase] += 1

            if mission.status is MissionStatus.COMPLETED:
                stats.completed += 1
                spent = seconds_spent(mission)
                if spent is not None:
                    durations.append(spent)
            elif mission.status is MissionStatus.FAILED:
                stats.failed += 1
            elif mission.status is MissionStatus.IN_PROGRESS:
                stats.in_progress += 1
            elif mission.status is MissionStatus.EXPIRED:
                stats.expired += 1
            else:
                stats.available += 1

    if stats.total_missions:
        stats.completion_rate = round(stats.completed / stats.total_missions * 100)
    if durations:
        stats.average_completion_seconds = round(sum(durations) / len(durations))
    if phases:
        stats.favorite_phase = phases.most_common(1)[0][0]
    return stats
