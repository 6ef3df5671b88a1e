"""
Mission status transitions.

    AVAILABLE -> IN_PROGRESS      mission opened (clock starts), or first answer
    IN_PROGRESS -> COMPLETED      last question answered, target met
    IN_PROGRESS -> FAILED         last question answered, target missed
    AVAILABLE/IN_PROGRESS -> EXPIRED   background, once now > expires_at

All functions return updated copies; missions are never mutated in place.
"""

from __future__ import annotations

from datetime import datetime

from practice_engine.adaptive.models import Mission, MissionStatus
from practice_engine.core.errors import UnknownQuestionError


def points_for(mission: Mission, status: MissionStatus) -> int:
    """Full points for a met target, half (floored) when it was missed."""
    if status is MissionStatus.COMPLETED:
        return mission.points
    if status is MissionStatus.FAILED:
        return mission.points // 2
    return 0


def expire_if_due(mission: Mission, now: datetime) -> Mission:
    if mission.status.is_open and now > mission.expires_at:
        return mission.model_copy(update={"status": MissionStatus.EXPIRED})
    return mission


def start_mission(mission: Mission, now: datetime) -> Mission:
    """Open a mission and start its clock; no-op unless AVAILABLE."""
    if mission.status is not MissionStatus.AVAILABLE:
        return mission
    return mission.model_copy(update={"status": MissionStatus.IN_PROGRESS, "started_at": now})


def can_record(mission: Mission, question_id: str) -> bool:
    """
    Whether an answer to this question still counts.

    Raises:
        UnknownQuestionError: The mission has no such question
    """
    if mission.question(question_id) is None:
        raise UnknownQuestionError(f"Mission {mission.mission_id} has no question {question_id}")
    return mission.status.is_open and question_id not in mission.completed_question_ids


def record_answer(mission: Mission, question_id: str, is_correct: bool, now: datetime) -> Mission:
    """
    Append an answer to the mission, finishing it on the last question.

    Answers to closed missions or already answered questions leave the
    mission unchanged.
    """
    if not can_record(mission, question_id):
        return mission

    if mission.status is MissionStatus.AVAILABLE:
        # Never opened: no start time, so the mission is not timed
        mission = mission.model_copy(update={"status": MissionStatus.IN_PROGRESS})
    completed = [*mission.completed_question_ids, question_id]
    correct = list(mission.correct_question_ids)
    if is_correct:
        correct.append(question_id)
    mission = mission.model_copy(
        update={"completed_question_ids": completed, "correct_question_ids": correct}
    )

    if mission.is_finished:
        return finish_mission(mission, now)
    return mission


def finish_mission(mission: Mission, now: datetime) -> Mission:
    status = MissionStatus.COMPLETED if mission.target_met else MissionStatus.FAILED
    return mission.model_copy(
        update={
            "status": status,
            "completed_at": now,
            "points_earned": points_for(mission, status),
        }
    )


def seconds_spent(mission: Mission) -> int | None:
    if mission.started_at is None or mission.completed_at is None:
        return None
    return int((mission.completed_at - mission.started_at).total_seconds())
