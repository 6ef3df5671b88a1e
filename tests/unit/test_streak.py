"""
Unit tests for mission transitions, streaks, badges and answer patches.
"""

from datetime import UTC, date, datetime, timedelta

import pytest

from practice_engine.adaptive.models import DailyBatch, Mission, MissionDifficulty, MissionStatus
from practice_engine.content.models import HydratedQuestion
from practice_engine.core.errors import UnknownQuestionError
from practice_engine.delivery.learner_store import LearnerRecord
from practice_engine.progress.badges import BadgeType, award
from practice_engine.progress.missions import expire_if_due, points_for, record_answer, start_mission
from practice_engine.progress.models import Streak
from practice_engine.progress.stats import mission_stats
from practice_engine.progress.streak_tracker import ProgressTracker, advance_streak

DAY = date(2026, 3, 10)


@pytest.fixture
def make_mission(mcq_factory):
    def factory(count=3, points=10, difficulty=MissionDifficulty.MEDIUM, mission_id="m1", batch_date=DAY):
        questions = [
            HydratedQuestion(
                question_id=f"q_{n}_atom_a_MCQ_CONCEPT",
                atom_id="atom_a",
                slot=n,
                content=mcq_factory(f"item_{n}", "atom_a", tag="mis_a"),
            )
            for n in range(1, count + 1)
        ]
        return Mission(
            mission_id=mission_id,
            learner_id="ada",
            batch_date=batch_date,
            phase="WARM_UP",
            title="Warm-Up Review",
            order=1,
            questions=questions,
            difficulty=difficulty,
            points=points,
            expires_at=datetime.combine(batch_date + timedelta(days=1), datetime.min.time(), tzinfo=UTC),
        )

    return factory


def answer_all(mission, correct, now, opened=True):
    if opened:
        mission = start_mission(mission, now)
    for index, question in enumerate(mission.questions):
        mission = record_answer(mission, question.question_id, index < correct, now)
    return mission


class TestMissionTransitions:
    def test_opening_starts_clock(self, make_mission, now):
        mission = start_mission(make_mission(), now)
        assert mission.status is MissionStatus.IN_PROGRESS
        assert mission.started_at == now
        assert start_mission(mission, now + timedelta(minutes=1)).started_at == now

    def test_first_answer_without_opening_is_untimed(self, make_mission, now):
        mission = record_answer(make_mission(), "q_1_atom_a_MCQ_CONCEPT", True, now)
        assert mission.status is MissionStatus.IN_PROGRESS
        assert mission.started_at is None

    def test_target_met_completes(self, make_mission, now):
        mission = answer_all(make_mission(), correct=3, now=now)
        assert mission.status is MissionStatus.COMPLETED
        assert mission.points_earned == 10
        assert mission.score == 100

    def test_target_missed_fails_with_half_points(self, make_mission, now):
        mission = answer_all(make_mission(points=15), correct=1, now=now)
        assert mission.status is MissionStatus.FAILED
        assert mission.points_earned == 7

    def test_repeat_answer_ignored(self, make_mission, now):
        mission = record_answer(make_mission(), "q_1_atom_a_MCQ_CONCEPT", False, now)
        again = record_answer(mission, "q_1_atom_a_MCQ_CONCEPT", True, now)
        assert again.completed_question_ids == ["q_1_atom_a_MCQ_CONCEPT"]
        assert again.correct_question_ids == []

    def test_unknown_question(self, make_mission, now):
        with pytest.raises(UnknownQuestionError):
            record_answer(make_mission(), "q_99_nope", True, now)

    def test_expiry(self, make_mission):
        mission = make_mission()
        assert expire_if_due(mission, mission.expires_at).status is MissionStatus.AVAILABLE
        expired = expire_if_due(mission, mission.expires_at + timedelta(seconds=1))
        assert expired.status is MissionStatus.EXPIRED

    def test_expired_mission_not_recorded(self, make_mission):
        mission = expire_if_due(make_mission(), datetime(2026, 3, 12, tzinfo=UTC))
        after = record_answer(mission, "q_1_atom_a_MCQ_CONCEPT", True, datetime(2026, 3, 12, tzinfo=UTC))
        assert after.answered_count == 0

    def test_points_for_open_status(self, make_mission):
        assert points_for(make_mission(), MissionStatus.IN_PROGRESS) == 0


class TestAdvanceStreak:
    def test_first_completion(self, now):
        streak, earned = advance_streak(Streak(), DAY, now)
        assert (streak.current_streak, streak.longest_streak) == (1, 1)
        assert streak.start_date == DAY
        assert [b.type for b in earned] == [BadgeType.FIRST_MISSION]

    def test_same_day_unchanged(self, now):
        streak, _ = advance_streak(Streak(), DAY, now)
        again, earned = advance_streak(streak, DAY, now)
        assert again.current_streak == 1
        assert earned == []

    def test_consecutive_days(self, now):
        streak, _ = advance_streak(Streak(), DAY, now)
        streak, _ = advance_streak(streak, DAY + timedelta(days=1), now)
        assert (streak.current_streak, streak.longest_streak) == (2, 2)
        assert streak.start_date == DAY

    def test_gap_resets(self, now):
        streak = Streak(current_streak=5, longest_streak=5, start_date=DAY, last_mission_date=DAY)
        streak, _ = advance_streak(streak, DAY + timedelta(days=3), now)
        assert (streak.current_streak, streak.longest_streak) == (1, 5)
        assert streak.start_date == DAY + timedelta(days=3)

    def test_week_badge_at_seven(self, now):
        streak = Streak(current_streak=6, longest_streak=6, last_mission_date=DAY)
        streak, earned = advance_streak(streak, DAY + timedelta(days=1), now)
        assert [b.type for b in earned] == [BadgeType.WEEK_STREAK]
        assert streak.has_badge(BadgeType.WEEK_STREAK)

    def test_month_badge_at_thirty(self, now):
        streak = Streak(current_streak=29, longest_streak=29, last_mission_date=DAY)
        streak, earned = advance_streak(streak, DAY + timedelta(days=1), now)
        assert streak.current_streak == 30
        assert [b.type for b in earned] == [BadgeType.MONTH_STREAK]

    def test_month_badge_not_awarded_twice(self, now):
        streak = Streak(current_streak=29, longest_streak=29, last_mission_date=DAY)
        streak, _ = advance_streak(streak, DAY + timedelta(days=1), now)

        # Break, then build back up to thirty
        streak, _ = advance_streak(streak, DAY + timedelta(days=5), now)
        streak = streak.model_copy(update={"current_streak": 29})
        streak, earned = advance_streak(streak, DAY + timedelta(days=6), now)

        assert streak.current_streak == 30
        assert earned == []
        assert [b.type for b in streak.badges].count(BadgeType.MONTH_STREAK) == 1

    def test_input_not_modified(self, now):
        original = Streak()
        advance_streak(original, DAY, now)
        assert original.is_new
        assert original.badges == []


class TestBadges:
    def test_award_once(self, now):
        badges = []
        assert award(badges, BadgeType.PERFECT_DAY, now) is not None
        assert award(badges, BadgeType.PERFECT_DAY, now) is None
        assert len(badges) == 1


class TestMissionFinished:
    def test_completed_mission(self, make_mission, now):
        mission = answer_all(make_mission(), correct=3, now=now)
        batch = DailyBatch(learner_id="ada", batch_date=DAY, generated_at=now, missions=[mission])

        streak, earned = ProgressTracker().mission_finished(Streak(), mission, batch, now)

        assert streak.current_streak == 1
        assert streak.total_missions_completed == 1
        assert streak.total_points_earned == 10
        assert {b.type for b in earned} == {BadgeType.FIRST_MISSION, BadgeType.SPEED_RUNNER, BadgeType.PERFECT_DAY}

    def test_failed_mission_adds_points_only(self, make_mission, now):
        mission = answer_all(make_mission(points=15), correct=0, now=now)
        batch = DailyBatch(learner_id="ada", batch_date=DAY, generated_at=now, missions=[mission])

        streak, earned = ProgressTracker().mission_finished(Streak(), mission, batch, now)

        assert streak.current_streak == 0
        assert streak.total_points_earned == 7
        assert earned == []

    def test_perfect_day_needs_every_mission(self, make_mission, now):
        done = answer_all(make_mission(), correct=3, now=now)
        open_mission = make_mission(mission_id="m2")
        batch = DailyBatch(learner_id="ada", batch_date=DAY, generated_at=now, missions=[done, open_mission])

        _, earned = ProgressTracker().mission_finished(Streak(), done, batch, now)
        assert BadgeType.PERFECT_DAY not in {b.type for b in earned}

    def test_slow_mission_no_speed_badge(self, make_mission, now):
        mission = start_mission(make_mission(count=2), now)
        mission = record_answer(mission, "q_1_atom_a_MCQ_CONCEPT", True, now)
        mission = record_answer(mission, "q_2_atom_a_MCQ_CONCEPT", True, now + timedelta(minutes=5))
        batch = DailyBatch(learner_id="ada", batch_date=DAY, generated_at=now, missions=[mission])

        _, earned = ProgressTracker().mission_finished(Streak(), mission, batch, now)
        assert BadgeType.SPEED_RUNNER not in {b.type for b in earned}

    def test_unopened_single_question_mission_no_speed_badge(self, make_mission, now):
        mission = answer_all(make_mission(count=1), correct=1, now=now, opened=False)
        batch = DailyBatch(learner_id="ada", batch_date=DAY, generated_at=now, missions=[mission])

        _, earned = ProgressTracker().mission_finished(Streak(), mission, batch, now)

        assert mission.status is MissionStatus.COMPLETED
        assert BadgeType.SPEED_RUNNER not in {b.type for b in earned}

    def test_hard_champion(self, make_mission, now):
        mission = answer_all(make_mission(difficulty=MissionDifficulty.HARD), correct=3, now=now)
        batch = DailyBatch(learner_id="ada", batch_date=DAY, generated_at=now, missions=[mission])
        streak = Streak(hard_missions_completed=9, last_mission_date=DAY)

        updated, earned = ProgressTracker().mission_finished(streak, mission, batch, now)
        assert updated.hard_missions_completed == 10
        assert BadgeType.HARD_CHAMPION in {b.type for b in earned}


class TestAnswerPatch:
    def test_correct_answer_raises_mastery(self, make_mission, now):
        question = make_mission().questions[0]
        record = LearnerRecord(learner_id="ada", mastery={"atom_a": 0.5})

        patch = ProgressTracker().answer_patch(record, question, True, now)

        assert patch["mastery"]["atom_a"] == pytest.approx(0.55)
        assert patch["last_seen"]["atom_a"] == now
        assert patch["correct_runs"] == {"mis_a": 1}

    def test_wrong_answer_adds_hurdle(self, make_mission, now):
        question = make_mission().questions[0]
        record = LearnerRecord(learner_id="ada", correct_runs={"mis_a": 2})

        patch = ProgressTracker().answer_patch(record, question, False, now)

        assert patch["hurdles"] == {"mis_a": 1}
        assert patch["correct_runs"] == {"mis_a": 0}
        assert patch["mastery"]["atom_a"] == pytest.approx(0.45)

    def test_three_correct_clear_hurdle(self, make_mission, now):
        question = make_mission().questions[0]
        record = LearnerRecord(learner_id="ada", hurdles={"mis_a": 2}, correct_runs={"mis_a": 2})

        patch = ProgressTracker().answer_patch(record, question, True, now)

        assert patch["hurdles"] == {}
        assert patch["correct_runs"] == {}


class TestMissionStats:
    def test_counts_and_rates(self, make_mission, now):
        completed = answer_all(make_mission(mission_id="a"), correct=3, now=now)
        failed = answer_all(make_mission(mission_id="b", points=20), correct=0, now=now)
        untouched = make_mission(mission_id="c")
        batch = DailyBatch(learner_id="ada", batch_date=DAY, generated_at=now, missions=[completed, failed, untouched])

        stats = mission_stats([batch], Streak(current_streak=2, longest_streak=4), days=7)

        assert (stats.total_missions, stats.completed, stats.failed, stats.available) == (3, 1, 1, 1)
        assert stats.completion_rate == 33
        assert stats.points_earned == 20
        assert stats.points_available == 40
        assert stats.average_completion_seconds == 0
        assert stats.favorite_phase == "WARM_UP"
        assert (stats.current_streak, stats.longest_streak) == (2, 4)
