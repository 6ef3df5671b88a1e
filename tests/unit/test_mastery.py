"""
Unit tests for mastery helpers, practice-day arithmetic and the curriculum loader.
"""

from datetime import UTC, date, datetime

import pytest

from practice_engine.adaptive.models import MissionDifficulty
from practice_engine.core.clock import day_difference, expiry_for, practice_date, resolve_timezone
from practice_engine.core.mastery import (
    MasteryLevel,
    apply_answer,
    difficulty_tier,
    effective_fact_score,
    table_atom_id,
    table_fact_weight,
    table_stats,
    weighted_table_mastery,
)
from practice_engine.curriculum.loader import load_curriculum


class TestMasteryLevel:
    def test_from_score(self):
        assert MasteryLevel.from_score(0) == MasteryLevel.NOT_STARTED
        assert MasteryLevel.from_score(0.3) == MasteryLevel.NOVICE
        assert MasteryLevel.from_score(0.5) == MasteryLevel.DEVELOPING
        assert MasteryLevel.from_score(0.75) == MasteryLevel.PROFICIENT
        assert MasteryLevel.from_score(0.95) == MasteryLevel.MASTERED

    def test_display_name(self):
        assert MasteryLevel.NOT_STARTED.display_name == "Not Started"


class TestDifficulty:
    def test_tiers(self):
        assert difficulty_tier(0.9) == 1
        assert difficulty_tier(0.5) == 2
        assert difficulty_tier(0.1) == 3

    def test_mission_difficulty_from_tiers(self):
        assert MissionDifficulty.from_tiers([1, 1, 2]) == MissionDifficulty.EASY
        assert MissionDifficulty.from_tiers([2, 2, 3]) == MissionDifficulty.MEDIUM
        assert MissionDifficulty.from_tiers([3, 3, 2]) == MissionDifficulty.HARD
        assert MissionDifficulty.from_tiers([]) == MissionDifficulty.MEDIUM


class TestApplyAnswer:
    def test_step_up_and_down(self):
        assert apply_answer(0.5, True) == pytest.approx(0.55)
        assert apply_answer(0.5, False) == pytest.approx(0.45)

    def test_clamped(self):
        assert apply_answer(0.98, True) == 1.0
        assert apply_answer(0.02, False) == 0.0


class TestTables:
    def test_weights(self):
        assert table_fact_weight(1, 7) == 0.5
        assert table_fact_weight(2, 9) == 0.8
        assert table_fact_weight(3, 4) == 1.5
        assert table_fact_weight(7, 8) == table_fact_weight(8, 7) == 3.0
        assert table_fact_weight(7, 7) == 4.0
        assert table_fact_weight(15, 17) == 5.0

    def test_effective_score_curve(self):
        assert effective_fact_score(0.5) == pytest.approx(0.5)
        assert effective_fact_score(0.9) == 1.0
        assert effective_fact_score(0.1) == 0.0

    def test_empty_mastery(self):
        assert weighted_table_mastery({}) == 0
        assert table_stats({})["mastered_count"] == 0

    def test_full_mastery(self):
        mastery = {table_atom_id(a, b): 0.9 for a in range(1, 21) for b in range(1, 21)}
        assert weighted_table_mastery(mastery) == 100
        assert table_stats(mastery) == {"mastered_count": 400, "total_facts": 400, "percentage": 100}

    def test_partial_credit(self):
        mastery = {table_atom_id(a, b): 0.5 for a in range(1, 21) for b in range(1, 21)}
        assert weighted_table_mastery(mastery) == 50


class TestPracticeDate:
    def test_before_cutover_counts_as_previous_day(self):
        assert practice_date(datetime(2026, 3, 10, 3, 59)) == date(2026, 3, 9)

    def test_at_cutover_is_new_day(self):
        assert practice_date(datetime(2026, 3, 10, 4, 0)) == date(2026, 3, 10)

    def test_custom_cutover(self):
        assert practice_date(datetime(2026, 3, 10, 1, 0), cutover_hour=0) == date(2026, 3, 10)

    def test_invalid_cutover(self):
        with pytest.raises(ValueError):
            practice_date(datetime(2026, 3, 10), cutover_hour=24)

    def test_day_difference(self):
        assert day_difference(date(2026, 2, 28), date(2026, 3, 2)) == 2

    def test_expiry_at_next_cutover(self):
        assert expiry_for(date(2026, 3, 10)) == datetime(2026, 3, 11, 4, 0, tzinfo=UTC)
        assert expiry_for(date(2026, 3, 10), cutover_hour=0) == datetime(2026, 3, 11, tzinfo=UTC)

    def test_expiry_after_every_moment_of_its_practice_day(self):
        late_night = datetime(2026, 3, 11, 3, 59, tzinfo=UTC)
        assert late_night < expiry_for(practice_date(late_night))

    def test_resolve_timezone(self):
        assert resolve_timezone(None) is UTC
        assert resolve_timezone("Europe/Oslo").key == "Europe/Oslo"


class TestCurriculumLoader:
    def test_packaged_curriculum(self):
        curriculum = load_curriculum()
        assert not curriculum.is_empty
        assert curriculum.module_ids == {"integers", "fractions", "equations"}

    def test_missing_file_gives_empty(self, tmp_path):
        assert load_curriculum(str(tmp_path / "missing.json")).is_empty

    def test_atoms_in_modules(self, curriculum):
        assert [a.atom_id for a in curriculum.atoms_in_modules(["m2"])] == ["atom_d", "atom_42"]
