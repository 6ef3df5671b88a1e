"""
Unit tests for the phase selector strategies.
"""

from datetime import timedelta

import pytest

from practice_engine.adaptive.phase_selector import PhaseSelector
from practice_engine.adaptive.phases import MISSION_PHASES, PHASES_BY_NAME


def ids(atoms):
    return [a.atom_id for a in atoms]


@pytest.fixture
def selector(rng):
    return PhaseSelector(rng=rng)


class TestSpacedReview:
    def test_recently_seen_atom_is_skipped(self, selector, curriculum, now):
        result = selector.select_candidates(
            PHASES_BY_NAME["WARM_UP"],
            curriculum.atoms,
            {"atom_42": 0.85},
            last_seen={"atom_42": now},
            now=now,
        )
        assert "atom_42" not in ids(result)
        assert ids(result) == ["atom_a", "atom_b", "atom_c"]

    def test_atom_seen_two_days_ago_is_due(self, selector, curriculum, now):
        seen = {a.atom_id: now for a in curriculum.atoms}
        seen["atom_d"] = now - timedelta(days=2)

        result = selector.select_candidates(
            PHASES_BY_NAME["WARM_UP"], curriculum.atoms, {}, last_seen=seen, now=now
        )
        assert ids(result) == ["atom_d"]

    def test_nothing_due_falls_back_to_curriculum_head(self, selector, curriculum, now):
        seen = {a.atom_id: now for a in curriculum.atoms}
        result = selector.select_candidates(
            PHASES_BY_NAME["WARM_UP"], curriculum.atoms, {}, last_seen=seen, now=now
        )
        assert ids(result) == ["atom_a", "atom_b", "atom_c"]


class TestMisconceptionDiagnosis:
    def test_active_hurdle_goes_first(self, selector, curriculum):
        result = selector.select_candidates(
            PHASES_BY_NAME["DIAGNOSIS"],
            curriculum.atoms,
            {"atom_42": 0.85},
            hurdles={"mis_c": 2},
        )
        assert ids(result) == ["atom_c", "atom_a"]

    def test_only_atoms_with_misconceptions(self, selector, curriculum):
        result = selector.select_candidates(PHASES_BY_NAME["DIAGNOSIS"], curriculum.atoms, {})
        assert ids(result) == ["atom_a", "atom_c", "atom_42"]


class TestGuidedPractice:
    def test_weak_and_strong_interleaved(self, selector, curriculum):
        mastery = {"atom_a": 0.3, "atom_b": 0.4, "atom_c": 0.55, "atom_d": 0.9, "atom_42": 0.8}
        result = selector.select_candidates(PHASES_BY_NAME["GUIDED_PRACTICE"], curriculum.atoms, mastery)
        assert ids(result) == ["atom_a", "atom_d", "atom_b"]


class TestAdvancedReasoning:
    def test_mastered_atom_selected(self, selector, curriculum):
        result = selector.select_candidates(PHASES_BY_NAME["ADVANCED"], curriculum.atoms, {"atom_42": 0.85})
        assert ids(result) == ["atom_42"]

    def test_sorted_by_mastery_descending(self, selector, curriculum):
        mastery = {"atom_a": 0.65, "atom_b": 0.95, "atom_c": 0.75}
        result = selector.select_candidates(PHASES_BY_NAME["ADVANCED"], curriculum.atoms, mastery)
        assert ids(result) == ["atom_b", "atom_c", "atom_a"]

    def test_fallback_with_default_mastery(self, selector, curriculum):
        result = selector.select_candidates(PHASES_BY_NAME["ADVANCED"], curriculum.atoms, {})
        assert ids(result) == ["atom_a", "atom_b", "atom_c"]


class TestTransferLearning:
    def test_strong_atoms_only(self, selector, curriculum):
        mastery = {"atom_a": 0.3, "atom_d": 0.9, "atom_42": 0.8}
        result = selector.select_candidates(PHASES_BY_NAME["REFLECTION"], curriculum.atoms, mastery)
        assert set(ids(result)) == {"atom_d", "atom_42"}


class TestSelectorBounds:
    def test_empty_curriculum(self, selector):
        for phase in MISSION_PHASES:
            assert selector.select_candidates(phase, [], {}) == []

    @pytest.mark.parametrize("phase", MISSION_PHASES, ids=lambda p: p.name)
    def test_never_exceeds_slot_count(self, selector, curriculum, now, phase):
        mastery = {"atom_a": 0.9, "atom_b": 0.95, "atom_c": 0.85, "atom_d": 0.8, "atom_42": 0.75}
        result = selector.select_candidates(phase, curriculum.atoms, mastery, now=now)
        assert 0 < len(result) <= phase.slots
        assert len(set(ids(result))) == len(result)
