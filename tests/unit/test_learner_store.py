"""
Unit tests for the durable learner store.
"""

from datetime import UTC, date, datetime

import pytest

from practice_engine.core.errors import StoreUnavailable
from practice_engine.delivery.learner_store import InMemoryLearnerStore, SqlLearnerStore, merge_patch
from practice_engine.progress.models import Streak


@pytest.fixture(params=["sql", "memory"])
def store(request, tmp_path):
    if request.param == "sql":
        return SqlLearnerStore(f"sqlite:///{tmp_path / 'db' / 'learners.db'}")
    return InMemoryLearnerStore()


class TestLearnerStore:
    def test_new_learner_is_empty(self, store):
        record = store.get("ada")
        assert record.learner_id == "ada"
        assert record.mastery == {}
        assert record.streak.is_new

    def test_partial_update_keeps_other_fields(self, store):
        store.put("ada", {"mastery": {"atom_a": 0.55}, "grade": 6})
        store.put("ada", {"streak": Streak(current_streak=2, last_mission_date=date(2026, 3, 10))})

        record = store.get("ada")
        assert record.mastery == {"atom_a": 0.55}
        assert record.grade == 6
        assert record.streak.current_streak == 2
        assert record.streak.last_mission_date == date(2026, 3, 10)

    def test_put_replaces_top_level_field(self, store):
        store.put("ada", {"mastery": {"atom_a": 0.55, "atom_b": 0.4}})
        record = store.put("ada", {"mastery": {"atom_a": 0.6}})
        assert record.mastery == {"atom_a": 0.6}

    def test_datetimes_round_trip(self, store):
        seen = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)
        store.put("ada", {"last_seen": {"atom_a": seen}})
        assert store.get("ada").last_seen["atom_a"] == seen

    def test_learners_isolated(self, store):
        store.put("ada", {"grade": 7})
        store.put("bob", {"grade": 8})
        assert store.get("ada").grade == 7
        assert store.learner_ids() == ["ada", "bob"]

    def test_unreadable_document(self):
        store = InMemoryLearnerStore({"ada": {"mastery": "not a map"}})
        with pytest.raises(StoreUnavailable):
            store.get("ada")


class TestSqlLearnerStore:
    def test_persists_across_instances(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'learners.db'}"
        SqlLearnerStore(url).put("ada", {"hurdles": {"mis_a": 2}})
        assert SqlLearnerStore(url).get("ada").hurdles == {"mis_a": 2}


class TestMergePatch:
    def test_top_level_only(self):
        merged = merge_patch({"a": {"x": 1}, "b": 2}, {"a": {"y": 2}})
        assert merged == {"a": {"y": 2}, "b": 2}
