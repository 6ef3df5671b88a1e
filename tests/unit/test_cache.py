"""
Unit tests for cache backends, the versioned envelope and the served ledger.
"""

from datetime import date

import pytest
from pydantic import BaseModel

from practice_engine.delivery.cache import JsonFileCache, MemoryCache, VersionedCache
from practice_engine.delivery.served import ServedLedger


class Note(BaseModel):
    text: str
    count: int = 0


@pytest.fixture(params=["memory", "file"])
def backend(request, tmp_path):
    if request.param == "memory":
        return MemoryCache()
    return JsonFileCache(tmp_path / "cache")


class TestBackends:
    def test_set_get_delete(self, backend):
        backend.set("session:ada:math:2026-03-10", "{}")
        assert backend.get("session:ada:math:2026-03-10") == "{}"
        assert backend.delete("session:ada:math:2026-03-10") is True
        assert backend.get("session:ada:math:2026-03-10") is None
        assert backend.delete("session:ada:math:2026-03-10") is False

    def test_keys_by_prefix(self, backend):
        for key in ("batch:ada:2026-03-09", "batch:ada:2026-03-10", "batch:bob:2026-03-10", "served:ada:x"):
            backend.set(key, "1")
        assert backend.keys("batch:ada:") == ["batch:ada:2026-03-09", "batch:ada:2026-03-10"]

    def test_file_keys_survive_quoting(self, tmp_path):
        cache = JsonFileCache(tmp_path)
        cache.set("a/b:c d", "x")
        assert cache.keys() == ["a/b:c d"]
        assert not list(tmp_path.glob("*.tmp"))


class TestVersionedCache:
    def test_round_trip(self, backend):
        cache = VersionedCache(backend, schema_version=2)
        cache.write("note", Note(text="hi", count=3))
        assert cache.read("note", Note) == Note(text="hi", count=3)

    def test_version_mismatch_is_miss_and_discards(self, backend):
        VersionedCache(backend, schema_version=2).write("note", Note(text="old"))
        current = VersionedCache(backend, schema_version=3)

        assert current.read("note", Note) is None
        assert backend.get("note") is None

    def test_corrupt_entry_is_miss(self, backend):
        backend.set("note", "not json at all")
        assert VersionedCache(backend, 1).read_payload("note") is None
        assert backend.get("note") is None

    def test_wrong_shape_is_miss(self, backend):
        cache = VersionedCache(backend, 1)
        cache.write_payload("note", {"unexpected": True})
        assert cache.read("note", Note) is None
        assert backend.get("note") is None


class TestServedLedger:
    def test_shared_per_day(self):
        ledger = ServedLedger(MemoryCache())
        day = date(2026, 3, 10)
        ledger.save("ada", day, {"b", "a", "a"})

        assert ledger.load("ada", day) == {"a", "b"}
        assert ledger.load("ada", date(2026, 3, 11)) == set()
        assert ledger.load("bob", day) == set()
