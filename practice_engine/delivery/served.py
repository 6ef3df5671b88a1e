"""
Served-content ledger.

Content ids shown to a learner on one practice day, shared by the daily
batch and every subject session so no item is served twice that day.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from practice_engine.delivery.cache import CacheBackend, VersionedCache

LEDGER_SCHEMA_VERSION = 1


class ServedLedger:
    def __init__(self, backend: CacheBackend, schema_version: int = LEDGER_SCHEMA_VERSION):
        self.cache = VersionedCache(backend, schema_version)

    @staticmethod
    def key(learner_id: str, day: date) -> str:
        return f"served:{learner_id}:{day.isoformat()}"

    def load(self, learner_id: str, day: date) -> set[str]:
        payload = self.cache.read_payload(self.key(learner_id, day))
        return set(payload or [])

    def save(self, learner_id: str, day: date, served_ids: Iterable[str]) -> None:
        self.cache.write_payload(self.key(learner_id, day), sorted(set(served_ids)))
