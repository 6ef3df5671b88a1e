"""
Delivery Module - Persistence seen by the learner-facing flow.

Components:
- cache: Versioned resumable cache over memory or JSON files
- served: Per-day served-content ledger
- session_cache: Resumable subject sessions
- learner_store: Durable learner records (SQLAlchemy)
"""

from practice_engine.delivery.cache import (
    CacheBackend,
    JsonFileCache,
    MemoryCache,
    VersionedCache,
)
from practice_engine.delivery.learner_store import (
    InMemoryLearnerStore,
    LearnerRecord,
    LearnerStore,
    SqlLearnerStore,
)
from practice_engine.delivery.served import ServedLedger
from practice_engine.delivery.session_cache import (
    SESSION_SCHEMA_VERSION,
    Session,
    SessionCache,
    SessionProgress,
)

__all__ = [
    "CacheBackend",
    "JsonFileCache",
    "MemoryCache",
    "VersionedCache",
    "InMemoryLearnerStore",
    "LearnerRecord",
    "LearnerStore",
    "SqlLearnerStore",
    "ServedLedger",
    "SESSION_SCHEMA_VERSION",
    "Session",
    "SessionCache",
    "SessionProgress",
]
