"""
Error taxonomy for the practice engine.

Propagation policy:
- ContentUnavailable and StaleCache are raised and absorbed internally
  (graceful degradation / silent regeneration).
- InvalidOverride is raised by override validation and downgraded to a
  logged warning by the engine.
- StoreUnavailable always reaches the caller: mastery and streak integrity
  depend on the durable store.
"""

from __future__ import annotations


class PracticeEngineError(Exception):
    """Base class for all practice engine errors."""


class ContentUnavailable(PracticeEngineError):
    """A content pool source returned nothing usable or failed to respond."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Content unavailable from {source}: {reason}")


class InvalidOverride(PracticeEngineError):
    """A caller asked for an unknown template, module or phase."""

    def __init__(self, kind: str, value: str):
        self.kind = kind
        self.value = value
        super().__init__(f"Unknown {kind} override: {value!r}")


class StoreUnavailable(PracticeEngineError):
    """The durable learner record store could not be read or written."""


class StaleCache(PracticeEngineError):
    """A cached entry was written under a different schema version."""

    def __init__(self, key: str, cached_version: int | None, current_version: int):
        self.key = key
        self.cached_version = cached_version
        self.current_version = current_version
        super().__init__(
            f"Cache entry {key} has schema version {cached_version}, expected {current_version}"
        )


class UnknownMissionError(PracticeEngineError, LookupError):
    """No mission with the given id exists for the learner."""


class UnknownQuestionError(PracticeEngineError, LookupError):
    """The mission has no question with the given id."""
