"""
Content Module - Authored question content and hydration.

Components:
- models: Tagged-union content items, planned slots, hydrated questions
- normalize: Legacy/structured document normalisation
- sources: HTTP and offline content pool sources
- pool: Concurrent bundle fetch with direct-collection fallback
- hydrator: Strict/fallback/drop matching with served-id dedup
"""

from practice_engine.content.hydrator import ContentHydrator
from practice_engine.content.models import (
    ALLOWED_TEMPLATES,
    BundleSummary,
    ContentItem,
    HydratedQuestion,
    PlannedItem,
)
from practice_engine.content.pool import CandidateSet, ContentPool
from practice_engine.content.sources import ContentSource, HttpContentSource, InMemoryContentSource

__all__ = [
    "ALLOWED_TEMPLATES",
    "BundleSummary",
    "CandidateSet",
    "ContentHydrator",
    "ContentItem",
    "ContentPool",
    "ContentSource",
    "HttpContentSource",
    "HydratedQuestion",
    "InMemoryContentSource",
    "PlannedItem",
]
