"""
Content pool access for one generation cycle.

Bundles matching the subject and grade are fetched concurrently; each fetch
fills its own list and the lists are concatenated once every fetch has
finished. When no bundle yields anything the direct question collection is
queried instead. Source failures count as zero candidates.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from practice_engine.content.models import ContentItem
from practice_engine.content.sources import ContentSource
from practice_engine.core.errors import ContentUnavailable

DEFAULT_MAX_BUNDLES = 3
DEFAULT_DIRECT_LIMIT = 10


@dataclass
class CandidateSet:
    """Candidates gathered for one subject, with where they came from."""

    items: list[ContentItem] = field(default_factory=list)
    origin: str = "none"  # "bundle", "direct" or "none"

    @property
    def is_empty(self) -> bool:
        return not self.items


class ContentPool:
    """Fans out over the configured sources and merges their candidates."""

    def __init__(
        self,
        sources: Sequence[ContentSource],
        max_bundles: int = DEFAULT_MAX_BUNDLES,
        direct_limit: int = DEFAULT_DIRECT_LIMIT,
    ):
        self.sources = list(sources)
        self.max_bundles = max_bundles
        self.direct_limit = direct_limit

    async def fetch_candidates(self, subject: str, grade: int | None) -> CandidateSet:
        """
        Gather content items for a subject and grade.

        Args:
            subject: Subject id (case-insensitive)
            grade: Grade filter, None for any grade

        Returns:
            CandidateSet with de-duplicated items in source order
        """
        bundle_items = await self._fetch_bundles(subject, grade)
        if bundle_items:
            return CandidateSet(items=_dedupe(bundle_items), origin="bundle")

        logger.debug(f"No bundle content for {subject}/grade {grade}, querying question collection")
        direct = await asyncio.gather(
            *(self._query_direct(source, subject, grade) for source in self.sources)
        )
        items = _dedupe(item for batch in direct for item in batch)
        if not items:
            logger.warning(f"Content pool has nothing for {subject}/grade {grade}")
            return CandidateSet()
        return CandidateSet(items=items, origin="direct")

    async def _fetch_bundles(self, subject: str, grade: int | None) -> list[ContentItem]:
        fetches = []
        for source in self.sources:
            try:
                summaries = await source.list_bundles(subject, grade)
            except ContentUnavailable as e:
                logger.warning(f"Bundle query failed: {e}")
                continue
            fetches.extend(
                self._fetch_bundle(source, summary.bundle_id) for summary in summaries[: self.max_bundles]
            )

        if not fetches:
            return []
        results = await asyncio.gather(*fetches)
        return [item for items in results for item in items]

    async def _fetch_bundle(self, source: ContentSource, bundle_id: str) -> list[ContentItem]:
        try:
            return await source.fetch_bundle(bundle_id)
        except ContentUnavailable as e:
            logger.warning(f"Bundle {bundle_id} skipped: {e}")
            return []

    async def _query_direct(
        self, source: ContentSource, subject: str, grade: int | None
    ) -> list[ContentItem]:
        try:
            return await source.query_by_subject_and_grade(subject, grade, self.direct_limit)
        except ContentUnavailable as e:
            logger.warning(f"Direct question query failed: {e}")
            return []


def _dedupe(items) -> list[ContentItem]:
    seen: set[str] = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique
