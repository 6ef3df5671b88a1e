"""
Content Hydrator.

Matches planned (atom, template) slots to authored content:

1. Pre-hydrated slots pass through; their content ids count as served.
2. Candidates are restricted to vetted template types and to items not
   yet served today.
3. Strict match: first candidate tagged with the slot's atom.
4. Fallback match: first remaining candidate, flagged `is_fallback`.
5. No candidate left: the slot is dropped.

The served-id set is an explicit accumulator owned by the caller and shared
by every hydration call for one learner and practice day. It is only
updated once the whole call has been matched.
"""

from __future__ import annotations

import random
from collections.abc import Collection, Iterable, MutableSet, Sequence

from loguru import logger

from practice_engine.content.models import (
    ALLOWED_TEMPLATES,
    ContentItem,
    HydratedQuestion,
    PlannedItem,
)
from practice_engine.content.options import with_arranged_options


class ContentHydrator:
    """Strict, then fallback, then drop."""

    def __init__(
        self,
        allowed_templates: Collection[str] = ALLOWED_TEMPLATES,
        rng: random.Random | None = None,
    ):
        self.allowed_templates = frozenset(allowed_templates)
        self.rng = rng or random.Random()

    def hydrate(
        self,
        skeletons: Sequence[PlannedItem],
        content_pool: Iterable[ContentItem],
        served_ids: MutableSet[str],
    ) -> list[HydratedQuestion]:
        """
        Hydrate planned slots against a content pool.

        Args:
            skeletons: Planned slots in display order
            content_pool: Candidate items (any order; first wins on ties)
            served_ids: Ids already shown today; updated in place

        Returns:
            Hydrated questions in skeleton order, minus dropped slots
        """
        candidates = self.eligible(content_pool, served_ids)
        used = {s.content.id for s in skeletons if s.content is not None}
        hydrated: list[HydratedQuestion] = []
        strict = fallback = dropped = 0

        for skeleton in skeletons:
            if skeleton.content is not None:
                hydrated.append(_merge(skeleton, skeleton.content, is_fallback=False))
                continue

            match = next(
                (c for c in candidates if c.id not in used and c.atom_id == skeleton.atom_id),
                None,
            )
            is_fallback = False
            if match is None:
                match = next((c for c in candidates if c.id not in used), None)
                is_fallback = True

            if match is None:
                dropped += 1
                continue

            used.add(match.id)
            if is_fallback:
                fallback += 1
            else:
                strict += 1
            hydrated.append(
                _merge(skeleton, with_arranged_options(match, self.rng), is_fallback=is_fallback)
            )

        served_ids.update(used)
        if skeletons:
            logger.debug(
                f"Hydrated {len(hydrated)}/{len(skeletons)} slots "
                f"(strict={strict}, fallback={fallback}, dropped={dropped})"
            )
        return hydrated

    def eligible(
        self, content_pool: Iterable[ContentItem], served_ids: Collection[str]
    ) -> list[ContentItem]:
        """Vetted, unserved, unique candidates in pool order."""
        seen: set[str] = set()
        eligible = []
        for item in content_pool:
            if item.template_id not in self.allowed_templates:
                continue
            if item.id in served_ids or item.id in seen:
                continue
            seen.add(item.id)
            eligible.append(item)
        return eligible

    def select_unserved(
        self,
        content_pool: Iterable[ContentItem],
        served_ids: MutableSet[str],
        limit: int,
        shuffle: bool = True,
    ) -> list[HydratedQuestion]:
        """
        Pick up to `limit` unserved items for a subject session.

        Session questions are not planned per atom, so every pick is a
        direct (non-fallback) match numbered from slot 1.
        """
        picked = self.eligible(content_pool, served_ids)
        if shuffle:
            self.rng.shuffle(picked)
        picked = picked[:limit]

        questions = []
        for index, item in enumerate(picked, start=1):
            item = with_arranged_options(item, self.rng)
            questions.append(
                HydratedQuestion(
                    question_id=f"q_{index}_{item.atom_id or 'none'}_{item.template_id}",
                    atom_id=item.atom_id,
                    planned_template_id=item.template_id,
                    slot=index,
                    content=item,
                )
            )
        served_ids.update(item.id for item in picked)
        return questions


def _merge(skeleton: PlannedItem, content: ContentItem, is_fallback: bool) -> HydratedQuestion:
    return HydratedQuestion(
        question_id=skeleton.question_id,
        atom_id=skeleton.atom_id,
        planned_template_id=skeleton.template_id,
        phase=skeleton.phase,
        slot=skeleton.slot,
        difficulty_tier=skeleton.difficulty_tier,
        mastery_before=skeleton.mastery_before,
        is_fallback=is_fallback,
        content=content,
    )
