"""
Mission Builder.

Plans the five phases into skeleton slots, hydrates them against the
content pool and assembles the dated batch:

- slots are numbered globally across phases (slot 7 of 14)
- templates are assigned round-robin from the phase pool
- candidate atoms rotate when a phase has fewer atoms than slots
- each phase becomes one mission worth a fixed number of points,
  expiring at midnight after the batch date

Caching and the regenerate override are the engine's concern; the builder
always builds.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, MutableSet, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo

from loguru import logger

from practice_engine.adaptive.models import BatchOverrides, DailyBatch, Mission, MissionDifficulty
from practice_engine.adaptive.phase_selector import PhaseSelector
from practice_engine.adaptive.phases import MISSION_PHASES, TARGET_SCORE, Phase
from practice_engine.content.hydrator import ContentHydrator
from practice_engine.content.models import ALLOWED_TEMPLATES, ContentItem, HydratedQuestion, PlannedItem
from practice_engine.core.clock import DEFAULT_CUTOVER_HOUR, expiry_for, utc_now
from practice_engine.core.errors import InvalidOverride
from practice_engine.core.mastery import difficulty_tier, mastery_of
from practice_engine.curriculum.models import Curriculum


@dataclass
class PhasePlan:
    """Skeleton slots planned for one phase."""

    phase: Phase
    items: list[PlannedItem]


def validate_overrides(
    overrides: BatchOverrides, curriculum: Curriculum
) -> tuple[BatchOverrides, list[InvalidOverride]]:
    """
    Drop unknown modules and templates from the overrides.

    Returns:
        (cleaned overrides, one InvalidOverride per rejected value)
    """
    problems: list[InvalidOverride] = []
    modules = None
    templates = None

    if overrides.modules:
        known = curriculum.module_ids
        modules = [m for m in overrides.modules if m in known]
        problems.extend(InvalidOverride("module", m) for m in overrides.modules if m not in known)

    if overrides.templates:
        templates = [t for t in overrides.templates if t in ALLOWED_TEMPLATES]
        problems.extend(
            InvalidOverride("template", t) for t in overrides.templates if t not in ALLOWED_TEMPLATES
        )

    cleaned = BatchOverrides(
        regenerate=overrides.regenerate,
        modules=modules or None,
        templates=templates or None,
    )
    return cleaned, problems


def diversity_of(questions: Iterable[HydratedQuestion]) -> tuple[int, float]:
    """Unique template count and unique/total ratio."""
    templates = [q.template_id for q in questions]
    if not templates:
        return 0, 0.0
    unique = len(set(templates))
    return unique, round(unique / len(templates), 2)


class MissionBuilder:
    """Builds a learner's daily batch from curriculum, mastery and content."""

    def __init__(
        self,
        selector: PhaseSelector | None = None,
        hydrator: ContentHydrator | None = None,
        phases: Sequence[Phase] = MISSION_PHASES,
    ):
        self.selector = selector or PhaseSelector()
        self.hydrator = hydrator or ContentHydrator()
        self.phases = tuple(phases)

    def plan(
        self,
        curriculum: Curriculum,
        mastery: Mapping[str, float],
        hurdles: Mapping[str, int] | None = None,
        last_seen: Mapping[str, datetime] | None = None,
        now: datetime | None = None,
        overrides: BatchOverrides | None = None,
    ) -> list[PhasePlan]:
        """
        Plan skeleton slots for every phase, in phase order.

        Args:
            curriculum: Curriculum graph
            mastery: Atom id -> mastery score
            hurdles: Misconception tag -> hurdle count
            last_seen: Atom id -> last practice timestamp
            now: Reference time for spaced review
            overrides: Already validated overrides

        Returns:
            One PhasePlan per phase; empty plans when the curriculum is empty
        """
        overrides = overrides or BatchOverrides()
        atoms = (
            curriculum.atoms_in_modules(overrides.modules) if overrides.modules else list(curriculum.atoms)
        )

        plans: list[PhasePlan] = []
        slot = 0
        for phase in self.phases:
            candidates = self.selector.select_candidates(phase, atoms, mastery, hurdles, last_seen, now)
            templates = tuple(overrides.templates) if overrides.templates else phase.templates

            items: list[PlannedItem] = []
            if candidates:
                for index in range(phase.slots):
                    atom = candidates[index % len(candidates)]
                    score = mastery_of(mastery, atom.atom_id)
                    slot += 1
                    items.append(
                        PlannedItem(
                            atom_id=atom.atom_id,
                            template_id=templates[index % len(templates)],
                            phase=phase.name,
                            slot=slot,
                            difficulty_tier=difficulty_tier(score),
                            mastery_before=score,
                        )
                    )
            plans.append(PhasePlan(phase=phase, items=items))
        return plans

    def build_daily_batch(
        self,
        learner_id: str,
        batch_date: date,
        curriculum: Curriculum,
        mastery: Mapping[str, float],
        content_pool: Iterable[ContentItem] = (),
        served_ids: MutableSet[str] | None = None,
        hurdles: Mapping[str, int] | None = None,
        last_seen: Mapping[str, datetime] | None = None,
        overrides: BatchOverrides | None = None,
        now: datetime | None = None,
        tz: tzinfo = UTC,
        cutover_hour: int = DEFAULT_CUTOVER_HOUR,
    ) -> DailyBatch:
        """
        Plan, hydrate and assemble one day's missions.

        Phases whose slots all go unmatched are left out of the batch. An
        empty curriculum produces a batch with zero missions.
        """
        now = now or utc_now()
        served_ids = served_ids if served_ids is not None else set()
        pool = list(content_pool)

        if curriculum.is_empty:
            logger.info(f"Empty curriculum: nothing to practice for {learner_id} on {batch_date}")
            return DailyBatch(learner_id=learner_id, batch_date=batch_date, generated_at=now)

        plans = self.plan(curriculum, mastery, hurdles, last_seen, now, overrides)
        expires_at = expiry_for(batch_date, tz, cutover_hour)

        missions: list[Mission] = []
        for plan in plans:
            questions = self.hydrator.hydrate(plan.items, pool, served_ids)
            if not questions:
                logger.warning(f"{plan.phase.name}: no content matched, mission omitted")
                continue
            missions.append(
                Mission(
                    mission_id=f"mission_{uuid.uuid4().hex[:12]}",
                    learner_id=learner_id,
                    batch_date=batch_date,
                    phase=plan.phase.name,
                    title=plan.phase.title,
                    order=len(missions) + 1,
                    questions=questions,
                    difficulty=MissionDifficulty.from_tiers([q.difficulty_tier for q in questions]),
                    points=plan.phase.points,
                    target_score=TARGET_SCORE,
                    expires_at=expires_at,
                )
            )

        unique, ratio = diversity_of(q for m in missions for q in m.questions)
        batch = DailyBatch(
            learner_id=learner_id,
            batch_date=batch_date,
            generated_at=now,
            missions=missions,
            unique_templates=unique,
            diversity_score=ratio,
        )
        logger.info(
            f"Built batch for {learner_id} on {batch_date}: {len(missions)} missions, "
            f"{sum(m.total_questions for m in missions)} questions, diversity {ratio}"
        )
        return batch
