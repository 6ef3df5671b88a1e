"""
Phase Selector.

Five independent strategies, each a filter + sort over the curriculum atoms:

| Strategy                | Rule                                      | Order           |
|-------------------------|-------------------------------------------|-----------------|
| spaced_review           | unseen for more than a day, or never seen | atom order      |
| misconception_diagnosis | mastery < 0.7 and has misconception tags  | atom order      |
| guided_practice         | 3 weak (< 0.6) interleaved with 2 strong  | weak, strong... |
| advanced_reasoning      | mastery >= 0.6                            | mastery desc    |
| transfer_learning       | mastery >= 0.7                            | shuffled        |

A strategy that finds nothing falls back to the first atoms of the
curriculum, so every phase has fillable slots unless the curriculum itself
is empty. The result never exceeds the phase's slot count.
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from loguru import logger

from practice_engine.adaptive.phases import Phase, Strategy
from practice_engine.core.clock import utc_now
from practice_engine.core.mastery import mastery_of
from practice_engine.curriculum.models import Atom


@dataclass
class SelectorConfig:
    """Thresholds and caps for the selection strategies."""

    review_interval: timedelta = field(default_factory=lambda: timedelta(days=1))
    diagnosis_ceiling: float = 0.7
    weak_ceiling: float = 0.6
    strong_floor: float = 0.7
    advanced_floor: float = 0.6
    transfer_floor: float = 0.7
    max_candidates: int = 5
    guided_weak: int = 3
    guided_strong: int = 2


class PhaseSelector:
    """Ranks curriculum atoms for one pedagogical phase."""

    def __init__(self, config: SelectorConfig | None = None, rng: random.Random | None = None):
        """
        Initialize the selector.

        Args:
            config: SelectorConfig or None for defaults
            rng: Random source for the shuffled strategy
        """
        self.config = config or SelectorConfig()
        self.rng = rng or random.Random()

    def select_candidates(
        self,
        phase: Phase,
        atoms: Sequence[Atom],
        mastery: Mapping[str, float],
        hurdles: Mapping[str, int] | None = None,
        last_seen: Mapping[str, datetime] | None = None,
        now: datetime | None = None,
    ) -> list[Atom]:
        """
        Ranked, distinct atom candidates for a phase.

        Args:
            phase: Phase whose strategy and slot count apply
            atoms: Curriculum atoms in authored order
            mastery: Atom id -> mastery score
            hurdles: Misconception tag -> active hurdle count
            last_seen: Atom id -> last practice timestamp
            now: Reference time for spaced review

        Returns:
            At most `phase.slots` atoms
        """
        if not atoms:
            return []

        hurdles = hurdles or {}
        last_seen = last_seen or {}

        if phase.strategy is Strategy.SPACED_REVIEW:
            ranked = self._spaced_review(atoms, last_seen, now or utc_now())
        elif phase.strategy is Strategy.MISCONCEPTION_DIAGNOSIS:
            ranked = self._misconception_diagnosis(atoms, mastery, hurdles)
        elif phase.strategy is Strategy.GUIDED_PRACTICE:
            ranked = self._guided_practice(atoms, mastery)
        elif phase.strategy is Strategy.ADVANCED_REASONING:
            ranked = self._advanced_reasoning(atoms, mastery)
        elif phase.strategy is Strategy.TRANSFER_LEARNING:
            ranked = self._transfer_learning(atoms, mastery)
        else:
            raise ValueError(f"Unknown strategy: {phase.strategy}")

        if not ranked:
            logger.debug(f"{phase.name}: {phase.strategy.value} found no atoms, using curriculum head")
            ranked = list(atoms[: self.config.max_candidates])

        return ranked[: phase.slots]

    # =========================================================================
    # Strategies
    # =========================================================================

    def _spaced_review(
        self, atoms: Sequence[Atom], last_seen: Mapping[str, datetime], now: datetime
    ) -> list[Atom]:
        due = [
            atom
            for atom in atoms
            if atom.atom_id not in last_seen or now - last_seen[atom.atom_id] > self.config.review_interval
        ]
        return due[: self.config.max_candidates]

    def _misconception_diagnosis(
        self, atoms: Sequence[Atom], mastery: Mapping[str, float], hurdles: Mapping[str, int]
    ) -> list[Atom]:
        eligible = [
            atom
            for atom in atoms
            if atom.has_misconceptions and mastery_of(mastery, atom.atom_id) < self.config.diagnosis_ceiling
        ]
        # Atoms with a misconception the learner keeps hitting go first
        active = [a for a in eligible if any(hurdles.get(tag, 0) > 0 for tag in a.misconception_ids)]
        rest = [a for a in eligible if a not in active]
        return (active + rest)[: self.config.max_candidates]

    def _guided_practice(self, atoms: Sequence[Atom], mastery: Mapping[str, float]) -> list[Atom]:
        weak = [a for a in atoms if mastery_of(mastery, a.atom_id) < self.config.weak_ceiling]
        strong = [a for a in atoms if mastery_of(mastery, a.atom_id) >= self.config.strong_floor]
        weak = weak[: self.config.guided_weak]
        strong = strong[: self.config.guided_strong]

        mixed: list[Atom] = []
        for index in range(max(len(weak), len(strong))):
            if index < len(weak):
                mixed.append(weak[index])
            if index < len(strong):
                mixed.append(strong[index])
        return mixed

    def _advanced_reasoning(self, atoms: Sequence[Atom], mastery: Mapping[str, float]) -> list[Atom]:
        ready = [a for a in atoms if mastery_of(mastery, a.atom_id) >= self.config.advanced_floor]
        ready.sort(key=lambda a: mastery_of(mastery, a.atom_id), reverse=True)
        return ready[: self.config.max_candidates]

    def _transfer_learning(self, atoms: Sequence[Atom], mastery: Mapping[str, float]) -> list[Atom]:
        ready = [a for a in atoms if mastery_of(mastery, a.atom_id) >= self.config.transfer_floor]
        self.rng.shuffle(ready)
        return ready[: self.config.max_candidates]
