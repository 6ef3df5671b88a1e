"""
Pedagogical phases of a daily mission batch.

The order of MISSION_PHASES is the day's narrative arc:
warm-up -> diagnosis -> guided practice -> advanced -> reflection.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Strategy(str, Enum):
    """Candidate selection strategy keys."""

    SPACED_REVIEW = "spaced_review"
    MISCONCEPTION_DIAGNOSIS = "misconception_diagnosis"
    GUIDED_PRACTICE = "guided_practice"
    ADVANCED_REASONING = "advanced_reasoning"
    TRANSFER_LEARNING = "transfer_learning"


@dataclass(frozen=True)
class Phase:
    """One fixed stage of the daily batch."""

    name: str
    slots: int
    strategy: Strategy
    templates: tuple[str, ...]
    title: str
    points: int

    def template_for(self, index: int) -> str:
        """Round-robin template assignment across the phase's slots."""
        return self.templates[index % len(self.templates)]


MISSION_PHASES: tuple[Phase, ...] = (
    Phase(
        name="WARM_UP",
        slots=3,
        strategy=Strategy.SPACED_REVIEW,
        templates=("MCQ_CONCEPT", "NUMBER_LINE_PLACE", "NUMERIC_INPUT"),
        title="Warm-Up Review",
        points=10,
    ),
    Phase(
        name="DIAGNOSIS",
        slots=3,
        strategy=Strategy.MISCONCEPTION_DIAGNOSIS,
        templates=("ERROR_ANALYSIS", "MCQ_CONCEPT", "MATCHING"),
        title="Spot the Mistake",
        points=15,
    ),
    Phase(
        name="GUIDED_PRACTICE",
        slots=3,
        strategy=Strategy.GUIDED_PRACTICE,
        templates=("BALANCE_OPS", "CLASSIFY_SORT", "DRAG_DROP_MATCH"),
        title="Guided Practice",
        points=15,
    ),
    Phase(
        name="ADVANCED",
        slots=3,
        strategy=Strategy.ADVANCED_REASONING,
        templates=("STEP_BUILDER", "MULTI_STEP_WORD", "EXPRESSION_INPUT"),
        title="Challenge Round",
        points=20,
    ),
    Phase(
        name="REFLECTION",
        slots=2,
        strategy=Strategy.TRANSFER_LEARNING,
        templates=("SHORT_EXPLAIN", "TRANSFER_MINI"),
        title="Reflect & Transfer",
        points=12,
    ),
)

PHASES_BY_NAME: dict[str, Phase] = {phase.name: phase for phase in MISSION_PHASES}

# Percentage of a mission's questions that must be answered correctly
TARGET_SCORE = 70

TOTAL_SLOTS = sum(phase.slots for phase in MISSION_PHASES)
