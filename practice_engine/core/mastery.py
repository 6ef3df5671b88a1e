"""
Core Mastery Module.

Shared mastery helpers used by the phase selector, the mission builder and
the progress tracker:
- MasteryLevel: Enum for categorizing mastery scores
- difficulty_tier: Per-slot difficulty from mastery
- apply_answer: Bounded mastery adjustment after an answer
- weighted_table_mastery / table_stats: Multiplication-table progress
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum

# Unseen atoms are treated as half-mastered when ranking candidates
DEFAULT_MASTERY = 0.5

# Per-answer adjustment
MASTERY_STEP = 0.05

# Difficulty tiers (1 = easy, 3 = hard)
EASY_TIER_FLOOR = 0.8
MEDIUM_TIER_FLOOR = 0.5

# Multiplication-table curve
TABLE_FACT_MASTERED = 0.8
TABLE_FACT_NOVICE = 0.2
TABLE_MAX = 20


class MasteryLevel(str, Enum):
    """Mastery level categorization for learner-facing summaries."""

    NOT_STARTED = "not_started"  # 0%
    NOVICE = "novice"  # 1-39%
    DEVELOPING = "developing"  # 40-69%
    PROFICIENT = "proficient"  # 70-89%
    MASTERED = "mastered"  # 90-100%

    @classmethod
    def from_score(cls, score: float) -> MasteryLevel:
        """
        Convert a 0-1 mastery score to a level.

        Args:
            score: Mastery score between 0 and 1

        Returns:
            Corresponding MasteryLevel
        """
        if score <= 0:
            return cls.NOT_STARTED
        elif score < 0.4:
            return cls.NOVICE
        elif score < 0.7:
            return cls.DEVELOPING
        elif score < 0.9:
            return cls.PROFICIENT
        else:
            return cls.MASTERED

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOT_STARTED: "dim",
            MasteryLevel.NOVICE: "red",
            MasteryLevel.DEVELOPING: "yellow",
            MasteryLevel.PROFICIENT: "cyan",
            MasteryLevel.MASTERED: "green",
        }[self]


def mastery_of(mastery: Mapping[str, float], atom_id: str) -> float:
    """Mastery for an atom, DEFAULT_MASTERY when never recorded."""
    return mastery.get(atom_id, DEFAULT_MASTERY)


def clamp_mastery(score: float) -> float:
    return min(1.0, max(0.0, score))


def difficulty_tier(mastery: float) -> int:
    """
    Difficulty tier for a practice slot.

    Strong atoms get easy items so they stay quick wins; weak atoms get the
    hardest tier so the item exposes the gap.
    """
    if mastery >= EASY_TIER_FLOOR:
        return 1
    if mastery >= MEDIUM_TIER_FLOOR:
        return 2
    return 3


def apply_answer(score: float, is_correct: bool, step: float = MASTERY_STEP) -> float:
    """Move a mastery score one step up or down, clamped to [0, 1]."""
    delta = step if is_correct else -step
    return round(clamp_mastery(score + delta), 4)


# =============================================================================
# Multiplication tables
# =============================================================================


def table_atom_id(a: int, b: int) -> str:
    return f"table_{a}x{b}"


def table_fact_weight(a: int, b: int) -> float:
    """
    Difficulty weight of the fact a x b.

    7x8 and 8x7 are weighted the same but tracked as separate atoms.
    """
    if a == 1 or b == 1 or a == 10 or b == 10:
        weight = 0.5
    elif a == 11 or b == 11 or a == 2 or b == 2:
        weight = 0.8
    elif a <= 5 and b <= 5:
        weight = 1.5
    elif a <= 12 and b <= 12:
        weight = 3.0
    else:
        weight = 5.0

    # Squares are landmark facts
    if a == b:
        weight += 1
    return weight


def effective_fact_score(score: float) -> float:
    """
    Progress credit for one fact.

    Below 0.2 earns nothing, 0.8 and above earns full credit, and the band
    in between is interpolated linearly.
    """
    if score >= TABLE_FACT_MASTERED:
        return 1.0
    if score < TABLE_FACT_NOVICE:
        return 0.0
    return (score - TABLE_FACT_NOVICE) / (TABLE_FACT_MASTERED - TABLE_FACT_NOVICE)


def weighted_table_mastery(mastery: Mapping[str, float], max_table: int = TABLE_MAX) -> int:
    """
    Weighted mastery percentage across the 1..max_table multiplication grid.

    Args:
        mastery: Atom id -> mastery score map (missing facts count as 0)
        max_table: Largest table in the grid

    Returns:
        Integer percentage 0-100
    """
    total_weighted = 0.0
    total_weight = 0.0

    for a in range(1, max_table + 1):
        for b in range(1, max_table + 1):
            weight = table_fact_weight(a, b)
            score = mastery.get(table_atom_id(a, b), 0.0)
            total_weighted += effective_fact_score(score) * weight
            total_weight += weight

    if total_weight == 0:
        return 0
    return round(total_weighted / total_weight * 100)


def table_stats(mastery: Mapping[str, float], max_table: int = TABLE_MAX) -> dict[str, int]:
    """Count of facts at or above the mastered threshold."""
    total = max_table * max_table
    mastered = sum(
        1
        for a in range(1, max_table + 1)
        for b in range(1, max_table + 1)
        if mastery.get(table_atom_id(a, b), 0.0) >= TABLE_FACT_MASTERED
    )
    return {
        "mastered_count": mastered,
        "total_facts": total,
        "percentage": round(mastered / total * 100) if total else 0,
    }
