"""
Content pool models.

Authored question items are a tagged union: every item shares the same
envelope (id, atom tag, template tag) and carries a payload whose shape is
selected by its `kind` discriminator. The template id decides the kind.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Template library
# =============================================================================

TEMPLATE_KINDS: dict[str, str] = {
    # Choice based
    "MCQ_CONCEPT": "mcq",
    "MCQ_SIMPLIFIED": "mcq",
    "ERROR_ANALYSIS": "mcq",
    # Numeric answers
    "NUMERIC_INPUT": "numeric",
    "NUMERIC_AUTO": "numeric",
    "NUMBER_LINE_PLACE": "numeric",
    "MULTI_STEP_WORD": "numeric",
    # Manipulatives
    "MATCHING": "interactive",
    "BALANCE_OPS": "interactive",
    "CLASSIFY_SORT": "interactive",
    "DRAG_DROP_MATCH": "interactive",
    "STEP_BUILDER": "interactive",
    # Written
    "EXPRESSION_INPUT": "free_response",
    "SHORT_EXPLAIN": "free_response",
    "TRANSFER_MINI": "free_response",
}

# Vetted template types. Anything else in the pool is never served.
ALLOWED_TEMPLATES: frozenset[str] = frozenset(TEMPLATE_KINDS)


def kind_for_template(template_id: str) -> str | None:
    return TEMPLATE_KINDS.get(template_id)


# =============================================================================
# Payload variants
# =============================================================================


class McqOption(BaseModel):
    """One answer option. `pin_last` options stay after the shuffled ones."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    pin_last: bool = False


class McqPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["mcq"] = "mcq"
    prompt: str
    options: list[McqOption]
    correct_option_id: str | None = None
    explanation: str | None = None

    def check(self, answer: Any) -> bool:
        return self.correct_option_id is not None and str(answer) == self.correct_option_id


class NumericPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["numeric"] = "numeric"
    prompt: str
    value: float
    tolerance: float = 0.01
    unit: str | None = None
    explanation: str | None = None

    def check(self, answer: Any) -> bool:
        try:
            given = float(str(answer).strip())
        except ValueError:
            return False
        return math.isclose(given, self.value, abs_tol=self.tolerance)


class FreeResponsePayload(BaseModel):
    """
    Written answer.

    The engine does not grade essays: when no accepted answers are authored
    any non-blank answer earns completion credit.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["free_response"] = "free_response"
    prompt: str
    accepted_answers: list[str] = Field(default_factory=list)
    rubric: str | None = None

    def check(self, answer: Any) -> bool:
        given = " ".join(str(answer).split()).lower()
        if not self.accepted_answers:
            return bool(given)
        return any(given == " ".join(a.split()).lower() for a in self.accepted_answers)


class InteractivePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["interactive"] = "interactive"
    prompt: str
    config: dict[str, Any] = Field(default_factory=dict)
    answer_key: Any = None

    def check(self, answer: Any) -> bool:
        return self.answer_key is not None and answer == self.answer_key


QuestionPayload = Annotated[
    McqPayload | NumericPayload | FreeResponsePayload | InteractivePayload,
    Field(discriminator="kind"),
]


# =============================================================================
# Pool entities
# =============================================================================


class ContentItem(BaseModel):
    """Authored question owned by the content pool. Read-only to the engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    atom_id: str | None = None
    template_id: str
    subject: str | None = None
    grade: int | None = None
    misconception_tag: str | None = None
    payload: QuestionPayload

    @property
    def kind(self) -> str:
        return self.payload.kind

    def is_correct(self, answer: Any) -> bool:
        return self.payload.check(answer)


class BundleSummary(BaseModel):
    """Metadata row returned by the bundle query (detail fetched separately)."""

    bundle_id: str
    subject: str
    grade: int | None = None
    title: str = ""
    item_count: int = 0


class HydratedQuestion(BaseModel):
    """
    A planned slot merged with the content item that will be shown.

    `is_fallback` is True when the item was not tagged with the planned atom
    and was taken from the any-unused-item pool instead.
    """

    model_config = ConfigDict(frozen=True)

    question_id: str
    atom_id: str | None
    planned_template_id: str | None = None
    phase: str | None = None
    slot: int
    difficulty_tier: int = 2
    mastery_before: float = 0.5
    is_fallback: bool = False
    content: ContentItem

    @property
    def content_id(self) -> str:
        return self.content.id

    @property
    def template_id(self) -> str:
        return self.content.template_id

    def is_correct(self, answer: Any) -> bool:
        return self.content.is_correct(answer)


class PlannedItem(BaseModel):
    """
    Unhydrated practice slot produced by the mission builder.

    `content` is only set for pre-hydrated plans, which the hydrator passes
    through unchanged.
    """

    model_config = ConfigDict(frozen=True)

    atom_id: str
    template_id: str
    phase: str
    slot: int
    difficulty_tier: int = 2
    mastery_before: float = 0.5
    content: ContentItem | None = None

    @property
    def question_id(self) -> str:
        return f"q_{self.slot}_{self.atom_id}_{self.template_id}"

    @property
    def is_prehydrated(self) -> bool:
        return self.content is not None
