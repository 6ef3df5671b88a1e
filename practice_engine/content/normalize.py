"""
Raw content normalisation.

The pool holds two generations of documents:
- v3 items: already carry `item_id`/`id`, `atom_id`, `template_id` and a
  structured `payload`
- legacy bundle questions: `question`, `options`, `answer` and an optional
  `type`, with no atom tag

Both are mapped onto ContentItem here so nothing downstream sees raw dicts.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from loguru import logger
from pydantic import ValidationError

from practice_engine.content.models import (
    ContentItem,
    FreeResponsePayload,
    InteractivePayload,
    McqOption,
    McqPayload,
    NumericPayload,
    kind_for_template,
)

# Legacy options such as "All of the above" must stay after the shuffled
# ones. Authors should set `pin_last` instead; this text match only exists
# for documents written before that flag and is applied nowhere else.
LEGACY_PINNED_OPTION = re.compile(
    r"both.*and|all of the|none of the|a and b|options a|neither|a and c|b and c",
    re.IGNORECASE,
)

NUMERIC_TYPES = {"NUMERIC_AUTO", "NUMERIC_INPUT"}


def normalize_item(
    raw: dict[str, Any],
    subject: str | None = None,
    grade: int | None = None,
) -> ContentItem | None:
    """
    Convert one raw pool document to a ContentItem.

    Args:
        raw: Raw document from a bundle or the direct collection
        subject: Subject to stamp when the document has none
        grade: Grade to stamp when the document has none

    Returns:
        ContentItem, or None if the document is unusable
    """
    if not isinstance(raw, dict):
        logger.debug(f"Skipping non-object content document: {type(raw).__name__}")
        return None
    item_id = raw.get("item_id") or raw.get("id")
    if not item_id:
        logger.debug(f"Skipping content document without id: {sorted(raw)}")
        return None

    try:
        if "payload" in raw:
            return _from_structured(raw, str(item_id), subject, grade)
        return _from_legacy(raw, str(item_id), subject, grade)
    except (ValidationError, ValueError, TypeError) as e:
        logger.warning(f"Skipping malformed content item {item_id}: {e}")
        return None


def normalize_items(
    raws: Iterable[dict[str, Any]],
    subject: str | None = None,
    grade: int | None = None,
) -> list[ContentItem]:
    items = (normalize_item(raw, subject, grade) for raw in raws)
    return [item for item in items if item is not None]


def bundle_questions(detail: dict[str, Any]) -> list[dict[str, Any]]:
    """Bundle detail documents store questions either as a list or keyed by id."""
    questions = detail.get("questions") or detail.get("items") or []
    if isinstance(questions, dict):
        return list(questions.values())
    return list(questions)


def _from_structured(
    raw: dict[str, Any], item_id: str, subject: str | None, grade: int | None
) -> ContentItem:
    template_id = raw.get("template_id") or raw.get("type") or ""
    payload = dict(raw["payload"])
    payload.setdefault("kind", kind_for_template(template_id) or "interactive")
    return ContentItem.model_validate(
        {
            "id": item_id,
            "atom_id": raw.get("atom_id") or raw.get("atom"),
            "template_id": template_id,
            "subject": raw.get("subject", subject),
            "grade": raw.get("grade", grade),
            "misconception_tag": raw.get("misconception_tag"),
            "payload": payload,
        }
    )


def _from_legacy(
    raw: dict[str, Any], item_id: str, subject: str | None, grade: int | None
) -> ContentItem:
    prompt = raw.get("question") or raw.get("text") or ""
    options = raw.get("options") or []
    answer = raw.get("answer", raw.get("correct_answer"))
    declared = raw.get("type") or raw.get("template_id")

    common = {
        "id": item_id,
        "atom_id": raw.get("atom_id") or raw.get("atom"),
        "subject": raw.get("subject", subject),
        "grade": raw.get("grade", grade),
        "misconception_tag": raw.get("diagnostic_tag") or raw.get("misconception_tag"),
    }

    if declared in NUMERIC_TYPES or (not options and answer is not None):
        return ContentItem(
            template_id=declared if declared in NUMERIC_TYPES else "NUMERIC_AUTO",
            payload=NumericPayload(
                prompt=prompt,
                value=float(answer),
                tolerance=float(raw.get("tolerance") or 0.01),
                unit=raw.get("unit"),
                explanation=raw.get("explanation"),
            ),
            **common,
        )

    if options:
        mapped = [
            McqOption(
                id=str(index + 1),
                text=str(text),
                pin_last=bool(LEGACY_PINNED_OPTION.search(str(text))),
            )
            for index, text in enumerate(options)
        ]
        correct = next((o.id for o in mapped if o.text == str(answer)), None)
        return ContentItem(
            template_id=declared or "MCQ_SIMPLIFIED",
            payload=McqPayload(
                prompt=prompt,
                options=mapped,
                correct_option_id=correct,
                explanation=raw.get("explanation"),
            ),
            **common,
        )

    template_id = declared or "SHORT_EXPLAIN"
    if kind_for_template(template_id) == "interactive":
        return ContentItem(
            template_id=template_id,
            payload=InteractivePayload(
                prompt=prompt,
                config=raw.get("config") or {},
                answer_key=raw.get("answer_key"),
            ),
            **common,
        )
    return ContentItem(
        template_id=template_id,
        payload=FreeResponsePayload(
            prompt=prompt,
            accepted_answers=list(raw.get("accepted_answers") or []),
            rubric=raw.get("rubric"),
        ),
        **common,
    )
