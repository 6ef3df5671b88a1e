"""
MCQ option ordering.

Options are shuffled, then stably partitioned so that options flagged
`pin_last` (compound answers such as "Both A and B") come after the rest in
their shuffled relative order. Option ids are preserved, so the answer key
remains valid after reordering.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from practice_engine.content.models import ContentItem, McqOption, McqPayload


def arrange_options(options: Sequence[McqOption], rng: random.Random) -> list[McqOption]:
    shuffled = list(options)
    rng.shuffle(shuffled)
    return [o for o in shuffled if not o.pin_last] + [o for o in shuffled if o.pin_last]


def with_arranged_options(item: ContentItem, rng: random.Random) -> ContentItem:
    """Return the item with its MCQ options arranged; other kinds unchanged."""
    if not isinstance(item.payload, McqPayload) or len(item.payload.options) < 2:
        return item
    payload = item.payload.model_copy(update={"options": arrange_options(item.payload.options, rng)})
    return item.model_copy(update={"payload": payload})
