"""
Curriculum source.

Loads the curriculum JSON once per process. A missing or malformed file
degrades to an empty curriculum so callers see "nothing to practice today"
instead of a crash.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path

from loguru import logger

from practice_engine.curriculum.models import Curriculum

PACKAGED_CURRICULUM = "sample_curriculum.json"


def _read_packaged(name: str) -> str:
    return resources.files("practice_engine.data").joinpath(name).read_text(encoding="utf-8")


@lru_cache(maxsize=8)
def load_curriculum(path: str | None = None) -> Curriculum:
    """
    Load and index the curriculum graph.

    Args:
        path: Curriculum JSON file; the packaged sample when None

    Returns:
        Curriculum (empty when the file cannot be read)
    """
    try:
        if path is None:
            raw = _read_packaged(PACKAGED_CURRICULUM)
            origin = f"package:{PACKAGED_CURRICULUM}"
        else:
            raw = Path(path).read_text(encoding="utf-8")
            origin = path
        curriculum = Curriculum.from_dict(json.loads(raw))
    except (OSError, json.JSONDecodeError, KeyError, TypeError) as e:
        logger.warning(f"Curriculum could not be loaded from {path or PACKAGED_CURRICULUM}: {e}")
        return Curriculum.empty()

    logger.info(
        f"Curriculum {curriculum.curriculum_id} v{curriculum.schema_version} loaded from {origin}: "
        f"{len(curriculum.modules)} modules, {len(curriculum.atoms)} atoms"
    )
    return curriculum
