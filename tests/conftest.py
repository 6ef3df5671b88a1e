"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from practice_engine.content.models import (  # noqa: E402
    BundleSummary,
    ContentItem,
    McqOption,
    McqPayload,
    NumericPayload,
)
from practice_engine.content.pool import ContentPool  # noqa: E402
from practice_engine.content.sources import InMemoryContentSource  # noqa: E402
from practice_engine.curriculum.models import Curriculum  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (engine end to end, in memory)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


# ========================================
# Curriculum
# ========================================


@pytest.fixture
def curriculum_doc():
    """Small curriculum: two modules, five atoms."""
    return {
        "curriculum_id": "test_curriculum",
        "schema_version": "1",
        "subject": "math",
        "modules": [
            {
                "module_id": "m1",
                "title": "Module 1",
                "atoms": [
                    {"atom_id": "atom_a", "title": "A", "misconception_ids": ["mis_a"]},
                    {"atom_id": "atom_b", "title": "B", "prerequisites": ["atom_a"]},
                    {"atom_id": "atom_c", "title": "C", "misconception_ids": ["mis_c"]},
                ],
            },
            {
                "module_id": "m2",
                "title": "Module 2",
                "atoms": [
                    {"atom_id": "atom_d", "title": "D"},
                    {"atom_id": "atom_42", "title": "Forty-two", "misconception_ids": ["mis_42"]},
                ],
            },
        ],
    }


@pytest.fixture
def curriculum(curriculum_doc):
    return Curriculum.from_dict(curriculum_doc)


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


@pytest.fixture
def rng():
    return random.Random(7)


# ========================================
# Content
# ========================================


def make_mcq(item_id, atom_id=None, template_id="MCQ_CONCEPT", correct="1", tag=None, subject="math"):
    return ContentItem(
        id=item_id,
        atom_id=atom_id,
        template_id=template_id,
        subject=subject,
        grade=7,
        misconception_tag=tag,
        payload=McqPayload(
            prompt=f"Question {item_id}",
            options=[McqOption(id="1", text="one"), McqOption(id="2", text="two")],
            correct_option_id=correct,
        ),
    )


def make_numeric(item_id, atom_id=None, template_id="NUMERIC_INPUT", value=4.0, subject="math"):
    return ContentItem(
        id=item_id,
        atom_id=atom_id,
        template_id=template_id,
        subject=subject,
        grade=7,
        payload=NumericPayload(prompt=f"Question {item_id}", value=value),
    )


@pytest.fixture
def content_items(curriculum):
    """Three items per curriculum atom (15 items for 14 slots)."""
    items = []
    for atom in curriculum.atoms:
        tag = atom.misconception_ids[0] if atom.misconception_ids else None
        items.append(make_mcq(f"{atom.atom_id}_q1", atom.atom_id, tag=tag))
        items.append(make_mcq(f"{atom.atom_id}_q2", atom.atom_id, template_id="ERROR_ANALYSIS"))
        items.append(make_numeric(f"{atom.atom_id}_q3", atom.atom_id))
    return items


@pytest.fixture
def content_pool(content_items):
    summary = BundleSummary(bundle_id="b1", subject="math", grade=7, item_count=len(content_items))
    source = InMemoryContentSource(bundles=[(summary, content_items)])
    return ContentPool([source])


@pytest.fixture
def mcq_factory():
    return make_mcq


@pytest.fixture
def numeric_factory():
    return make_numeric
