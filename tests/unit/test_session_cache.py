"""
Unit tests for resumable subject sessions.
"""

import random
from datetime import date

import pytest

from practice_engine.content.hydrator import ContentHydrator
from practice_engine.content.pool import ContentPool
from practice_engine.content.sources import InMemoryContentSource
from practice_engine.delivery.cache import MemoryCache
from practice_engine.delivery.served import ServedLedger
from practice_engine.delivery.session_cache import SessionCache, SessionProgress

DAY = date(2026, 3, 10)


class CountingPool(ContentPool):
    """ContentPool that records how often it was queried."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fetches = 0

    async def fetch_candidates(self, subject, grade):
        self.fetches += 1
        return await super().fetch_candidates(subject, grade)


@pytest.fixture
def backend():
    return MemoryCache()


@pytest.fixture
def pool(content_pool):
    return CountingPool(content_pool.sources)


@pytest.fixture
def sessions(backend, pool):
    return SessionCache(backend, pool, hydrator=ContentHydrator(rng=random.Random(5)), question_cap=6)


class TestStartOrResume:
    @pytest.mark.asyncio
    async def test_second_call_resumes(self, sessions, pool):
        first = await sessions.start_or_resume("ada", "Math", DAY, grade=7)
        second = await sessions.start_or_resume("ada", "math", DAY, grade=7)

        assert len(first.questions) == 6
        assert [q.content_id for q in second.questions] == [q.content_id for q in first.questions]
        assert second.model_dump_json() == first.model_dump_json()
        assert pool.fetches == 1

    @pytest.mark.asyncio
    async def test_fresh_session_starts_at_zero(self, sessions):
        session = await sessions.start_or_resume("ada", "math", DAY, grade=7)
        assert (session.current_index, session.score) == (0, 0)
        assert session.current_question is session.questions[0]

    @pytest.mark.asyncio
    async def test_served_items_not_reused_same_day(self, backend, sessions):
        first = await sessions.start_or_resume("ada", "math", DAY, grade=7)
        sessions.clear(first)
        second = await sessions.start_or_resume("ada", "math", DAY, grade=7)

        assert not {q.content_id for q in first.questions} & {q.content_id for q in second.questions}
        assert len(ServedLedger(backend).load("ada", DAY)) == 12

    @pytest.mark.asyncio
    async def test_version_bump_regenerates(self, backend, pool):
        old = SessionCache(backend, pool, schema_version=2, question_cap=6)
        await old.start_or_resume("ada", "math", DAY, grade=7)

        current = SessionCache(backend, pool, schema_version=3, question_cap=6)
        assert current.resume("ada", "math", DAY) is None

        session = await current.start_or_resume("ada", "math", DAY, grade=7)
        assert session.schema_version == 3
        assert not session.is_placeholder
        assert pool.fetches == 2

    @pytest.mark.asyncio
    async def test_direct_collection_keeps_order(self, backend, mcq_factory):
        source = InMemoryContentSource(questions=[mcq_factory(f"s{n}", subject="science") for n in range(12)])
        sessions = SessionCache(backend, ContentPool([source], direct_limit=10))

        session = await sessions.start_or_resume("ada", "Science", DAY, grade=7)
        assert [q.content_id for q in session.questions] == [f"s{n}" for n in range(10)]

    @pytest.mark.asyncio
    async def test_placeholder_not_cached(self, backend):
        sessions = SessionCache(backend, ContentPool([InMemoryContentSource()]))
        session = await sessions.start_or_resume("ada", "history", DAY)

        assert session.is_placeholder
        assert len(session.questions) == 1
        assert session.questions[0].is_correct("1")
        assert backend.keys("session:") == []


class TestProgress:
    @pytest.mark.asyncio
    async def test_update_progress_persists_without_refetch(self, sessions, pool):
        session = await sessions.start_or_resume("ada", "math", DAY, grade=7)
        first_id = session.questions[0].content_id

        sessions.update_progress(session, SessionProgress(current_index=1, score=1, consumed_id=first_id))
        resumed = sessions.resume("ada", "math", DAY)

        assert (resumed.current_index, resumed.score) == (1, 1)
        assert resumed.consumed_ids == [first_id]
        assert pool.fetches == 1

    @pytest.mark.asyncio
    async def test_index_clamped(self, sessions):
        session = await sessions.start_or_resume("ada", "math", DAY, grade=7)
        updated = sessions.update_progress(session, SessionProgress(current_index=99, score=6))
        assert updated.current_index == len(session.questions)
        assert updated.is_complete
        assert updated.current_question is None

    @pytest.mark.asyncio
    async def test_clear(self, sessions):
        session = await sessions.start_or_resume("ada", "math", DAY, grade=7)
        assert sessions.clear(session) is True
        assert sessions.resume("ada", "math", DAY) is None
        assert sessions.clear(session) is False
