"""
Session Cache.

Per-subject, per-day resumable quiz state keyed by (learner, subject, date).

- A cached session under the current schema version is resumed as-is.
- A session cached under another version is discarded and regenerated;
  bumping SESSION_SCHEMA_VERSION is how hydration changes are rolled out.
- A fresh session takes bundle content first (shuffled, capped) and falls
  back to the direct question collection.
- When the pool has nothing, a single placeholder question is served and
  not cached, so the next visit tries again.
"""

from __future__ import annotations

from datetime import date, datetime

from loguru import logger
from pydantic import BaseModel, Field

from practice_engine.content.hydrator import ContentHydrator
from practice_engine.content.models import ContentItem, HydratedQuestion, McqOption, McqPayload
from practice_engine.content.pool import ContentPool
from practice_engine.core.clock import utc_now
from practice_engine.delivery.cache import CacheBackend, VersionedCache
from practice_engine.delivery.served import ServedLedger

SESSION_SCHEMA_VERSION = 3
DEFAULT_QUESTION_CAP = 20


class Session(BaseModel):
    """Resumable subject session."""

    learner_id: str
    subject: str
    session_date: date
    schema_version: int
    questions: list[HydratedQuestion]
    current_index: int = 0
    score: int = 0
    consumed_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    is_placeholder: bool = False

    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.questions)

    @property
    def current_question(self) -> HydratedQuestion | None:
        if self.is_complete:
            return None
        return self.questions[self.current_index]


class SessionProgress(BaseModel):
    """Progress written after each answer."""

    current_index: int
    score: int
    consumed_id: str | None = None


def placeholder_question(subject: str) -> HydratedQuestion:
    content = ContentItem(
        id=f"placeholder_{subject}",
        template_id="MCQ_SIMPLIFIED",
        subject=subject,
        payload=McqPayload(
            prompt="No questions found. Check your connection or ask for new content.",
            options=[McqOption(id="1", text="Okay")],
            correct_option_id="1",
        ),
    )
    return HydratedQuestion(
        question_id=f"q_1_none_{content.template_id}",
        atom_id=None,
        planned_template_id=content.template_id,
        slot=1,
        content=content,
    )


class SessionCache:
    """Start, resume, update and clear subject sessions."""

    def __init__(
        self,
        backend: CacheBackend,
        pool: ContentPool,
        hydrator: ContentHydrator | None = None,
        ledger: ServedLedger | None = None,
        schema_version: int = SESSION_SCHEMA_VERSION,
        question_cap: int = DEFAULT_QUESTION_CAP,
    ):
        self.cache = VersionedCache(backend, schema_version)
        self.pool = pool
        self.hydrator = hydrator or ContentHydrator()
        self.ledger = ledger or ServedLedger(backend)
        self.schema_version = schema_version
        self.question_cap = question_cap

    @staticmethod
    def key(learner_id: str, subject: str, day: date) -> str:
        return f"session:{learner_id}:{subject.lower()}:{day.isoformat()}"

    def resume(self, learner_id: str, subject: str, day: date) -> Session | None:
        """Cached session for today, or None (miss, stale version or empty)."""
        session = self.cache.read(self.key(learner_id, subject, day), Session)
        if session is None or not session.questions:
            return None
        logger.info(f"Resumed {subject} session for {learner_id} at question {session.current_index + 1}")
        return session

    async def create(self, learner_id: str, subject: str, day: date, grade: int | None) -> Session:
        """
        Build and persist a fresh session at index 0, score 0.

        Args:
            learner_id: Learner id
            subject: Subject id
            day: Practice date
            grade: Grade used for content queries
        """
        subject = subject.lower()
        candidates = await self.pool.fetch_candidates(subject, grade)
        served = self.ledger.load(learner_id, day)
        # Bundle content is shuffled; the direct collection keeps its order
        questions = self.hydrator.select_unserved(
            candidates.items,
            served,
            limit=self.question_cap if candidates.origin == "bundle" else self.pool.direct_limit,
            shuffle=candidates.origin == "bundle",
        )

        if not questions:
            logger.warning(f"No content for {subject} session of {learner_id}, serving placeholder")
            return Session(
                learner_id=learner_id,
                subject=subject,
                session_date=day,
                schema_version=self.schema_version,
                questions=[placeholder_question(subject)],
                created_at=utc_now(),
                is_placeholder=True,
            )

        # Re-check: a concurrent call may have written the session meanwhile
        existing = self.resume(learner_id, subject, day)
        if existing is not None:
            return existing

        session = Session(
            learner_id=learner_id,
            subject=subject,
            session_date=day,
            schema_version=self.schema_version,
            questions=questions,
            created_at=utc_now(),
        )
        self.cache.write(self.key(learner_id, subject, day), session)
        self.ledger.save(learner_id, day, served)
        logger.info(f"Started {subject} session for {learner_id}: {len(questions)} questions ({candidates.origin})")
        return session

    async def start_or_resume(
        self, learner_id: str, subject: str, day: date, grade: int | None = None
    ) -> Session:
        return self.resume(learner_id, subject, day) or await self.create(learner_id, subject, day, grade)

    def update_progress(self, session: Session, progress: SessionProgress) -> Session:
        """
        Persist index and score after an answer. Never re-fetches content.

        Returns:
            The updated session
        """
        consumed = list(session.consumed_ids)
        if progress.consumed_id and progress.consumed_id not in consumed:
            consumed.append(progress.consumed_id)
        updated = session.model_copy(
            update={
                "current_index": min(progress.current_index, len(session.questions)),
                "score": progress.score,
                "consumed_ids": consumed,
            }
        )
        if not updated.is_placeholder:
            self.cache.write(self.key(session.learner_id, session.subject, session.session_date), updated)
        return updated

    def clear(self, session: Session) -> bool:
        """Drop a finished session from the cache."""
        removed = self.cache.delete(self.key(session.learner_id, session.subject, session.session_date))
        if removed:
            logger.info(f"Cleared {session.subject} session for {session.learner_id}")
        return removed
