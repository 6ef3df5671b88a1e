"""
Practice Engine.

Facade over the scheduling and hydration components:

    Curriculum + learner record -> MissionBuilder (PhaseSelector, ContentHydrator)
    -> DailyBatch cached per (learner, date) -> answers update missions,
    mastery, streak and badges

Generation is single-flight per learner: an asyncio lock per learner plus
the cache-existence check means repeated calls for the same date return
the cached batch. Durable store failures surface as StoreUnavailable and
always happen before any cache write.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from config import Settings
from practice_engine.adaptive.mission_builder import MissionBuilder, validate_overrides
from practice_engine.adaptive.models import BatchOverrides, DailyBatch, Mission, MissionStatus
from practice_engine.content.pool import ContentPool
from practice_engine.content.sources import ContentSource, HttpContentSource, InMemoryContentSource
from practice_engine.core.clock import DEFAULT_CUTOVER_HOUR, practice_date, resolve_timezone, utc_now
from practice_engine.core.errors import UnknownMissionError, UnknownQuestionError
from practice_engine.core.mastery import table_stats, weighted_table_mastery
from practice_engine.curriculum.loader import load_curriculum
from practice_engine.curriculum.models import Curriculum
from practice_engine.delivery.cache import CacheBackend, JsonFileCache, MemoryCache, VersionedCache
from practice_engine.delivery.learner_store import InMemoryLearnerStore, LearnerStore, SqlLearnerStore
from practice_engine.delivery.served import ServedLedger
from practice_engine.delivery.session_cache import Session, SessionCache, SessionProgress
from practice_engine.progress.badges import Badge
from practice_engine.progress.missions import can_record, expire_if_due, record_answer, start_mission
from practice_engine.progress.models import MissionStats, Streak
from practice_engine.progress.stats import mission_stats
from practice_engine.progress.streak_tracker import ProgressTracker

BATCH_SCHEMA_VERSION = 1


class AnswerResult(BaseModel):
    """Outcome of one submitted answer."""

    is_correct: bool
    mission: Mission
    recorded: bool = True
    mastery_after: float | None = None
    new_badges: list[Badge] = Field(default_factory=list)


def unanswered_content_ids(batch: DailyBatch) -> set[str]:
    return {
        q.content_id
        for m in batch.missions
        for q in m.questions
        if q.question_id not in m.completed_question_ids
    }


class PracticeEngine:
    """Daily batches, answers, sessions and streaks for many learners."""

    def __init__(
        self,
        curriculum: Curriculum,
        store: LearnerStore,
        cache_backend: CacheBackend,
        pool: ContentPool,
        builder: MissionBuilder | None = None,
        tracker: ProgressTracker | None = None,
        session_cache: SessionCache | None = None,
        tz: tzinfo = UTC,
        cutover_hour: int = DEFAULT_CUTOVER_HOUR,
        default_grade: int = 7,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.curriculum = curriculum
        self.store = store
        self.pool = pool
        self.builder = builder or MissionBuilder()
        self.tracker = tracker or ProgressTracker()
        self.batches = VersionedCache(cache_backend, BATCH_SCHEMA_VERSION)
        self.ledger = ServedLedger(cache_backend)
        self.sessions = session_cache or SessionCache(
            cache_backend, pool, hydrator=self.builder.hydrator, ledger=self.ledger
        )
        self.tz = tz
        self.cutover_hour = cutover_hour
        self.default_grade = default_grade
        self.clock = clock
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_settings(cls, settings: Settings) -> PracticeEngine:
        """Wire the engine from configuration."""
        curriculum = load_curriculum(str(settings.curriculum_path) if settings.curriculum_path else None)

        sources: list[ContentSource]
        if settings.has_content_api():
            sources = [
                HttpContentSource(
                    settings.content_api_url,
                    timeout_ms=settings.content_timeout_ms,
                    retry_attempts=settings.content_retry_attempts,
                )
            ]
        else:
            sources = [InMemoryContentSource.from_file(settings.content_file)]

        pool = ContentPool(sources, direct_limit=settings.direct_query_limit)
        backend = JsonFileCache(settings.cache_dir)
        builder = MissionBuilder()
        session_cache = SessionCache(
            backend,
            pool,
            hydrator=builder.hydrator,
            ledger=ServedLedger(backend),
            question_cap=settings.session_question_cap,
        )
        return cls(
            curriculum=curriculum,
            store=SqlLearnerStore(settings.database_url, echo=settings.log_level == "DEBUG"),
            cache_backend=backend,
            pool=pool,
            builder=builder,
            session_cache=session_cache,
            tz=resolve_timezone(settings.timezone),
            cutover_hour=settings.day_cutover_hour,
            default_grade=settings.default_grade,
        )

    @classmethod
    def in_memory(cls, curriculum: Curriculum, pool: ContentPool, **kwargs: Any) -> PracticeEngine:
        """Engine over in-memory store and cache (tests, dry runs)."""
        return cls(curriculum, InMemoryLearnerStore(), MemoryCache(), pool, **kwargs)

    async def close(self) -> None:
        for source in self.pool.sources:
            if isinstance(source, HttpContentSource):
                await source.close()

    # =========================================================================
    # Clock
    # =========================================================================

    def now(self) -> datetime:
        return self.clock().astimezone(self.tz)

    def today(self, now: datetime | None = None) -> date:
        """Practice date for a moment (now by default)."""
        return practice_date((now or self.now()).astimezone(self.tz), self.cutover_hour)

    @staticmethod
    def batch_key(learner_id: str, batch_date: date) -> str:
        return f"batch:{learner_id}:{batch_date.isoformat()}"

    # =========================================================================
    # Daily batch
    # =========================================================================

    async def generate_daily_batch(
        self,
        learner_id: str,
        batch_date: date | None = None,
        overrides: BatchOverrides | None = None,
    ) -> DailyBatch:
        """
        Return the learner's batch for a date, building it once.

        Args:
            learner_id: Learner id
            batch_date: Practice date (today when None)
            overrides: Optional regenerate / module / template overrides

        Returns:
            DailyBatch, possibly with zero missions

        Raises:
            StoreUnavailable: The learner record could not be read
        """
        batch_date = batch_date or self.today()
        overrides, problems = validate_overrides(overrides or BatchOverrides(), self.curriculum)
        for problem in problems:
            logger.warning(f"Ignoring override: {problem}")

        key = self.batch_key(learner_id, batch_date)
        async with self._locks[learner_id]:
            cached = self.batches.read(key, DailyBatch)
            if cached is not None and not overrides.regenerate:
                logger.debug(f"Returning cached batch for {learner_id} on {batch_date}")
                return cached

            record = self.store.get(learner_id)
            candidates = await self.pool.fetch_candidates(
                self.curriculum.subject, record.grade or self.default_grade
            )
            served = self.ledger.load(learner_id, batch_date)
            if cached is not None:
                # Unanswered items of the discarded batch were never seen
                released = unanswered_content_ids(cached)
                served -= released
                logger.info(
                    f"Regenerating batch for {learner_id} on {batch_date} ({len(released)} items released)"
                )
            batch = self.builder.build_daily_batch(
                learner_id=learner_id,
                batch_date=batch_date,
                curriculum=self.curriculum,
                mastery=record.mastery,
                content_pool=candidates.items,
                served_ids=served,
                hurdles=record.hurdles,
                last_seen=record.last_seen,
                overrides=overrides,
                now=self.now(),
                tz=self.tz,
                cutover_hour=self.cutover_hour,
            )
            self.batches.write(key, batch)
            self.ledger.save(learner_id, batch_date, served)
        return batch

    def get_batch(self, learner_id: str, batch_date: date) -> DailyBatch | None:
        return self.batches.read(self.batch_key(learner_id, batch_date), DailyBatch)

    def _find_mission(self, learner_id: str, mission_id: str) -> tuple[str, DailyBatch]:
        for key in reversed(self.batches.keys(f"batch:{learner_id}:")):
            batch = self.batches.read(key, DailyBatch)
            if batch is not None and batch.mission(mission_id) is not None:
                return key, batch
        raise UnknownMissionError(f"No mission {mission_id} for learner {learner_id}")

    # =========================================================================
    # Answers
    # =========================================================================

    async def start_mission(self, learner_id: str, mission_id: str) -> Mission:
        """
        Open a mission, starting its clock.

        Opening an already started, finished or expired mission changes
        nothing; an overdue mission is saved as EXPIRED.

        Raises:
            UnknownMissionError: No such mission for the learner
        """
        now = self.now()
        async with self._locks[learner_id]:
            key, batch = self._find_mission(learner_id, mission_id)
            original = batch.mission(mission_id)
            mission = start_mission(expire_if_due(original, now), now)
            if mission != original:
                batch.replace_mission(mission)
                self.batches.write(key, batch)
                logger.debug(f"Mission {mission_id} for {learner_id} is now {mission.status.value}")
        return mission

    async def submit_answer(
        self,
        learner_id: str,
        mission_id: str,
        question_id: str,
        answer: Any,
    ) -> AnswerResult:
        """
        Grade an answer and record it against its mission.

        Answers to closed missions or already answered questions are graded
        but change nothing.

        Raises:
            UnknownMissionError: No such mission for the learner
            UnknownQuestionError: The mission has no such question
            StoreUnavailable: The learner record could not be updated
        """
        now = self.now()
        async with self._locks[learner_id]:
            key, batch = self._find_mission(learner_id, mission_id)
            original = batch.mission(mission_id)
            mission = expire_if_due(original, now)
            question = mission.question(question_id)
            if question is None:
                raise UnknownQuestionError(f"Mission {mission_id} has no question {question_id}")
            is_correct = question.is_correct(answer)

            if not can_record(mission, question_id):
                if mission.status is not original.status:
                    batch.replace_mission(mission)
                    self.batches.write(key, batch)
                logger.debug(f"Answer to {question_id} not recorded: mission {mission.status.value}")
                return AnswerResult(is_correct=is_correct, mission=mission, recorded=False)

            record = self.store.get(learner_id)
            patch = self.tracker.answer_patch(record, question, is_correct, now)
            mission = record_answer(mission, question_id, is_correct, now)
            batch.replace_mission(mission)

            new_badges: list[Badge] = []
            if mission.status in (MissionStatus.COMPLETED, MissionStatus.FAILED):
                streak, new_badges = self.tracker.mission_finished(record.streak, mission, batch, now)
                patch["streak"] = streak
                logger.info(
                    f"Mission {mission.phase} {mission.status.value} for {learner_id}: "
                    f"{mission.score}% ({mission.points_earned} pts)"
                )

            if patch:
                self.store.put(learner_id, patch)
            self.batches.write(key, batch)

        mastery_after = patch.get("mastery", {}).get(question.atom_id) if question.atom_id else None
        return AnswerResult(
            is_correct=is_correct,
            mission=mission,
            mastery_after=mastery_after,
            new_badges=new_badges,
        )

    def expire_missions(self, learner_id: str, now: datetime | None = None) -> int:
        """Mark overdue open missions EXPIRED across cached batches."""
        now = now or self.now()
        expired = 0
        for key in self.batches.keys(f"batch:{learner_id}:"):
            batch = self.batches.read(key, DailyBatch)
            if batch is None:
                continue
            changed = False
            for mission in batch.missions:
                updated = expire_if_due(mission, now)
                if updated.status is not mission.status:
                    batch.replace_mission(updated)
                    changed = True
                    expired += 1
            if changed:
                self.batches.write(key, batch)
        if expired:
            logger.info(f"Expired {expired} missions for {learner_id}")
        return expired

    # =========================================================================
    # Sessions
    # =========================================================================

    async def start_or_resume_session(self, learner_id: str, subject: str) -> Session:
        """
        Today's session for a subject, resumed from cache when possible.

        Raises:
            StoreUnavailable: A fresh session needed the learner record and
                the store failed
        """
        day = self.today()
        async with self._locks[learner_id]:
            session = self.sessions.resume(learner_id, subject, day)
            if session is not None:
                return session
            record = self.store.get(learner_id)
            return await self.sessions.create(learner_id, subject, day, record.grade or self.default_grade)

    def update_session_progress(
        self,
        session: Session,
        current_index: int,
        score: int,
        consumed_id: str | None = None,
    ) -> Session:
        return self.sessions.update_progress(
            session, SessionProgress(current_index=current_index, score=score, consumed_id=consumed_id)
        )

    def clear_session(self, session: Session) -> bool:
        return self.sessions.clear(session)

    # =========================================================================
    # Progress
    # =========================================================================

    def get_streak(self, learner_id: str) -> Streak:
        return self.store.get(learner_id).streak

    def get_mission_stats(self, learner_id: str, days: int = 30) -> MissionStats:
        """Statistics over the last `days` practice dates, today included."""
        today = self.today()
        batches = []
        for offset in range(days):
            batch = self.get_batch(learner_id, today - timedelta(days=offset))
            if batch is not None:
                batches.append(batch)
        return mission_stats(batches, self.get_streak(learner_id), days=days)

    def get_table_mastery(self, learner_id: str) -> dict[str, int]:
        """Weighted multiplication-table mastery and mastered-fact counts."""
        mastery = self.store.get(learner_id).mastery
        return {"weighted_percentage": weighted_table_mastery(mastery), **table_stats(mastery)}
