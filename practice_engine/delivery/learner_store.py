"""
Durable learner record store.

One JSON document per learner holding mastery, hurdles, last-seen times,
streak and badges. `put` merges at the top level: writing `mastery` leaves
`streak` untouched.

- SqlLearnerStore: SQLAlchemy table (SQLite by default)
- InMemoryLearnerStore: same contract, for tests and dry runs
"""

from __future__ import annotations

import copy
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import JSON, String, create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from practice_engine.core.errors import StoreUnavailable
from practice_engine.progress.models import Streak

# =============================================================================
# Record
# =============================================================================


class LearnerRecord(BaseModel):
    """Everything the engine reads about one learner."""

    learner_id: str
    grade: int | None = None
    mastery: dict[str, float] = Field(default_factory=dict)
    hurdles: dict[str, int] = Field(default_factory=dict)
    correct_runs: dict[str, int] = Field(default_factory=dict)
    last_seen: dict[str, datetime] = Field(default_factory=dict)
    streak: Streak = Field(default_factory=Streak)


class LearnerStore(Protocol):
    def get(self, learner_id: str) -> LearnerRecord: ...

    def put(self, learner_id: str, patch: dict[str, Any]) -> LearnerRecord: ...

    def learner_ids(self) -> list[str]: ...

def merge_patch(document: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Top-level merge; keys absent from the patch keep their stored value."""
    merged = dict(document)
    merged.update(patch)
    return merged


def _record_from(learner_id: str, document: dict[str, Any]) -> LearnerRecord:
    try:
        return LearnerRecord.model_validate({**document, "learner_id": learner_id})
    except ValidationError as e:
        raise StoreUnavailable(f"Learner record {learner_id} is unreadable: {e.error_count()} errors") from e


def _serialise(patch: dict[str, Any]) -> dict[str, Any]:
    """JSON-safe copy of a patch (models and datetimes dumped)."""
    return {
        key: value.model_dump(mode="json") if isinstance(value, BaseModel) else _jsonable(value)
        for key, value in patch.items()
    }


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


# =============================================================================
# SQLAlchemy store
# =============================================================================


class Base(DeclarativeBase):
    pass


class LearnerRecordRow(Base):
    """One learner document."""

    __tablename__ = "learner_records"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<LearnerRecordRow learner={self.learner_id}>"


class SqlLearnerStore:
    """SQLAlchemy-backed learner store."""

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize the store and create its table if needed.

        Args:
            database_url: SQLAlchemy URL (sqlite:///path or any SQLAlchemy dialect)
            echo: Log emitted SQL
        """
        if database_url.startswith("sqlite:///"):
            Path(database_url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        self._session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Learner store could not be initialised: {e}") from e
        logger.info(f"Learner store ready at {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, learner_id: str) -> LearnerRecord:
        """
        Read a learner record.

        Returns:
            The stored record, or an empty record for a new learner

        Raises:
            StoreUnavailable: On database failure
        """
        try:
            with self.session_scope() as session:
                row = session.get(LearnerRecordRow, learner_id)
                document = dict(row.document) if row is not None else {}
        except SQLAlchemyError as e:
            logger.error(f"Learner store read failed for {learner_id}: {e}")
            raise StoreUnavailable(f"Could not read learner {learner_id}") from e
        return _record_from(learner_id, document)

    def put(self, learner_id: str, patch: dict[str, Any]) -> LearnerRecord:
        """
        Merge a partial update into a learner record.

        Args:
            learner_id: Learner to update
            patch: Top-level fields to overwrite

        Returns:
            The merged record

        Raises:
            StoreUnavailable: On database failure
        """
        update = _serialise(patch)
        try:
            with self.session_scope() as session:
                row = session.execute(
                    select(LearnerRecordRow).where(LearnerRecordRow.learner_id == learner_id)
                ).scalar_one_or_none()
                if row is None:
                    row = LearnerRecordRow(learner_id=learner_id, document={})
                    session.add(row)
                # Reassign so the JSON column is flagged dirty
                row.document = merge_patch(row.document or {}, update)
                document = dict(row.document)
        except SQLAlchemyError as e:
            logger.error(f"Learner store write failed for {learner_id}: {e}")
            raise StoreUnavailable(f"Could not write learner {learner_id}") from e

        logger.debug(f"Learner {learner_id} updated: {sorted(update)}")
        return _record_from(learner_id, document)

    def learner_ids(self) -> list[str]:
        try:
            with self.session_scope() as session:
                return list(session.scalars(select(LearnerRecordRow.learner_id).order_by(LearnerRecordRow.learner_id)))
        except SQLAlchemyError as e:
            raise StoreUnavailable("Could not list learners") from e


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryLearnerStore:
    """Dict-backed learner store with the same merge semantics."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None):
        self._documents: dict[str, dict[str, Any]] = copy.deepcopy(documents or {})

    def get(self, learner_id: str) -> LearnerRecord:
        return _record_from(learner_id, copy.deepcopy(self._documents.get(learner_id, {})))

    def put(self, learner_id: str, patch: dict[str, Any]) -> LearnerRecord:
        document = merge_patch(self._documents.get(learner_id, {}), _serialise(patch))
        self._documents[learner_id] = document
        return _record_from(learner_id, copy.deepcopy(document))

    def learner_ids(self) -> list[str]:
        return sorted(self._documents)
