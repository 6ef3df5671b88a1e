"""
Content pool sources.

Two-step bundle access (metadata query, then detail fetch) plus a direct
question collection used when no bundle matches:

- HttpContentSource: remote content API over httpx with retry/backoff
- InMemoryContentSource: offline pool, optionally loaded from a JSON file

Sources raise ContentUnavailable on failure; the ContentPool decides how to
degrade.
"""

from __future__ import annotations

import asyncio
import json
from importlib import resources
from pathlib import Path
from typing import Any, Protocol

import httpx
from loguru import logger
from pydantic import ValidationError

from practice_engine.content.models import BundleSummary, ContentItem
from practice_engine.content.normalize import bundle_questions, normalize_items
from practice_engine.core.errors import ContentUnavailable

PACKAGED_CONTENT = "sample_content.json"


class ContentSource(Protocol):
    """Read-only access to authored question content."""

    async def list_bundles(self, subject: str, grade: int | None) -> list[BundleSummary]: ...

    async def fetch_bundle(self, bundle_id: str) -> list[ContentItem]: ...

    async def query_by_subject_and_grade(
        self, subject: str, grade: int | None, limit: int
    ) -> list[ContentItem]: ...


# =============================================================================
# HTTP source
# =============================================================================


class HttpContentSource:
    """HTTP client for the content pool API."""

    def __init__(
        self,
        api_url: str,
        timeout_ms: int = 10000,
        retry_attempts: int = 3,
    ):
        """
        Initialize the content API client.

        Args:
            api_url: Base URL for the content API
            timeout_ms: Request timeout in milliseconds
            retry_attempts: Number of attempts per request
        """
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_ms / 1000.0
        self.retry_attempts = max(1, retry_attempts)
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def list_bundles(self, subject: str, grade: int | None) -> list[BundleSummary]:
        params: dict[str, Any] = {"subject": subject.lower()}
        if grade is not None:
            params["grade"] = grade
        data = await self._get_json("/bundles", params)
        summaries = []
        for raw in data.get("bundles") or []:
            try:
                summaries.append(BundleSummary.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed bundle listing: {e.error_count()} errors")
        return summaries

    async def fetch_bundle(self, bundle_id: str) -> list[ContentItem]:
        data = await self._get_json(f"/bundles/{bundle_id}")
        return normalize_items(
            bundle_questions(data), subject=data.get("subject"), grade=data.get("grade")
        )

    async def query_by_subject_and_grade(
        self, subject: str, grade: int | None, limit: int
    ) -> list[ContentItem]:
        params: dict[str, Any] = {"subject": subject.lower(), "limit": limit}
        if grade is not None:
            params["grade"] = grade
        data = await self._get_json("/questions", params)
        return normalize_items(data.get("questions", []), subject=subject.lower(), grade=grade)[:limit]

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        GET a JSON document with retry logic.

        Timeouts, transport errors and 5xx responses are retried with
        exponential backoff; 4xx responses fail immediately.

        Raises:
            ContentUnavailable: When the request cannot be completed
        """
        url = f"{self.api_url}{path}"
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise ContentUnavailable(url, "response was not a JSON object")
                return data

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500:
                    logger.error(f"Content API client error {e.response.status_code} for {path}")
                    raise ContentUnavailable(url, f"HTTP {e.response.status_code}") from e
                logger.warning(
                    f"Content API server error {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts} for {path}"
                )

            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(f"Content API timeout on attempt {attempt + 1}/{self.retry_attempts} for {path}")

            except httpx.RequestError as e:
                last_error = e
                logger.warning(
                    f"Content API request error on attempt {attempt + 1}/{self.retry_attempts} for {path}: {e}"
                )

            except json.JSONDecodeError as e:
                raise ContentUnavailable(url, "response was not JSON") from e

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(2**attempt)

        raise ContentUnavailable(url, f"failed after {self.retry_attempts} attempts: {last_error}")


# =============================================================================
# Offline source
# =============================================================================


class InMemoryContentSource:
    """Offline content pool held in memory."""

    def __init__(
        self,
        bundles: list[tuple[BundleSummary, list[ContentItem]]] | None = None,
        questions: list[ContentItem] | None = None,
    ):
        self._summaries = [summary for summary, _ in bundles or []]
        self._bundle_items = {summary.bundle_id: list(items) for summary, items in bundles or []}
        self._questions = list(questions or [])

    async def list_bundles(self, subject: str, grade: int | None) -> list[BundleSummary]:
        subject = subject.lower()
        return [
            s
            for s in self._summaries
            if s.subject.lower() == subject and (grade is None or s.grade in (None, grade))
        ]

    async def fetch_bundle(self, bundle_id: str) -> list[ContentItem]:
        if bundle_id not in self._bundle_items:
            raise ContentUnavailable(f"bundle:{bundle_id}", "unknown bundle")
        return list(self._bundle_items[bundle_id])

    async def query_by_subject_and_grade(
        self, subject: str, grade: int | None, limit: int
    ) -> list[ContentItem]:
        subject = subject.lower()
        matches = [
            q
            for q in self._questions
            if (q.subject or "").lower() == subject and (grade is None or q.grade in (None, grade))
        ]
        return matches[:limit]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InMemoryContentSource:
        """
        Build from a pool document::

            {"bundles": [{"bundle_id", "subject", "grade", "title", "questions": [...]}],
             "questions": [...]}
        """
        bundles = []
        for raw in data.get("bundles", []):
            items = normalize_items(bundle_questions(raw), subject=raw.get("subject"), grade=raw.get("grade"))
            summary = BundleSummary(
                bundle_id=raw["bundle_id"],
                subject=raw.get("subject", ""),
                grade=raw.get("grade"),
                title=raw.get("title", ""),
                item_count=len(items),
            )
            bundles.append((summary, items))
        return cls(bundles=bundles, questions=normalize_items(data.get("questions", [])))

    @classmethod
    def from_file(cls, path: Path | None = None) -> InMemoryContentSource:
        """Load a pool document from disk (the packaged sample when None)."""
        if path is None:
            raw = resources.files("practice_engine.data").joinpath(PACKAGED_CONTENT).read_text(encoding="utf-8")
        else:
            raw = Path(path).read_text(encoding="utf-8")
        return cls.from_dict(json.loads(raw))
