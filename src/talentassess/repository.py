"""Assessment repository: caching, write serialization and queries."""

from __future__ import annotations

import asyncio
import math
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Literal

import structlog

from .errors import NotFoundError, PersistenceError
from .schemas import NEW_ASSESSMENT_ID, Assessment, AssessmentResponse, Job
from .store import RecordStore

SortOrder = Literal["asc", "desc"]


@dataclass(slots=True)
class AssessmentPage:
    """One page of a filtered assessment listing."""

    assessments: list[Assessment]
    total: int
    page: int
    page_size: int
    total_pages: int


@dataclass(slots=True)
class AssessmentStats:
    """Aggregate counts across stored assessments."""

    total: int
    active: int
    inactive: int
    by_job: dict[str, int] = field(default_factory=dict)
    questions_per_assessment: list[dict[str, Any]] = field(default_factory=list)


class AssessmentCache:
    """Time-bounded cache of assessments keyed by id.

    Entries expire ``ttl`` seconds after insertion; ``invalidate`` drops one
    entry or all of them. A ``ttl`` of 0 disables caching.
    """

    def __init__(self, ttl: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Assessment]] = {}

    def get(self, assessment_id: str) -> Assessment | None:
        entry = self._entries.get(assessment_id)
        if entry is None:
            return None
        expires_at, assessment = entry
        if self._clock() >= expires_at:
            del self._entries[assessment_id]
            return None
        return assessment.model_copy(deep=True)

    def put(self, assessment: Assessment) -> None:
        if self._ttl <= 0:
            return
        self._entries[assessment.id] = (
            self._clock() + self._ttl,
            assessment.model_copy(deep=True),
        )

    def invalidate(self, assessment_id: str | None = None) -> None:
        if assessment_id is None:
            self._entries.clear()
        else:
            self._entries.pop(assessment_id, None)

    def __contains__(self, assessment_id: object) -> bool:
        return assessment_id in self._entries


class AssessmentRepository:
    """Entry point to stored assessments for the editor and runtime.

    Saves are serialized per assessment id so two writes for the same record
    never interleave. Across separate editors the last write wins; there is
    no optimistic concurrency check.
    """

    DEFAULT_CACHE_TTL = 30.0
    DEFAULT_PAGE_SIZE = 10

    def __init__(self, store: RecordStore, *, cache_ttl: float | None = None) -> None:
        self._store = store
        ttl = self.DEFAULT_CACHE_TTL if cache_ttl is None else cache_ttl
        self._cache = AssessmentCache(ttl)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._logger = structlog.get_logger(__name__)

    @property
    def cache(self) -> AssessmentCache:
        return self._cache

    def invalidate(self, assessment_id: str | None = None) -> None:
        self._cache.invalidate(assessment_id)

    async def get_job(self, job_id: str) -> Job | None:
        return await self._call("get_job", self._store.get_job(job_id), job_id=job_id)

    async def get_assessment(self, assessment_id: str) -> Assessment | None:
        cached = self._cache.get(assessment_id)
        if cached is not None:
            return cached
        assessment = await self._call(
            "get_assessment",
            self._store.get_assessment(assessment_id),
            assessment_id=assessment_id,
        )
        if assessment is None:
            self._logger.info("assessment.not_found", assessment_id=assessment_id)
            return None
        self._cache.put(assessment)
        return assessment

    async def get_assessment_by_job_id(self, job_id: str) -> Assessment | None:
        assessment = await self._call(
            "get_assessment_by_job_id",
            self._store.get_assessment_by_job_id(job_id),
            job_id=job_id,
        )
        if assessment is None:
            self._logger.info("assessment.not_found", job_id=job_id)
            return None
        self._cache.put(assessment)
        return assessment

    async def save_assessment(self, assessment: Assessment) -> Assessment:
        lock_key = f"job:{assessment.job_id}" if assessment.is_new else assessment.id
        async with self._locked(lock_key):
            stored = await self._call(
                "save_assessment",
                self._store.save_assessment(assessment),
                assessment_id=assessment.id,
                job_id=assessment.job_id,
            )
        self._cache.put(stored)
        self._logger.info(
            "assessment.saved",
            assessment_id=stored.id,
            job_id=stored.job_id,
            created=assessment.is_new,
            updated_at=stored.updated_at,
        )
        return stored

    async def delete_assessment(self, assessment_id: str) -> bool:
        async with self._locked(assessment_id):
            deleted = await self._call(
                "delete_assessment",
                self._store.delete_assessment(assessment_id),
                assessment_id=assessment_id,
            )
        self._cache.invalidate(assessment_id)
        self._logger.info("assessment.deleted", assessment_id=assessment_id, deleted=deleted)
        return deleted

    async def duplicate_assessment(
        self,
        assessment_id: str,
        *,
        new_job_id: str | None = None,
    ) -> Assessment:
        original = await self.get_assessment(assessment_id)
        if original is None:
            raise NotFoundError("assessment", assessment_id)
        copy = original.model_copy(
            deep=True,
            update={
                "id": NEW_ASSESSMENT_ID,
                "title": f"Copy of {original.title}",
                "job_id": new_job_id or original.job_id,
                "is_active": False,
                "created_at": None,
            },
        )
        return await self.save_assessment(copy)

    async def list_assessments(
        self,
        *,
        job_id: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        sort_by: str | None = None,
        sort_order: SortOrder = "asc",
        page: int = 1,
        page_size: int | None = None,
    ) -> AssessmentPage:
        assessments = await self._call("list_assessments", self._store.list_assessments())

        if job_id is not None:
            assessments = [a for a in assessments if a.job_id == job_id]
        if is_active is not None:
            assessments = [a for a in assessments if a.is_active == is_active]
        if search:
            needle = search.lower()
            assessments = [
                a
                for a in assessments
                if needle in a.title.lower() or needle in (a.description or "").lower()
            ]
        if sort_by:
            field_name = _field_name(sort_by)
            assessments.sort(
                key=lambda a: str(getattr(a, field_name) or ""),
                reverse=sort_order == "desc",
            )

        size = page_size or self.DEFAULT_PAGE_SIZE
        current = max(page, 1)
        start = (current - 1) * size
        total = len(assessments)
        return AssessmentPage(
            assessments=assessments[start : start + size],
            total=total,
            page=current,
            page_size=size,
            total_pages=math.ceil(total / size),
        )

    async def assessment_stats(self) -> AssessmentStats:
        assessments = await self._call("list_assessments", self._store.list_assessments())
        by_job: dict[str, int] = {}
        for assessment in assessments:
            key = assessment.job_id or ""
            by_job[key] = by_job.get(key, 0) + 1
        active = sum(1 for a in assessments if a.is_active)
        return AssessmentStats(
            total=len(assessments),
            active=active,
            inactive=len(assessments) - active,
            by_job=by_job,
            questions_per_assessment=[
                {"id": a.id, "title": a.title, "question_count": a.question_count()}
                for a in assessments
            ],
        )

    async def jobs_with_assessments(self) -> dict[str, list[Assessment]]:
        assessments = await self._call("list_assessments", self._store.list_assessments())
        grouped: dict[str, list[Assessment]] = {}
        for assessment in assessments:
            grouped.setdefault(assessment.job_id or "", []).append(assessment)
        return grouped

    async def save_response(self, response: AssessmentResponse) -> AssessmentResponse:
        stored = await self._call(
            "save_assessment_response",
            self._store.save_assessment_response(response),
            assessment_id=response.assessment_id,
            candidate_id=response.candidate_id,
        )
        self._logger.info(
            "response.saved",
            response_id=stored.id,
            assessment_id=stored.assessment_id,
            candidate_id=stored.candidate_id,
            score=stored.score,
        )
        return stored

    async def get_responses(self, assessment_id: str | None = None) -> list[AssessmentResponse]:
        return await self._call(
            "get_assessment_responses",
            self._store.get_assessment_responses(assessment_id),
            assessment_id=assessment_id,
        )

    @asynccontextmanager
    async def _locked(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def _call(self, operation: str, awaitable: Any, **context: Any) -> Any:
        try:
            return await awaitable
        except PersistenceError as exc:
            self._logger.error("store.failed", operation=operation, error=str(exc), **context)
            raise
        except OSError as exc:
            self._logger.error("store.failed", operation=operation, error=str(exc), **context)
            raise PersistenceError(operation, str(exc)) from exc


def _field_name(key: str) -> str:
    for name, info in Assessment.model_fields.items():
        if key in (name, info.alias):
            return name
    raise ValueError(f"Cannot sort assessments by {key!r}")
