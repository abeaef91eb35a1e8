"""Record store collaborators for assessments, responses and jobs."""

from __future__ import annotations

import asyncio
import copy
import json
import os
from pathlib import Path
from typing import Any, Iterable, Protocol, runtime_checkable

import pendulum
from pydantic import ValidationError

from .clock import Clock, stamp_after, to_iso, utc_now
from .errors import PersistenceError
from .schemas import Assessment, AssessmentResponse, Job


@runtime_checkable
class RecordStore(Protocol):
    """Key-addressed store contract consumed by the assessment engine."""

    async def get_job(self, job_id: str) -> Job | None:
        """Return the job with ``job_id`` or ``None``."""

    async def get_assessment(self, assessment_id: str) -> Assessment | None:
        """Return the assessment with ``assessment_id`` or ``None``."""

    async def get_assessment_by_job_id(self, job_id: str) -> Assessment | None:
        """Return the first assessment attached to ``job_id`` or ``None``."""

    async def list_assessments(self) -> list[Assessment]:
        """Return every stored assessment."""

    async def save_assessment(self, assessment: Assessment) -> Assessment:
        """Create or update by id and return the stored record."""

    async def delete_assessment(self, assessment_id: str) -> bool:
        """Delete by id; return False when nothing was stored."""

    async def save_assessment_response(self, response: AssessmentResponse) -> AssessmentResponse:
        """Append a submitted response."""

    async def get_assessment_responses(
        self, assessment_id: str | None = None
    ) -> list[AssessmentResponse]:
        """Return responses, optionally only those for ``assessment_id``."""


class InMemoryRecordStore:
    """Process-local store holding records in their interchange shape.

    Records are copied on the way in and out, so callers never share state
    with the store.
    """

    def __init__(
        self,
        *,
        jobs: Iterable[Job | dict[str, Any]] = (),
        assessments: Iterable[Assessment | dict[str, Any]] = (),
        responses: Iterable[AssessmentResponse | dict[str, Any]] = (),
        clock: Clock = utc_now,
    ) -> None:
        self._clock = clock
        # Held from the in-memory change until the durable write settles.
        self._mutation_lock = asyncio.Lock()
        self._jobs: dict[str, dict[str, Any]] = {}
        self._assessments: dict[str, dict[str, Any]] = {}
        self._responses: dict[str, dict[str, Any]] = {}
        self._load_records(jobs, assessments, responses)

    async def get_job(self, job_id: str) -> Job | None:
        record = self._jobs.get(job_id)
        return Job.model_validate(record) if record is not None else None

    async def get_assessment(self, assessment_id: str) -> Assessment | None:
        record = self._assessments.get(assessment_id)
        return Assessment.model_validate(record) if record is not None else None

    async def get_assessment_by_job_id(self, job_id: str) -> Assessment | None:
        for record in self._assessments.values():
            if record.get("jobId") == job_id:
                return Assessment.model_validate(record)
        return None

    async def list_assessments(self) -> list[Assessment]:
        return [Assessment.model_validate(record) for record in self._assessments.values()]

    async def save_assessment(self, assessment: Assessment) -> Assessment:
        async with self._mutation_lock:
            return await self._save_assessment(assessment)

    async def _save_assessment(self, assessment: Assessment) -> Assessment:
        existing = None if assessment.is_new else self._assessments.get(assessment.id)
        if assessment.is_new:
            stored = assessment.model_copy(
                update={
                    "id": self._next_assessment_id(),
                    "created_at": assessment.created_at or to_iso(self._clock()),
                    "updated_at": stamp_after(assessment.updated_at, clock=self._clock),
                }
            )
        else:
            previous = _latest(
                assessment.updated_at,
                existing.get("updatedAt") if existing else None,
            )
            stored = assessment.model_copy(
                update={
                    "created_at": (existing or {}).get("createdAt")
                    or assessment.created_at
                    or to_iso(self._clock()),
                    "updated_at": stamp_after(previous, clock=self._clock),
                }
            )
        record = stored.to_record()
        before = self._assessments
        if existing is None:
            # Newest first, matching the listing order of the job board.
            self._assessments = {stored.id: record, **before}
        else:
            self._assessments = {**before, stored.id: record}
        await self._persist_or_restore(assessments=before)
        return Assessment.model_validate(record)

    async def delete_assessment(self, assessment_id: str) -> bool:
        async with self._mutation_lock:
            if assessment_id not in self._assessments:
                return False
            before = self._assessments
            self._assessments = {k: v for k, v in before.items() if k != assessment_id}
            await self._persist_or_restore(assessments=before)
            return True

    async def save_assessment_response(self, response: AssessmentResponse) -> AssessmentResponse:
        async with self._mutation_lock:
            if response.id in self._responses:
                raise PersistenceError(
                    "save_assessment_response",
                    f"response {response.id!r} already recorded",
                )
            record = response.to_record()
            before = self._responses
            self._responses = {**before, response.id: record}
            await self._persist_or_restore(responses=before)
        return AssessmentResponse.model_validate(copy.deepcopy(record))

    async def get_assessment_responses(
        self, assessment_id: str | None = None
    ) -> list[AssessmentResponse]:
        return [
            AssessmentResponse.model_validate(copy.deepcopy(record))
            for record in self._responses.values()
            if assessment_id is None or record.get("assessmentId") == assessment_id
        ]

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Return a JSON-ready copy of every record."""
        return json.loads(
            json.dumps(
                {
                    "jobs": list(self._jobs.values()),
                    "assessments": list(self._assessments.values()),
                    "responses": list(self._responses.values()),
                }
            )
        )

    async def _persist(self) -> None:
        """Hook for durable subclasses."""

    async def _persist_or_restore(
        self,
        *,
        assessments: dict[str, dict[str, Any]] | None = None,
        responses: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        # In-memory state only counts as saved once the durable write succeeds.
        try:
            await self._persist()
        except PersistenceError:
            if assessments is not None:
                self._assessments = assessments
            if responses is not None:
                self._responses = responses
            raise

    def _load_records(
        self,
        jobs: Iterable[Job | dict[str, Any]],
        assessments: Iterable[Assessment | dict[str, Any]],
        responses: Iterable[AssessmentResponse | dict[str, Any]],
    ) -> None:
        try:
            for job in jobs:
                model = Job.model_validate(job)
                self._jobs[model.id] = model.model_dump(mode="json", by_alias=True)
            for assessment in assessments:
                model = Assessment.model_validate(assessment)
                self._assessments[model.id] = model.to_record()
            for response in responses:
                model = AssessmentResponse.model_validate(response)
                self._responses[model.id] = model.to_record()
        except ValidationError as exc:
            raise PersistenceError("load", f"invalid record: {exc}") from exc

    def _next_assessment_id(self) -> str:
        numeric = [int(key) for key in self._assessments if key.isdigit()]
        return str(max([0, *numeric]) + 1)


class JsonFileRecordStore(InMemoryRecordStore):
    """Store backed by a single JSON document on disk.

    The document holds ``jobs``, ``assessments`` and ``responses`` arrays and
    is rewritten atomically after every change.
    """

    def __init__(self, path: str | Path, *, clock: Clock = utc_now) -> None:
        self._path = Path(path)
        payload = self._read()
        super().__init__(
            jobs=payload.get("jobs", []),
            assessments=payload.get("assessments", []),
            responses=payload.get("responses", []),
            clock=clock,
        )

    @property
    def path(self) -> Path:
        return self._path

    async def _persist(self) -> None:
        await asyncio.to_thread(self._write, self.snapshot())

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise PersistenceError("load", f"invalid JSON in {self._path}: {exc}") from exc
        except OSError as exc:
            raise PersistenceError("load", str(exc)) from exc
        if not isinstance(data, dict):
            raise PersistenceError("load", f"{self._path} must contain a JSON object")
        return data

    def _write(self, payload: dict[str, Any]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise PersistenceError("write", str(exc)) from exc


def _latest(*stamps: str | None) -> str | None:
    present = [stamp for stamp in stamps if stamp]
    if not present:
        return None
    return max(present, key=lambda stamp: pendulum.parse(stamp))
