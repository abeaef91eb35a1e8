"""Candidate-facing runtime session for filling in an assessment."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import pendulum
import structlog

from .clock import Clock, to_iso, utc_now
from .core import (
    AnswerValidator,
    CompletionStats,
    SubmissionValidator,
    completion_stats,
    compute_visibility,
    response_score,
)
from .errors import PersistenceError, SessionStateError
from .repository import AssessmentRepository
from .schemas import Assessment, AssessmentResponse, FileDescriptor


class SessionState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    NOT_FOUND = "not_found"


@dataclass(slots=True)
class SubmissionResult:
    """Outcome of a submit attempt."""

    ok: bool
    errors: dict[str, str] = field(default_factory=dict)
    response: AssessmentResponse | None = None


class AssessmentSession:
    """Drives ``LOADING -> READY -> SUBMITTING -> COMPLETED`` for one candidate."""

    def __init__(
        self,
        *,
        repository: AssessmentRepository,
        assessment_id: str,
        candidate_id: str,
        validator: SubmissionValidator | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._repository = repository
        self._validator = validator or AnswerValidator()
        self._clock = clock
        self.assessment_id = assessment_id
        self.candidate_id = candidate_id
        self.state = SessionState.LOADING
        self.assessment: Assessment | None = None
        self.answers: dict[str, Any] = {}
        self.errors: dict[str, str] = {}
        self.visible_ids: set[str] = set()
        self.response: AssessmentResponse | None = None
        self.last_submit_error: PersistenceError | None = None
        self.started_at: pendulum.DateTime | None = None
        self._logger = structlog.get_logger(__name__).bind(
            assessment_id=assessment_id,
            candidate_id=candidate_id,
        )

    async def load(self) -> SessionState:
        """Fetch the assessment; a missing record ends in ``NOT_FOUND``."""
        self._require(SessionState.LOADING, "load")
        assessment = await self._repository.get_assessment(self.assessment_id)
        if assessment is None:
            self.state = SessionState.NOT_FOUND
            self._logger.info("session.not_found")
            return self.state
        return self.start(assessment)

    def start(self, assessment: Assessment) -> SessionState:
        """Begin answering an already loaded assessment."""
        self._require(SessionState.LOADING, "start")
        self.assessment = assessment
        self.answers = {}
        self.errors = {}
        self.started_at = self._clock()
        self.visible_ids = compute_visibility(assessment, self.answers)
        self.state = SessionState.READY
        self._logger.info("session.ready", question_count=assessment.question_count())
        return self.state

    def set_answer(self, question_id: str, value: Any) -> set[str]:
        """Record an answer, re-derive visibility and clear that field's error."""
        self._require(SessionState.READY, "answer")
        assessment = self._loaded()
        if assessment.find_question(question_id) is None:
            raise KeyError(f"Unknown question {question_id!r}")
        if isinstance(value, FileDescriptor):
            value = value.model_dump(mode="json", by_alias=True)
        self.answers = {**self.answers, question_id: value}
        self.errors.pop(question_id, None)
        self.visible_ids = compute_visibility(assessment, self.answers)
        return self.visible_ids

    def is_visible(self, question_id: str) -> bool:
        return question_id in self.visible_ids

    @property
    def stats(self) -> CompletionStats:
        return completion_stats(self._loaded(), self.answers, self.visible_ids)

    @property
    def completion(self) -> int:
        return self.stats.percentage

    @property
    def elapsed_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        return (self._clock() - self.started_at).total_seconds()

    async def submit(self) -> SubmissionResult:
        """Validate visible questions and store the response when they pass.

        Validation failures return to ``READY`` with ``errors`` populated. A
        store failure also returns to ``READY``, keeps the answers, records
        ``last_submit_error`` and re-raises.
        """
        self._require(SessionState.READY, "submit")
        assessment = self._loaded()
        self.visible_ids = compute_visibility(assessment, self.answers)
        self.errors = self._validator.validate(assessment, self.answers, self.visible_ids)
        if self.errors:
            self._logger.info("session.validation_failed", errors=self.errors)
            return SubmissionResult(ok=False, errors=dict(self.errors))

        self.state = SessionState.SUBMITTING
        self.last_submit_error = None
        response = AssessmentResponse(
            id=f"response-{assessment.id}-{self.candidate_id}-{uuid.uuid4().hex}",
            assessment_id=assessment.id,
            candidate_id=self.candidate_id,
            responses=dict(self.answers),
            submitted_at=to_iso(self._clock()),
            score=response_score(self.answers, assessment),
        )
        try:
            stored = await self._repository.save_response(response)
        except PersistenceError as exc:
            self.state = SessionState.READY
            self.last_submit_error = exc
            self._logger.warning("session.submit_failed", error=str(exc))
            raise

        self.response = stored
        self.state = SessionState.COMPLETED
        self._logger.info(
            "session.completed",
            response_id=stored.id,
            score=stored.score,
            completion=self.completion,
            elapsed_seconds=self.elapsed_seconds,
        )
        return SubmissionResult(ok=True, response=stored)

    def _loaded(self) -> Assessment:
        if self.assessment is None:
            raise SessionStateError("read answers", self.state.value)
        return self.assessment

    def _require(self, expected: SessionState, operation: str) -> None:
        if self.state is not expected:
            raise SessionStateError(operation, self.state.value)
