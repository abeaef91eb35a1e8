"""Stateful assessment editor used by the builder UI."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

import structlog

from .clock import Clock, utc_now
from .core import AssessmentBuilder, new_assessment, prepare_for_save
from .errors import NotFoundError, PersistenceError, SaveRejectedError
from .repository import AssessmentRepository
from .schemas import Assessment, QuestionType


class AssessmentEditor:
    """Holds the working copy of one assessment and saves it.

    Mutations go through :class:`AssessmentBuilder` and replace the working
    copy. A failed save keeps the working copy so the user can retry.
    """

    def __init__(
        self,
        *,
        repository: AssessmentRepository,
        builder: AssessmentBuilder | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._repository = repository
        self._builder = builder or AssessmentBuilder()
        self._clock = clock
        self._assessment: Assessment | None = None
        self._revision = 0
        self._saved_revision = 0
        self._save_lock = asyncio.Lock()
        self.last_error: PersistenceError | None = None
        self._logger = structlog.get_logger(__name__)

    @property
    def assessment(self) -> Assessment:
        if self._assessment is None:
            raise RuntimeError("No assessment is open")
        return self._assessment

    @property
    def dirty(self) -> bool:
        return self._revision != self._saved_revision

    def open(self, assessment: Assessment) -> Assessment:
        self._assessment = assessment
        self._revision += 1
        self._saved_revision = self._revision if not assessment.is_new else -1
        self.last_error = None
        return assessment

    async def open_for_job(self, job_id: str) -> Assessment:
        """Load the job's assessment, or start a new draft for it."""
        job = await self._repository.get_job(job_id)
        if job is None:
            raise NotFoundError("job", job_id)
        existing = await self._repository.get_assessment_by_job_id(job_id)
        if existing is not None:
            return self.open(existing)
        self._logger.info("editor.draft_created", job_id=job_id)
        return self.open(new_assessment(job_id, clock=self._clock))

    def update_details(self, patch: Mapping[str, Any]) -> Assessment:
        """Change top-level fields such as title, description or is_active."""
        allowed = {"title", "description", "is_active", "isActive"}
        unknown = set(patch) - allowed
        if unknown:
            raise ValueError(f"Cannot update assessment fields: {sorted(unknown)}")
        changes = {("is_active" if key == "isActive" else key): value for key, value in patch.items()}
        return self._apply(self.assessment.model_copy(update=changes))

    def add_section(self, *, title: str = "", description: str = "") -> Assessment:
        return self._apply(self._builder.add_section(self.assessment, title=title, description=description))

    def update_section(self, section_id: str, patch: Mapping[str, Any]) -> Assessment:
        return self._apply(self._builder.update_section(self.assessment, section_id, patch))

    def delete_section(self, section_id: str) -> Assessment:
        return self._apply(self._builder.delete_section(self.assessment, section_id))

    def add_question(
        self,
        section_id: str,
        *,
        question_type: QuestionType = "short-text",
        title: str = "New Question",
    ) -> Assessment:
        return self._apply(
            self._builder.add_question(
                self.assessment, section_id, question_type=question_type, title=title
            )
        )

    def update_question(self, section_id: str, question_id: str, patch: Mapping[str, Any]) -> Assessment:
        return self._apply(self._builder.update_question(self.assessment, section_id, question_id, patch))

    def delete_question(self, section_id: str, question_id: str) -> Assessment:
        return self._apply(self._builder.delete_question(self.assessment, section_id, question_id))

    def add_option(self, section_id: str, question_id: str, *, text: str = "New Option") -> Assessment:
        return self._apply(self._builder.add_option(self.assessment, section_id, question_id, text=text))

    def update_option(
        self,
        section_id: str,
        question_id: str,
        option_id: str,
        patch: Mapping[str, Any],
    ) -> Assessment:
        return self._apply(
            self._builder.update_option(self.assessment, section_id, question_id, option_id, patch)
        )

    def delete_option(self, section_id: str, question_id: str, option_id: str) -> Assessment:
        return self._apply(
            self._builder.delete_option(self.assessment, section_id, question_id, option_id)
        )

    async def save(self) -> Assessment:
        """Persist the working copy and adopt the stored record.

        Raises :class:`SaveRejectedError` without writing when the title is
        blank or the job id is missing. Saves from one editor run one at a
        time.
        """
        async with self._save_lock:
            try:
                prepared = prepare_for_save(self.assessment, clock=self._clock)
            except SaveRejectedError as exc:
                self._logger.info(
                    "editor.save_rejected",
                    assessment_id=self.assessment.id,
                    reasons=exc.reasons,
                )
                raise

            revision = self._revision
            if prepared.title != self.assessment.title:
                self._assessment = self.assessment.model_copy(update={"title": prepared.title})

            try:
                stored = await self._repository.save_assessment(prepared)
            except PersistenceError as exc:
                self.last_error = exc
                self._logger.warning(
                    "editor.save_failed",
                    assessment_id=prepared.id,
                    error=str(exc),
                )
                raise

            self.last_error = None
            if self._revision == revision:
                self._assessment = stored
                self._saved_revision = self._revision
            else:
                # Edited while the write was in flight: keep the edits and
                # only adopt the store-assigned identity and timestamps.
                self._assessment = self.assessment.model_copy(
                    update={
                        "id": stored.id,
                        "created_at": stored.created_at,
                        "updated_at": stored.updated_at,
                    }
                )
            return self.assessment

    def _apply(self, assessment: Assessment) -> Assessment:
        self._assessment = assessment
        self._revision += 1
        return assessment
