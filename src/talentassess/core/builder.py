"""Immutable builder operations over the assessment aggregate.

Every operation returns a new :class:`Assessment`; the input value is never
modified. Section ``order`` is rewritten to match position after each
structural change.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from ..clock import Clock, stamp_after, to_iso, utc_now
from ..errors import BuilderError, SaveRejectedError
from ..schemas import NEW_ASSESSMENT_ID, Assessment, Option, Question, QuestionType, Section
from .questions import uses_options

ModelT = TypeVar("ModelT", bound=BaseModel)


class IdFactory:
    """Creation-time ids for UI keying: ``<prefix>-<uuid4 hex>``."""

    def __init__(self, token: Callable[[], str] | None = None) -> None:
        self._token = token or (lambda: uuid.uuid4().hex)

    def new(self, prefix: str) -> str:
        return f"{prefix}-{self._token()}"


def new_assessment(job_id: str, *, clock: Clock = utc_now) -> Assessment:
    """Unsaved draft for a job, carrying the ``"new"`` sentinel id."""
    now = to_iso(clock())
    return Assessment(
        id=NEW_ASSESSMENT_ID,
        job_id=job_id,
        title="New Assessment",
        description="Assessment description",
        sections=[],
        is_active=True,
        created_at=now,
        updated_at=now,
    )


def prepare_for_save(assessment: Assessment, *, clock: Clock = utc_now) -> Assessment:
    """Trim the title, check save preconditions and stamp ``updated_at``."""
    title = (assessment.title or "").strip()
    reasons: list[str] = []
    if not title:
        reasons.append("Assessment title is required")
    if not assessment.job_id:
        reasons.append("Job ID is required")
    if reasons:
        raise SaveRejectedError(reasons)
    return assessment.model_copy(
        update={
            "title": title,
            "updated_at": stamp_after(assessment.updated_at, clock=clock),
        }
    )


class AssessmentBuilder:
    """Pure mutation operations used by the assessment editor."""

    def __init__(self, *, ids: IdFactory | None = None) -> None:
        self._ids = ids or IdFactory()

    # sections

    def add_section(
        self,
        assessment: Assessment,
        *,
        title: str = "",
        description: str = "",
    ) -> Assessment:
        section = Section(
            id=self._ids.new("section"),
            title=title,
            description=description,
            order=len(assessment.sections),
            questions=[],
        )
        return _with_sections(assessment, [*assessment.sections, section])

    def update_section(
        self,
        assessment: Assessment,
        section_id: str,
        patch: Mapping[str, Any],
    ) -> Assessment:
        section = _find_section(assessment, section_id)
        updated = _apply_patch(section, patch, protected=("id", "order"))
        return _replace_section(assessment, updated)

    def delete_section(self, assessment: Assessment, section_id: str) -> Assessment:
        _find_section(assessment, section_id)
        remaining = [s for s in assessment.sections if s.id != section_id]
        return _with_sections(assessment, remaining)

    # questions

    def add_question(
        self,
        assessment: Assessment,
        section_id: str,
        *,
        question_type: QuestionType = "short-text",
        title: str = "New Question",
    ) -> Assessment:
        section = _find_section(assessment, section_id)
        question = Question(
            id=self._ids.new("question"),
            type=question_type,
            title=title,
            description="",
            required=False,
            options=[],
            conditional=None,
        )
        updated = section.model_copy(update={"questions": [*section.questions, question]})
        return _replace_section(assessment, updated)

    def update_question(
        self,
        assessment: Assessment,
        section_id: str,
        question_id: str,
        patch: Mapping[str, Any],
    ) -> Assessment:
        section = _find_section(assessment, section_id)
        question = _find_question(section, question_id)
        updated = _apply_patch(question, patch, protected=("id", "type"))
        if updated.conditional is not None and updated.conditional.depends_on == question_id:
            raise BuilderError(f"Question {question_id!r} cannot depend on itself")
        if updated.options != question.options:
            _check_options(updated)
        return _replace_question(assessment, section, updated)

    def delete_question(
        self,
        assessment: Assessment,
        section_id: str,
        question_id: str,
    ) -> Assessment:
        # Conditionals elsewhere that point at this question are left dangling.
        section = _find_section(assessment, section_id)
        _find_question(section, question_id)
        remaining = [q for q in section.questions if q.id != question_id]
        return _replace_section(assessment, section.model_copy(update={"questions": remaining}))

    # options

    def add_option(
        self,
        assessment: Assessment,
        section_id: str,
        question_id: str,
        *,
        text: str = "New Option",
    ) -> Assessment:
        section = _find_section(assessment, section_id)
        question = _find_question(section, question_id)
        if not uses_options(question.type):
            raise BuilderError(f"Question type {question.type!r} does not take options")
        option = Option(
            id=self._ids.new("option"),
            text=text,
            value=_next_option_value(question.options),
        )
        updated = question.model_copy(update={"options": [*question.options, option]})
        return _replace_question(assessment, section, updated)

    def update_option(
        self,
        assessment: Assessment,
        section_id: str,
        question_id: str,
        option_id: str,
        patch: Mapping[str, Any],
    ) -> Assessment:
        section = _find_section(assessment, section_id)
        question = _find_question(section, question_id)
        option = _find_option(question, option_id)
        updated_option = _apply_patch(option, patch, protected=("id",))
        taken = {o.value for o in question.options if o.id != option_id}
        if updated_option.value in taken:
            raise BuilderError(
                f"Option value {updated_option.value!r} already used in question {question_id!r}"
            )
        options = [updated_option if o.id == option_id else o for o in question.options]
        return _replace_question(assessment, section, question.model_copy(update={"options": options}))

    def delete_option(
        self,
        assessment: Assessment,
        section_id: str,
        question_id: str,
        option_id: str,
    ) -> Assessment:
        section = _find_section(assessment, section_id)
        question = _find_question(section, question_id)
        _find_option(question, option_id)
        options = [o for o in question.options if o.id != option_id]
        return _replace_question(assessment, section, question.model_copy(update={"options": options}))


def _check_options(question: Question) -> None:
    if question.options and not uses_options(question.type):
        raise BuilderError(f"Question type {question.type!r} does not take options")
    values = [option.value for option in question.options]
    if len(set(values)) != len(values):
        raise BuilderError(f"Duplicate option values in question {question.id!r}")


def _find_section(assessment: Assessment, section_id: str) -> Section:
    for section in assessment.sections:
        if section.id == section_id:
            return section
    raise BuilderError(f"Unknown section {section_id!r}")


def _find_question(section: Section, question_id: str) -> Question:
    for question in section.questions:
        if question.id == question_id:
            return question
    raise BuilderError(f"Unknown question {question_id!r} in section {section.id!r}")


def _find_option(question: Question, option_id: str) -> Option:
    for option in question.options:
        if option.id == option_id:
            return option
    raise BuilderError(f"Unknown option {option_id!r} in question {question.id!r}")


def _next_option_value(options: list[Option]) -> str:
    taken = {option.value for option in options}
    index = len(options)
    while f"option-{index}" in taken:
        index += 1
    return f"option-{index}"


def _with_sections(assessment: Assessment, sections: list[Section]) -> Assessment:
    reindexed = [
        section if section.order == index else section.model_copy(update={"order": index})
        for index, section in enumerate(sections)
    ]
    return assessment.model_copy(update={"sections": reindexed})


def _replace_section(assessment: Assessment, updated: Section) -> Assessment:
    sections = [updated if s.id == updated.id else s for s in assessment.sections]
    return _with_sections(assessment, sections)


def _replace_question(assessment: Assessment, section: Section, updated: Question) -> Assessment:
    questions = [updated if q.id == updated.id else q for q in section.questions]
    return _replace_section(assessment, section.model_copy(update={"questions": questions}))


def _apply_patch(model: ModelT, patch: Mapping[str, Any], *, protected: tuple[str, ...]) -> ModelT:
    """Validate ``patch`` (snake_case or camelCase keys) merged over ``model``."""
    model_cls = type(model)
    by_key: dict[str, str] = {}
    for name, info in model_cls.model_fields.items():
        by_key[name] = name
        if info.alias:
            by_key[info.alias] = name

    changes: dict[str, Any] = {}
    for key, value in patch.items():
        name = by_key.get(key)
        if name is None:
            raise BuilderError(f"Unknown {model_cls.__name__} field {key!r}")
        if name in protected and value != getattr(model, name):
            raise BuilderError(f"{model_cls.__name__}.{name} cannot be changed")
        changes[name] = value

    merged = model.model_dump()
    merged.update(changes)
    try:
        return model_cls.model_validate(merged)
    except ValidationError as exc:
        raise BuilderError(f"Invalid {model_cls.__name__} update: {exc}") from exc
