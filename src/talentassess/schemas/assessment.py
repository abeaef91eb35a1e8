"""Assessment aggregate and response schemas.

Field names are snake_case in Python and camelCase on the wire; records are
read with ``model_validate`` and written with ``to_record()``.
"""

from __future__ import annotations

from typing import Any, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

QuestionType = Literal[
    "single-choice",
    "multi-choice",
    "short-text",
    "long-text",
    "numeric",
    "file-upload",
]
ConditionKind = Literal["equals", "not-equals", "contains"]

NEW_ASSESSMENT_ID = "new"


class Option(BaseModel):
    """Selectable option of a choice question."""

    id: str
    text: str = ""
    value: str = ""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)


class ValidationRules(BaseModel):
    """Type-dependent rule bag. Every rule is optional."""

    min_length: int | None = None
    max_length: int | None = None
    min: int | float | None = None
    max: int | float | None = None
    pattern: str | None = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


class Conditional(BaseModel):
    """Visibility rule referencing another question's answer by id."""

    depends_on: str
    condition: ConditionKind
    value: str = ""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)


class Question(BaseModel):
    """Single prompt of a fixed type."""

    id: str
    type: QuestionType = "short-text"
    title: str = ""
    description: str | None = None
    required: bool = False
    options: list[Option] = Field(default_factory=list)
    validation: ValidationRules = Field(default_factory=ValidationRules)
    conditional: Conditional | None = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    @field_validator("options", mode="before")
    @classmethod
    def _none_options(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("validation", mode="before")
    @classmethod
    def _none_validation(cls, value: Any) -> Any:
        return {} if value is None else value


class Section(BaseModel):
    """Ordered grouping of questions."""

    id: str
    title: str = ""
    description: str | None = None
    order: int = 0
    questions: list[Question] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)


class Assessment(BaseModel):
    """Root aggregate: a questionnaire attached to one job."""

    id: str = NEW_ASSESSMENT_ID
    job_id: str | None = None
    title: str = ""
    description: str | None = None
    sections: list[Section] = Field(default_factory=list)
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    @property
    def is_new(self) -> bool:
        return not self.id or self.id == NEW_ASSESSMENT_ID

    def iter_questions(self) -> Iterator[Question]:
        """Yield every question in section order."""
        for section in self.sections:
            yield from section.questions

    def find_question(self, question_id: str) -> Question | None:
        for question in self.iter_questions():
            if question.id == question_id:
                return question
        return None

    def question_count(self) -> int:
        return sum(len(section.questions) for section in self.sections)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the camelCase interchange shape."""
        return self.model_dump(mode="json", by_alias=True)


class FileDescriptor(BaseModel):
    """Metadata captured for a file-upload answer."""

    name: str
    size: int = 0
    type: str = ""
    last_modified: int | None = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)


class AssessmentResponse(BaseModel):
    """Immutable record of a candidate's submitted answers."""

    id: str
    assessment_id: str
    candidate_id: str
    responses: dict[str, Any] = Field(default_factory=dict)
    submitted_at: str
    score: int | None = None

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        frozen=True,
    )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
