"""Assessment engine core: visibility, validation, completion and builder."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

# NOTE: keep imports explicit for export clarity.
from .builder import AssessmentBuilder, IdFactory, new_assessment, prepare_for_save
from .questions import answer_text, applicable_rules, is_missing, parse_number, uses_options
from .scoring import CompletionStats, completion, completion_stats, percentage, response_score
from .validation import AnswerValidator, ValidatorConfig, validate, validate_answer
from .visibility import compute_visibility, condition_holds, is_visible, visible_question_ids
from ..schemas import Assessment


@runtime_checkable
class SubmissionValidator(Protocol):
    """Contract for validating a submission against its visible questions."""

    def validate(
        self,
        assessment: Assessment,
        answers: Mapping[str, Any],
        visible_ids: Iterable[str],
    ) -> dict[str, str]:
        """Return ``{question_id: first message}`` for each failing question."""


__all__ = [
    "AnswerValidator",
    "AssessmentBuilder",
    "CompletionStats",
    "IdFactory",
    "SubmissionValidator",
    "ValidatorConfig",
    "answer_text",
    "applicable_rules",
    "completion",
    "completion_stats",
    "compute_visibility",
    "condition_holds",
    "is_missing",
    "is_visible",
    "new_assessment",
    "parse_number",
    "percentage",
    "prepare_for_save",
    "response_score",
    "uses_options",
    "validate",
    "validate_answer",
    "visible_question_ids",
]
