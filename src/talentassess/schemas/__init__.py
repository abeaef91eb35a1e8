"""Pydantic schema definitions for the persisted interchange records."""

from __future__ import annotations

from .assessment import (
    NEW_ASSESSMENT_ID,
    Assessment,
    AssessmentResponse,
    Conditional,
    ConditionKind,
    FileDescriptor,
    Option,
    Question,
    QuestionType,
    Section,
    ValidationRules,
)
from .job import Job

__all__ = [
    "Assessment",
    "AssessmentResponse",
    "Conditional",
    "ConditionKind",
    "FileDescriptor",
    "Job",
    "NEW_ASSESSMENT_ID",
    "Option",
    "Question",
    "QuestionType",
    "Section",
    "ValidationRules",
]
