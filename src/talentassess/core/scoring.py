"""Completion percentage and the coarse response score."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ..schemas import Assessment
from .questions import is_missing


@dataclass(slots=True)
class CompletionStats:
    """Answered/total counts with the rounded percentage."""

    answered: int
    total: int
    percentage: int


def percentage(answered: int, total: int) -> int:
    """Whole-number percentage, rounding halves up; 0 when ``total`` is 0."""
    if total <= 0:
        return 0
    return int(math.floor(100 * answered / total + 0.5))


def completion_stats(
    assessment: Assessment,
    answers: Mapping[str, Any],
    visible_ids: Iterable[str],
) -> CompletionStats:
    visible = set(visible_ids)
    question_ids = [q.id for q in assessment.iter_questions() if q.id in visible]
    answered = sum(1 for qid in question_ids if not is_missing(answers.get(qid)))
    total = len(question_ids)
    return CompletionStats(answered=answered, total=total, percentage=percentage(answered, total))


def completion(
    assessment: Assessment,
    answers: Mapping[str, Any],
    visible_ids: Iterable[str],
) -> int:
    """Percentage of visible questions that currently hold an answer."""
    return completion_stats(assessment, answers, visible_ids).percentage


def response_score(
    responses: Mapping[str, Any],
    assessment: Assessment | None = None,
) -> int:
    """Crude summary metric stored with a submitted response.

    With an assessment the ratio is answered questions over every question in
    it, ignoring visibility; without one it falls back to answered keys over
    submitted keys. This is not a correctness grade.
    """
    if assessment is None:
        answered = sum(1 for value in responses.values() if not is_missing(value))
        return percentage(answered, len(responses))
    question_ids = [question.id for question in assessment.iter_questions()]
    answered = sum(1 for qid in question_ids if not is_missing(responses.get(qid)))
    return percentage(answered, len(question_ids))
