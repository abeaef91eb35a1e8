"""Conditional visibility evaluation."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..schemas import Assessment, Conditional, Question
from .questions import answer_text


def condition_holds(conditional: Conditional, dependency_answer: Any) -> bool:
    """Evaluate one conditional against the raw answer of its dependency.

    An absent or falsy dependency answer hides the question for every
    condition kind, ``not-equals`` included.
    """
    if not dependency_answer:
        return False
    if conditional.condition == "equals":
        return dependency_answer == conditional.value
    if conditional.condition == "not-equals":
        return dependency_answer != conditional.value
    if conditional.condition == "contains":
        return conditional.value.lower() in answer_text(dependency_answer).lower()
    return False


def is_visible(question: Question, answers: Mapping[str, Any]) -> bool:
    if question.conditional is None:
        return True
    return condition_holds(
        question.conditional,
        answers.get(question.conditional.depends_on),
    )


def visible_question_ids(
    questions: Iterable[Question],
    answers: Mapping[str, Any],
) -> set[str]:
    # One hop only: a dependency's own visibility is not consulted.
    return {question.id for question in questions if is_visible(question, answers)}


def compute_visibility(assessment: Assessment, answers: Mapping[str, Any]) -> set[str]:
    """Return the ids of questions visible for the current answer set."""
    return visible_question_ids(assessment.iter_questions(), answers)
