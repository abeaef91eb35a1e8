"""Question-type rules and answer coercion helpers."""

from __future__ import annotations

import math
import re
from typing import Any

from ..schemas import FileDescriptor, Question, QuestionType

TEXT_TYPES: frozenset[str] = frozenset({"short-text", "long-text"})
CHOICE_TYPES: frozenset[str] = frozenset({"single-choice", "multi-choice"})

# Rule-bag fields honoured per question type; anything else is ignored.
RULES_BY_TYPE: dict[str, tuple[str, ...]] = {
    "short-text": ("min_length", "max_length", "pattern"),
    "long-text": ("min_length", "max_length"),
    "numeric": ("min", "max"),
    "single-choice": (),
    "multi-choice": (),
    "file-upload": (),
}

_LEADING_NUMBER = re.compile(
    r"^\s*[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)


def uses_options(question_type: QuestionType | str) -> bool:
    return question_type in CHOICE_TYPES


def applicable_rules(question: Question) -> dict[str, Any]:
    """Return the configured rules that apply to the question's type."""
    rules = question.validation.model_dump()
    return {
        name: rules[name]
        for name in RULES_BY_TYPE.get(question.type, ())
        if rules.get(name) is not None
    }


def answer_text(answer: Any) -> str:
    """Coerce an answer of any supported shape to display text."""
    if answer is None:
        return ""
    if isinstance(answer, str):
        return answer
    if isinstance(answer, bool):
        return "true" if answer else "false"
    if isinstance(answer, (int, float)):
        return format_number(answer)
    if isinstance(answer, FileDescriptor):
        return answer.name
    if isinstance(answer, dict):
        return str(answer.get("name", ""))
    if isinstance(answer, (list, tuple)):
        return ",".join(answer_text(item) for item in answer)
    return str(answer)


def is_missing(answer: Any) -> bool:
    """Return True when an answer counts as not given.

    ``None``, blank strings and empty multi-choice lists are missing; a file
    descriptor never is.
    """
    if answer is None:
        return True
    if isinstance(answer, (list, tuple)):
        return len(answer) == 0
    if isinstance(answer, FileDescriptor):
        return False
    if isinstance(answer, dict):
        return not answer
    return answer_text(answer).strip() == ""


def parse_number(answer: Any) -> float | None:
    """Parse the leading decimal number of an answer.

    Mirrors browser number-input semantics: ``"12px"`` parses as 12 and
    ``"abc"`` does not parse at all.
    """
    if isinstance(answer, bool):
        return None
    if isinstance(answer, (int, float)):
        return None if math.isnan(answer) else float(answer)
    match = _LEADING_NUMBER.match(answer_text(answer))
    if not match:
        return None
    token = match.group(0).strip()
    if token.endswith("Infinity"):
        return -math.inf if token.startswith("-") else math.inf
    return float(token)


def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
