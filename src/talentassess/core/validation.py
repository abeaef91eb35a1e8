"""Per-question answer validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import structlog

from ..schemas import Assessment, Question
from .questions import (
    TEXT_TYPES,
    answer_text,
    applicable_rules,
    format_number,
    is_missing,
    parse_number,
)

REQUIRED_MESSAGE = "This field is required"
INVALID_FORMAT_MESSAGE = "Invalid format"
INVALID_NUMBER_MESSAGE = "Must be a valid number"


@dataclass
class ValidatorConfig:
    """Message templates used by the validator."""

    required_message: str = REQUIRED_MESSAGE
    min_length_message: str = "Minimum length is {bound} characters"
    max_length_message: str = "Maximum length is {bound} characters"
    invalid_format_message: str = INVALID_FORMAT_MESSAGE
    invalid_number_message: str = INVALID_NUMBER_MESSAGE
    min_value_message: str = "Minimum value is {bound}"
    max_value_message: str = "Maximum value is {bound}"


class AnswerValidator:
    """Check answers against a question's required flag and rule bag."""

    def __init__(self, *, config: ValidatorConfig | None = None) -> None:
        self._config = config or ValidatorConfig()
        self._patterns: dict[str, re.Pattern[str] | None] = {}
        self._logger = structlog.get_logger(__name__)

    def validate_answer(self, question: Question, answer: Any) -> list[str]:
        """Return violation messages in rule order; empty means valid."""
        errors: list[str] = []
        if question.required and is_missing(answer):
            errors.append(self._config.required_message)

        if not answer or question.validation.is_empty():
            return errors

        rules = applicable_rules(question)
        if question.type in TEXT_TYPES:
            errors.extend(self._text_errors(question.id, answer_text(answer), rules))
        elif question.type == "numeric":
            errors.extend(self._numeric_errors(answer, rules))
        return errors

    def validate(
        self,
        assessment: Assessment,
        answers: Mapping[str, Any],
        visible_ids: Iterable[str],
    ) -> dict[str, str]:
        """Map each visible question with violations to its first message."""
        visible = set(visible_ids)
        errors: dict[str, str] = {}
        for question in assessment.iter_questions():
            if question.id not in visible:
                continue
            messages = self.validate_answer(question, answers.get(question.id))
            if messages:
                errors[question.id] = messages[0]
        return errors

    def _text_errors(self, question_id: str, text: str, rules: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        min_length = rules.get("min_length")
        max_length = rules.get("max_length")
        if min_length and len(text) < min_length:
            errors.append(self._config.min_length_message.format(bound=min_length))
        if max_length and len(text) > max_length:
            errors.append(self._config.max_length_message.format(bound=max_length))
        if rules.get("pattern"):
            compiled = self._compile(question_id, rules["pattern"])
            if compiled is not None and not compiled.search(text):
                errors.append(self._config.invalid_format_message)
        return errors

    def _numeric_errors(self, answer: Any, rules: dict[str, Any]) -> list[str]:
        value = parse_number(answer)
        if value is None:
            return [self._config.invalid_number_message]
        errors: list[str] = []
        if "min" in rules and value < rules["min"]:
            errors.append(self._config.min_value_message.format(bound=format_number(rules["min"])))
        if "max" in rules and value > rules["max"]:
            errors.append(self._config.max_value_message.format(bound=format_number(rules["max"])))
        return errors

    def _compile(self, question_id: str, pattern: str) -> re.Pattern[str] | None:
        if pattern not in self._patterns:
            try:
                self._patterns[pattern] = re.compile(pattern)
            except re.error as exc:
                # An unusable pattern is a builder mistake; the rule is skipped.
                self._logger.warning(
                    "validation.invalid_pattern",
                    question_id=question_id,
                    pattern=pattern,
                    error=str(exc),
                )
                self._patterns[pattern] = None
        return self._patterns[pattern]


_default_validator = AnswerValidator()


def validate_answer(question: Question, answer: Any) -> list[str]:
    return _default_validator.validate_answer(question, answer)


def validate(
    assessment: Assessment,
    answers: Mapping[str, Any],
    visible_ids: Iterable[str],
) -> dict[str, str]:
    """Validate every visible question; an empty mapping means the submission passes."""
    return _default_validator.validate(assessment, answers, visible_ids)
