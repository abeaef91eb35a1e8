from __future__ import annotations

from typing import Any, Callable

import pendulum
import pytest

from talentassess.schemas import Assessment


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: str = "2025-01-01T09:00:00Z"):
        self._current = pendulum.parse(start)

    def __call__(self) -> pendulum.DateTime:
        value = self._current
        self._current = self._current.add(seconds=1)
        return value


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


def build_assessment(**kwargs: Any) -> Assessment:
    defaults: dict[str, Any] = {
        "id": "A-001",
        "jobId": "job-1",
        "title": "Frontend Developer Assessment",
        "sections": [],
        "isActive": True,
        "createdAt": "2025-01-01T00:00:00Z",
        "updatedAt": "2025-01-01T00:00:00Z",
    }
    defaults.update(kwargs)
    return Assessment.model_validate(defaults)


@pytest.fixture
def demo_assessment() -> Assessment:
    return build_assessment(
        description="Evaluate technical skills and experience for frontend development role",
        sections=[
            {
                "id": "section-1",
                "title": "Technical Experience",
                "order": 0,
                "questions": [
                    {
                        "id": "q1",
                        "type": "single-choice",
                        "title": "How many years of React experience do you have?",
                        "required": True,
                        "options": [
                            {"id": "opt1", "text": "Less than 1 year", "value": "<1"},
                            {"id": "opt2", "text": "1-2 years", "value": "1-2"},
                            {"id": "opt3", "text": "3-5 years", "value": "3-5"},
                        ],
                    },
                    {
                        "id": "q2",
                        "type": "multi-choice",
                        "title": "Which frontend technologies are you familiar with?",
                        "required": True,
                        "options": [
                            {"id": "opt1", "text": "React", "value": "react"},
                            {"id": "opt2", "text": "Vue.js", "value": "vue"},
                            {"id": "opt3", "text": "TypeScript", "value": "typescript"},
                        ],
                    },
                    {
                        "id": "q3",
                        "type": "short-text",
                        "title": "What is your preferred state management solution?",
                        "required": False,
                        "validation": {"maxLength": 100},
                    },
                ],
            },
            {
                "id": "section-2",
                "title": "Scenario Questions",
                "order": 1,
                "questions": [
                    {
                        "id": "q4",
                        "type": "long-text",
                        "title": "Describe how you would optimize a slow React application.",
                        "required": True,
                        "validation": {"minLength": 50, "maxLength": 1000},
                    },
                    {
                        "id": "q5",
                        "type": "numeric",
                        "title": "On a scale of 1-10, how would you rate your CSS skills?",
                        "required": True,
                        "validation": {"min": 1, "max": 10},
                    },
                    {
                        "id": "q6",
                        "type": "single-choice",
                        "title": "Are you available for remote work?",
                        "required": True,
                        "options": [
                            {"id": "opt1", "text": "Yes", "value": "yes"},
                            {"id": "opt2", "text": "No", "value": "no"},
                        ],
                    },
                    {
                        "id": "q7",
                        "type": "short-text",
                        "title": "If remote work is preferred, what timezone are you in?",
                        "conditional": {"dependsOn": "q6", "condition": "equals", "value": "yes"},
                        "validation": {"maxLength": 50},
                    },
                ],
            },
        ],
    )


@pytest.fixture
def scenario_assessment() -> Callable[[bool], Assessment]:
    """One required yes/no question and a short-text follow-up shown on "yes"."""

    def factory(follow_up_required: bool = False) -> Assessment:
        return build_assessment(
            sections=[
                {
                    "id": "s1",
                    "title": "Screening",
                    "order": 0,
                    "questions": [
                        {
                            "id": "Q1",
                            "type": "single-choice",
                            "title": "Do you hold a work permit?",
                            "required": True,
                            "options": [
                                {"id": "o1", "text": "Yes", "value": "yes"},
                                {"id": "o2", "text": "No", "value": "no"},
                            ],
                        },
                        {
                            "id": "Q2",
                            "type": "short-text",
                            "title": "Permit number",
                            "required": follow_up_required,
                            "conditional": {"dependsOn": "Q1", "condition": "equals", "value": "yes"},
                        },
                    ],
                }
            ]
        )

    return factory


@pytest.fixture
def make_assessment() -> Callable[..., Assessment]:
    return build_assessment
