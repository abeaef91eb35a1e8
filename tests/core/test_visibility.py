from __future__ import annotations

import pytest

from talentassess.core import compute_visibility, condition_holds
from talentassess.schemas import Conditional


def conditional(condition: str, value: str, depends_on: str = "dep") -> Conditional:
    return Conditional(depends_on=depends_on, condition=condition, value=value)


def test_unconditional_questions_always_visible(demo_assessment):
    unconditional = {"q1", "q2", "q3", "q4", "q5", "q6"}

    for answers in ({}, {"q6": "no"}, {"q1": "", "q2": []}, {"q6": "yes"}):
        assert unconditional <= compute_visibility(demo_assessment, answers)


@pytest.mark.parametrize(
    ("answer", "expected"),
    [("yes", True), ("no", False), ("YES", False), ("", False), (None, False)],
)
def test_equals_requires_truthy_exact_match(answer, expected):
    assert condition_holds(conditional("equals", "yes"), answer) is expected


@pytest.mark.parametrize(
    ("answer", "expected"),
    [("no", True), ("yes", False), ("", False), (None, False), (0, False)],
)
def test_not_equals_hides_on_falsy_dependency(answer, expected):
    assert condition_holds(conditional("not-equals", "yes"), answer) is expected


def test_contains_is_case_insensitive_substring():
    rule = conditional("contains", "React")

    assert condition_holds(rule, "I mostly use react and vue")
    assert not condition_holds(rule, "angular")


def test_contains_matches_multi_choice_selection():
    rule = conditional("contains", "vue")

    assert condition_holds(rule, ["react", "vue"])
    assert not condition_holds(rule, ["react"])
    assert not condition_holds(rule, [])


def test_equals_against_list_answer_never_matches():
    assert not condition_holds(conditional("equals", "react"), ["react"])


def test_follow_up_visibility_tracks_dependency(demo_assessment):
    assert "q7" not in compute_visibility(demo_assessment, {})
    assert "q7" not in compute_visibility(demo_assessment, {"q6": "no"})
    assert "q7" in compute_visibility(demo_assessment, {"q6": "yes"})


def test_visibility_is_one_hop_only(make_assessment):
    assessment = make_assessment(
        sections=[
            {
                "id": "s1",
                "questions": [
                    {"id": "a", "type": "single-choice"},
                    {
                        "id": "b",
                        "type": "short-text",
                        "conditional": {"dependsOn": "a", "condition": "equals", "value": "yes"},
                    },
                    {
                        "id": "c",
                        "type": "short-text",
                        "conditional": {"dependsOn": "b", "condition": "equals", "value": "go"},
                    },
                ],
            }
        ]
    )

    # "b" is hidden, yet its stale answer still reveals "c".
    visible = compute_visibility(assessment, {"a": "no", "b": "go"})

    assert "b" not in visible
    assert "c" in visible


def test_dangling_dependency_hides_question(make_assessment):
    assessment = make_assessment(
        sections=[
            {
                "id": "s1",
                "questions": [
                    {
                        "id": "orphan",
                        "conditional": {"dependsOn": "deleted", "condition": "not-equals", "value": "x"},
                    }
                ],
            }
        ]
    )

    assert compute_visibility(assessment, {"other": "x"}) == set()


def test_visibility_does_not_mutate_inputs(demo_assessment):
    answers = {"q6": "yes"}
    before = demo_assessment.model_copy(deep=True)

    compute_visibility(demo_assessment, answers)

    assert answers == {"q6": "yes"}
    assert demo_assessment == before
